import hashlib
import uuid

from imports.models import Batch, ImportAttempt, ImportFile


def create_batch(*, source_system="s3://incoming", created_by="tester", **kwargs):
    batch = Batch(source_system=source_system, created_by=created_by, **kwargs)
    batch.save()
    return batch


def create_import_attempt(*, import_id=None, **kwargs):
    attempt = ImportAttempt(import_id=import_id or uuid.uuid4(), **kwargs)
    attempt.save()
    return attempt


def create_import_file(*, import_id=None, path="incoming/file.tif", **kwargs):
    kwargs.setdefault("sha256", hashlib.sha256(path.encode("utf-8")).digest())
    import_file = ImportFile(import_id=import_id or uuid.uuid4(), path=path, **kwargs)
    import_file.save()
    return import_file
