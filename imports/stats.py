from imports.models import ImportFile


def queue_stats(import_id) -> dict[str, int]:
    """
    Count an import's files by status.

    The result always has one key per file status (lower case) plus
    ``total``; an import without files reports zero everywhere.
    """
    counts = ImportFile.objects.for_import(import_id).status_counts()

    stats = {
        status.name.lower(): counts.get(status.value, 0)
        for status in ImportFile.Status
    }
    stats["total"] = sum(counts.values())
    return stats
