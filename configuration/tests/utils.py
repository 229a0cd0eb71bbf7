from django.contrib.auth.models import User

from configuration.models import ArchiveConfiguration


def create_user(username="tester", **kwargs):
    return User.objects.create_user(username=username, **kwargs)


def create_archive_configuration(*, user=None, **kwargs):
    if user is None:
        user = create_user()
    kwargs.setdefault("archive_web_ui", "https://archive.example.com")
    kwargs.setdefault("api_token", "token-123")
    config = ArchiveConfiguration(user=user, **kwargs)
    config.save()
    return config
