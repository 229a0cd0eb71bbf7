from unittest import mock

from django.core.cache import caches
from django.test import TestCase

from configuration.models import ArchiveConfiguration
from configuration.utils import (
    CONFIGURATION_KEY_PREFIX,
    archive_configuration,
    cache_archive_configuration,
    clean_api_token,
    is_configuration_complete,
    serialize_archive_configuration,
)

from .utils import create_archive_configuration, create_user


class CleanApiTokenTests(TestCase):
    def test_scheme_prefix_is_removed(self):
        self.assertEqual(clean_api_token("PWSAK2 abc="), "abc=")
        self.assertEqual(clean_api_token("PWSAK2   abc="), "abc=")

    def test_bare_token(self):
        self.assertEqual(clean_api_token("abc="), "abc=")
        self.assertEqual(clean_api_token("  abc=  "), "abc=")

    def test_prefix_inside_token_is_kept(self):
        self.assertEqual(clean_api_token("abcPWSAK2 def"), "abcPWSAK2 def")

    def test_empty(self):
        self.assertEqual(clean_api_token(None), "")
        self.assertEqual(clean_api_token(""), "")


class ArchiveConfigurationTests(TestCase):
    def setUp(self):
        self.cache = caches["configuration_cache"]
        self.cache.clear()

    def test_serialize(self):
        config = ArchiveConfiguration(
            archive_web_ui="https://archive.example.com",
            api_token="PWSAK2 secret",
            customer_guid="guid-1",
            s3_access_key_id="AKIA",
            s3_secret_access_key="s3cret",
            s3_region="",
        )
        self.assertEqual(
            serialize_archive_configuration(config),
            {
                "archive_web_ui": "https://archive.example.com",
                "api_token": "secret",
                "customer_guid": "guid-1",
                "s3_settings": {
                    "access_key_id": "AKIA",
                    "secret_access_key": "s3cret",
                    "region": "us-east-1",
                },
            },
        )

    def test_missing_configuration(self):
        user = create_user()
        config = archive_configuration(user.pk)
        self.assertEqual(config["archive_web_ui"], "")
        self.assertEqual(config["api_token"], "")
        self.assertEqual(config["s3_settings"]["region"], "us-east-1")
        self.assertFalse(is_configuration_complete(user.pk))

    def test_configuration_is_cached(self):
        config = create_archive_configuration(customer_guid="guid-1")
        self.cache.clear()

        with self.assertNumQueries(1):
            self.assertEqual(
                archive_configuration(config.user_id)["customer_guid"], "guid-1"
            )
        with self.assertNumQueries(0):
            archive_configuration(config.user_id)

        self.assertEqual(
            self.cache.get(f"{CONFIGURATION_KEY_PREFIX}_{config.user_id}")[
                "customer_guid"
            ],
            "guid-1",
        )

    def test_configuration_is_per_user(self):
        first = create_archive_configuration(user=create_user("first"))
        second = create_archive_configuration(
            user=create_user("second"), archive_web_ui="https://other.example.com"
        )
        self.assertEqual(
            archive_configuration(first.user_id)["archive_web_ui"],
            "https://archive.example.com",
        )
        self.assertEqual(
            archive_configuration(second.user_id)["archive_web_ui"],
            "https://other.example.com",
        )

    def test_cache_explicit_value(self):
        value = {"archive_web_ui": "x", "api_token": "y"}
        self.assertEqual(cache_archive_configuration(99, value), value)
        self.assertEqual(self.cache.get(f"{CONFIGURATION_KEY_PREFIX}_99"), value)

    def test_cache_timeout(self):
        with mock.patch("configuration.utils.caches") as caches_mock:
            cache_archive_configuration(5, {"a": 1})
        caches_mock["configuration_cache"].set.assert_called_once_with(
            f"{CONFIGURATION_KEY_PREFIX}_5", {"a": 1}, timeout=60 * 60
        )

    def test_is_configuration_complete(self):
        config = create_archive_configuration()
        self.assertTrue(is_configuration_complete(config.user_id))

        config.api_token = ""
        config.save()
        self.assertFalse(is_configuration_complete(config.user_id))
