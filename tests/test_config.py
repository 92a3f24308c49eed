import os
import shutil
import tempfile
import unittest

from config.loader import DEFAULT_CONFIG_PATH, load_config
from config.settings import Settings
from models.errors import ConfigError
from sources import build_adapters
from sources.base import AdapterKind
from tools.http_client import HttpClient


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def write(self, text):
        path = os.path.join(self.tmpdir, "relay.yaml")
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_bundled_config_loads(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        self.assertIn("spotify", config.sources.lever)
        self.assertEqual(config.schedule.job_check, "0 * * * *")
        self.assertEqual(config.delivery.max_batch_size, 5)
        # Too short to match on as substrings
        for keyword in ("ai", "ml", "data"):
            self.assertNotIn(keyword, config.filters.roles)

    def test_defaults_and_disabled_timer(self):
        config = load_config(self.write("schedule:\n  alert_check: null\n"))
        self.assertIsNone(config.schedule.alert_check)
        self.assertEqual(config.schedule.job_check, "0 * * * *")
        self.assertEqual(config.filters.roles, [])
        self.assertEqual(config.sources.greenhouse, [])

    def test_empty_file_gives_defaults(self):
        config = load_config(self.write(""))
        self.assertEqual(config.delivery.post_delay_seconds, 2.0)

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(os.path.join(self.tmpdir, "nope.yaml"))

    def test_invalid_values_are_reported(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(self.write("delivery:\n  max_batch_size: 0\n"))
        self.assertIn("delivery.max_batch_size", str(ctx.exception))

    def test_unknown_keys_rejected(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("sources:\n  monster: [acme]\n"))

    def test_bad_yaml(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("filters: [unclosed\n"))


class TestBuildAdapters(unittest.TestCase):
    def test_split_between_timers(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        config.filters.locations = ["Remote"]
        settings = Settings(email_user=None, email_password=None)
        http = HttpClient()
        try:
            with self.assertLogs("sources", level="WARNING") as logs:
                job_check, alert_check = build_adapters(config, settings, http)
        finally:
            http.close()

        self.assertIn("EMAIL_USER/EMAIL_PASSWORD not set", logs.output[0])

        self.assertEqual({a.kind for a in job_check}, {AdapterKind.API, AdapterKind.MARKUP})
        self.assertEqual([a.kind for a in alert_check], [AdapterKind.MAILBOX])
        self.assertTrue(all(a.remote for a in job_check if a.kind == AdapterKind.MARKUP))
        # No mailbox credentials, so the mailbox adapter has nothing to read
        self.assertEqual(alert_check[0].targets, [])

    def test_configured_mailbox_keeps_folders(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        settings = Settings(email_user="me@example.com", email_password="secret")
        self.assertTrue(settings.mailbox_configured)

        http = HttpClient()
        try:
            _, alert_check = build_adapters(config, settings, http)
        finally:
            http.close()

        self.assertEqual(alert_check[0].targets, ["INBOX"])


if __name__ == "__main__":
    unittest.main()
