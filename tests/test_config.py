import unittest

from discovery.config import DEFAULT_DB_URL, DiscoveryConfig, SentinelConfig, load_config


class LoadConfigTestCase(unittest.TestCase):
    def test_defaults_without_environment(self) -> None:
        config = load_config({})

        self.assertEqual(config.target_domain, "diabetes.org")
        self.assertEqual(config.max_batch_size, 15)
        self.assertEqual(config.max_discovery_urls, 500)
        self.assertEqual(config.min_priority, 50)
        self.assertEqual(config.db_url, DEFAULT_DB_URL)
        self.assertIsNone(config.seed_urls)
        self.assertIsNone(config.queue.broker_url)
        self.assertEqual(config.queue.queue_name, "scraping")
        self.assertEqual((config.sentinels.prepare_delay, config.sentinels.trigger_delay), (0, 300))
        self.assertFalse(config.use_robots_txt)

    def test_reads_prefixed_variables(self) -> None:
        config = load_config(
            {
                "DISCOVERY_TARGET_DOMAIN": " Example.ORG ",
                "DISCOVERY_MAX_URLS_PER_BATCH": "20",
                "DISCOVERY_MAX_URLS": "100",
                "DISCOVERY_MIN_PRIORITY": "60",
                "DISCOVERY_USE_ROBOTS_TXT": "yes",
                "DISCOVERY_SEED_URLS": "https://example.org/a, https://example.org/b,https://example.org/a",
                "DISCOVERY_CELERY_BROKER_URL": "redis://localhost:6379/0",
                "DISCOVERY_INGESTION_DELAY": "120",
                "DISCOVERY_SEND_DELAY": "0",
            }
        )

        self.assertEqual(config.target_domain, "example.org")
        self.assertEqual(config.base_url, "https://example.org")
        self.assertEqual((config.max_batch_size, config.max_discovery_urls, config.min_priority), (20, 100, 60))
        self.assertTrue(config.use_robots_txt)
        self.assertEqual(config.seed_urls, ("https://example.org/a", "https://example.org/b"))
        self.assertEqual(config.queue.broker_url, "redis://localhost:6379/0")
        self.assertEqual(config.sentinels.trigger_delay, 120)
        self.assertEqual(config.queue.send_delay, 0.0)

    def test_invalid_integer_names_the_variable(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            load_config({"DISCOVERY_MAX_URLS_PER_BATCH": "many"})

        self.assertIn("DISCOVERY_MAX_URLS_PER_BATCH", str(ctx.exception))

    def test_blank_values_fall_back_to_defaults(self) -> None:
        config = load_config({"DISCOVERY_TARGET_DOMAIN": "  ", "DISCOVERY_MAX_URLS": ""})

        self.assertEqual(config.target_domain, "diabetes.org")
        self.assertEqual(config.max_discovery_urls, 500)


class DiscoveryConfigTestCase(unittest.TestCase):
    def test_rejects_out_of_range_values(self) -> None:
        for kwargs in (
            {"max_batch_size": 0},
            {"max_discovery_urls": 0},
            {"min_priority": 101},
            {"target_domain": ""},
            {"target_domain": "example.org/path"},
            {"sentinels": SentinelConfig(prepare_delay=10, trigger_delay=5)},
        ):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    DiscoveryConfig(**kwargs)

    def test_session_ttl_seconds(self) -> None:
        self.assertEqual(DiscoveryConfig().session_ttl_seconds, 2_592_000)

    def test_with_overrides(self) -> None:
        base = DiscoveryConfig()

        updated = base.with_overrides(target_domain="Example.org", max_batch_size="10", min_priority=0)

        self.assertEqual(updated.target_domain, "example.org")
        self.assertEqual(updated.max_batch_size, 10)
        self.assertEqual(updated.min_priority, 0)
        self.assertEqual(base.max_batch_size, 15)
        self.assertIs(base.with_overrides(), base)

    def test_with_overrides_rejects_invalid_values(self) -> None:
        base = DiscoveryConfig()

        for kwargs in ({"max_batch_size": 0}, {"max_batch_size": "ten"}, {"max_discovery_urls": True}):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    base.with_overrides(**kwargs)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
