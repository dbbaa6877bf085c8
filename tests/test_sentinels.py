import unittest
from datetime import datetime, timezone

from discovery.sentinels import IngestionTrigger, SentinelKind
from tests.fakes import RecordingQueue

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class IngestionTriggerTestCase(unittest.TestCase):
    def test_emits_prepare_then_trigger(self) -> None:
        queue = RecordingQueue()
        trigger = IngestionTrigger(queue, clock=lambda: FIXED_TIME)

        outcome = trigger.trigger("discovery-1", total_batches=4, total_urls=52)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.sent, [SentinelKind.PREPARE_INGESTION, SentinelKind.TRIGGER_INGESTION])
        self.assertEqual([delay for _, _, delay in queue.sent], [0, 300])
        self.assertEqual(
            [attributes for _, attributes, _ in queue.sent],
            [{"messageType": "PREPARE_INGESTION"}, {"messageType": "TRIGGER_INGESTION"}],
        )

    def test_payload_shape(self) -> None:
        queue = RecordingQueue()
        IngestionTrigger(queue, clock=lambda: FIXED_TIME).trigger("discovery-1", 4, 52)

        payload = queue.sent[1][0]
        self.assertEqual(payload["type"], "TRIGGER_INGESTION")
        self.assertEqual(payload["discoveryId"], "discovery-1")
        self.assertEqual(payload["delaySeconds"], 300)
        self.assertEqual(
            payload["metadata"],
            {"totalBatches": 4, "totalUrls": 52, "timestamp": "2024-01-01T00:00:00+00:00"},
        )
        self.assertIn("message", payload)

    def test_custom_delays(self) -> None:
        queue = RecordingQueue()

        IngestionTrigger(queue, prepare_delay=5, trigger_delay=60).trigger("discovery-2", 0, 0)

        self.assertEqual([delay for _, _, delay in queue.sent], [5, 60])

    def test_prepare_failure_skips_trigger(self) -> None:
        queue = RecordingQueue(fail_on={1})

        with self.assertLogs("discovery.sentinels", level="WARNING") as logs:
            outcome = IngestionTrigger(queue).trigger("discovery-3", 1, 1)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.sent, [])
        self.assertEqual(queue.calls, 1)
        self.assertIn("PREPARE_INGESTION", outcome.error)
        self.assertIn("triggered manually", logs.output[0])

    def test_trigger_failure_is_reported(self) -> None:
        queue = RecordingQueue(fail_on={2})

        with self.assertLogs("discovery.sentinels", level="WARNING"):
            outcome = IngestionTrigger(queue).trigger("discovery-4", 1, 1)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.sent, [SentinelKind.PREPARE_INGESTION])
        self.assertIn("TRIGGER_INGESTION", outcome.error)

    def test_rejects_trigger_before_prepare(self) -> None:
        with self.assertRaises(ValueError):
            IngestionTrigger(RecordingQueue(), prepare_delay=10, trigger_delay=5)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
