import random
import unittest
from datetime import datetime, timezone

from discovery.batching import Batch
from discovery.dispatch import QueueDispatcher
from discovery.ranking import Tier
from tests.fakes import RecordingQueue

CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _batch(tier: Tier, index: int) -> Batch:
    return Batch(
        batch_id=f"discovery-1-{tier.value}-{index}",
        discovery_id="discovery-1",
        tier=tier,
        urls=(f"https://example.org/{tier.value}/{index}",),
        created_at=CREATED_AT,
    )


class QueueDispatcherTestCase(unittest.TestCase):
    def test_sends_in_tier_order_regardless_of_input_order(self) -> None:
        batches = [_batch(Tier.LOW, 0), _batch(Tier.HIGH, 0), _batch(Tier.MEDIUM, 0), _batch(Tier.HIGH, 1)]
        random.Random(7).shuffle(batches)
        queue = RecordingQueue()

        QueueDispatcher(queue, sleep=lambda _: None).dispatch(batches)

        tiers = [attributes["priority"] for _, attributes, _ in queue.sent]
        self.assertEqual(tiers, ["high", "high", "medium", "low"])

    def test_keeps_input_order_within_a_tier(self) -> None:
        batches = [_batch(Tier.HIGH, 0), _batch(Tier.HIGH, 1), _batch(Tier.HIGH, 2)]
        queue = RecordingQueue()

        QueueDispatcher(queue, sleep=lambda _: None).dispatch(batches)

        self.assertEqual(
            [attributes["batchId"] for _, attributes, _ in queue.sent],
            ["discovery-1-high-0", "discovery-1-high-1", "discovery-1-high-2"],
        )

    def test_partial_failure_attempts_every_batch(self) -> None:
        batches = [_batch(Tier.HIGH, index) for index in range(10)]
        queue = RecordingQueue(fail_on={3})

        with self.assertLogs("discovery.dispatch", level="ERROR"):
            result = QueueDispatcher(queue, sleep=lambda _: None).dispatch(batches)

        self.assertEqual(queue.calls, 10)
        self.assertEqual(result.success_count, 9)
        self.assertEqual(result.failure_count, 1)
        self.assertEqual(result.total, 10)
        self.assertEqual(result.failed_batch_ids, ["discovery-1-high-2"])

    def test_sleeps_between_sends_only(self) -> None:
        sleeps: list[float] = []
        batches = [_batch(Tier.HIGH, 0), _batch(Tier.MEDIUM, 0), _batch(Tier.LOW, 0)]

        QueueDispatcher(RecordingQueue(), send_delay=0.1, sleep=sleeps.append).dispatch(batches)

        self.assertEqual(sleeps, [0.1, 0.1])

    def test_payload_and_attributes(self) -> None:
        queue = RecordingQueue()

        QueueDispatcher(queue, sleep=lambda _: None).dispatch([_batch(Tier.MEDIUM, 4)])

        payload, attributes, delay = queue.sent[0]
        self.assertEqual(attributes, {"priority": "medium", "batchId": "discovery-1-medium-4"})
        self.assertEqual(payload["priorityScore"], 2)
        self.assertEqual(payload["urls"], ["https://example.org/medium/4"])
        self.assertEqual(delay, 0)

    def test_empty_dispatch(self) -> None:
        result = QueueDispatcher(RecordingQueue()).dispatch([])

        self.assertEqual((result.success_count, result.failure_count, result.total), (0, 0, 0))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
