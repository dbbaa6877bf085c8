import unittest

from discovery.classifier import ClassificationResult
from discovery.ranking import Tier, priority_distribution, rank, tier_for_priority


def _result(url: str, priority: int, *, excluded: bool = False) -> ClassificationResult:
    category = "excluded" if excluded else "test"
    return ClassificationResult(url, excluded, priority, category, "test rule")


class TierTestCase(unittest.TestCase):
    def test_tier_boundaries(self) -> None:
        self.assertEqual(tier_for_priority(70), Tier.HIGH)
        self.assertEqual(tier_for_priority(69), Tier.MEDIUM)
        self.assertEqual(tier_for_priority(50), Tier.MEDIUM)
        self.assertEqual(tier_for_priority(49), Tier.LOW)

    def test_tier_ranks(self) -> None:
        self.assertEqual([Tier.HIGH.rank, Tier.MEDIUM.rank, Tier.LOW.rank], [1, 2, 3])

    def test_priority_distribution(self) -> None:
        results = [_result("a", 95), _result("b", 70), _result("c", 55), _result("d", 10)]

        self.assertEqual(priority_distribution(results), {"high": 2, "medium": 1, "low": 1})


class RankTestCase(unittest.TestCase):
    def test_drops_below_threshold_and_excluded(self) -> None:
        results = [
            _result("https://example.org/a", 50),
            _result("https://example.org/b", 49),
            _result("https://example.org/c", 0, excluded=True),
        ]

        ranked = rank(results)

        self.assertEqual([item.url for item in ranked], ["https://example.org/a"])

    def test_excluded_results_are_dropped_even_without_threshold(self) -> None:
        ranked = rank([_result("x", 0, excluded=True), _result("y", 10)], min_priority=0)

        self.assertEqual([item.url for item in ranked], ["y"])

    def test_sorts_descending_and_keeps_discovery_order_for_ties(self) -> None:
        results = [
            _result("first-80", 80),
            _result("first-95", 95),
            _result("second-80", 80),
            _result("second-95", 95),
            _result("third-80", 80),
        ]

        ranked = rank(results)

        self.assertEqual(
            [item.url for item in ranked],
            ["first-95", "second-95", "first-80", "second-80", "third-80"],
        )

    def test_truncates_to_cap_after_sorting(self) -> None:
        results = [_result(f"url-{index}", 50 + index) for index in range(10)]

        ranked = rank(results, cap=3)

        self.assertEqual([item.priority for item in ranked], [59, 58, 57])

    def test_threshold_is_configurable(self) -> None:
        results = [_result("a", 35), _result("b", 25)]

        self.assertEqual([item.url for item in rank(results, min_priority=30)], ["a"])

    def test_negative_cap_rejected(self) -> None:
        with self.assertRaises(ValueError):
            rank([], cap=-1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
