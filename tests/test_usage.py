import unittest

from if_agent_loop.usage import (
    ModelPricing,
    ModelUsage,
    UsageTracker,
    calculate_cost,
    calculate_total_cost,
    merge_usage,
    sum_usage,
)


class ModelUsageTests(unittest.TestCase):
    def test_addition(self) -> None:
        total = ModelUsage(10, 20, 30) + ModelUsage(5, 5, 10)
        self.assertEqual(ModelUsage(15, 25, 40), total)

    def test_merge_and_sum(self) -> None:
        merged = merge_usage({"a": ModelUsage(1, 1, 2)}, {"a": ModelUsage(2, 2, 4), "b": ModelUsage(1, 0, 1)})
        self.assertEqual({"a": ModelUsage(3, 3, 6), "b": ModelUsage(1, 0, 1)}, merged)
        self.assertEqual(ModelUsage(4, 3, 7), sum_usage(merged.values()))


class CostTests(unittest.TestCase):
    def test_cost_uses_price_per_million(self) -> None:
        pricing = ModelPricing(prompt_cost_per_million=2.0, completion_cost_per_million=10.0)
        cost = calculate_cost("m", ModelUsage(1_000_000, 500_000, 1_500_000), pricing)
        self.assertAlmostEqual(7.0, cost)

    def test_cost_is_linear(self) -> None:
        pricing = ModelPricing(3.0, 15.0)
        single = calculate_cost("m", ModelUsage(1234, 567, 1801), pricing)
        double = calculate_cost("m", ModelUsage(2468, 1134, 3602), pricing)
        self.assertEqual(single * 2, double)

    def test_known_model_uses_default_table(self) -> None:
        cost = calculate_cost("gpt-4o", ModelUsage(1_000_000, 1_000_000, 2_000_000))
        self.assertAlmostEqual(12.5, cost)

    def test_unknown_model_is_free(self) -> None:
        self.assertEqual(0.0, calculate_cost("mystery-model", ModelUsage(100, 100, 200)))

    def test_custom_pricing_overrides_table(self) -> None:
        usage = {"gpt-4o": ModelUsage(1_000_000, 0, 1_000_000)}
        cost = calculate_total_cost(usage, {"gpt-4o": ModelPricing(1.0, 1.0)})
        self.assertAlmostEqual(1.0, cost)


class UsageTrackerTests(unittest.TestCase):
    def test_track_is_additive_per_model(self) -> None:
        tracker = UsageTracker()
        tracker.track("a", ModelUsage(1, 2, 3))
        tracker.track("a", ModelUsage(1, 2, 3))
        tracker.track("b", ModelUsage(5, 0, 5))

        self.assertEqual({"a": ModelUsage(2, 4, 6), "b": ModelUsage(5, 0, 5)}, tracker.by_model())
        self.assertEqual(ModelUsage(7, 4, 11), tracker.total())

    def test_cost(self) -> None:
        tracker = UsageTracker()
        tracker.track("x", ModelUsage(1_000_000, 1_000_000, 2_000_000))
        self.assertAlmostEqual(3.0, tracker.cost({"x": ModelPricing(1.0, 2.0)}))


if __name__ == "__main__":
    unittest.main()
