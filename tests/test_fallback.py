import unittest

from surrogateagent.services.fallback import FallbackResolver, ProviderAttempt


def _boom():
    raise RuntimeError("connection reset")


class FallbackResolverTests(unittest.TestCase):
    def test_first_usable_attempt_wins_and_later_ones_are_not_called(self):
        calls = []

        def second():
            calls.append("second")
            return "from-second"

        def third():
            calls.append("third")
            return "from-third"

        outcome = FallbackResolver(
            "demo",
            [
                ProviderAttempt(name="first", fetch=_boom),
                ProviderAttempt(name="second", fetch=second),
                ProviderAttempt(name="third", fetch=third),
            ],
        ).resolve()
        self.assertEqual(outcome.value, "from-second")
        self.assertEqual(outcome.provider, "second")
        self.assertFalse(outcome.degraded)
        self.assertEqual(calls, ["second"])
        self.assertEqual(outcome.errors, ["first: connection reset"])

    def test_none_and_rejected_values_advance(self):
        outcome = FallbackResolver(
            "demo",
            [
                ProviderAttempt(name="empty", fetch=lambda: None),
                ProviderAttempt(name="short", fetch=lambda: "ab", accept=lambda v: len(v) > 3),
                ProviderAttempt(name="long", fetch=lambda: "abcdef", accept=lambda v: len(v) > 3),
            ],
        ).resolve()
        self.assertEqual(outcome.provider, "long")
        self.assertEqual(len(outcome.errors), 2)

    def test_exhaustion_without_degraded_is_empty(self):
        outcome = FallbackResolver("demo", [ProviderAttempt(name="only", fetch=_boom)]).resolve()
        self.assertFalse(outcome.resolved)
        self.assertIsNone(outcome.value)
        self.assertIsNone(outcome.provider)

    def test_exhaustion_with_degraded_marks_outcome(self):
        outcome = FallbackResolver(
            "demo",
            [ProviderAttempt(name="only", fetch=_boom)],
            degraded=lambda: "best effort",
        ).resolve()
        self.assertTrue(outcome.resolved)
        self.assertTrue(outcome.degraded)
        self.assertEqual(outcome.value, "best effort")
        self.assertEqual(outcome.provider, "degraded")


if __name__ == "__main__":
    unittest.main()
