import unittest
from datetime import timedelta

from gabstudy.policy.session_composer import (
    category_accuracy,
    generate_recommendations,
    latest_attempts_by_question,
    pick_quick_session,
    pick_review_session,
    pick_speed_session,
    pick_weakness_test,
    slow_correct_pool,
    weakness_score,
)

from .fixtures import T0, attempt, entry, latest, question, use_local_zone

TARGETS = {"table": 50, "bar": 45, "pie": 40}


def ids(questions):
    return [q.id for q in questions]


class LatestAttemptsTests(unittest.TestCase):
    def test_newest_wins(self) -> None:
        old = attempt("q1", False, 1000, at=T0)
        new = attempt("q1", True, 2000, at=T0 + timedelta(hours=1))
        other = attempt("q2", True, 500, at=T0)
        result = latest_attempts_by_question([old, other, new])
        self.assertIs(result["q1"], new)
        self.assertIs(result["q2"], other)

    def test_equal_timestamps_keep_first_seen(self) -> None:
        first = attempt("q1", True, 1000, at=T0, aid="first")
        second = attempt("q1", False, 1000, at=T0, aid="second")
        self.assertEqual(latest_attempts_by_question([first, second])["q1"].id, "first")

    def test_empty(self) -> None:
        self.assertEqual(latest_attempts_by_question([]), {})


class QuickSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.a = question("A", "table")
        self.b = question("B", "bar")
        self.c = question("C", "pie")
        self.catalog = [self.a, self.b, self.c]
        # A correct but slow, B wrong, C unseen
        self.latest = latest(attempt("A", True, 80_000), attempt("B", False, 20_000))

    def test_slow_pool_before_wrong_pool(self) -> None:
        picked = pick_quick_session(60, self.catalog, self.latest, [], TARGETS)
        # A costs 50 (< 60), B brings it to 95
        self.assertEqual(ids(picked), ["A", "B"])

    def test_exhausted_pools_return_everything(self) -> None:
        picked = pick_quick_session(10_000, self.catalog, self.latest, [], TARGETS)
        self.assertEqual(ids(picked), ["A", "B", "C"])

    def test_zero_target_returns_first_pick(self) -> None:
        picked = pick_quick_session(0, self.catalog, self.latest, [], TARGETS)
        self.assertEqual(ids(picked), ["A"])

    def test_zero_target_with_nothing_to_pick(self) -> None:
        self.assertEqual(pick_quick_session(0, [], {}, []), [])

    def test_due_items_first_and_never_twice(self) -> None:
        due = [entry("B", -1), entry("A", -2)]
        picked = pick_quick_session(10_000, self.catalog, self.latest, due, TARGETS)
        self.assertEqual(ids(picked), ["A", "B", "C"])
        self.assertEqual(len(set(ids(picked))), len(picked))

    def test_due_pool_sorted_by_timestamp(self) -> None:
        due = [entry("C", -1), entry("B", -3)]
        picked = pick_quick_session(10_000, self.catalog, self.latest, due, TARGETS)
        self.assertEqual(ids(picked)[:2], ["B", "C"])

    def test_unseen_easiest_first(self) -> None:
        catalog = [question("hard", difficulty=3), question("easy", difficulty=1), question("mid", difficulty=2)]
        picked = pick_quick_session(10_000, catalog, {}, [])
        self.assertEqual(ids(picked), ["easy", "mid", "hard"])

    def test_default_targets_used_without_overrides(self) -> None:
        # table default is 55 s, so a single table question covers 55
        catalog = [question("t1", "table"), question("t2", "table")]
        self.assertEqual(ids(pick_quick_session(55, catalog, {}, [])), ["t1"])
        self.assertEqual(ids(pick_quick_session(56, catalog, {}, [])), ["t1", "t2"])

    def test_wrong_pool_most_recent_first(self) -> None:
        catalog = [question("w1"), question("w2")]
        hist = latest(
            attempt("w1", False, 1000, at=T0),
            attempt("w2", False, 1000, at=T0 + timedelta(minutes=5)),
        )
        self.assertEqual(ids(pick_quick_session(10_000, catalog, hist, [])), ["w2", "w1"])


class ReviewSessionTests(unittest.TestCase):
    def test_due_group_first_then_oldest_attempt(self) -> None:
        catalog = [question("q1"), question("q2"), question("q3"), question("q4")]
        hist = latest(
            attempt("q1", False, 1000, at=T0 + timedelta(hours=2)),
            attempt("q2", False, 1000, at=T0),
            attempt("q3", True, 1000, at=T0),
        )
        due = [entry("q4", -1), entry("q3", -1)]
        picked = pick_review_session(catalog, hist, due)
        # q4 has no attempt and sorts ahead of q3 inside the due group
        self.assertEqual(ids(picked), ["q4", "q3", "q2", "q1"])

    def test_correct_not_due_excluded(self) -> None:
        catalog = [question("q1")]
        hist = latest(attempt("q1", True, 1000))
        self.assertEqual(pick_review_session(catalog, hist, []), [])

    def test_truncates(self) -> None:
        catalog = [question(f"q{i}") for i in range(15)]
        hist = latest(*(attempt(q.id, False, 1000) for q in catalog))
        self.assertEqual(len(pick_review_session(catalog, hist, [])), 10)
        self.assertEqual(len(pick_review_session(catalog, hist, [], max_count=3)), 3)


class SpeedSessionTests(unittest.TestCase):
    def test_slowest_first(self) -> None:
        catalog = [question("q1", "bar"), question("q2", "bar"), question("q3", "bar"), question("q4", "bar")]
        hist = latest(
            attempt("q1", True, 50_000),
            attempt("q2", True, 90_000),
            attempt("q3", False, 99_000),
            attempt("q4", True, 45_000),
        )
        # exactly on target is not slow
        self.assertEqual(ids(pick_speed_session(catalog, hist)), ["q2", "q1"])
        self.assertEqual(ids(pick_speed_session(catalog, hist, max_count=1)), ["q2"])

    def test_overrides_change_the_pool(self) -> None:
        catalog = [question("q1", "bar")]
        hist = latest(attempt("q1", True, 50_000))
        self.assertEqual(slow_correct_pool(catalog, hist, {"bar": 60}), [])


class WeaknessTests(unittest.TestCase):
    def test_score(self) -> None:
        q = question("q1", "pie")
        self.assertEqual(weakness_score(q, attempt("q1", False, 10_000)), 10.0)
        self.assertEqual(weakness_score(q, attempt("q1", True, 42_500)), 2.5)
        self.assertEqual(weakness_score(q, attempt("q1", False, 45_000)), 15.0)
        self.assertEqual(weakness_score(q, attempt("q1", True, 1_000)), 0.0)

    def test_wrong_outranks_slightly_slow(self) -> None:
        catalog = [question("slow", "pie"), question("wrong", "pie"), question("unseen", "pie")]
        hist = latest(attempt("slow", True, 45_000), attempt("wrong", False, 5_000))
        self.assertEqual(ids(pick_weakness_test(catalog, hist)), ["wrong", "slow"])

    def test_ties_keep_catalog_order(self) -> None:
        catalog = [question("x"), question("y"), question("z")]
        hist = latest(attempt("z", True, 1000), attempt("y", True, 1000), attempt("x", True, 1000))
        self.assertEqual(ids(pick_weakness_test(catalog, hist, count=2)), ["x", "y"])


class RecommendationTests(unittest.TestCase):
    def test_nothing_to_recommend(self) -> None:
        self.assertEqual(generate_recommendations([question("q1")], {}, [], now=T0), [])

    def test_review_card_uses_live_due_check(self) -> None:
        entries = [entry("q1", -1), entry("q2", 0), entry("q3", 2)]
        recs = generate_recommendations([question("q1")], {}, entries, now=T0)
        self.assertEqual(len(recs), 1)
        self.assertEqual(recs[0].type, "review")
        self.assertEqual(recs[0].count, 2)
        self.assertEqual(recs[0].title, "Review drill: 2 questions")
        self.assertEqual(recs[0].estimated_minutes, 2)

    def test_naive_now_is_local_time(self) -> None:
        use_local_zone(self, "Asia/Tokyo")
        entries = [entry("q1", 0), entry("q2", 1)]
        naive_local = T0.astimezone().replace(tzinfo=None)
        recs = generate_recommendations([], {}, entries, now=naive_local)
        self.assertEqual(recs[0].count, 1)

    def test_review_card_size_capped(self) -> None:
        entries = [entry(f"q{i}", -1) for i in range(7)]
        rec = generate_recommendations([], {}, entries, now=T0)[0]
        self.assertEqual(rec.count, 5)
        self.assertEqual(rec.estimated_minutes, 6)

    def test_all_three_cards_in_order(self) -> None:
        catalog = [question(f"b{i}", "bar") for i in range(4)] + [question("t1", "table")]
        hist = latest(
            attempt("b0", False, 1000),
            attempt("b1", False, 1000),
            attempt("b2", True, 1000),
            attempt("b3", True, 60_000),
            attempt("t1", True, 70_000),
        )
        recs = generate_recommendations(catalog, hist, [entry("t1", -1)], now=T0)
        self.assertEqual([r.type for r in recs], ["review", "speed", "category_weak"])
        speed = recs[1]
        self.assertEqual(speed.count, 2)
        self.assertEqual(speed.estimated_minutes, 2)
        weak = recs[2]
        self.assertEqual(weak.category, "bar")
        self.assertEqual(weak.count, 3)
        self.assertEqual(weak.estimated_minutes, 3)
        self.assertEqual(weak.title, "Bar weak spot: 3 questions")
        self.assertEqual(weak.reason, "Bar accuracy is 50%")

    def test_small_categories_are_ignored(self) -> None:
        catalog = [question("p1", "pie"), question("p2", "pie")]
        hist = latest(attempt("p1", False, 1000), attempt("p2", False, 1000))
        self.assertEqual(generate_recommendations(catalog, hist, [], now=T0), [])

    def test_category_at_threshold_not_weak(self) -> None:
        catalog = [question(f"c{i}", "composite") for i in range(10)]
        hist = latest(*(attempt(f"c{i}", i < 7, 1000) for i in range(10)))
        self.assertEqual(generate_recommendations(catalog, hist, [], now=T0), [])

    def test_category_accuracy_skips_unknown_questions(self) -> None:
        catalog = [question("q1", "pie")]
        hist = latest(attempt("q1", True, 1000), attempt("gone", False, 1000))
        self.assertEqual(category_accuracy(catalog, hist), {"pie": {"correct": 1, "total": 1}})


if __name__ == "__main__":
    unittest.main()
