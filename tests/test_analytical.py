import math
import unittest

from intervalsim.analytical import (
    AnalyticalSimulator,
    consolidate_clusters,
    split_cluster,
)
from intervalsim.config import DEFAULT_CONFIG
from intervalsim.core import CardCluster
from intervalsim.retention import retained_fraction


class TestSplitCluster(unittest.TestCase):
    def test_split_conserves_mass(self):
        cluster = CardCluster(card_count=0.37, interval=6.25, days_since_last_review=7.0)
        split = split_cluster(cluster, DEFAULT_CONFIG, 0.83)

        self.assertIs(split.remembered, cluster)
        self.assertIsNotNone(split.lapsed)
        self.assertAlmostEqual(
            split.remembered.card_count + split.lapsed.card_count + split.removed_mass,
            0.37,
            places=15,
        )
        self.assertAlmostEqual(split.remembered.card_count, 0.37 * 0.83)
        self.assertEqual(split.reviewed_mass, 0.37)
        self.assertEqual(split.removed_mass, 0.0)

    def test_split_updates_branch_state(self):
        cfg = DEFAULT_CONFIG.with_lapse_interval_factor(0.5)
        cluster = CardCluster(
            card_count=1.0, interval=10.0, days_since_last_review=10.0, lapses=2
        )
        split = split_cluster(cluster, cfg, 0.9)

        self.assertEqual(split.remembered.interval, 25.0)
        self.assertEqual(split.remembered.days_since_last_review, 0.0)
        self.assertEqual(split.remembered.lapses, 2)
        self.assertEqual(split.lapsed.interval, 5.0)
        self.assertEqual(split.lapsed.days_since_last_review, 0.0)
        self.assertEqual(split.lapsed.lapses, 3)

    def test_lapse_interval_is_floored(self):
        cluster = CardCluster(card_count=1.0, interval=1.5, days_since_last_review=2.0)
        split = split_cluster(cluster, DEFAULT_CONFIG.with_lapse_interval_factor(0.2), 0.9)
        self.assertEqual(split.lapsed.interval, 1.0)

    def test_split_at_max_lapses_moves_mass_to_removed(self):
        cfg = DEFAULT_CONFIG.with_max_lapses(3)
        cluster = CardCluster(card_count=0.5, interval=2.5, lapses=3)
        split = split_cluster(cluster, cfg, 0.8)

        self.assertIsNone(split.lapsed)
        self.assertAlmostEqual(split.removed_mass, 0.1)
        self.assertAlmostEqual(
            split.remembered.card_count + split.removed_mass, 0.5, places=15
        )

    def test_zero_max_lapses_routes_all_lapsed_mass_to_removed(self):
        cluster = CardCluster(card_count=1.0)
        split = split_cluster(cluster, DEFAULT_CONFIG.with_max_lapses(0), 0.9)
        self.assertIsNone(split.lapsed)
        self.assertAlmostEqual(split.removed_mass, 0.1)
        self.assertEqual(split.lapsed_mass, split.removed_mass)


class TestConsolidateClusters(unittest.TestCase):
    def test_merges_identical_states(self):
        clusters = [
            CardCluster(card_count=0.25, interval=1.0, lapses=1),
            CardCluster(card_count=0.5, interval=2.5, lapses=0),
            CardCluster(card_count=0.125, interval=1.0, lapses=1),
        ]
        merged = consolidate_clusters(clusters)

        self.assertEqual(len(merged), 2)
        self.assertAlmostEqual(merged[0].card_count, 0.375)
        self.assertEqual(merged[1].card_count, 0.5)

    def test_keeps_distinct_review_ages_apart(self):
        clusters = [
            CardCluster(card_count=0.25, days_since_last_review=0.0),
            CardCluster(card_count=0.25, days_since_last_review=1.0),
        ]
        self.assertEqual(len(consolidate_clusters(clusters)), 2)


class TestAnalyticalSimulator(unittest.TestCase):
    def setUp(self):
        self.config = DEFAULT_CONFIG.with_interval_factor(2.5).with_measured_retention_ratio(
            0.9, 2.5
        )

    def test_first_day_has_no_split(self):
        sim = AnalyticalSimulator(self.config)
        sim.simulate_n_days(1)

        self.assertAlmostEqual(sim.average_retention_ratio(), 0.9, places=12)
        self.assertEqual(sim.cluster_count, 1)
        self.assertEqual(sim.clusters[0].card_count, 1.0)
        self.assertEqual(sim.clusters[0].days_since_last_review, 1.0)
        self.assertEqual(sim.removed_count, 0.0)
        self.assertEqual(sim.review_count, 0.0)
        self.assertEqual(sim.cards_added, 1.0)
        self.assertAlmostEqual(sim.time_spent_on_new, 90.0)
        self.assertTrue(math.isnan(sim.lapses_per_review()))

    def test_second_day_splits_seed_cluster(self):
        sim = AnalyticalSimulator(self.config)
        sim.simulate_n_days(2)

        self.assertEqual(sim.cluster_count, 2)
        self.assertAlmostEqual(sim.review_count, 1.0)
        self.assertAlmostEqual(sim.lapse_count, 0.1)
        self.assertAlmostEqual(sim.time_spent_on_review, 20.0 + 40.0 * 0.1)
        self.assertAlmostEqual(sim.lapses_per_review(), 0.1)
        remembered, lapsed = sim.clusters
        self.assertAlmostEqual(remembered.card_count, 0.9)
        self.assertEqual(remembered.interval, 2.5)
        self.assertAlmostEqual(lapsed.card_count, 0.1)
        self.assertEqual(lapsed.interval, 1.0)
        self.assertEqual(lapsed.lapses, 1)

    def test_totals_superpose_daily_cohorts(self):
        sim = AnalyticalSimulator(self.config)
        sim.simulate_n_days(3)
        # Day 3: only the day-2 cohort reviews (its seed); the branches of the
        # day-1 cohort were reset on day 2.
        self.assertAlmostEqual(sim.review_count, 2.0)
        self.assertAlmostEqual(sim.cards_added, 3.0)

        sim.simulate_n_days(1)
        # Day 4: the day-1 lapsed branch (0.1) and the day-3 seed (1.0).
        self.assertAlmostEqual(sim.review_count, 3.1)

    def test_cohort_mass_is_conserved(self):
        sim = AnalyticalSimulator(
            self.config.with_max_lapses(2).with_lapse_interval_factor(0.5)
        )
        for _ in range(20):
            sim.simulate_n_days(10)
            self.assertAlmostEqual(sim.cohort_mass(), 1.0, places=9)
        self.assertGreater(sim.cohort_removed_count, 0.0)

    def test_counters_are_monotonic_across_extensions(self):
        sim = AnalyticalSimulator(self.config.with_max_lapses(1))
        previous = (0.0, 0.0, 0.0, 0.0)
        for _ in range(10):
            sim.simulate_n_days(15)
            current = (
                sim.review_count,
                sim.lapse_count,
                sim.removed_count,
                sim.time_spent_on_review,
            )
            for before, after in zip(previous, current):
                self.assertGreaterEqual(after, before)
            previous = current
        self.assertEqual(sim.days_simulated, 150)

    def test_split_runs_match_single_run(self):
        whole = AnalyticalSimulator(self.config)
        whole.simulate_n_days(120)
        parts = AnalyticalSimulator(self.config)
        parts.simulate_n_days(45)
        parts.simulate_n_days(75)

        a = whole.summary()
        b = parts.summary()
        self.assertEqual(a.days, b.days)
        self.assertAlmostEqual(a.review_count, b.review_count)
        self.assertAlmostEqual(a.lapse_count, b.lapse_count)
        self.assertAlmostEqual(a.cards_learned_per_hour, b.cards_learned_per_hour)

    def test_known_cards_closed_form(self):
        sim = AnalyticalSimulator(self.config.with_max_lapses(0))
        sim.simulate_n_days(30)
        expected = (sim.cards_added - sim.removed_count) * retained_fraction(0.9)
        self.assertAlmostEqual(sim.known_cards(), expected)
        self.assertGreater(sim.removed_count, 0.0)
        hours = (sim.time_spent_on_new + sim.time_spent_on_review) / 3600.0
        self.assertAlmostEqual(sim.cards_learned_per_hour(), expected / hours)

    def test_zero_max_lapses_never_spawns_clusters(self):
        sim = AnalyticalSimulator(self.config.with_max_lapses(0))
        sim.simulate_n_days(60)
        self.assertTrue(all(cluster.lapses == 0 for cluster in sim.clusters))
        self.assertAlmostEqual(sim.lapse_count, sim.removed_count)

    def test_difficulty_variance_is_ignored(self):
        a = AnalyticalSimulator(self.config.with_difficulty_variance(0.0))
        b = AnalyticalSimulator(self.config.with_difficulty_variance(0.3))
        a.simulate_n_days(90)
        b.simulate_n_days(90)
        self.assertEqual(a.summary(), b.summary())

    def test_cluster_count_stays_bounded(self):
        sim = AnalyticalSimulator(self.config)
        sim.simulate_n_days(365)
        # Reachable states: intervals 2.5**k (k <= 6) with their review ages,
        # for each of the nine lapse levels.
        self.assertLessEqual(sim.cluster_count, 417 * 9)
        self.assertTrue(all(cluster.interval >= 1.0 for cluster in sim.clusters))

    def test_pruning_folds_mass_into_removed(self):
        plain = AnalyticalSimulator(self.config)
        pruned = AnalyticalSimulator(self.config.with_min_cluster_mass(1e-3))
        plain.simulate_n_days(200)
        pruned.simulate_n_days(200)

        self.assertAlmostEqual(pruned.cohort_mass(), 1.0, places=9)
        self.assertLess(pruned.cluster_count, plain.cluster_count)
        self.assertGreater(pruned.removed_count, plain.removed_count)
        self.assertTrue(all(c.card_count >= 1e-3 for c in pruned.clusters))


if __name__ == "__main__":
    unittest.main()
