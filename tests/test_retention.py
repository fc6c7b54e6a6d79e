import math
import unittest

from intervalsim.retention import retained_fraction, retention_ratio


class TestRetentionRatio(unittest.TestCase):
    def test_identity_at_measured_factor(self):
        self.assertAlmostEqual(retention_ratio(0.9, 2.5, 2.5), 0.9, places=12)
        self.assertAlmostEqual(retention_ratio(0.75, 4.0, 4.0), 0.75, places=12)

    def test_power_law(self):
        # Doubling the factor squares the measured ratio.
        self.assertAlmostEqual(retention_ratio(0.9, 2.5, 5.0), 0.81, places=12)

    def test_strictly_decreasing_in_interval_factor(self):
        factors = [1.0 + 0.25 * i for i in range(40)]
        values = [retention_ratio(0.9, 2.5, f) for f in factors]
        for earlier, later in zip(values, values[1:]):
            self.assertLess(later, earlier)

    def test_bounds_for_valid_reference(self):
        for measured in (0.01, 0.3, 0.9, 0.99):
            for factor in (0.5, 2.5, 10.0, 20.0):
                value = retention_ratio(measured, 2.5, factor)
                self.assertGreater(value, 0.0)
                self.assertLess(value, 1.0)

    def test_degenerate_reference_does_not_raise(self):
        self.assertTrue(math.isnan(retention_ratio(-0.1, 2.5, 2.5)))
        self.assertTrue(math.isnan(retention_ratio(0.9, 0.0, 2.5)))
        self.assertEqual(retention_ratio(0.0, 2.5, 2.5), 0.0)
        self.assertEqual(retention_ratio(1.0, 2.5, 7.0), 1.0)


class TestRetainedFraction(unittest.TestCase):
    def test_closed_form(self):
        expected = -(1.0 - 0.9) / math.log(0.9)
        self.assertAlmostEqual(retained_fraction(0.9), expected, places=12)
        self.assertAlmostEqual(retained_fraction(0.9), 0.949122, places=5)

    def test_in_unit_interval(self):
        for r in (0.05, 0.5, 0.95, 0.999):
            value = retained_fraction(r)
            self.assertGreater(value, 0.0)
            self.assertLess(value, 1.0)

    def test_certain_recall_is_nan(self):
        self.assertTrue(math.isnan(retained_fraction(1.0)))
        self.assertTrue(math.isnan(retained_fraction(-0.5)))


if __name__ == "__main__":
    unittest.main()
