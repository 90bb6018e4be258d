import unittest
from portfolio_lab.tax_config import FilingStatus
from portfolio_lab.tax_engine import (
    calculate_federal_tax,
    calculate_federal_tax_with_adjustments,
    get_capital_gains_rate,
    calculate_state_tax,
    calculate_state_tax_after_exclusion,
    calculate_combined_tax,
    compare_states,
    get_relocation_tax_impact,
    calculate_no_tax_state_savings,
)


class TestFederalTax(unittest.TestCase):

    def test_rate_by_income(self):
        self.assertEqual(get_capital_gains_rate(40000, FilingStatus.SINGLE), 0.0)
        self.assertEqual(get_capital_gains_rate(100000, FilingStatus.SINGLE), 0.15)
        self.assertEqual(get_capital_gains_rate(100000, FilingStatus.MARRIED_FILING_JOINTLY), 0.15)
        self.assertEqual(get_capital_gains_rate(90000, FilingStatus.MARRIED_FILING_JOINTLY), 0.0)
        self.assertEqual(get_capital_gains_rate(600000, FilingStatus.SINGLE), 0.20)

    def test_flat_rate_on_whole_gain(self):
        """$100k gain for a single filer earning $100k is taxed at 15%"""
        result = calculate_federal_tax(100000, 100000, FilingStatus.SINGLE)
        self.assertEqual(result.taxable_gain, 100000)
        self.assertEqual(result.tax_rate, 0.15)
        self.assertEqual(result.tax_amount, 15000.0)
        self.assertEqual(result.bracket.min, 47025.0)

    def test_non_positive_gain(self):
        result = calculate_federal_tax(-5000, 100000, FilingStatus.SINGLE)
        self.assertEqual(result.tax_amount, 0.0)
        self.assertEqual(result.tax_rate, 0.0)
        self.assertIsNone(result.bracket)

    def test_adjustments(self):
        """Other gains add, carryover losses subtract regardless of sign"""
        result = calculate_federal_tax_with_adjustments(100000, 100000, FilingStatus.SINGLE, 20000, 30000)
        self.assertEqual(result.taxable_gain, 90000)
        self.assertEqual(result.tax_amount, 13500.0)
        negative = calculate_federal_tax_with_adjustments(100000, 100000, FilingStatus.SINGLE, 20000, -30000)
        self.assertEqual(negative.tax_amount, 13500.0)


class TestStateTax(unittest.TestCase):

    def test_california(self):
        result = calculate_state_tax(100000, "CA")
        self.assertEqual(result.tax_amount, 13300.0)
        self.assertEqual(result.tax_rate, 0.133)
        self.assertEqual(result.state_name, "California")
        self.assertTrue(result.is_simplified)

    def test_lowercase_code(self):
        self.assertEqual(calculate_state_tax(100000, "ca").tax_amount, calculate_state_tax(100000, "CA").tax_amount)

    def test_no_tax_state(self):
        result = calculate_state_tax(100000, "TX")
        self.assertEqual(result.tax_amount, 0.0)
        self.assertFalse(result.has_capital_gains_tax)
        self.assertEqual(result.notes, "No state income tax")

    def test_unknown_state(self):
        result = calculate_state_tax(100000, "zz")
        self.assertEqual(result.tax_amount, 0.0)
        self.assertEqual(result.state_code, "ZZ")
        self.assertEqual(result.state_name, "Unknown State")
        self.assertEqual(result.notes, "State not found in tax database")

    def test_after_exclusion(self):
        result = calculate_state_tax_after_exclusion(300000, 250000, "CA")
        self.assertEqual(result.taxable_gain, 50000)
        self.assertEqual(result.tax_amount, 6650.0)
        self.assertEqual(calculate_state_tax_after_exclusion(200000, 250000, "CA").tax_amount, 0.0)

    def test_combined(self):
        combined = calculate_combined_tax(100000, "CA", 15000)
        self.assertEqual(combined.total_tax, 28300.0)
        self.assertAlmostEqual(combined.effective_rate, 0.283)
        self.assertEqual(calculate_combined_tax(0, "CA", 0).effective_rate, 0.0)


class TestStateComparisons(unittest.TestCase):

    def test_compare_states(self):
        comparison = {c.state_code: c for c in compare_states(100000, ["CA", "TX", "NY"])}
        self.assertEqual(comparison["CA"].savings, 0.0)
        self.assertEqual(comparison["TX"].savings, 13300.0)
        self.assertEqual(comparison["NY"].savings, 2400.0)
        self.assertEqual(compare_states(100000, []), [])

    def test_relocation_savings(self):
        impact = get_relocation_tax_impact(100000, "CA", "TX")
        self.assertEqual(impact.tax_difference, -13300.0)
        self.assertEqual(impact.savings, 13300.0)
        self.assertEqual(impact.recommendation, "Moving to Texas would save $13,300 in taxes")

    def test_relocation_increase(self):
        impact = get_relocation_tax_impact(100000, "TX", "CA")
        self.assertEqual(impact.recommendation, "Moving to California would increase tax by $13,300")

    def test_relocation_minimal(self):
        """IL 4.5% vs IN 3.2% on $10k differs by $130"""
        impact = get_relocation_tax_impact(10000, "IL", "IN")
        self.assertEqual(impact.recommendation, "Tax impact is minimal between these states")

    def test_no_tax_state_savings(self):
        self.assertEqual(
            calculate_no_tax_state_savings(100000, "TX").recommendation,
            "Texas already has no capital gains tax",
        )
        self.assertEqual(
            calculate_no_tax_state_savings(20000, "CA").recommendation,
            "Tax savings from relocation may not justify moving costs",
        )
        self.assertEqual(
            calculate_no_tax_state_savings(100000, "CA").recommendation,
            "Moderate tax savings possible, consider relocation costs and other factors",
        )
        significant = calculate_no_tax_state_savings(500000, "CA")
        self.assertEqual(
            significant.recommendation,
            "Significant tax savings possible, relocation may be worthwhile for large gains",
        )
        self.assertEqual(significant.potential_savings, 66500.0)
        self.assertIn("FL", significant.no_tax_states)


if __name__ == "__main__":
    unittest.main()
