import unittest
from portfolio_lab.tax_config import FilingStatus
from portfolio_lab.sale_tax import (
    Section121Requirements,
    calculate_section_121_exclusion,
    check_basic_eligibility,
    get_eligibility_details,
    calculate_depreciation_recapture,
    calculate_total_depreciation,
    calculate_annual_depreciation,
    estimate_land_value,
    calculate_sale_taxes,
    STATE_TAX_DISABLED_NOTE,
    SECTION_121_DISABLED_REASON,
)


def eligible_owner(**overrides) -> Section121Requirements:
    values = dict(is_primary_residence=True, years_owned=5, years_lived=5, has_used_exclusion_in_last_two_years=False)
    values.update(overrides)
    return Section121Requirements(**values)


class TestSection121(unittest.TestCase):

    def test_single_exclusion_capped(self):
        result = calculate_section_121_exclusion(300000, FilingStatus.SINGLE, eligible_owner())
        self.assertTrue(result.is_eligible)
        self.assertEqual(result.max_exclusion, 250000.0)
        self.assertEqual(result.applied_exclusion, 250000.0)
        self.assertEqual(result.remaining_gain, 50000.0)

    def test_married_joint_covers_gain(self):
        result = calculate_section_121_exclusion(300000, FilingStatus.MARRIED_FILING_JOINTLY, eligible_owner())
        self.assertEqual(result.applied_exclusion, 300000.0)
        self.assertEqual(result.remaining_gain, 0.0)

    def test_loss_is_not_excluded(self):
        result = calculate_section_121_exclusion(-10000, FilingStatus.SINGLE, eligible_owner())
        self.assertEqual(result.applied_exclusion, 0.0)
        self.assertEqual(result.remaining_gain, -10000.0)

    def test_ineligible_reasons(self):
        not_primary = calculate_section_121_exclusion(
            100000, FilingStatus.SINGLE, eligible_owner(is_primary_residence=False))
        self.assertFalse(not_primary.is_eligible)
        self.assertEqual(not_primary.reason, "Property is not a primary residence")
        self.assertEqual(not_primary.remaining_gain, 100000)

        short_ownership = calculate_section_121_exclusion(100000, FilingStatus.SINGLE, eligible_owner(years_owned=1))
        self.assertTrue(short_ownership.reason.startswith("Ownership requirement not met"))

        short_use = calculate_section_121_exclusion(100000, FilingStatus.SINGLE, eligible_owner(years_lived=1))
        self.assertTrue(short_use.reason.startswith("Use requirement not met"))

        recently_used = calculate_section_121_exclusion(
            100000, FilingStatus.SINGLE, eligible_owner(has_used_exclusion_in_last_two_years=True))
        self.assertEqual(recently_used.reason, "Exclusion already used within the last 2 years")

    def test_eligibility_details(self):
        self.assertTrue(check_basic_eligibility(eligible_owner()))
        details = get_eligibility_details(eligible_owner(years_lived=1))
        self.assertFalse(details.overall_eligible)
        self.assertEqual([c.met for c in details.checks], [True, True, False, True])


class TestDepreciationRecapture(unittest.TestCase):

    def test_ordinary_rate_below_cap(self):
        """Single filer at $100k sits in the 22% bracket"""
        result = calculate_depreciation_recapture(50000, 100000, FilingStatus.SINGLE)
        self.assertEqual(result.recapture_rate, 0.22)
        self.assertEqual(result.recapture_tax, 11000.0)

    def test_rate_capped_at_25_percent(self):
        result = calculate_depreciation_recapture(50000, 300000, FilingStatus.SINGLE)
        self.assertEqual(result.recapture_rate, 0.25)
        self.assertEqual(result.recapture_tax, 12500.0)

    def test_no_depreciation(self):
        result = calculate_depreciation_recapture(0, 300000, FilingStatus.SINGLE)
        self.assertEqual(result.recapture_tax, 0.0)
        self.assertEqual(result.notes, "No depreciation recapture - no depreciation taken")

    def test_straight_line_helpers(self):
        self.assertAlmostEqual(calculate_annual_depreciation(275000), 10000.0)
        self.assertAlmostEqual(calculate_total_depreciation(275000, 10), 100000.0)
        self.assertAlmostEqual(calculate_total_depreciation(275000, 40), 275000.0)
        self.assertAlmostEqual(calculate_annual_depreciation(390000, is_residential=False), 10000.0)
        self.assertAlmostEqual(estimate_land_value(500000), 100000.0)


class TestSaleTaxes(unittest.TestCase):

    def test_federal_and_state(self):
        taxes = calculate_sale_taxes(128000, 100000, FilingStatus.SINGLE, "CA", enable_section_121=False)
        self.assertEqual(taxes.federal.tax_amount, 19200.0)
        self.assertEqual(taxes.state.tax_amount, 17024.0)
        self.assertEqual(taxes.total_tax, 36224.0)
        self.assertEqual(taxes.section_121.reason, SECTION_121_DISABLED_REASON)

    def test_state_disabled(self):
        taxes = calculate_sale_taxes(
            128000, 100000, FilingStatus.SINGLE, "CA", enable_state_tax=False, enable_section_121=False)
        self.assertEqual(taxes.state.tax_amount, 0.0)
        self.assertEqual(taxes.state.notes, STATE_TAX_DISABLED_NOTE)
        self.assertEqual(taxes.total_tax, taxes.federal.tax_amount)

    def test_other_gains_and_losses(self):
        taxes = calculate_sale_taxes(
            100000, 100000, FilingStatus.SINGLE, "TX",
            other_capital_gains=20000, carryover_losses=30000, enable_section_121=False,
        )
        self.assertEqual(taxes.taxable_gain, 90000.0)
        self.assertEqual(taxes.federal.tax_amount, 13500.0)

    def test_section_121_applied(self):
        taxes = calculate_sale_taxes(
            300000, 100000, FilingStatus.SINGLE, "CA", requirements=eligible_owner(),
        )
        self.assertEqual(taxes.section_121.applied_exclusion, 250000.0)
        self.assertEqual(taxes.taxable_gain, 50000.0)
        self.assertEqual(taxes.federal.tax_amount, 7500.0)
        self.assertEqual(taxes.state.tax_amount, 6650.0)

    def test_recapture_split_before_exclusion(self):
        """The depreciation part of the gain is taxed as recapture, the rest as capital gain"""
        taxes = calculate_sale_taxes(
            128000, 100000, FilingStatus.SINGLE, "CA", enable_section_121=False, depreciation_taken=28000,
        )
        self.assertEqual(taxes.depreciation_recapture.recapture_tax, 6160.0)
        self.assertEqual(taxes.federal.tax_amount, 15000.0)
        self.assertEqual(taxes.state.tax_amount, 13300.0)
        self.assertEqual(taxes.total_tax, 34460.0)


if __name__ == "__main__":
    unittest.main()
