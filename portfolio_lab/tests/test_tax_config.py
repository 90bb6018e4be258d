import unittest
from portfolio_lab.tax_config import (
    FilingStatus,
    STATE_TAX_RATES,
    get_federal_ltcg_brackets,
    get_federal_ordinary_brackets,
    find_bracket,
    get_state_tax_info,
    get_state_tax_rate,
    get_no_tax_states,
    get_states_by_tax_rate,
    get_state_choices,
    get_section_121_exclusion_amount,
    format_tax_rate,
    format_currency,
)


class TestTaxConfig(unittest.TestCase):

    def test_ltcg_brackets_single_2024(self):
        """Single filers: 0% / 15% / 20% with 2024 thresholds"""
        brackets = get_federal_ltcg_brackets(FilingStatus.SINGLE, 2024)
        self.assertEqual([b.rate for b in brackets], [0.0, 0.15, 0.20])
        self.assertEqual(brackets[0].max, 47025.0)
        self.assertEqual(brackets[1].max, 518900.0)
        self.assertIsNone(brackets[-1].max)

    def test_bracket_lookup_is_half_open(self):
        """Income equal to a bracket's max falls into the next bracket"""
        brackets = get_federal_ltcg_brackets(FilingStatus.SINGLE)
        self.assertEqual(find_bracket(brackets, 47024.99).rate, 0.0)
        self.assertEqual(find_bracket(brackets, 47025).rate, 0.15)
        self.assertEqual(find_bracket(brackets, 10_000_000).rate, 0.20)

    def test_year_fallback(self):
        """Requesting a future year falls back to the latest configured year (2024)"""
        self.assertEqual(
            get_federal_ltcg_brackets(FilingStatus.MARRIED_FILING_JOINTLY, 2030),
            get_federal_ltcg_brackets(FilingStatus.MARRIED_FILING_JOINTLY, 2024),
        )

    def test_unknown_filing_status(self):
        with self.assertRaises(ValueError):
            get_federal_ltcg_brackets("not_a_status")

    def test_ordinary_brackets_for_recapture(self):
        brackets = get_federal_ordinary_brackets(FilingStatus.SINGLE)
        self.assertEqual(find_bracket(brackets, 100000).rate, 0.22)

    def test_filing_status_values(self):
        self.assertEqual(FilingStatus("married_joint"), FilingStatus.MARRIED_FILING_JOINTLY)
        self.assertEqual(get_section_121_exclusion_amount(FilingStatus.MARRIED_FILING_JOINTLY), 500000.0)
        self.assertEqual(get_section_121_exclusion_amount(FilingStatus.HEAD_OF_HOUSEHOLD), 250000.0)

    def test_state_table(self):
        """50 states plus DC, looked up case-insensitively"""
        self.assertEqual(len(STATE_TAX_RATES), 51)
        self.assertEqual(get_state_tax_info("ca").code, "CA")
        self.assertEqual(get_state_tax_info("CA").rate, 0.133)
        self.assertEqual(get_state_tax_info("WA").rate, 0.07)
        self.assertIsNone(get_state_tax_info("ZZ"))
        self.assertIsNone(get_state_tax_info(""))

    def test_state_tax_rate(self):
        """Unknown or blank states have no state tax"""
        self.assertEqual(get_state_tax_rate("CA"), 0.133)
        self.assertEqual(get_state_tax_rate(" ny "), get_state_tax_info("NY").rate)
        self.assertEqual(get_state_tax_rate("TX"), 0.0)
        self.assertEqual(get_state_tax_rate("ZZ"), 0.0)
        self.assertEqual(get_state_tax_rate(""), 0.0)

    def test_no_tax_states(self):
        self.assertEqual(get_no_tax_states(), ["AK", "FL", "NV", "NH", "SD", "TN", "TX", "WY"])

    def test_states_by_tax_rate(self):
        states = get_states_by_tax_rate()
        self.assertEqual(states[0].rate, 0.0)
        self.assertEqual(states[-1].code, "CA")

    def test_state_choices_sorted_by_name(self):
        choices = get_state_choices()
        self.assertEqual(choices[0], {"value": "AL", "label": "Alabama (AL)"})
        self.assertEqual(len(choices), 51)

    def test_formatting(self):
        self.assertEqual(format_tax_rate(0.15, 0), "15%")
        self.assertEqual(format_tax_rate(0.133), "13.3%")
        self.assertEqual(format_currency(1234.4), "$1,234")
        self.assertEqual(format_currency(-500), "-$500")


if __name__ == "__main__":
    unittest.main()
