import unittest
from portfolio_lab.investment import InvestmentAsset, project_investment, summarize_investment, investment_warnings
from portfolio_lab.schemas import InvestmentInputs, InvestmentRecord, ProjectionHorizon


def make_inputs(**values) -> InvestmentInputs:
    base = dict(initial_amount="10000", rate_of_return="0", inflation_rate="0", annual_contribution="0")
    base.update(values)
    return InvestmentInputs(**base)


class TestProjectInvestment(unittest.TestCase):

    def test_compound_growth(self):
        """$10k at 7% for 10 years with no contributions"""
        results = project_investment(make_inputs(rate_of_return="7"), ProjectionHorizon(years=10))
        self.assertEqual(len(results), 11)
        self.assertEqual(results[0].balance, 10000.0)
        self.assertEqual(results[-1].balance, 19671.51)

    def test_year_zero_row(self):
        results = project_investment(make_inputs(), ProjectionHorizon(years=3, starting_year=2030))
        self.assertEqual(results[0].year, 0)
        self.assertEqual(results[0].actual_year, 2030)
        self.assertEqual(results[3].actual_year, 2033)
        self.assertEqual(results[0].real_balance, 10000.0)

    def test_contribution_added_before_growth(self):
        results = project_investment(
            make_inputs(initial_amount="0", rate_of_return="10", annual_contribution="1000"),
            ProjectionHorizon(years=1),
        )
        self.assertEqual(results[1].balance, 1100.0)
        self.assertEqual(results[1].yearly_gain, 100.0)
        self.assertEqual(results[1].annual_investment_gain, 0.0)

    def test_linked_cash_flow(self):
        results = project_investment(
            make_inputs(initial_amount="100000", rate_of_return="10"),
            ProjectionHorizon(years=2),
            linked_cash_flows=[-20000.0],
        )
        self.assertEqual(results[1].balance, 88000.0)
        self.assertEqual(results[1].property_cash_flow, -20000.0)
        self.assertEqual(results[1].total_cash_flow, -20000.0)
        self.assertEqual(results[2].property_cash_flow, 0.0)

    def test_inflation_adjusted_contributions(self):
        results = project_investment(
            make_inputs(initial_amount="0", inflation_rate="3", annual_contribution="1000"),
            ProjectionHorizon(years=3),
            inflation_adjusted_contributions=True,
        )
        self.assertEqual([r.annual_contribution for r in results[1:]], [1030.0, 1060.9, 1092.73])
        self.assertEqual([r.real_annual_contribution for r in results[1:]], [1000.0, 1000.0, 1000.0])

    def test_real_balance_deflated(self):
        results = project_investment(make_inputs(inflation_rate="10"), ProjectionHorizon(years=1))
        self.assertEqual(results[1].balance, 10000.0)
        self.assertEqual(results[1].real_balance, 9090.91)

    def test_gain_without_contributions_is_growth_only(self):
        results = project_investment(make_inputs(rate_of_return="7", inflation_rate="2.5"), ProjectionHorizon(years=10))
        for row in results[1:]:
            self.assertAlmostEqual(row.yearly_gain, row.annual_investment_gain, delta=0.01)
            self.assertAlmostEqual(row.real_yearly_gain, row.real_annual_investment_gain, delta=0.01)

    def test_invalid_text_counts_as_zero(self):
        results = project_investment(make_inputs(rate_of_return="abc"), ProjectionHorizon(years=2))
        self.assertEqual(results[-1].balance, 10000.0)


class TestInvestmentSummary(unittest.TestCase):

    def test_contributions(self):
        inputs = make_inputs(annual_contribution="1000")
        summary = summarize_investment(inputs, project_investment(inputs, ProjectionHorizon(years=3)))
        self.assertEqual(summary.final_balance, 13000.0)
        self.assertEqual(summary.manual_contributed, 3000.0)
        self.assertEqual(summary.total_earnings, 0.0)
        self.assertEqual(summary.total_return_percentage, 0.0)

    def test_withdrawals(self):
        inputs = make_inputs(annual_contribution="-1000")
        summary = summarize_investment(inputs, project_investment(inputs, ProjectionHorizon(years=3)))
        self.assertEqual(summary.manual_withdrawn, 3000.0)
        self.assertEqual(summary.net_contributions, -3000.0)
        self.assertEqual(summary.final_balance, 7000.0)

    def test_property_flows_split(self):
        inputs = make_inputs()
        results = project_investment(inputs, ProjectionHorizon(years=2), linked_cash_flows=[500.0, -200.0])
        summary = summarize_investment(inputs, results)
        self.assertEqual(summary.property_cash_flow_contributed, 500.0)
        self.assertEqual(summary.property_cash_flow_withdrawn, 200.0)
        self.assertEqual(summary.total_property_cash_flow, 300.0)


class TestInvestmentWarnings(unittest.TestCase):

    def test_negative_balance_and_large_outflows(self):
        results = project_investment(
            make_inputs(initial_amount="1000"), ProjectionHorizon(years=1), linked_cash_flows=[-5000.0],
        )
        warnings = investment_warnings(results)
        self.assertEqual(len(warnings), 2)
        self.assertIn("year 1", warnings[0])

    def test_no_warnings(self):
        results = project_investment(make_inputs(annual_contribution="1000"), ProjectionHorizon(years=5))
        self.assertEqual(investment_warnings(results), [])


class TestInvestmentAsset(unittest.TestCase):

    def setUp(self):
        self.asset = InvestmentAsset("Brokerage", make_inputs(), horizon=ProjectionHorizon(years=5))

    def test_results_present_after_construction(self):
        self.assertTrue(self.asset.has_results)
        self.assertEqual(len(self.asset.results), 6)

    def test_update_input_recomputes(self):
        self.asset.update_input("rateOfReturn", "10")
        self.assertEqual(self.asset.inputs.rate_of_return, "10")
        self.assertEqual(self.asset.results[1].balance, 11000.0)

        self.asset.update_input("annual_contribution", 1000)
        self.assertEqual(self.asset.inputs.annual_contribution, "1000")

    def test_unknown_input(self):
        with self.assertRaises(KeyError):
            self.asset.update_input("doesNotExist", "1")

    def test_display_toggles_keep_one_series(self):
        self.asset.set_show_nominal(False)
        self.assertTrue(self.asset.show_real)
        self.asset.set_show_real(False)
        self.assertTrue(self.asset.show_nominal)

    def test_json_uses_camel_case(self):
        self.asset.set_inflation_adjusted_contributions(True)
        data = self.asset.to_json()
        self.assertEqual(data["type"], "investment")
        self.assertTrue(data["inflationAdjustedContributions"])
        self.assertEqual(data["inputs"]["initialAmount"], "10000")

        restored = InvestmentAsset.from_json(data, ProjectionHorizon(years=5))
        self.assertEqual(restored.id, self.asset.id)
        self.assertTrue(restored.inflation_adjusted_contributions)
        self.assertEqual(restored.results[-1].balance, self.asset.results[-1].balance)

    def test_numeric_inputs_kept_as_text(self):
        record = InvestmentRecord.model_validate({"id": "a", "name": "x", "inputs": {"initialAmount": 5000}})
        self.assertEqual(record.inputs.initial_amount, "5000")
        self.assertEqual(record.inputs.rate_of_return, "7")


if __name__ == "__main__":
    unittest.main()
