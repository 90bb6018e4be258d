import logging
import uuid
from typing import List, Optional, Dict, Any, Sequence

from .money import parse_number, inflation_factor, round2
from .schemas import (
    INVESTMENT, InvestmentInputs, InvestmentRecord, InvestmentResult, InvestmentSummary, ProjectionHorizon,
    resolve_input_field,
)

logger = logging.getLogger(__name__)

# Property outflows larger than this multiple of direct contributions are flagged
OUTFLOW_WARNING_MULTIPLE = 2


def project_investment(
    inputs: InvestmentInputs,
    horizon: ProjectionHorizon,
    inflation_adjusted_contributions: bool = False,
    linked_cash_flows: Optional[Sequence[float]] = None
) -> List[InvestmentResult]:
    """
    Project an investment balance year by year.

    Each year's contributions (direct plus linked property cash flow) are added
    before that year's growth is applied:
        balance = (previous + contribution + property_cash_flow) * (1 + rate)
    `linked_cash_flows[y - 1]` is the property cash flow for year y.
    """
    initial = parse_number(inputs.initial_amount)
    rate = parse_number(inputs.rate_of_return) / 100
    inflation = parse_number(inputs.inflation_rate)
    contribution = parse_number(inputs.annual_contribution)
    flows = list(linked_cash_flows or [])

    results = [InvestmentResult(
        year=0,
        actual_year=horizon.starting_year,
        balance=round2(initial),
        real_balance=round2(initial),
    )]

    balance = initial
    net_contributions = 0.0
    for year in range(1, horizon.years + 1):
        factor = inflation_factor(inflation, year)
        previous = balance

        direct = contribution * factor if inflation_adjusted_contributions else contribution
        property_cash_flow = flows[year - 1] if year - 1 < len(flows) else 0.0
        total_cash_flow = direct + property_cash_flow

        annual_investment_gain = previous * rate
        balance = (previous + total_cash_flow) * (1 + rate)
        yearly_gain = balance - previous - total_cash_flow
        net_contributions += total_cash_flow
        total_earnings = balance - initial - net_contributions

        results.append(InvestmentResult(
            year=year,
            actual_year=horizon.starting_year + year,
            balance=round2(balance),
            real_balance=round2(balance / factor),
            annual_contribution=round2(direct),
            # An inflation-adjusted contribution is constant in today's dollars
            real_annual_contribution=round2(contribution if inflation_adjusted_contributions else direct / factor),
            property_cash_flow=round2(property_cash_flow),
            real_property_cash_flow=round2(property_cash_flow / factor),
            total_cash_flow=round2(total_cash_flow),
            net_contributions_to_date=round2(net_contributions),
            total_earnings=round2(total_earnings),
            real_total_earnings=round2(total_earnings / factor),
            yearly_gain=round2(yearly_gain),
            real_yearly_gain=round2(yearly_gain / factor),
            annual_investment_gain=round2(annual_investment_gain),
            real_annual_investment_gain=round2(annual_investment_gain / factor),
        ))

    logger.debug("Projected investment over %d years, final balance %.2f", horizon.years, balance)
    return results


def summarize_investment(inputs: InvestmentInputs, results: List[InvestmentResult]) -> InvestmentSummary:
    initial = parse_number(inputs.initial_amount)
    yearly = results[1:]

    manual_contributed = sum(r.annual_contribution for r in yearly if r.annual_contribution > 0)
    manual_withdrawn = -sum(r.annual_contribution for r in yearly if r.annual_contribution < 0)
    property_contributed = sum(r.property_cash_flow for r in yearly if r.property_cash_flow > 0)
    property_withdrawn = -sum(r.property_cash_flow for r in yearly if r.property_cash_flow < 0)

    total_contributed = manual_contributed + property_contributed
    total_withdrawn = manual_withdrawn + property_withdrawn
    net_contributions = total_contributed - total_withdrawn

    final = results[-1]
    total_earnings = final.balance - initial - net_contributions
    return InvestmentSummary(
        initial_amount=round2(initial),
        manual_contributed=round2(manual_contributed),
        manual_withdrawn=round2(manual_withdrawn),
        property_cash_flow_contributed=round2(property_contributed),
        property_cash_flow_withdrawn=round2(property_withdrawn),
        total_property_cash_flow=round2(property_contributed - property_withdrawn),
        total_contributed=round2(total_contributed),
        total_withdrawn=round2(total_withdrawn),
        net_contributions=round2(net_contributions),
        total_earnings=round2(total_earnings),
        real_total_earnings=final.real_total_earnings,
        total_return_percentage=round2(total_earnings / initial * 100) if initial > 0 else 0.0,
        final_balance=final.balance,
        real_final_balance=final.real_balance,
        final_net_gain=round2(final.balance - initial),
        real_final_net_gain=round2(final.real_balance - initial),
    )


def investment_warnings(results: List[InvestmentResult]) -> List[str]:
    warnings = []
    negative_years = [r.year for r in results if r.balance < 0]
    if negative_years:
        warnings.append(
            f"Balance goes negative in year {negative_years[0]}; linked property costs exceed the investment"
        )

    direct = sum(max(0.0, r.annual_contribution) for r in results[1:])
    outflows = -sum(min(0.0, r.property_cash_flow) for r in results[1:])
    if outflows > 0 and outflows > OUTFLOW_WARNING_MULTIPLE * direct:
        warnings.append(
            f"Linked property outflows (${outflows:,.0f}) exceed twice the direct contributions (${direct:,.0f})"
        )
    return warnings


class InvestmentAsset:
    """
    A market investment. Every mutator recomputes the series, so `results`
    always reflects the current inputs.
    """
    type = INVESTMENT

    def __init__(
        self,
        name: str = "New Investment",
        inputs: Optional[InvestmentInputs] = None,
        asset_id: Optional[str] = None,
        horizon: Optional[ProjectionHorizon] = None,
    ):
        self.id = asset_id or str(uuid.uuid4())
        self.name = name
        self.enabled = True
        self.inputs = inputs or InvestmentInputs()
        self.inflation_adjusted_contributions = False
        self.show_balance = True
        self.show_contributions = True
        self.show_net_gain = True
        self.show_nominal = True
        self.show_real = False

        self.horizon = horizon or ProjectionHorizon()
        self.linked_cash_flows: List[float] = []
        self.results: List[InvestmentResult] = []
        self.recompute()

    def recompute(self, horizon: Optional[ProjectionHorizon] = None, linked_cash_flows: Optional[Sequence[float]] = None):
        if horizon is not None:
            self.horizon = horizon
        if linked_cash_flows is not None:
            self.linked_cash_flows = list(linked_cash_flows)
        self.results = project_investment(
            self.inputs, self.horizon, self.inflation_adjusted_contributions, self.linked_cash_flows,
        )

    def update_input(self, key: str, value: Any):
        field = resolve_input_field(InvestmentInputs, key)
        setattr(self.inputs, field, value)
        self.recompute()

    def set_inflation_adjusted_contributions(self, value: bool):
        self.inflation_adjusted_contributions = value
        self.recompute()

    def set_show_nominal(self, value: bool):
        self.show_nominal = value
        if not value and not self.show_real:
            self.show_real = True

    def set_show_real(self, value: bool):
        self.show_real = value
        if not value and not self.show_nominal:
            self.show_nominal = True

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0

    @property
    def final_result(self) -> Optional[InvestmentResult]:
        return self.results[-1] if self.results else None

    @property
    def summary_data(self) -> InvestmentSummary:
        return summarize_investment(self.inputs, self.results)

    @property
    def warnings(self) -> List[str]:
        return investment_warnings(self.results)

    def to_record(self) -> InvestmentRecord:
        return InvestmentRecord(
            id=self.id,
            name=self.name,
            enabled=self.enabled,
            inputs=self.inputs.model_copy(deep=True),
            inflation_adjusted_contributions=self.inflation_adjusted_contributions,
            show_balance=self.show_balance,
            show_contributions=self.show_contributions,
            show_net_gain=self.show_net_gain,
            show_nominal=self.show_nominal,
            show_real=self.show_real,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.to_record().model_dump(by_alias=True, mode="json")

    @classmethod
    def from_record(cls, record: InvestmentRecord, horizon: Optional[ProjectionHorizon] = None) -> "InvestmentAsset":
        asset = cls(record.name, record.inputs.model_copy(deep=True), asset_id=record.id, horizon=horizon)
        asset.enabled = record.enabled
        asset.inflation_adjusted_contributions = record.inflation_adjusted_contributions
        asset.show_balance = record.show_balance
        asset.show_contributions = record.show_contributions
        asset.show_net_gain = record.show_net_gain
        asset.show_nominal = record.show_nominal
        asset.show_real = record.show_real
        asset.recompute()
        return asset

    @classmethod
    def from_json(cls, data: Dict[str, Any], horizon: Optional[ProjectionHorizon] = None) -> "InvestmentAsset":
        return cls.from_record(InvestmentRecord.model_validate(data), horizon)

