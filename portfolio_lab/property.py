import logging
import uuid
from typing import List, Optional, Dict, Any, Tuple
from pydantic import BaseModel

from .money import parse_number, parse_int, compound, inflation_factor, round2
from .mortgage import DEFAULT_LOAN_TERM_YEARS, calculate_monthly_payment, amortize
from .sale_tax import Section121Requirements, calculate_sale_taxes, calculate_total_depreciation
from .schemas import (
    PROPERTY, PropertyInputs, PropertyRecord, PropertyResult, SaleAnalysis, ProjectionHorizon,
    SaleConfig, resolve_input_field,
)

logger = logging.getLogger(__name__)

# Average months a unit sits empty between tenants
VACANCY_MONTHS_PER_TURNOVER = 1.5


class RentalBreakdown(BaseModel):
    income: float = 0.0
    maintenance: float = 0.0
    listing: float = 0.0
    management: float = 0.0

    @property
    def total_expenses(self) -> float:
        return self.maintenance + self.listing + self.management


class LoanTerms(BaseModel):
    loan_amount: float
    monthly_rate: float
    principal_interest_payment: float
    monthly_payment: float
    other_fees_payment: float


# -----------------------------------------------------------------------------
# Building blocks
# -----------------------------------------------------------------------------

def calculate_property_value(inputs: PropertyInputs, year: int) -> float:
    """
    Market value `year` years into the projection.
    purchase_price: grows from the purchase price since the purchase date.
    current_value: grows from today's estimate; without an estimate it falls
    back to the purchase-price model.
    """
    growth = parse_number(inputs.property_growth_rate)
    if inputs.property_growth_model == "current_value":
        estimate = parse_number(inputs.current_estimated_value)
        if estimate > 0:
            return compound(estimate, growth, year)
    years_bought = max(0, parse_int(inputs.years_bought))
    return compound(parse_number(inputs.purchase_price), growth, years_bought + year)


def get_loan_terms(inputs: PropertyInputs) -> LoanTerms:
    purchase_price = parse_number(inputs.purchase_price)
    loan_amount = max(0.0, purchase_price * (1 - parse_number(inputs.down_payment_percentage) / 100))
    annual_rate = parse_number(inputs.interest_rate)
    term = parse_int(inputs.loan_term, DEFAULT_LOAN_TERM_YEARS)

    pi_payment = calculate_monthly_payment(loan_amount, annual_rate, term)
    # Extra above principal and interest (taxes, insurance, HOA) never reduces the loan
    monthly_payment = max(parse_number(inputs.monthly_payment), pi_payment)
    return LoanTerms(
        loan_amount=loan_amount,
        monthly_rate=annual_rate / 100 / 12,
        principal_interest_payment=pi_payment,
        monthly_payment=monthly_payment,
        other_fees_payment=max(0.0, monthly_payment - pi_payment),
    )


def tenant_turnovers_per_year(vacancy_rate_percent: float) -> float:
    """
    Tenant changes implied by a vacancy rate, assuming each vacancy lasts
    1.5 months: occupied months = 1.5 * (100 - v) / v.
    """
    if vacancy_rate_percent <= 0:
        return 0.0
    vacancy = min(vacancy_rate_percent, 100.0)
    occupied_months = VACANCY_MONTHS_PER_TURNOVER * (100 - vacancy) / vacancy
    return 12 / (occupied_months + VACANCY_MONTHS_PER_TURNOVER)


def calculate_rental_year(
    inputs: PropertyInputs,
    year: int,
    property_value: float,
    fraction_of_year: float = 1.0
) -> RentalBreakdown:
    monthly_rent = compound(parse_number(inputs.monthly_rent), parse_number(inputs.rent_growth_rate), year)
    vacancy_rate = parse_number(inputs.vacancy_rate)
    collected_rent = monthly_rent * 12 * (1 - vacancy_rate / 100)

    breakdown = RentalBreakdown(
        income=collected_rent * fraction_of_year,
        maintenance=property_value * parse_number(inputs.maintenance_rate) / 100 * fraction_of_year,
    )
    if inputs.property_management_enabled:
        listing_per_turnover = monthly_rent * parse_number(inputs.listing_fee_rate) / 100
        breakdown.listing = tenant_turnovers_per_year(vacancy_rate) * listing_per_turnover * fraction_of_year
        breakdown.management = (
            collected_rent * parse_number(inputs.monthly_management_fee_rate) / 100 * fraction_of_year
        )
    return breakdown


def resolve_sale_year(sale_config: SaleConfig, horizon: ProjectionHorizon) -> Optional[int]:
    """The modeled sale year, or None when no sale falls inside the projection."""
    if not sale_config.is_planned_for_sale or sale_config.sale_year is None:
        return None
    if not 1 <= sale_config.sale_year <= horizon.years:
        logger.warning(
            "Sale year %s is outside the %d-year projection; sale ignored", sale_config.sale_year, horizon.years,
        )
        return None
    return sale_config.sale_year


def _sale_month(sale_config: SaleConfig) -> int:
    return min(12, max(1, sale_config.sale_month))


def reinvests_into_linked_investment(inputs: PropertyInputs) -> bool:
    sale_config = inputs.sale_config
    return bool(
        sale_config.reinvest_proceeds
        and inputs.linked_investment_id
        and sale_config.target_investment_id == inputs.linked_investment_id
    )


def _mortgage_balance_at_sale(inputs: PropertyInputs, sale_year: int) -> float:
    terms = get_loan_terms(inputs)
    months = (
        max(0, parse_int(inputs.years_bought)) * 12
        + (sale_year - 1) * 12
        + _sale_month(inputs.sale_config)
    )
    return amortize(terms.loan_amount, terms.monthly_rate, terms.principal_interest_payment, months).balance


def analyze_sale(
    inputs: PropertyInputs,
    horizon: ProjectionHorizon,
    remaining_mortgage: Optional[float] = None
) -> Optional[SaleAnalysis]:
    """Price, cost basis, taxes and proceeds for the planned sale."""
    sale_config = inputs.sale_config
    sale_year = resolve_sale_year(sale_config, horizon)
    if sale_year is None:
        return None
    if remaining_mortgage is None:
        remaining_mortgage = _mortgage_balance_at_sale(inputs, sale_year)

    projected_price = calculate_property_value(inputs, sale_year)
    expected_price = sale_config.expected_sale_price or 0.0
    if sale_config.use_projected_value or expected_price <= 0:
        sale_price = projected_price
    else:
        sale_price = expected_price
    selling_costs = sale_price * sale_config.selling_costs_percentage / 100

    purchase_price = parse_number(inputs.purchase_price)
    years_bought = max(0, parse_int(inputs.years_bought))
    years_owned = parse_number(sale_config.years_owned) if sale_config.years_owned.strip() else years_bought + sale_year
    if sale_config.years_lived.strip():
        years_lived = parse_number(sale_config.years_lived)
    else:
        years_lived = years_owned if sale_config.is_primary_residence else 0.0

    depreciation = 0.0
    if sale_config.enable_depreciation_recapture:
        if sale_config.total_depreciation_taken.strip():
            depreciation = parse_number(sale_config.total_depreciation_taken)
        elif inputs.is_rental_property:
            building_value = purchase_price * (1 - parse_number(sale_config.land_value_percentage) / 100)
            depreciation = calculate_total_depreciation(building_value, years_owned)

    adjusted_cost_basis = (
        purchase_price
        + parse_number(sale_config.capital_improvements)
        + parse_number(sale_config.original_buying_costs)
        - depreciation
    )
    capital_gain = sale_price - selling_costs - adjusted_cost_basis

    taxes = calculate_sale_taxes(
        capital_gain,
        annual_income=parse_number(sale_config.annual_income),
        filing_status=sale_config.filing_status,
        state_code=sale_config.state,
        enable_state_tax=sale_config.enable_state_tax,
        other_capital_gains=parse_number(sale_config.other_capital_gains),
        carryover_losses=parse_number(sale_config.carryover_losses),
        enable_section_121=sale_config.enable_section121,
        requirements=Section121Requirements(
            is_primary_residence=sale_config.is_primary_residence,
            years_owned=years_owned,
            years_lived=years_lived,
            has_used_exclusion_in_last_two_years=sale_config.has_used_exclusion_in_last_two_years,
        ),
        depreciation_taken=depreciation,
    )

    net_sale_proceeds = sale_price - selling_costs - remaining_mortgage
    return SaleAnalysis(
        sale_year=sale_year,
        sale_month=_sale_month(sale_config),
        projected_sale_price=round2(projected_price),
        effective_sale_price=round2(sale_price),
        selling_costs=round2(selling_costs),
        remaining_mortgage=round2(remaining_mortgage),
        adjusted_cost_basis=round2(adjusted_cost_basis),
        depreciation_taken=round2(depreciation),
        capital_gain=taxes.capital_gain,
        section_121_exclusion=taxes.section_121.applied_exclusion,
        section_121_eligible=taxes.section_121.is_eligible,
        section_121_reason=taxes.section_121.reason,
        taxable_gain=taxes.taxable_gain,
        federal_tax=taxes.federal.tax_amount,
        federal_tax_rate=taxes.federal.tax_rate,
        state_tax=taxes.state.tax_amount,
        state_tax_rate=taxes.state.tax_rate,
        state_tax_notes=taxes.state.notes,
        depreciation_recapture_tax=taxes.depreciation_recapture.recapture_tax,
        total_tax=taxes.total_tax,
        effective_tax_rate=taxes.total_tax / capital_gain if capital_gain > 0 else 0.0,
        net_sale_proceeds=round2(net_sale_proceeds),
        net_after_tax_proceeds=round2(net_sale_proceeds - taxes.total_tax),
    )


# -----------------------------------------------------------------------------
# Projection
# -----------------------------------------------------------------------------

def project_property(inputs: PropertyInputs, horizon: ProjectionHorizon) -> Tuple[List[PropertyResult], Optional[SaleAnalysis]]:
    """
    Year-by-year value, mortgage, rental cash flow and sale for one property.

    Year 0 is the state at the start of the projection, after `yearsBought`
    years of payments. In the sale year rent, expenses and mortgage payments
    cover only the months up to the sale; later years are zeroed.
    """
    terms = get_loan_terms(inputs)
    inflation = parse_number(inputs.inflation_rate)
    years_bought = max(0, parse_int(inputs.years_bought))
    sale_year = resolve_sale_year(inputs.sale_config, horizon)
    sale_month = _sale_month(inputs.sale_config)

    balance = amortize(
        terms.loan_amount, terms.monthly_rate, terms.principal_interest_payment, years_bought * 12,
    ).balance

    initial_value = calculate_property_value(inputs, 0)
    results = [PropertyResult(
        year=0,
        actual_year=horizon.starting_year,
        balance=round2(initial_value),
        real_balance=round2(initial_value),
        mortgage_balance=round2(balance),
        real_mortgage_balance=round2(balance),
        monthly_payment=round2(terms.monthly_payment if balance > 0 else terms.other_fees_payment),
        principal_interest_payment=round2(terms.principal_interest_payment if balance > 0 else 0.0),
        other_fees_payment=round2(terms.other_fees_payment),
    )]

    sale: Optional[SaleAnalysis] = None
    for year in range(1, horizon.years + 1):
        actual_year = horizon.starting_year + year
        if sale_year is not None and year > sale_year:
            results.append(PropertyResult(
                year=year, actual_year=actual_year,
                balance=0.0, real_balance=0.0, mortgage_balance=0.0, real_mortgage_balance=0.0,
                monthly_payment=0.0, principal_interest_payment=0.0, other_fees_payment=0.0,
                is_post_sale=True,
            ))
            continue

        factor = inflation_factor(inflation, year)
        is_sale_year = year == sale_year
        months = sale_month if is_sale_year else 12
        had_loan = balance > 0

        step = amortize(balance, terms.monthly_rate, terms.principal_interest_payment, months)
        balance = step.balance
        annual_mortgage_payment = step.principal_paid + step.interest_paid + terms.other_fees_payment * months

        value = calculate_property_value(inputs, year)
        if inputs.is_rental_property:
            rental = calculate_rental_year(inputs, year, value, months / 12)
        else:
            rental = RentalBreakdown()
        cash_flow = rental.income - rental.total_expenses - annual_mortgage_payment

        result = PropertyResult(
            year=year,
            actual_year=actual_year,
            balance=round2(value),
            real_balance=round2(value / factor),
            mortgage_balance=round2(balance),
            real_mortgage_balance=round2(balance / factor),
            monthly_payment=round2(terms.monthly_payment if had_loan else terms.other_fees_payment),
            principal_interest_payment=round2(terms.principal_interest_payment if had_loan else 0.0),
            other_fees_payment=round2(terms.other_fees_payment),
            principal_paid=round2(step.principal_paid),
            interest_paid=round2(step.interest_paid),
            annual_mortgage_payment=round2(annual_mortgage_payment),
            annual_rental_income=round2(rental.income),
            maintenance_expenses=round2(rental.maintenance),
            listing_expenses=round2(rental.listing),
            management_expenses=round2(rental.management),
            total_rental_expenses=round2(rental.total_expenses),
        )

        if is_sale_year:
            sale = analyze_sale(inputs, horizon, remaining_mortgage=balance)
            if reinvests_into_linked_investment(inputs):
                cash_flow += sale.net_after_tax_proceeds
            # The property is converted to cash this year
            result.balance = 0.0
            result.real_balance = 0.0
            result.mortgage_balance = 0.0
            result.real_mortgage_balance = 0.0
            result.is_sale_year = True
            result.sale_price = sale.effective_sale_price
            result.selling_costs = sale.selling_costs
            result.pre_sale_mortgage_balance = round2(balance)
            result.net_sale_proceeds = sale.net_sale_proceeds
            result.capital_gains_tax = sale.total_tax
            result.sale_proceeds = sale.net_after_tax_proceeds

        result.annual_cash_flow = round2(cash_flow)
        result.real_annual_cash_flow = round2(cash_flow / factor)
        results.append(result)

    logger.debug(
        "Projected property over %d years (sale year: %s, rental: %s)",
        horizon.years, sale_year, inputs.is_rental_property,
    )
    return results, sale


class PropertyAsset:
    """
    A mortgaged property, optionally rented out and optionally sold. Every
    mutator recomputes the series.
    """
    type = PROPERTY

    def __init__(
        self,
        name: str = "New Property",
        inputs: Optional[PropertyInputs] = None,
        asset_id: Optional[str] = None,
        horizon: Optional[ProjectionHorizon] = None,
    ):
        self.id = asset_id or str(uuid.uuid4())
        self.name = name
        self.enabled = True
        self.inputs = inputs or PropertyInputs()
        self.show_balance = True
        self.show_contributions = True
        self.show_net_gain = True
        self.show_nominal = True
        self.show_real = False

        self.horizon = horizon or ProjectionHorizon()
        self.results: List[PropertyResult] = []
        self.sale_analysis: Optional[SaleAnalysis] = None
        self.recompute()

    def recompute(self, horizon: Optional[ProjectionHorizon] = None):
        if horizon is not None:
            self.horizon = horizon
        self.results, self.sale_analysis = project_property(self.inputs, self.horizon)

    def update_input(self, key: str, value: Any):
        field = resolve_input_field(PropertyInputs, key)
        if field == "sale_config":
            value = SaleConfig.model_validate(value) if isinstance(value, dict) else value
        setattr(self.inputs, field, value)
        self.recompute()

    def update_sale_config(self, key: str, value: Any):
        sale_config = self.inputs.sale_config
        field = resolve_input_field(SaleConfig, key)
        setattr(sale_config, field, value)
        if field == "reinvest_proceeds" and value and not sale_config.target_investment_id:
            sale_config.target_investment_id = self.inputs.linked_investment_id or None
        self.recompute()

    def set_sale_enabled(self, enabled: bool):
        sale_config = self.inputs.sale_config
        sale_config.is_planned_for_sale = enabled
        if enabled and sale_config.sale_year is None:
            sale_config.sale_year = max(1, self.horizon.years // 2)
        if enabled and sale_config.reinvest_proceeds and not sale_config.target_investment_id:
            sale_config.target_investment_id = self.inputs.linked_investment_id or None
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
    def final_result(self) -> Optional[PropertyResult]:
        return self.results[-1] if self.results else None

    @property
    def calculated_principal_interest_payment(self) -> float:
        return round2(get_loan_terms(self.inputs).principal_interest_payment)

    @property
    def down_payment(self) -> float:
        return parse_number(self.inputs.purchase_price) * parse_number(self.inputs.down_payment_percentage) / 100

    def to_record(self) -> PropertyRecord:
        return PropertyRecord(
            id=self.id,
            name=self.name,
            enabled=self.enabled,
            inputs=self.inputs.model_copy(deep=True),
            show_balance=self.show_balance,
            show_contributions=self.show_contributions,
            show_net_gain=self.show_net_gain,
            show_nominal=self.show_nominal,
            show_real=self.show_real,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.to_record().model_dump(by_alias=True, mode="json")

    @classmethod
    def from_record(cls, record: PropertyRecord, horizon: Optional[ProjectionHorizon] = None) -> "PropertyAsset":
        asset = cls(record.name, record.inputs.model_copy(deep=True), asset_id=record.id, horizon=horizon)
        asset.enabled = record.enabled
        asset.show_balance = record.show_balance
        asset.show_contributions = record.show_contributions
        asset.show_net_gain = record.show_net_gain
        asset.show_nominal = record.show_nominal
        asset.show_real = record.show_real
        return asset

    @classmethod
    def from_json(cls, data: Dict[str, Any], horizon: Optional[ProjectionHorizon] = None) -> "PropertyAsset":
        return cls.from_record(PropertyRecord.model_validate(data), horizon)
