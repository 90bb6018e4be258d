import logging
from typing import List, Optional
from pydantic import BaseModel

from .money import round2
from .tax_config import (
    FilingStatus, TaxBracket, REFERENCE_TAX_YEAR,
    get_federal_ltcg_brackets, find_bracket, get_state_tax_info, get_no_tax_states, format_currency,
)

logger = logging.getLogger(__name__)

UNKNOWN_STATE_NAME = "Unknown State"
UNKNOWN_STATE_NOTE = "State not found in tax database"

MINIMAL_IMPACT_THRESHOLD = 1000.0
LOW_SAVINGS_THRESHOLD = 5000.0
MODERATE_SAVINGS_THRESHOLD = 25000.0


class FederalTaxCalculation(BaseModel):
    taxable_gain: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    bracket: Optional[TaxBracket] = None


class StateTaxCalculation(BaseModel):
    state_code: str
    state_name: str
    has_capital_gains_tax: bool = False
    taxable_gain: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    notes: Optional[str] = None
    is_simplified: bool = False


class StateComparison(StateTaxCalculation):
    savings: float = 0.0


class CombinedTax(BaseModel):
    federal_tax: float
    state_tax: float
    total_tax: float
    effective_rate: float
    state_calculation: StateTaxCalculation


class RelocationImpact(BaseModel):
    from_state: StateTaxCalculation
    to_state: StateTaxCalculation
    tax_difference: float
    savings: float
    recommendation: str


class NoTaxStateSavings(BaseModel):
    current_tax: float
    potential_savings: float
    no_tax_states: List[str]
    recommendation: str


# -----------------------------------------------------------------------------
# Federal
# -----------------------------------------------------------------------------

def get_tax_bracket(annual_income: float, filing_status: FilingStatus, year: int = REFERENCE_TAX_YEAR) -> TaxBracket:
    return find_bracket(get_federal_ltcg_brackets(filing_status, year), annual_income)


def get_capital_gains_rate(annual_income: float, filing_status: FilingStatus, year: int = REFERENCE_TAX_YEAR) -> float:
    return get_tax_bracket(annual_income, filing_status, year).rate


def calculate_federal_tax(
    capital_gain: float,
    annual_income: float,
    filing_status: FilingStatus,
    year: int = REFERENCE_TAX_YEAR
) -> FederalTaxCalculation:
    """
    Flat long-term capital gains tax: the whole gain is taxed at the rate of
    the bracket that contains `annual_income`.
    """
    taxable_gain = max(0.0, capital_gain)
    if taxable_gain == 0:
        return FederalTaxCalculation()

    bracket = get_tax_bracket(annual_income, filing_status, year)
    return FederalTaxCalculation(
        taxable_gain=taxable_gain,
        tax_rate=bracket.rate,
        tax_amount=round2(taxable_gain * bracket.rate),
        bracket=bracket,
    )


def calculate_federal_tax_with_adjustments(
    capital_gain: float,
    annual_income: float,
    filing_status: FilingStatus,
    other_capital_gains: float = 0.0,
    carryover_losses: float = 0.0,
    year: int = REFERENCE_TAX_YEAR
) -> FederalTaxCalculation:
    # Carryover losses are a reduction whatever sign they were entered with
    adjusted_gain = capital_gain - abs(carryover_losses) + other_capital_gains
    return calculate_federal_tax(adjusted_gain, annual_income, filing_status, year)


# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

def calculate_state_tax(capital_gain: float, state_code: str) -> StateTaxCalculation:
    info = get_state_tax_info(state_code)
    if info is None:
        logger.warning("No state tax entry for %r, assuming zero state tax", state_code)
        return StateTaxCalculation(
            state_code=(state_code or "").upper(),
            state_name=UNKNOWN_STATE_NAME,
            notes=UNKNOWN_STATE_NOTE,
        )

    taxable_gain = max(0.0, capital_gain)
    calculation = StateTaxCalculation(
        state_code=info.code,
        state_name=info.name,
        has_capital_gains_tax=info.has_capital_gains_tax,
        taxable_gain=taxable_gain,
        notes=info.notes,
        is_simplified=info.is_simplified,
    )
    if not info.has_capital_gains_tax or taxable_gain == 0:
        return calculation

    calculation.tax_rate = info.rate
    calculation.tax_amount = round2(taxable_gain * info.rate)
    return calculation


def calculate_state_tax_after_exclusion(total_gain: float, excluded_amount: float, state_code: str) -> StateTaxCalculation:
    return calculate_state_tax(max(0.0, total_gain - excluded_amount), state_code)


def calculate_combined_tax(capital_gain: float, state_code: str, federal_tax: float) -> CombinedTax:
    state_calculation = calculate_state_tax(capital_gain, state_code)
    total_tax = federal_tax + state_calculation.tax_amount
    return CombinedTax(
        federal_tax=federal_tax,
        state_tax=state_calculation.tax_amount,
        total_tax=round2(total_tax),
        effective_rate=total_tax / capital_gain if capital_gain > 0 else 0.0,
        state_calculation=state_calculation,
    )


# -----------------------------------------------------------------------------
# State comparisons
# -----------------------------------------------------------------------------

def compare_states(capital_gain: float, state_codes: List[str]) -> List[StateComparison]:
    """Tax in each state plus the savings relative to the most expensive one."""
    calculations = [calculate_state_tax(capital_gain, code) for code in state_codes]
    if not calculations:
        return []
    max_tax = max(calc.tax_amount for calc in calculations)
    return [
        StateComparison(**calc.model_dump(), savings=round2(max_tax - calc.tax_amount))
        for calc in calculations
    ]


def get_relocation_tax_impact(capital_gain: float, from_state: str, to_state: str) -> RelocationImpact:
    from_calc = calculate_state_tax(capital_gain, from_state)
    to_calc = calculate_state_tax(capital_gain, to_state)
    tax_difference = to_calc.tax_amount - from_calc.tax_amount

    if abs(tax_difference) < MINIMAL_IMPACT_THRESHOLD:
        recommendation = "Tax impact is minimal between these states"
    elif tax_difference > 0:
        recommendation = f"Moving to {to_calc.state_name} would increase tax by {format_currency(abs(tax_difference))}"
    else:
        recommendation = f"Moving to {to_calc.state_name} would save {format_currency(abs(tax_difference))} in taxes"

    return RelocationImpact(
        from_state=from_calc,
        to_state=to_calc,
        tax_difference=round2(tax_difference),
        savings=round2(-tax_difference),
        recommendation=recommendation,
    )


def calculate_no_tax_state_savings(capital_gain: float, current_state: str) -> NoTaxStateSavings:
    current = calculate_state_tax(capital_gain, current_state)
    potential_savings = current.tax_amount

    if potential_savings == 0:
        recommendation = f"{current.state_name} already has no capital gains tax"
    elif potential_savings < LOW_SAVINGS_THRESHOLD:
        recommendation = "Tax savings from relocation may not justify moving costs"
    elif potential_savings < MODERATE_SAVINGS_THRESHOLD:
        recommendation = "Moderate tax savings possible, consider relocation costs and other factors"
    else:
        recommendation = "Significant tax savings possible, relocation may be worthwhile for large gains"

    return NoTaxStateSavings(
        current_tax=current.tax_amount,
        potential_savings=potential_savings,
        no_tax_states=get_no_tax_states(),
        recommendation=recommendation,
    )
