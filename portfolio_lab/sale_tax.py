import logging
from typing import List, Optional
from pydantic import BaseModel

from .money import round2
from .tax_config import (
    FilingStatus, REFERENCE_TAX_YEAR,
    get_section_121_exclusion_amount, get_federal_ordinary_brackets, find_bracket,
)
from .tax_engine import (
    FederalTaxCalculation, StateTaxCalculation,
    calculate_federal_tax_with_adjustments, calculate_state_tax,
)

logger = logging.getLogger(__name__)

OWNERSHIP_REQUIREMENT_YEARS = 2
USE_REQUIREMENT_YEARS = 2
EXCLUSION_WAITING_PERIOD_YEARS = 2

RESIDENTIAL_RECOVERY_YEARS = 27.5
COMMERCIAL_RECOVERY_YEARS = 39.0
MAX_RECAPTURE_RATE = 0.25

SECTION_121_DISABLED_REASON = "Sale not configured or Section 121 disabled"
STATE_TAX_DISABLED_NOTE = "State tax disabled or sale not configured"


class Section121Requirements(BaseModel):
    is_primary_residence: bool = False
    years_owned: float = 0.0
    years_lived: float = 0.0
    has_used_exclusion_in_last_two_years: bool = False


class Section121Exclusion(BaseModel):
    is_eligible: bool
    max_exclusion: float = 0.0
    applied_exclusion: float = 0.0
    remaining_gain: float
    reason: Optional[str] = None


class EligibilityCheck(BaseModel):
    requirement: str
    met: bool
    details: str


class EligibilityDetails(BaseModel):
    checks: List[EligibilityCheck]
    overall_eligible: bool


class DepreciationRecapture(BaseModel):
    total_depreciation: float = 0.0
    recapture_amount: float = 0.0
    recapture_rate: float = 0.0
    recapture_tax: float = 0.0
    notes: str = ""


class SaleTaxBreakdown(BaseModel):
    """Every tax line of a property sale."""
    capital_gain: float
    depreciation_recapture: DepreciationRecapture
    section_121: Section121Exclusion
    taxable_gain: float
    federal: FederalTaxCalculation
    state: StateTaxCalculation
    total_tax: float


# -----------------------------------------------------------------------------
# Section 121 primary residence exclusion
# -----------------------------------------------------------------------------

def get_max_exclusion(filing_status: FilingStatus) -> float:
    return get_section_121_exclusion_amount(filing_status)


def check_basic_eligibility(requirements: Section121Requirements) -> bool:
    return (
        requirements.is_primary_residence
        and requirements.years_owned >= OWNERSHIP_REQUIREMENT_YEARS
        and requirements.years_lived >= USE_REQUIREMENT_YEARS
        and not requirements.has_used_exclusion_in_last_two_years
    )


def _ineligibility_reason(requirements: Section121Requirements) -> Optional[str]:
    if not requirements.is_primary_residence:
        return "Property is not a primary residence"
    if requirements.years_owned < OWNERSHIP_REQUIREMENT_YEARS:
        return (
            f"Ownership requirement not met. Must own for at least {OWNERSHIP_REQUIREMENT_YEARS} years "
            f"(owned: {requirements.years_owned:g} years)"
        )
    if requirements.years_lived < USE_REQUIREMENT_YEARS:
        return (
            f"Use requirement not met. Must live in home for at least {USE_REQUIREMENT_YEARS} years "
            f"(lived: {requirements.years_lived:g} years)"
        )
    if requirements.has_used_exclusion_in_last_two_years:
        return f"Exclusion already used within the last {EXCLUSION_WAITING_PERIOD_YEARS} years"
    return None


def calculate_section_121_exclusion(
    capital_gain: float,
    filing_status: FilingStatus,
    requirements: Section121Requirements
) -> Section121Exclusion:
    reason = _ineligibility_reason(requirements)
    if reason is not None:
        return Section121Exclusion(is_eligible=False, remaining_gain=capital_gain, reason=reason)

    max_exclusion = get_max_exclusion(filing_status)
    applied = min(max(0.0, capital_gain), max_exclusion)
    return Section121Exclusion(
        is_eligible=True,
        max_exclusion=max_exclusion,
        applied_exclusion=round2(applied),
        remaining_gain=round2(capital_gain - applied),
    )


def get_eligibility_details(requirements: Section121Requirements) -> EligibilityDetails:
    checks = [
        EligibilityCheck(
            requirement="Primary Residence",
            met=requirements.is_primary_residence,
            details=("Property is designated as primary residence" if requirements.is_primary_residence
                     else "Property must be your primary residence"),
        ),
        EligibilityCheck(
            requirement="Ownership Requirement",
            met=requirements.years_owned >= OWNERSHIP_REQUIREMENT_YEARS,
            details=(f"Must own for at least {OWNERSHIP_REQUIREMENT_YEARS} years "
                     f"(currently: {requirements.years_owned:g} years)"),
        ),
        EligibilityCheck(
            requirement="Use Requirement",
            met=requirements.years_lived >= USE_REQUIREMENT_YEARS,
            details=(f"Must live in home for at least {USE_REQUIREMENT_YEARS} years "
                     f"(currently: {requirements.years_lived:g} years)"),
        ),
        EligibilityCheck(
            requirement="Previous Use Restriction",
            met=not requirements.has_used_exclusion_in_last_two_years,
            details=(f"Cannot use exclusion if used within last {EXCLUSION_WAITING_PERIOD_YEARS} years"
                     if requirements.has_used_exclusion_in_last_two_years else "No recent use of exclusion"),
        ),
    ]
    return EligibilityDetails(checks=checks, overall_eligible=all(check.met for check in checks))


# -----------------------------------------------------------------------------
# Depreciation recapture
# -----------------------------------------------------------------------------

def get_ordinary_income_rate(annual_income: float, filing_status: FilingStatus, year: int = REFERENCE_TAX_YEAR) -> float:
    return find_bracket(get_federal_ordinary_brackets(filing_status, year), annual_income).rate


def calculate_depreciation_recapture(
    total_depreciation: float,
    annual_income: float,
    filing_status: FilingStatus
) -> DepreciationRecapture:
    """
    Depreciation taken on a rental is taxed on sale at the ordinary income
    rate, capped at 25%.
    """
    if total_depreciation <= 0:
        return DepreciationRecapture(notes="No depreciation recapture - no depreciation taken")

    rate = min(get_ordinary_income_rate(annual_income, filing_status), MAX_RECAPTURE_RATE)
    return DepreciationRecapture(
        total_depreciation=total_depreciation,
        recapture_amount=total_depreciation,
        recapture_rate=rate,
        recapture_tax=round2(total_depreciation * rate),
        notes=f"Depreciation recapture taxed at {rate * 100:.1f}% (ordinary income rate capped at 25%)",
    )


def calculate_annual_depreciation(building_value: float, is_residential: bool = True) -> float:
    recovery_years = RESIDENTIAL_RECOVERY_YEARS if is_residential else COMMERCIAL_RECOVERY_YEARS
    return max(0.0, building_value) / recovery_years


def calculate_total_depreciation(building_value: float, years_owned: float, is_residential: bool = True) -> float:
    recovery_years = RESIDENTIAL_RECOVERY_YEARS if is_residential else COMMERCIAL_RECOVERY_YEARS
    years = min(max(0.0, years_owned), recovery_years)
    return calculate_annual_depreciation(building_value, is_residential) * years


def estimate_land_value(property_value: float, land_percentage: float = 0.20) -> float:
    return property_value * land_percentage


# -----------------------------------------------------------------------------
# Full sale roll-up
# -----------------------------------------------------------------------------

def calculate_sale_taxes(
    capital_gain: float,
    annual_income: float,
    filing_status: FilingStatus,
    state_code: str,
    enable_state_tax: bool = True,
    other_capital_gains: float = 0.0,
    carryover_losses: float = 0.0,
    enable_section_121: bool = True,
    requirements: Optional[Section121Requirements] = None,
    depreciation_taken: float = 0.0,
) -> SaleTaxBreakdown:
    """
    Order of operations:
    1. The depreciation portion of the gain is split off and taxed as recapture.
    2. Section 121 is applied to what remains of the property gain.
    3. Federal and state capital gains tax apply to the remaining gain plus
       other gains less carryover losses.
    """
    recaptured = min(max(0.0, depreciation_taken), max(0.0, capital_gain))
    recapture = calculate_depreciation_recapture(recaptured, annual_income, filing_status)
    property_gain = capital_gain - recaptured

    if enable_section_121 and requirements is not None:
        exclusion = calculate_section_121_exclusion(property_gain, filing_status, requirements)
    else:
        exclusion = Section121Exclusion(
            is_eligible=False, remaining_gain=property_gain, reason=SECTION_121_DISABLED_REASON,
        )

    taxable_gain = max(0.0, exclusion.remaining_gain + other_capital_gains - abs(carryover_losses))
    federal = calculate_federal_tax_with_adjustments(
        exclusion.remaining_gain, annual_income, filing_status, other_capital_gains, carryover_losses,
    )
    if enable_state_tax:
        state = calculate_state_tax(taxable_gain, state_code)
    else:
        state = StateTaxCalculation(
            state_code=(state_code or "").upper(), state_name=state_code or "", notes=STATE_TAX_DISABLED_NOTE,
        )

    total_tax = federal.tax_amount + state.tax_amount + recapture.recapture_tax
    logger.debug(
        "Sale taxes: gain=%.2f excluded=%.2f federal=%.2f state=%.2f recapture=%.2f",
        capital_gain, exclusion.applied_exclusion, federal.tax_amount, state.tax_amount, recapture.recapture_tax,
    )
    return SaleTaxBreakdown(
        capital_gain=round2(capital_gain),
        depreciation_recapture=recapture,
        section_121=exclusion,
        taxable_gain=round2(taxable_gain),
        federal=federal,
        state=state,
        total_tax=round2(total_tax),
    )
