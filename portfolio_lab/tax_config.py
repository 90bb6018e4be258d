from typing import List, Dict, Optional
from pydantic import BaseModel
from enum import Enum

REFERENCE_TAX_YEAR = 2024


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_FILING_JOINTLY = "married_joint"
    MARRIED_FILING_SEPARATELY = "married_separate"
    HEAD_OF_HOUSEHOLD = "head_of_household"


class TaxBracket(BaseModel):
    min: float
    max: float | None  # None means "no upper limit"
    rate: float

    def contains(self, income: float) -> bool:
        return income >= self.min and (self.max is None or income < self.max)


class StateTaxInfo(BaseModel):
    code: str
    name: str
    has_capital_gains_tax: bool
    rate: float
    notes: Optional[str] = None
    is_simplified: bool = False


# -----------------------------------------------------------------------------
# 1. Federal Long-Term Capital Gains Config
# -----------------------------------------------------------------------------
# The rate is picked by the bracket containing annual income and applied flat
# to the whole gain.
FEDERAL_LTCG_TABLES: Dict[int, Dict[FilingStatus, List[TaxBracket]]] = {
    2024: {
        FilingStatus.SINGLE: [
            TaxBracket(min=0.0, max=47025.0, rate=0.0),
            TaxBracket(min=47025.0, max=518900.0, rate=0.15),
            TaxBracket(min=518900.0, max=None, rate=0.20),
        ],
        FilingStatus.MARRIED_FILING_JOINTLY: [
            TaxBracket(min=0.0, max=94050.0, rate=0.0),
            TaxBracket(min=94050.0, max=583750.0, rate=0.15),
            TaxBracket(min=583750.0, max=None, rate=0.20),
        ],
        FilingStatus.MARRIED_FILING_SEPARATELY: [
            TaxBracket(min=0.0, max=47025.0, rate=0.0),
            TaxBracket(min=47025.0, max=291875.0, rate=0.15),
            TaxBracket(min=291875.0, max=None, rate=0.20),
        ],
        FilingStatus.HEAD_OF_HOUSEHOLD: [
            TaxBracket(min=0.0, max=63000.0, rate=0.0),
            TaxBracket(min=63000.0, max=551350.0, rate=0.15),
            TaxBracket(min=551350.0, max=None, rate=0.20),
        ],
    }
}

# -----------------------------------------------------------------------------
# 2. Federal Ordinary Income Config (marginal rate lookup for recapture)
# -----------------------------------------------------------------------------
# Source (approximate for 2024): https://www.irs.gov/newsroom/irs-provides-tax-inflation-adjustments-for-tax-year-2024
FEDERAL_ORDINARY_TABLES: Dict[int, Dict[FilingStatus, List[TaxBracket]]] = {
    2024: {
        FilingStatus.SINGLE: [
            TaxBracket(min=0.0, max=11600.0, rate=0.10),
            TaxBracket(min=11600.0, max=47150.0, rate=0.12),
            TaxBracket(min=47150.0, max=100525.0, rate=0.22),
            TaxBracket(min=100525.0, max=191950.0, rate=0.24),
            TaxBracket(min=191950.0, max=243725.0, rate=0.32),
            TaxBracket(min=243725.0, max=609350.0, rate=0.35),
            TaxBracket(min=609350.0, max=None, rate=0.37),
        ],
        FilingStatus.MARRIED_FILING_JOINTLY: [
            TaxBracket(min=0.0, max=23200.0, rate=0.10),
            TaxBracket(min=23200.0, max=94300.0, rate=0.12),
            TaxBracket(min=94300.0, max=201050.0, rate=0.22),
            TaxBracket(min=201050.0, max=383900.0, rate=0.24),
            TaxBracket(min=383900.0, max=487450.0, rate=0.32),
            TaxBracket(min=487450.0, max=731200.0, rate=0.35),
            TaxBracket(min=731200.0, max=None, rate=0.37),
        ],
        FilingStatus.MARRIED_FILING_SEPARATELY: [
            TaxBracket(min=0.0, max=11600.0, rate=0.10),
            TaxBracket(min=11600.0, max=47150.0, rate=0.12),
            TaxBracket(min=47150.0, max=100525.0, rate=0.22),
            TaxBracket(min=100525.0, max=191950.0, rate=0.24),
            TaxBracket(min=191950.0, max=243725.0, rate=0.32),
            TaxBracket(min=243725.0, max=365600.0, rate=0.35),
            TaxBracket(min=365600.0, max=None, rate=0.37),
        ],
        FilingStatus.HEAD_OF_HOUSEHOLD: [
            TaxBracket(min=0.0, max=16550.0, rate=0.10),
            TaxBracket(min=16550.0, max=63100.0, rate=0.12),
            TaxBracket(min=63100.0, max=100500.0, rate=0.22),
            TaxBracket(min=100500.0, max=191950.0, rate=0.24),
            TaxBracket(min=191950.0, max=243700.0, rate=0.32),
            TaxBracket(min=243700.0, max=609350.0, rate=0.35),
            TaxBracket(min=609350.0, max=None, rate=0.37),
        ],
    }
}

# -----------------------------------------------------------------------------
# 3. Section 121 (primary residence) exclusion amounts
# -----------------------------------------------------------------------------
SECTION_121_EXCLUSION_AMOUNTS: Dict[FilingStatus, float] = {
    FilingStatus.SINGLE: 250000.0,
    FilingStatus.MARRIED_FILING_JOINTLY: 500000.0,
    FilingStatus.MARRIED_FILING_SEPARATELY: 250000.0,
    FilingStatus.HEAD_OF_HOUSEHOLD: 250000.0,
}

# -----------------------------------------------------------------------------
# 4. State capital gains rates (top marginal rate, simplified)
# -----------------------------------------------------------------------------
_NO_INCOME_TAX = "No state income tax"


def _state(code: str, name: str, rate: float, notes: str, simplified: bool = True) -> StateTaxInfo:
    return StateTaxInfo(
        code=code,
        name=name,
        has_capital_gains_tax=rate > 0,
        rate=rate,
        notes=notes,
        is_simplified=simplified and rate > 0,
    )


STATE_TAX_RATES: Dict[str, StateTaxInfo] = {
    info.code: info
    for info in [
        # No capital gains tax
        _state("AK", "Alaska", 0.0, _NO_INCOME_TAX),
        _state("FL", "Florida", 0.0, _NO_INCOME_TAX),
        _state("NV", "Nevada", 0.0, _NO_INCOME_TAX),
        _state("NH", "New Hampshire", 0.0, "No tax on capital gains (interest and dividends are taxed)"),
        _state("SD", "South Dakota", 0.0, _NO_INCOME_TAX),
        _state("TN", "Tennessee", 0.0, _NO_INCOME_TAX),
        _state("TX", "Texas", 0.0, _NO_INCOME_TAX),
        _state("WA", "Washington", 0.07, "7% capital gains tax on gains over $250,000 (enacted 2021)", simplified=False),
        _state("WY", "Wyoming", 0.0, _NO_INCOME_TAX),
        # High tax
        _state("CA", "California", 0.133, "Highest marginal rate 13.3% (includes 1% Mental Health Tax)"),
        _state("NY", "New York", 0.109, "Highest marginal rate 10.9% (plus local taxes)"),
        _state("NJ", "New Jersey", 0.1075, "Highest marginal rate 10.75%"),
        _state("HI", "Hawaii", 0.11, "Highest marginal rate 11%"),
        _state("CT", "Connecticut", 0.069, "Highest marginal rate 6.9%"),
        _state("MA", "Massachusetts", 0.05, "Flat rate 5% (12% for short-term gains)"),
        _state("MD", "Maryland", 0.0575, "Highest marginal rate 5.75%"),
        _state("OR", "Oregon", 0.099, "Highest marginal rate 9.9%"),
        _state("MN", "Minnesota", 0.0985, "Highest marginal rate 9.85%"),
        # Moderate
        _state("AZ", "Arizona", 0.045, "Flat rate 4.5%"),
        _state("CO", "Colorado", 0.044, "Flat rate 4.4%"),
        _state("GA", "Georgia", 0.0575, "Highest marginal rate 5.75%"),
        _state("IL", "Illinois", 0.045, "Flat rate 4.5%"),
        _state("IN", "Indiana", 0.032, "Flat rate 3.2%"),
        _state("KY", "Kentucky", 0.05, "Flat rate 5%"),
        _state("MI", "Michigan", 0.0425, "Flat rate 4.25%"),
        _state("NC", "North Carolina", 0.0475, "Flat rate 4.75%"),
        _state("OH", "Ohio", 0.0399, "Highest marginal rate 3.99%"),
        _state("PA", "Pennsylvania", 0.0307, "Flat rate 3.07%"),
        _state("SC", "South Carolina", 0.07, "Highest marginal rate 7% (with some exclusions available)"),
        _state("UT", "Utah", 0.0485, "Flat rate 4.85%"),
        _state("VA", "Virginia", 0.0575, "Highest marginal rate 5.75%"),
        _state("WI", "Wisconsin", 0.0765, "Highest marginal rate 7.65%"),
        # Remaining states
        _state("AL", "Alabama", 0.05, "Highest marginal rate 5%"),
        _state("AR", "Arkansas", 0.055, "Highest marginal rate 5.5%"),
        _state("DE", "Delaware", 0.066, "Highest marginal rate 6.6%"),
        _state("ID", "Idaho", 0.06, "Highest marginal rate 6%"),
        _state("IA", "Iowa", 0.054, "Highest marginal rate 5.4%"),
        _state("KS", "Kansas", 0.057, "Highest marginal rate 5.7%"),
        _state("LA", "Louisiana", 0.06, "Highest marginal rate 6%"),
        _state("ME", "Maine", 0.0715, "Highest marginal rate 7.15%"),
        _state("MS", "Mississippi", 0.05, "Highest marginal rate 5%"),
        _state("MO", "Missouri", 0.054, "Highest marginal rate 5.4%"),
        _state("MT", "Montana", 0.0675, "Highest marginal rate 6.75%"),
        _state("NE", "Nebraska", 0.0684, "Highest marginal rate 6.84%"),
        _state("NM", "New Mexico", 0.059, "Highest marginal rate 5.9%"),
        _state("ND", "North Dakota", 0.0295, "Highest marginal rate 2.95%"),
        _state("OK", "Oklahoma", 0.05, "Highest marginal rate 5%"),
        _state("RI", "Rhode Island", 0.0599, "Highest marginal rate 5.99%"),
        _state("VT", "Vermont", 0.0875, "Highest marginal rate 8.75%"),
        _state("WV", "West Virginia", 0.065, "Highest marginal rate 6.5%"),
        _state("DC", "District of Columbia", 0.0975, "Highest marginal rate 9.75%"),
    ]
}


def _get_table_for_year_and_status(
    tables: Dict[int, Dict[FilingStatus, List[TaxBracket]]],
    year: int,
    filing_status: FilingStatus
) -> List[TaxBracket]:
    """
    Helper to look up a bracket table.
    Strategy:
    1. Look for exact year.
    2. If not found, use the MAX available year (latest known logic).
    3. If filing status not found for that year, raise ValueError.
    """
    if not tables:
        raise ValueError("No tax tables configured.")

    target_year = year if year in tables else max(tables.keys())
    year_tables = tables[target_year]

    status = FilingStatus(filing_status)
    if status not in year_tables:
        raise ValueError(f"Filing status {filing_status} not found in tax tables for year {target_year}")

    return year_tables[status]


def get_federal_ltcg_brackets(filing_status: FilingStatus, year: int = REFERENCE_TAX_YEAR) -> List[TaxBracket]:
    return _get_table_for_year_and_status(FEDERAL_LTCG_TABLES, year, filing_status)


def get_federal_ordinary_brackets(filing_status: FilingStatus, year: int = REFERENCE_TAX_YEAR) -> List[TaxBracket]:
    return _get_table_for_year_and_status(FEDERAL_ORDINARY_TABLES, year, filing_status)


def find_bracket(brackets: List[TaxBracket], income: float) -> TaxBracket:
    """Bracket with min <= income < max, falling back to the top bracket."""
    for bracket in brackets:
        if bracket.contains(income):
            return bracket
    return brackets[-1]


def get_section_121_exclusion_amount(filing_status: FilingStatus) -> float:
    return SECTION_121_EXCLUSION_AMOUNTS[FilingStatus(filing_status)]


def get_state_tax_info(state_code: str) -> Optional[StateTaxInfo]:
    """Case-insensitive state lookup; None when the code is unknown."""
    if not state_code:
        return None
    return STATE_TAX_RATES.get(state_code.strip().upper())


def has_capital_gains_tax(state_code: str) -> bool:
    info = get_state_tax_info(state_code)
    return bool(info and info.has_capital_gains_tax)


def get_state_tax_rate(state_code: str) -> float:
    info = get_state_tax_info(state_code)
    return info.rate if info else 0.0


def get_no_tax_states() -> List[str]:
    return [code for code, info in STATE_TAX_RATES.items() if not info.has_capital_gains_tax]


def get_states_by_tax_rate() -> List[StateTaxInfo]:
    """All states ordered from the lowest to the highest rate."""
    return sorted(STATE_TAX_RATES.values(), key=lambda info: info.rate)


def get_state_choices() -> List[Dict[str, str]]:
    """Alphabetical (by name) value/label pairs for state pickers."""
    return [
        {"value": info.code, "label": f"{info.name} ({info.code})"}
        for info in sorted(STATE_TAX_RATES.values(), key=lambda info: info.name)
    ]


def format_tax_rate(rate: float, digits: int = 1) -> str:
    return f"{rate * 100:.{digits}f}%"


def format_currency(amount: float) -> str:
    """Whole-dollar USD formatting, e.g. -$1,234."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"
