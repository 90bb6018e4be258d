from typing import Optional, List, Dict, Literal, Union, Any, Annotated
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, BeforeValidator, model_validator
from pydantic.alias_generators import to_camel

from .money import parse_number, parse_optional_number
from .tax_config import FilingStatus

INVESTMENT = "investment"
PROPERTY = "property"


def _as_text(value: Any) -> Any:
    """Inputs are kept as the raw text the user typed; numbers become text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return value


def _as_whole_number(value: Any) -> int:
    return int(parse_number(value))


def _as_optional_whole_number(value: Any) -> Optional[int]:
    number = parse_optional_number(value)
    return None if number is None else int(number)


def _none_to_blank(value: Any) -> Any:
    return "" if value is None else value


# Numeric fields never reject what the user typed: invalid text becomes 0 (or None)
NumericText = Annotated[str, BeforeValidator(_as_text)]
NumericFloat = Annotated[float, BeforeValidator(parse_number)]
NumericInt = Annotated[int, BeforeValidator(_as_whole_number)]
OptionalFloat = Annotated[Optional[float], BeforeValidator(parse_optional_number)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_as_optional_whole_number)]
AssetId = Annotated[str, BeforeValidator(_none_to_blank)]


class CamelModel(BaseModel):
    """JSON uses camelCase keys; Python code uses snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)


# -----------------------------------------------------------------------------
# Inputs
# -----------------------------------------------------------------------------

class InvestmentInputs(CamelModel):
    initial_amount: NumericText = "10000"
    rate_of_return: NumericText = "7"
    inflation_rate: NumericText = "2.5"
    annual_contribution: NumericText = "5000"  # negative means withdrawal


class SaleConfig(CamelModel):
    is_planned_for_sale: bool = False
    sale_year: OptionalInt = None  # 1-based projection year
    sale_month: NumericInt = 6
    expected_sale_price: OptionalFloat = None
    use_projected_value: bool = True
    selling_costs_percentage: NumericFloat = 7.0
    reinvest_proceeds: bool = True
    target_investment_id: Optional[str] = None

    # Cost basis
    capital_improvements: NumericText = ""
    original_buying_costs: NumericText = ""

    # Tax profile
    filing_status: FilingStatus = FilingStatus.SINGLE
    annual_income: NumericText = ""
    state: str = "CA"
    enable_state_tax: bool = True
    other_capital_gains: NumericText = ""
    carryover_losses: NumericText = ""

    # Section 121
    is_primary_residence: bool = False
    years_owned: NumericText = ""  # blank: derived from years bought + sale year
    years_lived: NumericText = ""  # blank: same as years owned for a primary residence
    has_used_exclusion_in_last_two_years: bool = False
    enable_section121: bool = True

    # Depreciation recapture
    enable_depreciation_recapture: bool = False
    total_depreciation_taken: NumericText = ""  # blank: estimated straight-line
    land_value_percentage: NumericText = "20"


class PropertyInputs(CamelModel):
    purchase_price: NumericText = "500000"
    down_payment_percentage: NumericText = "20"
    interest_rate: NumericText = "7"
    loan_term: NumericText = "30"
    inflation_rate: NumericText = "2.5"
    years_bought: NumericText = "0"
    property_growth_rate: NumericText = "3"
    monthly_payment: NumericText = ""  # blank: calculated principal and interest
    linked_investment_id: AssetId = ""
    property_growth_model: Literal["purchase_price", "current_value"] = "purchase_price"
    current_estimated_value: NumericText = ""

    # Rental
    is_rental_property: bool = False
    monthly_rent: NumericText = "2000"
    rent_growth_rate: NumericText = "3"
    vacancy_rate: NumericText = "5"
    maintenance_rate: NumericText = "2"  # percent of property value per year
    property_management_enabled: bool = False
    listing_fee_rate: NumericText = "100"  # percent of one month's rent per new tenant
    monthly_management_fee_rate: NumericText = "10"  # percent of collected rent

    sale_config: SaleConfig = Field(default_factory=SaleConfig)

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_fields(cls, data: Any) -> Any:
        """Older exports carried a flat annualExpenses amount instead of a maintenance rate."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy_expenses = data.pop("annualExpenses", None)
        if legacy_expenses is not None and "maintenanceRate" not in data and "maintenance_rate" not in data:
            purchase_price = parse_number(data.get("purchasePrice", data.get("purchase_price")))
            expenses = parse_number(legacy_expenses)
            if purchase_price > 0 and expenses > 0:
                data["maintenanceRate"] = f"{expenses / purchase_price * 100:.2f}"
        return data


# -----------------------------------------------------------------------------
# Projection context and results
# -----------------------------------------------------------------------------

class ProjectionHorizon(BaseModel):
    """Portfolio-wide timeline handed to every asset when it recomputes."""
    model_config = ConfigDict(frozen=True)

    years: int = 10
    starting_year: int = 2024


class InvestmentResult(CamelModel):
    year: int
    actual_year: int
    balance: float
    real_balance: float
    annual_contribution: float = 0.0  # direct contribution only
    real_annual_contribution: float = 0.0
    property_cash_flow: float = 0.0
    real_property_cash_flow: float = 0.0
    total_cash_flow: float = 0.0
    net_contributions_to_date: float = 0.0
    total_earnings: float = 0.0
    real_total_earnings: float = 0.0
    yearly_gain: float = 0.0
    real_yearly_gain: float = 0.0
    annual_investment_gain: float = 0.0
    real_annual_investment_gain: float = 0.0


class InvestmentSummary(CamelModel):
    initial_amount: float
    manual_contributed: float
    manual_withdrawn: float
    property_cash_flow_contributed: float
    property_cash_flow_withdrawn: float
    total_property_cash_flow: float
    total_contributed: float
    total_withdrawn: float
    net_contributions: float
    total_earnings: float
    real_total_earnings: float
    total_return_percentage: float
    final_balance: float
    real_final_balance: float
    final_net_gain: float
    real_final_net_gain: float


class PropertyResult(CamelModel):
    year: int
    actual_year: int
    balance: float  # property value
    real_balance: float
    mortgage_balance: float
    real_mortgage_balance: float
    monthly_payment: float
    principal_interest_payment: float
    other_fees_payment: float
    principal_paid: float = 0.0
    interest_paid: float = 0.0
    annual_mortgage_payment: float = 0.0

    # Rental
    annual_rental_income: float = 0.0
    maintenance_expenses: float = 0.0
    listing_expenses: float = 0.0
    management_expenses: float = 0.0
    total_rental_expenses: float = 0.0

    annual_cash_flow: float = 0.0
    real_annual_cash_flow: float = 0.0

    # Sale
    is_sale_year: bool = False
    is_post_sale: bool = False
    sale_price: Optional[float] = None
    selling_costs: Optional[float] = None
    pre_sale_mortgage_balance: Optional[float] = None
    net_sale_proceeds: Optional[float] = None
    capital_gains_tax: Optional[float] = None
    sale_proceeds: Optional[float] = None  # after tax


class SaleAnalysis(CamelModel):
    sale_year: int
    sale_month: int
    projected_sale_price: float
    effective_sale_price: float
    selling_costs: float
    remaining_mortgage: float
    adjusted_cost_basis: float
    depreciation_taken: float
    capital_gain: float
    section_121_exclusion: float
    section_121_eligible: bool
    section_121_reason: Optional[str] = None
    taxable_gain: float
    federal_tax: float
    federal_tax_rate: float
    state_tax: float
    state_tax_rate: float
    state_tax_notes: Optional[str] = None
    depreciation_recapture_tax: float
    total_tax: float
    effective_tax_rate: float
    net_sale_proceeds: float
    net_after_tax_proceeds: float


class AssetBreakdown(CamelModel):
    asset_id: str
    asset_name: str
    asset_type: Literal["investment", "property"]
    balance: float
    real_balance: float
    contribution: float
    real_contribution: float
    earnings: float
    real_earnings: float
    yearly_gain: float
    real_yearly_gain: float

    # Property rows only
    property_value: Optional[float] = None
    mortgage_balance: Optional[float] = None
    monthly_payment: Optional[float] = None
    principal_interest_payment: Optional[float] = None
    other_fees_payment: Optional[float] = None


class CombinedResult(CamelModel):
    year: int
    actual_year: int
    total_balance: float = 0.0
    total_real_balance: float = 0.0
    total_contributions: float = 0.0
    total_real_contributions: float = 0.0
    total_earnings: float = 0.0
    total_real_earnings: float = 0.0
    total_yearly_gain: float = 0.0
    total_real_yearly_gain: float = 0.0
    total_property_value: float = 0.0
    total_real_property_value: float = 0.0
    total_mortgage_balance: float = 0.0
    total_property_equity: float = 0.0
    total_real_property_equity: float = 0.0
    total_investment_balance: float = 0.0
    total_real_investment_balance: float = 0.0
    asset_breakdown: List[AssetBreakdown] = Field(default_factory=list)


class PortfolioSummary(CamelModel):
    total_initial_investment: float
    total_contributed: float
    total_withdrawn: float
    net_contributions: float
    total_return_percentage: float


# -----------------------------------------------------------------------------
# Serialized assets (tagged union on "type")
# -----------------------------------------------------------------------------

class InvestmentRecord(CamelModel):
    id: str
    name: str
    type: Literal["investment"] = INVESTMENT
    enabled: bool = True
    inputs: InvestmentInputs = Field(default_factory=InvestmentInputs)
    inflation_adjusted_contributions: bool = False
    show_balance: bool = True
    show_contributions: bool = True
    show_net_gain: bool = True
    show_nominal: bool = True
    show_real: bool = False


class PropertyRecord(CamelModel):
    id: str
    name: str
    type: Literal["property"] = PROPERTY
    enabled: bool = True
    inputs: PropertyInputs = Field(default_factory=PropertyInputs)
    show_balance: bool = True
    show_contributions: bool = True
    show_net_gain: bool = True
    show_nominal: bool = True
    show_real: bool = False


AssetRecord = Annotated[Union[InvestmentRecord, PropertyRecord], Field(discriminator="type")]


class PortfolioData(CamelModel):
    assets: List[AssetRecord] = Field(default_factory=list)
    active_tab_id: str = "combined"
    years: NumericText = "10"
    inflation_rate: NumericText = "2.5"
    starting_year: int = 2024
    show_nominal: bool = True
    show_real: bool = False


# -----------------------------------------------------------------------------
# API schemas
# -----------------------------------------------------------------------------

class AssetProjection(CamelModel):
    id: str
    name: str
    type: Literal["investment", "property"]
    enabled: bool
    investment_results: Optional[List[InvestmentResult]] = None
    investment_summary: Optional[InvestmentSummary] = None
    warnings: List[str] = Field(default_factory=list)
    property_results: Optional[List[PropertyResult]] = None
    sale_analysis: Optional[SaleAnalysis] = None


class ProjectionResponse(CamelModel):
    assets: List[AssetProjection]
    combined: List[CombinedResult]
    summary: PortfolioSummary


class SavedPortfolioBase(BaseModel):
    name: str
    description: Optional[str] = None


class SavedPortfolioCreate(SavedPortfolioBase):
    data: Optional[PortfolioData] = None  # None: start from the default portfolio


class SavedPortfolioUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    data: Optional[PortfolioData] = None


class SavedPortfolioRead(SavedPortfolioBase):
    id: int
    created_at: datetime
    updated_at: datetime


class StateComparisonRequest(BaseModel):
    capital_gain: float
    state_codes: List[str]


class RelocationRequest(BaseModel):
    capital_gain: float
    from_state: str
    to_state: str


class NoTaxStateSavingsRequest(BaseModel):
    capital_gain: float
    current_state: str


class MortgageScheduleRequest(BaseModel):
    principal: float
    annual_rate: float
    term_years: int = 30
    years_bought: int = 0
    horizon_years: int = 30
    payment_override: Optional[float] = None


def resolve_input_field(model: type[BaseModel], key: str) -> str:
    """Accept either the snake_case attribute or its camelCase JSON alias."""
    if key in model.model_fields:
        return key
    for name, field in model.model_fields.items():
        if field.alias == key:
            return name
    raise KeyError(f"Unknown input field: {key}")


class SavedPortfolioDetail(SavedPortfolioRead):
    data: Dict[str, Any]
