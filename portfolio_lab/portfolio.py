import json
import logging
import uuid
from typing import Dict, List, Optional, Any

from .asset_factory import Asset, create_asset, create_asset_from_json, is_investment, is_property
from .investment import InvestmentAsset
from .money import parse_number, parse_int, inflation_factor, round2
from .property import PropertyAsset
from .schemas import (
    INVESTMENT, PROPERTY, AssetBreakdown, CombinedResult, PortfolioData, PortfolioSummary, ProjectionHorizon,
    InvestmentRecord,
)
from .settings import PortfolioDefaults

logger = logging.getLogger(__name__)

COMBINED_TAB = "combined"


class Portfolio:
    """
    Owns every asset (in insertion order) and the portfolio-wide timeline.

    Properties are recomputed before investments because linked property cash
    flows feed into the investments they point at. All mutators go through
    here so that dependent assets are refreshed together.
    """

    def __init__(self, defaults: Optional[PortfolioDefaults] = None):
        self.defaults = defaults or PortfolioDefaults()
        self.assets: Dict[str, Asset] = {}
        self.years = self.defaults.years
        self.inflation_rate = self.defaults.inflation_rate
        self.starting_year = self.defaults.starting_year
        self.active_tab_id = COMBINED_TAB
        self.show_nominal = True
        self.show_real = False
        self._saved_snapshot: Optional[str] = None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def years_number(self) -> int:
        return max(1, parse_int(self.years, 1))

    @property
    def horizon(self) -> ProjectionHorizon:
        return ProjectionHorizon(years=self.years_number, starting_year=self.starting_year)

    @property
    def assets_list(self) -> List[Asset]:
        return list(self.assets.values())

    @property
    def enabled_assets(self) -> List[Asset]:
        return [asset for asset in self.assets.values() if asset.enabled]

    @property
    def investments(self) -> List[InvestmentAsset]:
        return [asset for asset in self.assets.values() if is_investment(asset)]

    @property
    def properties(self) -> List[PropertyAsset]:
        return [asset for asset in self.assets.values() if is_property(asset)]

    @property
    def has_assets(self) -> bool:
        return len(self.assets) > 0

    @property
    def active_asset(self) -> Optional[Asset]:
        return self.assets.get(self.active_tab_id)

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        return self.assets.get(asset_id)

    def _require(self, asset_id: str) -> Asset:
        asset = self.assets.get(asset_id)
        if asset is None:
            raise KeyError(f"Asset {asset_id} not found")
        return asset

    def linked_properties(self, investment_id: str) -> List[PropertyAsset]:
        return [p for p in self.properties if p.inputs.linked_investment_id == investment_id]

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def get_linked_property_cash_flows(self, investment_id: str) -> List[float]:
        """
        Cash flow into `investment_id` for years 1..years: annual cash flow of
        enabled properties linked to it, plus after-tax sale proceeds of enabled
        properties that are not linked to it but reinvest their sale into it.
        """
        years = self.years_number
        flows = [0.0] * years
        for prop in self.properties:
            if not prop.enabled:
                continue
            directly_linked = prop.inputs.linked_investment_id == investment_id
            sale_config = prop.inputs.sale_config
            reinvests_here = sale_config.reinvest_proceeds and sale_config.target_investment_id == investment_id

            for result in prop.results[1:]:
                if result.year > years:
                    break
                if directly_linked:
                    flows[result.year - 1] += result.annual_cash_flow
                elif reinvests_here and result.is_sale_year and result.sale_proceeds is not None:
                    flows[result.year - 1] += result.sale_proceeds
        return flows

    def recompute(self):
        horizon = self.horizon
        for prop in self.properties:
            prop.recompute(horizon)
        for investment in self.investments:
            investment.recompute(horizon, self.get_linked_property_cash_flows(investment.id))

    def _breakdown(self, asset: Asset, year: int) -> Optional[AssetBreakdown]:
        if year >= len(asset.results):
            return None
        result = asset.results[year]
        if is_investment(asset):
            return AssetBreakdown(
                asset_id=asset.id,
                asset_name=asset.name,
                asset_type=INVESTMENT,
                balance=result.balance,
                real_balance=result.real_balance,
                contribution=result.annual_contribution,
                real_contribution=result.real_annual_contribution,
                earnings=result.total_earnings,
                real_earnings=result.real_total_earnings,
                yearly_gain=result.yearly_gain,
                real_yearly_gain=result.real_yearly_gain,
            )
        factor = inflation_factor(parse_number(asset.inputs.inflation_rate), year)
        return AssetBreakdown(
            asset_id=asset.id,
            asset_name=asset.name,
            asset_type=PROPERTY,
            balance=round2(result.balance - result.mortgage_balance),
            real_balance=round2(result.real_balance - result.real_mortgage_balance),
            contribution=result.annual_mortgage_payment,
            real_contribution=round2(result.annual_mortgage_payment / factor),
            earnings=0.0,
            real_earnings=0.0,
            yearly_gain=0.0,
            real_yearly_gain=0.0,
            property_value=result.balance,
            mortgage_balance=result.mortgage_balance,
            monthly_payment=result.monthly_payment,
            principal_interest_payment=result.principal_interest_payment,
            other_fees_payment=result.other_fees_payment,
        )

    @property
    def combined_results(self) -> List[CombinedResult]:
        """Per-year totals over enabled assets. Property balances count as equity."""
        self.recompute()
        if not self.enabled_assets:
            return []
        combined = []
        for year in range(self.years_number + 1):
            row = CombinedResult(year=year, actual_year=self.starting_year + year)
            for asset in self.enabled_assets:
                breakdown = self._breakdown(asset, year)
                if breakdown is None:
                    continue
                row.asset_breakdown.append(breakdown)
                row.total_balance += breakdown.balance
                row.total_real_balance += breakdown.real_balance
                row.total_contributions += breakdown.contribution
                row.total_real_contributions += breakdown.real_contribution
                row.total_earnings += breakdown.earnings
                row.total_real_earnings += breakdown.real_earnings
                row.total_yearly_gain += breakdown.yearly_gain
                row.total_real_yearly_gain += breakdown.real_yearly_gain

                result = asset.results[year]
                if is_investment(asset):
                    row.total_investment_balance += result.balance
                    row.total_real_investment_balance += result.real_balance
                else:
                    row.total_property_value += result.balance
                    row.total_real_property_value += result.real_balance
                    row.total_mortgage_balance += result.mortgage_balance
                    row.total_property_equity += breakdown.balance
                    row.total_real_property_equity += breakdown.real_balance

            for field in CombinedResult.model_fields:
                if field.startswith("total_"):
                    setattr(row, field, round2(getattr(row, field)))
            combined.append(row)
        return combined

    # ------------------------------------------------------------------
    # Summary metrics
    # ------------------------------------------------------------------

    @property
    def total_initial_investment(self) -> float:
        total = 0.0
        for asset in self.enabled_assets:
            if is_investment(asset):
                total += parse_number(asset.inputs.initial_amount)
            else:
                total += asset.down_payment
        return round2(total)

    @property
    def total_contributed(self) -> float:
        total = 0.0
        for asset in self.enabled_assets:
            if is_investment(asset):
                total += asset.summary_data.manual_contributed
            else:
                total += sum(r.annual_mortgage_payment for r in asset.results[1:])
        return round2(total)

    @property
    def total_withdrawn(self) -> float:
        return round2(sum(a.summary_data.manual_withdrawn for a in self.enabled_assets if is_investment(a)))

    @property
    def net_contributions(self) -> float:
        return round2(self.total_contributed - self.total_withdrawn)

    @property
    def total_return_percentage(self) -> float:
        initial = self.total_initial_investment
        if initial <= 0:
            return 0.0
        combined = self.combined_results
        final_balance = combined[-1].total_balance if combined else 0.0
        return round2((final_balance - initial - self.net_contributions) / initial * 100)

    @property
    def summary(self) -> PortfolioSummary:
        return PortfolioSummary(
            total_initial_investment=self.total_initial_investment,
            total_contributed=self.total_contributed,
            total_withdrawn=self.total_withdrawn,
            net_contributions=self.net_contributions,
            total_return_percentage=self.total_return_percentage,
        )

    # ------------------------------------------------------------------
    # Asset lifecycle
    # ------------------------------------------------------------------

    def _add(self, asset_type: str, name: Optional[str], inputs: Optional[Dict[str, Any]]) -> Asset:
        merged = {"inflationRate": self.inflation_rate}
        merged.update(inputs or {})
        if name is None:
            label = "Asset" if asset_type == INVESTMENT else "Property"
            name = f"{label} {len(self.assets) + 1}"
        asset = create_asset(asset_type, name, merged, self.horizon)
        self.assets[asset.id] = asset
        self.recompute()
        return asset

    def add_investment(self, name: Optional[str] = None, inputs: Optional[Dict[str, Any]] = None) -> InvestmentAsset:
        return self._add(INVESTMENT, name, inputs)

    def add_property(self, name: Optional[str] = None, inputs: Optional[Dict[str, Any]] = None) -> PropertyAsset:
        return self._add(PROPERTY, name, inputs)

    def remove_asset(self, asset_id: str) -> bool:
        """Remove an asset. The last remaining asset is never removed."""
        if len(self.assets) <= 1 or asset_id not in self.assets:
            return False
        del self.assets[asset_id]
        if self.active_tab_id == asset_id:
            self.active_tab_id = COMBINED_TAB
        self.recompute()
        return True

    def duplicate_asset(self, asset_id: str) -> Optional[Asset]:
        source = self.assets.get(asset_id)
        if source is None:
            return None

        record = source.to_record().model_copy(deep=True)
        record.id = str(uuid.uuid4())
        record.name = f"{source.name} (copy)"
        record.enabled = True
        record.inputs.inflation_rate = self.inflation_rate

        if isinstance(record, InvestmentRecord):
            copy = InvestmentAsset.from_record(record, self.horizon)
        else:
            copy = PropertyAsset.from_record(record, self.horizon)
        self.assets[copy.id] = copy
        self.active_tab_id = copy.id
        self.recompute()
        return copy

    def set_asset_enabled(self, asset_id: str, enabled: bool):
        self._require(asset_id).enabled = enabled
        self.recompute()

    def rename_asset(self, asset_id: str, name: str):
        self._require(asset_id).name = name

    def update_asset_input(self, asset_id: str, key: str, value: Any):
        self._require(asset_id).update_input(key, value)
        self.recompute()

    def update_sale_config(self, asset_id: str, key: str, value: Any):
        asset = self._require(asset_id)
        if not is_property(asset):
            raise ValueError(f"Asset {asset_id} is not a property")
        asset.update_sale_config(key, value)
        self.recompute()

    def set_sale_enabled(self, asset_id: str, enabled: bool):
        asset = self._require(asset_id)
        if not is_property(asset):
            raise ValueError(f"Asset {asset_id} is not a property")
        asset.set_sale_enabled(enabled)
        self.recompute()

    def set_inflation_adjusted_contributions(self, asset_id: str, value: bool):
        asset = self._require(asset_id)
        if not is_investment(asset):
            raise ValueError(f"Asset {asset_id} is not an investment")
        asset.set_inflation_adjusted_contributions(value)
        self.recompute()

    # ------------------------------------------------------------------
    # Portfolio settings
    # ------------------------------------------------------------------

    def set_years(self, value: Any):
        self.years = "1" if parse_int(value, 0) < 1 else str(parse_int(value))
        self.recompute()

    def set_inflation_rate(self, value: Any):
        self.inflation_rate = str(value)
        for asset in self.assets.values():
            asset.inputs.inflation_rate = self.inflation_rate
        self.recompute()

    def set_starting_year(self, value: int):
        self.starting_year = int(value)
        self.recompute()

    def set_show_nominal(self, value: bool):
        self.show_nominal = value
        if not value and not self.show_real:
            self.show_real = True

    def set_show_real(self, value: bool):
        self.show_real = value
        if not value and not self.show_nominal:
            self.show_nominal = True

    def set_active_tab(self, tab_id: str):
        self.active_tab_id = tab_id if tab_id in self.assets else COMBINED_TAB

    def clear_all(self):
        """Drop every asset and start over with a single default investment."""
        self.assets.clear()
        self.active_tab_id = COMBINED_TAB
        self.add_investment("Asset 1")
        self.mark_saved()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_data(self) -> PortfolioData:
        return PortfolioData(
            assets=[asset.to_record() for asset in self.assets.values()],
            active_tab_id=self.active_tab_id,
            years=self.years,
            inflation_rate=self.inflation_rate,
            starting_year=self.starting_year,
            show_nominal=self.show_nominal,
            show_real=self.show_real,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.to_data().model_dump(by_alias=True, mode="json")

    def load_portfolio_data(self, data: Dict[str, Any]):
        """Replace the whole portfolio with previously serialized data."""
        parsed = PortfolioData.model_validate({**data, "assets": []})
        years = "1" if parse_int(parsed.years, 0) < 1 else parsed.years
        horizon = ProjectionHorizon(years=parse_int(years, 1), starting_year=parsed.starting_year)

        # A bad record must leave the current portfolio unchanged
        assets: Dict[str, Asset] = {}
        for raw in data.get("assets") or []:
            asset = create_asset_from_json(raw, horizon)
            assets[asset.id] = asset

        self.years = years
        self.inflation_rate = parsed.inflation_rate
        self.starting_year = parsed.starting_year
        self.show_nominal = parsed.show_nominal or not parsed.show_real
        self.show_real = parsed.show_real
        self.assets = assets

        self.active_tab_id = parsed.active_tab_id if parsed.active_tab_id in self.assets else COMBINED_TAB
        self.recompute()
        logger.info("Loaded portfolio with %d assets over %d years", len(self.assets), self.years_number)

    @classmethod
    def from_json(cls, data: Dict[str, Any], defaults: Optional[PortfolioDefaults] = None) -> "Portfolio":
        portfolio = cls(defaults)
        portfolio.load_portfolio_data(data)
        return portfolio

    @property
    def current_portfolio_data(self) -> str:
        return json.dumps(self.to_json(), sort_keys=True)

    def mark_saved(self):
        self._saved_snapshot = self.current_portfolio_data

    @property
    def has_unsaved_changes(self) -> bool:
        return self._saved_snapshot != self.current_portfolio_data
