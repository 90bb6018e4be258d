import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pydantic import ValidationError

from .portfolio import Portfolio
from .settings import PortfolioDefaults

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


class PortfolioImportError(ValueError):
    pass


def export_portfolio(portfolio: Portfolio, name: Optional[str] = None) -> Dict[str, Any]:
    """
    Export a portfolio and all of its assets to a dictionary.
    """
    return {
        "version": EXPORT_VERSION,
        "name": name,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "portfolio": portfolio.to_json(),
    }


def _unwrap(data: Any) -> Dict[str, Any]:
    """Accept either an export envelope or bare portfolio JSON."""
    if not isinstance(data, dict):
        raise PortfolioImportError("Portfolio data must be a JSON object")
    portfolio_data = data.get("portfolio", data)
    if not isinstance(portfolio_data, dict) or not isinstance(portfolio_data.get("assets"), list):
        raise PortfolioImportError("Portfolio data must contain an 'assets' list")
    version = data.get("version")
    if version is not None and version != EXPORT_VERSION:
        logger.warning("Importing portfolio export version %s (current %s)", version, EXPORT_VERSION)
    return copy.deepcopy(portfolio_data)


def _remap_asset_ids(portfolio_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Give every asset a fresh id and repoint links between assets.
    Links to assets that are not part of the import are dropped.
    """
    # old_asset_id -> new_asset_id
    asset_id_map = {}
    for asset_raw in portfolio_data["assets"]:
        new_id = str(uuid.uuid4())
        old_id = asset_raw.get("id")
        if old_id is not None:
            asset_id_map[old_id] = new_id
        asset_raw["id"] = new_id

    for asset_raw in portfolio_data["assets"]:
        if asset_raw.get("type") != "property":
            continue
        inputs = asset_raw.get("inputs") or {}
        linked = inputs.get("linkedInvestmentId")
        if linked:
            inputs["linkedInvestmentId"] = asset_id_map.get(linked, "")
        sale_config = inputs.get("saleConfig") or {}
        target = sale_config.get("targetInvestmentId")
        if target:
            sale_config["targetInvestmentId"] = asset_id_map.get(target)

    active_tab = portfolio_data.get("activeTabId")
    if active_tab in asset_id_map:
        portfolio_data["activeTabId"] = asset_id_map[active_tab]
    return portfolio_data


def import_portfolio(
    data: Dict[str, Any],
    defaults: Optional[PortfolioDefaults] = None,
    regenerate_ids: bool = False
) -> Portfolio:
    """
    Build a portfolio from an export (or bare portfolio JSON).
    With `regenerate_ids` the imported assets get new ids, so the import can
    live next to the portfolio it was exported from.
    """
    portfolio_data = _unwrap(data)
    if regenerate_ids:
        portfolio_data = _remap_asset_ids(portfolio_data)

    try:
        portfolio = Portfolio.from_json(portfolio_data, defaults)
    except ValidationError as e:
        raise PortfolioImportError(f"Invalid portfolio data: {e.error_count()} validation error(s)") from e

    portfolio.mark_saved()
    return portfolio
