from typing import Union, Dict, Any, Optional

from .investment import InvestmentAsset
from .property import PropertyAsset
from .schemas import INVESTMENT, PROPERTY, InvestmentInputs, PropertyInputs, ProjectionHorizon

Asset = Union[InvestmentAsset, PropertyAsset]


class UnknownAssetTypeError(ValueError):
    pass


def is_investment(asset: Asset) -> bool:
    return asset.type == INVESTMENT


def is_property(asset: Asset) -> bool:
    return asset.type == PROPERTY


def create_asset(
    asset_type: str,
    name: str,
    inputs: Optional[Dict[str, Any]] = None,
    horizon: Optional[ProjectionHorizon] = None
) -> Asset:
    """Build a new asset with defaults overlaid by `inputs` (camelCase or snake_case keys)."""
    if asset_type == INVESTMENT:
        return InvestmentAsset(name, InvestmentInputs.model_validate(inputs or {}), horizon=horizon)
    elif asset_type == PROPERTY:
        return PropertyAsset(name, PropertyInputs.model_validate(inputs or {}), horizon=horizon)
    raise UnknownAssetTypeError(f"Unknown asset type: {asset_type}")


def create_asset_from_json(data: Dict[str, Any], horizon: Optional[ProjectionHorizon] = None) -> Asset:
    """Rebuild a serialized asset, dispatching on its `type` tag."""
    asset_type = data.get("type") if isinstance(data, dict) else None
    if asset_type == INVESTMENT:
        return InvestmentAsset.from_json(data, horizon)
    elif asset_type == PROPERTY:
        return PropertyAsset.from_json(data, horizon)
    raise UnknownAssetTypeError(f"Unknown asset type: {asset_type}")
