import logging
from typing import Optional, List
from sqlmodel import Session, select

from .default_portfolio import build_default_portfolio
from .export_import import import_portfolio
from .models import SavedPortfolio, utcnow
from .portfolio import Portfolio
from .schemas import SavedPortfolioCreate, SavedPortfolioUpdate
from .settings import PortfolioDefaults

logger = logging.getLogger(__name__)


def get_portfolios(session: Session) -> List[SavedPortfolio]:
    statement = select(SavedPortfolio).order_by(SavedPortfolio.id)
    return list(session.exec(statement).all())


def get_portfolio(session: Session, portfolio_id: int) -> Optional[SavedPortfolio]:
    return session.get(SavedPortfolio, portfolio_id)


def create_portfolio(
    session: Session,
    portfolio_create: SavedPortfolioCreate,
    defaults: Optional[PortfolioDefaults] = None
) -> SavedPortfolio:
    if portfolio_create.data is not None:
        data = Portfolio.from_json(portfolio_create.data.model_dump(by_alias=True, mode="json"), defaults).to_json()
    else:
        data = build_default_portfolio(defaults).to_json()
    db_portfolio = SavedPortfolio(name=portfolio_create.name, description=portfolio_create.description, data=data)
    session.add(db_portfolio)
    session.commit()
    session.refresh(db_portfolio)
    return db_portfolio


def save_portfolio(session: Session, name: str, portfolio: Portfolio, description: Optional[str] = None) -> SavedPortfolio:
    db_portfolio = SavedPortfolio(name=name, description=description, data=portfolio.to_json())
    session.add(db_portfolio)
    session.commit()
    session.refresh(db_portfolio)
    portfolio.mark_saved()
    return db_portfolio


def update_portfolio(
    session: Session,
    portfolio_id: int,
    portfolio_update: SavedPortfolioUpdate,
    defaults: Optional[PortfolioDefaults] = None
) -> Optional[SavedPortfolio]:
    db_portfolio = session.get(SavedPortfolio, portfolio_id)
    if not db_portfolio:
        return None
    if portfolio_update.name is not None:
        db_portfolio.name = portfolio_update.name
    if portfolio_update.description is not None:
        db_portfolio.description = portfolio_update.description
    if portfolio_update.data is not None:
        payload = portfolio_update.data.model_dump(by_alias=True, mode="json")
        db_portfolio.data = Portfolio.from_json(payload, defaults).to_json()
    db_portfolio.updated_at = utcnow()
    session.add(db_portfolio)
    session.commit()
    session.refresh(db_portfolio)
    return db_portfolio


def delete_portfolio(session: Session, portfolio_id: int) -> bool:
    db_portfolio = session.get(SavedPortfolio, portfolio_id)
    if not db_portfolio:
        return False
    session.delete(db_portfolio)
    session.commit()
    return True


def load_portfolio(session: Session, portfolio_id: int, defaults: Optional[PortfolioDefaults] = None) -> Optional[Portfolio]:
    """
    Rebuild a saved portfolio. Stored data that no longer loads is logged and
    replaced by the default portfolio.
    """
    db_portfolio = session.get(SavedPortfolio, portfolio_id)
    if not db_portfolio:
        return None
    try:
        return import_portfolio(db_portfolio.data, defaults)
    except ValueError as e:  # covers import and validation errors
        logger.warning("Saved portfolio %s could not be loaded (%s); using the default portfolio", portfolio_id, e)
        return build_default_portfolio(defaults)
