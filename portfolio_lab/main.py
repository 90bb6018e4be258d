import logging
import threading
from contextlib import asynccontextmanager
from typing import List, Dict, Any, Optional

from fastapi import FastAPI, Depends, HTTPException, Body, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from . import crud
from .asset_factory import is_investment
from .database import build_engine, init_db, get_session
from .export_import import export_portfolio, import_portfolio
from .mortgage import MortgageSchedule, build_amortization_schedule
from .portfolio import Portfolio
from .schemas import (
    AssetProjection, MortgageScheduleRequest, NoTaxStateSavingsRequest, PortfolioData, ProjectionResponse,
    RelocationRequest, SavedPortfolioCreate, SavedPortfolioDetail, SavedPortfolioRead, SavedPortfolioUpdate,
    StateComparisonRequest,
)
from .settings import Settings, PortfolioDefaults
from .tax_config import StateTaxInfo, get_states_by_tax_rate
from .tax_engine import (
    NoTaxStateSavings, RelocationImpact, StateComparison,
    calculate_no_tax_state_savings, compare_states, get_relocation_tax_impact,
)

logger = logging.getLogger(__name__)


def build_projection(portfolio: Portfolio) -> ProjectionResponse:
    combined = portfolio.combined_results
    assets = []
    for asset in portfolio.assets_list:
        if is_investment(asset):
            projection = AssetProjection(
                id=asset.id, name=asset.name, type=asset.type, enabled=asset.enabled,
                investment_results=asset.results,
                investment_summary=asset.summary_data,
                warnings=asset.warnings,
            )
        else:
            projection = AssetProjection(
                id=asset.id, name=asset.name, type=asset.type, enabled=asset.enabled,
                property_results=asset.results,
                sale_analysis=asset.sale_analysis,
            )
        assets.append(projection)
    return ProjectionResponse(assets=assets, combined=combined, summary=portfolio.summary)


def get_defaults(request: Request) -> PortfolioDefaults:
    return request.app.state.settings.portfolio_defaults()


def get_save_lock(request: Request) -> threading.Lock:
    return request.app.state.save_lock


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.engine)
        logger.info("Database ready at %s", settings.database_url)
        yield
        app.state.engine.dispose()

    app = FastAPI(title="Portfolio Lab", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    # Saves are serialized so concurrent writers cannot interleave
    app.state.save_lock = threading.Lock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health_check():
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Stateless computation
    # ------------------------------------------------------------------

    @app.post("/api/projections", response_model=ProjectionResponse)
    def project(data: PortfolioData, defaults: PortfolioDefaults = Depends(get_defaults)):
        """Project a portfolio sent in the request body without saving it."""
        try:
            portfolio = Portfolio.from_json(data.model_dump(by_alias=True, mode="json"), defaults)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return build_projection(portfolio)

    @app.post("/api/mortgage/schedule", response_model=MortgageSchedule)
    def mortgage_schedule(request: MortgageScheduleRequest):
        return build_amortization_schedule(
            request.principal,
            request.annual_rate,
            request.term_years,
            request.years_bought,
            request.horizon_years,
            request.payment_override,
        )

    # ------------------------------------------------------------------
    # Saved portfolios
    # ------------------------------------------------------------------

    @app.get("/api/portfolios", response_model=List[SavedPortfolioRead])
    def read_portfolios(session: Session = Depends(get_session)):
        return crud.get_portfolios(session)

    @app.post("/api/portfolios", response_model=SavedPortfolioDetail)
    def create_portfolio(
        portfolio: SavedPortfolioCreate,
        session: Session = Depends(get_session),
        defaults: PortfolioDefaults = Depends(get_defaults),
        save_lock: threading.Lock = Depends(get_save_lock),
    ):
        try:
            with save_lock:
                return crud.create_portfolio(session, portfolio, defaults)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/api/portfolios/import", response_model=SavedPortfolioDetail)
    def import_portfolio_endpoint(
        data: Dict[str, Any] = Body(...),
        new_name: Optional[str] = None,
        session: Session = Depends(get_session),
        defaults: PortfolioDefaults = Depends(get_defaults),
        save_lock: threading.Lock = Depends(get_save_lock),
    ):
        """
        Import a portfolio from a JSON export.
        Assets get fresh ids so the import never collides with an existing portfolio.
        """
        try:
            portfolio = import_portfolio(data, defaults, regenerate_ids=True)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Import failed: {e}")
        name = new_name or data.get("name") or "Imported Portfolio"
        with save_lock:
            return crud.save_portfolio(session, name, portfolio)

    @app.get("/api/portfolios/{portfolio_id}", response_model=SavedPortfolioDetail)
    def read_portfolio(portfolio_id: int, session: Session = Depends(get_session)):
        saved = crud.get_portfolio(session, portfolio_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        return saved

    @app.put("/api/portfolios/{portfolio_id}", response_model=SavedPortfolioDetail)
    def update_portfolio(
        portfolio_id: int,
        portfolio: SavedPortfolioUpdate,
        session: Session = Depends(get_session),
        defaults: PortfolioDefaults = Depends(get_defaults),
        save_lock: threading.Lock = Depends(get_save_lock),
    ):
        try:
            with save_lock:
                updated = crud.update_portfolio(session, portfolio_id, portfolio, defaults)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not updated:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        return updated

    @app.delete("/api/portfolios/{portfolio_id}")
    def delete_portfolio(
        portfolio_id: int,
        session: Session = Depends(get_session),
        save_lock: threading.Lock = Depends(get_save_lock),
    ):
        with save_lock:
            deleted = crud.delete_portfolio(session, portfolio_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        return {"ok": True}

    @app.get("/api/portfolios/{portfolio_id}/projection", response_model=ProjectionResponse)
    def read_portfolio_projection(
        portfolio_id: int,
        session: Session = Depends(get_session),
        defaults: PortfolioDefaults = Depends(get_defaults),
    ):
        portfolio = crud.load_portfolio(session, portfolio_id, defaults)
        if portfolio is None:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        return build_projection(portfolio)

    @app.get("/api/portfolios/{portfolio_id}/export")
    def export_portfolio_endpoint(
        portfolio_id: int,
        session: Session = Depends(get_session),
        defaults: PortfolioDefaults = Depends(get_defaults),
    ):
        saved = crud.get_portfolio(session, portfolio_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        portfolio = crud.load_portfolio(session, portfolio_id, defaults)
        return export_portfolio(portfolio, saved.name)

    # ------------------------------------------------------------------
    # Tax helpers
    # ------------------------------------------------------------------

    @app.get("/api/tax/states", response_model=List[StateTaxInfo])
    def read_states():
        return get_states_by_tax_rate()

    @app.post("/api/tax/state-comparison", response_model=List[StateComparison])
    def state_comparison(request: StateComparisonRequest):
        return compare_states(request.capital_gain, request.state_codes)

    @app.post("/api/tax/relocation", response_model=RelocationImpact)
    def relocation(request: RelocationRequest):
        return get_relocation_tax_impact(request.capital_gain, request.from_state, request.to_state)

    @app.post("/api/tax/no-tax-state-savings", response_model=NoTaxStateSavings)
    def no_tax_state_savings(request: NoTaxStateSavingsRequest):
        return calculate_no_tax_state_savings(request.capital_gain, request.current_state)

    return app


app = create_app()
