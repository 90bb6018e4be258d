import os
from datetime import date
from typing import List
from pydantic import BaseModel, ConfigDict, Field

# Database file lives in the project root (one level up from portfolio_lab/)
_package_dir = os.path.dirname(os.path.abspath(__file__))
_project_root = os.path.dirname(_package_dir)
DEFAULT_DATABASE_URL = f"sqlite:///{os.path.join(_project_root, 'portfolio_lab.db')}"


class PortfolioDefaults(BaseModel):
    """Starting values for a fresh portfolio."""
    model_config = ConfigDict(frozen=True)

    years: str = "10"
    inflation_rate: str = "2.5"
    starting_year: int = Field(default_factory=lambda: date.today().year)


class Settings(BaseModel):
    """
    Application configuration, built once at the entry point and passed down
    to whatever needs it.
    """
    model_config = ConfigDict(frozen=True)

    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    default_years: str = "10"
    default_inflation_rate: str = "2.5"
    default_starting_year: int = Field(default_factory=lambda: date.today().year)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("PORTFOLIO_LAB_CORS_ORIGINS")
        return cls(
            database_url=os.getenv("PORTFOLIO_LAB_DATABASE_URL", defaults.database_url),
            database_echo=os.getenv("PORTFOLIO_LAB_DATABASE_ECHO", "").strip().lower() in ("1", "true", "yes"),
            log_level=os.getenv("PORTFOLIO_LAB_LOG_LEVEL", defaults.log_level).strip().upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
            default_years=os.getenv("PORTFOLIO_LAB_DEFAULT_YEARS", defaults.default_years),
            default_inflation_rate=os.getenv("PORTFOLIO_LAB_DEFAULT_INFLATION", defaults.default_inflation_rate),
            default_starting_year=int(os.getenv("PORTFOLIO_LAB_STARTING_YEAR", defaults.default_starting_year)),
        )

    def portfolio_defaults(self) -> PortfolioDefaults:
        return PortfolioDefaults(
            years=self.default_years,
            inflation_rate=self.default_inflation_rate,
            starting_year=self.default_starting_year,
        )
