from typing import Any, Dict, Optional

from .portfolio import Portfolio
from .settings import PortfolioDefaults

DEFAULT_YEARS = "15"
DEFAULT_STARTING_YEAR = 2024


def default_portfolio_data() -> Dict[str, Any]:
    """
    Sample portfolio: two investments, a primary residence and a rental duplex
    sold in year 8 with the proceeds reinvested into the growth portfolio.
    """
    growth_id = "default-growth-portfolio"
    return {
        "assets": [
            {
                "id": growth_id,
                "name": "Growth Portfolio (S&P 500)",
                "type": "investment",
                "inputs": {"initialAmount": "100000", "rateOfReturn": "8.5", "annualContribution": "35000"},
                "inflationAdjustedContributions": True,
            },
            {
                "id": "default-emergency-fund",
                "name": "Emergency Fund (High-Yield Savings)",
                "type": "investment",
                "inputs": {"initialAmount": "25000", "rateOfReturn": "4.2", "annualContribution": "3000"},
                "inflationAdjustedContributions": True,
            },
            {
                "id": "default-primary-residence",
                "name": "Primary Residence",
                "type": "property",
                "inputs": {
                    "purchasePrice": "450000",
                    "downPaymentPercentage": "20",
                    "interestRate": "6.8",
                    "loanTerm": "30",
                    "yearsBought": "2",
                    "propertyGrowthRate": "4",
                    "linkedInvestmentId": growth_id,
                    "isRentalProperty": False,
                },
            },
            {
                "id": "default-rental-duplex",
                "name": "Rental Property - Duplex",
                "type": "property",
                "inputs": {
                    "purchasePrice": "240000",
                    "downPaymentPercentage": "25",
                    "interestRate": "7.2",
                    "loanTerm": "30",
                    "yearsBought": "1",
                    "propertyGrowthRate": "3.5",
                    "linkedInvestmentId": growth_id,
                    "isRentalProperty": True,
                    "monthlyRent": "3200",
                    "rentGrowthRate": "4",
                    "vacancyRate": "8",
                    "maintenanceRate": "1.5",
                    "propertyManagementEnabled": True,
                    "monthlyManagementFeeRate": "8",
                    "listingFeeRate": "75",
                    "saleConfig": {
                        "isPlannedForSale": True,
                        "saleYear": 8,
                        "sellingCostsPercentage": 7,
                        "reinvestProceeds": True,
                        "targetInvestmentId": growth_id,
                    },
                },
            },
        ],
        "activeTabId": "combined",
        "years": DEFAULT_YEARS,
        "inflationRate": "2.5",
        "startingYear": DEFAULT_STARTING_YEAR,
    }


def build_default_portfolio(defaults: Optional[PortfolioDefaults] = None) -> Portfolio:
    portfolio = Portfolio.from_json(default_portfolio_data(), defaults)
    portfolio.mark_saved()
    return portfolio
