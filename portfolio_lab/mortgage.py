from typing import List, Optional
from pydantic import BaseModel

from .money import round2

DEFAULT_LOAN_TERM_YEARS = 30
# Float drift can leave a sub-cent balance after the final payment
PAID_OFF_EPSILON = 0.005


class AmortizationStep(BaseModel):
    """Result of running a loan forward a number of months."""
    balance: float
    principal_paid: float = 0.0
    interest_paid: float = 0.0
    months_paid: int = 0


class AmortizationYear(BaseModel):
    year: int
    starting_balance: float
    ending_balance: float
    principal_paid: float
    interest_paid: float
    monthly_payment: float
    principal_interest_payment: float
    other_fees_payment: float


class MortgageSchedule(BaseModel):
    loan_amount: float
    starting_balance: float  # after fast-forwarding the years already owned
    principal_interest_payment: float
    monthly_payment: float
    other_fees_payment: float
    years: List[AmortizationYear]


def calculate_monthly_payment(principal: float, annual_rate_percent: float, term_years: int) -> float:
    """
    Standard amortizing payment M = P*r*(1+r)^n / ((1+r)^n - 1) with monthly
    rate r and n monthly payments. A zero rate spreads principal evenly.
    """
    if principal <= 0:
        return 0.0
    if term_years <= 0:
        term_years = DEFAULT_LOAN_TERM_YEARS
    num_payments = term_years * 12
    monthly_rate = annual_rate_percent / 100 / 12
    if monthly_rate == 0:
        return principal / num_payments
    growth = (1 + monthly_rate) ** num_payments
    return principal * monthly_rate * growth / (growth - 1)


def amortize(balance: float, monthly_rate: float, payment: float, months: int) -> AmortizationStep:
    """
    Run `months` payments against `balance`. Only `payment` (principal and
    interest) reduces the loan; once the balance reaches zero no further
    interest accrues.
    """
    principal_total = 0.0
    interest_total = 0.0
    months_paid = 0
    for _ in range(max(0, months)):
        if balance <= 0:
            break
        interest = balance * monthly_rate
        principal = min(payment - interest, balance)
        if principal <= 0:
            # Payment does not cover interest; the balance never shrinks
            interest_total += payment
            months_paid += 1
            continue
        balance -= principal
        if balance < PAID_OFF_EPSILON:
            principal += balance
            balance = 0.0
        principal_total += principal
        interest_total += interest
        months_paid += 1
    return AmortizationStep(
        balance=max(0.0, balance),
        principal_paid=principal_total,
        interest_paid=interest_total,
        months_paid=months_paid,
    )


def build_amortization_schedule(
    principal: float,
    annual_rate_percent: float,
    term_years: int,
    years_bought: int,
    horizon_years: int,
    payment_override: Optional[float] = None
) -> MortgageSchedule:
    """
    Year-by-year amortization over the projection horizon, starting after the
    `years_bought` years of payments already made.
    """
    pi_payment = calculate_monthly_payment(principal, annual_rate_percent, term_years)
    monthly_payment = max(payment_override or 0.0, pi_payment)
    other_fees = max(0.0, monthly_payment - pi_payment)
    monthly_rate = annual_rate_percent / 100 / 12

    balance = amortize(max(0.0, principal), monthly_rate, pi_payment, max(0, years_bought) * 12).balance
    starting_balance = balance

    years: List[AmortizationYear] = []
    for year in range(1, horizon_years + 1):
        step = amortize(balance, monthly_rate, pi_payment, 12)
        years.append(AmortizationYear(
            year=year,
            starting_balance=round2(balance),
            ending_balance=round2(step.balance),
            principal_paid=round2(step.principal_paid),
            interest_paid=round2(step.interest_paid),
            monthly_payment=round2(monthly_payment if balance > 0 else other_fees),
            principal_interest_payment=round2(pi_payment if balance > 0 else 0.0),
            other_fees_payment=round2(other_fees),
        ))
        balance = step.balance

    return MortgageSchedule(
        loan_amount=round2(max(0.0, principal)),
        starting_balance=round2(starting_balance),
        principal_interest_payment=round2(pi_payment),
        monthly_payment=round2(monthly_payment),
        other_fees_payment=round2(other_fees),
        years=years,
    )
