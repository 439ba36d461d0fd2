"""
Financial ratio calculations over trial balance totals.

Pure functions, zero I/O.  Every denominator is floored at 1 so an empty or
loss-making ledger yields a number rather than a division error.  Ratios are
quantized to four decimal places.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from portfolio_engines.tracer import traced_engine
from portfolio_engines.trial_balance import TrialBalanceTotals

ONE = Decimal("1")
HUNDRED = Decimal("100")
_RATIO_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class LiquidityRatios:
    current_ratio: Decimal
    working_capital: Decimal


@dataclass(frozen=True)
class LeverageRatios:
    debt_to_equity: Decimal
    equity_ratio: Decimal


@dataclass(frozen=True)
class ProfitabilityRatios:
    net_profit_margin: Decimal
    return_on_assets: Decimal
    return_on_equity: Decimal


@dataclass(frozen=True)
class EfficiencyRatios:
    asset_turnover: Decimal
    expense_ratio: Decimal


@dataclass(frozen=True)
class RatioInterpretations:
    current_ratio: str
    debt_to_equity: str
    profitability: str


@dataclass(frozen=True)
class FinancialRatios:
    net_profit: Decimal
    liquidity: LiquidityRatios
    leverage: LeverageRatios
    profitability: ProfitabilityRatios
    efficiency: EfficiencyRatios
    interpretations: RatioInterpretations


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    return (numerator / max(denominator, ONE)).quantize(_RATIO_PLACES, rounding=ROUND_HALF_UP)


def _percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    return (numerator / max(denominator, ONE) * HUNDRED).quantize(
        _RATIO_PLACES, rounding=ROUND_HALF_UP,
    )


def interpret_current_ratio(value: Decimal) -> str:
    if value > 2:
        return "Strong"
    if value > 1:
        return "Adequate"
    return "Concerning"


def interpret_debt_to_equity(value: Decimal) -> str:
    if value < Decimal("0.3"):
        return "Conservative"
    if value < 1:
        return "Moderate"
    return "High"


def interpret_margin(value: Decimal) -> str:
    if value > 10:
        return "Excellent"
    if value > 5:
        return "Good"
    if value > 0:
        return "Break-even"
    return "Loss"


@traced_engine("ratios", "1.0", fingerprint_fields=("totals",))
def calculate_ratios(totals: TrialBalanceTotals) -> FinancialRatios:
    """
    Liquidity, leverage, profitability and efficiency ratios from totals.

    Net profit is revenue minus expenses.  Works on an entity's totals or
    on a portfolio's consolidated totals.
    """
    assets = totals.total_assets
    liabilities = totals.total_liabilities
    equity = totals.total_equity
    revenue = totals.total_revenue
    expenses = totals.total_expenses
    net_profit = revenue - expenses

    liquidity = LiquidityRatios(
        current_ratio=_ratio(assets, liabilities),
        working_capital=assets - liabilities,
    )
    leverage = LeverageRatios(
        debt_to_equity=_ratio(abs(liabilities), equity),
        equity_ratio=_ratio(equity, assets),
    )
    profitability = ProfitabilityRatios(
        net_profit_margin=_percent(net_profit, revenue),
        return_on_assets=_percent(net_profit, assets),
        return_on_equity=_percent(net_profit, equity),
    )
    efficiency = EfficiencyRatios(
        asset_turnover=_ratio(revenue, assets),
        expense_ratio=_percent(expenses, revenue),
    )

    return FinancialRatios(
        net_profit=net_profit,
        liquidity=liquidity,
        leverage=leverage,
        profitability=profitability,
        efficiency=efficiency,
        interpretations=RatioInterpretations(
            current_ratio=interpret_current_ratio(liquidity.current_ratio),
            debt_to_equity=interpret_debt_to_equity(leverage.debt_to_equity),
            profitability=interpret_margin(profitability.net_profit_margin),
        ),
    )
