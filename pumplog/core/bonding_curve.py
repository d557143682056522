"""
Bonding curve pricing for Pump.fun
Quotes buys and sells from reserves carried in decoded TradeEvents, using exact integer math
"""

from dataclasses import dataclass
from typing import Optional

from pumplog.core.config import DEFAULT_SLIPPAGE_BPS
from pumplog.core.events import TradeInfo
from pumplog.core.logger import get_logger
from pumplog.core.metrics import get_metrics


logger = get_logger(__name__)
metrics = get_metrics()


FEE_BPS = 100  # 1% protocol fee
BPS_DENOMINATOR = 10_000

# Fixed decimal scales used for the display price
SOL_PRICE_SCALE = 100_000_000
TOKEN_PRICE_SCALE = 100_000


@dataclass
class BondingCurveState:
    """Bonding curve reserves

    All values in base units:
    - SOL values: lamports
    - Token values: base token units
    """
    virtual_sol_reserves: int
    virtual_token_reserves: int
    real_sol_reserves: int
    real_token_reserves: int

    @classmethod
    def from_trade(cls, trade: TradeInfo) -> "BondingCurveState":
        """Curve state right after a decoded trade"""
        return cls(
            virtual_sol_reserves=trade.virtual_sol_reserves,
            virtual_token_reserves=trade.virtual_token_reserves,
            real_sol_reserves=trade.real_sol_reserves,
            real_token_reserves=trade.real_token_reserves
        )


@dataclass
class BuyQuote:
    """Quote for buying tokens with SOL"""
    tokens_out: int  # base units
    sol_in: int  # lamports
    max_sol_cost: int  # lamports, sol_in plus slippage
    price_impact_pct: float


@dataclass
class SellQuote:
    """Quote for selling tokens for SOL"""
    sol_out: int  # lamports, after fee
    tokens_in: int  # base units
    min_sol_output: int  # lamports, sol_out minus slippage
    price_impact_pct: float


def get_token_price(virtual_sol_reserves: int, virtual_token_reserves: int) -> float:
    """
    Spot price of one token in SOL

    Returns 0.0 for an empty token side.
    """
    if virtual_token_reserves <= 0:
        return 0.0
    v_sol = virtual_sol_reserves / SOL_PRICE_SCALE
    v_tokens = virtual_token_reserves / TOKEN_PRICE_SCALE
    return v_sol / v_tokens


def get_buy_price(amount: int, curve: BondingCurveState) -> int:
    """
    Tokens received for spending `amount` lamports

    Constant product: k = vsol * vtok, then tokens_out = vtok - (k / (vsol + amount) + 1).
    The +1 rounds in the pool's favor. Capped at the real token reserves.

    Args:
        amount: SOL to spend (lamports)
        curve: Current curve state

    Returns:
        Tokens out (base units), 0 for a zero amount
    """
    if amount < 0:
        raise ValueError("Amount must not be negative")
    if amount == 0 or curve.virtual_token_reserves <= 0:
        return 0

    k = curve.virtual_sol_reserves * curve.virtual_token_reserves
    new_sol_reserves = curve.virtual_sol_reserves + amount
    remaining_tokens = k // new_sol_reserves + 1
    tokens_out = max(curve.virtual_token_reserves - remaining_tokens, 0)

    return min(tokens_out, curve.real_token_reserves)


def get_sell_price(amount: int, curve: BondingCurveState, fee_bps: int = FEE_BPS) -> int:
    """
    Lamports received for selling `amount` tokens, after the protocol fee

    Args:
        amount: Tokens to sell (base units)
        curve: Current curve state
        fee_bps: Protocol fee in basis points

    Returns:
        SOL out (lamports), 0 for a zero amount
    """
    if amount < 0:
        raise ValueError("Amount must not be negative")
    if amount == 0:
        return 0

    sol_out = (amount * curve.virtual_sol_reserves) // (curve.virtual_token_reserves + amount)
    fee = (sol_out * fee_bps) // BPS_DENOMINATOR

    return sol_out - fee


def calculate_with_slippage_buy(amount: int, basis_points: int) -> int:
    """Upper bound for a buy: amount + amount * bps / 10000 (truncating)"""
    if amount < 0 or basis_points < 0:
        raise ValueError("Amount and basis points must not be negative")
    return amount + (amount * basis_points) // BPS_DENOMINATOR


def calculate_with_slippage_sell(amount: int, basis_points: int) -> int:
    """Lower bound for a sell: amount - amount * bps / 10000 (truncating)"""
    if amount < 0 or basis_points < 0:
        raise ValueError("Amount and basis points must not be negative")
    return amount - (amount * basis_points) // BPS_DENOMINATOR


def get_buy_amount_with_slippage(amount_sol: int, slippage_basis_points: Optional[int] = None) -> int:
    """Max SOL cost for a buy, defaulting to DEFAULT_SLIPPAGE_BPS"""
    if slippage_basis_points is None:
        slippage_basis_points = DEFAULT_SLIPPAGE_BPS
    return calculate_with_slippage_buy(amount_sol, slippage_basis_points)


def _price_impact(reserves: int, amount: int) -> float:
    """impact = amount / (reserves + amount), as a percentage"""
    if reserves + amount <= 0:
        return 0.0
    return amount / (reserves + amount) * 100


def quote_buy(
    curve: BondingCurveState,
    amount_sol: int,
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
) -> BuyQuote:
    """
    Quote a buy of `amount_sol` lamports

    Raises:
        ValueError: If reserves or amount are invalid
    """
    if curve.virtual_sol_reserves <= 0 or curve.virtual_token_reserves <= 0:
        raise ValueError("Invalid bonding curve reserves (must be > 0)")
    if amount_sol <= 0:
        raise ValueError("Amount must be positive")

    quote = BuyQuote(
        tokens_out=get_buy_price(amount_sol, curve),
        sol_in=amount_sol,
        max_sol_cost=calculate_with_slippage_buy(amount_sol, slippage_bps),
        price_impact_pct=_price_impact(curve.virtual_sol_reserves, amount_sol)
    )

    logger.debug(
        "buy_quote_calculated",
        sol_in=quote.sol_in,
        tokens_out=quote.tokens_out,
        max_sol_cost=quote.max_sol_cost,
        price_impact_pct=quote.price_impact_pct
    )
    metrics.increment_counter("bonding_curve_buy_quotes")

    return quote


def quote_sell(
    curve: BondingCurveState,
    amount_tokens: int,
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    fee_bps: int = FEE_BPS
) -> SellQuote:
    """
    Quote a sell of `amount_tokens` base units

    Raises:
        ValueError: If reserves or amount are invalid
    """
    if curve.virtual_sol_reserves <= 0 or curve.virtual_token_reserves <= 0:
        raise ValueError("Invalid bonding curve reserves (must be > 0)")
    if amount_tokens <= 0:
        raise ValueError("Amount must be positive")

    sol_out = get_sell_price(amount_tokens, curve, fee_bps)
    quote = SellQuote(
        sol_out=sol_out,
        tokens_in=amount_tokens,
        min_sol_output=calculate_with_slippage_sell(sol_out, slippage_bps),
        price_impact_pct=_price_impact(curve.virtual_token_reserves, amount_tokens)
    )

    logger.debug(
        "sell_quote_calculated",
        tokens_in=quote.tokens_in,
        sol_out=quote.sol_out,
        min_sol_output=quote.min_sol_output,
        price_impact_pct=quote.price_impact_pct
    )
    metrics.increment_counter("bonding_curve_sell_quotes")

    return quote
