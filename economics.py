import math
from enum import Enum
from typing import Callable, Optional, Tuple

from models import NegotiationParams, NashSolution, ProfitSplit

# Search window and precision for the quantity solvers
Q_SEARCH_FLOOR = 1e-6
DEFAULT_TOLERANCE = 1e-5
DEFAULT_MAX_ITERATIONS = 100


class Unreachable(str, Enum):
    """Why an inverse solve found no contract term."""
    NO_VOLUME = "no_volume"
    NO_MARGIN = "no_margin"
    NO_SIGN_CHANGE = "no_sign_change"
    BELOW_COST_FLOOR = "below_cost_floor"


def round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; quantities round .5 upwards
    return int(math.floor(x + 0.5))


# --- 1. PROFIT MODEL ---
def expected_sales(q: float, params: NegotiationParams) -> float:
    """E[min(q, D)] for D ~ Uniform[demand_min, demand_max]."""
    d_min, d_max = params.demand_min, params.demand_max
    if q <= d_min:
        return q
    if q >= d_max:
        return (d_min + d_max) / 2

    # Integral of min(q, d) over the uniform density
    below_q = (q * q - d_min * d_min) / 2
    above_q = q * (d_max - q)
    return (below_q + above_q) / (d_max - d_min)


def compute_profits(w: float, q: float, params: NegotiationParams) -> ProfitSplit:
    sales = expected_sales(q, params)
    supplier_profit = w * sales - params.production_cost * q
    retailer_profit = (params.retail_price - w) * sales
    return ProfitSplit(
        supplier_profit=supplier_profit,
        retailer_profit=retailer_profit,
        total_profit=supplier_profit + retailer_profit,
    )


# --- 2. ROOT FINDER ---
def bisect(f: Callable[[float], float], a: float, b: float,
           tolerance: float = DEFAULT_TOLERANCE,
           max_iterations: int = DEFAULT_MAX_ITERATIONS) -> Optional[float]:
    """
    Bisection over [a, b] for a monotonic f.

    Returns None when f(a) and f(b) do not differ in sign, i.e. the target is
    not reachable inside the interval. Once the bracket holds, a value is
    always returned: the last midpoint if the iteration budget runs out.
    """
    f_a = f(a)
    if f_a * f(b) >= 0:
        return None

    mid = a
    for _ in range(max_iterations):
        mid = (a + b) / 2
        f_mid = f(mid)

        if abs(f_mid) < tolerance or (b - a) / 2 < tolerance:
            return mid

        if f_a * f_mid < 0:
            b = mid
        else:
            a = mid
            f_a = f_mid
    return mid


# --- 3. NASH BENCHMARK ---
def solve_nash(params: NegotiationParams) -> NashSolution:
    """Closed-form even-split benchmark. q* is rounded, w* is not."""
    c, p = params.production_cost, params.retail_price
    demand_range = params.demand_max - params.demand_min

    q_star = round_half_up(demand_range * (p - c) / p)
    w_star = p * (p + 3 * c) / (2 * (p + c))

    return NashSolution(w=w_star, q=q_star, profits=compute_profits(w_star, q_star, params))


def critical_fractile_nash(params: NegotiationParams) -> NashSolution:
    """
    Cross-check for solve_nash when demand_min != 0.

    q is the newsvendor critical fractile (maximizes total expected profit for
    any uniform range) and w splits that profit evenly. Matches solve_nash when
    demand_min is 0 and q* comes out integral.
    """
    c, p = params.production_cost, params.retail_price
    demand_range = params.demand_max - params.demand_min

    q = round_half_up(params.demand_min + demand_range * (p - c) / p)
    sales = expected_sales(q, params)
    w = (p * sales + c * q) / (2 * sales) if sales > 0 else p
    return NashSolution(w=w, q=q, profits=compute_profits(w, q, params))


# --- 4. INVERSE SOLVERS ---
def solve_w_for_target(q: float, target_profit: float,
                       params: NegotiationParams) -> Tuple[Optional[float], Optional[Unreachable]]:
    """Like find_w_for_target_retailer_profit, but says why nothing was found."""
    c, p = params.production_cost, params.retail_price

    if q <= 0:
        if target_profit <= 0:
            return p, None
        return None, Unreachable.NO_VOLUME

    sales = expected_sales(q, params)
    if sales <= 0:
        return None, Unreachable.NO_VOLUME

    # Retailer profit is linear in w for a fixed q
    w = p - target_profit / sales
    if w < c:
        return None, Unreachable.BELOW_COST_FLOOR
    return w, None


def solve_q_for_target(w: float, target_profit: float,
                       params: NegotiationParams) -> Tuple[Optional[float], Optional[Unreachable]]:
    """Like find_q_for_target_retailer_profit, but says why nothing was found."""
    if w >= params.retail_price:
        # Retailer can't make money at or above the retail price
        if target_profit <= 0:
            return 0, None
        return None, Unreachable.NO_MARGIN

    def profit_gap(q: float) -> float:
        return compute_profits(w, q, params).retailer_profit - target_profit

    # Expected sales flatten out at demand_max, so search past it
    q_float = bisect(profit_gap, Q_SEARCH_FLOOR, params.demand_max * 2)
    if q_float is None:
        return None, Unreachable.NO_SIGN_CHANGE
    return round_half_up(q_float), None


def find_w_for_target_retailer_profit(q: float, target_profit: float,
                                      params: NegotiationParams) -> Optional[float]:
    return solve_w_for_target(q, target_profit, params)[0]


def find_q_for_target_retailer_profit(w: float, target_profit: float,
                                      params: NegotiationParams) -> Optional[float]:
    return solve_q_for_target(w, target_profit, params)[0]


# --- 5. EVEN-SPLIT HELPERS ---
def optimal_w_for_q(q: float, params: NegotiationParams) -> Optional[float]:
    """Price in [c, p] that gives both parties the same profit at quantity q."""
    def split_gap(w: float) -> float:
        profits = compute_profits(w, q, params)
        return profits.supplier_profit - profits.retailer_profit

    return bisect(split_gap, params.production_cost, params.retail_price)


def optimal_q_for_w(w: float, params: NegotiationParams) -> Optional[float]:
    """Quantity up to demand_max that gives both parties the same profit at price w."""
    def split_gap(q: float) -> float:
        profits = compute_profits(w, q, params)
        return profits.supplier_profit - profits.retailer_profit

    q_float = bisect(split_gap, Q_SEARCH_FLOOR, params.demand_max)
    if q_float is None:
        return None
    return round_half_up(q_float)
