import logging
import random
from typing import Optional

from economics import (
    compute_profits,
    find_q_for_target_retailer_profit,
    solve_q_for_target,
    solve_w_for_target,
)
from models import (
    Accept,
    Clarify,
    ConditionalAnchor,
    ConditionalOffer,
    CounterPrice,
    CounterQuantity,
    Decision,
    NashSolution,
    NegotiationParams,
    Offer,
    PartialOffer,
    RejectAndReinitiate,
)

logger = logging.getLogger(__name__)

PRODUCTION_COSTS = [3, 4, 5]
RETAIL_PRICES = [10, 11, 12]
DEMAND_RANGE = (0, 100)

# Smallest price step above cost used for the min-quantity anchor
MIN_PRICE_STEP = 0.01


# --- 1. SESSION GENERATION ---
def generate_negotiation_params(seed=None) -> NegotiationParams:
    """Draws the fixed economics for a new session."""
    # random.Random hashes str seeds deterministically, unlike hash()
    rng = random.Random(seed) if seed is not None else random.Random()

    return NegotiationParams(
        production_cost=rng.choice(PRODUCTION_COSTS),
        retail_price=rng.choice(RETAIL_PRICES),
        demand_min=DEMAND_RANGE[0],
        demand_max=DEMAND_RANGE[1],
    )


# --- 2. FORMATTING ---
def format_negotiation_params(params: NegotiationParams, nash: NashSolution) -> str:
    """Returns PURE DATA for the dialogue prompt."""
    return f"""
--- NEGOTIATION DATA ---
1. Your selling price to the end customer (p): {params.retail_price}
2. Supplier's production cost (c): {params.production_cost}
3. Customer demand: uniform between {params.demand_min:g} and {params.demand_max:g} units
4. Minimum acceptable profit for you: {nash.profits.retailer_profit:.2f}
5. Balanced benchmark offer: w={nash.w:.2f}, q={nash.q:.0f}
"""


# --- 3. SCENARIO POLICY ---
def _reject(nash: NashSolution, reason: str) -> RejectAndReinitiate:
    logger.info(f"REJECT ({reason}): re-proposing w={nash.w:.4f}, q={nash.q:.0f}")
    return RejectAndReinitiate(nash_offer=nash.offer)


def _counter_price(q: float, params: NegotiationParams, nash: NashSolution) -> Decision:
    new_w, why = solve_w_for_target(q, nash.profits.retailer_profit, params)
    if new_w is None:
        return _reject(nash, f"no price reaches target at q={q}: {why.value}")

    logger.info(f"COUNTER PRICE: q={q}, new w={new_w:.4f}")
    return CounterPrice(q=q, new_w=new_w)


def classify(partial_offer: PartialOffer, params: NegotiationParams, nash: NashSolution) -> Decision:
    """
    Turns the latest structured offer into the action the Retailer must take.

    Pure: the decision depends only on the offer, the session parameters and
    the session's Nash benchmark. Priority order is full offer, price only,
    quantity only, then no offer at all.
    """
    c = params.production_cost
    target = nash.profits.retailer_profit
    w, q = partial_offer.valid_w, partial_offer.valid_q

    # SCENARIO 1: Full offer
    if w is not None and q is not None:
        if w < c:
            return _reject(nash, f"w={w} is below production cost {c}")

        profits = compute_profits(w, q, params)
        if profits.retailer_profit >= target:
            logger.info(f"ACCEPT: retailer profit {profits.retailer_profit:.2f} >= target {target:.2f}")
            return Accept(offer=Offer(w=w, q=q))
        return _counter_price(q, params, nash)

    # SCENARIO 2: Price only
    if w is not None:
        if w < c:
            return _reject(nash, f"w={w} is below production cost {c}")

        new_q, why = solve_q_for_target(w, target, params)
        if new_q is None or new_q <= 0:
            return _reject(nash, f"no quantity reaches target at w={w}: {why.value if why else 'zero volume'}")

        logger.info(f"COUNTER QUANTITY: w={w}, new q={new_q}")
        return CounterQuantity(w=w, new_q=new_q)

    # SCENARIO 3: Quantity only
    if q is not None:
        return _counter_price(q, params, nash)

    # SCENARIO 4: No numeric offer, precompute the anchors the Retailer may quote
    max_price_q = params.demand_max
    max_price_w, _ = solve_w_for_target(max_price_q, target, params)

    min_quantity_w = c + MIN_PRICE_STEP
    min_quantity_q = find_q_for_target_retailer_profit(min_quantity_w, target, params)
    if min_quantity_q is not None and min_quantity_q <= 0:
        min_quantity_q = None

    if max_price_w is None and min_quantity_q is None:
        logger.info("CLARIFY: no edge offer meets the target")
        return Clarify()

    return ConditionalOffer(anchors=[
        ConditionalAnchor(kind="nash", w=nash.w, q=nash.q),
        ConditionalAnchor(kind="max_price", w=max_price_w, q=max_price_q),
        ConditionalAnchor(kind="min_quantity", w=min_quantity_w, q=min_quantity_q),
    ])


def offer_on_table(decision: Decision) -> Optional[Offer]:
    """The full contract a decision puts to the Supplier, if it names one."""
    if isinstance(decision, Accept):
        return decision.offer
    if isinstance(decision, CounterPrice):
        return Offer(w=decision.new_w, q=decision.q)
    if isinstance(decision, CounterQuantity):
        return Offer(w=decision.w, q=decision.new_q)
    if isinstance(decision, RejectAndReinitiate):
        return decision.nash_offer
    # Conditional anchors are only quoted on request
    return None


# --- 4. DISPLAY PRECISION ---
def display_w(w: float) -> str:
    return f"{w:.2f}"


def display_q(q: float) -> str:
    return f"{q:.0f}"


def quoted_anchor(decision: ConditionalOffer, quoted: Offer) -> Optional[Offer]:
    """
    The anchor the Retailer's reply quoted, with the anchor's own numbers.

    A quote only counts when it matches an anchor as it was shown to the
    dialogue model (w to cents, q to whole units). Anything else is a number
    the model made up and puts nothing on the table.
    """
    for a in decision.anchors:
        if a.w is None or a.q is None:
            continue
        if display_w(a.w) == display_w(quoted.w) and display_q(a.q) == display_q(quoted.q):
            return Offer(w=a.w, q=a.q)
    return None
