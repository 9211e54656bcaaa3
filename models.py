from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union, Literal, Annotated


# --- NEGOTIATION VALUES ---
class NegotiationParams(BaseModel):
    """Fixed economics of one negotiation session."""
    model_config = ConfigDict(frozen=True)

    production_cost: float = Field(..., description="Supplier's per-unit production cost (c)")
    retail_price: float = Field(..., description="Retailer's per-unit selling price (p)")
    demand_min: float = 0.0
    demand_max: float = 100.0


class Offer(BaseModel):
    model_config = ConfigDict(frozen=True)

    w: float
    q: float


class PartialOffer(BaseModel):
    """What the offer reader found in a message. Either field may be missing."""
    model_config = ConfigDict(frozen=True)

    w: Optional[float] = None
    q: Optional[float] = None

    @property
    def valid_w(self) -> Optional[float]:
        # Zero or negative values count as "not offered"
        return self.w if self.w is not None and self.w > 0 else None

    @property
    def valid_q(self) -> Optional[float]:
        return self.q if self.q is not None and self.q > 0 else None


class ProfitSplit(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_profit: float
    retailer_profit: float
    total_profit: float


class NashSolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    w: float
    q: float
    profits: ProfitSplit

    @property
    def offer(self) -> Offer:
        return Offer(w=self.w, q=self.q)


# --- DECISIONS ---
# One variant per mandated action. The `action` tag is what the dialogue step
# and API clients switch on.
class Accept(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["accept"] = "accept"
    offer: Offer


class CounterPrice(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["counter_price"] = "counter_price"
    q: float
    new_w: float


class CounterQuantity(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["counter_quantity"] = "counter_quantity"
    w: float
    new_q: float


class RejectAndReinitiate(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["reject_and_reinitiate"] = "reject_and_reinitiate"
    nash_offer: Offer


class ConditionalAnchor(BaseModel):
    """A pre-computed offer the Retailer may quote if asked. None means N/A."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["nash", "max_price", "min_quantity"]
    w: Optional[float] = None
    q: Optional[float] = None


class ConditionalOffer(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["conditional_offer"] = "conditional_offer"
    anchors: List[ConditionalAnchor]

    def anchor(self, kind: str) -> Optional[ConditionalAnchor]:
        for a in self.anchors:
            if a.kind == kind:
                return a
        return None


class Clarify(BaseModel):
    model_config = ConfigDict(frozen=True)
    action: Literal["clarify"] = "clarify"


Decision = Annotated[
    Union[Accept, CounterPrice, CounterQuantity, RejectAndReinitiate, ConditionalOffer, Clarify],
    Field(discriminator="action"),
]
