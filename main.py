import boto3
import json
import logging
from decimal import Decimal
from functools import lru_cache
from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator
from typing import Optional, Dict, Any
import uuid
from datetime import datetime, timezone

import config
from ai_service import get_bedrock_response, create_negotiation_prompt, read_offer
from economics import compute_profits, critical_fractile_nash, optimal_q_for_w, optimal_w_for_q, solve_nash
from logic import classify, generate_negotiation_params, offer_on_table, quoted_anchor
from models import ConditionalOffer, NashSolution, NegotiationParams, Offer, PartialOffer
from prompts import GREETING

logger = logging.getLogger(__name__)

app = FastAPI(title="Supply Chain Negotiation Trainer", version="1.0.0")

# CORS Setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- DATA MODELS ---
class NewSessionRequest(BaseModel):
    student_id: Optional[str] = None

class ChatRequest(BaseModel):
    session_id: str
    user_input: str
    debug: bool = False

class OfferRequest(BaseModel):
    session_id: str
    w: float = Field(..., allow_inf_nan=False)
    q: int
    debug: bool = False

class AcceptRequest(BaseModel):
    session_id: str

class AnalyzeRequest(BaseModel):
    session_id: str
    w: float = Field(..., gt=0, allow_inf_nan=False)
    q: float = Field(..., gt=0, allow_inf_nan=False)

class DecideRequest(BaseModel):
    params: NegotiationParams
    offer: PartialOffer = PartialOffer()

    @model_validator(mode="after")
    def check_params(self):
        p = self.params
        if not 0 <= p.demand_min < p.demand_max:
            raise ValueError("demand range must satisfy 0 <= demand_min < demand_max")
        if not 0 < p.production_cost < p.retail_price:
            raise ValueError("prices must satisfy 0 < production_cost < retail_price")
        return self


# --- STORAGE ---
@lru_cache(maxsize=1)
def get_table():
    dynamodb = boto3.resource('dynamodb', region_name=config.AWS_REGION)
    return dynamodb.Table(config.SESSIONS_TABLE)

# Helper function to handle decimal type (for JSON serialization)
def decimal_default(obj):
    if isinstance(obj, Decimal):
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

def to_dynamo(obj):
    # DynamoDB rejects floats, so every float goes in as a Decimal
    return json.loads(json.dumps(obj, default=decimal_default), parse_float=Decimal)

def from_dynamo(item):
    return json.loads(json.dumps(item, default=decimal_default))

def load_session(table, session_id: str) -> Dict[str, Any]:
    response = table.get_item(Key={'session_id': session_id})
    if 'Item' not in response:
        raise HTTPException(status_code=404, detail="Session not found")
    return from_dynamo(response['Item'])

def load_open_session(table, session_id: str) -> Dict[str, Any]:
    session = load_session(table, session_id)
    if session.get("concluded"):
        raise HTTPException(status_code=409, detail="Negotiation already concluded")
    return session

def save_session(table, session: Dict[str, Any]):
    table.put_item(Item=to_dynamo(session))

def session_economics(session: Dict[str, Any]):
    return NegotiationParams(**session["params"]), NashSolution(**session["nash"])


# --- TURN PIPELINE ---
def run_turn(table, session: Dict[str, Any], user_text: str, user_offer: PartialOffer, debug: bool) -> Dict[str, Any]:
    """Classify the Supplier's offer, have the Retailer answer, save the session."""
    params, nash = session_economics(session)

    full_user_offer = None
    if user_offer.valid_w is not None and user_offer.valid_q is not None:
        full_user_offer = {"w": user_offer.valid_w, "q": user_offer.valid_q}
    session["conversation"].append({"role": "user", "content": user_text, "offer": full_user_offer})

    # 1. Policy decision (pure)
    decision = classify(user_offer, params, nash)
    logger.info(f"Session {session['session_id']}: decision {decision.action}")

    # 2. Retailer reply, constrained to the decision's numbers
    prompt = create_negotiation_prompt(decision, params, nash, session["conversation"])
    ai_response = get_bedrock_response(prompt)

    # 3. Track what the Retailer now has on the table
    ai_offer = offer_on_table(decision)
    if isinstance(decision, ConditionalOffer):
        # Only the reply tells us which anchor was quoted
        read = read_offer(ai_response)
        if read.valid_w is not None and read.valid_q is not None:
            ai_offer = quoted_anchor(decision, Offer(w=read.valid_w, q=read.valid_q))
            if ai_offer is None:
                logger.warning(f"Session {session['session_id']}: reply quoted w={read.valid_w}, q={read.valid_q}, which matches no anchor")

    ai_offer_dict = ai_offer.model_dump() if ai_offer else None
    session["conversation"].append({"role": "assistant", "content": ai_response, "offer": ai_offer_dict})
    if ai_offer_dict:
        session["standing_offer"] = ai_offer_dict

    save_session(table, session)

    result = {
        "ai_response": ai_response,
        "status": "success",
        "decision": decision.model_dump(),
        "ai_offer": ai_offer_dict,
    }
    if debug:
        result["debug_prompt"] = prompt
    return result


# --- ROUTES ---
@app.post("/api/sessions/new")
def create_session(request: NewSessionRequest, table=Depends(get_table)):
    session_id = str(uuid.uuid4())

    # 1. Draw this session's economics and its benchmark (fixed from here on)
    params = generate_negotiation_params(request.student_id)
    nash = solve_nash(params)

    # 2. Save
    session = {
        'session_id': session_id,
        'params': params.model_dump(),
        'nash': nash.model_dump(),
        'conversation': [{"role": "assistant", "content": GREETING, "offer": None}],
        'standing_offer': None,
        'concluded': False,
        'created_at': datetime.now(timezone.utc).isoformat()
    }
    save_session(table, session)
    logger.info(f"Session {session_id} created: c={params.production_cost}, p={params.retail_price}")

    return {
        "session_id": session_id,
        "params": params.model_dump(),
        "nash": nash.model_dump(),
        "greeting": GREETING
    }

@app.post("/api/chat")
def chat(request: ChatRequest, table=Depends(get_table)):
    session = load_open_session(table, request.session_id)
    user_offer = read_offer(request.user_input)
    return run_turn(table, session, request.user_input, user_offer, request.debug)

@app.post("/api/offer")
def send_offer(request: OfferRequest, table=Depends(get_table)):
    session = load_open_session(table, request.session_id)
    params, _ = session_economics(session)

    if request.w < params.production_cost or request.q <= 0:
        raise HTTPException(
            status_code=422,
            detail=f"Offer needs w >= {params.production_cost} and q > 0"
        )

    text = (f"I'd like to propose a wholesale price (w) of {request.w:.2f} "
            f"and a quantity (q) of {request.q}.")
    user_offer = PartialOffer(w=request.w, q=request.q)
    return run_turn(table, session, text, user_offer, request.debug)

@app.post("/api/accept")
def accept_offer(request: AcceptRequest, table=Depends(get_table)):
    session = load_open_session(table, request.session_id)
    standing = session.get("standing_offer")
    if not standing:
        raise HTTPException(status_code=409, detail="The retailer has no offer on the table")

    params, nash = session_economics(session)
    final_offer = Offer(**standing)
    final_profits = compute_profits(final_offer.w, final_offer.q, params)

    session["conversation"].append({
        "role": "user",
        "content": (f"Sounds good, I accept your offer of w={final_offer.w:.2f} "
                    f"and q={final_offer.q:.0f}. We have a deal."),
        "offer": standing
    })
    session["concluded"] = True
    session["final_offer"] = standing
    save_session(table, session)
    logger.info(f"Session {request.session_id} concluded at w={final_offer.w:.2f}, q={final_offer.q:.0f}")

    return {
        "status": "completed",
        "final_offer": final_offer.model_dump(),
        "final_profits": final_profits.model_dump(),
        "nash": nash.model_dump(),
        "supplier_vs_nash": final_profits.supplier_profit - nash.profits.supplier_profit,
        "retailer_vs_nash": final_profits.retailer_profit - nash.profits.retailer_profit,
    }

@app.post("/api/analyze")
def analyze_offer(request: AnalyzeRequest, table=Depends(get_table)):
    session = load_session(table, request.session_id)
    params, nash = session_economics(session)

    return {
        "offer": {"w": request.w, "q": request.q},
        "profits": compute_profits(request.w, request.q, params).model_dump(),
        "even_split_w_for_q": optimal_w_for_q(request.q, params),
        "even_split_q_for_w": optimal_q_for_w(request.w, params),
        "nash": nash.model_dump(),
        "critical_fractile_nash": critical_fractile_nash(params).model_dump(),
    }

@app.post("/api/decide")
def decide(request: DecideRequest):
    """Stateless policy check: no session, no model calls."""
    nash = solve_nash(request.params)
    decision = classify(request.offer, request.params, nash)
    return {
        "decision": decision.model_dump(),
        "nash": nash.model_dump(),
    }
