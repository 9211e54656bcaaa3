import boto3
import json
import logging
import math
import re
from typing import List, Dict, Any, Optional

import config
from logic import display_q, display_w, format_negotiation_params
from models import (
    Accept,
    ConditionalAnchor,
    ConditionalOffer,
    CounterPrice,
    CounterQuantity,
    Decision,
    NashSolution,
    NegotiationParams,
    PartialOffer,
    RejectAndReinitiate,
)
from prompts import MASTER_PROMPT_TEMPLATE, OFFER_READER_PROMPT

logger = logging.getLogger(__name__)

FINAL_RESPONSE_MARKER = "[FINAL RESPONSE]"
FALLBACK_REPLY = "I seem to be having trouble connecting. Let's try that again in a moment."


def _invoke_model(prompt: str, max_tokens: int, temperature: float) -> str:
    """Single-turn call to Claude on Bedrock. Returns the raw text."""
    bedrock = boto3.client('bedrock-runtime', region_name=config.AWS_REGION)
    body = {
        "anthropic_version": config.ANTHROPIC_VERSION,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}]
    }
    response = bedrock.invoke_model(
        modelId=config.BEDROCK_MODEL_ID,
        body=json.dumps(body),
        contentType='application/json'
    )
    result = json.loads(response['body'].read())
    return result['content'][0]['text'].strip()


# --- OFFER READER ---

def _to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # 1e400 parses to inf; DynamoDB cannot store it
    return number if math.isfinite(number) else None


def parse_offer_json(response_text: str) -> PartialOffer:
    """Turns the reader's JSON reply into a PartialOffer."""
    # Models sometimes wrap JSON in ```json ... ``` fences
    clean_json = re.sub(r'```(?:json)?\s*|\s*```', '', response_text).strip()
    data = json.loads(clean_json)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got: {clean_json[:50]}")

    w = _to_number(data.get('w'))
    q = _to_number(data.get('q'))
    return PartialOffer(w=w, q=int(q) if q is not None else None)


def read_offer(text: str) -> PartialOffer:
    """
    Uses Claude to pull the proposed (w, q) out of a free-text message.

    Never raises: any model or parsing failure reads as "no offer".
    """
    if not text or not text.strip():
        return PartialOffer()

    try:
        prompt = f"{OFFER_READER_PROMPT}\n\nMessage: \"{text}\""
        response_text = _invoke_model(prompt, max_tokens=100, temperature=0.0)
        return parse_offer_json(response_text)
    except Exception as e:
        logger.error(f"Offer extraction error: {e}")
        return PartialOffer()


# --- HELPERS ---

def clean_ai_response(text):
    if not isinstance(text, str): return text
    marker_index = text.find(FINAL_RESPONSE_MARKER)
    if marker_index != -1:
        text = text[marker_index + len(FINAL_RESPONSE_MARKER):]
    text = re.sub(r'<thinking>.*?</thinking>', '', text, flags=re.DOTALL).strip()
    prefixes = ["Retailer:", "Response:", "Final Response:"]
    for prefix in prefixes:
        if text.lower().startswith(prefix.lower()):
            text = text[len(prefix):].lstrip(" :")
    return text.strip()


def _fmt_w(w: Optional[float]) -> str:
    return display_w(w) if w is not None else "N/A"


def _fmt_q(q: Optional[float]) -> str:
    return display_q(q) if q is not None else "N/A"


# --- THE PUPPETEER LOGIC ---

def generate_turn_guidance(decision: Decision, nash: NashSolution) -> str:
    """
    Renders the policy decision as an order the dialogue model must follow.
    All numbers come from the decision; nothing is recalculated here.
    """
    if isinstance(decision, Accept):
        w, q = _fmt_w(decision.offer.w), _fmt_q(decision.offer.q)
        return (f"The Supplier's offer is favorable. ACCEPT it by repeating it back exactly: "
                f"w={w} and q={q}. Say: 'I can agree to w={w} and q={q}. Please confirm, and we have a deal.'")

    if isinstance(decision, CounterPrice):
        return (f"Counter-offer. Keep the quantity q={_fmt_q(decision.q)} and propose "
                f"exactly w={_fmt_w(decision.new_w)}. Do NOT accept their price.")

    if isinstance(decision, CounterQuantity):
        return (f"Accept their price of w={_fmt_w(decision.w)} and propose "
                f"exactly q={_fmt_q(decision.new_q)} as a full deal.")

    if isinstance(decision, RejectAndReinitiate):
        return (f"The proposal is not attractive. Politely reject it and re-propose exactly "
                f"w={_fmt_w(decision.nash_offer.w)}, q={_fmt_q(decision.nash_offer.q)}.")

    if isinstance(decision, ConditionalOffer):
        options = []
        max_price = decision.anchor("max_price")
        if max_price is not None:
            options.append(f"- If they ask for your MAXIMUM PRICE: say the highest price is w={_fmt_w(max_price.w)}, "
                           f"but only with a large quantity, q={_fmt_q(max_price.q)}.")
        min_quantity = decision.anchor("min_quantity")
        if min_quantity is not None:
            options.append(f"- If they ask for your MINIMUM QUANTITY: say you could go as low as q={_fmt_q(min_quantity.q)}, "
                           f"but only at a very low price, w={_fmt_w(min_quantity.w)}.")
        base = decision.anchor("nash") or ConditionalAnchor(kind="nash", w=nash.w, q=nash.q)
        options.append(f"- If they ask you to make an offer: propose w={_fmt_w(base.w)}, q={_fmt_q(base.q)}.")
        options.append("- Otherwise: ask them for a specific proposal. Do NOT propose an offer.")
        return "No offer on the table. Pick ONE option based on the Supplier's message:\n" + "\n".join(options)

    # Clarify
    return "No offer on the table. Ask the Supplier for a specific proposal with both w and q. Do NOT propose an offer."


# --- CORE FUNCTIONS ---

def get_bedrock_response(prompt: str) -> str:
    """Get the Retailer's reply from Amazon Bedrock"""
    try:
        reply = clean_ai_response(_invoke_model(prompt, max_tokens=800, temperature=0.5))
        if not reply:
            logger.error("Bedrock returned an empty reply")
            return FALLBACK_REPLY
        return reply
    except Exception as e:
        logger.error(f"Bedrock error: {e}")
        return FALLBACK_REPLY


def create_negotiation_prompt(decision: Decision, params: NegotiationParams, nash: NashSolution,
                              history: List[Dict[str, Any]]) -> str:
    """Create the prompt with the policy decision injected"""
    guidance = generate_turn_guidance(decision, nash)

    history_str = ""
    if history:
        history_str = "\n".join([
            f"{msg.get('role', 'unknown').title()}: {msg.get('content', '')}"
            for msg in history[-config.HISTORY_WINDOW:]
        ])

    return MASTER_PROMPT_TEMPLATE.format(
        deal_parameters=format_negotiation_params(params, nash),
        conversation_history=history_str,
        turn_guidance=guidance,
    )
