import pytest

import ai_service
from ai_service import (
    FALLBACK_REPLY,
    clean_ai_response,
    create_negotiation_prompt,
    generate_turn_guidance,
    get_bedrock_response,
    parse_offer_json,
    read_offer,
)
from models import (
    Accept,
    Clarify,
    ConditionalAnchor,
    ConditionalOffer,
    CounterPrice,
    CounterQuantity,
    Offer,
    PartialOffer,
    RejectAndReinitiate,
)


@pytest.fixture
def model_calls(monkeypatch):
    """Replaces the Bedrock call; set `reply` to a string or an exception."""
    calls = {"prompts": [], "reply": ""}

    def fake_invoke(prompt, max_tokens, temperature):
        calls["prompts"].append(prompt)
        if isinstance(calls["reply"], Exception):
            raise calls["reply"]
        return calls["reply"]

    monkeypatch.setattr(ai_service, "_invoke_model", fake_invoke)
    return calls


# --- Offer reader ---

def test_parse_offer_json_strips_fences():
    assert parse_offer_json('```json\n{"w": 6.5, "q": 40}\n```') == PartialOffer(w=6.5, q=40)


def test_parse_offer_json_partial_and_junk_values():
    assert parse_offer_json('{"w": null, "q": 30.0}') == PartialOffer(q=30)
    assert parse_offer_json('{"w": "cheap", "q": true}') == PartialOffer()


def test_parse_offer_json_rejects_non_objects():
    with pytest.raises(ValueError):
        parse_offer_json('[6.5, 40]')


def test_read_offer(model_calls):
    model_calls["reply"] = '{"w": 5.83, "q": 30}'
    assert read_offer("I would like 5.83 for 30 units") == PartialOffer(w=5.83, q=30)
    assert "5.83 for 30 units" in model_calls["prompts"][0]


def test_read_offer_skips_empty_text(model_calls):
    assert read_offer("   ") == PartialOffer()
    assert model_calls["prompts"] == []


def test_read_offer_failures_read_as_no_offer(model_calls):
    model_calls["reply"] = RuntimeError("throttled")
    assert read_offer("w=7, q=70") == PartialOffer()

    model_calls["reply"] = "Sure! The price is 7."
    assert read_offer("w=7, q=70") == PartialOffer()


# --- Dialogue ---

def test_clean_ai_response_keeps_final_part():
    raw = "[INTERNAL ANALYSIS LOG]\n- Action: counter\n\n[FINAL RESPONSE]\nRetailer: How about w=7.31 and q=70?"
    assert clean_ai_response(raw) == "How about w=7.31 and q=70?"


def test_get_bedrock_response(model_calls):
    model_calls["reply"] = "[FINAL RESPONSE]\nI can agree to w=7.00 and q=70."
    assert get_bedrock_response("prompt") == "I can agree to w=7.00 and q=70."


def test_get_bedrock_response_falls_back(model_calls):
    model_calls["reply"] = RuntimeError("AccessDenied")
    assert get_bedrock_response("prompt") == FALLBACK_REPLY

    model_calls["reply"] = "[FINAL RESPONSE]   "
    assert get_bedrock_response("prompt") == FALLBACK_REPLY


def test_guidance_uses_decision_numbers(nash):
    assert "w=7.00 and q=70" in generate_turn_guidance(Accept(offer=Offer(w=7, q=70)), nash)
    assert "exactly w=7.31" in generate_turn_guidance(CounterPrice(q=70, new_w=nash.w), nash)
    assert "exactly q=29" in generate_turn_guidance(CounterQuantity(w=5, new_q=29), nash)
    assert "w=7.31, q=70" in generate_turn_guidance(RejectAndReinitiate(nash_offer=nash.offer), nash)
    assert "Do NOT propose" in generate_turn_guidance(Clarify(), nash)


def test_guidance_marks_missing_anchor_values(nash):
    decision = ConditionalOffer(anchors=[
        ConditionalAnchor(kind="nash", w=nash.w, q=nash.q),
        ConditionalAnchor(kind="max_price", w=None, q=100),
        ConditionalAnchor(kind="min_quantity", w=3.01, q=19),
    ])
    guidance = generate_turn_guidance(decision, nash)
    assert "w=N/A" in guidance
    assert "q=19" in guidance


def test_prompt_includes_guidance_and_recent_history(params, nash):
    history = [{"role": "user", "content": f"message {i}"} for i in range(10)]
    prompt = create_negotiation_prompt(CounterPrice(q=70, new_w=nash.w), params, nash, history)
    assert "exactly w=7.31" in prompt
    assert "message 9" in prompt
    assert "message 3" not in prompt


def test_parse_offer_json_drops_non_finite_numbers():
    assert parse_offer_json('{"w": 1e400, "q": 70}') == PartialOffer(q=70)
    assert parse_offer_json('{"w": 7.5, "q": -1e400}') == PartialOffer(w=7.5)


def test_guidance_with_partial_anchor_list(nash):
    decision = ConditionalOffer(anchors=[ConditionalAnchor(kind="nash", w=nash.w, q=nash.q)])
    guidance = generate_turn_guidance(decision, nash)
    assert "propose w=7.31, q=70" in guidance
    assert "MAXIMUM PRICE" not in guidance
    assert "MINIMUM QUANTITY" not in guidance
