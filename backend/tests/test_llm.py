import json
from unittest.mock import MagicMock, patch

import pytest

from backend.analysis.models import Competitor, UserListing
from backend.llm.advisor import generate_description_analysis, generate_pricing_recommendations
from backend.llm.config import LLMConfig
from backend.llm.groq_client import LLMUnavailableError, complete_json

USER = UserListing(
    id="me",
    name="Sunny Loft",
    current_price=150,
    rating=4.8,
    reviews=40,
    description="Cozy loft with wifi and a full kitchen. Book your stay today!",
)

COMPETITORS = [
    Competitor(
        id="a",
        name="Alpha",
        price=100,
        rating=4.5,
        description="Beach house with a beautiful ocean view, walking distance to downtown restaurants.",
    ),
    Competitor(id="b", name="Bravo", price=300, rating=4.9, description="Short"),
]

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


# ── complete_json ────────────────────────────────────────────────────────


@patch("backend.llm.groq_client.Groq")
def test_complete_json_uses_json_mode(mock_groq_cls):
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response('{"ok": true}')

    assert complete_json("prompt", model="m", temperature=0.4, config=ENABLED_CONFIG) == {"ok": True}

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "m"
    assert kwargs["temperature"] == 0.4
    assert kwargs["response_format"] == {"type": "json_object"}


@patch("backend.llm.groq_client.Groq")
def test_complete_json_rejects_non_object(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("[1, 2]")

    with pytest.raises(LLMUnavailableError):
        complete_json("prompt", model="m", config=ENABLED_CONFIG)


def test_complete_json_disabled():
    with pytest.raises(LLMUnavailableError):
        complete_json("prompt", model="m", config=DISABLED_CONFIG)


# ── Pricing ──────────────────────────────────────────────────────────────


@patch("backend.llm.groq_client.Groq")
def test_pricing_uses_llm_answer(mock_groq_cls):
    llm_response = json.dumps({
        "current_market_position": "at_market",
        "suggested_price_range": {"min": 170, "max": 210, "optimal": 195},
        "reasoning": "Priced under comparable lofts.",
        "competitor_comparison": "Alpha is cheaper but older.",
        "demand_indicators": ["Weekend demand"],
        "seasonal_insights": "Raise prices in summer.",
    })
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(llm_response)

    result = generate_pricing_recommendations(USER, COMPETITORS, config=ENABLED_CONFIG)

    assert result.current_market_position == "at_market"
    assert result.suggested_price_range.optimal == 195
    assert result.reasoning == "Priced under comparable lofts."
    assert result.demand_indicators == ["Weekend demand"]

    prompt = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert "Alpha: $100" in prompt
    assert "Average competitor price: $200" in prompt
    assert "Below market average" in prompt


@patch("backend.llm.groq_client.Groq")
def test_pricing_fills_missing_fields(mock_groq_cls):
    llm_response = json.dumps({"current_market_position": "cheap", "reasoning": ""})
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(llm_response)

    result = generate_pricing_recommendations(USER, COMPETITORS, config=ENABLED_CONFIG)

    # 150 is below 90% of the 200 average
    assert result.current_market_position == "below_market"
    assert (result.suggested_price_range.min, result.suggested_price_range.max) == (170, 230)
    assert result.suggested_price_range.optimal == 200
    assert result.reasoning == "Based on analysis of 2 similar listings in your area"
    assert result.demand_indicators == ["Market analysis based on competitor data"]


@patch("backend.llm.groq_client.Groq")
def test_pricing_fallback_on_api_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    result = generate_pricing_recommendations(USER, COMPETITORS, config=ENABLED_CONFIG)

    assert result.current_market_position == "below_market"
    assert (result.suggested_price_range.min, result.suggested_price_range.max) == (180, 220)
    assert result.suggested_price_range.optimal == 200
    assert result.competitor_comparison == "Market average is $200"


@patch("backend.llm.groq_client.Groq")
def test_pricing_fallback_on_bad_json(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("not valid json{{{")

    result = generate_pricing_recommendations(USER, COMPETITORS, config=ENABLED_CONFIG)

    assert result.reasoning == "Based on analysis of 2 competitor listings"


@patch("backend.llm.groq_client.Groq")
def test_pricing_disabled_never_calls_groq(mock_groq_cls):
    result = generate_pricing_recommendations(USER, COMPETITORS, config=DISABLED_CONFIG)

    mock_groq_cls.assert_not_called()
    assert result.suggested_price_range.optimal == 200


def test_pricing_requires_competitors():
    with pytest.raises(ValueError):
        generate_pricing_recommendations(USER, [], config=DISABLED_CONFIG)


# ── Description ──────────────────────────────────────────────────────────


@patch("backend.llm.groq_client.Groq")
def test_description_without_competitor_text(mock_groq_cls):
    short_only = [Competitor(id="b", name="Bravo", price=300, description="Short")]

    result = generate_description_analysis(USER, short_only, config=ENABLED_CONFIG)

    mock_groq_cls.assert_not_called()
    assert result.suggestions == ["No competitor descriptions available for analysis"]
    assert result.word_count == 12
    assert result.optimized_description == USER.description


@patch("backend.llm.groq_client.Groq")
def test_description_uses_llm_answer(mock_groq_cls):
    llm_response = json.dumps({
        "readability_score": 8.5,
        "keyword_analysis": {"present_keywords": ["loft"], "missing_keywords": ["beach"]},
        "structure_analysis": {"has_intro": True, "has_cta": True},
        "suggestions": ["Mention the neighborhood"],
        "optimized_description": "A sunny loft steps from the park.",
    })
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(llm_response)

    result = generate_description_analysis(USER, COMPETITORS, config=ENABLED_CONFIG)

    assert result.readability_score == 8.5
    assert result.keyword_analysis.missing_keywords == ["beach"]
    assert result.structure_analysis.has_cta is True
    assert result.current_description == USER.description
    assert result.optimized_description == "A sunny loft steps from the park."

    prompt = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert "Beach house" in prompt
    assert "Short" not in prompt


@patch("backend.llm.groq_client.Groq")
def test_description_fallback_on_invalid_answer(mock_groq_cls):
    llm_response = json.dumps({"readability_score": 42})
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(llm_response)

    result = generate_description_analysis(USER, COMPETITORS, config=ENABLED_CONFIG)

    assert result.readability_score == 7
    assert result.keyword_analysis.present_keywords[:3] == ["cozy", "loft", "wifi"]
    assert "beach" in result.keyword_analysis.competitor_keywords
    assert result.structure_analysis.has_amenity_list is True
    assert result.structure_analysis.has_booking_info is True
    assert result.structure_analysis.has_cta is False
    assert len(result.suggestions) == 3


def test_pricing_fallback_rounds_half_up():
    comps = [Competitor(id="a", name="Alpha", price=100), Competitor(id="b", name="Bravo", price=101)]

    result = generate_pricing_recommendations(USER, comps, config=DISABLED_CONFIG)

    # Average 100.5
    assert result.suggested_price_range.optimal == 101
    assert result.competitor_comparison == "Market average is $101"
