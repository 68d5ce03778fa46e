"""
AI pattern analysis: prompt in, JSON out.

The LLM is reached through a provider callable (prompt -> raw text). The
default provider posts to an OpenAI-compatible chat completions endpoint or
to the Anthropic Messages API, chosen by LLM_PROVIDER. ANALYSIS_PROVIDER in
config replaces it. Identical prompts are served from a TTL cache kept on
the app.
"""
import copy
import hashlib
import json
import logging
import re

import requests
from flask import current_app

from security.errors import AnalysisUnavailable
from utils.cache import TTLCache

logger = logging.getLogger(__name__)

MAX_CANDLES = 60
CACHE_EXTENSION = "analysis_cache"

_FENCE = re.compile(r"```(?:json)?\n?")

FALLBACK_ANALYSIS = {
    "trend": "neutral",
    "confidence": 50,
    "patternAnalysis": "Unable to parse analysis. Please try again.",
    "indicators": {
        "rsi": {"value": 50, "signal": "Neutral"},
        "macd": {"value": "0.00", "signal": "Neutral"},
        "trend": {"value": "Sideways", "signal": "Direction"},
        "support": 0,
        "resistance": 0,
        "ma20": 0,
        "ma50": 0,
    },
    "sentiment": "Analysis unavailable.",
    "companyProfile": {
        "business": "Information unavailable.",
        "strengths": [],
        "risks": [],
    },
    "recommendation": "Please try again.",
}

RESPONSE_FORMAT = """{
  "trend": "bullish" or "bearish" or "neutral",
  "confidence": <number 0-100>,
  "patternAnalysis": "<chart patterns detected>",
  "indicators": {
    "rsi": { "value": <number>, "signal": "<Overbought/Oversold/Neutral>" },
    "macd": { "value": "<string like +0.45>", "signal": "<Strong/Weak/Neutral>" },
    "trend": { "value": "<Upward/Downward/Sideways>", "signal": "<Direction>" },
    "support": <number>,
    "resistance": <number>,
    "ma20": <number>,
    "ma50": <number>
  },
  "sentiment": "<1-2 sentence summary>",
  "companyProfile": { "business": "<description>", "strengths": ["..."], "risks": ["..."] },
  "recommendation": "<brief recommendation>"
}"""


def _format_candle(c: dict) -> str:
    return (
        f"{c.get('time')}: O={c.get('open')} H={c.get('high')} "
        f"L={c.get('low')} C={c.get('close')} V={c.get('volume')}"
    )


def _format_quote(quote: dict) -> str:
    if not quote:
        return ""
    fields = [
        ("Current Price", quote.get("price")),
        ("Change", quote.get("change")),
        ("Change %", quote.get("changePercent")),
        ("Volume", quote.get("volume")),
        ("Market Cap", quote.get("marketCap")),
        ("P/E Ratio", quote.get("peRatio")),
        ("EPS", quote.get("eps")),
        ("52-Week High", quote.get("fiftyTwoWeekHigh")),
        ("52-Week Low", quote.get("fiftyTwoWeekLow")),
        ("Market State", quote.get("marketState")),
    ]
    return "\n".join(f"{label}: {'N/A' if value is None else value}" for label, value in fields)


def build_prompt(symbol: str, candles: list, quote: dict = None) -> str:
    recent = candles[-MAX_CANDLES:]
    price_data = "\n".join(_format_candle(c) for c in recent)
    return (
        f"You are an expert stock market technical analyst. Analyze the following stock data "
        f"for {symbol} and provide a comprehensive analysis.\n\n"
        f"{_format_quote(quote)}\n\n"
        f"Recent OHLCV Data (last {len(recent)} trading days):\n{price_data}\n\n"
        f"Provide your analysis in the following JSON format exactly:\n{RESPONSE_FORMAT}\n\n"
        "Base RSI, MACD, and moving averages on the actual price data provided. "
        "Return ONLY valid JSON, no markdown."
    )


def parse_analysis(content: str) -> dict:
    cleaned = _FENCE.sub("", content or "").strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("LLM returned non-JSON analysis (%s chars)", len(cleaned))
        return copy.deepcopy(FALLBACK_ANALYSIS)
    if not isinstance(parsed, dict):
        return copy.deepcopy(FALLBACK_ANALYSIS)
    return parsed


def _post_json(url: str, headers: dict, payload: dict, extract) -> str:
    try:
        resp = requests.post(
            url,
            headers=headers,
            json=payload,
            timeout=current_app.config.get("LLM_TIMEOUT_SECONDS", 60),
        )
        resp.raise_for_status()
        return extract(resp.json()) or "{}"
    except requests.RequestException as exc:
        logger.error("LLM request failed: %s", exc)
        raise AnalysisUnavailable() from exc
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
        logger.error("Unexpected LLM response shape: %s", exc)
        raise AnalysisUnavailable() from exc


def _require_key(name: str) -> str:
    api_key = current_app.config.get(name)
    if not api_key:
        logger.error("%s is not configured", name)
        raise AnalysisUnavailable()
    return api_key


def call_openai(prompt: str) -> str:
    cfg = current_app.config
    api_key = _require_key("LLM_API_KEY")
    return _post_json(
        cfg["LLM_API_URL"],
        {"Authorization": f"Bearer {api_key}"},
        {
            "model": cfg.get("LLM_MODEL"),
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": cfg.get("LLM_MAX_TOKENS", 1500),
            "temperature": cfg.get("LLM_TEMPERATURE", 0.3),
        },
        lambda data: data["choices"][0]["message"]["content"],
    )


def call_anthropic(prompt: str) -> str:
    cfg = current_app.config
    api_key = _require_key("ANTHROPIC_API_KEY")
    return _post_json(
        cfg["ANTHROPIC_API_URL"],
        {"x-api-key": api_key, "anthropic-version": cfg.get("ANTHROPIC_VERSION", "2023-06-01")},
        {
            "model": cfg.get("ANTHROPIC_MODEL"),
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": cfg.get("LLM_MAX_TOKENS", 1500),
            "temperature": cfg.get("LLM_TEMPERATURE", 0.3),
        },
        lambda data: "".join(block["text"] for block in data["content"] if block.get("type") == "text"),
    )


LLM_CLIENTS = {
    "openai": call_openai,
    "anthropic": call_anthropic,
}


def call_llm(prompt: str) -> str:
    """Sends the prompt to the backend named by LLM_PROVIDER."""
    name = (current_app.config.get("LLM_PROVIDER") or "openai").lower()
    client = LLM_CLIENTS.get(name)
    if client is None:
        logger.error("Unknown LLM_PROVIDER %r", name)
        raise AnalysisUnavailable()
    return client(prompt)


def get_provider():
    return current_app.config.get("ANALYSIS_PROVIDER") or call_llm


def get_cache() -> TTLCache:
    return current_app.extensions[CACHE_EXTENSION]


def generate_analysis(symbol: str, candles: list, quote: dict = None):
    """Returns (analysis, from_cache)."""
    prompt = build_prompt(symbol, candles, quote)
    key = hashlib.sha256(prompt.encode("utf-8")).hexdigest()

    cache = get_cache()
    cached = cache.get(key)
    if cached is not None:
        logger.info("Serving cached analysis for %s", symbol)
        return cached, True

    analysis = parse_analysis(get_provider()(prompt))
    cache.set(key, analysis)
    return analysis, False
