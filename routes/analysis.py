import logging

from flask import Blueprint, jsonify, g

from security import rate_limit
from services.analysis import generate_analysis
from utils.auth_context import login_required
from utils.net import client_ip
from utils.request_data import json_body

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__, url_prefix="/api")

MAX_SYMBOL_LEN = 32


def _valid_candles(candles) -> bool:
    return isinstance(candles, list) and len(candles) > 0 and all(isinstance(c, dict) for c in candles)


@analysis_bp.post("/analysis")
@login_required
def analysis():
    principal = g.principal

    data = json_body()
    symbol = data.get("symbol")
    candles = data.get("candles")
    quote = data.get("quote")

    if not isinstance(symbol, str) or not symbol.strip() or len(symbol.strip()) > MAX_SYMBOL_LEN:
        return jsonify(error="Symbol and candle data are required"), 400
    if not _valid_candles(candles):
        return jsonify(error="Symbol and candle data are required"), 400
    if quote is not None and not isinstance(quote, dict):
        return jsonify(error="quote must be an object"), 400

    symbol = symbol.strip().upper()
    ip = client_ip()

    rate_limit.check(principal)
    rate_limit.increment_lifetime_count(principal)

    result, cached = generate_analysis(symbol, candles, quote)

    # only successful analyses count toward the hourly window
    rate_limit.record(principal, symbol, ip)
    logger.info("Analysis for %s served to %s (cached=%s)", symbol, principal.email, cached)
    return jsonify(result), 200
