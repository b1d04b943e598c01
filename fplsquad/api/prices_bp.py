"""Prices blueprint -- purchase-price lookups."""

from flask import Blueprint, jsonify, request

from fplsquad.api.helpers import get_manager, to_json
from fplsquad.schemas.requests import PurchasePriceRequest, parse_request

prices_bp = Blueprint("prices", __name__)


@prices_bp.route("/purchase")
def api_purchase_price():
    req = parse_request(PurchasePriceRequest, request.args.to_dict())
    info = get_manager().resolve_purchase_price(
        req.participant_id, req.player_id, req.gameweek, entry_id=req.entry_id,
    )
    return jsonify(to_json(info))
