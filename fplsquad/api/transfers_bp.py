"""Transfers blueprint -- make transfers, ledger queries and recommendations."""

from flask import Blueprint, jsonify, request

from fplsquad.api.helpers import get_manager, load_predictions_from_csv, scrub_nan, to_json
from fplsquad.schemas.requests import (
    RecommendationRequest,
    TransferHistoryRequest,
    TransferRequest,
    parse_request,
)


transfers_bp = Blueprint("transfers", __name__)


@transfers_bp.route("", methods=["POST"])
def api_make_transfer():
    req = parse_request(TransferRequest, request.get_json(silent=True))
    roster, record = get_manager().make_transfer(
        req.participant_id, req.player_out_id, req.player_in_id, req.gameweek,
    )
    return jsonify({"transfer": to_json(record), "squad": to_json(roster)})


@transfers_bp.route("/history")
def api_transfer_history():
    req = parse_request(TransferHistoryRequest, request.args.to_dict())
    records = get_manager().get_transfer_history(
        req.participant_id, gameweek=req.gameweek, limit=req.limit,
    )
    return jsonify({"transfers": to_json(records)})


@transfers_bp.route("/summary/<int:gameweek>")
def api_transfer_summary(gameweek: int):
    req = parse_request(TransferHistoryRequest, {**request.args.to_dict(), "gameweek": gameweek})
    summary = get_manager().get_transfer_summary(req.participant_id, req.gameweek)
    return jsonify(to_json(summary))


@transfers_bp.route("/recommendations")
def api_recommendations():
    req = parse_request(RecommendationRequest, request.args.to_dict())
    recs = get_manager().recommend_transfers(
        req.participant_id,
        gameweeks_ahead=req.gameweeks_ahead,
        predictions=load_predictions_from_csv(),
    )
    return jsonify({"recommendations": scrub_nan(recs)})
