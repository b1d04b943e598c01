"""Chips blueprint -- availability, activation and cancellation."""

from flask import Blueprint, jsonify, request

from fplsquad.api.helpers import get_manager, to_json
from fplsquad.schemas.requests import (
    ChipActivationRequest,
    ChipListRequest,
    ParticipantRequest,
    parse_request,
)


chips_bp = Blueprint("chips", __name__)


@chips_bp.route("")
def api_available_chips():
    req = parse_request(ChipListRequest, request.args.to_dict())
    chips = get_manager().list_available_chips(req.participant_id, req.gameweek)
    return jsonify({"gameweek": req.gameweek, "available": chips})


@chips_bp.route("/registry")
def api_chip_registry():
    req = parse_request(ParticipantRequest, request.args.to_dict())
    return jsonify(to_json(get_manager().get_chip_registry(req.participant_id)))


@chips_bp.route("/activate", methods=["POST"])
def api_activate_chip():
    req = parse_request(ChipActivationRequest, request.get_json(silent=True))
    activation = get_manager().activate_chip(req.participant_id, req.chip, req.gameweek)
    return jsonify({
        "status": "activated",
        "chip": activation.instance_id,
        "squad": to_json(activation.roster),
    })


@chips_bp.route("/cancel", methods=["POST"])
def api_cancel_chip():
    req = parse_request(ParticipantRequest, request.get_json(silent=True))
    roster, instance_id = get_manager().cancel_chip(req.participant_id)
    return jsonify({"status": "cancelled", "chip": instance_id, "squad": to_json(roster)})
