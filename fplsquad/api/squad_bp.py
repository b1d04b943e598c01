"""Squad blueprint -- initialisation, roster view, history and rollover."""

from flask import Blueprint, jsonify, request

from fplsquad.api.helpers import get_manager, to_json
from fplsquad.schemas.requests import (
    AdvanceRequest,
    HistoryRequest,
    InitializeRequest,
    ParticipantRequest,
    parse_request,
)


squad_bp = Blueprint("squad", __name__)


# ---------------------------------------------------------------------------
# Init / View / Delete
# ---------------------------------------------------------------------------

@squad_bp.route("/initialize", methods=["POST"])
def api_initialize():
    req = parse_request(InitializeRequest, request.get_json(silent=True))
    roster = get_manager().initialize_from_entry(req.participant_id, req.entry_id, req.gameweek)
    return jsonify({"status": "initialized", "squad": to_json(roster)}), 201


@squad_bp.route("", methods=["GET"])
def api_get_squad():
    req = parse_request(ParticipantRequest, request.args.to_dict())
    return jsonify(get_manager().get_roster_view(req.participant_id))


@squad_bp.route("", methods=["DELETE"])
def api_delete_squad():
    body = request.get_json(silent=True) or request.args.to_dict()
    req = parse_request(ParticipantRequest, body)
    get_manager().delete_participant(req.participant_id)
    return jsonify({"status": "deleted"})


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

@squad_bp.route("/history")
def api_list_history():
    req = parse_request(ParticipantRequest, request.args.to_dict())
    snapshots = get_manager().list_history(req.participant_id)
    return jsonify({"history": to_json(snapshots)})


@squad_bp.route("/history/<int:gameweek>")
def api_get_history(gameweek: int):
    req = parse_request(HistoryRequest, {**request.args.to_dict(), "gameweek": gameweek})
    snap = get_manager().get_history_snapshot(req.participant_id, req.gameweek, req.snapshot_type)
    return jsonify(to_json(snap))


# ---------------------------------------------------------------------------
# Gameweek rollover
# ---------------------------------------------------------------------------

@squad_bp.route("/advance", methods=["POST"])
def api_advance():
    req = parse_request(AdvanceRequest, request.get_json(silent=True))
    roster = get_manager().advance_gameweek(
        req.participant_id, req.gameweek,
        points_scored=req.points_scored,
        overall_rank=req.overall_rank,
    )
    return jsonify({"status": "advanced", "squad": to_json(roster)})
