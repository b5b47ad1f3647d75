"""
Team Blueprint — manager ↔ team member relations.

Endpoints:
    GET    /api/v1/efiling/teams?manager_id=<int>
    POST   /api/v1/efiling/teams
           Body: { "manager_id": <int>, "team_member_id": <int>, "team_role": "AEE" }
    DELETE /api/v1/efiling/teams?manager_id=<int>&team_member_id=<int>
    GET    /api/v1/efiling/teams/<manager_id>/marking-candidates
    GET    /api/v1/efiling/teams/<manager_id>/assistants
    GET    /api/v1/efiling/teams/members/<user_id>/manager
"""

import logging

from flask import Blueprint, jsonify, request

from efiling.blueprints import register_error_handlers
from efiling.services import team_service
from efiling.utils.errors import E, api_error
from efiling.utils.helpers import parse_id, parse_ids

logger = logging.getLogger(__name__)

team_bp = Blueprint("team", __name__, url_prefix="/api/v1/efiling/teams")
register_error_handlers(team_bp)


@team_bp.route("", methods=["GET"])
def list_team_members():
    manager_id = parse_id(request.args.get("manager_id"))
    if manager_id is None:
        return api_error(E.VALIDATION_REQUIRED, "Query parameter 'manager_id' is required.")
    members = team_service.get_team_members(manager_id)
    return jsonify({"manager_id": manager_id, "team_members": members, "total": len(members)}), 200


@team_bp.route("", methods=["POST"])
def add_team_member():
    data = request.get_json(silent=True) or {}
    ids, missing = parse_ids(data, "manager_id", "team_member_id")
    if missing or not (data.get("team_role") or "").strip():
        return api_error(
            E.VALIDATION_REQUIRED,
            "manager_id, team_member_id, and team_role are required",
        )

    relation = team_service.add_team_member(
        ids["manager_id"], ids["team_member_id"], data["team_role"],
    )
    members = team_service.get_team_members(ids["manager_id"])
    return jsonify({"relation": relation, "team_members": members}), 201


@team_bp.route("", methods=["DELETE"])
def remove_team_member():
    ids, missing = parse_ids(request.args, "manager_id", "team_member_id")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "manager_id and team_member_id are required")

    removed = team_service.remove_team_member(ids["manager_id"], ids["team_member_id"])
    if not removed:
        return api_error(E.NOT_FOUND, "Active team relation not found")
    return jsonify({"removed": True}), 200


@team_bp.route("/<int:manager_id>/marking-candidates", methods=["GET"])
def marking_candidates(manager_id: int):
    candidates = team_service.get_team_members_for_marking(manager_id)
    return jsonify({"creator_id": manager_id, "candidates": candidates}), 200


@team_bp.route("/<int:manager_id>/assistants", methods=["GET"])
def assistants(manager_id: int):
    return jsonify({
        "manager_id": manager_id,
        "assistants": team_service.get_assistants_for_manager(manager_id),
    }), 200


@team_bp.route("/members/<int:user_id>/manager", methods=["GET"])
def manager_for_user(user_id: int):
    manager = team_service.get_manager_for_user(user_id)
    if manager is None:
        return api_error(E.NOT_FOUND, f"User {user_id} has no active manager")
    return jsonify(manager), 200
