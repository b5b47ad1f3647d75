"""
File Workflow Blueprint.

HTTP endpoints over the file routing state machine.  Authentication is
handled upstream; acting user ids arrive in the body or query string.

Endpoints:
    POST   /api/v1/efiling/files
           Body: { "creator_id": <int>, "subject": "...", "file_number": "..." }
           Returns: 201 with the file and its initial workflow state.

    GET    /api/v1/efiling/files/<fid>/workflow-state
           Returns: 200 with the state, 404 if the file has none.

    GET    /api/v1/efiling/files/<fid>/permissions?user_id=<int>
           Returns: 200 with the permission view for that user.

    GET    /api/v1/efiling/files/<fid>/can-mark?user_id=<int>&to_user_id=<int>
           Returns: 200 with { canMark, requiresSignature, reason? }.

    POST   /api/v1/efiling/files/<fid>/mark-to
           Body: { "from_user_id": <int>, "to_user_id": <int>, "remarks": "..." }
           Returns: 200 with file, workflow_state, movement.
                    403 with requires_signature when refused.

    POST   /api/v1/efiling/files/<fid>/return-to-creator
           Body: { "actor_id": <int>, "remarks": "..." }

    POST   /api/v1/efiling/files/<fid>/signatures
           Body: { "user_id": <int>, "signature_type": "..." }
           Returns: 201 with the signature record.

    GET    /api/v1/efiling/files/<fid>/signatures?user_id=<int>
           Returns: 200 with { active_count, latest }.

    DELETE /api/v1/efiling/files/<fid>/signatures?user_id=<int>
           Withdraws the user's active signatures.
           Returns: 200 with { withdrawn }.

    GET    /api/v1/efiling/files/<fid>/movements?limit=&offset=
           Returns: 200 with routing history, newest first.

Layer contract:
    - Blueprint: parse + validate input, call service, return JSON.
    - NO db.session calls here; all writes are owned by the services.
    - Service exceptions are mapped by ``register_error_handlers``.
"""

import logging

from flask import Blueprint, jsonify, request

from efiling.blueprints import paginate_list, register_error_handlers
from efiling.services import (
    file_store,
    routing_service,
    signature_service,
    workflow_state_service,
)
from efiling.utils.errors import E, api_error
from efiling.utils.helpers import parse_id, parse_ids

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1/efiling")
register_error_handlers(workflow_bp)


def _missing(fields):
    return api_error(
        E.VALIDATION_REQUIRED,
        f"Missing or invalid field(s): {', '.join(fields)}",
        details={f: "positive integer required" for f in fields},
    )


@workflow_bp.route("/files", methods=["POST"])
def create_file():
    data = request.get_json(silent=True) or {}
    creator_id = parse_id(data.get("creator_id"))
    if creator_id is None:
        return _missing(["creator_id"])
    if not (data.get("subject") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "Field 'subject' is required.")

    result = routing_service.create_file(
        creator_id=creator_id,
        subject=data.get("subject"),
        file_number=data.get("file_number"),
    )
    return jsonify(result), 201


@workflow_bp.route("/files/<int:file_id>/workflow-state", methods=["GET"])
def get_workflow_state(file_id: int):
    state = workflow_state_service.get_workflow_state(file_id)
    if state is None:
        return api_error(E.NOT_FOUND, f"No workflow state for file {file_id}")
    body = state.to_dict()
    body["is_file_with_team"] = workflow_state_service.is_file_with_team(file_id)
    return jsonify(body), 200


@workflow_bp.route("/files/<int:file_id>/permissions", methods=["GET"])
def get_permissions(file_id: int):
    user_id = parse_id(request.args.get("user_id"))
    if user_id is None:
        return _missing(["user_id"])
    permissions = routing_service.get_file_permissions(file_id, user_id)
    return jsonify({"file_id": file_id, "user_id": user_id, "permissions": permissions}), 200


@workflow_bp.route("/files/<int:file_id>/can-mark", methods=["GET"])
def can_mark(file_id: int):
    ids, missing = parse_ids(request.args, "user_id", "to_user_id")
    if missing:
        return _missing(missing)
    decision = signature_service.can_mark_file_forward(file_id, ids["user_id"], ids["to_user_id"])
    return jsonify(decision.to_dict()), 200


@workflow_bp.route("/files/<int:file_id>/mark-to", methods=["POST"])
def mark_to(file_id: int):
    """Route a file to another user.  Signature and assignment rules live in the service."""
    data = request.get_json(silent=True) or {}
    ids, missing = parse_ids(data, "from_user_id", "to_user_id")
    if missing:
        return _missing(missing)

    result = routing_service.mark_file(
        file_id,
        from_user_id=ids["from_user_id"],
        to_user_id=ids["to_user_id"],
        remarks=data.get("remarks"),
    )
    return jsonify(result), 200


@workflow_bp.route("/files/<int:file_id>/return-to-creator", methods=["POST"])
def return_to_creator(file_id: int):
    data = request.get_json(silent=True) or {}
    actor_id = parse_id(data.get("actor_id"))
    if actor_id is None:
        return _missing(["actor_id"])

    result = routing_service.return_to_creator(file_id, actor_id, remarks=data.get("remarks"))
    return jsonify(result), 200


@workflow_bp.route("/files/<int:file_id>/signatures", methods=["POST"])
def sign_file(file_id: int):
    data = request.get_json(silent=True) or {}
    user_id = parse_id(data.get("user_id"))
    if user_id is None:
        return _missing(["user_id"])

    record = signature_service.record_signature(
        file_id, user_id, signature_type=data.get("signature_type") or "e-signature",
    )
    return jsonify(record), 201


@workflow_bp.route("/files/<int:file_id>/signatures", methods=["GET"])
def get_signature_status(file_id: int):
    user_id = parse_id(request.args.get("user_id"))
    if user_id is None:
        return _missing(["user_id"])
    if file_store.get_file(file_id) is None:
        return api_error(E.NOT_FOUND, f"EFile id={file_id} not found")

    latest = signature_service.get_latest_signature(file_id, user_id)
    return jsonify({
        "file_id": file_id,
        "user_id": user_id,
        "active_count": signature_service.count_active_signatures(file_id, user_id),
        "latest": latest.to_dict() if latest else None,
    }), 200


@workflow_bp.route("/files/<int:file_id>/signatures", methods=["DELETE"])
def withdraw_signatures(file_id: int):
    user_id = parse_id(request.args.get("user_id"))
    if user_id is None:
        return _missing(["user_id"])

    withdrawn = signature_service.deactivate_signatures(file_id, user_id)
    return jsonify({"file_id": file_id, "user_id": user_id, "withdrawn": withdrawn}), 200


@workflow_bp.route("/files/<int:file_id>/movements", methods=["GET"])
def list_movements(file_id: int):
    history = routing_service.get_movement_history(file_id)
    page, total = paginate_list(history)
    return jsonify({"file_id": file_id, "movements": page, "total": total}), 200
