"""JSON error bodies for the workflow API.

Every error response has the shape ``{"error": <text>, "code": <ERR_*>}``,
optionally with ``details``.  Workflow refusals additionally carry
``requires_signature`` so the UI can open the signing dialog instead of
showing the text.

    from efiling.utils.errors import E, api_error, workflow_refusal

    return api_error(E.NOT_FOUND, "EFile id=4 not found")
    return workflow_refusal("Not assigned to file", requires_signature=False)
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    # 400: missing or malformed ids / fields
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    # 422: well-formed request that breaks a routing rule
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    NOT_FOUND = "ERR_NOT_FOUND"

    # 403: refused by the workflow
    FORBIDDEN = "ERR_FORBIDDEN"
    SIGNATURE_REQUIRED = "ERR_SIGNATURE_REQUIRED"

    RATE_LIMITED = "ERR_RATE_LIMITED"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.FORBIDDEN: 403,
    E.SIGNATURE_REQUIRED: 403,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(response, status)`` for a view to return.

    ``status`` defaults to the code's usual status, then 400.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)


def workflow_refusal(reason: str, *, requires_signature: bool):
    """403 for a routing action the workflow rules refused."""
    code = E.SIGNATURE_REQUIRED if requires_signature else E.FORBIDDEN
    return jsonify({
        "error": reason,
        "code": code,
        "requires_signature": requires_signature,
    }), 403
