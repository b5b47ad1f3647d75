"""
E-Filing Workflow Service
Blueprint registry and shared blueprint helpers.
"""

import logging

from flask import request

from efiling.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from efiling.utils.errors import E, api_error, workflow_refusal


def paginate_list(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already materialised list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def register_error_handlers(bp):
    """Map service-layer exceptions to JSON responses for every route of ``bp``."""
    logger = logging.getLogger(bp.import_name)

    @bp.errorhandler(NotFoundError)
    def _not_found(exc):
        return api_error(E.NOT_FOUND, str(exc))

    @bp.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details or None)

    @bp.errorhandler(PermissionDeniedError)
    def _denied(exc):
        logger.info("Workflow action refused: %s", exc.reason)
        return workflow_refusal(exc.reason, requires_signature=exc.requires_signature)
