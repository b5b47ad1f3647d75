"""
Service-wide exception hierarchy.

Permission *queries* (can_edit_file, can_mark_file_forward, ...) never raise
for missing data; they answer "no".  Routing *commands* (mark_file,
return_to_creator, add_team_member, ...) raise the types below and the
blueprints translate them to HTTP once, in a registered error handler.

Usage:
    from efiling.core.exceptions import NotFoundError, PermissionDeniedError

    raise NotFoundError(resource="EFile", resource_id=42)
    raise PermissionDeniedError("Not assigned to file")
"""


class NotFoundError(Exception):
    """Raised when a referenced file, user or workflow state does not exist.

    Args:
        resource: Human-readable entity name (e.g. "EFile", "EfilingUser").
        resource_id: The key that was looked up.  Included in logs and in the
                     HTTP body.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Raised when a routing command is refused by the workflow rules.

    ``reason`` is the stable, user-visible string the UI relays as-is
    ("Not assigned to file", "E-signature required before marking forward").
    The UI branches on ``requires_signature``, never on the reason text.

    Maps to HTTP 403.
    """

    def __init__(self, reason: str, requires_signature: bool = False) -> None:
        self.reason = reason
        self.requires_signature = requires_signature
        super().__init__(reason)
