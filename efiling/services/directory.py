"""Directory lookup. Flattens an e-filing user into the facts the workflow rules need."""

from __future__ import annotations

from dataclasses import dataclass

from efiling.models import db
from efiling.models.directory import EfilingUser
from efiling.services.role_codes import normalize_role_code


@dataclass(frozen=True)
class DirectoryEntry:
    user_id: int
    name: str
    email: str | None
    role_code: str
    role_name: str | None
    department_name: str
    is_active: bool


def _to_entry(user: EfilingUser) -> DirectoryEntry:
    return DirectoryEntry(
        user_id=user.id,
        name=user.name,
        email=user.email,
        role_code=normalize_role_code(user.role.code if user.role else None),
        role_name=user.role.name if user.role else None,
        department_name=normalize_role_code(user.department.name if user.department else None),
        is_active=bool(user.is_active),
    )


def resolve_user(user_id: int | None, *, active_only: bool = False) -> DirectoryEntry | None:
    """Return the directory entry for ``user_id``, or None if unknown.

    Role code and department name come back upper-cased so callers can
    compare them directly.  With ``active_only`` a deactivated user resolves
    to None as well.
    """
    if user_id is None:
        return None
    user = db.session.get(EfilingUser, user_id)
    if user is None:
        return None
    if active_only and not user.is_active:
        return None
    return _to_entry(user)


def resolve_role_code(user_id: int | None) -> str | None:
    """Shortcut for the role code alone; None when the user is unknown."""
    entry = resolve_user(user_id)
    return entry.role_code if entry else None
