"""
Signature Precondition Checker.

Decides whether forwarding a file needs the sender's e-signature first and
combines that with the sender's signing record into a ``MarkDecision``.

Decision order for ``requires_esignature_before_marking`` (first match wins):
    1. TEAM_INTERNAL file, both parties creator or creator's team   -> not required
    2. both role codes are team-member roles (AEE, DAO, AO, ...)     -> not required
    3. RE/XEN -> SE, Administrative Officer -> Director Med. Services -> required
    4. destination in external tier and not a team-member role      -> required
    5. source in external tier                                       -> required
    6. file currently EXTERNAL                                       -> required
    7. otherwise                                                     -> not required

An unknown sender or recipient requires a signature.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select

from efiling.core.exceptions import NotFoundError
from efiling.models import db
from efiling.models.directory import EfilingUser
from efiling.models.signature import DocumentSignature
from efiling.models.workflow import EXTERNAL, TEAM_INTERNAL
from efiling.services import directory, file_store, team_service
from efiling.services.role_codes import (
    is_admin_officer,
    is_director_medical_services,
    is_external_tier,
    is_re_or_xen,
    is_superintendent_engineer,
    is_team_member_role,
)

logger = logging.getLogger(__name__)

# User-visible reasons.  The UI shows them verbatim; keep them stable.
REASON_SIGNATURE_REQUIRED = "E-signature required before marking forward"
REASON_FILE_NOT_FOUND = "File not found"
REASON_NOT_ASSIGNED = "Not assigned to file"


@dataclass(frozen=True)
class MarkDecision:
    can_mark: bool
    requires_signature: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        body = {"canMark": self.can_mark, "requiresSignature": self.requires_signature}
        if self.reason:
            body["reason"] = self.reason
        return body


# ── Signature store ────────────────────────────────────────────────────────────


def count_active_signatures(file_id: int, user_id: int) -> int:
    return db.session.execute(
        select(func.count(DocumentSignature.id)).where(
            DocumentSignature.file_id == file_id,
            DocumentSignature.user_id == user_id,
            DocumentSignature.is_active.is_(True),
        )
    ).scalar() or 0


def has_active_signature(file_id: int, user_id: int) -> bool:
    return count_active_signatures(file_id, user_id) > 0


def get_latest_signature(file_id: int, user_id: int) -> DocumentSignature | None:
    """Most recent active signature of ``user_id`` on the file."""
    return db.session.execute(
        select(DocumentSignature)
        .where(
            DocumentSignature.file_id == file_id,
            DocumentSignature.user_id == user_id,
            DocumentSignature.is_active.is_(True),
        )
        .order_by(DocumentSignature.signed_at.desc(), DocumentSignature.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def record_signature(file_id: int, user_id: int, signature_type: str = "e-signature") -> dict:
    """Store that ``user_id`` signed the file.

    Raises:
        NotFoundError: unknown file or user.
    """
    if file_store.get_file(file_id) is None:
        raise NotFoundError(resource="EFile", resource_id=file_id)
    if db.session.get(EfilingUser, user_id) is None:
        raise NotFoundError(resource="EfilingUser", resource_id=user_id)

    signature = DocumentSignature(
        file_id=file_id,
        user_id=user_id,
        signature_type=(signature_type or "e-signature").strip(),
        is_active=True,
    )
    db.session.add(signature)
    db.session.commit()

    logger.info("File signed", extra={"file_id": file_id, "user_id": user_id})
    return signature.to_dict()


def deactivate_signatures(file_id: int, user_id: int) -> int:
    """Withdraw every active signature of ``user_id`` on the file.  Returns how many.

    Raises:
        NotFoundError: unknown file.
    """
    if file_store.get_file(file_id) is None:
        raise NotFoundError(resource="EFile", resource_id=file_id)
    signatures = db.session.execute(
        select(DocumentSignature).where(
            DocumentSignature.file_id == file_id,
            DocumentSignature.user_id == user_id,
            DocumentSignature.is_active.is_(True),
        )
    ).scalars().all()
    for signature in signatures:
        signature.is_active = False
    db.session.commit()

    if signatures:
        logger.info("Signatures withdrawn: %d", len(signatures), extra={"file_id": file_id, "user_id": user_id})
    return len(signatures)


# ── Precondition rules ───────────────────────────────────────────────────────


def _is_team_scoped_move(creator_id: int, from_user_id: int, to_user_id: int) -> bool:
    def in_team(user_id):
        return user_id == creator_id or team_service.is_team_member(creator_id, user_id)

    return in_team(from_user_id) and in_team(to_user_id)


def requires_esignature_before_marking(file_id: int, from_user_id: int, to_user_id: int) -> bool:
    from efiling.services.workflow_state_service import get_workflow_state

    file = file_store.get_file(file_id)
    if file is None:
        return False

    state = get_workflow_state(file_id)
    current = state.current_state if state else None

    if current == TEAM_INTERNAL and _is_team_scoped_move(file.created_by, from_user_id, to_user_id):
        return False

    sender = directory.resolve_user(from_user_id)
    recipient = directory.resolve_user(to_user_id)
    if sender is None or recipient is None:
        return True

    from_code = sender.role_code
    to_code = recipient.role_code
    to_is_team_role = is_team_member_role(to_code)

    if is_team_member_role(from_code) and to_is_team_role:
        return False

    if is_re_or_xen(from_code) and is_superintendent_engineer(to_code):
        return True
    if is_admin_officer(from_code) and is_director_medical_services(to_code):
        return True

    if is_external_tier(to_code) and not to_is_team_role:
        return True
    if is_external_tier(from_code):
        return True

    return current == EXTERNAL


def can_mark_file_forward(file_id: int, user_id: int, to_user_id: int) -> MarkDecision:
    """Combine the signature precondition with the sender's assignment to the file."""
    has_signed = has_active_signature(file_id, user_id)
    requires_signature = requires_esignature_before_marking(file_id, user_id, to_user_id)

    if requires_signature and not has_signed:
        return MarkDecision(
            can_mark=False,
            requires_signature=True,
            reason=REASON_SIGNATURE_REQUIRED,
        )

    file = file_store.get_file(file_id)
    if file is None:
        return MarkDecision(can_mark=False, requires_signature=False, reason=REASON_FILE_NOT_FOUND)

    if user_id != file.assigned_to and user_id != file.created_by:
        return MarkDecision(can_mark=False, requires_signature=False, reason=REASON_NOT_ASSIGNED)

    return MarkDecision(can_mark=True, requires_signature=requires_signature)
