"""
File routing: the commands behind "create", "mark to" and "return to creator".

Each command is one transaction:

    lock file row ─▶ check rules ─▶ claim file assignee ─▶ write workflow state
                 ─▶ append FileMovement ─▶ commit

The claim is a conditional update on the holder read under the lock, so of
two transitions that read the same holder only the first can write.

If anything fails after the lock, the session is rolled back before the
error escapes, so a half-applied transition is never visible.  Which state
a move lands in is decided here; ``workflow_state_service`` only applies it.

Also hosts the read-side aggregation the UI needs for a file
(``get_file_permissions``, ``get_movement_history``).
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from efiling.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from efiling.models import db
from efiling.models.efile import EFile, FileMovement
from efiling.models.workflow import EXTERNAL, RETURNED_TO_CREATOR, TEAM_INTERNAL
from efiling.services import (
    directory,
    file_store,
    signature_service,
    team_service,
    workflow_state_service,
)
from efiling.services.role_codes import is_higher_authority, is_returning_authority

logger = logging.getLogger(__name__)


def _require_active_user(user_id: int) -> directory.DirectoryEntry:
    entry = directory.resolve_user(user_id, active_only=True)
    if entry is None:
        raise NotFoundError(resource="EfilingUser", resource_id=user_id)
    return entry


def _ensure_state(file: EFile):
    """Workflow state of ``file``; files that predate state tracking get one now."""
    state = workflow_state_service.get_workflow_state(file.id)
    if state is None:
        logger.warning("File had no workflow state, initializing", extra={"file_id": file.id})
        state = workflow_state_service.initialize_workflow_state(file.id, file.created_by, commit=False)
    return state


# ── Commands ───────────────────────────────────────────────────────────────────


def create_file(creator_id: int, subject: str, file_number: str | None = None) -> dict:
    """Create an e-file held by its creator, together with its workflow state.

    Raises:
        ValidationError: blank subject or duplicate file number.
        NotFoundError: creator is not an active directory user.
    """
    subject = (subject or "").strip()
    if not subject:
        raise ValidationError("subject is required", details={"subject": "required"})
    _require_active_user(creator_id)

    file_number = (file_number or "").strip() or None
    if file_number and db.session.execute(
        select(EFile.id).where(EFile.file_number == file_number)
    ).first():
        raise ValidationError(
            f"File number '{file_number}' already exists",
            details={"file_number": "duplicate"},
        )

    try:
        file = EFile(
            file_number=file_number,
            subject=subject,
            created_by=creator_id,
            assigned_to=creator_id,
        )
        db.session.add(file)
        db.session.flush()
        state = workflow_state_service.initialize_workflow_state(file.id, creator_id, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("File created", extra={"file_id": file.id, "user_id": creator_id})
    return {"file": file.to_dict(), "workflow_state": state.to_dict()}


def mark_file(file_id: int, from_user_id: int, to_user_id: int, remarks: str | None = None) -> dict:
    """Route the file from ``from_user_id`` to ``to_user_id``.

    Inside the creator's team the file stays TEAM_INTERNAL.  Any other move
    makes it EXTERNAL; the first such move starts the TAT clock.

    Raises:
        ValidationError: marking a file to its sender.
        NotFoundError: unknown file or recipient.
        PermissionDeniedError: signature missing or sender not holding the file.
    """
    if from_user_id == to_user_id:
        raise ValidationError("Cannot mark a file to yourself", details={"to_user_id": "same as sender"})
    _require_active_user(to_user_id)

    try:
        file = file_store.lock_file(file_id)
        if file is None:
            raise NotFoundError(resource="EFile", resource_id=file_id)
        holder = file.assigned_to

        decision = signature_service.can_mark_file_forward(file_id, from_user_id, to_user_id)
        if not decision.can_mark:
            raise PermissionDeniedError(decision.reason, requires_signature=decision.requires_signature)
        if not file_store.set_assignee(file, to_user_id, expected=holder):
            raise PermissionDeniedError(signature_service.REASON_NOT_ASSIGNED)

        state = _ensure_state(file)
        within_team = team_service.is_within_team_workflow(file_id, from_user_id, to_user_id)
        if within_team:
            state = workflow_state_service.update_workflow_state(
                file_id, TEAM_INTERNAL, to_user_id, True, commit=False,
            )
        else:
            state = workflow_state_service.update_workflow_state(
                file_id, EXTERNAL, to_user_id, False,
                start_tat=not state.tat_started, commit=False,
            )

        movement = FileMovement(
            file_id=file_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            action_type="forward",
            is_team_internal=within_team,
            remarks=(remarks or "").strip() or None,
        )
        db.session.add(movement)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "File marked",
        extra={
            "file_id": file_id,
            "user_id": from_user_id,
            "to_user_id": to_user_id,
            "workflow_state": state.current_state,
        },
    )
    return {
        "file": file.to_dict(),
        "workflow_state": state.to_dict(),
        "movement": movement.to_dict(),
        "requires_signature": decision.requires_signature,
    }


def return_to_creator(file_id: int, actor_id: int, remarks: str | None = None) -> dict:
    """Send the file back to its creator; only the current holder may do this.

    Raises:
        NotFoundError: unknown file.
        ValidationError: the file is already with its creator.
        PermissionDeniedError: ``actor_id`` does not hold the file.
    """
    try:
        file = file_store.lock_file(file_id)
        if file is None:
            raise NotFoundError(resource="EFile", resource_id=file_id)

        creator_id = file.created_by
        if file.assigned_to in (None, creator_id):
            raise ValidationError("File is already with its creator")
        if actor_id != file.assigned_to:
            raise PermissionDeniedError(signature_service.REASON_NOT_ASSIGNED)
        if not file_store.set_assignee(file, creator_id, expected=actor_id):
            raise PermissionDeniedError(signature_service.REASON_NOT_ASSIGNED)

        _ensure_state(file)
        state = workflow_state_service.mark_return_to_creator(file_id, creator_id, commit=False)
        movement = FileMovement(
            file_id=file_id,
            from_user_id=actor_id,
            to_user_id=creator_id,
            action_type="return_to_creator",
            is_return_to_creator=True,
            is_team_internal=team_service.is_team_member(creator_id, actor_id),
            remarks=(remarks or "").strip() or None,
        )
        db.session.add(movement)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "File returned",
        extra={"file_id": file_id, "user_id": actor_id, "to_user_id": creator_id},
    )
    return {
        "file": file.to_dict(),
        "workflow_state": state.to_dict(),
        "movement": movement.to_dict(),
    }


# ── Read side ──────────────────────────────────────────────────────────────────


def _latest_movement(file_id: int) -> FileMovement | None:
    return db.session.execute(
        select(FileMovement)
        .where(FileMovement.file_id == file_id)
        .order_by(FileMovement.created_at.desc(), FileMovement.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def _was_marked_back_by_higher_authority(file_id: int) -> bool:
    latest = _latest_movement(file_id)
    if latest is None or not latest.is_return_to_creator:
        return False
    return is_returning_authority(directory.resolve_role_code(latest.from_user_id))


def get_file_permissions(file_id: int, user_id: int) -> dict:
    """Everything the file screen needs to enable or hide its actions for ``user_id``.

    A creator whose file came back from SE/CE/CEO/COO, and any higher
    authority, may add pages but not edit existing ones.

    Raises:
        NotFoundError: unknown file, or user not active in the directory.
    """
    file = file_store.get_file(file_id)
    if file is None:
        raise NotFoundError(resource="EFile", resource_id=file_id)
    user = _require_active_user(user_id)

    is_creator = file.created_by == user_id
    is_assigned = file.assigned_to == user_id
    has_signed = signature_service.has_active_signature(file_id, user_id)
    creator_has_signed = signature_service.has_active_signature(file_id, file.created_by)

    state = workflow_state_service.get_workflow_state(file_id)
    current_state = state.current_state if state else TEAM_INTERNAL
    is_within_team = state.is_within_team if state else False
    is_team_member = False if is_creator else team_service.is_team_member(file.created_by, user_id)

    higher_authority = is_higher_authority(user.role_code, user.department_name)
    marked_back = (
        is_creator
        and current_state == RETURNED_TO_CREATOR
        and _was_marked_back_by_higher_authority(file_id)
    )

    can_edit = (
        workflow_state_service.can_edit_file(file_id, user_id)
        and not marked_back
        and not higher_authority
    )
    can_add_page = (
        workflow_state_service.can_add_pages(file_id, user_id)
        or (is_creator and marked_back)
        or (higher_authority and is_assigned)
    )
    can_mark = team_service.can_mark_file(file_id, user_id)
    signature_needed = not is_within_team and not is_team_member

    return {
        "canEdit": can_edit,
        "canView": True,
        "canAddSignature": True,
        "canAddComment": True,
        "canAddAttachment": True,
        "canAddPage": can_add_page,
        "canMarkTo": can_mark and (not signature_needed or has_signed),
        "canApprove": is_assigned and has_signed,
        "canReject": is_assigned and has_signed,
        "canForward": is_assigned and has_signed,
        "isCreator": is_creator,
        "isAssigned": is_assigned,
        "isTeamMember": is_team_member,
        "hasSigned": has_signed,
        "creatorHasSigned": creator_has_signed,
        "workflowState": current_state,
        "isWithinTeam": is_within_team,
        "wasMarkedBackByHigherAuthority": marked_back,
        "isHigherAuthority": higher_authority,
        "requiresSignature": signature_needed and not has_signed,
        "requiresCreatorSignature": not creator_has_signed and current_state != TEAM_INTERNAL,
    }


def get_movement_history(file_id: int) -> list[dict]:
    """Routing history of a file, newest first.

    Raises:
        NotFoundError: unknown file.
    """
    if file_store.get_file(file_id) is None:
        raise NotFoundError(resource="EFile", resource_id=file_id)
    movements = db.session.execute(
        select(FileMovement)
        .where(FileMovement.file_id == file_id)
        .order_by(FileMovement.created_at.desc(), FileMovement.id.desc())
    ).scalars().all()
    return [m.to_dict() for m in movements]
