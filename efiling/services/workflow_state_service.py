"""
Workflow State Machine. Owns every write to FileWorkflowState.

States and edges are documented in ``efiling.models.workflow``.  The
functions below fall into two groups:

    Transitions (write):   initialize_workflow_state, update_workflow_state,
                           start_tat, mark_return_to_creator
    Permission queries:    is_file_with_team, can_edit_file, can_add_pages

Transitions lock the state row (``SELECT ... FOR UPDATE``) before reading
it, so two concurrent transitions on one file serialise instead of
interleaving.  Each accepts ``commit=False`` so the routing service can fold
several writes (state, file assignee, movement row) into one transaction.

Permission queries never raise for missing rows; they answer False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select

from efiling.core.exceptions import ValidationError
from efiling.models import db
from efiling.models.workflow import (
    EXTERNAL,
    RETURNED_TO_CREATOR,
    TEAM_INTERNAL,
    WORKFLOW_STATES,
    FileWorkflowState,
    is_within_team_state,
)
from efiling.services import directory, file_store, team_service
from efiling.services.role_codes import can_add_pages_role, is_budget_or_billing

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _lock_state(file_id: int) -> FileWorkflowState | None:
    return db.session.execute(
        select(FileWorkflowState)
        .where(FileWorkflowState.file_id == file_id)
        .with_for_update()
    ).scalar_one_or_none()


def _finish(commit: bool) -> None:
    if commit:
        db.session.commit()
    else:
        db.session.flush()


@dataclass(frozen=True)
class WorkflowStateUpdate:
    """One explicit state write.

    Fields map one-to-one onto columns; nothing is assembled from strings.
    ``start_tat`` only takes effect for a non-team move.
    """

    current_state: str
    current_assigned_to: int | None
    is_within_team: bool
    start_tat: bool = False

    def validate(self) -> None:
        if self.current_state not in WORKFLOW_STATES:
            raise ValidationError(
                f"Unknown workflow state '{self.current_state}'",
                details={"current_state": sorted(WORKFLOW_STATES)},
            )
        if self.is_within_team != is_within_team_state(self.current_state):
            raise ValidationError(
                f"is_within_team={self.is_within_team} contradicts state {self.current_state}",
                details={"is_within_team": "must match current_state"},
            )

    def apply(self, state: FileWorkflowState, now: datetime) -> None:
        state.current_state = self.current_state
        state.current_assigned_to = self.current_assigned_to
        state.is_within_team = self.is_within_team
        if self.start_tat and not self.is_within_team:
            _stamp_tat(state, now)
        if self.current_state == EXTERNAL:
            state.last_external_mark_at = now
        state.updated_at = now


def _stamp_tat(state: FileWorkflowState, now: datetime) -> None:
    """Start the TAT clock.  tat_started_at is written the first time only."""
    state.tat_started = True
    if state.tat_started_at is None:
        state.tat_started_at = now
    state.last_external_mark_at = now


# ── Transitions ──────────────────────────────────────────────────────────────


def initialize_workflow_state(file_id: int, creator_id: int, *, commit: bool = True) -> FileWorkflowState:
    """Create the workflow state of a new file, or refresh creator/assignee of an existing one.

    A fresh row starts TEAM_INTERNAL, within team, TAT not started, assigned
    to the creator.  Re-initialising only rewrites ``creator_id`` and
    ``current_assigned_to``: an already advanced ``current_state`` (and the
    TAT flags) are left alone.  The file's ``workflow_state_id`` is pointed
    at the row.
    """
    now = _now()
    state = _lock_state(file_id)
    if state is None:
        state = FileWorkflowState(
            file_id=file_id,
            creator_id=creator_id,
            current_assigned_to=creator_id,
            current_state=TEAM_INTERNAL,
            is_within_team=True,
            tat_started=False,
        )
        db.session.add(state)
        created = True
    else:
        state.creator_id = creator_id
        state.current_assigned_to = creator_id
        state.updated_at = now
        created = False
    db.session.flush()

    file = file_store.get_file(file_id)
    if file is not None:
        file.workflow_state_id = state.id

    _finish(commit)
    logger.info(
        "Workflow state %s", "initialized" if created else "re-initialized",
        extra={"file_id": file_id, "user_id": creator_id, "workflow_state": state.current_state},
    )
    return state


def get_workflow_state(file_id: int) -> FileWorkflowState | None:
    return db.session.execute(
        select(FileWorkflowState).where(FileWorkflowState.file_id == file_id)
    ).scalar_one_or_none()


def update_workflow_state(
    file_id: int,
    new_state: str,
    assigned_to: int | None,
    is_team_internal: bool,
    start_tat: bool = False,
    *,
    commit: bool = True,
) -> FileWorkflowState | None:
    """Apply a generic transition.

    The caller decides the arguments from the business rules; this function
    only guarantees the row stays consistent (state and ``is_within_team``
    agree, ``tat_started`` never resets).  Returns None when the file has no
    workflow state.

    Raises:
        ValidationError: unknown state, or ``is_team_internal`` contradicting it.
    """
    update = WorkflowStateUpdate(
        current_state=new_state,
        current_assigned_to=assigned_to,
        is_within_team=is_team_internal,
        start_tat=start_tat,
    )
    update.validate()

    state = _lock_state(file_id)
    if state is None:
        logger.warning("No workflow state to update", extra={"file_id": file_id})
        return None

    previous = state.current_state
    update.apply(state, _now())
    _finish(commit)

    logger.info(
        "Workflow transition %s -> %s", previous, new_state,
        extra={"file_id": file_id, "to_user_id": assigned_to, "workflow_state": new_state},
    )
    return state


def start_tat(file_id: int, *, commit: bool = True) -> FileWorkflowState | None:
    """Move the file EXTERNAL and start the TAT clock."""
    state = _lock_state(file_id)
    if state is None:
        return None

    now = _now()
    _stamp_tat(state, now)
    state.is_within_team = False
    state.current_state = EXTERNAL
    state.updated_at = now
    _finish(commit)

    logger.info("TAT started", extra={"file_id": file_id, "workflow_state": EXTERNAL})
    return state


def mark_return_to_creator(file_id: int, creator_id: int, *, commit: bool = True) -> FileWorkflowState | None:
    state = _lock_state(file_id)
    if state is None:
        return None

    state.current_state = RETURNED_TO_CREATOR
    state.current_assigned_to = creator_id
    state.is_within_team = True
    state.updated_at = _now()
    _finish(commit)

    logger.info(
        "File returned to creator",
        extra={"file_id": file_id, "user_id": creator_id, "workflow_state": RETURNED_TO_CREATOR},
    )
    return state


# ── Permission queries ───────────────────────────────────────────────────────


def is_file_with_team(file_id: int) -> bool:
    """True only while the file actively circulates inside the team.

    Narrower than ``is_within_team``: a file RETURNED_TO_CREATOR is within
    team but not "with team".
    """
    state = get_workflow_state(file_id)
    return bool(state and state.is_within_team and state.current_state == TEAM_INTERNAL)


def can_edit_file(file_id: int, user_id: int) -> bool:
    """Only the creator edits, and only while the file is back with them.

    - assigned to someone else: editable only in RETURNED_TO_CREATOR
    - assigned to the creator (or nobody): editable in TEAM_INTERNAL or
      RETURNED_TO_CREATOR
    - no workflow state yet: editable (a file created before its state row)
    """
    file = file_store.get_file(file_id)
    if file is None:
        return False

    creator_id = file.created_by
    if user_id != creator_id:
        return False

    state = get_workflow_state(file_id)

    if file.assigned_to and file.assigned_to != creator_id:
        return bool(state and state.current_state == RETURNED_TO_CREATOR)

    if state is not None:
        return state.current_state in (TEAM_INTERNAL, RETURNED_TO_CREATOR)

    return True


def can_add_pages(file_id: int, user_id: int) -> bool:
    """SE/CE/DCE/IAO-II/ADLFA or budget/billing staff holding the file, or an SE/CE assistant
    whose manager holds it."""
    file = file_store.get_file(file_id)
    if file is None:
        return False

    user = directory.resolve_user(user_id, active_only=True)
    if user is None:
        return False

    qualified = can_add_pages_role(user.role_code) or is_budget_or_billing(
        user.role_code, user.department_name,
    )
    if qualified and file.assigned_to == user_id:
        return True

    assistant_of = team_service.is_se_or_ce_assistant(user_id)
    if assistant_of:
        return file.assigned_to == assistant_of["manager_id"]

    return False
