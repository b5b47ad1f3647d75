"""
Team Membership Resolver.

A file creator (the "manager") and its active team members form the team
inside which a file may circulate freely: no e-signature, no TAT clock.
Everything here answers questions about that relationship.

Missing data is never an error for the queries in this module: an unknown
file, user or relation simply means "not a team relationship", which is the
deny side of every rule that consumes it.  Only the two mutating commands
(add_team_member / remove_team_member) raise.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import aliased

from efiling.core.exceptions import NotFoundError, ValidationError
from efiling.models import db
from efiling.models.directory import EfilingRole, EfilingUser
from efiling.models.team import ASSISTANT_TEAM_ROLES, CREATOR_TEAM_ROLE, TeamRelation
from efiling.models.workflow import EXTERNAL, RETURNED_TO_CREATOR, TEAM_INTERNAL
from efiling.services import file_store
from efiling.services.role_codes import RoleCode

logger = logging.getLogger(__name__)

_SE_CE = frozenset({RoleCode.SE, RoleCode.CE})


# ── Private helpers ────────────────────────────────────────────────────────────


def _member_rows(manager_id: int, team_roles=None):
    """Active relations of ``manager_id`` joined to active member users, ordered for listing."""
    stmt = (
        select(TeamRelation, EfilingUser, EfilingRole)
        .join(EfilingUser, TeamRelation.team_member_id == EfilingUser.id)
        .outerjoin(EfilingRole, EfilingUser.role_id == EfilingRole.id)
        .where(
            TeamRelation.manager_id == manager_id,
            TeamRelation.is_active.is_(True),
            EfilingUser.is_active.is_(True),
        )
        .order_by(TeamRelation.team_role, EfilingUser.name)
    )
    if team_roles is not None:
        stmt = stmt.where(TeamRelation.team_role.in_(team_roles))
    return db.session.execute(stmt).all()


def _member_dict(relation: TeamRelation, user: EfilingUser, role: EfilingRole | None) -> dict:
    return {
        "id": relation.id,
        "team_member_id": user.id,
        "team_role": relation.team_role,
        "name": user.name,
        "email": user.email,
        "role_code": role.code if role else None,
        "role_name": role.name if role else None,
    }


def _manager_rows(user_id: int, assistants_only: bool = False):
    manager = aliased(EfilingUser)
    stmt = (
        select(TeamRelation, manager, EfilingRole)
        .join(manager, TeamRelation.manager_id == manager.id)
        .outerjoin(EfilingRole, manager.role_id == EfilingRole.id)
        .where(
            TeamRelation.team_member_id == user_id,
            TeamRelation.is_active.is_(True),
            manager.is_active.is_(True),
        )
        .order_by(TeamRelation.id)
    )
    if assistants_only:
        stmt = stmt.where(TeamRelation.team_role.in_(ASSISTANT_TEAM_ROLES))
    return db.session.execute(stmt).all()


def _is_creator_or_member(creator_id: int, user_id: int | None) -> bool:
    if user_id is None:
        return False
    return user_id == creator_id or is_team_member(creator_id, user_id)


# ── Queries ────────────────────────────────────────────────────────────────────


def get_team_members(manager_id: int) -> list[dict]:
    """All active team members of a manager, ordered by team role then name."""
    return [_member_dict(rel, user, role) for rel, user, role in _member_rows(manager_id)]


def is_team_member(manager_id: int | None, user_id: int | None) -> bool:
    """True iff an active relation (manager_id, user_id) exists."""
    if manager_id is None or user_id is None:
        return False
    found = db.session.execute(
        select(TeamRelation.id)
        .where(
            TeamRelation.manager_id == manager_id,
            TeamRelation.team_member_id == user_id,
            TeamRelation.is_active.is_(True),
        )
        .limit(1)
    ).first()
    return found is not None


def get_manager_for_user(user_id: int) -> dict | None:
    """The (at most one) active manager whose team ``user_id`` belongs to."""
    rows = _manager_rows(user_id)
    if not rows:
        return None
    relation, manager, role = rows[0]
    return {
        "manager_id": manager.id,
        "name": manager.name,
        "email": manager.email,
        "role_code": role.code if role else None,
        "role_name": role.name if role else None,
        "team_role": relation.team_role,
    }


def get_team_members_for_marking(creator_id: int) -> list[dict]:
    """Team members plus the creator itself, for "mark this file to" pickers.

    The creator is appended last with ``team_role == "CREATOR"`` and
    ``is_creator == True``; it is omitted when the creator is inactive.
    """
    members = [
        {
            "id": m["team_member_id"],
            "name": m["name"],
            "email": m["email"],
            "role_code": m["role_code"],
            "role_name": m["role_name"],
            "team_role": m["team_role"],
            "is_creator": False,
        }
        for m in get_team_members(creator_id)
    ]

    creator = db.session.get(EfilingUser, creator_id)
    if creator is not None and creator.is_active:
        members.append({
            "id": creator.id,
            "name": creator.name,
            "email": creator.email,
            "role_code": creator.role.code if creator.role else None,
            "role_name": creator.role.name if creator.role else None,
            "team_role": CREATOR_TEAM_ROLE,
            "is_creator": True,
        })
    return members


def is_within_team_workflow(file_id: int, from_user_id: int, to_user_id: int) -> bool:
    """True when a move from ``from_user_id`` to ``to_user_id`` stays inside the creator's team.

    Requires that the file is not already EXTERNAL and that both parties are
    each either the creator or an active team member of the creator.
    """
    from efiling.services.workflow_state_service import get_workflow_state

    file = file_store.get_file(file_id)
    if file is None:
        return False

    state = get_workflow_state(file_id)
    if state is not None and state.current_state == EXTERNAL:
        return False

    creator_id = file.created_by
    return (
        _is_creator_or_member(creator_id, from_user_id)
        and _is_creator_or_member(creator_id, to_user_id)
    )


def get_assistants_for_manager(manager_id: int) -> list[dict]:
    """Team members tagged AO / ASSISTANT / SE_ASSISTANT (SE/CE simultaneous visibility)."""
    return [
        _member_dict(rel, user, role)
        for rel, user, role in _member_rows(manager_id, team_roles=ASSISTANT_TEAM_ROLES)
    ]


def is_se_or_ce_assistant(user_id: int) -> dict | None:
    """Return the manager record when ``user_id`` assists an SE or CE, else None."""
    for relation, manager, role in _manager_rows(user_id, assistants_only=True):
        if role is not None and RoleCode.parse(role.code) in _SE_CE:
            return {
                "manager_id": manager.id,
                "manager_role_code": role.code,
                "manager_role_name": role.name,
                "team_role": relation.team_role,
            }
    return None


def can_mark_file(file_id: int, user_id: int) -> bool:
    """Whether ``user_id`` may route the file at all, ignoring signatures.

    EXTERNAL:             only the current assignee.
    within team:          the creator or any of its team members.
    RETURNED_TO_CREATOR:  only the creator.
    no workflow state:    the creator or the current assignee.
    """
    from efiling.services.workflow_state_service import get_workflow_state

    file = file_store.get_file(file_id)
    if file is None:
        return False

    creator_id = file.created_by
    state = get_workflow_state(file_id)
    if state is not None:
        if state.current_state == EXTERNAL and not state.is_within_team:
            return file.assigned_to == user_id
        # RETURNED_TO_CREATOR is also within team; test it first
        if state.current_state == RETURNED_TO_CREATOR:
            return user_id == creator_id
        if state.is_within_team or state.current_state == TEAM_INTERNAL:
            return _is_creator_or_member(creator_id, user_id)

    return user_id == creator_id or user_id == file.assigned_to


# ── Commands ───────────────────────────────────────────────────────────────────


def add_team_member(manager_id: int, team_member_id: int, team_role: str) -> dict:
    """Create or re-activate a team relation and return it.

    An existing (manager, member) row gets its role replaced and is
    re-activated instead of duplicated.

    Raises:
        ValidationError: blank role, or manager == member.
        NotFoundError: manager or member is not a directory user.
    """
    team_role = (team_role or "").strip().upper()
    if not team_role:
        raise ValidationError("team_role is required", details={"team_role": "required"})
    if manager_id == team_member_id:
        raise ValidationError(
            "A user cannot be a team member of themselves",
            details={"team_member_id": "must differ from manager_id"},
        )
    if db.session.get(EfilingUser, manager_id) is None:
        raise NotFoundError(resource="EfilingUser", resource_id=manager_id)
    if db.session.get(EfilingUser, team_member_id) is None:
        raise NotFoundError(resource="EfilingUser", resource_id=team_member_id)

    relation = db.session.execute(
        select(TeamRelation).where(
            TeamRelation.manager_id == manager_id,
            TeamRelation.team_member_id == team_member_id,
        )
    ).scalar_one_or_none()

    if relation is None:
        relation = TeamRelation(
            manager_id=manager_id,
            team_member_id=team_member_id,
            team_role=team_role,
            is_active=True,
        )
        db.session.add(relation)
    else:
        relation.team_role = team_role
        relation.is_active = True
    db.session.commit()

    logger.info(
        "Team member added",
        extra={"manager_id": manager_id, "user_id": team_member_id, "team_role": team_role},
    )
    return relation.to_dict()


def remove_team_member(manager_id: int, team_member_id: int) -> bool:
    """Soft-delete a relation.  Returns False when there was no active row to remove."""
    relation = db.session.execute(
        select(TeamRelation).where(
            TeamRelation.manager_id == manager_id,
            TeamRelation.team_member_id == team_member_id,
            TeamRelation.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if relation is None:
        return False

    relation.is_active = False
    db.session.commit()
    logger.info(
        "Team member removed",
        extra={"manager_id": manager_id, "user_id": team_member_id},
    )
    return True
