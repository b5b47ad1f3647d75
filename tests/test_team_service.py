"""
Tests: Team Membership Resolver.

Relations are soft-deleted, so most checks here flip ``is_active`` on either
the relation or the user and assert the resolver stops seeing them.
"""

import pytest

from conftest import make_file, make_team, make_user
from efiling.core.exceptions import NotFoundError, ValidationError
from efiling.models import db as _db
from efiling.models.team import TeamRelation
from efiling.models.workflow import EXTERNAL
from efiling.services import team_service, workflow_state_service


# ── Membership queries ───────────────────────────────────────────────────────


def test_get_team_members_ordered_by_role_then_name(directory):
    members = team_service.get_team_members(directory.creator.id)
    assert [m["team_role"] for m in members] == ["AEE", "SUB_ENGINEER"]
    assert members[0]["team_member_id"] == directory.aee.id
    assert members[0]["role_code"] == "AEE"
    assert members[1]["name"] == "Sub North"


def test_get_team_members_skips_inactive_relation_and_user(directory):
    extra = make_user("Dao North", "DAO", "Water Supply")
    make_team(directory.creator, extra, "DAO", is_active=False)
    directory.sub_engineer.is_active = False
    _db.session.commit()

    members = team_service.get_team_members(directory.creator.id)
    assert [m["team_member_id"] for m in members] == [directory.aee.id]


def test_get_team_members_empty_for_unknown_manager():
    assert team_service.get_team_members(9999) == []


def test_is_team_member(directory):
    assert team_service.is_team_member(directory.creator.id, directory.aee.id)
    assert not team_service.is_team_member(directory.aee.id, directory.creator.id)
    assert not team_service.is_team_member(directory.creator.id, directory.se.id)
    assert not team_service.is_team_member(None, directory.aee.id)


def test_get_manager_for_user(directory):
    manager = team_service.get_manager_for_user(directory.aee.id)
    assert manager["manager_id"] == directory.creator.id
    assert manager["role_code"] == "XEN"
    assert manager["team_role"] == "AEE"
    assert team_service.get_manager_for_user(directory.ceo.id) is None


def test_marking_candidates_append_creator_last(directory):
    candidates = team_service.get_team_members_for_marking(directory.creator.id)
    assert len(candidates) == 3
    creator = candidates[-1]
    assert creator["id"] == directory.creator.id
    assert creator["team_role"] == "CREATOR"
    assert creator["is_creator"] is True
    assert all(c["is_creator"] is False for c in candidates[:-1])


def test_marking_candidates_omit_inactive_creator(directory):
    directory.creator.is_active = False
    _db.session.commit()
    candidates = team_service.get_team_members_for_marking(directory.creator.id)
    assert directory.creator.id not in [c["id"] for c in candidates]


def test_assistants_only_lists_assistant_team_roles(directory):
    helper = make_user("Assistant Two", "CLERK", "Water Supply")
    make_team(directory.se, helper, "ASSISTANT")
    make_team(directory.se, directory.outsider, "DRIVER")
    _db.session.commit()

    ids = {a["team_member_id"] for a in team_service.get_assistants_for_manager(directory.se.id)}
    assert ids == {directory.se_assistant.id, helper.id}


def test_is_se_or_ce_assistant(directory):
    info = team_service.is_se_or_ce_assistant(directory.se_assistant.id)
    assert info["manager_id"] == directory.se.id
    assert info["manager_role_code"] == "SE"
    assert info["team_role"] == "SE_ASSISTANT"


def test_is_se_or_ce_assistant_requires_exact_se_or_ce_manager(directory):
    # an AO tag under an XEN manager does not count
    make_team(directory.creator, directory.outsider, "AO")
    _db.session.commit()
    assert team_service.is_se_or_ce_assistant(directory.outsider.id) is None
    assert team_service.is_se_or_ce_assistant(directory.aee.id) is None


# ── Within-team movement ─────────────────────────────────────────────────────


def test_is_within_team_workflow(directory):
    efile = make_file(directory.creator)
    assert team_service.is_within_team_workflow(efile.id, directory.creator.id, directory.aee.id)
    assert team_service.is_within_team_workflow(efile.id, directory.aee.id, directory.sub_engineer.id)
    assert team_service.is_within_team_workflow(efile.id, directory.aee.id, directory.creator.id)
    assert not team_service.is_within_team_workflow(efile.id, directory.aee.id, directory.se.id)
    assert not team_service.is_within_team_workflow(9999, directory.creator.id, directory.aee.id)


def test_is_within_team_workflow_false_once_external(directory):
    efile = make_file(directory.creator)
    workflow_state_service.update_workflow_state(efile.id, EXTERNAL, directory.aee.id, False)
    assert not team_service.is_within_team_workflow(efile.id, directory.creator.id, directory.aee.id)


# ── can_mark_file ────────────────────────────────────────────────────────────


def test_can_mark_team_internal_creator_or_member(directory):
    efile = make_file(directory.creator)
    assert team_service.can_mark_file(efile.id, directory.creator.id)
    assert team_service.can_mark_file(efile.id, directory.aee.id)
    assert not team_service.can_mark_file(efile.id, directory.se.id)


def test_can_mark_external_only_assignee(directory):
    efile = make_file(directory.creator, holder=directory.se)
    workflow_state_service.update_workflow_state(efile.id, EXTERNAL, directory.se.id, False)
    assert team_service.can_mark_file(efile.id, directory.se.id)
    assert not team_service.can_mark_file(efile.id, directory.creator.id)
    assert not team_service.can_mark_file(efile.id, directory.aee.id)


def test_can_mark_returned_only_creator(directory):
    efile = make_file(directory.creator)
    workflow_state_service.mark_return_to_creator(efile.id, directory.creator.id)
    assert team_service.can_mark_file(efile.id, directory.creator.id)
    assert not team_service.can_mark_file(efile.id, directory.aee.id)


def test_can_mark_without_state_creator_or_assignee(directory):
    efile = make_file(directory.creator, holder=directory.outsider, with_state=False)
    assert team_service.can_mark_file(efile.id, directory.creator.id)
    assert team_service.can_mark_file(efile.id, directory.outsider.id)
    assert not team_service.can_mark_file(efile.id, directory.aee.id)
    assert not team_service.can_mark_file(9999, directory.creator.id)


# ── Commands ─────────────────────────────────────────────────────────────────


def test_add_team_member_creates_relation(directory):
    relation = team_service.add_team_member(directory.se.id, directory.outsider.id, " ao ")
    assert relation["team_role"] == "AO"
    assert relation["is_active"] is True
    assert team_service.is_team_member(directory.se.id, directory.outsider.id)


def test_add_team_member_reactivates_instead_of_duplicating(directory):
    assert team_service.remove_team_member(directory.creator.id, directory.aee.id)
    assert not team_service.is_team_member(directory.creator.id, directory.aee.id)

    team_service.add_team_member(directory.creator.id, directory.aee.id, "DAO")
    rows = TeamRelation.query.filter_by(
        manager_id=directory.creator.id, team_member_id=directory.aee.id,
    ).all()
    assert len(rows) == 1
    assert rows[0].is_active is True
    assert rows[0].team_role == "DAO"


def test_add_team_member_rejects_self_and_blank_role(directory):
    with pytest.raises(ValidationError):
        team_service.add_team_member(directory.se.id, directory.se.id, "AO")
    with pytest.raises(ValidationError):
        team_service.add_team_member(directory.se.id, directory.outsider.id, "  ")


def test_add_team_member_unknown_user(directory):
    with pytest.raises(NotFoundError):
        team_service.add_team_member(directory.se.id, 9999, "AO")


def test_remove_team_member_without_active_row(directory):
    assert team_service.remove_team_member(directory.se.id, directory.outsider.id) is False
