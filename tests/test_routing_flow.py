"""
Tests: file routing commands end to end.

The scenario tests walk one file through the whole lifecycle:

    XEN creates ─▶ AEE (team) ─▶ SE (signed, TAT starts) ─▶ CE ─▶ back to XEN

and check state, assignee and movement history at every hop.
"""

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from conftest import make_file, make_user
from efiling.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from efiling.models import db as _db
from efiling.models.efile import EFile, FileMovement
from efiling.models.workflow import EXTERNAL, RETURNED_TO_CREATOR, TEAM_INTERNAL
from efiling.services import file_store, routing_service, signature_service, workflow_state_service


# ── create_file ──────────────────────────────────────────────────────────────


def test_create_file_initializes_state(directory):
    result = routing_service.create_file(directory.creator.id, "  Tubewell rehabilitation ", "WS/2026/001")

    assert result["file"]["subject"] == "Tubewell rehabilitation"
    assert result["file"]["assigned_to"] == directory.creator.id
    assert result["workflow_state"]["current_state"] == TEAM_INTERNAL
    assert result["file"]["workflow_state_id"] == result["workflow_state"]["id"]


def test_create_file_rejects_blank_subject_and_duplicate_number(directory):
    with pytest.raises(ValidationError):
        routing_service.create_file(directory.creator.id, "   ")

    routing_service.create_file(directory.creator.id, "First", "WS/2026/002")
    with pytest.raises(ValidationError):
        routing_service.create_file(directory.creator.id, "Second", "WS/2026/002")


def test_create_file_requires_active_creator(directory):
    directory.outsider.is_active = False
    _db.session.commit()
    with pytest.raises(NotFoundError):
        routing_service.create_file(directory.outsider.id, "Stores requisition")
    with pytest.raises(NotFoundError):
        routing_service.create_file(9999, "Nobody's file")


# ── Lifecycle scenarios ──────────────────────────────────────────────────────


def test_scenario_team_internal_marking(directory):
    efile = make_file(directory.creator)

    result = routing_service.mark_file(efile.id, directory.creator.id, directory.aee.id, "please check BOQ")

    state = result["workflow_state"]
    assert state["current_state"] == TEAM_INTERNAL
    assert state["is_within_team"] is True
    assert state["current_assigned_to"] == directory.aee.id
    assert state["tat_started"] is False
    assert result["file"]["assigned_to"] == directory.aee.id
    assert result["movement"]["is_team_internal"] is True
    assert result["movement"]["remarks"] == "please check BOQ"
    assert result["requires_signature"] is False


def test_scenario_leaving_team_needs_signature_and_starts_tat(directory):
    efile = make_file(directory.creator)
    routing_service.mark_file(efile.id, directory.creator.id, directory.aee.id)

    with pytest.raises(PermissionDeniedError) as exc_info:
        routing_service.mark_file(efile.id, directory.aee.id, directory.se.id)
    assert exc_info.value.requires_signature is True
    assert exc_info.value.reason == signature_service.REASON_SIGNATURE_REQUIRED

    # refusal leaves everything untouched
    state = workflow_state_service.get_workflow_state(efile.id)
    assert state.current_state == TEAM_INTERNAL
    assert _db.session.get(EFile, efile.id).assigned_to == directory.aee.id

    signature_service.record_signature(efile.id, directory.aee.id)
    result = routing_service.mark_file(efile.id, directory.aee.id, directory.se.id)

    state = result["workflow_state"]
    assert state["current_state"] == EXTERNAL
    assert state["is_within_team"] is False
    assert state["current_assigned_to"] == directory.se.id
    assert state["tat_started"] is True
    assert state["tat_started_at"] is not None
    assert result["movement"]["is_team_internal"] is False
    assert result["requires_signature"] is True


def test_scenario_external_forward_keeps_tat_start(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    first = routing_service.mark_file(efile.id, directory.creator.id, directory.se.id)
    started_at = first["workflow_state"]["tat_started_at"]

    assert signature_service.requires_esignature_before_marking(
        efile.id, directory.se.id, directory.ce.id,
    ) is True
    with pytest.raises(PermissionDeniedError):
        routing_service.mark_file(efile.id, directory.se.id, directory.ce.id)

    signature_service.record_signature(efile.id, directory.se.id)
    result = routing_service.mark_file(efile.id, directory.se.id, directory.ce.id)

    assert result["workflow_state"]["current_state"] == EXTERNAL
    assert result["workflow_state"]["current_assigned_to"] == directory.ce.id
    assert result["workflow_state"]["tat_started_at"] == started_at


def test_scenario_return_to_creator_reopens_editing(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    routing_service.mark_file(efile.id, directory.creator.id, directory.ce.id)
    assert workflow_state_service.can_edit_file(efile.id, directory.creator.id) is False

    result = routing_service.return_to_creator(efile.id, directory.ce.id, "revise estimate")

    state = result["workflow_state"]
    assert state["current_state"] == RETURNED_TO_CREATOR
    assert state["is_within_team"] is True
    assert state["current_assigned_to"] == directory.creator.id
    assert state["tat_started"] is True
    assert result["file"]["assigned_to"] == directory.creator.id
    assert result["movement"]["is_return_to_creator"] is True
    assert result["movement"]["action_type"] == "return_to_creator"

    assert workflow_state_service.can_edit_file(efile.id, directory.creator.id) is True
    assert workflow_state_service.is_file_with_team(efile.id) is False


def test_returned_file_goes_back_into_team(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    routing_service.mark_file(efile.id, directory.creator.id, directory.se.id)
    routing_service.return_to_creator(efile.id, directory.se.id)

    result = routing_service.mark_file(efile.id, directory.creator.id, directory.aee.id)

    assert result["workflow_state"]["current_state"] == TEAM_INTERNAL
    assert result["workflow_state"]["tat_started"] is True
    assert workflow_state_service.is_file_with_team(efile.id) is True


# ── mark_file refusals ───────────────────────────────────────────────────────


def test_mark_to_self_is_rejected(directory):
    efile = make_file(directory.creator)
    with pytest.raises(ValidationError):
        routing_service.mark_file(efile.id, directory.creator.id, directory.creator.id)


def test_mark_to_unknown_or_inactive_recipient(directory):
    efile = make_file(directory.creator)
    inactive = make_user("Retired Aee", "AEE", "Water Supply", is_active=False)
    _db.session.commit()
    with pytest.raises(NotFoundError):
        routing_service.mark_file(efile.id, directory.creator.id, 9999)
    with pytest.raises(NotFoundError):
        routing_service.mark_file(efile.id, directory.creator.id, inactive.id)


def test_mark_unknown_file(directory):
    with pytest.raises(NotFoundError):
        routing_service.mark_file(9999, directory.creator.id, directory.aee.id)


def test_mark_by_non_holder_is_refused(directory):
    efile = make_file(directory.creator)
    with pytest.raises(PermissionDeniedError) as exc_info:
        routing_service.mark_file(efile.id, directory.outsider.id, directory.aee.id)
    assert exc_info.value.reason == signature_service.REASON_NOT_ASSIGNED
    assert exc_info.value.requires_signature is False
    assert FileMovement.query.filter_by(file_id=efile.id).count() == 0


def test_mark_legacy_file_initializes_state(directory):
    efile = make_file(directory.creator, with_state=False)
    result = routing_service.mark_file(efile.id, directory.creator.id, directory.aee.id)
    assert result["workflow_state"]["current_state"] == TEAM_INTERNAL
    assert workflow_state_service.get_workflow_state(efile.id) is not None


def _moved_by_other_request(monkeypatch, new_holder_id):
    """Let the rule check pass, then move the file the way a parallel request would."""
    original = signature_service.can_mark_file_forward

    def check_then_move(file_id, user_id, to_user_id):
        decision = original(file_id, user_id, to_user_id)
        _db.session.execute(
            update(EFile)
            .where(EFile.id == file_id)
            .values(assigned_to=new_holder_id)
            .execution_options(synchronize_session=False)
        )
        return decision

    monkeypatch.setattr(signature_service, "can_mark_file_forward", check_then_move)


def test_parallel_mark_from_same_holder_only_first_lands(directory, monkeypatch):
    efile = make_file(directory.creator, holder=directory.aee)
    _moved_by_other_request(monkeypatch, directory.sub_engineer.id)

    with pytest.raises(PermissionDeniedError) as exc_info:
        routing_service.mark_file(efile.id, directory.aee.id, directory.creator.id)
    assert exc_info.value.reason == signature_service.REASON_NOT_ASSIGNED
    assert exc_info.value.requires_signature is False

    _db.session.expire_all()
    assert FileMovement.query.filter_by(file_id=efile.id).count() == 0
    state = workflow_state_service.get_workflow_state(efile.id)
    assert state.current_state == TEAM_INTERNAL
    assert state.current_assigned_to == directory.creator.id


def test_movement_rejects_unknown_action(directory):
    efile = make_file(directory.creator)
    _db.session.add(FileMovement(
        file_id=efile.id,
        from_user_id=directory.creator.id,
        to_user_id=directory.aee.id,
        action_type="approve",
    ))
    with pytest.raises(IntegrityError):
        _db.session.flush()
    _db.session.rollback()


def test_set_assignee_refuses_stale_holder(directory):
    efile = make_file(directory.creator, holder=directory.aee)
    assert file_store.set_assignee(efile, directory.se.id, expected=directory.creator.id) is False
    assert file_store.set_assignee(efile, directory.se.id, expected=directory.aee.id) is True
    assert efile.assigned_to == directory.se.id
    _db.session.rollback()


# ── return_to_creator refusals ───────────────────────────────────────────────


def test_return_file_already_with_creator(directory):
    efile = make_file(directory.creator)
    with pytest.raises(ValidationError):
        routing_service.return_to_creator(efile.id, directory.creator.id)


def test_return_by_non_holder(directory):
    efile = make_file(directory.creator, holder=directory.se)
    with pytest.raises(PermissionDeniedError):
        routing_service.return_to_creator(efile.id, directory.ce.id)


def test_return_unknown_file(directory):
    with pytest.raises(NotFoundError):
        routing_service.return_to_creator(9999, directory.ce.id)


# ── Read side ────────────────────────────────────────────────────────────────


def test_movement_history_newest_first(directory):
    efile = make_file(directory.creator)
    routing_service.mark_file(efile.id, directory.creator.id, directory.aee.id)
    routing_service.mark_file(efile.id, directory.aee.id, directory.sub_engineer.id)

    history = routing_service.get_movement_history(efile.id)
    assert [m["to_user_id"] for m in history] == [directory.sub_engineer.id, directory.aee.id]

    with pytest.raises(NotFoundError):
        routing_service.get_movement_history(9999)


def test_permissions_for_creator_of_new_file(directory):
    efile = make_file(directory.creator)
    perms = routing_service.get_file_permissions(efile.id, directory.creator.id)

    assert perms["canEdit"] is True
    assert perms["isCreator"] is True
    assert perms["isAssigned"] is True
    assert perms["workflowState"] == TEAM_INTERNAL
    assert perms["isWithinTeam"] is True
    assert perms["canMarkTo"] is True
    assert perms["requiresSignature"] is False
    assert perms["wasMarkedBackByHigherAuthority"] is False


def test_permissions_after_return_by_higher_authority(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    routing_service.mark_file(efile.id, directory.creator.id, directory.ce.id)
    routing_service.return_to_creator(efile.id, directory.ce.id)

    perms = routing_service.get_file_permissions(efile.id, directory.creator.id)
    assert perms["wasMarkedBackByHigherAuthority"] is True
    assert perms["canEdit"] is False
    assert perms["canAddPage"] is True
    assert perms["creatorHasSigned"] is True


def test_permissions_for_external_holder(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    routing_service.mark_file(efile.id, directory.creator.id, directory.se.id)

    perms = routing_service.get_file_permissions(efile.id, directory.se.id)
    assert perms["isAssigned"] is True
    assert perms["isHigherAuthority"] is True
    assert perms["canEdit"] is False
    assert perms["canAddPage"] is True
    assert perms["requiresSignature"] is True
    assert perms["canMarkTo"] is False

    signature_service.record_signature(efile.id, directory.se.id)
    perms = routing_service.get_file_permissions(efile.id, directory.se.id)
    assert perms["canMarkTo"] is True
    assert perms["canForward"] is True


def test_signed_creator_may_recall_external_file(directory):
    efile = make_file(directory.creator)
    signature_service.record_signature(efile.id, directory.creator.id)
    routing_service.mark_file(efile.id, directory.creator.id, directory.se.id)

    # the screen offers marking only to the holder of an EXTERNAL file
    perms = routing_service.get_file_permissions(efile.id, directory.creator.id)
    assert perms["canMarkTo"] is False

    # the command still lets the creator move it on
    result = routing_service.mark_file(efile.id, directory.creator.id, directory.ce.id)
    assert result["file"]["assigned_to"] == directory.ce.id
    assert result["movement"]["from_user_id"] == directory.creator.id
    assert result["workflow_state"]["current_state"] == EXTERNAL


def test_permissions_unknown_file_or_user(directory):
    efile = make_file(directory.creator)
    with pytest.raises(NotFoundError):
        routing_service.get_file_permissions(9999, directory.creator.id)
    with pytest.raises(NotFoundError):
        routing_service.get_file_permissions(efile.id, 9999)
