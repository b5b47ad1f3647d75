"""
File workflow state, one row per e-file.

Lifecycle states:
    TEAM_INTERNAL        file circulates inside the creator's team (initial)
    EXTERNAL             file has left the team; TAT clock has started
    RETURNED_TO_CREATOR  an external holder sent the file back to its creator

    TEAM_INTERNAL ──mark to team──▶ TEAM_INTERNAL
    TEAM_INTERNAL ──mark outside──▶ EXTERNAL            (first time: TAT starts)
    EXTERNAL ──mark forward──▶ EXTERNAL                 (last_external_mark_at refreshed)
    EXTERNAL ──return──▶ RETURNED_TO_CREATOR
    RETURNED_TO_CREATOR ──creator marks to team──▶ TEAM_INTERNAL

Invariants:
    - is_within_team is True exactly when current_state is TEAM_INTERNAL
      or RETURNED_TO_CREATOR.
    - tat_started never goes back to False; tat_started_at is written once.
    - Rows are written only by ``efiling.services.workflow_state_service``.
"""

from datetime import datetime, timezone

from efiling.models import db

TEAM_INTERNAL = "TEAM_INTERNAL"
EXTERNAL = "EXTERNAL"
RETURNED_TO_CREATOR = "RETURNED_TO_CREATOR"

WORKFLOW_STATES = frozenset({TEAM_INTERNAL, EXTERNAL, RETURNED_TO_CREATOR})
WITHIN_TEAM_STATES = frozenset({TEAM_INTERNAL, RETURNED_TO_CREATOR})


def is_within_team_state(state):
    """Return the ``is_within_team`` value implied by a workflow state."""
    return state in WITHIN_TEAM_STATES


class FileWorkflowState(db.Model):
    __tablename__ = "efiling_file_workflow_states"

    id = db.Column(db.Integer, primary_key=True)
    file_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_files.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    creator_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    current_assigned_to = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    current_state = db.Column(
        db.String(30),
        nullable=False,
        default=TEAM_INTERNAL,
        comment="TEAM_INTERNAL | EXTERNAL | RETURNED_TO_CREATOR",
    )
    is_within_team = db.Column(db.Boolean, nullable=False, default=True)
    tat_started = db.Column(db.Boolean, nullable=False, default=False)
    tat_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_external_mark_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "file_id": self.file_id,
            "creator_id": self.creator_id,
            "current_assigned_to": self.current_assigned_to,
            "current_state": self.current_state,
            "is_within_team": self.is_within_team,
            "tat_started": self.tat_started,
            "tat_started_at": self.tat_started_at.isoformat() if self.tat_started_at else None,
            "last_external_mark_at": (
                self.last_external_mark_at.isoformat() if self.last_external_mark_at else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<FileWorkflowState file={self.file_id} {self.current_state}>"
