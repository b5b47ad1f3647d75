"""
E-file and movement models.

Models:
    - EFile:         the routed case file; ``assigned_to`` is its current holder
    - FileMovement:  append-only routing history, one row per mark-to / return

Architecture:
    EFile ──1:1──▶ FileWorkflowState
    EFile ──1:N──▶ FileMovement
    EFile ──1:N──▶ DocumentSignature
"""

from datetime import datetime, timezone

from efiling.models import db

MOVEMENT_ACTIONS = ("forward", "return_to_creator")


class EFile(db.Model):
    __tablename__ = "efiling_files"

    id = db.Column(db.Integer, primary_key=True)
    file_number = db.Column(db.String(100), unique=True, nullable=True)
    subject = db.Column(db.String(500), nullable=False, default="")
    created_by = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    assigned_to = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    workflow_state_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    movements = db.relationship(
        "FileMovement", backref="file", lazy="dynamic",
        cascade="all, delete-orphan", order_by="FileMovement.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "file_number": self.file_number,
            "subject": self.subject,
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "workflow_state_id": self.workflow_state_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<EFile #{self.id} {self.file_number or ''}>"


class FileMovement(db.Model):
    """One routing step.  Never updated or deleted once written."""

    __tablename__ = "efiling_file_movements"
    __table_args__ = (
        db.CheckConstraint(
            "action_type IN (" + ", ".join(f"'{a}'" for a in MOVEMENT_ACTIONS) + ")",
            name="ck_movement_action_type",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    file_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_user_id = db.Column(db.Integer, db.ForeignKey("efiling_users.id", ondelete="SET NULL"))
    to_user_id = db.Column(db.Integer, db.ForeignKey("efiling_users.id", ondelete="SET NULL"))
    action_type = db.Column(db.String(30), nullable=False, default="forward")
    is_return_to_creator = db.Column(db.Boolean, nullable=False, default=False)
    is_team_internal = db.Column(db.Boolean, nullable=False, default=True)
    remarks = db.Column(db.Text)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "file_id": self.file_id,
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "action_type": self.action_type,
            "is_return_to_creator": self.is_return_to_creator,
            "is_team_internal": self.is_team_internal,
            "remarks": self.remarks,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
