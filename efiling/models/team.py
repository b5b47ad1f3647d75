"""
Team relations — manager ↔ team member pairs.

A manager (usually the file creator: XEN, RE, AD, ...) has any number of team
members tagged with a ``team_role``.  Rows are soft-deleted through
``is_active`` so a removed member can be re-added without losing history.
"""

from datetime import datetime, timezone

from efiling.models import db

# Team roles whose holders act as assistants of an SE/CE.
ASSISTANT_TEAM_ROLES = ("AO", "ASSISTANT", "SE_ASSISTANT")

# Pseudo team role used when the creator is listed alongside its own team.
CREATOR_TEAM_ROLE = "CREATOR"


class TeamRelation(db.Model):
    __tablename__ = "efiling_user_teams"

    id = db.Column(db.Integer, primary_key=True)
    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_member_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_role = db.Column(
        db.String(50),
        nullable=False,
        comment="AO | ASSISTANT | SE_ASSISTANT | AEE | SUB_ENGINEER | ...",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    manager = db.relationship("EfilingUser", foreign_keys=[manager_id])
    team_member = db.relationship("EfilingUser", foreign_keys=[team_member_id])

    __table_args__ = (
        db.UniqueConstraint("manager_id", "team_member_id", name="uq_team_manager_member"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "manager_id": self.manager_id,
            "team_member_id": self.team_member_id,
            "team_role": self.team_role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TeamRelation {self.manager_id}->{self.team_member_id} {self.team_role}>"
