"""
Directory models — roles, departments, e-filing users.

These tables back the Directory Lookup collaborator.  The workflow core
never queries them directly; it goes through ``efiling.services.directory``
which flattens a user into a ``DirectoryEntry`` (role code, department name,
active flag).

    Department ──1:N──▶ EfilingUser ◀──N:1── EfilingRole
"""

from datetime import datetime, timezone

from efiling.models import db


class EfilingRole(db.Model):
    """Organisational role, identified by a loosely formatted code (SE, CE_WAT, IAO-II, ...)."""

    __tablename__ = "efiling_roles"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(80), unique=True, nullable=False)
    name = db.Column(db.String(200), nullable=False)

    def to_dict(self):
        return {"id": self.id, "code": self.code, "name": self.name}

    def __repr__(self):
        return f"<EfilingRole {self.code}>"


class Department(db.Model):
    __tablename__ = "efiling_departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class EfilingUser(db.Model):
    """A person known to the e-filing directory."""

    __tablename__ = "efiling_users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255))
    role_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_roles.id", ondelete="SET NULL"),
        nullable=True,
    )
    department_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_departments.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    role = db.relationship("EfilingRole", lazy="joined")
    department = db.relationship("Department", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role_code": self.role.code if self.role else None,
            "role_name": self.role.name if self.role else None,
            "department_name": self.department.name if self.department else None,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<EfilingUser #{self.id} {self.name}>"
