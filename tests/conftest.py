"""
Shared pytest fixtures for the e-filing workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - directory: the standard cast: XEN creator, AEE + sub-engineer team,
      SE with an AO assistant, CE, CEO, budget officer, outsider
"""

import pytest

from efiling import create_app
from efiling.models import db as _db
from efiling.models.directory import Department, EfilingRole, EfilingUser
from efiling.models.efile import EFile
from efiling.models.team import TeamRelation
from efiling.services import routing_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── ORM helpers ──────────────────────────────────────────────────────────


def make_user(name: str, role_code: str | None, department: str | None = None,
              is_active: bool = True) -> EfilingUser:
    """Create and flush a directory user, creating role/department rows on demand."""
    role = None
    if role_code:
        role = EfilingRole.query.filter_by(code=role_code).first()
        if role is None:
            role = EfilingRole(code=role_code, name=role_code.title())
            _db.session.add(role)
    dept = None
    if department:
        dept = Department.query.filter_by(name=department).first()
        if dept is None:
            dept = Department(name=department)
            _db.session.add(dept)
    user = EfilingUser(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@efiling.test",
        role=role,
        department=dept,
        is_active=is_active,
    )
    _db.session.add(user)
    _db.session.flush()
    return user


def make_team(manager: EfilingUser, member: EfilingUser, team_role: str,
              is_active: bool = True) -> TeamRelation:
    rel = TeamRelation(
        manager_id=manager.id,
        team_member_id=member.id,
        team_role=team_role,
        is_active=is_active,
    )
    _db.session.add(rel)
    _db.session.flush()
    return rel


def make_file(creator: EfilingUser, holder: EfilingUser | None = None,
              with_state: bool = True) -> EFile:
    """Create a file owned by ``creator``.

    ``holder`` moves the assignee without touching the workflow state, for
    tests that need a file parked on a given desk.  ``with_state=False``
    gives a file that predates workflow tracking.
    """
    if with_state:
        file_id = routing_service.create_file(creator.id, "Pipeline repair estimate")["file"]["id"]
        efile = _db.session.get(EFile, file_id)
    else:
        efile = EFile(subject="Legacy file", created_by=creator.id, assigned_to=creator.id)
        _db.session.add(efile)
    if holder is not None:
        efile.assigned_to = holder.id
    _db.session.commit()
    return efile


class Cast:
    """Named directory users for a test; attributes are EfilingUser rows."""


@pytest.fixture()
def directory():
    """The standard cast used across workflow tests."""
    c = Cast()
    c.creator = make_user("Xen North", "XEN", "Water Supply")
    c.aee = make_user("Aee North", "AEE", "Water Supply")
    c.sub_engineer = make_user("Sub North", "SUB-ENGINEER", "Water Supply")
    c.se = make_user("Se Water", "SE", "Water Supply")
    c.se_assistant = make_user("Ao Se", "AO", "Water Supply")
    c.ce = make_user("Ce Water", "CE", "Water Supply")
    c.ceo = make_user("Ceo Board", "CEO", "Management")
    c.budget = make_user("Budget Officer", "BUDGET_OFFICER", "Budget")
    c.outsider = make_user("Clerk Other", "CLERK", "Stores")

    make_team(c.creator, c.aee, "AEE")
    make_team(c.creator, c.sub_engineer, "SUB_ENGINEER")
    make_team(c.se, c.se_assistant, "SE_ASSISTANT")
    _db.session.commit()
    return c
