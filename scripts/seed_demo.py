#!/usr/bin/env python3
"""
E-Filing Workflow Service — demo directory seed.

Seeds a small water-works directory: an XEN who creates files, their AEE and
sub-engineer team, the SE/CE approval chain with an SE assistant, and a
budget officer.  Enough to walk a file through team marking, external
routing and return-to-creator from the API.

Usage:
    python scripts/seed_demo.py              # add to the current DB
    python scripts/seed_demo.py --reset      # drop + recreate tables first
"""

import argparse
import sys

sys.path.insert(0, ".")

from efiling import create_app
from efiling.models import db
from efiling.models.directory import Department, EfilingRole, EfilingUser
from efiling.models.team import TeamRelation

ROLES = [
    ("XEN", "Executive Engineer"),
    ("AEE", "Assistant Executive Engineer"),
    ("SUB_ENGINEER", "Sub Engineer"),
    ("SE", "Superintendent Engineer"),
    ("CE", "Chief Engineer"),
    ("AO", "Account Officer"),
    ("BUDGET_OFFICER", "Budget Officer"),
    ("CEO", "Chief Executive Officer"),
]

USERS = [
    # (name, email, role code, department)
    ("Ahmed Raza", "xen.north@efiling.local", "XEN", "Water Supply"),
    ("Sana Qureshi", "aee.north@efiling.local", "AEE", "Water Supply"),
    ("Bilal Khan", "subeng.north@efiling.local", "SUB_ENGINEER", "Water Supply"),
    ("Imran Siddiqui", "se.water@efiling.local", "SE", "Water Supply"),
    ("Farah Naz", "ao.se@efiling.local", "AO", "Water Supply"),
    ("Tariq Mehmood", "ce.water@efiling.local", "CE", "Water Supply"),
    ("Nadia Hussain", "budget@efiling.local", "BUDGET_OFFICER", "Budget"),
    ("Kamran Ali", "ceo@efiling.local", "CEO", "Management"),
]

TEAMS = [
    # (manager email, member email, team role)
    ("xen.north@efiling.local", "aee.north@efiling.local", "AEE"),
    ("xen.north@efiling.local", "subeng.north@efiling.local", "SUB_ENGINEER"),
    ("se.water@efiling.local", "ao.se@efiling.local", "SE_ASSISTANT"),
]


def seed():
    roles = {}
    for code, name in ROLES:
        role = EfilingRole.query.filter_by(code=code).first() or EfilingRole(code=code, name=name)
        db.session.add(role)
        roles[code] = role

    departments = {}
    users = {}
    for name, email, role_code, dept_name in USERS:
        dept = departments.get(dept_name) or Department.query.filter_by(name=dept_name).first()
        if dept is None:
            dept = Department(name=dept_name)
            db.session.add(dept)
        departments[dept_name] = dept

        user = EfilingUser.query.filter_by(email=email).first()
        if user is None:
            user = EfilingUser(name=name, email=email, role=roles[role_code], department=dept)
            db.session.add(user)
        users[email] = user
    db.session.flush()

    for manager_email, member_email, team_role in TEAMS:
        manager, member = users[manager_email], users[member_email]
        exists = TeamRelation.query.filter_by(
            manager_id=manager.id, team_member_id=member.id,
        ).first()
        if exists is None:
            db.session.add(TeamRelation(
                manager_id=manager.id, team_member_id=member.id, team_role=team_role,
            ))

    db.session.commit()
    return users


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
        users = seed()
        for email, user in users.items():
            print(f"    {user.id:>3}  {email:<32} {user.role.code}")


if __name__ == "__main__":
    main()
