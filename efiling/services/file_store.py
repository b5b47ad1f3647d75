"""
File store adapter.

The workflow core reads a file as (creator, assignee, workflow_state_id) and
writes only its assignee.  ``set_assignee`` and ``lock_file`` do not commit:
they run inside the caller's transition transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm.attributes import set_committed_value

from efiling.models import db
from efiling.models.efile import EFile

logger = logging.getLogger(__name__)


def get_file(file_id: int) -> EFile | None:
    return db.session.get(EFile, file_id)


def lock_file(file_id: int) -> EFile | None:
    """Load the file row with ``SELECT ... FOR UPDATE``.

    On PostgreSQL concurrent transitions on the same file queue up behind
    this lock.  SQLite drops the clause and reads outside any transaction,
    so ``set_assignee`` re-checks the holder when it writes.
    """
    return db.session.execute(
        select(EFile).where(EFile.id == file_id).with_for_update()
    ).scalar_one_or_none()


def set_assignee(file: EFile, user_id: int | None, *, expected: int | None) -> bool:
    """Hand the file to ``user_id`` if ``expected`` still holds it.

    One conditional ``UPDATE ... WHERE assigned_to = :expected``.  Returns
    False when another transition moved the file since it was read; the
    caller must roll back.
    """
    holder = EFile.assigned_to.is_(None) if expected is None else EFile.assigned_to == expected
    result = db.session.execute(
        update(EFile)
        .where(EFile.id == file.id, holder)
        .values(assigned_to=user_id, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "File moved by a concurrent transition",
            extra={"file_id": file.id, "user_id": expected, "to_user_id": user_id},
        )
        return False
    set_committed_value(file, "assigned_to", user_id)
    return True
