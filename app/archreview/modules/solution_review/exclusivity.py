from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.archreview.errors import ExclusivityViolation
from app.archreview.modules.solution_review.models import ReviewDocument
from app.archreview.modules.solution_review.states import ExclusivityClass, conflict_states


def find_conflicts(
    s: Session,
    system_code: str,
    cls: ExclusivityClass,
    *,
    exclude_ids: Iterable[str | None] = (),
) -> list[ReviewDocument]:
    excluded = {i for i in exclude_ids if i}
    stmt = (
        select(ReviewDocument)
        .where(ReviewDocument.system_code == system_code)
        .where(ReviewDocument.document_state.in_(sorted(st.value for st in conflict_states(cls))))
    )
    if excluded:
        stmt = stmt.where(ReviewDocument.id.not_in(excluded))
    return list(s.scalars(stmt))


def assert_exclusive(
    s: Session,
    system_code: str,
    cls: ExclusivityClass,
    exclude_id: str | None = None,
    *,
    also_exclude: Iterable[str | None] = (),
) -> None:
    """
    Raise ExclusivityViolation if another document of ``system_code`` already holds a state in
    ``cls``. ``exclude_id`` is the document being transitioned; ``also_exclude`` covers a
    predecessor that the same transaction is about to move out of the class.
    """
    conflicts = find_conflicts(s, system_code, cls, exclude_ids=[exclude_id, *also_exclude])
    if not conflicts:
        return
    states = sorted({d.document_state for d in conflicts})
    members = ", ".join(sorted(st.value for st in conflict_states(cls)))
    raise ExclusivityViolation(
        f"Cannot create/update document for system {system_code}. "
        f"Documents already exist in exclusive states: {', '.join(states)}. "
        f"Only one document can be in {members} state at a time.",
        conflicting_states=states,
        system_code=system_code,
        conflicting_ids=[d.id for d in conflicts],
    )
