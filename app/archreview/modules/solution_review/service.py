"""
Solution Review store helpers and draft management.

Lifecycle transitions do NOT go through here; see ``modules.lifecycle.service``.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.archreview.errors import InvalidArgument, InvalidTransition, NotFound
from app.archreview.locks import system_lock
from app.archreview.modules.solution_review.exclusivity import assert_exclusive
from app.archreview.modules.solution_review.models import ReviewDocument
from app.archreview.modules.solution_review.states import (
    DocumentState,
    ExclusivityClass,
    available_operations,
)

logger = logging.getLogger(__name__)


def normalize_system_code(system_code: str | None) -> str:
    return (system_code or "").strip()


# --- store ---------------------------------------------------------------


def find_by_id(s: Session, document_id: str, *, refresh: bool = False) -> ReviewDocument | None:
    if not document_id:
        return None
    return s.get(ReviewDocument, document_id, populate_existing=refresh)


def get_or_404(s: Session, document_id: str, *, refresh: bool = False) -> ReviewDocument:
    doc = find_by_id(s, document_id, refresh=refresh)
    if doc is None:
        raise NotFound(f"SolutionReview with ID '{document_id}' not found")
    return doc


def insert(s: Session, doc: ReviewDocument) -> ReviewDocument:
    s.add(doc)
    s.flush()
    return doc


def save(s: Session, doc: ReviewDocument) -> ReviewDocument:
    s.add(doc)
    s.flush()
    return doc


def delete_by_id(s: Session, document_id: str) -> bool:
    doc = find_by_id(s, document_id)
    if doc is None:
        return False
    s.delete(doc)
    s.flush()
    return True


def find_all_by_system_code_and_states(
    s: Session,
    system_code: str,
    states: Iterable[DocumentState],
    *,
    exclude_id: str | None = None,
) -> list[ReviewDocument]:
    state_values = sorted(st.value for st in states)
    stmt = (
        select(ReviewDocument)
        .where(ReviewDocument.system_code == system_code)
        .where(ReviewDocument.document_state.in_(state_values))
        .order_by(ReviewDocument.last_modified_at.desc())
    )
    if exclude_id:
        stmt = stmt.where(ReviewDocument.id != exclude_id)
    return list(s.scalars(stmt))


def find_all_by_system_code(s: Session, system_code: str) -> list[ReviewDocument]:
    stmt = (
        select(ReviewDocument)
        .where(ReviewDocument.system_code == system_code)
        .order_by(ReviewDocument.last_modified_at.desc())
    )
    return list(s.scalars(stmt))


def find_active(s: Session, system_code: str) -> ReviewDocument | None:
    docs = find_all_by_system_code_and_states(s, system_code, {DocumentState.ACTIVE})
    return docs[0] if docs else None


# --- drafts --------------------------------------------------------------


def create_draft(
    s: Session,
    *,
    system_code: str,
    created_by: str,
    payload: dict[str, Any] | None = None,
    lock_timeout: float = 10.0,
) -> ReviewDocument:
    """
    Create a DRAFT review and commit it.

    Fails if the system already has a DRAFT, SUBMITTED or APPROVED document.

    The check and the insert run under the system's lifecycle lock, so an UNAPPROVE moving a
    document back to APPROVED cannot slip in between them.
    """
    code = normalize_system_code(system_code)
    if not code:
        raise InvalidArgument("systemCode is required")
    if not (created_by or "").strip():
        raise InvalidArgument("createdBy is required")

    with system_lock(s, code, timeout=lock_timeout):
        try:
            assert_exclusive(s, code, ExclusivityClass.PRE_AUTHORITATIVE)
            doc = ReviewDocument(
                system_code=code,
                document_state=DocumentState.DRAFT.value,
                version=None,
                payload=dict(payload or {}),
                created_by=created_by.strip(),
                last_modified_by=created_by.strip(),
            )
            insert(s, doc)
            s.commit()
        except BaseException:
            s.rollback()
            raise
    logger.info("Created draft solution review id=%s systemCode=%s by=%s", doc.id, code, doc.created_by)
    return doc


def delete_draft(s: Session, document_id: str) -> None:
    """Delete a review that never left DRAFT. Anything further along is part of the record."""
    doc = get_or_404(s, document_id)
    if doc.state is not DocumentState.DRAFT:
        raise InvalidTransition(
            f"Only DRAFT documents can be deleted; document '{document_id}' is {doc.document_state}",
            current_state=doc.document_state,
            required_state=DocumentState.DRAFT.value,
            available_operations=[op.value for op in available_operations(doc.state)],
        )
    delete_by_id(s, document_id)
    logger.info("Deleted draft solution review id=%s systemCode=%s", document_id, doc.system_code)
