from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.archreview.models import Base
from app.archreview.modules.solution_review.states import DocumentState


def _new_id() -> str:
    return uuid.uuid4().hex


class ReviewDocument(Base):
    """
    One version of a solution review for a system.

    ``document_state`` is only changed through the lifecycle service; ``version`` is the
    vMAJOR.MINOR.PATCH label assigned when the document becomes ACTIVE. ``row_version`` is the
    optimistic-concurrency counter SQLAlchemy checks on every UPDATE.
    """

    __tablename__ = "solution_reviews"
    __table_args__ = (
        Index("idx_solution_reviews_system_state", "system_code", "document_state"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    system_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    document_state: Mapped[str] = mapped_column(String(16), nullable=False, default=DocumentState.DRAFT.value)
    version: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Opaque review content (overview, capabilities, components, ...); carried unchanged.
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    last_modified_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    @property
    def state(self) -> DocumentState:
        return DocumentState(self.document_state)

    def stamp(self, actor: str | None) -> None:
        self.last_modified_by = actor
        self.last_modified_at = datetime.utcnow()

    def __repr__(self) -> str:
        return f"<ReviewDocument {self.id} {self.system_code} {self.document_state} {self.version or '-'}>"
