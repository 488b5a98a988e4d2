from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.archreview.models import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class TrailHead(Base):
    """
    Per-system pointer record for the version history linked list.

    head -> newest node (the current authoritative document), tail -> oldest node.
    Invariants: node_count == 0 <=> head is None; node_count == 1 <=> head == tail.
    """

    __tablename__ = "audit_trail_heads"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # system code
    review_document_id: Mapped[str] = mapped_column(
        ForeignKey("solution_reviews.id", ondelete="RESTRICT"),
        nullable=False,
    )

    head: Mapped[str | None] = mapped_column(ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True)
    tail: Mapped[str | None] = mapped_column(ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True)
    node_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    @property
    def system_code(self) -> str:
        return self.id

    def is_empty(self) -> bool:
        return self.head is None or self.node_count == 0

    def has_only_one_version(self) -> bool:
        return self.node_count == 1


class TrailNode(Base):
    """
    One "became current" event. ``next_id`` points at the node that was current immediately
    before this one (None for the oldest). Nodes are never relinked; the head pointer moves.
    """

    __tablename__ = "audit_trail_nodes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    system_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    review_document_id: Mapped[str] = mapped_column(
        ForeignKey("solution_reviews.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    version_label: Mapped[str] = mapped_column(String(32), nullable=False)

    next_id: Mapped[str | None] = mapped_column(ForeignKey("audit_trail_nodes.id", ondelete="RESTRICT"), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    change_description: Mapped[str | None] = mapped_column(String(512), nullable=True)

    def is_tail(self) -> bool:
        return self.next_id is None

    def has_next(self) -> bool:
        return self.next_id is not None
