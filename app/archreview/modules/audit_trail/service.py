"""
Per-system version history, stored as a singly linked list of TrailNode rows.

The list is only ever changed at the head: ``push_head`` after a promotion, ``pop_head`` after
the matching revert. Popped nodes stay in the table; nothing points at them any more.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.archreview.errors import InvalidState, NotFound, TrailCorruption
from app.archreview.modules.audit_trail.models import TrailHead, TrailNode

logger = logging.getLogger(__name__)


def get_head(s: Session, system_code: str, *, refresh: bool = False) -> TrailHead | None:
    return s.get(TrailHead, system_code, populate_existing=refresh)


def get_node(s: Session, node_id: str | None) -> TrailNode | None:
    if not node_id:
        return None
    return s.get(TrailNode, node_id)


def require_node(s: Session, node_id: str | None, *, system_code: str) -> TrailNode:
    node = get_node(s, node_id)
    if node is None:
        raise NotFound(f"Audit trail node '{node_id}' not found for systemCode: {system_code}")
    return node


def create_head(s: Session, review_document_id: str, system_code: str) -> TrailHead:
    """Create the system's trail head if it does not exist yet; return it either way."""
    head = get_head(s, system_code)
    if head is not None:
        return head
    now = datetime.utcnow()
    head = TrailHead(
        id=system_code,
        review_document_id=review_document_id,
        head=None,
        tail=None,
        node_count=0,
        created_at=now,
        last_modified=now,
    )
    s.add(head)
    s.flush()
    logger.info("Created audit trail for systemCode=%s (first document %s)", system_code, review_document_id)
    return head


def new_node(
    s: Session,
    head: TrailHead,
    *,
    review_document_id: str,
    version_label: str,
    change_description: str,
) -> TrailNode:
    """Persist a node linked in front of the current head. Call ``push_head`` next."""
    node = TrailNode(
        system_code=head.id,
        review_document_id=review_document_id,
        version_label=version_label,
        next_id=head.head,
        timestamp=datetime.utcnow(),
        change_description=change_description,
    )
    s.add(node)
    s.flush()
    return node


def push_head(head: TrailHead, node: TrailNode) -> None:
    if node.next_id != head.head:
        raise TrailCorruption(
            f"Node {node.id} links to {node.next_id!r} but the trail head is {head.head!r}",
            system_code=head.id,
        )
    if head.head is None:
        head.tail = node.id
    head.head = node.id
    head.node_count += 1
    head.last_modified = datetime.utcnow()


def pop_head(head: TrailHead, new_head_id: str | None) -> None:
    if head.is_empty():
        raise InvalidState(f"Audit trail for systemCode {head.id} is empty; nothing to remove")
    head.head = new_head_id
    head.node_count -= 1
    head.last_modified = datetime.utcnow()


def touch_node(node: TrailNode, change_description: str) -> None:
    node.timestamp = datetime.utcnow()
    node.change_description = change_description


@dataclass(frozen=True)
class TrailEntry:
    node_id: str
    review_document_id: str
    version_label: str
    timestamp: datetime
    change_description: str | None

    def to_dict(self) -> dict:
        return {
            "nodeId": self.node_id,
            "reviewDocumentId": self.review_document_id,
            "versionLabel": self.version_label,
            "timestamp": self.timestamp.isoformat(),
            "changeDescription": self.change_description,
        }


def trail_history(s: Session, system_code: str) -> list[TrailEntry]:
    """Walk head -> tail. Raises NotFound when the system has no trail."""
    head = get_head(s, system_code)
    if head is None:
        raise NotFound(f"Audit trail not found for systemCode: {system_code}")

    out: list[TrailEntry] = []
    seen: set[str] = set()
    node_id = head.head
    while node_id is not None:
        if node_id in seen or len(out) >= head.node_count:
            raise TrailCorruption(
                f"Audit trail for systemCode {system_code} is longer than its node count ({head.node_count})"
            )
        seen.add(node_id)
        node = require_node(s, node_id, system_code=system_code)
        out.append(
            TrailEntry(
                node_id=node.id,
                review_document_id=node.review_document_id,
                version_label=node.version_label,
                timestamp=node.timestamp,
                change_description=node.change_description,
            )
        )
        node_id = node.next_id
    if len(out) != head.node_count:
        raise TrailCorruption(
            f"Audit trail for systemCode {system_code} has {len(out)} reachable nodes, expected {head.node_count}"
        )
    return out
