"""
Lifecycle orchestration for Solution Review documents.

``execute_transition`` is the single entry point. It validates the request, takes the per-system
lock, re-reads everything it depends on, applies the transition and commits once:

- SUBMIT / REMOVE_SUBMISSION / APPROVE / MARK_OUTDATED change one document.
- ACTIVATE (promote) also outdates the previous ACTIVE document, assigns the next version label
  and pushes a node onto the system's audit trail.
- UNAPPROVE (revert) also pops the trail head and restores the previous document to ACTIVE.

Any failure rolls the whole unit back. Errors leaving this module are always ``LifecycleError``
subclasses.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.archreview.audit import record_event
from app.archreview.errors import (
    ConcurrentModification,
    InvalidArgument,
    InvalidState,
    InvalidTransition,
    LifecycleError,
    StorageError,
    TrailCorruption,
)
from app.archreview.locks import system_lock
from app.archreview.modules.audit_trail import service as trail
from app.archreview.modules.solution_review import service as reviews
from app.archreview.modules.solution_review.exclusivity import assert_exclusive
from app.archreview.modules.solution_review.models import ReviewDocument
from app.archreview.modules.solution_review.states import (
    OPERATION_LABELS,
    PROMOTE_OPERATIONS,
    REVERT_OPERATIONS,
    DocumentState,
    ExclusivityClass,
    Operation,
    available_operations,
    can_execute,
    execute,
    exclusivity_class_of,
    parse_operation,
    required_state,
    restore_authoritative,
)
from app.archreview.modules.solution_review.versioning import increment_patch

logger = logging.getLogger(__name__)

PROMOTED_DESCRIPTION = "Approved and set as current"
OUTDATED_DESCRIPTION = "Marked as outdated due to new approval"
RESTORED_DESCRIPTION = "Restored as current after un-approval of {document_id}"


@dataclass(frozen=True)
class LifecycleTransitionCommand:
    document_id: str
    operation: str
    modified_by: str
    comment: str | None = None

    @classmethod
    def of(cls, document_id: str, operation: str | Operation, modified_by: str) -> "LifecycleTransitionCommand":
        return cls(document_id, _op_name(operation), modified_by, None)

    @classmethod
    def with_comment(
        cls,
        document_id: str,
        operation: str | Operation,
        modified_by: str,
        comment: str,
    ) -> "LifecycleTransitionCommand":
        return cls(document_id, _op_name(operation), modified_by, comment)


@dataclass(frozen=True)
class TransitionResult:
    document_id: str
    operation: Operation
    from_state: DocumentState
    to_state: DocumentState
    version: str | None = None
    # ACTIVATE: document that was outdated; UNAPPROVE: document restored as current.
    affected_document_id: str | None = None


def _op_name(operation: str | Operation) -> str:
    return operation.value if isinstance(operation, Operation) else operation


def _validate_command(command: LifecycleTransitionCommand) -> None:
    missing = [
        name
        for name, value in (
            ("documentId", command.document_id),
            ("operation", command.operation),
            ("modifiedBy", command.modified_by),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise InvalidArgument(f"Required field(s) missing or blank: {', '.join(missing)}")


def execute_transition(
    s: Session,
    command: LifecycleTransitionCommand,
    *,
    lock_timeout: float = 10.0,
) -> TransitionResult:
    """
    Apply ``command`` and commit. Raises a LifecycleError subclass on any failure, after rolling
    the session back and logging the rejection.
    """
    logger.info(
        "Executing lifecycle transition: operation=%s, documentId=%s, user=%s",
        command.operation,
        command.document_id,
        command.modified_by,
    )
    try:
        _validate_command(command)
        operation = parse_operation(command.operation)
        document_id = command.document_id.strip()
        actor = command.modified_by.strip()

        # Pre-lock read only finds the system code; everything is re-read under the lock.
        system_code = reviews.get_or_404(s, document_id).system_code

        with system_lock(s, system_code, timeout=lock_timeout):
            try:
                result = _apply(s, document_id, operation, actor, command.comment)
                s.commit()
            except BaseException:
                s.rollback()
                raise
    except LifecycleError as e:
        s.rollback()
        logger.warning(
            "Rejected lifecycle transition: documentId=%s, operation=%s, user=%s, reason=%s: %s",
            command.document_id,
            command.operation,
            command.modified_by,
            type(e).__name__,
            e.message,
        )
        raise
    except StaleDataError as e:
        s.rollback()
        logger.warning(
            "Rejected lifecycle transition: documentId=%s, operation=%s, user=%s, reason=concurrent update: %s",
            command.document_id,
            command.operation,
            command.modified_by,
            e,
        )
        raise ConcurrentModification(
            f"Document '{command.document_id}' was modified concurrently; reload and retry"
        ) from e
    except SQLAlchemyError as e:
        s.rollback()
        logger.exception(
            "Storage failure during lifecycle transition: documentId=%s, operation=%s, user=%s",
            command.document_id,
            command.operation,
            command.modified_by,
        )
        raise StorageError(f"Storage failure while executing {command.operation}: {e}") from e

    logger.info(
        "Lifecycle transition completed successfully: documentId=%s, operation=%s, oldState=%s, "
        "newState=%s, version=%s, modifiedBy=%s, comment='%s'",
        result.document_id,
        result.operation.value,
        result.from_state.value,
        result.to_state.value,
        result.version,
        command.modified_by,
        command.comment or "",
    )
    return result


def _apply(
    s: Session,
    document_id: str,
    operation: Operation,
    actor: str,
    comment: str | None,
) -> TransitionResult:
    doc = reviews.get_or_404(s, document_id, refresh=True)
    current = doc.state
    logger.info("Found SolutionReview: id=%s, currentState=%s, requestedOperation=%s", doc.id, current.value, operation.value)

    if not can_execute(current, operation):
        ops = available_operations(current)
        raise InvalidTransition(
            f"Cannot execute operation '{OPERATION_LABELS[operation]}' on document '{doc.id}'. "
            f"Document is in state '{current.value}' but operation requires state "
            f"'{required_state(operation).value}'. Available operations: [{', '.join(o.value for o in ops)}]",
            current_state=current.value,
            required_state=required_state(operation).value,
            available_operations=[o.value for o in ops],
        )

    if operation in PROMOTE_OPERATIONS:
        return _promote(s, doc, operation, actor, comment)
    if operation in REVERT_OPERATIONS:
        return _revert(s, doc, operation, actor, comment)
    return _simple_transition(s, doc, operation, actor, comment)


def _set_state(s: Session, doc: ReviewDocument, state: DocumentState, actor: str) -> None:
    doc.document_state = state.value
    doc.stamp(actor)
    reviews.save(s, doc)


def _record(
    s: Session,
    doc: ReviewDocument,
    action: str,
    actor: str,
    comment: str | None,
    **metadata: object,
) -> None:
    record_event(
        s,
        actor=actor,
        action=f"lifecycle.{action}",
        entity_type="ReviewDocument",
        entity_id=doc.id,
        reason=comment,
        metadata={"system_code": doc.system_code, **metadata},
    )


def _simple_transition(
    s: Session,
    doc: ReviewDocument,
    operation: Operation,
    actor: str,
    comment: str | None,
) -> TransitionResult:
    current = doc.state
    target = execute(current, operation)

    cls = exclusivity_class_of(target)
    if cls is not None:
        assert_exclusive(s, doc.system_code, cls, exclude_id=doc.id)

    _set_state(s, doc, target, actor)
    _record(s, doc, operation.value.lower(), actor, comment, from_state=current.value, to_state=target.value)
    return TransitionResult(doc.id, operation, current, target, doc.version)


def _promote(
    s: Session,
    doc: ReviewDocument,
    operation: Operation,
    actor: str,
    comment: str | None,
) -> TransitionResult:
    current = doc.state
    target = execute(current, operation)
    system_code = doc.system_code
    logger.info("Executing %s for systemCode: %s", operation.value, system_code)

    head = trail.get_head(s, system_code, refresh=True)
    head_node = None
    if head is not None and not head.is_empty():
        head_node = trail.get_node(s, head.head)
        if head_node is None:
            raise TrailCorruption(f"Head node '{head.head}' is missing from the audit trail of {system_code}")
        if head_node.review_document_id == doc.id:
            raise TrailCorruption(
                f"Audit trail head of {system_code} already references document '{doc.id}' in state {current.value}"
            )

    predecessor = None
    if head_node is not None:
        predecessor = reviews.find_by_id(s, head_node.review_document_id, refresh=True)
        if predecessor is None:
            logger.warning(
                "Head node %s of systemCode %s references missing document %s; nothing to outdate",
                head_node.id,
                system_code,
                head_node.review_document_id,
            )
    displaced = predecessor if predecessor is not None and predecessor.state is DocumentState.ACTIVE else None

    assert_exclusive(
        s,
        system_code,
        ExclusivityClass.AUTHORITATIVE,
        exclude_id=doc.id,
        also_exclude=[displaced.id if displaced else None],
    )

    if head is None:
        head = trail.create_head(s, doc.id, system_code)

    if displaced is not None:
        _set_state(s, displaced, execute(DocumentState.ACTIVE, Operation.MARK_OUTDATED), actor)
        trail.touch_node(head_node, OUTDATED_DESCRIPTION)
        _record(
            s,
            displaced,
            "outdated_by_promotion",
            actor,
            comment,
            from_state=DocumentState.ACTIVE.value,
            to_state=DocumentState.OUTDATED.value,
            superseded_by=doc.id,
        )

    new_version = increment_patch(head_node.version_label if head_node is not None else None)
    doc.version = new_version
    _set_state(s, doc, target, actor)

    node = trail.new_node(
        s,
        head,
        review_document_id=doc.id,
        version_label=new_version,
        change_description=PROMOTED_DESCRIPTION,
    )
    trail.push_head(head, node)
    s.flush()

    _record(
        s,
        doc,
        operation.value.lower(),
        actor,
        comment,
        from_state=current.value,
        to_state=target.value,
        version=new_version,
        trail_node_id=node.id,
        supersedes=displaced.id if displaced else None,
    )
    logger.info(
        "%s completed: SR %s is now current at %s, previous current SR: %s",
        operation.value,
        doc.id,
        new_version,
        displaced.id if displaced else "none",
    )
    return TransitionResult(doc.id, operation, current, target, new_version, displaced.id if displaced else None)


def _revert(
    s: Session,
    doc: ReviewDocument,
    operation: Operation,
    actor: str,
    comment: str | None,
) -> TransitionResult:
    current = doc.state
    target = execute(current, operation)
    system_code = doc.system_code
    logger.info("Executing %s for systemCode: %s", operation.value, system_code)

    head = trail.get_head(s, system_code, refresh=True)
    if head is None:
        raise InvalidState(f"Cannot unapprove: no audit trail exists for systemCode: {system_code}")
    if head.is_empty():
        raise InvalidState(f"Cannot unapprove: audit trail has no head node for systemCode: {system_code}")

    head_node = trail.get_node(s, head.head)
    if head_node is None:
        raise TrailCorruption(f"Head node '{head.head}' is missing from the audit trail of {system_code}")
    if head_node.review_document_id != doc.id:
        raise TrailCorruption(
            f"Cannot unapprove document '{doc.id}': audit trail head of {system_code} "
            f"references document '{head_node.review_document_id}'"
        )
    if not head_node.has_next():
        raise InvalidState(f"Cannot unapprove: no previous version available for systemCode: {system_code}")

    previous_node = trail.get_node(s, head_node.next_id)
    if previous_node is None:
        raise TrailCorruption(
            f"Node '{head_node.id}' links to missing node '{head_node.next_id}' in the audit trail of {system_code}"
        )
    predecessor = reviews.find_by_id(s, previous_node.review_document_id, refresh=True)
    if predecessor is None:
        raise TrailCorruption(
            f"Previous version node '{previous_node.id}' references missing document "
            f"'{previous_node.review_document_id}'"
        )
    if predecessor.state is not DocumentState.OUTDATED:
        raise TrailCorruption(
            f"Previous version document '{predecessor.id}' is {predecessor.document_state}, expected OUTDATED"
        )

    assert_exclusive(s, system_code, ExclusivityClass.PRE_AUTHORITATIVE, exclude_id=doc.id)
    assert_exclusive(s, system_code, ExclusivityClass.AUTHORITATIVE, exclude_id=predecessor.id, also_exclude=[doc.id])

    _set_state(s, doc, target, actor)
    trail.pop_head(head, previous_node.id)
    _set_state(s, predecessor, restore_authoritative(predecessor.state), actor)
    trail.touch_node(previous_node, RESTORED_DESCRIPTION.format(document_id=doc.id))
    s.flush()

    _record(
        s,
        doc,
        operation.value.lower(),
        actor,
        comment,
        from_state=current.value,
        to_state=target.value,
        popped_node_id=head_node.id,
        restored=predecessor.id,
    )
    _record(
        s,
        predecessor,
        "restored_current",
        actor,
        comment,
        from_state=DocumentState.OUTDATED.value,
        to_state=DocumentState.ACTIVE.value,
        version=predecessor.version,
    )
    logger.info(
        "%s completed: SR %s is now %s, current SR restored: %s (%s)",
        operation.value,
        doc.id,
        target.value,
        predecessor.id,
        predecessor.version,
    )
    return TransitionResult(doc.id, operation, current, target, doc.version, predecessor.id)


def operations_for_document(s: Session, document_id: str) -> tuple[ReviewDocument, list[Operation]]:
    doc = reviews.get_or_404(s, document_id)
    return doc, available_operations(doc.state)
