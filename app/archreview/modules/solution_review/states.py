"""
Solution Review document states and the operations that move between them.

Pure data and functions only; nothing here touches the database.

    DRAFT --SUBMIT--> SUBMITTED --APPROVE--> APPROVED --ACTIVATE--> ACTIVE --MARK_OUTDATED--> OUTDATED
      ^                   |                     ^                      |
      +-REMOVE_SUBMISSION-+                     +------UNAPPROVE-------+

ACTIVATE is the promote-to-current edge (pushes an audit trail node) and UNAPPROVE is the
revert edge (pops it). OUTDATED has no caller-invocable exits; the only way back is the internal
restore performed when a newer ACTIVE document is unapproved.
"""
from __future__ import annotations

from enum import Enum

from app.archreview.errors import InvalidArgument, InvalidTransition


class DocumentState(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    OUTDATED = "OUTDATED"


class Operation(str, Enum):
    SUBMIT = "SUBMIT"
    REMOVE_SUBMISSION = "REMOVE_SUBMISSION"
    APPROVE = "APPROVE"
    ACTIVATE = "ACTIVATE"
    UNAPPROVE = "UNAPPROVE"
    MARK_OUTDATED = "MARK_OUTDATED"


class ExclusivityClass(str, Enum):
    PRE_AUTHORITATIVE = "pre-authoritative"
    AUTHORITATIVE = "authoritative"


# operation -> (required state, target state)
OPERATION_EDGES: dict[Operation, tuple[DocumentState, DocumentState]] = {
    Operation.SUBMIT: (DocumentState.DRAFT, DocumentState.SUBMITTED),
    Operation.REMOVE_SUBMISSION: (DocumentState.SUBMITTED, DocumentState.DRAFT),
    Operation.APPROVE: (DocumentState.SUBMITTED, DocumentState.APPROVED),
    Operation.ACTIVATE: (DocumentState.APPROVED, DocumentState.ACTIVE),
    Operation.UNAPPROVE: (DocumentState.ACTIVE, DocumentState.APPROVED),
    Operation.MARK_OUTDATED: (DocumentState.ACTIVE, DocumentState.OUTDATED),
}

OPERATION_LABELS: dict[Operation, str] = {
    Operation.SUBMIT: "submit for review",
    Operation.REMOVE_SUBMISSION: "remove submission",
    Operation.APPROVE: "approve document",
    Operation.ACTIVATE: "activate document",
    Operation.UNAPPROVE: "un-approve document",
    Operation.MARK_OUTDATED: "mark as outdated",
}

# Derived from OPERATION_EDGES so the two tables can never disagree.
VALID_TRANSITIONS: dict[DocumentState, frozenset[DocumentState]] = {
    state: frozenset(target for required, target in OPERATION_EDGES.values() if required is state)
    for state in DocumentState
}

EXCLUSIVITY_CLASSES: dict[ExclusivityClass, frozenset[DocumentState]] = {
    ExclusivityClass.PRE_AUTHORITATIVE: frozenset(
        {DocumentState.DRAFT, DocumentState.SUBMITTED, DocumentState.APPROVED}
    ),
    ExclusivityClass.AUTHORITATIVE: frozenset({DocumentState.ACTIVE}),
}

PROMOTE_OPERATIONS = frozenset({Operation.ACTIVATE})
REVERT_OPERATIONS = frozenset({Operation.UNAPPROVE})

# Older records and clients use CURRENT for the authoritative state.
_STATE_ALIASES = {"CURRENT": DocumentState.ACTIVE}


def parse_operation(name: str | None) -> Operation:
    """Case-insensitive operation lookup. Raises InvalidArgument for unknown names."""
    key = (name or "").strip().upper()
    try:
        return Operation(key)
    except ValueError:
        valid = ", ".join(op.value for op in Operation)
        raise InvalidArgument(f"Invalid operation {name!r}. Valid operations are: {valid}")


def parse_state(name: str | None) -> DocumentState:
    key = (name or "").strip().upper()
    if key in _STATE_ALIASES:
        return _STATE_ALIASES[key]
    try:
        return DocumentState(key)
    except ValueError:
        raise InvalidArgument(f"Invalid document state {name!r}")


def required_state(op: Operation) -> DocumentState:
    return OPERATION_EDGES[op][0]


def target_state(op: Operation) -> DocumentState:
    return OPERATION_EDGES[op][1]


def valid_transitions(state: DocumentState) -> frozenset[DocumentState]:
    return VALID_TRANSITIONS[state]


def can_transition_to(state: DocumentState, target: DocumentState) -> bool:
    return target is not state and target in VALID_TRANSITIONS[state]


def can_execute(state: DocumentState, op: Operation) -> bool:
    return required_state(op) is state


def available_operations(state: DocumentState) -> list[Operation]:
    """Operations executable from ``state``, in declaration order."""
    return [op for op in Operation if can_execute(state, op)]


def is_terminal(state: DocumentState) -> bool:
    return not VALID_TRANSITIONS[state]


def validate_transition(state: DocumentState, target: DocumentState) -> None:
    if target is state:
        raise InvalidTransition(
            f"Document is already in state {state.value}",
            current_state=state.value,
            available_operations=[op.value for op in available_operations(state)],
        )
    if target not in VALID_TRANSITIONS[state]:
        allowed = ", ".join(sorted(t.value for t in VALID_TRANSITIONS[state])) or "none"
        raise InvalidTransition(
            f"Cannot transition from {state.value} to {target.value} (allowed: {allowed})",
            current_state=state.value,
            available_operations=[op.value for op in available_operations(state)],
        )


def execute(state: DocumentState, op: Operation) -> DocumentState:
    """Return the state reached by applying ``op`` to ``state``."""
    if not can_execute(state, op):
        ops = available_operations(state)
        raise InvalidTransition(
            f"Cannot execute operation '{OPERATION_LABELS[op]}'. Document is in state "
            f"'{state.value}' but operation requires state '{required_state(op).value}'. "
            f"Available operations: [{', '.join(o.value for o in ops)}]",
            current_state=state.value,
            required_state=required_state(op).value,
            available_operations=[o.value for o in ops],
        )
    target = target_state(op)
    validate_transition(state, target)
    return target


def restore_authoritative(state: DocumentState) -> DocumentState:
    """Internal edge OUTDATED -> ACTIVE, used only when a newer promotion is reverted."""
    if state is not DocumentState.OUTDATED:
        raise InvalidTransition(
            f"Only an OUTDATED document can be restored as current (state is {state.value})",
            current_state=state.value,
            required_state=DocumentState.OUTDATED.value,
            available_operations=[op.value for op in available_operations(state)],
        )
    return DocumentState.ACTIVE


def exclusivity_class_of(state: DocumentState) -> ExclusivityClass | None:
    for cls, members in EXCLUSIVITY_CLASSES.items():
        if state in members:
            return cls
    return None


def conflict_states(cls: ExclusivityClass) -> frozenset[DocumentState]:
    return EXCLUSIVITY_CLASSES[cls]
