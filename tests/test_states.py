"""Tests for the Solution Review state machine (no database)."""
import pytest

from app.archreview.errors import InvalidArgument, InvalidTransition
from app.archreview.modules.solution_review.states import (
    EXCLUSIVITY_CLASSES,
    OPERATION_EDGES,
    OPERATION_LABELS,
    PROMOTE_OPERATIONS,
    REVERT_OPERATIONS,
    VALID_TRANSITIONS,
    DocumentState,
    ExclusivityClass,
    Operation,
    available_operations,
    can_execute,
    can_transition_to,
    conflict_states,
    exclusivity_class_of,
    execute,
    is_terminal,
    parse_operation,
    parse_state,
    required_state,
    restore_authoritative,
    target_state,
    validate_transition,
)


class TestTransitionTable:
    def test_every_operation_has_an_edge_and_a_label(self):
        assert set(OPERATION_EDGES) == set(Operation)
        assert set(OPERATION_LABELS) == set(Operation)

    def test_every_state_has_a_transition_entry(self):
        assert set(VALID_TRANSITIONS) == set(DocumentState)

    def test_promote_and_revert_are_disjoint_operations(self):
        assert PROMOTE_OPERATIONS.isdisjoint(REVERT_OPERATIONS)
        assert EXCLUSIVITY_CLASSES[ExclusivityClass.PRE_AUTHORITATIVE].isdisjoint(
            EXCLUSIVITY_CLASSES[ExclusivityClass.AUTHORITATIVE]
        )

    def test_draft_only_goes_to_submitted(self):
        assert VALID_TRANSITIONS[DocumentState.DRAFT] == {DocumentState.SUBMITTED}

    def test_submitted_can_go_back_or_forward(self):
        assert VALID_TRANSITIONS[DocumentState.SUBMITTED] == {DocumentState.DRAFT, DocumentState.APPROVED}

    def test_active_can_be_outdated_or_unapproved(self):
        assert VALID_TRANSITIONS[DocumentState.ACTIVE] == {DocumentState.OUTDATED, DocumentState.APPROVED}

    def test_outdated_has_no_caller_exits(self):
        assert VALID_TRANSITIONS[DocumentState.OUTDATED] == frozenset()
        assert is_terminal(DocumentState.OUTDATED)
        assert not is_terminal(DocumentState.DRAFT)

    def test_no_self_transitions(self):
        for state in DocumentState:
            assert not can_transition_to(state, state)

    def test_every_operation_edge_is_in_the_table(self):
        for op in Operation:
            assert target_state(op) in VALID_TRANSITIONS[required_state(op)]

    def test_validate_transition_rejects_same_state(self):
        with pytest.raises(InvalidTransition, match="already in state SUBMITTED"):
            validate_transition(DocumentState.SUBMITTED, DocumentState.SUBMITTED)

    def test_validate_transition_rejects_unlisted_target(self):
        with pytest.raises(InvalidTransition, match="allowed: SUBMITTED"):
            validate_transition(DocumentState.DRAFT, DocumentState.ACTIVE)


class TestOperations:
    def test_required_states(self):
        assert required_state(Operation.SUBMIT) is DocumentState.DRAFT
        assert required_state(Operation.REMOVE_SUBMISSION) is DocumentState.SUBMITTED
        assert required_state(Operation.APPROVE) is DocumentState.SUBMITTED
        assert required_state(Operation.ACTIVATE) is DocumentState.APPROVED
        assert required_state(Operation.UNAPPROVE) is DocumentState.ACTIVE
        assert required_state(Operation.MARK_OUTDATED) is DocumentState.ACTIVE

    def test_can_execute_matches_required_state(self):
        assert can_execute(DocumentState.DRAFT, Operation.SUBMIT)
        assert not can_execute(DocumentState.SUBMITTED, Operation.SUBMIT)
        assert not can_execute(DocumentState.OUTDATED, Operation.UNAPPROVE)

    def test_available_operations_in_declaration_order(self):
        assert available_operations(DocumentState.SUBMITTED) == [Operation.REMOVE_SUBMISSION, Operation.APPROVE]
        assert available_operations(DocumentState.ACTIVE) == [Operation.UNAPPROVE, Operation.MARK_OUTDATED]
        assert available_operations(DocumentState.OUTDATED) == []

    def test_execute_returns_target(self):
        assert execute(DocumentState.APPROVED, Operation.ACTIVATE) is DocumentState.ACTIVE
        assert execute(DocumentState.ACTIVE, Operation.UNAPPROVE) is DocumentState.APPROVED

    def test_execute_from_wrong_state_lists_available_operations(self):
        with pytest.raises(InvalidTransition) as exc:
            execute(DocumentState.SUBMITTED, Operation.SUBMIT)
        err = exc.value
        assert err.current_state == "SUBMITTED"
        assert err.required_state == "DRAFT"
        assert err.available_operations == ["REMOVE_SUBMISSION", "APPROVE"]
        assert "Available operations: [REMOVE_SUBMISSION, APPROVE]" in err.message


class TestParsing:
    @pytest.mark.parametrize("raw", ["SUBMIT", "submit", " Submit "])
    def test_parse_operation_is_case_insensitive(self, raw):
        assert parse_operation(raw) is Operation.SUBMIT

    @pytest.mark.parametrize("raw", ["", None, "PUBLISH"])
    def test_parse_operation_rejects_unknown(self, raw):
        with pytest.raises(InvalidArgument, match="Valid operations are"):
            parse_operation(raw)

    def test_invalid_argument_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_operation("nope")

    def test_parse_state_accepts_current_alias(self):
        assert parse_state("CURRENT") is DocumentState.ACTIVE
        assert parse_state("outdated") is DocumentState.OUTDATED

    def test_parse_state_rejects_unknown(self):
        with pytest.raises(InvalidArgument):
            parse_state("ARCHIVED")


class TestRestoreAndExclusivity:
    def test_restore_only_from_outdated(self):
        assert restore_authoritative(DocumentState.OUTDATED) is DocumentState.ACTIVE
        with pytest.raises(InvalidTransition):
            restore_authoritative(DocumentState.APPROVED)

    def test_exclusivity_classes(self):
        assert conflict_states(ExclusivityClass.PRE_AUTHORITATIVE) == {
            DocumentState.DRAFT,
            DocumentState.SUBMITTED,
            DocumentState.APPROVED,
        }
        assert conflict_states(ExclusivityClass.AUTHORITATIVE) == {DocumentState.ACTIVE}

    def test_exclusivity_class_of(self):
        assert exclusivity_class_of(DocumentState.SUBMITTED) is ExclusivityClass.PRE_AUTHORITATIVE
        assert exclusivity_class_of(DocumentState.ACTIVE) is ExclusivityClass.AUTHORITATIVE
        assert exclusivity_class_of(DocumentState.OUTDATED) is None
