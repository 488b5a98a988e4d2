from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.archreview.db import db_session
from app.archreview.errors import InvalidArgument
from app.archreview.modules.audit_trail.service import get_head, trail_history
from app.archreview.modules.lifecycle.service import (
    LifecycleTransitionCommand,
    execute_transition,
    operations_for_document,
)

bp = Blueprint("lifecycle", __name__)

_REQUIRED_FIELDS = (
    ("documentId", "Document ID is required"),
    ("operation", "Operation cannot be blank"),
    ("modifiedBy", "Modified by user is required"),
)


def _command_from_json() -> LifecycleTransitionCommand:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidArgument("Request body must be a JSON object")

    errors = []
    for field, message in _REQUIRED_FIELDS:
        value = body.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(message)
    comment = body.get("comment")
    if comment is not None and not isinstance(comment, str):
        errors.append("Comment must be a string")
    if errors:
        raise InvalidArgument("; ".join(errors))

    return LifecycleTransitionCommand(
        document_id=body["documentId"].strip(),
        operation=body["operation"].strip(),
        modified_by=body["modifiedBy"].strip(),
        comment=comment,
    )


@bp.post("/transition")
def transition():
    command = _command_from_json()
    execute_transition(
        db_session(),
        command,
        lock_timeout=float(current_app.config.get("LIFECYCLE_LOCK_TIMEOUT", 10.0)),
    )
    return "Transition successful", 200, {"Content-Type": "text/plain; charset=utf-8"}


@bp.get("/documents/<document_id>/operations")
def document_operations(document_id: str):
    doc, ops = operations_for_document(db_session(), document_id)
    return jsonify(
        {
            "documentId": doc.id,
            "systemCode": doc.system_code,
            "state": doc.document_state,
            "version": doc.version,
            "availableOperations": [op.value for op in ops],
        }
    )


@bp.get("/trail/<system_code>")
def system_trail(system_code: str):
    s = db_session()
    entries = trail_history(s, system_code)
    head = get_head(s, system_code)
    return jsonify(
        {
            "systemCode": system_code,
            "nodeCount": head.node_count if head else 0,
            "lastModified": head.last_modified.isoformat() if head else None,
            "versions": [e.to_dict() for e in entries],
        }
    )
