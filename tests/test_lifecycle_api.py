"""Tests for the lifecycle HTTP endpoints."""
import pytest
from sqlalchemy.exc import OperationalError

from app.archreview import create_app
from app.archreview.db import session_scope
from app.archreview.models import AuditEvent, Base
from app.archreview.modules.audit_trail import service as trail
from app.archreview.modules.solution_review import service as reviews
from app.archreview.modules.solution_review.models import ReviewDocument
from app.archreview.modules.solution_review.service import create_draft, find_by_id

URL = "/api/v1/lifecycle/transition"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _draft(app, system_code="SYS-1"):
    with session_scope(app) as s:
        return create_draft(s, system_code=system_code, created_by="author@example.com").id


def _post(client, document_id, operation, modified_by="reviewer@example.com", **extra):
    body = {"documentId": document_id, "operation": operation, "modifiedBy": modified_by, **extra}
    return client.post(URL, json=body)


def _activate(client, document_id):
    for op in ("SUBMIT", "APPROVE", "ACTIVATE"):
        r = _post(client, document_id, op)
        assert r.status_code == 200, r.json


def _assert_envelope(r, status):
    assert r.status_code == status
    assert set(r.json) == {"timestamp", "status", "message", "path"}
    assert r.json["status"] == status
    assert r.json["path"] == URL


def test_transition_returns_plain_text(app, client):
    d1 = _draft(app)
    r = _post(client, d1, "SUBMIT", comment="first pass")
    assert r.status_code == 200
    assert r.mimetype == "text/plain"
    assert r.get_data(as_text=True) == "Transition successful"

    with session_scope(app) as s:
        assert find_by_id(s, d1).document_state == "SUBMITTED"


def test_operation_is_case_insensitive(app, client):
    d1 = _draft(app)
    assert _post(client, d1, "submit").status_code == 200


def test_request_id_is_stored_on_audit_event(app, client):
    d1 = _draft(app)
    r = client.post(
        URL,
        json={"documentId": d1, "operation": "SUBMIT", "modifiedBy": "reviewer@example.com"},
        headers={"X-Request-ID": "req-42"},
    )
    assert r.status_code == 200
    with session_scope(app) as s:
        ev = s.query(AuditEvent).one()
        assert ev.request_id == "req-42"


@pytest.mark.parametrize(
    "body",
    [
        {"operation": "SUBMIT", "modifiedBy": "u"},
        {"documentId": "abc", "operation": "", "modifiedBy": "u"},
        {"documentId": "abc", "operation": "SUBMIT", "modifiedBy": "   "},
        {"documentId": "abc", "operation": "SUBMIT", "modifiedBy": "u", "comment": 7},
        {"documentId": 12, "operation": "SUBMIT", "modifiedBy": "u"},
    ],
)
def test_invalid_body_is_400(client, body):
    r = client.post(URL, json=body)
    _assert_envelope(r, 400)


def test_non_json_body_is_400(client):
    r = client.post(URL, data="documentId=abc", content_type="application/x-www-form-urlencoded")
    _assert_envelope(r, 400)
    assert "JSON object" in r.json["message"]


def test_unknown_operation_is_400(app, client):
    d1 = _draft(app)
    r = _post(client, d1, "PUBLISH")
    _assert_envelope(r, 400)
    assert "Invalid operation" in r.json["message"]


def test_unknown_document_is_404(client):
    r = _post(client, "missing", "SUBMIT")
    _assert_envelope(r, 404)
    assert r.json["message"] == "SolutionReview with ID 'missing' not found"


def test_wrong_state_is_400_with_available_operations(app, client):
    d1 = _draft(app)
    r = _post(client, d1, "APPROVE")
    _assert_envelope(r, 400)
    assert "Available operations: [SUBMIT]" in r.json["message"]


def test_exclusivity_violation_is_409(app, client):
    d1 = _draft(app)
    _activate(client, d1)
    d2 = _draft(app)
    _activate(client, d2)
    _draft(app)

    r = _post(client, d2, "UNAPPROVE")
    _assert_envelope(r, 409)
    assert "DRAFT" in r.json["message"]


def test_unapprove_without_previous_is_400(app, client):
    d1 = _draft(app)
    _activate(client, d1)
    r = _post(client, d1, "UNAPPROVE")
    _assert_envelope(r, 400)
    assert "no previous version" in r.json["message"]


def test_storage_error_is_500_and_sanitized(app, client, monkeypatch):
    d1 = _draft(app)
    _post(client, d1, "SUBMIT")
    _post(client, d1, "APPROVE")

    def boom(head, node):
        raise OperationalError("UPDATE audit_trail_heads SET secret_column", {}, Exception("driver detail"))

    monkeypatch.setattr(trail, "push_head", boom)
    r = _post(client, d1, "ACTIVATE")
    _assert_envelope(r, 500)
    assert "secret_column" not in r.json["message"]
    assert "driver detail" not in r.json["message"]


def test_document_operations_endpoint(app, client):
    d1 = _draft(app)
    _post(client, d1, "SUBMIT")
    r = client.get(f"/api/v1/lifecycle/documents/{d1}/operations")
    assert r.status_code == 200
    assert r.json["state"] == "SUBMITTED"
    assert r.json["availableOperations"] == ["REMOVE_SUBMISSION", "APPROVE"]


def test_document_operations_unknown_is_404(client):
    r = client.get("/api/v1/lifecycle/documents/missing/operations")
    assert r.status_code == 404


def test_trail_endpoint_lists_newest_first(app, client):
    d1 = _draft(app)
    _activate(client, d1)
    d2 = _draft(app)
    _activate(client, d2)

    r = client.get("/api/v1/lifecycle/trail/SYS-1")
    assert r.status_code == 200
    assert r.json["nodeCount"] == 2
    versions = r.json["versions"]
    assert [v["versionLabel"] for v in versions] == ["v1.0.1", "v1.0.0"]
    assert [v["reviewDocumentId"] for v in versions] == [d2, d1]
    assert versions[1]["changeDescription"] == "Marked as outdated due to new approval"


def test_trail_endpoint_unknown_system_is_404(client):
    r = client.get("/api/v1/lifecycle/trail/NOPE")
    assert r.status_code == 404
    assert r.json["path"] == "/api/v1/lifecycle/trail/NOPE"


def test_row_changed_underneath_is_409(app, client, monkeypatch):
    d1 = _draft(app)
    real_save = reviews.save

    def save_after_other_writer(s, doc):
        with session_scope(app) as other:
            other.get(ReviewDocument, doc.id).last_modified_by = "other-writer"
        return real_save(s, doc)

    monkeypatch.setattr(reviews, "save", save_after_other_writer)
    r = _post(client, d1, "SUBMIT")
    _assert_envelope(r, 409)
    assert "modified concurrently" in r.json["message"]

    with session_scope(app) as s:
        assert find_by_id(s, d1).document_state == "DRAFT"
