"""
Tests for the HTTP API, wired to in-memory stores
"""
import pytest

from conftest import FakeStore

APPROVED = {"X-User-Id": "u-1"}
PENDING = {"X-User-Id": "u-2"}
SUPER_ADMIN = {"X-User-Id": "u-3"}
CLIENT = {"X-User-Id": "7"}
OTHER_CLIENT = {"X-User-Id": "8"}


@pytest.fixture
def store() -> FakeStore:
    return FakeStore({
        "users": [
            {"id": "u-1", "email": "farm@agency.test", "user_metadata": {"full_name": "Farm Admin"}},
            {"id": "u-2", "email": "housing@board.test"},
            {"id": "u-3", "email": "root@platform.test", "user_metadata": {"avatar_url": "/a/root.png"}},
            {"id": 7, "email": "applicant@mail.test", "role": "client"},
            {"id": 8, "email": "neighbour@mail.test", "role": "client"},
        ],
        "providers": [
            {"id": 1, "agency_name": "Farm Agency", "status": "approved", "user_id": "u-1",
             "created_at": "2025-01-01T00:00:00+00:00"},
            {"id": 2, "agency_name": "Housing Board", "status": "pending", "user_id": "u-2",
             "created_at": "2025-01-02T00:00:00+00:00"},
            {"id": 3, "agency_name": "Platform", "status": "approved", "is_super_admin": True,
             "user_id": "u-3", "created_at": "2025-01-03T00:00:00+00:00"},
        ],
        "rules": [
            {"id": 10, "rule_name": "Smallholder support", "provider_id": 1, "subsidy_amount": 0,
             "created_at": "2025-02-01T00:00:00+00:00"},
        ],
        "rule_requirements": [{"rule_id": 10, "requirement_id": 100}],
        "requirements": [
            {"id": 100, "type": "condition", "name": "Farm size", "field_key": "hectares",
             "operator": "less_than", "value": 5},
        ],
        "programs": [
            {"id": 50, "provider_id": 2, "name": "Rent relief", "created_at": "2025-03-01T00:00:00+00:00"},
        ],
    })


def _open_submission(test_client, headers=CLIENT):
    response = test_client.post("/submissions", json={"program_id": 50}, headers=headers)
    assert response.status_code == 200
    return response.json()["submission_id"]


def _upload(test_client, submission_id, headers=CLIENT):
    return test_client.post(
        f"/submissions/{submission_id}/documents",
        data={"doc_type": "payslip"},
        files={"file": ("payslip.pdf", b"%PDF-1.4", "application/pdf")},
        headers=headers,
    )


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_rules_endpoint(test_client):
    response = test_client.get("/rules/")

    assert response.status_code == 200
    [rule] = response.json()
    assert rule["conditions"] == {"Condition: Farm size": "hectares less than 5"}
    assert rule["subsidy_amount"] == 0.0
    assert rule["provider"]["agency_name"] == "Farm Agency"


def test_rules_by_unknown_provider(test_client):
    response = test_client.get("/rules/provider/999")
    assert response.status_code == 200
    assert response.json() == []


def test_open_submission_is_idempotent(test_client, store):
    first = test_client.post("/submissions", json={"client_id": 7, "program_id": 50}, headers=CLIENT)
    second = test_client.post("/submissions", json={"client_id": 7, "program_id": 50}, headers=CLIENT)

    assert first.status_code == 200
    assert first.json()["created"] is True
    assert second.json() == {"submission_id": first.json()["submission_id"], "created": False}
    assert len(store.tables["client_submissions"]) == 1
    assert [entry["action"] for entry in store.tables["logs"]] == ["create_submission"]


def test_open_submission_requires_user(test_client):
    response = test_client.post("/submissions", json={"client_id": 7, "program_id": 50})
    assert response.status_code == 401

    response = test_client.post(
        "/submissions", json={"client_id": 7, "program_id": 50}, headers={"X-User-Id": "ghost"}
    )
    assert response.status_code == 401


def test_pending_submission_lookup(test_client):
    missing = test_client.get("/submissions/pending", params={"program_id": "50"}, headers=CLIENT)
    assert missing.status_code == 404

    created = test_client.post("/submissions", json={"client_id": 7, "program_id": 50}, headers=CLIENT)
    found = test_client.get("/submissions/pending", params={"program_id": "50"}, headers=CLIENT)

    assert found.status_code == 200
    assert found.json()["submission_id"] == created.json()["submission_id"]


def test_document_lifecycle(test_client, object_store):
    submission_id = test_client.post(
        "/submissions", json={"client_id": 7, "program_id": 50}, headers=CLIENT
    ).json()["submission_id"]

    upload = test_client.post(
        f"/submissions/{submission_id}/documents",
        data={"doc_type": "payslip", "extracted_data": '{"employer": "ACME"}'},
        files={"file": ("My Report (final).pdf", b"%PDF-1.4", "application/pdf")},
        headers=CLIENT,
    )
    assert upload.status_code == 201
    document_id = upload.json()["document_id"]

    listing = test_client.get(f"/submissions/{submission_id}/documents", headers=CLIENT)
    [document] = listing.json()
    storage_path = document["extracted_data"]["_storagePath"]
    assert document["extracted_data"]["employer"] == "ACME"
    assert document["verified"] is False
    assert " " not in storage_path and "(" not in storage_path
    assert storage_path.endswith(".pdf")

    download = test_client.get(f"/storage/v1/object/public/client-submissions/{storage_path}")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4"

    deleted = test_client.delete(f"/documents/{document_id}", headers=CLIENT)
    assert deleted.status_code == 200
    assert object_store.objects == {}
    assert test_client.get(f"/submissions/{submission_id}/documents", headers=CLIENT).json() == []


def test_upload_rejects_bad_extracted_data(test_client):
    submission_id = _open_submission(test_client)
    response = test_client.post(
        f"/submissions/{submission_id}/documents",
        data={"doc_type": "payslip", "extracted_data": "{broken"},
        files={"file": ("a.pdf", b"x", "application/pdf")},
        headers=CLIENT,
    )
    assert response.status_code == 400


def test_upload_rejects_oversized_file(test_client, object_store):
    submission_id = _open_submission(test_client)
    response = test_client.post(
        f"/submissions/{submission_id}/documents",
        data={"doc_type": "scan"},
        files={"file": ("scan.png", b"x" * 4096, "image/png")},
        headers=CLIENT,
    )
    assert response.status_code == 400
    assert object_store.calls == []


def test_open_submission_defaults_to_current_user(test_client, store):
    submission_id = _open_submission(test_client)

    [row] = store.tables["client_submissions"]
    assert str(row["id"]) == submission_id
    assert row["client_id"] == 7


def test_open_submission_for_someone_else_is_forbidden(test_client, store):
    response = test_client.post("/submissions", json={"client_id": 8, "program_id": 50}, headers=CLIENT)

    assert response.status_code == 403
    assert store.tables.get("client_submissions", []) == []


def test_submission_reads_require_user(test_client):
    submission_id = _open_submission(test_client)

    assert test_client.get("/submissions/pending", params={"program_id": "50"}).status_code == 401
    assert test_client.get("/submissions/client/7").status_code == 401
    assert test_client.get(f"/submissions/{submission_id}/documents").status_code == 401


def test_other_client_cannot_read_submissions(test_client):
    submission_id = _open_submission(test_client)

    pending = test_client.get(
        "/submissions/pending", params={"program_id": "50", "client_id": "7"}, headers=OTHER_CLIENT
    )
    assert pending.status_code == 403
    assert test_client.get("/submissions/client/7", headers=OTHER_CLIENT).status_code == 403
    assert test_client.get(f"/submissions/{submission_id}/documents", headers=OTHER_CLIENT).status_code == 403

    own = test_client.get("/submissions/client/7", headers=CLIENT)
    assert [submission["id"] for submission in own.json()] == [int(submission_id)]


def test_other_client_cannot_upload(test_client, store, object_store):
    submission_id = _open_submission(test_client)

    response = _upload(test_client, submission_id, headers=OTHER_CLIENT)

    assert response.status_code == 403
    assert object_store.objects == {}
    assert store.tables.get("client_documents", []) == []


def test_other_client_cannot_delete_document(test_client, store, object_store):
    submission_id = _open_submission(test_client)
    document_id = _upload(test_client, submission_id).json()["document_id"]

    response = test_client.delete(f"/documents/{document_id}", headers=OTHER_CLIENT)

    assert response.status_code == 403
    assert [str(row["id"]) for row in store.tables["client_documents"]] == [document_id]
    assert len(object_store.objects) == 1


def test_approved_provider_reviews_client_documents(test_client):
    submission_id = _open_submission(test_client)
    _upload(test_client, submission_id)

    listing = test_client.get(f"/submissions/{submission_id}/documents", headers=APPROVED)
    assert listing.status_code == 200
    assert [document["doc_type"] for document in listing.json()] == ["payslip"]

    assert test_client.get(f"/submissions/{submission_id}/documents", headers=PENDING).status_code == 403


def test_unknown_submission_or_document(test_client, object_store):
    assert _upload(test_client, 404).status_code == 404
    assert test_client.get("/submissions/404/documents", headers=CLIENT).status_code == 404
    assert test_client.delete("/documents/404", headers=CLIENT).status_code == 404
    assert object_store.calls == []


def test_missing_stored_file(test_client):
    response = test_client.get("/storage/v1/object/public/client-submissions/uploads/1/none.pdf")
    assert response.status_code == 404


def test_create_program_requires_approved_provider(test_client):
    payload = {"provider_id": 2, "name": "Tenant grant"}

    assert test_client.post("/programs/", json=payload).status_code == 401
    assert test_client.post("/programs/", json=payload, headers=PENDING).status_code == 403
    assert test_client.post("/programs/", json=payload, headers=CLIENT).status_code == 403


def test_create_program(test_client, store):
    payload = {
        "provider_id": 1,
        "name": "Seed grant",
        "requirements": [{"type": "document", "name": "Land title"}],
        "rules": [{"field": "age", "operator": "greater_or_equal", "value": 18}],
    }

    created = test_client.post("/programs/", json=payload, headers=APPROVED)
    assert created.status_code == 201
    program_id = created.json()["id"]

    program = test_client.get(f"/programs/{program_id}").json()
    assert program["id"] == program_id
    assert program["requirements"][0]["name"] == "Land title"
    assert program["rules"][0]["operator"] == "greater_or_equal"

    foreign = dict(payload, provider_id=2)
    assert test_client.post("/programs/", json=foreign, headers=APPROVED).status_code == 403


def test_provider_cannot_delete_foreign_program(test_client, store):
    response = test_client.delete("/programs/50", headers=APPROVED)

    assert response.status_code == 404
    assert [row["id"] for row in store.tables["programs"]] == [50]


def test_super_admin_deletes_any_program(test_client, store):
    response = test_client.delete("/programs/50", headers=SUPER_ADMIN)

    assert response.status_code == 200
    assert store.tables["programs"] == []
    assert store.tables["logs"][-1]["role"] == "SUPER_ADMIN"


def test_training_results(test_client):
    saved = test_client.post(
        "/programs/50/training-results",
        json={"program_id": 50, "accuracy": 0.75, "rules_for_generator": "balance ages"},
        headers=SUPER_ADMIN,
    )
    assert saved.status_code == 201

    latest = test_client.get("/programs/50/training-results/latest")
    assert latest.status_code == 200
    assert latest.json()["notes"] == "Generator guidance: balance ages"

    assert test_client.get("/programs/51/training-results/latest").status_code == 404


def test_access_profile_endpoint(test_client):
    approved = test_client.get("/providers/access", headers=APPROVED).json()
    assert approved["status"] == "approved"
    assert approved["is_super_admin"] is False

    client = test_client.get("/providers/access", headers=CLIENT).json()
    assert client["status"] == "none"


def test_users_listing_is_super_admin_only(test_client):
    assert test_client.get("/users", headers=APPROVED).status_code == 403

    response = test_client.get("/users", headers=SUPER_ADMIN)
    assert response.status_code == 200
    assert len(response.json()) == 5


def test_user_display(test_client, settings):
    mine = test_client.get("/users/me", headers=APPROVED).json()
    assert mine["display_name"] == "Farm Admin"
    assert mine["avatar_url"] == settings.default_avatar

    other = test_client.get("/users/u-2/display").json()
    assert other["display_name"] == "housing"

    assert test_client.get("/users/nobody/display").status_code == 404


def test_providers_listing(test_client, settings):
    providers = test_client.get("/providers").json()
    assert [provider["id"] for provider in providers] == [3, 2, 1]
    assert all(provider["logo"] == settings.default_logo for provider in providers)
