import pytest
from fastapi.testclient import TestClient

from contact_store import ContactStore
from main import app, get_resolver
from resolver import IdentityResolver


def test_identify_creates_primary(client):
    response = client.post("/identify", json={"email": "a@x.com", "phoneNumber": "111"})

    assert response.status_code == 200
    contact = response.json()["contact"]
    assert contact["emails"] == ["a@x.com"]
    assert contact["phoneNumbers"] == ["111"]
    assert contact["secondaryContactIds"] == []
    assert isinstance(contact["primaryContactId"], int)


def test_identify_links_partial_overlap(client):
    first = client.post("/identify", json={"email": "a@x.com", "phoneNumber": "111"}).json()
    second = client.post("/identify", json={"email": "a@x.com", "phoneNumber": "222"}).json()

    assert second["contact"]["primaryContactId"] == first["contact"]["primaryContactId"]
    assert second["contact"]["phoneNumbers"] == ["111", "222"]
    assert len(second["contact"]["secondaryContactIds"]) == 1


def test_identify_repeats_byte_identical(client):
    client.post("/identify", json={"email": "a@x.com"})
    client.post("/identify", json={"phoneNumber": "222"})

    first = client.post("/identify", json={"email": "a@x.com", "phoneNumber": "222"})
    second = client.post("/identify", json={"email": "a@x.com", "phoneNumber": "222"})

    assert first.content == second.content


def test_identify_accepts_numeric_phone_number(client):
    response = client.post("/identify", json={"email": None, "phoneNumber": 123456})

    assert response.status_code == 200
    assert response.json()["contact"]["phoneNumbers"] == ["123456"]


def test_identify_requires_json_content_type(client):
    response = client.post(
        "/identify",
        content='{"email": "a@x.com"}',
        headers={"content-type": "text/plain"},
    )

    assert response.status_code == 415
    assert response.json()["error"]["code"] == "unsupported_media_type"


@pytest.mark.parametrize("body", ["", "{}", "[]", "not json"])
def test_identify_rejects_empty_body(client, body):
    response = client.post("/identify", content=body, headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "empty_body"


def test_identify_rejects_missing_identity(client, fetch_rows):
    response = client.post("/identify", json={"email": None, "phoneNumber": ""})

    assert response.status_code == 400
    assert response.json() == {
        "error": {
            "code": "missing_identity",
            "message": "At least one of email or phoneNumber is required",
        }
    }
    assert fetch_rows() == {}


def test_identify_rejects_malformed_fields(client):
    response = client.post("/identify", json={"email": ["a@x.com"]})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_body"
    assert response.json()["error"]["details"]["fields"] == ["email"]


def test_identify_store_failure_is_internal_error(tmp_path):
    broken = IdentityResolver(ContactStore(str(tmp_path / "missing" / "contacts.db")))
    app.dependency_overrides[get_resolver] = lambda: broken
    try:
        response = TestClient(app).post("/identify", json={"email": "a@x.com"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"]["message"] == "Internal server error"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_debug_lists_endpoints(client):
    body = client.get("/debug").json()

    assert body["status"] == "OK"
    assert {e["path"] for e in body["endpoints"]} == {"/", "/identify", "/health", "/debug"}
    assert set(body["environment"]) == {"appEnv", "port"}


def test_root_serves_contact_form(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert 'id="contactForm"' in response.text


def test_view_contacts_redirects_home(client):
    response = client.get("/view-contacts", follow_redirects=False)

    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/"
