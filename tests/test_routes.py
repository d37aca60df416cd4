"""
HTTP tests for POST /chat — the full onboarding conversation over a
cookie session, returning visitors, and error statuses.
"""

import pytest
from fastapi.testclient import TestClient

from leadbot.config.prompt_templates import EMAIL_FORMAT_ERROR
from leadbot.src.main import create_app


@pytest.fixture
def client(machine):
    return TestClient(create_app(machine=machine))


def _chat(client, query):
    return client.post("/chat", json={"query": query})


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_end_to_end_conversation(client, store, answerer):
    r = _chat(client, "")
    assert r.status_code == 200
    assert r.json() == {"message": "What is your email address?"}

    r = _chat(client, "not-an-email")
    assert r.json() == {"message": EMAIL_FORMAT_ERROR}
    assert store.docs == {}

    r = _chat(client, "a@b.com")
    assert r.json() == {"message": "What is your name?"}
    (record,) = store.docs.values()
    assert record["email"] == "a@b.com"
    assert "name" not in record

    r = _chat(client, "Ann")
    assert r.json() == {"message": "For what service are you looking?"}

    r = _chat(client, "Plumbing")
    assert r.json() == {"message": "Hi! Ann, How can I assist you?"}

    r = _chat(client, "What areas do you serve?")
    assert r.status_code == 200
    assert r.json() == {"response": "We serve the whole metro area."}
    answerer.query_vector_db.assert_awaited_once_with("What areas do you serve?")


def test_free_chat_without_query_is_400(client, store):
    for query in ("a@b.com", "Ann", "Plumbing"):
        _chat(client, query)

    r = client.post("/chat", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request"}


def test_returning_visitor_skips_name(machine, store):
    first = TestClient(create_app(machine=machine))
    for query in ("a@b.com", "Ann", "Plumbing"):
        _chat(first, query)

    second = TestClient(create_app(machine=machine))
    assert _chat(second, "a@b.com").json() == {"message": "For what service are you looking?"}
    assert _chat(second, "Roofing").json() == {"message": "Hi! Ann, How can I assist you?"}

    assert len(store.docs) == 1
    (record,) = store.docs.values()
    assert sorted(record["services"]) == ["Plumbing", "Roofing"]


def test_store_failure_is_500_and_retry_resumes(client, store):
    _chat(client, "a@b.com")
    store.fail = True

    r = _chat(client, "Ann")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}

    store.fail = False
    assert _chat(client, "Ann").json() == {"message": "For what service are you looking?"}


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'{"query": 42}'])
def test_malformed_body_is_treated_as_empty(client, body):
    r = client.post("/chat", content=body, headers={"content-type": "application/json"})
    assert r.status_code == 200
    assert r.json() == {"message": "What is your email address?"}
