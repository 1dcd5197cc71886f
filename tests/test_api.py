import io

import openpyxl
import pytest

from app import create_app
from purifier import storage
from purifier.errors import RateLimitExceeded
from purifier.session import SessionController


@pytest.fixture
def purifier_outcome(sample_result):
    return {"value": sample_result}


@pytest.fixture
def client(monkeypatch, clock, purifier_outcome):
    def purifier(raw_text, hints):
        outcome = purifier_outcome["value"]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(storage, "sessions", {})
    monkeypatch.setattr(storage, "last_seen", {})
    monkeypatch.setattr(storage, "clock", clock)
    monkeypatch.setattr(
        storage,
        "controller_factory",
        lambda: SessionController(purifier=purifier, clock=clock, spawn=lambda job: job()),
    )
    app = create_app({"TESTING": True, "SECRET_KEY": "test"})
    with app.test_client() as client:
        yield client


def _upload(client, data, name):
    return client.post(
        "/api/upload",
        data={"file": (io.BytesIO(data), name)},
        content_type="multipart/form-data",
    )


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_index_page_lists_formats(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert ".txt,.md,.docx,.pdf" in body


def test_initial_state_is_idle(client):
    state = client.get("/api/state").get_json()
    assert state["status"] == "idle"
    assert state["result"] is None


def test_upload_then_purify(client, sample_result):
    response = _upload(client, "原始 逐字稿".encode("utf-8"), "talk.txt")
    assert response.status_code == 200
    assert response.get_json()["status"] == "reviewing"

    response = client.post("/api/purify", json={"hints": "AI"})
    assert response.status_code == 200
    state = response.get_json()
    assert state["status"] == "reviewing"
    assert state["hints"] == "AI"
    assert state["editedText"] == sample_result.purified_text
    assert 'class="correction"' in state["highlightedHtml"]


def test_rejected_upload_keeps_previous_document(client):
    _upload(client, b"first", "first.txt")

    response = _upload(client, b"a,b", "data.csv")
    assert response.status_code == 400
    assert ".docx" in response.get_json()["error"]

    state = client.get("/api/state").get_json()
    assert state["originalText"] == "first"
    assert state["fileName"] == "first.txt"


def test_upload_without_file(client):
    assert client.post("/api/upload", data={}).status_code == 400


def test_purify_without_document_is_refused(client):
    assert client.post("/api/purify").status_code == 409


def test_rate_limit_reports_cooldown(client, purifier_outcome):
    purifier_outcome["value"] = RateLimitExceeded("quota")
    _upload(client, b"raw", "talk.txt")

    state = client.post("/api/purify").get_json()
    assert state["cooldownSeconds"] == 20
    assert state["error"]

    response = client.post("/api/purify")
    assert response.status_code == 409
    assert response.get_json()["cooldownSeconds"] == 20

    state = client.post("/api/dismiss-error").get_json()
    assert state["error"] is None


def test_edit_and_download(client):
    _upload(client, b"raw", "talk.txt")
    client.post("/api/purify")

    response = client.post("/api/edit", json={"target": "purified", "text": "final words"})
    assert response.get_json()["editedText"] == "final words"

    response = client.get("/api/download")
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "final words"
    assert "purified_talk.txt" in response.headers["Content-Disposition"]


def test_edit_rejects_bad_payload(client):
    assert client.post("/api/edit", json={"target": "purified"}).status_code == 400
    assert client.post("/api/edit", json={"target": "other", "text": "x"}).status_code == 400


def test_download_empty_session(client):
    assert client.get("/api/download").status_code == 404


def test_reset_requires_two_posts(client):
    _upload(client, b"raw", "talk.txt")

    first = client.post("/api/reset").get_json()
    assert first["cleared"] is False
    assert first["confirmReset"] is True
    assert first["originalText"] == "raw"

    second = client.post("/api/reset").get_json()
    assert second["cleared"] is True
    assert second["status"] == "idle"
    assert second["originalText"] == ""


def test_corrections_export_formats(client, sample_result):
    assert client.get("/api/corrections").status_code == 404

    _upload(client, b"raw", "talk.txt")
    client.post("/api/purify")

    data = client.get("/api/corrections").get_json()
    assert data["corrections"][0]["corrected"] == sample_result.corrections[0].corrected
    assert data["uncertainParts"] == list(sample_result.uncertain_parts)

    response = client.get("/api/corrections?format=csv")
    assert response.mimetype == "text/csv"
    assert "corrections_talk.csv" in response.headers["Content-Disposition"]
    assert response.get_data().decode("utf-8-sig").splitlines()[0] == "Original,Corrected,Reason"

    response = client.get("/api/corrections?format=xlsx")
    workbook = openpyxl.load_workbook(io.BytesIO(response.get_data()))
    rows = list(workbook.active.iter_rows(values_only=True))
    assert rows[0] == ("Original", "Corrected", "Reason")
    assert len(rows) == 1 + len(sample_result.corrections)


def test_sessions_are_isolated(client):
    _upload(client, b"mine", "mine.txt")
    app = client.application
    with app.test_client() as other:
        assert other.get("/api/state").get_json()["status"] == "idle"
    assert client.get("/api/state").get_json()["originalText"] == "mine"


def test_confirmed_reset_drops_stored_session(client):
    _upload(client, b"raw", "talk.txt")
    assert len(storage.sessions) == 1

    client.post("/api/reset")
    assert len(storage.sessions) == 1
    client.post("/api/reset")
    assert storage.sessions == {}

    assert client.get("/api/state").get_json()["status"] == "idle"
    assert len(storage.sessions) == 1


def test_idle_sessions_are_evicted(client, clock):
    app = client.application
    for _ in range(5):
        with app.test_client() as anonymous:
            anonymous.get("/api/state")
    _upload(client, b"mine", "mine.txt")
    assert len(storage.sessions) == 6

    clock.advance(storage.SESSION_IDLE_TTL - 1)
    client.get("/api/state")
    assert len(storage.sessions) == 6

    clock.advance(2)
    state = client.get("/api/state").get_json()
    assert state["originalText"] == "mine"
    assert len(storage.sessions) == 1


def test_loading_session_survives_idle_sweep(monkeypatch, clock):
    monkeypatch.setattr(storage, "sessions", {})
    monkeypatch.setattr(storage, "last_seen", {})
    monkeypatch.setattr(storage, "clock", clock)
    monkeypatch.setattr(
        storage,
        "controller_factory",
        lambda: SessionController(purifier=lambda raw, hints: None, clock=clock, spawn=lambda job: None),
    )
    busy_id, busy = storage.get_or_create_session(None)
    busy.load_file(b"raw", "talk.txt")
    assert busy.start_purification()

    clock.advance(storage.SESSION_IDLE_TTL + 1)
    storage.get_or_create_session(None)

    assert busy_id in storage.sessions
