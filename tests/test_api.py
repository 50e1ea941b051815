import pytest
from fastapi.testclient import TestClient

from helpers import BUNDLE, EXAM, EXPANSION, GRADING, as_reply, busy
from studyai.ai_engine import get_engine
from studyai.api.v1.endpoints.sessions import get_store
from studyai.main import app
from studyai.session import SessionStore


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_store] = SessionStore
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sessions_client(engine):
    sessions = SessionStore()
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_store] = lambda: sessions
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "operational"


# ── /generate ────────────────────────────────────────────────────────────────

def test_generate_bundle(client, provider):
    provider.replies = [as_reply(BUNDLE, fenced=True)]

    r = client.post("/api/v1/generate", json={"topic": "Photosynthesis", "settings": {"difficulty": "Hard"}})

    assert r.status_code == 200
    data = r.json()
    assert data["title"] == "Photosynthesis"
    assert data["keyPoints"] == BUNDLE["keyPoints"]
    assert data["mindMapEdges"][0] == {"source": "Photosynthesis", "target": "Light Reactions"}
    assert data["quiz"][0]["correct"] == "Chloroplast"
    assert data["stats"]["timeSaved"] == "20 min"


def test_generate_expand(client, provider):
    provider.replies = [as_reply(EXPANSION)]

    r = client.post("/api/v1/generate", json={
        "action": "expand", "nodeLabel": "Calvin Cycle", "context": "Title: Photosynthesis",
    })

    assert r.status_code == 200
    assert len(r.json()["newEdges"]) == 2


def test_generate_exam_and_grade(client, provider):
    provider.replies = [as_reply(EXAM), as_reply(GRADING)]

    exam = client.post("/api/v1/generate", json={"action": "exam", "context": "Title: Photosynthesis"})
    assert exam.status_code == 200
    assert [q["id"] for q in exam.json()["exam"]] == [1, 2, 3, 4, 5]

    answers = [{"questionId": 1, "question": "Pigment?", "answer": "Chlorophyll"}]
    graded = client.post("/api/v1/generate", json={
        "action": "grade", "context": "Title: Photosynthesis", "userAnswers": answers,
    })
    assert graded.status_code == 200
    assert graded.json()["score"] == "60/100"
    assert graded.json()["corrections"][0]["questionId"] == 1


def test_generate_empty_topic_is_400(client, provider):
    r = client.post("/api/v1/generate", json={"topic": ""})
    assert r.status_code == 400
    assert "error" in r.json()
    assert provider.calls == []


def test_generate_invalid_youtube_link_is_400(client):
    r = client.post("/api/v1/generate", json={"topic": "https://example.com", "type": "youtube"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid YouTube Link"}


def test_unknown_action_is_400(client):
    r = client.post("/api/v1/generate", json={"action": "summarize", "topic": "x"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request."


def test_missing_credentials_is_401(client, provider):
    provider.credentials = False
    r = client.post("/api/v1/generate", json={"topic": "Photosynthesis"})
    assert r.status_code == 401
    assert provider.calls == []


def test_busy_provider_is_503(client, provider, sleep):
    provider.replies = [busy(), busy(), busy()]
    r = client.post("/api/v1/generate", json={"topic": "Photosynthesis"})
    assert r.status_code == 503
    assert sleep.delays == [2.5, 2.5]


def test_malformed_reply_is_500(client, provider):
    provider.replies = ['{"title": "only a title"}']
    r = client.post("/api/v1/generate", json={"topic": "Photosynthesis"})
    assert r.status_code == 500
    assert "error" in r.json()


# ── /chat and /mindmap/layout ────────────────────────────────────────────────

def test_chat(client, provider):
    provider.replies = ["  ATP is the energy currency.  "]
    r = client.post("/api/v1/chat", json={
        "messages": [{"role": "user", "content": "What is ATP?"}],
        "context": "Title: Cells",
    })
    assert r.status_code == 200
    assert r.json() == {"reply": "ATP is the energy currency."}
    assert provider.calls[0]["json_mode"] is False


def test_mindmap_layout(client):
    r = client.post("/api/v1/mindmap/layout", json={
        "edges": BUNDLE["mindMapEdges"],
        "newEdges": EXPANSION["newEdges"],
    })
    assert r.status_code == 200
    data = r.json()
    assert [n["id"] for n in data["nodes"]] == [
        "photosynthesis", "light_reactions", "calvin_cycle", "rubisco", "g3p",
    ]
    assert data["nodes"][0]["isRoot"] is True
    assert data["edges"][0] == {
        "id": "e0", "source": "photosynthesis", "target": "light_reactions",
        "type": "smoothstep", "animated": True,
    }


def test_mindmap_layout_without_edges_is_400(client):
    r = client.post("/api/v1/mindmap/layout", json={"edges": []})
    assert r.status_code == 400


def test_mindmap_layout_blank_label_is_400(client):
    r = client.post("/api/v1/mindmap/layout", json={"edges": [{"source": " ", "target": "x"}]})
    assert r.status_code == 400


# ── /sessions ────────────────────────────────────────────────────────────────

def test_session_flow(sessions_client, provider):
    provider.replies = [as_reply(BUNDLE), as_reply(EXPANSION), as_reply(EXAM), as_reply(GRADING), "Sure."]
    client = sessions_client

    created = client.post("/api/v1/sessions")
    assert created.status_code == 201
    sid = created.json()["id"]
    assert created.json()["state"] == "idle"

    ready = client.post(f"/api/v1/sessions/{sid}/generate", json={"topic": "Photosynthesis"})
    assert ready.json()["state"] == "ready"
    assert ready.json()["inFlight"] is False

    expanded = client.post(f"/api/v1/sessions/{sid}/expand", json={"nodeLabel": "Calvin Cycle"})
    assert len(expanded.json()["graph"]["nodes"]) == 5

    exam = client.post(f"/api/v1/sessions/{sid}/exam")
    assert exam.json()["state"] == "exam_active"

    answered = client.put(f"/api/v1/sessions/{sid}/exam/answers/1", json={"answer": "Chlorophyll"})
    assert answered.json()["exam"]["answers"] == {"1": "Chlorophyll"}

    graded = client.post(f"/api/v1/sessions/{sid}/exam/submit")
    assert graded.json()["state"] == "graded"
    assert graded.json()["exam"]["grading"]["score"] == "60/100"

    retake = client.post(f"/api/v1/sessions/{sid}/exam/retake", json={"regenerate": False})
    assert retake.json()["state"] == "exam_active"
    assert retake.json()["exam"]["grading"] is None

    client.post(f"/api/v1/sessions/{sid}/chat/open")
    reply = client.post(f"/api/v1/sessions/{sid}/chat", json={"message": "Explain RuBisCO"})
    assert reply.json() == {"reply": "Sure."}

    reset = client.post(f"/api/v1/sessions/{sid}/reset")
    assert reset.json()["state"] == "idle"
    assert reset.json()["bundle"] is None

    assert client.delete(f"/api/v1/sessions/{sid}").status_code == 204
    assert client.get(f"/api/v1/sessions/{sid}").status_code == 404


def test_unknown_session_is_404(sessions_client):
    r = sessions_client.get("/api/v1/sessions/nope")
    assert r.status_code == 404
    assert "error" in r.json()


def test_exam_before_bundle_is_409(sessions_client):
    sid = sessions_client.post("/api/v1/sessions").json()["id"]
    r = sessions_client.post(f"/api/v1/sessions/{sid}/exam")
    assert r.status_code == 409
