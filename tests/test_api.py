from __future__ import annotations

import base64
import os
import time

import pytest
from fastapi.testclient import TestClient

from conftest import JPEG_BYTES, VIDEO_BYTES, failed, finished, pending
from veo_motion import main
from veo_motion.main import create_app
from veo_motion.services.credentials import CredentialGate, EnvironmentCredentialHost
from veo_motion.services.workflow import GenerationWorkflow

DATA_URL = "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode()


def _wait_for(client: TestClient, *statuses: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        state = client.get("/api/generation").json()
        if state["status"] in statuses or time.monotonic() > deadline:
            return state
        time.sleep(0.01)


@pytest.fixture
def client_for(make_workflow):
    def _client(script, **kwargs):
        workflow, backend, _ = make_workflow(script, **kwargs)
        return TestClient(create_app(workflow)), workflow, backend

    return _client


def test_full_generation_over_http(client_for) -> None:
    client, _, backend = client_for([pending(), finished()])
    with client:
        resp = client.post("/api/generation/image", json={"image_base64": DATA_URL})
        assert resp.status_code == 200
        assert resp.json()["image_mime_type"] == "image/jpeg"

        resp = client.post("/api/generation/start", json={"prompt": "Gentle breeze", "aspect_ratio": "9:16"})
        assert resp.status_code == 202
        assert resp.json()["status"] == "generating"

        state = _wait_for(client, "complete", "error")
        assert state["status"] == "complete"
        assert state["video_mime_type"] == "video/mp4"

        video = client.get("/api/generation/video")
        assert video.status_code == 200
        assert video.content == VIDEO_BYTES
        assert "veo-motion.mp4" in video.headers["content-disposition"]

        resp = client.post("/api/generation/reset")
        assert resp.json()["status"] == "idle"
        assert resp.json()["has_image"] is False

    assert backend.submissions[0]["prompt"] == "Gentle breeze. Create a smooth, seamless looping video."
    assert backend.submissions[0]["aspect_ratio"] == "9:16"


def test_raw_base64_requires_mime_type(client_for) -> None:
    client, _, _ = client_for([finished()])
    raw = base64.b64encode(JPEG_BYTES).decode()
    with client:
        assert client.post("/api/generation/image", json={"image_base64": raw}).status_code == 422
        resp = client.post("/api/generation/image", json={"image_base64": raw, "mime_type": "image/png"})
        assert resp.status_code == 200


def test_invalid_image_payloads_rejected(client_for) -> None:
    client, _, _ = client_for([finished()])
    with client:
        bad_b64 = client.post("/api/generation/image", json={"image_base64": "%%%", "mime_type": "image/png"})
        assert bad_b64.status_code == 422
        not_image = client.post(
            "/api/generation/image",
            json={"image_base64": base64.b64encode(b"%PDF").decode(), "mime_type": "application/pdf"},
        )
        assert not_image.status_code == 422


def test_start_without_image_conflicts(client_for) -> None:
    client, _, _ = client_for([finished()])
    with client:
        assert client.post("/api/generation/start").status_code == 409


def test_start_without_credential_is_forbidden(client_for, host) -> None:
    client, _, backend = client_for([finished()])
    host.key = None
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        resp = client.post("/api/generation/start")
        assert resp.status_code == 403
        assert client.get("/api/generation").json()["status"] == "idle"
    assert backend.submissions == []


def test_error_then_acknowledge(client_for) -> None:
    client, _, _ = client_for([failed("Quota exceeded")])
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        client.post("/api/generation/start", json={"prompt": "Waves"})

        state = _wait_for(client, "error", "complete")
        assert state["status"] == "error"
        assert state["error"] == "Quota exceeded"
        assert client.get("/api/generation/video").status_code == 404

        state = client.post("/api/generation/acknowledge").json()
        assert state["status"] == "idle"
        assert state["prompt"] == "Waves" and state["has_image"] is True


def test_cancel_over_http(client_for) -> None:
    client, _, _ = client_for([pending()], poll_interval=0.5)
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        client.post("/api/generation/start")

        resp = client.post("/api/generation/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "idle"
        assert resp.json()["notice"] == "Generation cancelled."

        assert client.post("/api/generation/cancel").status_code == 409


def test_reset_while_generating_conflicts(client_for) -> None:
    client, workflow, _ = client_for([pending()], poll_interval=0.5)
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        client.post("/api/generation/start")
        assert client.post("/api/generation/reset").status_code == 409
        assert client.post("/api/generation/start").status_code == 409
        client.post("/api/generation/cancel")


def test_credential_endpoints_in_plain_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GEMINI_API_KEY", "")
    workflow = GenerationWorkflow(CredentialGate(EnvironmentCredentialHost()))

    with TestClient(create_app(workflow)) as client:
        assert client.get("/api/credential").json() == {"has_credential": False, "notice": None}

        resp = client.post("/api/credential/request").json()
        assert resp["has_credential"] is False
        assert resp["notice"] == "Credential selection is not supported in this environment."

        monkeypatch.setenv("GEMINI_API_KEY", "live-key")
        assert client.get("/api/credential").json()["has_credential"] is True
        assert client.get("/health").json()["credential_configured"] is True


def test_websocket_relays_transitions(client_for) -> None:
    client, _, _ = client_for([pending(), finished()])
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        with client.websocket_connect("/ws/generation") as ws:
            first = ws.receive_json()
            assert first["type"] == "generation_update"
            assert first["state"]["status"] == "idle"

            ws.send_text("ping")
            assert ws.receive_json() == {"type": "pong"}

            client.post("/api/generation/start")
            statuses = []
            while not statuses or statuses[-1] not in ("complete", "error"):
                statuses.append(ws.receive_json()["state"]["status"])
            assert statuses == ["generating", "complete"]


def test_discarded_videos_are_deleted_from_media_volume(client_for) -> None:
    client, workflow, _ = client_for([finished()])
    with client:
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        client.post("/api/generation/start")
        assert _wait_for(client, "complete", "error")["status"] == "complete"
        first = workflow.artifact.path
        assert os.path.exists(first)

        # picking a new image drops the previous result
        client.post("/api/generation/image", json={"image_base64": DATA_URL})
        assert not os.path.exists(first)

        client.post("/api/generation/start")
        assert _wait_for(client, "complete", "error")["status"] == "complete"
        second = workflow.artifact.path
        assert os.path.exists(second)

        client.post("/api/generation/reset")
        assert not os.path.exists(second)
        assert workflow.artifact is None


def test_serve_runs_app_with_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main.serve()

    ((app, kwargs),) = calls
    assert app is main.app
    assert kwargs == {"host": main.settings.HOST, "port": main.settings.PORT}
