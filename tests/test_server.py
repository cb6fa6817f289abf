"""Tests for the HTTP sidecar."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json
import threading
import urllib.error
import urllib.request

import pytest

from report_guard import ReportPipeline
from report_guard.server import GuardServer


class EditingProvider:
    name = "editing"

    def rewrite(self, redacted_text, options):
        if "explode" in redacted_text:
            raise RuntimeError("upstream 503")
        return redacted_text.replace("5 mm", "8 mm")


@pytest.fixture
def base_url():
    server = GuardServer(("127.0.0.1", 0), ReportPipeline.create(provider=EditingProvider()))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def _request(url, body=None, raw=None):
    data = raw if raw is not None else (json.dumps(body).encode("utf-8") if body is not None else None)
    req = urllib.request.Request(url, data=data, headers={"Content-Type": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def test_health(base_url):
    status, data = _request(f"{base_url}/health")
    assert status == 200
    assert data["status"] == "ok"
    assert data["provider"] == "editing"
    assert data["passes"] == ["date", "numeric_id", "name"]


def test_process_accepted(base_url):
    status, data = _request(f"{base_url}/process", {"text": "Frau Berg, Herd links", "options": {"mode": "A"}})
    assert status == 200
    assert data == {"blocked": False, "answer": "Frau Berg, Herd links"}


def test_process_blocked(base_url):
    status, data = _request(f"{base_url}/process", {
        "text": "Frau Berg, Herd links 5 mm",
        "options": {"mode": "A", "stil": "knapp", "ansprache": "sie"},
    })
    assert status == 200
    assert data["blocked"] is True
    assert data["diff"]["addedNumbers"] == ["8"]
    assert data["suggestion"] == "Frau Berg, Herd links 8 mm"
    assert set(data) == {"blocked", "reasons", "diff", "message", "suggestion"}


def test_process_override(base_url):
    status, data = _request(f"{base_url}/process", {
        "text": "Frau Berg, Herd links 5 mm",
        "allowContentChanges": True,
    })
    assert status == 200
    assert data == {"blocked": False, "answer": "Frau Berg, Herd links 8 mm"}


def test_process_bad_request(base_url):
    status, data = _request(f"{base_url}/process", {"text": ""})
    assert status == 400
    assert data["error"] == "Bad Request"


def test_invalid_json(base_url):
    status, _ = _request(f"{base_url}/process", raw=b"{nope")
    assert status == 400


def test_provider_failure(base_url):
    status, data = _request(f"{base_url}/process", {"text": "explode"})
    assert status == 502
    assert data["retryable"] is True


def test_redact_then_reinsert(base_url):
    text = "Patient Max Mustermann, Fall 123456789"
    _, redacted = _request(f"{base_url}/redact", {"text": text})
    assert "Mustermann" not in redacted["text"]
    _, restored = _request(f"{base_url}/reinsert", redacted)
    assert restored == {"text": text}


def test_guard(base_url):
    status, data = _request(f"{base_url}/guard", {
        "original": "Unauffälliger Befund",
        "candidate": "Unauffälliger Befund, Verdacht auf Tumor",
    })
    assert status == 200
    assert data["diff"]["newMedicalKeywords"] == ["tumor"]


def test_unknown_path(base_url):
    status, _ = _request(f"{base_url}/nope", {})
    assert status == 404
