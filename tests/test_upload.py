import builtins

import httpx
import pytest

from gap_inspector.routes import upload as upload_route
from gap_inspector.utils import uploads
from tests.stubs import API_KEY, FLOW_ID

UPLOAD_PATH = f"/api/v1/files/upload/{FLOW_ID}"


@pytest.fixture
def discards(monkeypatch):
    """Count temp-file deletions while still deleting for real"""
    calls = []

    def spy(path):
        calls.append(path)
        return uploads.discard_upload(path)

    monkeypatch.setattr(upload_route, "discard_upload", spy)
    return calls


def post_file(client, name="requirements.md", content=b"# Requirements\n- Login", mime="text/markdown", **kwargs):
    return client.post("/api/upload-file", files={"file": (name, content, mime)}, **kwargs)


def test_upload_relays_file_and_returns_handle(client, upstream, settings, discards):
    upstream.on("POST", UPLOAD_PATH, httpx.Response(201, json={"flowId": FLOW_ID, "file_path": f"{FLOW_ID}/requirements.md"}))

    response = post_file(client)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["file_path"] == f"{FLOW_ID}/requirements.md"
    assert body["original_name"] == "requirements.md"

    assert len(upstream.calls) == 1
    sent = upstream.calls[0]
    assert sent.headers["x-api-key"] == API_KEY
    assert b'filename="requirements.md"' in sent.content
    assert b"# Requirements" in sent.content

    assert len(discards) == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_png_is_rejected_before_upstream(client, upstream, settings, discards):
    response = post_file(client, name="diagram.png", content=b"\x89PNG", mime="image/png")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid file type"
    assert upstream.calls == []
    assert len(discards) == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_oversized_file_is_rejected(make_client, upstream, settings, discards):
    client = make_client(settings, max_upload_bytes=16)

    response = post_file(client, content=b"x" * 64, mime="text/plain")

    assert response.status_code == 400
    assert response.json()["error"] == "File too large"
    assert upstream.calls == []
    assert len(discards) == 1


def test_missing_file(client, upstream, discards):
    response = client.post("/api/upload-file", data={"other": "field"})

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}
    assert upstream.calls == []
    assert discards == []


def test_missing_credential(make_client, upstream, settings, discards):
    client = make_client(settings, api_key=None)

    response = post_file(client)

    assert response.status_code == 401
    assert response.json() == {"error": "API key required"}
    assert upstream.calls == []
    assert len(discards) == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_header_credential_is_forwarded(make_client, upstream, settings, discards):
    upstream.on("POST", UPLOAD_PATH, httpx.Response(200, json={"file_path": "p"}))
    client = make_client(settings, api_key=None)

    response = post_file(client, headers={"x-api-key": "caller-key"})

    assert response.status_code == 200
    assert upstream.calls[0].headers["x-api-key"] == "caller-key"


def test_upstream_failure_passes_details_through(client, upstream, settings, discards):
    upstream.on("POST", UPLOAD_PATH, httpx.Response(500, json={"detail": "storage full"}))

    response = post_file(client)

    assert response.status_code == 500
    assert response.json() == {"error": "File upload failed", "details": {"detail": "storage full"}}
    assert len(discards) == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_upstream_without_file_path_is_a_failure(client, upstream, discards):
    upstream.on("POST", UPLOAD_PATH, httpx.Response(200, json={"flowId": FLOW_ID}))

    response = post_file(client)

    assert response.status_code == 500
    assert response.json()["error"] == "File upload failed"
    assert len(discards) == 1


def test_network_error_is_a_failure(client, upstream, discards):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.on("POST", UPLOAD_PATH, refuse)

    response = post_file(client)

    assert response.status_code == 500
    assert "connection refused" in response.json()["details"]
    assert len(discards) == 1


def test_failed_local_write_is_cleaned_up(client, upstream, settings, discards, monkeypatch):
    class FullDisk:
        def __init__(self, path, mode):
            self._fh = builtins.open(path, mode)

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self._fh.close()

        def write(self, chunk):
            self._fh.write(chunk[:4])
            raise OSError(28, "No space left on device")

    monkeypatch.setattr(uploads, "open", FullDisk, raising=False)

    response = post_file(client)

    assert response.status_code == 500
    assert response.json()["error"] == "File upload failed"
    assert "No space left on device" in response.json()["details"]
    assert upstream.calls == []
    assert len(discards) == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_discard_logs_missing_file(tmp_path, caplog):
    assert uploads.discard_upload(tmp_path / "gone.txt") is False
    assert "already gone" in caplog.text


def test_temp_name_keeps_basename():
    name = uploads.temp_name("../../etc/spec sheet.pdf")

    assert name.endswith("-spec_sheet.pdf")
    assert "/" not in name
