"""Tests for the web API."""

import shutil
import zipfile
import io
from pathlib import Path

import pytest

# Only run if fastapi/httpx are installed
try:
    from fastapi.testclient import TestClient
    from module_pack.web import create_app
    from module_pack.web.state import state
    HAS_WEB = True
except ImportError:
    HAS_WEB = False

pytestmark = pytest.mark.skipif(not HAS_WEB, reason="web dependencies not installed")

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def project(tmp_path):
    dest = tmp_path / "api"
    shutil.copytree(FIXTURES / "fastapi_project", dest)
    return dest


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("MODULE_PACK_ALLOWED_ROOT", str(tmp_path))
    monkeypatch.setenv("MODULE_PACK_CONFIG_DIR", str(tmp_path / "config"))
    state.clear()
    app = create_app()
    return TestClient(app)


def test_modules(client, project):
    res = client.post("/api/modules", json={"path": str(project)})
    assert res.status_code == 200
    data = res.json()
    assert data["count"] == 4
    assert [m["name"] for m in data["modules"]] == ["auth", "billing", "reports", "users"]


def test_nonexistent_path(client, tmp_path):
    res = client.post("/api/modules", json={"path": str(tmp_path / "missing")})
    assert res.status_code == 404


def test_path_traversal_blocked(client):
    res = client.post("/api/modules", json={"path": "/etc"})
    assert res.status_code == 403


def test_unknown_tech_stack(client, project):
    res = client.post("/api/modules", json={"path": str(project), "tech_stack": "cobol"})
    assert res.status_code == 400


def test_missing_modules_dir(client, project):
    res = client.post("/api/modules", json={"path": str(project), "tech_stack": "vue3"})
    assert res.status_code == 404


def test_dependencies(client, project):
    res = client.post("/api/dependencies", json={"path": str(project)})
    assert res.status_code == 200
    edges = {(e["source"], e["target"]) for e in res.json()["edges"]}
    assert ("modules/auth/routes.py", "modules/users/models.py") in edges


def test_dependencies_by_module(client, project):
    res = client.post("/api/dependencies", json={"path": str(project), "by_module": True})
    assert res.status_code == 200
    data = res.json()
    assert data["edges"]["billing"] == ["auth"]
    assert data["cycles"] == []


def test_closure(client, project):
    res = client.post("/api/closure", json={"path": str(project), "modules": ["billing"]})
    assert res.status_code == 200
    data = res.json()
    assert data["modules"] == ["billing", "auth", "users"]
    assert data["auto_added"] == ["auth", "users"]


def test_build_and_download(client, project):
    res = client.post("/api/build", json={"path": str(project), "label": "acme", "modules": ["billing"]})
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "done"
    assert data["modules"] == ["billing", "auth", "users"]
    build_id = data["build_id"]

    res = client.get(f"/api/builds/{build_id}")
    assert res.status_code == 200
    assert res.json()["label"] == "acme"

    res = client.get("/api/builds")
    assert [b["build_id"] for b in res.json()["builds"]] == [build_id]

    res = client.get(f"/api/builds/{build_id}/download")
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(res.content)) as zf:
        assert "modules/billing/routes.py" in zf.namelist()


def test_build_validation_error(client, project):
    res = client.post("/api/build", json={"path": str(project), "label": " ", "modules": []})
    assert res.status_code == 400
    assert "label" in res.json()["detail"]


def test_build_failure_recorded(client, project):
    res = client.post("/api/build", json={"path": str(project), "label": "x", "modules": ["ghost"]})
    assert res.status_code == 422
    builds = client.get("/api/builds").json()["builds"]
    assert builds[0]["status"] == "failed"
    assert "ghost" in builds[0]["error"]


def test_unexpected_build_error_marks_session_failed(client, project, monkeypatch):
    def broken(request, progress=None):
        raise RuntimeError("disk exploded")

    monkeypatch.setattr("module_pack.web.api.run_build", broken)
    res = client.post("/api/build", json={"path": str(project), "label": "x", "modules": ["auth"]})
    assert res.status_code == 500
    builds = client.get("/api/builds").json()["builds"]
    assert builds[0]["status"] == "failed"
    assert builds[0]["error"] == "disk exploded"

    with client.websocket_connect("/api/ws/build") as ws:
        ws.send_json({"action": "build", "path": str(project), "label": "x", "modules": ["auth"]})
        msg = ws.receive_json()
    assert msg["error"] == "Build failed: disk exploded"
    assert client.get(f"/api/builds/{msg['build_id']}").json()["status"] == "failed"


def test_build_not_found(client):
    assert client.get("/api/builds/nope").status_code == 404
    assert client.get("/api/builds/nope/download").status_code == 404


def test_templates(client):
    res = client.get("/api/templates")
    assert res.status_code == 200
    assert res.json() == {"tech_stacks": ["fastapi", "vue3"], "templates": []}

    template = {
        "name": "django",
        "modules_dir": "apps",
        "entry_file": "urls.py",
        "import_pattern": r"include\('{modules_dir}\.(\w+)",
    }
    assert client.post("/api/templates", json=template).status_code == 200
    data = client.get("/api/templates").json()
    assert data["tech_stacks"] == ["fastapi", "vue3", "django"]
    assert data["templates"][0]["modules_dir"] == "apps"

    assert client.delete("/api/templates/django").status_code == 200
    assert client.delete("/api/templates/django").status_code == 404


def test_template_builtin_name_rejected(client):
    res = client.post("/api/templates", json={"name": "FastAPI", "modules_dir": "x"})
    assert res.status_code == 400


def test_template_bad_pattern_rejected(client):
    res = client.post("/api/templates", json={
        "name": "bad", "modules_dir": "x", "entry_file": "main", "import_pattern": "((",
    })
    assert res.status_code == 400


def test_websocket_build(client, project):
    with client.websocket_connect("/api/ws/build") as ws:
        ws.send_json({"action": "build", "path": str(project), "label": "acme", "modules": ["auth"]})
        stages = []
        while True:
            msg = ws.receive_json()
            if "stage" in msg:
                stages.append(msg)
                continue
            break

    assert msg["done"] is True
    assert msg["modules"] == ["auth", "users"]
    assert stages[0]["current"] == 1
    assert all(s["total"] == 6 for s in stages)


def test_websocket_errors(client, project):
    with client.websocket_connect("/api/ws/build") as ws:
        ws.send_json({"action": "explode"})
        assert "error" in ws.receive_json()

        ws.send_json({"action": "build", "path": str(project)})
        assert "error" in ws.receive_json()

        ws.send_json({"action": "build", "path": str(project), "label": "a", "modules": ["ghost"]})
        while True:
            msg = ws.receive_json()
            if "stage" not in msg:
                break
        assert "ghost" in msg["error"]
        assert msg["build_id"]
