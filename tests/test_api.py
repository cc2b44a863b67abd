import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from hydra_panel.api.deps import get_current_user
from hydra_panel.core.errors import RemoteError
from hydra_panel.domain.user import CurrentUser
from hydra_panel.main import create_app

from conftest import PAPER, PAPER_17


@pytest.fixture
def app(settings, store, agent, authorizer, audit):
    app = create_app(settings, store=store, agent=agent, authorizer=authorizer, audit=audit)
    app.dependency_overrides[get_current_user] = lambda: CurrentUser("user-1", "steve", admin=False)
    return app


@pytest.fixture
def client(app):
    return TestClient(app, follow_redirects=False)


def login_as_admin(app):
    app.dependency_overrides[get_current_user] = lambda: CurrentUser("admin-1", "root", admin=True)


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_unauthenticated_requests_redirect_to_login(app, client):
    app.dependency_overrides.clear()

    response = client.post("/instance/reinstall/vol-1")

    assert response.status_code == 302
    assert response.headers["location"] == "/"


# ---------------------------
# Reinstall
# ---------------------------
def test_reinstall_redirects_to_instance(client, store):
    response = client.post("/instance/reinstall/vol-1")

    assert response.status_code == 302
    assert response.headers["location"] == "/instance/vol-1"
    assert store.data["vol-1_instance"]["ContainerId"] == "ctr-2"


def test_reinstall_unknown_instance_redirects_to_list(client):
    response = client.post("/instance/reinstall/ghost")

    assert response.status_code == 302
    assert response.headers["location"] == "/instances"


def test_reinstall_suspended_redirects_with_error(client, store, agent):
    store.data["vol-1_instance"]["suspended"] = True

    response = client.post("/instance/reinstall/vol-1")

    assert response.status_code == 302
    assert response.headers["location"] == "/instances?err=SUSPENDED"
    agent.send.assert_not_awaited()


def test_reinstall_remote_failure_returns_json_error(client, agent):
    agent.send = AsyncMock(side_effect=RemoteError("Node answered 502", upstream_status=502, upstream_body="bad gateway"))

    response = client.post("/instance/reinstall/vol-1")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "REMOTE_ERROR"
    assert body["details"] == {"status": 502, "body": "bad gateway"}


def test_unauthorized_user_gets_403(client, authorizer):
    authorizer.is_user_authorized = AsyncMock(return_value=False)

    response = client.post("/instances/startup/changevariable/vol-1", params={"variable": "EULA", "value": "TRUE"})

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


# ---------------------------
# Edit
# ---------------------------
def test_edit_requires_admin(client):
    response = client.put("/instances/edit/vol-1", json={"Memory": 2048})

    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden: Admin access required"


def test_edit_as_admin(app, client, agent, store):
    login_as_admin(app)
    agent.send = AsyncMock(return_value={"newContainerId": "ctr-8"})

    response = client.put("/instances/edit/vol-1", json={"Memory": 2048, "Image": PAPER_17})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Instance updated successfully",
        "oldContainerId": "vol-1",
        "newContainerId": "ctr-8",
        "changes": {"Image": "updated", "Memory": "updated", "Cpu": "unchanged"},
    }
    assert "vol-1_instance" not in store.data
    assert store.data["ctr-8_instance"]["Memory"] == 2048


def test_edit_rejects_negative_memory(app, client, agent):
    login_as_admin(app)

    response = client.put("/instances/edit/vol-1", json={"Memory": -5})

    assert response.status_code == 400
    assert response.json()["error"] == "Memory must be a positive number"
    agent.send.assert_not_awaited()


# ---------------------------
# Startup page
# ---------------------------
def test_startup_page(client):
    response = client.get("/instance/vol-1/startup")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "HydraPanel"
    assert body["alt_images"] == ["ghcr.io/skyport/paper:java17", "ghcr.io/skyport/paper:java21"]


def test_startup_page_suspended_redirects(client, store):
    store.data["vol-1_instance"]["suspended"] = True

    response = client.get("/instance/vol-1/startup")

    assert response.status_code == 302
    assert response.headers["location"] == "/instances?err=SUSPENDED"


# ---------------------------
# Variables & rename
# ---------------------------
def test_change_variable(client, store):
    response = client.post("/instances/startup/changevariable/vol-1", params={"variable": "MOTD", "value": "hi"})

    assert response.json() == {"success": True}
    assert store.data["vol-1_instance"]["Env"][-1] == "MOTD=hi"


def test_change_variable_missing_variable(client):
    response = client.post("/instances/startup/changevariable/vol-1")

    assert response.status_code == 400


def test_change_variable_suspended(client, store):
    store.data["vol-1_instance"]["suspended"] = True

    response = client.post("/instances/startup/changevariable/vol-1", params={"variable": "A"})

    assert response.status_code == 403
    assert response.json()["code"] == "SUSPENDED"


def test_rename(client, store):
    response = client.post("/instance/vol-1/change/name/hardcore", json={"newName": "hardcore"})

    assert response.json() == {"success": True}
    assert store.data["vol-1_instance"]["Name"] == "hardcore"


def test_rename_duplicate(client):
    response = client.post("/instance/vol-1/change/name/creative", json={"newName": "creative"})

    assert response.status_code == 400
    assert response.json()["error"] == "Instance name already in use"


# ---------------------------
# Image change
# ---------------------------
def test_change_image_redirects_to_startup(client, store):
    response = client.get(
        "/instances/startup/changeimage/vol-1",
        params={"image": PAPER_17, "user": "user-1"},
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/instance/vol-1/startup"
    assert store.data["vol-1_instance"]["currentimage"] == PAPER_17
    assert store.data["vol-1_instance"]["Image"] == PAPER


def test_change_image_suspended_redirect(client, store):
    store.data["vol-1_instance"]["suspended"] = True

    response = client.get(
        "/instances/startup/changeimage/vol-1",
        params={"image": PAPER_17, "user": "user-1"},
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/instance/vol-1/suspended"
