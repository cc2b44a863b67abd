import copy
from unittest.mock import AsyncMock

import pytest

from hydra_panel.core.config import Settings
from hydra_panel.domain.user import CurrentUser
from hydra_panel.repositories.image_repository import KVImageRepository
from hydra_panel.repositories.instance_repository import InstanceRepository
from hydra_panel.services.instance_service import InstanceService


class InMemoryStore:
    """Key-value fake; values are deep-copied to behave like JSON blobs."""

    def __init__(self, data=None):
        self.data = copy.deepcopy(data or {})
        self.set_calls = []

    async def get(self, key):
        return copy.deepcopy(self.data.get(key))

    async def set(self, key, value):
        self.set_calls.append(key)
        self.data[key] = copy.deepcopy(value)

    async def delete(self, key):
        self.data.pop(key, None)

    async def write_batch(self, sets, deletes=()):
        for key, value in sets.items():
            await self.set(key, value)
        for key in deletes:
            await self.delete(key)


NODE = {"id": "node-1", "address": "10.0.0.5", "port": 3002, "apiKey": "node-secret"}

PAPER = "ghcr.io/skyport/paper:java21"
PAPER_17 = "ghcr.io/skyport/paper:java17"

CATALOG = [
    {
        "Name": "Paper",
        "Image": PAPER,
        "Scripts": {"install": [{"uri": "https://example.org/paper.jar", "path": "server.jar"}]},
        "AltImages": [PAPER_17, PAPER],
    },
]


def make_record(**overrides):
    record = {
        "Id": "vol-1",
        "Name": "survival",
        "User": "user-1",
        "Node": dict(NODE),
        "ContainerId": "ctr-1",
        "VolumeId": "vol-1",
        "Memory": 1024,
        "Cpu": 200,
        "Ports": "25565:25565",
        "Primary": "25565",
        "Image": PAPER,
        "AltImages": [PAPER_17, PAPER],
        "imageData": dict(CATALOG[0]),
        "Env": ["EULA=TRUE", "VERSION=1.20.4"],
        "suspended": False,
    }
    record.update(overrides)
    return record


OTHER = make_record(Id="vol-2", Name="creative", ContainerId="ctr-9")


def seed(record=None):
    record = record or make_record()
    return {
        f"{record['Id']}_instance": record,
        f"{record['User']}_instances": [OTHER, record],
        "instances": [OTHER, record],
        "node-1_node": dict(NODE),
        "images": copy.deepcopy(CATALOG),
    }


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite+aiosqlite:///./test.db", SESSION_SECRET="test-secret")


@pytest.fixture
def store():
    return InMemoryStore(seed())


@pytest.fixture
def agent():
    agent = AsyncMock()
    agent.send = AsyncMock(return_value={"containerId": "ctr-2"})
    return agent


@pytest.fixture
def authorizer():
    authorizer = AsyncMock()
    authorizer.is_user_authorized = AsyncMock(return_value=True)
    return authorizer


@pytest.fixture
def audit():
    return AsyncMock()


@pytest.fixture
def user():
    return CurrentUser(user_id="user-1", username="steve", admin=False)


@pytest.fixture
def admin():
    return CurrentUser(user_id="admin-1", username="root", admin=True)


@pytest.fixture
def service(store, agent, authorizer, audit, settings):
    return InstanceService(
        InstanceRepository(store),
        KVImageRepository(store),
        agent,
        authorizer,
        audit,
        settings,
    )


def entry(entries, field, value):
    matches = [e for e in entries if e.get(field) == value]
    assert len(matches) == 1, f"expected one entry with {field}={value}, got {len(matches)}"
    return matches[0]


def assert_views_agree(store, instance_key_id, instance_id, fields):
    """The record, the owner's list entry and the global entry carry the same values."""
    record = store.data[f"{instance_key_id}_instance"]
    user_entry = entry(store.data[f"{record['User']}_instances"], "Id", instance_id)
    global_entry = entry(store.data["instances"], "Id", instance_id)
    for field in fields:
        assert record[field] == user_entry[field] == global_entry[field], field
    return record
