import base64
import json

import httpx
import pytest

from hydra_panel.core.errors import RemoteError
from hydra_panel.domain.agent import AgentRequest
from hydra_panel.services.agent_client import HttpNodeAgent


def make_request(**overrides):
    values = dict(
        method="POST",
        url="http://10.0.0.5:3002/instances/reinstall/ctr-1",
        auth=("Skyport", "node-secret"),
        json={"Image": "ghcr.io/skyport/paper:java21"},
        headers={"Content-Type": "application/json"},
        timeout=5.0,
    )
    values.update(overrides)
    return AgentRequest(**values)


def agent_with(handler):
    return HttpNodeAgent(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_send_posts_json_with_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"containerId": "ctr-2"})

    agent = agent_with(handler)
    body = await agent.send(make_request())
    await agent.close()

    assert body == {"containerId": "ctr-2"}
    assert seen["method"] == "POST"
    assert seen["url"] == "http://10.0.0.5:3002/instances/reinstall/ctr-1"
    assert seen["auth"] == "Basic " + base64.b64encode(b"Skyport:node-secret").decode()
    assert seen["body"] == {"Image": "ghcr.io/skyport/paper:java21"}


@pytest.mark.asyncio
async def test_error_status_surfaces_upstream_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"message": "Container is busy"})

    agent = agent_with(handler)
    with pytest.raises(RemoteError) as exc:
        await agent.send(make_request())

    assert exc.value.message == "Container is busy"
    assert exc.value.upstream_status == 409
    assert exc.value.details == {"status": 409, "body": {"message": "Container is busy"}}


@pytest.mark.asyncio
async def test_non_json_success_is_invalid():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="OK")

    agent = agent_with(handler)
    with pytest.raises(RemoteError, match="Invalid response"):
        await agent.send(make_request())


@pytest.mark.asyncio
async def test_timeout_becomes_remote_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    agent = agent_with(handler)
    with pytest.raises(RemoteError, match="No response received from node"):
        await agent.send(make_request())


@pytest.mark.asyncio
async def test_connection_error_becomes_remote_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    agent = agent_with(handler)
    with pytest.raises(RemoteError) as exc:
        await agent.send(make_request())

    assert exc.value.upstream_status is None


@pytest.mark.asyncio
async def test_close_recreates_client_on_next_send():
    agent = HttpNodeAgent()
    client = agent._get_client()

    await agent.close()

    assert client.is_closed
    assert agent._client is None
