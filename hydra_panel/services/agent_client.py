import logging
from typing import Any, Dict, Optional

import httpx

from hydra_panel.core.errors import RemoteError
from hydra_panel.domain.agent import AgentRequest
from hydra_panel.domain.ports import NodeAgent

logger = logging.getLogger(__name__)


class HttpNodeAgent(NodeAgent):
    """Node agent client over HTTP.

    One ``httpx.AsyncClient`` is shared by all nodes; each request carries its
    own absolute URL, basic auth and timeout.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, default_timeout: float = 30.0):
        self._client = client
        self._default_timeout = default_timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._default_timeout)
        return self._client

    async def send(self, request: AgentRequest) -> Dict[str, Any]:
        client = self._get_client()
        timeout = request.timeout if request.timeout is not None else self._default_timeout
        try:
            response = await client.request(
                request.method,
                request.url,
                json=request.json,
                headers=request.headers,
                auth=httpx.BasicAuth(*request.auth),
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Node agent timed out after %ss: %s %s", timeout, request.method, request.url)
            raise RemoteError("No response received from node") from exc
        except httpx.HTTPError as exc:
            logger.warning("Node agent unreachable: %s %s: %s", request.method, request.url, exc)
            raise RemoteError(f"Node unreachable: {exc}") from exc

        body = self._decode(response)
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise RemoteError(
                message or f"Node answered {response.status_code}",
                upstream_status=response.status_code,
                upstream_body=body,
            )
        if not isinstance(body, dict):
            raise RemoteError(
                "Invalid response from node",
                upstream_status=response.status_code,
                upstream_body=body,
            )
        return body

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
