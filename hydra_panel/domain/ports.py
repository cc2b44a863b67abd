from typing import Any, Dict, Iterable, Protocol

from hydra_panel.domain.agent import AgentRequest


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any | None:
        """Return the JSON value stored under key, or None."""
        ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def write_batch(
        self,
        sets: Dict[str, Any],
        deletes: Iterable[str] = (),
    ) -> None:
        """Apply several sets and deletes in one transaction."""
        ...


class NodeAgent(Protocol):
    async def send(self, request: AgentRequest) -> Dict[str, Any]:
        """Perform the call and return the decoded JSON body.

        Raises RemoteError on transport failure, timeout or non-2xx status.
        """
        ...

    async def close(self) -> None: ...


class Authorizer(Protocol):
    async def is_user_authorized(self, user_id: str, instance_id: str) -> bool: ...


class AuditLog(Protocol):
    async def record(
        self,
        user_id: str,
        username: str | None,
        action: str,
        ip: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None: ...