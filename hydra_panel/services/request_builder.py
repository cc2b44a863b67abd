"""Builders for the requests the panel sends to node agents.

Every builder returns an ``AgentRequest``; nothing here performs I/O.
URLs follow ``http://{address}:{port}/instances/{operation}/{containerId}``
and authenticate with basic auth (agent username, node api key).
"""

import re
import uuid
from typing import Any, Dict, List, Tuple

from hydra_panel.core.config import Settings
from hydra_panel.domain.agent import AgentRequest
from hydra_panel.domain.image import ImageEntry
from hydra_panel.domain.instance import Instance, Node

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_port_mappings(ports: Any) -> Tuple[Dict[str, dict], Dict[str, List[dict]]]:
    """Translate ``"25565:25565,8080:8080"`` into exposed ports and bindings.

    Segments missing either side of the colon are skipped.
    """
    exposed: Dict[str, dict] = {}
    bindings: Dict[str, List[dict]] = {}
    if not ports or not isinstance(ports, str):
        return exposed, bindings

    for mapping in ports.split(","):
        parts = [p.strip() for p in mapping.split(":")]
        container_port = parts[0] if parts else ""
        host_port = parts[1] if len(parts) > 1 else ""
        if not container_port or not host_port:
            continue
        key = f"{container_port}/tcp"
        exposed[key] = {}
        bindings[key] = [{"HostPort": host_port}]
    return exposed, bindings


def to_int(value: Any, default: Any = None) -> Any:
    """Leading integer of value, or default when there is none."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return default


def _url(node: Node, operation: str, container_id: str | None) -> str:
    return f"{node.base_url}/instances/{operation}/{container_id}"


def _auth(node: Node, settings: Settings) -> Tuple[str, str]:
    return (settings.AGENT_USERNAME, node.api_key or "")


def build_reinstall_request(
    instance: Instance,
    image_entry: ImageEntry | None,
    settings: Settings,
) -> AgentRequest:
    """Reissue the instance's current image and resources on a fresh container."""
    exposed, bindings = parse_port_mappings(instance.ports)
    return AgentRequest(
        method="POST",
        url=_url(instance.node, "reinstall", instance.container_id),
        auth=_auth(instance.node, settings),
        headers={
            "Content-Type": "application/json",
            "X-Request-ID": str(uuid.uuid4()),
        },
        timeout=settings.REINSTALL_TIMEOUT,
        json={
            "Name": instance.name,
            "Id": instance.id,
            "Image": instance.image,
            "Env": instance.env,
            "Scripts": image_entry.scripts if image_entry else None,
            "Memory": to_int(instance.memory) or settings.DEFAULT_MEMORY,
            "Cpu": to_int(instance.cpu) or settings.DEFAULT_CPU,
            "ExposedPorts": exposed,
            "PortBindings": bindings,
            "AltImages": image_entry.alt_images if image_entry else [],
            "imageData": image_entry.raw if image_entry else {},
        },
    )


def build_redeploy_request(
    instance: Instance,
    node: Node,
    image: str,
    image_entry: ImageEntry | None,
    settings: Settings,
) -> AgentRequest:
    """Redeploy the instance's container from ``image`` on ``node``."""
    exposed, bindings = parse_port_mappings(instance.ports)
    return AgentRequest(
        method="POST",
        url=_url(node, "redeploy", instance.container_id),
        auth=_auth(node, settings),
        headers={"Content-Type": "application/json"},
        timeout=settings.REDEPLOY_TIMEOUT,
        json={
            "Name": instance.name,
            "Id": instance.id,
            "Image": image,
            "Env": instance.env,
            "Scripts": image_entry.scripts if image_entry else None,
            "Memory": to_int(instance.memory),
            "Cpu": to_int(instance.cpu),
            "ExposedPorts": exposed,
            "PortBindings": bindings,
            "AltImages": image_entry.alt_images if image_entry else [],
        },
    )


def build_edit_request(
    instance: Instance,
    settings: Settings,
    *,
    image: str | None = None,
    memory: Any = None,
    cpu: Any = None,
) -> AgentRequest:
    """Change image and/or limits; unspecified values keep the current ones."""
    return AgentRequest(
        method="PUT",
        url=_url(instance.node, "edit", instance.container_id),
        auth=_auth(instance.node, settings),
        headers={
            "Content-Type": "application/json",
            "X-Requested-By": "Skyport-API",
        },
        timeout=settings.EDIT_TIMEOUT,
        json={
            "Image": image or instance.image,
            "Memory": memory or instance.memory,
            "Cpu": cpu or instance.cpu,
            "VolumeId": instance.volume_id or instance.id,
        },
    )


def build_rename_request(
    instance: Instance,
    new_name: str,
    settings: Settings,
) -> AgentRequest:
    return AgentRequest(
        method="POST",
        url=_url(instance.node, "rename", instance.container_id),
        auth=_auth(instance.node, settings),
        headers={"Content-Type": "application/json"},
        timeout=settings.RENAME_TIMEOUT,
        json={"newName": new_name},
    )
