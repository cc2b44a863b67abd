from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Stored key -> attribute name
_NODE_FIELDS = {
    "id": "id",
    "address": "address",
    "port": "port",
    "apiKey": "api_key",
}

_INSTANCE_FIELDS = {
    "Id": "id",
    "Name": "name",
    "User": "user",
    "ContainerId": "container_id",
    "VolumeId": "volume_id",
    "Memory": "memory",
    "Cpu": "cpu",
    "Ports": "ports",
    "Primary": "primary",
    "Image": "image",
    "AltImages": "alt_images",
    "imageData": "image_data",
    "currentimage": "current_image",
    "Env": "env",
    "suspended": "suspended",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

# Written only when set, so records without them stay without them
_OPTIONAL_KEYS = {"VolumeId", "imageData", "currentimage", "createdAt", "updatedAt"}


@dataclass
class Node:
    address: Optional[str] = None
    port: Optional[Any] = None
    api_key: Optional[str] = None
    id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_reachable(self) -> bool:
        """True when address, port and api key are all known."""
        return bool(self.address and self.port and self.api_key)

    @property
    def base_url(self) -> str:
        return f"http://{self.address}:{self.port}"

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Node":
        known = {attr: record.get(key) for key, attr in _NODE_FIELDS.items()}
        extra = {k: v for k, v in record.items() if k not in _NODE_FIELDS}
        return cls(extra=extra, **known)

    def to_record(self) -> Dict[str, Any]:
        record = dict(self.extra)
        for key, attr in _NODE_FIELDS.items():
            value = getattr(self, attr)
            if value is not None or key in self.extra:
                record[key] = value
        return record


@dataclass
class Instance:
    """One managed workload, as stored under ``{id}_instance``.

    ``id`` is the stable volume id. ``container_id`` is assigned by the node
    agent and changes on reinstall, edit and image change.
    """

    id: str
    name: Optional[str] = None
    user: Optional[str] = None
    node: Optional[Node] = None
    container_id: Optional[str] = None
    volume_id: Optional[str] = None
    memory: Optional[Any] = None
    cpu: Optional[Any] = None
    ports: Optional[str] = None
    primary: Optional[Any] = None
    image: Optional[str] = None
    alt_images: List[Any] = field(default_factory=list)
    image_data: Optional[Dict[str, Any]] = None
    current_image: Optional[str] = None
    env: List[str] = field(default_factory=list)
    suspended: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Instance":
        """Build an instance from its stored JSON document.

        Missing ``suspended`` reads as False, a non-list ``Env`` as empty.
        Unknown keys are kept in ``extra`` and written back unchanged.
        """
        values = {attr: record.get(key) for key, attr in _INSTANCE_FIELDS.items()}

        node = record.get("Node")
        values["node"] = Node.from_record(node) if isinstance(node, dict) else None
        values["env"] = list(values["env"]) if isinstance(values["env"], list) else []
        values["alt_images"] = list(values["alt_images"] or [])
        values["suspended"] = values["suspended"] is True

        extra = {
            k: v for k, v in record.items()
            if k not in _INSTANCE_FIELDS and k != "Node"
        }
        return cls(extra=extra, **values)

    def to_record(self) -> Dict[str, Any]:
        record = dict(self.extra)
        for key, attr in _INSTANCE_FIELDS.items():
            value = getattr(self, attr)
            if value is None and key in _OPTIONAL_KEYS:
                continue
            record[key] = value
        record["Node"] = self.node.to_record() if self.node else None
        return record
