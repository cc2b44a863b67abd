import logging
from typing import Any, Dict, List

from hydra_panel.domain.instance import Instance, Node
from hydra_panel.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

GLOBAL_INSTANCES_KEY = "instances"


def instance_key(instance_id: str) -> str:
    return f"{instance_id}_instance"


def user_instances_key(user_id: str) -> str:
    return f"{user_id}_instances"


def node_key(node_id: str) -> str:
    return f"{node_id}_node"


def replace_entry(
    entries: List[Dict[str, Any]],
    match_field: str,
    match_value: Any,
    record: Dict[str, Any],
) -> List[Dict[str, Any]]:
    """Drop entries whose ``match_field`` equals ``match_value`` and append ``record``.

    All other entries are kept in their original order.
    """
    kept = [
        entry for entry in entries
        if not (isinstance(entry, dict) and entry.get(match_field) == match_value)
    ]
    kept.append(record)
    return kept


class InstanceRepository:
    """Reads and writes the three stored views of an instance.

    - ``{id}_instance``: the per-instance record
    - ``{user}_instances``: the owner's list
    - ``instances``: the global list

    Writes touch all three; there is no cross-key transaction, so a failure
    between steps leaves the views diverged until the next successful write.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, instance_id: str) -> Instance | None:
        record = await self.store.get(instance_key(instance_id))
        if not record:
            return None
        return Instance.from_record(record)

    async def persist_suspended_flag(self, instance_id: str) -> None:
        """Store ``suspended: false`` on records written before the flag existed."""
        key = instance_key(instance_id)
        record = await self.store.get(key)
        if record and "suspended" not in record:
            record["suspended"] = False
            await self.store.set(key, record)
            logger.info("Instance %s had no suspended flag, stored as false", instance_id)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self.store.get(GLOBAL_INSTANCES_KEY) or []

    async def name_taken(self, name: str, exclude_id: str) -> bool:
        return any(
            entry.get("Name") == name and entry.get("Id") != exclude_id
            for entry in await self.list_all()
        )

    async def get_node(self, node_id: str) -> Node | None:
        record = await self.store.get(node_key(node_id))
        if not record:
            return None
        return Node.from_record(record)

    async def save(self, instance: Instance, key_id: str | None = None) -> Dict[str, Any]:
        """Write the record and refresh both lists by id.

        ``key_id`` is the id the record was loaded under; it differs from
        ``instance.id`` once an edit has re-keyed the record.
        """
        record = instance.to_record()
        await self.store.set(instance_key(key_id or instance.id), record)
        await self.update_lists(record, "Id", instance.id)
        return record

    async def move(
        self,
        instance: Instance,
        old_key_id: str,
        old_container_id: str | None,
    ) -> Dict[str, Any]:
        """Re-key the record under the new container id.

        The new key is written and the old one deleted in one batch; list
        entries are matched on the old container id.
        """
        record = instance.to_record()
        new_key = instance_key(instance.container_id)
        old_key = instance_key(old_key_id)
        await self.store.write_batch(
            {new_key: record},
            deletes=[old_key] if old_key != new_key else [],
        )
        await self.update_lists(record, "ContainerId", old_container_id)
        return record

    async def update_lists(
        self,
        record: Dict[str, Any],
        match_field: str,
        match_value: Any,
    ) -> None:
        user_key = user_instances_key(record["User"])
        user_instances = await self.store.get(user_key) or []
        await self.store.set(
            user_key, replace_entry(user_instances, match_field, match_value, record)
        )

        global_instances = await self.list_all()
        await self.store.set(
            GLOBAL_INSTANCES_KEY,
            replace_entry(global_instances, match_field, match_value, record),
        )
