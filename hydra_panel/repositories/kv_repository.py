# hydra_panel/repositories/kv_repository.py
import json
from typing import Any, Dict, Iterable

from databases import Database
from sqlalchemy import select, insert, update, delete

from hydra_panel.models.db import KeyValueDB
from hydra_panel.domain.ports import KeyValueStore


class SQLKeyValueStore(KeyValueStore):
    """Key-value store kept in a single table, values serialized as JSON."""

    def __init__(self, database: Database):
        self.database = database

    async def get(self, key: str) -> Any | None:
        row = await self.database.fetch_one(
            select(KeyValueDB.value).where(KeyValueDB.key == key)
        )
        if not row:
            return None
        return json.loads(row["value"])

    async def set(self, key: str, value: Any) -> None:
        await self._upsert(key, value)

    async def delete(self, key: str) -> None:
        await self.database.execute(
            delete(KeyValueDB).where(KeyValueDB.key == key)
        )

    async def write_batch(
        self,
        sets: Dict[str, Any],
        deletes: Iterable[str] = (),
    ) -> None:
        async with self.database.transaction():
            for key, value in sets.items():
                await self._upsert(key, value)
            for key in deletes:
                await self.delete(key)

    async def _upsert(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        exists = await self.database.fetch_one(
            select(KeyValueDB.key).where(KeyValueDB.key == key)
        )
        if exists:
            await self.database.execute(
                update(KeyValueDB).where(KeyValueDB.key == key).values(value=payload)
            )
        else:
            await self.database.execute(
                insert(KeyValueDB).values(key=key, value=payload)
            )
