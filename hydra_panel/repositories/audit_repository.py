# hydra_panel/repositories/audit_repository.py
import json
import logging
from typing import Any, Dict

from databases import Database
from sqlalchemy import insert

from hydra_panel.models.db import AuditLogDB
from hydra_panel.domain.ports import AuditLog

logger = logging.getLogger(__name__)


class SQLAuditLog(AuditLog):
    def __init__(self, database: Database):
        self.database = database

    async def record(
        self,
        user_id: str,
        username: str | None,
        action: str,
        ip: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        await self.database.execute(
            insert(AuditLogDB).values(
                user_id=user_id,
                username=username,
                action=action,
                ip=ip,
                details=json.dumps(details) if details is not None else None,
            )
        )
        logger.info("audit user=%s action=%s details=%s", user_id, action, details)
