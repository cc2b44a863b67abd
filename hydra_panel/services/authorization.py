import logging

from hydra_panel.domain.ports import Authorizer, KeyValueStore
from hydra_panel.repositories.instance_repository import user_instances_key

logger = logging.getLogger(__name__)

USERS_KEY = "users"


class KVAuthorizer(Authorizer):
    """Ownership model kept in the store.

    A user may act on an instance when they are an admin, when the instance
    is in their own list, or when its id is in their ``accessTo`` list
    (sub-user access).
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def is_user_authorized(self, user_id: str, instance_id: str) -> bool:
        users = await self.store.get(USERS_KEY) or []
        user = next((u for u in users if u.get("userId") == user_id), None)
        if user is None:
            logger.debug("Unknown user %s asked for instance %s", user_id, instance_id)
            return False

        if user.get("admin") is True:
            return True

        if instance_id in (user.get("accessTo") or []):
            return True

        owned = await self.store.get(user_instances_key(user_id)) or []
        return any(entry.get("Id") == instance_id for entry in owned)
