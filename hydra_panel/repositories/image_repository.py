# hydra_panel/repositories/image_repository.py
from typing import List

from hydra_panel.domain.image import ImageEntry
from hydra_panel.domain.ports import KeyValueStore

IMAGES_KEY = "images"


class KVImageRepository:
    """Read access to the image catalog stored under ``images``."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def list(self) -> List[ImageEntry]:
        records = await self.store.get(IMAGES_KEY) or []
        return [ImageEntry.from_record(r) for r in records if isinstance(r, dict)]

    async def find(self, image: str | None) -> ImageEntry | None:
        """
        Return the catalog entry whose ``Image`` equals the given reference.
        """
        if not image:
            return None
        return next((entry for entry in await self.list() if entry.image == image), None)
