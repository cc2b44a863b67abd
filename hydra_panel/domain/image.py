from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ImageEntry:
    """An entry of the ``images`` catalog."""
    image: str = ""
    scripts: Optional[Any] = None      # install scripts handed to the agent
    alt_images: List[Any] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)  # stored document, as is

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ImageEntry":
        return cls(
            image=record.get("Image", ""),
            scripts=record.get("Scripts"),
            alt_images=list(record.get("AltImages") or []),
            raw=dict(record),
        )
