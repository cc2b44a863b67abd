from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass
class AgentRequest:
    """One outbound call to a node agent."""
    method: str
    url: str
    auth: Tuple[str, str]
    json: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
