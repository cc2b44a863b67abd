from dataclasses import dataclass


@dataclass
class CurrentUser:
    user_id: str
    username: str = ""
    admin: bool = False
