import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Union


class Role(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """One chat bubble. Immutable once appended to a session."""
    role: Role
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


HistoryItem = Union[Message, Dict[str, str]]


def as_history(items: Iterable[HistoryItem]) -> List[Dict[str, str]]:
    """Normalize messages or role/content dicts into plain dicts."""
    history = []
    for item in items:
        if isinstance(item, Message):
            history.append(item.to_dict())
        else:
            role = item.get("role", "user")
            history.append({"role": Role(role).value, "content": item.get("content", "")})
    return history


def flatten_transcript(items: Iterable[HistoryItem]) -> str:
    """Render a history as `role: content` lines for the analysis prompt."""
    return "\n".join(f"{m['role']}: {m['content']}" for m in as_history(items))
