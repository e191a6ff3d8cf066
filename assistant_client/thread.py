"""
Message thread model.

A :class:`Thread` is the ordered, append-only log of turns for one
conversation.  Turns are opaque payload plus a role tag; the thread never
looks at their content.

Two role vocabularies are in use:

* chat / docs: ``"user"`` and ``"assistant"``
* video Q&A:   ``"question"`` and ``"answer"``
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_QUESTION = "question"
ROLE_ANSWER = "answer"

#: Roles authored by the human party.
HUMAN_ROLES = frozenset({ROLE_USER, ROLE_QUESTION})
VALID_ROLES = frozenset({ROLE_USER, ROLE_ASSISTANT, ROLE_QUESTION, ROLE_ANSWER})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Turn:
    """One message in a conversation.  Immutable once created."""

    role: str
    content: str
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(f"Unknown turn role: {self.role!r}")

    @property
    def is_human(self) -> bool:
        return self.role in HUMAN_ROLES

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class Thread:
    """Ordered turn sequence for a single conversation."""

    def __init__(self, turns: list[Turn] | None = None) -> None:
        self._turns: list[Turn] = list(turns or [])

    def append(self, turn: Turn) -> None:
        """Add *turn* at the end."""
        self._turns.append(turn)

    def remove_last(self) -> Turn | None:
        """Remove and return the final turn, or *None* if the thread is empty."""
        if not self._turns:
            return None
        return self._turns.pop()

    def find_last_user_input(self) -> Turn | None:
        """Return the most recent turn authored by the human party."""
        for turn in reversed(self._turns):
            if turn.is_human:
                return turn
        return None

    @property
    def tail(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def clear(self) -> None:
        self._turns.clear()

    def turns(self) -> list[Turn]:
        """Return a copy of the turns, oldest first."""
        return list(self._turns)

    def as_dicts(self) -> list[dict]:
        return [t.to_dict() for t in self._turns]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(list(self._turns))

    def __repr__(self) -> str:
        return f"Thread({len(self._turns)} turns)"
