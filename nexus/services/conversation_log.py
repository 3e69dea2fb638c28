"""Append-only record of a conversation."""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

from nexus.errors import LogOrderError
from nexus.models.turn import Turn, TurnRole
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

_TICK = timedelta(microseconds=1)


class ConversationLog:
    """Ordered turns of one conversation, as read by the presentation layer.

    Creation order always equals append order: a turn is only accepted if it
    was created strictly after the last logged turn.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._ids: set[str] = set()

    def append(self, turn: Turn) -> Turn:
        """Append a turn to the end of the log.

        Raises:
            LogOrderError: If the turn is already logged or is not newer than the last turn
        """
        if turn.id in self._ids:
            raise LogOrderError(f"Turn {turn.id} is already in the log")
        if self._turns and turn.created_at <= self._turns[-1].created_at:
            raise LogOrderError(
                f"Turn {turn.id} created at {turn.created_at.isoformat()} is not newer than "
                f"the last logged turn ({self._turns[-1].created_at.isoformat()})"
            )

        self._turns.append(turn)
        self._ids.add(turn.id)
        logger.debug(f"Logged {turn.role} turn {turn.id} ({len(self._turns)} total)")
        return turn

    def record(self, role: TurnRole, content: str, **fields: Any) -> Turn:
        """Create a turn stamped after the last logged one and append it."""
        created_at = datetime.now(UTC)
        if self._turns and created_at <= self._turns[-1].created_at:
            created_at = self._turns[-1].created_at + _TICK
        return self.append(Turn(role=role, content=content, created_at=created_at, **fields))

    def turns(self) -> tuple[Turn, ...]:
        """All turns in append order."""
        return tuple(self._turns)

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def reset(self) -> None:
        """Remove every turn."""
        logger.debug(f"Clearing conversation log ({len(self._turns)} turns)")
        self._turns.clear()
        self._ids.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))
