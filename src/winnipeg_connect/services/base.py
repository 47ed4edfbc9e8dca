"""Shared transition helper for the services.

Every status change is validated by the entity's state machine first and
then written with a compare-and-set UPDATE on the previous status. Losing
the race raises instead of silently overwriting the winner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from winnipeg_connect.domain.exceptions import ConcurrentModificationError
from winnipeg_connect.domain.state_machine import fire_transition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class TransitionService:
    """Base class for services that move records through a state machine."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _transition(
        self,
        repo: Any,
        record: Any,
        machine_cls: type,
        event_name: str,
        entity: str,
        **values: Any,
    ) -> tuple[str, str]:
        """Fire ``event_name`` on ``record`` and persist the new status.

        Returns:
            (old_status, new_status)

        Raises:
            InvalidStateTransitionError: If the machine rejects the event.
            ConcurrentModificationError: If the row left ``old_status`` meanwhile.
        """
        old_status = record.status
        new_status = fire_transition(machine_cls, old_status, event_name, entity=entity)
        won = await repo.compare_and_set_status(record.id, old_status, new_status, **values)
        if not won:
            raise ConcurrentModificationError(entity, str(record.id))
        await self._session.refresh(record)
        return old_status, new_status
