"""System chat messages emitted on job, quote and payment transitions.

Notifications are informational: each one is written inside its own
savepoint, and a database failure is logged and dropped so that it never
undoes the transition that triggered it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from winnipeg_connect.domain.enums import SystemMessageType
from winnipeg_connect.infrastructure.database.orm_models import Message
from winnipeg_connect.infrastructure.database.repositories import MessageRepository
from winnipeg_connect.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SYSTEM_MESSAGE_TEXT: dict[SystemMessageType, str] = {
    SystemMessageType.QUOTE_SENT: "A new quote has been sent for this job.",
    SystemMessageType.QUOTE_ACCEPTED: "Quote has been accepted! The job is now in progress.",
    SystemMessageType.QUOTE_REJECTED: "Quote has been declined.",
    SystemMessageType.JOB_COMPLETED: "Job has been marked as completed.",
    SystemMessageType.PAYMENT_RELEASED: "Payment has been released to the service provider.",
}


def generate_chat_id(user_a: uuid.UUID, user_b: uuid.UUID, job_id: uuid.UUID | None) -> str:
    """Chat id for a pair of users: sorted ids joined with '_', suffixed with the job."""
    chat_id = "_".join(sorted([str(user_a), str(user_b)]))
    if job_id is not None:
        chat_id = f"{chat_id}_{job_id}"
    return chat_id


class NotificationService:
    """Fire-and-forget writer for system messages."""

    def __init__(self, session: AsyncSession) -> None:
        self._messages = MessageRepository(session)

    async def emit_system_message(
        self,
        sender_id: uuid.UUID,
        receiver_id: uuid.UUID,
        system_type: SystemMessageType,
        job_id: uuid.UUID | None = None,
        data: dict | None = None,
    ) -> Message | None:
        """Write one system message. Returns None if it could not be stored."""
        message = Message(
            chat_id=generate_chat_id(sender_id, receiver_id, job_id),
            sender_id=sender_id,
            receiver_id=receiver_id,
            job_id=job_id,
            content=SYSTEM_MESSAGE_TEXT[system_type],
            message_type="system",
            system_type=system_type.value,
            system_data=data or {},
        )
        try:
            await self._messages.create(message)
        except SQLAlchemyError:
            logger.warning(
                "notification.emit_failed",
                system_type=system_type.value,
                job_id=str(job_id) if job_id else None,
                exc_info=True,
            )
            return None

        logger.debug("notification.emitted", system_type=system_type.value, chat_id=message.chat_id)
        return message
