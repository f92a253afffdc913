"""Direct messages between users and their image attachments."""

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from warden.models.base import Base


class UserMessage(Base):
    """A message from one user to another.

    The sender/receiver pair is the only place the conversation relationship
    is recorded; once messages are purged it cannot be recovered.
    """

    __tablename__ = "user_messages"

    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    receiver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<UserMessage {self.id} {self.sender_id}->{self.receiver_id}>"


class UserMessageAttachment(Base):
    """Chat image attached to a message.

    ``file_path``/``thumbnail_path`` are stored either as ``/uploads/chat_images/<name>``
    or relative to the chat images directory.
    """

    __tablename__ = "user_message_attachments"

    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_messages.id"), nullable=False, index=True
    )
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    thumbnail_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<UserMessageAttachment {self.id} message={self.message_id}>"
