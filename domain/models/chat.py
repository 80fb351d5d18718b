"""
Order chat models.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base, enum_column_type
from domain.enums import AttachmentKind, ChatStatus, ChatType, UserRole

SYSTEM_SENDER_ROLE = "system"


class ChatSession(Base):
    """Chat between two parties of one order"""

    __tablename__ = "chat_session"

    chat_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("customer_order.order_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chat_type = Column(enum_column_type(ChatType, "chat_type"), nullable=False)
    status = Column(
        enum_column_type(ChatStatus, "chat_status"),
        nullable=False,
        default=ChatStatus.ACTIVE,
    )
    customer_id = Column(Uuid)
    customer_name = Column(Text)
    chef_id = Column(Uuid)
    chef_name = Column(Text)
    delivery_partner_id = Column(Uuid, nullable=False)
    delivery_partner_name = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_message_at = Column(DateTime)
    ended_at = Column(DateTime)

    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )

    def participants(self):
        """(user_id, name, role) of everyone who may post in this chat"""
        people = []
        if self.customer_id is not None:
            people.append((self.customer_id, self.customer_name, UserRole.CUSTOMER))
        if self.chef_id is not None:
            people.append((self.chef_id, self.chef_name, UserRole.CHEF))
        people.append(
            (self.delivery_partner_id, self.delivery_partner_name, UserRole.DELIVERY)
        )
        return people

    def participant(self, user_id):
        for person in self.participants():
            if person[0] == user_id:
                return person
        return None


class ChatMessage(Base):
    """A chat line; blocked attempts are kept for moderation review"""

    __tablename__ = "chat_message"

    message_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id = Column(
        Uuid,
        ForeignKey("chat_session.chat_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(Uuid)  # NULL for system messages
    sender_name = Column(Text, nullable=False)
    sender_role = Column(String(16), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    is_read = Column(Boolean, nullable=False, default=False)
    is_blocked = Column(Boolean, nullable=False, default=False)
    blocked_rule = Column(String(32))
    blocked_reason = Column(Text)

    session = relationship("ChatSession", back_populates="messages")
    attachments = relationship(
        "ChatAttachment", back_populates="message", cascade="all, delete-orphan"
    )

    @property
    def is_system(self) -> bool:
        return self.sender_role == SYSTEM_SENDER_ROLE


class ChatAttachment(Base):
    __tablename__ = "chat_attachment"

    attachment_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(
        Uuid,
        ForeignKey("chat_message.message_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(Text, nullable=False)
    kind = Column(enum_column_type(AttachmentKind, "attachment_kind"), nullable=False)
    content_type = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    size = Column(Integer, nullable=False, default=0)

    message = relationship("ChatMessage", back_populates="attachments")
