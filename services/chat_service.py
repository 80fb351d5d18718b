from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
import logging
import random
import time
import uuid
from datetime import datetime

from app.config import settings
from app.exceptions import (
    ForbiddenError,
    MessageBlockedError,
    NotFoundError,
    ServiceValidationError,
)
from domain import moderation
from domain.enums import ChatStatus, ChatType, NotificationType, UserRole
from domain.models import (
    ChatAttachment,
    ChatMessage,
    ChatSession,
    Order,
    SessionLocal,
)
from domain.models.chat import SYSTEM_SENDER_ROLE
from domain.schemas.chat_schemas import AttachmentCreate
from repositories import ChatMessageRepository, ChatSessionRepository, OrderRepository
from services.notification_service import NotificationService

logger = logging.getLogger("homechef.chat")

SUPPORT_SENDER_NAME = "HomeChef Support"
WELCOME_MESSAGE = (
    "Welcome to secure chat! Please keep communication related to your order "
    "delivery only. Personal information sharing is not allowed."
)
AUTO_REPLIES = (
    "I'm on my way to your location.",
    "Thank you for the update!",
    "I'll be there in 10 minutes.",
    "Please be available to receive the order.",
    "I'm at the pickup location now.",
)
PREVIEW_LENGTH = 50

# Which order party, besides the delivery partner, each chat type connects
_COUNTERPART = {
    ChatType.CUSTOMER_DELIVERY: UserRole.CUSTOMER,
    ChatType.CHEF_DELIVERY: UserRole.CHEF,
}


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


class ChatService:
    @staticmethod
    def create_session(
        db: Session, order_id: uuid.UUID, chat_type: ChatType, requester_id: uuid.UUID
    ) -> ChatSession:
        """
        Open (or reuse) the chat of one type for an order.

        Both parties are copied from the order; a delivery partner must
        already be assigned.

        Raises:
            NotFoundError: order does not exist
            ServiceValidationError: no delivery partner yet
            ForbiddenError: requester is not one of the two parties
        """
        chat_type = ChatType(chat_type)
        order: Optional[Order] = OrderRepository(db).get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.delivery_partner_id is None:
            raise ServiceValidationError(
                "A delivery partner must be assigned before a chat can start"
            )

        counterpart = _COUNTERPART[chat_type]
        counterpart_id = (
            order.customer_id if counterpart == UserRole.CUSTOMER else order.chef_id
        )
        if requester_id not in (counterpart_id, order.delivery_partner_id):
            raise ForbiddenError(
                f"User {requester_id} is not a party of the {chat_type.value} chat"
            )

        sessions = ChatSessionRepository(db)
        existing = sessions.get_by_order(order_id, chat_type, active_only=True)
        if existing:
            return existing

        session = ChatSession(
            order_id=order_id,
            chat_type=chat_type,
            status=ChatStatus.ACTIVE,
            delivery_partner_id=order.delivery_partner_id,
            delivery_partner_name=order.delivery_partner_name,
        )
        if counterpart == UserRole.CUSTOMER:
            session.customer_id = order.customer_id
            session.customer_name = order.customer_name
        else:
            session.chef_id = order.chef_id
            session.chef_name = order.chef_name

        session.messages.append(
            ChatMessage(
                sender_id=None,
                sender_name=SUPPORT_SENDER_NAME,
                sender_role=SYSTEM_SENDER_ROLE,
                message=WELCOME_MESSAGE,
            )
        )
        db.add(session)
        db.commit()
        db.refresh(session)

        logger.info(
            f"chat_created chat_id={session.chat_id} order_id={order_id} type={chat_type.value}"
        )
        return session

    @staticmethod
    def get_session(db: Session, chat_id: uuid.UUID) -> ChatSession:
        session = ChatSessionRepository(db).get_by_id(chat_id)
        if not session:
            raise NotFoundError(f"Chat {chat_id} not found")
        return session

    @staticmethod
    def get_session_by_order(
        db: Session, order_id: uuid.UUID, chat_type: ChatType
    ) -> ChatSession:
        session = ChatSessionRepository(db).get_by_order(order_id, ChatType(chat_type))
        if not session:
            raise NotFoundError(f"No {ChatType(chat_type).value} chat for order {order_id}")
        return session

    @staticmethod
    def list_sessions(
        db: Session, user_id: uuid.UUID, active_only: bool = False
    ) -> List[ChatSession]:
        return ChatSessionRepository(db).list_for_user(user_id, active_only)

    @staticmethod
    def end_session(db: Session, chat_id: uuid.UUID) -> ChatSession:
        """Close a chat; ending an already ended chat is a no-op"""
        session = ChatService.get_session(db, chat_id)
        if session.status == ChatStatus.ENDED:
            return session
        session.status = ChatStatus.ENDED
        session.ended_at = datetime.utcnow()
        db.commit()
        db.refresh(session)
        logger.info(f"chat_ended chat_id={chat_id}")
        return session

    @staticmethod
    def send_message(
        db: Session,
        chat_id: uuid.UUID,
        sender_id: uuid.UUID,
        text: str,
        attachments: Iterable[AttachmentCreate] = (),
    ) -> ChatMessage:
        """
        Moderate and post a message.

        A rejected message is still stored (flagged as blocked, hidden from
        the transcript) and the sender is notified before
        ``MessageBlockedError`` is raised.
        """
        session = ChatService.get_session(db, chat_id)
        if session.status != ChatStatus.ACTIVE:
            raise ServiceValidationError("This chat has ended")

        person = session.participant(sender_id)
        if person is None:
            raise ForbiddenError(f"User {sender_id} is not part of this chat")
        _, sender_name, sender_role = person
        if not moderation.is_sender_allowed(sender_role, session.chat_type):
            raise ForbiddenError(
                f"A {sender_role.value} cannot post in a {ChatType(session.chat_type).value} chat"
            )

        text = (text or "").strip()
        if not text:
            raise ServiceValidationError("Message cannot be empty")

        attachments = list(attachments)
        policy = moderation.policy_from_settings(settings)
        verdict = moderation.check_message(text, policy)
        title = "Message Blocked"
        if verdict.allowed:
            for attachment in attachments:
                verdict = moderation.validate_attachment(
                    attachment.name, attachment.content_type, attachment.size, policy
                )
                if verdict.blocked:
                    title = "File Upload Blocked"
                    break

        now = datetime.utcnow()
        message = ChatMessage(
            chat_id=session.chat_id,
            sender_id=sender_id,
            sender_name=sender_name or sender_role.value.title(),
            sender_role=sender_role.value,
            message=text,
            created_at=now,
        )

        if verdict.blocked:
            message.is_blocked = True
            message.blocked_rule = verdict.rule
            message.blocked_reason = verdict.reason
            db.add(message)
            NotificationService.notify(
                db,
                sender_id,
                title,
                verdict.reason,
                type=NotificationType.SYSTEM,
                order_id=session.order_id,
                chat_id=session.chat_id,
                commit=False,
            )
            db.commit()
            logger.warning(
                f"message_blocked chat_id={chat_id} sender_id={sender_id} rule={verdict.rule}"
            )
            raise MessageBlockedError(verdict.reason, rule=verdict.rule)

        message.attachments = [
            ChatAttachment(
                name=a.name,
                kind=a.kind,
                content_type=a.content_type,
                url=a.url or f"mock://attachment/{a.name}",
                size=a.size,
            )
            for a in attachments
        ]
        db.add(message)
        session.last_message_at = now

        for user_id, _, _ in session.participants():
            if user_id == sender_id:
                continue
            NotificationService.notify(
                db,
                user_id,
                "New Message",
                f"{message.sender_name}: {_preview(text)}",
                type=NotificationType.CHAT,
                order_id=session.order_id,
                chat_id=session.chat_id,
                commit=False,
            )
        db.commit()
        db.refresh(message)

        logger.info(
            f"message_sent chat_id={chat_id} message_id={message.message_id} "
            f"sender_role={sender_role.value} attachments={len(attachments)}"
        )
        return message

    @staticmethod
    def list_messages(
        db: Session, chat_id: uuid.UUID, include_blocked: bool = False
    ) -> List[ChatMessage]:
        ChatService.get_session(db, chat_id)
        return ChatMessageRepository(db).get_messages(chat_id, include_blocked)

    @staticmethod
    def mark_messages_read(db: Session, chat_id: uuid.UUID, reader_id: uuid.UUID) -> int:
        ChatService.get_session(db, chat_id)
        return ChatMessageRepository(db).mark_read(chat_id, reader_id)

    @staticmethod
    def get_unread_count(db: Session, chat_id: uuid.UUID, user_id: uuid.UUID) -> int:
        ChatService.get_session(db, chat_id)
        return ChatMessageRepository(db).count_unread(chat_id, user_id)

    @staticmethod
    def should_auto_reply(session: ChatSession, sender_id: uuid.UUID) -> bool:
        return (
            settings.chat_auto_reply_enabled
            and session.status == ChatStatus.ACTIVE
            and sender_id != session.delivery_partner_id
        )

    @staticmethod
    def post_auto_reply(
        db: Session, chat_id: uuid.UUID, rng: random.Random = None
    ) -> Optional[ChatMessage]:
        """Append a canned delivery-partner reply unless the chat has ended"""
        session = ChatSessionRepository(db).get_by_id(chat_id)
        if session is None or session.status != ChatStatus.ACTIVE:
            return None

        text = (rng or random).choice(AUTO_REPLIES)
        now = datetime.utcnow()
        reply = ChatMessage(
            chat_id=chat_id,
            sender_id=session.delivery_partner_id,
            sender_name=session.delivery_partner_name or "Delivery Partner",
            sender_role=UserRole.DELIVERY.value,
            message=text,
            created_at=now,
        )
        db.add(reply)
        session.last_message_at = now
        db.commit()
        db.refresh(reply)
        logger.debug(f"auto_reply_posted chat_id={chat_id}")
        return reply


def deliver_auto_reply(chat_id: uuid.UUID, delay: float = None) -> None:
    """Background task: wait, then post the scripted reply in its own session"""
    time.sleep(settings.chat_auto_reply_delay_sec if delay is None else delay)
    db = SessionLocal()
    try:
        ChatService.post_auto_reply(db, chat_id)
    except Exception:
        logger.exception(f"auto_reply_failed chat_id={chat_id}")
        db.rollback()
    finally:
        db.close()
