"""
Chat Repository - Data access layer for order chat sessions and messages
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import or_

from repositories.base import BaseRepository
from domain.enums import ChatStatus, ChatType
from domain.models import ChatMessage, ChatSession


class ChatSessionRepository(BaseRepository[ChatSession]):
    """Repository for chat session data access"""

    def __init__(self, db: Session):
        super().__init__(db, ChatSession)

    def get_by_order(
        self, order_id: UUID, chat_type: ChatType, active_only: bool = False
    ) -> Optional[ChatSession]:
        """Most recent session of the given type for an order"""
        query = self.db.query(ChatSession).filter(
            ChatSession.order_id == order_id, ChatSession.chat_type == chat_type
        )
        if active_only:
            query = query.filter(ChatSession.status == ChatStatus.ACTIVE)
        return query.order_by(ChatSession.created_at.desc()).first()

    def list_for_user(self, user_id: UUID, active_only: bool = False) -> List[ChatSession]:
        query = self.db.query(ChatSession).filter(
            or_(
                ChatSession.customer_id == user_id,
                ChatSession.chef_id == user_id,
                ChatSession.delivery_partner_id == user_id,
            )
        )
        if active_only:
            query = query.filter(ChatSession.status == ChatStatus.ACTIVE)
        return query.order_by(ChatSession.created_at.desc()).all()


class ChatMessageRepository(BaseRepository[ChatMessage]):
    """Repository for chat message data access"""

    def __init__(self, db: Session):
        super().__init__(db, ChatMessage)

    def get_messages(
        self, chat_id: UUID, include_blocked: bool = False
    ) -> List[ChatMessage]:
        """Transcript in chronological order"""
        query = self.db.query(ChatMessage).filter(ChatMessage.chat_id == chat_id)
        if not include_blocked:
            query = query.filter(ChatMessage.is_blocked.is_(False))
        return query.order_by(ChatMessage.created_at).all()

    def _unread_from_others(self, chat_id: UUID, user_id: UUID):
        return self.db.query(ChatMessage).filter(
            ChatMessage.chat_id == chat_id,
            ChatMessage.is_read.is_(False),
            ChatMessage.is_blocked.is_(False),
            or_(ChatMessage.sender_id.is_(None), ChatMessage.sender_id != user_id),
        )

    def count_unread(self, chat_id: UUID, user_id: UUID) -> int:
        """Unread messages visible to ``user_id`` that someone else sent"""
        return self._unread_from_others(chat_id, user_id).count()

    def mark_read(self, chat_id: UUID, reader_id: UUID) -> int:
        """Mark everything the reader has received as read; returns rows changed"""
        count = self._unread_from_others(chat_id, reader_id).update(
            {ChatMessage.is_read: True}, synchronize_session="fetch"
        )
        self.db.commit()
        return count
