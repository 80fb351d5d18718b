from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from domain.enums import AttachmentKind, ChatStatus, ChatType


class AttachmentCreate(BaseModel):
    """Metadata of an uploaded file sent along with a message"""

    name: str = Field(..., min_length=1)
    kind: AttachmentKind
    content_type: str = Field(..., description="MIME type, e.g. 'image/png'")
    size: int = Field(0, ge=0, description="Size in bytes")
    url: Optional[str] = None


class AttachmentResponse(BaseModel):
    attachment_id: UUID
    name: str
    kind: AttachmentKind
    content_type: str
    url: str
    size: int

    model_config = {"from_attributes": True}


class ChatSessionCreate(BaseModel):
    order_id: UUID
    chat_type: ChatType
    requester_id: UUID


class MessageCreate(BaseModel):
    sender_id: UUID
    message: str = Field(..., min_length=1, max_length=2000)
    attachments: List[AttachmentCreate] = []


class ChatMessageResponse(BaseModel):
    message_id: UUID
    chat_id: UUID
    sender_id: Optional[UUID] = None
    sender_name: str
    sender_role: str
    message: str
    created_at: datetime
    is_read: bool
    is_blocked: bool = False
    blocked_reason: Optional[str] = None
    attachments: List[AttachmentResponse] = []

    model_config = {"from_attributes": True}


class ChatParticipant(BaseModel):
    user_id: UUID
    name: Optional[str] = None
    role: str


class ChatSessionResponse(BaseModel):
    chat_id: UUID
    order_id: UUID
    chat_type: ChatType
    status: ChatStatus
    participants: List[ChatParticipant]
    created_at: datetime
    last_message_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session) -> "ChatSessionResponse":
        return cls(
            chat_id=session.chat_id,
            order_id=session.order_id,
            chat_type=session.chat_type,
            status=session.status,
            participants=[
                ChatParticipant(user_id=uid, name=name, role=role.value)
                for uid, name, role in session.participants()
            ],
            created_at=session.created_at,
            last_message_at=session.last_message_at,
            ended_at=session.ended_at,
        )


class UnreadCountResponse(BaseModel):
    chat_id: UUID
    user_id: UUID
    unread: int


class ModerationCheckRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ModerationCheckResponse(BaseModel):
    allowed: bool
    rule: Optional[str] = None
    reason: Optional[str] = None
