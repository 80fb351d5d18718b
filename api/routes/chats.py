"""Order chat routes"""

from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session
import logging
from uuid import UUID
from typing import List

from api.dependencies import get_db
from api.responses import CountResponse
from app.config import settings
from domain import moderation
from domain.enums import ChatType
from domain.schemas.chat_schemas import (
    ChatMessageResponse,
    ChatSessionCreate,
    ChatSessionResponse,
    MessageCreate,
    ModerationCheckRequest,
    ModerationCheckResponse,
    UnreadCountResponse,
)
from services.chat_service import ChatService, deliver_auto_reply

router = APIRouter(prefix="/chats", tags=["Chats"])
logger = logging.getLogger("homechef.api.chats")


@router.post("/moderation/check", response_model=ModerationCheckResponse)
def check_message(request: ModerationCheckRequest):
    """Run the chat filter on a draft without posting it"""
    verdict = moderation.check_message(
        request.message, moderation.policy_from_settings(settings)
    )
    return ModerationCheckResponse(
        allowed=verdict.allowed, rule=verdict.rule, reason=verdict.reason
    )


@router.post(
    "", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED
)
def create_chat(request: ChatSessionCreate, db: Session = Depends(get_db)):
    """Open the chat for an order, or return the one already open"""
    session = ChatService.create_session(
        db, request.order_id, request.chat_type, request.requester_id
    )
    return ChatSessionResponse.from_session(session)


@router.get("", response_model=List[ChatSessionResponse])
def list_chats(
    user_id: UUID = Query(...),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    sessions = ChatService.list_sessions(db, user_id, active_only)
    return [ChatSessionResponse.from_session(s) for s in sessions]


@router.get("/by-order/{order_id}", response_model=ChatSessionResponse)
def get_chat_by_order(
    order_id: UUID,
    chat_type: ChatType = Query(ChatType.CUSTOMER_DELIVERY),
    db: Session = Depends(get_db),
):
    session = ChatService.get_session_by_order(db, order_id, chat_type)
    return ChatSessionResponse.from_session(session)


@router.get("/{chat_id}", response_model=ChatSessionResponse)
def get_chat(chat_id: UUID, db: Session = Depends(get_db)):
    return ChatSessionResponse.from_session(ChatService.get_session(db, chat_id))


@router.post("/{chat_id}/end", response_model=ChatSessionResponse)
def end_chat(chat_id: UUID, db: Session = Depends(get_db)):
    return ChatSessionResponse.from_session(ChatService.end_session(db, chat_id))


@router.get("/{chat_id}/messages", response_model=List[ChatMessageResponse])
def list_messages(
    chat_id: UUID,
    include_blocked: bool = Query(False, description="Include moderated attempts"),
    db: Session = Depends(get_db),
):
    messages = ChatService.list_messages(db, chat_id, include_blocked)
    return [ChatMessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{chat_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    chat_id: UUID,
    payload: MessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Post a message. Rejected content answers 422 with the moderation reason.
    """
    message = ChatService.send_message(
        db, chat_id, payload.sender_id, payload.message, payload.attachments
    )
    session = ChatService.get_session(db, chat_id)
    if ChatService.should_auto_reply(session, payload.sender_id):
        background_tasks.add_task(deliver_auto_reply, chat_id)
    return ChatMessageResponse.model_validate(message)


@router.post("/{chat_id}/read", response_model=CountResponse)
def mark_read(
    chat_id: UUID, user_id: UUID = Query(...), db: Session = Depends(get_db)
):
    return CountResponse(updated=ChatService.mark_messages_read(db, chat_id, user_id))


@router.get("/{chat_id}/unread", response_model=UnreadCountResponse)
def unread_count(
    chat_id: UUID, user_id: UUID = Query(...), db: Session = Depends(get_db)
):
    return UnreadCountResponse(
        chat_id=chat_id,
        user_id=user_id,
        unread=ChatService.get_unread_count(db, chat_id, user_id),
    )
