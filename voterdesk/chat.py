from fastapi import APIRouter, Depends, status
from typing import List
import logging

from .auth import SessionContext, get_session, get_store
from .config import settings
from .errors import AuthorizationDenied, ValidationFailed
from .schemas import ChatMessage, MessageCreate
from .store import RecordStore


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["chat"])


@router.get("", response_model=List[ChatMessage])
def list_messages(
    limit: int | None = None,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    limit = min(limit or settings.CHAT_HISTORY_LIMIT, settings.CHAT_HISTORY_LIMIT)
    return store.list_messages(limit)


@router.post("", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
def send_message(
    req: MessageCreate,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    content = req.content.strip()
    if not content:
        raise ValidationFailed({"content": "Message cannot be empty"})
    return store.create_message(session.user, content)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: str,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    message = store.get_message(message_id)
    if message.user_id != session.user.id:
        logger.info("User %s tried to delete message %s of another user", session.user.username, message_id)
        raise AuthorizationDenied("You can only delete your own messages")
    store.delete_message(message_id)
