from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from messaging.database.connection import mongo_db_dependency
from messaging.repositories.conversation_repository import ConversationRepository
from messaging.repositories.message_repository import MessageRepository
from messaging.repositories.user_repository import UserRepository
from messaging.services.chat_service import ChatService
from messaging.services.conversation_projection import ConversationProjection
from messaging.utils.security import decode_access_token
from messaging.utils.typing_store import TypingPresenceStore


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(mongo_db_dependency),
) -> dict:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise unauthorized
    user_id = payload.get("sub")
    if not user_id:
        raise unauthorized
    user = await UserRepository(db).get_user_by_id(user_id)
    if user is None:
        raise unauthorized
    return user


def get_chat_service(db=Depends(mongo_db_dependency)) -> ChatService:
    return ChatService(MessageRepository(db), ConversationRepository(db), UserRepository(db))


def get_projection(db=Depends(mongo_db_dependency)) -> ConversationProjection:
    return ConversationProjection(UserRepository(db), MessageRepository(db))


def get_typing_store(request: Request) -> TypingPresenceStore:
    return request.app.state.typing_store
