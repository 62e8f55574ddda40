from fastapi import APIRouter, Depends, Query, Response, status

from messaging.schemas.chat import ConversationCreate, MessageCreate, Pagination, TypingUpdate
from messaging.services.chat_service import ChatService
from messaging.services.conversation_projection import ConversationProjection, present_message
from messaging.utils.dependencies import get_chat_service, get_current_user, get_projection, get_typing_store
from messaging.utils.realtime_bus import notify_participants
from messaging.utils.typing_store import TypingPresenceStore


router = APIRouter(prefix="/conversations", tags=["chat"])


@router.post("")
async def get_or_create_conversation(
    body: ConversationCreate,
    response: Response,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    projection: ConversationProjection = Depends(get_projection),
):
    convo, created = await service.get_or_create_conversation(current_user["_id"], body.participant_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return await projection.project(convo, current_user["_id"])


@router.get("")
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    projection: ConversationProjection = Depends(get_projection),
):
    items, total = await service.list_conversations(current_user["_id"], page=page, limit=limit)
    return {
        "items": await projection.project_many(items, current_user["_id"]),
        "pagination": Pagination.build(page, limit, total),
    }


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    projection: ConversationProjection = Depends(get_projection),
):
    convo = await service.get_conversation(conversation_id, current_user["_id"])
    return await projection.project(convo, current_user["_id"])


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    await service.delete_conversation(conversation_id, current_user["_id"])
    return {"ok": True, "message": "Conversation has been deleted"}


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    items, total = await service.list_messages(conversation_id, current_user["_id"], page=page, limit=limit)
    return {
        "items": [present_message(m) for m in items],
        "pagination": Pagination.build(page, limit, total),
    }


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: str,
    body: MessageCreate,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    user_id = current_user["_id"]
    saved = await service.send_message(
        conversation_id,
        user_id,
        content=body.content,
        attachment_url=body.attachment_url,
        reply_to=body.reply_to,
        attachment_type=body.attachment_type,
    )
    message = present_message(saved)
    await notify_participants(await service.recipients_for(conversation_id, user_id), "message.created", message)
    return message


@router.post("/{conversation_id}/typing")
async def update_typing(
    conversation_id: str,
    body: TypingUpdate,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    typing: TypingPresenceStore = Depends(get_typing_store),
):
    user_id = current_user["_id"]
    convo = await service.get_conversation(conversation_id, user_id)
    if body.is_typing:
        await typing.set_typing(convo["_id"], user_id)
    else:
        await typing.remove_typing(convo["_id"], user_id)
    others = [p for p in convo["participants"] if p != user_id]
    await notify_participants(others, "typing", {"conversation_id": convo["_id"], "user_id": user_id, "is_typing": body.is_typing})
    return {"ok": True, "ttl_seconds": typing.ttl_seconds}


@router.get("/{conversation_id}/typing")
async def get_typing(
    conversation_id: str,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    typing: TypingPresenceStore = Depends(get_typing_store),
):
    convo = await service.get_conversation(conversation_id, current_user["_id"])
    users = await typing.get_typing_users(convo["_id"])
    return {"typing_users": [u for u in users if u != current_user["_id"]]}
