import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from messaging.core.config import Settings, get_settings
from messaging.schemas.chat import MarkReadRequest, MessageDelete, MessageUpdate
from messaging.services.chat_service import DELETED_FOR_EVERYONE, ChatService
from messaging.services.conversation_projection import present_message
from messaging.utils.attachments import sanitize_folder_name
from messaging.utils.dependencies import get_chat_service, get_current_user
from messaging.utils.errors import ValidationError
from messaging.utils.realtime_bus import notify_participants
from messaging.utils.storage import get_storage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["chat"])


@router.put("/read")
async def mark_read(
    body: MarkReadRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    user_id = current_user["_id"]
    count = await service.mark_read(body.conversation_id, user_id)
    if count:
        await notify_participants(
            await service.recipients_for(body.conversation_id, user_id),
            "messages.read",
            {"conversation_id": body.conversation_id, "reader_id": user_id},
        )
    return {"messages_updated": count}


@router.post("/upload-file")
@router.post("/upload-image", include_in_schema=False)
async def upload_file(
    file: UploadFile = File(...),
    conversation_id: str = Form(...),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    settings: Settings = Depends(get_settings),
    storage=Depends(get_storage),
):
    user_id = current_user["_id"]
    convo = await service.get_conversation(conversation_id, user_id)
    mime_type = file.content_type or "application/octet-stream"
    if mime_type not in settings.allowed_upload_mime_types:
        raise ValidationError("Invalid file type. Only images and videos are allowed.")
    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        size_mb = len(data) / (1024 * 1024)
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        raise ValidationError(
            f"File size ({size_mb:.2f} MB) exceeds the maximum allowed size of {limit_mb:.0f} MB."
        )
    user_name = sanitize_folder_name(current_user.get("full_name")) or "user"
    folder = f"chat-messages/{convo['_id']}/{user_name}_{user_id}"
    stored = await storage.upload(data, mime_type, folder)
    logger.info("user %s uploaded %s (%d bytes) to %s", user_id, mime_type, len(data), folder)
    return {
        "url": stored["url"],
        "public_id": stored.get("public_id"),
        "file_name": file.filename,
        "file_type": mime_type,
        "file_size": len(data),
    }


@router.put("/{message_id}")
async def edit_message(
    message_id: str,
    body: MessageUpdate,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    user_id = current_user["_id"]
    updated = await service.edit_message(message_id, user_id, body.content)
    message = present_message(updated)
    await notify_participants(
        await service.recipients_for(updated["conversation_id"], user_id), "message.updated", message
    )
    return message


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    body: Optional[MessageDelete] = None,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    user_id = current_user["_id"]
    for_everyone = body.delete_for_everyone if body else False
    message, scope = await service.delete_message(message_id, user_id, for_everyone=for_everyone)
    if scope == DELETED_FOR_EVERYONE:
        await notify_participants(
            await service.recipients_for(message["conversation_id"], user_id),
            "message.deleted",
            {"id": message["_id"], "conversation_id": message["conversation_id"]},
        )
        return {"ok": True, "scope": scope, "message": "Message has been deleted for everyone"}
    return {"ok": True, "scope": scope, "message": "Message has been deleted for you"}
