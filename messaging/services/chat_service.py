import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId

from messaging.repositories.conversation_repository import ConversationRepository
from messaging.repositories.message_repository import MessageRepository
from messaging.repositories.user_repository import UserRepository
from messaging.utils.attachments import attachment_label, guess_mime_type
from messaging.utils.documents import to_object_id, utcnow
from messaging.utils.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError


logger = logging.getLogger(__name__)

EDIT_WINDOW = timedelta(minutes=15)
DELETE_FOR_EVERYONE_WINDOW = timedelta(days=7)

DELETED_FOR_EVERYONE = "everyone"
DELETED_FOR_ME = "me"


def is_visible_to(message: Dict[str, Any], viewer_id: str) -> bool:
    return message.get("deleted_at") is None and viewer_id not in message.get("deleted_for", [])


class ChatService:
    """Send, read, edit and delete messages inside two-party conversations."""

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        user_repo: UserRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._user_repo = user_repo
        self._clock = clock

    # conversations

    async def get_or_create_conversation(self, user_id: str, participant_id: Optional[str]) -> Tuple[Dict[str, Any], bool]:
        if not participant_id:
            raise ValidationError("Participant ID is required")
        if not ObjectId.is_valid(participant_id):
            raise ValidationError("Invalid participant ID")
        if participant_id == user_id:
            raise Conflict("You cannot create a conversation with yourself")
        for uid in (user_id, participant_id):
            if await self._user_repo.get_user_by_id(uid) is None:
                raise NotFound("Participant not found")
        convo, created = await self._conversation_repo.get_or_create_one_to_one(user_id, participant_id, self._clock())
        if created:
            logger.info("conversation %s created between %s and %s", convo["_id"], user_id, participant_id)
        return convo, created

    async def get_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        convo = await self._conversation_repo.get_by_id(to_object_id(conversation_id, "conversation ID"))
        if convo is None or convo.get("deleted_at") is not None:
            raise NotFound("Conversation not found")
        if user_id not in convo["participants"]:
            raise Forbidden("You are not a participant in this conversation")
        return convo

    async def list_conversations(self, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        return await self._conversation_repo.list_for_user(user_id, page=page, limit=limit)

    async def delete_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        convo = await self.get_conversation(conversation_id, user_id)
        # hides the conversation for both participants
        deleted = await self._conversation_repo.soft_delete(ObjectId(convo["_id"]), user_id, self._clock())
        if not deleted:
            raise NotFound("Conversation not found")
        logger.info("conversation %s deleted by %s", convo["_id"], user_id)
        return convo

    async def recipients_for(self, conversation_id: str, user_id: str) -> List[str]:
        convo = await self._conversation_repo.get_by_id(to_object_id(conversation_id, "conversation ID"))
        if convo is None:
            return []
        return [p for p in convo["participants"] if p != user_id]

    # messages

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: Optional[str] = None,
        attachment_url: Optional[str] = None,
        reply_to: Optional[str] = None,
        attachment_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = (content or "").strip()
        if not text and not attachment_url:
            raise ValidationError("Content or attachment is required")
        convo = await self.get_conversation(conversation_id, sender_id)
        convo_oid = ObjectId(convo["_id"])
        if not text:
            text = attachment_label(attachment_type or guess_mime_type(attachment_url))

        reply_oid = None
        if reply_to:
            reply_oid = to_object_id(reply_to, "replyTo message ID")
            if await self._message_repo.find_live_in_conversation(reply_oid, convo_oid) is None:
                raise NotFound("Replied message not found in this conversation")

        saved = await self._message_repo.save_message(
            conversation_id=convo_oid,
            sender_id=sender_id,
            content=text,
            now=self._clock(),
            attachment_url=attachment_url or None,
            reply_to=reply_oid,
        )
        await self._conversation_repo.touch_on_send(convo_oid, convo["participants"], saved)
        return saved

    async def list_messages(self, conversation_id: str, user_id: str, page: int = 1, limit: int = 50) -> Tuple[List[Dict[str, Any]], int]:
        convo = await self.get_conversation(conversation_id, user_id)
        items, total = await self._message_repo.get_visible_page(ObjectId(convo["_id"]), user_id, page=page, limit=limit)
        reply_ids = {ObjectId(m["reply_to"]) for m in items if m.get("reply_to")}
        replies = await self._message_repo.get_many(reply_ids)
        for m in items:
            replied = replies.get(m.get("reply_to") or "")
            if replied is not None and is_visible_to(replied, user_id):
                m["reply_to_message"] = {
                    "id": replied["_id"],
                    "content": replied["content"],
                    "sender_id": replied["sender_id"],
                    "attachment_url": replied.get("attachment_url"),
                    "created_at": replied["created_at"],
                }
            else:
                m["reply_to_message"] = None
        return items, total

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        convo = await self.get_conversation(conversation_id, user_id)
        convo_oid = ObjectId(convo["_id"])
        modified = await self._message_repo.mark_read(convo_oid, user_id, self._clock())
        await self._conversation_repo.reset_unread(convo_oid, user_id)
        return modified

    async def _get_message(self, message_id: str) -> Dict[str, Any]:
        message = await self._message_repo.get_by_id(to_object_id(message_id, "message ID"))
        if message is None:
            raise NotFound("Message not found")
        return message

    async def edit_message(self, message_id: str, user_id: str, content: Optional[str]) -> Dict[str, Any]:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Content is required")
        message = await self._get_message(message_id)
        if message.get("deleted_at") is not None:
            raise NotFound("Message not found")
        if message["sender_id"] != user_id:
            raise Forbidden("Only the sender can edit this message")
        if message.get("attachment_url"):
            raise InvalidState("Messages with attachments cannot be edited")
        now = self._clock()
        if now - message["created_at"] > EDIT_WINDOW:
            raise InvalidState("Message can only be edited within 15 minutes of sending")
        updated = await self._message_repo.update_content(ObjectId(message["_id"]), user_id, text, now)
        if updated is None:
            # deleted between the checks and the write
            raise InvalidState("Message can no longer be edited")
        return updated

    async def delete_message(self, message_id: str, user_id: str, for_everyone: bool = False) -> Tuple[Dict[str, Any], str]:
        message = await self._get_message(message_id)
        message_oid = ObjectId(message["_id"])
        now = self._clock()

        if message.get("deleted_at") is None and for_everyone:
            if message["sender_id"] != user_id:
                raise Forbidden("Only the sender can delete a message for everyone")
            if now - message["created_at"] > DELETE_FOR_EVERYONE_WINDOW:
                raise InvalidState("Message can only be deleted for everyone within 7 days of sending")
            if await self._message_repo.delete_for_everyone(message_oid, now):
                logger.info("message %s deleted for everyone by %s", message["_id"], user_id)
                return message, DELETED_FOR_EVERYONE

        # already deleted for everyone, or a delete-for-me request; unread counters are left alone
        convo = await self._conversation_repo.get_by_id(ObjectId(message["conversation_id"]))
        if convo is None or user_id not in convo["participants"]:
            raise Forbidden("You are not a participant in this conversation")
        await self._message_repo.delete_for_user(message_oid, user_id, now)
        return message, DELETED_FOR_ME
