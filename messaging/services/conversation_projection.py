from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from messaging.repositories.message_repository import MessageRepository
from messaging.repositories.user_repository import UserRepository
from messaging.services.chat_service import is_visible_to


THERAPIST_ROLE = "therapist"


def present_message(message: Dict[str, Any]) -> Dict[str, Any]:
    """API shape of a stored message; other viewers' hide-for-me markers are not exposed."""
    out = {k: v for k, v in message.items() if k not in ("_id", "deleted_for")}
    out["id"] = message["_id"]
    return out


class ConversationProjection:
    """Builds the per-viewer view of conversations for the read side."""

    def __init__(self, user_repo: UserRepository, message_repo: MessageRepository) -> None:
        self._user_repo = user_repo
        self._message_repo = message_repo

    async def project(self, conversation: Dict[str, Any], viewer_id: str) -> Dict[str, Any]:
        projected = await self.project_many([conversation], viewer_id)
        return projected[0]

    async def project_many(self, conversations: List[Dict[str, Any]], viewer_id: str) -> List[Dict[str, Any]]:
        last_ids = [ObjectId(c["last_message_id"]) for c in conversations if c.get("last_message_id")]
        messages = await self._message_repo.get_many(last_ids)

        user_ids = {p for c in conversations for p in c["participants"]}
        user_ids.update(m["sender_id"] for m in messages.values())
        users = await self._user_repo.get_users_by_ids(user_ids)
        photos = await self._resolve_photos(users.values())

        return [self._build(c, viewer_id, users, photos, messages) for c in conversations]

    async def _resolve_photos(self, users: Iterable[Dict[str, Any]]) -> Dict[str, Optional[str]]:
        users = list(users)
        therapist_ids = [u["_id"] for u in users if u.get("role") == THERAPIST_ROLE]
        therapist_photos = await self._user_repo.get_therapist_photos(therapist_ids)
        # a therapist's public profile photo wins over the account photo
        return {
            u["_id"]: therapist_photos.get(u["_id"]) or u.get("profile_photo") or None
            for u in users
        }

    def _build(
        self,
        conversation: Dict[str, Any],
        viewer_id: str,
        users: Dict[str, Dict[str, Any]],
        photos: Dict[str, Optional[str]],
        messages: Dict[str, Dict[str, Any]],
    ) -> Dict[str, Any]:
        other_id = next((p for p in conversation["participants"] if p != viewer_id), None)
        other = users.get(other_id) or {}

        last_message = None
        pointer = conversation.get("last_message_id")
        message = messages.get(pointer) if pointer else None
        if message is not None and is_visible_to(message, viewer_id):
            last_message = {
                "id": message["_id"],
                "content": message["content"],
                "sender_id": message["sender_id"],
                "sender_profile_photo": photos.get(message["sender_id"]),
                "created_at": message["created_at"],
                "read_by": message.get("read_by", []),
                "read_at": message.get("read_at"),
            }

        return {
            "id": conversation["_id"],
            "participants": conversation["participants"],
            "other_participant": {
                "id": other_id,
                "full_name": other.get("full_name"),
                "email": other.get("email"),
                "role": other.get("role"),
                "profile_photo": photos.get(other_id),
            },
            "last_message": last_message,
            "last_message_at": conversation.get("last_message_at"),
            "unread_count": conversation.get("unread_counts", {}).get(viewer_id, 0),
            "created_at": conversation.get("created_at"),
            "updated_at": conversation.get("updated_at"),
        }
