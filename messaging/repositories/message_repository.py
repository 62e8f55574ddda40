from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from messaging.models.message import MessageDocument
from messaging.utils.documents import normalize


def visible_to(conversation_id: ObjectId, viewer_id: str) -> Dict[str, Any]:
    # deleted for everyone, or deleted for this viewer
    return {
        "conversation_id": conversation_id,
        "deleted_at": None,
        "deleted_for": {"$ne": viewer_id},
    }


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("conversation_id", ASCENDING), ("created_at", DESCENDING)])
        await self.collection.create_index([("sender_id", ASCENDING)])

    async def save_message(
        self,
        conversation_id: ObjectId,
        sender_id: str,
        content: str,
        now: datetime,
        attachment_url: Optional[str] = None,
        reply_to: Optional[ObjectId] = None,
    ) -> MessageDocument:
        doc: Dict[str, Any] = {
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "attachment_url": attachment_url,
            "reply_to": reply_to,
            "read_by": [sender_id],
            "read_at": None,
            "edited_at": None,
            "deleted_at": None,
            "deleted_for": [],
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return normalize(doc)

    async def get_by_id(self, message_id: ObjectId) -> Optional[MessageDocument]:
        return normalize(await self.collection.find_one({"_id": message_id}))

    async def get_many(self, message_ids: Iterable[ObjectId]) -> Dict[str, MessageDocument]:
        ids = list(message_ids)
        if not ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": ids}})
        items = await cursor.to_list(length=len(ids))
        return {str(it["_id"]): normalize(it) for it in items}

    async def find_live_in_conversation(self, message_id: ObjectId, conversation_id: ObjectId) -> Optional[MessageDocument]:
        doc = await self.collection.find_one(
            {"_id": message_id, "conversation_id": conversation_id, "deleted_at": None}
        )
        return normalize(doc)

    async def get_visible_page(
        self,
        conversation_id: ObjectId,
        viewer_id: str,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[MessageDocument], int]:
        query = visible_to(conversation_id, viewer_id)
        # filter inside the query so skip/limit count visible messages only
        cursor = (
            self.collection.find(query)
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        items = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        # return ascending chronological order for UI
        return [normalize(it) for it in reversed(items)], total

    async def mark_read(self, conversation_id: ObjectId, reader_id: str, now: datetime) -> int:
        result = await self.collection.update_many(
            {
                "conversation_id": conversation_id,
                "sender_id": {"$ne": reader_id},
                "read_by": {"$ne": reader_id},
                "deleted_at": None,
            },
            {
                "$addToSet": {"read_by": reader_id},
                "$set": {"read_at": now, "updated_at": now},
            },
        )
        return result.modified_count or 0

    async def update_content(
        self,
        message_id: ObjectId,
        sender_id: str,
        content: str,
        now: datetime,
    ) -> Optional[MessageDocument]:
        doc = await self.collection.find_one_and_update(
            {
                "_id": message_id,
                "sender_id": sender_id,
                "deleted_at": None,
                "attachment_url": None,
            },
            {"$set": {"content": content, "edited_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return normalize(doc)

    async def delete_for_everyone(self, message_id: ObjectId, now: datetime) -> bool:
        result = await self.collection.update_one(
            {"_id": message_id, "deleted_at": None},
            {"$set": {"deleted_at": now, "deleted_for": [], "updated_at": now}},
        )
        return result.modified_count > 0

    async def delete_for_user(self, message_id: ObjectId, user_id: str, now: datetime) -> bool:
        result = await self.collection.update_one(
            {"_id": message_id, "deleted_for": {"$ne": user_id}},
            {"$addToSet": {"deleted_for": user_id}, "$set": {"updated_at": now}},
        )
        return result.modified_count > 0
