from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from messaging.models.conversation import ConversationDocument
from messaging.utils.documents import normalize


def pair_key(participants: Sequence[str]) -> str:
    return ":".join(sorted(participants))


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("participants", ASCENDING)])
        await self.collection.create_index([("last_message_at", DESCENDING)])
        # only live conversations carry active_pair, so a pair can be reopened after a soft delete
        await self.collection.create_index([("active_pair", ASCENDING)], unique=True, sparse=True)

    async def get_or_create_one_to_one(self, user_a: str, user_b: str, now: datetime) -> Tuple[ConversationDocument, bool]:
        participants = sorted([user_a, user_b])
        key = pair_key(participants)
        result = await self.collection.update_one(
            {"active_pair": key},
            {
                "$setOnInsert": {
                    "participants": participants,
                    "last_message_id": None,
                    "last_message_at": None,
                    "unread_counts": {},
                    "deleted_at": None,
                    "created_at": now,
                    "updated_at": now,
                }
            },
            upsert=True,
        )
        doc = await self.collection.find_one({"active_pair": key})
        return normalize(doc), result.upserted_id is not None

    async def get_by_id(self, conversation_id: ObjectId) -> Optional[ConversationDocument]:
        return normalize(await self.collection.find_one({"_id": conversation_id}))

    async def touch_on_send(self, conversation_id: ObjectId, participants: Sequence[str], message: Dict[str, Any]) -> None:
        sender_id = message["sender_id"]
        increments = {f"unread_counts.{p}": 1 for p in participants if p != sender_id}
        update: Dict[str, Any] = {
            "$set": {
                "last_message_id": ObjectId(message["_id"]),
                "last_message_at": message["created_at"],
                "updated_at": message["created_at"],
            },
        }
        if increments:
            update["$inc"] = increments
        await self.collection.update_one({"_id": conversation_id}, update)

    async def reset_unread(self, conversation_id: ObjectId, user_id: str) -> None:
        await self.collection.update_one(
            {"_id": conversation_id},
            {"$set": {f"unread_counts.{user_id}": 0}},
        )

    async def soft_delete(self, conversation_id: ObjectId, user_id: str, now: datetime) -> bool:
        result = await self.collection.update_one(
            {"_id": conversation_id, "participants": user_id, "deleted_at": None},
            {
                "$set": {"deleted_at": now, "updated_at": now},
                "$unset": {"active_pair": ""},
            },
        )
        return result.modified_count > 0

    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[ConversationDocument], int]:
        query = {"participants": user_id, "deleted_at": None}
        # null last_message_at sorts lowest, so empty conversations land at the end
        sort = [("last_message_at", DESCENDING), ("created_at", DESCENDING), ("_id", DESCENDING)]
        cursor = self.collection.find(query).sort(sort).skip((page - 1) * limit).limit(limit)
        items = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        return [normalize(it) for it in items], total
