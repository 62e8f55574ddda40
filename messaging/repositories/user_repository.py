from typing import Dict, Iterable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from messaging.models.user import UserDocument
from messaging.utils.documents import normalize


# display fields only, never credentials
USER_PROJECTION = {"email": 1, "full_name": 1, "role": 1, "profile_photo": 1}


class UserRepository:
    """Read-only view over the platform's user directory."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")
        self._therapists = db.get_collection("therapists")

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:
        if not ObjectId.is_valid(user_id):
            return None
        user = await self._collection.find_one({"_id": ObjectId(user_id)}, USER_PROJECTION)
        return normalize(user)

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, UserDocument]:
        oids = [ObjectId(u) for u in set(user_ids) if ObjectId.is_valid(u)]
        if not oids:
            return {}
        cursor = self._collection.find({"_id": {"$in": oids}}, USER_PROJECTION)
        users = await cursor.to_list(length=len(oids))
        return {str(u["_id"]): normalize(u) for u in users}

    async def get_therapist_photos(self, user_ids: Iterable[str]) -> Dict[str, str]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        cursor = self._therapists.find(
            {"user_id": {"$in": ids}, "deleted_at": None},
            {"user_id": 1, "profile_photo": 1},
        )
        profiles = await cursor.to_list(length=len(ids))
        return {p["user_id"]: p["profile_photo"] for p in profiles if p.get("profile_photo")}
