from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from messaging.repositories.conversation_repository import ConversationRepository
from messaging.repositories.message_repository import MessageRepository
from messaging.repositories.user_repository import UserRepository
from messaging.services.chat_service import ChatService
from messaging.services.conversation_projection import ConversationProjection


class FakeClock:

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def db():
    return AsyncMongoMockClient()["messaging_test"]


@pytest.fixture
async def users(db):
    docs = {
        "alice": {"_id": ObjectId(), "email": "alice@example.com", "full_name": "Alice Moreau", "role": "client", "profile_photo": "https://cdn.example.com/alice.png"},
        "bob": {"_id": ObjectId(), "email": "bob@example.com", "full_name": "Bob Okafor", "role": "therapist", "profile_photo": "https://cdn.example.com/bob-account.png"},
        "carol": {"_id": ObjectId(), "email": "carol@example.com", "full_name": "Carol Lind", "role": "client", "profile_photo": None},
    }
    await db["users"].insert_many(list(docs.values()))
    await db["therapists"].insert_one(
        {"user_id": str(docs["bob"]["_id"]), "profile_photo": "https://cdn.example.com/bob-therapist.png", "deleted_at": None}
    )
    return {name: str(doc["_id"]) for name, doc in docs.items()}


@pytest.fixture
def conversation_repo(db):
    return ConversationRepository(db)


@pytest.fixture
def message_repo(db):
    return MessageRepository(db)


@pytest.fixture
def user_repo(db):
    return UserRepository(db)


@pytest.fixture
def service(message_repo, conversation_repo, user_repo, clock):
    return ChatService(message_repo, conversation_repo, user_repo, clock=clock)


@pytest.fixture
def projection(user_repo, message_repo):
    return ConversationProjection(user_repo, message_repo)


@pytest.fixture
async def conversation(service, users):
    convo, _ = await service.get_or_create_conversation(users["alice"], users["bob"])
    return convo
