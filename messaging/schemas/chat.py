import math
from typing import Optional

from pydantic import BaseModel, Field


class ConversationCreate(BaseModel):

    participant_id: Optional[str] = None


class MessageCreate(BaseModel):

    content: Optional[str] = None
    attachment_url: Optional[str] = None
    # MIME type reported by the upload endpoint, used for the placeholder label
    attachment_type: Optional[str] = None
    reply_to: Optional[str] = None


class MessageUpdate(BaseModel):

    content: str = Field(min_length=1)


class MessageDelete(BaseModel):

    delete_for_everyone: bool = False


class MarkReadRequest(BaseModel):

    conversation_id: str


class TypingUpdate(BaseModel):

    is_typing: bool = True


class Pagination(BaseModel):

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
