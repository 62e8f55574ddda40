from datetime import datetime
from typing import List, Optional, TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    conversation_id: str
    sender_id: str
    content: str
    attachment_url: Optional[str]
    reply_to: Optional[str]
    # read receipts, always contains the sender
    read_by: List[str]
    read_at: Optional[datetime]
    edited_at: Optional[datetime]
    # deleted for everyone
    deleted_at: Optional[datetime]
    # deleted for me
    deleted_for: List[str]
    created_at: datetime
    updated_at: datetime
