from datetime import datetime
from typing import Dict, List, Optional, TypedDict


class ConversationDocument(TypedDict, total=False):
    _id: str
    # exactly two user ids, stored sorted
    participants: List[str]
    last_message_id: Optional[str]
    last_message_at: Optional[datetime]
    # per-user unread counters (user_id -> count), missing key means 0
    unread_counts: Dict[str, int]
    deleted_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
