"""Response schemas for the sync trigger and inspection endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SyncTriggerResponse(BaseModel):
    """JSON summary returned by the cron trigger."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    chats_synced: int = Field(serialization_alias="chatsSynced")
    messages_synced: int = Field(serialization_alias="messagesSynced")
    duration_ms: int = Field(serialization_alias="durationMs")
    error: Optional[str] = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chat_id: str
    title: str
    type: str
    username: Optional[str] = None
    member_count: Optional[int] = None
    is_active: bool = True
    last_message_id: int = 0
    oldest_message_id: Optional[int] = None
    last_synced_at: Optional[datetime] = None


class ChatListResponse(BaseModel):
    total: int
    chats: List[ChatResponse]


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chat_id: str
    message_id: int
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None
    text: str = ""
    date: datetime
    has_media: bool = False
    media_type: Optional[str] = None
    media_url: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    forward_from: Optional[str] = None
    entities: Optional[List[Dict[str, Any]]] = None
    buttons: Optional[List[Dict[str, Any]]] = None


class MessageListResponse(BaseModel):
    total: int
    limit: int
    offset: int
    messages: List[MessageResponse]


class SyncRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    status: str
    mode: str
    chats_synced: int = 0
    messages_synced: int = 0
    error_message: Optional[str] = None


class SyncStatsResponse(BaseModel):
    total_chats: int
    total_messages: int
    last_sync: Optional[SyncRunResponse] = None
