from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import RegistrationType


class AccessRequest(BaseModel):
    player_id: uuid.UUID
    player_name: str = Field(min_length=1, max_length=32)
    server: str = Field(min_length=1, max_length=64)


class AccessResponse(BaseModel):
    allowed: bool
    reason: str


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    player_id: uuid.UUID
    player_name: str
    server_name: str
    registration_type: RegistrationType
    reason: Optional[str] = None
    added_by: Optional[str] = None
    inviter_chat_id: Optional[str] = None
    created_at: datetime
    expires_at: Optional[datetime] = None
    active: bool
    is_valid: bool


class JoinResponse(BaseModel):
    added: bool
    entry: Optional[EntryOut] = None


class ActivateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=16)
    player_id: uuid.UUID
    player_name: str = Field(min_length=1, max_length=32)
    server: Optional[str] = None


class ActivateResponse(BaseModel):
    success: bool
    reason: str
    message: str
    entry: Optional[EntryOut] = None


class ServerRegister(BaseModel):
    display_name: Optional[str] = None
    whitelist_enabled: bool = True


class WhitelistToggle(BaseModel):
    enabled: bool


class ServerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    display_name: str
    whitelist_enabled: bool
    last_heartbeat: Optional[datetime] = None
    is_online: bool


class EntryCreate(BaseModel):
    player_id: uuid.UUID
    player_name: str = Field(min_length=1, max_length=32)
    server: Optional[str] = None
    registration_type: RegistrationType = RegistrationType.MANUAL
    reason: Optional[str] = None
    added_by: Optional[str] = None
    expires_at: Optional[datetime] = None


class EntryUpdate(BaseModel):
    player_name: Optional[str] = Field(default=None, min_length=1, max_length=32)
    reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    active: Optional[bool] = None


class InviteCreate(BaseModel):
    player_id: uuid.UUID
    player_name: str = Field(min_length=1, max_length=32)
    inviter_name: str
    inviter_player_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    server: Optional[str] = None


class EntryPage(BaseModel):
    items: list[EntryOut]
    page: int
    pages: int
    total: int


class LinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: uuid.UUID
    player_name: str
    chat_id: str
    chat_username: Optional[str] = None
    linked_at: datetime


class InvalidateRequest(BaseModel):
    player_id: Optional[uuid.UUID] = None
    server: Optional[str] = None


class InvalidateResponse(BaseModel):
    scope: str
    removed: int
