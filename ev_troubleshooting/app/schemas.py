"""
API Layer - Response Schemas

Pydantic models for the HTTP endpoints that sit next to the bot.
"""

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    mode: str
    bot_running: bool
    public_url: Optional[str] = None
    webhook_url: Optional[str] = None
    secret_enabled: bool
    packs: dict[str, int]


class DebugPackResponse(BaseModel):
    """What the bot loaded for one pack, for checking YAML edits on a live deploy."""
    pack: str
    source: Optional[str] = None
    exists: bool
    fault_count: int
    titles: list[str]


class WebhookAck(BaseModel):
    ok: bool
