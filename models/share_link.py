from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from models.enums import ShareRole


class ShareLinkCreate(BaseModel):
    recipient_contact_id: Optional[str] = None
    recipient_email: Optional[EmailStr] = None
    recipient_name: Optional[str] = Field(None, max_length=200)
    access_role: ShareRole = ShareRole.viewer
    requires_auth: bool = False
    expires_in_days: int = Field(7, ge=1, le=90)
    max_views: Optional[int] = Field(None, ge=1)
    password: Optional[str] = Field(None, min_length=4, max_length=128)
    allowed_domains: Optional[List[str]] = None
    rate_limit_per_hour: Optional[int] = Field(None, ge=1, le=10000)
    notify_recipient: bool = False
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("allowed_domains")
    @classmethod
    def normalize_domains(cls, v):
        if v is None:
            return v
        cleaned = [d.strip().lower() for d in v if d and d.strip()]
        return cleaned or None


class ShareLinkRead(BaseModel):
    """Never carries the token or password hash."""

    id: str
    workspace_id: str
    report_id: str
    short_code: Optional[str] = None
    created_by: Optional[str] = None
    recipient_contact_id: Optional[str] = None
    recipient_email: Optional[str] = None
    access_role: ShareRole
    requires_auth: bool = False
    has_password: bool = False
    expires_at: Optional[datetime] = None
    max_views: Optional[int] = None
    view_count: int = 0
    allowed_domains: Optional[List[str]] = None
    rate_limit_per_hour: Optional[int] = None
    revoked_at: Optional[datetime] = None
    first_viewed_at: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ShareLinkCreated(ShareLinkRead):
    """Creation response: the only time the full token is returned."""

    token: str
    url: str
    permissions: List[str]


class ShareLinkEvent(BaseModel):
    id: Optional[str] = None
    share_link_id: str
    event_type: str
    actor_user_id: Optional[str] = None
    actor_ip_address: Optional[str] = None
    actor_user_agent: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None


class ShareLinkResponse(BaseModel):
    share_link: ShareLinkRead


class ShareLinkCreatedResponse(BaseModel):
    share_link: ShareLinkCreated


class ShareLinkListResponse(BaseModel):
    share_links: List[ShareLinkRead]


class ShareLinkEventListResponse(BaseModel):
    events: List[ShareLinkEvent]
