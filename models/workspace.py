from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, EmailStr, field_validator

from models.enums import WorkspaceRole, InviteStatus, MemberStatus


HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


# -----------------------------------------------------
# ACCESS RESULTS
# -----------------------------------------------------
class MembershipResult(BaseModel):
    """
    ok=True carries the member's role.
    reason is one of NOT_MEMBER, DELETED, SUSPENDED, UNKNOWN when ok=False.
    """

    ok: bool
    role: Optional[WorkspaceRole] = None
    reason: Optional[str] = None


class WorkspaceAccessResult(BaseModel):
    workspace_exists: bool
    is_member: bool
    is_admin: bool
    role: Optional[WorkspaceRole] = None
    reason: Optional[str] = None
    workspace: Optional[dict] = None


class WorkspaceAccess(BaseModel):
    """What workspace-scoped dependencies hand to route handlers."""

    workspace_id: str
    user_id: str
    user_email: str
    role: WorkspaceRole
    workspace: dict = {}

    @property
    def is_admin(self) -> bool:
        return self.role in (WorkspaceRole.owner, WorkspaceRole.admin)

    @property
    def is_owner(self) -> bool:
        return self.role == WorkspaceRole.owner


# -----------------------------------------------------
# WORKSPACE CRUD
# -----------------------------------------------------
class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    brand_name: Optional[str] = Field(None, max_length=120)
    brand_primary_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    brand_logo_url: Optional[str] = Field(None, max_length=2048)


class WorkspaceRead(BaseModel):
    id: str
    name: str
    slug: Optional[str] = None
    created_by: Optional[str] = None
    brand_name: Optional[str] = None
    brand_primary_color: Optional[str] = None
    brand_logo_url: Optional[str] = None
    role: Optional[WorkspaceRole] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkspaceResponse(BaseModel):
    workspace: WorkspaceRead


class WorkspaceListResponse(BaseModel):
    workspaces: List[WorkspaceRead]


class ActiveWorkspaceSet(BaseModel):
    workspace_id: str


# -----------------------------------------------------
# MEMBERS & INVITES
# -----------------------------------------------------
class MemberRead(BaseModel):
    id: Optional[str] = None
    workspace_id: str
    user_id: str
    email: Optional[str] = None
    role: WorkspaceRole
    status: MemberStatus = MemberStatus.active
    joined_at: Optional[datetime] = None


class MemberResponse(BaseModel):
    member: MemberRead


class MemberListResponse(BaseModel):
    members: List[MemberRead]


class MemberRoleUpdate(BaseModel):
    role: WorkspaceRole


class InviteCreate(BaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.member


class InviteRead(BaseModel):
    """Never carries the invite token."""

    id: str
    workspace_id: str
    email: str
    role: WorkspaceRole
    status: InviteStatus
    invited_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class InviteResponse(BaseModel):
    invite: InviteRead


class InviteListResponse(BaseModel):
    invites: List[InviteRead]


class InviteAccept(BaseModel):
    token: str = Field(..., min_length=1)
