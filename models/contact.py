from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from models.enums import ContactMembershipStatus, ContactType, VerificationStatus


def check_membership_rule(contact_type, membership_status):
    """hoa_member needs a membership status; every other type must not carry one."""
    if contact_type == ContactType.hoa_member and membership_status is None:
        raise ValueError("membership_status is required for hoa_member contacts")
    if contact_type is not None and contact_type != ContactType.hoa_member and membership_status is not None:
        raise ValueError("membership_status is only allowed for hoa_member contacts")


class ContactBase(BaseModel):
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=40)
    contact_type: ContactType = ContactType.external
    verification_status: VerificationStatus = VerificationStatus.unverified
    hoa_id: Optional[str] = None
    parcel_id: Optional[str] = None
    membership_status: Optional[ContactMembershipStatus] = None
    metadata: Optional[dict] = None


class ContactCreate(ContactBase):
    @model_validator(mode="after")
    def validate_membership(self):
        check_membership_rule(self.contact_type, self.membership_status)
        return self


class ContactUpdate(BaseModel):
    """Partial update; the membership rule is checked against the merged record."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=40)
    contact_type: Optional[ContactType] = None
    verification_status: Optional[VerificationStatus] = None
    hoa_id: Optional[str] = None
    parcel_id: Optional[str] = None
    membership_status: Optional[ContactMembershipStatus] = None
    metadata: Optional[dict] = None


class ContactRead(ContactBase):
    id: str
    workspace_id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContactResponse(BaseModel):
    contact: ContactRead


class ContactListResponse(BaseModel):
    contacts: List[ContactRead]


class ContactPermissionGrant(BaseModel):
    user_id: str
    can_share: bool = False
    can_view_details: bool = True
    can_edit: bool = False


class ContactImportRequest(BaseModel):
    """Rows already parsed from the uploaded file (one dict per row)."""

    file_name: Optional[str] = Field(None, max_length=255)
    rows: List[dict] = Field(..., max_length=1000)


class ContactImportError(BaseModel):
    row: int
    email: Optional[str] = None
    error: str


class ContactImportResult(BaseModel):
    imported: int
    skipped: int
    failed: int
    errors: List[ContactImportError] = []
