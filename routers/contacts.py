# routers/contacts.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.utils import validate_uuid
from dependencies.workspace import requires_entitlement, requires_workspace_permission
from models.contact import (
    ContactCreate,
    ContactImportRequest,
    ContactImportResult,
    ContactListResponse,
    ContactPermissionGrant,
    ContactResponse,
    ContactUpdate,
)
from models.enums import ContactType
from models.workspace import WorkspaceAccess
from services.contacts import (
    create_contact,
    delete_contact,
    get_contact_or_404,
    grant_contact_permission,
    import_contacts,
    list_contact_permissions,
    list_contacts,
    revoke_contact_permission,
    update_contact,
)


router = APIRouter(
    prefix="/workspaces/{workspace_id}/contacts",
    tags=["Contacts"],
)


# ============================================================
# LIST / CREATE
# ============================================================
@router.get("", response_model=ContactListResponse, summary="List contacts")
def list_contacts_endpoint(
    contact_type: Optional[ContactType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=500),
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:read")),
):
    contacts = list_contacts(
        access.workspace_id,
        contact_type.value if contact_type else None,
        search,
        limit,
    )
    return {"contacts": contacts}


@router.post("", status_code=201, response_model=ContactResponse, summary="Create contact")
def create_contact_endpoint(
    payload: ContactCreate,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:write")),
):
    return {"contact": create_contact(access, payload)}


# ============================================================
# BULK IMPORT
# (declared before /{contact_id})
# ============================================================
@router.post("/import", response_model=ContactImportResult, summary="Import contacts")
def import_contacts_endpoint(
    payload: ContactImportRequest,
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-09:contact-upload", "contacts:import")),
):
    """
    Rows are already parsed client side.
    Bad rows fail individually; duplicates are skipped.
    """
    return import_contacts(access, payload.rows, payload.file_name)


# ============================================================
# SINGLE CONTACT
# ============================================================
@router.get("/{contact_id}", response_model=ContactResponse, summary="Get contact")
def get_contact_endpoint(
    contact_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:read")),
):
    validate_uuid(contact_id, "contact_id")
    return {"contact": get_contact_or_404(access.workspace_id, contact_id)}


@router.patch("/{contact_id}", response_model=ContactResponse, summary="Update contact")
def update_contact_endpoint(
    contact_id: str,
    payload: ContactUpdate,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:write")),
):
    validate_uuid(contact_id, "contact_id")
    return {"contact": update_contact(access, contact_id, payload)}


@router.delete("/{contact_id}", summary="Delete contact")
def delete_contact_endpoint(
    contact_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:delete")),
):
    validate_uuid(contact_id, "contact_id")
    delete_contact(access, contact_id)
    return {"success": True}


# ============================================================
# PER-CONTACT PERMISSIONS (admin)
# ============================================================
@router.get("/{contact_id}/permissions", summary="List contact permissions")
def list_contact_permissions_endpoint(
    contact_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:permissions")),
):
    validate_uuid(contact_id, "contact_id")
    get_contact_or_404(access.workspace_id, contact_id)
    return {"permissions": list_contact_permissions(contact_id)}


@router.put("/{contact_id}/permissions", summary="Grant contact permission")
def grant_contact_permission_endpoint(
    contact_id: str,
    payload: ContactPermissionGrant,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:permissions")),
):
    validate_uuid(contact_id, "contact_id")
    return {"permission": grant_contact_permission(access, contact_id, payload)}


@router.delete("/{contact_id}/permissions/{user_id}", summary="Revoke contact permission")
def revoke_contact_permission_endpoint(
    contact_id: str,
    user_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("contacts:permissions")),
):
    validate_uuid(contact_id, "contact_id")
    revoke_contact_permission(access, contact_id, user_id)
    return {"success": True}
