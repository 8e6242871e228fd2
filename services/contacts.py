"""
Workspace contacts (light CRM), per-contact sharing permissions and bulk
import of already-parsed rows.
"""

from typing import List, Optional

from pydantic import ValidationError

from core.errors import conflict, handle_supabase_error, not_found, validation_error
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import filter_search_term, sanitize, utcnow_iso
from models.contact import (
    ContactCreate,
    ContactImportError,
    ContactImportResult,
    ContactPermissionGrant,
    ContactUpdate,
    check_membership_rule,
)
from models.enums import ActivityType
from models.workspace import WorkspaceAccess
from services.audit import audit_contact_created, audit_contacts_imported, log_activity


MAX_IMPORT_ROWS = 1000


# ============================================================
# Lookups
# ============================================================
def fetch_contact(workspace_id: str, contact_id: str) -> Optional[dict]:
    client = get_supabase_client()
    result = (
        client.table("contacts")
        .select("*")
        .eq("id", contact_id)
        .eq("workspace_id", workspace_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_contact_or_404(workspace_id: str, contact_id: str) -> dict:
    contact = fetch_contact(workspace_id, contact_id)
    if contact is None:
        raise not_found("Contact not found")
    return contact


def _existing_emails(workspace_id: str) -> set:
    client = get_supabase_client()
    result = client.table("contacts").select("email").eq("workspace_id", workspace_id).execute()
    return {(row.get("email") or "").lower() for row in result.data or []}


def _email_taken(workspace_id: str, email: str, exclude_id: Optional[str] = None) -> bool:
    client = get_supabase_client()
    query = (
        client.table("contacts")
        .select("id")
        .eq("workspace_id", workspace_id)
        .eq("email", email.lower())
    )
    if exclude_id:
        query = query.neq("id", exclude_id)
    return bool(query.limit(1).execute().data)


# ============================================================
# CRUD
# ============================================================
def list_contacts(
    workspace_id: str,
    contact_type: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 100,
) -> List[dict]:
    client = get_supabase_client()
    query = client.table("contacts").select("*").eq("workspace_id", workspace_id)

    if contact_type:
        query = query.eq("contact_type", contact_type)
    if search:
        term = filter_search_term(search)
        query = query.or_(f"email.ilike.%{term}%,first_name.ilike.%{term}%,last_name.ilike.%{term}%")

    result = query.order("created_at", desc=True).limit(limit).execute()
    return result.data or []


def _contact_row(access: WorkspaceAccess, payload: ContactCreate) -> dict:
    row = payload.model_dump(mode="json")
    row["email"] = row["email"].lower()
    now = utcnow_iso()
    row.update({
        "workspace_id": access.workspace_id,
        "created_by": access.user_id,
        "created_at": now,
        "updated_at": now,
    })
    return row


def create_contact(access: WorkspaceAccess, payload: ContactCreate) -> dict:
    if _email_taken(access.workspace_id, str(payload.email)):
        raise conflict("A contact with this email already exists in this workspace")

    client = get_supabase_client()
    try:
        result = client.table("contacts").insert(_contact_row(access, payload)).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create contact", 500)

    contact = result.data[0]
    audit_contact_created(access.user_id, access.workspace_id, contact["id"])
    return contact


def update_contact(access: WorkspaceAccess, contact_id: str, payload: ContactUpdate) -> dict:
    contact = get_contact_or_404(access.workspace_id, contact_id)
    updates = payload.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise validation_error("No fields to update")

    merged = {**contact, **updates}
    try:
        check_membership_rule(merged.get("contact_type"), merged.get("membership_status"))
    except ValueError as e:
        raise validation_error(str(e), details=[{"field": "membership_status", "issue": str(e)}])

    if "email" in updates:
        updates["email"] = updates["email"].lower()
        if _email_taken(access.workspace_id, updates["email"], exclude_id=contact_id):
            raise conflict("A contact with this email already exists in this workspace")

    updates["updated_at"] = utcnow_iso()

    client = get_supabase_client()
    try:
        result = (
            client.table("contacts")
            .update(updates)
            .eq("id", contact_id)
            .eq("workspace_id", access.workspace_id)
            .execute()
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update contact", 500)

    return result.data[0] if result.data else {**contact, **updates}


def delete_contact(access: WorkspaceAccess, contact_id: str) -> None:
    get_contact_or_404(access.workspace_id, contact_id)

    client = get_supabase_client()
    try:
        client.table("contact_permissions").delete().eq("contact_id", contact_id).execute()
        client.table("contacts").delete().eq("id", contact_id).eq("workspace_id", access.workspace_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete contact", 500)


# ============================================================
# Per-contact permissions
# ============================================================
def list_contact_permissions(contact_id: str) -> List[dict]:
    client = get_supabase_client()
    result = client.table("contact_permissions").select("*").eq("contact_id", contact_id).execute()
    return result.data or []


def grant_contact_permission(access: WorkspaceAccess, contact_id: str, grant: ContactPermissionGrant) -> dict:
    get_contact_or_404(access.workspace_id, contact_id)

    row = {
        "contact_id": contact_id,
        "user_id": grant.user_id,
        "can_share": grant.can_share,
        "can_view_details": grant.can_view_details,
        "can_edit": grant.can_edit,
        "granted_by": access.user_id,
        "granted_at": utcnow_iso(),
    }

    client = get_supabase_client()
    try:
        result = client.table("contact_permissions").upsert(row, on_conflict="contact_id,user_id").execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to grant contact permission", 500)

    return result.data[0] if result.data else row


def revoke_contact_permission(access: WorkspaceAccess, contact_id: str, user_id: str) -> None:
    get_contact_or_404(access.workspace_id, contact_id)

    client = get_supabase_client()
    try:
        client.table("contact_permissions").delete().eq("contact_id", contact_id).eq("user_id", user_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to revoke contact permission", 500)


def can_share_contact(user_id: str, contact_id: str) -> bool:
    try:
        client = get_supabase_client()
        result = (
            client.table("contact_permissions")
            .select("can_share")
            .eq("contact_id", contact_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Contact permission lookup failed for {contact_id}: {e}")
        return False
    return bool(result.data and result.data[0].get("can_share"))


# ============================================================
# Import
# ============================================================
def _row_error(index: int, raw: dict, err: Exception) -> ContactImportError:
    if isinstance(err, ValidationError):
        first = err.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "row"
        message = f"{field}: {first.get('msg')}"
    else:
        message = str(err)
    return ContactImportError(row=index, email=raw.get("email") if isinstance(raw, dict) else None, error=message)


def import_contacts(access: WorkspaceAccess, rows: List[dict], file_name: Optional[str] = None) -> ContactImportResult:
    """
    Each row is validated on its own: bad rows are counted as failed,
    duplicates (already stored or repeated in the batch) as skipped.
    """
    if len(rows) > MAX_IMPORT_ROWS:
        raise validation_error(f"At most {MAX_IMPORT_ROWS} rows per import")

    seen = _existing_emails(access.workspace_id)
    to_insert = []
    errors: List[ContactImportError] = []
    skipped = 0

    for index, raw in enumerate(rows, start=1):
        try:
            contact = ContactCreate(**sanitize(raw))
        except (ValidationError, ValueError, TypeError) as e:
            errors.append(_row_error(index, raw, e))
            continue

        email = str(contact.email).lower()
        if email in seen:
            skipped += 1
            continue

        seen.add(email)
        to_insert.append(_contact_row(access, contact))

    client = get_supabase_client()
    if to_insert:
        try:
            client.table("contacts").insert(to_insert).execute()
        except Exception as e:
            raise handle_supabase_error(e, "Failed to import contacts", 500)

    result = ContactImportResult(
        imported=len(to_insert),
        skipped=skipped,
        failed=len(errors),
        errors=errors,
    )

    upload_id = None
    try:
        upload = client.table("contact_upload_audits").insert({
            "workspace_id": access.workspace_id,
            "uploaded_by": access.user_id,
            "file_name": file_name,
            "total_rows": len(rows),
            "imported": result.imported,
            "skipped": result.skipped,
            "failed": result.failed,
            "created_at": utcnow_iso(),
        }).execute()
        if upload.data:
            upload_id = upload.data[0].get("id")
    except Exception as e:
        logger.error(f"Failed to write contact upload audit for {access.workspace_id}: {e}")

    counts = {"imported": result.imported, "skipped": result.skipped, "failed": result.failed}
    audit_contacts_imported(access.user_id, access.workspace_id, upload_id, counts)
    log_activity(access.user_id, access.workspace_id, ActivityType.contacts_imported.value, {
        "upload_id": upload_id,
        "file_name": file_name,
        **counts,
    })

    logger.info(f"Contacts import in {access.workspace_id}: {counts}")
    return result
