from typing import List, Optional

from core.errors import conflict, handle_supabase_error, not_found
from core.supabase_client import get_supabase_client
from core.utils import filter_search_term, utcnow_iso
from models.enums import ActivityType
from models.parcel import SavedParcelCreate
from models.workspace import WorkspaceAccess
from services.audit import log_activity


MAX_SEARCH_RESULTS = 50


def search_parcels(q: str, limit: int = 20) -> List[dict]:
    """Case-insensitive match on address or APN."""
    term = filter_search_term(q)
    if not term:
        return []

    client = get_supabase_client()
    result = (
        client.table("parcels")
        .select("*")
        .or_(f"address.ilike.%{term}%,apn.ilike.%{term}%")
        .limit(min(limit, MAX_SEARCH_RESULTS))
        .execute()
    )
    return result.data or []


def get_parcel(parcel_id: str) -> dict:
    client = get_supabase_client()
    result = client.table("parcels").select("*").eq("id", parcel_id).limit(1).execute()
    if not result.data:
        raise not_found("Parcel not found")
    return result.data[0]


def record_parcel_selected(access: WorkspaceAccess, parcel: dict, source: Optional[str] = None) -> None:
    log_activity(access.user_id, access.workspace_id, ActivityType.parcel_selected.value, {
        "parcel_id": parcel["id"],
        "apn": parcel.get("apn"),
        "address": parcel.get("address"),
        "source": source,
    })


# ------------------------------------------------------------
# Saved parcels
# ------------------------------------------------------------
def list_saved_parcels(workspace_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("saved_parcels")
        .select("*")
        .eq("workspace_id", workspace_id)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def save_parcel(access: WorkspaceAccess, payload: SavedParcelCreate) -> dict:
    get_parcel(payload.parcel_id)

    client = get_supabase_client()
    existing = (
        client.table("saved_parcels")
        .select("id")
        .eq("workspace_id", access.workspace_id)
        .eq("parcel_id", payload.parcel_id)
        .limit(1)
        .execute()
    )
    if existing.data:
        raise conflict("Parcel already saved in this workspace")

    try:
        result = client.table("saved_parcels").insert({
            "workspace_id": access.workspace_id,
            "parcel_id": payload.parcel_id,
            "saved_by": access.user_id,
            "notes": payload.notes,
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to save parcel", 500)

    return result.data[0]


def unsave_parcel(access: WorkspaceAccess, parcel_id: str) -> None:
    client = get_supabase_client()
    existing = (
        client.table("saved_parcels")
        .select("id")
        .eq("workspace_id", access.workspace_id)
        .eq("parcel_id", parcel_id)
        .limit(1)
        .execute()
    )
    if not existing.data:
        raise not_found("Saved parcel not found")

    client.table("saved_parcels").delete().eq("id", existing.data[0]["id"]).execute()
