# routers/parcels.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.workspace import requires_entitlement
from models.parcel import (
    ParcelListResponse,
    ParcelResponse,
    SavedParcelCreate,
    SavedParcelListResponse,
    SavedParcelResponse,
)
from models.workspace import WorkspaceAccess
from services.parcels import (
    MAX_SEARCH_RESULTS,
    get_parcel,
    list_saved_parcels,
    record_parcel_selected,
    save_parcel,
    search_parcels,
    unsave_parcel,
)


router = APIRouter(
    prefix="/workspaces/{workspace_id}/parcels",
    tags=["Parcels"],
)


# ============================================================
# DISCOVERY
# ============================================================
@router.get("/search", response_model=ParcelListResponse, summary="Search parcels by address or APN")
def search_parcels_endpoint(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(20, ge=1, le=MAX_SEARCH_RESULTS),
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-01:parcel-discovery", "parcels:read")),
):
    return {"parcels": search_parcels(q, limit)}


# ============================================================
# SAVED PARCELS
# (declared before /{parcel_id} so "saved" is not taken as an id)
# ============================================================
@router.get("/saved", response_model=SavedParcelListResponse, summary="List saved parcels")
def list_saved_parcels_endpoint(
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-08:saved-parcels", "parcels:read")),
):
    return {"saved_parcels": list_saved_parcels(access.workspace_id)}


@router.post("/saved", status_code=201, response_model=SavedParcelResponse, summary="Save parcel")
def save_parcel_endpoint(
    payload: SavedParcelCreate,
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-08:saved-parcels", "parcels:save")),
):
    return {"saved_parcel": save_parcel(access, payload)}


@router.delete("/saved/{parcel_id}", summary="Unsave parcel")
def unsave_parcel_endpoint(
    parcel_id: str,
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-08:saved-parcels", "parcels:save")),
):
    unsave_parcel(access, parcel_id)
    return {"success": True}


# ============================================================
# PARCEL CONTEXT
# ============================================================
@router.get("/{parcel_id}", response_model=ParcelResponse, summary="Get parcel")
def get_parcel_endpoint(
    parcel_id: str,
    source: Optional[str] = Query(None, max_length=50),
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-02:parcel-context", "parcels:read")),
):
    parcel = get_parcel(parcel_id)
    record_parcel_selected(access, parcel, source)
    return {"parcel": parcel}
