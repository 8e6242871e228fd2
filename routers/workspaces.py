# routers/workspaces.py

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from core.errors import api_error
from dependencies.auth import get_current_user, CurrentUser
from dependencies.workspace import requires_workspace_permission
from models.workspace import (
    ActiveWorkspaceSet,
    WorkspaceAccess,
    WorkspaceCreate,
    WorkspaceListResponse,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from services.workspaces import (
    create_workspace,
    delete_workspace,
    get_active_workspace,
    list_user_workspaces,
    set_active_workspace,
    update_workspace,
)


router = APIRouter(
    prefix="/workspaces",
    tags=["Workspaces"],
)


# ============================================================
# CREATE / LIST
# ============================================================
@router.post("", status_code=201, response_model=WorkspaceResponse, summary="Create workspace")
def create_workspace_endpoint(
    payload: WorkspaceCreate,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Any authenticated user can create a workspace.
    The creator becomes its owner and it starts on the free tier.
    """
    workspace = create_workspace(current_user, payload, request)
    return {"workspace": workspace}


@router.get("", response_model=WorkspaceListResponse, summary="List my workspaces")
def list_workspaces_endpoint(current_user: CurrentUser = Depends(get_current_user)):
    return {"workspaces": list_user_workspaces(current_user.id)}


# ============================================================
# ACTIVE WORKSPACE
# (declared before /{workspace_id} so "active" is not taken as an id)
# ============================================================
@router.get("/active", summary="Get active workspace")
def get_active_workspace_endpoint(current_user: CurrentUser = Depends(get_current_user)):
    return get_active_workspace(current_user.id)


@router.put("/active", summary="Set active workspace")
def set_active_workspace_endpoint(
    request: Request,
    payload: dict,
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Body: {"workspace_id": "<uuid>"}.
    Contract errors use the workspace_active_contract code.
    """
    try:
        body = ActiveWorkspaceSet(**payload)
    except ValidationError:
        raise api_error(
            400,
            "workspace_active_contract",
            "Body must be {\"workspace_id\": \"<uuid>\"}",
            details=[{"field": "workspace_id", "issue": "required"}],
        )
    return set_active_workspace(current_user.id, body.workspace_id)


# ============================================================
# SINGLE WORKSPACE
# ============================================================
@router.get("/{workspace_id}", response_model=WorkspaceResponse, summary="Get workspace")
def get_workspace_endpoint(access: WorkspaceAccess = Depends(requires_workspace_permission("workspace:read"))):
    return {"workspace": {**access.workspace, "role": access.role.value}}


@router.patch("/{workspace_id}", response_model=WorkspaceResponse, summary="Update workspace name / branding")
def update_workspace_endpoint(
    payload: WorkspaceUpdate,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("workspace:update")),
):
    updated = update_workspace(access.workspace, access.user_id, payload, request)
    return {"workspace": {**updated, "role": access.role.value}}


@router.delete("/{workspace_id}", summary="Delete workspace (soft)")
def delete_workspace_endpoint(
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("workspace:delete")),
):
    delete_workspace(access.workspace, access.user_id, request)
    return {"success": True, "workspace_id": access.workspace_id}
