"""
Admin API routes.
Provides report review, user management, and the relationship audit.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from profinder.api.v1.results import raise_for_result
from profinder.dependencies import get_admin_user, get_pagination_params, get_store
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.admin import AdminUserList, BulkActionResult, BulkUserAction
from profinder.schemas.auth import ActorContext
from profinder.schemas.connection import ActionResponse, AuditReport, ReportResponse
from profinder.schemas.user import OwnProfileResponse, ProfileUpdate
from profinder.services.admin_service import AdminService
from profinder.services.audit_service import AuditService
from profinder.services.user_service import UserService

router = APIRouter()


@router.get(
    "/reports",
    response_model=List[ReportResponse],
    summary="List reports"
)
async def list_reports(
    pagination: dict = Depends(get_pagination_params),
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Reports, newest first."""
    reports = await store.list_reports(limit=pagination["limit"], offset=pagination["offset"])
    return [ReportResponse.from_report(report) for report in reports]


@router.delete(
    "/reports/{report_id}",
    response_model=ActionResponse,
    summary="Resolve report"
)
async def resolve_report(
    report_id: str,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Resolve a report by deleting it."""
    if not await store.delete_report(report_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found"
        )
    return ActionResponse(success=True, detail="Report resolved")


@router.post(
    "/users/{user_id}/suspend",
    response_model=OwnProfileResponse,
    summary="Suspend user"
)
async def suspend_user(
    user_id: str,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Hide a user from discovery and profile lookups."""
    result = await UserService(store).set_suspended(user_id, True)
    return raise_for_result(result).data


@router.delete(
    "/users/{user_id}/suspend",
    response_model=OwnProfileResponse,
    summary="Reinstate user"
)
async def unsuspend_user(
    user_id: str,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Lift a suspension."""
    result = await UserService(store).set_suspended(user_id, False)
    return raise_for_result(result).data


@router.get(
    "/users",
    response_model=AdminUserList,
    summary="List users",
    description="Every user, suspended ones included, with sorting and search."
)
async def list_users(
    q: Optional[str] = Query(None, description="Search over name, area and profession"),
    sort: str = Query("created_at", description="Column to sort by"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    pagination: dict = Depends(get_pagination_params),
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Page through the user table."""
    try:
        return await AdminService(store).list_users(
            query=q,
            sort_by=sort,
            descending=order == "desc",
            limit=pagination["limit"],
            offset=pagination["offset"],
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post(
    "/users/bulk",
    response_model=BulkActionResult,
    summary="Bulk user action",
    description="Suspend, reinstate or delete several users; each user succeeds or fails on its own."
)
async def bulk_user_action(
    body: BulkUserAction,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Apply one action to several users."""
    return await AdminService(store).bulk_action(body.action, body.user_ids)


@router.patch(
    "/users/{user_id}",
    response_model=OwnProfileResponse,
    summary="Edit user"
)
async def update_user(
    user_id: str,
    data: ProfileUpdate,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Edit a user's profile fields. Relationship sets cannot be edited here."""
    result = await AdminService(store).update_user(user_id, data)
    return raise_for_result(result).data


@router.delete(
    "/users/{user_id}",
    response_model=ActionResponse,
    summary="Delete user",
    description="Delete a user and remove them from every other user's relationship sets."
)
async def delete_user(
    user_id: str,
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Delete a user account."""
    result = await AdminService(store).delete_user(user_id)
    raise_for_result(result)
    return ActionResponse(success=True, detail="User deleted", data=result.data)


@router.get(
    "/audit",
    response_model=AuditReport,
    summary="Audit relationship sets"
)
async def audit_relationships(
    repair: bool = Query(False, description="Repair fixable inconsistencies"),
    admin: ActorContext = Depends(get_admin_user),
    store: RelationshipStore = Depends(get_store)
):
    """Report (and optionally repair) inconsistent relationship sets."""
    return await AuditService(store).audit(repair=repair)
