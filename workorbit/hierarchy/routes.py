from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from workorbit.auth.models import User
from workorbit.core.database import get_db
from workorbit.core.dependencies import get_current_approver, get_current_user
from workorbit.core.route_decorators import handle_service_errors, log_route_access
from workorbit.hierarchy.schemas import (
    ApprovalEnvelope,
    ApproveRequestBody,
    HierarchyEnvelope,
    HRCodeValidationEnvelope,
    OrgCodeValidationEnvelope,
    PendingRequestsEnvelope,
    RejectionEnvelope,
    RejectRequestBody
)
from workorbit.hierarchy.service import HierarchyService
from workorbit.notifications.service import notification_dispatcher

router = APIRouter(prefix="/hierarchy", tags=["hierarchy"])


@router.get("/requests/pending", response_model=PendingRequestsEnvelope)
@handle_service_errors
@log_route_access
async def get_pending_requests(
    current_user: User = Depends(get_current_approver),
    db: Session = Depends(get_db)
):
    """Pending join requests the current admin/HR may act on, newest first."""
    requests = HierarchyService(db).list_pending(current_user)
    return {"success": True, "data": requests}


@router.put("/requests/{request_id}/approve", response_model=ApprovalEnvelope)
@handle_service_errors
@log_route_access
async def approve_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[ApproveRequestBody] = None,
    current_user: User = Depends(get_current_approver),
    db: Session = Depends(get_db)
):
    """Approve a pending join request and activate the requester."""
    body = body or ApproveRequestBody()
    outcome = HierarchyService(db).approve(
        request_id,
        current_user,
        department=body.department,
        designation=body.designation,
        message=body.message
    )

    # Runs after the response is sent, i.e. after the approval committed
    background_tasks.add_task(
        notification_dispatcher.notify_request_approved,
        outcome.join_request.organization_id,
        outcome.user.id,
        outcome.join_request.id,
        outcome.join_request.requested_role.value,
        current_user.name
    )

    return {
        "success": True,
        "message": "Request approved successfully",
        "data": {"join_request": outcome.join_request, "user": outcome.user}
    }


@router.put("/requests/{request_id}/reject", response_model=RejectionEnvelope)
@handle_service_errors
@log_route_access
async def reject_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[RejectRequestBody] = None,
    current_user: User = Depends(get_current_approver),
    db: Session = Depends(get_db)
):
    """Reject a pending join request and deactivate the requester."""
    body = body or RejectRequestBody()
    join_request = HierarchyService(db).reject(request_id, current_user, reason=body.reason)

    background_tasks.add_task(
        notification_dispatcher.notify_request_rejected,
        join_request.organization_id,
        join_request.user_id,
        join_request.id,
        join_request.response_message
    )

    return {"success": True, "message": "Request rejected successfully", "data": join_request}


@router.get("/organization", response_model=HierarchyEnvelope)
@handle_service_errors
async def get_organization_hierarchy(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Admin, HR managers, managers and employees of the current user's organization."""
    hierarchy = HierarchyService(db).organization_hierarchy(current_user)
    return {"success": True, "data": hierarchy}


@router.get("/validate/org-code/{code}", response_model=OrgCodeValidationEnvelope)
async def validate_org_code(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    organization = HierarchyService(db).validate_org_code(code)
    return {
        "success": True,
        "valid": True,
        "data": {"organization_name": organization.name, "org_code": organization.org_code}
    }


@router.get("/validate/hr-code/{code}", response_model=HRCodeValidationEnvelope)
async def validate_hr_code(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    hr_manager = HierarchyService(db).validate_hr_code(code)
    return {
        "success": True,
        "valid": True,
        "data": {
            "hr_name": hr_manager.user.name,
            "hr_code": hr_manager.hr_code,
            "organization_name": hr_manager.organization.name,
            "org_code": hr_manager.organization.org_code
        }
    }
