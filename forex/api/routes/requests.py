"""
Forex Request Routes
Creation, workflow transitions and populated reads
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from forex.api.deps import get_container, object_id, require_permissions
from forex.api.responses import envelope
from forex.container import Container
from forex.models.request import ApprovalPayload, RejectionPayload, RequestForm, ValidationPayload
from forex.models.user import CurrentUser
from forex.services.files import Upload

router = APIRouter()


def request_form(
    applicant_name: str = Form(...),
    applicant_account_number: str = Form(...),
    average_deposit: str = Form(...),
    total_fcy_generated: str = Form(...),
    current_fcy_performance: str = Form(...),
    fcy_requested_amount: str = Form(...),
    travel_purpose_id: str = Form(...),
    travel_country_id: str = Form(...),
    requesting_as_id: str = Form(...),
    account_currency_id: str = Form(...),
    fcy_requested_id: str = Form(...),
    fcy_acceptance_mode: str = Form(...),
    accounts_to_deduct: List[str] = Form([]),
    card_associated_account: Optional[str] = Form(None),
    branch_recommendation: Optional[str] = Form(None),
    branch_id: Optional[str] = Form(None),
    department_id: Optional[str] = Form(None),
) -> RequestForm:
    return RequestForm(
        applicant_name=applicant_name,
        applicant_account_number=applicant_account_number,
        average_deposit=average_deposit,
        total_fcy_generated=total_fcy_generated,
        current_fcy_performance=current_fcy_performance,
        fcy_requested_amount=fcy_requested_amount,
        travel_purpose_id=travel_purpose_id,
        travel_country_id=travel_country_id,
        requesting_as_id=requesting_as_id,
        account_currency_id=account_currency_id,
        fcy_requested_id=fcy_requested_id,
        fcy_acceptance_mode=fcy_acceptance_mode,
        accounts_to_deduct=accounts_to_deduct,
        card_associated_account=card_associated_account,
        branch_recommendation=branch_recommendation,
        branch_id=branch_id,
        department_id=department_id,
    )


async def attachment_uploads(
    passport_attachment: Optional[UploadFile] = File(None),
    ticket_attachment: Optional[UploadFile] = File(None),
    visa_attachment: Optional[UploadFile] = File(None),
    education_loa_attachment: Optional[UploadFile] = File(None),
    business_license_attachment: Optional[UploadFile] = File(None),
    business_supporting_attachment: Optional[UploadFile] = File(None),
    health_letter_attachment: Optional[UploadFile] = File(None),
) -> Dict[str, Upload]:
    files = {
        "passport_attachment": passport_attachment,
        "ticket_attachment": ticket_attachment,
        "visa_attachment": visa_attachment,
        "education_loa_attachment": education_loa_attachment,
        "business_license_attachment": business_license_attachment,
        "business_supporting_attachment": business_supporting_attachment,
        "health_letter_attachment": health_letter_attachment,
    }
    uploads = {}
    for field, file in files.items():
        if file is None or not file.filename:
            continue
        uploads[field] = Upload(
            filename=file.filename,
            content=await file.read(),
            content_type=file.content_type or "application/octet-stream",
        )
    return uploads


@router.post("/request", status_code=201)
async def create_request(
    form: RequestForm = Depends(request_form),
    uploads: Dict[str, Upload] = Depends(attachment_uploads),
    current_user: CurrentUser = Depends(require_permissions("request:add")),
    container: Container = Depends(get_container),
):
    """Submit a new forex request with its supporting documents"""
    request = await container.request_service.create_request(form, uploads, current_user)
    return envelope("Request created successfully", request)


@router.get("/requests")
async def list_requests(
    populate: bool = True,
    current_user: CurrentUser = Depends(require_permissions("request:view")),
    container: Container = Depends(get_container),
):
    requests = await container.request_service.get_all_requests(populate=populate)
    return envelope("Requests fetched successfully", requests)


@router.get("/requests/status/{status}")
async def list_requests_by_status(
    status: str,
    populate: bool = True,
    current_user: CurrentUser = Depends(require_permissions("request:view")),
    container: Container = Depends(get_container),
):
    requests = await container.request_service.get_requests_by_status(status, populate=populate)
    return envelope("Requests fetched successfully", requests)


@router.get("/orgrequests")
async def list_org_requests(
    status: Optional[str] = None,
    populate: bool = True,
    current_user: CurrentUser = Depends(require_permissions("request:view", "request:add")),
    container: Container = Depends(get_container),
):
    """Requests raised by the caller's own branch or department"""
    requests = await container.request_service.get_org_requests(current_user, status, populate=populate)
    return envelope("Requests fetched successfully", requests)


@router.get("/request/{request_id}")
async def get_request(
    request_id: str,
    populate: bool = True,
    current_user: CurrentUser = Depends(require_permissions("request:view", "request:add")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.get_request(object_id(request_id), populate=populate)
    return envelope("Request fetched successfully", request)


@router.put("/updaterequest/{request_id}")
async def update_request(
    request_id: str,
    form: RequestForm = Depends(request_form),
    current_user: CurrentUser = Depends(require_permissions("request:update")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.update_request(object_id(request_id), form, current_user)
    return envelope("Request updated successfully", request)


@router.patch("/deleterequest/{request_id}")
async def delete_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:delete")),
    container: Container = Depends(get_container),
):
    await container.request_service.delete_request(object_id(request_id), current_user)
    return envelope("Request deleted successfully")


@router.post("/orgauthorizerequest/{request_id}")
async def authorize_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:authorize")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.authorize_request(object_id(request_id), current_user)
    return envelope("Request authorized successfully", request)


@router.post("/validaterequest/{request_id}")
async def validate_request(
    request_id: str,
    payload: ValidationPayload,
    current_user: CurrentUser = Depends(require_permissions("request:validate")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.validate_request(object_id(request_id), payload, current_user)
    return envelope("Request validated successfully", request)


@router.post("/approverequest/{request_id}")
async def approve_request(
    request_id: str,
    payload: ApprovalPayload,
    current_user: CurrentUser = Depends(require_permissions("request:approve")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.approve_request(object_id(request_id), payload, current_user)
    return envelope("Request approved successfully", request)


@router.post("/rejectrequest/{request_id}")
async def reject_request(
    request_id: str,
    payload: RejectionPayload,
    current_user: CurrentUser = Depends(require_permissions("request:reject")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.reject_request(object_id(request_id), payload, current_user)
    return envelope("Request rejected successfully", request)


@router.post("/acceptrequest/{request_id}")
async def accept_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:accept")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.accept_request(object_id(request_id), current_user)
    return envelope("Request accepted successfully", request)


@router.post("/declinerequest/{request_id}")
async def decline_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:decline")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.decline_request(object_id(request_id), current_user)
    return envelope("Request declined successfully", request)


@router.post("/lockrequest/{request_id}")
async def lock_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:validate", "request:approve")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.lock_request(object_id(request_id), current_user)
    return envelope("Request locked successfully", request)


@router.post("/unlockrequest/{request_id}")
async def unlock_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_permissions("request:validate", "request:approve")),
    container: Container = Depends(get_container),
):
    request = await container.request_service.unlock_request(object_id(request_id), current_user)
    return envelope("Request unlocked successfully", request)
