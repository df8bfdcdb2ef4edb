"""
Request Lifecycle
Creation, workflow transitions and populated reads of forex requests.

Statuses only move forward:

    New -> Authorized -> Validated -> Approved -> Accepted | Declined
    New | Authorized | Validated -> Rejected

Authorization is optional; Validate may run again on a validated request
and silently overwrites the earlier figures.
"""
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId

from forex.config import Settings
from forex.exceptions import (
    AggregationError, ConflictError, ForexError, InvalidTransitionError,
    NotFoundError, PermissionDeniedError, ValidationError,
)
from forex.models.common import parse_object_id, parse_optional_object_id
from forex.models.request import (
    ATTACHMENT_FIELDS, REQUIRED_ATTACHMENTS, AcceptanceStatus, ApprovalPayload,
    ForexRequest, RejectionPayload, RequestForm, RequestStatus, ValidationPayload,
)
from forex.models.user import CurrentUser
from forex.repositories.registry import Repositories
from forex.services.deadline import bounded
from forex.services.email import EmailService
from forex.services.files import FileService, Upload
from forex.services.population import populate_document

logger = logging.getLogger(__name__)

ALLOWED_SOURCES = {
    RequestStatus.AUTHORIZED: (RequestStatus.NEW,),
    RequestStatus.VALIDATED: (RequestStatus.NEW, RequestStatus.AUTHORIZED, RequestStatus.VALIDATED),
    RequestStatus.APPROVED: (RequestStatus.VALIDATED,),
    RequestStatus.REJECTED: (RequestStatus.NEW, RequestStatus.AUTHORIZED, RequestStatus.VALIDATED),
    RequestStatus.ACCEPTED: (RequestStatus.APPROVED,),
    RequestStatus.DECLINED: (RequestStatus.APPROVED,),
}

RELEASE_LOCK = {"locked_by": None, "locked_at": None, "lock_expires_at": None}

REQUEST_NOT_FOUND = "the request id doesn't exist"

# form field -> label used in parse errors
AMOUNT_FIELDS = (
    ("average_deposit", "Average Deposit"),
    ("total_fcy_generated", "Total FCY Generated"),
    ("current_fcy_performance", "Current FCY Performance"),
    ("fcy_requested_amount", "FCY Requested Amount"),
)


def parse_amount(text: Optional[str], label: str) -> float:
    """Parse a non-negative number submitted as text"""
    try:
        value = float(str(text).strip().replace(",", ""))
    except ValueError:
        raise ValidationError(f"Invalid {label} value")
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"Invalid {label} value")
    return value


class RequestService:
    """Owns the forex request state machine and its read-side views"""

    def __init__(self, settings: Settings, repos: Repositories,
                 file_service: FileService, email_service: EmailService):
        self.settings = settings
        self.repos = repos
        self.store = repos.store
        self.file_service = file_service
        self.email_service = email_service

    # ------------------------------------------------------------------
    # Reads

    async def _read(self, filter: Dict[str, Any], populate: bool) -> List[Dict[str, Any]]:
        try:
            documents = await self.repos.requests.find_documents(filter)
            return [await populate_document(document, self.store, populate) for document in documents]
        except ForexError:
            raise
        except Exception as exc:
            logger.exception("Request aggregation failed for filter %s: %s", filter, exc)
            raise AggregationError() from exc

    async def _view(self, request_id: PydanticObjectId, populate: bool = True) -> Dict[str, Any]:
        views = await self._read({"_id": request_id}, populate)
        if not views:
            raise NotFoundError(REQUEST_NOT_FOUND)
        return views[0]

    @bounded
    async def get_all_requests(self, populate: bool = True) -> List[Dict[str, Any]]:
        """Every non-deleted request; an empty store is reported as not found"""
        views = await self._read({}, populate)
        if not views:
            raise NotFoundError("no documents")
        return views

    @bounded
    async def get_request(self, request_id: PydanticObjectId, populate: bool = True) -> Dict[str, Any]:
        return await self._view(request_id, populate)

    @bounded
    async def get_requests_by_status(self, status: str, populate: bool = True) -> List[Dict[str, Any]]:
        try:
            wanted = RequestStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid request status: {status}")
        return await self._read({"request_status": wanted.value}, populate)

    @bounded
    async def get_org_requests(self, user: CurrentUser, status: Optional[str] = None,
                               populate: bool = True) -> List[Dict[str, Any]]:
        """Requests raised from the caller's branch, or department for head-office staff"""
        if user.branch_id is not None:
            filter = {"branch_id": user.branch_id}
        elif user.department_id is not None:
            filter = {"department_id": user.department_id}
        else:
            raise PermissionDeniedError("user is not assigned to a branch or department")

        if status:
            try:
                filter["request_status"] = RequestStatus(status).value
            except ValueError:
                raise ValidationError(f"Invalid request status: {status}")
        return await self._read(filter, populate)

    # ------------------------------------------------------------------
    # Create / update / delete

    async def _parse_form(self, form: RequestForm) -> Dict[str, Any]:
        """Parse text fields and check every reference resolves"""
        accounts = [account.strip() for account in form.accounts_to_deduct if account and account.strip()]
        if not accounts:
            raise ValidationError("accounts_to_deduct is required")

        values = {
            "applicant_name": form.applicant_name.strip(),
            "applicant_account_number": form.applicant_account_number.strip(),
            "accounts_to_deduct": accounts,
            "fcy_acceptance_mode": form.fcy_acceptance_mode.strip(),
            "card_associated_account": form.card_associated_account or None,
            "branch_recommendation": form.branch_recommendation or None,
        }
        for field, label in AMOUNT_FIELDS:
            values[field] = parse_amount(getattr(form, field), label)
        if values["fcy_requested_amount"] <= 0:
            raise ValidationError("FCY Requested Amount must be greater than 0")

        references = (
            ("travel_purpose_id", "travel purpose", self.repos.travel_purposes),
            ("travel_country_id", "travel country", self.repos.countries),
            ("requesting_as_id", "customer type", self.repos.customer_types),
            ("account_currency_id", "account currency", self.repos.currencies),
            ("fcy_requested_id", "requested currency", self.repos.currencies),
        )
        for field, label, repository in references:
            reference = parse_object_id(getattr(form, field), f"{label} ID")
            if not await repository.exists(reference):
                raise NotFoundError(f"{label} not found")
            values[field] = reference

        return values

    async def _resolve_org(self, form: RequestForm, creator: CurrentUser) -> Dict[str, Any]:
        """Branch/department from the form, else from the creator's profile"""
        branch_id = parse_optional_object_id(form.branch_id, "branch ID")
        department_id = parse_optional_object_id(form.department_id, "department ID")

        if branch_id is None and department_id is None:
            user = await self.repos.users.find_by_id(creator.user_id)
            if user is None:
                raise NotFoundError("user not found")
            profile = await self.repos.profiles.find_by_id(user.profile_id)
            if profile is None:
                raise NotFoundError("user profile not found")
            branch_id, department_id = profile.branch_id, profile.department_id

        if branch_id is not None and not await self.repos.branches.exists(branch_id):
            raise NotFoundError("branch not found")
        if department_id is not None and not await self.repos.departments.exists(department_id):
            raise NotFoundError("department not found")
        return {"branch_id": branch_id, "department_id": department_id}

    async def _generate_request_code(self) -> str:
        for _ in range(5):
            code = f"REQ-{str(uuid.uuid4())[:8]}"
            if not await self.repos.requests.code_exists(code):
                return code
        raise ConflictError("could not generate a unique request code")

    async def _store_attachments(self, uploads: Dict[str, Upload]) -> Dict[str, PydanticObjectId]:
        stored = {}
        try:
            for field, prefix in ATTACHMENT_FIELDS.items():
                upload = uploads.get(field)
                if upload is None:
                    continue
                record = await self.file_service.store(upload, prefix)
                stored[field] = record.id
        except BaseException:
            if stored:
                logger.error("Request creation aborted; orphaned file records: %s",
                             ", ".join(str(file_id) for file_id in stored.values()))
            raise
        return stored

    @bounded
    async def create_request(self, form: RequestForm, uploads: Dict[str, Upload],
                             creator: CurrentUser) -> Dict[str, Any]:
        """
        Create a New request.

        Everything is checked before the first attachment is written and the
        request document is inserted last, so a failure never leaves a
        partial request behind.
        """
        values = await self._parse_form(form)

        uploads = {field: upload for field, upload in uploads.items()
                   if field in ATTACHMENT_FIELDS and upload is not None}
        for field in REQUIRED_ATTACHMENTS:
            if field not in uploads:
                raise ValidationError(f"{field} is required")
        for field, upload in uploads.items():
            self.file_service.check(upload, field)

        org = await self._resolve_org(form, creator)
        request_code = await self._generate_request_code()
        attachments = await self._store_attachments(uploads)

        now = datetime.utcnow()
        request = ForexRequest(
            **values,
            **org,
            **attachments,
            request_code=request_code,
            request_status=RequestStatus.NEW,
            created_by=creator.user_id,
            requested_by=creator.user_id,
            requested_at=now,
            created_at=now,
            updated_at=now,
        )
        await self.repos.requests.create(request)
        logger.info("Request %s created by %s", request_code, creator.user_id)

        view = await self._view(request.id)
        await self._notify_submitted(view, request)
        return view

    @bounded
    async def update_request(self, request_id: PydanticObjectId, form: RequestForm,
                             user: CurrentUser) -> Dict[str, Any]:
        """Edit applicant fields of a request that is still New"""
        request = await self._load(request_id)
        self._ensure_same_org(request, user)
        if RequestStatus(request.request_status) != RequestStatus.NEW:
            raise InvalidTransitionError("only New requests can be updated")

        values = await self._parse_form(form)
        await self._apply(request, values, user.user_id)
        return await self._view(request.id)

    @bounded
    async def delete_request(self, request_id: PydanticObjectId, user: CurrentUser):
        request = await self._load(request_id)
        if not await self.repos.requests.delete(request.id, user.user_id):
            raise NotFoundError(REQUEST_NOT_FOUND)
        logger.info("Request %s deleted by %s", request.request_code, user.user_id)

    # ------------------------------------------------------------------
    # Transitions

    async def _load(self, request_id: PydanticObjectId) -> ForexRequest:
        request = await self.repos.requests.find_by_id(request_id)
        if request is None:
            raise NotFoundError(REQUEST_NOT_FOUND)
        return request

    def _ensure_transition(self, request: ForexRequest, target: RequestStatus):
        current = RequestStatus(request.request_status)
        if current not in ALLOWED_SOURCES[target]:
            raise InvalidTransitionError(
                f"request {request.request_code} is {current.value} and cannot be moved to {target.value}"
            )

    def _ensure_unlocked(self, request: ForexRequest, user: CurrentUser):
        if request.lock_held_by_other(user.user_id, datetime.utcnow()):
            raise ConflictError(f"request {request.request_code} is locked by another user")

    def _ensure_same_org(self, request: ForexRequest, user: CurrentUser):
        if user.is_superadmin:
            return
        if request.branch_id is not None and request.branch_id == user.branch_id:
            return
        if request.department_id is not None and request.department_id == user.department_id:
            return
        raise PermissionDeniedError("request belongs to another branch or department")

    async def _apply(self, request: ForexRequest, values: Dict[str, Any], actor: PydanticObjectId):
        if not await self.repos.requests.update(request.id, values, actor):
            raise NotFoundError(REQUEST_NOT_FOUND)

    @bounded
    async def authorize_request(self, request_id: PydanticObjectId, user: CurrentUser) -> Dict[str, Any]:
        """Sign-off by the submitting branch or department before validation"""
        request = await self._load(request_id)
        self._ensure_same_org(request, user)
        self._ensure_transition(request, RequestStatus.AUTHORIZED)

        await self._apply(request, {
            "request_status": RequestStatus.AUTHORIZED.value,
            "authorized_by": user.user_id,
            "authorized_at": datetime.utcnow(),
        }, user.user_id)

        view = await self._view(request.id)
        await self.email_service.send_request_authorized(
            view, self.settings.mail_request_to_list, self.settings.mail_request_cc_list
        )
        return view

    @bounded
    async def validate_request(self, request_id: PydanticObjectId, payload: ValidationPayload,
                               user: CurrentUser) -> Dict[str, Any]:
        """
        Record the back office's confirmed figures.

        A second validation overwrites the first without complaint and
        concurrent validations are last-write-wins.
        """
        request = await self._load(request_id)
        self._ensure_unlocked(request, user)
        self._ensure_transition(request, RequestStatus.VALIDATED)

        currency_id = parse_object_id(payload.validated_account_currency_id, "currency ID")
        if not await self.repos.currencies.exists(currency_id):
            raise NotFoundError("validated account currency not found")

        await self._apply(request, {
            "validated_account_currency_id": currency_id,
            "validated_average_deposit": payload.validated_average_deposit,
            "validated_current_balance": payload.validated_current_balance,
            "request_status": RequestStatus.VALIDATED.value,
            "validated_by": user.user_id,
            "validated_at": datetime.utcnow(),
            **RELEASE_LOCK,
        }, user.user_id)
        return await self._view(request.id)

    @bounded
    async def approve_request(self, request_id: PydanticObjectId, payload: ApprovalPayload,
                              user: CurrentUser) -> Dict[str, Any]:
        """Grant currency amounts to a validated request and tell the requester"""
        currency_ids = [parse_object_id(value, "currency ID") for value in payload.approved_currency_ids]
        if not currency_ids:
            raise ValidationError("approved_currency_ids is required")
        if len(currency_ids) != len(payload.approved_amounts):
            raise ValidationError("approved_currency_ids and approved_amounts must have the same length")
        for amount in payload.approved_amounts:
            if not math.isfinite(amount) or amount <= 0:
                raise ValidationError("approved amounts must be greater than 0")

        request = await self._load(request_id)
        self._ensure_unlocked(request, user)
        self._ensure_transition(request, RequestStatus.APPROVED)

        found = {currency.id for currency in await self.repos.currencies.find_many(currency_ids)}
        for currency_id in currency_ids:
            if currency_id not in found:
                raise NotFoundError(f"currency not found: {currency_id}")

        await self._apply(request, {
            "approved_currency_ids": currency_ids,
            "approved_amounts": list(payload.approved_amounts),
            "acceptance_status": AcceptanceStatus.PENDING.value,
            "request_status": RequestStatus.APPROVED.value,
            "approved_by": user.user_id,
            "approved_at": datetime.utcnow(),
            **RELEASE_LOCK,
        }, user.user_id)

        view = await self._view(request.id)
        await self._notify_requester(view, request, self.email_service.send_request_approved)
        return view

    @bounded
    async def reject_request(self, request_id: PydanticObjectId, payload: RejectionPayload,
                             user: CurrentUser) -> Dict[str, Any]:
        reason = payload.rejection_reason.strip()
        if not reason:
            raise ValidationError("rejection_reason is required")

        request = await self._load(request_id)
        self._ensure_unlocked(request, user)
        self._ensure_transition(request, RequestStatus.REJECTED)

        await self._apply(request, {
            "rejection_reason": reason,
            "request_status": RequestStatus.REJECTED.value,
            "rejected_by": user.user_id,
            "rejected_at": datetime.utcnow(),
            **RELEASE_LOCK,
        }, user.user_id)

        view = await self._view(request.id)
        await self._notify_requester(view, request, self.email_service.send_request_rejected)
        return view

    @bounded
    async def accept_request(self, request_id: PydanticObjectId, user: CurrentUser) -> Dict[str, Any]:
        """The customer takes the approved allotment"""
        request = await self._load(request_id)
        self._ensure_transition(request, RequestStatus.ACCEPTED)
        await self._apply(request, {
            "acceptance_status": AcceptanceStatus.ACCEPTED.value,
            "request_status": RequestStatus.ACCEPTED.value,
            "accepted_by": user.user_id,
            "accepted_at": datetime.utcnow(),
        }, user.user_id)
        return await self._view(request.id)

    @bounded
    async def decline_request(self, request_id: PydanticObjectId, user: CurrentUser) -> Dict[str, Any]:
        """The customer turns the approved allotment down"""
        request = await self._load(request_id)
        self._ensure_transition(request, RequestStatus.DECLINED)
        await self._apply(request, {
            "acceptance_status": AcceptanceStatus.DECLINED.value,
            "request_status": RequestStatus.DECLINED.value,
            "declined_by": user.user_id,
            "declined_at": datetime.utcnow(),
        }, user.user_id)
        return await self._view(request.id)

    @bounded
    async def lock_request(self, request_id: PydanticObjectId, user: CurrentUser) -> Dict[str, Any]:
        """Reserve a request for review; expired locks count as free"""
        request = await self._load(request_id)
        self._ensure_unlocked(request, user)

        now = datetime.utcnow()
        await self._apply(request, {
            "locked_by": user.user_id,
            "locked_at": now,
            "lock_expires_at": now + timedelta(minutes=self.settings.REQUEST_LOCK_MINUTES),
        }, user.user_id)
        return await self._view(request.id, populate=False)

    @bounded
    async def unlock_request(self, request_id: PydanticObjectId, user: CurrentUser) -> Dict[str, Any]:
        request = await self._load(request_id)
        if request.lock_held_by_other(user.user_id, datetime.utcnow()) and not user.is_superadmin:
            raise ConflictError(f"request {request.request_code} is locked by another user")
        await self._apply(request, dict(RELEASE_LOCK), user.user_id)
        return await self._view(request.id, populate=False)

    # ------------------------------------------------------------------
    # Notifications

    async def _requester_contact(self, request: ForexRequest):
        user = await self.repos.users.find_by_id(request.requested_by or request.created_by)
        if user is None:
            return None
        return await self.repos.profiles.find_by_id(user.profile_id)

    async def _notify_submitted(self, view: Dict[str, Any], request: ForexRequest):
        profile = await self._requester_contact(request)
        await self.email_service.send_request_submitted(
            view,
            profile.email if profile else None,
            self.settings.mail_request_to_list,
            self.settings.mail_request_cc_list,
        )

    async def _notify_requester(self, view: Dict[str, Any], request: ForexRequest, send):
        profile = await self._requester_contact(request)
        if profile is None:
            logger.warning("No requester profile for %s; notification skipped", request.request_code)
            return
        name = " ".join(part for part in (profile.first_name, profile.last_name) if part)
        await send(view, profile.email, name)
