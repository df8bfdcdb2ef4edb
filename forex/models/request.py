"""
Forex Request Model
Database schema for foreign currency requests and their workflow payloads
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from beanie import PydanticObjectId

from forex.models.common import Entity


class RequestStatus(str, Enum):
    """Lifecycle status of a forex request"""
    NEW = "New"
    AUTHORIZED = "Authorized"
    VALIDATED = "Validated"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


class AcceptanceStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


# attachment reference field -> alias of the resolved File
ATTACHMENT_FIELDS = {
    "passport_attachment": "passport",
    "ticket_attachment": "ticket",
    "visa_attachment": "visa",
    "education_loa_attachment": "education_loa",
    "business_license_attachment": "business_license",
    "business_supporting_attachment": "business_supporting",
    "health_letter_attachment": "health_letter",
}

REQUIRED_ATTACHMENTS = ("passport_attachment", "ticket_attachment")


class ForexRequest(Entity):
    """
    A request for foreign currency allotment.

    Workflow actor references stay null until the step happens; the
    approved currency and amount lists are parallel arrays.
    """
    request_code: str

    # Applicant
    applicant_name: str
    applicant_account_number: str
    accounts_to_deduct: List[str]
    average_deposit: float
    total_fcy_generated: float
    current_fcy_performance: float
    fcy_requested_amount: float
    fcy_acceptance_mode: str
    card_associated_account: Optional[str] = None
    branch_recommendation: Optional[str] = None

    # Classification
    travel_purpose_id: PydanticObjectId
    travel_country_id: PydanticObjectId
    requesting_as_id: PydanticObjectId
    account_currency_id: PydanticObjectId
    fcy_requested_id: PydanticObjectId
    branch_id: Optional[PydanticObjectId] = None
    department_id: Optional[PydanticObjectId] = None

    # Attachments
    passport_attachment: PydanticObjectId
    ticket_attachment: PydanticObjectId
    visa_attachment: Optional[PydanticObjectId] = None
    education_loa_attachment: Optional[PydanticObjectId] = None
    business_license_attachment: Optional[PydanticObjectId] = None
    business_supporting_attachment: Optional[PydanticObjectId] = None
    health_letter_attachment: Optional[PydanticObjectId] = None

    # Validation stage
    validated_average_deposit: Optional[float] = None
    validated_current_balance: Optional[float] = None
    validated_account_currency_id: Optional[PydanticObjectId] = None

    # Approval stage
    approved_currency_ids: Optional[List[PydanticObjectId]] = None
    approved_amounts: Optional[List[float]] = None
    acceptance_status: Optional[AcceptanceStatus] = None

    request_status: RequestStatus = RequestStatus.NEW
    remark: Optional[str] = None
    rejection_reason: Optional[str] = None

    # Workflow trail
    requested_by: Optional[PydanticObjectId] = None
    requested_at: Optional[datetime] = None
    authorized_by: Optional[PydanticObjectId] = None
    authorized_at: Optional[datetime] = None
    validated_by: Optional[PydanticObjectId] = None
    validated_at: Optional[datetime] = None
    approved_by: Optional[PydanticObjectId] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[PydanticObjectId] = None
    rejected_at: Optional[datetime] = None
    accepted_by: Optional[PydanticObjectId] = None
    accepted_at: Optional[datetime] = None
    declined_by: Optional[PydanticObjectId] = None
    declined_at: Optional[datetime] = None

    # Review lock
    locked_by: Optional[PydanticObjectId] = None
    locked_at: Optional[datetime] = None
    lock_expires_at: Optional[datetime] = None

    class Config:
        use_enum_values = True

    def lock_held_by_other(self, user_id, now: datetime) -> bool:
        """True while an unexpired lock belongs to someone else"""
        if self.locked_by is None or self.lock_expires_at is None:
            return False
        return self.locked_by != user_id and self.lock_expires_at > now


class RequestForm(BaseModel):
    """
    Applicant fields as submitted by the form.

    Numbers and identifiers arrive as text; the lifecycle service parses
    them so the error can name the offending field.
    """
    applicant_name: str = Field(..., min_length=1)
    applicant_account_number: str = Field(..., min_length=1)
    average_deposit: str
    total_fcy_generated: str
    current_fcy_performance: str
    fcy_requested_amount: str
    travel_purpose_id: str
    travel_country_id: str
    requesting_as_id: str
    account_currency_id: str
    fcy_requested_id: str
    fcy_acceptance_mode: str = Field(..., min_length=1)
    accounts_to_deduct: List[str] = []
    card_associated_account: Optional[str] = None
    branch_recommendation: Optional[str] = None
    branch_id: Optional[str] = None
    department_id: Optional[str] = None


class ValidationPayload(BaseModel):
    validated_account_currency_id: str
    validated_average_deposit: float = Field(..., ge=0)
    validated_current_balance: float = Field(..., ge=0)


class ApprovalPayload(BaseModel):
    approved_currency_ids: List[str]
    approved_amounts: List[float]


class RejectionPayload(BaseModel):
    rejection_reason: str = Field(..., min_length=1)
