"""Patient record schema used as read-only input to validation."""

from datetime import date
from enum import Enum

from pydantic import AwareDatetime, BaseModel, Field


class PatientDocumentType(str, Enum):
    """Kinds of documents attached to a patient record."""

    EHR = "ehr"
    INSURANCE = "insurance"
    LAB_RESULTS = "lab_results"
    IMAGING = "imaging"
    REFERRAL = "referral"
    OTHER = "other"


class GroupPermission(str, Enum):
    """Permission a user holds within a patient group."""

    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class InsuranceInfo(BaseModel):
    """Insurance plan and policy information."""

    provider: str | None = None
    policy_number: str | None = None
    group_number: str | None = None
    subscriber_id: str | None = None
    plan_name: str | None = None
    effective_date: date | None = None
    expiration_date: date | None = None


class Diagnosis(BaseModel):
    """A diagnosis on file for the patient."""

    code: str | None = None
    description: str | None = None
    diagnosed_on: date | None = None


class MedicalInfo(BaseModel):
    """Clinical summary kept on the patient record."""

    diagnosis: list[Diagnosis] = []
    allergies: list[str] = []
    primary_physician: str | None = None


class PatientDocument(BaseModel):
    """Metadata for an uploaded supporting document."""

    filename: str
    document_type: PatientDocumentType = PatientDocumentType.OTHER
    uploaded_at: AwareDatetime
    description: str | None = None


class PatientRecord(BaseModel):
    """Patient demographics, insurance, and medical documentation."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    insurance_info: InsuranceInfo = Field(default_factory=InsuranceInfo)
    medical_info: MedicalInfo = Field(default_factory=MedicalInfo)
    documents: list[PatientDocument] = []

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class GroupMember(BaseModel):
    """A user's membership in a patient group."""

    user_id: str
    permission: GroupPermission = GroupPermission.VIEW
