"""Format checks for the service (CPT) and diagnosis (ICD-10) codes."""

import re
from datetime import datetime

from ..schemas.common import CheckStatus, CheckType, ValidationCheckResult
from ..schemas.dispute import DisputeRecord

# 5 digits, optionally followed by a 2-character modifier (99213 or 99213-25)
CPT_PATTERN = re.compile(r"^\d{5}(-[A-Za-z0-9]{2})?$", re.ASCII)
CPT_MIN = 10000
CPT_MAX = 99999

# Letter, 2 digits, optional 1-4 digit subcategory (Z12 or A12.34)
ICD10_PATTERN = re.compile(r"^[A-Za-z]\d{2}(\.\d{1,4})?$", re.ASCII)


def check_cpt_code(dispute: DisputeRecord, now: datetime) -> ValidationCheckResult:
    """Service code must be a well-formed CPT code in the valid numeric range."""
    service_code = dispute.request_details.service_code

    if not service_code:
        return ValidationCheckResult(
            check_type=CheckType.CPT_CODE,
            status=CheckStatus.FAILED,
            message="CPT/Service code is required",
            details={"missing_code": True},
            checked_at=now,
        )

    # fullmatch so a trailing newline cannot slip past "$"
    if not CPT_PATTERN.fullmatch(service_code):
        return ValidationCheckResult(
            check_type=CheckType.CPT_CODE,
            status=CheckStatus.FAILED,
            message="Invalid CPT code format. Should be 5 digits (e.g., 99213) or 5 digits with modifier (e.g., 99213-25)",
            details={"invalid_format": True, "provided_code": service_code},
            checked_at=now,
        )

    code_number = int(service_code.split("-")[0])
    if code_number < CPT_MIN or code_number > CPT_MAX:
        return ValidationCheckResult(
            check_type=CheckType.CPT_CODE,
            status=CheckStatus.FAILED,
            message="CPT code out of valid range",
            details={"out_of_range": True, "provided_code": service_code},
            checked_at=now,
        )

    return ValidationCheckResult(
        check_type=CheckType.CPT_CODE,
        status=CheckStatus.PASSED,
        message="CPT code format is valid",
        details={"validated_code": service_code},
        checked_at=now,
    )


def check_icd_code(dispute: DisputeRecord, now: datetime) -> ValidationCheckResult:
    """Diagnosis code is recommended; when present it must look like ICD-10."""
    diagnosis_code = dispute.request_details.diagnosis_code

    if not diagnosis_code:
        return ValidationCheckResult(
            check_type=CheckType.ICD_CODE,
            status=CheckStatus.WARNING,
            message="ICD diagnosis code is recommended for stronger medical necessity",
            details={"missing_code": True},
            checked_at=now,
        )

    if not ICD10_PATTERN.fullmatch(diagnosis_code):
        return ValidationCheckResult(
            check_type=CheckType.ICD_CODE,
            status=CheckStatus.FAILED,
            message="Invalid ICD-10 code format. Should be like A12.34 or Z12",
            details={"invalid_format": True, "provided_code": diagnosis_code},
            checked_at=now,
        )

    return ValidationCheckResult(
        check_type=CheckType.ICD_CODE,
        status=CheckStatus.PASSED,
        message="ICD code format is valid",
        details={"validated_code": diagnosis_code},
        checked_at=now,
    )
