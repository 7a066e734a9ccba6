from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from schoolcrm.config import settings
from schoolcrm.db.catalog import get_class, get_course
from schoolcrm.db.enrollments import (
    get_enrollment,
    insert_enrollment,
    list_enrollments,
    update_enrollment,
)
from schoolcrm.ingestion.common import resolve_lead
from schoolcrm.models.enrollment import (
    AcademicContactCreate,
    AcademicStatus,
    EnrollmentRecord,
    EnrollmentUpdate,
    PaginatedEnrollments,
)
from schoolcrm.models.lead import PageMeta
from schoolcrm.routes.common import reject_nulls
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.phone import normalize_phone

router = APIRouter(prefix="/enrollments", tags=["enrollments"])
logger = get_logger(__name__)


def _check_class(course_id: str, class_id: Optional[str]) -> None:
    if not class_id:
        return
    klass = get_class(class_id)
    if not klass or klass["course_id"] != course_id:
        raise HTTPException(status_code=400, detail="Class does not belong to the course.")


@router.get("", response_model=PaginatedEnrollments, summary="List enrollments")
def list_enrollments_endpoint(
    page: int = Query(1, ge=1),
    size: int = Query(100, ge=1, le=1000),
    status: Optional[AcademicStatus] = None,
    course_id: Optional[UUID] = None,
) -> PaginatedEnrollments:
    rows, total = list_enrollments(
        limit=size,
        offset=(page - 1) * size,
        status=status,
        course_id=str(course_id) if course_id else None,
    )
    return PaginatedEnrollments(data=rows, meta=PageMeta(total=total, page=page, size=size))


@router.post("", status_code=201, response_model=EnrollmentRecord, summary="Add an academic contact")
def create_academic_contact(payload: AcademicContactCreate) -> EnrollmentRecord:
    """Enroll a person into a course, reusing the lead registered under the same phone."""
    phone = normalize_phone(payload.phone)
    if len(phone) < settings.min_phone_digits:
        raise HTTPException(
            status_code=400,
            detail=f"Telefone inválido (mínimo {settings.min_phone_digits} dígitos)",
        )
    course = get_course(str(payload.course_id))
    if not course:
        raise HTTPException(status_code=404, detail="Course not found.")
    class_id = str(payload.class_id) if payload.class_id else None
    _check_class(course["id"], class_id)

    lead_id, created = resolve_lead(
        phone,
        {
            "full_name": payload.full_name,
            "email": str(payload.email) if payload.email else None,
            "status": "matriculado",
            "notes": payload.notes,
        },
    )
    enrollment_id = insert_enrollment(
        {
            "lead_id": lead_id,
            "course_id": course["id"],
            "class_id": class_id,
            "status": "ativo",
            "student_age": payload.student_age,
            "enrollment_type": payload.enrollment_type,
            "referral_agent_code": payload.referral_agent_code,
            "influencer_name": payload.influencer_name,
            "notes": payload.notes,
        }
    )
    logger.info(
        "Academic contact enrolled lead=%s (new=%s) enrollment=%s", lead_id, created, enrollment_id
    )
    return get_enrollment(enrollment_id)


@router.get("/{enrollment_id}", response_model=EnrollmentRecord, summary="Fetch an enrollment")
def get_enrollment_endpoint(enrollment_id: UUID) -> EnrollmentRecord:
    enrollment = get_enrollment(str(enrollment_id))
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found.")
    return enrollment


@router.patch("/{enrollment_id}", response_model=EnrollmentRecord, summary="Update an enrollment")
def update_enrollment_endpoint(enrollment_id: UUID, payload: EnrollmentUpdate) -> EnrollmentRecord:
    updates = payload.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No editable fields were provided.")
    reject_nulls(updates, ("status",))
    current = get_enrollment(str(enrollment_id))
    if not current:
        raise HTTPException(status_code=404, detail="Enrollment not found.")
    if updates.get("class_id"):
        _check_class(current["course_id"], updates["class_id"])
    return update_enrollment(str(enrollment_id), updates)
