"""Student webhook pipeline: one lead (reused by phone) plus one enrollment."""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import psycopg2

from schoolcrm.config import settings
from schoolcrm.db import catalog, enrollments as enrollment_store
from schoolcrm.db.postgres import db_error_message
from schoolcrm.ingestion.common import WebhookError, resolve_lead
from schoolcrm.models.webhook import StudentWebhookPayload
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.mailer import send_lead_notification
from schoolcrm.utils.matching import match_by_name
from schoolcrm.utils.payload import get_value, normalize_enrollment_type, parse_age
from schoolcrm.utils.phone import normalize_phone

logger = get_logger(__name__)

ENROLLED_STATUS = "matriculado"
ACTIVE_ENROLLMENT_STATUS = "ativo"


def payload_from_params(params: Mapping[str, str]) -> StudentWebhookPayload:
    """Resolve every canonical field from lower-cased params via the alias table."""
    enrollment_type_raw = get_value(params, "enrollment_type")
    return StudentWebhookPayload(
        full_name=get_value(params, "full_name"),
        phone=get_value(params, "phone"),
        email=get_value(params, "email"),
        age=parse_age(get_value(params, "age")),
        course=get_value(params, "course"),
        class_name=get_value(params, "class_name"),
        enrollment_type_raw=enrollment_type_raw,
        enrollment_type=normalize_enrollment_type(enrollment_type_raw),
        referral_code=get_value(params, "referral_code"),
        influencer=get_value(params, "influencer"),
        notes=get_value(params, "notes"),
    )


def resolve_course_id(course_name: Optional[str]) -> str:
    """Match among active courses, else the first active course."""
    courses = catalog.list_courses(active_only=True)
    matched = match_by_name(courses, course_name)
    if matched:
        return matched["id"]
    if course_name:
        logger.info("No active course matches %r; using the first active course", course_name)
    if not courses:
        raise WebhookError(400, {"success": False, "error": "Nenhum curso ativo encontrado"})
    return courses[0]["id"]


def resolve_class_id(course_id: str, class_name: Optional[str]) -> Optional[str]:
    if not class_name:
        return None
    matched = match_by_name(catalog.list_classes(course_id, active_only=True), class_name)
    if not matched:
        logger.info("No active class of course %s matches %r", course_id, class_name)
        return None
    return matched["id"]


def ingest_student(
    payload: StudentWebhookPayload,
    notify: Callable[[Dict[str, Any]], Any] = send_lead_notification,
) -> Tuple[int, Dict[str, Any]]:
    """Run the student webhook pipeline and return (status_code, body)."""
    logger.info("Parsed values: %s", payload.model_dump(exclude_none=True))

    if not payload.full_name or not payload.phone:
        logger.error(
            "Missing required fields: full_name=%r phone=%r", payload.full_name, payload.phone
        )
        raise WebhookError(400, {"success": False, "error": "Nome e telefone são obrigatórios"})

    phone = normalize_phone(payload.phone)
    if len(phone) < settings.min_phone_digits:
        raise WebhookError(
            400,
            {
                "success": False,
                "error": f"Telefone inválido (mínimo {settings.min_phone_digits} dígitos)",
            },
        )

    lead_values = {
        "full_name": payload.full_name,
        "email": payload.email,
        "status": ENROLLED_STATUS,
        "notes": payload.notes,
        "external_source": settings.webhook_external_source,
    }
    try:
        lead_id, created = resolve_lead(phone, lead_values)
    except psycopg2.Error as exc:
        logger.error("Error creating lead: %s", exc)
        raise WebhookError(
            500, {"success": False, "error": f"Erro ao criar lead: {db_error_message(exc)}"}
        ) from exc

    course_id = resolve_course_id(payload.course)
    class_id = resolve_class_id(course_id, payload.class_name)

    try:
        enrollment_id = enrollment_store.insert_enrollment(
            {
                "lead_id": lead_id,
                "course_id": course_id,
                "class_id": class_id,
                "status": ACTIVE_ENROLLMENT_STATUS,
                "student_age": payload.age,
                "enrollment_type": payload.enrollment_type,
                "referral_agent_code": payload.referral_code,
                "influencer_name": payload.influencer,
                "notes": payload.notes,
            }
        )
    except psycopg2.Error as exc:
        logger.error("Error creating enrollment: %s", exc)
        raise WebhookError(
            500,
            {"success": False, "error": f"Erro ao criar matrícula: {db_error_message(exc)}"},
        ) from exc

    if created:
        notify(
            {**lead_values, "phone": phone, "lead_id": lead_id, "course_name": payload.course}
        )

    return 200, {
        "success": True,
        "message": "Matrícula criada com sucesso",
        "data": {"lead_id": lead_id, "enrollment_id": enrollment_id},
    }
