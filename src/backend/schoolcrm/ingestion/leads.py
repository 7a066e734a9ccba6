"""Lead webhook pipeline: parse, validate, deduplicate, resolve source, insert."""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import psycopg2

from schoolcrm.config import settings
from schoolcrm.db import catalog, leads as lead_store
from schoolcrm.db.postgres import db_error_message
from schoolcrm.ingestion.common import WebhookError, build_custom_values
from schoolcrm.models.webhook import LeadWebhookPayload
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.mailer import send_lead_notification
from schoolcrm.utils.payload import build_lead_notes, first_text
from schoolcrm.utils.phone import normalize_phone

logger = get_logger(__name__)

INITIAL_STATUS = "lead"
MISSING_FIELDS_ERROR = "Missing required fields: full_name/client_name and phone are required"


def payload_from_mapping(data: Mapping[str, Any], from_body: bool) -> LeadWebhookPayload:
    """Collapse the accepted naming conventions into a single payload."""
    custom_fields = data.get("custom_fields") if from_body else None
    return LeadWebhookPayload(
        full_name=first_text(data, ("client_name", "full_name")) or "",
        phone=first_text(data, ("phone", "telefone")) or "",
        email=first_text(data, ("email",)),
        guardian_name=first_text(data, ("guardian_name",)),
        source=first_text(data, ("source", "origem")),
        campaign=first_text(data, ("modelo", "campaign")),
        ad_set=first_text(data, ("projeto", "ad_set")),
        ad_name=first_text(data, ("ad_name",)),
        external_id=first_text(data, ("lead_id", "external_id")),
        notes=build_lead_notes(data, include_free_text=from_body) or None,
        custom_fields=custom_fields if isinstance(custom_fields, dict) else None,
    )


def resolve_source_id(source: Optional[str]) -> Optional[str]:
    source_id = catalog.find_source_id(source) if source else None
    if not source_id:
        source_id = catalog.get_source_id_by_exact_name(settings.default_source_name)
    return source_id


def _store_custom_fields(lead_id: str, supplied: Dict[str, Any]) -> None:
    try:
        fields = catalog.list_custom_fields("lead", active_only=True)
        rows = build_custom_values(lead_id, supplied, fields)
        lead_store.insert_lead_custom_values(rows)
    except psycopg2.Error:
        logger.exception("Error inserting custom values for lead %s", lead_id)


def ingest_lead(
    payload: LeadWebhookPayload,
    notify: Callable[[Dict[str, Any]], Any] = send_lead_notification,
) -> Tuple[int, Dict[str, Any]]:
    """
    Run the lead webhook pipeline and return (status_code, body).

    `notify` receives the stored values of a newly created lead.
    """
    logger.info("Received webhook payload: %s", payload.model_dump(exclude_none=True))

    if not payload.full_name or not payload.phone:
        raise WebhookError(400, {"error": MISSING_FIELDS_ERROR})

    phone = normalize_phone(payload.phone)
    if not phone:
        raise WebhookError(400, {"error": MISSING_FIELDS_ERROR})

    existing = lead_store.find_lead_id_by_phone(phone)
    if existing:
        logger.info("Duplicate lead found: %s", existing)
        return 200, _duplicate_body(existing)

    values = {
        "full_name": payload.full_name,
        "phone": phone,
        "email": payload.email,
        "guardian_name": payload.guardian_name,
        "source_id": resolve_source_id(payload.source),
        "campaign": payload.campaign,
        "ad_set": payload.ad_set,
        "ad_name": payload.ad_name,
        "external_id": payload.external_id,
        "external_source": settings.webhook_external_source,
        "notes": payload.notes,
        "status": INITIAL_STATUS,
    }
    try:
        lead_id = lead_store.insert_lead(values)
    except psycopg2.Error as exc:
        logger.error("Error inserting lead: %s", exc)
        raise WebhookError(
            500, {"error": "Failed to create lead", "details": db_error_message(exc)}
        ) from exc

    if not lead_id:
        winner = lead_store.find_lead_id_by_phone(phone)
        logger.info("Lead for phone=%s created concurrently as %s", phone, winner)
        return 200, _duplicate_body(winner)

    logger.info("Lead created successfully: %s", lead_id)

    if payload.custom_fields:
        _store_custom_fields(lead_id, payload.custom_fields)

    notify({**values, "lead_id": lead_id})

    return 201, {
        "success": True,
        "message": "Lead created successfully",
        "lead_id": lead_id,
    }


def _duplicate_body(lead_id: Optional[str]) -> Dict[str, Any]:
    return {
        "success": False,
        "message": "Lead already exists",
        "lead_id": lead_id,
        "duplicate": True,
    }
