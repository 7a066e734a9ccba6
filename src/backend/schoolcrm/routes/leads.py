from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query

from schoolcrm.db.leads import (
    change_lead_status,
    find_lead_id_by_phone,
    get_lead,
    insert_lead,
    list_lead_custom_values,
    list_lead_history,
    list_leads,
    update_lead,
)
from schoolcrm.models.lead import (
    LeadCreate,
    LeadCustomValueRecord,
    LeadHistoryRecord,
    LeadRecord,
    LeadStatus,
    LeadStatusChange,
    LeadUpdate,
    PageMeta,
    PaginatedLeads,
    WhatsAppLink,
)
from schoolcrm.routes.common import constraint_errors, reject_nulls
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.phone import normalize_phone, whatsapp_link

router = APIRouter(prefix="/leads", tags=["leads"])
logger = get_logger(__name__)

REQUIRED_LEAD_FIELDS = ("full_name", "phone")


def _require_lead(lead_id: UUID) -> dict:
    lead = get_lead(str(lead_id))
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found.")
    return lead


@router.get("", response_model=PaginatedLeads, summary="List leads")
def list_leads_endpoint(
    page: int = Query(1, ge=1),
    size: int = Query(100, ge=1, le=1000),
    status: Optional[LeadStatus] = None,
    source_id: Optional[UUID] = None,
    search: Optional[str] = Query(None, min_length=1),
) -> PaginatedLeads:
    """Return leads newest first, optionally filtered by pipeline stage, source or text."""
    rows, total = list_leads(
        limit=size,
        offset=(page - 1) * size,
        status=status,
        source_id=str(source_id) if source_id else None,
        search=search,
    )
    return PaginatedLeads(data=rows, meta=PageMeta(total=total, page=page, size=size))


@router.post("", status_code=201, response_model=LeadRecord, summary="Create a lead")
def create_lead_endpoint(payload: LeadCreate) -> LeadRecord:
    phone = normalize_phone(payload.phone)
    if not phone:
        raise HTTPException(status_code=400, detail="Phone must contain digits.")

    existing = find_lead_id_by_phone(phone)
    if existing:
        raise HTTPException(
            status_code=409,
            detail={"message": "A lead with this phone already exists.", "lead_id": existing},
        )

    values = payload.model_dump(mode="json")
    values.update(phone=phone, status="lead")
    try:
        with constraint_errors(reference_detail="Unknown lead source."):
            lead_id = insert_lead(values)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Error while creating lead: name=%s phone=%s", payload.full_name, phone)
        raise HTTPException(status_code=500, detail="We couldn't save the lead. Please try again later.")
    if not lead_id:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "A lead with this phone already exists.",
                "lead_id": find_lead_id_by_phone(phone),
            },
        )
    return get_lead(lead_id)


@router.get("/{lead_id}", response_model=LeadRecord, summary="Fetch a lead")
def get_lead_endpoint(lead_id: UUID = Path(...)) -> LeadRecord:
    return _require_lead(lead_id)


@router.put("/{lead_id}", response_model=LeadRecord, summary="Update a lead")
def update_lead_endpoint(lead_id: UUID, payload: LeadUpdate) -> LeadRecord:
    """Only provided fields are changed. Status moves go through /status."""
    updates = payload.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No editable fields were provided.")
    reject_nulls(updates, REQUIRED_LEAD_FIELDS)
    if "phone" in updates:
        updates["phone"] = normalize_phone(updates["phone"])
        if not updates["phone"]:
            raise HTTPException(status_code=400, detail="Phone must contain digits.")
        owner = find_lead_id_by_phone(updates["phone"])
        if owner and owner != str(lead_id):
            raise HTTPException(status_code=409, detail="Another lead already uses this phone.")
    with constraint_errors(
        conflict_detail="Another lead already uses this phone.",
        reference_detail="Unknown lead source.",
    ):
        updated = update_lead(str(lead_id), updates)
    if not updated:
        raise HTTPException(status_code=404, detail="Lead not found or not updated.")
    return updated


@router.patch("/{lead_id}/status", response_model=LeadRecord, summary="Move a lead in the pipeline")
def change_lead_status_endpoint(lead_id: UUID, payload: LeadStatusChange) -> LeadRecord:
    """Set the pipeline stage, stamp its timestamp and append a history entry."""
    updated = change_lead_status(
        str(lead_id), payload.status, changed_by=payload.changed_by, notes=payload.notes
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Lead not found.")
    return updated


@router.get("/{lead_id}/history", response_model=List[LeadHistoryRecord], summary="Lead status history")
def lead_history_endpoint(lead_id: UUID) -> List[LeadHistoryRecord]:
    _require_lead(lead_id)
    return list_lead_history(str(lead_id))


@router.get(
    "/{lead_id}/custom_values",
    response_model=List[LeadCustomValueRecord],
    summary="Custom field values of a lead",
)
def lead_custom_values_endpoint(lead_id: UUID) -> List[LeadCustomValueRecord]:
    _require_lead(lead_id)
    return list_lead_custom_values(str(lead_id))


@router.get("/{lead_id}/whatsapp", response_model=WhatsAppLink, summary="WhatsApp link for a lead")
def lead_whatsapp_endpoint(lead_id: UUID, message: Optional[str] = None) -> WhatsAppLink:
    lead = _require_lead(lead_id)
    return WhatsAppLink(lead_id=lead["id"], phone=lead["phone"], url=whatsapp_link(lead["phone"], message))
