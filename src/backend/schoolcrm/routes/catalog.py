from typing import List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from schoolcrm.db.catalog import (
    create_custom_field,
    create_lead_source,
    delete_lead_source,
    get_course,
    get_lead_source,
    list_classes,
    list_courses,
    list_custom_fields,
    list_lead_sources,
    update_custom_field,
    update_lead_source,
)
from schoolcrm.models.catalog import (
    ClassRecord,
    CourseRecord,
    CustomFieldCreate,
    CustomFieldRecord,
    CustomFieldUpdate,
    LeadSourceCreate,
    LeadSourceRecord,
    LeadSourceUpdate,
)
from schoolcrm.routes.common import constraint_errors, reject_nulls

router = APIRouter(tags=["catalog"])

DUPLICATE_SOURCE_DETAIL = "A lead source with this name already exists."


# --- lead_sources --------------------------------------------------------------------------

@router.get("/lead_sources", response_model=List[LeadSourceRecord], summary="List lead sources")
def list_lead_sources_endpoint(active_only: bool = False) -> List[LeadSourceRecord]:
    return list_lead_sources(active_only=active_only)


@router.post("/lead_sources", status_code=201, response_model=LeadSourceRecord, summary="Create a lead source")
def create_lead_source_endpoint(payload: LeadSourceCreate) -> LeadSourceRecord:
    with constraint_errors(conflict_detail=DUPLICATE_SOURCE_DETAIL):
        return create_lead_source(payload.model_dump())


@router.put("/lead_sources/{source_id}", response_model=LeadSourceRecord, summary="Update a lead source")
def update_lead_source_endpoint(source_id: UUID, payload: LeadSourceUpdate) -> LeadSourceRecord:
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No editable fields were provided.")
    reject_nulls(updates, ("name",))
    with constraint_errors(conflict_detail=DUPLICATE_SOURCE_DETAIL):
        updated = update_lead_source(str(source_id), updates)
    if not updated:
        raise HTTPException(status_code=404, detail="Lead source not found.")
    return updated


@router.delete("/lead_sources/{source_id}", status_code=204, summary="Delete a lead source")
def delete_lead_source_endpoint(source_id: UUID) -> None:
    """System sources are kept; deactivate them instead."""
    source = get_lead_source(str(source_id))
    if not source:
        raise HTTPException(status_code=404, detail="Lead source not found.")
    if source.get("is_system"):
        raise HTTPException(status_code=400, detail="System lead sources cannot be deleted.")
    delete_lead_source(str(source_id))


# --- custom_fields -------------------------------------------------------------------------

@router.get("/custom_fields", response_model=List[CustomFieldRecord], summary="List custom fields")
def list_custom_fields_endpoint(
    entity_type: str = Query("lead", min_length=1),
    active_only: bool = True,
) -> List[CustomFieldRecord]:
    return list_custom_fields(entity_type, active_only=active_only)


@router.post("/custom_fields", status_code=201, response_model=CustomFieldRecord, summary="Create a custom field")
def create_custom_field_endpoint(payload: CustomFieldCreate) -> CustomFieldRecord:
    existing = {field["field_name"] for field in list_custom_fields(payload.entity_type, active_only=False)}
    if payload.field_name in existing:
        raise HTTPException(status_code=409, detail="A field with this name already exists.")
    return create_custom_field(payload.model_dump())


@router.put("/custom_fields/{field_id}", response_model=CustomFieldRecord, summary="Update a custom field")
def update_custom_field_endpoint(field_id: UUID, payload: CustomFieldUpdate) -> CustomFieldRecord:
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No editable fields were provided.")
    reject_nulls(updates, ("field_label", "field_type"))
    updated = update_custom_field(str(field_id), updates)
    if not updated:
        raise HTTPException(status_code=404, detail="Custom field not found.")
    return updated


# --- courses / classes ---------------------------------------------------------------------

@router.get("/courses", response_model=List[CourseRecord], summary="List courses")
def list_courses_endpoint(active_only: bool = True) -> List[CourseRecord]:
    return list_courses(active_only=active_only)


@router.get("/courses/{course_id}/classes", response_model=List[ClassRecord], summary="List classes of a course")
def list_course_classes_endpoint(course_id: UUID, active_only: bool = True) -> List[ClassRecord]:
    if not get_course(str(course_id)):
        raise HTTPException(status_code=404, detail="Course not found.")
    return list_classes(str(course_id), active_only=active_only)
