import uuid
from datetime import datetime, timezone

import psycopg2
import pytest
from psycopg2 import errors as pg_errors
from fastapi.testclient import TestClient

from schoolcrm.db import catalog, enrollments, leads, postgres
from schoolcrm.routes import catalog as catalog_routes
from schoolcrm.routes import enrollments as enrollment_routes
from schoolcrm.routes import health as health_routes
from schoolcrm.routes import leads as lead_routes

PATCHED_MODULES = (
    leads,
    catalog,
    enrollments,
    postgres,
    lead_routes,
    catalog_routes,
    enrollment_routes,
    health_routes,
)

LEAD_DEFAULTS = {
    "email": None,
    "guardian_name": None,
    "source_id": None,
    "campaign": None,
    "ad_set": None,
    "ad_name": None,
    "external_id": None,
    "external_source": None,
    "notes": None,
    "status": "lead",
    "scheduled_at": None,
    "attended_at": None,
    "proposal_at": None,
    "enrolled_at": None,
    "lost_at": None,
}


def _now():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class FakeDatabase:
    """In-memory stand-in for the functions of the db package."""

    def __init__(self):
        self.leads = {}
        self.history = []
        self.custom_values = []
        self.sources = {}
        self.courses = {}
        self.classes = {}
        self.custom_fields = {}
        self.enrollments = {}
        self.fail_on = set()
        self.healthy = True

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise psycopg2.Error(f"{operation} failed")

    def _check_source(self, values):
        source_id = values.get("source_id")
        if source_id and source_id not in self.sources:
            raise pg_errors.ForeignKeyViolation("leads_source_id_fkey")

    def _check_source_name(self, name, source_id=None):
        for source in self.sources.values():
            if source["id"] != source_id and source["name"].lower() == name.lower():
                raise pg_errors.UniqueViolation("lead_sources_name_idx")

    # --- seeding helpers ---------------------------------------------------------------

    def add_source(self, name, is_system=True, is_active=True):
        source_id = _new_id()
        self.sources[source_id] = {
            "id": source_id,
            "name": name,
            "icon": None,
            "color": None,
            "is_system": is_system,
            "is_active": is_active,
            "created_at": _now(),
        }
        return source_id

    def add_course(self, name, is_active=True):
        course_id = _new_id()
        self.courses[course_id] = {
            "id": course_id,
            "name": name,
            "description": None,
            "modality": "presencial",
            "duration_hours": None,
            "price": None,
            "is_active": is_active,
            "created_at": _now(),
        }
        return course_id

    def add_class(self, course_id, name, is_active=True):
        class_id = _new_id()
        self.classes[class_id] = {
            "id": class_id,
            "course_id": course_id,
            "name": name,
            "room": None,
            "start_date": None,
            "end_date": None,
            "max_students": None,
            "is_active": is_active,
        }
        return class_id

    def add_custom_field(self, field_name, field_type, is_active=True, entity_type="lead"):
        field_id = _new_id()
        self.custom_fields[field_id] = {
            "id": field_id,
            "entity_type": entity_type,
            "field_name": field_name,
            "field_label": field_name.title(),
            "field_type": field_type,
            "options": None,
            "is_required": False,
            "order_index": len(self.custom_fields),
            "is_active": is_active,
            "created_at": _now(),
        }
        return field_id

    def add_lead(self, full_name, phone, **values):
        lead_id = _new_id()
        self.leads[lead_id] = {
            **LEAD_DEFAULTS,
            **values,
            "id": lead_id,
            "full_name": full_name,
            "phone": phone,
            "created_at": _now(),
            "updated_at": _now(),
        }
        return lead_id

    # --- db.leads ----------------------------------------------------------------------

    def find_lead_id_by_phone(self, phone):
        for lead in self.leads.values():
            if lead["phone"] == phone:
                return lead["id"]
        return None

    def insert_lead(self, values):
        self._maybe_fail("insert_lead")
        self._check_source(values)
        if self.find_lead_id_by_phone(values["phone"]):
            return None
        allowed = {k: v for k, v in values.items() if k in leads.LEAD_FIELDS}
        lead_id = self.add_lead(allowed.pop("full_name"), allowed.pop("phone"), **allowed)
        stamp = leads.STATUS_TIMESTAMP_COLUMNS.get(values.get("status"))
        if stamp:
            self.leads[lead_id][stamp] = _now()
        return lead_id

    def get_lead(self, lead_id):
        return self.leads.get(lead_id)

    def list_leads(self, limit=100, offset=0, status=None, source_id=None, search=None):
        rows = [
            lead
            for lead in self.leads.values()
            if (not status or lead["status"] == status)
            and (not source_id or lead["source_id"] == source_id)
            and (not search or search.lower() in lead["full_name"].lower() or search in lead["phone"])
        ]
        rows.sort(key=lambda lead: lead["created_at"], reverse=True)
        return rows[offset : offset + limit], len(rows)

    def update_lead(self, lead_id, updates):
        lead = self.leads.get(lead_id)
        if not lead:
            return None
        self._check_source(updates)
        lead.update({k: v for k, v in updates.items() if k in leads.LEAD_FIELDS})
        lead["updated_at"] = _now()
        return lead

    def change_lead_status(self, lead_id, to_status, changed_by=None, notes=None):
        lead = self.leads.get(lead_id)
        if not lead:
            return None
        self.history.append(
            {
                "id": _new_id(),
                "lead_id": lead_id,
                "from_status": lead["status"],
                "to_status": to_status,
                "changed_by": changed_by,
                "notes": notes,
                "created_at": _now(),
            }
        )
        lead["status"] = to_status
        stamp = leads.STATUS_TIMESTAMP_COLUMNS.get(to_status)
        if stamp:
            lead[stamp] = _now()
        return lead

    def list_lead_history(self, lead_id):
        return [entry for entry in reversed(self.history) if entry["lead_id"] == lead_id]

    def list_lead_custom_values(self, lead_id):
        rows = []
        for value in self.custom_values:
            if value["lead_id"] != lead_id:
                continue
            field = self.custom_fields[value["field_id"]]
            rows.append(
                {
                    "id": value["id"],
                    "field_name": field["field_name"],
                    "field_label": field["field_label"],
                    "field_type": field["field_type"],
                    **value,
                }
            )
        return rows

    def insert_lead_custom_values(self, rows):
        self._maybe_fail("insert_lead_custom_values")
        for row in rows:
            self.custom_values.append({"id": _new_id(), **row})
        return len(rows)

    # --- db.catalog --------------------------------------------------------------------

    def list_lead_sources(self, active_only=False):
        return [s for s in self.sources.values() if s["is_active"] or not active_only]

    def find_source_id(self, name):
        lowered = name.lower()
        for source in self.sources.values():
            if source["name"].lower() == lowered:
                return source["id"]
        for source in self.sources.values():
            if lowered in source["name"].lower():
                return source["id"]
        return None

    def get_source_id_by_exact_name(self, name):
        for source in self.sources.values():
            if source["name"] == name:
                return source["id"]
        return None

    def get_lead_source(self, source_id):
        return self.sources.get(source_id)

    def create_lead_source(self, values):
        self._check_source_name(values["name"])
        source_id = self.add_source(values["name"], is_system=False, is_active=values.get("is_active", True))
        self.sources[source_id].update(icon=values.get("icon"), color=values.get("color"))
        return self.sources[source_id]

    def update_lead_source(self, source_id, updates):
        source = self.sources.get(source_id)
        if not source:
            return None
        if updates.get("name"):
            self._check_source_name(updates["name"], source_id)
        source.update(updates)
        return source

    def delete_lead_source(self, source_id):
        source = self.sources.get(source_id)
        if not source or source["is_system"]:
            return False
        del self.sources[source_id]
        return True

    def list_courses(self, active_only=True):
        return [c for c in self.courses.values() if c["is_active"] or not active_only]

    def get_course(self, course_id):
        return self.courses.get(course_id)

    def list_classes(self, course_id, active_only=True):
        return [
            c
            for c in self.classes.values()
            if c["course_id"] == course_id and (c["is_active"] or not active_only)
        ]

    def get_class(self, class_id):
        return self.classes.get(class_id)

    def list_custom_fields(self, entity_type="lead", active_only=True):
        return [
            f
            for f in self.custom_fields.values()
            if f["entity_type"] == entity_type and (f["is_active"] or not active_only)
        ]

    def create_custom_field(self, values):
        field_id = self.add_custom_field(values["field_name"], values["field_type"])
        self.custom_fields[field_id].update(values)
        return self.custom_fields[field_id]

    def update_custom_field(self, field_id, updates):
        field = self.custom_fields.get(field_id)
        if not field:
            return None
        field.update(updates)
        return field

    # --- db.enrollments ----------------------------------------------------------------

    def insert_enrollment(self, values):
        self._maybe_fail("insert_enrollment")
        enrollment_id = _new_id()
        self.enrollments[enrollment_id] = {
            **{name: values.get(name) for name in enrollments.ENROLLMENT_INSERT_FIELDS},
            "id": enrollment_id,
            "enrolled_at": _now(),
            "created_at": _now(),
        }
        return enrollment_id

    def get_enrollment(self, enrollment_id):
        enrollment = self.enrollments.get(enrollment_id)
        if not enrollment:
            return None
        lead = self.leads.get(enrollment["lead_id"]) or {}
        course = self.courses.get(enrollment["course_id"]) or {}
        return {**enrollment, "student_name": lead.get("full_name"), "course_name": course.get("name")}

    def list_enrollments(self, limit=100, offset=0, status=None, course_id=None):
        rows = [
            self.get_enrollment(e["id"])
            for e in self.enrollments.values()
            if (not status or e["status"] == status) and (not course_id or e["course_id"] == course_id)
        ]
        return rows[offset : offset + limit], len(rows)

    def update_enrollment(self, enrollment_id, updates):
        enrollment = self.enrollments.get(enrollment_id)
        if not enrollment:
            return None
        enrollment.update(updates)
        return self.get_enrollment(enrollment_id)

    # --- db.postgres -------------------------------------------------------------------

    def ping(self):
        return self.healthy


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    db.add_source("Instagram")
    db.add_source("Outro")
    for module in PATCHED_MODULES:
        for name in dir(FakeDatabase):
            if name.startswith("_") or name.startswith("add_"):
                continue
            if callable(getattr(module, name, None)):
                monkeypatch.setattr(module, name, getattr(db, name))
    return db


@pytest.fixture
def client(fake_db):
    from schoolcrm.main import app

    return TestClient(app)
