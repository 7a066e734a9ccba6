from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from schoolcrm.db.postgres import get_cursor
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)

LEAD_SOURCE_FIELDS = {"name", "icon", "color", "is_active"}
CUSTOM_FIELD_FIELDS = {
    "entity_type",
    "field_name",
    "field_label",
    "field_type",
    "options",
    "is_required",
    "order_index",
    "is_active",
}


def _assignments(allowed: Dict[str, Any]) -> tuple[str, list]:
    expressions: List[str] = []
    values: List[Any] = []
    for field, value in allowed.items():
        expressions.append(f"{field} = %s")
        values.append(Json(value) if field == "options" and value is not None else value)
    return ", ".join(expressions), values


# --- lead_sources -------------------------------------------------------------------------

def list_lead_sources(active_only: bool = False) -> List[Dict[str, Any]]:
    where = "WHERE is_active" if active_only else ""
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT id, name, icon, color, is_system, is_active, created_at
            FROM lead_sources
            {where}
            ORDER BY is_system DESC, name
            """
        )
        return cur.fetchall()


def find_source_id(name: str) -> Optional[str]:
    """Case-insensitive exact match first, then a partial match."""
    with get_cursor() as (_, cur):
        cur.execute(
            "SELECT id FROM lead_sources WHERE name ILIKE %s ORDER BY name LIMIT 1",
            (name,),
        )
        row = cur.fetchone()
        if not row:
            cur.execute(
                "SELECT id FROM lead_sources WHERE name ILIKE %s ORDER BY name LIMIT 1",
                (f"%{name}%",),
            )
            row = cur.fetchone()
    return row["id"] if row else None


def get_source_id_by_exact_name(name: str) -> Optional[str]:
    with get_cursor() as (_, cur):
        cur.execute("SELECT id FROM lead_sources WHERE name = %s LIMIT 1", (name,))
        row = cur.fetchone()
    return row["id"] if row else None


def get_lead_source(source_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            SELECT id, name, icon, color, is_system, is_active, created_at
            FROM lead_sources
            WHERE id = %s
            """,
            (source_id,),
        )
        return cur.fetchone()


def create_lead_source(values: Dict[str, Any]) -> Dict[str, Any]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            INSERT INTO lead_sources (name, icon, color, is_system, is_active)
            VALUES (%s, %s, %s, FALSE, %s)
            RETURNING id, name, icon, color, is_system, is_active, created_at
            """,
            (values["name"], values.get("icon"), values.get("color"), values.get("is_active", True)),
        )
        row = cur.fetchone()
    logger.info("Lead source created id=%s name=%s", row["id"], row["name"])
    return row


def update_lead_source(source_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    allowed = {k: v for k, v in updates.items() if k in LEAD_SOURCE_FIELDS}
    if not allowed:
        return None
    assignments, values = _assignments(allowed)
    values.append(source_id)
    with get_cursor() as (_, cur):
        cur.execute(
            f"UPDATE lead_sources SET {assignments} WHERE id = %s "
            "RETURNING id, name, icon, color, is_system, is_active, created_at",
            tuple(values),
        )
        return cur.fetchone()


def delete_lead_source(source_id: str) -> bool:
    with get_cursor() as (_, cur):
        cur.execute(
            "DELETE FROM lead_sources WHERE id = %s AND NOT COALESCE(is_system, FALSE)",
            (source_id,),
        )
        return cur.rowcount > 0


# --- courses / classes --------------------------------------------------------------------

def list_courses(active_only: bool = True) -> List[Dict[str, Any]]:
    where = "WHERE is_active" if active_only else ""
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT id, name, description, modality, duration_hours, price, is_active, created_at
            FROM courses
            {where}
            ORDER BY created_at, name
            """
        )
        return cur.fetchall()


def get_course(course_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            SELECT id, name, description, modality, duration_hours, price, is_active, created_at
            FROM courses
            WHERE id = %s
            """,
            (course_id,),
        )
        return cur.fetchone()


def list_classes(course_id: str, active_only: bool = True) -> List[Dict[str, Any]]:
    active = "AND is_active" if active_only else ""
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT id, course_id, name, room, start_date, end_date, max_students, is_active
            FROM classes
            WHERE course_id = %s {active}
            ORDER BY start_date, name
            """,
            (course_id,),
        )
        return cur.fetchall()


def get_class(class_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            SELECT id, course_id, name, room, start_date, end_date, max_students, is_active
            FROM classes
            WHERE id = %s
            """,
            (class_id,),
        )
        return cur.fetchone()


# --- custom_fields ------------------------------------------------------------------------

def list_custom_fields(entity_type: str = "lead", active_only: bool = True) -> List[Dict[str, Any]]:
    active = "AND is_active" if active_only else ""
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT id, entity_type, field_name, field_label, field_type, options,
                   is_required, order_index, is_active, created_at
            FROM custom_fields
            WHERE entity_type = %s {active}
            ORDER BY order_index, field_label
            """,
            (entity_type,),
        )
        return cur.fetchall()


def create_custom_field(values: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {k: v for k, v in values.items() if k in CUSTOM_FIELD_FIELDS}
    if allowed.get("options") is not None:
        allowed["options"] = Json(allowed["options"])
    columns = list(allowed.keys())
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            INSERT INTO custom_fields ({', '.join(columns)})
            VALUES ({', '.join(['%s'] * len(columns))})
            RETURNING id, entity_type, field_name, field_label, field_type, options,
                      is_required, order_index, is_active, created_at
            """,
            tuple(allowed.values()),
        )
        row = cur.fetchone()
    logger.info("Custom field created id=%s name=%s", row["id"], row["field_name"])
    return row


def update_custom_field(field_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    allowed = {k: v for k, v in updates.items() if k in CUSTOM_FIELD_FIELDS}
    if not allowed:
        return None
    assignments, values = _assignments(allowed)
    values.append(field_id)
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            UPDATE custom_fields SET {assignments} WHERE id = %s
            RETURNING id, entity_type, field_name, field_label, field_type, options,
                      is_required, order_index, is_active, created_at
            """,
            tuple(values),
        )
        return cur.fetchone()
