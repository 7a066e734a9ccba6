from typing import Any, Dict, List, Optional, Tuple

from schoolcrm.db.postgres import get_cursor
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)

LEAD_COLUMNS = """
    id, full_name, phone, email, guardian_name, source_id, campaign, ad_set, ad_name,
    external_id, external_source, notes, status, scheduled_at, attended_at,
    proposal_at, enrolled_at, lost_at, created_at, updated_at
"""

LEAD_FIELDS = {
    "full_name",
    "phone",
    "email",
    "guardian_name",
    "source_id",
    "campaign",
    "ad_set",
    "ad_name",
    "external_id",
    "external_source",
    "notes",
    "status",
}

# Pipeline stage -> timestamp column stamped when a lead enters it.
STATUS_TIMESTAMP_COLUMNS = {
    "agendado": "scheduled_at",
    "compareceu": "attended_at",
    "proposta": "proposal_at",
    "matriculado": "enrolled_at",
    "perdido": "lost_at",
}

CUSTOM_VALUE_FIELDS = (
    "lead_id",
    "field_id",
    "value_text",
    "value_number",
    "value_date",
    "value_boolean",
)


def find_lead_id_by_phone(phone: str) -> Optional[str]:
    with get_cursor() as (_, cur):
        cur.execute("SELECT id FROM leads WHERE phone = %s LIMIT 1", (phone,))
        row = cur.fetchone()
    return row["id"] if row else None


def insert_lead(values: Dict[str, Any]) -> Optional[str]:
    """
    Insert a lead and return its id.
    Returns None when another row already holds the same phone.
    """
    allowed = {k: v for k, v in values.items() if k in LEAD_FIELDS}
    columns = list(allowed.keys())
    placeholders = ", ".join(["%s"] * len(columns))
    stamp_column = STATUS_TIMESTAMP_COLUMNS.get(allowed.get("status"))
    if stamp_column:
        columns.append(stamp_column)
        placeholders += ", NOW()"
    sql = f"""
        INSERT INTO leads ({', '.join(columns)})
        VALUES ({placeholders})
        ON CONFLICT (phone) DO NOTHING
        RETURNING id;
    """
    with get_cursor() as (_, cur):
        cur.execute(sql, tuple(allowed.values()))
        row = cur.fetchone()
    if not row:
        logger.info("Lead insert skipped, phone=%s already registered", allowed.get("phone"))
        return None
    logger.info("Lead created id=%s phone=%s", row["id"], allowed.get("phone"))
    return row["id"]


def get_lead(lead_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(f"SELECT {LEAD_COLUMNS} FROM leads WHERE id = %s", (lead_id,))
        return cur.fetchone()


def list_leads(
    limit: int = 100,
    offset: int = 0,
    status: Optional[str] = None,
    source_id: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    clauses: List[str] = []
    values: List[Any] = []
    if status:
        clauses.append("status = %s")
        values.append(status)
    if source_id:
        clauses.append("source_id = %s")
        values.append(source_id)
    if search:
        digits = "".join(ch for ch in search if ch.isdigit())
        if digits:
            clauses.append("(full_name ILIKE %s OR phone LIKE %s)")
            values.extend([f"%{search}%", f"%{digits}%"])
        else:
            clauses.append("full_name ILIKE %s")
            values.append(f"%{search}%")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with get_cursor() as (_, cur):
        cur.execute(
            f"SELECT {LEAD_COLUMNS} FROM leads {where} ORDER BY created_at DESC LIMIT %s OFFSET %s",
            tuple(values + [limit, offset]),
        )
        rows = cur.fetchall()
        cur.execute(f"SELECT COUNT(*)::INT AS total FROM leads {where}", tuple(values))
        total = cur.fetchone()["total"]
    return rows, total


def update_lead(lead_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    allowed = {k: v for k, v in updates.items() if k in LEAD_FIELDS}
    if not allowed:
        return None

    expressions: List[str] = []
    values: List[Any] = []
    for field, value in allowed.items():
        expressions.append(f"{field} = %s")
        values.append(value)
    values.append(lead_id)

    with get_cursor() as (_, cur):
        cur.execute(
            f"UPDATE leads SET {', '.join(expressions)}, updated_at = NOW() "
            f"WHERE id = %s RETURNING {LEAD_COLUMNS}",
            tuple(values),
        )
        return cur.fetchone()


def change_lead_status(
    lead_id: str,
    to_status: str,
    changed_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Move a lead to another pipeline stage and record the transition."""
    stamp = STATUS_TIMESTAMP_COLUMNS.get(to_status)
    stamp_sql = f", {stamp} = NOW()" if stamp else ""

    with get_cursor() as (_, cur):
        cur.execute("SELECT status FROM leads WHERE id = %s FOR UPDATE", (lead_id,))
        current = cur.fetchone()
        if not current:
            return None
        cur.execute(
            f"UPDATE leads SET status = %s{stamp_sql}, updated_at = NOW() "
            f"WHERE id = %s RETURNING {LEAD_COLUMNS}",
            (to_status, lead_id),
        )
        updated = cur.fetchone()
        cur.execute(
            """
            INSERT INTO lead_history (lead_id, from_status, to_status, changed_by, notes)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (lead_id, current["status"], to_status, changed_by, notes),
        )
    logger.info(
        "Lead %s moved %s -> %s by %s", lead_id, current["status"], to_status, changed_by
    )
    return updated


def list_lead_history(lead_id: str) -> List[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            SELECT id, lead_id, from_status, to_status, changed_by, notes, created_at
            FROM lead_history
            WHERE lead_id = %s
            ORDER BY created_at DESC
            """,
            (lead_id,),
        )
        return cur.fetchall()


def list_lead_custom_values(lead_id: str) -> List[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            """
            SELECT v.id, v.lead_id, v.field_id, f.field_name, f.field_label, f.field_type,
                   v.value_text, v.value_number, v.value_date, v.value_boolean
            FROM lead_custom_values v
            JOIN custom_fields f ON f.id = v.field_id
            WHERE v.lead_id = %s
            ORDER BY f.order_index, f.field_label
            """,
            (lead_id,),
        )
        return cur.fetchall()


def insert_lead_custom_values(rows: List[Dict[str, Any]]) -> int:
    if not rows:
        return 0
    sql = f"""
        INSERT INTO lead_custom_values ({', '.join(CUSTOM_VALUE_FIELDS)})
        VALUES ({', '.join(['%s'] * len(CUSTOM_VALUE_FIELDS))});
    """
    with get_cursor() as (_, cur):
        for row in rows:
            cur.execute(sql, tuple(row.get(field) for field in CUSTOM_VALUE_FIELDS))
    logger.info("Stored %d custom values for lead %s", len(rows), rows[0].get("lead_id"))
    return len(rows)
