from typing import Any, Dict, List, Optional, Tuple

from schoolcrm.db.postgres import get_cursor
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)

ENROLLMENT_COLUMNS = """
    e.id, e.lead_id, e.course_id, e.class_id, e.status, e.student_age, e.enrollment_type,
    e.referral_agent_code, e.influencer_name, e.notes, e.enrolled_at, e.created_at
"""

ENROLLMENT_INSERT_FIELDS = (
    "lead_id",
    "course_id",
    "class_id",
    "status",
    "student_age",
    "enrollment_type",
    "referral_agent_code",
    "influencer_name",
    "notes",
)

ENROLLMENT_UPDATE_FIELDS = {"status", "class_id", "notes", "enrollment_type", "student_age"}


def insert_enrollment(values: Dict[str, Any]) -> str:
    sql = f"""
        INSERT INTO enrollments ({', '.join(ENROLLMENT_INSERT_FIELDS)})
        VALUES ({', '.join(['%s'] * len(ENROLLMENT_INSERT_FIELDS))})
        RETURNING id;
    """
    with get_cursor() as (_, cur):
        cur.execute(sql, tuple(values.get(field) for field in ENROLLMENT_INSERT_FIELDS))
        enrollment_id = cur.fetchone()["id"]
    logger.info(
        "Enrollment created id=%s lead=%s course=%s class=%s",
        enrollment_id,
        values.get("lead_id"),
        values.get("course_id"),
        values.get("class_id"),
    )
    return enrollment_id


def get_enrollment(enrollment_id: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT {ENROLLMENT_COLUMNS}, l.full_name AS student_name, c.name AS course_name
            FROM enrollments e
            LEFT JOIN leads l ON l.id = e.lead_id
            LEFT JOIN courses c ON c.id = e.course_id
            WHERE e.id = %s
            """,
            (enrollment_id,),
        )
        return cur.fetchone()


def list_enrollments(
    limit: int = 100,
    offset: int = 0,
    status: Optional[str] = None,
    course_id: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    clauses: List[str] = []
    values: List[Any] = []
    if status:
        clauses.append("e.status = %s")
        values.append(status)
    if course_id:
        clauses.append("e.course_id = %s")
        values.append(course_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with get_cursor() as (_, cur):
        cur.execute(
            f"""
            SELECT {ENROLLMENT_COLUMNS}, l.full_name AS student_name, c.name AS course_name
            FROM enrollments e
            LEFT JOIN leads l ON l.id = e.lead_id
            LEFT JOIN courses c ON c.id = e.course_id
            {where}
            ORDER BY e.enrolled_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(values + [limit, offset]),
        )
        rows = cur.fetchall()
        cur.execute(f"SELECT COUNT(*)::INT AS total FROM enrollments e {where}", tuple(values))
        total = cur.fetchone()["total"]
    return rows, total


def update_enrollment(enrollment_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    allowed = {k: v for k, v in updates.items() if k in ENROLLMENT_UPDATE_FIELDS}
    if not allowed:
        return None

    expressions: List[str] = []
    values: List[Any] = []
    for field, value in allowed.items():
        expressions.append(f"{field} = %s")
        values.append(value)
    values.append(enrollment_id)

    with get_cursor() as (_, cur):
        cur.execute(
            f"UPDATE enrollments SET {', '.join(expressions)}, updated_at = NOW() "
            "WHERE id = %s RETURNING id",
            tuple(values),
        )
        row = cur.fetchone()
    if not row:
        return None
    return get_enrollment(row["id"])
