from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from schoolcrm.db import leads as lead_store
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)

TRUE_VALUES = {"true", "1", "sim", "s", "yes", "y", "on", "x"}
FALSE_VALUES = {"false", "0", "nao", "não", "n", "no", "off", ""}
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


class WebhookError(RuntimeError):
    """A terminal webhook outcome rendered as-is to the caller."""

    def __init__(self, status_code: int, body: Dict[str, Any]):
        super().__init__(body.get("error") or f"webhook error {status_code}")
        self.status_code = status_code
        self.body = body


def resolve_lead(phone: str, values: Dict[str, Any]) -> Tuple[str, bool]:
    """
    Return (lead_id, created) for a normalized phone.

    An existing lead is reused. When the insert loses a race against a
    concurrent request for the same phone, the winner's id is returned.
    """
    existing = lead_store.find_lead_id_by_phone(phone)
    if existing:
        logger.info("Using existing lead %s for phone=%s", existing, phone)
        return existing, False

    lead_id = lead_store.insert_lead({**values, "phone": phone})
    if lead_id:
        return lead_id, True

    winner = lead_store.find_lead_id_by_phone(phone)
    if not winner:
        raise RuntimeError(f"Lead for phone {phone} vanished after a conflicting insert")
    logger.info("Concurrent insert for phone=%s resolved to lead %s", phone, winner)
    return winner, False


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def parse_date(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text[:10], fmt).date().isoformat()
        except ValueError:
            continue
    return None


def parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def convert_custom_value(field_type: str, value: Any) -> Optional[Dict[str, Any]]:
    """Map a raw value onto the value_* column matching the declared field type."""
    if field_type in ("text", "select"):
        return {"value_text": str(value)}
    if field_type == "number":
        number = parse_number(value)
        return None if number is None else {"value_number": number}
    if field_type == "date":
        parsed = parse_date(value)
        return None if parsed is None else {"value_date": parsed}
    if field_type == "boolean":
        flag = parse_bool(value)
        return None if flag is None else {"value_boolean": flag}
    return None


def build_custom_values(
    lead_id: str, supplied: Dict[str, Any], fields: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    by_name = {field["field_name"]: field for field in fields}
    rows: List[Dict[str, Any]] = []
    for field_name, value in supplied.items():
        field = by_name.get(field_name)
        if not field or value is None:
            continue
        converted = convert_custom_value(field["field_type"], value)
        if converted is None:
            logger.warning(
                "Skipping custom field %s: %r is not a valid %s",
                field_name,
                value,
                field["field_type"],
            )
            continue
        rows.append({"lead_id": lead_id, "field_id": field["id"], **converted})
    return rows
