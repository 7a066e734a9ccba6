import pytest

from schoolcrm.db import leads
from schoolcrm.ingestion.common import (
    WebhookError,
    build_custom_values,
    convert_custom_value,
    parse_bool,
    parse_date,
    resolve_lead,
)


@pytest.mark.parametrize(
    "value,expected",
    [("sim", True), ("TRUE", True), (1, True), ("não", False), ("0", False), ("talvez", None)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_parse_date_accepts_brazilian_and_iso_formats():
    assert parse_date("2008-03-15") == "2008-03-15"
    assert parse_date("15/03/2008") == "2008-03-15"
    assert parse_date("15-03-2008") == "2008-03-15"
    assert parse_date("ontem") is None


def test_convert_custom_value_by_field_type():
    assert convert_custom_value("text", 42) == {"value_text": "42"}
    assert convert_custom_value("select", "A") == {"value_text": "A"}
    assert convert_custom_value("number", "1.75") == {"value_number": 1.75}
    assert convert_custom_value("number", "alto") is None
    assert convert_custom_value("boolean", "sim") == {"value_boolean": True}
    assert convert_custom_value("date", "01/02/2024") == {"value_date": "2024-02-01"}
    assert convert_custom_value("color", "red") is None


def test_build_custom_values_skips_unknown_and_invalid_fields():
    fields = [
        {"id": "f1", "field_name": "altura", "field_type": "number"},
        {"id": "f2", "field_name": "tem_book", "field_type": "boolean"},
    ]
    rows = build_custom_values(
        "lead-1", {"altura": "1.70", "tem_book": "quem sabe", "desconhecido": "x"}, fields
    )
    assert rows == [{"lead_id": "lead-1", "field_id": "f1", "value_number": 1.7}]


def test_webhook_error_carries_status_and_body():
    error = WebhookError(400, {"error": "bad"})
    assert error.status_code == 400
    assert error.body == {"error": "bad"}
    assert str(error) == "bad"


def test_resolve_lead_creates_then_reuses(fake_db):
    lead_id, created = resolve_lead("11988887777", {"full_name": "Ana Lima", "status": "lead"})
    assert created is True

    again, created_again = resolve_lead("11988887777", {"full_name": "Ana L.", "status": "lead"})
    assert again == lead_id
    assert created_again is False
    assert len(fake_db.leads) == 1


def test_resolve_lead_returns_winner_after_conflicting_insert(fake_db, monkeypatch):
    winner = fake_db.add_lead("Ana Lima", "11988887777")
    answers = iter([None, winner])
    monkeypatch.setattr(leads, "find_lead_id_by_phone", lambda phone: next(answers))

    lead_id, created = resolve_lead("11988887777", {"full_name": "Ana Lima", "status": "lead"})

    assert lead_id == winner
    assert created is False
    assert len(fake_db.leads) == 1
