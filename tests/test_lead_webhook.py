URL = "/webhooks/leads"


def test_post_creates_lead(client, fake_db):
    response = client.post(
        URL,
        json={"client_name": "Ana Lima", "phone": "(11) 98888-7777", "email": "ana@example.com"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Lead created successfully"
    lead = fake_db.leads[body["lead_id"]]
    assert lead["phone"] == "11988887777"
    assert lead["status"] == "lead"
    assert lead["external_source"] == "webhook"
    assert response.headers["access-control-allow-origin"] == "*"


def test_second_post_with_same_phone_is_reported_as_duplicate(client, fake_db):
    first = client.post(URL, json={"full_name": "Ana Lima", "phone": "11988887777"})
    second = client.post(URL, json={"full_name": "Ana L.", "phone": "+ (11) 98888 7777"})

    assert second.status_code == 200
    assert second.json() == {
        "success": False,
        "message": "Lead already exists",
        "lead_id": first.json()["lead_id"],
        "duplicate": True,
    }
    assert len(fake_db.leads) == 1


def test_missing_phone_is_rejected_without_writing(client, fake_db):
    response = client.post(URL, json={"full_name": "Ana Lima"})

    assert response.status_code == 400
    assert "phone" in response.json()["error"]
    assert fake_db.leads == {}


def test_phone_without_digits_is_rejected(client, fake_db):
    response = client.post(URL, json={"full_name": "Ana Lima", "phone": "sem telefone"})

    assert response.status_code == 400
    assert fake_db.leads == {}


def test_get_reads_query_parameters(client, fake_db):
    response = client.get(
        URL,
        params={
            "client_name": "Bruno Souza",
            "telefone": "21 97777-6666",
            "modelo": "Campanha Verão",
            "projeto": "Projeto X",
            "scouter": "Joana",
            "Hora": "14h",
            "notes": "ignored on GET",
        },
    )

    assert response.status_code == 201
    lead = fake_db.leads[response.json()["lead_id"]]
    assert lead["phone"] == "21977776666"
    assert lead["campaign"] == "Campanha Verão"
    assert lead["ad_set"] == "Projeto X"
    assert lead["notes"] == "Scouter: Joana | Hora: 14h"


def test_post_notes_include_free_text(client, fake_db):
    response = client.post(
        URL,
        json={
            "full_name": "Ana Lima",
            "phone": "11988887777",
            "Local": "Shopping Centro",
            "event_date": "2024-05-01",
            "notes": "prefere manhã",
        },
    )

    lead = fake_db.leads[response.json()["lead_id"]]
    assert lead["notes"] == "Local: Shopping Centro | Data Agendamento: 2024-05-01 | prefere manhã"


def test_source_is_matched_by_name(client, fake_db):
    instagram = fake_db.get_source_id_by_exact_name("Instagram")

    response = client.post(URL, json={"full_name": "Ana", "phone": "11988887777", "source": "insta"})

    assert fake_db.leads[response.json()["lead_id"]]["source_id"] == instagram


def test_unknown_source_falls_back_to_outro(client, fake_db):
    outro = fake_db.get_source_id_by_exact_name("Outro")

    response = client.post(URL, json={"full_name": "Ana", "phone": "11988887777", "origem": "TikTok"})

    assert fake_db.leads[response.json()["lead_id"]]["source_id"] == outro


def test_custom_fields_are_converted_by_type(client, fake_db):
    height = fake_db.add_custom_field("altura", "number")
    book = fake_db.add_custom_field("tem_book", "boolean")
    birth = fake_db.add_custom_field("nascimento", "date")
    fake_db.add_custom_field("antigo", "text", is_active=False)

    response = client.post(
        URL,
        json={
            "full_name": "Ana",
            "phone": "11988887777",
            "custom_fields": {
                "altura": "1.75",
                "tem_book": "sim",
                "nascimento": "15/03/2008",
                "antigo": "x",
                "desconhecido": "y",
            },
        },
    )

    assert response.status_code == 201
    stored = {row["field_id"]: row for row in fake_db.custom_values}
    assert set(stored) == {height, book, birth}
    assert stored[height]["value_number"] == 1.75
    assert stored[book]["value_boolean"] is True
    assert stored[birth]["value_date"] == "2008-03-15"


def test_custom_value_failure_does_not_fail_the_lead(client, fake_db):
    fake_db.add_custom_field("altura", "number")
    fake_db.fail_on.add("insert_lead_custom_values")

    response = client.post(
        URL, json={"full_name": "Ana", "phone": "11988887777", "custom_fields": {"altura": 1.7}}
    )

    assert response.status_code == 201
    assert len(fake_db.leads) == 1


def test_insert_failure_returns_500_with_details(client, fake_db):
    fake_db.fail_on.add("insert_lead")

    response = client.post(URL, json={"full_name": "Ana", "phone": "11988887777"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create lead", "details": "insert_lead failed"}


def test_malformed_json_is_rejected(client, fake_db):
    response = client.post(URL, content=b"{not json", headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid JSON body"


def test_preflight_and_unsupported_methods(client):
    preflight = client.options(URL)
    assert preflight.status_code == 200
    assert preflight.text == "ok"
    assert "POST" in preflight.headers["access-control-allow-methods"]

    response = client.put(URL, json={})
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_repeated_query_key_keeps_the_first_value(client, fake_db):
    response = client.get(
        URL,
        params=[("client_name", "Ana Lima"), ("phone", "11988887777"), ("phone", "21977776666")],
    )

    assert fake_db.leads[response.json()["lead_id"]]["phone"] == "11988887777"


def test_head_gets_cors_headers(client):
    response = client.head(URL)

    assert response.status_code == 405
    assert response.headers["access-control-allow-origin"] == "*"


def test_new_lead_is_announced_after_the_response(client, fake_db, monkeypatch):
    announced = []
    monkeypatch.setattr(
        "schoolcrm.routes.webhooks.send_lead_notification", lambda data: announced.append(data)
    )

    created = client.post(URL, json={"full_name": "Ana Lima", "phone": "11988887777"})
    client.post(URL, json={"full_name": "Ana Lima", "phone": "11988887777"})

    assert len(announced) == 1
    assert announced[0]["lead_id"] == created.json()["lead_id"]
    assert announced[0]["phone"] == "11988887777"
