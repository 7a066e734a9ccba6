import uuid


def test_academic_contact_reuses_lead_by_phone(client, fake_db):
    course = fake_db.add_course("Passarela")
    lead_id = fake_db.add_lead("Ana Lima", "11988887777")

    response = client.post(
        "/enrollments",
        json={
            "full_name": "Ana Lima",
            "phone": "(11) 98888-7777",
            "course_id": course,
            "enrollment_type": "indicacao_aluno",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["lead_id"] == lead_id
    assert body["status"] == "ativo"
    assert body["student_name"] == "Ana Lima"
    assert body["course_name"] == "Passarela"
    assert len(fake_db.leads) == 1


def test_academic_contact_validation(client, fake_db):
    course = fake_db.add_course("Passarela")
    other = fake_db.add_course("Teatro")
    foreign_class = fake_db.add_class(other, "Turma A")

    short_phone = client.post(
        "/enrollments", json={"full_name": "Ana", "phone": "12345", "course_id": course}
    )
    missing_course = client.post(
        "/enrollments", json={"full_name": "Ana", "phone": "11988887777", "course_id": str(uuid.uuid4())}
    )
    wrong_class = client.post(
        "/enrollments",
        json={"full_name": "Ana", "phone": "11988887777", "course_id": course, "class_id": foreign_class},
    )

    assert short_phone.status_code == 400
    assert missing_course.status_code == 404
    assert wrong_class.status_code == 400
    assert fake_db.enrollments == {}


def test_update_and_fetch_enrollment(client, fake_db):
    course = fake_db.add_course("Passarela")
    lead_id = fake_db.add_lead("Ana Lima", "11988887777")
    enrollment_id = fake_db.insert_enrollment({"lead_id": lead_id, "course_id": course, "status": "ativo"})

    updated = client.patch(f"/enrollments/{enrollment_id}", json={"status": "concluido"})
    listed = client.get("/enrollments", params={"status": "concluido"}).json()

    assert updated.status_code == 200
    assert updated.json()["status"] == "concluido"
    assert listed["meta"]["total"] == 1
    assert client.get(f"/enrollments/{uuid.uuid4()}").status_code == 404


def test_update_rejects_null_status(client, fake_db):
    course = fake_db.add_course("Passarela")
    enrollment_id = fake_db.insert_enrollment({"course_id": course, "status": "ativo"})

    response = client.patch(f"/enrollments/{enrollment_id}", json={"status": None})

    assert response.status_code == 400
    assert fake_db.enrollments[enrollment_id]["status"] == "ativo"


def test_malformed_body_ids_are_rejected_before_any_lookup(client, fake_db):
    course = fake_db.add_course("Passarela")
    enrollment_id = fake_db.insert_enrollment({"course_id": course, "status": "ativo"})

    bad_course = client.post(
        "/enrollments", json={"full_name": "Ana", "phone": "11988887777", "course_id": "abc"}
    )
    bad_class = client.patch(f"/enrollments/{enrollment_id}", json={"class_id": "turma-1"})

    assert bad_course.status_code == 422
    assert bad_class.status_code == 422
    assert fake_db.leads == {}


def test_update_moves_enrollment_to_a_class_of_its_course(client, fake_db):
    course = fake_db.add_course("Passarela")
    morning = fake_db.add_class(course, "Turma Manhã")
    enrollment_id = fake_db.insert_enrollment({"course_id": course, "status": "ativo"})

    response = client.patch(f"/enrollments/{enrollment_id}", json={"class_id": morning})

    assert response.status_code == 200
    assert response.json()["class_id"] == morning
