import io

import pytest


def _payload(catalog, code="STU900", **overrides):
    payload = {
        "code": code,
        "name": "Yacine Ould",
        "email": f"{code.lower()}@example.com",
        "phone": "+213770001122",
        "address": "Cite 5 Juillet, Constantine",
        "birth_date": "2001-11-02",
        "birth_place": "Constantine",
        "enrollment_year": "2020-09-15",
        "gradeId": catalog["grades"]["M1"],
        "specialtyId": catalog["specialties"]["Web"],
    }
    payload.update(overrides)
    return payload


def test_create_and_show_student(admin_client, catalog):
    response = admin_client.post("/api/students", json=_payload(catalog))

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["code"] == "STU900"
    assert data["grade"] == {"name": "M1"}
    assert data["specialty"] == {"name": "Web"}
    assert data["birth_date"] == "2001-11-02"
    assert data["skills"] == []
    assert data["assessments"] == []


def test_duplicate_code_conflicts(admin_client, catalog):
    admin_client.post("/api/students", json=_payload(catalog))

    response = admin_client.post("/api/students", json=_payload(catalog))

    assert response.status_code == 409


def test_unknown_grade_is_an_invalid_reference(admin_client, catalog):
    response = admin_client.post("/api/students", json=_payload(catalog, gradeId=404))

    assert response.status_code == 422
    assert response.get_json()["data"]["entity"] == "grade"


def test_invalid_payload_lists_field_errors(admin_client, catalog):
    response = admin_client.post("/api/students", json={"code": "X"})

    assert response.status_code == 400
    errors = response.get_json()["data"]["errors"]
    assert {"name", "email", "phone", "gradeId", "specialtyId"} <= set(errors)


def test_index_paginates_and_searches(admin_client, catalog, make_student, monkeypatch):
    monkeypatch.setenv("STUDENTS_PAGE_SIZE", "2")
    for index in range(3):
        make_student(f"PAG00{index}", name=f"Student {index}")
    make_student("FIND01", name="Needle Person")

    first_page = admin_client.get("/api/students?page=1").get_json()["data"]
    assert [s["code"] for s in first_page["students"]] == ["FIND01", "PAG002"]
    assert first_page["meta"] == {"currentPage": 1, "perPage": 2, "total": 4, "lastPage": 2}

    search = admin_client.get("/api/students?q=needle").get_json()["data"]
    assert [s["code"] for s in search["students"]] == ["FIND01"]
    assert search["meta"]["total"] == 1


def test_update_student(admin_client, catalog, make_student):
    make_student("UPD001")

    response = admin_client.put(
        "/api/students/UPD001",
        json=_payload(catalog, code="UPD001", name="Renamed Student"),
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["name"] == "Renamed Student"


def test_update_missing_student(admin_client, catalog):
    response = admin_client.put("/api/students/NOPE01", json=_payload(catalog, code="NOPE01"))

    assert response.status_code == 404


def test_update_can_rename_student_code(admin_client, catalog, make_student):
    make_student("OLD001")

    response = admin_client.put("/api/students/OLD001", json=_payload(catalog, code="NEW001"))

    assert response.status_code == 200
    assert response.get_json()["data"]["code"] == "NEW001"
    assert admin_client.get("/api/students/OLD001").status_code == 404
    assert admin_client.get("/api/students/NEW001").status_code == 200


def test_update_to_taken_code_conflicts(admin_client, catalog, make_student):
    make_student("TAK001")
    make_student("TAK002")

    response = admin_client.put("/api/students/TAK002", json=_payload(catalog, code="TAK001"))

    assert response.status_code == 409


def test_delete_student(admin_client, catalog, make_student):
    make_student("DEL001")

    assert admin_client.delete("/api/students/DEL001").status_code == 200
    assert admin_client.get("/api/students/DEL001").status_code == 404
    assert admin_client.delete("/api/students/DEL001").status_code == 404


def test_show_lists_assessments_newest_first(admin_client, catalog, make_student):
    make_student("ORD001")
    ids = []
    for collection, key in (("evaluations", "skillEvaluations"), ("ratings", "skillRatings")):
        created = admin_client.post(f"/api/{collection}", json={"code": "ORD001", key: []})
        ids.append(created.get_json()["data"]["id"])

    data = admin_client.get("/api/students/ORD001").get_json()["data"]

    assert [a["id"] for a in data["assessments"]] == list(reversed(ids))
    assert [a["kind"] for a in data["assessments"]] == ["rating", "evaluation"]


def test_update_activities_replaces_set(admin_client, catalog, make_student):
    make_student("ACT001")
    activities = catalog["activities"]

    admin_client.put(
        "/api/students/ACT001/activities",
        json={"activityIds": [activities["Hackathon"], activities["Summer internship"]]},
    )
    response = admin_client.put(
        "/api/students/ACT001/activities",
        json={"activityIds": [activities["Summer internship"]]},
    )

    assert response.status_code == 200
    names = [a["name"] for a in response.get_json()["data"]["activities"]]
    assert names == ["Summer internship"]


def test_update_activities_rejects_unknown_ids(admin_client, catalog, make_student):
    make_student("ACT002")

    response = admin_client.put("/api/students/ACT002/activities", json={"activityIds": [321]})

    assert response.status_code == 422
    assert response.get_json()["data"]["missingIds"] == [321]


def test_import_endpoint(admin_client, catalog):
    csv_text = (
        "code,name,email,phone,address,birth_date,birth_place,enrollment_year,gradeId,specialtyId\n"
        f"IMP900,Nadia Cherif,nadia@example.com,0555000111,Tlemcen,1999-04-04,Tlemcen,2019,"
        f"{catalog['grades']['L1']},{catalog['specialties']['SI']}\n"
        "IMP901,,missing@example.com,0555000112,Tlemcen,1999-04-04,Tlemcen,2019,1,1\n"
    )

    response = admin_client.post(
        "/api/students/import",
        data={"file": (io.BytesIO(csv_text.encode("utf-8")), "students.csv")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["success"] == 1
    assert data["failed"] == 1
    assert response.get_json()["message"] == "Import completed: 1 success, 1 failed"
    assert data["errors"] == [{"row": 3, "field": "required", "message": data["errors"][0]["message"]}]


@pytest.mark.parametrize("filename, status", [("students.pdf", 400), ("students.xlsx", 400)])
def test_import_endpoint_rejects_unreadable_files(admin_client, filename, status):
    response = admin_client.post(
        "/api/students/import",
        data={"file": (io.BytesIO(b"garbage"), filename)},
        content_type="multipart/form-data",
    )

    assert response.status_code == status
    assert response.get_json()["success"] is False


def test_import_endpoint_requires_file(admin_client):
    response = admin_client.post(
        "/api/students/import", data={}, content_type="multipart/form-data"
    )

    assert response.status_code == 400
    assert "file" in response.get_json()["data"]["errors"]


def test_template_download(admin_client):
    response = admin_client.get("/api/students/template")

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "student_template.csv" in response.headers["Content-Disposition"]
    assert response.get_data(as_text=True).startswith("code,name,email")


def test_catalog_endpoints(admin_client, catalog):
    skills = admin_client.get("/api/skills").get_json()["data"]
    assert [s["name"] for s in skills] == ["Communication", "Python", "SQL", "Teamwork"]

    created = admin_client.post(
        "/api/skills",
        json={"name": "Public Speaking", "description": "Talks to a room", "type": "soft"},
    )
    assert created.status_code == 201
    assert created.get_json()["data"]["type"] == "SOFT"

    duplicate = admin_client.post(
        "/api/skills",
        json={"name": "python", "description": "Another python", "type": "HARD"},
    )
    assert duplicate.status_code == 409

    activity = admin_client.post(
        "/api/activities",
        json={"name": "Football cup", "description": "Inter-faculty", "type": "SPORT"},
    )
    assert activity.status_code == 201
    assert len(admin_client.get("/api/activities").get_json()["data"]) == 3

    specialties = admin_client.get("/api/specialties").get_json()["data"]
    assert [s["name"] for s in specialties] == ["SI", "Web"]
    assert [g["name"] for g in specialties[0]["grades"]] == ["L1", "L2", "M1"]
