
def create(client, path, payload):
    response = client.post(path, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_department_codes_are_unique_and_normalized(client):
    created = create(client, "/api/departments/", {"name": "Computer Science", "code": " cs "})
    assert created["code"] == "CS"

    duplicate = client.post("/api/departments/", json={"name": "Other", "code": "CS"})
    assert duplicate.status_code == 409

    listed = client.get("/api/departments/")
    assert [item["code"] for item in listed.json()] == ["CS"]


def test_department_options_only_include_department_records(client):
    cs = create(client, "/api/departments/", {"name": "Computer Science", "code": "CS"})
    math = create(client, "/api/departments/", {"name": "Mathematics", "code": "MATH"})
    create(client, "/api/subjects/", {"code": "CS101", "name": "Intro to Programming", "department_id": cs["id"]})
    create(client, "/api/subjects/", {"code": "MATH201", "name": "Linear Algebra", "department_id": math["id"]})
    create(client, "/api/sections/", {"name": "BSCS 1-A", "department_id": cs["id"]})
    create(
        client,
        "/api/users/",
        {"name": "Grace Hopper", "email": "grace@example.com", "role": "instructor", "department_id": cs["id"]},
    )
    create(
        client,
        "/api/users/",
        {"name": "Ada Student", "email": "ada@example.com", "role": "student", "department_id": cs["id"]},
    )

    response = client.get(f"/api/departments/{cs['id']}/options")

    assert response.status_code == 200
    body = response.json()
    assert [item["code"] for item in body["subjects"]] == ["CS101"]
    assert [item["name"] for item in body["sections"]] == ["BSCS 1-A"]
    assert [item["name"] for item in body["teachers"]] == ["Grace Hopper"]

    assert client.get("/api/departments/9999/options").status_code == 404


def test_reference_data_validation(client):
    assert client.post(
        "/api/subjects/", json={"code": "CS101", "name": "Intro", "department_id": 9999}
    ).status_code == 422
    assert client.post(
        "/api/users/", json={"name": "Someone", "email": "not-an-email", "role": "student"}
    ).status_code == 422

    create(client, "/api/users/", {"name": "Ada", "email": "Ada@Example.com", "role": "student"})
    duplicate = client.post("/api/users/", json={"name": "Ada", "email": "ada@example.com", "role": "student"})
    assert duplicate.status_code == 409

    students = client.get("/api/users/", params={"role": "student"})
    assert [item["email"] for item in students.json()] == ["ada@example.com"]
    assert client.get("/api/users/", params={"role": "instructor"}).json() == []
