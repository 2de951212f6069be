from learnhub.services.purchase_ledger import PurchaseLedger


def test_list_courses_anonymous(client, courses):
    response = client.get("/courses")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["page"] == 1
    assert all(item["is_purchased"] is False for item in data["courses"])


def test_list_courses_price_filter(client, courses):
    free = client.get("/courses", params={"price": "free"}).json()
    paid = client.get("/courses", params={"price": "paid"}).json()

    assert [c["id"] for c in free["courses"]] == ["free-1"]
    assert [c["id"] for c in paid["courses"]] == ["course-1"]


def test_list_courses_search(client, courses):
    data = client.get("/courses", params={"search": "python"}).json()

    assert [c["id"] for c in data["courses"]] == ["course-1"]


def test_list_courses_marks_purchased(client, courses, user, auth_headers, db_session):
    PurchaseLedger(db_session).record_purchase(user.id, "course-1")

    data = client.get("/courses", headers=auth_headers).json()

    purchased = {c["id"]: c["is_purchased"] for c in data["courses"]}
    assert purchased == {"course-1": True, "free-1": False}


def test_invalid_token_is_treated_as_anonymous(client, courses):
    response = client.get("/courses", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 200


def test_course_detail(client, courses, user, auth_headers, db_session):
    anonymous = client.get("/courses/course-1").json()
    assert anonymous["has_access"] is None

    before = client.get("/courses/course-1", headers=auth_headers).json()
    assert before["has_access"] is False

    PurchaseLedger(db_session).record_purchase(user.id, "course-1")
    after = client.get("/courses/course-1", headers=auth_headers).json()
    assert after["has_access"] is True
    assert after["progress"] == 0


def test_course_detail_not_found(client):
    response = client.get("/courses/missing")

    assert response.status_code == 404
    assert response.json()["type"] == "not_found"


def test_admin_creates_and_updates_course(client, admin_headers):
    response = client.post(
        "/courses",
        json={"id": "new-course", "title": "New Course", "price": 2500},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["price"] == 2500

    response = client.patch(
        "/courses/new-course", json={"price": 3000}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["price"] == 3000
    assert response.json()["title"] == "New Course"


def test_duplicate_course_id_conflicts(client, courses, admin_headers):
    response = client.post(
        "/courses",
        json={"id": "course-1", "title": "Clash", "price": 100},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_non_admin_cannot_create_course(client, auth_headers):
    response = client.post(
        "/courses", json={"title": "Nope", "price": 100}, headers=auth_headers
    )
    assert response.status_code == 403


def test_enroll_free_course(client, courses, user, auth_headers, db_session):
    response = client.post("/courses/free-1/enroll", headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["state"] == "not_started"
    assert PurchaseLedger(db_session).has_purchased(user.id, "free-1") is True


def test_enroll_paid_course_is_rejected(client, courses, auth_headers):
    response = client.post("/courses/course-1/enroll", headers=auth_headers)

    assert response.status_code == 400


def test_content_for_purchased_course(client, courses, user, auth_headers, db_session):
    PurchaseLedger(db_session).record_purchase(user.id, "course-1")

    response = client.get("/courses/course-1/content", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["stream_url"].endswith(".m3u8")
    assert data["duration"] == 5400
