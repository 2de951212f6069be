from learnhub.models import User


def _register(client, email="new@example.com", password="secret123"):
    return client.post(
        "/auth/register",
        json={"email": email, "password": password, "full_name": "New Learner"},
    )


def test_register_returns_token_and_sends_welcome(client, clients):
    response = _register(client)

    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["display_name"] == "New Learner"

    [welcome] = clients.email.outbox
    assert welcome.to == "new@example.com"
    assert welcome.subject.startswith("Welcome")


def test_register_survives_email_failure(client, clients):
    clients.email.fail = True

    assert _register(client).status_code == 201


def test_register_duplicate_email(client):
    _register(client)
    response = _register(client, email="NEW@example.com")

    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


def test_login_and_me(client):
    _register(client)

    login = client.post(
        "/auth/login", json={"email": "new@example.com", "password": "secret123"}
    )
    assert login.status_code == 200

    token = login.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new@example.com"


def test_login_wrong_password(client):
    _register(client)

    response = client.post(
        "/auth/login", json={"email": "new@example.com", "password": "wrong-pass"}
    )
    assert response.status_code == 401


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401


def test_inactive_user_is_rejected(client, user, auth_headers, db_session):
    user.is_active = False
    db_session.commit()

    assert client.get("/auth/me", headers=auth_headers).status_code == 403


def test_password_reset_flow(client, clients, user, db_session):
    response = client.post("/auth/forgot-password", json={"email": user.email})
    assert response.status_code == 200

    [message] = clients.email.outbox
    token = message.html.split("token=")[1].split('"')[0]

    reset = client.post(
        "/auth/reset-password", json={"token": token, "new_password": "brand-new-1"}
    )
    assert reset.status_code == 200

    login = client.post(
        "/auth/login", json={"email": user.email, "password": "brand-new-1"}
    )
    assert login.status_code == 200

    # Token is single use
    again = client.post(
        "/auth/reset-password", json={"token": token, "new_password": "another-1"}
    )
    assert again.status_code == 401


def test_forgot_password_unknown_email_looks_the_same(client, clients):
    response = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert response.status_code == 200
    assert clients.email.outbox == []


def test_emails_are_stored_lower_case(client, db_session):
    _register(client, email="Mixed.Case@Example.com")

    assert db_session.query(User).filter_by(email="mixed.case@example.com").count() == 1
