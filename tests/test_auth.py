from app.core.jwt import create_access_token


def test_register_and_login(client):
    register = client.post(
        "/auth/register",
        json={"name": "Chidi Eze", "email": "chidi@example.com", "password": "s3cret-pass"},
    )
    assert register.status_code == 201
    assert register.json()["role"] == "user"
    assert "password" not in register.json()

    login = client.post("/auth/login", json={"email": "chidi@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    mine = client.get("/bookings/my-bookings", headers={"Authorization": f"Bearer {token}"})
    assert mine.status_code == 200
    assert mine.json() == []


def test_register_duplicate_email(client, user):
    response = client.post(
        "/auth/register",
        json={"name": "Ada Again", "email": user.email, "password": "whatever1"},
    )

    assert response.status_code == 400


def test_login_wrong_password(client, user):
    response = client.post("/auth/login", json={"email": user.email, "password": "wrong"})

    assert response.status_code == 401


def test_invalid_token(client):
    response = client.get("/bookings/my-bookings", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_token_role_must_match_stored_role(client, user):
    token = create_access_token(user.email, "admin")

    response = client.get("/bookings/admin/all", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"
