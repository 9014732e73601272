from app.security import authenticate, hash_password, verify_password
from models import create_admin


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)
    assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")


def test_authenticate_against_admins_table(app):
    create_admin(username="dean.office", password_hash=hash_password("office-pass"))

    assert authenticate("dean.office", "office-pass").username == "dean.office"
    assert authenticate("dean.office", "bad-pass") is None
    assert authenticate("nobody", "office-pass") is None


def test_api_requires_login(client):
    response = client.get("/api/students")

    assert response.status_code == 401
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["status"] == 401


def test_login_rejects_bad_credentials(client):
    create_admin(username="dean.office", password_hash=hash_password("office-pass"))

    response = client.post(
        "/api/auth/login", json={"username": "dean.office", "password": "wrong-pass"}
    )

    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_login_validates_payload(client):
    response = client.post("/api/auth/login", json={"username": "abc", "password": "123"})

    assert response.status_code == 400
    assert set(response.get_json()["data"]["errors"]) == {"username", "password"}


def test_login_then_logout(admin_client):
    assert admin_client.get("/api/skills").status_code == 200

    response = admin_client.post("/api/auth/logout")
    assert response.status_code == 200

    assert admin_client.get("/api/skills").status_code == 401
