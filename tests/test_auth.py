"""
Tests for the signup/login flow and the authenticated user endpoints
"""
import pytest

from tests.conftest import auth_headers

STRONG_PASSWORD = "StrongPass123!"


async def _signup(client, email="freelancer@example.com", username="freelancer", password=STRONG_PASSWORD):
    return await client.post(
        "/api/auth/signup",
        json={"email": email, "username": username, "password": password},
    )


@pytest.mark.asyncio
async def test_signup_creates_free_user_with_zap_link(client):
    """
    Signup returns the new user id, sets the auth cookie, and the account
    starts on the free plan with a zap link allocated.
    """
    response = await _signup(client)

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert "user_id" in body
    assert "auth_token=" in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()

    login = await client.post(
        "/api/auth/login",
        json={"email": "freelancer@example.com", "password": STRONG_PASSWORD},
    )
    assert login.status_code == 200
    assert login.json()["user_id"] == body["user_id"]


@pytest.mark.asyncio
async def test_signup_lowercases_email(client):
    response = await _signup(client, email="Mixed.Case@Example.com")
    assert response.status_code == 200

    login = await client.post(
        "/api/auth/login",
        json={"email": "mixed.case@example.com", "password": STRONG_PASSWORD},
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_signup_rejects_duplicates(client):
    assert (await _signup(client)).status_code == 200

    same_email = await _signup(client, username="someone_else")
    same_username = await _signup(client, email="other@example.com")

    assert same_email.status_code == 400
    assert same_email.json()["detail"] == "Email already registered"
    assert same_username.status_code == 400
    assert same_username.json()["detail"] == "Username already taken"


@pytest.mark.asyncio
async def test_signup_rejects_invalid_email(client):
    response = await _signup(client, email="not-an-email")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    await _signup(client)

    response = await client.post(
        "/api/auth/login",
        json={"email": "freelancer@example.com", "password": "WrongPass123!"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    response = await client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": STRONG_PASSWORD},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_reports_plan(client, make_user):
    free_user = await make_user()
    pro_user = await make_user(subscription_type="pro", subscription_status="active")
    past_due_user = await make_user(subscription_type="pro", subscription_status="past_due")

    free_me = (await client.get("/api/auth/me", headers=auth_headers(free_user))).json()
    pro_me = (await client.get("/api/auth/me", headers=auth_headers(pro_user))).json()
    past_due_me = (await client.get("/api/auth/me", headers=auth_headers(past_due_user))).json()

    assert free_me["plan"] == "free"
    assert free_me["zap_link"] == free_user.zap_link
    assert pro_me["plan"] == "pro"
    assert past_due_me["plan"] == "free"
    assert past_due_me["subscription_status"] == "past_due"


@pytest.mark.asyncio
async def test_me_requires_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(client, make_user):
    user = await make_user(is_active=False)

    response = await client.get("/api/auth/me", headers=auth_headers(user))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_zaplink_endpoint(client, make_user):
    user = await make_user()

    response = await client.get("/api/user/zaplink", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["error"] is None
    assert body["data"] == {
        "zap_link": user.zap_link,
        "full_url": f"clientzap.com/zap/{user.zap_link}",
    }


@pytest.mark.asyncio
async def test_logout_clears_cookie(client):
    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert 'auth_token=""' in response.headers["set-cookie"] or "auth_token=;" in response.headers["set-cookie"]
