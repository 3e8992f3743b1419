"""
Plan limits enforced by the forms endpoints
"""
import pytest

from tests.conftest import auth_headers


async def _create_form(client, user, title="Intake", is_published=True):
    return await client.post(
        "/api/forms",
        json={"title": title, "is_published": is_published, "fields": [{"name": "budget", "type": "text"}]},
        headers=auth_headers(user),
    )


async def _submit(client, link, n=1):
    return await client.post(
        f"/api/public/forms/{link}/submit",
        json={
            "client_name": f"Client {n}",
            "client_email": f"client{n}@example.com",
            "submission_data": {"budget": "5000"},
        },
    )


@pytest.mark.asyncio
async def test_free_user_limited_to_one_form(client, make_user):
    user = await make_user()

    first = await _create_form(client, user)
    second = await _create_form(client, user, title="Second")

    assert first.status_code == 201
    assert first.json()["data"]["title"] == "Intake"
    assert second.status_code == 403
    body = second.json()
    assert body["error"] == "form_limit_reached"
    assert body["data"] == {"needs_upgrade": True}

    listing = await client.get("/api/forms", headers=auth_headers(user))
    assert len(listing.json()["data"]["forms"]) == 1


@pytest.mark.asyncio
async def test_pro_user_has_no_form_limit(client, make_user):
    user = await make_user(subscription_type="pro", subscription_status="active")

    for n in range(3):
        response = await _create_form(client, user, title=f"Form {n}")
        assert response.status_code == 201


@pytest.mark.asyncio
async def test_past_due_user_gets_free_form_limit(client, make_user):
    user = await make_user(subscription_type="pro", subscription_status="past_due")

    assert (await _create_form(client, user)).status_code == 201
    assert (await _create_form(client, user, title="Second")).status_code == 403


@pytest.mark.asyncio
async def test_submissions_count_against_owner_limit(client, make_user):
    owner = await make_user()
    link = (await _create_form(client, owner)).json()["data"]["shareable_link"]

    for n in range(3):
        response = await _submit(client, link, n)
        assert response.status_code == 201

    fourth = await _submit(client, link, 4)
    assert fourth.status_code == 403
    assert fourth.json()["error"] == "submission_limit_reached"
    assert fourth.json()["data"] == {"needs_upgrade": False}

    usage = await client.get("/api/subscription/usage", headers=auth_headers(owner))
    assert usage.json()["data"]["submissions_count"] == 3


@pytest.mark.asyncio
async def test_pro_owner_accepts_unlimited_submissions(client, make_user):
    owner = await make_user(subscription_type="pro", subscription_status="active")
    link = (await _create_form(client, owner)).json()["data"]["shareable_link"]

    for n in range(5):
        response = await _submit(client, link, n)
        assert response.status_code == 201


@pytest.mark.asyncio
async def test_unpublished_form_is_not_found(client, make_user):
    owner = await make_user()
    link = (await _create_form(client, owner, is_published=False)).json()["data"]["shareable_link"]

    response = await _submit(client, link)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_form_is_not_found(client):
    response = await _submit(client, "does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_submission_requires_valid_email(client, make_user):
    owner = await make_user()
    link = (await _create_form(client, owner)).json()["data"]["shareable_link"]

    response = await client.post(
        f"/api/public/forms/{link}/submit",
        json={"client_name": "Client", "client_email": "not-an-email"},
    )

    assert response.status_code == 422
