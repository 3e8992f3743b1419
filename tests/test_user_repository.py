"""
Unit tests for UserRepository
"""
import re
from unittest.mock import patch

import pytest
from sqlalchemy import select, func

from crud.user import UserRepository, ZapLinkExhaustedError
from database_models import User
from auth_utils import hash_password, verify_password


@pytest.mark.asyncio
async def test_create_and_get_user(test_db):
    """
    New users start on free/inactive with no Stripe identifiers and get a
    6-character zap link.
    """
    user_repo = UserRepository(test_db)
    hashed_pwd = hash_password("Sup3rSecret!pass")

    created_user = await user_repo.create_user({
        "email": "Test@Example.com",
        "username": "tester",
        "hashed_password": hashed_pwd,
    })
    await test_db.commit()

    assert created_user.email == "test@example.com"
    assert created_user.subscription_type == "free"
    assert created_user.subscription_status == "inactive"
    assert created_user.stripe_customer_id is None
    assert created_user.stripe_subscription_id is None
    assert created_user.subscription_ends_at is None
    assert re.fullmatch(r"[A-Z0-9]{6}", created_user.zap_link)

    retrieved_user = await user_repo.get_user_by_email("test@example.com")
    assert retrieved_user is not None
    assert retrieved_user.id == created_user.id
    assert verify_password("Sup3rSecret!pass", retrieved_user.hashed_password) is True
    assert verify_password("wrong_password", retrieved_user.hashed_password) is False

    assert (await user_repo.get_user_by_zap_link(created_user.zap_link)).id == created_user.id


@pytest.mark.asyncio
async def test_lookup_by_stripe_customer_id(test_db, make_user):
    user = await make_user(stripe_customer_id="cus_lookup")
    user_repo = UserRepository(test_db)

    assert (await user_repo.get_user_by_stripe_customer_id("cus_lookup")).id == user.id
    assert await user_repo.get_user_by_stripe_customer_id("cus_other") is None


@pytest.mark.asyncio
async def test_update_user_by_id_misses_unknown_user(test_db, make_user):
    await make_user()
    user_repo = UserRepository(test_db)

    assert await user_repo.update_user_by_id("no-such-user", {"subscription_status": "active"}) is None
    count = (await test_db.execute(select(func.count(User.id)))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_delete_user(test_db, make_user):
    user = await make_user()
    user_repo = UserRepository(test_db)

    assert await user_repo.delete_user(user.id) is True
    assert await user_repo.delete_user(user.id) is False


@pytest.mark.asyncio
async def test_zap_link_generation_gives_up_after_max_attempts(test_db, make_user):
    with patch("crud.user.generate_zap_link", return_value="AAAAAA"):
        await make_user()
        with pytest.raises(ZapLinkExhaustedError):
            await UserRepository(test_db).generate_unique_zap_link()
