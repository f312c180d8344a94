import asyncio
import time

import pytest

from conftest import PASSWORD, make_user
from letsorder.core.exceptions import AuthenticationError, ConflictError
from letsorder.services import accounts


async def run_with_heartbeat(coro, tick: float = 0.005) -> float:
    """Await ``coro`` while a ticker runs; return the longest gap between ticks."""
    gaps = []
    stop = asyncio.Event()

    async def heartbeat():
        last = time.perf_counter()
        while not stop.is_set():
            await asyncio.sleep(tick)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    ticker = asyncio.create_task(heartbeat())
    await asyncio.sleep(0)
    try:
        await coro
    finally:
        stop.set()
        await ticker
    return max(gaps)


async def test_register_then_login(db, issuer):
    token, user = await accounts.register_user(db, issuer, "new@x.com", PASSWORD)
    assert issuer.validate(token).user_id == user.id

    _, logged_in = await accounts.login(db, issuer, "new@x.com", PASSWORD)
    assert logged_in.id == user.id


async def test_register_duplicate_email_conflicts(db, issuer):
    await make_user(db, "dup@x.com")
    with pytest.raises(ConflictError):
        await accounts.register_user(db, issuer, "dup@x.com", PASSWORD)


@pytest.mark.parametrize("email,password", [
    ("known@x.com", "wrong-password"),
    ("unknown@x.com", PASSWORD),
])
async def test_bad_credentials_share_one_error(db, issuer, email, password):
    await make_user(db, "known@x.com")
    with pytest.raises(AuthenticationError) as excinfo:
        await accounts.login(db, issuer, email, password)
    assert excinfo.value.message == "Invalid credentials"


async def test_login_keeps_event_loop_responsive(db, issuer):
    await make_user(db, "slow@x.com")
    longest = await run_with_heartbeat(accounts.login(db, issuer, "slow@x.com", PASSWORD))
    assert longest < 0.1


async def test_login_for_unknown_email_keeps_event_loop_responsive(db, issuer):
    async def attempt():
        with pytest.raises(AuthenticationError):
            await accounts.login(db, issuer, "ghost@x.com", PASSWORD)

    assert await run_with_heartbeat(attempt()) < 0.1


async def test_register_keeps_event_loop_responsive(db, issuer):
    longest = await run_with_heartbeat(accounts.register_user(db, issuer, "fresh@x.com", PASSWORD))
    assert longest < 0.1
