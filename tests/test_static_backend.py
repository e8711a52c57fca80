import logging

import pytest

from infrastructure.verification.static_backend import CODE_TTL_SECONDS, StaticVerificationBackend


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return StaticVerificationBackend(
        identity="ops@example.com",
        password="GoodPass1",
        mobile_number="9999999999",
        code_generator=lambda: "123456",
        clock=clock,
    )


@pytest.mark.asyncio
async def test_authenticate(backend):
    assert await backend.authenticate("ops@example.com", "GoodPass1") is True
    assert await backend.authenticate("OPS@example.com ", "GoodPass1") is True
    assert await backend.authenticate("ops@example.com", "wrong") is False
    assert await backend.authenticate("other@example.com", "GoodPass1") is False


@pytest.mark.asyncio
async def test_unknown_mobile_gets_no_code(backend):
    assert await backend.send_recovery_code("8888888888") is False
    assert await backend.verify_code("8888888888", "123456") is False


@pytest.mark.asyncio
async def test_full_recovery_changes_password(backend):
    assert await backend.send_recovery_code("9999999999") is True
    assert await backend.verify_code("9999999999", "000000") is False
    assert await backend.verify_code("9999999999", "123456") is True
    assert await backend.set_new_password("9999999999", "BrandNew99") is True

    assert await backend.authenticate("ops@example.com", "BrandNew99") is True
    assert await backend.authenticate("ops@example.com", "GoodPass1") is False


@pytest.mark.asyncio
async def test_password_change_requires_verified_code(backend):
    assert await backend.set_new_password("9999999999", "BrandNew99") is False
    await backend.send_recovery_code("9999999999")
    assert await backend.set_new_password("9999999999", "BrandNew99") is False


@pytest.mark.asyncio
async def test_verified_code_is_single_use(backend):
    await backend.send_recovery_code("9999999999")
    await backend.verify_code("9999999999", "123456")
    assert await backend.set_new_password("9999999999", "BrandNew99") is True
    assert await backend.set_new_password("9999999999", "Another999") is False


@pytest.mark.asyncio
async def test_code_expires(backend, clock):
    await backend.send_recovery_code("9999999999")
    clock.now = CODE_TTL_SECONDS + 1
    assert await backend.verify_code("9999999999", "123456") is False


@pytest.mark.asyncio
async def test_resend_replaces_code(clock):
    codes = iter(["111111", "222222"])
    backend = StaticVerificationBackend("ops@example.com", "GoodPass1", "9999999999", code_generator=lambda: next(codes), clock=clock)
    await backend.send_recovery_code("9999999999")
    await backend.send_recovery_code("9999999999")
    assert await backend.verify_code("9999999999", "111111") is False
    assert await backend.verify_code("9999999999", "222222") is True


@pytest.mark.asyncio
async def test_non_ascii_code_is_a_plain_mismatch(backend):
    await backend.send_recovery_code("9999999999")
    assert await backend.verify_code("9999999999", "١٢٣٤٥٦") is False
    assert await backend.verify_code("9999999999", "123456") is True


@pytest.mark.asyncio
async def test_code_stays_out_of_logs_by_default(backend, caplog):
    with caplog.at_level(logging.DEBUG, logger="infrastructure.verification.static_backend"):
        await backend.send_recovery_code("9999999999")
    assert "123456" not in caplog.text
    assert "...9999" in caplog.text


@pytest.mark.asyncio
async def test_code_logged_when_enabled(clock, caplog):
    backend = StaticVerificationBackend(
        "ops@example.com", "GoodPass1", "9999999999",
        code_generator=lambda: "123456", clock=clock, log_codes=True,
    )
    with caplog.at_level(logging.INFO, logger="infrastructure.verification.static_backend"):
        await backend.send_recovery_code("9999999999")
    assert "123456" in caplog.text
