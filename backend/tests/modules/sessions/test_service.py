"""Tests for the session store."""

import logging

import pytest

from modules.sessions.models import DeviceInfo, SessionStatus


FP_A = "a" * 64
FP_B = "b" * 64


class TestEnsureSession:
    @pytest.mark.asyncio
    async def test_creates_session_keyed_by_user(self, container, device, clock):
        session = await container.sessions.ensure_session("u1", device, FP_A)

        assert session.user_id == "u1"
        assert session.fingerprint == FP_A
        assert session.created_at == clock.now
        assert (session.expires_at - clock.now).days == 14
        assert await container.store.get("sessions", "u1") is not None

    @pytest.mark.asyncio
    async def test_second_login_replaces_fields_and_keeps_one_record(self, container, device, other_device, clock):
        first = await container.sessions.ensure_session("u1", device, FP_A)
        clock.advance(minutes=10)
        second = await container.sessions.ensure_session("u1", other_device, FP_B)

        assert second.created_at == first.created_at
        assert second.fingerprint == FP_B
        assert second.ip == other_device.ip
        assert second.last_active == clock.now
        assert len(await container.store.query("sessions")) == 1

    @pytest.mark.asyncio
    async def test_missing_device_fields_are_preserved(self, container, device):
        await container.sessions.ensure_session("u1", device, FP_A)
        session = await container.sessions.ensure_session("u1", DeviceInfo(), FP_A)

        assert session.user_agent == device.user_agent
        assert session.ip == device.ip


class TestValidateSession:
    @pytest.mark.asyncio
    async def test_valid(self, container, device):
        await container.sessions.ensure_session("u1", device, FP_A)
        result = await container.sessions.validate_session("u1", FP_A)
        assert result.is_valid
        assert result.session.user_id == "u1"

    @pytest.mark.asyncio
    async def test_not_found(self, container):
        result = await container.sessions.validate_session("u1", FP_A)
        assert result.status == SessionStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_inactivity_expires_and_deletes(self, container, device, clock):
        await container.sessions.ensure_session("u1", device, FP_A)
        clock.advance(minutes=31)

        result = await container.sessions.validate_session("u1", FP_A)

        assert result.status == SessionStatus.EXPIRED
        assert await container.sessions.get_session("u1") is None

    @pytest.mark.asyncio
    async def test_activity_within_timeout_keeps_session(self, container, device, clock):
        await container.sessions.ensure_session("u1", device, FP_A)
        clock.advance(minutes=29)
        await container.sessions.touch("u1")
        clock.advance(minutes=29)

        assert (await container.sessions.validate_session("u1", FP_A)).is_valid

    @pytest.mark.asyncio
    async def test_absolute_expiry(self, container, device, clock):
        await container.sessions.ensure_session("u1", device, FP_A)
        clock.advance(days=14, minutes=1)
        # Kept active the whole time.
        await container.sessions.touch("u1")

        result = await container.sessions.validate_session("u1", FP_A)
        assert result.status == SessionStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_mismatch_rejects_without_deleting(self, container, device, caplog):
        await container.sessions.ensure_session("u1", device, FP_A)

        with caplog.at_level(logging.ERROR, logger="mindquest.security"):
            result = await container.sessions.validate_session("u1", FP_B)

        assert result.status == SessionStatus.FINGERPRINT_MISMATCH
        assert await container.sessions.get_session("u1") is not None
        assert any(
            getattr(r, "security_event", {}).get("type") == "session_hijacking_attempt"
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_record_under_wrong_key_is_not_found(self, container, device, caplog):
        session = await container.sessions.ensure_session("u2", device, FP_A)
        await container.store.set("sessions", "u1", session.model_dump(mode="json"))

        with caplog.at_level(logging.ERROR, logger="mindquest.security"):
            result = await container.sessions.validate_session("u1", FP_A)

        assert result.status == SessionStatus.NOT_FOUND
        assert await container.sessions.get_session("u1") is None
        assert any(
            getattr(r, "security_event", {}).get("type") == "membership_anomaly"
            for r in caplog.records
        )


class TestTerminateAndCleanup:
    @pytest.mark.asyncio
    async def test_terminate_is_idempotent(self, container, device):
        await container.sessions.ensure_session("u1", device, FP_A)
        await container.sessions.terminate("u1")
        await container.sessions.terminate("u1")
        assert await container.sessions.get_session("u1") is None

    @pytest.mark.asyncio
    async def test_touch_after_terminate_does_not_resurrect(self, container, device):
        await container.sessions.ensure_session("u1", device, FP_A)
        await container.sessions.terminate("u1")
        await container.sessions.touch("u1")
        assert await container.sessions.get_session("u1") is None

    @pytest.mark.asyncio
    async def test_cleanup_removes_idle_sessions_only(self, container, device, clock):
        await container.sessions.ensure_session("idle", device, FP_A)
        clock.advance(minutes=40)
        await container.sessions.ensure_session("active", device, FP_A)

        removed = await container.sessions.cleanup_expired_sessions()

        assert removed == 1
        assert await container.sessions.get_session("idle") is None
        assert await container.sessions.get_session("active") is not None

    @pytest.mark.asyncio
    async def test_cleanup_with_nothing_stale(self, container):
        assert await container.sessions.cleanup_expired_sessions() == 0
