"""Tests for the adapter call contract, key rotation and polling."""

from __future__ import annotations

import pytest

from sofy_shorts.exceptions import RateLimitError, StepFailure, TransientServiceError
from sofy_shorts.generators.base import (
    RetryPolicy,
    ServiceAdapter,
    ServiceOutcome,
    ServiceResult,
    is_rate_limit_error,
    poll_until_done,
)
from sofy_shorts.generators.key_rotator import KeyRotator


class ScriptedAdapter(ServiceAdapter[str, str]):
    """Raises queued errors in order, then succeeds."""

    name = "scripted"

    def __init__(self, rotator, errors, policy):
        super().__init__(rotator, policy)
        self.errors = list(errors)
        self.keys_seen: list[str | None] = []

    async def _invoke(self, request: str, api_key: str | None) -> str:
        self.keys_seen.append(api_key)
        if self.errors:
            raise self.errors.pop(0)
        return f"{request}:{api_key}"

    def _fallback(self, request: str, error: BaseException) -> str:
        return "placeholder"


class FakeTimer:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimitClassification:
    @pytest.mark.parametrize(
        "error",
        [
            RateLimitError("slow down"),
            Exception("Quota exceeded for this project"),
            Exception("429 RESOURCE_EXHAUSTED"),
            Exception("Rate limit reached"),
            Exception("HTTP 429 Too Many Requests"),
            Exception("request failed with status_code=429"),
            Exception("Error 429 from upstream"),
        ],
    )
    def test_rate_limit_errors(self, error: Exception) -> None:
        assert is_rate_limit_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("boom"),
            TransientServiceError("quota text inside a transient error"),
            StepFailure("quota"),
            Exception("wrote 14290 of 429 bytes"),
            OSError("No such file: /tmp/clips/429/clip_001.mp4"),
            Exception("connection reset after 429ms"),
        ],
    )
    def test_other_errors(self, error: Exception) -> None:
        assert not is_rate_limit_error(error)


class TestServiceAdapter:
    @pytest.mark.asyncio
    async def test_rotates_key_once_per_rate_limit_then_succeeds(
        self, fast_policy: RetryPolicy
    ) -> None:
        rotator = KeyRotator(["k0", "k1", "k2"])
        adapter = ScriptedAdapter(
            rotator,
            [Exception("Quota exceeded"), Exception("quota exceeded again")],
            fast_policy,
        )

        result = await adapter.call("req")

        assert result.ok
        assert result.value == "req:k2"
        assert adapter.keys_seen == ["k0", "k1", "k2"]
        assert rotator.index == 2

    @pytest.mark.asyncio
    async def test_non_rate_limit_error_falls_back_without_rotation(
        self, fast_policy: RetryPolicy
    ) -> None:
        rotator = KeyRotator(["k0", "k1"])
        adapter = ScriptedAdapter(rotator, [RuntimeError("server exploded")], fast_policy)

        result = await adapter.call("req")

        assert result.outcome is ServiceOutcome.FALLBACK
        assert result.degraded
        assert result.value == "placeholder"
        assert "server exploded" in (result.error or "")
        assert adapter.keys_seen == ["k0"]
        assert rotator.index == 0

    @pytest.mark.asyncio
    async def test_step_failure_is_fatal(self, fast_policy: RetryPolicy) -> None:
        adapter = ScriptedAdapter(KeyRotator(["k0"]), [StepFailure("rejected")], fast_policy)

        result = await adapter.call("req")

        assert result.outcome is ServiceOutcome.FATAL
        assert result.value is None
        with pytest.raises(StepFailure, match="rejected"):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_retries_are_bounded_by_max_attempts(self, fast_policy: RetryPolicy) -> None:
        rotator = KeyRotator(["k0", "k1"])
        errors = [RateLimitError(f"429 #{i}") for i in range(10)]
        adapter = ScriptedAdapter(rotator, errors, fast_policy)

        result = await adapter.call("req")

        assert result.degraded
        assert result.value == "placeholder"
        assert len(adapter.keys_seen) == fast_policy.max_attempts
        assert adapter.keys_seen == ["k0", "k1", "k0"]

    @pytest.mark.asyncio
    async def test_adapter_without_rotator_passes_no_key(self, fast_policy: RetryPolicy) -> None:
        adapter = ScriptedAdapter(None, [RateLimitError("429")], fast_policy)

        result = await adapter.call("req")

        assert result.ok
        assert result.value == "req:None"
        assert adapter.keys_seen == [None, None]

    def test_unwrap_returns_degraded_value(self) -> None:
        result = ServiceResult.fallback("empty.wav", "tts failed")
        assert result.unwrap() == "empty.wav"
        assert not result.ok


class TestPollUntilDone:
    @pytest.mark.asyncio
    async def test_returns_when_done(self) -> None:
        timer = FakeTimer()
        states = iter([False, False, True])

        async def fetch() -> bool:
            return next(states)

        policy = RetryPolicy(poll_interval=10, poll_timeout=600)
        done = await poll_until_done(
            fetch, bool, policy, initial=False, sleep=timer.sleep, clock=timer
        )

        assert done is True
        assert timer.sleeps == [10, 10, 10]

    @pytest.mark.asyncio
    async def test_already_done_does_not_poll(self) -> None:
        timer = FakeTimer()

        async def fetch() -> bool:
            raise AssertionError("should not poll")

        result = await poll_until_done(
            fetch, bool, RetryPolicy(), initial=True, sleep=timer.sleep, clock=timer
        )
        assert result is True
        assert timer.sleeps == []

    @pytest.mark.asyncio
    async def test_times_out(self) -> None:
        timer = FakeTimer()

        async def fetch() -> bool:
            return False

        policy = RetryPolicy(poll_interval=10, poll_timeout=30)
        with pytest.raises(TransientServiceError, match="clip 1 did not finish within 30s"):
            await poll_until_done(
                fetch,
                bool,
                policy,
                initial=False,
                label="clip 1",
                sleep=timer.sleep,
                clock=timer,
            )
        assert timer.sleeps == [10, 10, 10]

    def test_policy_from_settings_treats_zero_timeout_as_unbounded(self) -> None:
        from sofy_shorts.config.settings import Settings

        settings = Settings(_env_file=None, sofy_poll_timeout=0, sofy_retry_max_attempts=4)
        policy = RetryPolicy.from_settings(settings)
        assert policy.poll_timeout is None
        assert policy.max_attempts == 4
