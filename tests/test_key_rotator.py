"""Tests for the shared API key pool."""

from __future__ import annotations

import threading

import pytest

from sofy_shorts.config.settings import Settings
from sofy_shorts.exceptions import ConfigurationError
from sofy_shorts.generators.key_rotator import KeyRotator


class TestKeyRotator:
    def test_rotate_cycles_through_all_keys(self) -> None:
        rotator = KeyRotator(["k0", "k1", "k2"])
        assert rotator.current_key() == "k0"

        assert rotator.rotate() == "k1"
        assert rotator.index == 1
        assert rotator.rotate() == "k2"
        assert rotator.index == 2
        assert rotator.rotate() == "k0"
        assert rotator.index == 0

    def test_empty_pool_is_a_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="No API keys found"):
            KeyRotator([])
        with pytest.raises(ConfigurationError):
            KeyRotator(["", ""])

    def test_single_key_rotates_onto_itself(self) -> None:
        rotator = KeyRotator(["only"])
        assert rotator.rotate() == "only"
        assert rotator.index == 0

    def test_stale_expected_index_does_not_advance_twice(self) -> None:
        rotator = KeyRotator(["k0", "k1", "k2"])
        index, key = rotator.checkout()
        assert (index, key) == (0, "k0")

        assert rotator.rotate(expected_index=index) == "k1"
        # A second caller that also failed on slot 0 sees the new key
        assert rotator.rotate(expected_index=index) == "k1"
        assert rotator.index == 1

    def test_concurrent_failures_on_same_key_rotate_once(self) -> None:
        rotator = KeyRotator(["k0", "k1", "k2"])
        barrier = threading.Barrier(8)

        def fail_on_first_key() -> None:
            barrier.wait()
            rotator.rotate(expected_index=0)

        threads = [threading.Thread(target=fail_on_first_key) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert rotator.index == 1

    def test_from_settings_orders_primary_first_without_duplicates(self) -> None:
        settings = Settings(
            _env_file=None,
            gemini_api_key="primary",
            gemini_api_key_1="alt-1",
            gemini_api_key_2="primary",
            gemini_api_key_5="alt-5",
        )
        rotator = KeyRotator.from_settings(settings)
        assert rotator.all_keys() == ["primary", "alt-1", "alt-5"]
        assert len(rotator) == 3
