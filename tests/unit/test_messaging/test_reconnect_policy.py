"""Unit tests for ReconnectPolicy."""
from __future__ import annotations

import pytest

from staff_service.core.settings import RabbitSettings
from staff_service.infra.messaging import ReconnectPolicy


@pytest.mark.unit
class TestReconnectPolicy:
    def test_fixed_policy_waits_the_same_delay(self):
        policy = ReconnectPolicy()

        assert [policy.delay(n) for n in range(5)] == [5.0] * 5

    def test_fixed_policy_never_gives_up_by_default(self):
        policy = ReconnectPolicy()

        assert not policy.exhausted(10_000)

    def test_exponential_policy_grows_and_caps(self):
        policy = ReconnectPolicy(strategy="exponential", delay=1.0, max_delay=5.0)

        assert [policy.delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_exponential_jitter_stays_in_range(self):
        policy = ReconnectPolicy(strategy="exponential", delay=1.0, max_delay=60.0, jitter=True)

        for _ in range(20):
            assert 0.5 <= policy.delay(0) <= 1.5

    def test_fixed_policy_ignores_jitter(self):
        policy = ReconnectPolicy(delay=2.0, jitter=True)

        assert policy.delay(3) == 2.0

    def test_max_attempts(self):
        policy = ReconnectPolicy(max_attempts=3)

        assert not policy.exhausted(2)
        assert policy.exhausted(3)

    def test_from_settings(self):
        settings = RabbitSettings(
            enabled=True,
            reconnect_strategy="exponential",
            reconnect_delay=0.5,
            reconnect_max_delay=4.0,
            reconnect_max_attempts=7,
        )

        policy = ReconnectPolicy.from_settings(settings)

        assert policy.strategy == "exponential"
        assert policy.max_attempts == 7
        assert policy.delay(0) == 0.5
        assert policy.delay(10) == 4.0
        assert "exponential" in repr(policy)
