from __future__ import annotations

import pytest

from callsift.services.rate_limiter import FixedDelayRateLimiter


@pytest.mark.asyncio
async def test_waits_fixed_delay(recording_sleep):
    limiter = FixedDelayRateLimiter(1.5, sleep=recording_sleep)
    await limiter.wait()
    await limiter.wait()
    assert recording_sleep.calls == [1.5, 1.5]
    assert limiter.waits == 2


@pytest.mark.asyncio
async def test_zero_delay_disables_sleep(recording_sleep):
    limiter = FixedDelayRateLimiter(0, sleep=recording_sleep)
    await limiter.wait()
    assert recording_sleep.calls == []
    assert limiter.waits == 0
