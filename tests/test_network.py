import asyncio
import time

import pytest

from fakes import FakePage
from flow_agent.network import NetworkMonitor, wait_for_network_settlement


async def emit_traffic(page: FakePage, interval: float, duration: float) -> float:
    """每 interval 秒发出一对 request/response，返回最后一次事件的时间"""
    start = time.monotonic()
    last = start
    while time.monotonic() - start < duration:
        page.emit("request")
        page.emit("response")
        last = time.monotonic()
        await asyncio.sleep(interval)
    return last


@pytest.mark.asyncio
async def test_settles_after_idle_window():
    page = FakePage()

    with NetworkMonitor(page) as monitor:
        traffic = asyncio.ensure_future(emit_traffic(page, interval=0.05, duration=0.3))
        settled = await monitor.wait_for_idle(idle_ms=200, timeout_ms=5000, poll_ms=10)
        finished = time.monotonic()
        last_event = await traffic

    assert settled is True
    assert 0.19 <= finished - last_event <= 0.35
    assert monitor.request_count >= 5
    assert page.listener_count() == 0


@pytest.mark.asyncio
async def test_ceiling_stops_waiting_on_busy_page():
    page = FakePage()
    traffic = asyncio.ensure_future(emit_traffic(page, interval=0.01, duration=1.0))

    start = time.monotonic()
    settled = await wait_for_network_settlement(page, idle_ms=100, timeout_ms=200, poll_ms=10)
    elapsed = time.monotonic() - start
    traffic.cancel()

    assert settled is False
    assert 0.2 <= elapsed < 0.5
    assert page.listener_count() == 0


@pytest.mark.asyncio
async def test_quiet_page_settles_after_idle_window():
    page = FakePage()

    start = time.monotonic()
    assert await wait_for_network_settlement(page, idle_ms=50, timeout_ms=1000, poll_ms=5)
    assert time.monotonic() - start >= 0.05


@pytest.mark.asyncio
async def test_listeners_removed_when_wait_is_interrupted():
    page = FakePage()

    with pytest.raises(asyncio.TimeoutError):
        with NetworkMonitor(page):
            assert page.listener_count() == 2
            await asyncio.wait_for(asyncio.sleep(1), timeout=0.01)

    assert page.listener_count() == 0


def test_counts_requests_only():
    page = FakePage()

    with NetworkMonitor(page) as monitor:
        page.emit("request")
        page.emit("response")
        page.emit("request")

    assert monitor.request_count == 2
    page.emit("request")
    assert monitor.request_count == 2
