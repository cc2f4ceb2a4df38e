import pytest

from flow_agent.config import Settings, Timings


@pytest.fixture
def fast_timings() -> Timings:
    """把所有等待缩短到毫秒级，步数上限保持默认"""
    return Timings(
        navigate_settle_ms=0,
        content_timeout_ms=50,
        history_settle_ms=0,
        reload_settle_ms=0,
        default_wait_ms=5,
        network_idle_ms=50,
        network_timeout_ms=500,
        network_poll_ms=5,
        enabled_check_ms=10,
    )


@pytest.fixture
def fast_settings(fast_timings) -> Settings:
    return Settings(timings=fast_timings)
