"""网络静默检测：等待页面请求停止一段时间"""

import asyncio
import logging
import time

from playwright.async_api import Page

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """
    进入时订阅 request/response 事件，退出时无条件取消订阅。

        with NetworkMonitor(page) as monitor:
            await monitor.wait_for_idle()
    """

    def __init__(self, page: Page):
        self.page = page
        self.request_count = 0
        self.last_activity = time.monotonic()
        self._subscribed = False

    def _on_request(self, _request) -> None:
        self.request_count += 1
        self.last_activity = time.monotonic()

    def _on_response(self, _response) -> None:
        self.last_activity = time.monotonic()

    def __enter__(self) -> "NetworkMonitor":
        self.last_activity = time.monotonic()
        self.page.on("request", self._on_request)
        self.page.on("response", self._on_response)
        self._subscribed = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._subscribed:
            self.page.remove_listener("request", self._on_request)
            self.page.remove_listener("response", self._on_response)
            self._subscribed = False

    async def wait_for_idle(self, idle_ms: int = 2000, timeout_ms: int = 15000, poll_ms: int = 100) -> bool:
        """空闲 idle_ms 或总计 timeout_ms 后返回，返回值表示是否真正静默"""
        start = time.monotonic()
        idle, ceiling, poll = idle_ms / 1000, timeout_ms / 1000, poll_ms / 1000

        while True:
            now = time.monotonic()
            if now - self.last_activity >= idle:
                logger.info("✓ 网络已静默（共 %d 个请求）", self.request_count)
                return True
            if now - start >= ceiling:
                logger.warning("网络在 %dms 内未静默（共 %d 个请求），继续执行", timeout_ms, self.request_count)
                return False
            await asyncio.sleep(poll)


async def wait_for_network_settlement(page: Page, idle_ms: int = 2000, timeout_ms: int = 15000,
                                      poll_ms: int = 100) -> bool:
    with NetworkMonitor(page) as monitor:
        return await monitor.wait_for_idle(idle_ms, timeout_ms, poll_ms)
