"""执行模块：在页面上执行单个动作"""

import asyncio
import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import Timings
from .errors import ActionError, FlowTimeoutError
from .locator import SemanticLocator
from .models import ELEMENT_ACTIONS
from .network import NetworkMonitor

logger = logging.getLogger(__name__)

# 前端渲染的应用 load 事件不可靠，用正文长度判断内容是否就绪
_CONTENT_READY_JS = """
() => document.readyState === 'complete' &&
      document.body &&
      document.body.innerText.trim().length > 100
"""

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_duration(value: Optional[str], default_ms: int) -> int:
    """取开头的整数毫秒数，缺失、非法或为 0 时使用默认值"""
    match = _LEADING_INT_RE.match(str(value)) if value is not None else None
    ms = int(match.group(1)) if match else 0
    return max(ms, 0) if ms else default_ms


class Controller:
    """执行模块：执行计划或决策中的单个动作"""

    def __init__(self, page: Page, timings: Optional[Timings] = None,
                 locator: Optional[SemanticLocator] = None):
        self.page = page
        self.timings = timings or Timings()
        self.locator = locator or SemanticLocator()

    async def execute(self, decision) -> None:
        """
        执行一个动作，decision 需要有 action / target / value 三个属性。

        前置条件不满足时抛出 ActionError，定位失败的 LocateError 原样抛出。
        """
        action = decision.action
        target = decision.target
        value = decision.value

        if action == "navigate":
            await self._navigate(value)
        elif action == "wait":
            await self._wait(value)
        elif action == "back":
            await self._back()
        elif action == "forward":
            await self._forward()
        elif action == "reload":
            await self._reload()
        elif action in ELEMENT_ACTIONS:
            if not target:
                raise ActionError(f"{action} action requires a target element")
            locator = await self.locator.locate(self.page, target)
            await self._interact(locator, action, target, value)
        else:
            raise ActionError(f"Unknown action: {action}")

    async def _settle(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)

    async def _navigate(self, url: Optional[str]) -> None:
        if not url:
            raise ActionError("Navigate action requires a URL value")
        await self.page.goto(url, wait_until="load")
        await self._settle(self.timings.navigate_settle_ms)
        try:
            await self.page.wait_for_function(_CONTENT_READY_JS, timeout=self.timings.content_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise FlowTimeoutError(
                f"Page content not ready within {self.timings.content_timeout_ms}ms after navigating to {url}"
            ) from e
        logger.info("✓ 导航到 %s", url)

    async def _wait(self, value: Optional[str]) -> None:
        if value == "network":
            logger.info("⏳ 等待网络静默...")
            with NetworkMonitor(self.page) as monitor:
                await monitor.wait_for_idle(
                    idle_ms=self.timings.network_idle_ms,
                    timeout_ms=self.timings.network_timeout_ms,
                    poll_ms=self.timings.network_poll_ms,
                )
            return

        ms = parse_duration(value, self.timings.default_wait_ms)
        logger.info("⏳ 等待 %dms", ms)
        await asyncio.sleep(ms / 1000)

    async def _back(self) -> None:
        await self.page.go_back(wait_until="load")
        await self._settle(self.timings.history_settle_ms)
        logger.info("✓ 返回")

    async def _forward(self) -> None:
        await self.page.go_forward(wait_until="load")
        await self._settle(self.timings.history_settle_ms)
        logger.info("✓ 前进")

    async def _reload(self) -> None:
        await self.page.reload(wait_until="load")
        await self._settle(self.timings.reload_settle_ms)
        logger.info("✓ 刷新页面")

    async def _interact(self, locator: Locator, action: str, target: str, value: Optional[str]) -> None:
        if action == "click":
            await locator.click()
        elif action == "fill":
            if not value:
                raise ActionError("Fill action requires a value")
            await self._ensure_editable(locator, target)
            await locator.fill(value)
        elif action == "hover":
            await locator.hover()
        elif action == "clear":
            await locator.clear()
        elif action == "check":
            await locator.check()
        elif action == "uncheck":
            await locator.uncheck()
        elif action == "select":
            if not value:
                raise ActionError("Select action requires a value")
            await locator.select_option(value)
        logger.info("✓ %s \"%s\"", action, target)

    async def _ensure_editable(self, locator: Locator, target: str) -> None:
        """比起 fill 的超时，禁用状态给出更明确的错误；状态无法判断时交给 fill 处理"""
        try:
            enabled = await locator.is_enabled(timeout=self.timings.enabled_check_ms)
        except PlaywrightError as e:
            logger.debug("无法判断 \"%s\" 是否可编辑: %s", target, e)
            return
        if not enabled:
            raise ActionError(f'Element "{target}" found but is disabled (not editable)')
