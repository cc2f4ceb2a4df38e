"""语义定位模块：根据自然语言描述找到页面元素"""

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from playwright.async_api import Locator, Page

from .errors import LocateError

logger = logging.getLogger(__name__)

Builder = Callable[[Page, str], Optional[Locator]]


def _pattern(target: str) -> "re.Pattern":
    return re.compile(re.escape(target), re.IGNORECASE)


def _by_selector(page: Page, target: str) -> Optional[Locator]:
    if target.startswith(("#", ".", "[")):
        return page.locator(target)
    return None


def _by_button(page: Page, target: str) -> Locator:
    return page.get_by_role("button", name=_pattern(target))


def _by_link(page: Page, target: str) -> Locator:
    return page.get_by_role("link", name=_pattern(target))


def _by_label(page: Page, target: str) -> Locator:
    return page.get_by_label(_pattern(target))


def _by_placeholder(page: Page, target: str) -> Locator:
    return page.get_by_placeholder(_pattern(target))


def _by_exact_text(page: Page, target: str) -> Locator:
    return page.get_by_text(target, exact=True)


def _by_partial_text(page: Page, target: str) -> Locator:
    return page.get_by_text(_pattern(target))


def _by_heading(page: Page, target: str) -> Locator:
    return page.get_by_role("heading", name=_pattern(target))


# 按可靠性排序，顺序即优先级
DEFAULT_STRATEGIES: Tuple[Tuple[str, Builder], ...] = (
    ("Structural selector", _by_selector),
    ("Button with name matching", _by_button),
    ("Link with name matching", _by_link),
    ("Input with label matching", _by_label),
    ("Input with placeholder matching", _by_placeholder),
    ("Element with exact text", _by_exact_text),
    ("Element with text containing", _by_partial_text),
    ("Heading with name matching", _by_heading),
)


class SemanticLocator:
    """
    依次尝试每个策略，第一个匹配到元素的策略胜出，返回其第一个元素。

    单个策略内部的任何异常都视为"未匹配"，不影响后续策略。
    """

    def __init__(self, strategies: Sequence[Tuple[str, Builder]] = DEFAULT_STRATEGIES):
        self.strategies = list(strategies)

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.strategies]

    async def try_strategy(self, name: str, builder: Builder, page: Page, target: str) -> Optional[Locator]:
        try:
            locator = builder(page, target)
            if locator is None:
                return None
            if await locator.count() > 0:
                return locator.first
        except Exception as e:
            logger.debug("策略 %s 出错，视为未匹配: %s", name, e)
        return None

    async def locate(self, page: Page, target: str) -> Locator:
        clean_target = (target or "").strip()
        if not clean_target:
            raise LocateError(target or "", self.names)

        for name, builder in self.strategies:
            locator = await self.try_strategy(name, builder, page, clean_target)
            if locator is not None:
                logger.debug("✓ 定位 \"%s\" 命中策略: %s", clean_target, name)
                return locator

        raise LocateError(target, self.names)


_default_locator = SemanticLocator()


async def locate(page: Page, target: str) -> Locator:
    return await _default_locator.locate(page, target)
