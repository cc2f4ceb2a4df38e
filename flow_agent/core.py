"""流程编排：确定性计划执行与 agent 引导执行"""

import inspect
import logging
from typing import Dict, Optional, Sequence, Union

from playwright.async_api import Page

from .config import Settings
from .controller import Controller
from .errors import FlowError, FlowTimeoutError, TransportError, attach_context
from .memory import Memory
from .models import Action, Decision, FailureContext, FlowResult, PageContext
from .parser import ensure_executable, parse_instructions
from .perception import Perception
from .planner import DecisionFn

logger = logging.getLogger(__name__)

_RULE = "━" * 54


def _as_action(step: Union[Action, dict]) -> Action:
    if isinstance(step, Action):
        return step
    return Action(
        action=step.get("action", ""),
        target=step.get("target") or None,
        value=step.get("value") or None,
        description=step.get("description", ""),
    )


class FlowRunner:
    """
    流程编排器：驱动 Controller 逐步执行。

    - run: 按固定计划顺序执行，不重试
    - run_agent: 每轮获取快照并询问决策函数，直到返回 done 或达到步数上限
    """

    def __init__(self, settings: Optional[Settings] = None, perception: Optional[Perception] = None):
        self.settings = settings or Settings()
        self.perception = perception or Perception()

    def _controller(self, page: Page) -> Controller:
        return Controller(page, self.settings.timings)

    async def run(self, page: Page, plan: Sequence[Union[Action, dict]]) -> FlowResult:
        """按顺序执行计划，任何一步失败都立即终止"""
        steps = [_as_action(step) for step in plan]
        controller = self._controller(page)
        memory = Memory()
        step_num = 0

        logger.info("🤖 开始执行计划，共 %d 步", len(steps))
        try:
            for step in steps:
                if step.action == "done":
                    break
                step_num += 1
                logger.info("━━━ Step %d: %s %s", step_num, step.action, step.target or step.value or "")
                url = page.url
                await controller.execute(step)
                memory.record(step.action, step.target, step.value, url=url)
        except Exception as e:
            await self._fail(e, page, step_num, memory)
            raise

        return self._finish(memory)

    async def run_instructions(self, page: Page, instructions: Sequence[str],
                               variables: Optional[Dict[str, str]] = None) -> FlowResult:
        """分词指令入口：含无法识别的指令时在执行前拒绝"""
        plan = ensure_executable(parse_instructions(instructions, variables))
        return await self.run(page, plan)

    async def run_agent(self, page: Page, flow_text: str, decide: DecisionFn) -> FlowResult:
        """
        agent 模式主循环：感知 → 决策 → 执行。

        done 决策本身不计入步数；超过 max_agent_steps 视为死循环。
        """
        max_steps = self.settings.timings.max_agent_steps
        controller = self._controller(page)
        memory = Memory(mask_all=self.settings.mask_all_agent_values)
        snapshot: Optional[str] = None
        step_num = 0

        logger.info("🤖 开始 agent 流程: %s", flow_text)
        try:
            for _ in range(max_steps):
                step_num += 1
                snapshot = await self.perception.generate(page)
                context = await self.perception.get_context(page)

                decision = await self._decide(decide, snapshot, flow_text, memory)
                logger.info("━━━ Step %d: %s %s", step_num, decision.action, decision.target or decision.value or "")
                if decision.action == "done":
                    logger.info("✓ agent 判断流程已完成")
                    return self._finish(memory)

                await controller.execute(decision)
                memory.record(decision.action, decision.target, decision.value, url=context.url)

            raise FlowTimeoutError(
                f"Maximum steps ({max_steps}) reached without completion - possible infinite loop"
            )
        except Exception as e:
            await self._fail(e, page, step_num, memory, snapshot=snapshot)
            raise

    async def _decide(self, decide: DecisionFn, snapshot: str, flow_text: str, memory: Memory) -> Decision:
        try:
            result = decide(snapshot, flow_text, memory.entries())
            if inspect.isawaitable(result):
                result = await result
        except FlowError:
            raise
        except Exception as e:
            raise TransportError(f"Decision function failed: {e}") from e
        return Decision.from_obj(result)

    def _finish(self, memory: Memory) -> FlowResult:
        duration = memory.elapsed_ms()
        logger.info(_RULE)
        logger.info("✅ 流程完成，共 %d 步 (%.2fs)", len(memory.history), duration / 1000)
        logger.info(_RULE)
        return FlowResult(success=True, steps=len(memory.history), duration_ms=duration, history=memory.entries())

    async def _page_context(self, page: Page) -> PageContext:
        try:
            return await self.perception.get_context(page)
        except Exception as e:
            # 页面可能已经关闭，诊断信息不能掩盖原始错误
            logger.debug("获取页面信息失败: %s", e)
            return PageContext(url="", title="")

    async def _fail(self, error: BaseException, page: Page, step_num: int, memory: Memory,
                    snapshot: Optional[str] = None) -> None:
        context = await self._page_context(page)
        failure = FailureContext(
            step=step_num,
            url=context.url,
            title=context.title,
            snapshot=snapshot,
            history=memory.entries(),
        )
        attach_context(error, failure)

        logger.error(_RULE)
        logger.error("❌ 流程执行失败（第 %d 步）: %s", step_num, error)
        logger.error("当前 URL: %s", failure.url)
        logger.error("页面标题: %s", failure.title)
        if memory.history:
            logger.error("已执行步骤:\n%s", memory.format_history())
        logger.error(_RULE)


async def run_deterministic(page: Page, plan: Sequence[Union[Action, dict]],
                            settings: Optional[Settings] = None) -> FlowResult:
    return await FlowRunner(settings).run(page, plan)


async def run_agent_guided(page: Page, flow_text: str, decide: DecisionFn,
                           settings: Optional[Settings] = None) -> FlowResult:
    return await FlowRunner(settings).run_agent(page, flow_text, decide)
