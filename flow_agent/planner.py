"""规划模块：agent 模式下每一轮给出下一步决策"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import httpx
from openai import AsyncOpenAI

from .config import Settings
from .errors import ParseError, TransportError
from .models import Decision, HistoryEntry, Plan
from .parser import InstructionParser, ensure_executable, parse_instruction

logger = logging.getLogger(__name__)

# (snapshot, flow_text, history) -> Decision
DecisionFn = Callable[[str, str, List[HistoryEntry]], Union[Decision, dict, Awaitable[Union[Decision, dict]]]]


def _history_dicts(history: Sequence[HistoryEntry]) -> List[dict]:
    return [entry.to_dict() if hasattr(entry, "to_dict") else dict(entry) for entry in history]


class RuleBasedDecider:
    """
    规则决策：用指令解析器把流程描述解析成计划，按已执行步数依次给出下一步，
    全部执行完后返回 done。
    """

    def __init__(self, parser: Optional[InstructionParser] = None):
        self.parser = parser or InstructionParser()
        self._plans = {}

    def plan_for(self, flow_text: str) -> Plan:
        if flow_text not in self._plans:
            self._plans[flow_text] = ensure_executable(self.parser.parse(flow_text))
        return self._plans[flow_text]

    async def __call__(self, snapshot: str, flow_text: str, history: List[HistoryEntry]) -> Decision:
        plan = self.plan_for(flow_text)
        if len(history) >= len(plan):
            return Decision("done", thought="all planned steps executed")
        step = plan[len(history)]
        return Decision(step.action, target=step.target, value=step.value, thought=step.description)


class LLMDecider:
    """规划模块：调用 LLM 决策下一步"""

    system_prompt = (
        "You are a web UI automation agent.\n"
        "Given the user's flow description, the interactive elements currently visible on the page "
        "and the steps already executed, decide the single next action.\n"
        "Rules:\n"
        "1. If the goal of the flow has been reached, answer with action 'done'.\n"
        "2. Do not repeat steps that already appear in the history.\n"
        "3. Describe targets with the visible text of the element (e.g. the button name).\n"
        "Answer with a JSON object only:\n"
        "{\n"
        "  \"thought\": \"why this action\",\n"
        "  \"action\": \"navigate|click|fill|hover|check|uncheck|select|wait|back|forward|reload|done\",\n"
        "  \"target\": \"element description, or null\",\n"
        "  \"value\": \"URL for navigate, text for fill/select, milliseconds or 'network' for wait, or null\"\n"
        "}"
    )

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def __call__(self, snapshot: str, flow_text: str, history: List[HistoryEntry]) -> Decision:
        history_str = "\n".join(
            f"{h.step}. {h.action} {h.target or ''} {h.value or ''}".rstrip() for h in history
        ) or "(none)"
        user_prompt = (
            f"Flow: {flow_text}\n\n"
            f"Interactive elements:\n{snapshot}\n\n"
            f"Executed steps:\n{history_str}\n\n"
            "What is the next action?"
        )

        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )

        output_str = response.choices[0].message.content or ""
        try:
            data = json.loads(output_str)
        except json.JSONDecodeError as e:
            raise TransportError(f"LLM returned invalid JSON: {output_str!r}") from e
        if not isinstance(data, dict):
            raise TransportError(f"LLM returned a non-object decision: {output_str!r}")

        decision = Decision.from_obj(data)
        logger.info("思考: %s", decision.thought)
        return decision


class HttpDecider:
    """把快照和历史 POST 给外部 agent 服务，由对方返回决策"""

    def __init__(self, endpoint: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.client = client

    async def __call__(self, snapshot: str, flow_text: str, history: List[HistoryEntry]) -> Decision:
        payload = {"snapshot": snapshot, "instruction": flow_text, "history": _history_dicts(history)}

        if self.client is not None:
            response = await self.client.post(self.endpoint, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint, json=payload)

        if response.status_code >= 400:
            raise TransportError(f"Agent endpoint returned {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Agent endpoint returned invalid JSON: {response.text!r}") from e
        if not isinstance(data, dict) or not data.get("action"):
            raise TransportError("Agent response missing required field: action")
        return Decision.from_obj(data)


class InteractiveDecider:
    """由用户在终端逐步输入指令，例如 "click Login" 或 "done" """

    prompt = "next step> "

    def __init__(self, reader: Optional[Callable[[str], str]] = None):
        self.reader = reader or input

    async def __call__(self, snapshot: str, flow_text: str, history: List[HistoryEntry]) -> Decision:
        print(f"\n{snapshot}\n")
        line = (await asyncio.to_thread(self.reader, self.prompt)).strip()
        if not line or line.lower() == "done":
            return Decision("done")
        action = parse_instruction(line)
        if action.action == "unknown":
            raise ParseError(f'Unrecognized instruction: "{line}"', instructions=[line])
        return Decision(action.action, target=action.target, value=action.value or None)


def create_decider(settings: Settings) -> DecisionFn:
    """按配置选出唯一的决策实现"""
    if settings.decider == "rules":
        return RuleBasedDecider()
    if settings.decider == "llm":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the llm decider")
        client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
        return LLMDecider(client, settings.model)
    if settings.decider == "http":
        if not settings.agent_url:
            raise ValueError("FLOW_AGENT_URL is required for the http decider")
        return HttpDecider(settings.agent_url, timeout=settings.agent_timeout)
    if settings.decider == "interactive":
        return InteractiveDecider()
    raise ValueError(f"Unknown decider: {settings.decider}")
