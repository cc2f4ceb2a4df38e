"""指令解析模块：把自然语言流程描述转换成有序的动作计划"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .errors import ParseError
from .models import Action, Plan

logger = logging.getLogger(__name__)

# 顺序分隔符；"and then" 必须排在 "then" 之前
_SEPARATOR_RE = re.compile(r"\s*(?:,|\band\s+then\b|\bafter\s+that\b|\bthen\b|\bnext\b)\s*", re.IGNORECASE)

_NAVIGATE_RE = re.compile(r"\b(?:navigate|go)\s+to\s+(\S+)", re.IGNORECASE)
_BACK_RE = re.compile(r"\bback\s+to\s+(?:the\s+)?(?:homepage|home|previous\s+page)\b|\bgo\s+back\b", re.IGNORECASE)
_CLICK_RE = re.compile(r"\bclick\s+(?:on\s+)?(?:the\s+)?(.+)", re.IGNORECASE)
_FILL_RE = re.compile(r"\b(?:fill|enter)\s+(.+?)\s+(?:with|in)\s+(.+)", re.IGNORECASE)
_WAIT_RE = re.compile(r"\bwait\b", re.IGNORECASE)
_DURATION_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(ms|milliseconds?|s|secs?|seconds?)\b", re.IGNORECASE
)
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_VARIABLE_RE = re.compile(r"^\{(\w+)\}$")

# 省略了动词的常见说法，例如 "open the first product"
DEFAULT_ELIDED_CLICK_PHRASES = ("first product",)

# 分词指令的命令别名
_COMMANDS = {
    "goto": "navigate",
    "navigate": "navigate",
    "click": "click",
    "fill": "fill",
    "hover": "hover",
    "wait": "wait",
    "go_back": "back",
    "back": "back",
    "go_forward": "forward",
    "forward": "forward",
    "reload": "reload",
    "refresh": "reload",
}


def split_steps(flow_text: str) -> List[str]:
    """按分隔符切分，去掉空白步骤"""
    return [part.strip() for part in _SEPARATOR_RE.split(flow_text or "") if part and part.strip()]


def normalize_url(token: str) -> str:
    token = token.strip().rstrip(".;")
    if not _SCHEME_RE.match(token):
        return f"https://{token}"
    return token


def _wait_value(text: str) -> Optional[str]:
    if "network" in text.lower():
        return "network"
    match = _DURATION_RE.search(text)
    if not match:
        return None
    amount, unit = float(match.group(1)), match.group(2).lower()
    if unit.startswith("m"):
        return str(int(amount))
    return str(int(amount * 1000))


class InstructionParser:
    """
    自然语言解析器。每个步骤按固定优先级匹配规则，第一条命中即停止：
    导航 → 返回 → 点击 → 省略动词的点击 → 填充 → 等待 → unknown。
    """

    def __init__(self, elided_click_phrases: Iterable[str] = DEFAULT_ELIDED_CLICK_PHRASES):
        self.elided_click_phrases = tuple(p.lower() for p in elided_click_phrases)

    def parse(self, flow_text: str) -> Plan:
        plan = tuple(self.parse_step(step) for step in split_steps(flow_text))
        logger.debug("解析得到 %d 个动作: %s", len(plan), [a.action for a in plan])
        return plan

    def parse_step(self, text: str) -> Action:
        text = text.strip()

        match = _NAVIGATE_RE.search(text)
        if match:
            return Action("navigate", value=normalize_url(match.group(1)), description=text)

        if _BACK_RE.search(text):
            return Action("back", description=text)

        match = _CLICK_RE.search(text)
        if match:
            return Action("click", target=match.group(1).strip(), description=text)

        lowered = text.lower()
        for phrase in self.elided_click_phrases:
            if phrase in lowered:
                return Action("click", target=phrase, description=text)

        match = _FILL_RE.search(text)
        if match:
            return Action("fill", target=match.group(1).strip(), value=match.group(2).strip(), description=text)

        if _WAIT_RE.search(text):
            return Action("wait", value=_wait_value(text), description=text)

        return Action("unknown", description=text)


def _substitute(token: str, variables: Dict[str, str]) -> str:
    match = _VARIABLE_RE.match(token)
    if match and match.group(1) in variables:
        return str(variables[match.group(1)])
    return token


def parse_instruction(instruction: str, variables: Optional[Dict[str, str]] = None) -> Action:
    """解析单条分词指令，例如 "fill #email {user}" """
    variables = variables or {}
    tokens = (instruction or "").split()
    description = instruction.strip() if instruction else ""
    if not tokens:
        return Action("unknown", description=description)

    command = _COMMANDS.get(tokens[0].lower())
    args = tokens[1:]

    if command is None:
        return Action("unknown", description=description)

    if command in ("back", "forward", "reload"):
        return Action(command, description=description)

    if command == "fill":
        # 约定最后一个 token 是值
        if len(args) >= 2:
            target = " ".join(_substitute(t, variables) for t in args[:-1])
            value = _substitute(args[-1], variables)
        else:
            target = " ".join(_substitute(t, variables) for t in args)
            value = ""
        return Action("fill", target=target or None, value=value, description=description)

    rest = " ".join(_substitute(t, variables) for t in args)
    if command == "navigate":
        return Action("navigate", value=rest or None, description=description)
    if command == "wait":
        return Action("wait", value=rest or None, description=description)
    return Action(command, target=rest or None, description=description)


def parse_instructions(instructions: Sequence[str], variables: Optional[Dict[str, str]] = None) -> Plan:
    return tuple(parse_instruction(line, variables) for line in instructions)


_default_parser = InstructionParser()


def parse_plan(source: Union[str, Sequence[str]], variables: Optional[Dict[str, str]] = None) -> Plan:
    """字符串走自然语言解析，字符串列表走分词指令解析"""
    if isinstance(source, str):
        return _default_parser.parse(source)
    return parse_instructions(source, variables)


def ensure_executable(plan: Plan) -> Plan:
    """计划中有 unknown 动作时直接拒绝执行"""
    unknown = [action.description for action in plan if action.action == "unknown"]
    if unknown:
        quoted = ", ".join(f'"{d}"' for d in unknown)
        raise ParseError(f"Unrecognized instruction(s): {quoted}", instructions=unknown)
    return plan
