"""数据模型定义"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import TransportError

# 所有可识别的动作类型
ACTION_TYPES = (
    "navigate",
    "click",
    "fill",
    "hover",
    "wait",
    "back",
    "forward",
    "reload",
    "check",
    "uncheck",
    "select",
    "done",
    "unknown",
)

# 需要先定位元素才能执行的动作
ELEMENT_ACTIONS = ("click", "fill", "hover", "clear", "check", "uncheck", "select")

MASK = "***"


@dataclass(frozen=True)
class Action:
    """计划中的单个动作"""
    action: str
    target: Optional[str] = None
    value: Optional[str] = None
    description: str = ""  # 原始指令文本

    def __post_init__(self):
        if self.action == "unknown" and (self.target or self.value):
            raise ValueError("unknown action carries no target or value")


# 计划：有序且不可变
Plan = Tuple[Action, ...]


@dataclass
class Decision:
    """决策函数每轮输出的结构化决策"""
    action: str
    target: Optional[str] = None
    value: Optional[str] = None
    thought: str = ""

    @classmethod
    def from_obj(cls, obj: Any) -> "Decision":
        """从 dict 或带属性的对象构造，缺少 action 时报错"""
        if isinstance(obj, Decision):
            data = {"action": obj.action, "target": obj.target, "value": obj.value, "thought": obj.thought}
        elif isinstance(obj, dict):
            data = obj
        else:
            data = {name: getattr(obj, name, None) for name in ("action", "target", "value", "thought")}

        action = data.get("action")
        if not action or not isinstance(action, str):
            raise TransportError("Decision missing required field: action")
        return cls(
            action=action.strip().lower(),
            target=data.get("target") or None,
            value=None if data.get("value") in (None, "") else str(data.get("value")),
            thought=data.get("thought") or "",
        )


@dataclass
class HistoryEntry:
    """单条执行记录"""
    step: int
    action: str
    target: Optional[str]
    value: Optional[str]  # fill 时为掩码
    timestamp_ms: int  # 相对流程开始的毫秒数
    url: str = ""  # 决策时的页面 URL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FlowResult:
    """一次流程执行的结果"""
    success: bool
    steps: int
    duration_ms: int
    history: List[HistoryEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "steps": self.steps,
            "duration_ms": self.duration_ms,
            "history": [entry.to_dict() for entry in self.history],
        }


@dataclass(frozen=True)
class ValidationResult:
    """计划与实际执行的比对结果"""
    success: bool
    errors: Tuple[str, ...] = ()


@dataclass
class PageContext:
    url: str
    title: str


@dataclass
class FailureContext:
    """流程失败时附加到异常上的诊断信息"""
    step: int
    url: str = ""
    title: str = ""
    snapshot: Optional[str] = None
    history: List[HistoryEntry] = field(default_factory=list)
