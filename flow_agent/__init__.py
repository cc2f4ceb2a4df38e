"""Web Flow Agent 包

包含各个模块：
- models: 数据模型
- parser: 指令解析
- locator: 语义定位
- controller: 单步执行
- network: 网络静默检测
- perception: 页面快照
- memory: 执行记录
- planner: agent 模式的决策函数
- core: 流程编排
- validator: 执行结果校验
"""

from .config import Settings, Timings
from .controller import Controller
from .core import FlowRunner, run_agent_guided, run_deterministic
from .errors import (
    ActionError,
    FlowError,
    FlowTimeoutError,
    LocateError,
    ParseError,
    TransportError,
)
from .locator import SemanticLocator, locate
from .memory import Memory
from .models import (
    Action,
    Decision,
    FailureContext,
    FlowResult,
    HistoryEntry,
    PageContext,
    Plan,
    ValidationResult,
)
from .network import NetworkMonitor, wait_for_network_settlement
from .parser import InstructionParser, ensure_executable, parse_instructions, parse_plan
from .perception import Perception
from .planner import (
    HttpDecider,
    InteractiveDecider,
    LLMDecider,
    RuleBasedDecider,
    create_decider,
)
from .validator import validate

__all__ = [
    "Action",
    "ActionError",
    "Controller",
    "Decision",
    "FailureContext",
    "FlowError",
    "FlowResult",
    "FlowRunner",
    "FlowTimeoutError",
    "HistoryEntry",
    "HttpDecider",
    "InstructionParser",
    "InteractiveDecider",
    "LLMDecider",
    "LocateError",
    "Memory",
    "NetworkMonitor",
    "PageContext",
    "ParseError",
    "Perception",
    "Plan",
    "RuleBasedDecider",
    "SemanticLocator",
    "Settings",
    "Timings",
    "TransportError",
    "ValidationResult",
    "create_decider",
    "ensure_executable",
    "locate",
    "parse_instructions",
    "parse_plan",
    "run_agent_guided",
    "run_deterministic",
    "validate",
    "wait_for_network_settlement",
]
