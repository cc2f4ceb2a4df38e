"""异常定义：流程中所有失败都是致命的，不做重试"""

from typing import Iterable, Sequence


class FlowError(Exception):
    """所有流程错误的基类，context 在编排器捕获时填充"""

    def __init__(self, message: str, context=None):
        super().__init__(message)
        self.context = context


class ParseError(FlowError):
    """计划中包含无法识别的指令"""

    def __init__(self, message: str, instructions: Sequence[str] = ()):
        super().__init__(message)
        self.instructions = list(instructions)


class LocateError(FlowError):
    """所有定位策略都没有找到元素"""

    def __init__(self, target: str, strategies: Iterable[str]):
        self.target = target
        self.strategies = list(strategies)
        lines = [f'Could not locate element: "{target}"', "Tried strategies:"]
        lines += [f'  - {name} "{target}"' for name in self.strategies]
        lines.append("Please verify the element exists and is visible on the page.")
        super().__init__("\n".join(lines))


class ActionError(FlowError):
    """动作的前置条件不满足"""


class FlowTimeoutError(FlowError, TimeoutError):
    """超过步数上限或内容就绪等待超时"""


class TransportError(FlowError):
    """外部决策函数失败或返回了格式错误的决策"""


def attach_context(error: BaseException, context) -> BaseException:
    """把诊断信息挂到异常上，保持异常类型不变"""
    error.context = context
    return error
