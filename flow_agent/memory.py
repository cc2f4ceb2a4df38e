"""记忆模块：记录流程中实际执行过的步骤"""

import time
from typing import List, Optional

from .models import MASK, HistoryEntry


class Memory:
    """
    记忆模块：每次流程执行一个实例，只追加，只有编排器写入。

    fill 的值总是被掩码；mask_all=True 时任何非空值都会被掩码。
    """

    def __init__(self, mask_all: bool = False):
        self.history: List[HistoryEntry] = []
        self.mask_all = mask_all
        self.started = time.monotonic()
        self.step_counter = 0

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def _masked(self, action: str, value: Optional[str]) -> Optional[str]:
        if action == "fill":
            return MASK
        if self.mask_all and value:
            return MASK
        return value

    def record(self, action: str, target: Optional[str], value: Optional[str], url: str = "") -> HistoryEntry:
        """记录单步操作"""
        self.step_counter += 1
        entry = HistoryEntry(
            step=self.step_counter,
            action=action,
            target=target,
            value=self._masked(action, value),
            timestamp_ms=self.elapsed_ms(),
            url=url,
        )
        self.history.append(entry)
        return entry

    def entries(self) -> List[HistoryEntry]:
        """返回副本，外部修改不会影响记录"""
        return list(self.history)

    def format_history(self, last_n: Optional[int] = None) -> str:
        if not self.history:
            return "(no history)"

        records = self.history[-last_n:] if last_n else self.history
        lines = []
        for rec in records:
            target_str = f" {rec.target}" if rec.target else ""
            value_str = f" = {rec.value}" if rec.value else ""
            lines.append(f"{rec.step}. {rec.action}{target_str}{value_str} ({rec.timestamp_ms}ms)")
        return "\n".join(lines)
