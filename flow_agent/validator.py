"""校验模块：比较计划与实际执行记录"""

import re
from typing import Any, Iterable, List, Optional, Sequence

from .models import Action, HistoryEntry, ValidationResult

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize_url(value: Optional[str]) -> str:
    text = (value or "").strip().lower()
    text = _SCHEME_RE.sub("", text)
    return text.rstrip("/")


def normalize_target(value: Optional[str]) -> str:
    return _NON_ALNUM_RE.sub("", (value or "").lower())


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def _matches(planned: Action, entry: Any) -> bool:
    kind = _field(entry, "action")
    if kind != planned.action:
        return False

    if planned.action == "navigate":
        expected = normalize_url(planned.target or planned.value)
        return expected in normalize_url(_field(entry, "value"))
    if planned.action in ("back", "wait"):
        return True
    if planned.action in ("click", "fill"):
        return normalize_target(planned.target) in normalize_target(_field(entry, "target"))
    return False


def _describe(planned: Action) -> str:
    if planned.description:
        return planned.description
    return " ".join(p for p in (planned.action, planned.target or planned.value) if p)


def validate(plan: Sequence[Action], history: Iterable[HistoryEntry]) -> ValidationResult:
    """
    对计划中的每个动作，在执行记录里查找满足该类型匹配规则的条目。

    unknown 动作总是记为错误；不修改任何输入。
    """
    entries = list(history)
    errors: List[str] = []

    for planned in plan:
        if planned.action == "unknown":
            errors.append(f'unrecognized instruction: "{_describe(planned)}"')
            continue
        if not any(_matches(planned, entry) for entry in entries):
            errors.append(f'expected action not performed: "{_describe(planned)}"')

    return ValidationResult(success=not errors, errors=tuple(errors))
