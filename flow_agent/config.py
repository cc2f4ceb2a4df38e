"""全局配置：从环境变量（以及 .env 文件）读取"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# 加载 .env 文件中的环境变量
load_dotenv()

DECIDERS = ("rules", "llm", "http", "interactive")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Timings:
    """所有等待时长与上限，单位毫秒"""
    navigate_settle_ms: int = 3000  # 导航后等待前端渲染
    content_timeout_ms: int = 10000  # 等待页面出现有效内容的上限
    history_settle_ms: int = 500  # 前进/后退后
    reload_settle_ms: int = 1000
    default_wait_ms: int = 2000
    network_idle_ms: int = 2000
    network_timeout_ms: int = 15000
    network_poll_ms: int = 100
    enabled_check_ms: int = 1000
    max_agent_steps: int = 50  # 防止无限循环


@dataclass
class Settings:
    decider: str = "rules"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    model: str = "gpt-4o"
    agent_url: Optional[str] = None
    agent_timeout: float = 30.0
    headless: bool = True
    mask_all_agent_values: bool = False
    log_level: str = "INFO"
    timings: Timings = field(default_factory=Timings)

    @classmethod
    def from_env(cls) -> "Settings":
        decider = (os.getenv("FLOW_DECIDER") or "rules").strip().lower()
        if decider not in DECIDERS:
            raise ValueError(f"FLOW_DECIDER must be one of {', '.join(DECIDERS)}, got {decider!r}")
        timings = Timings(max_agent_steps=int(os.getenv("FLOW_MAX_STEPS", "50")))
        return cls(
            decider=decider,
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            model=os.getenv("OPENAI_MODEL", "gpt-4o"),
            agent_url=os.getenv("FLOW_AGENT_URL") or None,
            agent_timeout=float(os.getenv("FLOW_AGENT_TIMEOUT", "30")),
            headless=_env_bool("FLOW_HEADLESS", True),
            mask_all_agent_values=_env_bool("FLOW_MASK_ALL_AGENT_VALUES", False),
            log_level=os.getenv("FLOW_LOG_LEVEL", "INFO").upper(),
            timings=timings,
        )
