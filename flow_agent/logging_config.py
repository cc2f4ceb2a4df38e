import logging
import sys

LOGGER_NAME = "flow_agent"
_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def setup_logging(level="INFO") -> logging.Logger:
    """配置 flow_agent 日志，只安装一次 handler"""
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_flow_agent", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        handler._flow_agent = True
        logger.addHandler(handler)
        logger.propagate = False

    return logger
