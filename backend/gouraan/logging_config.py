"""
日志配置：仅输出到标准输出（便于容器/云端采集）
"""
import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def configure_logging(level: str = "INFO") -> logging.Logger:
    """配置根日志器，移除已有 handler 以避免重复输出"""
    root = logging.getLogger()
    root.setLevel(level.upper())

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(formatter)

    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(console_handler)

    return root
