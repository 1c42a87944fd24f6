"""
日志模块

基于 loguru。门户 token 会出现在下载地址的查询参数里，所有日志记录在输出前都会被脱敏。
"""

import os
import re
import sys
from typing import Optional

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

_SECRET_PARAM = re.compile(r"(?i)\b(token|service-token)=([^&\s'\"]+)")


def redact(text: str) -> str:
    """把 token=xxx 替换成 token=***"""
    return _SECRET_PARAM.sub(r"\1=***", text)


def _patch_record(record):
    record["message"] = redact(record["message"])


def resolve_level(level: Optional[str] = None) -> str:
    """显式参数优先，其次是 MODCACHE_DEBUG 环境变量"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get("MODCACHE_DEBUG", "0") == "1" else "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stderr,
    enqueue: bool = False,
    colorize: bool = True,
) -> None:
    """
    设置日志记录器

    默认输出到 stderr，stdout 留给表格输出。
    """
    level = resolve_level(level)
    debug = level == "DEBUG"

    logger.remove()
    logger.configure(patcher=_patch_record)
    logger.add(
        sink=sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=debug,
        diagnose=debug,
    )

    if debug:
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger", "redact"]
