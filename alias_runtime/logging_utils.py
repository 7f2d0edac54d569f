"""
logging_utils.py - エイリアスレジストリのログ出力

"alias_runtime" 名前空間のロガーに、キーワード引数で渡したコンテキスト
（alias, name 等）を付けて出力する。

    _logger = get_structured_logger(__name__)
    _logger.debug("Alias definition registered", alias="db", name="dataSource")

出力形式は json（1行1オブジェクト）または text。configure_logging() を
呼ばない限りハンドラは追加せず、通常の logging の伝播に任せる。
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ROOT_LOGGER_NAME = "alias_runtime"


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    context = getattr(record, "context_data", None)
    return context if isinstance(context, dict) else {}


class StructuredFormatter(logging.Formatter):
    """
    レコードを json または text の1行に整形する

    fmt_type を省略すると環境変数 ALIAS_LOG_FORMAT（デフォルト json）を使う。
    json ではコンテキストのキーが timestamp/level/module/message を上書きしない。
    """

    def __init__(self, fmt_type: Optional[str] = None) -> None:
        super().__init__()
        self.fmt_type = (fmt_type or os.environ.get("ALIAS_LOG_FORMAT", "json")).lower()

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = stamp.isoformat().replace("+00:00", "Z")
        message = record.getMessage()
        context = _context_of(record)

        if self.fmt_type == "text":
            line = f"{timestamp} [{record.levelname}] {record.name} - {message}"
            if context:
                pairs = " ".join(f"{key}={value}" for key, value in context.items())
                line += f" [{pairs}]"
            return line

        entry: Dict[str, Any] = dict(context)
        entry.update(
            timestamp=timestamp,
            level=record.levelname,
            module=record.name,
            message=message,
        )
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """logging.Logger に context_data を渡す薄いラッパー"""

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, msg: str, context: Dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, msg, extra={"context_data": context})

    def debug(self, msg: str, **context: Any) -> None:
        self._emit(logging.DEBUG, msg, context)

    def warning(self, msg: str, **context: Any) -> None:
        self._emit(logging.WARNING, msg, context)


def get_structured_logger(name: str) -> StructuredLogger:
    """name のロガーを StructuredLogger で包んで返す"""
    return StructuredLogger(name)


_configured = False
_configure_lock = threading.Lock()


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    output: str = "stderr",
) -> None:
    """
    "alias_runtime" ロガーにハンドラを1つだけ設定する

    Args:
        level: DEBUG / INFO / WARNING / ERROR / CRITICAL
        fmt: "json" or "text"
        output: "stderr" またはファイルパス

    Raises:
        ValueError: level が不正
    """
    global _configured

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    if output == "stderr":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(output, encoding="utf-8")
    handler.setFormatter(StructuredFormatter(fmt_type=fmt))

    with _configure_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        _drop_handlers(root)
        root.addHandler(handler)
        root.setLevel(numeric_level)
        root.propagate = False
        _configured = True


def is_configured() -> bool:
    return _configured


def reset_configuration() -> None:
    """configure_logging() の設定を外す（テスト用）"""
    global _configured
    with _configure_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        _drop_handlers(root)
        root.setLevel(logging.NOTSET)
        root.propagate = True
        _configured = False
