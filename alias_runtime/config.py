"""
config.py - レジストリ設定

環境変数からエイリアスレジストリの設定を読み込む。

環境変数:
    ALIAS_ALLOW_OVERRIDING  既存 alias の上書き可否 (1/true/yes/on, 0/false/no/off)。デフォルト: 許可
    ALIAS_LOG_LEVEL         ログレベル。デフォルト: WARNING
    ALIAS_LOG_FORMAT        ログ形式 (json / text)。デフォルト: json
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import SYS_CONFIG_ERROR, format_error
from .logging_utils import configure_logging, get_structured_logger


_logger = get_structured_logger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})
_LOG_FORMATS = frozenset({"json", "text"})


def _parse_bool(key: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    _logger.warning(format_error(SYS_CONFIG_ERROR, key=key, value=raw), key=key, value=raw)
    return default


@dataclass(frozen=True)
class RegistryConfig:
    """AliasRegistry の設定"""
    allow_overriding: bool = True
    log_level: str = "WARNING"
    log_format: str = "json"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        """環境変数から設定を構築する。不正値はデフォルトに戻し警告を出す。"""
        env = os.environ if environ is None else environ

        allow_overriding = _parse_bool(
            "ALIAS_ALLOW_OVERRIDING",
            env.get("ALIAS_ALLOW_OVERRIDING"),
            cls.allow_overriding,
        )

        log_level = env.get("ALIAS_LOG_LEVEL", cls.log_level).strip().upper()
        if not isinstance(getattr(logging, log_level, None), int):
            _logger.warning(
                format_error(SYS_CONFIG_ERROR, key="ALIAS_LOG_LEVEL", value=log_level),
                key="ALIAS_LOG_LEVEL",
                value=log_level,
            )
            log_level = cls.log_level

        log_format = env.get("ALIAS_LOG_FORMAT", cls.log_format).strip().lower()
        if log_format not in _LOG_FORMATS:
            _logger.warning(
                format_error(SYS_CONFIG_ERROR, key="ALIAS_LOG_FORMAT", value=log_format),
                key="ALIAS_LOG_FORMAT",
                value=log_format,
            )
            log_format = cls.log_format

        return cls(
            allow_overriding=allow_overriding,
            log_level=log_level,
            log_format=log_format,
        )

    def apply_logging(self, output: str = "stderr") -> None:
        """log_level / log_format で "alias_runtime" のログを設定する。"""
        configure_logging(level=self.log_level, fmt=self.log_format, output=output)
