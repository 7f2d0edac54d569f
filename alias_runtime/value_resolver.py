"""
value_resolver.py - 名前の変換関数（プレースホルダー展開）

AliasRegistry.resolve_aliases() に渡す ValueResolver の実装を提供する。
ValueResolver は文字列を受け取り、変換後の文字列か None（解決不能）を返す。

プレースホルダー形式:
    ${key}           値辞書（または環境変数）の key で置換
    ${key:default}   key が見つからなければ default で置換

Usage:
    resolver = PlaceholderResolver({"env": "prod"})
    resolver("dataSource-${env}")   # → "dataSource-prod"
    resolver("cache-${region}")     # → None（解決不能）

    registry.resolve_aliases(resolver)
"""

from __future__ import annotations

import os
import re
from typing import Mapping, Optional

from .types import ValueResolver


# --- resolve depth limit ---
MAX_RESOLVE_DEPTH = 20

_PLACEHOLDER_RE = re.compile(r'\$\{([^{}:]+)(?::([^{}]*))?\}')


class PlaceholderResolver:
    """
    ${key} / ${key:default} 形式のプレースホルダーを展開する ValueResolver

    展開後の値に含まれるプレースホルダーも再帰的に展開する。
    解決できないプレースホルダーがあれば値全体を None（解決不能）とする。
    ignore_unresolvable=True の場合は未解決のプレースホルダーをそのまま残す。
    自分自身を参照するプレースホルダーは常に解決不能。
    """

    def __init__(
        self,
        values: Optional[Mapping[str, object]] = None,
        *,
        use_env: bool = False,
        ignore_unresolvable: bool = False,
        max_depth: int = MAX_RESOLVE_DEPTH,
    ) -> None:
        self._values = dict(values or {})
        self._use_env = use_env
        self._ignore_unresolvable = ignore_unresolvable
        self._max_depth = max_depth

    def __call__(self, value: str) -> Optional[str]:
        return self._resolve(value, frozenset(), 0)

    def _lookup(self, key: str) -> Optional[str]:
        if key in self._values:
            return str(self._values[key])
        if self._use_env:
            return os.environ.get(key)
        return None

    def _resolve(self, value: str, in_progress: frozenset, depth: int) -> Optional[str]:
        if depth > self._max_depth:
            return None

        unresolved = False

        def _replacer(m: re.Match) -> str:
            nonlocal unresolved
            placeholder = m.group(0)
            key = m.group(1).strip()
            default = m.group(2)

            if key in in_progress:
                unresolved = True
                return placeholder

            raw = self._lookup(key)
            if raw is None:
                if default is not None:
                    raw = default
                elif self._ignore_unresolvable:
                    return placeholder
                else:
                    unresolved = True
                    return placeholder

            expanded = self._resolve(raw, in_progress | {key}, depth + 1)
            if expanded is None:
                unresolved = True
                return placeholder
            return expanded

        result = _PLACEHOLDER_RE.sub(_replacer, value)
        return None if unresolved else result


def identity_resolver(value: str) -> Optional[str]:
    """値をそのまま返す"""
    return value


def chain_resolvers(*resolvers: ValueResolver) -> ValueResolver:
    """複数の resolver を順に適用する。途中で None が返ればそこで None。"""

    def _chained(value: str) -> Optional[str]:
        current: Optional[str] = value
        for resolver in resolvers:
            if current is None:
                return None
            current = resolver(current)
        return current

    return _chained
