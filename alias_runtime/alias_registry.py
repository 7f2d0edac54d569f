"""
alias_registry.py - 名前エイリアスレジストリ

同じ論理エンティティを複数の名前（エイリアス）で参照できるようにし、
任意のエイリアスを唯一の正規名（canonical name）に解決する。

マッピングは alias -> name の辞書で、name 自身がさらに別の alias の
ターゲットになることでチェーンを形成する。チェーンは決して循環しない。

設計原則:
- 構造を変更する操作（登録/削除/全エイリアス取得/一括リネーム）は
  インスタンスごとの単一ロック内で実行する
- 単純な点参照（is_alias / lookup / canonical_name）はロックを取らない
- 全ての検査（衝突・循環）は書き込み前に同じクリティカルセクション内で行う
- 失敗時はレジストリを呼び出し前の状態のまま残す

Usage:
    registry = get_alias_registry()

    registry.register_alias("dataSource", "db")
    registry.register_alias("db", "primaryDb")

    registry.canonical_name("primaryDb")   # → "dataSource"
    registry.get_aliases("dataSource")     # → ["db", "primaryDb"]（順不同）
    registry.canonical_name("unknown")     # → "unknown"（未登録はそのまま）
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from .config import RegistryConfig
from .errors import (
    AliasConflictError,
    CircularAliasError,
    InvalidAliasArgumentError,
    UnknownAliasError,
    VAL_NOT_CALLABLE,
)
from .logging_utils import get_structured_logger
from .types import AliasMapping, ValueResolver


_logger = get_structured_logger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _require_text(value: object, field: str) -> None:
    if not isinstance(value, str) or _is_blank(value):
        raise InvalidAliasArgumentError(field)


def _reverse_index(mapping: AliasMapping) -> Dict[str, List[str]]:
    """name -> 直接の alias リスト"""
    reverse: Dict[str, List[str]] = {}
    for alias, registered_name in mapping.items():
        reverse.setdefault(registered_name, []).append(alias)
    return reverse


def _collect_aliases(reverse: Dict[str, List[str]], name: str) -> List[str]:
    """name に（推移的に）解決される全ての alias を深さ優先で集める"""
    result: List[str] = []
    seen = {name}
    stack = list(reverse.get(name, ()))
    while stack:
        alias = stack.pop()
        if alias in seen:
            continue
        seen.add(alias)
        result.append(alias)
        stack.extend(reverse.get(alias, ()))
    return result


class AliasRegistry:
    """
    エイリアスレジストリ

    alias -> 正規名のマッピングを管理する。スレッドセーフ。
    上書きポリシーはサブクラスで allow_alias_overriding() をオーバーライドして変更できる。
    """

    def __init__(self, allow_overriding: bool = True) -> None:
        self._alias_map: AliasMapping = {}
        self._allow_overriding = allow_overriding
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Optional[RegistryConfig] = None) -> "AliasRegistry":
        """RegistryConfig（省略時は環境変数）からレジストリを生成"""
        if config is None:
            config = RegistryConfig.from_env()
        return cls(allow_overriding=config.allow_overriding)

    # ------------------------------------------------------------------
    # ポリシー
    # ------------------------------------------------------------------

    def allow_alias_overriding(self) -> bool:
        """既存 alias を別の name で上書きしてよいか。デフォルトは True。"""
        return self._allow_overriding

    # ------------------------------------------------------------------
    # 登録・削除
    # ------------------------------------------------------------------

    def register_alias(self, name: str, alias: str) -> None:
        """
        alias -> name を登録

        Args:
            name: 正規名（または別の alias）
            alias: 登録するエイリアス

        Raises:
            InvalidAliasArgumentError: name / alias が空
            AliasConflictError: 上書き禁止で alias が別の name に登録済み
            CircularAliasError: 登録すると循環する

        Note:
            alias == name の場合は既存の alias を削除するだけで、エラーにはならない。
        """
        _require_text(name, "name")
        _require_text(alias, "alias")

        with self._lock:
            if self._register_into(self._alias_map, name, alias):
                _logger.debug("Alias definition registered", alias=alias, name=name)

    def register_aliases(self, name: str, aliases: Iterable[str]) -> int:
        """
        name に対して複数の alias をまとめて登録

        全件の検査が通った場合のみ反映する（1件でも失敗すれば何も変更しない）。

        Returns:
            新たに書き込まれた alias の数
        """
        _require_text(name, "name")
        aliases = list(aliases)
        for alias in aliases:
            _require_text(alias, "alias")

        with self._lock:
            working = dict(self._alias_map)
            added = 0
            for alias in aliases:
                if self._register_into(working, name, alias):
                    added += 1
            self._alias_map = working

        if added:
            _logger.debug("Alias definitions registered", name=name, count=added)
        return added

    def _register_into(self, mapping: AliasMapping, name: str, alias: str) -> bool:
        """
        mapping に alias -> name を書き込む。ロック保持中に呼ぶこと。

        Returns:
            エントリを書き込んだ場合 True（冪等・自己参照で何もしなかった場合 False）
        """
        if alias == name:
            mapping.pop(alias, None)
            _logger.debug(
                "Alias definition ignored since it points to same name", alias=alias
            )
            return False

        registered_name = mapping.get(alias)
        if registered_name is not None:
            if registered_name == name:
                return False
            if not self.allow_alias_overriding():
                raise AliasConflictError(alias, name, registered_name)
            _logger.debug(
                "Overriding alias definition",
                alias=alias,
                existing_name=registered_name,
                name=name,
            )

        self._check_circle_in(mapping, name, alias)
        mapping[alias] = name
        return True

    def remove_alias(self, alias: str) -> None:
        """
        alias を削除

        Raises:
            UnknownAliasError: alias が登録されていない
        """
        with self._lock:
            name = self._alias_map.pop(alias, None)
            if name is None:
                raise UnknownAliasError(alias)
        _logger.debug("Alias definition removed", alias=alias, name=name)

    def clear(self) -> None:
        """全てのマッピングをクリア"""
        with self._lock:
            self._alias_map = {}

    # ------------------------------------------------------------------
    # 点参照（ロックなし）
    # ------------------------------------------------------------------

    def is_alias(self, name: str) -> bool:
        """name が alias として登録されているか"""
        return name in self._alias_map

    def lookup(self, name: str) -> Optional[str]:
        """1段だけ解決する。マッピングがなければ None。"""
        return self._alias_map.get(name)

    def canonical_name(self, name: str) -> str:
        """
        alias チェーンを辿って正規名を返す

        未登録の名前はそのまま返す。ロックを取らないため、並行する変更の途中の
        状態を観測することがあるが、その場合も辿れたチェーンの終端を返す。
        """
        canonical = name
        visited = {name}
        while True:
            resolved = self._alias_map.get(canonical)
            if resolved is None:
                return canonical
            if resolved in visited:
                _logger.warning(
                    "Alias chain revisits a name; returning last name reached",
                    name=name,
                    revisited=resolved,
                )
                return canonical
            visited.add(resolved)
            canonical = resolved

    # ------------------------------------------------------------------
    # 推移的な問い合わせ
    # ------------------------------------------------------------------

    def has_alias(self, name: str, alias: str) -> bool:
        """alias が（直接または推移的に）name に解決されるか"""
        return self._has_alias_in(self._alias_map, name, alias)

    @staticmethod
    def _has_alias_in(mapping: AliasMapping, name: str, alias: str) -> bool:
        visited = set()
        current = alias
        while True:
            visited.add(current)
            registered_name = mapping.get(current)
            if registered_name is None:
                return False
            if registered_name == name:
                return True
            if registered_name in visited:
                _logger.warning(
                    "Circular alias chain detected in registry",
                    alias=alias,
                    revisited=registered_name,
                )
                return False
            current = registered_name

    def check_for_alias_circle(self, name: str, alias: str) -> None:
        """
        alias -> name を登録すると循環するなら CircularAliasError を送出

        name が既に（直接または推移的に）alias の別名である場合に循環となる。
        """
        with self._lock:
            self._check_circle_in(self._alias_map, name, alias)

    def _check_circle_in(self, mapping: AliasMapping, name: str, alias: str) -> None:
        if self._has_alias_in(mapping, alias, name):
            raise CircularAliasError(alias, name)

    def get_aliases(self, name: str) -> List[str]:
        """
        name に解決される全ての alias を取得（推移的なものを含む、順不同）

        未登録の場合は空リストを返す。
        """
        with self._lock:
            reverse = _reverse_index(self._alias_map)
        return _collect_aliases(reverse, name)

    def list_all_mappings(self) -> Dict[str, List[str]]:
        """全ての正規名 -> その alias（推移的なものを含む、ソート済み）"""
        with self._lock:
            mapping = self._alias_map
            reverse = _reverse_index(mapping)
            canonicals = {n for n in mapping.values() if n not in mapping}
        return {
            canonical: sorted(_collect_aliases(reverse, canonical))
            for canonical in sorted(canonicals)
        }

    def snapshot(self) -> AliasMapping:
        """alias -> name マッピングのコピーを取得"""
        with self._lock:
            return dict(self._alias_map)

    # ------------------------------------------------------------------
    # 一括リネーム
    # ------------------------------------------------------------------

    def resolve_aliases(self, value_resolver: ValueResolver) -> None:
        """
        全ての (alias, name) に value_resolver を適用して書き換える

        value_resolver は文字列を受け取り、変換後の文字列か None（解決不能）を返す。
        例えば name や alias に含まれるプレースホルダーの展開に使う。

        - どちらかが None / 空白のみ、または変換後 alias == name → エントリを削除
        - alias が変わる場合:
            - 変換後 alias が別の name に登録済み → AliasConflictError
            - 変換後 alias が同じ name に登録済み → 元のエントリを削除するのみ
            - それ以外 → 循環検査の上、元のエントリを削除して新しく登録
        - name だけが変わる場合 → 循環検査の上、name を上書き

        開始時点のスナップショットを順に処理し、各エントリの変更は作業用の
        マッピングに即座に反映される（後続のエントリは先の変更を観測する）。
        パス全体が成功した場合のみ作業用マッピングを反映するため、
        失敗時のレジストリは呼び出し前の状態のままとなる。

        Note:
            スナップショットの走査順は規定しない。value_resolver の出力が
            エントリ間で衝突しない場合にのみ結果は順序に依存しない。

        Raises:
            InvalidAliasArgumentError: value_resolver が呼び出し可能でない
            AliasConflictError: 2つの異なるターゲットを持つ alias が1つに合流する
            CircularAliasError: 書き換え結果が循環する
        """
        if not callable(value_resolver):
            raise InvalidAliasArgumentError("value_resolver", VAL_NOT_CALLABLE)

        with self._lock:
            working = dict(self._alias_map)
            changed = 0

            for alias, registered_name in list(working.items()):
                resolved_alias = value_resolver(alias)
                resolved_name = value_resolver(registered_name)

                if (
                    _is_blank(resolved_alias)
                    or _is_blank(resolved_name)
                    or resolved_alias == resolved_name
                ):
                    working.pop(alias, None)
                    changed += 1
                    _logger.debug(
                        "Alias definition dropped after resolution",
                        alias=alias,
                        name=registered_name,
                    )
                elif resolved_alias != alias:
                    existing_name = working.get(resolved_alias)
                    if existing_name is not None:
                        if existing_name == resolved_name:
                            # 既存の alias を指しているので元のエントリだけ削除
                            working.pop(alias, None)
                            changed += 1
                            continue
                        raise AliasConflictError(
                            resolved_alias,
                            resolved_name,
                            existing_name,
                            original_alias=alias,
                        )
                    self._check_circle_in(working, resolved_name, resolved_alias)
                    working.pop(alias, None)
                    working[resolved_alias] = resolved_name
                    changed += 1
                elif registered_name != resolved_name:
                    self._check_circle_in(working, resolved_name, alias)
                    working[alias] = resolved_name
                    changed += 1

            self._alias_map = working

        if changed:
            _logger.debug("Alias definitions resolved", changed=changed)

    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._alias_map)

    def __contains__(self, name: object) -> bool:
        return name in self._alias_map


# グローバルインスタンス
_global_alias_registry: Optional[AliasRegistry] = None
_registry_lock = threading.Lock()


def get_alias_registry() -> AliasRegistry:
    """グローバルな AliasRegistry インスタンスを取得（初回は環境変数から設定）"""
    global _global_alias_registry
    if _global_alias_registry is None:
        with _registry_lock:
            if _global_alias_registry is None:
                _global_alias_registry = AliasRegistry.from_config()
    return _global_alias_registry


def reset_alias_registry(config: Optional[RegistryConfig] = None) -> AliasRegistry:
    """AliasRegistry をリセット（テスト用）"""
    global _global_alias_registry
    with _registry_lock:
        _global_alias_registry = AliasRegistry.from_config(config)
    return _global_alias_registry
