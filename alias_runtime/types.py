"""
types.py - 共通型定義

エイリアスレジストリ全体で共有する型エイリアスを定義する。

主要コンポーネント:
- ValueResolver: 名前変換関数の型エイリアス（None は「解決不能」）
- AliasMapping: alias -> canonical name の辞書型

設計原則:
- stdlib のみに依存（循環参照を作らない）
"""

from __future__ import annotations

from typing import Callable, Dict, Optional


ValueResolver = Callable[[str], Optional[str]]
"""文字列を変換する関数。None を返した場合は「値なし（解決不能）」を表す。"""


AliasMapping = Dict[str, str]
"""alias -> canonical name の生マッピング。"""
