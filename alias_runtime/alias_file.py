"""
alias_file.py - エイリアス定義ファイルの読み込み

aliases.txt形式:
    # コメント
    dataSource = db, primaryDb
    db = legacyDb

    "=" の左辺が name、右辺がカンマ区切りの alias。
    1行は AliasRegistry.register_aliases() 1回に対応する（行単位で all-or-nothing）。
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from .alias_registry import AliasRegistry
from .logging_utils import get_structured_logger


_logger = get_structured_logger(__name__)


def parse_alias_line(line: str) -> Optional[Tuple[str, List[str]]]:
    """
    1行を (name, [alias, ...]) に分解

    Returns:
        空行・コメント行・不正な行は None
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None
    if '=' not in line:
        return None

    name, _, rest = line.partition('=')
    name = name.strip()
    aliases = [a.strip() for a in rest.split(',')]
    aliases = [a for a in aliases if a]
    if not name or not aliases:
        return None
    return name, aliases


def load_alias_file(registry: AliasRegistry, file_path: Path) -> int:
    """
    エイリアス定義ファイルを読み込んで registry に登録

    Returns:
        登録に使った行数。ファイルが存在しなければ 0。

    Raises:
        AliasRegistryError: 登録が衝突・循環した場合（その行は反映されない）
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return 0

    count = 0
    with open(file_path, 'r', encoding='utf-8') as f:
        for lineno, line in enumerate(f, start=1):
            parsed = parse_alias_line(line)
            if parsed is None:
                stripped = line.strip()
                if stripped and not stripped.startswith('#'):
                    _logger.warning(
                        "Skipping malformed alias line",
                        path=str(file_path),
                        lineno=lineno,
                        line=stripped,
                    )
                continue

            name, aliases = parsed
            registry.register_aliases(name, aliases)
            count += 1

    return count
