"""
errors.py - エイリアスレジストリのエラー体系

エラーコード体系、AliasRegistryError 例外階層、ヘルパー関数を提供する。

エラーコード形式: ALIAS-{カテゴリ}-{3桁番号}
カテゴリ: VAL, REG, SYS

例外階層:
    AliasRegistryError
    ├── InvalidAliasArgumentError  (空の name/alias 等)
    ├── AliasConflictError         (上書き禁止 / リネームによる異なるターゲットの合流)
    ├── CircularAliasError         (循環参照になる登録)
    └── UnknownAliasError          (未登録 alias の削除)

設計原則:
- stdlib のみに依存（循環参照を作らない）
- 全ての例外は共有状態を変更する前に送出される
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional


# ALIAS-{CATEGORY(2-5大文字)}-{3桁番号}
ERROR_CODE_PATTERN = re.compile(r'^ALIAS-[A-Z]{2,5}-\d{3}$')


class ErrorCategory(enum.Enum):
    """エラーカテゴリ。

    VAL: 引数バリデーション
    REG: レジストリ構造（衝突・循環・未登録）
    SYS: システム全般
    """

    VAL = "VAL"
    REG = "REG"
    SYS = "SYS"


@dataclass(frozen=True)
class ErrorCode:
    """エラーコード定数。テンプレート文字列とデフォルト suggestion を保持する。

    Attributes:
        code: ALIAS-{CAT}-{NNN} 形式のコード文字列。
        template: ``str.format()`` 対応のメッセージテンプレート。
        suggestion: デフォルトの解決策提案（format_error でオーバーライド可）。
        category: 所属カテゴリ。
    """

    code: str
    template: str
    suggestion: Optional[str] = None
    category: Optional[ErrorCategory] = None

    def __post_init__(self) -> None:
        if not ERROR_CODE_PATTERN.match(self.code):
            raise ValueError(
                f"Invalid error code format: {self.code!r}. "
                f"Expected ALIAS-{{CATEGORY}}-{{NNN}}"
            )


# ======================================================================
# エラーコード定数
# ======================================================================

VAL_EMPTY_VALUE = ErrorCode(
    code="ALIAS-VAL-001",
    template="'{field}' must not be empty",
    suggestion="Provide a non-blank string.",
    category=ErrorCategory.VAL,
)

VAL_NOT_CALLABLE = ErrorCode(
    code="ALIAS-VAL-002",
    template="'{field}' must be callable",
    category=ErrorCategory.VAL,
)

REG_ALIAS_CONFLICT = ErrorCode(
    code="ALIAS-REG-001",
    template=(
        "Cannot define alias '{alias}' for name '{name}': "
        "It is already registered for name '{existing_name}'."
    ),
    suggestion="Remove the existing alias first or enable alias overriding.",
    category=ErrorCategory.REG,
)

REG_RESOLVED_ALIAS_CONFLICT = ErrorCode(
    code="ALIAS-REG-002",
    template=(
        "Cannot register resolved alias '{alias}' (original: '{original_alias}') "
        "for name '{name}': It is already registered for name '{existing_name}'."
    ),
    suggestion="Make sure the value resolver does not map distinct aliases onto one.",
    category=ErrorCategory.REG,
)

REG_CIRCULAR_ALIAS = ErrorCode(
    code="ALIAS-REG-003",
    template=(
        "Cannot register alias '{alias}' for name '{name}': Circular reference - "
        "'{name}' is a direct or indirect alias for '{alias}' already"
    ),
    category=ErrorCategory.REG,
)

REG_UNKNOWN_ALIAS = ErrorCode(
    code="ALIAS-REG-004",
    template="No alias '{alias}' registered",
    category=ErrorCategory.REG,
)

SYS_CONFIG_ERROR = ErrorCode(
    code="ALIAS-SYS-001",
    template="Invalid configuration value for {key}: {value!r}",
    category=ErrorCategory.SYS,
)


_ALL_CODES: Dict[str, ErrorCode] = {
    ec.code: ec
    for ec in (
        VAL_EMPTY_VALUE,
        VAL_NOT_CALLABLE,
        REG_ALIAS_CONFLICT,
        REG_RESOLVED_ALIAS_CONFLICT,
        REG_CIRCULAR_ALIAS,
        REG_UNKNOWN_ALIAS,
        SYS_CONFIG_ERROR,
    )
}


def get_all_error_codes() -> Dict[str, ErrorCode]:
    """登録済みの全エラーコードを返す（コピー）。"""
    return dict(_ALL_CODES)


def get_error_code(code: str) -> Optional[ErrorCode]:
    """コード文字列から ErrorCode を取得する。未登録なら None。"""
    return _ALL_CODES.get(code)


def format_error(
    error_code: ErrorCode,
    suggestion: Optional[str] = None,
    **kwargs: Any,
) -> str:
    """ErrorCode のテンプレートを埋めて ``CODE: message`` 形式の文字列を返す。

    テンプレートに必要なキーが足りない場合はテンプレートをそのまま使う。
    """
    try:
        message = error_code.template.format(**kwargs)
    except (KeyError, IndexError):
        message = error_code.template
    text = f"{error_code.code}: {message}"
    hint = suggestion if suggestion is not None else error_code.suggestion
    if hint:
        text += f" ({hint})"
    return text


# ======================================================================
# 例外クラス
# ======================================================================

class AliasRegistryError(Exception):
    """エイリアスレジストリの基底例外。

    Attributes:
        code: エラーコード文字列。
        message: 人間可読メッセージ。
        details: 追加情報の dict（任意）。
        suggestion: 解決策の提案（任意）。
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details
        self.suggestion = suggestion
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        parts = [f"code={self.code!r}", f"message={self.message!r}"]
        if self.details is not None:
            parts.append(f"details={self.details!r}")
        if self.suggestion is not None:
            parts.append(f"suggestion={self.suggestion!r}")
        return f"{type(self).__name__}({', '.join(parts)})"

    def to_dict(self) -> Dict[str, Any]:
        """JSON シリアライズ可能な dict を返す。

        ``details`` / ``suggestion`` が ``None`` の場合はキー自体を含めない。
        """
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        return result


class InvalidAliasArgumentError(AliasRegistryError, ValueError):
    """name / alias / resolver が不正"""

    def __init__(self, field: str, error_code: ErrorCode = VAL_EMPTY_VALUE) -> None:
        self.field = field
        super().__init__(
            error_code.code,
            error_code.template.format(field=field),
            details={"field": field},
            suggestion=error_code.suggestion,
        )


class AliasConflictError(AliasRegistryError):
    """alias が既に別の正規名に登録されている"""

    def __init__(
        self,
        alias: str,
        name: str,
        existing_name: str,
        original_alias: Optional[str] = None,
    ) -> None:
        self.alias = alias
        self.name = name
        self.existing_name = existing_name
        self.original_alias = original_alias

        details: Dict[str, Any] = {
            "alias": alias,
            "name": name,
            "existing_name": existing_name,
        }
        if original_alias is None:
            ec = REG_ALIAS_CONFLICT
            message = ec.template.format(alias=alias, name=name, existing_name=existing_name)
        else:
            ec = REG_RESOLVED_ALIAS_CONFLICT
            details["original_alias"] = original_alias
            message = ec.template.format(
                alias=alias,
                original_alias=original_alias,
                name=name,
                existing_name=existing_name,
            )
        super().__init__(ec.code, message, details=details, suggestion=ec.suggestion)


class CircularAliasError(AliasRegistryError):
    """登録すると alias チェーンが循環する"""

    def __init__(self, alias: str, name: str) -> None:
        self.alias = alias
        self.name = name
        super().__init__(
            REG_CIRCULAR_ALIAS.code,
            REG_CIRCULAR_ALIAS.template.format(alias=alias, name=name),
            details={"alias": alias, "name": name},
        )


class UnknownAliasError(AliasRegistryError, LookupError):
    """削除対象の alias が登録されていない"""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(
            REG_UNKNOWN_ALIAS.code,
            REG_UNKNOWN_ALIAS.template.format(alias=alias),
            details={"alias": alias},
        )
