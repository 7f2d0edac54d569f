"""
alias_runtime - 名前エイリアスレジストリ

Usage:
    from alias_runtime import get_alias_registry

    registry = get_alias_registry()
    registry.register_alias("dataSource", "db")
    registry.canonical_name("db")  # → "dataSource"
"""

from .alias_registry import (
    AliasRegistry,
    get_alias_registry,
    reset_alias_registry,
)
from .alias_file import load_alias_file, parse_alias_line
from .config import RegistryConfig
from .errors import (
    AliasConflictError,
    AliasRegistryError,
    CircularAliasError,
    InvalidAliasArgumentError,
    UnknownAliasError,
)
from .value_resolver import PlaceholderResolver, chain_resolvers, identity_resolver

__all__ = [
    "AliasRegistry",
    "get_alias_registry",
    "reset_alias_registry",
    "load_alias_file",
    "parse_alias_line",
    "RegistryConfig",
    "AliasRegistryError",
    "AliasConflictError",
    "CircularAliasError",
    "InvalidAliasArgumentError",
    "UnknownAliasError",
    "PlaceholderResolver",
    "chain_resolvers",
    "identity_resolver",
]
