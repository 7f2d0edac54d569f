"""
conftest.py - テスト共通 fixture
"""
from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _clean_env_vars(monkeypatch):
    """テスト間で環境変数が漏れないようにする"""
    for var in (
        "ALIAS_ALLOW_OVERRIDING",
        "ALIAS_LOG_LEVEL",
        "ALIAS_LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_singletons():
    """各テスト後にグローバルシングルトンとログ設定をリセットする"""
    yield
    from alias_runtime import alias_registry as _ar
    from alias_runtime import logging_utils as _lu

    _ar._global_alias_registry = None
    _lu.reset_configuration()
