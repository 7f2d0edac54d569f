"""
test_alias_registry.py - AliasRegistry のテスト

対象: alias_runtime/alias_registry.py
登録・削除・解決・循環検出・上書きポリシー・スレッドセーフを網羅する。
"""
from __future__ import annotations

import logging
import threading

import pytest

from alias_runtime.alias_registry import (
    AliasRegistry,
    get_alias_registry,
    reset_alias_registry,
)
from alias_runtime.config import RegistryConfig
from alias_runtime.errors import (
    AliasConflictError,
    CircularAliasError,
    InvalidAliasArgumentError,
    UnknownAliasError,
)


class StrictAliasRegistry(AliasRegistry):
    """上書き禁止のサブクラス"""

    def allow_alias_overriding(self) -> bool:
        return False


# ===================================================================
# register_alias / canonical_name
# ===================================================================

class TestRegisterAlias:

    def test_register_and_resolve(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        assert reg.canonical_name("B") == "A"
        assert reg.is_alias("B") is True
        assert reg.is_alias("A") is False

    def test_unknown_name_resolves_to_itself(self):
        reg = AliasRegistry()
        assert reg.canonical_name("nothing") == "nothing"

    def test_self_alias_is_noop(self):
        reg = AliasRegistry()
        reg.register_alias("A", "A")
        assert reg.is_alias("A") is False
        assert len(reg) == 0

    def test_self_alias_removes_existing_entry(self):
        reg = AliasRegistry()
        reg.register_alias("X", "A")
        reg.register_alias("A", "A")
        assert reg.is_alias("A") is False

    def test_identical_registration_is_idempotent(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        before = reg.snapshot()
        reg.register_alias("A", "B")
        assert reg.snapshot() == before

    def test_identical_registration_allowed_without_overriding(self):
        reg = StrictAliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("A", "B")
        assert reg.canonical_name("B") == "A"

    @pytest.mark.parametrize("name, alias", [
        ("", "B"),
        ("A", ""),
        ("   ", "B"),
        ("A", "  "),
        (None, "B"),
    ])
    def test_blank_arguments_rejected(self, name, alias):
        reg = AliasRegistry()
        with pytest.raises(InvalidAliasArgumentError) as exc_info:
            reg.register_alias(name, alias)
        assert isinstance(exc_info.value, ValueError)
        assert len(reg) == 0

    def test_override_allowed_by_default(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("C", "B")
        assert reg.canonical_name("B") == "C"

    def test_override_rejected_by_subclass_policy(self):
        reg = StrictAliasRegistry()
        reg.register_alias("A", "B")
        with pytest.raises(AliasConflictError) as exc_info:
            reg.register_alias("C", "B")
        err = exc_info.value
        assert err.alias == "B"
        assert err.name == "C"
        assert err.existing_name == "A"
        assert reg.canonical_name("B") == "A"

    def test_override_rejected_by_constructor_policy(self):
        reg = AliasRegistry(allow_overriding=False)
        reg.register_alias("A", "B")
        with pytest.raises(AliasConflictError):
            reg.register_alias("C", "B")

    def test_override_logged(self, caplog):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        with caplog.at_level(logging.DEBUG, logger="alias_runtime.alias_registry"):
            reg.register_alias("C", "B")
        assert any("overriding" in r.message.lower() for r in caplog.records)


# ===================================================================
# チェーン
# ===================================================================

class TestAliasChain:

    def test_chain_resolution(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        assert reg.canonical_name("C") == "A"
        assert set(reg.get_aliases("A")) == {"B", "C"}
        assert reg.get_aliases("B") == ["C"]

    def test_get_aliases_unknown_is_empty(self):
        reg = AliasRegistry()
        assert reg.get_aliases("A") == []

    def test_get_aliases_branching(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("A", "C")
        reg.register_alias("B", "D")
        reg.register_alias("C", "E")
        aliases = reg.get_aliases("A")
        assert sorted(aliases) == ["B", "C", "D", "E"]
        assert len(aliases) == len(set(aliases))

    def test_has_alias_direct_and_transitive(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        assert reg.has_alias("A", "B") is True
        assert reg.has_alias("A", "C") is True
        assert reg.has_alias("B", "C") is True
        assert reg.has_alias("C", "A") is False
        assert reg.has_alias("A", "Z") is False

    def test_has_alias_holds_for_canonical_of_every_alias(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        reg.register_alias("X", "Y")
        reg.register_alias("A", "D")
        for alias in reg.snapshot():
            assert reg.has_alias(reg.canonical_name(alias), alias)

    def test_lookup_single_step(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        assert reg.lookup("C") == "B"
        assert reg.lookup("A") is None

    def test_long_chain_does_not_recurse(self):
        reg = AliasRegistry()
        depth = 2000
        for i in range(depth):
            reg.register_alias(f"n{i}", f"n{i + 1}")
        assert reg.canonical_name(f"n{depth}") == "n0"
        assert len(reg.get_aliases("n0")) == depth

    def test_list_all_mappings(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        reg.register_alias("X", "Y")
        assert reg.list_all_mappings() == {"A": ["B", "C"], "X": ["Y"]}


# ===================================================================
# 循環検出
# ===================================================================

class TestCircularAlias:

    def test_direct_cycle_rejected(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        with pytest.raises(CircularAliasError) as exc_info:
            reg.register_alias("B", "A")
        assert exc_info.value.alias == "A"
        assert exc_info.value.name == "B"
        assert reg.is_alias("A") is False
        assert reg.snapshot() == {"B": "A"}

    def test_indirect_cycle_rejected(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        with pytest.raises(CircularAliasError):
            reg.register_alias("C", "A")
        assert reg.is_alias("A") is False
        assert reg.canonical_name("C") == "A"

    def test_check_for_alias_circle(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.check_for_alias_circle("C", "B")
        with pytest.raises(CircularAliasError):
            reg.check_for_alias_circle("B", "A")

    def test_override_into_cycle_rejected(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        # B -> C would make B and C point at each other
        with pytest.raises(CircularAliasError):
            reg.register_alias("C", "B")
        assert reg.canonical_name("B") == "A"

    def test_corrupted_map_terminates(self, caplog):
        reg = AliasRegistry()
        reg._alias_map.update({"A": "B", "B": "A"})
        with caplog.at_level(logging.WARNING, logger="alias_runtime.alias_registry"):
            assert reg.canonical_name("A") in {"A", "B"}
            assert reg.has_alias("Z", "A") is False
        assert caplog.records


# ===================================================================
# remove_alias / clear
# ===================================================================

class TestRemoveAlias:

    def test_remove_registered(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.remove_alias("B")
        assert reg.is_alias("B") is False
        assert reg.canonical_name("B") == "B"

    def test_remove_unknown_fails(self):
        reg = AliasRegistry()
        with pytest.raises(UnknownAliasError) as exc_info:
            reg.remove_alias("B")
        assert exc_info.value.alias == "B"
        assert isinstance(exc_info.value, LookupError)

    def test_remove_canonical_name_fails(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        with pytest.raises(UnknownAliasError):
            reg.remove_alias("A")

    def test_remove_middle_of_chain(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.register_alias("B", "C")
        reg.remove_alias("B")
        assert reg.canonical_name("C") == "B"
        assert reg.get_aliases("A") == []

    def test_clear(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        reg.clear()
        assert len(reg) == 0
        assert "B" not in reg


# ===================================================================
# register_aliases（一括）
# ===================================================================

class TestRegisterAliases:

    def test_bulk_register(self):
        reg = AliasRegistry()
        added = reg.register_aliases("A", ["B", "C", "D"])
        assert added == 3
        assert sorted(reg.get_aliases("A")) == ["B", "C", "D"]

    def test_bulk_register_counts_only_new(self):
        reg = AliasRegistry()
        reg.register_alias("A", "B")
        assert reg.register_aliases("A", ["B", "C", "A"]) == 1

    def test_bulk_register_is_all_or_nothing(self):
        reg = AliasRegistry()
        reg.register_alias("B", "A")
        with pytest.raises(CircularAliasError):
            reg.register_aliases("A", ["X", "Y", "B"])
        assert reg.snapshot() == {"A": "B"}

    def test_bulk_register_validates_before_locking(self):
        reg = AliasRegistry()
        with pytest.raises(InvalidAliasArgumentError):
            reg.register_aliases("A", ["B", ""])
        assert len(reg) == 0


# ===================================================================
# 設定・グローバルインスタンス
# ===================================================================

class TestConfigAndGlobal:

    def test_from_config(self):
        reg = AliasRegistry.from_config(RegistryConfig(allow_overriding=False))
        assert reg.allow_alias_overriding() is False

    def test_global_registry_reads_env(self, monkeypatch):
        monkeypatch.setenv("ALIAS_ALLOW_OVERRIDING", "false")
        reg = get_alias_registry()
        assert reg.allow_alias_overriding() is False
        assert get_alias_registry() is reg

    def test_reset_global_registry(self):
        reg = get_alias_registry()
        reg.register_alias("A", "B")
        new_reg = reset_alias_registry()
        assert new_reg is not reg
        assert get_alias_registry() is new_reg
        assert new_reg.is_alias("B") is False


# ===================================================================
# スレッドセーフ
# ===================================================================

class TestConcurrency:

    def test_concurrent_disjoint_registrations(self):
        reg = AliasRegistry()
        n_threads = 8
        per_thread = 200
        barrier = threading.Barrier(n_threads)
        errors = []

        def worker(tid):
            try:
                barrier.wait(timeout=5)
                for i in range(per_thread):
                    reg.register_alias(f"name{tid}", f"alias{tid}_{i}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(t,)) for t in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(reg) == n_threads * per_thread
        for tid in range(n_threads):
            for i in range(per_thread):
                assert reg.is_alias(f"alias{tid}_{i}")

    def test_concurrent_opposite_registrations_never_cycle(self):
        for _ in range(50):
            reg = AliasRegistry()
            barrier = threading.Barrier(2)
            outcomes = []

            def worker(name, alias):
                barrier.wait(timeout=5)
                try:
                    reg.register_alias(name, alias)
                    outcomes.append("ok")
                except CircularAliasError:
                    outcomes.append("cycle")

            t1 = threading.Thread(target=worker, args=("A", "B"))
            t2 = threading.Thread(target=worker, args=("B", "A"))
            t1.start()
            t2.start()
            t1.join()
            t2.join()

            assert sorted(outcomes) == ["cycle", "ok"]
            assert len(reg) == 1
