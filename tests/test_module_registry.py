"""
Tests for ModuleDescriptor and ModuleRegistry.

These tests verify:
1. Registration, duplicate rejection, freeze/reset
2. Descriptor validation
3. Evaluation order: phase, precedence, declaration order, runs-after/before
4. Ordering errors (cycles, cross-phase edges)
"""

import pytest

from src.autoconfigure.conditions import TypeAvailable
from src.autoconfigure.errors import ModuleOrderingError, ModuleRegistrationError
from src.autoconfigure.module_registry import ModuleRegistry
from src.autoconfigure.modules import (
    HIGHEST_PRECEDENCE, LOWEST_PRECEDENCE, ModuleDescriptor, Phase,
)


def module(module_id: str, **kwargs) -> ModuleDescriptor:
    return ModuleDescriptor(id=module_id, **kwargs)


class TestModuleDescriptor:

    def test_iterables_are_normalized(self):
        descriptor = module(
            "m",
            conditions=[TypeAvailable("A")],
            provided_names=["x"],
            provided_type="T",
            runs_after=["a"],
        )
        assert descriptor.conditions == (TypeAvailable("A"),)
        assert descriptor.provided_names == frozenset({"x"})
        assert descriptor.runs_after == frozenset({"a"})

    def test_phase_from_string(self):
        assert module("m", phase="instantiation").phase is Phase.INSTANTIATION

    def test_valid_descriptor(self):
        assert module("m", provided_names={"x"}, provided_type="T").validate() == []

    @pytest.mark.parametrize("kwargs, fragment", [
        ({"id": " "}, "non-empty id"),
        ({"precedence": "1"}, "precedence must be int"),
        ({"precedence": True}, "precedence must be int"),
        ({"runs_after": {"m"}}, "relative to itself"),
        ({"runs_after": {"a"}, "runs_before": {"a"}}, "both before and after"),
        ({"provided_names": {"x"}}, "requires provided_type"),
        ({"group": ""}, "group must be non-empty"),
    ])
    def test_invalid_descriptor(self, kwargs, fragment):
        kwargs = dict(kwargs)
        module_id = kwargs.pop("id", "m")
        errors = module(module_id, **kwargs).validate()
        assert any(fragment in e for e in errors)

    def test_to_dict(self):
        data = module("m", conditions=[TypeAvailable("A")], group="g").to_dict()
        assert data["id"] == "m"
        assert data["group"] == "g"
        assert data["phase"] == "definition"
        assert data["conditions"] == ["TypeAvailable(A)"]


class TestModuleRegistry:

    @pytest.fixture
    def registry(self):
        return ModuleRegistry()

    def test_register(self, registry):
        registry.register(module("a"))
        assert "a" in registry
        assert len(registry) == 1
        assert registry.get("a").id == "a"

    def test_register_rejects_duplicate_id(self, registry):
        registry.register(module("a"))
        with pytest.raises(ModuleRegistrationError, match="already registered"):
            registry.register(module("a", precedence=5))

    def test_register_rejects_invalid_descriptor(self, registry):
        with pytest.raises(ModuleRegistrationError):
            registry.register(module("a", provided_names={"x"}))

    def test_register_rejects_non_descriptor(self, registry):
        with pytest.raises(TypeError):
            registry.register({"id": "a"})

    def test_freeze(self, registry):
        registry.register(module("a"))
        registry.freeze()
        assert registry.frozen is True
        with pytest.raises(ModuleRegistrationError, match="frozen"):
            registry.register(module("b"))
        with pytest.raises(RuntimeError):
            registry.unregister("a")

    def test_unregister(self, registry):
        registry.register(module("a"))
        assert registry.unregister("a") is True
        assert registry.unregister("a") is False

    def test_reset(self, registry):
        registry.register(module("a"))
        registry.freeze()
        registry.reset()
        assert len(registry) == 0
        assert registry.frozen is False

    def test_groups(self, registry):
        registry.register_all([
            module("a", group="g"),
            module("b"),
            module("c", group="g"),
        ])
        assert registry.groups() == {"g": ["a", "c"]}

    def test_iter_is_registration_order(self, registry):
        registry.register_all([module("b", precedence=2), module("a", precedence=1)])
        assert [m.id for m in registry] == ["b", "a"]


class TestOrdering:

    def test_precedence(self):
        registry = ModuleRegistry([
            module("late", precedence=LOWEST_PRECEDENCE),
            module("middle"),
            module("early", precedence=HIGHEST_PRECEDENCE),
        ])
        assert registry.list_registered() == ["early", "middle", "late"]

    def test_declaration_order_breaks_ties(self):
        registry = ModuleRegistry([module("z"), module("a"), module("m")])
        assert registry.list_registered() == ["z", "a", "m"]

    def test_definition_phase_first(self):
        registry = ModuleRegistry([
            module("inst", phase=Phase.INSTANTIATION, precedence=HIGHEST_PRECEDENCE),
            module("defn", precedence=LOWEST_PRECEDENCE),
        ])
        assert registry.list_registered() == ["defn", "inst"]

    def test_runs_after_overrides_precedence(self):
        registry = ModuleRegistry([
            module("dependent", precedence=-100, runs_after={"base"}),
            module("base", precedence=100),
            module("other", precedence=0),
        ])
        order = registry.list_registered()
        assert order.index("base") < order.index("dependent")
        assert order == ["other", "base", "dependent"]

    def test_runs_before(self):
        registry = ModuleRegistry([
            module("a", precedence=1),
            module("b", precedence=2, runs_before={"a"}),
        ])
        assert registry.list_registered() == ["b", "a"]

    def test_chain(self):
        registry = ModuleRegistry([
            module("c", runs_after={"b"}),
            module("b", runs_after={"a"}),
            module("a"),
        ])
        assert registry.list_registered() == ["a", "b", "c"]

    def test_unknown_reference_ignored(self):
        registry = ModuleRegistry([module("a", runs_after={"not.registered"})])
        assert registry.list_registered() == ["a"]

    def test_instantiation_after_definition_is_allowed(self):
        registry = ModuleRegistry([
            module("inst", phase=Phase.INSTANTIATION, runs_after={"defn"}),
            module("defn"),
        ])
        assert registry.list_registered() == ["defn", "inst"]

    def test_definition_after_instantiation_is_an_error(self):
        registry = ModuleRegistry([
            module("defn", runs_after={"inst"}),
            module("inst", phase=Phase.INSTANTIATION),
        ])
        with pytest.raises(ModuleOrderingError) as exc_info:
            registry.sorted_modules()
        assert set(exc_info.value.module_ids) == {"defn", "inst"}

    def test_cycle_is_an_error(self):
        registry = ModuleRegistry([
            module("a", runs_after={"b"}),
            module("b", runs_after={"a"}),
            module("free"),
        ])
        with pytest.raises(ModuleOrderingError, match="cycle") as exc_info:
            registry.sorted_modules()
        assert exc_info.value.module_ids == ["a", "b"]

    def test_order_is_stable_across_calls(self):
        modules = [module(f"m{i}", precedence=i % 3) for i in range(10)]
        first = ModuleRegistry(modules).list_registered()
        second = ModuleRegistry(modules).list_registered()
        assert first == second
