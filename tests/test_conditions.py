"""
Tests for condition values and evaluate().

These tests verify:
1. Each atomic condition kind against synthetic facts
2. Phase visibility of components
3. AllOf / AnyOf short-circuiting and reason trails
4. evaluate() never raises
"""

import pytest

from src.autoconfigure.conditions import (
    AllOf, AnyOf, ComponentAbsent, ComponentPresent, ExternalCapability, Named,
    PropertyValue, Scope, SingleCandidate, TypeAvailable, MATCHED_TAG, NOT_FOUND_TAG,
    evaluate, evaluate_all,
)
from src.autoconfigure.facts import ComponentDescriptor
from src.autoconfigure.messages import Outcome
from src.autoconfigure.modules import Phase


TRUE = TypeAvailable("present.Type")
FALSE = TypeAvailable("missing.Type")


@pytest.fixture
def view(make_view):
    return make_view(types={"present.Type"})


class TestTypeAvailable:

    def test_available_type_matches(self, view):
        outcome = evaluate(TRUE, view)
        assert outcome.matched is True
        assert outcome.reason == "TypeAvailable found required type 'present.Type'"

    def test_missing_type_does_not_match(self, view):
        outcome = evaluate(FALSE, view)
        assert outcome.matched is False
        assert "did not find required type 'missing.Type'" in outcome.reason

    def test_leaf_trail_is_its_reason(self, view):
        outcome = evaluate(TRUE, view)
        assert outcome.trail == (outcome.reason,)


class TestPropertyValue:

    def test_missing_property_does_not_match(self, make_view):
        outcome = evaluate(PropertyValue("cache.type"), make_view())
        assert outcome.matched is False
        assert "did not find property 'cache.type'" in outcome.reason

    def test_match_if_missing(self, make_view):
        outcome = evaluate(PropertyValue("cache.type", "redis", match_if_missing=True), make_view())
        assert outcome.matched is True

    def test_blank_value_counts_as_set(self, make_view):
        view = make_view(properties={"feature.flag": ""})
        assert evaluate(PropertyValue("feature.flag"), view).matched is True

    def test_blank_value_fails_expected_comparison(self, make_view):
        view = make_view(properties={"feature.flag": ""})
        assert evaluate(PropertyValue("feature.flag", "on"), view).matched is False

    def test_expected_value(self, make_view):
        view = make_view(properties={"cache.type": "redis"})
        assert evaluate(PropertyValue("cache.type", "redis"), view).matched is True

        outcome = evaluate(PropertyValue("cache.type", "simple"), view)
        assert outcome.matched is False
        assert "found different value in property 'cache.type'" in outcome.reason

    def test_ignore_case(self, make_view):
        view = make_view(properties={"cache.type": "REDIS"})
        assert evaluate(PropertyValue("cache.type", "redis"), view).matched is False
        assert evaluate(PropertyValue("cache.type", "redis", ignore_case=True), view).matched is True

    def test_set_property_ignores_match_if_missing(self, make_view):
        view = make_view(properties={"cache.type": "simple"})
        cond = PropertyValue("cache.type", "redis", match_if_missing=True)
        assert evaluate(cond, view).matched is False

    def test_placeholder_is_resolved(self, make_view):
        view = make_view(properties={"db.url": "jdbc:h2:mem", "datasource.url": "${db.url}"})
        assert evaluate(PropertyValue("datasource.url", "jdbc:h2:mem"), view).matched is True

    def test_placeholder_default(self, make_view):
        view = make_view(properties={"cache.type": "${app.cache:simple}"})
        assert evaluate(PropertyValue("cache.type", "simple"), view).matched is True

    def test_unresolvable_placeholder_never_matches(self, make_view):
        view = make_view(properties={"datasource.url": "${db.url}"})
        outcome = evaluate(PropertyValue("datasource.url", match_if_missing=True), view)
        assert outcome.matched is False
        assert "could not resolve property 'datasource.url'" in outcome.reason

    def test_cyclic_placeholder_fails_soft(self, make_view):
        view = make_view(properties={"a": "${b}", "b": "${a}"})
        assert evaluate(PropertyValue("a"), view).matched is False


class TestComponentConditions:

    @pytest.fixture
    def view(self, make_view):
        return make_view(components=[
            ComponentDescriptor("dataSource", "javax.sql.DataSource"),
            ComponentDescriptor("lazyCache", "org.Cache", declared=False, instantiated=True),
        ])

    def test_present_by_name(self, view):
        assert evaluate(ComponentPresent("dataSource"), view).matched is True
        assert evaluate(ComponentPresent("other"), view).matched is False

    def test_present_by_type(self, view):
        outcome = evaluate(ComponentPresent("javax.sql.DataSource", Scope.BY_TYPE), view)
        assert outcome.matched is True
        assert "'dataSource'" in outcome.reason

    def test_absent_negates_presence(self, view):
        assert evaluate(ComponentAbsent("dataSource"), view).matched is False
        assert evaluate(ComponentAbsent("javax.sql.XADataSource", Scope.BY_TYPE), view).matched is True

    def test_absent_reason_explains_what_was_found(self, view):
        outcome = evaluate(ComponentAbsent("javax.sql.DataSource", Scope.BY_TYPE), view)
        assert outcome.reason.startswith("ComponentAbsent found")

    def test_definition_phase_ignores_instantiated_only_components(self, view):
        assert evaluate(ComponentPresent("lazyCache"), view).matched is False
        assert evaluate(ComponentPresent("org.Cache", Scope.BY_TYPE), view).matched is False

    def test_instantiation_phase_sees_instantiated_components(self, make_view):
        view = make_view(
            Phase.INSTANTIATION,
            components=[ComponentDescriptor("lazyCache", "org.Cache", declared=False, instantiated=True)],
        )
        assert evaluate(ComponentPresent("lazyCache"), view).matched is True
        assert evaluate(ComponentPresent("org.Cache", Scope.BY_TYPE), view).matched is True

    def test_extra_types_are_assignable(self, make_view):
        view = make_view(components=[
            ComponentDescriptor("pool", "com.zaxxer.hikari.HikariDataSource", extra_types=("javax.sql.DataSource",)),
        ])
        assert evaluate(ComponentPresent("javax.sql.DataSource", Scope.BY_TYPE), view).matched is True


class TestSingleCandidate:
    TYPE = "javax.jms.ConnectionFactory"

    def test_no_candidate(self, make_view):
        outcome = evaluate(SingleCandidate(self.TYPE), make_view())
        assert outcome.matched is False

    def test_single_candidate(self, make_view):
        view = make_view(components=[ComponentDescriptor("cf", self.TYPE)])
        outcome = evaluate(SingleCandidate(self.TYPE), view)
        assert outcome.matched is True
        assert "found a single component 'cf'" in outcome.reason

    def test_single_primary_among_many(self, make_view):
        view = make_view(components=[
            ComponentDescriptor("cf1", self.TYPE),
            ComponentDescriptor("cf2", self.TYPE, primary=True),
        ])
        outcome = evaluate(SingleCandidate(self.TYPE), view)
        assert outcome.matched is True
        assert "'cf2'" in outcome.reason

    def test_many_without_primary(self, make_view):
        view = make_view(components=[
            ComponentDescriptor("cf1", self.TYPE),
            ComponentDescriptor("cf2", self.TYPE),
        ])
        outcome = evaluate(SingleCandidate(self.TYPE), view)
        assert outcome.matched is False
        assert "found multiple components 'cf1', 'cf2'" in outcome.reason

    def test_many_primaries(self, make_view):
        view = make_view(components=[
            ComponentDescriptor("cf1", self.TYPE, primary=True),
            ComponentDescriptor("cf2", self.TYPE, primary=True),
        ])
        assert evaluate(SingleCandidate(self.TYPE), view).matched is False


class TestExternalCapability:

    def test_available(self, make_view):
        outcome = evaluate(ExternalCapability("jndi"), make_view(capabilities={"jndi"}))
        assert outcome.matched is True
        assert outcome.reason == "ExternalCapability jndi is available"

    def test_not_available(self, make_view):
        outcome = evaluate(ExternalCapability("jndi"), make_view())
        assert outcome.matched is False
        assert outcome.reason == "ExternalCapability jndi is not available"


class TestNamed:

    def test_without_registry(self, view):
        outcome = evaluate(Named("anything"), view)
        assert outcome.matched is False
        assert "is not registered" in outcome.reason

    def test_unregistered_name(self, view, test_registry):
        assert evaluate(Named("anything"), view, test_registry).matched is False

    def test_bool_result(self, view, test_registry):
        @test_registry.condition("has_type")
        def has_type(v):
            return v.type_available("present.Type")

        outcome = evaluate(Named("has_type"), view, test_registry)
        assert outcome.matched is True
        assert outcome.reason == "has_type matched"

    def test_outcome_result_with_selections(self, view, test_registry):
        @test_registry.condition("pick")
        def pick(v):
            return Outcome.match("picked", selections={"vendor": "hikari"})

        outcome = evaluate(Named("pick"), view, test_registry)
        assert outcome.selections == {"vendor": "hikari"}

    def test_raising_condition_becomes_no_match(self, view, test_registry):
        @test_registry.condition("boom")
        def boom(v):
            raise RuntimeError("probe failed")

        outcome = evaluate(Named("boom"), view, test_registry)
        assert outcome.matched is False
        assert "error during evaluation" in outcome.reason


class TestAllOf:

    def test_all_match_concatenates_trails(self, view):
        outcome = evaluate(AllOf((TRUE, TRUE)), view)
        assert outcome.matched is True
        assert len(outcome.trail) == 2

    def test_failure_reports_only_failing_child(self, view):
        outcome = evaluate(AllOf((TRUE, FALSE, TRUE)), view)
        assert outcome.matched is False
        assert outcome.trail == (evaluate(FALSE, view).reason,)

    def test_short_circuits(self, view, test_registry):
        calls = []

        @test_registry.condition("spy")
        def spy(v):
            calls.append(1)
            return True

        evaluate(AllOf((FALSE, Named("spy"))), view, test_registry)
        assert calls == []

    def test_empty_matches(self, view):
        assert evaluate(AllOf(()), view).matched is True

    def test_selections_are_merged(self, view, test_registry):
        test_registry.register("a", lambda v: Outcome.match("a", {"x": "1"}))
        test_registry.register("b", lambda v: Outcome.match("b", {"y": "2"}))
        outcome = evaluate(AllOf((Named("a"), Named("b"))), view, test_registry)
        assert outcome.selections == {"x": "1", "y": "2"}

    def test_evaluate_all_is_implicit_all_of(self, view):
        assert evaluate_all((TRUE, FALSE), view) == evaluate(AllOf((TRUE, FALSE)), view)


class TestAnyOf:

    def test_third_child_matches(self, view):
        outcome = evaluate(AnyOf((FALSE, FALSE, TRUE)), view)
        assert outcome.matched is True
        assert len(outcome.trail) == 3
        assert outcome.trail[0].startswith(f"{NOT_FOUND_TAG}: ")
        assert outcome.trail[1].startswith(f"{NOT_FOUND_TAG}: ")
        assert outcome.trail[2].startswith(f"{MATCHED_TAG}: ")

    def test_short_circuits_on_first_match(self, view):
        outcome = evaluate(AnyOf((TRUE, FALSE)), view)
        assert outcome.matched is True
        assert len(outcome.trail) == 1

    def test_none_match(self, view):
        outcome = evaluate(AnyOf((FALSE, FALSE)), view)
        assert outcome.matched is False
        assert len(outcome.trail) == 2
        assert "did not find any matching condition" in outcome.reason

    def test_nested_tree(self, view):
        tree = AllOf((TRUE, AnyOf((FALSE, AllOf((TRUE, TRUE))))))
        assert evaluate(tree, view).matched is True


class TestEvaluateNeverRaises:

    def test_unknown_condition_kind(self, view):
        outcome = evaluate("not a condition", view)
        assert outcome.matched is False
        assert "is not a known condition kind" in outcome.reason

    def test_provider_error(self, make_view):
        class BrokenProvider:
            def type_available(self, name):
                raise OSError("scan failed")

        from src.autoconfigure.snapshot import FactSnapshot

        view = FactSnapshot(BrokenProvider()).view(Phase.DEFINITION)
        outcome = evaluate(TRUE, view)
        assert outcome.matched is False
        assert "scan failed" in outcome.reason
