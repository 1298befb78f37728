"""
Tests for ActivationDecision / ActivationReport rendering and summary.
"""

import json

import pytest

from src.autoconfigure.report import (
    ActivationDecision, ActivationReport, DecisionStatus, ReportSummary,
)


@pytest.fixture
def report():
    return ActivationReport([
        ActivationDecision(
            "datasource.embedded", True, ("EmbeddedDataSource found embedded database h2",),
            DecisionStatus.ACTIVATED, "datasource", {"datasource.embedded_engine": "h2"},
        ),
        ActivationDecision(
            "datasource.pooled", False, ("group already satisfied: 'datasource' activated 'datasource.embedded'",),
            DecisionStatus.GROUP_SATISFIED, "datasource",
        ),
        ActivationDecision(
            "jms.enable_listeners", False, ("TypeAvailable did not find required type 'x'",),
        ),
    ])


class TestActivationDecision:

    def test_defaults(self):
        decision = ActivationDecision("m", False, ["reason"])
        assert decision.reason_trail == ("reason",)
        assert decision.status is DecisionStatus.NOT_MATCHED
        assert decision.group is None
        assert decision.selections == {}

    def test_selections_cannot_be_changed(self, report):
        decision = report.decision_for("datasource.embedded")
        before = report.to_json()

        with pytest.raises(TypeError):
            decision.selections["datasource.embedded_engine"] = "derby"

        assert report.to_json() == before

    def test_selections_detached_from_source(self):
        selections = {"k": "a"}
        decision = ActivationDecision("m", True, (), DecisionStatus.ACTIVATED, selections=selections)
        selections["k"] = "b"
        assert decision.selections == {"k": "a"}

    def test_to_dict(self, report):
        data = report.decision_for("datasource.embedded").to_dict()
        assert data == {
            "module_id": "datasource.embedded",
            "matched": True,
            "status": "activated",
            "group": "datasource",
            "reason_trail": ["EmbeddedDataSource found embedded database h2"],
            "selections": {"datasource.embedded_engine": "h2"},
        }

    def test_to_compact_string(self, report):
        text = report.decision_for("datasource.embedded").to_compact_string()
        assert text.splitlines() == [
            "[+] datasource.embedded (datasource): activated",
            "  EmbeddedDataSource found embedded database h2",
            "  selected datasource.embedded_engine=h2",
        ]

    def test_unmatched_marker(self, report):
        assert report.decision_for("jms.enable_listeners").to_compact_string().startswith(
            "[-] jms.enable_listeners: not_matched"
        )


class TestActivationReport:

    def test_order_and_lookup(self, report):
        assert [d.module_id for d in report] == [
            "datasource.embedded", "datasource.pooled", "jms.enable_listeners",
        ]
        assert report.decision_for("missing") is None
        assert len(report) == 3

    def test_matched_and_unmatched(self, report):
        assert report.matched_ids() == ["datasource.embedded"]
        assert report.unmatched_ids() == ["datasource.pooled", "jms.enable_listeners"]

    def test_group_winner(self, report):
        assert report.group_winner("datasource") == "datasource.embedded"
        assert report.group_winner("cache_manager") is None

    def test_duplicate_decision_rejected(self, report):
        with pytest.raises(ValueError):
            report.add(ActivationDecision("datasource.pooled", True, ("again",)))

    def test_summary(self, report):
        summary = report.summary()
        assert isinstance(summary, ReportSummary)
        assert summary.total == 3
        assert summary.matched == 1
        assert summary.by_status == {"activated": 1, "group_satisfied": 1, "not_matched": 1}
        assert summary.group_winners == {"datasource": "datasource.embedded"}

    def test_summary_group_without_winner(self):
        report = ActivationReport([ActivationDecision("a", False, ("no",), group="g")])
        assert report.summary().group_winners == {"g": None}

    def test_to_json_round_trips_to_dict(self, report):
        assert json.loads(report.to_json()) == report.to_dict()

    def test_to_json_is_stable(self, report):
        copy = ActivationReport(list(report.decisions))
        assert copy == report
        assert copy.to_json() == report.to_json()

    def test_to_compact_string_header(self, report):
        assert report.to_compact_string().splitlines()[0] == "[REPORT] 1/3 modules activated"

    def test_repr(self, report):
        assert repr(report) == "ActivationReport(decisions=3, matched=1)"
