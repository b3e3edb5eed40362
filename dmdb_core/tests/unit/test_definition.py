"""Unit tests for dmdb_core.models.definition."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from dmdb_core.models.definition import MetricDefinition, MetricKind


class TestFileKeys:
    def test_historical_keys_map_to_fields(self):
        definition = MetricDefinition.model_validate(
            {
                "context": "sysstat",
                "metricsdesc": {"value": "Statistic."},
                "metricstype": {"value": "counter"},
                "fieldtoappend": "name",
                "ignorezeroresult": True,
                "request": "SELECT name, value FROM v$sysstat",
            }
        )
        assert definition.value_columns == {"value": "Statistic."}
        assert definition.value_kinds == {"value": MetricKind.COUNTER}
        assert definition.name_field == "name"
        assert definition.ignore_zero_rows is True
        assert definition.query.startswith("SELECT")

    def test_keys_are_case_insensitive(self):
        definition = MetricDefinition.model_validate(
            {"Context": "c", "MetricsDesc": {"v": "h"}, "Request": "SELECT 1", "Labels": ["a"]}
        )
        assert definition.context == "c"
        assert definition.labels == ("a",)

    def test_python_field_names_are_accepted(self):
        definition = MetricDefinition(context="c", value_columns={"v": "h"}, query="SELECT 1")
        assert definition.value_columns == {"v": "h"}

    def test_defaults(self):
        definition = MetricDefinition(value_columns={"v": "h"}, query="SELECT 1")
        assert definition.context == ""
        assert definition.labels == ()
        assert definition.value_kinds == {}
        assert definition.name_field is None
        assert definition.ignore_zero_rows is False
        assert definition.timeout is None


class TestValueKinds:
    def test_tokens_are_case_insensitive(self):
        definition = MetricDefinition(value_columns={"v": "h"}, value_kinds={"V": "Counter"}, query="SELECT 1")
        assert definition.value_kinds == {"v": MetricKind.COUNTER}

    def test_empty_token_is_dropped(self):
        definition = MetricDefinition(value_columns={"v": "h"}, value_kinds={"v": ""}, query="SELECT 1")
        assert definition.value_kinds == {}

    def test_unknown_token_rejected(self):
        with pytest.raises(ValidationError, match="unknown metric type 'histogram'"):
            MetricDefinition(value_columns={"v": "h"}, value_kinds={"v": "histogram"}, query="SELECT 1")


class TestRequiredFields:
    def test_missing_query(self):
        with pytest.raises(ValidationError, match="has no request"):
            MetricDefinition(context="c", value_columns={"v": "h"})

    def test_blank_query(self):
        with pytest.raises(ValidationError, match="has no request"):
            MetricDefinition(context="c", value_columns={"v": "h"}, query="   ")

    def test_missing_value_columns(self):
        with pytest.raises(ValidationError, match="has no metricsdesc"):
            MetricDefinition(context="c", query="SELECT 1")

    def test_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            MetricDefinition(value_columns={"v": "h"}, query="SELECT 1", timeout=0)


class TestNaming:
    def test_blank_name_field_means_label_naming(self):
        definition = MetricDefinition(value_columns={"v": "h"}, name_field="  ", query="SELECT 1")
        assert definition.name_field is None
        assert definition.uses_field_naming is False

    def test_labels_with_name_field_warns(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="dmdb_core.models.definition"):
            definition = MetricDefinition(
                context="c",
                labels=["a"],
                value_columns={"v": "h"},
                name_field="name",
                query="SELECT 1",
            )
        assert definition.uses_field_naming is True
        assert "labels ['a'] are dropped" in caplog.text


class TestEffectiveTimeout:
    def test_falls_back_to_default(self):
        definition = MetricDefinition(value_columns={"v": "h"}, query="SELECT 1")
        assert definition.effective_timeout(5.0) == 5.0

    def test_own_timeout_wins(self):
        definition = MetricDefinition(value_columns={"v": "h"}, query="SELECT 1", timeout=30)
        assert definition.effective_timeout(5.0) == 30.0

    def test_definitions_are_frozen(self):
        definition = MetricDefinition(value_columns={"v": "h"}, query="SELECT 1")
        with pytest.raises(ValidationError):
            definition.query = "SELECT 2"  # type: ignore[misc]
