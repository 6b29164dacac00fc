"""Tests for the status/priority normalizer."""

import pytest

from personaflow.core.normalizer import (
    PRIORITY_OPTIONS,
    TASK_STATUS_OPTIONS,
    WORKSTREAM_STATUS_OPTIONS,
    is_known_tag,
    normalize,
    normalize_priority,
    normalize_task_status,
    normalize_workstream_status,
    option_for,
    tag_rank,
)

ALL_OPTION_TABLES = [TASK_STATUS_OPTIONS, PRIORITY_OPTIONS, WORKSTREAM_STATUS_OPTIONS]


def variants(tag):
    return [
        tag,
        tag.upper(),
        tag.capitalize(),
        f'"{tag}"',
        f"'{tag}'",
        f'\\"{tag}\\"',
        f'"\\"{tag}\\""',
        f"  {tag}  ",
        f'"{tag.upper()}"',
    ]


class TestNormalize:
    """Tests for normalize()."""

    @pytest.mark.parametrize("options", ALL_OPTION_TABLES)
    def test_every_variant_maps_to_its_tag(self, options):
        for option in options:
            for raw in variants(option.tag):
                assert normalize(raw, options) == option.tag, raw

    @pytest.mark.parametrize("options", ALL_OPTION_TABLES)
    def test_idempotent(self, options):
        samples = [v for option in options for v in variants(option.tag)] + ["", "nonsense", '""', "\\"]
        for raw in samples:
            once = normalize(raw, options)
            assert normalize(once, options) == once

    def test_internal_whitespace_removed(self):
        assert normalize_task_status("In Progress") == "inprogress"
        assert normalize_task_status("To  Do") == "todo"

    def test_serialized_enum_names(self):
        assert normalize_task_status("InProgress") == "inprogress"
        assert normalize_task_status('"ToDo"') == "todo"
        assert normalize_priority("Critical") == "critical"

    def test_unknown_falls_back_to_first_option(self):
        assert normalize_task_status("archived") == "backlog"
        assert normalize_priority("urgent") == "low"
        assert normalize_workstream_status("") == "planning"

    def test_non_string_never_raises(self):
        assert normalize_task_status(None) == "backlog"
        assert normalize_priority(3) == "low"

    def test_only_one_layer_of_quotes_is_stripped(self):
        # The inner quotes are not escaped, so the value is not a known tag
        assert normalize_task_status('""done""') == "backlog"

    def test_mismatched_quotes_are_kept(self):
        assert normalize_task_status("\"done'") == "backlog"


class TestOptionHelpers:
    def test_option_for_returns_label_and_color(self):
        option = option_for('"InProgress"', TASK_STATUS_OPTIONS)
        assert option.label == "In Progress"
        assert option.color.startswith("#")

    def test_tag_rank_follows_workflow_order(self):
        ranks = [tag_rank(option.tag, TASK_STATUS_OPTIONS) for option in TASK_STATUS_OPTIONS]
        assert ranks == list(range(len(TASK_STATUS_OPTIONS)))
        assert tag_rank("Critical", PRIORITY_OPTIONS) > tag_rank("low", PRIORITY_OPTIONS)

    def test_is_known_tag_distinguishes_fallback(self):
        assert is_known_tag('"Done"', TASK_STATUS_OPTIONS)
        assert not is_known_tag("archived", TASK_STATUS_OPTIONS)
        assert not is_known_tag(None, TASK_STATUS_OPTIONS)
