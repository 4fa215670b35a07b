"""Tests for src/output.py rendering."""

import pytest
from rich.console import Console

import src.output as output
from src.events import AckEvent, ErrorEvent, ResultEvent, StageEvent
from tests.conftest import make_panel


@pytest.fixture
def recording_console(monkeypatch) -> Console:
    console = Console(record=True, width=120)
    monkeypatch.setattr(output, "console", console)
    return console


def test_describe_known_and_unknown_stages():
    labels = output.stage_labels(make_panel("a"))
    assert output.describe_stage(StageEvent("thinking"), labels) == "Thinking..."
    assert "vendor/m1" in output.describe_stage(StageEvent("model1"), labels)
    assert output.describe_stage(StageEvent("model9"), labels) == "model9"


def test_print_result_lists_contributors(recording_console):
    output.print_terminal(ResultEvent("Paris is the capital.", ["vendor/m1", "vendor/m2"], report_models=True))
    text = recording_console.export_text()
    assert "Paris is the capital." in text
    assert "vendor/m1, vendor/m2" in text


def test_print_error(recording_console):
    output.print_terminal(ErrorEvent("[m1] API call failed"))
    assert "[m1] API call failed" in recording_console.export_text()


def test_print_ack(recording_console):
    output.print_terminal(AckEvent("Feedback received. Thank you!"))
    assert "Feedback received" in recording_console.export_text()


def test_print_panel_lists_models(recording_console):
    output.print_panel(make_panel("a", "b"), "majority_vote")
    text = recording_console.export_text()
    assert "majority_vote" in text
    assert "vendor/m2" in text
