import pytest
from rich.console import Console

from uservibe.domain.models.activity import SubredditActivity
from uservibe.domain.models.common import Subject
from uservibe.infrastructure.cli.display import ConsoleDisplay

ALICE = Subject("alice")
DATA = (SubredditActivity("python", 42), SubredditActivity("rust", 7))


@pytest.fixture
def console():
    """A recording console so rendered output can be inspected."""
    return Console(record=True, width=120, color_system="truecolor")


@pytest.fixture
def console_display(console):
    return ConsoleDisplay(colors={"sub_color": "#112233"}, console=console)


def test_render_pills_uses_configured_colours(console_display: ConsoleDisplay):
    line = console_display.render_pills(ALICE, DATA)

    assert line.plain.startswith("u/alice ")
    assert " r/python  42 " in line.plain
    assert " r/rust  7 " in line.plain
    styles = {str(span.style) for span in line.spans}
    assert "#ffffff on #112233" in styles
    assert "#ffffff on #d93900" in styles


def test_render_pills_without_activity(console_display: ConsoleDisplay):
    assert console_display.render_pills(ALICE, ()).plain == "u/alice no recent activity"


def test_listener_lifecycle(console_display: ConsoleDisplay, console: Console):
    console_display.on_loading_started(ALICE)
    assert console_display.loading[ALICE] == "Loading..."

    console_display.on_rate_limit_tip_changed(ALICE, "Rate limited, data available at 12:00:00 (retry to fetch now)")
    console_display.on_rate_limit_tip_changed(ALICE, "Rate limited, data available at 12:00:00 (retry to fetch now)")
    console_display.on_data_ready(ALICE, DATA)

    output = console.export_text()
    assert output.count("Rate limited") == 1
    assert "r/python" in output
    assert ALICE not in console_display.loading


def test_given_up_clears_loading(console_display: ConsoleDisplay, console: Console):
    console_display.on_loading_started(ALICE)
    console_display.on_given_up(ALICE)

    assert ALICE not in console_display.loading
    assert "unavailable" in console.export_text()


def test_display_summary(console_display: ConsoleDisplay, console: Console):
    console_display.display_summary({ALICE: DATA, Subject("bob"): None, Subject("carol"): ()})

    output = console.export_text()
    assert "r/python (42), r/rust (7)" in output
    assert "unavailable" in output
    assert output.count("ok") >= 2


def test_messages(console_display: ConsoleDisplay, console: Console):
    console_display.display_error("Something broke")
    console_display.display_warning("Careful")
    console_display.display_info("Settings saved.")

    output = console.export_text()
    assert "Error" in output and "Something broke" in output
    assert "Warning" in output and "Careful" in output
    assert "Settings saved." in output


def test_display_settings(console_display: ConsoleDisplay, console: Console):
    console_display.display_settings({"limit": 10, "after": "6month"})

    output = console.export_text()
    assert "limit" in output and "6month" in output
