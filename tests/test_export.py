from datetime import datetime, timezone

from death_draft.domain.board import group_by_seat
from death_draft.domain.export import board_to_csv, csv_headers, escape_field, export_filename
from death_draft.domain.roster import DEFAULT_ROSTER, Roster


def test_headers_have_two_columns_per_player():
    headers = csv_headers(DEFAULT_ROSTER)
    assert len(headers) == 12
    assert headers[:4] == ["Scoot", "Scoot Age", "Brian", "Brian Age"]


def test_empty_board_is_header_only():
    text = board_to_csv(group_by_seat([], DEFAULT_ROSTER), DEFAULT_ROSTER)
    assert text == ",".join(csv_headers(DEFAULT_ROSTER))


def test_short_seats_are_padded(make_row):
    roster = Roster.from_names(["Ann", "Bob"])
    rows = [
        make_row(1, 1, "Old One", 95),
        make_row(2, 2, "Middle", 80),
        make_row(3, 1, "Young One", 70),
    ]
    text = board_to_csv(group_by_seat(rows, roster), roster)

    assert text.split("\n") == [
        "Ann,Ann Age,Bob,Bob Age",
        "Old One,95,Middle,80",
        "Young One,70,,",
    ]
    assert not text.endswith("\n")


def test_fields_with_commas_and_quotes_are_quoted(make_row):
    roster = Roster.from_names(["Ann"])
    rows = [make_row(1, 1, 'Sammy "The Bull", Jr', 88)]
    lines = board_to_csv(group_by_seat(rows, roster), roster).split("\n")
    assert lines[1] == '"Sammy ""The Bull"", Jr",88'


def test_export_filename_is_file_system_safe():
    now = datetime(2026, 1, 5, 18, 30, 7, 123456, tzinfo=timezone.utc)
    assert export_filename(now, "csv") == "death-draft-board-2026-01-05-18-30-07.csv"
    assert export_filename(now, "png").endswith(".png")


def test_carriage_returns_and_newlines_are_quoted(make_row):
    roster = Roster.from_names(["Ann", "Bob"])
    rows = [make_row(1, 1, "a\rb", 90), make_row(2, 2, "x\ny", 80)]
    text = board_to_csv(group_by_seat(rows, roster), roster)
    assert text == 'Ann,Ann Age,Bob,Bob Age\n"a\rb",90,"x\ny",80'


def test_plain_fields_are_left_alone():
    assert escape_field("Betty White") == "Betty White"
    assert escape_field("") == ""
    assert escape_field('say "hi"') == '"say ""hi"""'
