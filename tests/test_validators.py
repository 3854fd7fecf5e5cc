from __future__ import annotations

from datetime import date

from clubhub.frontend.validators import parse_month, parse_room_id, parse_user_id


def test_parse_room_id_normalizes_uuid() -> None:
    info = parse_room_id("  0F8FAD5B-D9CB-469F-A165-70867728950E ")
    assert info.error is None
    assert info.normalized == "0f8fad5b-d9cb-469f-a165-70867728950e"


def test_parse_room_id_errors() -> None:
    assert parse_room_id("").error == "room id is required"
    assert parse_room_id("general").error == "room id must be a UUID"
    assert parse_user_id("nope").error == "user id must be a UUID"


def test_parse_month_defaults_to_today() -> None:
    info = parse_month("", today=date(2024, 3, 12))
    assert (info.year, info.month, info.error) == (2024, 3, None)


def test_parse_month_formats() -> None:
    assert (parse_month("2024-07").year, parse_month("2024-07").month) == (2024, 7)
    assert parse_month("2024-7").month == 7
    assert parse_month("2024-13").error == "month must be between 01 and 12"
    assert parse_month("July").error == "month must look like YYYY-MM"
