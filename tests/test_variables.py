from datetime import date

import pytest

from nibog.models import Certificate
from nibog.shared import variables
from nibog.shared.variables import VARIABLE_RULES, resolve, resolve_variable


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(variables, "today", lambda: date(2024, 7, 9))


def _cert(**kwargs):
    return Certificate.from_dict(kwargs)


def test_all_variables_known():
    assert set(VARIABLE_RULES) == {
        "participant_name",
        "child_name",
        "event_name",
        "game_name",
        "venue_name",
        "city_name",
        "certificate_number",
        "event_date",
        "date",
        "generated_at",
        "position",
        "score",
        "achievement",
        "instructor",
        "organization",
    }


@pytest.mark.parametrize(
    "name,expected",
    [
        ("participant_name", "Participant"),
        ("child_name", ""),
        ("event_name", "Event"),
        ("game_name", ""),
        ("venue_name", ""),
        ("city_name", ""),
        ("certificate_number", ""),
        ("event_date", "7/9/2024"),
        ("date", "7/9/2024"),
        ("generated_at", "7/9/2024"),
        ("position", "1st Place"),
        ("score", ""),
        ("achievement", "Outstanding Performance"),
        ("instructor", ""),
        ("organization", "Nibog Events"),
    ],
)
def test_defaults_when_record_empty(name, expected):
    assert resolve("{" + name + "}", Certificate()) == expected


@pytest.mark.parametrize(
    "record,expected",
    [
        ({"child_name": "Aanya", "parent_name": "Ravi", "certificate_data": {"participant_name": "A."}}, "Aanya"),
        ({"parent_name": "Ravi", "certificate_data": {"participant_name": "A. Rao"}}, "A. Rao"),
        ({"parent_name": "Ravi"}, "Ravi"),
        ({"child_name": "", "parent_name": "Ravi"}, "Ravi"),
    ],
)
def test_participant_name_chain(record, expected):
    assert resolve_variable("participant_name", _cert(**record)) == expected


def test_data_first_chains_prefer_certificate_data():
    cert = _cert(
        venue_name="Top Venue",
        city_name="Top City",
        certificate_number="TOP-1",
        certificate_data={"venue_name": "Arena", "city_name": "Pune", "certificate_number": "C-9"},
    )
    assert resolve("{venue_name}/{city_name}/{certificate_number}", cert) == "Arena/Pune/C-9"


def test_top_first_chains_prefer_columns():
    cert = _cert(
        game_name="Crawl",
        event_date="2025-03-05",
        certificate_data={"game_name": "Walk", "event_date": "2025-01-01"},
    )
    assert resolve("{game_name} {event_date}", cert) == "Crawl 2025-03-05"


def test_event_name_falls_back_to_event_title():
    assert resolve("{event_name}", _cert(event_title="Baby Olympics")) == "Baby Olympics"
    cert = _cert(event_title="Baby Olympics", certificate_data={"event_name": "Finals"})
    assert resolve("{event_name}", cert) == "Finals"


def test_secondary_data_keys():
    cert = _cert(
        certificate_data={"rank": "2nd", "points": 88, "award": "Gold", "teacher": "Ms. K"}
    )
    assert resolve("{position} {score} {achievement} {instructor}", cert) == "2nd 88 Gold Ms. K"


def test_generated_at_formats_as_locale_date():
    cert = _cert(generated_at="2025-03-05T10:30:00.000Z")
    assert resolve("{date} {generated_at}", cert) == "3/5/2025 3/5/2025"


def test_unparseable_generated_at_uses_today():
    assert resolve("{date}", _cert(generated_at="someday")) == "7/9/2024"


def test_unknown_placeholder_passes_through():
    cert = _cert(child_name="Aanya")
    assert resolve("Hi {participant_name} {nonexistent_var}", cert) == "Hi Aanya {nonexistent_var}"


@pytest.mark.parametrize("token", ["{participant_name}", "{Participant_Name}", "{PARTICIPANT_NAME}"])
def test_placeholders_case_insensitive(token):
    assert resolve(token, _cert(child_name="Aanya")) == "Aanya"


@pytest.mark.parametrize("text", ["", "Plain text", "Braces { spaced } stay", "Line\nbreak"])
def test_text_without_placeholders_unchanged(text):
    assert resolve(text, _cert(child_name="Aanya")) == text


def test_repeated_placeholders_all_replaced():
    cert = _cert(child_name="Aanya")
    assert resolve("{participant_name} & {participant_name}", cert) == "Aanya & Aanya"


def test_unknown_variable_lookup_returns_none():
    assert resolve_variable("favourite_colour", Certificate()) is None
