from datetime import datetime, timezone

import pytest

from utils import as_utc, parse_chapter_number, parse_timestamp, trim_spaces

NOW = 1556668800  # 2019-05-01T00:00:00Z


def test_trim_spaces():
    assert trim_spaces('  One   Piece \n') == 'One Piece'
    assert trim_spaces('') == ''
    assert trim_spaces(None) is None


@pytest.mark.parametrize('chapter_name, manga_name, expected', [
    ('Chapter 12', None, 12),
    ('Vol.2 Chapter 14.5: The Return', None, 14.5),
    ('Ch.7', None, 7),
    ('Nano Machine 2 - Chapter 3', 'Nano Machine 2', 3),
    ('nano machine 2 - 40', 'Nano Machine 2', 40),
    ('Vol.3 - 21', None, 21),
    ('Episode 101', None, 101),
    ('Oneshot', None, -1),
    ('', None, -1),
    (None, 'Anything', -1),
])
def test_parse_chapter_number(chapter_name, manga_name, expected):
    assert parse_chapter_number(chapter_name, manga_name) == expected


def test_parse_chapter_number_whole_float_is_int():
    number = parse_chapter_number('Chapter 5.0')
    assert number == 5 and isinstance(number, int)


def test_parse_timestamp_seconds_and_milliseconds():
    seconds = parse_timestamp(1554076800, now=NOW)
    millis = parse_timestamp(1554076800000, now=NOW)
    expected = datetime(2019, 4, 1, tzinfo=timezone.utc)
    assert seconds == expected
    assert millis == expected


def test_parse_timestamp_numeric_string():
    assert parse_timestamp('1554076800', now=NOW) == datetime(2019, 4, 1, tzinfo=timezone.utc)


def test_parse_timestamp_iso_strings():
    assert parse_timestamp('2019-04-01T00:00:00Z') == datetime(2019, 4, 1, tzinfo=timezone.utc)
    naive = parse_timestamp('2019-04-01T12:30:00')
    assert naive.tzinfo is not None
    assert naive == datetime(2019, 4, 1, 12, 30, tzinfo=timezone.utc)


def test_parse_timestamp_empty():
    assert parse_timestamp(None) is None
    assert parse_timestamp('') is None


@pytest.mark.parametrize('value', ['yesterday', [1], True])
def test_parse_timestamp_invalid(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_as_utc():
    naive = datetime(2019, 4, 1)
    assert as_utc(naive).tzinfo == timezone.utc
    aware = datetime(2019, 4, 1, tzinfo=timezone.utc)
    assert as_utc(aware) is aware
