import re
import time
from datetime import datetime, timezone

CHAPTER_KEYWORD_RE = re.compile(
    r'\b(?:chapter|chap|ch|episode|ep)\.?\s*(\d+(?:\.\d+)?)',
    re.IGNORECASE
)
VOLUME_RE = re.compile(r'\b(?:volume|vol)\.?\s*\d+(?:\.\d+)?', re.IGNORECASE)
NUMBER_RE = re.compile(r'(\d+(?:\.\d+)?)')
NUMERIC_RE = re.compile(r'^\s*-?\d+(?:\.\d+)?\s*$')


def trim_spaces(text):
    """Collapses whitespace runs and strips the ends"""
    if not text:
        return text
    return ' '.join(text.split())


def _to_number(raw):
    value = float(raw)
    if value.is_integer():
        return int(value)
    return value


def parse_chapter_number(chapter_name, manga_name=None):
    """
    Returns the chapter number found in a chapter title, or -1.

    "Nano Machine 2 - Chapter 14.5" with manga name "Nano Machine 2" gives 14.5.
    """
    if not chapter_name:
        return -1

    name = trim_spaces(chapter_name)
    if manga_name:
        prefix = trim_spaces(manga_name)
        if prefix and name.lower().startswith(prefix.lower()):
            name = name[len(prefix):]

    match = CHAPTER_KEYWORD_RE.search(name)
    if match:
        return _to_number(match.group(1))

    # "Vol.3 - 21" style titles
    name = VOLUME_RE.sub(' ', name)
    match = NUMBER_RE.search(name)
    if match:
        return _to_number(match.group(1))

    return -1


def parse_timestamp(value, now=None):
    """
    Converts an API date into an aware UTC datetime.

    The API sends Unix timestamps in seconds for some fields and in
    milliseconds for others. A value lower than the current time in seconds
    can only be seconds; anything else is milliseconds.
    """
    if value is None or value == '':
        return None

    if isinstance(value, bool):
        raise ValueError(f'Invalid timestamp: {value!r}')

    if isinstance(value, str) and NUMERIC_RE.match(value):
        value = float(value)

    if isinstance(value, (int, float)):
        if now is None:
            now = time.time()
        seconds = value if value < now else value / 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f'Invalid timestamp: {value!r}') from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    raise ValueError(f'Invalid timestamp: {value!r}')


def as_utc(moment):
    """Treats naive datetimes as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
