"""Parsing of free-text page numbers and rotation angles.

Each parser returns either the parsed value or a ParseFailure describing
why the text was rejected; callers branch on the type instead of catching
exceptions for ordinary user typos.
"""

import math
import re
from dataclasses import dataclass

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")

# Shorthand names accepted for angles
DEGREE_ALIASES = {
    "none": 0,
    "cw": 90,
    "right": 90,
    "flip": 180,
    "ccw": 270,
    "left": 270,
}


@dataclass(frozen=True)
class ParseFailure:
    """A rejected input and the reason it was rejected."""

    text: str
    reason: str

    def __str__(self) -> str:
        return f"Cannot parse '{self.text}': {self.reason}"


def parse_page_number(text: str) -> int | ParseFailure:
    """
    Parse a page number typed by the user.

    Decimal input is floored ("3.7" -> 3). Range checks are left to the
    caller, which knows the document's page count.

    Args:
        text: Raw input text

    Returns:
        The page number, or ParseFailure if the text is not numeric
    """
    stripped = text.strip()
    if not stripped:
        return ParseFailure(text, "page number is empty")
    if not _NUMBER_RE.match(stripped):
        return ParseFailure(text, "page number must be a whole number")
    return math.floor(float(stripped))


def parse_degrees(text: str) -> int | ParseFailure:
    """
    Parse a rotation angle.

    Accepts 0, 90, 180, 270, any other multiple of 90 (normalized, so
    "-90" is 270 and "360" is 0), an optional trailing degree sign, and the
    aliases in DEGREE_ALIASES.

    Returns:
        One of 0, 90, 180, 270, or ParseFailure
    """
    stripped = text.strip().lower().rstrip("°")
    if stripped in DEGREE_ALIASES:
        return DEGREE_ALIASES[stripped]
    try:
        value = int(stripped)
    except ValueError:
        return ParseFailure(text, "angle must be 0, 90, 180, or 270")
    if value % 90 != 0:
        return ParseFailure(text, "angle must be a multiple of 90")
    return value % 360


def parse_rotation_spec(text: str) -> tuple[int, int] | ParseFailure:
    """
    Parse a "PAGE:DEGREES" pair, e.g. "3:90" or "2:ccw".

    A bare page number ("3") means a 90 degree clockwise rotation.

    Returns:
        (page, degrees) tuple, or ParseFailure
    """
    page_text, sep, degrees_text = text.partition(":")
    page = parse_page_number(page_text)
    if isinstance(page, ParseFailure):
        return ParseFailure(text, page.reason)
    if page < 1:
        return ParseFailure(text, "page number must be at least 1")

    if not sep:
        return page, 90

    degrees = parse_degrees(degrees_text)
    if isinstance(degrees, ParseFailure):
        return ParseFailure(text, degrees.reason)
    return page, degrees
