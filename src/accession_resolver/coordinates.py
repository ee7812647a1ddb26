"""Parse free-text latitude/longitude annotations into signed decimal degrees.

Handles the notations found in GenBank ``/lat_lon`` qualifiers and
BioSample ``lat_lon`` attributes::

    35.99 N 120.42 E
    35.99N 120.42E
    -35.99, 120.42
    -35.99 120.42

The first number is taken as latitude and the second as longitude. This is
a best-effort positional parse; records that list longitude first need
``longitude_first=True``.
"""

import re
from typing import Optional

from accession_resolver.models import CoordinatePair

PRECISION = 6

_TOKEN_RE = re.compile(
    r"(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"|(?<![A-Za-z])(?P<hemisphere>[NSEWnsew])(?![A-Za-z])"
)


def parse_coordinates(
    text: Optional[str], longitude_first: bool = False
) -> Optional[CoordinatePair]:
    """Return the coordinate pair in ``text``, or None if it has fewer than two numbers."""
    if not text:
        return None

    numbers = []
    lat_sign = 1
    lon_sign = 1
    for match in _TOKEN_RE.finditer(text.replace(",", " ").replace(";", " ")):
        if match.group("number") is not None:
            if len(numbers) < 2:
                numbers.append(float(match.group("number")))
            continue
        letter = match.group("hemisphere").upper()
        if letter == "S":
            lat_sign = -1
        elif letter == "W":
            lon_sign = -1

    if len(numbers) < 2:
        return None

    first, second = numbers
    latitude, longitude = (second, first) if longitude_first else (first, second)
    if latitude < 0:
        lat_sign = -1
    if longitude < 0:
        lon_sign = -1
    return CoordinatePair(
        _normalize(abs(latitude) * lat_sign),
        _normalize(abs(longitude) * lon_sign),
    )


def format_coordinates(pair: Optional[CoordinatePair], sep: str = "\t") -> str:
    """Render a pair as ``lat<sep>lon`` with 6 fractional digits, or N/A for both."""
    if pair is None:
        return sep.join(["N/A", "N/A"])
    return f"{pair.latitude:.{PRECISION}f}{sep}{pair.longitude:.{PRECISION}f}"


def _normalize(value: float) -> float:
    # round() keeps -0.0, which would render as "-0.000000"
    return round(value, PRECISION) + 0.0
