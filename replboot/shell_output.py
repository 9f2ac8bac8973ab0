"""
Pre-parse normalization for mongo shell output.

`printjson` in the mongo shell emits JSON-shaped text with constructor
literals that no JSON parser accepts, e.g.

    "date" : ISODate("2024-05-01T10:00:00.123Z"),
    "ts" : Timestamp(1714557600, 1),
    "term" : NumberLong(3),

Output also starts with connection banners. `normalize()` rewrites each
literal wrapper using the ordered rules in NORMALIZATION_RULES, leaving
quoted strings untouched; `parse()` strips the banner, normalizes, and
decodes the first JSON object.

Rules (pattern -> replacement):
    ISODate("X")              -> "X"
    new Date(N) / Date(N)     -> "N"
    Timestamp(T, I)           -> "T,I"
    Timestamp({ t: T, i: I }) -> "T,I"
    NumberLong(N)             -> N          (also NumberLong("N"))
    NumberInt(N)              -> N
    NumberDecimal("X")        -> "X"
    ObjectId("X")             -> "X"
    BinData(S, "X")           -> "X"
    UUID("X")                 -> "X"
"""

import json
import re
from typing import Any, Dict, List, Tuple

from replboot.errors import StructuredParseError

NORMALIZATION_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'ISODate\(\s*"([^"]*)"\s*\)'), r'"\1"'),
    (re.compile(r'(?:new\s+)?\bDate\(\s*(-?\d+)\s*\)'), r'"\1"'),
    (re.compile(r'Timestamp\(\s*(\d+)\s*,\s*(\d+)\s*\)'), r'"\1,\2"'),
    (re.compile(r'Timestamp\(\s*\{\s*t\s*:\s*(\d+)\s*,\s*i\s*:\s*(\d+)\s*\}\s*\)'), r'"\1,\2"'),
    (re.compile(r'NumberLong\(\s*"?(-?\d+)"?\s*\)'), r'\1'),
    (re.compile(r'NumberInt\(\s*"?(-?\d+)"?\s*\)'), r'\1'),
    (re.compile(r'NumberDecimal\(\s*"([^"]*)"\s*\)'), r'"\1"'),
    (re.compile(r'ObjectId\(\s*"([^"]*)"\s*\)'), r'"\1"'),
    (re.compile(r'BinData\(\s*\d+\s*,\s*"([^"]*)"\s*\)'), r'"\1"'),
    (re.compile(r'UUID\(\s*"([^"]*)"\s*\)'), r'"\1"'),
]

BANNER_PREFIXES = (
    "MongoDB shell version",
    "connecting to:",
    "Implicit session:",
    "MongoDB server version:",
    "WARNING:",
    "Current Mongosh Log ID:",
    "Using MongoDB:",
    "Using Mongosh:",
)


def strip_banner(output: str) -> str:
    kept = [line for line in output.splitlines() if not line.strip().startswith(BANNER_PREFIXES)]
    return "\n".join(kept)


_STRING_LITERAL = r'"(?:[^"\\]|\\.)*"'

_TOKEN = re.compile(
    "|".join(f"(?P<rule{i}>{pattern.pattern})" for i, (pattern, _) in enumerate(NORMALIZATION_RULES))
    + f"|(?P<string>{_STRING_LITERAL})"
)


def _rewrite(match: re.Match) -> str:
    if match.group("string") is not None:
        return match.group(0)
    for i, (pattern, replacement) in enumerate(NORMALIZATION_RULES):
        if match.group(f"rule{i}") is not None:
            return pattern.sub(replacement, match.group(0))
    return match.group(0)


def normalize(text: str) -> str:
    return _TOKEN.sub(_rewrite, text)


def parse(output: str) -> Dict[str, Any]:
    """
    Decode the first JSON object in raw shell output.

    Raises:
        StructuredParseError: No object found, or the object is malformed
    """
    text = normalize(strip_banner(output))
    start = text.find("{")
    if start < 0:
        raise StructuredParseError(f"no JSON object in shell output: {output.strip()[:200]!r}")
    try:
        data, _ = json.JSONDecoder().raw_decode(text, start)
    except ValueError as e:
        raise StructuredParseError(f"malformed shell output: {e}") from e
    if not isinstance(data, dict):
        raise StructuredParseError(f"shell output is {type(data).__name__}, expected an object")
    return data
