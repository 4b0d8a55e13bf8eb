#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
import re
import html
import math
import decimal
from typing import Optional

###
# String helpers

WHITESPACES_PATTERN = re.compile(r'[^\S\xa0]+')  # include ASCII 160 (non-breaking space)
TOKENS_SEPARATOR_PATTERN = re.compile(r'[\s|]+')


def collapse_white_spaces(s: str) -> str:
    return WHITESPACES_PATTERN.sub(' ', s).strip(' ')


def split_tokens(value: str) -> list[str]:
    """Splits a list of tokens separated by white spaces and/or '|' characters."""
    return [x for x in TOKENS_SEPARATOR_PATTERN.split(value) if x]


def truncate(s: str, length: int) -> str:
    if len(s) <= length:
        return s
    return s[:max(length - 3, 0)] + '...'


###
# Value comparison helpers

def is_equivalent(t1: str, t2: str) -> bool:
    if t1 == t2 or html.unescape(t1) == html.unescape(t2):
        return True

    try:
        if decimal.Decimal(t1) != decimal.Decimal(t2):
            return False
    except (ValueError, decimal.DecimalException):
        return False
    else:
        return True


def is_close(t1: str, t2: str, rel_tol: float = 1E-7) -> bool:
    """Checks if two strings represent numbers that are close to each other."""
    try:
        v1, v2 = decimal.Decimal(t1), decimal.Decimal(t2)
    except (ValueError, decimal.DecimalException):
        return False

    if v1.is_nan() or v2.is_nan():
        return v1.is_nan() and v2.is_nan()
    elif v1.is_infinite() or v2.is_infinite():
        return v1 == v2
    return math.isclose(v1, v2, rel_tol=rel_tol, abs_tol=0.0)


###
# Literal sequences: a subset of XPath syntax that can be decoded without
# evaluating an expression, e.g. '(1, "a", true())'.

LITERAL_PATTERN = re.compile(
    r'\s*(?:"((?:[^"]|"")*)"|\'((?:[^\']|\'\')*)\'|'
    r'([+\-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+\-]?\d+)?)|'
    r'(true|false)\(\s*\))\s*'
)


def parse_literal_sequence(expression: str) -> Optional[list[str]]:
    """
    Decodes a sequence of literals to a list of string values. Returns `None`
    if the expression is not a plain literal or a sequence of literals.
    """
    text = expression.strip()
    while text.startswith('(') and text.endswith(')'):
        text = text[1:-1].strip()
    if not text:
        return []

    values = []
    pos = 0
    while True:
        match = LITERAL_PATTERN.match(text, pos)
        if match is None:
            return None

        dq, sq, number, boolean = match.groups()
        if dq is not None:
            values.append(dq.replace('""', '"'))
        elif sq is not None:
            values.append(sq.replace("''", "'"))
        elif number is not None:
            values.append(normalize_number(number))
        else:
            values.append(boolean)

        pos = match.end()
        if pos == len(text):
            return values
        elif text[pos] != ',':
            return None
        pos += 1


def normalize_number(value: str) -> str:
    """Returns a canonical string for a numeric literal, e.g. '1.50' -> '1.5'."""
    try:
        number = decimal.Decimal(value)
    except decimal.DecimalException:
        return value

    if number == number.to_integral_value() and 'e' not in value.lower():
        return str(int(number))
    return str(number.normalize())


###
# Regex helpers

REGEX_FLAGS = {
    's': re.DOTALL,
    'm': re.MULTILINE,
    'i': re.IGNORECASE,
    'x': re.VERBOSE,
}


def compile_regex(pattern: str, flags: Optional[str] = None) -> 're.Pattern[str]':
    """
    Compiles a regex pattern using XPath regex flags ('s', 'm', 'i', 'x', 'q').

    :raises ValueError: for an invalid flag or an invalid pattern.
    """
    re_flags = 0
    if flags:
        for ch in flags:
            if ch == 'q':
                pattern = re.escape(pattern)
            elif ch in REGEX_FLAGS:
                re_flags |= REGEX_FLAGS[ch]
            else:
                raise ValueError(f"invalid regex flag {ch!r}")

    try:
        return re.compile(pattern, re_flags)
    except re.error as err:
        raise ValueError(f"invalid regex pattern {pattern!r}: {err}") from None
