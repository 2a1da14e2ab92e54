"""Text normalisation and letter-case helpers."""

from __future__ import annotations


def clean(text: str) -> str:
    """Lower-case text, trimming and collapsing whitespace to single spaces."""
    output: list[str] = []
    for c in text:
        if c.islower():
            output.append(c)
        elif c.isupper():
            output.append(c.lower())
        elif c.isspace():
            if output and not output[-1].isspace():
                output.append(" ")
        else:
            output.append(c)
    if output and output[-1].isspace():
        output.pop()
    return "".join(output)


def clean_token(text: str) -> str:
    """Clean text, then keep only lower-case letters and ASCII digits."""
    return "".join(c for c in clean(text) if c.islower() or "0" <= c <= "9")


def is_lower(s: str) -> bool:
    """Return True if no character of s is upper case."""
    return not any(c.isupper() for c in s)


def is_upper(s: str) -> bool:
    """Return True if no character of s is lower case."""
    return not any(c.islower() for c in s)


def is_title(s: str) -> bool:
    """Return True if every word of s starts upper case and continues otherwise."""
    last: str | None = None
    for c in s:
        at_word_start = last is None or last == " "
        if c.islower() and at_word_start:
            return False
        if c.isupper() and not at_word_start:
            return False
        last = c
    return True


def _is_separator(c: str) -> bool:
    if c <= "\x7f":
        return not (c.isascii() and (c.isalnum() or c == "_"))
    if c.isalpha() or c.isdigit():
        return False
    return c.isspace()


def _title(s: str) -> str:
    out: list[str] = []
    prev = " "
    for c in s:
        if _is_separator(prev):
            titled = c.title()
            out.append(titled if len(titled) == 1 else c)
        else:
            out.append(c)
        prev = c
    return "".join(out)


def to_same_case(s: str, like: str) -> str:
    """Convert s to the case (upper, lower or title) of like."""
    if is_upper(like):
        return s.upper()
    if is_lower(like):
        return s.lower()
    if is_title(like):
        return _title(s)
    return s