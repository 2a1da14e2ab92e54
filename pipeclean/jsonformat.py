"""Scrubbing of streams of JSON documents."""

from __future__ import annotations

import json
from typing import IO, Any

from .scrubber import Scrubber


def _encode(data: Any) -> str:
    text = json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"), ("\u2028", "\\u2028"), ("\u2029", "\\u2029")):
        text = text.replace(char, escaped)
    return text


def scrub_stream(scrubber: Scrubber, reader: IO[str], writer: IO[str]) -> int:
    """Scrub each JSON document read, writing one per line; stop at the first malformed one.

    Returns the number of documents written.
    """
    text = reader.read()
    decoder = json.JSONDecoder()
    pos = 0
    count = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            break
        try:
            value, pos = decoder.raw_decode(text, pos)
        except ValueError:
            break
        value = scrubber.scrub_data(value, None)
        writer.write(_encode(value) + "\n")
        count += 1
    return count