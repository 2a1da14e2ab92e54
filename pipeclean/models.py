"""Model interfaces, dictionary and pattern models, and model persistence."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from .markov import MarkovModel
from .text import clean


@runtime_checkable
class Model(Protocol):
    """Something that can be trained on texts and recognise similar ones."""

    def recognize(self, text: str) -> float:
        """Return the confidence, on [0, 1], that text belongs to the model."""

    def train(self, text: str) -> None:
        """Teach the model one example."""


@runtime_checkable
class Generator(Protocol):
    """A model that can produce new text."""

    def generate(self, seed: str) -> str:
        """Return a text derived deterministically from seed."""


@dataclass
class DictDefinition:
    """Configuration of a dictionary model (it has no parameters)."""


@dataclass
class MatchDefinition:
    """Configuration of a pattern-matching model (it has no parameters)."""


def _scan_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class DictModel:
    """Recognises texts that exactly match, after cleaning, a trained entry."""

    def __init__(self, words: Iterable[str] = ()) -> None:
        self.words: set[str] = {clean(w) for w in words}

    def recognize(self, text: str) -> float:
        return 1.0 if clean(text) in self.words else 0.0

    def train(self, text: str) -> None:
        self.words.add(clean(text))

    def to_text(self) -> str:
        return "".join(f"{word}\n" for word in sorted(self.words))

    @classmethod
    def from_text(cls, text: str) -> DictModel:
        return cls(_scan_lines(text))


class MatchModel:
    """Recognises texts that match any of a list of regular expressions."""

    def __init__(self, patterns: Iterable[Union[str, re.Pattern]] = ()) -> None:
        self.patterns: list[re.Pattern] = [re.compile(p) if isinstance(p, str) else p for p in patterns]

    def recognize(self, text: str) -> float:
        return 1.0 if any(p.search(text) for p in self.patterns) else 0.0

    def train(self, text: str) -> None:
        """Ignore the example: patterns are written by hand, not learned."""

    def to_text(self) -> str:
        return "".join(f"{p.pattern}\n" for p in self.patterns)

    @classmethod
    def from_text(cls, text: str) -> MatchModel:
        return cls(_scan_lines(text))


AnyModel = Union[MarkovModel, DictModel, MatchModel]


def model_base_name(filename: str | os.PathLike) -> str:
    """Return the file's base name without any extensions."""
    base = os.path.basename(os.fspath(filename))
    dot = base.find(".")
    return base if dot < 0 else base[:dot]


def _ext(name: str) -> str:
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def model_extension(filename: str | os.PathLike) -> str:
    """Return the last two extensions of the file's base name."""
    base = os.path.basename(os.fspath(filename))
    last = _ext(base)
    previous = _ext(base[: len(base) - len(last)])
    return previous + last


def load_model(filename: str | os.PathLike) -> AnyModel:
    """Load a model, choosing its type from the file's extensions."""
    data = Path(filename).read_bytes()
    ext = model_extension(filename)
    if ext == ".markov.json":
        return MarkovModel.from_json(data)
    if ext == ".dict.txt":
        return DictModel.from_text(data.decode("utf-8"))
    if ext == ".match.txt":
        return MatchModel.from_text(data.decode("utf-8"))
    raise ValueError(f"Unknown filename extension: {ext!r}")


def load_models(dirname: str | os.PathLike) -> dict[str, AnyModel]:
    """Load every model file in a directory, keyed by base name."""
    result: dict[str, AnyModel] = {}
    for entry in sorted(Path(dirname).iterdir(), key=lambda p: p.name):
        if entry.name.startswith(".") or entry.is_dir():
            continue
        result[model_base_name(entry.name)] = load_model(entry)
    return result


def save_model(model: AnyModel, path: str | os.PathLike, basename: str) -> Path:
    """Write a model into directory path; return the file written."""
    if isinstance(model, MarkovModel):
        data, suffix = model.to_json(), ".markov.json"
    elif isinstance(model, DictModel):
        data, suffix = model.to_text(), ".dict.txt"
    elif isinstance(model, MatchModel):
        data, suffix = model.to_text(), ".match.txt"
    else:
        raise TypeError(f"No serialization strategy for: {type(model).__name__}")
    target = Path(path) / (basename + suffix)
    target.write_bytes(data.encode("utf-8"))
    return target