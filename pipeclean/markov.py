"""Markov-chain models that recognise and generate text."""

from __future__ import annotations

import json
import math
import random
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .prng import new_rand
from .text import clean

START_TOKEN = "^"
END_TOKEN = "$"


class InvalidModelError(Exception):
    """A persisted model does not match its configuration."""

    def __init__(self, message: str = "Mismatch between model configuration and persisted model.") -> None:
        super().__init__(message)


@dataclass
class MarkovDefinition:
    """Configuration of a Markov model: lookback order and token delimiter."""

    order: int
    delim: str = ""


@dataclass
class ModelStats:
    """Length statistics of the texts a model was trained on."""

    freq_n: dict[int, int] = field(default_factory=dict)
    max_n: int = 0
    min_n: int = 0

    def add(self, s: str) -> None:
        n = len(s.encode("utf-8"))
        self.freq_n[n] = self.freq_n.get(n, 0) + 1
        self.max_n = max(self.max_n, n)
        self.min_n = min(self.min_n, n)

    def derive(self) -> None:
        """Recompute the length bounds from the frequency table."""
        for n in self.freq_n:
            self.max_n = max(self.max_n, n)
            self.min_n = min(self.min_n, n)


def make_pairs(tokens: Sequence[str], order: int) -> list[tuple[tuple[str, ...], str]]:
    """Return (state, next token) pairs for every window of the given order."""
    tokens = list(tokens)
    return [(tuple(tokens[i : i + order]), tokens[i + order]) for i in range(len(tokens) - order)]


class MarkovChain:
    """A table of state-transition frequencies over string tokens."""

    def __init__(self, order: int) -> None:
        self.order = order
        self._index: dict[str, int] = {}
        self._tokens: dict[int, str] = {}
        self._freq: dict[int, dict[int, int]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(state: Iterable[str]) -> str:
        return "_".join(state)

    def _intern(self, s: str) -> int:
        idx = self._index.get(s)
        if idx is None:
            idx = len(self._index)
            self._index[s] = idx
            self._tokens[idx] = s
        return idx

    def _check_order(self, state: Sequence[str]) -> None:
        if len(state) != self.order:
            raise ValueError("N-gram length does not match chain order")

    def add(self, tokens: Iterable[str]) -> None:
        padded = [START_TOKEN] * self.order + list(tokens) + [END_TOKEN] * self.order
        with self._lock:
            for state, nxt in make_pairs(padded, self.order):
                current = self._intern(self._key(state))
                following = self._intern(nxt)
                row = self._freq.setdefault(current, {})
                row[following] = row.get(following, 0) + 1

    def transition_probability(self, next_token: str, state: Sequence[str]) -> float:
        state = list(state)
        self._check_order(state)
        current = self._index.get(self._key(state))
        following = self._index.get(next_token)
        if current is None or following is None:
            return 0.0
        row = self._freq.get(current, {})
        total = sum(row.values())
        if total == 0:
            return 0.0
        return row.get(following, 0) / total

    def generate_deterministic(self, state: Sequence[str], rng: random.Random) -> str:
        """Pick the next token after state, drawing only from rng."""
        state = list(state)
        self._check_order(state)
        current = self._index.get(self._key(state))
        row = self._freq.get(current) if current is not None else None
        if not row:
            raise ValueError(f"unknown n-gram {state!r}")
        n = rng.randrange(sum(row.values()))
        for idx in sorted(row):
            n -= row[idx]
            if n < 0:
                return self._tokens[idx]
        raise ValueError(f"inconsistent frequencies for n-gram {state!r}")

    def to_dict(self) -> dict:
        return {
            "int": self.order,
            "spool_map": dict(self._index),
            "freq_mat": {
                str(current): {str(nxt): count for nxt, count in sorted(row.items())}
                for current, row in sorted(self._freq.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> MarkovChain:
        chain = cls(int(data.get("int", 0)))
        for token, idx in (data.get("spool_map") or {}).items():
            chain._index[token] = int(idx)
            chain._tokens[int(idx)] = token
        for current, row in (data.get("freq_mat") or {}).items():
            chain._freq[int(current)] = {int(nxt): int(count) for nxt, count in sorted(row.items(), key=lambda kv: int(kv[0]))}
        return chain


class MarkovModel:
    """A model that recognises and generates text using a Markov chain."""

    def __init__(self, order: int = 1, separator: str = "") -> None:
        self.chain = MarkovChain(order)
        self.separator = separator
        self.stats = ModelStats()

    def _split(self, text: str) -> list[str]:
        if self.separator == "":
            return list(text)
        return text.split(self.separator)

    def generate(self, seed: str) -> str:
        """Derive a text deterministically from the seed."""
        rng = new_rand(clean(seed))
        order = self.chain.order
        state = [START_TOKEN] * order
        while state[-1] != END_TOKEN and len(state) < self.stats.max_n + order:
            try:
                nxt = self.chain.generate_deterministic(state[len(state) - order :], rng)
            except ValueError as exc:
                raise RuntimeError(f"MarkovModel.generate: {exc}") from exc
            if nxt != END_TOKEN or len(state) >= self.stats.min_n:
                state.append(nxt)

        start = order
        end = len(state) - 1
        if len(state) <= order:
            start = len(state) - 1
        return self.separator.join(state[start:end])

    def recognize(self, text: str) -> float:
        if len(text.encode("utf-8")) < self.chain.order:
            return 0.0
        tokens = self._split(clean(text))
        pairs = make_pairs(tokens, self.chain.order)
        log_prob = 0.0
        for state, nxt in pairs:
            prob = self.chain.transition_probability(nxt, state)
            log_prob += math.log10(prob if prob > 0 else 0.05)
        return 10 ** (log_prob / max(1, len(pairs)))

    def train(self, text: str) -> None:
        cleaned = clean(text)
        self.chain.add(self._split(cleaned))
        self.stats.add(cleaned)

    def validate(self, definition: MarkovDefinition) -> None:
        """Raise InvalidModelError if the model does not match the definition."""
        if self.chain.order != definition.order or self.separator != definition.delim:
            raise InvalidModelError()

    def to_json(self) -> str:
        obj = {
            "separator": self.separator,
            "chain": self.chain.to_dict(),
            "stats": {
                "freq_n": {str(n): c for n, c in sorted(self.stats.freq_n.items())},
                "MaxN": self.stats.max_n,
                "MinN": self.stats.min_n,
            },
        }
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str | bytes) -> MarkovModel:
        obj = json.loads(data)
        chain = MarkovChain.from_dict(obj.get("chain") or {})
        model = cls(chain.order, obj.get("separator", ""))
        model.chain = chain
        raw_stats = obj.get("stats") or {}
        model.stats = ModelStats(
            freq_n={int(n): int(c) for n, c in (raw_stats.get("freq_n") or {}).items()},
            max_n=int(raw_stats.get("MaxN", 0)),
            min_n=int(raw_stats.get("MinN", 0)),
        )
        model.stats.derive()
        return model