"""Scrubbing of individual values and of structured data embedded in them."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import yaml

from .models import Generator
from .policy import Disposition, Policy
from .prng import new_rand
from .text import clean_token, to_same_case
from .verifier import Verifier

_SHORT_EXTENSION = re.compile(r"[.][a-z]{2,5}\Z")
_ATOM = r"[^\s<>@,;:\"()\[\]\\]+"
_EMAIL = re.compile(rf"({_ATOM})@({_ATOM})")
_BRACKETED_EMAIL = re.compile(rf"<({_ATOM})@({_ATOM})>")
_URL_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*:")


def _is_json_data(s: str) -> bool:
    return len(s) >= 2 and ((s[0] == "{" and s[-1] == "}") or (s[0] == "[" and s[-1] == "]"))


def _is_yaml_data(s: str) -> bool:
    return s.startswith("---\n")


def _encode_json(data: Any) -> str:
    text = json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"), ("\u2028", "\\u2028"), ("\u2029", "\\u2029")):
        text = text.replace(char, escaped)
    return text


class Scrubber:
    """Applies a policy to values, masking, erasing, replacing or generating them."""

    def __init__(
        self,
        salt: str = "",
        mask_all: bool = False,
        policy: Optional[Policy] = None,
        models: Optional[Mapping[str, Any]] = None,
        verifier: Optional[Verifier] = None,
    ) -> None:
        self.salt = salt
        self.mask_all = mask_all
        self.policy = policy if policy is not None else Policy()
        self.models = dict(models or {})
        self.verifier = verifier
        self.shallow = False

    def _heuristic_match(self, s: str):
        for index, rule in enumerate(self.policy.heuristic):
            if self.models[rule.model].recognize(s) >= 1.0 - rule.p:
                return index, rule
        return None

    def erase_string(self, s: str, names: Optional[Sequence[str]]) -> bool:
        """Return True if the value should be removed entirely from the output."""
        names = list(names or [])
        matched = self.policy.match_field_name(names)
        if matched is not None:
            disposition, index = matched
            if self.verifier is not None:
                self.verifier.record_field_name(s, "", names, index, disposition)
            return disposition.action() == "erase"

        found = self._heuristic_match(s)
        if found is not None:
            index, rule = found
            if self.verifier is not None:
                self.verifier.record_heuristic(s, "", names, index, rule.out)
            return rule.out.action() == "erase"
        return False

    def scrub_data(self, data: Any, names: Optional[Sequence[str]]) -> Any:
        """Scrub strings inside lists and dicts in place; return the result."""
        if isinstance(data, str):
            return self.scrub_string(data, names)
        if isinstance(data, list):
            for i, item in enumerate(data):
                data[i] = self.scrub_data(item, [str(i)])
            return data
        if isinstance(data, dict):
            for key, item in data.items():
                data[key] = self.scrub_data(item, [key])
            return data
        return data

    def _apply(self, disposition: Disposition, s: str) -> str:
        action = disposition.action()
        if action == "erase":
            return ""
        if action == "generate":
            if self.mask_all:
                return self.mask(s)
            model = self.models.get(disposition.parameter())
            if model is None:
                raise ValueError(f"unknown model name for generate action: {disposition.parameter()!r}")
            if isinstance(model, Generator):
                return to_same_case(model.generate(s), s)
        elif action == "mask":
            return self.mask(s)
        elif action == "pass":
            return s
        elif action == "replace":
            return disposition.parameter()
        raise ValueError(f"unknown policy action: {action!r}")

    def scrub_string(self, s: str, names: Optional[Sequence[str]]) -> str:
        """Sanitize a value according to the policy; values matching no rule pass unchanged."""
        names = list(names or [])
        matched = self.policy.match_field_name(names)
        if matched is not None:
            disposition, index = matched
            out = self._apply(disposition, s)
            if self.verifier is not None:
                self.verifier.record_field_name(s, out, names, index, disposition)
            return out

        found = self._heuristic_match(s)
        if found is not None:
            index, rule = found
            out = self._apply(rule.out, s)
            if self.verifier is not None:
                self.verifier.record_heuristic(s, out, names, index, rule.out)
            return out

        if not self.shallow:
            if _is_json_data(s):
                try:
                    data = json.loads(s)
                except ValueError:
                    pass
                else:
                    return _encode_json(self.scrub_data(data, None))
            elif _is_yaml_data(s):
                try:
                    data = yaml.safe_load(s)
                except yaml.YAMLError:
                    data = None
                if isinstance(data, (list, dict)):
                    return yaml.safe_dump(self.scrub_data(data, None), allow_unicode=True)
            if s.startswith("--- !ruby/hash"):
                return "{}"

        if self.verifier is not None:
            self.verifier.record_pass(s, names)
        return s

    def mask(self, s: str) -> str:
        """Scramble letters and digits, keeping e-mail TLDs, short extensions and URL structure."""
        if len(s.encode("utf-8")) < 1024:
            if " " not in s:
                m = _EMAIL.fullmatch(s) or _BRACKETED_EMAIL.fullmatch(s)
                if m:
                    local, domain = m.group(1), m.group(2)
                    dot = domain.rfind(".")
                    if dot > 0:
                        return f"{self.mask_word(local)}@{self.mask_word(domain[:dot])}.{domain[dot + 1:]}"
                    return self.mask_word(domain)

            ext = _SHORT_EXTENSION.search(s)
            if ext:
                return self.mask_word(s[: ext.start()]) + s[ext.start():]

            masked = self._mask_url(s)
            if masked is not None:
                return masked

        return self.mask_word(s)

    def _mask_url(self, s: str) -> Optional[str]:
        scheme = _URL_SCHEME.match(s)
        if not scheme:
            return None
        try:
            parts = urlsplit(s)
        except ValueError:
            return None
        if not parts.scheme:
            return None
        if not s[scheme.end():].startswith("/"):
            return s
        host = parts.netloc
        dot = host.rfind(".")
        host = self.mask_word(host[:dot]) + host[dot:] if dot >= 0 else self.mask_word(host)
        return urlunsplit((parts.scheme, host, self.mask_word(parts.path), parts.query, parts.fragment))

    def mask_word(self, s: str) -> str:
        """Scramble ASCII letters and nonzero digits deterministically, keeping case and punctuation."""
        rng = new_rand(clean_token(s))
        out: list[str] = []
        for c in s:
            if "a" <= c <= "z":
                out.append(chr(ord("a") + rng.getrandbits(32) % 26))
            elif "A" <= c <= "Z":
                out.append(chr(ord("A") + rng.getrandbits(32) % 26))
            elif "1" <= c <= "9":
                out.append(chr(ord("1") + rng.getrandbits(32) % 9))
            else:
                out.append(c)
        return "".join(out)