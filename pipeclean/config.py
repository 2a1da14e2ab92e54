"""Configuration: which models to train and how to scrub data."""

from __future__ import annotations

import errno
import json
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from . import ui
from .markov import InvalidModelError, MarkovDefinition, MarkovModel
from .models import (
    AnyModel,
    DictDefinition,
    DictModel,
    MatchDefinition,
    MatchModel,
    load_model,
    load_models,
    model_base_name,
    save_model,
)
from .policy import FieldNameRule, HeuristicRule, Policy, default_policy

_MISSING = object()
_RESET_HINT = "please delete this model and reinitialize it"


def _as_mapping(data: Union[Mapping[str, Any], str, bytes, None]) -> Mapping[str, Any]:
    if data is None:
        return {}
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look a key up the way JSON objects are matched to fields: exact, then case-insensitively."""
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if name.casefold() == folded:
            return value
    return default


@dataclass
class ModelConfig:
    """How to create one model; exactly one of the definitions is set."""

    dictionary: Optional[DictDefinition] = None
    markov: Optional[MarkovDefinition] = None
    match: Optional[MatchDefinition] = None

    def validate(self) -> None:
        """Raise ValueError unless exactly one valid definition is set."""
        if self.markov is not None and self.markov.order <= 0:
            raise ValueError("markov order must be >= 1")
        kinds = sum(d is not None for d in (self.dictionary, self.markov, self.match))
        if kinds == 0:
            raise ValueError("unknown type")
        if kinds > 1:
            raise ValueError("ambiguous type")

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes, None]) -> ModelConfig:
        obj = _as_mapping(data)
        markov_raw = _get(obj, "Markov")
        markov = None
        if markov_raw is not None:
            markov_obj = _as_mapping(markov_raw)
            markov = MarkovDefinition(
                order=int(_get(markov_obj, "Order", 0) or 0),
                delim=str(_get(markov_obj, "Delim", "") or ""),
            )
        return cls(
            dictionary=DictDefinition() if _get(obj, "Dict") is not None else None,
            markov=markov,
            match=MatchDefinition() if _get(obj, "Match") is not None else None,
        )


def _type_mismatch(name: str, declared: str, model: Any) -> list[str]:
    ui.fatal(
        f"Type mismatch for model {name} (declared as {declared}; got {type(model).__name__})."
    ).hint(_RESET_HINT)
    return [str(InvalidModelError())]


def _check_model(name: str, definition: ModelConfig, model: Any) -> list[str]:
    if definition.dictionary is not None:
        return [] if isinstance(model, DictModel) else _type_mismatch(name, "Dict", model)
    if definition.markov is not None:
        if not isinstance(model, MarkovModel):
            return _type_mismatch(name, "Markov", model)
        try:
            model.validate(definition.markov)
        except InvalidModelError as exc:
            ui.fatal(f"Configuration mismatch for Markov model {name}.").hint(_RESET_HINT)
            return [str(exc)]
        return []
    if definition.match is not None:
        return [] if isinstance(model, MatchModel) else _type_mismatch(name, "Match", model)
    return []


@dataclass
class Config:
    """Models to learn, keyed by name, and the scrubbing policy."""

    learning: dict[str, ModelConfig] = field(default_factory=dict)
    scrubbing: Policy = field(default_factory=default_policy)

    def validate(self, models: Mapping[str, Any]) -> list[str]:
        """Report every problem on standard error and return their descriptions."""
        errors: list[str] = []

        policy_errors = self.scrubbing.validate(models)
        if policy_errors:
            ui.fatal("Invalid scrubbing policy.").hint(*policy_errors)
            errors.extend(policy_errors)

        for name, definition in self.learning.items():
            try:
                definition.validate()
            except ValueError as exc:
                errors.append(str(exc))
            model = models.get(name)
            if model is not None:
                errors.extend(_check_model(name, definition, model))

        return errors

    @classmethod
    def _from_mapping(cls, obj: Any) -> Config:
        if not isinstance(obj, Mapping):
            raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
        config = default_config()

        learning = _get(obj, "Learning")
        if isinstance(learning, Mapping):
            for name, raw in learning.items():
                config.learning[name] = ModelConfig.from_json(raw)

        scrubbing = _get(obj, "Scrubbing")
        if isinstance(scrubbing, Mapping):
            field_rules = _get(scrubbing, "fieldname", _MISSING)
            if field_rules is not _MISSING:
                config.scrubbing.field_name = [FieldNameRule.from_json(r) for r in field_rules or []]
            heuristic_rules = _get(scrubbing, "heuristic", _MISSING)
            if heuristic_rules is not _MISSING:
                config.scrubbing.heuristic = [HeuristicRule.from_json(r) for r in heuristic_rules or []]

        return config

    @classmethod
    def from_file(cls, filename: Union[str, os.PathLike]) -> Config:
        """Load a configuration from a JSON file, on top of the defaults."""
        return cls._from_mapping(json.loads(Path(filename).read_text(encoding="utf-8")))


def default_config() -> Config:
    """Return a configuration with no models and the default scrubbing policy."""
    return Config()


def load_model_paths(paths: Iterable[Union[str, os.PathLike]]) -> dict[str, AnyModel]:
    """Load models from directories of model files, or from single model files."""
    result: dict[str, AnyModel] = {}
    for path in paths:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(p))
        if p.is_dir():
            result.update(load_models(p))
        else:
            result[model_base_name(p)] = load_model(p)
    ui.verbose(f"Loaded {len(result)} models").hint(*result)
    return result


def save_models(models: Mapping[str, AnyModel], path: Union[str, os.PathLike]) -> list[Path]:
    """Save every model into directory path; return the files written."""
    return [save_model(model, path, name) for name, model in models.items()]