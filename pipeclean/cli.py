"""Command-line interface: learn, scrub, verify, extract, train, generate, recognize."""

from __future__ import annotations

import argparse
import random
import re
import sys
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import IO, Any, NoReturn, Optional

import yaml

from . import ui
from .config import Config, default_config, load_model_paths, save_models
from .jsonformat import scrub_stream
from .markov import MarkovModel
from .models import DictModel, Generator, load_model
from .mysql import Context, extract, learn_lines, scrub_lines
from .scrubber import Scrubber
from .sqlparse import SqlSyntaxError
from .ui import ExitReason
from .verifier import Verifier

_LOAD_ERRORS = (OSError, ValueError, re.error)


def _complete_lines(stream: IO[str]) -> Iterator[str]:
    """Yield newline-terminated lines; a final fragment without a newline is dropped."""
    for line in stream:
        if not line.endswith("\n"):
            return
        yield line


def _fail(message: object, reason: ExitReason) -> NoReturn:
    ui.fatal(message)
    ui.exit_with(reason)


def _load_context(files: Iterable[str]) -> Context:
    context = Context()
    for name in files:
        try:
            sql = Path(name).read_text(encoding="utf-8")
        except OSError as exc:
            _fail(exc, ExitReason.INVALID_INPUT_FILE)
        try:
            context.scan(sql)
        except SqlSyntaxError as exc:
            ui.verbose(f"Could not parse context file {name}: {exc}")
    return context


def _load_config(filename: str) -> Config:
    if not filename:
        return default_config()
    try:
        return Config.from_file(filename)
    except _LOAD_ERRORS as exc:
        _fail(exc, ExitReason.INVALID_INPUT_FILE)


def _load_models(paths: Sequence[str]) -> dict[str, Any]:
    try:
        return load_model_paths(paths)
    except _LOAD_ERRORS as exc:
        _fail(exc, ExitReason.INVALID_INPUT_FILE)


def _load_single_model(filename: str) -> Any:
    try:
        return load_model(filename)
    except _LOAD_ERRORS as exc:
        _fail(exc, ExitReason.INVALID_INPUT_FILE)


def _split_list(value: str) -> list[str]:
    return [part for part in value.split(",") if part]


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for all subcommands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-m", "--mode", choices=("json", "mysql"), default=argparse.SUPPRESS, help="data format")
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="print extra debug output")

    parser = argparse.ArgumentParser(prog="pipeclean", description="PipeClean Streaming Data Sanitizer.")
    parser.add_argument("-m", "--mode", choices=("json", "mysql"), default="mysql", help="data format")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="print extra debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    def context_option(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "-x", "--context", action="extend", type=_split_list, default=[],
            help="extra files to parse for improved accuracy",
        )

    def config_option(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-c", "--config", default="", help="configuration file (JSON)")

    sub = commands.add_parser("extract", parents=[common], help="Pulls specific fields from inputs; prints values to stdout.")
    context_option(sub)
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_extract)

    sub = commands.add_parser("generate", parents=[common], help="Generates ten example texts from a model.")
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_generate)

    sub = commands.add_parser("learn", parents=[common], help="Trains models using data parsed from stdin.")
    sub.add_argument("-r", "--append", action="store_true", help="load existing models before training (default: overwrite)")
    config_option(sub)
    context_option(sub)
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_learn)

    sub = commands.add_parser("recognize", parents=[common], help="Prints input lines that match the model.")
    sub.add_argument("-c", "--confidence", type=float, default=0.5, help="minimum probability to consider a match")
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_recognize)

    sub = commands.add_parser("scrub", parents=[common], help="Masks sensitive data from stdin. Prints results to stdout.")
    config_option(sub)
    context_option(sub)
    sub.add_argument("-k", "--mask", action="store_true", help="visually verify completeness")
    sub.add_argument("-s", "--salt", default="", help="PRNG seed static diversifier")
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_scrub)

    sub = commands.add_parser("train", parents=[common], help="Trains an individual model from lines of stdin.")
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_train)

    sub = commands.add_parser("verify", parents=[common], help="Scrubs, discards the output and prints statistics.")
    config_option(sub)
    context_option(sub)
    sub.add_argument("args", nargs="*")
    sub.set_defaults(handler=run_verify)

    return parser


def run_extract(args: argparse.Namespace) -> None:
    """Print the values of one field found in the input."""
    if len(args.args) != 1:
        _fail("Must pass exactly one field name to extract", ExitReason.INVALID_ARGS)
    if args.mode == "json":
        ui.exit_not_implemented("extract json")
    context = _load_context(args.context)
    extract(context, args.args, sys.stdin, sys.stdout)


def run_generate(args: argparse.Namespace) -> None:
    """Print ten texts generated by a model."""
    if len(args.args) != 1:
        _fail("Usage: pipeclean generate <modelFile>", ExitReason.INVALID_ARGS)
    model_file = args.args[0]
    model = _load_single_model(model_file)
    if not isinstance(model, Generator):
        _fail(f"Model does not support generation: {model_file!r}", ExitReason.ASSERTION_FAILED)
    for _ in range(10):
        print(model.generate(str(random.getrandbits(63))), file=sys.stdout)


def run_learn(args: argparse.Namespace) -> None:
    """Train the configured models from the input and save them."""
    if len(args.args) != 1:
        _fail("Must pass exactly one directory for model storage", ExitReason.INVALID_ARGS)

    models: dict[str, Any] = _load_models(args.args) if args.append else {}
    config = _load_config(args.config)

    for name, definition in config.learning.items():
        if name in models:
            continue
        if definition.dictionary is not None:
            models[name] = DictModel()
        elif definition.markov is not None:
            models[name] = MarkovModel(definition.markov.order, definition.markov.delim)

    if args.mode == "json":
        ui.exit_not_implemented("learn json")

    context = _load_context(args.context)
    learn_lines(context, models, config.scrubbing, _complete_lines(sys.stdin))

    try:
        save_models(models, args.args[0])
    except OSError as exc:
        _fail(exc, ExitReason.INVALID_INPUT_FILE)


def run_recognize(args: argparse.Namespace) -> None:
    """Print the input lines that the model recognises."""
    if len(args.args) != 1:
        _fail("Usage: pipeclean recognize <modelFile>", ExitReason.INVALID_ARGS)
    model = _load_single_model(args.args[0])
    for line in _complete_lines(sys.stdin):
        line = line.rstrip("\r\n\t")
        if model.recognize(line) >= args.confidence:
            print(line, file=sys.stdout)


def _scrub(args: argparse.Namespace, verifier: Optional[Verifier]) -> Config:
    models = _load_models(args.args)
    config = _load_config(args.config)
    if config.validate(models):
        ui.exit_with(ExitReason.INVALID_INPUT_FILE)
    if verifier is not None:
        verifier.policy = config.scrubbing

    scrubber = Scrubber(
        salt=getattr(args, "salt", ""),
        mask_all=getattr(args, "mask", False),
        policy=config.scrubbing,
        models=models,
        verifier=verifier,
    )

    if args.mode == "json":
        ui.warn("JSON scrubbing is experimental and may not work as expected")
        scrub_stream(scrubber, sys.stdin, sys.stdout)
        return config

    context = _load_context(args.context)
    for output in scrub_lines(context, scrubber, _complete_lines(sys.stdin)):
        if verifier is None:
            sys.stdout.write(output)
    return config


def run_scrub(args: argparse.Namespace) -> None:
    """Scrub the input and print the result."""
    _scrub(args, None)


def _train_usage() -> NoReturn:
    ui.fatal("Usage: pipeclean train <modelType>[param1:param2:...]").hint(
        "Examples:",
        "pipeclean train dict # dictionary-lookup model",
        "pipeclean train markov:words:5 # markov word model of order 5",
        "pipeclean train markov:sentences:3 # markov sentence model of order 3",
    )
    ui.exit_with(ExitReason.INVALID_ARGS)


def run_train(args: argparse.Namespace) -> None:
    """Train one model from lines of input and print it."""
    if len(args.args) != 1:
        _train_usage()
    parts = args.args[0].split(":")
    model_type = parts[0]
    markov_mode = parts[1] if len(parts) >= 2 else ""
    markov_order = 0
    if len(parts) >= 3:
        try:
            markov_order = int(parts[2])
        except ValueError:
            markov_mode = "ERROR"

    if model_type == "markov":
        separators = {"sentences": " ", "words": ""}
        if markov_mode not in separators:
            _train_usage()
        model = MarkovModel(markov_order, separators[markov_mode])
        for line in _complete_lines(sys.stdin):
            model.train(line)
        sys.stdout.write(model.to_json())
    elif model_type == "dict":
        dictionary = DictModel()
        for line in _complete_lines(sys.stdin):
            dictionary.train(line)
        sys.stdout.write(dictionary.to_text())


def run_verify(args: argparse.Namespace) -> None:
    """Scrub the input, discard the output and print statistics as YAML."""
    verifier = Verifier(default_config().scrubbing)
    _scrub(args, verifier)
    report = verifier.report()
    print(yaml.safe_dump(report.to_dict(), sort_keys=False, allow_unicode=True), file=sys.stdout)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line; return the exit status."""
    args = build_parser().parse_args(argv)
    ui.set_verbose(args.verbose)
    args.handler(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())