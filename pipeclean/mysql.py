"""Learning from, extracting from and scrubbing MySQL dump files, line by line."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import IO, Any, Optional

from .policy import Policy
from .scrubber import Scrubber
from .sqlparse import (
    CreateTableStatement,
    InsertStatement,
    SqlSyntaxError,
    Statement,
    Value,
    parse_statements,
    restore,
)


@dataclass
class Context:
    """What is known about the structure of the data: the columns of each table."""

    table_columns: dict[str, list[str]] = field(default_factory=dict)

    def scan(self, sql: str) -> None:
        """Record the columns of every CREATE TABLE statement in sql.

        Raises SqlSyntaxError, recording nothing, if sql does not parse.
        """
        for statement in parse_statements(sql):
            if isinstance(statement, CreateTableStatement):
                columns = self.table_columns.setdefault(statement.table.lower(), [])
                columns.extend(name.lower() for name in statement.columns)


class InsertState:
    """Tracks which column each value of an INSERT statement belongs to."""

    def __init__(
        self,
        table_name: str = "",
        column_names: Optional[Sequence[str]] = None,
        row_length: int = 0,
    ) -> None:
        self.table_name = table_name
        self.column_names: list[str] = list(column_names or [])
        self.row_length = row_length
        self.value_index = 0

    @classmethod
    def for_statement(cls, statement: InsertStatement) -> InsertState:
        """Create the state for an INSERT; rows of differing length raise ValueError."""
        row_length = 0
        for row in statement.rows:
            if row_length == 0:
                row_length = len(row)
            elif len(row) != row_length:
                raise ValueError(
                    f"inconsistent INSERT row lengths: {row_length} prior vs {len(row)} next"
                )
        return cls(
            statement.table.lower(),
            [name.lower() for name in statement.columns],
            row_length,
        )

    def advance(self) -> None:
        """Move on to the next value."""
        self.value_index += 1

    def names(self) -> list[str]:
        """Return the names (0 to 3 of them) under which the next value is known."""
        column = self.value_index % self.row_length if self.row_length > 0 else self.value_index
        names: list[str] = []
        if self.table_name:
            if self.column_names:
                column_name = self.column_names[column]
                names.append(column_name)
                names.append(f"{self.table_name}.{column_name}")
            names.append(f"{self.table_name}.{column}")
        return names

    def observe_context(self, context: Context) -> None:
        """Take the column names from the scanned schema if the statement lists none."""
        if self.value_index == 0 and not self.column_names:
            self.column_names = list(context.table_columns.get(self.table_name, []))


def _labelled_rows(
    context: Context, statement: InsertStatement
) -> Iterator[list[tuple[Value, Optional[list[str]]]]]:
    """Yield each row as (value, names) pairs; names is None for non-string values."""
    state = InsertState.for_statement(statement)
    for row in statement.rows:
        labelled: list[tuple[Value, Optional[list[str]]]] = []
        for value in row:
            state.observe_context(context)
            names = state.names() if value.kind == Value.STRING else None
            labelled.append((value, names))
            state.advance()
        yield labelled


def _string_fields(context: Context, statement: InsertStatement) -> Iterator[tuple[str, list[str]]]:
    for row in _labelled_rows(context, statement):
        for value, names in row:
            if names is not None:
                yield value.text or "", names


def _parse_quietly(line: str) -> list[Statement]:
    try:
        return parse_statements(line)
    except SqlSyntaxError:
        return []


def _scrub_value(scrubber: Scrubber, value: Value, names: Optional[list[str]]) -> Value:
    if names is None:
        return value
    text = value.text or ""
    if scrubber.erase_string(text, names):
        return Value(Value.NULL)
    return Value(Value.STRING, scrubber.scrub_string(text, names))


def _scrub_insert(context: Context, scrubber: Scrubber, statement: InsertStatement) -> InsertStatement:
    rows = [
        [_scrub_value(scrubber, value, names) for value, names in row]
        for row in _labelled_rows(context, statement)
    ]
    return dataclasses.replace(statement, rows=rows)


def scrub_line(context: Context, scrubber: Scrubber, line: str) -> str:
    """Scrub the statements of one input line.

    Lines that hold no complete statement (comments, fragments of multi-line
    statements) are returned unchanged; other statements pass through as written.
    """
    statements = _parse_quietly(line)
    if not statements:
        return line
    output: list[str] = []
    for statement in statements:
        if isinstance(statement, InsertStatement):
            output.append(restore(_scrub_insert(context, scrubber, statement)) + "\n")
        else:
            output.append(statement.text + "\n")
    return "".join(output)


def scrub_lines(context: Context, scrubber: Scrubber, lines: Iterable[str]) -> Iterator[str]:
    """Yield one scrubbed output for every input line."""
    for line in lines:
        yield scrub_line(context, scrubber, line)


def learn_line(
    context: Context,
    models: Mapping[str, Any],
    policy: Policy,
    line: str,
) -> None:
    """Train the models that generate replacements for the string values in line."""
    for statement in _parse_quietly(line):
        if not isinstance(statement, InsertStatement):
            continue
        for text, names in _string_fields(context, statement):
            matched = policy.match_field_name(names)
            if matched is None:
                continue
            disposition, _ = matched
            if disposition.action() == "generate":
                model = models.get(disposition.parameter())
                if model is not None:
                    model.train(text)


def learn_lines(
    context: Context,
    models: Mapping[str, Any],
    policy: Policy,
    lines: Iterable[str],
) -> None:
    """Train models from every line."""
    for line in lines:
        learn_line(context, models, policy, line)


def extract_line(context: Context, names: Sequence[str], line: str) -> list[str]:
    """Return the string values in line that belong to any of the given field names."""
    wanted = set(names)
    values: list[str] = []
    for statement in _parse_quietly(line):
        if isinstance(statement, InsertStatement):
            values.extend(
                text
                for text, field_names in _string_fields(context, statement)
                if wanted.intersection(field_names)
            )
    return values


def extract(context: Context, names: Sequence[str], reader: IO[str], writer: IO[str]) -> int:
    """Write matching values, one per line; return how many were written.

    Input lines are newline-terminated; a final fragment without a newline is ignored.
    """
    count = 0
    for line in reader:
        if not line.endswith("\n"):
            break
        for value in extract_line(context, names, line):
            writer.write(value + "\n")
            count += 1
    return count