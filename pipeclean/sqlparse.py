"""A small parser for the MySQL statements found in dump files, and their restoration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union


class SqlSyntaxError(ValueError):
    """The text is not a sequence of complete, well-formed statements."""


@dataclass(frozen=True)
class Value:
    """A literal in a VALUES tuple. text holds the decoded string or the raw source."""

    STRING: ClassVar[str] = "string"
    NUMBER: ClassVar[str] = "number"
    NULL: ClassVar[str] = "null"
    LITERAL: ClassVar[str] = "literal"

    kind: str
    text: Optional[str] = None


@dataclass
class InsertStatement:
    verb: str
    table: str
    columns: list[str] = field(default_factory=list)
    rows: list[list[Value]] = field(default_factory=list)
    modifiers: list[str] = field(default_factory=list)
    schema: Optional[str] = None
    text: str = ""


@dataclass
class CreateTableStatement:
    table: str
    columns: list[str] = field(default_factory=list)
    schema: Optional[str] = None
    text: str = ""


@dataclass
class OtherStatement:
    """Any statement that is passed through as written."""

    text: str


Statement = Union[InsertStatement, CreateTableStatement, OtherStatement]


@dataclass(frozen=True)
class _Token:
    kind: str  # word, quoted, string, number, punct, exec
    text: str
    start: int
    end: int


_NUMBER = re.compile(r"0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WORD = re.compile(r"[A-Za-z_$@][A-Za-z0-9_$@]*")
_ESCAPES = {"0": "\0", "'": "'", '"': '"', "b": "\b", "n": "\n", "r": "\r", "t": "\t", "Z": "\x1a", "\\": "\\"}
_INSERT_MODIFIERS = {"LOW_PRIORITY", "DELAYED", "HIGH_PRIORITY", "IGNORE"}
_NON_COLUMN_WORDS = {"PRIMARY", "KEY", "UNIQUE", "INDEX", "CONSTRAINT", "FULLTEXT", "SPATIAL", "FOREIGN", "CHECK"}


def _read_quoted(sql: str, start: int, escapes: bool) -> tuple[str, int]:
    quote = sql[start]
    out: list[str] = []
    i = start + 1
    while i < len(sql):
        ch = sql[i]
        if ch == "\\" and escapes:
            if i + 1 >= len(sql):
                break
            nxt = sql[i + 1]
            out.append(_ESCAPES.get(nxt, "\\" + nxt if nxt in "%_" else nxt))
            i += 2
        elif ch == quote:
            if i + 1 < len(sql) and sql[i + 1] == quote:
                out.append(quote)
                i += 2
            else:
                return "".join(out), i + 1
        else:
            out.append(ch)
            i += 1
    raise SqlSyntaxError(f"unterminated quoted text at offset {start}")


def _tokenize(sql: str) -> list[_Token]:
    tokens: list[_Token] = []
    i, n = 0, len(sql)
    while i < n:
        c = sql[i]
        if c.isspace():
            i += 1
        elif c == "#" or (sql.startswith("--", i) and (i + 2 == n or sql[i + 2].isspace())):
            j = sql.find("\n", i)
            i = n if j < 0 else j + 1
        elif sql.startswith("/*", i):
            j = sql.find("*/", i + 2)
            if j < 0:
                raise SqlSyntaxError(f"unterminated comment at offset {i}")
            if sql.startswith(("/*!", "/*+"), i):
                tokens.append(_Token("exec", sql[i : j + 2], i, j + 2))
            i = j + 2
        elif c in "'\"":
            text, end = _read_quoted(sql, i, True)
            tokens.append(_Token("string", text, i, end))
            i = end
        elif c == "`":
            text, end = _read_quoted(sql, i, False)
            tokens.append(_Token("quoted", text, i, end))
            i = end
        elif c.isdigit() or (c == "." and i + 1 < n and sql[i + 1].isdigit()):
            m = _NUMBER.match(sql, i)
            tokens.append(_Token("number", m.group(), i, m.end()))
            i = m.end()
        elif (m := _WORD.match(sql, i)) is not None:
            tokens.append(_Token("word", m.group(), i, m.end()))
            i = m.end()
        else:
            tokens.append(_Token("punct", c, i, i + 1))
            i += 1
    return tokens


class _Cursor:
    def __init__(self, sql: str, tokens: list[_Token]) -> None:
        self.sql = sql
        self.tokens = tokens
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self) -> Optional[_Token]:
        return None if self.at_end() else self.tokens[self.pos]

    def next(self) -> _Token:
        tok = self.peek()
        if tok is None:
            raise SqlSyntaxError("unexpected end of statement")
        self.pos += 1
        return tok

    def peek_word(self) -> str:
        tok = self.peek()
        return tok.text.upper() if tok is not None and tok.kind == "word" else ""

    def take_punct(self, char: str) -> bool:
        tok = self.peek()
        if tok is not None and tok.kind == "punct" and tok.text == char:
            self.pos += 1
            return True
        return False

    def expect_punct(self, char: str) -> None:
        if not self.take_punct(char):
            raise SqlSyntaxError(f"expected {char!r}")

    def expect_word(self, *words: str) -> str:
        word = self.peek_word()
        if word not in words:
            raise SqlSyntaxError(f"expected one of {', '.join(words)}")
        self.pos += 1
        return word

    def name(self) -> str:
        tok = self.next()
        if tok.kind not in ("word", "quoted"):
            raise SqlSyntaxError("expected a name")
        return tok.text

    def qualified_name(self) -> tuple[Optional[str], str]:
        first = self.name()
        if self.take_punct("."):
            return first, self.name()
        return None, first

    def item(self) -> list[_Token]:
        """Collect the tokens of one list element, up to a top-level ',' or ')'."""
        depth = 0
        collected: list[_Token] = []
        while True:
            tok = self.peek()
            if tok is None:
                raise SqlSyntaxError("unterminated list")
            if tok.kind == "punct":
                if tok.text == "(":
                    depth += 1
                elif tok.text == ")":
                    if depth == 0:
                        return collected
                    depth -= 1
                elif tok.text == "," and depth == 0:
                    return collected
            collected.append(tok)
            self.pos += 1

    def value(self) -> Value:
        toks = self.item()
        if not toks:
            raise SqlSyntaxError("empty value")
        if len(toks) == 1:
            tok = toks[0]
            if tok.kind == "string":
                return Value(Value.STRING, tok.text)
            if tok.kind == "number":
                return Value(Value.NUMBER, tok.text)
            if tok.kind == "word" and tok.text.upper() == "NULL":
                return Value(Value.NULL)
        raw = self.sql[toks[0].start : toks[-1].end]
        if len(toks) == 2 and toks[0].kind == "punct" and toks[0].text in "+-" and toks[1].kind == "number":
            return Value(Value.NUMBER, raw)
        return Value(Value.LITERAL, raw)


def _parse_insert(cur: _Cursor, text: str) -> InsertStatement:
    verb = cur.next().text.upper()
    modifiers: list[str] = []
    while cur.peek_word() in _INSERT_MODIFIERS:
        modifiers.append(cur.next().text.upper())
    if cur.peek_word() == "INTO":
        cur.next()
    schema, table = cur.qualified_name()
    columns: list[str] = []
    if cur.take_punct("("):
        while True:
            columns.append(cur.name())
            if not cur.take_punct(","):
                break
        cur.expect_punct(")")
    cur.expect_word("VALUES", "VALUE")
    rows: list[list[Value]] = []
    while True:
        cur.expect_punct("(")
        row: list[Value] = []
        if not cur.take_punct(")"):
            while True:
                row.append(cur.value())
                if not cur.take_punct(","):
                    break
            cur.expect_punct(")")
        rows.append(row)
        if not cur.take_punct(","):
            break
    if not cur.at_end():
        raise SqlSyntaxError("unsupported clause after VALUES")
    return InsertStatement(verb, table, columns, rows, modifiers, schema, text)


def _parse_create_table(cur: _Cursor, text: str) -> CreateTableStatement:
    cur.expect_word("CREATE")
    if cur.peek_word() == "TEMPORARY":
        cur.next()
    cur.expect_word("TABLE")
    if cur.peek_word() == "IF":
        cur.next()
        cur.expect_word("NOT")
        cur.expect_word("EXISTS")
    schema, table = cur.qualified_name()
    columns: list[str] = []
    if cur.take_punct("("):
        while True:
            toks = cur.item()
            if toks:
                first = toks[0]
                if first.kind == "quoted" or (first.kind == "word" and first.text.upper() not in _NON_COLUMN_WORDS):
                    columns.append(first.text)
            if not cur.take_punct(","):
                break
        cur.expect_punct(")")
    return CreateTableStatement(table, columns, schema, text)


def _parse_one(sql: str, tokens: list[_Token], end: int) -> Statement:
    text = sql[tokens[0].start : end]
    first = tokens[0]
    if first.kind == "exec":
        return OtherStatement(text)
    if first.kind != "word":
        raise SqlSyntaxError(f"unexpected {first.text!r} at offset {first.start}")
    cur = _Cursor(sql, tokens)
    keyword = first.text.upper()
    if keyword in ("INSERT", "REPLACE"):
        return _parse_insert(cur, text)
    if keyword == "CREATE":
        words = [t.text.upper() for t in tokens[1:3] if t.kind == "word"]
        if words[:1] == ["TABLE"] or words == ["TEMPORARY", "TABLE"]:
            return _parse_create_table(cur, text)
    return OtherStatement(text)


def parse_statements(sql: str) -> list[Statement]:
    """Parse every ';'-terminated statement; comments and blank text yield none."""
    statements: list[Statement] = []
    current: list[_Token] = []
    for tok in _tokenize(sql):
        if tok.kind == "punct" and tok.text == ";":
            if current:
                statements.append(_parse_one(sql, current, tok.end))
            current = []
        else:
            current.append(tok)
    if current:
        raise SqlSyntaxError("unterminated statement")
    return statements


def _quote_name(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _restore_value(value: Value) -> str:
    if value.kind == Value.STRING:
        return "'" + (value.text or "").replace("\\", "\\\\").replace("'", "''") + "'"
    if value.kind == Value.NULL:
        return "NULL"
    return value.text or ""


def restore(statement: Statement) -> str:
    """Render a statement as one line of SQL, terminated by ';' and a newline."""
    if not isinstance(statement, InsertStatement):
        text = statement.text
        return (text if text.endswith(";") else text + ";") + "\n"
    head = " ".join([statement.verb, *statement.modifiers, "INTO"])
    table = _quote_name(statement.table)
    if statement.schema is not None:
        table = _quote_name(statement.schema) + "." + table
    parts = [head, table]
    if statement.columns:
        parts.append("(" + ",".join(_quote_name(c) for c in statement.columns) + ")")
    rows = ",".join("(" + ",".join(_restore_value(v) for v in row) + ")" for row in statement.rows)
    parts.append("VALUES " + rows)
    return " ".join(parts).replace("\n", "\\n") + ";\n"