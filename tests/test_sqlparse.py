import pytest

from pipeclean.sqlparse import (
    CreateTableStatement,
    InsertStatement,
    OtherStatement,
    SqlSyntaxError,
    Value,
    parse_statements,
    restore,
)

NAMED = "INSERT INTO `bank_accounts` (`id`,`routing_number`) VALUES (1,'111000025'),(2,'226073523');"


def test_named_insert_round_trip():
    [stmt] = parse_statements(NAMED + "\n")
    assert isinstance(stmt, InsertStatement)
    assert stmt.table == "bank_accounts"
    assert stmt.columns == ["id", "routing_number"]
    assert stmt.rows[0] == [Value(Value.NUMBER, "1"), Value(Value.STRING, "111000025")]
    assert restore(stmt) == NAMED + "\n"


def test_positional_insert_round_trip():
    line = "INSERT INTO `emails` VALUES (1,'a@example.com'),(2,'b@example.com');"
    [stmt] = parse_statements(line)
    assert stmt.columns == []
    assert len(stmt.rows) == 2
    assert restore(stmt) == line + "\n"


def test_escapes_and_kinds():
    [stmt] = parse_statements("insert into t values ('O\\'Brien','a\\nb',NULL,-5);")
    row = stmt.rows[0]
    assert row[0].text == "O'Brien"
    assert row[1].text == "a\nb"
    assert row[2].kind == Value.NULL
    assert row[3] == Value(Value.NUMBER, "-5")
    assert restore(stmt) == "INSERT INTO `t` VALUES ('O''Brien','a\\nb',NULL,-5);\n"


def test_insert_ignore_round_trip():
    line = "INSERT IGNORE INTO `t` VALUES (1);"
    assert restore(parse_statements(line)[0]) == line + "\n"


def test_create_table_columns():
    sql = (
        "CREATE TABLE `people` (\n"
        "  `id` bigint NOT NULL,\n"
        "  `name` varchar(255) DEFAULT NULL,\n"
        "  PRIMARY KEY (`id`),\n"
        "  KEY `idx` (`name`)\n"
        ") ENGINE=InnoDB;\n"
    )
    [stmt] = parse_statements(sql)
    assert isinstance(stmt, CreateTableStatement)
    assert stmt.table == "people"
    assert stmt.columns == ["id", "name"]


def test_other_statements_keep_text():
    stmts = parse_statements("LOCK TABLES `x` WRITE; UNLOCK TABLES;")
    assert [type(s) for s in stmts] == [OtherStatement, OtherStatement]
    assert stmts[0].text == "LOCK TABLES `x` WRITE;"
    assert restore(stmts[1]) == "UNLOCK TABLES;\n"


def test_executable_comment_is_a_statement():
    line = "/*!40101 SET NAMES utf8 */;"
    [stmt] = parse_statements(line)
    assert stmt.text == line


@pytest.mark.parametrize("text", ["-- hello\n", "\n", "/* note */\n", "# x\n"])
def test_comments_and_blanks_yield_nothing(text):
    assert parse_statements(text) == []


@pytest.mark.parametrize(
    "text",
    ["INSERT INTO t VALUES ('abc);", "  `id` int NOT NULL,\n", ") ENGINE=InnoDB;", "CREATE TABLE `x` (\n"],
)
def test_syntax_errors(text):
    with pytest.raises(SqlSyntaxError):
        parse_statements(text)


def test_newline_in_string_is_escaped_on_restore():
    [stmt] = parse_statements("INSERT INTO t VALUES ('a');")
    stmt.rows[0][0] = Value(Value.STRING, "x\ny")
    out = restore(stmt)
    assert out.count("\n") == 1
    assert "x\\ny" in out