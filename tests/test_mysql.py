import io
import re

import pytest

from pipeclean.models import DictModel
from pipeclean.mysql import (
    Context,
    InsertState,
    extract,
    extract_line,
    learn_line,
    learn_lines,
    scrub_line,
    scrub_lines,
)
from pipeclean.policy import Disposition, FieldNameRule, Policy, default_policy
from pipeclean.scrubber import Scrubber
from pipeclean.sqlparse import SqlSyntaxError

CREATE_TABLES = """-- Table structure
DROP TABLE IF EXISTS `ar_internal_metadata`;
/*!40101 SET @saved_cs_client     = @@character_set_client */;
CREATE TABLE `ar_internal_metadata` (
  `key` varchar(255) NOT NULL,
  `value` varchar(255) DEFAULT NULL,
  `created_at` datetime(6) NOT NULL,
  `updated_at` datetime(6) NOT NULL,
  PRIMARY KEY (`key`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
/*!40101 SET character_set_client = @saved_cs_client */;
"""

INSERT_NAMED = (
    "LOCK TABLES `bank_accounts` WRITE;\n"
    "INSERT INTO `bank_accounts` (`id`, `routing_number`) VALUES (1,'123456789'),(2,'987654321');\n"
    "UNLOCK TABLES;\n"
)

INSERT_POSITIONAL = """DROP TABLE IF EXISTS `emails`;
CREATE TABLE `emails` (
  `id` bigint NOT NULL AUTO_INCREMENT,
  `email` varchar(255) NOT NULL,
  PRIMARY KEY (`id`)
) ENGINE=InnoDB;
LOCK TABLES `emails` WRITE;
INSERT INTO `emails` VALUES (1,'alice@example.com'),(2,'bob@example.com');
UNLOCK TABLES;
"""


def scan(text):
    ctx = Context()
    ctx.scan(text)
    return ctx


def scrub(ctx, text, policy=None):
    if policy is None:
        policy = default_policy()
    scrubber = Scrubber("", False, policy, None)
    return "".join(scrub_lines(ctx, scrubber, text.splitlines(keepends=True)))


def test_scan_create_tables():
    ctx = scan(CREATE_TABLES)
    assert ctx.table_columns == {
        "ar_internal_metadata": ["key", "value", "created_at", "updated_at"],
    }


def test_scan_lowercases_names():
    ctx = scan("CREATE TABLE `Users` (`ID` int, `Name` text);")
    assert ctx.table_columns == {"users": ["id", "name"]}


def test_scan_syntax_error_records_nothing():
    ctx = Context()
    with pytest.raises(SqlSyntaxError):
        ctx.scan("CREATE TABLE (")
    assert ctx.table_columns == {}


def test_create_tables():
    output = scrub(Context(), CREATE_TABLES)
    assert "DROP TABLE IF EXISTS" in output
    assert "CREATE TABLE" in output


def test_create_tables_pass_through_unchanged():
    assert scrub(Context(), CREATE_TABLES) == CREATE_TABLES


def test_insert_named():
    output = scrub(Context(), INSERT_NAMED)
    assert "LOCK TABLES" in output
    assert (
        "INSERT INTO `bank_accounts` (`id`,`routing_number`) VALUES (1,'123456789'),(2,'987654321');"
        in output
    )
    assert "UNLOCK TABLES" in output


def test_insert_positional():
    ctx = scan(INSERT_POSITIONAL)
    output = scrub(ctx, INSERT_POSITIONAL)
    masker = Scrubber("", False, default_policy(), None)
    first = masker.mask("alice@example.com")
    second = masker.mask("bob@example.com")
    assert "LOCK TABLES" in output
    assert f"INSERT INTO `emails` VALUES (1,'{first}'),(2,'{second}');" in output
    assert "UNLOCK TABLES" in output
    assert "alice@example.com" not in output
    assert first.endswith(".com")


def test_insert_positional_no_scan():
    output = scrub(Context(), INSERT_POSITIONAL)
    assert "LOCK TABLES" in output
    assert "INSERT INTO `emails` VALUES" in output
    assert "bob@example.com" not in output


def test_comment_line_passes_through():
    line = "-- MySQL dump\n"
    assert scrub_line(Context(), Scrubber(), line) == line


def test_insert_output_is_followed_by_blank_line():
    line = "INSERT INTO `t` (`id`,`note`) VALUES (1,'hello');\n"
    output = scrub_line(Context(), Scrubber(policy=default_policy()), line)
    assert output == "INSERT INTO `t` (`id`,`note`) VALUES (1,'hello');\n\n"


def test_erase_becomes_null():
    policy = Policy(field_name=[FieldNameRule(re.compile("notes"), Disposition("erase"))])
    line = "INSERT INTO `t` (`id`,`notes`) VALUES (1,'hello');\n"
    output = scrub_line(Context(), Scrubber(policy=policy), line)
    assert output == "INSERT INTO `t` (`id`,`notes`) VALUES (1,NULL);\n\n"


def test_replace_disposition():
    policy = Policy(field_name=[FieldNameRule(re.compile("notes"), Disposition("replace(x)"))])
    line = "INSERT INTO `t` (`id`,`notes`) VALUES (1,'hello'),(2,'world');\n"
    output = scrub_line(Context(), Scrubber(policy=policy), line)
    assert "VALUES (1,'x'),(2,'x');" in output


def test_inconsistent_row_lengths():
    with pytest.raises(ValueError, match="inconsistent INSERT row lengths"):
        scrub_line(Context(), Scrubber(), "INSERT INTO `t` VALUES (1,'a'),(2);\n")


def test_insert_state_names_cycle_through_columns():
    state = InsertState("users", ["id", "name"], 2)
    assert state.names() == ["id", "users.id", "users.0"]
    state.advance()
    assert state.names() == ["name", "users.name", "users.1"]
    state.advance()
    assert state.names() == ["id", "users.id", "users.0"]


def test_insert_state_without_table_has_no_names():
    assert InsertState("", [], 3).names() == []


def test_insert_state_observe_context():
    ctx = Context({"users": ["id", "name"]})
    state = InsertState("users", [], 2)
    state.observe_context(ctx)
    assert state.names() == ["id", "users.id", "users.0"]

    late = InsertState("users", [], 2)
    late.advance()
    late.observe_context(ctx)
    assert late.names() == ["users.1"]


def _learning_policy():
    return Policy(field_name=[FieldNameRule(re.compile("name"), Disposition("generate(names)"))])


def test_learn_trains_generating_models():
    models = {"names": DictModel()}
    learn_lines(
        Context(),
        models,
        _learning_policy(),
        ["INSERT INTO `people` (`id`,`name`) VALUES (1,'Alice'),(2,'Bob');\n"],
    )
    assert models["names"].recognize("alice") == 1.0
    assert models["names"].recognize("bob") == 1.0
    assert models["names"].recognize("carol") == 0.0


def test_learn_ignores_unparseable_lines():
    models = {"names": DictModel()}
    learn_line(Context(), models, _learning_policy(), "INSERT INTO `people` VALUES (\n")
    assert models["names"].words == set()


def test_extract_line():
    ctx = scan(INSERT_POSITIONAL)
    line = "INSERT INTO `emails` VALUES (1,'alice@example.com'),(2,'bob@example.com');\n"
    assert extract_line(ctx, ["email"], line) == ["alice@example.com", "bob@example.com"]
    assert extract_line(ctx, ["id"], line) == []


def test_extract_stream():
    ctx = scan(INSERT_POSITIONAL)
    reader = io.StringIO(
        "INSERT INTO `emails` VALUES (1,'alice@example.com');\n"
        "INSERT INTO `emails` VALUES (2,'bob@example.com');"
    )
    writer = io.StringIO()
    count = extract(ctx, ["emails.email"], reader, writer)
    assert count == 1
    assert writer.getvalue() == "alice@example.com\n"