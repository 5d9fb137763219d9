from __future__ import annotations

import pytest

from curriculum_sql.autocorrect import auto_correct_sql
from curriculum_sql.validator import UNBALANCED_PARENTHESES, validate_sql

IDEMPOTENCE_INPUTS = [
    "",
    "   \n\t ",
    ";",
    "SELECT 1",
    "a; b",
    "a); b)",
    "x;;",
    "VALUES (1,2),;",
    "VALUES (1),\n  ;",
    "INSERT INTO t VALUES (1, (2, 3",
    "INSERT INTO a VALUES (1;\nINSERT INTO b VALUES (2);",
    "a;\r\n\r\nb",
    "a;\n;\n",
    "a,\nb",
    "first;\n\n\n   second  \n",
    "a,,;",
    "x,,;\ny",
    "VALUES (1), ,;",
]


def test_auto_correct_sql_given_blank_input_when_corrected_then_empty_string_is_returned() -> None:
    # Given
    raw = "  \n\t  "

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == ""


def test_auto_correct_sql_given_missing_terminator_when_corrected_then_semicolon_is_appended() -> None:
    # Given
    raw = "  INSERT INTO t VALUES (1)  "

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "INSERT INTO t VALUES (1);\n"


def test_auto_correct_sql_given_trailing_comma_when_corrected_then_dangling_separator_is_removed() -> None:
    # Given
    raw = "VALUES (1,2),;"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "VALUES (1,2);\n"


def test_auto_correct_sql_given_repeated_trailing_commas_when_corrected_then_whole_run_is_removed() -> None:
    # Given
    raws = ["a,,;", "VALUES (1), ,;"]

    # When
    corrected = [auto_correct_sql(raw) for raw in raws]

    # Then
    assert corrected == ["a;\n", "VALUES (1);\n"]


def test_auto_correct_sql_given_missing_closers_when_corrected_then_they_are_inserted_before_terminator() -> None:
    # Given
    raw = "INSERT INTO t VALUES (1, (2, 3"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "INSERT INTO t VALUES (1, (2, 3));\n"
    assert corrected.count("(") == corrected.count(")")
    assert validate_sql(corrected) == []


def test_auto_correct_sql_given_several_statements_when_closers_missing_then_last_terminator_gets_them() -> None:
    # Given
    raw = "INSERT INTO a VALUES (1;\nINSERT INTO b VALUES (2);"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "INSERT INTO a VALUES (1;\n\nINSERT INTO b VALUES (2));\n"


def test_auto_correct_sql_given_surplus_closers_when_corrected_then_they_are_left_in_place() -> None:
    # Given
    raw = "a); b)"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "a); b);\n"
    assert UNBALANCED_PARENTHESES in validate_sql(corrected)


def test_auto_correct_sql_given_loose_statements_when_corrected_then_they_are_normalized() -> None:
    # Given
    raw = "INSERT INTO a VALUES (1);\n\n\n   INSERT INTO b VALUES (2)\n"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "INSERT INTO a VALUES (1);\n\nINSERT INTO b VALUES (2);\n"


def test_auto_correct_sql_given_crlf_breaks_when_corrected_then_statements_are_split() -> None:
    # Given
    raw = "a;\r\nb"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "a;\n\nb;\n"


def test_auto_correct_sql_given_inline_terminators_when_corrected_then_line_is_not_split() -> None:
    # Given
    raw = "a; b"

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected == "a; b;\n"


def test_auto_correct_sql_given_generated_script_when_corrected_then_each_statement_is_separated(
    script_body,
) -> None:
    # Given
    statement_count = script_body.count(";\n")

    # When
    corrected = auto_correct_sql(script_body)

    # Then
    statements = corrected.rstrip("\n").split("\n\n")
    assert len(statements) == statement_count
    assert all(statement.endswith(";") for statement in statements)
    assert corrected.endswith("temp_id;\n")


@pytest.mark.parametrize("raw", IDEMPOTENCE_INPUTS)
def test_auto_correct_sql_given_any_input_when_applied_twice_then_output_is_stable(raw: str) -> None:
    # Given
    once = auto_correct_sql(raw)

    # When
    twice = auto_correct_sql(once)

    # Then
    assert twice == once


@pytest.mark.parametrize("raw", [value for value in IDEMPOTENCE_INPUTS if value.strip()])
def test_auto_correct_sql_given_non_empty_input_when_corrected_then_script_is_terminated(raw: str) -> None:
    # Given
    # Non-blank input.

    # When
    corrected = auto_correct_sql(raw)

    # Then
    assert corrected.endswith(";\n")
    assert not corrected.endswith("\n\n")
