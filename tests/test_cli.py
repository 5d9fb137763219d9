from __future__ import annotations

import pytest
from typer.testing import CliRunner

from curriculum_sql.cli import app, split_header
from curriculum_sql.prompting import SQL_HEADER
from curriculum_sql.store import Store

runner = CliRunner()


class FakeGenerator:
    fragments = ["INSERT INTO t VALUES (1,'a'", ");"]

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name

    async def stream_sql(self, curriculum: str):
        for fragment in self.fragments:
            yield fragment

    async def refine_sql(self, current_sql: str, user_request: str) -> str:
        return current_sql.replace("'a'", "'b'")

    async def refine_text(self, current_text: str, user_request: str) -> str:
        return current_text


@pytest.fixture
def fake_generator(monkeypatch: pytest.MonkeyPatch) -> type[FakeGenerator]:
    monkeypatch.setattr("curriculum_sql.cli.GeminiGenerator", FakeGenerator)
    return FakeGenerator


def test_split_header_given_full_script_when_split_then_body_is_returned(script_body) -> None:
    # Given
    text = f"{SQL_HEADER}\n{script_body}"

    # When
    body = split_header(text)

    # Then
    assert body == script_body.strip()


def test_correct_command_given_broken_script_when_run_then_corrected_body_is_printed(tmp_path) -> None:
    # Given
    script = tmp_path / "broken.sql"
    script.write_text("```sql\nINSERT INTO t VALUES (1, (2,;\n```", encoding="utf-8")

    # When
    result = runner.invoke(app, ["correct", str(script)])

    # Then
    assert result.exit_code == 0
    assert result.output == "INSERT INTO t VALUES (1, (2));\n"


def test_validate_command_given_defective_script_when_run_then_exit_code_is_one(tmp_path) -> None:
    # Given
    script = tmp_path / "bad.sql"
    script.write_text(f"{SQL_HEADER}\nINSERT INTO t VALUES ('x);\n", encoding="utf-8")

    # When
    result = runner.invoke(app, ["validate", str(script)])

    # Then
    assert result.exit_code == 1
    assert "Possibly unterminated quoted literal on line 1." in result.output


def test_validate_command_given_clean_script_when_run_then_no_defects_are_reported(tmp_path, script_body) -> None:
    # Given
    script = tmp_path / "good.sql"
    script.write_text(f"{SQL_HEADER}\n{script_body}", encoding="utf-8")

    # When
    result = runner.invoke(app, ["validate", str(script)])

    # Then
    assert result.exit_code == 0
    assert "No defects detected." in result.output


def test_items_command_given_script_when_run_then_groups_are_listed(tmp_path, script_body) -> None:
    # Given
    script = tmp_path / "good.sql"
    script.write_text(script_body, encoding="utf-8")

    # When
    result = runner.invoke(app, ["items", str(script)])

    # Then
    assert result.exit_code == 0
    assert "Competencies (1):" in result.output
    assert "  - Resolver problemas" in result.output
    assert "CE_1: 2 criteria" in result.output


def test_generate_command_given_owner_when_run_then_script_is_saved_and_rendered(
    tmp_path,
    fake_generator,
) -> None:
    # Given
    source = tmp_path / "curriculum.txt"
    source.write_text("Competencia 1", encoding="utf-8")
    db_path = tmp_path / "history.db"
    output_root = tmp_path / "scripts"

    # When
    result = runner.invoke(
        app,
        [
            "generate",
            str(source),
            "--db",
            str(db_path),
            "--owner",
            "teacher-1",
            "--subject",
            "Matemáticas",
            "--output-root",
            str(output_root),
        ],
    )

    # Then
    assert result.exit_code == 0, result.output
    assert "success: SQL script generated and saved." in result.output
    records = Store(db_path).list_history("teacher-1")
    assert len(records) == 1
    assert records[0].subject == "Matemáticas"
    assert (output_root / records[0].record_id / "curriculo.sql").exists()


def test_refine_command_given_instruction_when_run_then_script_is_rewritten_in_place(
    tmp_path,
    fake_generator,
) -> None:
    # Given
    script = tmp_path / "script.sql"
    script.write_text(f"{SQL_HEADER}\nINSERT INTO t VALUES (1,'a');\n", encoding="utf-8")

    # When
    result = runner.invoke(app, ["refine", str(script), "use b"])

    # Then
    assert result.exit_code == 0, result.output
    assert "user: use b" in result.output
    assert "system: SQL script updated." in result.output
    assert script.read_text(encoding="utf-8") == f"{SQL_HEADER}\nINSERT INTO t VALUES (1,'b');\n"


def test_history_and_render_commands_given_saved_record_when_run_then_record_is_listed_and_rendered(
    tmp_path,
    history_record,
) -> None:
    # Given
    db_path = tmp_path / "history.db"
    store = Store(db_path)
    store.init_db()
    store.save_record(history_record)
    output_root = tmp_path / "scripts"

    # When
    listed = runner.invoke(app, ["history", "--owner", "teacher-1", "--db", str(db_path)])
    rendered = runner.invoke(
        app, ["render", history_record.record_id, "--db", str(db_path), "--output-root", str(output_root)]
    )

    # Then
    assert listed.exit_code == 0
    assert history_record.record_id in listed.output
    assert rendered.exit_code == 0
    assert (output_root / history_record.record_id / "report.md").exists()
