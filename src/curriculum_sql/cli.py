"""Typer-based CLI for generating, validating, and refining curriculum SQL scripts."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

import typer

from curriculum_sql.generator import DEFAULT_MODEL_NAME, GeminiGenerator, resolve_gemini_api_key
from curriculum_sql.models import HistoryRecord, Notification, SourceMeta
from curriculum_sql.orchestrator import GenerationSession, finalize_body
from curriculum_sql.parser import extract_curricular_items, parse_evaluable_items
from curriculum_sql.prompting import SQL_HEADER
from curriculum_sql.renderer import render_script
from curriculum_sql.store import Store
from curriculum_sql.validator import validate_sql

app = typer.Typer(add_completion=False, help="curriculum-sql: turn curriculum text into a checked SQL script")

DEFAULT_DB_PATH = Path(".curriculum_sql/history.db")
DEFAULT_OUTPUT_ROOT = Path("scripts")
LOCAL_OWNER = "local"

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log collaborator calls and failures")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _echo_step(step: int, total: int, message: str) -> None:
    """Print a normalized progress step line."""
    typer.echo(f"[{step}/{total}] {message}")


def _echo_notification(notification: Notification) -> None:
    typer.echo(f"    {notification.level}: {notification.message}")


def _echo_findings(findings: list[str]) -> None:
    if not findings:
        typer.echo("No defects detected.")
        return
    for message in findings:
        typer.echo(f"- {message}")


def _read_text(path: Path) -> str:
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def split_header(text: str, header: str = SQL_HEADER) -> str:
    """Return the script body of ``text``, dropping the fixed header when present."""
    if text.startswith(header):
        return text[len(header):].strip()
    return text.strip()


def _build_session(model_name: str, **kwargs) -> GenerationSession:
    generator = GeminiGenerator(model_name=model_name)
    return GenerationSession(
        generator.stream_sql,
        generator.refine_sql,
        generator.refine_text,
        notify=_echo_notification,
        **kwargs,
    )


def _local_record(session: GenerationSession, owner_id: str | None) -> HistoryRecord:
    artifact = session.current_artifact()
    return HistoryRecord(
        record_id=uuid.uuid4().hex[:12],
        owner_id=owner_id or LOCAL_OWNER,
        created_at=datetime.now(timezone.utc),
        subject=session.meta.subject,
        course=session.meta.course,
        region=session.meta.region,
        file_name=artifact.file_name,
        sql=artifact.text,
    )


@app.command("init-db")
def init_db(
    db_path: Path = typer.Option(DEFAULT_DB_PATH, "--db", envvar="CURRICULUM_SQL_DB", help="SQLite database path"),
) -> None:
    """Initialize the SQLite history schema."""
    store = Store(db_path)
    store.init_db()
    typer.echo(f"DB initialized: {db_path}")


@app.command("generate")
def generate(
    source: Path = typer.Argument(..., help="Curriculum text file"),
    db_path: Path = typer.Option(DEFAULT_DB_PATH, "--db", envvar="CURRICULUM_SQL_DB", help="SQLite database path"),
    owner: str | None = typer.Option(None, help="Owner id; scripts are saved to history only when set"),
    subject: str = typer.Option("", help="Subject name stored with the script"),
    course: str = typer.Option("", help="Course stored with the script"),
    region: str = typer.Option("", help="Region stored with the script"),
    model_name: str = typer.Option(
        DEFAULT_MODEL_NAME, "--model", envvar="CURRICULUM_SQL_MODEL", help="Gemini model name"
    ),
    output_root: Path = typer.Option(DEFAULT_OUTPUT_ROOT, help="Script output directory"),
    no_db: bool = typer.Option(False, "--no-db", help="Do not persist the script to SQLite"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Stream a script for a curriculum, auto-correct it, validate it, and render it."""
    _configure_logging(verbose)
    total_steps = 4

    _echo_step(1, total_steps, "Reading curriculum text")
    source_text = _read_text(source)
    if not source_text.strip():
        raise typer.BadParameter("Curriculum file is empty.")

    store: Store | None = None
    if not no_db:
        store = Store(db_path)
        store.init_db()

    last_reported = -1

    def _on_update(_display: str, progress: int) -> None:
        nonlocal last_reported
        bucket = progress // 10
        if bucket > last_reported:
            last_reported = bucket
            typer.echo(f"    streaming... {progress}%")

    session = _build_session(
        model_name,
        history=store,
        owner_id=owner,
        meta=SourceMeta(subject=subject, course=course, region=region),
        on_update=_on_update,
    )

    _echo_step(2, total_steps, f"Generating script with {model_name}")
    ok = asyncio.run(session.start_generation(source_text))
    if not ok:
        typer.echo(f"Generation failed at {session.current_progress()}%: {session.last_error}", err=True)
        raise typer.Exit(code=1)

    _echo_step(3, total_steps, "Validating script")
    findings = session.current_validation()
    _echo_findings(findings)

    _echo_step(4, total_steps, "Rendering script package")
    record = session.last_record or _local_record(session, owner)
    out_dir = render_script(record, findings, output_root=output_root)
    typer.echo(f"Generation complete. id={record.record_id} file={record.file_name} path={out_dir}")


@app.command("refine")
def refine(
    script: Path = typer.Argument(..., help="SQL script file to refine"),
    instructions: list[str] = typer.Argument(..., help="One or more correction instructions, applied in order"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of in place"),
    model_name: str = typer.Option(
        DEFAULT_MODEL_NAME, "--model", envvar="CURRICULUM_SQL_MODEL", help="Gemini model name"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Apply conversational correction rounds to an existing script."""
    _configure_logging(verbose)
    text = _read_text(script)
    session = _build_session(model_name)
    session.load_record(
        HistoryRecord(
            record_id=script.stem,
            owner_id=LOCAL_OWNER,
            created_at=datetime.now(timezone.utc),
            file_name=script.stem,
            sql=text,
        )
    )
    if not session.current_artifact().body:
        raise typer.BadParameter("Script file has no statements to refine.")

    async def _run() -> None:
        for instruction in instructions:
            await session.refine(instruction)

    asyncio.run(_run())

    for entry in session.script_log():
        typer.echo(f"{entry.role}: {entry.content}")

    target = output or script
    target.write_text(session.current_artifact().text, encoding="utf-8")
    _echo_findings(session.current_validation())
    typer.echo(f"Script written: {target}")


@app.command("correct")
def correct(
    script: Path = typer.Argument(..., help="SQL script file to auto-correct"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
) -> None:
    """Apply the deterministic auto-correction to a script body."""
    text = _read_text(script)
    body = finalize_body(split_header(text))
    result = f"{SQL_HEADER}\n{body}" if text.startswith(SQL_HEADER) else body
    if output:
        output.write_text(result, encoding="utf-8")
        typer.echo(f"Corrected script written: {output}")
    else:
        typer.echo(result, nl=False)


@app.command("validate")
def validate(
    script: Path = typer.Argument(..., help="SQL script file to check"),
) -> None:
    """Report advisory defects in a script; exits 1 when any are found."""
    findings = validate_sql(split_header(_read_text(script)))
    _echo_findings(findings)
    if findings:
        raise typer.Exit(code=1)


@app.command("items")
def items(
    script: Path = typer.Argument(..., help="SQL script file to inspect"),
) -> None:
    """List competencies, criteria, and knowledge items found in a script."""
    sql = _read_text(script)
    extracted = extract_curricular_items(sql)
    for title, names in (
        ("Competencies", extracted.competencies),
        ("Criteria", extracted.criteria),
        ("Knowledge", extracted.knowledge),
    ):
        typer.echo(f"{title} ({len(names)}):")
        for name in names:
            typer.echo(f"  - {name}")

    evaluable = parse_evaluable_items(sql)
    typer.echo(f"Evaluable groups: {len(evaluable)}")
    for item in evaluable:
        typer.echo(f"  {item.parent.temp_id}: {len(item.children)} criteria")


@app.command("history")
def history(
    owner: str = typer.Option(..., help="Owner id"),
    db_path: Path = typer.Option(DEFAULT_DB_PATH, "--db", envvar="CURRICULUM_SQL_DB", help="SQLite database path"),
    limit: int = typer.Option(20, help="Maximum records to list"),
) -> None:
    """List saved scripts for an owner, newest first."""
    store = Store(db_path)
    store.init_db()
    records = store.list_history(owner, limit=limit)
    if not records:
        typer.echo("No saved scripts.")
        return
    for record in records:
        typer.echo(
            f"{record.record_id}  {record.created_at.isoformat()}  {record.file_name}  "
            f"{record.subject or '-'} / {record.course or '-'}"
        )


@app.command("render")
def render(
    record_id: str = typer.Argument(..., help="History record id"),
    db_path: Path = typer.Option(DEFAULT_DB_PATH, "--db", envvar="CURRICULUM_SQL_DB", help="SQLite database path"),
    output_root: Path = typer.Option(DEFAULT_OUTPUT_ROOT, help="Script output directory"),
) -> None:
    """Render a saved script to SQL, JSON, and Markdown outputs."""
    store = Store(db_path)
    record = store.get_record(record_id)
    if not record:
        raise typer.BadParameter(f"Record not found: {record_id}")

    findings = validate_sql(split_header(record.sql))
    out_dir = render_script(record, findings, output_root=output_root)
    typer.echo(f"Rendered script to: {out_dir}")


@app.command("doctor")
def doctor(
    db_path: Path = typer.Option(DEFAULT_DB_PATH, "--db", envvar="CURRICULUM_SQL_DB", help="SQLite database path"),
) -> None:
    """Print local environment diagnostics used by the CLI."""
    api_key = resolve_gemini_api_key()
    has_db = db_path.exists()
    typer.echo(f"DB exists: {has_db} ({db_path})")
    typer.echo(f"GEMINI_API_KEY set: {bool(api_key)}")


if __name__ == "__main__":
    app()
