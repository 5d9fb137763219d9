"""Render persisted scripts into SQL, JSON, and Markdown report bundles."""

from __future__ import annotations

import json
from pathlib import Path

from curriculum_sql.models import HistoryRecord
from curriculum_sql.parser import extract_curricular_items


def render_script(
    record: HistoryRecord,
    validation: list[str],
    output_root: Path,
) -> Path:
    """Write a script package to disk and return the output directory.

    Args:
        record: Persisted or in-memory history record.
        validation: Validation findings for the script body.
        output_root: Root directory where per-record folders are created.

    Returns:
        The record-specific directory containing rendered files.
    """
    target_dir = output_root / record.record_id
    target_dir.mkdir(parents=True, exist_ok=True)

    sql_path = target_dir / f"{_safe_file_name(record.file_name)}.sql"
    sql_path.write_text(record.sql, encoding="utf-8")

    json_payload = {
        "record": record.model_dump(mode="json"),
        "validation": validation,
    }
    (target_dir / "record.json").write_text(
        json.dumps(json_payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )

    (target_dir / "report.md").write_text(_render_markdown(record, validation), encoding="utf-8")

    return target_dir


def _render_markdown(record: HistoryRecord, validation: list[str]) -> str:
    """Render a human-readable Markdown report of a script."""
    items = extract_curricular_items(record.sql)
    lines = [
        f"# {record.file_name}",
        "",
        f"- Record ID: `{record.record_id}`",
        f"- Created: `{record.created_at.isoformat()}`",
        f"- Subject: {record.subject or '-'}",
        f"- Course: {record.course or '-'}",
        f"- Region: {record.region or '-'}",
        "",
        "## Validation",
        "",
    ]
    if validation:
        lines.extend(f"- {message}" for message in validation)
    else:
        lines.append("No defects detected.")

    lines.extend(["", "## Curricular Items", ""])
    for title, names in (
        ("Competencies", items.competencies),
        ("Criteria", items.criteria),
        ("Knowledge", items.knowledge),
    ):
        lines.append(f"### {title} ({len(names)})")
        lines.extend(f"- {name}" for name in names)
        lines.append("")

    return "\n".join(lines)


def _safe_file_name(name: str) -> str:
    """Replace path separators so a derived name stays inside its folder."""
    cleaned = name.replace("/", "_").replace("\\", "_").strip(". ")
    return cleaned or "curriculo"
