"""Generation session: stream, finalize, persist, and refine a curriculum script."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

from curriculum_sql.autocorrect import auto_correct_sql
from curriculum_sql.models import (
    DEFAULT_FILE_NAME,
    CorrectionLogEntry,
    HistoryRecord,
    Notification,
    ScriptArtifact,
    SessionPhase,
    SourceMeta,
)
from curriculum_sql.prompting import SQL_HEADER
from curriculum_sql.refinement import RefinableText, RewriteFn
from curriculum_sql.streaming import StreamingAssemblyBuffer, strip_code_fence
from curriculum_sql.validator import validate_sql

logger = logging.getLogger(__name__)

StreamFn = Callable[[str], AsyncIterator[str]]
ExtractFn = Callable[[Any], Awaitable[str]]

FILE_NAME_RE = re.compile(
    r"INSERT INTO entidades \(tipo, codigo, nombre, traza_evalua, temp_id\) VALUES\s*\(0, '[^']+', '([^']+)'"
)

GENERATION_FAILED = "Error while generating the SQL script."
GENERATED_AND_SAVED = "SQL script generated and saved."
SAVE_FAILED = "SQL script generated but it could not be saved."
EXTRACTION_FAILED = "Could not extract the curriculum text from the document."


class SessionStateError(RuntimeError):
    """Raised when an operation is not allowed in the current session phase."""


class HistoryCollaborator(Protocol):
    def persist(
        self,
        artifact: ScriptArtifact,
        owner_id: str,
        meta: SourceMeta | None = None,
    ) -> HistoryRecord: ...


def finalize_body(raw_body: str) -> str:
    """Strip code fences from a raw body and auto-correct it."""
    return auto_correct_sql(strip_code_fence(raw_body).strip())


def derive_file_name(body: str) -> str:
    """Derive a file-name token from the subject row of a script.

    The token is the name of the first ``tipo = 0`` entity with whitespace
    runs replaced by ``_``; ``curriculo`` when no such row exists.
    """
    match = FILE_NAME_RE.search(body)
    if not match:
        return DEFAULT_FILE_NAME
    return re.sub(r"\s+", "_", match.group(1))


class GenerationSession:
    """One user's generation session for a single curriculum script.

    The session owns the artifact, progress, validation report, and both
    correction logs. Callers serialize operations: a new generation or a
    script refinement is rejected while a generation is running, and a second
    refinement is rejected while one is outstanding.

    Args:
        generate_stream: Streams script fragments for a curriculum text.
        rewrite_sql: Rewrites the script body for an instruction.
        rewrite_text: Rewrites the curriculum text for an instruction.
        extract: Optional document-to-text extractor used by :meth:`load_source`.
        history: Optional persistence collaborator.
        owner_id: Authenticated owner; finalized scripts are persisted only
            when both ``owner_id`` and ``history`` are set.
        meta: Curriculum metadata saved alongside persisted scripts.
        header: Fixed preamble prepended to every artifact.
        notify: Receives every surfaced :class:`Notification`.
        on_update: Receives ``(display_text, progress)`` while streaming.
    """

    def __init__(
        self,
        generate_stream: StreamFn,
        rewrite_sql: RewriteFn,
        rewrite_text: RewriteFn,
        *,
        extract: ExtractFn | None = None,
        history: HistoryCollaborator | None = None,
        owner_id: str | None = None,
        meta: SourceMeta | None = None,
        header: str = SQL_HEADER,
        notify: Callable[[Notification], None] | None = None,
        on_update: Callable[[str, int], None] | None = None,
    ):
        self.generate_stream = generate_stream
        self.extract = extract
        self.history = history
        self.owner_id = owner_id
        self.meta = meta or SourceMeta()
        self.header = header
        self.notify = notify
        self.on_update = on_update

        self.source = RefinableText(rewrite_text, success_message="Text updated.")
        self.script = RefinableText(
            rewrite_sql,
            postprocess=finalize_body,
            validate=validate_sql,
            success_message="SQL script updated.",
        )
        self.phase = SessionPhase.IDLE
        self.progress = 0
        self.file_name = DEFAULT_FILE_NAME
        self.notifications: list[Notification] = []
        self.last_record: HistoryRecord | None = None
        self.last_error: str | None = None
        self._display_body: str | None = None

    @property
    def source_text(self) -> str:
        return self.source.text

    def set_source_text(self, text: str) -> None:
        """Replace the curriculum text typed or pasted by the user."""
        self.source.replace(text)

    def current_artifact(self) -> ScriptArtifact:
        body = self._display_body if self._display_body is not None else self.script.text
        return ScriptArtifact(header=self.header, body=body, file_name=self.file_name)

    def current_progress(self) -> int:
        return self.progress

    def current_validation(self) -> list[str]:
        return list(self.script.report)

    def script_log(self) -> tuple[CorrectionLogEntry, ...]:
        return self.script.log.to_sequence()

    def source_log(self) -> tuple[CorrectionLogEntry, ...]:
        return self.source.log.to_sequence()

    def _surface(self, level: str, message: str) -> None:
        notification = Notification(level=level, message=message)
        self.notifications.append(notification)
        if self.notify:
            self.notify(notification)

    def _stable_phase(self) -> SessionPhase:
        return SessionPhase.READY if self.script.text else SessionPhase.IDLE

    async def load_source(self, document: Any) -> bool:
        """Extract curriculum text from ``document`` with the extractor collaborator.

        Returns:
            ``True`` when the source text was replaced, ``False`` on failure.
        """
        if self.extract is None:
            raise SessionStateError("No extractor configured for this session.")
        if self.phase not in (SessionPhase.IDLE, SessionPhase.READY):
            raise SessionStateError(f"Cannot extract while {self.phase.value}.")

        previous = self.phase
        self.phase = SessionPhase.EXTRACTING
        try:
            text = await self.extract(document)
        except Exception as exc:
            logger.exception("Curriculum extraction failed")
            self.last_error = str(exc)
            self._surface("error", EXTRACTION_FAILED)
            return False
        finally:
            if self.phase is SessionPhase.EXTRACTING:
                self.phase = previous

        self.set_source_text(text)
        return True

    async def refine_source(self, instruction: str) -> bool:
        """Run one refinement round on the curriculum text."""
        return await self.source.refine(instruction)

    async def start_generation(self, source_text: str | None = None) -> bool:
        """Generate, finalize, and optionally persist a script.

        Args:
            source_text: Curriculum text; defaults to the session's current
                source text.

        Returns:
            ``True`` when the stream completed and the script was finalized,
            ``False`` when the stream failed.

        Raises:
            ValueError: If the source text is blank.
            SessionStateError: If a generation, extraction or script
                refinement is running.
        """
        busy = (SessionPhase.GENERATING, SessionPhase.EXTRACTING)
        if self.phase in busy or self.script.in_flight:
            raise SessionStateError(f"Cannot start a generation while {self.phase.value}.")
        if source_text is not None:
            self.set_source_text(source_text)
        if not self.source_text.strip():
            raise ValueError("Source text must be a non-empty string.")

        self.phase = SessionPhase.GENERATING
        self.progress = 0
        self.last_error = None
        self.script.log.clear()
        self.script.replace("", report=[])
        self.file_name = DEFAULT_FILE_NAME
        self._display_body = ""

        buffer = StreamingAssemblyBuffer(self.header)

        def _on_fragment(display_text: str, progress: int) -> None:
            self._display_body = buffer.display_body
            self.progress = progress
            if self.on_update:
                self.on_update(display_text, progress)

        try:
            raw_body = await buffer.consume(self.generate_stream(self.source_text), _on_fragment)
        except Exception as exc:
            logger.exception("SQL generation stream failed")
            self.script.replace(buffer.display_body, report=[])
            self._display_body = None
            self.progress = buffer.progress
            self.last_error = str(exc)
            self.phase = self._stable_phase()
            self._surface("error", GENERATION_FAILED)
            return False

        self.phase = SessionPhase.FINALIZING
        body = finalize_body(raw_body)
        self.script.replace(body)
        self.file_name = derive_file_name(body)
        self._display_body = None
        self.progress = buffer.progress
        logger.info(
            "Finalized script %s with %d validation finding(s)", self.file_name, len(self.script.report)
        )

        self.phase = SessionPhase.READY
        self._persist()
        return True

    def _persist(self) -> None:
        if not self.owner_id or self.history is None:
            return
        try:
            self.last_record = self.history.persist(self.current_artifact(), self.owner_id, self.meta)
        except Exception as exc:
            logger.exception("Persisting the finalized script failed")
            self.last_error = str(exc)
            self._surface("error", SAVE_FAILED)
            return
        self._surface("success", GENERATED_AND_SAVED)

    async def refine(self, instruction: str) -> bool:
        """Run one refinement round on the script body.

        Returns:
            ``True`` when the body was replaced, ``False`` when the rewrite
            failed and the body was left untouched.

        Raises:
            SessionStateError: If a generation or extraction is running, or
                there is no script to refine yet.
            RefinementInProgressError: If another script round is running.
        """
        if self.phase in (SessionPhase.GENERATING, SessionPhase.FINALIZING, SessionPhase.EXTRACTING):
            raise SessionStateError(f"Cannot refine while {self.phase.value}.")
        if not self.script.in_flight and not self.script.text:
            raise SessionStateError("There is no script to refine yet.")

        previous = self._stable_phase()
        started = not self.script.in_flight
        if started:
            self.phase = SessionPhase.REFINING
        try:
            ok = await self.script.refine(instruction)
        finally:
            if started and self.phase is SessionPhase.REFINING:
                self.phase = previous
        if ok:
            self.file_name = derive_file_name(self.script.text)
        return ok

    def load_record(self, record: HistoryRecord) -> None:
        """Re-open a persisted script as the session's ready artifact."""
        if self.phase is SessionPhase.GENERATING or self.script.in_flight:
            raise SessionStateError(f"Cannot load a record while {self.phase.value}.")
        sql = record.sql
        if sql.startswith(self.header):
            sql = sql[len(self.header):]
        self.script.log.clear()
        self.script.replace(sql.strip() + "\n" if sql.strip() else "")
        self.file_name = record.file_name
        self.meta = SourceMeta(subject=record.subject, course=record.course, region=record.region)
        self.last_record = record
        self.progress = 100
        self._display_body = None
        self.phase = self._stable_phase()
