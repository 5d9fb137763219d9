"""Pydantic models shared across generation, refinement, and persistence layers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FILE_NAME = "curriculo"


class CorrectionLogEntry(BaseModel):
    """One message of a correction exchange."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "system"]
    content: str


class ScriptArtifact(BaseModel):
    """A generated SQL script split into a fixed header and a mutable body."""

    header: str
    body: str = ""
    file_name: str = DEFAULT_FILE_NAME

    @property
    def text(self) -> str:
        """Return the script exactly as shown to the user."""
        return f"{self.header}\n{self.body}"


class SessionPhase(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    READY = "ready"
    REFINING = "refining"


class Notification(BaseModel):
    """A message surfaced to the caller outside of the correction logs."""

    level: Literal["success", "error"]
    message: str


class SourceMeta(BaseModel):
    """Descriptive metadata of the curriculum a script was generated from."""

    subject: str = ""
    course: str = ""
    region: str = ""


class HistoryRecord(BaseModel):
    """A persisted script as stored in the history database."""

    record_id: str
    owner_id: str
    created_at: datetime
    subject: str = ""
    course: str = ""
    region: str = ""
    file_name: str = DEFAULT_FILE_NAME
    sql: str


class CurricularEntity(BaseModel):
    """A row of the ``entidades`` table recovered from a script."""

    tipo: int
    codigo: str | None = None
    nombre: str
    temp_id: str


class EvaluableItem(BaseModel):
    """A competency or learning outcome with every criterion beneath it."""

    parent: CurricularEntity
    children: list[CurricularEntity] = Field(default_factory=list)


class CurricularItems(BaseModel):
    """Flat, de-duplicated name lists grouped by curricular role."""

    competencies: list[str] = Field(default_factory=list)
    criteria: list[str] = Field(default_factory=list)
    knowledge: list[str] = Field(default_factory=list)
