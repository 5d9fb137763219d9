"""Conversational refinement of a text target with a preserved correction log."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from curriculum_sql.correction_log import CorrectionLog

logger = logging.getLogger(__name__)

RewriteFn = Callable[[str, str], Awaitable[str]]

FAILURE_MESSAGE = "Could not apply the correction."


class RefinementInProgressError(RuntimeError):
    """Raised when a refinement round starts while another one is running."""


class RefinableText:
    """A text target that can be rewritten through user instructions.

    Each round appends the instruction to the log, awaits the rewrite
    capability and either replaces the text (success) or leaves it untouched
    (failure). Both outcomes are acknowledged in the log.

    Args:
        rewrite: Async callable ``(current_text, instruction) -> new_text``.
        postprocess: Applied to a successful rewrite before it replaces the
            current text.
        validate: Recomputes :attr:`report` whenever the text is replaced.
        success_message: Log acknowledgement for a successful round.
        failure_message: Log acknowledgement for a failed round.
    """

    def __init__(
        self,
        rewrite: RewriteFn,
        *,
        postprocess: Callable[[str], str] | None = None,
        validate: Callable[[str], list[str]] | None = None,
        success_message: str = "Text updated.",
        failure_message: str = FAILURE_MESSAGE,
        text: str = "",
    ):
        self.rewrite = rewrite
        self.postprocess = postprocess
        self.validate = validate
        self.success_message = success_message
        self.failure_message = failure_message
        self.log = CorrectionLog()
        self.text = ""
        self.report: list[str] = []
        self._in_flight = False
        self.replace(text)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def replace(self, text: str, report: list[str] | None = None) -> None:
        """Replace the text wholesale and refresh the validation report."""
        self.text = text
        if report is not None:
            self.report = list(report)
        elif self.validate:
            self.report = self.validate(text)
        else:
            self.report = []

    async def refine(self, instruction: str) -> bool:
        """Run one refinement round.

        Returns:
            ``True`` when the rewrite succeeded and the text was replaced,
            ``False`` when it failed and the text was left untouched.

        Raises:
            RefinementInProgressError: If a round is already running.
        """
        if self._in_flight:
            raise RefinementInProgressError("A refinement round is already in progress.")

        self._in_flight = True
        self.log.append_user(instruction)
        try:
            try:
                rewritten = await self.rewrite(self.text, instruction)
                if not isinstance(rewritten, str):
                    raise TypeError(f"Rewrite returned {type(rewritten).__name__}, expected str")
                candidate = self.postprocess(rewritten) if self.postprocess else rewritten
            except Exception:
                logger.exception("Refinement round failed; keeping the current text")
                self.log.append_system(self.failure_message)
                return False

            self.replace(candidate)
            self.log.append_system(self.success_message)
            return True
        finally:
            self._in_flight = False
