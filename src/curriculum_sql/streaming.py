"""Incremental assembly of a streamed script body."""

from __future__ import annotations

import re
from collections.abc import AsyncIterable, Callable

FENCE_OPEN_RE = re.compile(r"^```sql\s*")
FENCE_CLOSE_RE = re.compile(r"```\s*$")

DEFAULT_PROGRESS_STEP = 2
MAX_STREAMING_PROGRESS = 99


def strip_code_fence(text: str) -> str:
    """Remove a leading ```` ```sql ```` marker and a trailing ```` ``` ```` marker."""
    return FENCE_CLOSE_RE.sub("", FENCE_OPEN_RE.sub("", text))


class StreamingAssemblyBuffer:
    """Accumulate streamed fragments and expose display text and progress.

    Fragment boundaries carry no syntactic meaning, so fence stripping is
    always applied to the cumulative body rather than to single fragments.
    Progress grows by ``progress_step`` per fragment, stays at or below 99
    while streaming and jumps to 100 once the stream ends, even on failure.
    """

    def __init__(self, header: str, progress_step: int = DEFAULT_PROGRESS_STEP):
        self.header = header
        self.progress_step = progress_step
        self.raw_body = ""
        self.progress = 0

    @property
    def display_body(self) -> str:
        return strip_code_fence(self.raw_body)

    @property
    def display_text(self) -> str:
        return f"{self.header}\n{self.display_body}"

    def feed(self, fragment: str) -> str:
        """Append one fragment and return the refreshed display text."""
        self.raw_body += fragment
        self.progress = min(MAX_STREAMING_PROGRESS, self.progress + self.progress_step)
        return self.display_text

    def finish(self) -> str:
        """Mark the stream as exhausted and return the raw accumulated body."""
        self.progress = 100
        return self.raw_body

    async def consume(
        self,
        fragments: AsyncIterable[str],
        on_update: Callable[[str, int], None] | None = None,
    ) -> str:
        """Drain an async fragment stream into the buffer.

        Args:
            fragments: Fragment source; may suspend between items.
            on_update: Optional callback receiving ``(display_text, progress)``
                after every fragment.

        Returns:
            The raw accumulated body, without fence stripping.

        Raises:
            Exception: Whatever the fragment source raised. Progress is still
                forced to 100 before the exception propagates.
        """
        try:
            async for fragment in fragments:
                display = self.feed(fragment)
                if on_update:
                    on_update(display, self.progress)
        finally:
            self.finish()
        return self.raw_body
