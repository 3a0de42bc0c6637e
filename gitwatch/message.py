"""
Message Layer - Build the commit message for each automatic commit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from .config import DATE_PLACEHOLDER
from .diff import DiffSummarizer


def format_timestamp(when: datetime, date_format: str) -> str:
    """Format ``when`` with a strftime pattern.

    A leading ``+`` is dropped so that ``date(1)`` style formats such as
    ``+%Y-%m-%d %H:%M:%S`` can be used unchanged.
    """
    if date_format.startswith("+"):
        date_format = date_format[1:]
    return when.strftime(date_format)


class CommitMessageBuilder:
    """Combine the message template, a timestamp and the diff summary."""

    def __init__(self, template: str, date_format: str,
                 summarizer: Optional[DiffSummarizer] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.template = template
        self.date_format = date_format
        self.summarizer = summarizer
        self._clock = clock

        # No splicing needed, so the message never changes
        if not date_format or DATE_PLACEHOLDER not in template:
            self._static_message: Optional[str] = template
        else:
            self._static_message = None

    @property
    def static_message(self) -> Optional[str]:
        return self._static_message

    def templated(self, when: Optional[datetime] = None) -> str:
        if self._static_message is not None:
            return self._static_message
        stamp = format_timestamp(when or self._clock(), self.date_format)
        return self.template.replace(DATE_PLACEHOLDER, stamp)

    def build(self, when: Optional[datetime] = None) -> str:
        """Return the message for one commit.

        A non-empty diff summary replaces the templated text entirely.
        """
        message = self.templated(when)
        if self.summarizer is not None and self.summarizer.enabled:
            summary = self.summarizer.summarize()
            if summary:
                return summary
        return message
