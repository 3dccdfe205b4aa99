"""
Per-call generation state: options, counters, the current source part and
the report collecting every directive outcome.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .config import DEFAULT_CONFIG

logger = logging.getLogger('json2docx')

APPLIED = 'applied'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass
class GenerationOptions:
    """Caller options for one generation call."""

    file_name: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None
    watermark: Optional[str] = None

    @classmethod
    def from_mapping(cls, options):
        """Accept ``None``, an instance, or a mapping using either
        ``fileName`` or ``file_name``."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls(
            file_name=options.get('file_name', options.get('fileName')),
            header=options.get('header'),
            footer=options.get('footer'),
            watermark=options.get('watermark'),
        )

    def resolved_file_name(self, config=DEFAULT_CONFIG):
        name = os.path.basename(self.file_name or '') or config.DEFAULT_FILE_NAME
        if not name.lower().endswith('.docx'):
            name += '.docx'
        return name


@dataclass
class DirectiveOutcome:
    kind: str
    key: str
    status: str
    reason: str = ''
    part: str = ''


@dataclass
class GenerationReport:
    """Result of one ``generate_docx`` call."""

    file_name: str
    document: Optional[bytes] = None
    output_path: Optional[str] = None
    error: Optional[str] = None
    outcomes: List[DirectiveOutcome] = field(default_factory=list)

    @property
    def succeeded(self):
        return self.document is not None and self.error is None

    @property
    def failures(self):
        return [o for o in self.outcomes if o.status == FAILED]

    @property
    def applied(self):
        return [o for o in self.outcomes if o.status == APPLIED]

    def outcomes_for(self, kind):
        return [o for o in self.outcomes if o.kind == kind]


class GenerationContext:
    """State threaded through every handler of a single generation call.

    Nothing here outlives the call, so two calls never share counters.
    """

    def __init__(self, package, data, config=None, report=None):
        self.package = package
        self.data = data
        self.config = config if config is not None else DEFAULT_CONFIG
        self.report = report if report is not None else GenerationReport(self.config.DEFAULT_FILE_NAME)
        self.part_name = 'word/document.xml'
        self._image_counter = 0
        self._chart_counter = 0
        self._watermark_counter = 0

    @property
    def images_embedded(self):
        return self._image_counter

    def next_image_number(self):
        self._image_counter += 1
        return self._image_counter

    def next_chart_number(self):
        self._chart_counter += 1
        return self._chart_counter

    def next_watermark_number(self):
        self._watermark_counter += 1
        return self._watermark_counter

    def record(self, kind, key, status, reason=''):
        outcome = DirectiveOutcome(kind, key, status, reason, self.part_name)
        self.report.outcomes.append(outcome)
        if status == FAILED:
            logger.warning("%s directive '%s' failed in %s: %s", kind, key, self.part_name, reason)
        elif status == SKIPPED and reason:
            logger.debug("%s directive '%s' skipped in %s: %s", kind, key, self.part_name, reason)
        return outcome
