"""
Normalization Report

Audit trail of one normalization pass: errors (data rejected), fixes (data
repaired or inferred) and assumptions (defaults filled in).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class NormalizationReport:
    """Errors, fixes and assumptions collected while normalizing one record"""
    errors: List[str] = field(default_factory=list)
    fixes: List[str] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        logger.debug(f"normalization error: {message}")

    def add_fix(self, message: str) -> None:
        self.fixes.append(message)
        logger.debug(f"normalization fix: {message}")

    def add_assumption(self, message: str) -> None:
        self.assumptions.append(message)
        logger.debug(f"normalization assumption: {message}")

    def reset(self) -> None:
        """Clear every list"""
        self.errors.clear()
        self.fixes.clear()
        self.assumptions.clear()

    def is_empty(self) -> bool:
        return not (self.errors or self.fixes or self.assumptions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'errors': list(self.errors),
            'fixes': list(self.fixes),
            'assumptions': list(self.assumptions),
        }

    def render(self) -> str:
        """
        Render the report as plain text.

        Sections appear in the order errors, fixes, assumptions; empty
        sections are left out. A report with no entries renders a single line.
        """
        if self.is_empty():
            return "No issues - all data complete and valid.\n"

        sections = []
        for heading, entries in (('ERRORS', self.errors), ('FIXES', self.fixes),
                                 ('ASSUMPTIONS', self.assumptions)):
            if entries:
                lines = [f"{heading}:"] + [f"- {entry}" for entry in entries]
                sections.append("\n".join(lines))
        return "\n\n".join(sections) + "\n"
