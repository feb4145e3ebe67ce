"""
Diagnostics Sink
================
Collects the warnings and errors produced while reconstructing one entity graph.

Why is this file needed?
------------------------
1. Traceability: Every repair, fallback or rejection is reported against the id of
   the entity that caused it, so a caller can show the user what was changed.
2. Testability: Records are kept in memory in addition to being logged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

EntityId = Optional[Union[int, str]]


class Severity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    entity_id: EntityId
    message: str
    is_fatal: bool = False


@dataclass
class Diagnostics:
    """Records diagnostics and forwards them to the module logger."""
    records: List[Diagnostic] = field(default_factory=list)

    def log_warning(self, entity_id: EntityId, message: str) -> None:
        logger.warning(f"#{entity_id}: {message}")
        self.records.append(Diagnostic(Severity.WARNING, entity_id, message))

    def log_error(self, entity_id: EntityId, message: str, is_fatal: bool = False) -> None:
        logger.error(f"#{entity_id}: {message}")
        self.records.append(Diagnostic(Severity.ERROR, entity_id, message, is_fatal))

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.records if d.severity == Severity.WARNING]

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.records if d.severity == Severity.ERROR]

    def messages(self) -> List[str]:
        return [d.message for d in self.records]

    def clear(self) -> None:
        self.records.clear()
