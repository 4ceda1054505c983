"""
Диагностика - накопление предупреждений и ошибок прохода анализа.

Диагностики не прерывают работу: они логируются сразу и копятся, чтобы
вызывающий код (CLI, API) мог их показать. Исключение - NestedExtractionError,
которая пробрасывается наверх.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class CuratorError(Exception):
    """Базовая ошибка pack_curator"""


class NestedExtractionError(CuratorError):
    """Вложенный архив не удалось извлечь или прочитать"""

    def __init__(self, container: str, entry: str, reason: str):
        self.container = container
        self.entry = entry
        self.reason = reason
        super().__init__(f"Failed to extract bundled archive '{entry}' from '{container}': {reason}")


class Severity(Enum):
    """Уровень диагностики"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(Enum):
    """Тип диагностики"""
    MALFORMED_MANIFEST = "malformed_manifest"
    MISSING_MANIFEST = "missing_manifest"
    MISSING_METADATA = "missing_metadata"
    LOADER_MISMATCH = "loader_mismatch"
    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    DUPLICATE_NAME = "duplicate_name"
    UNRESOLVED_MANDATORY = "unresolved_mandatory"
    DISABLED_MANDATORY = "disabled_mandatory"
    TOGGLE_NOOP = "toggle_noop"
    TOGGLE_CYCLE = "toggle_cycle"
    OPTIONAL_DEPENDENT_KEPT = "optional_dependent_kept"


_LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}

_LOG_ICONS = {
    Severity.DEBUG: "🔎",
    Severity.INFO: "ℹ️",
    Severity.WARNING: "⚠️",
    Severity.ERROR: "❌",
}


@dataclass
class Diagnostic:
    """Одна запись диагностики"""
    kind: DiagnosticKind
    message: str
    severity: Severity = Severity.WARNING
    identifier: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать в словарь для JSON."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "identifier": self.identifier,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class DiagnosticCollector:
    """Коллектор диагностик: пишет в лог и хранит в памяти."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._logger = log or logger
        self._items: List[Diagnostic] = []
        self._lock = threading.Lock()

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        severity: Severity = Severity.WARNING,
        identifier: Optional[str] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, severity=severity, identifier=identifier)
        self._logger.log(_LOG_LEVELS[severity], f"{_LOG_ICONS[severity]} {message}")
        with self._lock:
            self._items.append(diagnostic)
        return diagnostic

    def warn(self, kind: DiagnosticKind, message: str, identifier: Optional[str] = None) -> Diagnostic:
        return self.report(kind, message, Severity.WARNING, identifier)

    def error(self, kind: DiagnosticKind, message: str, identifier: Optional[str] = None) -> Diagnostic:
        return self.report(kind, message, Severity.ERROR, identifier)

    def extend(self, diagnostics: Iterable[Diagnostic]):
        """Добавить уже залогированные диагностики (без повторного логирования)"""
        with self._lock:
            self._items.extend(diagnostics)

    @property
    def items(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._items)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.items if d.kind == kind]

    def get_stats(self) -> Dict[str, int]:
        """Количество диагностик по типам."""
        stats: Dict[str, int] = {}
        for item in self.items:
            stats[item.kind.value] = stats.get(item.kind.value, 0) + 1
        return stats

    def clear(self):
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self.items)


__all__ = [
    "CuratorError",
    "NestedExtractionError",
    "Severity",
    "DiagnosticKind",
    "Diagnostic",
    "DiagnosticCollector",
]
