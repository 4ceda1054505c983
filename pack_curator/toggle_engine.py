"""
Toggle Engine - каскадное включение/отключение пакетов.
Включение тянет за собой обязательные зависимости, отключение - обязательных
зависимых. Опциональные связи никогда не переключаются принудительно.
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from .constants import DISABLED_SUFFIX
from .dependency_graph import PackageGraph
from .diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind, Severity
from .models import PackageNode


logger = logging.getLogger(__name__)


class ArchiveRenamer:
    """Внешний исполнитель: помечает архив отключенным/включенным на диске"""

    def rename(self, node: PackageNode, enabled: bool):
        raise NotImplementedError


class FileRenamer(ArchiveRenamer):
    """Добавляет/убирает суффикс .disabled у файла архива"""

    def __init__(self, mods_dir: str):
        self.mods_dir = str(mods_dir)

    def rename(self, node: PackageNode, enabled: bool):
        clean = node.file[:-len(DISABLED_SUFFIX)] if node.file.endswith(DISABLED_SUFFIX) else node.file
        new_file = clean if enabled else clean + DISABLED_SUFFIX
        if new_file == node.file:
            return
        os.rename(os.path.join(self.mods_dir, node.file), os.path.join(self.mods_dir, new_file))
        logger.debug(f"📝 Renamed {node.file} -> {new_file}")
        node.file = new_file


class NullRenamer(ArchiveRenamer):
    """Ничего не делает с файлами (пробный прогон)"""

    def rename(self, node: PackageNode, enabled: bool):
        pass


@dataclass
class ToggleResult:
    """Результат одного вызова set_active"""
    identifier: str
    enabled: bool
    changed: List[str] = field(default_factory=list)  # в порядке переключения
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def noop(self) -> bool:
        return not self.changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "enabled": self.enabled,
            "changed": list(self.changed),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


class ToggleEngine:
    """
    Движок каскадного переключения.

    Один вызов верхнего уровня (включая все рекурсивные шаги) выполняется под
    блокировкой графа; рекурсия не заходит повторно в узел, который уже
    обрабатывается выше по стеку.
    """

    def __init__(
        self,
        graph: PackageGraph,
        renamer: Optional[ArchiveRenamer] = None,
        lock: Optional[asyncio.Lock] = None,
    ):
        self.graph = graph
        self.renamer = renamer or NullRenamer()
        self.lock = lock or asyncio.Lock()

    async def set_active(self, identifier: str, enabled: bool) -> ToggleResult:
        """Включить или отключить пакет с каскадом"""
        async with self.lock:
            return self.set_active_locked(identifier, enabled)

    async def set_many(self, identifiers: Iterable[str], enabled: bool) -> List[ToggleResult]:
        """Переключить несколько пакетов под одной блокировкой"""
        async with self.lock:
            return [self.set_active_locked(identifier, enabled) for identifier in identifiers]

    def set_active_locked(self, identifier: str, enabled: bool) -> ToggleResult:
        """То же, что set_active; вызывающий код уже держит self.lock"""
        collector = DiagnosticCollector(logger)
        result = ToggleResult(identifier=identifier, enabled=enabled)
        action = "enabled" if enabled else "disabled"

        node = self.graph.get(identifier)
        if node is None:
            collector.warn(DiagnosticKind.TOGGLE_NOOP, f'Mod "{identifier}" not found.', identifier)
        elif node.gone:
            collector.warn(DiagnosticKind.TOGGLE_NOOP, f'Mod "{node.name}" is gone.', node.identifier)
        elif node.bundled:
            collector.warn(
                DiagnosticKind.TOGGLE_NOOP,
                f'Mod "{node.name}" is bundled inside "{node.parent}" and cannot be toggled on its own.',
                node.identifier,
            )
        elif node.active == enabled:
            collector.warn(DiagnosticKind.TOGGLE_NOOP, f'Mod "{node.name}" is already {action}.', node.identifier)
        else:
            group = self._flip(node, enabled, result)
            stack = {member.identifier for member in group}
            if enabled:
                self._enable_dependencies(group, stack, result, collector)
            else:
                self._disable_dependents(group, stack, result, collector)
            logger.info(f'✅ Mod "{node.name}" {action} ({len(result.changed)} package(s) changed).')

        result.diagnostics = collector.items
        return result

    def _flip(self, node: PackageNode, enabled: bool, result: ToggleResult) -> List[PackageNode]:
        """Переключить архив целиком: все пакеты из файла узла и вложенные в них"""
        logger.info(f'{"🔌 Enabling" if enabled else "⛔ Disabling"} mod "{node.name}"...')
        group = self.graph.archive_group(node)
        if node.file:
            self.renamer.rename(node, enabled)
        for sibling in group:
            sibling.file = node.file
            # Вложенные пакеты следуют за контейнером, файлов у них нет
            for member in self.graph.bundle_of(sibling):
                member.active = enabled
            result.changed.append(sibling.identifier)
        return group

    def _members(self, group: List[PackageNode]) -> List[PackageNode]:
        return [member for node in group for member in self.graph.bundle_of(node)]

    def _enable_dependencies(
        self,
        group: List[PackageNode],
        stack: Set[str],
        result: ToggleResult,
        collector: DiagnosticCollector,
    ):
        own = {node.identifier for node in group}
        for member in self._members(group):
            for edge in member.mandatory_dependencies:
                dependency = self.graph.resolve(edge)
                if dependency is None:
                    collector.warn(
                        DiagnosticKind.UNRESOLVED_MANDATORY,
                        f"Dependency {edge.declared_target or edge.target} of {member.name} not found.",
                        member.identifier,
                    )
                    continue
                dependency = self.graph.root_of(dependency)
                if dependency.identifier in own:
                    continue
                if dependency.identifier in stack:
                    collector.warn(
                        DiagnosticKind.TOGGLE_CYCLE,
                        f"Dependency cycle detected at {dependency.name}, not revisiting.",
                        dependency.identifier,
                    )
                    continue
                if dependency.active:
                    collector.report(
                        DiagnosticKind.TOGGLE_NOOP,
                        f"Dependency {dependency.name} is already enabled.",
                        Severity.DEBUG,
                        dependency.identifier,
                    )
                    continue

                flipped = self._flip(dependency, True, result)
                entered = {node.identifier for node in flipped} - stack
                stack.update(entered)
                try:
                    self._enable_dependencies(flipped, stack, result, collector)
                finally:
                    stack.difference_update(entered)

    def _disable_dependents(
        self,
        group: List[PackageNode],
        stack: Set[str],
        result: ToggleResult,
        collector: DiagnosticCollector,
    ):
        own = {node.identifier for node in group}
        for member in self._members(group):
            for ref in self.graph.dependents_of(member.identifier):
                dependent = self.graph.get(ref.identifier)
                if dependent is None or dependent.gone:
                    continue
                dependent = self.graph.root_of(dependent)
                if dependent.identifier in own:
                    continue
                if not ref.mandatory:
                    if dependent.active:
                        collector.warn(
                            DiagnosticKind.OPTIONAL_DEPENDENT_KEPT,
                            f"Optional dependent {dependent.name} not disabled.",
                            dependent.identifier,
                        )
                    continue
                if dependent.identifier in stack:
                    collector.warn(
                        DiagnosticKind.TOGGLE_CYCLE,
                        f"Dependency cycle detected at {dependent.name}, not revisiting.",
                        dependent.identifier,
                    )
                    continue
                if not dependent.active:
                    collector.report(
                        DiagnosticKind.TOGGLE_NOOP,
                        f"Dependent {dependent.name} is already disabled.",
                        Severity.DEBUG,
                        dependent.identifier,
                    )
                    continue

                flipped = self._flip(dependent, False, result)
                entered = {node.identifier for node in flipped} - stack
                stack.update(entered)
                try:
                    self._disable_dependents(flipped, stack, result, collector)
                finally:
                    stack.difference_update(entered)


__all__ = ["ArchiveRenamer", "FileRenamer", "NullRenamer", "ToggleResult", "ToggleEngine"]
