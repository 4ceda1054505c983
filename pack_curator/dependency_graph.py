"""
Dependency Graph - граф зависимостей между пакетами сборки.
Строит узлы из записей архивов, прямые и обратные ребра, находит
неудовлетворенные и отключенные обязательные зависимости.
"""
import logging
from typing import Dict, Iterable, List, Optional, Set

from .canonical import IdentifierCanonicalizer
from .diagnostics import DiagnosticCollector, DiagnosticKind, Severity
from .models import DependencyEdge, DependencyKind, DependentRef, PackageNode, PackageRecord


logger = logging.getLogger(__name__)


class PackageGraph:
    """
    Граф пакетов.

    Отвечает за:
    - Хранение узлов в порядке обнаружения (уникальные канонические ID)
    - Разрешение ребер через группы эквивалентности
    - Обратный граф (кто зависит от пакета), всегда выводимый из прямых ребер
    """

    def __init__(self, canonicalizer: Optional[IdentifierCanonicalizer] = None):
        self.canonicalizer = canonicalizer or IdentifierCanonicalizer()
        self._nodes: Dict[str, PackageNode] = {}
        self._reverse_graph: Dict[str, List[DependentRef]] = {}  # target -> dependents
        self.disabled_dependencies: List[str] = []  # отключенные, но нужные активным пакетам

    # ----- nodes -----

    def add(self, node: PackageNode) -> bool:
        """Добавить узел; если ID уже занят - узел отбрасывается (первый побеждает)"""
        if node.identifier in self._nodes:
            return False
        self._nodes[node.identifier] = node
        self._link(node)
        return True

    def get(self, identifier: str) -> Optional[PackageNode]:
        """Найти узел по ID (с учетом групп эквивалентности)"""
        node = self._nodes.get(identifier)
        if node is None:
            node = self._nodes.get(self.canonicalizer.canonicalize(identifier))
        return node

    def __contains__(self, identifier: str) -> bool:
        return self.get(identifier) is not None

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(list(self._nodes.values()))

    @property
    def nodes(self) -> List[PackageNode]:
        return list(self._nodes.values())

    def reorder(self, nodes: List[PackageNode]):
        """Заменить порядок узлов (тот же набор узлов)"""
        if {n.identifier for n in nodes} != set(self._nodes):
            raise ValueError("reorder() must keep the same set of nodes")
        self._nodes = {node.identifier: node for node in nodes}

    def children_of(self, identifier: str) -> List[PackageNode]:
        """Присутствующие пакеты, извлеченные из архива-контейнера identifier"""
        return [node for node in self._nodes.values() if node.parent == identifier and node.present]

    def archive_group(self, node: PackageNode) -> List[PackageNode]:
        """Узел и другие пакеты верхнего уровня из того же файла (node первым)"""
        if node.parent or not node.file:
            return [node]
        return [node] + [
            other for other in self._nodes.values()
            if other is not node and other.present and not other.parent and other.file == node.file
        ]

    def bundle_of(self, node: PackageNode) -> List[PackageNode]:
        """Узел и все вложенные в него пакеты (рекурсивно)"""
        result = [node]
        pending = [node.identifier]
        seen = {node.identifier}
        while pending:
            for child in self.children_of(pending.pop()):
                if child.identifier not in seen:
                    seen.add(child.identifier)
                    result.append(child)
                    pending.append(child.identifier)
        return result

    def root_of(self, node: PackageNode) -> PackageNode:
        """Верхний архив-контейнер для вложенного пакета"""
        seen: Set[str] = set()
        current = node
        while current.parent and current.identifier not in seen:
            seen.add(current.identifier)
            parent = self.get(current.parent)
            if parent is None:
                break
            current = parent
        return current

    # ----- edges -----

    def _link(self, node: PackageNode):
        for edge in node.dependencies:
            self._reverse_graph.setdefault(edge.target, []).append(DependentRef(node.identifier, edge.kind))

    def rebuild_dependents(self):
        """Пересчитать обратный граф по прямым ребрам"""
        self._reverse_graph = {}
        for node in self._nodes.values():
            self._link(node)

    def resolve(self, edge: DependencyEdge) -> Optional[PackageNode]:
        """Присутствующий узел, удовлетворяющий ребру, или None"""
        node = self.get(edge.target)
        if node is None or not node.present:
            return None
        return node

    def dependents_of(self, identifier: str) -> List[DependentRef]:
        """Получить список пакетов, которые зависят от указанного (только существующие)"""
        node = self.get(identifier)
        if node is None:
            return []
        return [ref for ref in self._reverse_graph.get(node.identifier, []) if ref.identifier in self._nodes]

    def dependencies_of(self, identifier: str, kind: Optional[DependencyKind] = None) -> List[DependencyEdge]:
        """Получить список зависимостей пакета"""
        node = self.get(identifier)
        if node is None:
            return []
        return [edge for edge in node.dependencies if kind is None or edge.kind == kind]

    def unsatisfied(self, node: PackageNode, kind: DependencyKind) -> List[DependencyEdge]:
        return [edge for edge in node.dependencies if edge.kind == kind and self.resolve(edge) is None]

    def unsatisfied_optional_targets(self) -> List[str]:
        """Все неудовлетворенные опциональные зависимости (отсортированы)"""
        targets = {
            edge.target
            for node in self._nodes.values()
            for edge in self.unsatisfied(node, DependencyKind.OPTIONAL)
        }
        return sorted(targets)

    def categories(self) -> List[str]:
        """Все категории (в отрисованном виде) в порядке появления"""
        seen: Dict[str, None] = {}
        for node in self._nodes.values():
            if node.category is not None:
                seen.setdefault(node.category.render(), None)
        return list(seen)


class GraphBuilder:
    """Строитель графа из записей архивов"""

    def __init__(
        self,
        canonicalizer: Optional[IdentifierCanonicalizer] = None,
        ignored_optional: Optional[Iterable[str]] = None,
        collector: Optional[DiagnosticCollector] = None,
    ):
        self.canonicalizer = canonicalizer or IdentifierCanonicalizer()
        self.ignored_optional = set(ignored_optional or [])
        self.collector = collector or DiagnosticCollector(logger)

    def build(self, records: Iterable[PackageRecord]) -> PackageGraph:
        """
        Построить граф.

        Записи вставляются в порядке обнаружения; при совпадении канонического ID
        остается первая запись, последующие отбрасываются без слияния.
        """
        graph = PackageGraph(self.canonicalizer)
        for record in records:
            node = PackageNode.from_record(record)
            node.dependencies = self._filter_ignored(node.dependencies)
            if not graph.add(node):
                existing = graph.get(node.identifier)
                self.collector.report(
                    DiagnosticKind.DUPLICATE_IDENTIFIER,
                    f"Mod {node.name} ({node.declared_identifier}) already exists as "
                    f"{existing.name} ({existing.display_identifier}), keeping {existing.file}.",
                    Severity.DEBUG,
                    node.identifier,
                )

        self._disambiguate_names(graph)
        self._check_dependencies(graph)
        logger.info(f"🧩 Built dependency graph with {len(graph)} packages")
        return graph

    def _filter_ignored(self, edges: List[DependencyEdge]) -> List[DependencyEdge]:
        """Опциональные зависимости из списка игнорирования не попадают в граф"""
        if not self.ignored_optional:
            return edges
        return [
            edge for edge in edges
            if edge.mandatory or (
                edge.target not in self.ignored_optional
                and (edge.declared_target or edge.target) not in self.ignored_optional
            )
        ]

    def _disambiguate_names(self, graph: PackageGraph):
        """Имя - ключ сопоставления с прошлым отчетом, поэтому дубли получают суффикс с ID"""
        by_name: Dict[str, List[PackageNode]] = {}
        for node in graph.nodes:
            by_name.setdefault(node.name, []).append(node)

        for name, nodes in by_name.items():
            if len(nodes) < 2:
                continue
            ids = ", ".join(node.display_identifier for node in nodes)
            self.collector.warn(
                DiagnosticKind.DUPLICATE_NAME,
                f"Found mods with duplicate name {name} ({len(nodes)}): {ids}",
            )
            for node in nodes:
                node.name = f"{node.name} ({node.display_identifier})"

    def _check_dependencies(self, graph: PackageGraph):
        for node in graph.nodes:
            if not node.active:
                continue
            for edge in node.mandatory_dependencies:
                target = graph.resolve(edge)
                if target is None:
                    self.collector.error(
                        DiagnosticKind.UNRESOLVED_MANDATORY,
                        f"Mod {node.name} ({node.display_identifier}) depends on "
                        f"{edge.declared_target or edge.target} but it is not present.",
                        node.identifier,
                    )
                elif not target.active:
                    self.collector.error(
                        DiagnosticKind.DISABLED_MANDATORY,
                        f"Mod {node.name} ({node.display_identifier}) depends on "
                        f"{target.display_identifier} but it is disabled.",
                        node.identifier,
                    )
                    if target.identifier not in graph.disabled_dependencies:
                        graph.disabled_dependencies.append(target.identifier)


__all__ = ["PackageGraph", "GraphBuilder"]
