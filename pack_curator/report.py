"""
Report Renderer - markdown-отчет по сборке.

Отчет - одновременно результат работы и вход для следующего запуска:
категории и стороны правятся в нем руками (см. reconciler).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .constants import (
    CATEGORY_LIBRARY,
    DEFAULT_REPORT_TITLE,
    DEPENDENCIES_TEXT_LIMIT,
    DEPENDENTS_TEXT_LIMIT,
    LOADER_FABRIC,
    LOADER_FORGE,
    LOADER_UNKNOWN,
    OPTIONAL_PREVIEW_LIMIT,
    PARENT_SEPARATOR,
    REPORT_COLUMNS,
    REPORT_TIMESTAMP_FORMAT,
    STATUS_DISABLED,
    STATUS_ENABLED,
    STATUS_GONE,
    UNCERTAIN_MARKER,
)
from .dependency_graph import PackageGraph
from .models import DependencyKind, PackageNode


logger = logging.getLogger(__name__)


def _ticks(values) -> str:
    return ", ".join(f"`{value}`" for value in values)


def escape_cell(text: str) -> str:
    return text.replace('|', '\\|')


def sort_key(node: PackageNode):
    """
    Порядок строк: присутствующие раньше ушедших; без категории или с
    предположением - раньше подтвержденных; затем по категории и имени.
    Пакеты без категории сортируются по имени с учетом контейнера.
    """
    category = node.category
    if category is not None:
        return (node.gone, not category.uncertain, 0, category.render().lower(), node.name.lower())
    qualified = f"{node.parent}{PARENT_SEPARATOR}{node.name}" if node.parent else node.name
    return (node.gone, False, 1, "", qualified.lower())


def sort_nodes(nodes: List[PackageNode]) -> List[PackageNode]:
    return sorted(nodes, key=sort_key)


@dataclass
class ReportColumn:
    title: str
    render: Callable[[PackageNode], str]


class ReportRenderer:
    """Рендерер markdown-таблицы пакетов"""

    def __init__(
        self,
        title: str = DEFAULT_REPORT_TITLE,
        dependents_limit: int = DEPENDENTS_TEXT_LIMIT,
        dependencies_limit: int = DEPENDENCIES_TEXT_LIMIT,
        optional_limit: int = OPTIONAL_PREVIEW_LIMIT,
    ):
        self.title = title
        self.dependents_limit = dependents_limit
        self.dependencies_limit = dependencies_limit
        self.optional_limit = optional_limit

    # ----- cells -----

    def status(self, node: PackageNode) -> str:
        if node.gone:
            return STATUS_GONE
        return STATUS_ENABLED if node.active else STATUS_DISABLED

    def loader(self, node: PackageNode) -> str:
        loaders = [label for flag, label in ((node.forge, LOADER_FORGE), (node.fabric, LOADER_FABRIC)) if flag]
        return "/".join(loaders) or LOADER_UNKNOWN

    def name(self, node: PackageNode) -> str:
        if node.link:
            return f"[{escape_cell(node.name)}]({node.link})"
        return escape_cell(node.name)

    def dependents(self, graph: PackageGraph, node: PackageNode) -> str:
        if node.gone:
            return node.raw_dependents or ""
        refs = graph.dependents_of(node.identifier)
        labels = []
        for ref in refs:
            dependent = graph.get(ref.identifier)
            label = dependent.display_identifier if dependent is not None else ref.identifier
            labels.append(label if ref.mandatory else label + UNCERTAIN_MARKER)
        text = _ticks(labels)
        if len(text) <= self.dependents_limit:
            return text
        return f"{len(refs)} dependents"

    def dependencies(self, graph: PackageGraph, node: PackageNode) -> str:
        if node.gone:
            return node.raw_dependencies or ""
        mandatory = node.mandatory_dependencies
        shown = []
        for edge in mandatory:
            target = graph.get(edge.target)
            if target is None:
                continue
            if target.category is not None and target.category.render() == CATEGORY_LIBRARY:
                continue
            shown.append(edge.target)
        text = _ticks(shown)
        if len(text) <= self.dependencies_limit:
            return text
        return f"{len(mandatory)} dependencies"

    def optional(self, graph: PackageGraph, node: PackageNode) -> str:
        if node.gone:
            return node.raw_optional or ""
        optional = node.optional_dependencies
        if not optional:
            return ""
        unsatisfied = graph.unsatisfied(node, DependencyKind.OPTIONAL)
        if not unsatisfied:
            return f"`{len(optional)}` satisfied"
        preview = _ticks(edge.target for edge in unsatisfied[:self.optional_limit])
        more = "..." if len(unsatisfied) > self.optional_limit else ""
        return f"`{len(optional)}` (`{len(unsatisfied)}` uns.: {preview}{more})"

    def columns(self, graph: PackageGraph) -> List[ReportColumn]:
        renders = [
            self.status,
            self.loader,
            lambda node: node.qualified_identifier,
            self.name,
            lambda node: node.side.render() if node.side else "",
            lambda node: node.category.render() if node.category else "",
            lambda node: self.dependents(graph, node),
            lambda node: self.dependencies(graph, node),
            lambda node: self.optional(graph, node),
        ]
        return [ReportColumn(title, render) for title, render in zip(REPORT_COLUMNS, renders)]

    # ----- document -----

    def header(self, graph: PackageGraph, auto_categorized: int = 0, now: Optional[datetime] = None) -> List[str]:
        nodes = graph.nodes
        now = now or datetime.now()
        disabled = sum(1 for node in nodes if not node.active and node.present)
        gone = sum(1 for node in nodes if node.gone)
        uncategorized = sum(1 for node in nodes if node.category is None)

        lines = [
            f"# {self.title}",
            f"> Auto-generated at {now.strftime(REPORT_TIMESTAMP_FORMAT)}",
            f"`{len(nodes)}` mods (`{disabled}` disabled, `{gone}` gone)",
        ]
        if uncategorized:
            lines.append(f"`{uncategorized}` mods have no category (`{auto_categorized}` were auto-categorized)")
        return lines

    def render(self, graph: PackageGraph, auto_categorized: int = 0, now: Optional[datetime] = None) -> str:
        """Отрисовать отчет по текущему порядку узлов графа"""
        columns = self.columns(graph)
        rows = [[column.render(node) for column in columns] for node in graph.nodes]
        widths = [
            max([len(column.title) + 2] + [len(row[i]) + 2 for row in rows])
            for i, column in enumerate(columns)
        ]

        text = "\n\n".join(self.header(graph, auto_categorized, now) + [""])
        text += "|" + "|".join((" " + column.title).ljust(widths[i]) for i, column in enumerate(columns)) + "|\n"
        text += "|" + "|".join("-" * width for width in widths) + "|\n"
        for row in rows:
            text += "|" + "|".join((" " + cell).ljust(widths[i]) for i, cell in enumerate(row)) + "|\n"
        return text

    def write(
        self,
        graph: PackageGraph,
        path: Path,
        auto_categorized: int = 0,
        now: Optional[datetime] = None,
    ) -> str:
        text = self.render(graph, auto_categorized, now)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.info(f"📝 Report written to {path} ({len(graph)} mods)")
        return text


__all__ = ["ReportRenderer", "sort_nodes", "sort_key", "escape_cell"]
