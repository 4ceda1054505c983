"""
Category Inference - предположительная категоризация новых пакетов.

Все выведенные категории помечаются как предположения ("Library?") и живут в
отчете до ручного подтверждения.
"""
import logging
from typing import Optional

from .constants import (
    CATEGORY_ADDON,
    CATEGORY_FIX,
    CATEGORY_INTEGRATION,
    CATEGORY_LIBRARY,
    SIDE_NOT_APPLICABLE,
)
from .curator_config import HeuristicsConfig
from .dependency_graph import PackageGraph
from .models import Label, PackageNode


logger = logging.getLogger(__name__)


def _contains_any(text: str, markers) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


class CategoryInference:
    """Эвристики категорий; порядок правил важен - срабатывает первое"""

    def __init__(self, heuristics: Optional[HeuristicsConfig] = None):
        self.heuristics = heuristics or HeuristicsConfig()

    def infer(self, graph: PackageGraph, node: PackageNode) -> Optional[Label]:
        dependents = graph.dependents_of(node.identifier)
        dependencies = node.mandatory_dependencies

        if (dependents and not dependencies) or _contains_any(
            f"{node.identifier} {node.display_identifier} {node.name}", self.heuristics.library_markers
        ):
            return Label.guess(CATEGORY_LIBRARY)
        if _contains_any(node.name, self.heuristics.fix_markers):
            return Label.guess(CATEGORY_FIX)
        if node.bundled:
            return Label.guess(CATEGORY_LIBRARY)
        if dependencies and not dependents:
            # Аддон одного мода или интеграция двух; подтвержденные библиотеки не считаются
            categories = set()
            for edge in dependencies:
                target = graph.resolve(edge)
                category = target.category if target is not None else None
                if category is not None and category.render() == CATEGORY_LIBRARY:
                    continue
                categories.add(category.render() if category is not None else None)
            if len(categories) == 1:
                return Label.guess(CATEGORY_ADDON)
            if len(categories) == 2:
                return Label.guess(CATEGORY_INTEGRATION)
            return None
        if _contains_any(node.name, self.heuristics.compat_markers):
            return Label.guess(CATEGORY_INTEGRATION)
        return None

    def apply(self, graph: PackageGraph) -> int:
        """
        Категоризировать узлы без категории.

        Returns:
            Количество автоматически категоризированных узлов
        """
        categorized = 0
        for node in graph.nodes:
            if node.category is not None:
                continue
            category = self.infer(graph, node)
            if category is not None:
                node.category = category
                categorized += 1

        missing = sum(1 for node in graph.nodes if node.category is None)
        if categorized or missing:
            logger.info(f"🆕 New mods found! {categorized} auto-categorized, {missing} missing category.")
        return categorized

    def apply_sides(self, graph: PackageGraph) -> int:
        """
        Проставить сторону, если она не задана вручную.

        Вложенные пакеты - N/A, остальные - сторона из индекса сборки с пометкой "?".

        Returns:
            Количество пакетов без стороны
        """
        for node in graph.nodes:
            if node.side is not None:
                continue
            if node.bundled:
                node.side = Label(SIDE_NOT_APPLICABLE)
            elif node.index_side:
                node.side = Label.guess(node.index_side)

        missing = sum(1 for node in graph.nodes if node.side is None and node.present)
        if missing:
            logger.warning(f"⚠️ There are {missing} mods with no side set.")
        return missing


__all__ = ["CategoryInference"]
