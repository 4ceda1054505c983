"""
Pack Curator - сервис анализа сборки.

Связывает этапы прохода: обнаружение архивов → извлечение метаданных →
граф → восстановление ручных данных из прошлого отчета → эвристики →
отчет. Граф живет в памяти между вызовами; переключения и отрисовка отчета
выполняются под одной блокировкой.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from .canonical import IdentifierCanonicalizer
from .categorizer import CategoryInference
from .curator_config import CuratorSettings, get_settings
from .dependency_graph import GraphBuilder, PackageGraph
from .diagnostics import CuratorError, Diagnostic, DiagnosticCollector
from .ignore_list import IgnoreList
from .models import DependencyKind, PackageNode
from .plugin_system.archive_handler import ArchiveHandler
from .plugin_system.extractor import ArchiveExtractor, flatten
from .plugin_system.plugin_finder import PluginFinder
from .reconciler import StateReconciler, read_report
from .report import ReportRenderer, sort_nodes
from .toggle_engine import ArchiveRenamer, FileRenamer, ToggleEngine, ToggleResult


logger = logging.getLogger(__name__)

RELATIONS = ("dependents", "dependencies", "optional")


def node_to_dict(node: PackageNode) -> Dict[str, Any]:
    """Преобразовать узел в словарь для JSON"""
    return {
        "identifier": node.identifier,
        "declared_identifier": node.display_identifier,
        "name": node.name,
        "file": node.file,
        "active": node.active,
        "present": node.present,
        "forge": node.forge,
        "fabric": node.fabric,
        "link": node.link,
        "side": node.side.render() if node.side else None,
        "category": node.category.render() if node.category else None,
        "parent": node.parent,
        "dependencies": [
            {"target": edge.target, "kind": edge.kind.value, "declared_target": edge.declared_target}
            for edge in node.dependencies
        ],
    }


class PackCurator:
    """
    Сервис анализа и курирования сборки.

    Отвечает за:
    - Полный проход анализа и запись отчета
    - Каскадное включение/отключение пакетов и категорий
    - Список игнорируемых опциональных зависимостей
    - Накопленные диагностики последнего прохода
    """

    def __init__(self, settings: Optional[CuratorSettings] = None, renamer: Optional[ArchiveRenamer] = None):
        self.settings = settings or get_settings()
        self.canonicalizer = IdentifierCanonicalizer(self.settings.equivalent_groups)
        self.ignore_list = IgnoreList(self.settings.ignore_list_file)
        self.inference = CategoryInference(self.settings.heuristics)
        self.reconciler = StateReconciler()
        self.renderer = ReportRenderer(
            title=self.settings.report_title,
            dependents_limit=self.settings.dependents_text_limit,
            dependencies_limit=self.settings.dependencies_text_limit,
            optional_limit=self.settings.optional_preview_limit,
        )
        self.renamer = renamer or FileRenamer(self.settings.mods_path)
        self.collector = DiagnosticCollector(logger)
        self.graph: Optional[PackageGraph] = None
        self.engine: Optional[ToggleEngine] = None
        self.auto_categorized = 0
        self._lock = asyncio.Lock()

    # ----- analysis -----

    async def analyze(self) -> PackageGraph:
        """Выполнить полный проход анализа (без записи отчета)"""
        async with self._lock:
            return await self._analyze()

    async def generate_report(self) -> str:
        """Проанализировать сборку заново и записать отчет"""
        async with self._lock:
            await self._analyze()
            return self._write_report()

    async def render_report(self) -> str:
        """Записать отчет по текущему графу"""
        async with self._lock:
            self._require_graph()
            return self._write_report()

    async def _analyze(self) -> PackageGraph:
        settings = self.settings
        self.collector.clear()
        logger.info(f"🔍 Analyzing mods in {settings.mods_path}...")

        files = PluginFinder.find_archives(str(settings.mods_path))
        index = PluginFinder.load_index(str(settings.index_path))

        handler = ArchiveHandler(settings.scratch_path)
        try:
            extractor = ArchiveExtractor(
                handler,
                canonicalizer=self.canonicalizer,
                index=index,
                ignored_dependencies=settings.ignored_dependencies,
                workers=settings.extraction_workers,
            )
            results = await extractor.extract_all([settings.mods_path / name for name in files])
        finally:
            handler.cleanup()

        records, diagnostics = flatten(results)
        self.collector.extend(diagnostics)

        builder = GraphBuilder(self.canonicalizer, self.ignore_list.items, self.collector)
        graph = builder.build(records)
        self.graph = graph
        self.engine = ToggleEngine(graph, self.renamer, self._lock)

        if graph.disabled_dependencies:
            if settings.auto_enable_disabled_dependencies:
                self._enable_disabled_dependencies()
            else:
                logger.warning(
                    f"⚠️ Found {len(graph.disabled_dependencies)} disabled dependencies: "
                    f"{', '.join(graph.disabled_dependencies)}"
                )

        self.reconciler.reconcile(graph, read_report(settings.report_file))
        self.auto_categorized = self.inference.apply(graph)
        self.inference.apply_sides(graph)
        graph.reorder(sort_nodes(graph.nodes))
        return graph

    def _write_report(self) -> str:
        return self.renderer.write(self.graph, self.settings.report_file, self.auto_categorized)

    def _require_graph(self) -> PackageGraph:
        if self.graph is None:
            raise CuratorError("Mods have not been analyzed yet")
        return self.graph

    # ----- toggling -----

    async def set_active(self, identifier: str, enabled: bool) -> ToggleResult:
        """Включить/отключить пакет с каскадом"""
        self._require_graph()
        result = await self.engine.set_active(identifier, enabled)
        self.collector.extend(result.diagnostics)
        return result

    async def set_category_active(self, category: str, enabled: bool) -> List[ToggleResult]:
        """Включить/отключить все пакеты категории"""
        nodes = self.category_nodes(category)
        logger.info(f'{"🔌 Enabling" if enabled else "⛔ Disabling"} category "{category}"...')
        results = await self.engine.set_many([node.identifier for node in nodes], enabled)
        for result in results:
            self.collector.extend(result.diagnostics)
        return results

    async def fix_disabled_dependencies(self) -> List[ToggleResult]:
        """Включить отключенные обязательные зависимости активных пакетов"""
        self._require_graph()
        async with self._lock:
            return self._enable_disabled_dependencies()

    def _enable_disabled_dependencies(self) -> List[ToggleResult]:
        graph = self.graph
        pending = list(graph.disabled_dependencies)
        logger.info(f"🔧 Enabling {len(pending)} disabled dependencies...")
        results = []
        for identifier in pending:
            result = self.engine.set_active_locked(identifier, True)
            self.collector.extend(result.diagnostics)
            results.append(result)
        graph.disabled_dependencies = [
            identifier for identifier in graph.disabled_dependencies
            if graph.get(identifier) is not None and not graph.get(identifier).active
        ]
        return results

    # ----- queries -----

    def get_node(self, identifier: str) -> Optional[PackageNode]:
        return self._require_graph().get(identifier)

    def list_nodes(self) -> List[PackageNode]:
        return self._require_graph().nodes

    def related(self, identifier: str, relation: str) -> List[Dict[str, Any]]:
        """
        Связанные пакеты: dependents, dependencies (обязательные) или optional.

        Raises:
            KeyError: пакет не найден
            ValueError: неизвестный тип связи
        """
        graph = self._require_graph()
        if relation not in RELATIONS:
            raise ValueError(f"Unknown relation: {relation}")
        node = graph.get(identifier)
        if node is None:
            raise KeyError(identifier)

        if relation == "dependents":
            pairs = [(ref.identifier, ref.kind) for ref in graph.dependents_of(node.identifier)]
        else:
            kind = DependencyKind.MANDATORY if relation == "dependencies" else DependencyKind.OPTIONAL
            pairs = [(edge.target, edge.kind) for edge in graph.dependencies_of(node.identifier, kind)]

        items = []
        for related_id, kind in pairs:
            related = graph.get(related_id)
            items.append({
                "identifier": related_id,
                "kind": kind.value,
                "found": related is not None and related.present,
                "name": related.name if related is not None else None,
                "active": related.active if related is not None else None,
            })
        return items

    def categories(self) -> List[str]:
        return self._require_graph().categories()

    def category_nodes(self, category: str) -> List[PackageNode]:
        """
        Пакеты категории (сравнение по отображаемому значению, "Library?" != "Library").

        Raises:
            KeyError: категория не найдена
        """
        graph = self._require_graph()
        if category not in graph.categories():
            raise KeyError(category)
        return [node for node in graph.nodes if node.category is not None and node.category.render() == category]

    def unsatisfied_optional(self) -> Dict[str, Any]:
        unsatisfied = self._require_graph().unsatisfied_optional_targets()
        logger.info(
            f"ℹ️ There are {len(unsatisfied)} unsatisfied optional dependencies "
            f"({len(self.ignore_list)} ignored)"
        )
        return {"unsatisfied": unsatisfied, "ignored": len(self.ignore_list)}

    async def ignore_optional(self, identifier: str) -> bool:
        """
        Добавить ID в список игнорирования и убрать такие опциональные ребра из графа.

        Returns:
            False, если ID уже игнорируется
        """
        added = self.ignore_list.add(identifier)
        if added and self.graph is not None:
            async with self._lock:
                self._drop_optional(identifier.strip())
        return added

    def _drop_optional(self, identifier: str):
        graph = self.graph
        for node in graph.nodes:
            node.dependencies = [
                edge for edge in node.dependencies
                if edge.mandatory or identifier not in (edge.target, edge.declared_target)
            ]
        graph.rebuild_dependents()

    def diagnostics(self) -> List[Diagnostic]:
        return self.collector.items


# Глобальный экземпляр
_pack_curator: Optional[PackCurator] = None


def get_pack_curator() -> PackCurator:
    """Получить глобальный экземпляр сервиса"""
    global _pack_curator
    if _pack_curator is None:
        _pack_curator = PackCurator()
    return _pack_curator


def init_pack_curator(
    settings: Optional[CuratorSettings] = None,
    renamer: Optional[ArchiveRenamer] = None,
) -> PackCurator:
    """Инициализировать глобальный экземпляр сервиса"""
    global _pack_curator
    _pack_curator = PackCurator(settings, renamer)
    return _pack_curator


__all__ = ["PackCurator", "RELATIONS", "node_to_dict", "get_pack_curator", "init_pack_curator"]
