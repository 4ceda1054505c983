"""
State Reconciler - восстановление ручных данных из прошлого отчета.

Категория и сторона редактируются в отчете руками, поэтому при каждом запуске
они переносятся на новые узлы по отображаемому имени. Пакеты, которых больше
нет в папке модов, сохраняются как "ушедшие" с текстом колонок как есть.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .constants import LOADER_FABRIC, LOADER_FORGE, PARENT_SEPARATOR, REPORT_COLUMNS, SIDE_UNKNOWN
from .dependency_graph import PackageGraph
from .models import Label, PackageNode


logger = logging.getLogger(__name__)

_CELL_SPLIT = re.compile(r'(?<!\\)\|')
_LINKED_NAME = re.compile(r'^\[(?P<name>.*)\]\((?P<link>[^()\s]*)\)$')


@dataclass
class ReportRow:
    """Строка таблицы прошлого отчета"""
    status: str
    loader: str
    identifier: str
    parent: Optional[str]
    name: str
    link: Optional[str]
    side: str
    category: str
    dependents: str
    dependencies: str
    optional: str


@dataclass
class ReconcileStats:
    recovered: int = 0
    gone: int = 0


def unescape_cell(text: str) -> str:
    return text.replace('\\|', '|')


def split_name(cell: str) -> Tuple[str, Optional[str]]:
    """[name](link) -> (name, link); обычное имя -> (name, None)"""
    match = _LINKED_NAME.match(cell)
    if match:
        return unescape_cell(match.group('name')), match.group('link') or None
    return unescape_cell(cell), None


def parse_report(text: str) -> List[ReportRow]:
    """Разобрать таблицу отчета: заголовок, разделитель, затем строки"""
    table_lines = [line.rstrip() for line in text.split('\n') if line.startswith('|')][2:]
    rows = []
    for line in table_lines:
        cells = [cell.strip() for cell in _CELL_SPLIT.split(line)[1:-1]]
        if len(cells) < len(REPORT_COLUMNS):
            logger.warning(f"⚠️ Skipping malformed report row: {line}")
            continue

        identifier_cell = cells[2]
        parent = None
        if PARENT_SEPARATOR in identifier_cell:
            parent, identifier_cell = identifier_cell.split(PARENT_SEPARATOR, 1)

        name, link = split_name(cells[3])
        rows.append(ReportRow(
            status=cells[0],
            loader=cells[1],
            identifier=identifier_cell.strip(),
            parent=parent.strip() if parent else None,
            name=name,
            link=link,
            side=cells[4],
            category=cells[5],
            dependents=cells[6],
            dependencies=cells[7],
            optional=cells[8],
        ))
    return rows


def read_report(path: Path) -> List[ReportRow]:
    if not path.exists():
        logger.info(f"ℹ️ No previous report at {path}")
        return []
    return parse_report(path.read_text(encoding='utf-8'))


def _side(text: str) -> Optional[Label]:
    if text == SIDE_UNKNOWN:
        return None
    return Label.parse(text)


class StateReconciler:
    """Перенос категорий и сторон из прошлого отчета на текущий граф"""

    def reconcile(self, graph: PackageGraph, rows: List[ReportRow]) -> ReconcileStats:
        stats = ReconcileStats()
        by_name: Dict[str, PackageNode] = {node.name: node for node in graph.nodes if node.present}

        for row in rows:
            category = Label.parse(row.category)
            side = _side(row.side)
            node = by_name.get(row.name)

            if node is not None:
                if category is not None:
                    node.category = category
                if side is not None:
                    node.side = side
                stats.recovered += 1
                continue

            gone = self._gone_node(graph, row, category, side)
            if gone is None:
                continue
            if graph.add(gone):
                stats.gone += 1
            else:
                logger.debug(f"Previous report row {row.name} ({row.identifier}) collides with an existing package")

        logger.info(f"♻️ Recovered {stats.recovered} categories from previous report.")
        if stats.gone:
            logger.info(
                f"👻 Found {stats.gone} mods in previous report that aren't on the current mod list. (Marking as gone)"
            )
        return stats

    def _gone_node(
        self,
        graph: PackageGraph,
        row: ReportRow,
        category: Optional[Label],
        side: Optional[Label],
    ) -> Optional[PackageNode]:
        if not row.identifier:
            logger.warning(f"⚠️ Previous report row {row.name} has no identifier")
            return None
        return PackageNode(
            identifier=graph.canonicalizer.canonicalize(row.identifier),
            declared_identifier=row.identifier,
            name=row.name,
            active=False,
            present=False,
            forge=LOADER_FORGE in row.loader,
            fabric=LOADER_FABRIC in row.loader,
            link=row.link,
            side=side,
            category=category,
            parent=row.parent,
            raw_dependents=row.dependents,
            raw_dependencies=row.dependencies,
            raw_optional=row.optional,
        )


__all__ = ["ReportRow", "ReconcileStats", "parse_report", "read_report", "StateReconciler"]
