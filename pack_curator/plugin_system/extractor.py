"""
Archive Metadata Extractor - чтение идентичности и зависимостей пакетов из архивов.

Каждый архив дает ExtractionResult: записи пакетов этого архива и дочерние
результаты для вложенных архивов (jar-in-jar). Дерево сворачивается в плоский
список явным редьюсером (flatten) только после того, как все архивы прочитаны.
"""
import asyncio
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..canonical import IdentifierCanonicalizer
from ..constants import (
    DEFAULT_EXTRACTION_WORKERS,
    DEFAULT_IGNORED_DEPENDENCIES,
    DISABLED_SUFFIX,
    FABRIC_MANIFEST_PATH,
    FORGE_MANIFEST_PATH,
)
from ..diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind, NestedExtractionError
from ..models import DependencyEdge, DependencyKind, PackageRecord
from .archive_handler import ArchiveHandler
from .metadata_reader import (
    FabricManifest,
    ForgeManifest,
    IndexEntry,
    ManifestError,
    PluginMetadataReader,
    RawDependency,
    strip_archive_suffix,
)

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Результат обработки одного архива"""
    archive: str
    depth: int = 0
    records: List[PackageRecord] = field(default_factory=list)
    children: List["ExtractionResult"] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def walk(self) -> Iterable["ExtractionResult"]:
        """Обход в прямом порядке: контейнер раньше вложенных архивов"""
        yield self
        for child in self.children:
            yield from child.walk()


def flatten(results: Sequence[ExtractionResult]) -> Tuple[List[PackageRecord], List[Diagnostic]]:
    """Свернуть деревья результатов в записи и диагностики в порядке обнаружения"""
    records: List[PackageRecord] = []
    diagnostics: List[Diagnostic] = []
    for result in results:
        for node in result.walk():
            records.extend(node.records)
            diagnostics.extend(node.diagnostics)
    return records, diagnostics


@dataclass
class _FileInfo:
    """Атрибуты уровня файла, общие для всех пакетов архива"""
    file: str
    name: str
    disabled: bool
    link: Optional[str] = None
    side: Optional[str] = None
    forge: bool = False
    fabric: bool = False


class ArchiveExtractor:
    """Читатель архивов пакетов"""

    def __init__(
        self,
        handler: ArchiveHandler,
        canonicalizer: Optional[IdentifierCanonicalizer] = None,
        index: Optional[Dict[str, IndexEntry]] = None,
        ignored_dependencies: Optional[Iterable[str]] = None,
        workers: int = DEFAULT_EXTRACTION_WORKERS,
    ):
        self.handler = handler
        self.canonicalizer = canonicalizer or IdentifierCanonicalizer()
        self.index = index or {}
        ignored = DEFAULT_IGNORED_DEPENDENCIES if ignored_dependencies is None else ignored_dependencies
        self.ignored_dependencies = set(ignored)
        self.workers = workers

    async def extract_all(self, archive_paths: Sequence[Path]) -> List[ExtractionResult]:
        """
        Прочитать архивы параллельно.

        Результаты возвращаются в порядке archive_paths независимо от того,
        в каком порядке завершились потоки.
        """
        semaphore = asyncio.Semaphore(self.workers)

        async def run(path: Path) -> ExtractionResult:
            async with semaphore:
                return await asyncio.to_thread(self.extract, Path(path))

        return list(await asyncio.gather(*(run(path) for path in archive_paths)))

    def extract(
        self,
        archive_path: Path,
        parent: Optional[str] = None,
        depth: int = 0,
        disabled: Optional[bool] = None,
        display_file: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Прочитать один архив.

        Args:
            archive_path: Путь к архиву (для вложенных - временная копия)
            parent: ID пакета-контейнера для вложенных архивов
            depth: Глубина вложенности
            disabled: Флаг отключения контейнера (для вложенных архивов)
            display_file: Имя файла для записей (для вложенных - имя внутри контейнера)

        Raises:
            NestedExtractionError: вложенный архив не читается
        """
        filename = display_file or archive_path.name
        collector = DiagnosticCollector(logger)
        result = ExtractionResult(archive=filename, depth=depth)

        info = self._file_info(filename, parent, disabled, collector)

        try:
            archive = zipfile.ZipFile(archive_path, 'r')
        except zipfile.BadZipFile as e:
            if parent is not None:
                raise NestedExtractionError(parent, filename, str(e)) from e
            collector.error(DiagnosticKind.MALFORMED_MANIFEST, f"{filename}: invalid archive: {e}", filename)
            result.diagnostics = collector.items
            return result

        with archive:
            names = set(archive.namelist())
            has_forge = FORGE_MANIFEST_PATH in names
            has_fabric = FABRIC_MANIFEST_PATH in names
            info.forge = has_forge or info.forge
            info.fabric = has_fabric or info.fabric
            self._check_loader(info, has_forge, has_fabric, collector)

            if has_forge:
                result.records = self._read_forge(archive, info, parent, collector)
            elif has_fabric:
                result.records, result.children = self._read_fabric(archive, info, parent, depth, collector)
            else:
                result.records = [self._read_inferred(info, parent, collector)]

        result.diagnostics = collector.items
        return result

    def _file_info(
        self,
        filename: str,
        parent: Optional[str],
        disabled: Optional[bool],
        collector: DiagnosticCollector,
    ) -> _FileInfo:
        inferred = PluginMetadataReader.infer_from_filename(filename)
        if parent is not None:
            return _FileInfo(
                file=filename,
                name=filename,
                disabled=bool(disabled),
                forge=inferred.forge,
                fabric=inferred.fabric,
            )

        entry = self.index.get(strip_archive_suffix(filename))
        if entry is None:
            collector.warn(DiagnosticKind.MISSING_METADATA, f"{filename}: no index metadata found", filename)
        info = _FileInfo(
            file=filename,
            name=(entry.name if entry and entry.name else filename).strip(),
            disabled=filename.endswith(DISABLED_SUFFIX) if disabled is None else disabled,
            link=entry.link if entry else None,
            side=entry.side if entry else None,
            forge=inferred.forge,
            fabric=inferred.fabric,
        )
        if not info.link:
            collector.warn(DiagnosticKind.MISSING_METADATA, f"{info.name}: no link found", filename)
        return info

    def _check_loader(self, info: _FileInfo, has_forge: bool, has_fabric: bool, collector: DiagnosticCollector):
        lowered = info.file.lower()
        if 'forge' in lowered and not has_forge and has_fabric:
            collector.warn(
                DiagnosticKind.LOADER_MISMATCH,
                f"{info.name}: Forge mod does not have mods.toml. But (weirdly) has fabric.mod.json.",
                info.file,
            )
        if 'fabric' in lowered and not has_fabric and has_forge:
            collector.warn(
                DiagnosticKind.LOADER_MISMATCH,
                f"{info.name}: Fabric mod does not have fabric.mod.json. But (weirdly) has mods.toml.",
                info.file,
            )

    def _read_manifest(
        self,
        archive: zipfile.ZipFile,
        entry: str,
        info: _FileInfo,
        parent: Optional[str],
        collector: DiagnosticCollector,
    ) -> Optional[str]:
        """
        Прочитать файл манифеста из архива.

        Поврежденная запись у архива верхнего уровня - MALFORMED_MANIFEST и None.

        Raises:
            NestedExtractionError: поврежден манифест вложенного архива
        """
        try:
            return archive.read(entry).decode('utf-8', errors='replace')
        except (zipfile.BadZipFile, zlib.error) as e:
            if parent is not None:
                raise NestedExtractionError(parent, info.file, str(e)) from e
            collector.error(DiagnosticKind.MALFORMED_MANIFEST, f"{info.name}: unreadable {entry}: {e}", info.file)
            return None

    def _read_forge(
        self,
        archive: zipfile.ZipFile,
        info: _FileInfo,
        parent: Optional[str],
        collector: DiagnosticCollector,
    ) -> List[PackageRecord]:
        text = self._read_manifest(archive, FORGE_MANIFEST_PATH, info, parent, collector)
        if text is None:
            return []
        try:
            manifest: ForgeManifest = PluginMetadataReader.parse_forge(text)
        except ManifestError as e:
            collector.error(DiagnosticKind.MALFORMED_MANIFEST, f"{info.name}: error parsing mods.toml: {e}", info.file)
            return []

        return [
            self._record(info, mod.mod_id, mod.display_name, mod.dependencies, parent)
            for mod in manifest.mods
        ]

    def _read_fabric(
        self,
        archive: zipfile.ZipFile,
        info: _FileInfo,
        parent: Optional[str],
        depth: int,
        collector: DiagnosticCollector,
    ) -> Tuple[List[PackageRecord], List[ExtractionResult]]:
        text = self._read_manifest(archive, FABRIC_MANIFEST_PATH, info, parent, collector)
        if text is None:
            return [], []
        try:
            manifest: FabricManifest = PluginMetadataReader.parse_fabric(text)
        except ManifestError as e:
            collector.error(DiagnosticKind.MALFORMED_MANIFEST, f"{info.name}: error parsing fabric.mod.json: {e}", info.file)
            return [], []

        record = self._record(info, manifest.mod_id, manifest.name, manifest.dependencies, parent)
        children = [
            self._extract_nested(archive, info, record, jar, depth)
            for jar in manifest.jars
        ]
        return [record], children

    def _extract_nested(
        self,
        archive: zipfile.ZipFile,
        info: _FileInfo,
        container: PackageRecord,
        entry: str,
        depth: int,
    ) -> ExtractionResult:
        try:
            data = archive.read(entry)
        except (KeyError, zipfile.BadZipFile, zlib.error) as e:
            raise NestedExtractionError(info.file, entry, str(e)) from e

        scratch = self.handler.write_nested(container.declared_identifier, entry, data)
        try:
            return self.extract(
                scratch,
                parent=container.identifier,
                depth=depth + 1,
                disabled=info.disabled,
                display_file=entry.split('/')[-1],
            )
        finally:
            self.handler.discard(scratch)

    def _read_inferred(self, info: _FileInfo, parent: Optional[str], collector: DiagnosticCollector) -> PackageRecord:
        inferred = PluginMetadataReader.infer_from_filename(info.file)
        message = "No mods.toml or fabric.mod.json."
        if inferred.forge:
            message += " Assuming Forge from filename."
        if inferred.fabric:
            message += " Assuming Fabric from filename."
        if not inferred.forge and not inferred.fabric:
            message += " Could not infer modloader from filename."
        message += f' Assuming modId "{inferred.mod_id}" from filename.'
        collector.warn(DiagnosticKind.MISSING_MANIFEST, f"{info.name}: {message}", info.file)
        return self._record(info, inferred.mod_id, None, [], parent)

    def _record(
        self,
        info: _FileInfo,
        mod_id: str,
        name: Optional[str],
        raw_dependencies: List[RawDependency],
        parent: Optional[str],
    ) -> PackageRecord:
        identifier = self.canonicalizer.canonicalize(mod_id)
        return PackageRecord(
            identifier=identifier,
            declared_identifier=mod_id,
            name=name or info.name,
            file=info.file,
            disabled=info.disabled,
            forge=info.forge,
            fabric=info.fabric,
            link=info.link,
            parent=parent,
            index_side=info.side,
            dependencies=self._dependencies(identifier, raw_dependencies),
        )

    def _dependencies(self, source: str, raw_dependencies: List[RawDependency]) -> List[DependencyEdge]:
        """Отбросить платформенные ID, канонизировать, убрать дубликаты"""
        edges: Dict[str, DependencyEdge] = {}
        for raw in raw_dependencies:
            if raw.mod_id in self.ignored_dependencies:
                continue
            target = self.canonicalizer.canonicalize(raw.mod_id)
            if target == source or target in self.ignored_dependencies:
                continue
            kind = DependencyKind.MANDATORY if raw.mandatory else DependencyKind.OPTIONAL
            existing = edges.get(target)
            if existing is not None and (existing.mandatory or kind == DependencyKind.OPTIONAL):
                continue
            edges[target] = DependencyEdge(
                source=source,
                target=target,
                kind=kind,
                declared_target=raw.mod_id if raw.mod_id != target else None,
            )
        return list(edges.values())
