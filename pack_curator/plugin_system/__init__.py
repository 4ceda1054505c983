"""
Plugin System - чтение архивов пакетов сборки.

Структура:
- plugin_finder.py - поиск архивов и индексных файлов
- metadata_reader.py - разбор mods.toml, fabric.mod.json и индекса
- archive_handler.py - временные копии вложенных архивов
- extractor.py - извлечение записей пакетов (включая jar-in-jar)
"""

from .archive_handler import ArchiveHandler
from .extractor import ArchiveExtractor, ExtractionResult, flatten
from .metadata_reader import (
    FabricManifest,
    ForgeManifest,
    IndexEntry,
    InferredManifest,
    ManifestError,
    PluginMetadataReader,
)
from .plugin_finder import PluginFinder

__all__ = [
    'ArchiveHandler',
    'ArchiveExtractor',
    'ExtractionResult',
    'flatten',
    'FabricManifest',
    'ForgeManifest',
    'IndexEntry',
    'InferredManifest',
    'ManifestError',
    'PluginMetadataReader',
    'PluginFinder',
]
