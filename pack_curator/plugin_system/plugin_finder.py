"""
Модуль для поиска архивов пакетов и их индексных файлов
"""

import os
import logging
from typing import Dict, List

from ..constants import ALLOWED_ARCHIVE_EXTENSIONS
from .metadata_reader import IndexEntry, PluginMetadataReader

logger = logging.getLogger(__name__)


class PluginFinder:
    """Поисковик архивов пакетов"""

    @staticmethod
    def find_archives(mods_dir: str) -> List[str]:
        """
        Найти все архивы пакетов (.jar, .jar.disabled) в папке модов.

        Порядок - лексикографический по имени файла: от него зависит, какой
        архив "побеждает" при дублирующихся ID, поэтому он не должен зависеть
        от порядка листинга файловой системы.

        Args:
            mods_dir: Путь к папке модов

        Returns:
            Список имен файлов
        """
        if not os.path.isdir(mods_dir):
            logger.warning(f"❌ Mods directory not found: {mods_dir}")
            return []

        archives = []
        for item in sorted(os.listdir(mods_dir)):
            item_path = os.path.join(mods_dir, item)
            if not os.path.isfile(item_path):
                continue
            if not any(item.endswith(ext) for ext in ALLOWED_ARCHIVE_EXTENSIONS):
                logger.debug(f"⏭️ Skipping non-archive file: {item}")
                continue
            archives.append(item)

        logger.info(f"🔍 There are {len(archives)} mod files in {mods_dir}")
        return archives

    @staticmethod
    def load_index(index_dir: str) -> Dict[str, IndexEntry]:
        """
        Прочитать индексные файлы сборки.

        Args:
            index_dir: Путь к папке .index

        Returns:
            Словарь filename -> IndexEntry
        """
        if not os.path.isdir(index_dir):
            logger.info(f"ℹ️ No index directory: {index_dir}")
            return {}

        entries: Dict[str, IndexEntry] = {}
        for item in sorted(os.listdir(index_dir)):
            item_path = os.path.join(index_dir, item)
            if not os.path.isfile(item_path):
                continue
            entry = PluginMetadataReader.read_index_entry(item_path)
            if entry is None:
                continue
            entries.setdefault(entry.filename, entry)

        logger.debug(f"📇 Loaded {len(entries)} index entries")
        return entries
