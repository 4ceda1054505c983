"""
Модуль для работы с временной папкой вложенных архивов (jar-in-jar)
"""

import os
import logging
import tempfile
import shutil
from typing import Optional
from pathlib import Path

from ..constants import NESTED_ARCHIVE_SEPARATOR, SCRATCH_DIR_PREFIX

logger = logging.getLogger(__name__)


class ArchiveHandler:
    """Обработчик временных копий вложенных архивов"""

    def __init__(self, temp_dir: Optional[str] = None):
        """
        Инициализация обработчика архивов.

        Args:
            temp_dir: Временная директория для распаковки (если None, создается автоматически)
        """
        self.temp_dir = str(temp_dir) if temp_dir else tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX)
        if not os.path.exists(self.temp_dir):
            os.makedirs(self.temp_dir, exist_ok=True)

    def write_nested(self, container_id: str, entry: str, data: bytes) -> Path:
        """
        Сохранить вложенный архив во временную папку.

        Имя копии: <container_id>___<случайная часть>___<имя файла>, архивы
        читаются параллельно и одинаковые вложенные jar не должны пересекаться.

        Args:
            container_id: ID пакета-контейнера
            entry: Путь вложенного архива внутри контейнера
            data: Содержимое вложенного архива

        Returns:
            Путь к временной копии
        """
        fd, name = tempfile.mkstemp(
            prefix=f"{container_id}{NESTED_ARCHIVE_SEPARATOR}",
            suffix=f"{NESTED_ARCHIVE_SEPARATOR}{entry.split('/')[-1]}",
            dir=self.temp_dir,
        )
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        path = Path(name)
        logger.debug(f"📦 Extracted bundled archive to: {path}")
        return path

    def discard(self, path: Path):
        """Удалить временную копию после обработки"""
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def cleanup(self):
        """Очистить временные файлы"""
        try:
            if os.path.exists(self.temp_dir):
                shutil.rmtree(self.temp_dir, ignore_errors=True)
                logger.debug(f"🧹 Cleaned up temp directory: {self.temp_dir}")
        except Exception as e:
            logger.warning(f"⚠️ Failed to cleanup temp directory: {e}")

    def __enter__(self) -> "ArchiveHandler":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
