"""
Список игнорируемых опциональных зависимостей (по одному ID на строку).
"""
import logging
import threading
from pathlib import Path
from typing import List


logger = logging.getLogger(__name__)


class IgnoreList:
    """Файловое хранилище игнорируемых ID"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._items: List[str] = self._load()

    def _load(self) -> List[str]:
        if not self.path.exists():
            return []
        items: List[str] = []
        for line in self.path.read_text(encoding='utf-8').split('\n'):
            line = line.strip()
            if line and line not in items:
                items.append(line)
        logger.debug(f"Loaded {len(items)} ignored optional dependencies from {self.path}")
        return items

    @property
    def items(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def add(self, identifier: str) -> bool:
        """
        Добавить ID и сохранить файл (отсортированным).

        Returns:
            False, если ID уже в списке
        """
        identifier = identifier.strip()
        if not identifier:
            raise ValueError("identifier must not be empty")
        with self._lock:
            if identifier in self._items:
                logger.warning(f'⚠️ Mod "{identifier}" is already ignored.')
                return False
            self._items.append(identifier)
            self._items.sort()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text('\n'.join(self._items), encoding='utf-8')
        logger.info(f'🙈 Mod "{identifier}" ignored.')
        return True


__all__ = ["IgnoreList"]
