"""
Curator Configuration: централизованная конфигурация анализатора сборки.

Отвечает за:
- Загрузку настроек из файла (YAML, JSON) и переменных окружения
- Валидацию настроек (pydantic)
- Разрешение путей относительно корня сборки
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import (
    DEFAULT_COMPAT_MARKERS,
    DEFAULT_EQUIVALENT_GROUPS,
    DEFAULT_EXTRACTION_WORKERS,
    DEFAULT_FIX_MARKERS,
    DEFAULT_IGNORE_LIST_FILE,
    DEFAULT_IGNORED_DEPENDENCIES,
    DEFAULT_INDEX_DIR,
    DEFAULT_LIBRARY_MARKERS,
    DEFAULT_MODS_DIR,
    DEFAULT_REPORT_FILE,
    DEFAULT_REPORT_TITLE,
    DEPENDENCIES_TEXT_LIMIT,
    DEPENDENTS_TEXT_LIMIT,
    OPTIONAL_PREVIEW_LIMIT,
)


logger = logging.getLogger(__name__)

ENV_PREFIX = "PACK_CURATOR_"
CONFIG_ENV_VAR = "PACK_CURATOR_CONFIG"


class HeuristicsConfig(BaseModel):
    """Подстроки для эвристик категоризации (сравнение без учета регистра)"""
    library_markers: List[str] = Field(default_factory=lambda: list(DEFAULT_LIBRARY_MARKERS))
    fix_markers: List[str] = Field(default_factory=lambda: list(DEFAULT_FIX_MARKERS))
    compat_markers: List[str] = Field(default_factory=lambda: list(DEFAULT_COMPAT_MARKERS))

    @field_validator("library_markers", "fix_markers", "compat_markers")
    @classmethod
    def _lower(cls, value: List[str]) -> List[str]:
        return [marker.lower() for marker in value if marker]


class CuratorSettings(BaseModel):
    """Настройки анализатора"""
    root_dir: Path = Path(".")
    mods_dir: Path = Path(DEFAULT_MODS_DIR)
    index_dir: Path = Path(DEFAULT_INDEX_DIR)
    report_path: Path = Path(DEFAULT_REPORT_FILE)
    ignore_list_path: Path = Path(DEFAULT_IGNORE_LIST_FILE)
    scratch_dir: Optional[Path] = None  # None - создается через tempfile
    report_title: str = DEFAULT_REPORT_TITLE
    ignored_dependencies: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_DEPENDENCIES))
    equivalent_groups: List[List[str]] = Field(
        default_factory=lambda: [list(group) for group in DEFAULT_EQUIVALENT_GROUPS]
    )
    heuristics: HeuristicsConfig = Field(default_factory=HeuristicsConfig)
    dependents_text_limit: int = Field(default=DEPENDENTS_TEXT_LIMIT, ge=1)
    dependencies_text_limit: int = Field(default=DEPENDENCIES_TEXT_LIMIT, ge=1)
    optional_preview_limit: int = Field(default=OPTIONAL_PREVIEW_LIMIT, ge=1)
    extraction_workers: int = Field(default=DEFAULT_EXTRACTION_WORKERS, ge=1)
    auto_enable_disabled_dependencies: bool = False

    @field_validator("equivalent_groups")
    @classmethod
    def _non_empty_groups(cls, value: List[List[str]]) -> List[List[str]]:
        return [group for group in value if group]

    def resolve(self, path: Optional[Path]) -> Optional[Path]:
        """Разрешить путь относительно root_dir"""
        if path is None:
            return None
        return path if path.is_absolute() else self.root_dir / path

    @property
    def mods_path(self) -> Path:
        return self.resolve(self.mods_dir)

    @property
    def index_path(self) -> Path:
        return self.resolve(self.index_dir)

    @property
    def report_file(self) -> Path:
        return self.resolve(self.report_path)

    @property
    def ignore_list_file(self) -> Path:
        return self.resolve(self.ignore_list_path)

    @property
    def scratch_path(self) -> Optional[Path]:
        return self.resolve(self.scratch_dir)


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Прочитать файл настроек (YAML или JSON)"""
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _read_env(environ: Dict[str, str]) -> Dict[str, Any]:
    """Собрать настройки из переменных вида PACK_CURATOR_{FIELD}"""
    data: Dict[str, Any] = {}
    fields = CuratorSettings.model_fields
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_ENV_VAR:
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name not in fields:
            logger.debug(f"Unknown setting in environment: {key}")
            continue
        if name in ("equivalent_groups", "heuristics"):
            data[name] = json.loads(value)
        elif name == "ignored_dependencies":
            data[name] = [item.strip() for item in value.split(',') if item.strip()]
        else:
            data[name] = value
    return data


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> CuratorSettings:
    """
    Загрузить настройки.

    Приоритет (от меньшего к большему): значения по умолчанию, файл,
    переменные окружения, явные overrides.
    """
    environ = dict(os.environ) if environ is None else environ
    data: Dict[str, Any] = {}

    path = config_path or environ.get(CONFIG_ENV_VAR)
    if path:
        data.update(_read_config_file(Path(path)))
        logger.info(f"📄 Loaded curator config from {path}")

    data.update(_read_env(environ))
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return CuratorSettings.model_validate(data)
    except ValidationError as e:
        logger.error(f"❌ Invalid curator configuration: {e}")
        raise


# Global instance
_settings: Optional[CuratorSettings] = None


def get_settings() -> CuratorSettings:
    """Получить глобальные настройки"""
    global _settings
    if _settings is None:
        raise RuntimeError("Settings not initialized. Call init_settings first.")
    return _settings


def init_settings(config_path: Optional[str] = None, **overrides: Any) -> CuratorSettings:
    """Инициализировать глобальные настройки"""
    global _settings
    _settings = load_settings(config_path, **overrides)
    return _settings


EXAMPLE_CONFIG_YAML = """
root_dir: /srv/pack
report_title: "My Pack 5.2"
extraction_workers: 8
auto_enable_disabled_dependencies: false
ignored_dependencies:
  - java
  - minecraft
  - forge
  - neoforge
heuristics:
  library_markers: ["api", "lib", "core"]
  fix_markers: ["fix", "patch"]
  compat_markers: ["compat"]
"""

__all__ = [
    "HeuristicsConfig",
    "CuratorSettings",
    "load_settings",
    "get_settings",
    "init_settings",
    "EXAMPLE_CONFIG_YAML",
]
