"""
Модуль для чтения метаданных пакетов: манифесты внутри архивов
(META-INF/mods.toml, fabric.mod.json) и индексные файлы сборки (.index/*.toml)
"""

import json
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..constants import (
    ARCHIVE_EXTENSION,
    CORRUPT_KEY_PREFIX,
    CURSEFORGE_PROJECT_URL,
    DISABLED_SUFFIX,
    MODRINTH_PROJECT_URL,
)

logger = logging.getLogger(__name__)


class ManifestError(ValueError):
    """Манифест присутствует, но не разбирается"""


@dataclass(frozen=True)
class RawDependency:
    """Зависимость в том виде, в каком она объявлена в манифесте"""
    mod_id: str
    mandatory: bool


@dataclass
class ForgeModEntry:
    mod_id: str
    display_name: Optional[str] = None
    dependencies: List[RawDependency] = field(default_factory=list)


@dataclass
class ForgeManifest:
    """META-INF/mods.toml: один архив - один или несколько пакетов"""
    mods: List[ForgeModEntry]


@dataclass
class FabricManifest:
    """fabric.mod.json: ровно один пакет, может содержать вложенные архивы"""
    mod_id: str
    name: Optional[str] = None
    dependencies: List[RawDependency] = field(default_factory=list)
    jars: List[str] = field(default_factory=list)


@dataclass
class InferredManifest:
    """Манифеста нет - все выведено из имени файла"""
    mod_id: str
    forge: bool = False
    fabric: bool = False


Manifest = Union[ForgeManifest, FabricManifest, InferredManifest]


@dataclass
class IndexEntry:
    """Индексный файл сборки для одного архива"""
    filename: str
    name: Optional[str] = None
    side: Optional[str] = None
    link: Optional[str] = None


def strip_archive_suffix(filename: str) -> str:
    """mod-1.0.jar.disabled -> mod-1.0.jar"""
    if filename.endswith(DISABLED_SUFFIX):
        return filename[:-len(DISABLED_SUFFIX)]
    return filename


class PluginMetadataReader:
    """Читатель метаданных пакетов"""

    @staticmethod
    def normalize_forge_toml(text: str) -> str:
        """
        Исправить известную порчу mods.toml.

        Ключи вида mixin.foo внутри таблиц конфликтуют с dotted-key синтаксисом
        TOML. В строках с префиксом mixin. точки ключа заменяются на "_",
        значение справа от "=" не трогается.
        """
        fixed = []
        for line in text.split('\n'):
            if CORRUPT_KEY_PREFIX in line:
                key, sep, value = line.partition('=')
                if CORRUPT_KEY_PREFIX in key:
                    line = key.replace('.', '_') + sep + value
            fixed.append(line)
        return '\n'.join(fixed)

    @staticmethod
    def _forge_dependency(raw: Dict[str, Any]) -> Optional[RawDependency]:
        mod_id = raw.get('modId')
        if not isinstance(mod_id, str) or not mod_id:
            return None
        mandatory = raw.get('mandatory')
        if mandatory is None:
            # Новый формат: type = "required" | "optional" | "incompatible" | "discouraged"
            dep_type = str(raw.get('type', 'optional')).lower()
            if dep_type not in ('required', 'optional'):
                return None
            mandatory = dep_type == 'required'
        elif isinstance(mandatory, str):
            mandatory = mandatory.strip().lower() == 'true'
        return RawDependency(mod_id=mod_id, mandatory=bool(mandatory))

    @staticmethod
    def parse_forge(text: str) -> ForgeManifest:
        """
        Разобрать META-INF/mods.toml.

        Raises:
            ManifestError: если TOML некорректен даже после нормализации
        """
        try:
            data = tomllib.loads(PluginMetadataReader.normalize_forge_toml(text))
        except tomllib.TOMLDecodeError as e:
            raise ManifestError(f"Invalid mods.toml: {e}") from e

        mods = data.get('mods')
        if not isinstance(mods, list) or not mods:
            raise ManifestError("mods.toml declares no [[mods]] entries")

        dependencies = data.get('dependencies') or {}
        if not isinstance(dependencies, dict):
            raise ManifestError("mods.toml [dependencies] must be a table")

        entries = []
        for mod in mods:
            mod_id = mod.get('modId') if isinstance(mod, dict) else None
            if not isinstance(mod_id, str) or not mod_id:
                raise ManifestError("mods.toml [[mods]] entry without modId")
            raw_deps = dependencies.get(mod_id) or []
            if isinstance(raw_deps, dict):
                raw_deps = [raw_deps]
            deps = [
                dep for dep in (PluginMetadataReader._forge_dependency(raw) for raw in raw_deps
                                if isinstance(raw, dict))
                if dep is not None
            ]
            display_name = mod.get('displayName')
            entries.append(ForgeModEntry(
                mod_id=mod_id,
                display_name=display_name.strip() if isinstance(display_name, str) and display_name.strip() else None,
                dependencies=deps,
            ))
        return ForgeManifest(mods=entries)

    @staticmethod
    def parse_fabric(text: str) -> FabricManifest:
        """
        Разобрать fabric.mod.json.

        Raises:
            ManifestError: если JSON некорректен или нет поля id
        """
        try:
            data = json.loads(text, strict=False)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid fabric.mod.json: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError("fabric.mod.json must contain an object")

        mod_id = data.get('id')
        if not isinstance(mod_id, str) or not mod_id:
            raise ManifestError("fabric.mod.json has no id")

        deps = []
        for key, mandatory in (('depends', True), ('recommends', False)):
            section = data.get(key) or {}
            if isinstance(section, dict):
                deps.extend(RawDependency(mod_id=dep_id, mandatory=mandatory) for dep_id in section)

        jars = []
        for jar in data.get('jars') or []:
            if isinstance(jar, dict) and isinstance(jar.get('file'), str):
                jars.append(jar['file'])

        name = data.get('name')
        return FabricManifest(
            mod_id=mod_id,
            name=name.strip() if isinstance(name, str) and name.strip() else None,
            dependencies=deps,
            jars=jars,
        )

    @staticmethod
    def infer_from_filename(filename: str) -> InferredManifest:
        """Вывести ID и загрузчик из имени файла: Foo-forge-1.2.jar -> foo, forge"""
        clean = strip_archive_suffix(filename)
        lowered = clean.lower()
        stem = clean[:-len(ARCHIVE_EXTENSION)] if lowered.endswith(ARCHIVE_EXTENSION) else clean
        return InferredManifest(
            mod_id=stem.split('-')[0].lower(),
            forge='forge' in lowered,
            fabric='fabric' in lowered,
        )

    @staticmethod
    def read_index_entry(index_path: Path) -> Optional[IndexEntry]:
        """
        Прочитать индексный файл сборки (.index/<mod>.pw.toml).

        Returns:
            IndexEntry или None если файл некорректен
        """
        try:
            with open(index_path, 'rb') as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"❌ Invalid index file {index_path}: {e}")
            return None

        filename = data.get('filename')
        if not isinstance(filename, str) or not filename:
            logger.warning(f"⚠️ Index file {index_path} has no filename")
            return None

        update = data.get('update') or {}
        link = None
        curseforge_id = (update.get('curseforge') or {}).get('project-id')
        modrinth_id = (update.get('modrinth') or {}).get('mod-id')
        if curseforge_id:
            link = CURSEFORGE_PROJECT_URL.format(project_id=curseforge_id)
        elif modrinth_id:
            link = MODRINTH_PROJECT_URL.format(project_id=modrinth_id)

        name = data.get('name')
        side = data.get('side')
        return IndexEntry(
            filename=filename,
            name=name.strip() if isinstance(name, str) and name.strip() else None,
            side=side if isinstance(side, str) and side else None,
            link=link,
        )
