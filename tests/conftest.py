import io
import json
import zipfile
from pathlib import Path

import pytest

from pack_curator.curator_config import CuratorSettings
from pack_curator.dependency_graph import GraphBuilder
from pack_curator.models import DependencyEdge, DependencyKind, PackageRecord


def jar_bytes(files: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def forge_toml(mods, dependencies=None) -> str:
    lines = ['modLoader="javafml"', 'loaderVersion="[47,)"', 'license="MIT"', '']
    for mod_id, name in mods:
        lines += ['[[mods]]', f'modId="{mod_id}"', 'version="1.0.0"']
        if name:
            lines.append(f'displayName="{name}"')
        lines.append('')
    for mod_id, deps in (dependencies or {}).items():
        for dep_id, mandatory in deps:
            lines += [
                f'[[dependencies.{mod_id}]]',
                f'modId="{dep_id}"',
                f'mandatory={"true" if mandatory else "false"}',
                'versionRange="[1,)"',
                'ordering="NONE"',
                'side="BOTH"',
                '',
            ]
    return '\n'.join(lines)


def fabric_json(mod_id, name=None, depends=(), recommends=(), jars=()) -> str:
    data = {"schemaVersion": 1, "id": mod_id, "version": "1.0.0"}
    if name:
        data["name"] = name
    if depends:
        data["depends"] = {dep: "*" for dep in depends}
    if recommends:
        data["recommends"] = {dep: "*" for dep in recommends}
    if jars:
        data["jars"] = [{"file": jar} for jar in jars]
    return json.dumps(data)


class PackLayout:
    """Сборка во временной папке: mods/, mods/.index/, отчет"""

    def __init__(self, root: Path):
        self.root = root
        self.mods_dir = root / "minecraft" / "mods"
        self.index_dir = self.mods_dir / ".index"
        self.mods_dir.mkdir(parents=True)
        self.index_dir.mkdir()

    def add_jar(self, filename: str, files: dict) -> Path:
        path = self.mods_dir / filename
        path.write_bytes(jar_bytes(files))
        return path

    def add_forge(self, filename: str, mods, dependencies=None) -> Path:
        return self.add_jar(filename, {"META-INF/mods.toml": forge_toml(mods, dependencies)})

    def add_fabric(self, filename: str, mod_id: str, name=None, depends=(), recommends=(), nested=None) -> Path:
        nested = nested or {}
        files = {"fabric.mod.json": fabric_json(mod_id, name, depends, recommends, list(nested))}
        files.update(nested)
        return self.add_jar(filename, files)

    def add_index(self, filename: str, name: str, side: str = "both", curseforge=None, modrinth=None) -> Path:
        lines = [f'name = "{name}"', f'filename = "{filename}"', f'side = "{side}"', '']
        if curseforge is not None:
            lines += ['[update.curseforge]', f'project-id = {curseforge}', 'file-id = 1', '']
        if modrinth is not None:
            lines += ['[update.modrinth]', f'mod-id = "{modrinth}"', 'version = "abc"', '']
        path = self.index_dir / (filename.split('.jar')[0] + ".pw.toml")
        path.write_text('\n'.join(lines), encoding='utf-8')
        return path

    def settings(self, **overrides) -> CuratorSettings:
        return CuratorSettings(root_dir=self.root, **overrides)


@pytest.fixture
def pack(tmp_path):
    return PackLayout(tmp_path)


def make_record(identifier, depends=(), recommends=(), disabled=False, parent=None, name=None, file=None):
    edges = [DependencyEdge(identifier, dep, DependencyKind.MANDATORY) for dep in depends]
    edges += [DependencyEdge(identifier, dep, DependencyKind.OPTIONAL) for dep in recommends]
    return PackageRecord(
        identifier=identifier,
        declared_identifier=identifier,
        name=name or identifier.upper(),
        file=file or f"{identifier}.jar" + (".disabled" if disabled else ""),
        disabled=disabled,
        forge=True,
        parent=parent,
        dependencies=edges,
    )


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def build_graph():
    def build(*records, ignored_optional=None):
        return GraphBuilder(ignored_optional=ignored_optional).build(list(records))
    return build
