import asyncio

import pytest

from conftest import fabric_json, jar_bytes
from pack_curator.diagnostics import DiagnosticKind, NestedExtractionError
from pack_curator.models import DependencyKind
from pack_curator.plugin_system.archive_handler import ArchiveHandler
from pack_curator.plugin_system.extractor import ArchiveExtractor, flatten
from pack_curator.plugin_system.plugin_finder import PluginFinder


def kinds(result):
    return [d.kind for d in result.diagnostics]


def test_forge_archive_fans_out_to_one_record_per_mod(pack, tmp_path):
    path = pack.add_forge(
        "multi-1.0.jar.disabled",
        [("alpha", "Alpha"), ("beta", None)],
        {"alpha": [("minecraft", True), ("flywheel", True), ("jei", False)]},
    )
    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler).extract(path)

    assert [r.identifier for r in result.records] == ["alpha", "beta"]
    assert all(r.file == "multi-1.0.jar.disabled" for r in result.records)
    assert all(r.disabled for r in result.records)
    assert all(r.forge and not r.fabric for r in result.records)
    # без displayName - имя уровня файла
    assert result.records[1].name == "multi-1.0.jar.disabled"

    alpha = result.records[0]
    assert [(e.target, e.kind) for e in alpha.dependencies] == [
        ("create", DependencyKind.MANDATORY),
        ("jei", DependencyKind.OPTIONAL),
    ]
    assert alpha.dependencies[0].declared_target == "flywheel"
    assert DiagnosticKind.MISSING_METADATA in kinds(result)


def test_index_metadata_is_applied(pack, tmp_path):
    path = pack.add_forge("jei-1.0.jar", [("jei", "JEI")])
    pack.add_index("jei-1.0.jar", "Just Enough Items", side="client", curseforge=238222)
    index = PluginFinder.load_index(str(pack.index_dir))

    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler, index=index).extract(path)

    record = result.records[0]
    assert record.name == "JEI"
    assert record.link == "https://www.curseforge.com/projects/238222"
    assert record.index_side == "client"
    assert DiagnosticKind.MISSING_METADATA not in kinds(result)


def test_nested_archives_are_extracted_recursively(pack, tmp_path):
    inner = jar_bytes({"fabric.mod.json": fabric_json("inner", "Inner Lib", depends=["container"])})
    path = pack.add_fabric(
        "container-1.0.jar.disabled",
        "container",
        "Container",
        depends=["fabricloader", "minecraft"],
        nested={"META-INF/jars/inner-1.0.jar": inner},
    )
    scratch = tmp_path / "scratch"
    handler = ArchiveHandler(scratch)
    result = ArchiveExtractor(handler).extract(path)

    assert [r.identifier for r in result.records] == ["container"]
    assert len(result.children) == 1
    child = result.children[0]
    assert child.depth == 1
    assert child.records[0].identifier == "inner"
    assert child.records[0].parent == "container"
    assert child.records[0].file == "inner-1.0.jar"
    assert child.records[0].disabled is True
    # ребро на контейнер остается, на себя - нет
    assert [e.target for e in child.records[0].dependencies] == ["container"]
    # fabricloader канонизируется в fabric, minecraft отброшен
    assert [e.target for e in result.records[0].dependencies] == ["fabric"]
    # временная копия удалена сразу после обработки
    assert list(scratch.iterdir()) == []

    handler.cleanup()
    assert not scratch.exists()

    records, _ = flatten([result])
    assert [r.identifier for r in records] == ["container", "inner"]


def test_missing_nested_entry_raises(pack, tmp_path):
    path = pack.add_jar("broken-1.0.jar", {
        "fabric.mod.json": fabric_json("broken", jars=["META-INF/jars/missing.jar"]),
    })
    with ArchiveHandler(tmp_path / "scratch") as handler:
        with pytest.raises(NestedExtractionError) as exc:
            ArchiveExtractor(handler).extract(path)
    assert exc.value.entry == "META-INF/jars/missing.jar"


def test_unreadable_nested_archive_raises(pack, tmp_path):
    path = pack.add_fabric(
        "broken-1.0.jar",
        "broken",
        nested={"META-INF/jars/garbage.jar": b"definitely not a zip"},
    )
    with ArchiveHandler(tmp_path / "scratch") as handler:
        with pytest.raises(NestedExtractionError):
            ArchiveExtractor(handler).extract(path)


def test_malformed_manifest_is_skipped(pack, tmp_path):
    path = pack.add_jar("bad-1.0.jar", {"META-INF/mods.toml": "[[mods]\nmodId = = 1"})
    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler).extract(path)
    assert result.records == []
    assert DiagnosticKind.MALFORMED_MANIFEST in kinds(result)


def corrupted_fabric_jar(mod_id):
    # Архив без сжатия: подмена байта в манифесте ломает CRC записи
    data = jar_bytes({"fabric.mod.json": fabric_json(mod_id)})
    return data.replace(f'"{mod_id}"'.encode(), f'"{mod_id[:-1]}X"'.encode(), 1)


def test_corrupt_manifest_entry_is_skipped(pack, tmp_path):
    path = pack.mods_dir / "crc-1.0.jar"
    path.write_bytes(corrupted_fabric_jar("crcmod"))
    pack.add_forge("fine-1.0.jar", [("fine", "Fine")])
    with ArchiveHandler(tmp_path / "scratch") as handler:
        extractor = ArchiveExtractor(handler)
        result = extractor.extract(path)
        files = PluginFinder.find_archives(str(pack.mods_dir))
        results = asyncio.run(extractor.extract_all([pack.mods_dir / f for f in files]))
    assert result.records == []
    assert DiagnosticKind.MALFORMED_MANIFEST in kinds(result)
    assert [r.identifier for r in flatten(results)[0]] == ["fine"]


def test_corrupt_nested_manifest_raises(pack, tmp_path):
    path = pack.add_fabric(
        "outer-1.0.jar",
        "outer",
        nested={"META-INF/jars/inner.jar": corrupted_fabric_jar("innermod")},
    )
    with ArchiveHandler(tmp_path / "scratch") as handler:
        with pytest.raises(NestedExtractionError):
            ArchiveExtractor(handler).extract(path)


def test_invalid_top_level_archive_is_reported(pack, tmp_path):
    path = pack.mods_dir / "notazip-1.0.jar"
    path.write_bytes(b"plain text")
    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler).extract(path)
    assert result.records == []
    assert DiagnosticKind.MALFORMED_MANIFEST in kinds(result)


def test_missing_manifest_degrades_to_filename(pack, tmp_path):
    path = pack.add_jar("CoolMod-forge-2.0.jar", {"README.txt": "hello"})
    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler).extract(path)
    record = result.records[0]
    assert record.identifier == "coolmod"
    assert record.forge is True
    assert record.fabric is False
    assert record.dependencies == []
    assert DiagnosticKind.MISSING_MANIFEST in kinds(result)


def test_loader_mismatch_is_reported(pack, tmp_path):
    path = pack.add_fabric("thing-forge-1.0.jar", "thing")
    with ArchiveHandler(tmp_path / "scratch") as handler:
        result = ArchiveExtractor(handler).extract(path)
    assert result.records[0].forge and result.records[0].fabric
    assert DiagnosticKind.LOADER_MISMATCH in kinds(result)


def test_extract_all_keeps_discovery_order(pack, tmp_path):
    for name in ["c-1.jar", "a-1.jar", "b-1.jar"]:
        pack.add_forge(name, [(name[0], None)])
    files = PluginFinder.find_archives(str(pack.mods_dir))
    assert files == ["a-1.jar", "b-1.jar", "c-1.jar"]

    with ArchiveHandler(tmp_path / "scratch") as handler:
        extractor = ArchiveExtractor(handler, workers=2)
        results = asyncio.run(extractor.extract_all([pack.mods_dir / f for f in files]))

    records, _ = flatten(results)
    assert [r.identifier for r in records] == ["a", "b", "c"]


def test_find_archives_skips_other_files(pack):
    pack.add_forge("a-1.jar", [("a", None)])
    pack.add_forge("b-1.jar.disabled", [("b", None)])
    (pack.mods_dir / "notes.txt").write_text("x")
    assert PluginFinder.find_archives(str(pack.mods_dir)) == ["a-1.jar", "b-1.jar.disabled"]
