from pack_curator.ignore_list import IgnoreList


def test_reads_unique_trimmed_lines(tmp_path):
    path = tmp_path / "ignoredOptDeps.txt"
    path.write_text("jei\n\n  emi  \njei\n", encoding="utf-8")
    ignore_list = IgnoreList(path)
    assert ignore_list.items == ["jei", "emi"]
    assert "emi" in ignore_list


def test_add_keeps_file_sorted(tmp_path):
    path = tmp_path / "ignoredOptDeps.txt"
    ignore_list = IgnoreList(path)
    assert ignore_list.add("modmenu")
    assert ignore_list.add("emi")
    assert not ignore_list.add("emi")
    assert path.read_text(encoding="utf-8") == "emi\nmodmenu"
    assert len(IgnoreList(path)) == 2
