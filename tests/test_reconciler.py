from datetime import datetime

from pack_curator.models import Label
from pack_curator.reconciler import StateReconciler, parse_report, read_report, split_name
from pack_curator.report import ReportRenderer

PREVIOUS_REPORT = """# Old Pack

> Auto-generated at 2024-01-01 10:00:00

`3` mods (`0` disabled, `0` gone)

|    | Modloader | Mod ID         | Name                          | Side    | Category  | Dependents | Deps (no libs) | Opt. Deps (unsatisfied)  |
|----|-----------|----------------|-------------------------------|---------|-----------|------------|----------------|--------------------------|
| ✅ | Forge     | a              | [Alpha \\| One](https://x/a)   | client? | Library?  | `b`        |                |                          |
| ✅ | Forge     | b              | Beta                          | both    | Tech      |            | `a`            |                          |
| ❌ | Fabric    | holder > old   | [Old Mod](https://x/old)      | unknown | Addon     | `q`, `r?`  | 7 dependencies | `3` (`1` uns.: `foo`)    |
"""


def test_parse_report_rows():
    rows = parse_report(PREVIOUS_REPORT)
    assert [r.identifier for r in rows] == ["a", "b", "old"]

    alpha = rows[0]
    assert alpha.name == "Alpha | One"
    assert alpha.link == "https://x/a"
    assert alpha.side == "client?"
    assert alpha.category == "Library?"

    old = rows[2]
    assert old.parent == "holder"
    assert old.loader == "Fabric"
    assert old.optional == "`3` (`1` uns.: `foo`)"


def test_split_name():
    assert split_name("[Name](https://l)") == ("Name", "https://l")
    assert split_name("Plain") == ("Plain", None)


def test_reconcile_recovers_labels_and_injects_gone_nodes(build_graph, record):
    graph = build_graph(record("a", name="Alpha | One"), record("b", name="Beta"))
    stats = StateReconciler().reconcile(graph, parse_report(PREVIOUS_REPORT))

    assert stats.recovered == 2
    assert stats.gone == 1

    alpha = graph.get("a")
    assert alpha.category == Label("Library", uncertain=True)
    assert alpha.side == Label("client", uncertain=True)
    assert graph.get("b").category == Label("Tech")

    old = graph.get("old")
    assert old.gone and not old.active
    assert old.parent == "holder"
    assert old.fabric and not old.forge
    assert old.side is None
    assert old.category == Label("Addon")
    assert old.link == "https://x/old"
    assert old.raw_dependents == "`q`, `r?`"
    assert old.raw_optional == "`3` (`1` uns.: `foo`)"


def test_round_trip_preserves_markers_and_gone_text(build_graph, record):
    graph = build_graph(record("a", name="Alpha | One"), record("b", name="Beta"))
    StateReconciler().reconcile(graph, parse_report(PREVIOUS_REPORT))
    text = ReportRenderer().render(graph, now=datetime(2024, 2, 1))

    fresh = build_graph(record("a", name="Alpha | One"), record("b", name="Beta"))
    stats = StateReconciler().reconcile(fresh, parse_report(text))

    assert stats.recovered == 2
    assert stats.gone == 1
    assert fresh.get("a").category == Label("Library", uncertain=True)
    assert fresh.get("a").side == Label("client", uncertain=True)
    assert fresh.get("old").raw_optional == "`3` (`1` uns.: `foo`)"
    assert fresh.get("old").raw_dependencies == "7 dependencies"


def test_gone_row_colliding_with_present_node_is_skipped(build_graph, record):
    graph = build_graph(record("old", name="Renamed Old"))
    stats = StateReconciler().reconcile(graph, parse_report(PREVIOUS_REPORT))
    assert stats.gone == 2
    assert graph.get("old").present


def test_missing_report_is_empty(tmp_path):
    assert read_report(tmp_path / "nope.md") == []
