from pack_curator.dependency_graph import GraphBuilder
from pack_curator.diagnostics import DiagnosticCollector, DiagnosticKind
from pack_curator.models import DependencyKind


def test_first_duplicate_wins(record):
    collector = DiagnosticCollector()
    first = record("create", file="create-1.jar")
    second = record("flywheel", file="flywheel-1.jar")
    second.identifier = "create"  # канонизированный flywheel
    graph = GraphBuilder(collector=collector).build([first, second])

    assert len(graph) == 1
    assert graph.get("create").file == "create-1.jar"
    assert collector.of_kind(DiagnosticKind.DUPLICATE_IDENTIFIER)


def test_lookup_canonicalizes(build_graph, record):
    graph = build_graph(record("create"))
    assert graph.get("ponder") is graph.get("create")
    assert "flywheel" in graph


def test_dependents_are_derived_from_edges(build_graph, record):
    graph = build_graph(
        record("a", depends=["lib"], recommends=["jei"]),
        record("b", recommends=["lib"]),
        record("lib"),
        record("jei"),
    )
    refs = graph.dependents_of("lib")
    assert [(r.identifier, r.kind) for r in refs] == [
        ("a", DependencyKind.MANDATORY),
        ("b", DependencyKind.OPTIONAL),
    ]
    assert [e.target for e in graph.dependencies_of("a", DependencyKind.OPTIONAL)] == ["jei"]


def test_ignored_optional_edges_are_dropped(build_graph, record):
    graph = build_graph(
        record("a", depends=["jei"], recommends=["jei", "modmenu", "emi"]),
        ignored_optional=["jei", "modmenu"],
    )
    node = graph.get("a")
    assert [(e.target, e.kind) for e in node.dependencies] == [
        ("jei", DependencyKind.MANDATORY),
        ("emi", DependencyKind.OPTIONAL),
    ]
    assert graph.unsatisfied_optional_targets() == ["emi"]


def test_unresolved_and_disabled_mandatory_are_diagnosed(record):
    collector = DiagnosticCollector()
    graph = GraphBuilder(collector=collector).build([
        record("a", depends=["missing", "off"]),
        record("off", disabled=True),
        record("idle", depends=["missing"], disabled=True),
    ])
    unresolved = collector.of_kind(DiagnosticKind.UNRESOLVED_MANDATORY)
    disabled = collector.of_kind(DiagnosticKind.DISABLED_MANDATORY)
    # неактивный idle не диагностируется
    assert [d.identifier for d in unresolved] == ["a"]
    assert [d.identifier for d in disabled] == ["a"]
    assert graph.disabled_dependencies == ["off"]


def test_duplicate_names_are_disambiguated(record):
    collector = DiagnosticCollector()
    graph = GraphBuilder(collector=collector).build([
        record("a", name="Same"),
        record("b", name="Same"),
        record("c", name="Other"),
    ])
    assert [n.name for n in graph.nodes] == ["Same (a)", "Same (b)", "Other"]
    assert collector.of_kind(DiagnosticKind.DUPLICATE_NAME)


def test_bundle_navigation(build_graph, record):
    graph = build_graph(
        record("outer"),
        record("middle", parent="outer"),
        record("leaf", parent="middle"),
        record("other"),
    )
    leaf = graph.get("leaf")
    assert graph.root_of(leaf).identifier == "outer"
    assert [n.identifier for n in graph.bundle_of(graph.get("outer"))] == ["outer", "middle", "leaf"]
    assert leaf.qualified_identifier == "middle > leaf"


def test_resolve_ignores_gone_nodes(build_graph, record):
    graph = build_graph(record("a", depends=["b"]), record("b"))
    graph.get("b").present = False
    edge = graph.get("a").dependencies[0]
    assert graph.resolve(edge) is None
    assert graph.unsatisfied(graph.get("a"), DependencyKind.MANDATORY) == [edge]
