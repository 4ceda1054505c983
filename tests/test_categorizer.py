from pack_curator.categorizer import CategoryInference
from pack_curator.curator_config import HeuristicsConfig
from pack_curator.models import Label


def categories(graph):
    return {node.identifier: node.category.render() if node.category else None for node in graph.nodes}


def test_rules_in_order(build_graph, record):
    graph = build_graph(
        record("core"),                                       # есть зависимые, нет зависимостей
        record("user", depends=["core"], name="User"),
        record("cloth_api", depends=["core"], name="Cloth"),  # маркер в ID
        record("bugfixer", depends=["core"], name="Memory Fix", recommends=["user"]),
        record("inner", parent="core", depends=["core"], name="Inner"),
        record("bridge", name="Create Compat"),
        record("plain", name="Plain"),
    )
    count = CategoryInference().apply(graph)
    result = categories(graph)

    assert result["core"] == "Library?"
    assert result["cloth_api"] == "Library?"
    assert result["inner"] == "Library?"
    assert result["bridge"] == "Integration?"
    assert result["plain"] is None
    assert result["bugfixer"] == "Fix?"
    # опциональный зависимый (bugfixer) исключает правило аддона
    assert result["user"] is None
    assert count == 5


def test_addon_and_integration(build_graph, record):
    graph = build_graph(
        record("tech_mod"),
        record("magic_mod"),
        record("lib"),
        record("addon", depends=["tech_mod", "lib"]),
        record("integration", depends=["tech_mod", "magic_mod", "lib"]),
        record("kitchen_sink", depends=["tech_mod", "magic_mod", "other"]),
        record("other"),
    )
    graph.get("tech_mod").category = Label("Tech")
    graph.get("magic_mod").category = Label("Magic")
    graph.get("lib").category = Label("Library")
    graph.get("other").category = Label("Storage")

    CategoryInference().apply(graph)
    result = categories(graph)
    assert result["addon"] == "Addon?"
    assert result["integration"] == "Integration?"
    assert result["kitchen_sink"] is None


def test_uncategorized_dependency_counts_as_a_category(build_graph, record):
    graph = build_graph(
        record("tech_mod"),
        record("mystery"),
        record("integration", depends=["tech_mod", "mystery"]),
    )
    graph.get("tech_mod").category = Label("Tech")
    category = CategoryInference().infer(graph, graph.get("integration"))
    assert category == Label("Integration", uncertain=True)


def test_existing_category_is_kept(build_graph, record):
    graph = build_graph(record("core_lib"))
    graph.get("core_lib").category = Label("Tech")
    assert CategoryInference().apply(graph) == 0
    assert graph.get("core_lib").category == Label("Tech")


def test_markers_are_configurable(build_graph, record):
    graph = build_graph(record("tweaks", name="Render Patch"))
    heuristics = HeuristicsConfig(fix_markers=["PATCH"])
    CategoryInference(heuristics).apply(graph)
    assert graph.get("tweaks").category == Label("Fix", uncertain=True)


def test_sides(build_graph, record):
    graph = build_graph(record("a"), record("b"), record("inner", parent="a"), record("c"))
    graph.get("a").index_side = "client"
    graph.get("b").side = Label("server")
    missing = CategoryInference().apply_sides(graph)

    assert graph.get("a").side == Label("client", uncertain=True)
    assert graph.get("b").side == Label("server")
    assert graph.get("inner").side == Label("N/A")
    assert missing == 1
