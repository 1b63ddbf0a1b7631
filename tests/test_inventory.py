"""
Feature inventory: summaries and per-feature file listings.
"""
import pytest

from conftest import write_json
from scratchkit.inventory import FeatureInventory


@pytest.fixture
def inventory(project):
    return FeatureInventory(project)


def test_summaries_count_bindings_and_pick_icon(project, store, inventory):
    store.create_feature("zeta", title="Zeta Tool", version_added="1")
    store.add_style("zeta", "style.css", "/")
    store.create_feature("alpha", title="Alpha", version_added="1")
    store.add_script("alpha", "a.js", "/")
    store.add_script("alpha", "b.js", "/")
    store.create_feature("empty", title="", version_added="1")

    summaries = inventory.features()

    assert [s.label for s in summaries] == ["Alpha", "empty", "Zeta Tool"]
    alpha = summaries[0]
    assert (alpha.scripts, alpha.styles, alpha.resources) == (2, 0, 0)
    assert alpha.icon == "file-code"
    assert summaries[2].icon == "symbol-color"
    assert summaries[1].icon == "extensions"


def test_unreadable_data_falls_back_to_id(project, inventory):
    folder = project / "features" / "broken"
    folder.mkdir()
    (folder / "data.json").write_text("{")

    [summary] = inventory.features()

    assert summary.label == "broken"
    assert summary.scripts == 0


def test_legacy_root_list_is_listed(project, inventory):
    write_json(project / "features.json", [
        {"title": "Old Tool", "file": "oldtool"},
        {"file": "nameless"},
        {},
        "junk",
    ])

    summaries = inventory.features()

    assert [(s.label, s.feature_id, s.legacy) for s in summaries] == [
        ("Feature 3", "Feature 3", True),
        ("nameless", "nameless", True),
        ("Old Tool", "oldtool", True),
    ]
    assert all(s.icon == "history" for s in summaries)


def test_filter_matches_label_or_id(store, inventory):
    store.create_feature("search-plus", title="Better Search", version_added="1")
    store.create_feature("dark", title="Dark Mode", version_added="1")

    assert [s.feature_id for s in inventory.features("SEARCH")] == ["search-plus"]
    assert [s.feature_id for s in inventory.features("dark")] == ["dark"]
    assert inventory.features("nothing") == []


def test_children_lists_bound_files(tmp_path, store, inventory):
    store.create_feature("feat", title="Feat", version_added="1")
    store.add_script("feat", "main.js", "/projects/*")
    store.add_style("feat", "look.css", "/")
    source = tmp_path / "icon.png"
    source.write_bytes(b"png")
    store.add_resource("feat", "Icon", source)

    nodes = inventory.children("feat")

    assert [(n.label, n.kind, n.description) for n in nodes] == [
        ("data.json", "data", "Feature metadata (feat)"),
        ("icon.png", "resource", "name: Icon"),
        ("look.css", "style", "runOn: /"),
        ("main.js", "script", "runOn: /projects/*"),
    ]


def test_children_of_legacy_feature(project, inventory):
    (project / "oldtool.js").write_text("// x")

    [node] = inventory.children("oldtool")

    assert node.kind == "legacy-script"
    assert node.path == project / "oldtool.js"
    assert inventory.children("missing") == []


def test_children_skips_malformed_sections(project, inventory):
    """
    Given: A data.json whose scripts, styles and resources are not arrays of objects
    When: Listing the feature's files
    Then: Only data.json is listed and nothing raises
    """
    write_json(project / "features" / "bad" / "data.json", {
        "scripts": 5,
        "styles": "x",
        "resources": {"a": 1},
    })
    write_json(project / "features" / "odd" / "data.json", {
        "scripts": [7, None, {"runOn": "/"}],
        "resources": ["logo.png"],
    })

    assert [n.kind for n in inventory.children("bad")] == ["data"]
    assert [n.kind for n in inventory.children("odd")] == ["data"]
    [bad, odd] = inventory.features()
    assert (bad.scripts, bad.styles, bad.resources) == (0, 0, 0)
    assert (odd.scripts, odd.resources) == (3, 1)
