"""
Command-line smoke tests.
"""
import json

from conftest import read_json, write_json
from scratchkit.cli import main


def run(project, *args):
    return main(["--root", str(project), *args])


def test_new_then_list(project, capsys):
    assert run(project, "new", "dark", "--title", "Dark Mode", "--version-added", "1.0") == 0
    capsys.readouterr()

    assert run(project, "list", "--format", "json") == 0

    listed = json.loads(capsys.readouterr().out)
    assert [(f["id"], f["label"]) for f in listed] == [("dark", "Dark Mode")]


def test_add_script_and_show(project, capsys):
    run(project, "new", "feat", "--version-added", "1")
    assert run(project, "add-script", "feat", "main.js", "--run-on", "/editor") == 0
    capsys.readouterr()

    assert run(project, "show", "feat") == 0

    out = capsys.readouterr().out
    assert "[script] main.js  (runOn: /editor)" in out


def test_error_is_reported_not_raised(project, capsys):
    assert run(project, "add-style", "ghost", "style.css") == 1

    err = capsys.readouterr().err
    assert err.startswith("Error: add userstyle failed:")


def test_show_tolerates_malformed_data(project, capsys):
    write_json(project / "features" / "bad" / "data.json", {"scripts": 5, "styles": "x"})

    assert run(project, "show", "bad") == 0
    assert "data.json" in capsys.readouterr().out


def test_delete_requires_confirmation(project, monkeypatch):
    run(project, "new", "feat", "--version-added", "1")
    monkeypatch.setattr("builtins.input", lambda prompt="": "no")

    assert run(project, "delete", "feat") == 1
    assert (project / "features" / "feat").is_dir()

    assert run(project, "delete", "feat", "--yes") == 0
    assert not (project / "features" / "feat").exists()


def test_convert_with_yes(project, capsys):
    write_json(project / "features" / "features.json", [{"title": "Old Tool", "file": "oldtool"}])
    (project / "oldtool.js").write_text("// x")

    assert run(project, "convert", "--yes") == 0

    assert "Converted 1 legacy feature(s) to v2." in capsys.readouterr().out
    assert read_json(project / "features" / "features.json")[0]["id"] == "oldtool"


def test_convert_nothing_to_do(project, capsys):
    assert run(project, "convert") == 0
    assert "No legacy entries to convert." in capsys.readouterr().out
