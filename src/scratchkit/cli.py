#!/usr/bin/env python3
"""
scratchkit - command-line interface.

Manages ScratchTools feature folders:
- list/show: Inspect features and the files they bind
- new: Create a feature folder, data.json and features.json entry
- add-script/add-style/add-resource: Register files on a feature
- delete/delete-file: Remove a feature or a single bound file
- convert: Migrate legacy features.json entries to v2 folders
- version: Show the detected project version

Usage:
    scratchkit list                                  # List features
    scratchkit list --filter search --format json    # Filtered, as JSON
    scratchkit show better-search                    # Files of one feature
    scratchkit new better-search --title "Better Search"
    scratchkit add-script better-search script.js --run-on "/projects/*"
    scratchkit add-style better-search style.css
    scratchkit add-resource better-search logo ./logo.png
    scratchkit delete better-search --yes
    scratchkit delete-file features/better-search/style.css
    scratchkit convert                               # Convert all legacy entries
    scratchkit convert oldtool                       # Convert one legacy entry
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from scratchkit import __version__
from scratchkit.errors import RegistryError
from scratchkit.inventory import FeatureInventory
from scratchkit.migration import MigrationEngine, detect_project_version
from scratchkit.store import RegistryStore
from scratchkit.utils.repo import find_project_root


def _confirm(prompt: str, assume_yes: bool) -> bool:
    """Ask before a destructive action. --yes skips the question."""
    if assume_yes:
        return True
    print(f"{prompt} Type 'yes' to confirm, or anything else to cancel:")
    try:
        response = input("   > ").strip().lower()
    except EOFError:
        return False
    return response == "yes"


class FeatureCommands:
    """Command handlers over one project root. Each returns an exit code."""

    def __init__(self, root: Path = None):
        self.root = root or find_project_root()
        self.store = RegistryStore(self.root)
        self.engine = MigrationEngine(self.root, store=self.store)
        self.inventory = FeatureInventory(self.root)

    def list_features(self, filter_text: str = "", format: str = "text") -> int:
        summaries = self.inventory.features(filter_text)
        if format == "json":
            print(json.dumps([s.to_dict() for s in summaries], indent=2))
            return 0

        if not summaries:
            print("No features found.")
            return 0
        for s in summaries:
            if s.legacy:
                print(f"  {s.label}  [legacy: {s.feature_id}.js]")
            else:
                print(
                    f"  {s.label} ({s.feature_id})  "
                    f"scripts: {s.scripts}  styles: {s.styles}  resources: {s.resources}"
                )
        return 0

    def show_feature(self, feature_id: str) -> int:
        nodes = self.inventory.children(feature_id)
        if not nodes:
            print(f"No files found for {feature_id}")
            return 1
        for node in nodes:
            suffix = f"  ({node.description})" if node.description else ""
            print(f"  [{node.kind}] {node.label}{suffix}")
        return 0

    def new_feature(self, feature_id: str, title: str, description: str = "", version_added: str = None) -> int:
        result = self.store.create_feature(feature_id, title, description, version_added)
        rel = result.data_path.relative_to(self.root)
        if result.data_created:
            print(f"Created feature data.json at {rel}")
        else:
            print(f"data.json already exists for {feature_id}; not overwritten.")
        for warning in result.warnings:
            print(f"Warning: {warning}")
        if not result.skipped:
            print(f"Added {feature_id} to features/features.json (versionAdded: {result.version_added})")
        return 0

    def add_script(self, feature_id: str, file_name: str, run_on: str) -> int:
        self.store.add_script(feature_id, file_name, run_on)
        print(f"Added userscript {file_name} to {feature_id}")
        return 0

    def add_style(self, feature_id: str, file_name: str, run_on: str) -> int:
        self.store.add_style(feature_id, file_name, run_on)
        print(f"Added userstyle {file_name} to {feature_id}")
        return 0

    def add_resource(self, feature_id: str, name: str, source: Path) -> int:
        dest = self.store.add_resource(feature_id, name, source)
        print(f"Added resource {name} -> /{dest.name} to {feature_id}")
        return 0

    def delete_feature(self, feature_id: str, assume_yes: bool = False) -> int:
        if not _confirm(f"Delete feature {feature_id} and its folder?", assume_yes):
            print("Cancelled.")
            return 1
        result = self.store.delete_feature(feature_id)
        print(f"Deleted feature {feature_id}")
        for error in result.errors:
            print(f"Warning: features.json not updated: {error}")
        return 0

    def delete_file(self, path: Path, assume_yes: bool = False) -> int:
        if not _confirm(f"Delete {path}?", assume_yes):
            print("Cancelled.")
            return 1
        deleted = self.store.delete_file(path)
        print(f"Deleted {deleted.path}")
        for item in deleted.removed:
            print(f"  unregistered {item.section}[{item.index}]")
        return 0

    def convert(self, filter_id: Optional[str] = None, assume_yes: bool = False) -> int:
        candidates = self.engine.legacy_candidates(filter_id)
        if not candidates:
            print("No legacy entries to convert.")
            return 0
        if not _confirm(f"Convert {len(candidates)} legacy feature(s) to v2?", assume_yes):
            print("Cancelled.")
            return 1

        report = self.engine.convert_legacy_entries(filter_id)
        print(f"Converted {report.converted_count} legacy feature(s) to v2.")
        for skipped in report.skipped:
            print(f"  skipped entry #{skipped.position}: {skipped.reason}")
        for error in report.errors:
            print(f"  warning: {error}")
        return 0

    def show_version(self) -> int:
        version = detect_project_version(self.root, self.store.config)
        print(version or "unknown")
        return 0 if version else 1


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="scratchkit",
        description="scratchkit - manage ScratchTools feature folders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s new dark-mode --title "Dark Mode"      Scaffold a feature
  %(prog)s add-script dark-mode script.js         Bind a userscript (runOn "/")
  %(prog)s convert --yes                          Migrate legacy entries
        """
    )
    parser.add_argument("--root", type=str, help="Project root (default: search upward from cwd)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ----- scratchkit list -----
    list_parser = subparsers.add_parser("list", help="List features")
    list_parser.add_argument("--filter", type=str, default="", help="Substring to match in title or id")
    list_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    # ----- scratchkit show <id> -----
    show_parser = subparsers.add_parser("show", help="Show the files of a feature")
    show_parser.add_argument("feature_id", type=str, help="Feature id")

    # ----- scratchkit new <id> -----
    new_parser = subparsers.add_parser("new", help="Create a feature")
    new_parser.add_argument("feature_id", type=str, help="Feature id (folder name under features/)")
    new_parser.add_argument("--title", type=str, default="", help="Title shown in settings")
    new_parser.add_argument("--description", type=str, default="", help="Feature description")
    new_parser.add_argument(
        "--version-added", type=str, default=None,
        help="versionAdded (default: current project version)"
    )

    # ----- scratchkit add-script/add-style <id> <file> -----
    for name, kind in (("add-script", "userscript"), ("add-style", "userstyle")):
        binding_parser = subparsers.add_parser(name, help=f"Add a {kind} to a feature")
        binding_parser.add_argument("feature_id", type=str, help="Feature id")
        binding_parser.add_argument("file_name", type=str, help=f"{kind} file name")
        binding_parser.add_argument("--run-on", type=str, default="/", help='runOn (e.g. "/" or "/projects/*")')

    # ----- scratchkit add-resource <id> <name> <source> -----
    resource_parser = subparsers.add_parser("add-resource", help="Copy a resource into a feature")
    resource_parser.add_argument("feature_id", type=str, help="Feature id")
    resource_parser.add_argument("name", type=str, help="Resource name (used in code)")
    resource_parser.add_argument("source", type=str, help="File to copy")

    # ----- scratchkit delete <id> -----
    delete_parser = subparsers.add_parser("delete", help="Delete a feature")
    delete_parser.add_argument("feature_id", type=str, help="Feature id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")

    # ----- scratchkit delete-file <path> -----
    delete_file_parser = subparsers.add_parser("delete-file", help="Delete a file bound to a feature")
    delete_file_parser.add_argument("path", type=str, help="File to delete")
    delete_file_parser.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")

    # ----- scratchkit convert [id] -----
    convert_parser = subparsers.add_parser("convert", help="Convert legacy entries to v2")
    convert_parser.add_argument("feature_id", nargs="?", default=None, help="Only this legacy file/id")
    convert_parser.add_argument("--yes", "-y", action="store_true", help="Don't ask for confirmation")

    # ----- scratchkit version -----
    subparsers.add_parser("version", help="Show the detected project version")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = FeatureCommands(root=Path(args.root).resolve() if args.root else None)

    try:
        if args.command == "list":
            return commands.list_features(filter_text=args.filter, format=args.format)
        elif args.command == "show":
            return commands.show_feature(args.feature_id)
        elif args.command == "new":
            return commands.new_feature(
                args.feature_id,
                title=args.title,
                description=args.description,
                version_added=args.version_added,
            )
        elif args.command == "add-script":
            return commands.add_script(args.feature_id, args.file_name, args.run_on)
        elif args.command == "add-style":
            return commands.add_style(args.feature_id, args.file_name, args.run_on)
        elif args.command == "add-resource":
            return commands.add_resource(args.feature_id, args.name, Path(args.source))
        elif args.command == "delete":
            return commands.delete_feature(args.feature_id, assume_yes=args.yes)
        elif args.command == "delete-file":
            return commands.delete_file(Path(args.path), assume_yes=args.yes)
        elif args.command == "convert":
            return commands.convert(args.feature_id, assume_yes=args.yes)
        elif args.command == "version":
            return commands.show_version()
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {args.command} failed: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
