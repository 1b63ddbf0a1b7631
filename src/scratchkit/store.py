"""
Registry store for ScratchTools feature folders.

Owns the persisted layout:
    project/
    └── features/
        ├── features.json        (ordered feature list, newest first)
        └── <id>/
            ├── data.json        (FeatureData: scripts, styles, resources)
            ├── <script>.js
            └── <style>.css

Every call reads the JSON state fresh and writes it back synchronously.
There is no locking: two mutations racing on the same document lose one
update (last writer wins).

Usage:
    store = RegistryStore(Path("/path/to/project"))
    store.create_feature("better-search", title="Better Search")
    store.add_script("better-search", "script.js", "/projects/*")
    deleted = store.delete_file(store.feature_dir("better-search") / "script.js")
    store.restore_file(deleted)
"""
import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from scratchkit.errors import (
    CopyFailed,
    CorruptRegistry,
    DuplicateId,
    FeatureNotFound,
    FileMissing,
    InvalidId,
    ProtectedFile,
    RegistryError,
)
from scratchkit.models import (
    BINDING_SECTIONS,
    DATA_FILE,
    FEATURES_DIR,
    LIST_FILE,
    FeatureData,
    FeatureListEntry,
    RemovedEntry,
    V2Entry,
    parse_entry,
    serialize_entries,
)
from scratchkit.utils.config import load_config

logger = logging.getLogger(__name__)

# Directories inspected when looking for the data.json that owns a file:
# the file's own directory and its ancestors, nearest first.
MAX_DATA_SEARCH_DEPTH = 3


def script_template(feature_id: str, run_on: str) -> str:
    return (
        f"// Userscript for {feature_id}\n"
        f"// runOn: {run_on}\n"
        "(function(){\n"
        "  // TODO: implement\n"
        "})();\n"
    )


def style_template(feature_id: str, run_on: str) -> str:
    return f"/* Userstyle for {feature_id}\n   runOn: {run_on} */\n"


def write_json(path: Path, obj: Any) -> None:
    """Write a JSON document with 2-space indentation."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")


@dataclass
class CreateFeatureResult:
    """Outcome of create_feature."""

    feature_id: str
    data_path: Path
    data_created: bool
    version_added: str
    entry: Optional[V2Entry] = None
    warnings: List[RegistryError] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        """True when the list already held this id and was left untouched."""
        return self.entry is None


@dataclass
class DeleteFeatureResult:
    """Outcome of delete_feature. List update failures land in `errors`."""

    feature_id: str
    directory_removed: bool = False
    entries_removed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class DeletedFile:
    """Everything needed to undo delete_file."""

    path: Path
    content: bytes
    data_path: Optional[Path] = None
    removed: List[RemovedEntry] = field(default_factory=list)


class RegistryStore:
    """Read-modify-write access to features.json and per-feature data.json."""

    def __init__(self, root: Path, config: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Initialize the RegistryStore.

        Args:
            root: Project root directory (the one containing features/).
            config: Loaded configuration. Defaults to .scratchkit/config.yaml.
        """
        self.root = Path(root)
        self.features_dir = self.root / FEATURES_DIR
        self.list_file = self.features_dir / LIST_FILE
        self.config = config if config is not None else load_config(self.root)

    # -------------------------------------------------------------------------
    # Paths and validation
    # -------------------------------------------------------------------------

    def feature_dir(self, feature_id: str) -> Path:
        return self.features_dir / feature_id

    def data_path(self, feature_id: str) -> Path:
        return self.feature_dir(feature_id) / DATA_FILE

    @staticmethod
    def check_id(operation: str, feature_id: Optional[str]) -> None:
        """Raise InvalidId unless feature_id can name a folder under features/."""
        if not feature_id or not feature_id.strip():
            raise InvalidId(operation, "feature id is required")
        if "/" in feature_id or "\\" in feature_id or feature_id in (".", ".."):
            raise InvalidId(operation, f'"{feature_id}" is not a valid folder name')

    @staticmethod
    def _entry_has_id(entry: FeatureListEntry, feature_id: str) -> bool:
        if isinstance(entry, V2Entry):
            return entry.id == feature_id
        raw = entry.raw
        return isinstance(raw, dict) and raw.get("id") == feature_id

    # -------------------------------------------------------------------------
    # features.json
    # -------------------------------------------------------------------------

    def _load_raw_list(self) -> List[Any]:
        if not self.list_file.exists():
            return []
        try:
            content = self.list_file.read_text(encoding="utf-8")
            entries = json.loads(content.strip() or "[]")
        except (OSError, ValueError) as e:
            raise CorruptRegistry("read features/features.json", str(e))
        if not isinstance(entries, list):
            raise CorruptRegistry("read features/features.json", "features.json is not an array")
        return entries

    def list_features(self) -> List[FeatureListEntry]:
        """
        Parse features/features.json.

        Returns:
            Entries in file order; empty when the file does not exist

        Raises:
            CorruptRegistry: the file exists but is not a JSON array
        """
        return [parse_entry(raw) for raw in self._load_raw_list()]

    def save_list(self, entries: List[FeatureListEntry]) -> None:
        """Overwrite features/features.json with the given entries."""
        write_json(self.list_file, serialize_entries(entries))

    # -------------------------------------------------------------------------
    # data.json
    # -------------------------------------------------------------------------

    def _read_data_path(self, path: Path, operation: str) -> FeatureData:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return FeatureData.from_dict(raw)
        except FileNotFoundError:
            raise FeatureNotFound(operation, f"{path} does not exist")
        except (OSError, ValueError) as e:
            raise FeatureNotFound(operation, f"could not read {path}: {e}")

    def read_feature(self, feature_id: str, operation: str = "read feature") -> FeatureData:
        """Load and validate features/<id>/data.json."""
        self.check_id(operation, feature_id)
        return self._read_data_path(self.data_path(feature_id), operation)

    def write_feature(self, feature_id: str, data: FeatureData) -> Path:
        path = self.data_path(feature_id)
        write_json(path, data.to_dict())
        return path

    def default_data(self, title: str, description: str = "") -> FeatureData:
        settings = self.config["features"]
        return FeatureData(
            title=title,
            description=description or "",
            type=list(settings["default_type"]),
            dynamic=bool(settings["dynamic"]),
            default=bool(settings["default"]),
        )

    def scaffold_feature(self, feature_id: str, title: str, description: str = "") -> Tuple[Path, bool]:
        """
        Create features/<id>/ and a default data.json unless one exists.

        Returns:
            (data.json path, whether it was created)
        """
        self.check_id("scaffold feature", feature_id)
        path = self.data_path(feature_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            return path, False

        self.write_feature(feature_id, self.default_data(title or feature_id, description))
        logger.info("Created %s", path)
        return path, True

    # -------------------------------------------------------------------------
    # Features
    # -------------------------------------------------------------------------

    def resolve_version(self, version_added: Optional[str] = None) -> str:
        """Caller value if given, else the detected project version, else the fallback."""
        value = (version_added or "").strip()
        if value:
            return value

        from scratchkit.migration import detect_project_version

        detected = detect_project_version(self.root, self.config)
        if detected:
            logger.info("Using current project version: %s", detected)
            return detected
        return self.config["version"]["fallback"]

    def create_feature(
        self,
        feature_id: str,
        title: str = "",
        description: str = "",
        version_added: Optional[str] = None,
    ) -> CreateFeatureResult:
        """
        Add a feature: scaffold its folder and put a v2 entry at the front of the list.

        An existing data.json is never overwritten. An id already present in
        features.json leaves the list untouched and is reported as a
        DuplicateId warning on the result.

        Raises:
            InvalidId: feature_id is empty (nothing is written)
            CorruptRegistry: features.json is unreadable (nothing is written)
        """
        operation = "create feature"
        self.check_id(operation, feature_id)
        entries = self.list_features()
        version = self.resolve_version(version_added)

        data_path, created = self.scaffold_feature(feature_id, title, description)
        result = CreateFeatureResult(
            feature_id=feature_id,
            data_path=data_path,
            data_created=created,
            version_added=version,
        )
        if not created:
            logger.warning("data.json already exists for %s; not overwritten", feature_id)

        if any(self._entry_has_id(entry, feature_id) for entry in entries):
            warning = DuplicateId(
                operation, f'feature "{feature_id}" already exists in features.json; skipping add'
            )
            logger.warning("%s", warning)
            result.warnings.append(warning)
            return result

        entry = V2Entry(id=feature_id, version_added=version)
        entries.insert(0, entry)
        self.save_list(entries)
        result.entry = entry
        logger.info("Added %s to features/features.json", feature_id)
        return result

    def delete_feature(self, feature_id: str) -> DeleteFeatureResult:
        """
        Remove features/<id>/ and every list entry carrying that id.

        A failure while rewriting features.json is logged and recorded on
        the result; the directory removal is not rolled back.

        Raises:
            FeatureNotFound: neither a folder nor a list entry exists
        """
        operation = "delete feature"
        self.check_id(operation, feature_id)
        result = DeleteFeatureResult(feature_id=feature_id)

        feature_dir = self.feature_dir(feature_id)
        if feature_dir.is_dir():
            shutil.rmtree(feature_dir)
            result.directory_removed = True
            logger.info("Removed %s", feature_dir)

        try:
            entries = self.list_features()
            kept = [entry for entry in entries if not self._entry_has_id(entry, feature_id)]
            result.entries_removed = len(entries) - len(kept)
            if result.entries_removed:
                self.save_list(kept)
        except (RegistryError, OSError) as e:
            logger.error("Could not update features.json after deleting %s: %s", feature_id, e)
            result.errors.append(str(e))

        if not result.directory_removed and not result.entries_removed and not result.errors:
            raise FeatureNotFound(operation, f'no folder or list entry for "{feature_id}"')
        return result

    # -------------------------------------------------------------------------
    # Scripts, styles, resources
    # -------------------------------------------------------------------------

    def _add_binding(self, section: str, operation: str, feature_id: str, file_name: str, run_on: str) -> Path:
        self.check_id(operation, feature_id)
        if not file_name or not file_name.strip():
            raise InvalidId(operation, "file name is required")

        data = self.read_feature(feature_id, operation)
        target = self.feature_dir(feature_id) / file_name
        if self.feature_dir(feature_id).resolve() not in target.resolve().parents:
            raise InvalidId(operation, f'"{file_name}" is outside the folder of {feature_id}')
        if not target.exists():
            template = script_template if section == "scripts" else style_template
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(template(feature_id, run_on), encoding="utf-8")
            logger.info("Created %s", target)

        # Not deduplicated: the same file may be bound twice with different runOn values
        data.section(section).append({"file": file_name, "runOn": run_on})
        self.write_feature(feature_id, data)
        return target

    def add_script(self, feature_id: str, file_name: str, run_on: str) -> Path:
        """Register a userscript, creating it from the boilerplate if missing."""
        return self._add_binding("scripts", "add userscript", feature_id, file_name, run_on)

    def add_style(self, feature_id: str, file_name: str, run_on: str) -> Path:
        """Register a userstyle, creating it from the boilerplate if missing."""
        return self._add_binding("styles", "add userstyle", feature_id, file_name, run_on)

    def add_resource(self, feature_id: str, name: str, source_path: Path) -> Path:
        """
        Copy an external file into the feature folder and register it.

        The resource is registered as {"name": name, "path": "/<basename>"}.

        Raises:
            FeatureNotFound: data.json is missing or unreadable
            CopyFailed: the source can't be read or the destination written
        """
        operation = "add resource"
        self.check_id(operation, feature_id)
        if not name or not name.strip():
            raise InvalidId(operation, "resource name is required")

        data = self.read_feature(feature_id, operation)
        source = Path(source_path)
        dest = self.feature_dir(feature_id) / source.name
        try:
            if not (dest.exists() and source.resolve() == dest.resolve()):
                shutil.copyfile(source, dest)
        except OSError as e:
            raise CopyFailed(operation, f"could not copy {source} to {dest}: {e}")

        data.resources.append({"name": name, "path": f"/{source.name}"})
        self.write_feature(feature_id, data)
        logger.info("Added resource %s -> /%s to %s", name, source.name, feature_id)
        return dest

    # -------------------------------------------------------------------------
    # Deleting files (with undo)
    # -------------------------------------------------------------------------

    def find_data_file(self, target: Path) -> Optional[Path]:
        """Nearest data.json at or above the target's directory, within MAX_DATA_SEARCH_DEPTH."""
        current = Path(target).parent
        for _ in range(MAX_DATA_SEARCH_DEPTH):
            candidate = current / DATA_FILE
            if candidate.is_file():
                return candidate
            if current == current.parent:
                break
            current = current.parent
        return None

    def delete_file(self, path: Path) -> DeletedFile:
        """
        Delete a file inside a feature folder and unregister it.

        Scripts and styles whose `file` names the target, and resources whose
        `path` (leading "/" stripped) names it, are removed from data.json.
        The returned DeletedFile holds the bytes and every removed entry with
        its original index, for restore_file.

        Raises:
            ProtectedFile: the target is a data.json
            FileMissing: the target does not exist
            FeatureNotFound: the owning data.json is unreadable
        """
        operation = "delete file"
        target = Path(path)
        if target.name == DATA_FILE:
            raise ProtectedFile(operation, f"{DATA_FILE} can only be removed with its feature")
        if not target.is_file():
            raise FileMissing(operation, f"{target} does not exist")

        data_path = self.find_data_file(target)
        removed: List[RemovedEntry] = []
        data = None
        if data_path is not None:
            data = self._read_data_path(data_path, operation)
            relative = target.resolve().relative_to(data_path.parent.resolve()).as_posix()
            names = {target.name, relative}
            for section in BINDING_SECTIONS:
                key = "path" if section == "resources" else "file"
                kept = []
                for index, entry in enumerate(data.section(section)):
                    value = entry.get(key) if isinstance(entry, dict) else None
                    if isinstance(value, str) and value.lstrip("/") in names:
                        removed.append(RemovedEntry(section=section, index=index, entry=entry))
                    else:
                        kept.append(entry)
                setattr(data, section, kept)

        content = target.read_bytes()
        target.unlink()
        if removed:
            write_json(data_path, data.to_dict())
        logger.info("Deleted %s (%d registry entries removed)", target, len(removed))
        return DeletedFile(path=target, content=content, data_path=data_path, removed=removed)

    def restore_file(self, deleted: DeletedFile) -> None:
        """Undo delete_file: rewrite the bytes and reinsert entries at their indexes."""
        deleted.path.parent.mkdir(parents=True, exist_ok=True)
        deleted.path.write_bytes(deleted.content)

        if deleted.data_path is None or not deleted.removed:
            return

        data = self._read_data_path(deleted.data_path, "restore file")
        for item in sorted(deleted.removed, key=lambda r: (r.section, r.index)):
            section = data.section(item.section)
            section.insert(min(item.index, len(section)), item.entry)
        write_json(deleted.data_path, data.to_dict())
        logger.info("Restored %s", deleted.path)
