"""
Legacy feature migration (v1 flat entries -> v2 feature folders).

A v1 project lists features as {"title": ..., "file": ...} and keeps each
script loose as features/<file>.js or <root>/<file>.js. Conversion, per
legacy entry:

    Legacy -> scaffolded -> (script relocated) -> Converted

1. Derive the id from entry.id, else entry.file (no id: left as legacy)
2. Create features/<id>/data.json unless it exists
3. Move the loose <id>.js into features/<id>/ (copy if the move fails)
4. Register it in data.json scripts with runOn "/" unless already listed
5. Replace the entry in place with {"version": 2, "id", "versionAdded"}

features.json is written once, after every entry is processed. If that
write fails the folders and moved scripts stay where they are and
PartialMigration is raised; running the conversion again finishes the job.
"""
import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from scratchkit.errors import PartialMigration, RegistryError
from scratchkit.models import FeatureListEntry, LegacyEntry, V2Entry
from scratchkit.store import RegistryStore
from scratchkit.utils.config import load_config

logger = logging.getLogger(__name__)

# Never searched for a project manifest
SKIPPED_DIRS = {"node_modules"}


# ============================================================================
# Project version detection
# ============================================================================

def _find_first(root: Path, file_name: str) -> Optional[Path]:
    """First file named file_name under root, root directory first, then sorted subdirectories."""
    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRS)
        if file_name in files:
            return Path(current) / file_name
    return None


def _read_version(path: Path) -> Optional[str]:
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Version detection skipped %s: %s", path, e)
        return None

    version = parsed.get("version") if isinstance(parsed, dict) else None
    if isinstance(version, str) and version.strip():
        return version.strip()
    return None


def detect_project_version(root: Path, config: Optional[Dict[str, Dict[str, Any]]] = None) -> Optional[str]:
    """
    Detect the current project version.

    Looks for a manifest.json anywhere under the root, then for the root
    package.json, and returns the first non-empty "version" string, trimmed.

    Args:
        root: Project root path
        config: Loaded configuration (file names to probe)

    Returns:
        The version, or None when no source has one
    """
    root = Path(root)
    names = (config if config is not None else load_config(root))["version"]

    manifest = _find_first(root, names["manifest_name"])
    candidates = [manifest, root / names["package_file"]]
    for candidate in candidates:
        if candidate is None or not candidate.is_file():
            continue
        version = _read_version(candidate)
        if version:
            logger.debug("Project version %s from %s", version, candidate)
            return version
    return None


# ============================================================================
# Reports
# ============================================================================

@dataclass
class EntryConversion:
    """What happened to one converted legacy entry."""

    feature_id: str
    position: int
    data_created: bool = False
    script: Optional[str] = None
    relocated_from: Optional[Path] = None
    copied: bool = False
    merged: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass
class SkippedEntry:
    """A legacy entry left in place, unconverted."""

    position: int
    reason: str


@dataclass
class MigrationReport:
    """Outcome of convert_legacy_entries."""

    version_added: Optional[str] = None
    conversions: List[EntryConversion] = field(default_factory=list)
    skipped: List[SkippedEntry] = field(default_factory=list)
    list_written: bool = False

    @property
    def converted_count(self) -> int:
        return len(self.conversions)

    @property
    def errors(self) -> List[str]:
        return [error for conversion in self.conversions for error in conversion.errors]


# ============================================================================
# Engine
# ============================================================================

class MigrationEngine:
    """Convert legacy features.json entries to v2 feature folders."""

    OPERATION = "convert legacy features"

    def __init__(self, root: Path, store: Optional[RegistryStore] = None):
        self.store = store or RegistryStore(root)
        self.root = self.store.root
        self.config = self.store.config

    def _candidates(self, entries: List[FeatureListEntry], filter_id: Optional[str]) -> List[LegacyEntry]:
        legacy = [
            entry for entry in entries
            if isinstance(entry, LegacyEntry) and isinstance(entry.raw, dict)
        ]
        if filter_id:
            legacy = [entry for entry in legacy if entry.matches(filter_id)]
        return legacy

    def legacy_candidates(self, filter_id: Optional[str] = None) -> List[LegacyEntry]:
        """Legacy entries a conversion with the same filter would touch."""
        return self._candidates(self.store.list_features(), filter_id)

    def _script_guesses(self, feature_id: str) -> List[Path]:
        return [
            self.store.features_dir / f"{feature_id}.js",
            self.root / f"{feature_id}.js",
        ]

    def _relocate_script(self, feature_id: str, conversion: EntryConversion) -> None:
        """Move the loose <id>.js into the feature folder and register it."""
        found = next((p for p in self._script_guesses(feature_id) if p.is_file()), None)
        if found is None:
            logger.debug("No loose script for %s", feature_id)
            return

        dest = self.store.feature_dir(feature_id) / found.name
        if not dest.exists():
            try:
                found.rename(dest)
            except OSError as e:
                logger.warning("Could not move %s (%s); copying instead", found, e)
                try:
                    shutil.copyfile(found, dest)
                except OSError as copy_error:
                    conversion.errors.append(f"could not copy {found} to {dest}: {copy_error}")
                    logger.warning("Could not copy %s: %s", found, copy_error)
                    return
                conversion.copied = True
            conversion.relocated_from = found
            logger.info("Relocated %s -> %s", found, dest)

        data = self.store.read_feature(feature_id, self.OPERATION)
        if not any(isinstance(s, dict) and s.get("file") == dest.name for s in data.scripts):
            data.scripts.append({"file": dest.name, "runOn": self.config["migration"]["run_on"]})
            self.store.write_feature(feature_id, data)
        conversion.script = dest.name

    def _convert_entry(self, entry: LegacyEntry, feature_id: str, position: int) -> EntryConversion:
        conversion = EntryConversion(feature_id=feature_id, position=position)
        _, conversion.data_created = self.store.scaffold_feature(
            feature_id, entry.title or feature_id, ""
        )
        try:
            self._relocate_script(feature_id, conversion)
        except (RegistryError, OSError) as e:
            conversion.errors.append(str(e))
            logger.warning("Script relocation for %s failed: %s", feature_id, e)
        return conversion

    def convert_legacy_entries(self, filter_id: Optional[str] = None) -> MigrationReport:
        """
        Convert legacy entries of features/features.json to v2.

        Args:
            filter_id: Only convert the legacy entry whose file or id matches

        Returns:
            MigrationReport; converted_count is 0 when nothing was legacy

        Raises:
            CorruptRegistry: features.json is unreadable
            PartialMigration: features.json could not be rewritten
        """
        report = MigrationReport()
        if not self.store.list_file.exists():
            logger.info("features/features.json not found; nothing to convert")
            return report

        entries = self.store.list_features()
        candidates = self._candidates(entries, filter_id)
        if not candidates:
            logger.info("No legacy entries to convert")
            return report

        version = detect_project_version(self.root, self.config) or self.config["version"]["fallback"]
        report.version_added = version

        pending = {id(entry) for entry in candidates}
        taken = {entry.id for entry in entries if isinstance(entry, V2Entry)}
        rewritten: List[FeatureListEntry] = []

        for position, entry in enumerate(entries):
            if id(entry) not in pending:
                rewritten.append(entry)
                continue

            feature_id = entry.identifier
            try:
                RegistryStore.check_id(self.OPERATION, feature_id)
                conversion = self._convert_entry(entry, feature_id, position)
            except (RegistryError, OSError) as e:
                logger.warning("Left legacy entry #%d unconverted: %s", position, e)
                report.skipped.append(SkippedEntry(position=position, reason=str(e)))
                rewritten.append(entry)
                continue

            report.conversions.append(conversion)
            if feature_id in taken:
                # Already listed as v2; the folder now also holds this entry's script
                conversion.merged = True
                continue
            taken.add(feature_id)
            rewritten.append(V2Entry(id=feature_id, version_added=version))

        try:
            self.store.save_list(rewritten)
        except OSError as e:
            raise PartialMigration(
                self.OPERATION, f"could not write features/features.json: {e}", report
            )
        report.list_written = True
        logger.info("Converted %d legacy feature(s) to v2", report.converted_count)
        return report
