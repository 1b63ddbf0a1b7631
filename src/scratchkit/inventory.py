"""
Read-only feature inventory for display.

Summarises every folder under features/ and every entry of a legacy
root-level features.json, and lists the files a feature binds. Malformed
metadata never raises here: a feature with an unreadable data.json is
still listed, under its id, with zero counts.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from scratchkit.models import DATA_FILE, FEATURES_DIR, LIST_FILE

logger = logging.getLogger(__name__)


@dataclass
class FeatureSummary:
    label: str
    feature_id: str
    icon: str
    scripts: int = 0
    styles: int = 0
    resources: int = 0
    legacy: bool = False

    @property
    def tooltip(self) -> str:
        if self.legacy:
            return f"{self.label}\nfile: {self.feature_id}.js"
        return (
            f"{self.label} ({self.feature_id})\n"
            f"Scripts: {self.scripts}  Styles: {self.styles}  Resources: {self.resources}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "id": self.feature_id,
            "icon": self.icon,
            "scripts": self.scripts,
            "styles": self.styles,
            "resources": self.resources,
            "legacy": self.legacy,
        }


@dataclass
class FeatureNode:
    """One file shown under a feature."""

    label: str
    path: Path
    kind: str                 # data, script, style, resource, legacy-script
    description: Optional[str] = None


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _count(data: Any, key: str) -> int:
    value = data.get(key) if isinstance(data, dict) else None
    return len(value) if isinstance(value, list) else 0


def _icon_for(scripts: int, styles: int, resources: int) -> str:
    if scripts > 0:
        return "file-code"
    if styles > 0:
        return "symbol-color"
    if resources > 0:
        return "file-media"
    return "extensions"


class FeatureInventory:
    """Feature summaries and per-feature file listings."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.features_dir = self.root / FEATURES_DIR
        self.legacy_list = self.root / LIST_FILE

    def _folder_summaries(self) -> List[FeatureSummary]:
        summaries = []
        for folder in sorted(p for p in self.features_dir.iterdir() if p.is_dir()):
            data = _load_json(folder / DATA_FILE)
            label = folder.name
            if isinstance(data, dict):
                label = _text(data.get("title")) or _text(data.get("name")) or folder.name
            scripts = _count(data, "scripts")
            styles = _count(data, "styles")
            resources = _count(data, "resources")
            summaries.append(FeatureSummary(
                label=label,
                feature_id=folder.name,
                icon=_icon_for(scripts, styles, resources),
                scripts=scripts,
                styles=styles,
                resources=resources,
            ))
        return summaries

    def _legacy_summaries(self) -> List[FeatureSummary]:
        """Entries of a pre-migration features.json at the project root."""
        if not self.legacy_list.is_file():
            return []
        entries = _load_json(self.legacy_list)
        if not isinstance(entries, list):
            return []

        summaries = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                continue
            file_base = entry.get("file") if isinstance(entry.get("file"), str) else None
            label = _text(entry.get("title")) or file_base or f"Feature {index + 1}"
            summaries.append(FeatureSummary(
                label=label,
                feature_id=file_base or label,
                icon="history",
                legacy=True,
            ))
        return summaries

    def features(self, filter_text: str = "") -> List[FeatureSummary]:
        """
        Summaries of all features, sorted by label.

        Args:
            filter_text: Case-insensitive substring matched against label and id
        """
        summaries: List[FeatureSummary] = []
        if self.features_dir.is_dir():
            summaries.extend(self._folder_summaries())
        summaries.extend(self._legacy_summaries())

        needle = (filter_text or "").lower()
        if needle:
            summaries = [
                s for s in summaries
                if needle in f"{s.label} {s.feature_id}".lower()
            ]
        return sorted(summaries, key=lambda s: s.label.lower())

    def children(self, feature_id: str) -> List[FeatureNode]:
        """Files bound to a feature: data.json, scripts, styles and resources."""
        folder = self.features_dir / feature_id
        if not folder.is_dir():
            # Legacy feature: show its loose script if there is one
            for guess in (self.features_dir / f"{feature_id}.js", self.root / f"{feature_id}.js"):
                if guess.is_file():
                    return [FeatureNode(guess.name, guess, "legacy-script", "Legacy feature script")]
            return []

        nodes = [FeatureNode(DATA_FILE, folder / DATA_FILE, "data", f"Feature metadata ({feature_id})")]
        data = _load_json(folder / DATA_FILE)
        if not isinstance(data, dict):
            return nodes

        for section, kind in (("scripts", "script"), ("styles", "style")):
            bindings = data.get(section)
            if not isinstance(bindings, list):
                continue
            for binding in bindings:
                file_name = str(binding.get("file") or "") if isinstance(binding, dict) else ""
                if not file_name:
                    continue
                run_on = binding.get("runOn")
                nodes.append(FeatureNode(
                    file_name, folder / file_name, kind, f"runOn: {run_on}" if run_on else None
                ))

        resources = data.get("resources")
        for resource in resources if isinstance(resources, list) else []:
            rel = str(resource.get("path") or "") if isinstance(resource, dict) else ""
            if not rel:
                continue
            file_name = rel.lstrip("/")
            name = resource.get("name")
            nodes.append(FeatureNode(
                file_name, folder / file_name, "resource", f"name: {name}" if name else None
            ))

        return sorted(nodes, key=lambda n: n.label.lower())
