"""
Data model for the feature registry.

features/features.json holds an ordered list of entries in two shapes:

    v2:      {"version": 2, "id": "...", "versionAdded": "..."}
    legacy:  {"title": "...", "file": "...", ...}   (no version, or version != 2)

features/<id>/data.json holds one FeatureData document per v2 feature.

Both are validated on read and default-filled; keys this package does not
know about are carried through unchanged so rewriting never drops data.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

CURRENT_VERSION = 2
VERSION_FALLBACK = "..."

# Sections of data.json that bind files to the feature
BINDING_SECTIONS = ("scripts", "styles", "resources")

DATA_FILE = "data.json"
LIST_FILE = "features.json"
FEATURES_DIR = "features"


@dataclass
class V2Entry:
    """A folder-based feature list entry."""

    id: str
    version_added: str = VERSION_FALLBACK
    # Entry as read from features.json; None for entries created in this process
    raw: Optional[Dict[str, Any]] = None

    @property
    def identifier(self) -> str:
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        if self.raw is not None:
            return self.raw
        return {"version": CURRENT_VERSION, "id": self.id, "versionAdded": self.version_added}


@dataclass
class LegacyEntry:
    """
    A v1 feature list entry.

    `raw` is kept verbatim (it may not even be an object) so unconverted
    entries are written back exactly as they were read.
    """

    raw: Any

    def _field(self, key: str) -> Optional[str]:
        if not isinstance(self.raw, dict):
            return None
        value = self.raw.get(key)
        if value is None or value == "":
            return None
        return str(value)

    @property
    def title(self) -> Optional[str]:
        return self._field("title")

    @property
    def file(self) -> Optional[str]:
        return self._field("file")

    @property
    def identifier(self) -> Optional[str]:
        """Id the entry converts to: explicit id first, then the file base name."""
        return self._field("id") or self.file

    def matches(self, key: str) -> bool:
        return key is not None and key in (self._field("file"), self._field("id"))

    def to_dict(self) -> Any:
        return self.raw


FeatureListEntry = Union[V2Entry, LegacyEntry]


def parse_entry(raw: Any) -> FeatureListEntry:
    """Classify one element of features.json."""
    if isinstance(raw, dict) and raw.get("version") == CURRENT_VERSION and raw.get("id"):
        return V2Entry(
            id=str(raw["id"]),
            version_added=str(raw.get("versionAdded") or VERSION_FALLBACK),
            raw=raw,
        )
    return LegacyEntry(raw=raw)


def serialize_entries(entries: List[FeatureListEntry]) -> List[Any]:
    return [entry.to_dict() for entry in entries]


@dataclass
class FeatureData:
    """Contents of features/<id>/data.json."""

    title: str = ""
    description: str = ""
    credits: List[Any] = field(default_factory=list)
    type: List[str] = field(default_factory=lambda: ["Website"])
    tags: List[Any] = field(default_factory=list)
    dynamic: bool = True
    default: bool = False
    resources: List[Dict[str, Any]] = field(default_factory=list)
    options: List[Any] = field(default_factory=list)
    scripts: List[Dict[str, Any]] = field(default_factory=list)
    styles: List[Dict[str, Any]] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    # Keys in the order they are written
    KEYS = (
        "title", "description", "credits", "type", "tags", "dynamic",
        "default", "resources", "options", "scripts", "styles",
    )

    @classmethod
    def from_dict(cls, raw: Any) -> "FeatureData":
        """
        Build FeatureData from a parsed data.json document.

        Missing keys take their defaults. Raises ValueError when the document
        is not an object or a list-valued key holds something else.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"expected a JSON object, got {type(raw).__name__}")

        data = cls()
        for key in cls.KEYS:
            if key not in raw or raw[key] is None:
                continue
            value = raw[key]
            default = getattr(data, key)
            if isinstance(default, list) and not isinstance(value, list):
                raise ValueError(f"'{key}' must be an array, got {type(value).__name__}")
            setattr(data, key, copy.deepcopy(value))
        data.extra = {k: copy.deepcopy(v) for k, v in raw.items() if k not in cls.KEYS}
        return data

    def to_dict(self) -> Dict[str, Any]:
        result = {key: copy.deepcopy(getattr(self, key)) for key in self.KEYS}
        for key, value in self.extra.items():
            result.setdefault(key, copy.deepcopy(value))
        return result

    def section(self, name: str) -> List[Dict[str, Any]]:
        if name not in BINDING_SECTIONS:
            raise KeyError(name)
        return getattr(self, name)


@dataclass
class RemovedEntry:
    """An array entry taken out of data.json, with where it was."""

    section: str
    index: int
    entry: Dict[str, Any]
