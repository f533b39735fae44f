"""
Data models for the clip renaming pipeline.

Provides the schema selector, processing configuration, error types and
the small records passed between pipeline stages.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

# ============================================================================
# ENUMS
# ============================================================================

# Maximum length for schema strings to prevent memory abuse
_MAX_SCHEMA_LENGTH = 64


class SchemaVariant(Enum):
    """Editorial XML profiles the renamer understands.

    LABELS is the current profile: ratings come from the clip's ``labels``
    element, labels are copied onto linked sequences and clipitems, and
    pathurl frame suffixes are normalized. COMMENTS is the legacy profile:
    ratings come from ``comments/mastercomment2`` keywords and the linked
    sequence is updated by element position.
    """
    LABELS = "labels"
    COMMENTS = "comments"

    @classmethod
    def from_string(cls, value: str) -> 'SchemaVariant':
        """Convert a string to SchemaVariant, accepting names, values and aliases.

        Examples:
            SchemaVariant.from_string("labels")   -> SchemaVariant.LABELS
            SchemaVariant.from_string("LEGACY")   -> SchemaVariant.COMMENTS
        """
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        if '\x00' in value or any(ord(c) < 32 and c not in ('\n', '\r', '\t') for c in value):
            raise ValueError("Schema contains invalid control characters")
        if len(value) > _MAX_SCHEMA_LENGTH:
            raise ValueError(
                f"Schema exceeds maximum length ({_MAX_SCHEMA_LENGTH} chars)"
            )
        lowered = value.strip().lower()
        if not lowered:
            raise ValueError("Schema cannot be empty")
        aliases = {
            "current": "labels",
            "label": "labels",
            "legacy": "comments",
            "comment": "comments",
            "mastercomment2": "comments",
        }
        lowered = aliases.get(lowered, lowered)
        try:
            return cls(lowered)
        except ValueError:
            raise ValueError(
                f"Invalid schema: '{value}'. "
                f"Valid schemas: {', '.join(s.value for s in cls)}"
            )

    @property
    def default_format(self) -> str:
        """File name template used when the caller does not supply one."""
        if self == SchemaVariant.COMMENTS:
            return "{scene}_{shot}_{take}{camera}_{Rating}"
        return "{scene}_{shot}_{take}{camera}{Rating}"


class XMLProcessErrorType(Enum):
    """Failure kinds. Only INVALID_XML aborts a whole file."""
    INVALID_XML = "INVALID_XML"
    MISSING_REQUIRED_ELEMENTS = "MISSING_REQUIRED_ELEMENTS"
    INVALID_FORMAT = "INVALID_FORMAT"


class XMLProcessError(ValueError):
    """Raised when an uploaded file cannot be processed at all."""

    def __init__(self, error_type: XMLProcessErrorType, message: str):
        super().__init__(message)
        self.error_type = error_type

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.args[0]}"


# ============================================================================
# CONFIGURATION
# ============================================================================

DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    if number <= 0 or (isinstance(value, float) and value != number):
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return number


@dataclass
class RenameConfig:
    """Settings for one renaming run.

    ``format`` may contain ``{scene}``, ``{shot}``, ``{take}``, ``{camera}``
    and ``{Rating}``. When left as None the schema's default template is used.
    ``on_progress`` receives an integer percentage between 0 and 100.
    """
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    format: Optional[str] = None
    prefix: str = ""
    schema: SchemaVariant = SchemaVariant.LABELS
    on_progress: Optional[Callable[[int], None]] = None

    def __post_init__(self):
        self.width = _positive_int("width", self.width)
        self.height = _positive_int("height", self.height)
        if isinstance(self.schema, str):
            self.schema = SchemaVariant.from_string(self.schema)
        if self.prefix is None:
            self.prefix = ""

    @property
    def template(self) -> str:
        return self.format if self.format else self.schema.default_format

    @classmethod
    def from_dict(cls, arguments: Dict[str, Any]) -> 'RenameConfig':
        """Build a config from loosely typed tool arguments."""
        return cls(
            width=arguments.get("width", DEFAULT_WIDTH),
            height=arguments.get("height", DEFAULT_HEIGHT),
            format=arguments.get("format") or None,
            prefix=arguments.get("prefix") or "",
            schema=arguments.get("schema") or SchemaVariant.LABELS,
        )


# ============================================================================
# PIPELINE RECORDS
# ============================================================================

@dataclass
class ClipElements:
    """Sub-elements of one clip located by the extractor."""
    logginginfo: ET.Element
    scene: ET.Element
    shottake: ET.Element
    filmdata: ET.Element
    comments: Optional[ET.Element] = None
    mastercomment2: Optional[ET.Element] = None
    labels: Optional[ET.Element] = None
    schema: SchemaVariant = SchemaVariant.LABELS


@dataclass
class ProcessedClipData:
    """Normalized naming tokens derived from one clip."""
    scene_formatted: str
    shot_formatted: str
    take_formatted: str
    camera_id: str
    rating: str = ""


@dataclass
class RenamedClip:
    clip_id: str
    old_name: str
    new_name: str
    sequence_id: Optional[str] = None


@dataclass
class SkippedClip:
    clip_id: str
    reason: XMLProcessErrorType
    details: str = ""


@dataclass
class RenameReport:
    """Outcome of one renaming run."""
    output: str = ""
    renamed: List[RenamedClip] = field(default_factory=list)
    skipped: List[SkippedClip] = field(default_factory=list)
    output_path: Optional[str] = None

    @property
    def total_clips(self) -> int:
        return len(self.renamed) + len(self.skipped)


@dataclass
class BatchResult:
    """Per-file entry of a batch run. Exactly one of report/error is set."""
    input_path: str
    report: Optional[RenameReport] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
