"""
Double LOVE - rename and normalize clips in editorial (FCP7 XML) projects.

This package provides tools to:
- Build clip names from scene/shot/take/camera/rating logging fields
- Propagate new names and labels to linked sequences and clipitems
- Normalize resolution, DIT log notes and image-sequence path URLs
- Process single files or whole batches
"""

from .document import XMLDocument
from .extractor import extract_clip_elements, process_clip_data
from .formatters import (
    cleanup_file_name,
    format_scene_number,
    format_shot_take,
    get_camera_identifier,
    is_valid_value,
    rating_from_comment,
    rating_from_labels,
)
from .models import (
    BatchResult,
    ClipElements,
    ProcessedClipData,
    RenameConfig,
    RenamedClip,
    RenameReport,
    # Enums
    SchemaVariant,
    SkippedClip,
    XMLProcessError,
    XMLProcessErrorType,
)
from .naming import generate_new_name
from .processor import (
    XMLRenamer,
    generate_output_path,
    process_xml,
    rename_file,
    rename_files,
)

__version__ = "1.0.0"

__all__ = [
    # Version
    "__version__",

    # Enums
    "SchemaVariant",
    "XMLProcessErrorType",

    # Models
    "RenameConfig",
    "ClipElements",
    "ProcessedClipData",
    "RenamedClip",
    "SkippedClip",
    "RenameReport",
    "BatchResult",
    "XMLProcessError",

    # Document
    "XMLDocument",

    # Formatters
    "format_scene_number",
    "format_shot_take",
    "get_camera_identifier",
    "cleanup_file_name",
    "is_valid_value",
    "rating_from_comment",
    "rating_from_labels",
    "generate_new_name",

    # Extraction
    "extract_clip_elements",
    "process_clip_data",

    # Processing
    "XMLRenamer",
    "process_xml",
    "rename_file",
    "rename_files",
    "generate_output_path",
]
