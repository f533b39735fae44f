"""
Clip renamer - parse, rename every clip, normalize, serialize.

Provides the in-memory entry point (process_xml) and the file workflows
built on it (rename_file, rename_files).
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .document import XMLDocument, text_content
from .extractor import check_clip_data, extract_clip_elements
from .models import (
    BatchResult,
    RenameConfig,
    RenamedClip,
    RenameReport,
    SchemaVariant,
    SkippedClip,
    XMLProcessError,
    XMLProcessErrorType,
)
from .naming import generate_new_name
from .normalize import fix_all_labels, process_path_urls, update_dit_info, update_resolution
from .propagate import update_related_elements

logger = logging.getLogger(__name__)

# Maximum XML file size (50 MB), the same ceiling the upload page enforces
_MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024

OUTPUT_SUFFIX = "_Double_LOVE"


class XMLRenamer:
    """
    Renames clips in one editorial XML document.

    Usage:
        renamer = XMLRenamer(xml_text, RenameConfig(prefix="DL_"))
        report = renamer.run()
        print(report.output)
    """

    def __init__(self, content: Union[str, bytes], config: Optional[RenameConfig] = None):
        """Parse ``content``. Raises XMLProcessError (INVALID_XML) on bad input."""
        self.config = config or RenameConfig()
        self.document = XMLDocument.from_string(content)

    @property
    def schema(self) -> SchemaVariant:
        return self.config.schema

    def _report_progress(self, percent: int) -> None:
        callback = self.config.on_progress
        if callback is None:
            return
        try:
            callback(percent)
        except Exception:
            logger.warning("progress callback failed at %d%%", percent, exc_info=True)

    def rename_clip(self, clip) -> RenamedClip:
        """Rename a single clip and everything linked to it.

        Raises:
            XMLProcessError: MISSING_REQUIRED_ELEMENTS or INVALID_FORMAT when
                the clip cannot be named. Nothing has been modified then.
        """
        clip_id = clip.get('id', '')
        elements = extract_clip_elements(clip, self.schema)
        if elements is None:
            raise XMLProcessError(
                XMLProcessErrorType.MISSING_REQUIRED_ELEMENTS,
                f"Clip {clip_id or '<no id>'} is missing logging elements"
            )

        data, reason = check_clip_data(elements)
        if data is None:
            raise XMLProcessError(reason, f"Clip {clip_id or '<no id>'} has unusable logging data")

        new_name = generate_new_name(data, self.config)
        old_name = text_content(clip.find('name'))
        sequence = update_related_elements(self.document, clip, new_name, self.schema)
        return RenamedClip(
            clip_id=clip_id,
            old_name=old_name,
            new_name=new_name,
            sequence_id=sequence.get('id') if sequence is not None else None,
        )

    def run(self) -> RenameReport:
        """Rename all clips, apply document-wide fixes, and serialize."""
        report = RenameReport()

        if self.schema == SchemaVariant.LABELS:
            fix_all_labels(self.document)

        clips = self.document.by_tag('clip')
        logger.info("found %d clip(s)", len(clips))
        self._report_progress(0)

        for i, clip in enumerate(clips, 1):
            clip_id = clip.get('id', '')
            try:
                renamed = self.rename_clip(clip)
            except XMLProcessError as e:
                logger.debug("skipping clip %s: %s", clip_id, e)
                report.skipped.append(SkippedClip(clip_id, e.error_type, e.args[0]))
            except Exception as e:
                logger.exception("failed to process clip %s", clip_id)
                report.skipped.append(SkippedClip(
                    clip_id, XMLProcessErrorType.INVALID_FORMAT, f"{type(e).__name__}: {e}"
                ))
            else:
                report.renamed.append(renamed)
            self._report_progress(int(i * 99 / len(clips)))

        update_resolution(self.document, self.config.width, self.config.height)
        update_dit_info(self.document)
        if self.schema == SchemaVariant.LABELS:
            process_path_urls(self.document)

        report.output = self.document.serialize()
        self._report_progress(100)
        logger.info("renamed %d clip(s), skipped %d", len(report.renamed), len(report.skipped))
        return report


def process_xml(content: Union[str, bytes], config: Optional[RenameConfig] = None) -> str:
    """Rename clips in an XML document and return the rewritten document.

    Clips that cannot be named are left untouched without any error.

    Raises:
        XMLProcessError: INVALID_XML when the content cannot be parsed.
    """
    return XMLRenamer(content, config).run().output


# ============================================================================
# FILE WORKFLOWS
# ============================================================================

def generate_output_path(input_path: str, suffix: str = OUTPUT_SUFFIX) -> str:
    """"edit.xml" -> "edit_Double_LOVE.xml" next to the input."""
    p = Path(input_path)
    return str(p.parent / f"{p.stem}{suffix}.xml")


def read_xml_file(filepath: str) -> bytes:
    """Read an .xml file, enforcing the extension and size ceiling."""
    path = Path(filepath)
    if path.suffix.lower() != '.xml':
        raise ValueError(f"Not an XML file: {filepath}")
    file_size = path.stat().st_size
    if file_size > _MAX_FILE_SIZE_BYTES:
        raise ValueError(
            f"XML file exceeds maximum size "
            f"({file_size / 1024 / 1024:.1f} MB > "
            f"{_MAX_FILE_SIZE_BYTES / 1024 / 1024:.0f} MB limit)"
        )
    return path.read_bytes()


def rename_file(filepath: str, output_path: Optional[str] = None,
                config: Optional[RenameConfig] = None) -> RenameReport:
    """Rename clips in an XML file and write the result.

    The output goes to ``output_path`` or, by default, to
    ``<name>_Double_LOVE.xml`` beside the input.
    """
    content = read_xml_file(filepath)
    report = XMLRenamer(content, config).run()
    out_path = output_path or generate_output_path(filepath)
    with open(out_path, 'w', encoding='utf-8') as f:
        f.write(report.output)
    report.output_path = out_path
    return report


def rename_files(filepaths: Iterable[str], config: Optional[RenameConfig] = None,
                 on_file: Optional[Callable[[int, int, str], None]] = None) -> List[BatchResult]:
    """Rename clips in several files, one after another.

    A file that fails is recorded as an error entry and the batch goes on.
    ``on_file(index, total, path)`` is called before each file starts.
    """
    paths = list(filepaths)
    results = []
    for i, path in enumerate(paths):
        if on_file is not None:
            on_file(i, len(paths), path)
        try:
            report = rename_file(path, config=config)
        except (XMLProcessError, ValueError, OSError) as e:
            logger.warning("failed to process %s: %s", path, e)
            results.append(BatchResult(input_path=path, error=str(e)))
        else:
            results.append(BatchResult(input_path=path, report=report))
    return results
