"""
Document-wide normalization passes.

Each pass rewrites every matching element in the document and is a no-op
when no such element exists. They run regardless of how many clips were
renamed.
"""

import logging
import re

from .document import XMLDocument, text_content
from .propagate import fix_labels_spelling

logger = logging.getLogger(__name__)

DIT_PLACEHOLDER = "DIT: (null)"
DIT_REPLACEMENT = "Generated by https://double-love.ahua.space"

# Frame-numbered image sequence paths collapse to the sequence's base name
_PATHURL_RULES = (
    (re.compile(r'\.[0-9]+\.arx'), '.arx'),
    (re.compile(r'\.[0-9]+\.ari'), '.ari'),
    (re.compile(r'_[0-9]+\.dng'), '.dng'),
)


def update_resolution(document: XMLDocument, width: int, height: int) -> int:
    """Overwrite every width and height element. Returns elements changed."""
    count = 0
    for elem in document.by_tag('width'):
        document.set_text(elem, str(width))
        count += 1
    for elem in document.by_tag('height'):
        document.set_text(elem, str(height))
        count += 1
    return count


def update_dit_info(document: XMLDocument) -> int:
    """Replace log notes that read exactly "DIT: (null)"."""
    count = 0
    for elem in document.by_tag('lognote'):
        if text_content(elem) == DIT_PLACEHOLDER:
            document.set_text(elem, DIT_REPLACEMENT)
            count += 1
    return count


def normalize_path_url(url: str) -> str:
    """Strip frame numbers from ARRI (.arx/.ari) and DNG sequence file names."""
    for pattern, replacement in _PATHURL_RULES:
        url = pattern.sub(replacement, url)
    return url


def process_path_urls(document: XMLDocument) -> int:
    count = 0
    for elem in document.by_tag('pathurl'):
        url = text_content(elem)
        if not url:
            continue
        normalized = normalize_path_url(url)
        if normalized != url:
            document.set_text(elem, normalized)
            count += 1
    return count


def fix_all_labels(document: XMLDocument) -> int:
    """Run the label spelling fix over every labels element in the document."""
    fixed = sum(1 for labels in document.by_tag('labels') if fix_labels_spelling(labels))
    if fixed:
        logger.info("corrected label spelling in %d labels element(s)", fixed)
        document.invalidate()
    return fixed
