"""
Token formatters and validators for clip naming.

Pure string functions that turn hand-typed logging fields (scene,
shot-take, camera roll, rating) into fixed-width file name tokens.
"""

import re
import xml.etree.ElementTree as ET
from typing import Optional, Tuple

_DIGITS = re.compile(r'[0-9]+')
_ONLY_HYPHENS = re.compile(r'-+')
_LONE_HYPHEN = re.compile(r'\s*-\s*')
_LEADING_LETTERS = re.compile(r'[A-Za-z]+')
_REPEATED_UNDERSCORES = re.compile(r'_{2,}')
_TRAILING_UNDERSCORES = re.compile(r'_+$')
_WHITESPACE = re.compile(r'\s')

# Maximum camera identifier length kept in file names
_CAMERA_ID_LENGTH = 2


def _pad_digits(value: str, width: int) -> str:
    return _DIGITS.sub(lambda m: m.group().zfill(width), value)


# ============================================================================
# VALIDATION
# ============================================================================

def is_valid_value(value: Optional[str]) -> bool:
    """Reject empty, hyphen-only and lone-hyphen placeholder values.

    Examples:
        is_valid_value("")     -> False
        is_valid_value(" - ")  -> False
        is_valid_value("A1")   -> True
    """
    value = (value or "").strip()
    if not value:
        return False
    if _ONLY_HYPHENS.fullmatch(value):
        return False
    if _LONE_HYPHEN.fullmatch(value):
        return False
    return True


def split_shot_take(value: str) -> Optional[Tuple[str, str]]:
    """Split "shot-take" into its two parts, or None unless exactly two non-blank parts."""
    parts = value.split('-')
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        return None
    return parts[0], parts[1]


# ============================================================================
# FORMATTERS
# ============================================================================

def format_scene_number(scene: str) -> str:
    """Pad every digit run to three digits and upper-case: "a12" -> "A012"."""
    return _pad_digits(scene, 3).upper()


def format_shot_take(value: str) -> Tuple[str, str]:
    """Format "shot-take" as two-digit lower-case tokens: "3 - 5" -> ("03", "05")."""
    shot, take = _WHITESPACE.sub('', value).split('-')[:2]
    return _pad_digits(shot, 2).lower(), _pad_digits(take, 2).lower()


def get_camera_identifier(cameraroll_text: Optional[str]) -> str:
    """Leading letters of a camera roll, at most two, lower-cased.

    Examples:
        get_camera_identifier("A001")    -> "a"
        get_camera_identifier("BCam002") -> "bc"
        get_camera_identifier("123A")    -> ""
    """
    if not cameraroll_text:
        return ""
    match = _LEADING_LETTERS.match(cameraroll_text)
    if not match:
        return ""
    return match.group()[:_CAMERA_ID_LENGTH].lower()


def cleanup_file_name(name: str) -> str:
    """Collapse repeated underscores and drop trailing ones."""
    name = _REPEATED_UNDERSCORES.sub('_', name)
    return _TRAILING_UNDERSCORES.sub('', name)


# ============================================================================
# RATING POLICIES
# ============================================================================

# Checked in order; first keyword found wins
_COMMENT_RATINGS = (
    ("Circle", "ok"),
    ("KEEP", "kp"),
    ("NG", "ng"),
)


def rating_from_comment(comment: Optional[str]) -> str:
    """Rating token from a ``mastercomment2`` keyword list (legacy schema)."""
    text = (comment or "").strip()
    if text.endswith(','):
        text = text[:-1]
    for keyword, rating in _COMMENT_RATINGS:
        if keyword in text:
            return rating
    return ""


def rating_from_labels(labels: Optional[ET.Element]) -> str:
    """Rating token from a clip's ``labels`` element (current schema).

    "No Label" means unrated. Anything mentioning keep/kp becomes "kp";
    any other label name is used as-is, lower-cased.
    """
    if labels is None:
        return ""
    label = labels.find('.//label')
    label_text = "".join(label.itertext()).strip() if label is not None else ""
    lowered = label_text.lower()
    if "no label" in lowered:
        return ""
    if "keep" in lowered or "kp" in lowered:
        return "kp"
    return lowered
