"""
Propagation - writes a clip's new name (and, in the labels schema, its
labels) onto the clip and every timeline element linked to it.

Linked sequences are found by id convention: ``sequence_id_{clipId}``
first, then ``sequence_{clipId}_ci``.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from .document import XMLDocument, set_text_content, text_content
from .models import SchemaVariant

logger = logging.getLogger(__name__)

MISSPELLED_LABEL = "Celurean"
CORRECT_LABEL = "Cerulean"

# Position of the clip name among a sequence's name elements (legacy layout)
_LEGACY_CLIP_NAME_INDEX = 2


def fix_labels_spelling(labels: Optional[ET.Element]) -> bool:
    """Correct the "Celurean" colour label typo. Returns True if changed."""
    if labels is None:
        return False
    label2 = labels.find('.//label2')
    if label2 is None:
        return False
    text = text_content(label2)
    if MISSPELLED_LABEL not in text:
        return False
    set_text_content(label2, text.replace(MISSPELLED_LABEL, CORRECT_LABEL, 1))
    logger.debug("fixed label spelling: %s -> %s", MISSPELLED_LABEL, CORRECT_LABEL)
    return True


def find_linked_sequence(document: XMLDocument, clip_id: str) -> Optional[ET.Element]:
    """Sequence generated for a clip, by the two known id conventions."""
    sequence = document.find_by_id('sequence', f"sequence_id_{clip_id}")
    if sequence is None:
        sequence = document.find_by_id('sequence', f"sequence_{clip_id}_ci")
    return sequence


def copy_labels_to_element(document: XMLDocument, target: ET.Element,
                           labels: Optional[ET.Element],
                           direct_child: bool = False) -> None:
    """Give ``target`` the same labels as the clip.

    An existing labels element has its content replaced; otherwise a copy
    is appended. With ``direct_child`` only a direct labels child counts
    as existing.
    """
    if labels is None:
        return
    existing = target.find('labels' if direct_child else './/labels')
    if existing is not None:
        document.replace_inner(existing, labels)
    else:
        document.append_copy(target, labels)


def update_clip_items(document: XMLDocument, sequence: ET.Element, new_name: str,
                      labels: Optional[ET.Element]) -> int:
    """Rename video clipitems and copy labels to video and audio clipitems.

    Returns the number of clipitems touched.
    """
    touched = 0
    for clipitem in sequence.findall('.//video/track/clipitem'):
        name_elem = clipitem.find('name')
        if name_elem is not None:
            document.set_text(name_elem, new_name)
        copy_labels_to_element(document, clipitem, labels)
        touched += 1

    for clipitem in sequence.findall('.//audio/track/clipitem'):
        copy_labels_to_element(document, clipitem, labels)
        touched += 1
    return touched


def update_related_elements(document: XMLDocument, clip: ET.Element, new_name: str,
                            schema: SchemaVariant = SchemaVariant.LABELS) -> Optional[ET.Element]:
    """Rename ``clip`` and its linked sequence.

    Returns the linked sequence, or None if the clip has none.
    """
    clip_id = clip.get('id')
    if not clip_id and schema == SchemaVariant.LABELS:
        return None

    name_elem = clip.find('name')
    if name_elem is not None:
        document.set_text(name_elem, new_name)

    if not clip_id:
        return None

    sequence = find_linked_sequence(document, clip_id)
    if sequence is None:
        return None

    sequence_name = sequence.find('name')
    if sequence_name is not None:
        document.set_text(sequence_name, new_name)

    if schema == SchemaVariant.COMMENTS:
        # Positional: the clip's own name is the third name in this layout
        names = list(sequence.iter('name'))
        if len(names) > _LEGACY_CLIP_NAME_INDEX:
            document.set_text(names[_LEGACY_CLIP_NAME_INDEX], new_name)
        return sequence

    labels = clip.find('labels')
    update_clip_items(document, sequence, new_name, labels)
    copy_labels_to_element(document, sequence, labels, direct_child=True)
    return sequence
