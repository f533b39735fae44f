"""
Clip extraction - locates a clip's logging fields and turns them into
normalized naming tokens.

Both steps return None instead of raising when a clip cannot be named,
so the caller can skip the clip and move on.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional, Tuple

from .document import text_content
from .formatters import (
    format_scene_number,
    format_shot_take,
    get_camera_identifier,
    is_valid_value,
    rating_from_comment,
    rating_from_labels,
    split_shot_take,
)
from .models import (
    ClipElements,
    ProcessedClipData,
    SchemaVariant,
    XMLProcessErrorType,
)

logger = logging.getLogger(__name__)


def extract_clip_elements(clip: ET.Element,
                          schema: SchemaVariant = SchemaVariant.LABELS) -> Optional[ClipElements]:
    """Find the sub-elements needed to name ``clip``.

    Both schemas require ``logginginfo`` (with ``scene`` and ``shottake``),
    ``filmdata`` and ``comments/mastercomment2``. The labels schema also
    picks up the clip's direct ``labels`` child, which may be absent.

    Returns None when any required element is missing.
    """
    logginginfo = clip.find('.//logginginfo')
    scene = logginginfo.find('.//scene') if logginginfo is not None else None
    shottake = logginginfo.find('.//shottake') if logginginfo is not None else None
    filmdata = clip.find('.//filmdata')

    if logginginfo is None or scene is None or shottake is None or filmdata is None:
        logger.debug("clip %s: missing logginginfo/scene/shottake/filmdata", clip.get('id'))
        return None

    comments = clip.find('.//comments')
    mastercomment2 = comments.find('.//mastercomment2') if comments is not None else None
    if comments is None or mastercomment2 is None:
        logger.debug("clip %s: missing comments/mastercomment2", clip.get('id'))
        return None

    return ClipElements(
        logginginfo=logginginfo, scene=scene, shottake=shottake, filmdata=filmdata,
        comments=comments, mastercomment2=mastercomment2,
        labels=clip.find('labels') if schema == SchemaVariant.LABELS else None,
        schema=schema,
    )


def check_clip_data(elements: ClipElements) -> Tuple[Optional[ProcessedClipData], Optional[XMLProcessErrorType]]:
    """Like process_clip_data, with the reason when the clip cannot be named."""
    scene_value = text_content(elements.scene)
    shottake_value = text_content(elements.shottake)

    if not is_valid_value(scene_value) or not is_valid_value(shottake_value):
        return None, XMLProcessErrorType.INVALID_FORMAT

    if split_shot_take(shottake_value) is None:
        return None, XMLProcessErrorType.INVALID_FORMAT

    scene_formatted = format_scene_number(scene_value)
    shot_formatted, take_formatted = format_shot_take(shottake_value)

    cameraroll = elements.filmdata.find('.//cameraroll')
    cameraroll_text = text_content(cameraroll)
    if not cameraroll_text:
        return None, XMLProcessErrorType.MISSING_REQUIRED_ELEMENTS

    if elements.schema == SchemaVariant.COMMENTS:
        rating = rating_from_comment(text_content(elements.mastercomment2))
    else:
        rating = rating_from_labels(elements.labels)

    return ProcessedClipData(
        scene_formatted=scene_formatted,
        shot_formatted=shot_formatted,
        take_formatted=take_formatted,
        camera_id=get_camera_identifier(cameraroll_text),
        rating=rating,
    ), None


def process_clip_data(elements: ClipElements) -> Optional[ProcessedClipData]:
    """Validate and format a clip's fields.

    Steps: validate scene and shot-take, require exactly two shot-take
    parts, format the tokens, require a camera roll, then read the rating
    with the policy of the schema the elements were extracted for
    (``mastercomment2`` keywords or ``labels`` text).

    Returns None when the clip should be skipped.
    """
    data, _ = check_clip_data(elements)
    return data
