"""File name generation from a clip's naming tokens."""

from .formatters import cleanup_file_name
from .models import ProcessedClipData, RenameConfig


def generate_new_name(data: ProcessedClipData, config: RenameConfig) -> str:
    """Fill the name template and apply the prefix.

    Each placeholder is replaced once, in order: {scene}, {shot}, {take},
    {camera}, {Rating}. A rating is inserted with a leading underscore;
    no rating removes the placeholder. Underscores are cleaned up before
    the prefix is prepended.
    """
    new_name = (
        config.template
        .replace('{scene}', data.scene_formatted, 1)
        .replace('{shot}', data.shot_formatted, 1)
        .replace('{take}', data.take_formatted, 1)
        .replace('{camera}', data.camera_id, 1)
        .replace('{Rating}', f"_{data.rating}" if data.rating else "", 1)
    )
    return config.prefix + cleanup_file_name(new_name)
