#!/usr/bin/env python3
"""
Double LOVE MCP Server - Clip renaming for editorial XML projects.

Exposes the renaming pipeline as MCP tools, discovered XML projects as
resources, and a guided rename prompt.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    TextContent,
    Tool,
)

from doublelove.models import RenameConfig, RenameReport
from doublelove.processor import (
    XMLRenamer,
    generate_output_path,
    read_xml_file,
    rename_file,
    rename_files,
)

logger = logging.getLogger("double-love-mcp")

server = Server("double-love-mcp")
PROJECTS_DIR = os.environ.get("DOUBLE_LOVE_PROJECTS_DIR", os.path.expanduser("~/Movies"))

# Maximum file size for processing (50 MB).
MAX_FILE_SIZE = 50 * 1024 * 1024

# Renamed clips listed per tool response before truncating
MAX_LISTED_CLIPS = 200


# ============================================================================
# SECURITY UTILITIES
# ============================================================================

def _validate_filepath(filepath: str, allowed_extensions: tuple[str, ...] | None = ('.xml',)) -> str:
    """Validate a user-provided file path against traversal and size attacks.

    Resolves symlinks, blocks null bytes, enforces extension whitelist, and
    checks file size before any parsing takes place.

    Raises:
        ValueError: For invalid paths (null bytes, bad extensions, oversized).
        FileNotFoundError: When the resolved path does not exist.
    """
    if '\x00' in filepath:
        raise ValueError("Invalid file path: null byte detected")

    resolved = Path(filepath).resolve()

    if not resolved.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    if not resolved.is_file():
        raise ValueError(f"Not a regular file: {filepath}")

    if allowed_extensions and resolved.suffix.lower() not in allowed_extensions:
        raise ValueError(
            f"Invalid file type '{resolved.suffix}'. "
            f"Allowed: {', '.join(allowed_extensions)}"
        )

    if resolved.stat().st_size > MAX_FILE_SIZE:
        size_mb = resolved.stat().st_size / (1024 * 1024)
        raise ValueError(f"File too large ({size_mb:.1f} MB). Maximum: {MAX_FILE_SIZE // (1024 * 1024)} MB")

    return str(resolved)


def _validate_output_path(output_path: str) -> str:
    """Validate an output path: resolve traversal, block null bytes, ensure parent exists."""
    if '\x00' in output_path:
        raise ValueError("Invalid output path: null byte detected")

    resolved = Path(output_path).resolve()

    if not resolved.parent.exists():
        raise ValueError(f"Output directory does not exist: {resolved.parent}")

    if resolved.suffix.lower() != '.xml':
        raise ValueError(f"Output must be an .xml file: {output_path}")

    return str(resolved)


def _validate_directory(directory: str) -> str:
    """Validate a user-provided directory path against traversal and injection.

    Raises:
        ValueError: For invalid paths (null bytes, not a directory).
    """
    if '\x00' in directory:
        raise ValueError("Invalid directory path: null byte detected")

    resolved = Path(directory).resolve()

    if not resolved.is_dir():
        raise ValueError(f"Not a valid directory: {directory}")

    return str(resolved)


# ============================================================================
# UTILITIES
# ============================================================================

def find_xml_files(directory: str) -> list[str]:
    """Find all XML project files in a directory, skipping renamer output."""
    path = Path(directory)
    files = [str(f) for f in path.rglob("*.xml") if not f.stem.endswith("_Double_LOVE")]
    return sorted(files)


def format_report(report: RenameReport, title: str) -> str:
    """Format a rename report as markdown."""
    result = (
        f"# {title}\n\n"
        f"- **Clips found**: {report.total_clips}\n"
        f"- **Renamed**: {len(report.renamed)}\n"
        f"- **Skipped**: {len(report.skipped)}\n"
    )
    if report.output_path:
        result += f"- **Output**: {report.output_path}\n"

    if report.renamed:
        result += "\n| Clip | Old Name | New Name | Sequence |\n|------|----------|----------|----------|\n"
        for r in report.renamed[:MAX_LISTED_CLIPS]:
            result += f"| {r.clip_id} | {r.old_name} | {r.new_name} | {r.sequence_id or '-'} |\n"
        if len(report.renamed) > MAX_LISTED_CLIPS:
            result += f"\n...and {len(report.renamed) - MAX_LISTED_CLIPS} more\n"

    if report.skipped:
        result += "\n## Skipped\n"
        for s in report.skipped[:MAX_LISTED_CLIPS]:
            result += f"- {s.clip_id or '<no id>'}: {s.reason.value}\n"
    return result


# ============================================================================
# MCP RESOURCES - File discovery
# ============================================================================

@server.list_resources()
async def list_resources() -> list[Resource]:
    """Expose discovered XML projects as MCP resources."""
    resources = []
    for f in find_xml_files(PROJECTS_DIR):
        p = Path(f)
        resources.append(Resource(
            uri=f"file://{f}",
            name=p.stem,
            description=f"Editorial XML project: {p.name}",
            mimeType="application/xml",
        ))
    return resources


@server.read_resource()
async def read_resource(uri: str) -> str:
    """Preview how the clips of an XML project would be renamed."""
    filepath = str(uri).replace("file://", "")
    try:
        filepath = _validate_filepath(filepath)
        report = XMLRenamer(read_xml_file(filepath)).run()
    except (ValueError, FileNotFoundError) as e:
        return str(e)
    return format_report(report, f"Rename preview: {Path(filepath).name}")


# ============================================================================
# MCP PROMPTS - Pre-built workflows
# ============================================================================

@server.list_prompts()
async def list_prompts() -> list[Prompt]:
    return [
        Prompt(
            name="rename-dailies",
            description="Preview and apply scene/shot/take clip names to an XML project",
            arguments=[
                PromptArgument(name="filepath", description="Path to XML file", required=True),
                PromptArgument(name="prefix", description="Optional file name prefix", required=False),
            ],
        ),
    ]


@server.get_prompt()
async def get_prompt(name: str, arguments: dict[str, str] | None = None) -> GetPromptResult:
    args = arguments or {}
    filepath = args.get("filepath", "<path to your .xml file>")

    if name == "rename-dailies":
        prefix = args.get("prefix", "")
        return GetPromptResult(
            description="Rename clips from logging metadata",
            messages=[PromptMessage(
                role="user",
                content=TextContent(
                    type="text",
                    text=f"""Rename the clips in my editorial XML project.

File: {filepath}
Prefix: {prefix or '(none)'}

Please:
1. Use `preview_clip_names` to show me the new names without writing anything
2. Point out clips that will be skipped and why
3. When I confirm, use `rename_clips` to write the renamed project"""
                ),
            )],
        )

    raise ValueError(f"Unknown prompt: {name}")


# ============================================================================
# TOOL DEFINITIONS
# ============================================================================

_CONFIG_PROPERTIES = {
    "width": {"type": "integer", "default": 1920, "description": "Resolution width written to every <width>"},
    "height": {"type": "integer", "default": 1080, "description": "Resolution height written to every <height>"},
    "format": {"type": "string",
               "description": "Name template with {scene}, {shot}, {take}, {camera}, {Rating}"},
    "prefix": {"type": "string", "description": "Prefix prepended to every new name"},
    "schema": {"type": "string", "enum": ["labels", "comments"],
               "description": "labels: rating from <labels>; comments: rating from <mastercomment2>"},
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="list_xml_files",
            description="List all editorial XML projects in a directory",
            inputSchema={
                "type": "object",
                "properties": {
                    "directory": {"type": "string", "description": "Directory to search (default: ~/Movies)"}
                }
            }
        ),
        Tool(
            name="preview_clip_names",
            description="Show old and new clip names without writing any file",
            inputSchema={
                "type": "object",
                "properties": {"filepath": {"type": "string"}, **_CONFIG_PROPERTIES},
                "required": ["filepath"]
            }
        ),
        Tool(
            name="rename_clips",
            description="Rename clips from scene/shot/take/camera/rating, normalize resolution, and save",
            inputSchema={
                "type": "object",
                "properties": {
                    "filepath": {"type": "string"},
                    "output_path": {"type": "string", "description": "Default: <name>_Double_LOVE.xml"},
                    **_CONFIG_PROPERTIES,
                },
                "required": ["filepath"]
            }
        ),
        Tool(
            name="batch_rename_clips",
            description="Rename clips in several XML files, one after another",
            inputSchema={
                "type": "object",
                "properties": {
                    "filepaths": {"type": "array", "items": {"type": "string"}},
                    "directory": {"type": "string", "description": "Process every XML file in this directory"},
                    **_CONFIG_PROPERTIES,
                },
            }
        ),
    ]


# ============================================================================
# TOOL HANDLERS - Each tool gets its own function
# ============================================================================

async def handle_list_xml_files(arguments: dict) -> Sequence[TextContent]:
    directory = arguments.get("directory", PROJECTS_DIR)
    resolved_dir = _validate_directory(directory)
    files = find_xml_files(resolved_dir)
    if not files:
        return [TextContent(type="text", text=f"No XML files found in {directory}")]
    return [TextContent(type="text", text=f"Found {len(files)} XML file(s):\n" + "\n".join(f"  - {f}" for f in files))]


async def handle_preview_clip_names(arguments: dict) -> Sequence[TextContent]:
    filepath = _validate_filepath(arguments["filepath"])
    config = RenameConfig.from_dict(arguments)
    report = XMLRenamer(read_xml_file(filepath), config).run()
    return [TextContent(type="text", text=format_report(report, f"Rename preview: {Path(filepath).name}"))]


async def handle_rename_clips(arguments: dict) -> Sequence[TextContent]:
    filepath = _validate_filepath(arguments["filepath"])
    output_path = _validate_output_path(arguments.get("output_path") or generate_output_path(filepath))
    config = RenameConfig.from_dict(arguments)
    report = rename_file(filepath, output_path, config)
    return [TextContent(type="text", text=format_report(report, f"Renamed clips: {Path(filepath).name}"))]


async def handle_batch_rename_clips(arguments: dict) -> Sequence[TextContent]:
    filepaths = list(arguments.get("filepaths") or [])
    if arguments.get("directory"):
        filepaths.extend(find_xml_files(_validate_directory(arguments["directory"])))
    if not filepaths:
        raise ValueError("Provide filepaths or a directory")

    config = RenameConfig.from_dict(arguments)
    valid, errors = [], []
    for f in filepaths:
        try:
            valid.append(_validate_filepath(f))
        except (ValueError, FileNotFoundError) as e:
            errors.append(f"- {f}: {e}")

    results = rename_files(valid, config)
    ok = [r for r in results if r.ok]
    errors.extend(f"- {r.input_path}: {r.error}" for r in results if not r.ok)

    result = f"# Batch Rename\n\n- **Files processed**: {len(ok)}\n- **Errors**: {len(errors)}\n"
    if ok:
        result += "\n| File | Renamed | Skipped | Output |\n|------|---------|---------|--------|\n"
        for r in ok:
            result += (f"| {Path(r.input_path).name} | {len(r.report.renamed)} | "
                       f"{len(r.report.skipped)} | {r.report.output_path} |\n")
    if errors:
        result += "\n## Errors\n" + "\n".join(errors) + "\n"
    return [TextContent(type="text", text=result)]


# ============================================================================
# TOOL DISPATCH
# ============================================================================

TOOL_HANDLERS = {
    "list_xml_files": handle_list_xml_files,
    "preview_clip_names": handle_preview_clip_names,
    "rename_clips": handle_rename_clips,
    "batch_rename_clips": handle_batch_rename_clips,
}


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> Sequence[TextContent]:
    handler = TOOL_HANDLERS.get(name)
    if not handler:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]
    try:
        return await handler(arguments)
    except FileNotFoundError as e:
        return [TextContent(type="text", text=f"File not found: {e}")]
    except ValueError as e:
        return [TextContent(type="text", text=f"Validation error: {e}")]
    except Exception as e:
        logger.exception("Error in tool %s", name)
        return [TextContent(type="text", text=f"Error: {type(e).__name__}")]


# ============================================================================
# MAIN
# ============================================================================

async def main():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main_sync():
    """Synchronous entry point for use as a console script."""
    import asyncio
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()
