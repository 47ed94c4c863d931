#!/usr/bin/env python3
"""
Figco MCP Server - Model Context Protocol server that turns Figma designs into code.

This server provides tools to:
- Inspect a Figma file (structure, raw node JSON, rendered images)
- Translate a node tree into React (JSX) or plain HTML markup with a stylesheet
- Scaffold a complete project from a design and write it to disk
- Browse generated projects and score the quality of generated source files
"""

import contextlib
import contextvars
import json
import logging
import os
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterator

import httpx
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from mcp.server.fastmcp import FastMCP

from analyzers.code_quality import analyze_code
from generators.base import find_node, normalize_node_id, simplify_tree
from generators.markup_generator import translate, generate_component
from generators.project_generator import (
    ProjectExistsError, ProjectPathError,
    build_project, project_directory, read_directory_tree, read_project_file, write_project,
)

# ============================================================================
# Constants
# ============================================================================

FIGMA_API_BASE = "https://api.figma.com/v1"
CHARACTER_LIMIT = 25000
DEFAULT_TIMEOUT = 30.0
DEFAULT_OUTPUT_DIR = "generated_code"
LOG_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"

FIGMA_URL_PATTERN = re.compile(r'figma\.com/(?:design|file|proto)/([a-zA-Z0-9]+)')

logger = logging.getLogger("figco_mcp")

# ============================================================================
# Initialize MCP Server
# ============================================================================

mcp = FastMCP("figco_mcp")

# ============================================================================
# Enums and Types
# ============================================================================

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


class ImageFormat(str, Enum):
    """Image export format."""
    PNG = "png"
    SVG = "svg"
    JPG = "jpg"
    PDF = "pdf"


class Framework(str, Enum):
    """Markup flavour of generated code."""
    REACT = "react"
    HTML = "html"


# ============================================================================
# Pydantic Input Models
# ============================================================================

def _extract_file_key(v: Any) -> Any:
    """Accept a bare file key or any figma.com design/file/proto URL."""
    if not isinstance(v, str):
        return v
    v = v.strip()
    if 'figma.com' in v:
        match = FIGMA_URL_PATTERN.search(v)
        if match:
            return match.group(1)
        raise ValueError("Could not extract file key from Figma URL")
    return v


class FigmaFileInput(BaseModel):
    """Input model for file operations."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(
        ...,
        description="Figma file key (from URL: figma.com/design/FILE_KEY/...) or the full URL",
        min_length=10,
        max_length=50
    )
    depth: int = Field(
        default=2,
        description="Depth of node tree to return (1-10)",
        ge=1,
        le=10
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Figma token; overrides FIGMA_ACCESS_TOKEN for this call",
        repr=False
    )

    @field_validator('file_key', mode='before')
    @classmethod
    def validate_file_key(cls, v: Any) -> Any:
        return _extract_file_key(v)


class FigmaNodeInput(BaseModel):
    """Input model for single node operations."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or URL", min_length=10, max_length=50)
    node_id: str = Field(..., description="Node ID (e.g., '1:2' or '1-2')", min_length=1)
    access_token: Optional[str] = Field(default=None, description="Figma token override", repr=False)

    @field_validator('file_key', mode='before')
    @classmethod
    def validate_file_key(cls, v: Any) -> Any:
        return _extract_file_key(v)

    @field_validator('node_id')
    @classmethod
    def validate_node_id(cls, v: str) -> str:
        return normalize_node_id(v)


class FigmaImageInput(BaseModel):
    """Input model for image rendering."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or URL", min_length=10, max_length=50)
    node_ids: List[str] = Field(
        ...,
        description="List of node IDs to render (e.g., ['1:2', '3-4'])",
        min_length=1,
        max_length=10
    )
    format: ImageFormat = Field(
        default=ImageFormat.PNG,
        description="Image format: 'png', 'svg', 'jpg', 'pdf'"
    )
    scale: float = Field(
        default=2.0,
        description="Scale factor (0.01 to 4.0)",
        ge=0.01,
        le=4.0
    )
    access_token: Optional[str] = Field(default=None, description="Figma token override", repr=False)

    @field_validator('file_key', mode='before')
    @classmethod
    def validate_file_key(cls, v: Any) -> Any:
        return _extract_file_key(v)

    @field_validator('node_ids')
    @classmethod
    def normalize_node_ids(cls, v: List[str]) -> List[str]:
        return [normalize_node_id(nid.strip()) for nid in v]


class CodeGenInput(BaseModel):
    """Input model for code generation."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or URL", min_length=10, max_length=50)
    node_id: str = Field(..., description="Node ID to generate code for", min_length=1)
    framework: Framework = Field(default=Framework.REACT, description="'react' or 'html'")
    component_name: Optional[str] = Field(
        default=None,
        description="Component name (derived from the node name if not provided)"
    )
    access_token: Optional[str] = Field(default=None, description="Figma token override", repr=False)

    @field_validator('file_key', mode='before')
    @classmethod
    def validate_file_key(cls, v: Any) -> Any:
        return _extract_file_key(v)

    @field_validator('node_id')
    @classmethod
    def validate_node_id(cls, v: str) -> str:
        return normalize_node_id(v)


class ProjectOptions(BaseModel):
    """Options shared by the project generation tools."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    framework: Framework = Field(default=Framework.REACT, description="'react' or 'html'")
    component_name: Optional[str] = Field(default=None, description="Root component name")
    project_name: Optional[str] = Field(
        default=None,
        description="Project title; the output folder is derived from it"
    )
    overwrite: bool = Field(
        default=False,
        description="Replace files in an existing project folder (files the new project does not produce are kept)",
    )


class ProjectGenInput(ProjectOptions):
    """Input model for generating a project from a Figma file."""
    file_key: str = Field(..., description="Figma file key or URL", min_length=10, max_length=50)
    node_id: Optional[str] = Field(
        default=None,
        description="Node to generate; the largest frame of the first page when omitted"
    )
    access_token: Optional[str] = Field(default=None, description="Figma token override", repr=False)

    @field_validator('file_key', mode='before')
    @classmethod
    def validate_file_key(cls, v: Any) -> Any:
        return _extract_file_key(v)

    @field_validator('node_id')
    @classmethod
    def validate_node_id(cls, v: Optional[str]) -> Optional[str]:
        return normalize_node_id(v) if v else None


class ProjectFromJsonInput(ProjectOptions):
    """Input model for generating a project from inline Figma JSON."""
    figma_json: Dict[str, Any] = Field(
        ...,
        description="A Figma file response (with 'document') or a single node"
    )
    node_id: Optional[str] = Field(default=None, description="Node inside the JSON to generate")

    @field_validator('node_id')
    @classmethod
    def validate_node_id(cls, v: Optional[str]) -> Optional[str]:
        return normalize_node_id(v) if v else None


class ReadProjectInput(BaseModel):
    """Input model for listing generated files."""
    model_config = ConfigDict(str_strip_whitespace=True)

    path: str = Field(default="", description="Folder relative to the output directory")


class ReadFileInput(BaseModel):
    """Input model for reading a generated file."""
    model_config = ConfigDict(str_strip_whitespace=True)

    path: str = Field(..., description="File path relative to the output directory", min_length=1)


class AnalyzeCodeInput(BaseModel):
    """Input model for code quality analysis."""
    model_config = ConfigDict(str_strip_whitespace=False)

    content: Optional[str] = Field(default=None, description="Source text to analyze")
    path: Optional[str] = Field(
        default=None,
        description="Generated file to analyze, relative to the output directory"
    )
    file_name: Optional[str] = Field(default=None, description="Name reported for inline content")

    @model_validator(mode='after')
    def require_source(self) -> 'AnalyzeCodeInput':
        if not self.content and not self.path:
            raise ValueError("Provide either 'content' or 'path'")
        return self


# ============================================================================
# Configuration and logging
# ============================================================================

def _get_figma_token(override: Optional[str] = None) -> str:
    """Get Figma API token from the call or the environment."""
    token = override or os.environ.get("FIGMA_ACCESS_TOKEN") or os.environ.get("FIGMA_TOKEN")
    if not token:
        raise ValueError(
            "Figma API token not found. Set FIGMA_ACCESS_TOKEN or FIGMA_TOKEN environment variable. "
            "Get your token from: https://www.figma.com/developers/api#access-tokens"
        )
    return token


def _get_timeout() -> float:
    raw = os.environ.get("FIGMA_API_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"FIGMA_API_TIMEOUT must be a number of seconds, got '{raw}'")


def _get_output_root() -> Path:
    return Path(os.environ.get("FIGCO_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR)


def configure_logging(level: Optional[str] = None) -> None:
    """Send logs to stderr; stdout is the MCP stdio transport."""
    level = (level or os.environ.get("FIGCO_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT)


_active_capture: contextvars.ContextVar = contextvars.ContextVar("figco_log_capture", default=None)


class LogCapture(logging.Handler):
    """Collects log lines emitted while its owning tool call is running."""

    def __init__(self, level: int = logging.INFO):
        super().__init__(level)
        self.lines: List[str] = []
        self.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        # Records from concurrent calls carry a different context
        if _active_capture.get() is not self:
            return
        self.lines.append(self.format(record))


@contextlib.contextmanager
def capture_logs() -> Iterator[LogCapture]:
    handler = LogCapture()
    token = _active_capture.set(handler)
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
        _active_capture.reset(token)


# ============================================================================
# Figma API helpers
# ============================================================================

async def _make_figma_request(
    endpoint: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    token: Optional[str] = None
) -> Dict[str, Any]:
    """Make authenticated request to Figma API."""
    token = _get_figma_token(token)
    logger.info("Figma API %s %s", method, endpoint)

    async with httpx.AsyncClient() as client:
        response = await client.request(
            method=method,
            url=f"{FIGMA_API_BASE}/{endpoint}",
            headers={"X-Figma-Token": token},
            params=params,
            timeout=_get_timeout()
        )
        response.raise_for_status()
        return response.json()


def _handle_api_error(e: Exception) -> str:
    """Format API errors for user-friendly messages."""
    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        if status == 401:
            return "Error: Invalid Figma API token. Check your FIGMA_ACCESS_TOKEN environment variable."
        elif status == 403:
            return "Error: Access denied. You don't have permission to view this file."
        elif status == 404:
            return "Error: File or node not found. Check the file key and node ID."
        elif status == 429:
            return "Error: Rate limit exceeded. Please wait before making more requests."
        return f"Error: Figma API returned status {status}"
    elif isinstance(e, httpx.TimeoutException):
        return "Error: Request timed out. The file might be too large."
    elif isinstance(e, ProjectExistsError):
        return f"Error: {str(e)}"
    elif isinstance(e, ProjectPathError):
        return f"Error: Invalid path. {str(e)}"
    elif isinstance(e, FileNotFoundError):
        return f"Error: Not found: {str(e)}"
    elif isinstance(e, ValueError):
        return f"Error: {str(e)}"
    logger.exception("Unexpected error")
    return f"Error: {type(e).__name__}: {str(e)}"


async def _fetch_node(file_key: str, node_id: Optional[str], token: Optional[str] = None) -> Dict[str, Any]:
    """Fetch a node subtree, or the whole document when no node is given."""
    if not node_id:
        data = await _make_figma_request(f"files/{file_key}", token=token)
        document = data.get('document')
        if not document:
            raise ValueError(f"File '{file_key}' has no document")
        return document

    data = await _make_figma_request(f"files/{file_key}/nodes", params={"ids": node_id}, token=token)
    entry = (data.get('nodes') or {}).get(node_id)
    if not entry or not entry.get('document'):
        raise ValueError(f"Node '{node_id}' not found in file '{file_key}'")
    return entry['document']


def _root_from_json(figma_json: Dict[str, Any], node_id: Optional[str] = None) -> Dict[str, Any]:
    """The node tree inside inline JSON: a file response or a bare node."""
    root = figma_json.get('document') or figma_json
    if not isinstance(root, dict) or not root.get('type'):
        raise ValueError("JSON does not look like a Figma document or node (missing 'type')")
    if node_id:
        node = find_node(root, node_id)
        if node is None:
            raise ValueError(f"Node '{node_id}' not found in the provided JSON")
        return node
    return root


def _generate_and_write(root: Dict[str, Any], options: ProjectOptions) -> Dict[str, Any]:
    project = build_project(
        root,
        framework=options.framework.value,
        component_name=options.component_name,
        title=options.project_name,
    )
    output_root = _get_output_root()
    target = project_directory(output_root, project)
    written = write_project(project, target, overwrite=options.overwrite)

    return {
        "status": "success",
        "project": project.name,
        "framework": project.framework,
        "component": project.component_name,
        "output_dir": str(target),
        "files": [p.relative_to(target.resolve()).as_posix() for p in written],
        "tree": project.file_tree(),
    }


def _format_tree_markdown(tree: Dict[str, Any]) -> List[str]:
    lines = []

    def walk(node: Dict[str, Any], indent: int = 0) -> None:
        prefix = "  " * indent
        bounds = node.get('bounds')
        size_str = f" ({bounds['width']}x{bounds['height']})" if bounds else ""
        lines.append(f"{prefix}- **{node.get('name')}** `{node.get('id')}` {node.get('type')}{size_str}")
        for child in node.get('children', []):
            walk(child, indent + 1)

    walk(tree)
    return lines


# ============================================================================
# MCP Tools
# ============================================================================

@mcp.tool(
    name="figco_get_file_structure",
    annotations={
        "title": "Get Figma File Structure",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figco_get_file_structure(params: FigmaFileInput) -> str:
    """
    Get the structure and node tree of a Figma file.

    Args:
        params: FigmaFileInput containing:
            - file_key (str): Figma file key or full URL
            - depth (int): How deep to traverse the node tree (1-10)
            - response_format: 'markdown' or 'json'

    Returns:
        str: File structure in requested format
    """
    try:
        data = await _make_figma_request(f"files/{params.file_key}", token=params.access_token)

        name = data.get('name', 'Unknown')
        last_modified = data.get('lastModified', 'Unknown')
        tree = simplify_tree(data.get('document', {}), params.depth)

        if params.response_format == ResponseFormat.JSON:
            return json.dumps({'name': name, 'lastModified': last_modified, 'document': tree}, indent=2)

        lines = [
            f"# Figma File: {name}",
            f"**Last Modified:** {last_modified}",
            f"**File Key:** `{params.file_key}`",
            "",
            "## Document Structure",
            ""
        ]
        lines.extend(_format_tree_markdown(tree))
        return "\n".join(lines)

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_get_node_json",
    annotations={
        "title": "Get Figma Node JSON",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figco_get_node_json(params: FigmaNodeInput) -> str:
    """
    Get the raw JSON of a node and its children, for inspection.

    Output longer than the character limit is cut off with a note.
    """
    try:
        node = await _fetch_node(params.file_key, params.node_id, params.access_token)
        text = json.dumps(node, indent=2)
        if len(text) > CHARACTER_LIMIT:
            text = text[:CHARACTER_LIMIT] + (
                f"\n... truncated ({len(text)} characters total). "
                "Request a deeper node to see the rest."
            )
        return text

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_render_image",
    annotations={
        "title": "Render Figma Nodes as Images",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figco_render_image(params: FigmaImageInput) -> str:
    """
    Render nodes as images and return download URLs (valid for 30 days).

    Args:
        params: FigmaImageInput containing:
            - file_key (str): Figma file key
            - node_ids (List[str]): Node IDs to render
            - format: 'png', 'svg', 'jpg', 'pdf'
            - scale (float): Scale factor (0.01 to 4.0)
    """
    try:
        data = await _make_figma_request(
            f"images/{params.file_key}",
            params={
                "ids": ",".join(params.node_ids),
                "format": params.format.value,
                "scale": params.scale
            },
            token=params.access_token
        )

        if data.get('err'):
            return f"Error: Figma could not render the images: {data['err']}"

        images = data.get('images', {})
        if not images:
            return "Error: No images were generated. Check the node IDs."

        lines = [
            "# Rendered Images",
            f"**Format:** {params.format.value.upper()}",
            f"**Scale:** {params.scale}x",
            "",
            "## Image URLs",
            ""
        ]
        for node_id, url in images.items():
            if url:
                lines.append(f"- **{node_id}**: [Download]({url})")
            else:
                lines.append(f"- **{node_id}**: Failed to render")

        lines.extend(["", "> Note: These URLs expire in 30 days."])
        return "\n".join(lines)

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_generate_code",
    annotations={
        "title": "Generate Code from a Figma Node",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figco_generate_code(params: CodeGenInput) -> str:
    """
    Translate a Figma node and all its children into markup plus a stylesheet.

    Frameworks:
    - react: a function component (JSX with className) importing its CSS file
    - html: an HTML fragment with class attributes

    Returns:
        str: Markdown with the component source and the stylesheet
    """
    try:
        node = await _fetch_node(params.file_key, params.node_id, params.access_token)

        framework = params.framework.value
        translation = translate(node, framework, params.component_name)
        source = generate_component(node, translation.component_name, framework)

        lines = [
            f"# Generated Code: {translation.component_name}",
            f"**Framework:** {framework}",
            f"**Source Node:** `{params.node_id}`",
            "",
            "```" + ("jsx" if framework == "react" else "html"),
            source.rstrip("\n"),
            "```",
            "",
            f"## {translation.component_name}.css" if framework == "react" else "## styles.css",
            "",
            "```css",
            translation.stylesheet.rstrip("\n"),
            "```"
        ]
        return "\n".join(lines)

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_generate_project",
    annotations={
        "title": "Generate Project from Figma",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True
    }
)
async def figco_generate_project(params: ProjectGenInput) -> str:
    """
    Fetch a design, scaffold a runnable project from it and write it to disk.

    The project lands in FIGCO_OUTPUT_DIR/<project-name>. Without a node_id the
    largest frame of the first page is used.

    Returns:
        str: JSON with the written files, the file tree and the logs of this call
    """
    with capture_logs() as captured:
        try:
            root = await _fetch_node(params.file_key, params.node_id, params.access_token)
            result = _generate_and_write(root, params)
        except Exception as e:
            return json.dumps({
                "status": "error",
                "message": _handle_api_error(e),
                "logs": captured.lines
            }, indent=2)

    result["logs"] = captured.lines
    return json.dumps(result, indent=2)


@mcp.tool(
    name="figco_generate_project_from_json",
    annotations={
        "title": "Generate Project from Figma JSON",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False
    }
)
async def figco_generate_project_from_json(params: ProjectFromJsonInput) -> str:
    """
    Scaffold a project from Figma JSON passed inline, without calling the API.

    Accepts either a full file response (with a 'document' key) or a single node.
    """
    with capture_logs() as captured:
        try:
            root = _root_from_json(params.figma_json, params.node_id)
            result = _generate_and_write(root, params)
        except Exception as e:
            return json.dumps({
                "status": "error",
                "message": _handle_api_error(e),
                "logs": captured.lines
            }, indent=2)

    result["logs"] = captured.lines
    return json.dumps(result, indent=2)


@mcp.tool(
    name="figco_read_project",
    annotations={
        "title": "List Generated Files",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def figco_read_project(params: ReadProjectInput) -> str:
    """List a folder of the output directory as a nested JSON tree."""
    try:
        tree = read_directory_tree(_get_output_root(), params.path)
        return json.dumps(tree, indent=2)

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_read_file",
    annotations={
        "title": "Read Generated File",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def figco_read_file(params: ReadFileInput) -> str:
    """Return the content of a file under the output directory."""
    try:
        content = read_project_file(_get_output_root(), params.path)
        if len(content) > CHARACTER_LIMIT:
            content = content[:CHARACTER_LIMIT] + f"\n... truncated ({len(content)} characters total)"
        return content

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figco_analyze_code",
    annotations={
        "title": "Analyze Code Quality",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def figco_analyze_code(params: AnalyzeCodeInput) -> str:
    """
    Score source text with regex heuristics.

    Returns metrics (0-100), an overall score, a summary with suggested practices
    and ratings, and detected code smells, as JSON.
    """
    try:
        if params.content:
            content = params.content
            file_name = params.file_name or "untitled"
        else:
            content = read_project_file(_get_output_root(), params.path)
            file_name = params.file_name or params.path

        report = analyze_code(content, file_name)
        return json.dumps(report.to_dict(), indent=2)

    except Exception as e:
        return _handle_api_error(e)


# ============================================================================
# Entry Point
# ============================================================================

def main() -> None:
    configure_logging()
    logger.info("Starting figco_mcp (output directory: %s)", _get_output_root())
    mcp.run()


if __name__ == "__main__":
    main()
