"""
Heuristics that decide which semantic element a design node becomes.

Figma has no notion of buttons, headings or page landmarks; these rules guess
from layer names, sizes and prototype reactions.
"""

import re
from typing import Dict, Any, Optional

from generators.base import (
    CONTAINER_TYPES, SHAPE_TYPES, VECTOR_TYPES,
    get_bounds, is_visible, parse_fills, parse_text_style,
)


BUTTON_TYPES = ('RECTANGLE', 'FRAME', 'INSTANCE', 'COMPONENT', 'GROUP')
BUTTON_NAME_PATTERN = re.compile(r'button|\b(btn|cta|clickable)\b', re.IGNORECASE)
BUTTON_MAX_WIDTH = 400
BUTTON_MAX_HEIGHT = 120

HEADING_NAME_PATTERN = re.compile(r'\b(heading|title|headline)\b', re.IGNORECASE)
HEADING_LEVEL_PATTERN = re.compile(r'\bh([1-6])\b', re.IGNORECASE)
HEADING_MIN_FONT_SIZE = 24
HEADING_MIN_WEIGHT = 600

INPUT_NAME_PATTERN = re.compile(r'\b(input|text\s*field|textfield|search\s*bar|search\s*box)\b', re.IGNORECASE)

ICON_MAX_SIZE = 48

LANDMARK_PATTERNS = (
    ('header', re.compile(r'\b(header|top\s*bar|app\s*bar)\b', re.IGNORECASE)),
    ('footer', re.compile(r'\bfooter\b', re.IGNORECASE)),
    ('nav', re.compile(r'\b(nav|navbar|navigation|menu|tab\s*bar)\b', re.IGNORECASE)),
    ('main', re.compile(r'\b(main|content|body)\b', re.IGNORECASE)),
    ('aside', re.compile(r'\b(aside|sidebar|side\s*bar)\b', re.IGNORECASE)),
)

PAGE_FRAME_TYPES = ('FRAME', 'COMPONENT', 'INSTANCE', 'SECTION')


def _name(node: Dict[str, Any]) -> str:
    # Layer names use '/', '_' and '-' as separators; treat them as word breaks.
    return re.sub(r'[/_\-]+', ' ', node.get('name') or '')


def is_button(node: Dict[str, Any]) -> bool:
    """Whether a rectangle or small container should render as <button>."""
    if node.get('type') not in BUTTON_TYPES:
        return False

    bounds = get_bounds(node)
    if bounds['width'] > BUTTON_MAX_WIDTH or bounds['height'] > BUTTON_MAX_HEIGHT:
        return False

    if node.get('reactions'):
        return True
    return bool(BUTTON_NAME_PATTERN.search(_name(node)))


def heading_level(node: Dict[str, Any]) -> Optional[int]:
    """Heading level 1-6 for a TEXT node, or None for body text."""
    if node.get('type') != 'TEXT':
        return None

    explicit = HEADING_LEVEL_PATTERN.search(_name(node))
    if explicit:
        return int(explicit.group(1))

    style = parse_text_style(node)
    looks_like_heading = (
        bool(HEADING_NAME_PATTERN.search(_name(node)))
        or style.font_size >= HEADING_MIN_FONT_SIZE
        or style.font_weight >= HEADING_MIN_WEIGHT
    )
    if not looks_like_heading:
        return None

    if style.font_size >= 30:
        return 1
    if style.font_size >= 24:
        return 2
    if style.font_size >= 20:
        return 3
    return 4


def landmark_tag(node: Dict[str, Any]) -> Optional[str]:
    """Semantic landmark tag for a container, based on its layer name."""
    if node.get('type') not in CONTAINER_TYPES:
        return None
    if node.get('type') == 'SECTION':
        return 'section'

    name = _name(node)
    for tag, pattern in LANDMARK_PATTERNS:
        if pattern.search(name):
            return tag
    return None


def is_input(node: Dict[str, Any]) -> bool:
    if node.get('type') not in SHAPE_TYPES + ('FRAME', 'INSTANCE', 'COMPONENT'):
        return False
    return bool(INPUT_NAME_PATTERN.search(_name(node)))


def is_image(node: Dict[str, Any]) -> bool:
    """True when the top-most visible fill is an image."""
    fills = parse_fills(node)
    return bool(fills) and fills[-1].type == 'IMAGE'


def is_icon(node: Dict[str, Any]) -> bool:
    if node.get('type') not in VECTOR_TYPES + ('BOOLEAN_OPERATION', 'STAR', 'REGULAR_POLYGON'):
        return False
    bounds = get_bounds(node)
    return bounds['width'] <= ICON_MAX_SIZE and bounds['height'] <= ICON_MAX_SIZE


def find_main_frame(root: Dict[str, Any]) -> Dict[str, Any]:
    """The node that becomes the generated page.

    For a DOCUMENT or CANVAS, picks the largest visible top-level frame of the
    first page that has one. Any other node is used as-is.
    """
    node_type = root.get('type')
    if node_type == 'DOCUMENT':
        for page in root.get('children') or []:
            if is_visible(page):
                frame = find_main_frame(page)
                if frame is not page:
                    return frame
        return root

    if node_type == 'CANVAS':
        candidates = [
            child for child in root.get('children') or []
            if child.get('type') in PAGE_FRAME_TYPES and is_visible(child)
        ]
        if not candidates:
            return root
        return max(candidates, key=lambda c: get_bounds(c)['width'] * get_bounds(c)['height'])

    return root
