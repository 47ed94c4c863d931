"""
Shared parsing helpers for the code generators.

Figma nodes arrive as loosely-typed dicts. The helpers here read them defensively
and return small dataclasses that the CSS and markup generators share.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Iterator, Tuple


MAX_CHILDREN_LIMIT = 50
MAX_DEPTH = 40

GRADIENT_TYPES = ('GRADIENT_LINEAR', 'GRADIENT_RADIAL', 'GRADIENT_ANGULAR', 'GRADIENT_DIAMOND')

CONTAINER_TYPES = (
    'DOCUMENT', 'CANVAS', 'FRAME', 'GROUP', 'COMPONENT', 'COMPONENT_SET',
    'INSTANCE', 'SECTION', 'BOOLEAN_OPERATION',
)
SHAPE_TYPES = ('RECTANGLE', 'ELLIPSE', 'LINE', 'STAR', 'REGULAR_POLYGON')
VECTOR_TYPES = ('VECTOR',)


# ---------------------------------------------------------------------------
# Style dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ColorValue:
    """RGBA color with channels in the 0-1 range, as Figma sends them."""
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0

    def _channels(self) -> Tuple[int, int, int]:
        return (
            int(round(self.r * 255)),
            int(round(self.g * 255)),
            int(round(self.b * 255)),
        )

    @property
    def hex(self) -> str:
        r, g, b = self._channels()
        if self.a < 1:
            return f"#{r:02x}{g:02x}{b:02x}{int(round(self.a * 255)):02x}"
        return f"#{r:02x}{g:02x}{b:02x}"

    @property
    def rgba(self) -> str:
        r, g, b = self._channels()
        return f"rgba({r}, {g}, {b}, {self.a:.2f})"

    @property
    def css(self) -> str:
        """Hex for opaque colors, rgba() otherwise."""
        return self.hex if self.a >= 1 else self.rgba


@dataclass
class GradientStop:
    color: ColorValue
    position: float = 0.0


@dataclass
class GradientDef:
    type: str  # LINEAR, RADIAL, ANGULAR, DIAMOND
    stops: List[GradientStop] = field(default_factory=list)
    angle: float = 180.0


@dataclass
class FillLayer:
    type: str
    color: Optional[ColorValue] = None
    gradient: Optional[GradientDef] = None
    image_ref: Optional[str] = None
    scale_mode: str = 'FILL'


@dataclass
class StrokeInfo:
    colors: List[FillLayer]
    weight: float = 1.0
    align: str = 'INSIDE'
    dashes: List[float] = field(default_factory=list)


@dataclass
class CornerRadii:
    top_left: float = 0.0
    top_right: float = 0.0
    bottom_right: float = 0.0
    bottom_left: float = 0.0

    @property
    def is_uniform(self) -> bool:
        return self.top_left == self.top_right == self.bottom_right == self.bottom_left

    @property
    def uniform_value(self) -> float:
        return self.top_left


@dataclass
class ShadowEffect:
    type: str  # DROP_SHADOW or INNER_SHADOW
    color: ColorValue
    offset_x: float = 0.0
    offset_y: float = 0.0
    radius: float = 0.0
    spread: float = 0.0

    @property
    def inset(self) -> bool:
        return self.type == 'INNER_SHADOW'


@dataclass
class BlurEffect:
    type: str  # LAYER_BLUR or BACKGROUND_BLUR
    radius: float = 0.0


@dataclass
class LayoutInfo:
    direction: str  # HORIZONTAL or VERTICAL
    gap: float = 0.0
    padding_top: float = 0.0
    padding_right: float = 0.0
    padding_bottom: float = 0.0
    padding_left: float = 0.0
    primary_align: str = 'MIN'
    counter_align: str = 'MIN'
    wrap: bool = False

    @property
    def has_padding(self) -> bool:
        return any((self.padding_top, self.padding_right, self.padding_bottom, self.padding_left))


@dataclass
class TextStyle:
    font_family: str = ''
    font_size: float = 16.0
    font_weight: int = 400
    italic: bool = False
    line_height: Optional[float] = None
    letter_spacing: float = 0.0
    text_align: str = 'LEFT'
    text_case: str = 'ORIGINAL'
    text_decoration: str = 'NONE'
    color: Optional[ColorValue] = None


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_color(color: Optional[Dict[str, Any]], opacity: float = 1.0) -> ColorValue:
    """Build a ColorValue from a Figma color dict, folding paint opacity into alpha."""
    color = color or {}
    return ColorValue(
        r=color.get('r', 0),
        g=color.get('g', 0),
        b=color.get('b', 0),
        a=round(color.get('a', 1) * opacity, 4),
    )


def gradient_angle(handle_positions: List[Dict[str, float]]) -> float:
    """CSS angle (0deg = up, clockwise) from Figma gradient handle positions."""
    if not handle_positions or len(handle_positions) < 2:
        return 180.0

    start, end = handle_positions[0], handle_positions[1]
    dx = end.get('x', 0) - start.get('x', 0)
    dy = end.get('y', 0) - start.get('y', 0)
    angle = math.degrees(math.atan2(dy, dx))
    return round((90 + angle) % 360, 2)


def _parse_paint(paint: Dict[str, Any]) -> Optional[FillLayer]:
    if not paint.get('visible', True):
        return None

    paint_type = paint.get('type', 'SOLID')
    opacity = paint.get('opacity', 1)

    if paint_type == 'SOLID':
        return FillLayer(type='SOLID', color=parse_color(paint.get('color'), opacity))

    if paint_type in GRADIENT_TYPES:
        stops = [
            GradientStop(
                color=parse_color(stop.get('color'), opacity),
                position=round(stop.get('position', 0), 4),
            )
            for stop in paint.get('gradientStops', [])
        ]
        if not stops:
            return None
        return FillLayer(
            type=paint_type,
            gradient=GradientDef(
                type=paint_type.replace('GRADIENT_', ''),
                stops=stops,
                angle=gradient_angle(paint.get('gradientHandlePositions', [])),
            ),
        )

    if paint_type == 'IMAGE':
        return FillLayer(
            type='IMAGE',
            image_ref=paint.get('imageRef'),
            scale_mode=paint.get('scaleMode', 'FILL'),
        )

    return None


def parse_fills(node: Dict[str, Any]) -> List[FillLayer]:
    """Visible fill layers of a node, top-most last (Figma order)."""
    layers = []
    for paint in node.get('fills') or []:
        layer = _parse_paint(paint)
        if layer:
            layers.append(layer)
    return layers


def parse_stroke(node: Dict[str, Any]) -> Optional[StrokeInfo]:
    colors = [layer for layer in (_parse_paint(p) for p in node.get('strokes') or []) if layer]
    if not colors:
        return None

    return StrokeInfo(
        colors=colors,
        weight=node.get('strokeWeight', 1),
        align=node.get('strokeAlign', 'INSIDE'),
        dashes=list(node.get('strokeDashes') or []),
    )


def parse_corners(node: Dict[str, Any]) -> Optional[CornerRadii]:
    radii = node.get('rectangleCornerRadii')
    if radii and len(radii) == 4:
        if not any(radii):
            return None
        return CornerRadii(*radii)

    radius = node.get('cornerRadius', 0)
    if radius:
        return CornerRadii(radius, radius, radius, radius)
    return None


def parse_effects(node: Dict[str, Any]) -> Tuple[List[ShadowEffect], List[BlurEffect]]:
    shadows = []
    blurs = []

    for effect in node.get('effects') or []:
        if not effect.get('visible', True):
            continue

        effect_type = effect.get('type', '')
        if effect_type in ('DROP_SHADOW', 'INNER_SHADOW'):
            offset = effect.get('offset') or {}
            shadows.append(ShadowEffect(
                type=effect_type,
                color=parse_color(effect.get('color')),
                offset_x=offset.get('x', 0),
                offset_y=offset.get('y', 0),
                radius=effect.get('radius', 0),
                spread=effect.get('spread', 0),
            ))
        elif effect_type in ('LAYER_BLUR', 'BACKGROUND_BLUR'):
            blurs.append(BlurEffect(type=effect_type, radius=effect.get('radius', 0)))

    return shadows, blurs


def parse_layout(node: Dict[str, Any]) -> Optional[LayoutInfo]:
    layout_mode = node.get('layoutMode')
    if not layout_mode or layout_mode == 'NONE':
        return None

    return LayoutInfo(
        direction=layout_mode,
        gap=node.get('itemSpacing', 0),
        padding_top=node.get('paddingTop', 0),
        padding_right=node.get('paddingRight', 0),
        padding_bottom=node.get('paddingBottom', 0),
        padding_left=node.get('paddingLeft', 0),
        primary_align=node.get('primaryAxisAlignItems', 'MIN'),
        counter_align=node.get('counterAxisAlignItems', 'MIN'),
        wrap=node.get('layoutWrap') == 'WRAP',
    )


def parse_text_style(node: Dict[str, Any]) -> TextStyle:
    style = node.get('style') or {}
    solid = next((layer for layer in parse_fills(node) if layer.type == 'SOLID'), None)

    return TextStyle(
        font_family=style.get('fontFamily', ''),
        font_size=style.get('fontSize', 16),
        font_weight=int(style.get('fontWeight', 400)),
        italic=bool(style.get('italic', False)),
        line_height=style.get('lineHeightPx'),
        letter_spacing=style.get('letterSpacing', 0),
        text_align=style.get('textAlignHorizontal', 'LEFT'),
        text_case=style.get('textCase', 'ORIGINAL'),
        text_decoration=style.get('textDecoration', 'NONE'),
        color=solid.color if solid else None,
    )


def get_bounds(node: Dict[str, Any]) -> Dict[str, float]:
    """Bounding box with every key present."""
    bbox = node.get('absoluteBoundingBox') or {}
    return {
        'x': bbox.get('x', 0) or 0,
        'y': bbox.get('y', 0) or 0,
        'width': bbox.get('width', 0) or 0,
        'height': bbox.get('height', 0) or 0,
    }


def is_visible(node: Dict[str, Any]) -> bool:
    return node.get('visible', True) is not False


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def normalize_node_id(node_id: str) -> str:
    """Accept URL-style ids ('1-2') as well as API ids ('1:2')."""
    return node_id.strip().replace('-', ':')


def iter_nodes(root: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Depth-first, pre-order walk over a node tree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.get('children') or []))


def find_node(root: Dict[str, Any], node_id: str) -> Optional[Dict[str, Any]]:
    target = normalize_node_id(node_id)
    for node in iter_nodes(root):
        if node.get('id') == target:
            return node
    return None


def find_nodes_by_type(root: Dict[str, Any], node_type: str) -> List[Dict[str, Any]]:
    return [node for node in iter_nodes(root) if node.get('type') == node_type]


def extract_text_content(root: Dict[str, Any]) -> List[str]:
    texts = []
    for node in iter_nodes(root):
        if node.get('type') == 'TEXT' and is_visible(node):
            chars = (node.get('characters') or '').strip()
            if chars:
                texts.append(chars)
    return texts


def simplify_tree(node: Dict[str, Any], depth: int, current_depth: int = 0) -> Dict[str, Any]:
    """Reduce a node to id/name/type/bounds, down to `depth` levels."""
    simplified = {
        'id': node.get('id'),
        'name': node.get('name'),
        'type': node.get('type'),
    }

    bbox = node.get('absoluteBoundingBox')
    if bbox:
        simplified['bounds'] = {
            'width': round(bbox.get('width', 0)),
            'height': round(bbox.get('height', 0)),
        }

    if current_depth < depth and node.get('children'):
        simplified['children'] = [
            simplify_tree(child, depth, current_depth + 1)
            for child in node['children']
        ]

    return simplified


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

def to_component_name(figma_name: Optional[str]) -> str:
    """PascalCase identifier from a layer name.

    'photo-grid' -> 'PhotoGrid', '1 Hero' -> 'Component1Hero'
    """
    name = re.sub(r"[^\x00-\x7f]", " ", figma_name or '')
    parts = re.split(r"[^a-zA-Z0-9]+", name)
    pascal = "".join(p[:1].upper() + p[1:] for p in parts if p)
    if not pascal:
        return 'Component'
    if not pascal[0].isalpha():
        pascal = 'Component' + pascal
    return pascal


def to_class_name(figma_name: Optional[str], fallback: str = 'node') -> str:
    """kebab-case CSS class from a layer name."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", figma_name or '')
    name = re.sub(r"[^a-zA-Z0-9]+", "-", name).strip('-').lower()
    if not name:
        return fallback
    if not name[0].isalpha():
        name = f"{fallback}-{name}"
    return name
