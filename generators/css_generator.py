"""
CSS Generator - style declarations for Figma nodes.

Produces ordered property/value dicts per node so the markup generator can attach
them to class selectors, plus helpers to format rules and whole stylesheets.
"""

from typing import Dict, Any, List, Optional, Tuple

from generators.base import (
    ColorValue, FillLayer, GradientDef,
    parse_fills, parse_stroke, parse_corners, parse_effects, parse_layout,
    parse_text_style, get_bounds, is_visible, to_class_name,
)


Declarations = Dict[str, str]
Rule = Tuple[str, Declarations]

JUSTIFY_MAP = {'MIN': 'flex-start', 'CENTER': 'center', 'MAX': 'flex-end', 'SPACE_BETWEEN': 'space-between'}
ALIGN_MAP = {'MIN': 'flex-start', 'CENTER': 'center', 'MAX': 'flex-end', 'BASELINE': 'baseline'}
TEXT_ALIGN_MAP = {'LEFT': 'left', 'CENTER': 'center', 'RIGHT': 'right', 'JUSTIFIED': 'justify'}
TEXT_CASE_MAP = {'UPPER': 'uppercase', 'LOWER': 'lowercase', 'TITLE': 'capitalize'}
TEXT_DECORATION_MAP = {'UNDERLINE': 'underline', 'STRIKETHROUGH': 'line-through'}

# Parents whose children are laid out by the page flow rather than by coordinates
FLOW_PARENT_TYPES = ('DOCUMENT', 'CANVAS')

DEFAULT_BUTTON_BACKGROUND = '#007bff'
DEFAULT_BUTTON_COLOR = '#ffffff'

BASE_STYLESHEET = '''*,
*::before,
*::after {
  box-sizing: border-box;
}

body {
  margin: 0;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
}

h1, h2, h3, h4, h5, h6, p {
  margin: 0;
}

button {
  font: inherit;
}'''


def px(value: float) -> str:
    """Format a number as a CSS pixel length, dropping needless decimals."""
    value = round(float(value), 2)
    if value == int(value):
        return f"{int(value)}px"
    return f"{value:g}px"


def gradient_to_css(gradient: GradientDef) -> str:
    stops = ', '.join(
        f"{stop.color.css} {int(round(stop.position * 100))}%"
        for stop in gradient.stops
    )

    if gradient.type == 'LINEAR':
        return f"linear-gradient({int(round(gradient.angle))}deg, {stops})"
    if gradient.type == 'RADIAL':
        return f"radial-gradient(circle, {stops})"
    if gradient.type == 'ANGULAR':
        return f"conic-gradient({stops})"
    # Diamond gradients have no CSS equivalent
    return f"radial-gradient(ellipse, {stops})"


def image_url(image_ref: Optional[str]) -> str:
    return f"images/{image_ref or 'placeholder'}.png"


def _layer_to_background(layer: FillLayer, is_bottom: bool) -> Optional[str]:
    if layer.type == 'SOLID' and layer.color:
        # Only the bottom layer may be a bare color in a background list
        if is_bottom:
            return layer.color.css
        return f"linear-gradient({layer.color.css}, {layer.color.css})"
    if layer.gradient:
        return gradient_to_css(layer.gradient)
    if layer.type == 'IMAGE':
        size = 'contain' if layer.scale_mode == 'FIT' else 'cover'
        return f"url('{image_url(layer.image_ref)}') center / {size} no-repeat"
    return None


def background_css(node: Dict[str, Any]) -> Declarations:
    fills = parse_fills(node)
    if not fills:
        return {}

    if len(fills) == 1 and fills[0].type == 'SOLID' and fills[0].color:
        return {'background-color': fills[0].color.css}

    # CSS lists backgrounds top-most first, Figma bottom-most first
    layers = []
    for index, layer in enumerate(reversed(fills)):
        value = _layer_to_background(layer, is_bottom=index == len(fills) - 1)
        if value:
            layers.append(value)

    if not layers:
        return {}
    return {'background': ', '.join(layers)}


def border_css(node: Dict[str, Any]) -> Declarations:
    stroke = parse_stroke(node)
    if not stroke or not stroke.weight:
        return {}

    first = stroke.colors[0]
    color: Optional[ColorValue] = first.color
    if color is None and first.gradient and first.gradient.stops:
        color = first.gradient.stops[0].color
    if color is None:
        return {}

    style = 'dashed' if stroke.dashes else 'solid'
    declarations = {'border': f"{px(stroke.weight)} {style} {color.css}"}
    if stroke.align == 'OUTSIDE':
        declarations['box-sizing'] = 'content-box'
    return declarations


def radius_css(node: Dict[str, Any]) -> Declarations:
    if node.get('type') == 'ELLIPSE':
        return {'border-radius': '50%'}

    corners = parse_corners(node)
    if not corners:
        return {}
    if corners.is_uniform:
        return {'border-radius': px(corners.uniform_value)}
    return {'border-radius': ' '.join(px(v) for v in (
        corners.top_left, corners.top_right, corners.bottom_right, corners.bottom_left,
    ))}


def effects_css(node: Dict[str, Any]) -> Declarations:
    shadows, blurs = parse_effects(node)
    declarations = {}
    is_text = node.get('type') == 'TEXT'

    if shadows:
        if is_text:
            parts = [
                f"{px(s.offset_x)} {px(s.offset_y)} {px(s.radius)} {s.color.css}"
                for s in shadows if not s.inset
            ]
            if parts:
                declarations['text-shadow'] = ', '.join(parts)
        else:
            parts = [
                f"{'inset ' if s.inset else ''}{px(s.offset_x)} {px(s.offset_y)} "
                f"{px(s.radius)} {px(s.spread)} {s.color.css}"
                for s in shadows
            ]
            declarations['box-shadow'] = ', '.join(parts)

    for blur in blurs:
        if blur.type == 'LAYER_BLUR':
            declarations['filter'] = f"blur({px(blur.radius)})"
        elif blur.type == 'BACKGROUND_BLUR':
            declarations['backdrop-filter'] = f"blur({px(blur.radius)})"

    return declarations


def layout_css(node: Dict[str, Any]) -> Declarations:
    layout = parse_layout(node)
    if not layout:
        return {}

    declarations = {
        'display': 'flex',
        'flex-direction': 'column' if layout.direction == 'VERTICAL' else 'row',
    }
    if layout.wrap:
        declarations['flex-wrap'] = 'wrap'
    if layout.gap and layout.primary_align != 'SPACE_BETWEEN':
        declarations['gap'] = px(layout.gap)
    if layout.has_padding:
        declarations['padding'] = ' '.join(px(v) for v in (
            layout.padding_top, layout.padding_right, layout.padding_bottom, layout.padding_left,
        ))
    if layout.primary_align != 'MIN':
        declarations['justify-content'] = JUSTIFY_MAP.get(layout.primary_align, 'flex-start')
    if layout.counter_align != 'MIN':
        declarations['align-items'] = ALIGN_MAP.get(layout.counter_align, 'flex-start')
    return declarations


def position_css(node: Dict[str, Any], parent: Optional[Dict[str, Any]]) -> Declarations:
    """Placement inside the parent: flex item properties or absolute offsets."""
    if parent is None or parent.get('type') in FLOW_PARENT_TYPES:
        return {}

    declarations = {}
    in_auto_layout = parse_layout(parent) is not None

    if in_auto_layout and node.get('layoutPositioning') != 'ABSOLUTE':
        if node.get('layoutGrow'):
            declarations['flex'] = '1 1 0'
        if node.get('layoutAlign') == 'STRETCH':
            declarations['align-self'] = 'stretch'
        return declarations

    bounds = get_bounds(node)
    parent_bounds = get_bounds(parent)
    declarations['position'] = 'absolute'
    declarations['left'] = px(bounds['x'] - parent_bounds['x'])
    declarations['top'] = px(bounds['y'] - parent_bounds['y'])
    return declarations


def size_css(node: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> Declarations:
    bounds = get_bounds(node)
    declarations = {}

    stretches = node.get('layoutAlign') == 'STRETCH' or node.get('layoutGrow')
    if bounds['width'] and not (stretches and parent is not None):
        declarations['width'] = px(bounds['width'])
    # Text height follows its content
    if bounds['height'] and node.get('type') not in ('TEXT',):
        declarations['height'] = px(bounds['height'])
    return declarations


def node_css(node: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> Declarations:
    """All box-level declarations for a node, in a stable order."""
    declarations: Declarations = {}
    declarations.update(position_css(node, parent))

    children = [child for child in node.get('children') or [] if is_visible(child)]
    anchors_children = parse_layout(node) is None or any(
        child.get('layoutPositioning') == 'ABSOLUTE' for child in children
    )
    if children and anchors_children and 'position' not in declarations:
        # Anchor for absolutely positioned children
        declarations['position'] = 'relative'

    declarations.update(size_css(node, parent))
    declarations.update(layout_css(node))
    if node.get('type') != 'TEXT':
        declarations.update(background_css(node))
        declarations.update(border_css(node))
        declarations.update(radius_css(node))
    declarations.update(effects_css(node))

    opacity = node.get('opacity', 1)
    if opacity < 1:
        declarations['opacity'] = f"{opacity:.2f}".rstrip('0').rstrip('.')
    if node.get('clipsContent'):
        declarations['overflow'] = 'hidden'

    return declarations


def text_css(node: Dict[str, Any]) -> Declarations:
    style = parse_text_style(node)
    declarations = {}

    if style.font_family:
        declarations['font-family'] = f"'{style.font_family}', sans-serif"
    declarations['font-size'] = px(style.font_size)
    if style.font_weight != 400:
        declarations['font-weight'] = str(style.font_weight)
    if style.italic:
        declarations['font-style'] = 'italic'
    if style.line_height:
        declarations['line-height'] = px(style.line_height)
    if style.letter_spacing:
        declarations['letter-spacing'] = px(style.letter_spacing)
    if style.color:
        declarations['color'] = style.color.css
    if style.text_align != 'LEFT':
        declarations['text-align'] = TEXT_ALIGN_MAP.get(style.text_align, 'left')
    if style.text_case in TEXT_CASE_MAP:
        declarations['text-transform'] = TEXT_CASE_MAP[style.text_case]
    if style.text_decoration in TEXT_DECORATION_MAP:
        declarations['text-decoration'] = TEXT_DECORATION_MAP[style.text_decoration]

    return declarations


def button_css(node: Dict[str, Any], declarations: Declarations) -> Declarations:
    """Button affordances layered over a node's own declarations."""
    result = {
        'display': 'inline-flex',
        'align-items': 'center',
        'justify-content': 'center',
        'cursor': 'pointer',
    }
    result.update(declarations)

    if 'border' not in result:
        result['border'] = 'none'
    if 'background' not in result and 'background-color' not in result:
        result['background-color'] = DEFAULT_BUTTON_BACKGROUND
        result.setdefault('color', DEFAULT_BUTTON_COLOR)
    return result


def format_rule(selector: str, declarations: Declarations) -> str:
    if not declarations:
        return f"{selector} {{}}"
    body = '\n'.join(f"  {prop}: {value};" for prop, value in declarations.items())
    return f"{selector} {{\n{body}\n}}"


def generate_stylesheet(rules: List[Rule], base: bool = True) -> str:
    """Join rules into a stylesheet, optionally prefixed by the base reset."""
    blocks = [BASE_STYLESHEET] if base else []
    blocks.extend(format_rule(selector, decls) for selector, decls in rules if decls)
    return '\n\n'.join(blocks) + '\n'


def generate_css_code(node: Dict[str, Any], component_name: str) -> str:
    """CSS for a single node (children are not visited)."""
    declarations = node_css(node)
    if node.get('type') == 'TEXT':
        declarations.update(text_css(node))
    return format_rule(f".{to_class_name(component_name)}", declarations)
