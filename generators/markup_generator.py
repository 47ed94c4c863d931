"""
Markup Generator - recursive translation of Figma node trees to JSX or HTML.

Each node kind is rendered by the function registered for it in `_RENDERERS`.
Every rendered node gets a unique class name and a matching CSS rule, so the
markup stays free of inline styles and the stylesheet can be written next to it.
"""

import html
import json
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from generators.base import (
    CONTAINER_TYPES, SHAPE_TYPES, VECTOR_TYPES,
    MAX_CHILDREN_LIMIT, MAX_DEPTH,
    extract_text_content, is_visible, parse_fills, to_class_name, to_component_name,
)
from generators.classifiers import (
    heading_level, is_button, is_icon, is_image, is_input, landmark_tag,
)
from generators.css_generator import (
    Declarations, Rule,
    button_css, generate_stylesheet, image_url, node_css, text_css,
)


FRAMEWORKS = ('react', 'html')

DEFAULT_OPTIONS = ['Option 1', 'Option 2']
PLACEHOLDER_LABELS = {'EMBED': 'Embedded content', 'WIDGET': 'Widget'}


@dataclass
class Translation:
    """Result of translating one node tree."""
    markup: str
    rules: List[Rule]
    component_name: str
    framework: str

    @property
    def stylesheet(self) -> str:
        return generate_stylesheet(self.rules)


@dataclass
class _RenderContext:
    framework: str
    root_class: Optional[str] = None
    rules: List[Rule] = field(default_factory=list)
    class_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def jsx(self) -> bool:
        return self.framework == 'react'

    @property
    def class_attr(self) -> str:
        return 'className' if self.jsx else 'class'

    def claim_class(self, node: Dict[str, Any]) -> str:
        """Unique class name for a node; repeats get -2, -3, ... suffixes."""
        if self.root_class:
            # The first element claimed is the root; it is named after the component
            base, self.root_class = self.root_class, None
        else:
            fallback = (node.get('type') or 'node').lower().replace('_', '-')
            base = to_class_name(node.get('name'), fallback=fallback)
        count = self.class_counts.get(base, 0) + 1
        self.class_counts[base] = count
        return base if count == 1 else f"{base}-{count}"

    def add_rule(self, class_name: str, declarations: Declarations) -> None:
        self.rules.append((f".{class_name}", declarations))

    def comment(self, text: str) -> str:
        text = text.replace('*/', '* /').replace('--', '- -')
        if self.jsx:
            return f"{{/* {text} */}}"
        return f"<!-- {text} -->"


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------

def escape_text(text: str, jsx: bool) -> str:
    """Escape text content; line breaks become <br /> elements."""
    escaped = html.escape(text, quote=False)
    if jsx:
        escaped = re.sub(r'[{}]', lambda m: "{'%s'}" % m.group(0), escaped)
    return escaped.replace('\r\n', '\n').replace('\n', '<br />')


def _attrs(ctx: _RenderContext, class_name: str, extra: Optional[Dict[str, str]] = None) -> str:
    parts = [f'{ctx.class_attr}="{class_name}"']
    for key, value in (extra or {}).items():
        parts.append(f'{key}="{html.escape(value, quote=True)}"')
    return ' '.join(parts)


# ---------------------------------------------------------------------------
# Node renderers
# ---------------------------------------------------------------------------

def _render_children(node: Dict[str, Any], ctx: _RenderContext, indent: int, depth: int,
                     in_button: bool) -> List[str]:
    lines = []
    children = [child for child in node.get('children') or [] if is_visible(child)]

    for child in children[:MAX_CHILDREN_LIMIT]:
        child_markup = _render_node(child, ctx, node, indent, depth + 1, in_button)
        if child_markup:
            lines.append(child_markup)

    if len(children) > MAX_CHILDREN_LIMIT:
        hidden = len(children) - MAX_CHILDREN_LIMIT
        lines.append(' ' * indent + ctx.comment(f"{hidden} more children truncated"))
    return lines


def _render_container(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                      indent: int, depth: int, in_button: bool) -> str:
    """FRAME, GROUP, COMPONENT, INSTANCE, SECTION and unknown kinds."""
    if is_input(node) and not in_button:
        return _render_input(node, ctx, parent, indent)

    prefix = ' ' * indent
    as_button = not in_button and is_button(node)
    if as_button:
        tag = 'button'
    else:
        tag = landmark_tag(node) or 'div'

    class_name = ctx.claim_class(node)
    declarations = node_css(node, parent)
    if as_button:
        declarations = button_css(node, declarations)
    ctx.add_rule(class_name, declarations)

    extra = {'type': 'button'} if as_button else None
    children = _render_children(node, ctx, indent + 2, depth, in_button or as_button)
    if not children:
        return _empty_element(ctx, tag, class_name, prefix, extra)

    lines = [f'{prefix}<{tag} {_attrs(ctx, class_name, extra)}>']
    lines.extend(children)
    lines.append(f'{prefix}</{tag}>')
    return '\n'.join(lines)


def _render_text(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                 indent: int, depth: int, in_button: bool) -> str:
    prefix = ' ' * indent
    level = None if in_button else heading_level(node)
    if level:
        tag = f'h{level}'
    elif in_button:
        tag = 'span'
    else:
        tag = 'p'

    class_name = ctx.claim_class(node)
    declarations = node_css(node, parent)
    declarations.update(text_css(node))
    ctx.add_rule(class_name, declarations)

    text = node.get('characters')
    if text is None:
        text = node.get('name', '')
    content = escape_text(text, ctx.jsx)
    return f'{prefix}<{tag} {_attrs(ctx, class_name)}>{content}</{tag}>'


def _render_shape(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                  indent: int, depth: int, in_button: bool) -> str:
    """RECTANGLE, ELLIPSE, LINE, STAR, REGULAR_POLYGON."""
    prefix = ' ' * indent

    if not in_button and is_button(node):
        class_name = ctx.claim_class(node)
        ctx.add_rule(class_name, button_css(node, node_css(node, parent)))
        extra = {'type': 'button', 'aria-label': node.get('name') or 'Button'}
        return _empty_element(ctx, 'button', class_name, prefix, extra)

    if is_input(node) and not in_button:
        return _render_input(node, ctx, parent, indent)

    if is_image(node):
        return _render_image(node, ctx, parent, indent)

    class_name = ctx.claim_class(node)
    declarations = node_css(node, parent)
    if node.get('type') == 'LINE':
        declarations.pop('height', None)
        declarations.setdefault('border-top', declarations.pop('border', '1px solid currentColor'))
    ctx.add_rule(class_name, declarations)
    return _empty_element(ctx, 'div', class_name, prefix)


def _render_vector(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                   indent: int, depth: int, in_button: bool) -> str:
    """Vectors have no markup equivalent; emit a sized placeholder box."""
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)
    ctx.add_rule(class_name, node_css(node, parent))
    name = node.get('name') or 'vector'
    label = f"Icon: {name}" if is_icon(node) else name
    extra = {'role': 'img', 'aria-label': label}
    return _empty_element(ctx, 'div', class_name, prefix, extra)


def _render_code_block(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                       indent: int, depth: int, in_button: bool) -> str:
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)
    declarations = node_css(node, parent)
    declarations.update(text_css(node))
    declarations['font-family'] = 'monospace'
    declarations['white-space'] = 'pre'
    ctx.add_rule(class_name, declarations)

    code = node.get('characters') or ''
    if ctx.jsx:
        # A string expression keeps line breaks that JSX text would collapse
        content = '{%s}' % json.dumps(code, ensure_ascii=False)
    else:
        content = html.escape(code, quote=False)
    return f'{prefix}<pre {_attrs(ctx, class_name)}><code>{content}</code></pre>'


def _render_link(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                 indent: int, depth: int, in_button: bool) -> str:
    if in_button:
        return _render_container(node, ctx, parent, indent, depth, in_button)

    prefix = ' ' * indent
    class_name = ctx.claim_class(node)
    ctx.add_rule(class_name, node_css(node, parent))

    extra = {'href': node.get('url') or '#'}
    children = _render_children(node, ctx, indent + 2, depth, in_button)
    if not children:
        content = escape_text(node.get('name') or '', ctx.jsx)
        return f'{prefix}<a {_attrs(ctx, class_name, extra)}>{content}</a>'

    lines = [f'{prefix}<a {_attrs(ctx, class_name, extra)}>']
    lines.extend(children)
    lines.append(f'{prefix}</a>')
    return '\n'.join(lines)


def _render_select(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                   indent: int, depth: int, in_button: bool) -> str:
    """COMBOBOX: options come from the text inside the node."""
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)

    declarations = node_css(node, parent)
    declarations.setdefault('padding', '8px 12px')
    declarations.setdefault('border', '1px solid #dddddd')
    declarations.setdefault('background-color', '#ffffff')
    ctx.add_rule(class_name, declarations)

    options = [text.splitlines()[0] for text in extract_text_content(node)] or DEFAULT_OPTIONS
    lines = [f'{prefix}<select {_attrs(ctx, class_name)}>']
    for option in options:
        value = html.escape(option, quote=True)
        lines.append(f'{prefix}  <option value="{value}">{escape_text(option, ctx.jsx)}</option>')
    lines.append(f'{prefix}</select>')
    return '\n'.join(lines)


def _render_radio(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                  indent: int, depth: int, in_button: bool) -> str:
    """RADIO: a label wrapping the input, grouped by the parent's name."""
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)
    declarations = node_css(node, parent)
    declarations.update({'display': 'flex', 'align-items': 'center', 'gap': '8px'})
    ctx.add_rule(class_name, declarations)

    input_class = ctx.claim_class({'name': f"{node.get('name') or 'radio'} input"})
    ctx.add_rule(input_class, {'margin': '0'})

    group = to_class_name((parent or node).get('name'), fallback='radio-group')
    texts = extract_text_content(node)
    label = node.get('characters') or (texts[0] if texts else node.get('name') or 'Radio option')
    radio = f'<input {_attrs(ctx, input_class, {"type": "radio", "name": group})} />'
    return f'{prefix}<label {_attrs(ctx, class_name)}>{radio} {escape_text(label, ctx.jsx)}</label>'


def _render_placeholder(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                        indent: int, depth: int, in_button: bool) -> str:
    """EMBED and WIDGET content is not available through the API."""
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)
    ctx.add_rule(class_name, node_css(node, parent))

    kind = PLACEHOLDER_LABELS[node.get('type')]
    content = escape_text(f"{kind}: {node.get('name') or 'untitled'}", ctx.jsx)
    return f'{prefix}<div {_attrs(ctx, class_name)}>{content}</div>'


def _render_image(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                  indent: int) -> str:
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)

    declarations = node_css(node, parent)
    declarations.pop('background', None)
    declarations.pop('background-color', None)
    declarations['object-fit'] = 'cover'
    ctx.add_rule(class_name, declarations)

    image_ref = next((f.image_ref for f in reversed(parse_fills(node)) if f.type == 'IMAGE'), None)
    extra = {'src': image_url(image_ref), 'alt': node.get('name') or ''}
    return f'{prefix}<img {_attrs(ctx, class_name, extra)} />'


def _render_input(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                  indent: int, depth: int = 0, in_button: bool = False) -> str:
    prefix = ' ' * indent
    class_name = ctx.claim_class(node)

    declarations = node_css(node, parent)
    if declarations.get('position') == 'relative':
        declarations.pop('position')
    declarations.setdefault('padding', '8px 12px')
    declarations.setdefault('border', '1px solid #dddddd')
    ctx.add_rule(class_name, declarations)

    texts = extract_text_content(node)
    placeholder = node.get('characters') or (texts[0] if texts else (node.get('name') or ''))
    extra = {'type': 'text', 'placeholder': placeholder}
    return f'{prefix}<input {_attrs(ctx, class_name, extra)} />'


def _empty_element(ctx: _RenderContext, tag: str, class_name: str, prefix: str,
                   extra: Optional[Dict[str, str]] = None) -> str:
    if ctx.jsx:
        return f'{prefix}<{tag} {_attrs(ctx, class_name, extra)} />'
    return f'{prefix}<{tag} {_attrs(ctx, class_name, extra)}></{tag}>'


_RENDERERS = {node_type: _render_container for node_type in CONTAINER_TYPES}
_RENDERERS.update({node_type: _render_shape for node_type in SHAPE_TYPES})
_RENDERERS.update({node_type: _render_vector for node_type in VECTOR_TYPES})
_RENDERERS.update({node_type: _render_placeholder for node_type in PLACEHOLDER_LABELS})
_RENDERERS.update({
    'TEXT': _render_text,
    'CODE_BLOCK': _render_code_block,
    'LINK': _render_link,
    'COMBOBOX': _render_select,
    'RADIO': _render_radio,
    'INPUT': _render_input,
})


def _render_node(node: Dict[str, Any], ctx: _RenderContext, parent: Optional[Dict[str, Any]],
                 indent: int, depth: int, in_button: bool = False) -> str:
    if depth > MAX_DEPTH or not is_visible(node):
        return ''

    renderer = _RENDERERS.get(node.get('type', ''), _render_container)
    return renderer(node, ctx, parent, indent, depth, in_button)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def translate(node: Dict[str, Any], framework: str = 'react', component_name: Optional[str] = None,
              indent: int = 0) -> Translation:
    """Translate a node tree into markup plus the CSS rules it references."""
    if framework not in FRAMEWORKS:
        raise ValueError(f"Unsupported framework '{framework}'. Use one of: {', '.join(FRAMEWORKS)}")

    component_name = to_component_name(component_name or node.get('name'))
    ctx = _RenderContext(framework=framework, root_class=to_class_name(component_name, fallback='component'))

    markup = _render_node(node, ctx, None, indent, 0)
    if not markup:
        class_name = ctx.claim_class(node)
        ctx.add_rule(class_name, {})
        markup = _empty_element(ctx, 'div', class_name, ' ' * indent)

    return Translation(markup=markup, rules=ctx.rules, component_name=component_name, framework=framework)


def generate_component(node: Dict[str, Any], component_name: Optional[str] = None,
                       framework: str = 'react') -> str:
    """Full component source for a node: a React function component or an HTML fragment."""
    translation = translate(node, framework, component_name, indent=4 if framework == 'react' else 0)
    name = translation.component_name

    if framework == 'html':
        return translation.markup + '\n'

    return f'''import React from 'react';
import './{name}.css';

const {name} = () => {{
  return (
{translation.markup}
  );
}};

export default {name};
'''
