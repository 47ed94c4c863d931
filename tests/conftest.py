"""Shared test fixtures: Figma node dicts shaped like API responses."""
import pytest


def solid(r, g, b, a=1, opacity=1, visible=True):
    return {'type': 'SOLID', 'visible': visible, 'color': {'r': r, 'g': g, 'b': b, 'a': a}, 'opacity': opacity}


def box(x, y, width, height):
    return {'x': x, 'y': y, 'width': width, 'height': height}


def text_node(node_id, name, characters, font_size=16, font_weight=400, x=0, y=0, **extra):
    node = {
        'id': node_id,
        'name': name,
        'type': 'TEXT',
        'characters': characters,
        'absoluteBoundingBox': box(x, y, 200, font_size * 1.5),
        'fills': [solid(0.1, 0.1, 0.1)],
        'style': {
            'fontFamily': 'Inter',
            'fontSize': font_size,
            'fontWeight': font_weight,
            'textAlignHorizontal': 'LEFT',
        },
    }
    node.update(extra)
    return node


@pytest.fixture
def node_with_dashed_stroke():
    """Figma node with dashed border stroke."""
    return {
        'id': '1:1',
        'name': 'Dashed Box',
        'type': 'RECTANGLE',
        'absoluteBoundingBox': box(0, 0, 200, 100),
        'fills': [solid(1, 1, 1)],
        'strokes': [solid(0, 0, 0)],
        'strokeWeight': 2,
        'strokeAlign': 'INSIDE',
        'strokeDashes': [5, 3],
        'effects': [],
        'children': [],
    }


@pytest.fixture
def node_with_background_blur():
    """Figma node with BACKGROUND_BLUR effect."""
    return {
        'id': '1:2',
        'name': 'Glass',
        'type': 'RECTANGLE',
        'absoluteBoundingBox': box(0, 0, 200, 100),
        'fills': [solid(1, 1, 1, a=1, opacity=0.5)],
        'strokes': [],
        'effects': [{'type': 'BACKGROUND_BLUR', 'visible': True, 'radius': 10}],
        'children': [],
    }


@pytest.fixture
def node_with_inner_shadow():
    """Figma node with INNER_SHADOW effect."""
    return {
        'id': '1:3',
        'name': 'Well',
        'type': 'RECTANGLE',
        'absoluteBoundingBox': box(0, 0, 200, 100),
        'fills': [solid(1, 1, 1)],
        'strokes': [],
        'effects': [{
            'type': 'INNER_SHADOW', 'visible': True, 'radius': 4, 'spread': 0,
            'color': {'r': 0, 'g': 0, 'b': 0, 'a': 0.25},
            'offset': {'x': 0, 'y': 2}
        }],
        'children': [],
    }


@pytest.fixture
def node_with_radial_gradient():
    """Figma node with RADIAL gradient fill."""
    return {
        'id': '1:4',
        'name': 'Glow',
        'type': 'RECTANGLE',
        'absoluteBoundingBox': box(0, 0, 300, 150),
        'fills': [{
            'type': 'GRADIENT_RADIAL', 'visible': True, 'opacity': 1,
            'gradientStops': [
                {'color': {'r': 1, 'g': 0, 'b': 0, 'a': 1}, 'position': 0},
                {'color': {'r': 0, 'g': 0, 'b': 1, 'a': 1}, 'position': 1},
            ],
            'gradientHandlePositions': [
                {'x': 0.5, 'y': 0.5},
                {'x': 1.0, 'y': 0.5},
                {'x': 0.5, 'y': 1.0},
            ]
        }],
        'strokes': [],
        'effects': [],
        'children': [],
    }


@pytest.fixture
def button_node():
    """Auto-layout button frame with a label."""
    return {
        'id': '2:10',
        'name': 'Primary Button',
        'type': 'FRAME',
        'absoluteBoundingBox': box(140, 500, 160, 48),
        'fills': [solid(0, 0.4, 1)],
        'cornerRadius': 8,
        'layoutMode': 'HORIZONTAL',
        'primaryAxisAlignItems': 'CENTER',
        'counterAxisAlignItems': 'CENTER',
        'paddingLeft': 24, 'paddingRight': 24, 'paddingTop': 12, 'paddingBottom': 12,
        'children': [
            text_node('2:11', 'Label', 'Get started', font_size=16, font_weight=600, x=164, y=512),
        ],
    }


@pytest.fixture
def landing_page(button_node):
    """Top-level frame without auto-layout: header, hero heading, body text, image, button."""
    return {
        'id': '1:100',
        'name': 'Landing Page',
        'type': 'FRAME',
        'absoluteBoundingBox': box(100, 200, 1440, 900),
        'fills': [solid(1, 1, 1)],
        'clipsContent': True,
        'children': [
            {
                'id': '2:1',
                'name': 'Header',
                'type': 'FRAME',
                'absoluteBoundingBox': box(100, 200, 1440, 80),
                'fills': [solid(0.95, 0.95, 0.95)],
                'layoutMode': 'HORIZONTAL',
                'itemSpacing': 16,
                'children': [
                    text_node('2:2', 'Logo', 'Acme', font_size=18, x=124, y=224),
                ],
            },
            text_node('2:3', 'Hero Title', 'Build faster', font_size=48, font_weight=700, x=140, y=320),
            text_node('2:4', 'Body', 'Ship <great> things & more', font_size=16, x=140, y=400),
            {
                'id': '2:5',
                'name': 'Hero Image',
                'type': 'RECTANGLE',
                'absoluteBoundingBox': box(800, 300, 500, 400),
                'fills': [{'type': 'IMAGE', 'visible': True, 'imageRef': 'abc123', 'scaleMode': 'FILL'}],
            },
            button_node,
            {
                'id': '2:6',
                'name': 'Hidden Note',
                'type': 'TEXT',
                'visible': False,
                'characters': 'secret',
                'absoluteBoundingBox': box(0, 0, 10, 10),
            },
        ],
    }


@pytest.fixture
def figma_document(landing_page):
    """Full file response: document with two pages."""
    return {
        'name': 'Marketing Site',
        'lastModified': '2024-01-01T00:00:00Z',
        'document': {
            'id': '0:0',
            'name': 'Document',
            'type': 'DOCUMENT',
            'children': [
                {
                    'id': '0:1',
                    'name': 'Page 1',
                    'type': 'CANVAS',
                    'children': [
                        {
                            'id': '1:50',
                            'name': 'Small Frame',
                            'type': 'FRAME',
                            'absoluteBoundingBox': box(0, 0, 320, 200),
                            'children': [],
                        },
                        landing_page,
                    ],
                },
                {
                    'id': '0:2',
                    'name': 'Archive',
                    'type': 'CANVAS',
                    'children': [],
                },
            ],
        },
    }
