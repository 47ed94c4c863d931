"""
Project Generator - scaffolds a runnable front-end project from a node tree.

A project is built in memory first (`GeneratedProject.files` maps relative paths to
file contents) and only then written to disk, so callers can inspect or return it
without touching the file system.
"""

import html
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from generators.base import extract_text_content, to_class_name, to_component_name
from generators.classifiers import find_main_frame
from generators.css_generator import generate_stylesheet
from generators.markup_generator import FRAMEWORKS, translate, generate_component


logger = logging.getLogger(__name__)

REACT_VERSION = "^18.2.0"
REACT_SCRIPTS_VERSION = "5.0.1"


class ProjectPathError(ValueError):
    """Raised when a requested path escapes the project root."""


class ProjectExistsError(FileExistsError):
    """Raised when writing into a non-empty directory without overwrite."""


@dataclass
class GeneratedProject:
    """An in-memory generated project."""
    name: str
    framework: str
    component_name: str
    files: Dict[str, str] = field(default_factory=dict)

    def paths(self) -> List[str]:
        return sorted(self.files)

    def file_tree(self) -> Dict[str, Any]:
        """Nested folder/file structure of the project, folders first."""
        root: Dict[str, Any] = {'type': 'folder', 'name': self.name, 'path': '', 'children': []}

        for path in self.paths():
            parts = path.split('/')
            level = root
            for depth, part in enumerate(parts[:-1]):
                folder_path = '/'.join(parts[:depth + 1])
                folder = next(
                    (c for c in level['children'] if c['type'] == 'folder' and c['name'] == part),
                    None,
                )
                if folder is None:
                    folder = {'type': 'folder', 'name': part, 'path': folder_path, 'children': []}
                    level['children'].append(folder)
                level = folder
            level['children'].append({'type': 'file', 'name': parts[-1], 'path': path})

        _sort_tree(root)
        return root


def _sort_tree(node: Dict[str, Any]) -> None:
    children = node.get('children')
    if not children:
        return
    children.sort(key=lambda c: (c['type'] != 'folder', c['name']))
    for child in children:
        _sort_tree(child)


def _slug(name: str) -> str:
    return to_class_name(name, fallback='figma-app')


# ---------------------------------------------------------------------------
# React project
# ---------------------------------------------------------------------------

def _package_json(project_name: str) -> str:
    return json.dumps({
        "name": project_name,
        "version": "0.1.0",
        "private": True,
        "dependencies": {
            "react": REACT_VERSION,
            "react-dom": REACT_VERSION,
            "react-scripts": REACT_SCRIPTS_VERSION,
        },
        "scripts": {
            "start": "react-scripts start",
            "build": "react-scripts build",
        },
        "browserslist": {
            "production": [">0.2%", "not dead", "not op_mini all"],
            "development": ["last 1 chrome version", "last 1 firefox version", "last 1 safari version"],
        },
    }, indent=2) + '\n'


def _index_html(title: str, body: str = '<div id="root"></div>', head_extra: str = '') -> str:
    return f'''<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{html.escape(title)}</title>{head_extra}
  </head>
  <body>
{body}
  </body>
</html>
'''


def _index_js(component_name: str) -> str:
    return f'''import React from 'react';
import ReactDOM from 'react-dom/client';
import './index.css';
import {component_name} from './components/{component_name}';

const root = ReactDOM.createRoot(document.getElementById('root'));
root.render(
  <React.StrictMode>
    <{component_name} />
  </React.StrictMode>
);
'''


def _readme(title: str, framework: str, node: Dict[str, Any]) -> str:
    lines = [
        f"# {title}",
        "",
        f"Generated from the Figma node `{node.get('name', 'Unknown')}` "
        f"(`{node.get('id', 'n/a')}`, {node.get('type', 'UNKNOWN')}).",
        "",
    ]
    if framework == 'react':
        lines.extend(["```bash", "npm install", "npm start", "```"])
    else:
        lines.append("Open `index.html` in a browser.")

    texts = extract_text_content(node)
    if texts:
        lines.extend(["", "## Text content", ""])
        lines.extend(f"- {text.splitlines()[0]}" for text in texts[:20])
    return '\n'.join(lines) + '\n'


def build_react_project(node: Dict[str, Any], component_name: Optional[str] = None,
                        title: Optional[str] = None) -> GeneratedProject:
    page = find_main_frame(node)
    component_name = to_component_name(component_name or page.get('name'))
    title = title or page.get('name') or component_name
    project_name = _slug(title)

    translation = translate(page, 'react', component_name, indent=4)
    logger.info("Translated '%s' into %d CSS rules", page.get('name'), len(translation.rules))

    component_source = generate_component(page, component_name, 'react')
    files = {
        'package.json': _package_json(project_name),
        'public/index.html': _index_html(title),
        'src/index.js': _index_js(component_name),
        'src/index.css': generate_stylesheet([], base=True),
        f'src/components/{component_name}.js': component_source,
        f'src/components/{component_name}.css': generate_stylesheet(translation.rules, base=False),
        'README.md': _readme(title, 'react', page),
    }
    return GeneratedProject(name=project_name, framework='react', component_name=component_name, files=files)


# ---------------------------------------------------------------------------
# Plain HTML project
# ---------------------------------------------------------------------------

def build_html_project(node: Dict[str, Any], component_name: Optional[str] = None,
                       title: Optional[str] = None) -> GeneratedProject:
    page = find_main_frame(node)
    component_name = to_component_name(component_name or page.get('name'))
    title = title or page.get('name') or component_name
    project_name = _slug(title)

    translation = translate(page, 'html', component_name, indent=4)
    logger.info("Translated '%s' into %d CSS rules", page.get('name'), len(translation.rules))

    files = {
        'index.html': _index_html(
            title,
            body=translation.markup,
            head_extra='\n    <link rel="stylesheet" href="styles.css" />',
        ),
        'styles.css': translation.stylesheet,
        'README.md': _readme(title, 'html', page),
    }
    return GeneratedProject(name=project_name, framework='html', component_name=component_name, files=files)


def build_project(node: Dict[str, Any], framework: str = 'react', component_name: Optional[str] = None,
                  title: Optional[str] = None) -> GeneratedProject:
    if framework == 'react':
        return build_react_project(node, component_name, title)
    if framework == 'html':
        return build_html_project(node, component_name, title)
    raise ValueError(f"Unsupported framework '{framework}'. Use one of: {', '.join(FRAMEWORKS)}")


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------

def resolve_within(base_dir: Union[str, Path], relative_path: str = '') -> Path:
    """Resolve `relative_path` under `base_dir`, rejecting anything outside it."""
    base = Path(base_dir).resolve()
    target = (base / relative_path).resolve() if relative_path else base
    if target != base and base not in target.parents:
        raise ProjectPathError(f"Path '{relative_path}' is outside of '{base}'")
    return target


def write_project(project: GeneratedProject, output_dir: Union[str, Path],
                  overwrite: bool = False) -> List[Path]:
    """Write all project files under `output_dir` and return the written paths.

    Every path is checked before anything is written, so a rejected path leaves the
    directory untouched. With `overwrite=True` the project's files replace existing
    ones; other files already in the directory (for example the component files of
    an earlier run under a different name) are left in place.
    """
    root = Path(output_dir)
    if root.exists() and any(root.iterdir()) and not overwrite:
        raise ProjectExistsError(f"Directory '{root}' is not empty. Pass overwrite=True to replace files.")

    targets = [(resolve_within(root, path), project.files[path]) for path in project.paths()]

    written = []
    for target, content in targets:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding='utf-8')
        written.append(target)

    logger.info("Wrote %d files to %s", len(written), root)
    return written


def read_directory_tree(base_dir: Union[str, Path], relative_path: str = '') -> Dict[str, Any]:
    """Recursive folder/file listing of a directory under `base_dir`."""
    base = Path(base_dir).resolve()
    target = resolve_within(base, relative_path)
    if not target.exists():
        raise FileNotFoundError(f"'{relative_path or target}' does not exist")

    def walk(path: Path) -> Dict[str, Any]:
        rel = path.relative_to(base).as_posix() if path != base else ''
        if path.is_file():
            return {'type': 'file', 'name': path.name, 'path': rel}
        children = [walk(child) for child in path.iterdir() if not child.is_symlink()]
        children.sort(key=lambda c: (c['type'] != 'folder', c['name']))
        return {'type': 'folder', 'name': path.name, 'path': rel, 'children': children}

    return walk(target)


def read_project_file(base_dir: Union[str, Path], relative_path: str) -> str:
    target = resolve_within(base_dir, relative_path)
    if not target.is_file():
        raise FileNotFoundError(f"'{relative_path}' is not a file")
    return target.read_text(encoding='utf-8')


def project_directory(output_root: Union[str, Path], project: GeneratedProject) -> Path:
    """Default location of a project under the output root."""
    return Path(output_root) / project.name


__all__ = [
    'GeneratedProject', 'ProjectPathError', 'ProjectExistsError',
    'build_project', 'build_react_project', 'build_html_project',
    'write_project', 'read_directory_tree', 'read_project_file',
    'resolve_within', 'project_directory',
]


