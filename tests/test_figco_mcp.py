"""Tests for the MCP tool layer: input validation, error mapping and tool flows."""
import asyncio
import json
import logging

import httpx
import pytest
from pydantic import ValidationError

import figco_mcp
from figco_mcp import (
    AnalyzeCodeInput, CodeGenInput, FigmaFileInput, FigmaImageInput, FigmaNodeInput,
    ProjectFromJsonInput, ProjectGenInput, ReadFileInput, ReadProjectInput,
)
from generators.project_generator import ProjectPathError


FILE_KEY = 'AbCdEf123456'


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def fake_api(monkeypatch, figma_document, landing_page):
    """Replace the HTTP helper with canned Figma responses; records each call."""
    calls = []

    async def fake_request(endpoint, method='GET', params=None, token=None):
        calls.append({'endpoint': endpoint, 'params': params, 'token': token})
        if endpoint == f'files/{FILE_KEY}':
            return figma_document
        if endpoint == f'files/{FILE_KEY}/nodes':
            node_id = params['ids']
            node = landing_page if node_id == landing_page['id'] else None
            return {'nodes': {node_id: {'document': node} if node else None}}
        if endpoint == f'images/{FILE_KEY}':
            ids = params['ids'].split(',')
            return {'err': None, 'images': {ids[0]: 'https://example.com/render.png', **{i: None for i in ids[1:]}}}
        raise AssertionError(f'unexpected endpoint {endpoint}')

    monkeypatch.setattr(figco_mcp, '_make_figma_request', fake_request)
    return calls


@pytest.fixture
def output_dir(monkeypatch, tmp_path):
    monkeypatch.setenv('FIGCO_OUTPUT_DIR', str(tmp_path))
    return tmp_path


class TestInputModels:

    def test_file_key_from_url(self):
        params = FigmaFileInput(file_key=f'https://www.figma.com/design/{FILE_KEY}/My-Site?node-id=1-2&t=abc')
        assert params.file_key == FILE_KEY

    def test_file_key_from_legacy_url(self):
        assert FigmaNodeInput(file_key=f'figma.com/file/{FILE_KEY}/x', node_id='1:2').file_key == FILE_KEY

    def test_unparseable_url(self):
        with pytest.raises(ValidationError):
            FigmaFileInput(file_key='https://www.figma.com/community/plugin/123')

    def test_short_file_key(self):
        with pytest.raises(ValidationError):
            FigmaFileInput(file_key='abc')

    def test_node_ids_are_normalized(self):
        assert FigmaNodeInput(file_key=FILE_KEY, node_id='12-34').node_id == '12:34'
        assert FigmaImageInput(file_key=FILE_KEY, node_ids=['1-2', '3:4']).node_ids == ['1:2', '3:4']
        assert ProjectGenInput(file_key=FILE_KEY).node_id is None

    def test_scale_bounds(self):
        with pytest.raises(ValidationError):
            FigmaImageInput(file_key=FILE_KEY, node_ids=['1:2'], scale=5)

    def test_framework(self):
        assert CodeGenInput(file_key=FILE_KEY, node_id='1:2', framework='html').framework.value == 'html'
        with pytest.raises(ValidationError):
            CodeGenInput(file_key=FILE_KEY, node_id='1:2', framework='vue')

    def test_access_token_not_in_repr(self):
        assert 'secret-token' not in repr(FigmaFileInput(file_key=FILE_KEY, access_token='secret-token'))

    def test_analyze_requires_source(self):
        with pytest.raises(ValidationError):
            AnalyzeCodeInput()


class TestConfiguration:

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv('FIGMA_ACCESS_TOKEN', raising=False)
        monkeypatch.delenv('FIGMA_TOKEN', raising=False)
        with pytest.raises(ValueError):
            figco_mcp._get_figma_token()

    def test_token_sources(self, monkeypatch):
        monkeypatch.delenv('FIGMA_ACCESS_TOKEN', raising=False)
        monkeypatch.setenv('FIGMA_TOKEN', 'from-env')
        assert figco_mcp._get_figma_token() == 'from-env'
        assert figco_mcp._get_figma_token('override') == 'override'

    def test_timeout(self, monkeypatch):
        monkeypatch.delenv('FIGMA_API_TIMEOUT', raising=False)
        assert figco_mcp._get_timeout() == 30.0
        monkeypatch.setenv('FIGMA_API_TIMEOUT', '5')
        assert figco_mcp._get_timeout() == 5.0
        monkeypatch.setenv('FIGMA_API_TIMEOUT', 'soon')
        with pytest.raises(ValueError):
            figco_mcp._get_timeout()

    def test_output_root(self, monkeypatch):
        monkeypatch.delenv('FIGCO_OUTPUT_DIR', raising=False)
        assert str(figco_mcp._get_output_root()) == 'generated_code'


class TestHandleApiError:

    @staticmethod
    def status_error(status):
        request = httpx.Request('GET', f'{figco_mcp.FIGMA_API_BASE}/files/x')
        response = httpx.Response(status, request=request)
        return httpx.HTTPStatusError('failed', request=request, response=response)

    def test_status_codes(self):
        assert 'Invalid Figma API token' in figco_mcp._handle_api_error(self.status_error(401))
        assert 'Access denied' in figco_mcp._handle_api_error(self.status_error(403))
        assert 'not found' in figco_mcp._handle_api_error(self.status_error(404))
        assert 'Rate limit' in figco_mcp._handle_api_error(self.status_error(429))
        assert figco_mcp._handle_api_error(self.status_error(500)) == 'Error: Figma API returned status 500'

    def test_timeout(self):
        assert 'timed out' in figco_mcp._handle_api_error(httpx.ReadTimeout('slow'))

    def test_domain_errors(self):
        assert figco_mcp._handle_api_error(ValueError('bad input')) == 'Error: bad input'
        assert figco_mcp._handle_api_error(ProjectPathError('outside')).startswith('Error: Invalid path.')

    def test_unexpected(self):
        assert figco_mcp._handle_api_error(RuntimeError('boom')) == 'Error: RuntimeError: boom'


class TestInspectionTools:

    def test_file_structure_markdown(self, fake_api):
        result = run(figco_mcp.figco_get_file_structure(FigmaFileInput(file_key=FILE_KEY, depth=3)))
        assert result.startswith('# Figma File: Marketing Site')
        assert '**Landing Page** `1:100` FRAME (1440x900)' in result

    def test_file_structure_json(self, fake_api):
        result = run(figco_mcp.figco_get_file_structure(
            FigmaFileInput(file_key=FILE_KEY, depth=1, response_format='json')
        ))
        data = json.loads(result)
        assert data['name'] == 'Marketing Site'
        assert [page['name'] for page in data['document']['children']] == ['Page 1', 'Archive']

    def test_access_token_is_forwarded(self, fake_api):
        run(figco_mcp.figco_get_file_structure(FigmaFileInput(file_key=FILE_KEY, access_token='per-call')))
        assert fake_api[0]['token'] == 'per-call'

    def test_node_json(self, fake_api):
        result = run(figco_mcp.figco_get_node_json(FigmaNodeInput(file_key=FILE_KEY, node_id='1-100')))
        assert json.loads(result)['name'] == 'Landing Page'
        assert fake_api[0]['params'] == {'ids': '1:100'}

    def test_node_json_missing_node(self, fake_api):
        result = run(figco_mcp.figco_get_node_json(FigmaNodeInput(file_key=FILE_KEY, node_id='9:9')))
        assert result == f"Error: Node '9:9' not found in file '{FILE_KEY}'"

    def test_node_json_is_truncated(self, fake_api, monkeypatch):
        monkeypatch.setattr(figco_mcp, 'CHARACTER_LIMIT', 100)
        result = run(figco_mcp.figco_get_node_json(FigmaNodeInput(file_key=FILE_KEY, node_id='1:100')))
        assert '... truncated' in result

    def test_render_image(self, fake_api):
        result = run(figco_mcp.figco_render_image(FigmaImageInput(file_key=FILE_KEY, node_ids=['1-2', '3:4'])))
        assert fake_api[0]['params'] == {'ids': '1:2,3:4', 'format': 'png', 'scale': 2.0}
        assert '- **1:2**: [Download](https://example.com/render.png)' in result
        assert '- **3:4**: Failed to render' in result

    def test_missing_token_without_network(self, monkeypatch):
        monkeypatch.delenv('FIGMA_ACCESS_TOKEN', raising=False)
        monkeypatch.delenv('FIGMA_TOKEN', raising=False)
        result = run(figco_mcp.figco_get_file_structure(FigmaFileInput(file_key=FILE_KEY)))
        assert result.startswith('Error: Figma API token not found')


class TestCodeTools:

    def test_generate_react_code(self, fake_api):
        result = run(figco_mcp.figco_generate_code(CodeGenInput(file_key=FILE_KEY, node_id='1:100')))
        assert result.startswith('# Generated Code: LandingPage')
        assert '```jsx' in result
        assert 'const LandingPage = () => {' in result
        assert '## LandingPage.css' in result
        assert '.hero-title {' in result

    def test_generate_html_code(self, fake_api):
        result = run(figco_mcp.figco_generate_code(
            CodeGenInput(file_key=FILE_KEY, node_id='1:100', framework='html', component_name='Home')
        ))
        assert '```html' in result
        assert '<div class="home">' in result

    def test_generate_code_normalizes_component_name(self, fake_api):
        result = run(figco_mcp.figco_generate_code(
            CodeGenInput(file_key=FILE_KEY, node_id='1:100', component_name='landing page v2')
        ))
        assert result.startswith('# Generated Code: LandingPageV2')
        assert 'const LandingPageV2 = () => {' in result

    def test_analyze_inline_code(self):
        result = run(figco_mcp.figco_analyze_code(AnalyzeCodeInput(content="console.log('x');", file_name='a.js')))
        data = json.loads(result)
        assert data['file_name'] == 'a.js'
        assert data['code_smells'][0]['type'] == 'Debug Statements'


class TestProjectTools:

    def test_generate_project_from_api(self, fake_api, output_dir, caplog):
        caplog.set_level(logging.INFO)
        result = json.loads(run(figco_mcp.figco_generate_project(ProjectGenInput(file_key=FILE_KEY))))

        assert result['status'] == 'success'
        assert result['project'] == 'landing-page'
        assert 'src/components/LandingPage.js' in result['files']
        assert (output_dir / 'landing-page' / 'package.json').is_file()
        assert any('Wrote 7 files' in line for line in result['logs'])
        assert fake_api[0]['endpoint'] == f'files/{FILE_KEY}'

    def test_generate_project_from_json(self, figma_document, output_dir):
        params = ProjectFromJsonInput(figma_json=figma_document, framework='html', project_name='Marketing')
        result = json.loads(run(figco_mcp.figco_generate_project_from_json(params)))

        assert result['status'] == 'success'
        assert sorted(result['files']) == ['README.md', 'index.html', 'styles.css']
        assert (output_dir / 'marketing' / 'index.html').is_file()

    def test_generate_project_from_json_node(self, figma_document, output_dir):
        params = ProjectFromJsonInput(figma_json=figma_document, node_id='2-10')
        result = json.loads(run(figco_mcp.figco_generate_project_from_json(params)))
        assert result['component'] == 'PrimaryButton'

    def test_component_name_is_made_an_identifier(self, figma_document, output_dir):
        params = ProjectFromJsonInput(figma_json=figma_document, component_name='my-page')
        result = json.loads(run(figco_mcp.figco_generate_project_from_json(params)))

        assert result['status'] == 'success'
        assert result['component'] == 'MyPage'
        source = (output_dir / 'landing-page' / 'src' / 'components' / 'MyPage.js').read_text()
        assert 'const MyPage = () => {' in source

    def test_invalid_json(self, output_dir):
        result = json.loads(run(figco_mcp.figco_generate_project_from_json(
            ProjectFromJsonInput(figma_json={'foo': 'bar'})
        )))
        assert result['status'] == 'error'
        assert "missing 'type'" in result['message']

    def test_existing_project_is_not_overwritten(self, figma_document, output_dir):
        params = ProjectFromJsonInput(figma_json=figma_document)
        run(figco_mcp.figco_generate_project_from_json(params))
        result = json.loads(run(figco_mcp.figco_generate_project_from_json(params)))
        assert result['status'] == 'error'
        assert 'not empty' in result['message']

        params.overwrite = True
        assert json.loads(run(figco_mcp.figco_generate_project_from_json(params)))['status'] == 'success'

    def test_read_generated_project(self, figma_document, output_dir):
        run(figco_mcp.figco_generate_project_from_json(ProjectFromJsonInput(figma_json=figma_document)))

        tree = json.loads(run(figco_mcp.figco_read_project(ReadProjectInput(path='landing-page'))))
        assert tree['path'] == 'landing-page'
        assert [c['name'] for c in tree['children']] == ['public', 'src', 'README.md', 'package.json']

        content = run(figco_mcp.figco_read_file(ReadFileInput(path='landing-page/package.json')))
        assert '"react-scripts": "5.0.1"' in content

        report = json.loads(run(figco_mcp.figco_analyze_code(
            AnalyzeCodeInput(path='landing-page/src/components/LandingPage.js')
        )))
        assert report['file_name'] == 'landing-page/src/components/LandingPage.js'

    def test_read_outside_output_dir(self, output_dir):
        result = run(figco_mcp.figco_read_file(ReadFileInput(path='../../etc/passwd')))
        assert result.startswith('Error: Invalid path.')

    def test_read_missing_file(self, output_dir):
        result = run(figco_mcp.figco_read_file(ReadFileInput(path='nothing.txt')))
        assert result.startswith('Error: Not found')


class TestLogCapture:

    def test_captures_only_inside_block(self, caplog):
        caplog.set_level(logging.INFO)
        log = logging.getLogger('generators.test')
        log.info('before')
        with figco_mcp.capture_logs() as captured:
            log.info('during %d', 1)
        log.info('after')
        assert captured.lines == ['[INFO] generators.test: during 1']
