"""
Code Quality Analyzer - heuristic scoring of generated component source.

All checks are regular expressions over the raw text, so the numbers are rough
signals rather than real static analysis.
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List


logger = logging.getLogger(__name__)

CONDITIONAL_PATTERN = re.compile(r'\b(if|else|for|while|switch|case|catch)\b|&&|\|\|')
FUNCTION_PATTERN = re.compile(r'\bfunction\b|=>')
FUNCTION_BODY_PATTERN = re.compile(r'function[^{]*?\{.*?\}', re.DOTALL)
FUNCTION_PARAMS_PATTERN = re.compile(r'function[^(]*\(([^)]*)\)')
NUMBER_PATTERN = re.compile(r'(?<![\w.#-])-?\d+(?:\.\d+)?(?![\w%])')
CONSOLE_PATTERN = re.compile(r'console\.(log|warn|error|debug)')
UNSAFE_IMAGE_PATTERN = re.compile(r'<img\b(?![^>]*onError)[^>]*\bsrc=')
INLINE_STYLE_PATTERN = re.compile(r'style=\{\{|style="')
DOM_ACCESS_PATTERN = re.compile(r'document\.(getElementById|querySelector(All)?)')
ERROR_HANDLING_PATTERN = re.compile(r'\b(try|catch|throw|finally)\b')
ANONYMOUS_FUNCTION_PATTERN = re.compile(r'function\s*\(\s*\)\s*\{')
ARRAY_OPERATION_PATTERN = re.compile(r'\.(map|filter|reduce)\(')
PROMISE_CHAIN_PATTERN = re.compile(r'\.then\(')
SHORT_NAME_PATTERN = re.compile(r'\b(?:const|let|var)\s+[a-z]{1,2}\b')

LONG_LINE = 80
LONG_FUNCTION_LINES = 20
MAX_PARAMETERS = 3
MAGIC_NUMBER_LIMIT = 3

ORGANIZATION_THRESHOLDS = (80, 60, 40)
PERFORMANCE_THRESHOLDS = (90, 75, 60)


@dataclass
class CodeSmell:
    type: str
    description: str


@dataclass
class CodeQualityReport:
    file_name: str
    metrics: Dict[str, int]
    overall_score: int
    summary: Dict[str, Any]
    code_smells: List[CodeSmell] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _clamp(score: float) -> int:
    return int(max(0, min(100, round(score))))


def score_rating(score: float, thresholds=ORGANIZATION_THRESHOLDS) -> str:
    excellent, good, moderate = thresholds
    if score >= excellent:
        return 'Excellent'
    if score >= good:
        return 'Good'
    if score >= moderate:
        return 'Moderate'
    return 'Needs Improvement'


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def complexity_score(code: str) -> int:
    """100 minus a penalty per branch and per function; higher is simpler."""
    conditionals = len(CONDITIONAL_PATTERN.findall(code))
    functions = len(FUNCTION_PATTERN.findall(code))
    return _clamp(100 - conditionals * 2 - functions)


def maintainability_score(code: str) -> int:
    score = 70
    lines = code.split('\n')

    long_lines = sum(1 for line in lines if len(line) > LONG_LINE)
    score -= min(long_lines * 2, 20)

    long_functions = sum(
        1 for body in FUNCTION_BODY_PATTERN.findall(code)
        if body.count('\n') + 1 > LONG_FUNCTION_LINES
    )
    score -= min(long_functions * 5, 20)

    if code.count('useState') > 3:
        score -= 10
    if '</' in code or '/>' in code:
        score -= 5

    if not SHORT_NAME_PATTERN.search(code):
        score += 10
    if re.search(r'\b[A-Z][a-zA-Z]+\s*=', code):
        score += 5

    if '//' in code:
        score += 5
    if '/**' in code or '@param' in code:
        score += 5
    if re.search(r'^import .* from ', code, re.MULTILINE):
        score += 5

    if len(NUMBER_PATTERN.findall(code)) > 5:
        score -= 5
    if INLINE_STYLE_PATTERN.search(code):
        score -= 5
    non_blank = [line for line in lines if line.strip()]
    if non_blank and len(set(non_blank)) < len(non_blank) * 0.8:
        score -= 5

    return _clamp(score)


def reliability_score(code: str) -> int:
    score = 50

    if re.search(r': (React\.|JSX\.|Props\b)', code):
        score += 10
    if re.search(r'\b(interface|type)\s+[A-Z]', code):
        score += 5

    score += min(len(ERROR_HANDLING_PATTERN.findall(code)) * 3, 10)
    if 'ErrorBoundary' in code:
        score += 5

    if 'loading' in code or 'isLoading' in code:
        score += 5
    if 'Spinner' in code or 'Loading' in code:
        score += 5

    if 'validat' in code:
        score += 5
    if 'sanitize' in code or 'escape' in code:
        score += 5

    score -= min(len(UNSAFE_IMAGE_PATTERN.findall(code)) * 10, 30)
    score -= min(len(CONSOLE_PATTERN.findall(code)) * 2, 10)
    score -= min(len(DOM_ACCESS_PATTERN.findall(code)) * 5, 15)

    return _clamp(score)


def duplication_rate(code: str) -> int:
    """Percent of non-blank lines that repeat an earlier line."""
    lines = [line.strip() for line in code.split('\n') if line.strip()]
    if not lines:
        return 0
    return _clamp((len(lines) - len(set(lines))) / len(lines) * 100)


def testability_score(code: str) -> int:
    score = 75
    if 'export' in code:
        score += 5
    if re.search(r'function\s+\w+\s*\([^)]*\)\s*\{[^}]*\breturn\b', code):
        score += 10
    if 'useState' in code or 'useReducer' in code:
        score += 5
    return _clamp(score)


def overall_score(metrics: Dict[str, int]) -> int:
    """Mean of the metrics, counting duplication as 100 minus its rate."""
    values = [
        100 - value if name == 'duplication' else value
        for name, value in metrics.items()
    ]
    return _clamp(sum(values) / len(values))


# ---------------------------------------------------------------------------
# Summary and smells
# ---------------------------------------------------------------------------

def _code_patterns(code: str) -> Dict[str, int]:
    return {
        'inline_styles': len(INLINE_STYLE_PATTERN.findall(code)),
        'console_statements': len(CONSOLE_PATTERN.findall(code)),
        'images_without_error_handling': len(UNSAFE_IMAGE_PATTERN.findall(code)),
        'anonymous_functions': len(ANONYMOUS_FUNCTION_PATTERN.findall(code)),
        'state_variables': code.count('useState'),
        'array_operations': len(ARRAY_OPERATION_PATTERN.findall(code)),
    }


def build_summary(metrics: Dict[str, int], code: str) -> Dict[str, Any]:
    patterns = _code_patterns(code)
    logger.debug("Code patterns: %s", patterns)

    practices = []
    if patterns['inline_styles']:
        practices.append(f"Consider moving {patterns['inline_styles']} inline style(s) to CSS files")
    if patterns['console_statements']:
        practices.append(f"Remove {patterns['console_statements']} console statement(s)")
    if patterns['images_without_error_handling']:
        practices.append(f"Add error handling for {patterns['images_without_error_handling']} image(s)")
    if patterns['anonymous_functions']:
        practices.append(f"Name {patterns['anonymous_functions']} anonymous function(s) for better debugging")
    if patterns['state_variables'] > 3:
        practices.append("Consider combining related state variables")
    if patterns['array_operations'] > 2:
        practices.append("Consider optimizing array operations")

    deductions = {
        'inline_styles': patterns['inline_styles'] * 5,
        'array_operations': patterns['array_operations'] * 3,
        'state_variables': 15 if patterns['state_variables'] > 3 else 0,
        'image_handling': min(patterns['images_without_error_handling'] * 10, 30),
    }
    performance = max(0, 100 - sum(deductions.values()))
    logger.debug("Performance deductions: %s (score %d)", deductions, performance)

    return {
        'practices': practices,
        'organization': score_rating(metrics['maintainability'], ORGANIZATION_THRESHOLDS),
        'performance': score_rating(performance, PERFORMANCE_THRESHOLDS),
    }


def detect_code_smells(code: str) -> List[CodeSmell]:
    smells = []

    for body in FUNCTION_BODY_PATTERN.findall(code):
        line_count = body.count('\n') + 1
        if line_count > LONG_FUNCTION_LINES:
            smells.append(CodeSmell(
                'Long Function',
                f"Function with {line_count} lines detected. Consider breaking it down.",
            ))

    magic_numbers = NUMBER_PATTERN.findall(code)
    if len(magic_numbers) > MAGIC_NUMBER_LIMIT:
        smells.append(CodeSmell(
            'Magic Numbers',
            f"{len(magic_numbers)} magic numbers found. Consider using named constants.",
        ))

    for params in FUNCTION_PARAMS_PATTERN.findall(code):
        names = [p for p in params.split(',') if p.strip()]
        if len(names) > MAX_PARAMETERS:
            smells.append(CodeSmell(
                'Long Parameter List',
                f"Function has {len(names)} parameters. Consider using an object parameter.",
            ))

    if len(PROMISE_CHAIN_PATTERN.findall(code)) > 2:
        smells.append(CodeSmell(
            'Callback Hell',
            "Multiple chained promises detected. Consider using async/await.",
        ))

    console_count = len(CONSOLE_PATTERN.findall(code))
    if console_count:
        smells.append(CodeSmell(
            'Debug Statements',
            f"{console_count} console statement(s) found. Remove in production.",
        ))

    return smells


def analyze_code(content: str, file_name: str = 'untitled') -> CodeQualityReport:
    """Score a source file. Raises ValueError for empty content."""
    if not content or not content.strip():
        raise ValueError("No code content to analyze")

    metrics = {
        'complexity': complexity_score(content),
        'maintainability': maintainability_score(content),
        'reliability': reliability_score(content),
        'duplication': duplication_rate(content),
        'testability': testability_score(content),
    }
    report = CodeQualityReport(
        file_name=file_name,
        metrics=metrics,
        overall_score=overall_score(metrics),
        summary=build_summary(metrics, content),
        code_smells=detect_code_smells(content),
    )
    logger.info("Analyzed %s: overall score %d", file_name, report.overall_score)
    return report
