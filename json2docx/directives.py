"""
Directive lexer: recognizes the placeholder syntaxes inside a paragraph's
concatenated run text and returns typed ``Directive`` values.

Precedence (first kind present wins):
    conditional > table > chart > image > format > loop > text
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

CONDITIONAL = 'conditional'
TABLE = 'table'
CHART = 'chart'
IMAGE = 'image'
FORMAT = 'format'
LOOP = 'loop'
TEXT = 'text'
SECTION = 'section'
FORMAT_TABLE = 'format-table'
ROW_CONDITION = 'row-condition'

# Directive patterns (compiled once at module level)
CONDITIONAL_PATTERN = re.compile(r'\{#if\s+([^}]+)\}([\s\S]*?)\{/if\}')
TABLE_PATTERN = re.compile(r'\{%\s*table:([\w.]+)\s*\}')
CHART_PATTERN = re.compile(r'\{%\s*chart:(\w+):([\w.]+)(?::([^}]*))?\s*\}')
IMAGE_PATTERN = re.compile(r'\{%\s*(\w+)(?:\.(\w+))?\s*\}')
FORMAT_PATTERN = re.compile(r'\{format:([\w.]+):([\w-]+)\}')
LOOP_PATTERN = re.compile(r'\{#each\s+([\w.]+)\s+as\s+(\w+)\}([\s\S]*?)\{/each\}')
TEXT_PATTERN = re.compile(r'\{([^%#/{}][^{}]*)\}')
FORMAT_TABLE_PATTERN = re.compile(r'\{format-table:([\w.]*)\}')
ROW_CONDITION_PATTERN = re.compile(r'\{if:(\w+)(==|!=|>=|<=|>|<)([^}]+)\}(\w+)\{/if\}')

PAGE_BREAK_DIRECTIVE = '{%pagebreak}'


@dataclass(frozen=True)
class Directive:
    """One recognized directive occurrence."""

    kind: str
    key: str
    raw: str
    span: Tuple[int, int]
    params: Dict[str, Optional[str]] = field(default_factory=dict)


def scan(text):
    """Return every occurrence of the highest-precedence directive kind
    found in ``text`` (an empty list when nothing matches).

    Single-occurrence kinds (table, chart, image, loop) return one item.
    """
    conditionals = find_conditionals(text)
    if conditionals:
        return conditionals
    return scan_blocks(text)


def scan_blocks(text):
    """``scan`` without the conditional rule; used once conditional blocks
    have been resolved out of the text."""
    for finder in (find_table, find_chart, find_image):
        directive = finder(text)
        if directive is not None:
            return [directive]

    formats = find_formats(text)
    if formats:
        return formats

    loop = find_loop(text)
    if loop is not None:
        return [loop]

    return find_text_placeholders(text)


def find_conditionals(text):
    return [
        Directive(CONDITIONAL, m.group(1).strip(), m.group(0), m.span(),
                  {'condition': m.group(1).strip(), 'content': m.group(2)})
        for m in CONDITIONAL_PATTERN.finditer(text)
    ]


def next_conditional(text, pos=0):
    m = CONDITIONAL_PATTERN.search(text, pos)
    if m is None:
        return None
    return Directive(CONDITIONAL, m.group(1).strip(), m.group(0), m.span(),
                     {'condition': m.group(1).strip(), 'content': m.group(2)})


def find_table(text):
    m = TABLE_PATTERN.search(text)
    if m is None:
        return None
    return Directive(TABLE, m.group(1), m.group(0), m.span())


def find_chart(text):
    m = CHART_PATTERN.search(text)
    if m is None:
        return None
    title = m.group(3).strip() if m.group(3) else None
    return Directive(CHART, m.group(2), m.group(0), m.span(),
                     {'chart_type': m.group(1).lower(), 'title': title})


def find_image(text):
    m = IMAGE_PATTERN.search(text)
    if m is None:
        return None
    return Directive(IMAGE, m.group(1), m.group(0), m.span(), {'property': m.group(2)})


def find_formats(text):
    return [
        Directive(FORMAT, m.group(1), m.group(0), m.span(), {'style': m.group(2)})
        for m in FORMAT_PATTERN.finditer(text)
    ]


def find_loop(text):
    m = LOOP_PATTERN.search(text)
    if m is None:
        return None
    return Directive(LOOP, m.group(1), m.group(0), m.span(),
                     {'item': m.group(2), 'template': m.group(3)})


def find_text_placeholders(text) -> List[Directive]:
    """Non-overlapping ``{key}`` placeholders, left to right."""
    return [
        Directive(TEXT, m.group(1).strip(), m.group(0), m.span())
        for m in TEXT_PATTERN.finditer(text)
    ]


def is_page_break(text):
    return text.strip() == PAGE_BREAK_DIRECTIVE


def find_format_table(text):
    m = FORMAT_TABLE_PATTERN.search(text)
    if m is None:
        return None
    return Directive(FORMAT_TABLE, m.group(1), m.group(0), m.span())


def find_row_condition(text):
    m = ROW_CONDITION_PATTERN.search(text)
    if m is None:
        return None
    return Directive(ROW_CONDITION, m.group(1), m.group(0), m.span(), {
        'field': m.group(1),
        'operator': m.group(2),
        'value': m.group(3).strip(),
        'style': m.group(4),
    })
