"""
Paragraph processor: applies the first matching directive rule to a
paragraph's concatenated run text and mutates the tree accordingly.

Rule order:
    conditional > table > chart > image > format > loop > text
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime

from . import directives
from .charts import embed_chart
from .conditions import evaluate_condition
from .context import APPLIED, SKIPPED, FAILED
from .exceptions import DocxTemplateError
from .images import fetch_and_embed
from .ooxml import W_P, W_TC, text_elements, write_flattened_text, create_paragraph
from .resolver import resolve, stringify
from .tables import generate_table

logger = logging.getLogger('json2docx')

# Paragraph end states
DELETED = 'deleted'
REPLACED_TABLE = 'replaced-table'
REPLACED_CHART = 'replaced-chart'
REPLACED_IMAGE = 'replaced-image'
REWRITTEN = 'rewritten'
UNCHANGED = 'unchanged'

_LEADING_INT_PATTERN = re.compile(r'^\s*[+-]?\d+')

# Rule handled the paragraph without replacing it
_STOP = object()


class ParagraphProcessor:
    """Dispatches directive rules for the paragraphs of one XML part.

    Args:
        context: GenerationContext of the running call
        index: ParentIndex over the part's root, shared by every paragraph
               processed in that part
    """

    def __init__(self, context, index):
        self.context = context
        self.index = index

    @property
    def data(self):
        return self.context.data

    @property
    def config(self):
        return self.context.config

    def process(self, paragraph):
        """Run the rules against ``paragraph`` and return its end state."""
        if not self.index.is_attached(paragraph):
            return UNCHANGED

        elements = text_elements(paragraph)
        text = ''.join(t.text or '' for t in elements)
        if '{' not in text:
            return UNCHANGED

        text, rewritten = self._apply_conditionals(paragraph, text, elements)
        if text is None:
            return DELETED

        rules = (
            self._apply_table,
            self._apply_chart,
            self._apply_image,
            self._apply_formats,
            self._apply_loop,
            self._apply_text,
        )
        for rule in rules:
            state = rule(paragraph, text, elements)
            if state is _STOP:
                break
            if state is not None:
                return state

        return REWRITTEN if rewritten else UNCHANGED

    # ------------------------------------------------------------------
    # Rules

    def _apply_conditionals(self, paragraph, text, elements):
        """Resolve every ``{#if}`` block in order.

        Returns:
            tuple: (text, rewritten); text is None once the paragraph is deleted
        """
        found = False
        pos = 0
        while True:
            directive = directives.next_conditional(text, pos)
            if directive is None:
                break
            found = True
            condition = directive.params['condition']

            if not evaluate_condition(condition, self.data):
                self._remove(paragraph)
                self.context.record(directives.CONDITIONAL, condition, APPLIED, 'condition false; paragraph removed')
                return None, False

            start, end = directive.span
            content = directive.params['content']
            text = text[:start] + content + text[end:]
            pos = start + len(content)
            self.context.record(directives.CONDITIONAL, condition, APPLIED)

        if found:
            write_flattened_text(paragraph, text, elements)
        return text, found

    def _apply_table(self, paragraph, text, elements):
        directive = directives.find_table(text)
        if directive is None:
            return None

        key = directive.key
        rows = resolve(key, self.data)
        if not isinstance(rows, list) or not rows:
            self.context.record(directives.TABLE, key, SKIPPED, 'no list data')
            return _STOP

        try:
            table = generate_table(rows, self.config)
        except DocxTemplateError as e:
            self.context.record(directives.TABLE, key, FAILED, str(e))
            return _STOP

        parent = self.index.parent_of(paragraph)
        self.index.replace(paragraph, table)
        if parent is not None and parent.tag == W_TC:
            # A cell must end with a paragraph
            self.index.insert_after(table, create_paragraph())

        logger.info("Table added for key: %s", key)
        self.context.record(directives.TABLE, key, APPLIED)
        return REPLACED_TABLE

    def _apply_chart(self, paragraph, text, elements):
        directive = directives.find_chart(text)
        if directive is None:
            return None

        key = directive.key
        rows = resolve(key, self.data)
        if not isinstance(rows, list) or not rows:
            self.context.record(directives.CHART, key, SKIPPED, 'no list data')
            return _STOP

        try:
            chart = embed_chart(
                directive.params['chart_type'], rows, directive.params['title'], self.context
            )
        except DocxTemplateError as e:
            self.context.record(directives.CHART, key, FAILED, str(e))
            return _STOP

        self.index.replace(paragraph, chart)
        self.context.record(directives.CHART, key, APPLIED)
        return REPLACED_CHART

    def _apply_image(self, paragraph, text, elements):
        directive = directives.find_image(text)
        if directive is None:
            return None

        key = directive.key
        url = resolve(key, self.data)
        if not url or not isinstance(url, str):
            self.context.record(directives.IMAGE, key, SKIPPED, 'no image URL')
            return _STOP

        width = self._dimension(f'{key}.width', self.config.IMAGE_DEFAULT_WIDTH)
        height = self._dimension(f'{key}.height', self.config.IMAGE_DEFAULT_HEIGHT)

        try:
            picture = fetch_and_embed(url, width, height, self.context)
        except DocxTemplateError as e:
            self.context.record(directives.IMAGE, key, FAILED, str(e))
            return _STOP

        self.index.replace(paragraph, picture)
        self.context.record(directives.IMAGE, key, APPLIED)
        return REPLACED_IMAGE

    def _apply_formats(self, paragraph, text, elements):
        found = directives.find_formats(text)
        if not found:
            return None

        formatted = text
        for directive in found:
            value = resolve(directive.key, self.data)
            formatted = formatted.replace(
                directive.raw, format_value(value, directive.params['style']), 1
            )
            self.context.record(directives.FORMAT, directive.key, APPLIED)

        if formatted == text:
            return None
        write_flattened_text(paragraph, formatted, elements)
        return REWRITTEN

    def _apply_loop(self, paragraph, text, elements):
        directive = directives.find_loop(text)
        if directive is None:
            return None

        items = resolve(directive.key, self.data)
        if not isinstance(items, list) or not items:
            self.context.record(directives.LOOP, directive.key, SKIPPED, 'no list data')
            return None

        rendered = render_loop(directive.params['template'], directive.params['item'], items)
        # Text around the block is kept
        start, end = directive.span
        write_flattened_text(paragraph, text[:start] + rendered + text[end:], elements)
        self.context.record(directives.LOOP, directive.key, APPLIED)
        return REWRITTEN

    def _apply_text(self, paragraph, text, elements):
        placeholders = directives.find_text_placeholders(text)
        if not placeholders:
            return None

        pieces = []
        last = 0
        for directive in placeholders:
            start, end = directive.span
            value = resolve(directive.key, self.data)
            pieces.append(text[last:start])
            pieces.append(stringify(value))
            last = end
            if value == '':
                self.context.record(directives.TEXT, directive.key, SKIPPED, 'unresolved')
            else:
                self.context.record(directives.TEXT, directive.key, APPLIED)
        pieces.append(text[last:])

        write_flattened_text(paragraph, ''.join(pieces), elements)
        return REWRITTEN

    # ------------------------------------------------------------------
    # Helpers

    def _remove(self, paragraph):
        parent = self.index.parent_of(paragraph)
        self.index.remove(paragraph)
        if parent is not None and parent.tag == W_TC and parent.find(W_P) is None:
            parent.append(create_paragraph())

    def _dimension(self, path, default):
        """Leading integer of the value at ``path``; ``default`` when absent,
        unparseable or not positive."""
        value = resolve(path, self.data)
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            number = int(value)
        else:
            match = _LEADING_INT_PATTERN.match(str(value))
            if match is None:
                return default
            number = int(match.group(0))
        return number if number > 0 else default


def render_loop(template, item_name, items):
    """Render ``template`` once per element, replacing ``{<item>.<prop>}``."""
    pattern = re.compile(r'\{' + re.escape(item_name) + r'\.(\w+)\}')
    rendered = []
    for item in items:
        def lookup(match, item=item):
            if isinstance(item, Mapping):
                return stringify(item.get(match.group(1)))
            return ''
        rendered.append(pattern.sub(lookup, template))
    return ''.join(rendered)


def format_value(value, style):
    """Stringify ``value`` for a ``{format:key:style}`` directive.

    ``date`` renders ISO dates as dd/MM/yyyy and ``number`` as #,##0.00;
    other styles (and values those cannot parse) use plain stringification.
    """
    if style == 'date':
        formatted = _format_date(value)
        if formatted is not None:
            return formatted
    elif style == 'number':
        formatted = _format_number(value)
        if formatted is not None:
            return formatted
    return stringify(value)


def _format_date(value):
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y')
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).strftime('%d/%m/%Y')
    except ValueError:
        return None


def _format_number(value):
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return f'{number:,.2f}'
