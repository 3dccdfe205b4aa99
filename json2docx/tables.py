"""
Table builder and formatter: synthesizes a ``w:tbl`` from a list of
mappings and applies conditional row styling to template tables.
"""

import logging
from collections.abc import Mapping

from .conditions import evaluate_row_condition
from .context import APPLIED, SKIPPED
from .directives import FORMAT_TABLE, ROW_CONDITION, find_format_table, find_row_condition
from .exceptions import EmptyTableDataError
from .ooxml import (
    NS_W, W_P, W_TBL, W_TR, W_TC, W_R,
    make_elem, add_elem, w_attrs, w, create_text_run, cell_text,
    text_elements, write_flattened_text, insert_in_order, get_or_create_first, iter_outside,
)
from .resolver import resolve, stringify

logger = logging.getLogger('json2docx')

BORDER_EDGES = ('top', 'left', 'bottom', 'right', 'insideH', 'insideV')

# Elements that must follow w:shd inside w:tcPr (CT_TcPr sequence)
_TC_PR_AFTER_SHD = ('noWrap', 'tcMar', 'textDirection', 'tcFitText', 'vAlign', 'hideMark',
                    'headers', 'cellIns', 'cellDel', 'cellMerge', 'tcPrChange')
# Elements that must follow w:b inside w:rPr (CT_RPr sequence)
_R_PR_AFTER_B = ('bCs', 'i', 'iCs', 'caps', 'smallCaps', 'strike', 'dstrike', 'outline',
                 'shadow', 'emboss', 'imprint', 'noProof', 'snapToGrid', 'vanish',
                 'webHidden', 'color', 'spacing', 'w', 'kern', 'position', 'sz', 'szCs',
                 'highlight', 'u', 'effect', 'bdr', 'shd', 'fitText', 'vertAlign', 'rtl',
                 'cs', 'em', 'lang', 'eastAsianLayout', 'specVanish', 'oMath')


def generate_table(rows, config):
    """Build a table from a list of mappings.

    Columns are the keys of the first element, in order. Every row uses that
    column set; missing keys render as empty cells.

    Raises:
        EmptyTableDataError: If ``rows`` is empty or its first element has no keys
    """
    if not rows:
        raise EmptyTableDataError("Table data is empty or invalid")
    first = rows[0]
    if not isinstance(first, Mapping) or not first:
        raise EmptyTableDataError("First table row must be a non-empty mapping")

    columns = list(first.keys())

    table = make_elem(NS_W, 'tbl')
    tbl_pr = add_elem(table, NS_W, 'tblPr')
    add_elem(tbl_pr, NS_W, 'tblStyle', w_attrs(val=config.TABLE_STYLE))
    add_elem(tbl_pr, NS_W, 'tblW', w_attrs(w=0, type='auto'))

    borders = add_elem(tbl_pr, NS_W, 'tblBorders')
    for edge in BORDER_EDGES:
        add_elem(borders, NS_W, edge, w_attrs(
            val=config.TABLE_BORDER_TYPE,
            sz=config.TABLE_BORDER_SIZE,
            space=0,
            color=config.TABLE_BORDER_COLOR,
        ))

    grid = add_elem(table, NS_W, 'tblGrid')
    for _ in columns:
        add_elem(grid, NS_W, 'gridCol', w_attrs(w=config.TABLE_COLUMN_WIDTH))

    table.append(create_table_row([str(c) for c in columns], is_header=True))
    for row in rows:
        if isinstance(row, Mapping):
            values = [stringify(row.get(col)) for col in columns]
        else:
            values = [''] * len(columns)
        table.append(create_table_row(values, is_header=False))

    return table


def create_table_row(values, is_header):
    tr = make_elem(NS_W, 'tr')
    for value in values:
        tc = add_elem(tr, NS_W, 'tc')
        add_elem(tc, NS_W, 'tcPr')
        p = add_elem(tc, NS_W, 'p')
        p.append(create_text_run(value, bold=is_header))
    return tr


def table_rows(table):
    """Direct ``w:tr`` rows of a table (nested tables excluded)."""
    return table.findall(W_TR)


def first_cell(row):
    return row.find(W_TC)


def bind_format_table(table, context, index=None):
    """Handle a ``{format-table:<key>}`` directive in the first cell.

    A directive-only header row is dropped, through ``index`` when given.

    Returns:
        list or None: The bound data rows, when the directive resolved to a list
    """
    rows = table_rows(table)
    if not rows:
        return None

    header_row = rows[0]
    text = cell_text(first_cell(header_row))
    directive = find_format_table(text)
    if directive is None:
        return None

    data = resolve(directive.key, context.data) if directive.key else None
    if not isinstance(data, list):
        context.record(FORMAT_TABLE, directive.key, SKIPPED, 'key did not resolve to a list')
        return None

    if directive.raw == text.strip():
        if index is None or not index.remove(header_row):
            table.remove(header_row)
    context.record(FORMAT_TABLE, directive.key, APPLIED)
    return data


def apply_table_formatting(table, rows_data, config, context=None):
    """Apply ``{if:<field><op><value>}<style>{/if}`` rules row by row.

    Row ``i`` (header row 0 skipped) is tested against ``rows_data[i-1]``.
    The directive text is removed from the cell whatever the outcome.
    """
    for index, row in enumerate(table_rows(table)):
        if index == 0 or index > len(rows_data):
            continue

        cell = first_cell(row)
        directive = find_row_condition(cell_text(cell))
        if directive is None:
            continue

        params = directive.params
        matched = evaluate_row_condition(
            rows_data[index - 1], params['field'], params['operator'], params['value']
        )
        if matched:
            apply_row_style(row, params['style'], config)
        _strip_directive(cell, directive.raw)

        if context is not None:
            status = APPLIED if matched else SKIPPED
            context.record(ROW_CONDITION, f"{params['field']}{params['operator']}{params['value']}", status)


def apply_row_style(row, style, config):
    """Apply ``highlight``/``red``/``green`` shading or ``bold`` to every cell."""
    fill = config.ROW_STYLE_FILLS.get(style)
    if fill is None and style != 'bold':
        logger.debug("Unknown row style '%s' ignored", style)
        return False

    for cell in row.findall(W_TC):
        if fill is not None:
            tc_pr = get_or_create_first(cell, 'tcPr')
            for old in tc_pr.findall(w('shd')):
                tc_pr.remove(old)
            shd = make_elem(NS_W, 'shd', w_attrs(val='clear', color='auto', fill=fill))
            insert_in_order(tc_pr, shd, _TC_PR_AFTER_SHD)
        else:
            for run in cell.iter(W_R):
                r_pr = get_or_create_first(run, 'rPr')
                if r_pr.find(w('b')) is None:
                    insert_in_order(r_pr, make_elem(NS_W, 'b'), _R_PR_AFTER_B)
    return True


def _strip_directive(cell, raw):
    for paragraph in cell.iter(w('p')):
        elements = text_elements(paragraph)
        text = ''.join(t.text or '' for t in elements)
        if raw in text:
            write_flattened_text(paragraph, text.replace(raw, '', 1), elements)
            return


def process_table(table, context, processor):
    """Bind row formatting, then run every paragraph of this table (nested
    tables excluded) through ``processor.process``."""
    rows_data = bind_format_table(table, context, processor.index)
    if rows_data is not None:
        apply_table_formatting(table, rows_data, context.config, context)

    for paragraph in list(iter_outside(table, W_P, W_TBL)):
        processor.process(paragraph)
