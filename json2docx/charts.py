"""
Chart builder: renders ``{label, value}`` rows as a DrawingML chart part and
embeds it inline.
"""

import logging
import posixpath
import xml.etree.ElementTree as ET
from collections.abc import Mapping

from .config import DEFAULT_CONFIG
from .exceptions import ChartError
from .images import create_inline_drawing_paragraph
from .ooxml import NS_A, NS_C, NS_R, URI_CHART, RELTYPE_CHART, make_elem, add_elem
from .package import XML_DECLARATION
from .resolver import stringify

logger = logging.getLogger('json2docx')

CHART_TYPES = ('bar', 'line', 'pie')
CHART_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.drawingml.chart+xml'

CAT_AX_ID = '42'
VAL_AX_ID = '43'


def build_chart_part(chart_type, rows, title=None, config=None):
    """Serialize a chart-space part for ``rows``.

    Args:
        chart_type: ``bar``, ``line`` or ``pie``
        rows: List of mappings with ``label`` and ``value`` keys
        title: Chart title (config default when empty)

    Returns:
        bytes: UTF-8 chart XML with declaration

    Raises:
        ChartError: On an unsupported type or empty/invalid data
    """
    root = build_chart_space(chart_type, rows, title, config)
    return (XML_DECLARATION + ET.tostring(root, encoding='unicode')).encode('utf-8')


def build_chart_space(chart_type, rows, title=None, config=None):
    config = config or DEFAULT_CONFIG

    if chart_type not in CHART_TYPES:
        raise ChartError(f"Unsupported chart type '{chart_type}'")
    if not isinstance(rows, list) or not rows:
        raise ChartError("Chart data is empty")

    categories = []
    values = []
    for row in rows:
        if not isinstance(row, Mapping):
            raise ChartError("Chart rows must be objects with label and value")
        categories.append(stringify(row.get('label')))
        values.append(_chart_value(row.get('value')))

    chart_space = make_elem(NS_C, 'chartSpace')
    add_elem(chart_space, NS_C, 'roundedCorners', {'val': '0'})
    chart = add_elem(chart_space, NS_C, 'chart')
    _add_title(chart, title or config.CHART_DEFAULT_TITLE)
    add_elem(chart, NS_C, 'autoTitleDeleted', {'val': '0'})

    plot_area = add_elem(chart, NS_C, 'plotArea')
    add_elem(plot_area, NS_C, 'layout')

    if chart_type == 'bar':
        group = add_elem(plot_area, NS_C, 'barChart')
        add_elem(group, NS_C, 'barDir', {'val': 'col'})
        add_elem(group, NS_C, 'grouping', {'val': 'clustered'})
        add_elem(group, NS_C, 'varyColors', {'val': '0'})
        _add_series(group, chart_type, categories, values, config.CHART_SERIES_NAME)
        _add_data_labels(group, show_category=False)
        add_elem(group, NS_C, 'gapWidth', {'val': '150'})
    elif chart_type == 'line':
        group = add_elem(plot_area, NS_C, 'lineChart')
        add_elem(group, NS_C, 'grouping', {'val': 'standard'})
        add_elem(group, NS_C, 'varyColors', {'val': '0'})
        _add_series(group, chart_type, categories, values, config.CHART_SERIES_NAME)
        add_elem(group, NS_C, 'marker', {'val': '1'})
    else:
        group = add_elem(plot_area, NS_C, 'pieChart')
        add_elem(group, NS_C, 'varyColors', {'val': '1'})
        _add_series(group, chart_type, categories, values, config.CHART_SERIES_NAME)
        _add_data_labels(group, show_category=True)
        add_elem(group, NS_C, 'firstSliceAng', {'val': '0'})

    # Pie charts have no axes
    if chart_type != 'pie':
        add_elem(group, NS_C, 'axId', {'val': CAT_AX_ID})
        add_elem(group, NS_C, 'axId', {'val': VAL_AX_ID})
        _add_axis(plot_area, 'catAx', CAT_AX_ID, VAL_AX_ID, 'b')
        _add_axis(plot_area, 'valAx', VAL_AX_ID, CAT_AX_ID, 'l')

    legend = add_elem(chart, NS_C, 'legend')
    add_elem(legend, NS_C, 'legendPos', {'val': 'r'})
    add_elem(legend, NS_C, 'overlay', {'val': '0'})
    add_elem(chart, NS_C, 'plotVisOnly', {'val': '1'})
    add_elem(chart, NS_C, 'dispBlanksAs', {'val': 'gap'})

    return chart_space


def embed_chart(chart_type, rows, title, context, width=None, height=None):
    """Store a chart part, relate it to the current part and return the
    inline drawing paragraph."""
    config = context.config
    package = context.package

    data = build_chart_part(chart_type, rows, title, config)
    rels = package.relationships_for(context.part_name)

    while True:
        number = context.next_chart_number()
        r_id = f'rId{config.CHART_REL_ID_BASE + number}'
        chart_part = f'word/charts/chart{number}.xml'
        if not package.has_part(chart_part) and not rels.has_id(r_id):
            break

    package.write_part(chart_part, data)
    target = posixpath.relpath(chart_part, posixpath.dirname(context.part_name))
    rels.add(r_id, RELTYPE_CHART, target)
    package.content_types.ensure_override(chart_part, CHART_CONTENT_TYPE)

    logger.info("Chart added: %s, ID: %s", chart_part, r_id)

    cx = int(width or config.CHART_DEFAULT_WIDTH) * config.EMU_PER_PX
    cy = int(height or config.CHART_DEFAULT_HEIGHT) * config.EMU_PER_PX
    doc_pr_id = config.CHART_REL_ID_BASE + number
    paragraph, graphic = create_inline_drawing_paragraph(
        cx, cy, doc_pr_id, f'Chart {number}', title or config.CHART_DEFAULT_TITLE
    )
    graphic_data = add_elem(graphic, NS_A, 'graphicData', {'uri': URI_CHART})
    add_elem(graphic_data, NS_C, 'chart', {f'{{{NS_R}}}id': r_id})
    return paragraph


# --- Chart XML pieces ---

def _chart_value(value):
    if value is None or value == '':
        return 0
    if isinstance(value, bool):
        raise ChartError(f"Chart value must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ChartError(f"Chart value must be numeric, got {value!r}")


def _add_rich_text(parent, text):
    tx = add_elem(parent, NS_C, 'tx')
    rich = add_elem(tx, NS_C, 'rich')
    add_elem(rich, NS_A, 'bodyPr')
    add_elem(rich, NS_A, 'lstStyle')
    p = add_elem(rich, NS_A, 'p')
    p_pr = add_elem(p, NS_A, 'pPr')
    add_elem(p_pr, NS_A, 'defRPr')
    r = add_elem(p, NS_A, 'r')
    add_elem(r, NS_A, 'rPr', {'lang': 'en-US'})
    add_elem(r, NS_A, 't', text=text)


def _add_title(chart, text):
    title = add_elem(chart, NS_C, 'title')
    _add_rich_text(title, text)
    add_elem(title, NS_C, 'overlay', {'val': '0'})


def _add_series(group, chart_type, categories, values, series_name):
    ser = add_elem(group, NS_C, 'ser')
    add_elem(ser, NS_C, 'idx', {'val': '0'})
    add_elem(ser, NS_C, 'order', {'val': '0'})

    tx = add_elem(ser, NS_C, 'tx')
    _add_str_cache(add_elem(tx, NS_C, 'strRef'), [series_name])

    if chart_type == 'bar':
        add_elem(ser, NS_C, 'invertIfNegative', {'val': '0'})
    elif chart_type == 'line':
        marker = add_elem(ser, NS_C, 'marker')
        add_elem(marker, NS_C, 'symbol', {'val': 'circle'})
        add_elem(marker, NS_C, 'size', {'val': '5'})

    cat = add_elem(ser, NS_C, 'cat')
    _add_str_cache(add_elem(cat, NS_C, 'strRef'), categories)

    val = add_elem(ser, NS_C, 'val')
    num_ref = add_elem(val, NS_C, 'numRef')
    num_cache = add_elem(num_ref, NS_C, 'numCache')
    add_elem(num_cache, NS_C, 'formatCode', text='General')
    add_elem(num_cache, NS_C, 'ptCount', {'val': str(len(values))})
    for i, value in enumerate(values):
        pt = add_elem(num_cache, NS_C, 'pt', {'idx': str(i)})
        add_elem(pt, NS_C, 'v', text=stringify(value))

    if chart_type == 'line':
        add_elem(ser, NS_C, 'smooth', {'val': '0'})
    return ser


def _add_str_cache(str_ref, items):
    cache = add_elem(str_ref, NS_C, 'strCache')
    add_elem(cache, NS_C, 'ptCount', {'val': str(len(items))})
    for i, item in enumerate(items):
        pt = add_elem(cache, NS_C, 'pt', {'idx': str(i)})
        add_elem(pt, NS_C, 'v', text=item)


def _add_data_labels(group, show_category):
    d_lbls = add_elem(group, NS_C, 'dLbls')
    add_elem(d_lbls, NS_C, 'showLegendKey', {'val': '0'})
    add_elem(d_lbls, NS_C, 'showVal', {'val': '0'})
    add_elem(d_lbls, NS_C, 'showCatName', {'val': '1' if show_category else '0'})
    add_elem(d_lbls, NS_C, 'showSerName', {'val': '0'})
    add_elem(d_lbls, NS_C, 'showPercent', {'val': '0'})
    add_elem(d_lbls, NS_C, 'showBubbleSize', {'val': '0'})


def _add_axis(plot_area, tag, ax_id, cross_ax_id, position):
    axis = add_elem(plot_area, NS_C, tag)
    add_elem(axis, NS_C, 'axId', {'val': ax_id})
    scaling = add_elem(axis, NS_C, 'scaling')
    add_elem(scaling, NS_C, 'orientation', {'val': 'minMax'})
    add_elem(axis, NS_C, 'delete', {'val': '0'})
    add_elem(axis, NS_C, 'axPos', {'val': position})
    add_elem(axis, NS_C, 'numFmt', {'formatCode': 'General', 'sourceLinked': '1'})
    add_elem(axis, NS_C, 'majorTickMark', {'val': 'out'})
    add_elem(axis, NS_C, 'minorTickMark', {'val': 'none'})
    add_elem(axis, NS_C, 'tickLblPos', {'val': 'nextTo'})
    add_elem(axis, NS_C, 'crossAx', {'val': cross_ax_id})
    add_elem(axis, NS_C, 'crosses', {'val': 'autoZero'})
    if tag == 'catAx':
        add_elem(axis, NS_C, 'auto', {'val': '1'})
        add_elem(axis, NS_C, 'lblAlgn', {'val': 'ctr'})
        add_elem(axis, NS_C, 'lblOffset', {'val': '100'})
    else:
        add_elem(axis, NS_C, 'crossBetween', {'val': 'between'})
    return axis
