"""
Text watermark: a rotated, behind-text WordprocessingShape text box anchored
to the page from each header part.
"""

import logging

from .ooxml import (
    NS_W, NS_WP, NS_A, NS_WPS, URI_WORDPROCESSING_SHAPE,
    make_elem, add_elem, w_attrs, set_text,
)

logger = logging.getLogger('json2docx')

# 60000ths of a degree per degree (DrawingML rotation unit)
ROTATION_UNITS_PER_DEGREE = 60000


def add_watermark(header_root, text, config, doc_pr_id):
    """Insert the watermark paragraph as the first child of ``header_root``."""
    paragraph = create_watermark_paragraph(text, config, doc_pr_id)
    header_root.insert(0, paragraph)
    return paragraph


def create_watermark_paragraph(text, config, doc_pr_id):
    width = str(config.WATERMARK_WIDTH_EMU)
    height = str(config.WATERMARK_HEIGHT_EMU)

    paragraph = make_elem(NS_W, 'p')
    run = add_elem(paragraph, NS_W, 'r')
    r_pr = add_elem(run, NS_W, 'rPr')
    add_elem(r_pr, NS_W, 'noProof')
    drawing = add_elem(run, NS_W, 'drawing')

    anchor = add_elem(drawing, NS_WP, 'anchor', {
        'distT': '0', 'distB': '0', 'distL': '0', 'distR': '0',
        'simplePos': '0', 'relativeHeight': '251658240', 'behindDoc': '1',
        'locked': '0', 'layoutInCell': '1', 'allowOverlap': '1',
    })
    add_elem(anchor, NS_WP, 'simplePos', {'x': '0', 'y': '0'})
    for axis in ('positionH', 'positionV'):
        position = add_elem(anchor, NS_WP, axis, {'relativeFrom': 'page'})
        add_elem(position, NS_WP, 'posOffset', text='0')
    add_elem(anchor, NS_WP, 'extent', {'cx': width, 'cy': height})
    add_elem(anchor, NS_WP, 'effectExtent', {'l': '0', 't': '0', 'r': '0', 'b': '0'})
    add_elem(anchor, NS_WP, 'wrapNone')
    add_elem(anchor, NS_WP, 'docPr', {'id': str(doc_pr_id), 'name': f'Watermark {doc_pr_id}', 'descr': 'Watermark'})
    frame_pr = add_elem(anchor, NS_WP, 'cNvGraphicFramePr')
    add_elem(frame_pr, NS_A, 'graphicFrameLocks', {'noChangeAspect': '0'})

    graphic = add_elem(anchor, NS_A, 'graphic')
    graphic_data = add_elem(graphic, NS_A, 'graphicData', {'uri': URI_WORDPROCESSING_SHAPE})
    shape = add_elem(graphic_data, NS_WPS, 'wsp')
    add_elem(shape, NS_WPS, 'cNvSpPr', {'txBox': '1'})

    sp_pr = add_elem(shape, NS_WPS, 'spPr')
    xfrm = add_elem(sp_pr, NS_A, 'xfrm', {'rot': str(int(config.WATERMARK_ANGLE * ROTATION_UNITS_PER_DEGREE))})
    add_elem(xfrm, NS_A, 'off', {'x': '0', 'y': '0'})
    add_elem(xfrm, NS_A, 'ext', {'cx': width, 'cy': height})
    prst_geom = add_elem(sp_pr, NS_A, 'prstGeom', {'prst': 'rect'})
    add_elem(prst_geom, NS_A, 'avLst')
    add_elem(sp_pr, NS_A, 'noFill')
    ln = add_elem(sp_pr, NS_A, 'ln')
    add_elem(ln, NS_A, 'noFill')

    txbx = add_elem(shape, NS_WPS, 'txbx')
    content = add_elem(txbx, NS_W, 'txbxContent')
    text_p = add_elem(content, NS_W, 'p')
    text_r = add_elem(text_p, NS_W, 'r')
    text_r_pr = add_elem(text_r, NS_W, 'rPr')
    half_points = config.WATERMARK_FONT_SIZE * 2
    add_elem(text_r_pr, NS_W, 'color', w_attrs(val=config.WATERMARK_COLOR))
    add_elem(text_r_pr, NS_W, 'sz', w_attrs(val=half_points))
    add_elem(text_r_pr, NS_W, 'szCs', w_attrs(val=half_points))
    set_text(add_elem(text_r, NS_W, 't'), text)

    add_elem(shape, NS_WPS, 'bodyPr', {'wrap': 'none', 'anchor': 'ctr'})

    logger.debug("Watermark paragraph built for '%s'", text)
    return paragraph


def used_drawing_ids(roots):
    """Numeric ``wp:docPr`` ids already present under any of ``roots``."""
    used = set()
    for root in roots:
        if root is None:
            continue
        for doc_pr in root.iter(f'{{{NS_WP}}}docPr'):
            value = doc_pr.get('id', '')
            if value.isdigit():
                used.add(int(value))
    return used
