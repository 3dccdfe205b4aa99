"""Helpers that build templates in memory and read generated documents back."""
import io
import zipfile
import xml.etree.ElementTree as ET
import xml.sax.saxutils as saxutils
from unittest.mock import patch

import httpx
from PIL import Image

from json2docx.ooxml import NS_W, W_P, W_T, W_TBL, iter_outside, paragraph_text
from json2docx.package import TemplatePackage

W = f"{{{NS_W}}}"

HEADER_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<w:hdr xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">{body}</w:hdr>'
)
FOOTER_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<w:ftr xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">{body}</w:ftr>'
)


def para(*runs):
    """``<w:p>`` with one run per argument (split runs mimic Word's editing)."""
    parts = ''.join(
        f'<w:r><w:t xml:space="preserve">{saxutils.escape(text)}</w:t></w:r>' for text in runs
    )
    return f'<w:p>{parts}</w:p>'


def table(*rows):
    """``<w:tbl>`` whose rows are lists of cell texts."""
    xml_rows = ''.join(
        '<w:tr>' + ''.join(f'<w:tc>{para(cell)}</w:tc>' for cell in row) + '</w:tr>'
        for row in rows
    )
    return f'<w:tbl><w:tblPr/>{xml_rows}</w:tbl>'


def make_template(body_xml='', headers=None, footers=None):
    """Template bytes; ``headers``/``footers`` map part names to body XML."""
    package = TemplatePackage.blank(body_xml)
    for name, body in (headers or {}).items():
        package.write_part(name, HEADER_XML.format(body=body))
    for name, body in (footers or {}).items():
        package.write_part(name, FOOTER_XML.format(body=body))
    return package.to_bytes()


def read_parts(docx_bytes):
    with zipfile.ZipFile(io.BytesIO(docx_bytes)) as z:
        return {name: z.read(name) for name in z.namelist()}


def part_root(docx_bytes, name='word/document.xml'):
    return ET.fromstring(read_parts(docx_bytes)[name])


def body_texts(docx_bytes):
    """Texts of the body's top-level paragraphs (table contents excluded)."""
    body = part_root(docx_bytes).find(f'{W}body')
    return [paragraph_text(p) for p in iter_outside(body, W_P, W_TBL)]


def all_text(root):
    return ''.join(t.text or '' for t in root.iter(W_T))


def png_bytes(width=4, height=3, color=(255, 0, 0)):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format='PNG')
    return buffer.getvalue()


def serve(handler):
    """Patch ``httpx.Client`` in the image module so every client it opens
    answers through ``handler`` (``httpx.Request -> httpx.Response``).

    The returned mock records the keyword arguments each client was built with.
    """
    real_client = httpx.Client

    def build(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return patch("json2docx.images.httpx.Client", side_effect=build)


def serve_bytes(data, status=200):
    return serve(lambda request: httpx.Response(status, content=data))
