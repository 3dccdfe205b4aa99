"""
WordprocessingML namespaces and ElementTree helpers shared by the
paragraph, table, image, chart and watermark handlers.
"""

import xml.etree.ElementTree as ET

# XML Namespaces for WordprocessingML packages
NS_W = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'
NS_R = 'http://schemas.openxmlformats.org/officeDocument/2006/relationships'
NS_WP = 'http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing'
NS_A = 'http://schemas.openxmlformats.org/drawingml/2006/main'
NS_PIC = 'http://schemas.openxmlformats.org/drawingml/2006/picture'
NS_C = 'http://schemas.openxmlformats.org/drawingml/2006/chart'
NS_WPS = 'http://schemas.microsoft.com/office/word/2010/wordprocessingShape'
NS_A14 = 'http://schemas.microsoft.com/office/drawing/2010/main'
NS_MC = 'http://schemas.openxmlformats.org/markup-compatibility/2006'
NS_XML = 'http://www.w3.org/XML/1998/namespace'

NS_CONTENT_TYPES = 'http://schemas.openxmlformats.org/package/2006/content-types'
NS_PACKAGE_RELS = 'http://schemas.openxmlformats.org/package/2006/relationships'

RELTYPE_IMAGE = f'{NS_R}/image'
RELTYPE_CHART = f'{NS_R}/chart'
RELTYPE_STYLES = f'{NS_R}/styles'
RELTYPE_OFFICE_DOCUMENT = f'{NS_R}/officeDocument'

URI_PICTURE = NS_PIC
URI_CHART = NS_C
URI_WORDPROCESSING_SHAPE = NS_WPS
URI_USE_LOCAL_DPI = '{28A0092B-C50C-407E-A947-70E740481C1C}'

# Prefixes WordprocessingML consumers expect; registered so serialization
# never falls back to ns0/ns1.
STANDARD_PREFIXES = {
    'w': NS_W,
    'r': NS_R,
    'wp': NS_WP,
    'a': NS_A,
    'pic': NS_PIC,
    'c': NS_C,
    'wps': NS_WPS,
    'a14': NS_A14,
    'mc': NS_MC,
    'w14': 'http://schemas.microsoft.com/office/word/2010/wordml',
    'w15': 'http://schemas.microsoft.com/office/word/2012/wordml',
    'wp14': 'http://schemas.microsoft.com/office/word/2010/wordprocessingDrawing',
    'v': 'urn:schemas-microsoft-com:vml',
    'o': 'urn:schemas-microsoft-com:office:office',
    'w10': 'urn:schemas-microsoft-com:office:word',
    'm': 'http://schemas.openxmlformats.org/officeDocument/2006/math',
}

for _prefix, _uri in STANDARD_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)


def w(tag):
    """Qualified WordprocessingML tag name."""
    return f'{{{NS_W}}}{tag}'


W_P = w('p')
W_R = w('r')
W_T = w('t')
W_TBL = w('tbl')
W_TR = w('tr')
W_TC = w('tc')
W_BODY = w('body')
XML_SPACE = f'{{{NS_XML}}}space'


# --- XML Element Builder Helpers ---

def make_elem(ns, tag, attrib=None, text=None):
    """Create XML element with namespace."""
    elem = ET.Element(f'{{{ns}}}{tag}', attrib or {})
    if text is not None:
        elem.text = str(text)
    return elem


def add_elem(parent, ns, tag, attrib=None, text=None):
    """Add child element to parent."""
    elem = ET.SubElement(parent, f'{{{ns}}}{tag}', attrib or {})
    if text is not None:
        elem.text = str(text)
    return elem


def w_attrs(**attrs):
    """Build a ``w:``-qualified attribute dict: ``w_attrs(val='single')``."""
    return {w(name): str(value) for name, value in attrs.items()}


def set_text(t_elem, text):
    """Set a ``w:t`` text, preserving leading/trailing whitespace."""
    t_elem.text = text
    if text and text != text.strip():
        t_elem.set(XML_SPACE, 'preserve')
    elif XML_SPACE in t_elem.attrib and not text:
        del t_elem.attrib[XML_SPACE]


def create_text_run(text, bold=False):
    """Create a ``w:r`` holding ``text``, optionally bold."""
    run = make_elem(NS_W, 'r')
    if bold:
        r_pr = add_elem(run, NS_W, 'rPr')
        add_elem(r_pr, NS_W, 'b')
    set_text(add_elem(run, NS_W, 't'), text)
    return run


def create_paragraph(text=None):
    paragraph = make_elem(NS_W, 'p')
    if text is not None:
        paragraph.append(create_text_run(text))
    return paragraph


def create_page_break_paragraph():
    """Paragraph containing a single ``<w:br w:type="page"/>`` run."""
    paragraph = make_elem(NS_W, 'p')
    run = add_elem(paragraph, NS_W, 'r')
    add_elem(run, NS_W, 'br', w_attrs(type='page'))
    return paragraph


# --- Paragraph Text Access ---

def text_elements(paragraph):
    """All ``w:t`` nodes of the paragraph's runs, in document order."""
    elements = []
    for run in paragraph.iter(W_R):
        elements.extend(run.iter(W_T))
    return elements


def paragraph_text(paragraph):
    return ''.join(t.text or '' for t in text_elements(paragraph))


def cell_text(cell):
    if cell is None:
        return ''
    return ''.join(paragraph_text(p) for p in cell.iter(W_P))


def write_flattened_text(paragraph, text, elements=None):
    """Put ``text`` into the first text node and clear the others.

    A paragraph without any text node gets a new run appended.
    """
    if elements is None:
        elements = text_elements(paragraph)
    if not elements:
        paragraph.append(create_text_run(text))
        return
    set_text(elements[0], text)
    for t_elem in elements[1:]:
        set_text(t_elem, '')


def insert_in_order(parent, child, successors):
    """Insert ``child`` before the first existing child whose local name is in
    ``successors``; append otherwise. Keeps CT_* sequence ordering valid."""
    for index, existing in enumerate(list(parent)):
        if local_name(existing.tag) in successors:
            parent.insert(index, child)
            return child
    parent.append(child)
    return child


def get_or_create_first(parent, tag):
    """Return the ``w:<tag>`` child, creating it as the first child."""
    existing = parent.find(w(tag))
    if existing is not None:
        return existing
    elem = make_elem(NS_W, tag)
    parent.insert(0, elem)
    return elem


def local_name(tag):
    if isinstance(tag, str) and tag.startswith('{'):
        return tag.split('}', 1)[1]
    return tag


def iter_outside(root, tag, boundary):
    """Yield ``tag`` descendants of ``root`` that are not nested inside a
    ``boundary`` element below ``root``."""
    for child in root:
        if child.tag == tag:
            yield child
        if child.tag == boundary:
            continue
        yield from iter_outside(child, tag, boundary)


class ParentIndex:
    """Child -> parent lookup for ElementTree, which has no parent pointers.

    Built once per tree before mutation. Replacements and removals made
    through the index keep it current.
    """

    def __init__(self, root):
        self.root = root
        self._parents = {child: parent for parent in root.iter() for child in parent}
        self._detached = set()

    def parent_of(self, elem):
        return self._parents.get(elem)

    def is_attached(self, elem):
        """True when ``elem`` is still reachable from the root."""
        current = elem
        while current is not None:
            if current is self.root:
                return True
            if current in self._detached:
                return False
            current = self._parents.get(current)
        return False

    def replace(self, old, new):
        parent = self._parents.get(old)
        if parent is None:
            return False
        index = list(parent).index(old)
        parent.remove(old)
        parent.insert(index, new)
        self._detached.add(old)
        self._index_subtree(parent, new)
        return True

    def insert_after(self, anchor, new):
        parent = self._parents.get(anchor)
        if parent is None:
            return False
        index = list(parent).index(anchor)
        parent.insert(index + 1, new)
        self._index_subtree(parent, new)
        return True

    def remove(self, elem):
        parent = self._parents.get(elem)
        if parent is None:
            return False
        parent.remove(elem)
        del self._parents[elem]
        self._detached.add(elem)
        return True

    def _index_subtree(self, parent, elem):
        self._parents[elem] = parent
        self._detached.discard(elem)
        for node in elem.iter():
            for child in node:
                self._parents[child] = node
                self._detached.discard(child)
