"""
Template package I/O: unpacks the OOXML ZIP archive, parses XML parts while
preserving their namespace declarations, keeps the content-type and
relationship manifests consistent, and repacks the archive.
"""

import copy
import io
import logging
import os
import posixpath
import re
import zipfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timezone

from .config import DEFAULT_CONFIG
from .exceptions import TemplateError, MissingPartError, SecurityError
from .ooxml import (
    NS_CONTENT_TYPES, NS_PACKAGE_RELS, RELTYPE_OFFICE_DOCUMENT, RELTYPE_STYLES,
    make_elem, add_elem,
)

logger = logging.getLogger('json2docx')

CONTENT_TYPES_PART = '[Content_Types].xml'
DOCUMENT_PART = 'word/document.xml'
RELS_CONTENT_TYPE = 'application/vnd.openxmlformats-package.relationships+xml'
MAIN_DOCUMENT_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml'
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

_ROOT_TAG_PATTERN = re.compile(
    r'<(?![?!])[^\s>/]+(?:\s+[^\s=>/]+\s*=\s*(?:"[^"]*"|\'[^\']*\'))*\s*/?>'
)
_XMLNS_PATTERN = re.compile(r'xmlns(?::([\w.-]+))?\s*=\s*("[^"]*"|\'[^\']*\')')


@dataclass
class _XmlPart:
    tree: ET.ElementTree
    root_tag: str  # original start tag text of the root element
    default_ns: str  # default namespace declared on the root, or ''


class TemplatePackage:
    """In-memory view of a WordprocessingML ZIP package."""

    def __init__(self, parts, infos=None, config=None):
        self.config = config if config is not None else DEFAULT_CONFIG
        self.parts = dict(parts)
        self._infos = dict(infos or {})
        self._xml = {}
        self._dirty = set()
        self._relationships = {}
        self._content_types = None

    # ------------------------------------------------------------------
    # Loading

    @classmethod
    def load(cls, source, config=None):
        """Open a template from a path, raw bytes or a binary file object.

        Raises:
            SecurityError: If the template exceeds MAX_TEMPLATE_FILE_SIZE
            TemplateError: If the template is not a readable ZIP archive
            MissingPartError: If word/document.xml is absent
        """
        config = config if config is not None else DEFAULT_CONFIG
        data = _read_source(source)

        if len(data) > config.MAX_TEMPLATE_FILE_SIZE:
            raise SecurityError(
                f"Template file too large: {len(data)} bytes "
                f"(max {config.MAX_TEMPLATE_FILE_SIZE} bytes)"
            )

        try:
            with zipfile.ZipFile(io.BytesIO(data)) as z:
                infos = {info.filename: info for info in z.infolist() if not info.is_dir()}
                parts = {name: z.read(name) for name in infos}
        except zipfile.BadZipFile:
            raise TemplateError("Template is not a valid DOCX (ZIP) file")

        if DOCUMENT_PART not in parts:
            raise MissingPartError(f"Invalid DOCX template: missing {DOCUMENT_PART}")

        logger.debug("Loaded %d parts from template", len(parts))
        return cls(parts, infos, config)

    @classmethod
    def blank(cls, body_xml='', config=None):
        """Build the minimal valid package; ``body_xml`` is inserted in w:body."""
        now = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
        parts = {
            CONTENT_TYPES_PART: _BLANK_CONTENT_TYPES,
            '_rels/.rels': _BLANK_PACKAGE_RELS,
            'word/_rels/document.xml.rels': _BLANK_DOCUMENT_RELS,
            DOCUMENT_PART: _BLANK_DOCUMENT.format(body=body_xml),
            'word/styles.xml': _BLANK_STYLES,
            'docProps/core.xml': _BLANK_CORE.format(now=now),
            'docProps/app.xml': _BLANK_APP,
        }
        return cls({name: text.encode('utf-8') for name, text in parts.items()}, config=config)

    # ------------------------------------------------------------------
    # Raw parts

    def has_part(self, name):
        return name in self.parts

    def part_names(self):
        return list(self.parts)

    def read_part(self, name):
        return self.parts.get(name)

    def write_part(self, name, data):
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.parts[name] = data
        self._xml.pop(name, None)
        self._dirty.discard(name)

    def find_parts(self, pattern):
        """Part names matching the regular expression ``pattern``, sorted."""
        regex = re.compile(pattern)
        return sorted(name for name in self.parts if regex.match(name))

    # ------------------------------------------------------------------
    # XML parts

    def xml_root(self, name):
        """Parsed root element of an XML part (cached). Marks the part as
        touched so it is re-serialized on save."""
        part = self._xml.get(name)
        if part is None:
            data = self.parts.get(name)
            if data is None:
                return None
            part = _parse_part(data)
            self._xml[name] = part
        self._dirty.add(name)
        return part.tree.getroot()

    def require_document(self):
        root = self.xml_root(DOCUMENT_PART)
        if root is None:
            raise MissingPartError(f"Invalid DOCX template: missing {DOCUMENT_PART}")
        return root

    def set_xml_part(self, name, root, default_ns=''):
        """Register a new XML part built in memory.

        Args:
            name: Part name inside the archive
            root: Root element of the part
            default_ns: Namespace written as the default (unprefixed) one;
                        package manifests require this.
        """
        self.parts[name] = b''
        self._xml[name] = _XmlPart(ET.ElementTree(root), '', default_ns)
        self._dirty.add(name)

    def flush(self):
        """Serialize every touched XML part back into ``parts``."""
        for name in sorted(self._dirty):
            part = self._xml.get(name)
            if part is not None:
                self.parts[name] = _serialize_part(part)
        self._dirty.clear()

    # ------------------------------------------------------------------
    # Manifests

    @property
    def content_types(self):
        if self._content_types is None:
            if not self.has_part(CONTENT_TYPES_PART):
                logger.warning("Template has no %s; creating one", CONTENT_TYPES_PART)
                self.set_xml_part(
                    CONTENT_TYPES_PART, make_elem(NS_CONTENT_TYPES, 'Types'), NS_CONTENT_TYPES
                )
                types = ContentTypes(self.xml_root(CONTENT_TYPES_PART))
                types.ensure_default('rels', RELS_CONTENT_TYPE)
                types.ensure_default('xml', 'application/xml')
                types.ensure_override(DOCUMENT_PART, MAIN_DOCUMENT_CONTENT_TYPE)
            self._content_types = ContentTypes(self.xml_root(CONTENT_TYPES_PART))
        return self._content_types

    def relationships_for(self, part_name):
        """Relationship manifest of ``part_name``, synthesized when missing."""
        rels_name = rels_part_name(part_name)
        rels = self._relationships.get(rels_name)
        if rels is not None:
            return rels

        if not self.has_part(rels_name):
            logger.debug("Relationships file %s missing; creating it", rels_name)
            self.set_xml_part(
                rels_name, make_elem(NS_PACKAGE_RELS, 'Relationships'), NS_PACKAGE_RELS
            )
            self.content_types.ensure_default('rels', RELS_CONTENT_TYPE)
        rels = Relationships(self.xml_root(rels_name))
        self._relationships[rels_name] = rels
        return rels

    # ------------------------------------------------------------------
    # Saving

    def to_bytes(self):
        """Repack the archive. Original entry order is kept, new parts follow."""
        self.flush()
        buffer = io.BytesIO()
        ordered = [name for name in self._infos if name in self.parts]
        ordered += [name for name in self.parts if name not in self._infos]
        if CONTENT_TYPES_PART in ordered:
            ordered.remove(CONTENT_TYPES_PART)
            ordered.insert(0, CONTENT_TYPES_PART)

        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as out_zip:
            for name in ordered:
                out_zip.writestr(name, self.parts[name])
        return buffer.getvalue()

    def save(self, output_path):
        data = self.to_bytes()
        directory = os.path.dirname(os.path.abspath(output_path))
        os.makedirs(directory, exist_ok=True)
        with open(output_path, 'wb') as f:
            f.write(data)
        logger.info("Saved %s (%d bytes)", output_path, len(data))
        return data


class ContentTypes:
    """Wrapper over the ``[Content_Types].xml`` root."""

    def __init__(self, root):
        self.root = root

    def has_default(self, extension):
        extension = extension.lower()
        return any(
            (elem.get('Extension') or '').lower() == extension
            for elem in self.root.iter(f'{{{NS_CONTENT_TYPES}}}Default')
        )

    def ensure_default(self, extension, content_type):
        """Declare ``extension``; existing declarations are left untouched."""
        if self.has_default(extension):
            return False
        add_elem(self.root, NS_CONTENT_TYPES, 'Default', {
            'Extension': extension,
            'ContentType': content_type,
        })
        logger.debug("Registered content type %s for .%s", content_type, extension)
        return True

    def ensure_override(self, part_name, content_type):
        part_name = '/' + part_name.lstrip('/')
        for elem in self.root.iter(f'{{{NS_CONTENT_TYPES}}}Override'):
            if elem.get('PartName') == part_name:
                elem.set('ContentType', content_type)
                return False
        add_elem(self.root, NS_CONTENT_TYPES, 'Override', {
            'PartName': part_name,
            'ContentType': content_type,
        })
        return True

    def content_type_for(self, part_name):
        part_name = '/' + part_name.lstrip('/')
        for elem in self.root.iter(f'{{{NS_CONTENT_TYPES}}}Override'):
            if elem.get('PartName') == part_name:
                return elem.get('ContentType')
        extension = posixpath.splitext(part_name)[1].lstrip('.').lower()
        for elem in self.root.iter(f'{{{NS_CONTENT_TYPES}}}Default'):
            if (elem.get('Extension') or '').lower() == extension:
                return elem.get('ContentType')
        return None


class Relationships:
    """Wrapper over one ``*.rels`` part root."""

    def __init__(self, root):
        self.root = root

    def _elements(self):
        return list(self.root.iter(f'{{{NS_PACKAGE_RELS}}}Relationship'))

    def ids(self):
        return {elem.get('Id') for elem in self._elements()}

    def has_id(self, r_id):
        return r_id in self.ids()

    def target_of(self, r_id):
        for elem in self._elements():
            if elem.get('Id') == r_id:
                return elem.get('Target')
        return None

    def add(self, r_id, rel_type, target):
        """Add a relationship; an existing ``r_id`` gets its target updated."""
        for elem in self._elements():
            if elem.get('Id') == r_id:
                elem.set('Type', rel_type)
                elem.set('Target', target)
                return elem
        return add_elem(self.root, NS_PACKAGE_RELS, 'Relationship', {
            'Id': r_id,
            'Type': rel_type,
            'Target': target,
        })


def rels_part_name(part_name):
    """``word/document.xml`` -> ``word/_rels/document.xml.rels``."""
    folder, base = posixpath.split(part_name)
    return posixpath.join(folder, '_rels', f'{base}.rels')


def _read_source(source):
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        if not os.path.exists(source):
            raise TemplateError(f"Template not found: {source}")
        with open(source, 'rb') as f:
            return f.read()
    if hasattr(source, 'read'):
        data = source.read()
        if isinstance(data, str):
            raise TemplateError("Template file object must be opened in binary mode")
        return data
    raise TemplateError(f"Unsupported template source: {type(source).__name__}")


def _parse_part(data):
    """Parse XML bytes, registering the part's own prefixes so serialization
    writes the same ones back."""
    for _, (prefix, uri) in ET.iterparse(io.BytesIO(data), events=('start-ns',)):
        if prefix:
            try:
                ET.register_namespace(prefix, uri)
            except ValueError:
                logger.debug("Cannot register reserved prefix %s", prefix)

    tree = ET.ElementTree(ET.fromstring(data))
    text = data.decode('utf-8', errors='replace')
    match = _ROOT_TAG_PATTERN.search(text)
    root_tag = match.group(0) if match else ''
    # Only a default namespace declared on the root itself
    default_ns = _declarations(root_tag).get('', ('', None))[0]
    return _XmlPart(tree, root_tag, default_ns)


def _serialize_part(part):
    root = part.tree.getroot()
    if part.default_ns and root.tag.startswith(f'{{{part.default_ns}}}'):
        root = _unqualified_copy(root, part.default_ns)
    body = ET.tostring(root, encoding='unicode')

    if part.root_tag and not part.root_tag.endswith('/>'):
        body = _restore_root_tag(part.root_tag, body)
    return (XML_DECLARATION + body).encode('utf-8')


def _unqualified_copy(root, default_ns):
    """Copy of ``root`` with ``default_ns`` tags written bare under an ``xmlns``
    declaration. ``default_namespace=`` would reject unqualified attributes."""
    prefix = f'{{{default_ns}}}'
    root = copy.deepcopy(root)
    for elem in root.iter():
        if isinstance(elem.tag, str) and elem.tag.startswith(prefix):
            elem.tag = elem.tag[len(prefix):]
    attrib = {'xmlns': default_ns}
    attrib.update(root.attrib)
    root.attrib.clear()
    root.attrib.update(attrib)
    return root


def _restore_root_tag(original_tag, body):
    """Swap ElementTree's root start tag for the template's own.

    ElementTree drops namespace declarations nothing references, which breaks
    ``mc:Ignorable`` lists. The original tag is kept and any declaration the
    serializer added (for newly inserted drawings, shapes, ...) is merged in.
    """
    match = _ROOT_TAG_PATTERN.match(body)
    if not match:
        return body
    new_tag = match.group(0)
    if new_tag.endswith('/>'):
        return body

    original_decls = _declarations(original_tag)
    new_decls = _declarations(new_tag)

    conflict = any(
        prefix in original_decls and original_decls[prefix][0] != uri
        for prefix, (uri, _) in new_decls.items()
    )
    if conflict:
        # Serializer bound a template prefix to another namespace; keep its
        # tag and carry over the template's remaining declarations.
        base, extra = new_tag, [
            text for prefix, (_, text) in original_decls.items() if prefix not in new_decls
        ]
    else:
        base, extra = original_tag, [
            text for prefix, (_, text) in new_decls.items() if prefix not in original_decls
        ]

    merged = base
    if extra:
        merged = base[:-1].rstrip() + ' ' + ' '.join(extra) + '>'
    return merged + body[match.end():]


def _declarations(tag):
    """``{prefix: (uri, declaration_text)}`` for the xmlns attributes of a tag."""
    return {
        decl.group(1) or '': (decl.group(2)[1:-1], decl.group(0))
        for decl in _XMLNS_PATTERN.finditer(tag)
    }


_BLANK_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types"><Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/><Default Extension="xml" ContentType="application/xml"/><Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/><Override PartName="/word/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"/><Override PartName="/docProps/core.xml" ContentType="application/vnd.openxmlformats-package.core-properties+xml"/><Override PartName="/docProps/app.xml" ContentType="application/vnd.openxmlformats-officedocument.extended-properties+xml"/></Types>"""

_BLANK_PACKAGE_RELS = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="{RELTYPE_OFFICE_DOCUMENT}" Target="word/document.xml"/><Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/><Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties" Target="docProps/app.xml"/></Relationships>"""

_BLANK_DOCUMENT_RELS = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="{RELTYPE_STYLES}" Target="styles.xml"/></Relationships>"""

_BLANK_DOCUMENT = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"><w:body>{body}<w:sectPr><w:pgSz w:w="11906" w:h="16838"/><w:pgMar w:top="1440" w:right="1440" w:bottom="1440" w:left="1440" w:header="708" w:footer="708" w:gutter="0"/></w:sectPr></w:body></w:document>"""

_BLANK_STYLES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:styles xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main"><w:style w:type="paragraph" w:default="1" w:styleId="Normal"><w:name w:val="Normal"/><w:pPr/><w:rPr/></w:style><w:style w:type="table" w:styleId="TableGrid"><w:name w:val="Table Grid"/><w:tblPr><w:tblBorders><w:top w:val="single" w:sz="4" w:space="0" w:color="auto"/><w:left w:val="single" w:sz="4" w:space="0" w:color="auto"/><w:bottom w:val="single" w:sz="4" w:space="0" w:color="auto"/><w:right w:val="single" w:sz="4" w:space="0" w:color="auto"/><w:insideH w:val="single" w:sz="4" w:space="0" w:color="auto"/><w:insideV w:val="single" w:sz="4" w:space="0" w:color="auto"/></w:tblBorders></w:tblPr></w:style></w:styles>"""

_BLANK_CORE = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"><dc:creator>json2docx</dc:creator><cp:lastModifiedBy>json2docx</cp:lastModifiedBy><dcterms:created xsi:type="dcterms:W3CDTF">{now}</dcterms:created><dcterms:modified xsi:type="dcterms:W3CDTF">{now}</dcterms:modified></cp:coreProperties>"""

_BLANK_APP = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties"><Application>json2docx</Application></Properties>"""
