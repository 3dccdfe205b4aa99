"""
High-level convenience API for json2docx.

Provides simple functions to fill a template file or template bytes without
needing to know the package/processor pipeline.
"""

import os

from .JsonToDocx import JsonToDocx
from .package import TemplatePackage


def generate_file(template_path, data, output_path, header=None, footer=None,
                  watermark=None, config=None):
    """Fill ``template_path`` with ``data`` and save it to ``output_path``.

    Args:
        template_path: Path to the .docx template
        data: Mapping used to resolve placeholders
        output_path: Output .docx path; its directory is created if needed
        header / footer / watermark: Optional header, footer and watermark text
        config: Optional GenerationConfig instance

    Returns:
        GenerationReport of the call
    """
    output_dir = os.path.dirname(os.path.abspath(output_path))
    options = {
        'file_name': os.path.basename(output_path),
        'header': header,
        'footer': footer,
        'watermark': watermark,
    }
    return JsonToDocx.generate_docx(template_path, data, options, output_dir, config)


def generate_bytes(template, data, options=None, config=None):
    """Fill a template (path, bytes or file object) and return the document
    bytes without touching the filesystem.

    Returns:
        tuple: (document bytes or None, GenerationReport)
    """
    report = JsonToDocx.generate_docx(template, data, options, None, config)
    return report.document, report


def blank_template(body_xml='', config=None):
    """Bytes of a minimal template whose body holds ``body_xml``."""
    return TemplatePackage.blank(body_xml, config).to_bytes()
