"""
json2docx - Fill DOCX (WordprocessingML) templates with JSON data

This package provides a pure Python template engine: placeholders, images
fetched from URLs, generated tables, conditional blocks, loops, charts and
watermarks are written straight into the template's OOXML parts.
"""

from .JsonToDocx import JsonToDocx
from .package import TemplatePackage
from .context import GenerationOptions, GenerationReport, DirectiveOutcome
from .config import GenerationConfig, DEFAULT_CONFIG
from .exceptions import (
    DocxTemplateError, TemplateError, MissingPartError, SecurityError,
    EmptyTableDataError, FetchError, ImageError, InvalidConditionError,
    ChartError, DataError,
)
from .converter_api import generate_file, generate_bytes, blank_template

generate_docx = JsonToDocx.generate_docx

__version__ = "0.1.0"
__all__ = [
    "JsonToDocx",
    "TemplatePackage",
    "GenerationOptions",
    "GenerationReport",
    "DirectiveOutcome",
    "GenerationConfig",
    "DEFAULT_CONFIG",
    "DocxTemplateError",
    "TemplateError",
    "MissingPartError",
    "SecurityError",
    "EmptyTableDataError",
    "FetchError",
    "ImageError",
    "InvalidConditionError",
    "ChartError",
    "DataError",
    "generate_docx",
    "generate_file",
    "generate_bytes",
    "blank_template",
]
