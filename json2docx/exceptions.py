"""
Custom exception classes for the json2docx template engine.
"""


class DocxTemplateError(Exception):
    """Base exception for all json2docx errors."""
    pass


class TemplateError(DocxTemplateError):
    """Error related to the uploaded template package."""
    pass


class MissingPartError(TemplateError):
    """A required part (word/document.xml) is absent from the package."""
    pass


class SecurityError(DocxTemplateError):
    """Error related to security validation (size limits, etc.)."""
    pass


class EmptyTableDataError(DocxTemplateError):
    """Table data is empty or has no usable columns."""
    pass


class FetchError(DocxTemplateError):
    """Remote image could not be fetched (non-2xx, network error, empty body)."""
    pass


class ImageError(DocxTemplateError):
    """Error related to image processing or embedding."""
    pass


class InvalidConditionError(DocxTemplateError):
    """A comparison expression could not be parsed or evaluated."""
    pass


class ChartError(DocxTemplateError):
    """Unsupported chart type or unusable chart data."""
    pass


class DataError(DocxTemplateError):
    """The data file or data string is unreadable or not a JSON object."""
    pass
