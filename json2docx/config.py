"""
Configuration constants for the json2docx template engine.

This module centralizes all magic numbers and default values used while
filling a template. Values can be overridden by passing a subclass (or an
instance with replaced attributes) as ``config`` to any entry point.
"""


class GenerationConfig:
    """Default configuration values for DOCX generation."""

    # === Unit Conversion ===
    EMU_PER_PX = 9525  # 914400 EMU per inch / 96 DPI

    # === Output ===
    DEFAULT_FILE_NAME = 'generated-document.docx'
    DOCX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

    # === Image Settings ===
    IMAGE_DEFAULT_WIDTH = 200  # Logical pixels
    IMAGE_DEFAULT_HEIGHT = 150
    IMAGE_REL_ID_BASE = 1000  # rId1001, rId1002, ... avoids template ids
    IMAGE_FETCH_TIMEOUT = 10  # Seconds
    USER_AGENT = 'json2docx/0.1'
    DEFAULT_IMAGE_EXTENSION = 'png'

    # Extension -> content type for media Default entries
    IMAGE_CONTENT_TYPES = {
        'png': 'image/png',
        'jpg': 'image/jpeg',
        'jpeg': 'image/jpeg',
        'gif': 'image/gif',
        'bmp': 'image/bmp',
        'svg': 'image/svg+xml',
        'tif': 'image/tiff',
        'tiff': 'image/tiff',
        'webp': 'image/webp',
    }

    # Pillow format name -> file extension (used when the URL has no usable one)
    PIL_FORMAT_EXTENSIONS = {
        'PNG': 'png',
        'JPEG': 'jpg',
        'GIF': 'gif',
        'BMP': 'bmp',
        'TIFF': 'tiff',
        'WEBP': 'webp',
    }

    # === Chart Settings ===
    CHART_DEFAULT_WIDTH = 400
    CHART_DEFAULT_HEIGHT = 300
    CHART_REL_ID_BASE = 2000
    CHART_DEFAULT_TITLE = 'Chart'
    CHART_SERIES_NAME = 'Series 1'

    # === Table Layout ===
    TABLE_STYLE = 'TableGrid'
    TABLE_COLUMN_WIDTH = 2500  # Twips per grid column
    TABLE_BORDER_TYPE = 'single'
    TABLE_BORDER_SIZE = 4  # Eighths of a point
    TABLE_BORDER_COLOR = 'auto'

    # === Conditional Row Styles ===
    ROW_STYLE_FILLS = {
        'highlight': 'FFFF00',
        'red': 'FF0000',
        'green': '00FF00',
    }

    # === Watermark ===
    WATERMARK_COLOR = 'CCCCCC'
    WATERMARK_FONT_SIZE = 60  # Points
    WATERMARK_ANGLE = 45  # Degrees
    WATERMARK_WIDTH_EMU = 5400000
    WATERMARK_HEIGHT_EMU = 3600000
    WATERMARK_DOC_PR_BASE = 3000  # wp:docPr ids 3001, 3002, ... one per header

    # === Part Matching ===
    HEADER_PART_PATTERN = r'^word/header\d*\.xml$'
    FOOTER_PART_PATTERN = r'^word/footer\d*\.xml$'

    # === Security Limits ===
    MAX_TEMPLATE_FILE_SIZE = 50 * 1024 * 1024  # 50 MB max template file
    MAX_IMAGE_COUNT = 500  # Max number of fetched images in a single document
    MAX_IMAGE_BYTES = 20 * 1024 * 1024  # 20 MB per fetched image


# Global default config instance
DEFAULT_CONFIG = GenerationConfig()
