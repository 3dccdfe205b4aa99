"""
Data context loading for the CLI: JSON files, or documents carrying YAML
front matter (parsed with python-frontmatter).
"""

import json
import os

import frontmatter

from .exceptions import DataError

JSON_EXTENSIONS = ('.json',)


def load_data(file_path: str) -> dict:
    """
    Load the data context from ``file_path``.

    ``.json`` files are parsed as JSON. Anything else (``.md``, ``.yaml``
    front-matter documents) contributes its front matter metadata.

    Raises:
        DataError: If the file is missing, unparseable, or not an object
    """
    if not os.path.exists(file_path):
        raise DataError(f"Data file not found: {file_path}")

    ext = os.path.splitext(file_path)[1].lower()
    if ext in JSON_EXTENSIONS:
        with open(file_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise DataError(f"Invalid JSON in {file_path}: {e}") from e
    else:
        data = load_frontmatter(file_path)

    if not isinstance(data, dict):
        raise DataError(f"Data in {file_path} must be an object, got {type(data).__name__}")
    return data


def load_frontmatter(file_path: str) -> dict:
    """Front matter metadata of a document; the body text is ignored."""
    try:
        post = frontmatter.load(file_path)
    except Exception as e:
        raise DataError(f"Invalid front matter in {file_path}: {e}") from e
    return dict(post.metadata)


def parse_data_string(text: str) -> dict:
    """Parse a JSON object from ``text`` (HTTP form field, CLI string)."""
    try:
        data = json.loads(text) if text else {}
    except json.JSONDecodeError as e:
        raise DataError(f"Invalid JSON data: {e}") from e
    if not isinstance(data, dict):
        raise DataError(f"Data must be a JSON object, got {type(data).__name__}")
    return data
