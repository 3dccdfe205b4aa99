"""
Dotted-path lookup against the caller-supplied data context.
"""

import json
from collections.abc import Mapping, Sequence


def resolve(path, context):
    """Return the value at ``path`` inside ``context``.

    ``path`` is a dotted path such as ``invoice.customer.name``. A literal
    top-level key (``"logo.width"``) wins over the dotted walk. Integer
    segments index into lists.

    Returns:
        The resolved value, or ``""`` when the path is empty, the context is
        missing, any segment is absent or any access fails. Never raises.
    """
    if not path or context is None:
        return ''

    try:
        if isinstance(context, Mapping) and path in context:
            value = context[path]
            return '' if value is None else value

        current = context
        for segment in path.split('.'):
            if current is None:
                return ''
            current = _step(current, segment)
            if current is _MISSING:
                return ''
        return '' if current is None else current
    except Exception:
        return ''


_MISSING = object()


def _step(current, segment):
    if isinstance(current, Mapping):
        return current.get(segment, _MISSING)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            index = int(segment)
        except ValueError:
            return _MISSING
        if -len(current) <= index < len(current):
            return current[index]
    return _MISSING


def stringify(value):
    """Render a context value the way it should appear in document text."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    return str(value)


def is_truthy(value):
    """Truthiness used by bare-path conditions: empty strings, zero, None,
    False and empty containers are false."""
    if isinstance(value, str):
        return value != ''
    return bool(value)
