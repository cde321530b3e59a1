"""
utils/sanitizer.py

Purpose: Cleaning user supplied text before it is stored or displayed

- HTML-escapes chat content so it renders as text
- Strips tags where only plain text is wanted
- Produces safe file names for uploads
"""

import os
import re
from typing import Any

import bleach


def sanitize_input(value: Any) -> Any:
    """
    HTML-escape a string. Non-strings are returned unchanged.

    Args:
        value: Raw input

    Returns:
        Escaped text, e.g. ``<b>`` becomes ``&lt;b&gt;``
    """
    if not value or not isinstance(value, str):
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=False)


def strip_html(value: Any) -> Any:
    if not value or not isinstance(value, str):
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=True)


def sanitize_filename(filename: str) -> str:
    """
    Reduce a client file name to ``[A-Za-z0-9._-]`` with no path parts.
    """
    if not filename:
        return "file"
    name = os.path.basename(filename.replace("\\", "/"))
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    name = name.lstrip(".")
    return name[:255] or "file"
