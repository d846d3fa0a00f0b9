"""
Code Editor Security Helpers
File name / path validation and HTML sanitization
"""

import logging
import re
from typing import List, Optional

from cloudcode.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# ============================================================================
# XSS PATTERNS
# ============================================================================

# Stripped from stored HTML files. Whole elements first, then lone tags,
# then attributes.
DANGEROUS_HTML_PATTERNS: List[str] = [
    r'<script\b[^>]*>.*?</script\s*>',       # Script blocks
    r'<iframe\b[^>]*>.*?</iframe\s*>',       # iframes
    r'<object\b[^>]*>.*?</object\s*>',       # objects
    r'<(script|iframe|embed|object)\b[^>]*/?>',  # Unclosed / self-closing leftovers
    r'</(script|iframe|embed|object)\s*>',
]

# Inline on* handlers inside a tag. Browsers accept whitespace, "/" or a
# closing quote as the separator before an attribute name.
EVENT_HANDLER_PATTERN = re.compile(
    r'''(?:[\s/]+|(?<=["']))on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)''',
    re.IGNORECASE,
)
_TAG_PATTERN = re.compile(r'<[a-zA-Z][^>]*>')

JAVASCRIPT_URL_PATTERN = re.compile(
    r'''(href|src|action|formaction)\s*=\s*(["']?)\s*javascript:[^"'\s>]*\2''',
    re.IGNORECASE,
)

_COMPILED_HTML_PATTERNS = [re.compile(p, re.IGNORECASE | re.DOTALL) for p in DANGEROUS_HTML_PATTERNS]

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_FORBIDDEN_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def sanitize_html(content: str) -> str:
    """
    Remove executable content from an HTML document.

    Strips script/iframe/embed/object elements, inline on* handlers and
    javascript: URLs. Markup, styles and links are kept.
    """
    sanitized = content
    for pattern in _COMPILED_HTML_PATTERNS:
        sanitized = pattern.sub('', sanitized)
    sanitized = _TAG_PATTERN.sub(lambda tag: EVENT_HANDLER_PATTERN.sub('', tag.group(0)), sanitized)
    sanitized = JAVASCRIPT_URL_PATTERN.sub(r'\1=\2#\2', sanitized)

    if sanitized != content:
        logger.info("Stripped unsafe markup from HTML content")
    return sanitized


# ============================================================================
# NAMES & PATHS
# ============================================================================

def validate_file_name(name: str) -> str:
    """
    Validate a single file or folder name.

    Returns the stripped name.

    Raises:
        ValidationError: empty, too long, contains separators, '..' or control characters
    """
    stripped = name.strip()
    if not stripped:
        raise ValidationError("File name is required", field="name")
    if len(stripped) > 255:
        raise ValidationError("File name must be at most 255 characters", field="name")
    if stripped in (".", "..") or ".." in stripped:
        raise ValidationError("File name may not contain '..'", field="name")
    if _FORBIDDEN_NAME_CHARS.search(stripped) or _CONTROL_CHARS.search(stripped):
        raise ValidationError("File name contains invalid characters", field="name")
    return stripped


def normalize_parent_path(parent_path: Optional[str]) -> str:
    """
    Normalize a parent folder path to '/a/b' form ('/' for the project root).

    Raises:
        ValidationError: the path contains '..' or control characters
    """
    if not parent_path:
        return "/"

    path = parent_path.replace("\\", "/")
    if ".." in path.split("/") or _CONTROL_CHARS.search(path):
        logger.warning(f"Rejected parent path: {parent_path!r}")
        raise ValidationError("Invalid parent path", field="parent_path")

    path = "/" + re.sub(r"/+", "/", path).strip("/")
    return path


def join_path(parent_path: Optional[str], name: str) -> str:
    """Build a record path: parent path + '/' + name, duplicate slashes collapsed."""
    return re.sub(r"/+", "/", f"{normalize_parent_path(parent_path)}/{name}")


def renamed_path(path: str, new_name: str) -> str:
    """Replace the last segment of a record path."""
    parts = path.split("/")
    parts[-1] = new_name
    return "/".join(parts)
