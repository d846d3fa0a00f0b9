"""
Extension lookups: editor language, MIME type.
"""

from typing import Optional

LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".html": "html",
    ".css": "css",
    ".json": "json",
    ".md": "markdown",
    ".py": "python",
}

MIME_BY_EXTENSION = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".jsx": "application/javascript",
    ".ts": "application/typescript",
    ".tsx": "application/typescript",
    ".json": "application/json",
    ".md": "text/markdown",
    ".py": "text/x-python",
}


def get_extension(name: str) -> Optional[str]:
    """Lower-cased extension including the dot, or None when the name has no dot."""
    dot = name.rfind(".")
    if dot == -1:
        return None
    return name[dot:].lower()


def get_language(extension: Optional[str]) -> str:
    return LANGUAGE_BY_EXTENSION.get((extension or "").lower(), "plaintext")


def get_mime_type(extension: Optional[str]) -> str:
    return MIME_BY_EXTENSION.get((extension or "").lower(), "text/plain")
