"""Extension -> language tag table.

One fixed table drives every place that needs a language for a file name:
file creation, ZIP import, repository pull and the execution service's
listing.  Unknown extensions map to ``plaintext``.
"""

from __future__ import annotations

from pathlib import PurePosixPath

PLAINTEXT = "plaintext"

EXTENSION_LANGUAGES: dict[str, str] = {
    "py": "python",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "html": "html",
    "htm": "html",
    "css": "css",
    "md": "markdown",
    "sh": "shell",
    "json": "json",
    "yml": "yaml",
    "yaml": "yaml",
    "java": "java",
    "rs": "rust",
    "go": "go",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "php": "php",
    "rb": "ruby",
}


def extension_of(name: str) -> str:
    """Return the lower-cased final extension of *name* without the dot."""
    return PurePosixPath(name.replace("\\", "/")).suffix.lstrip(".").lower()


def language_for(name: str) -> str:
    """Derive the language tag for a file name."""
    return EXTENSION_LANGUAGES.get(extension_of(name), PLAINTEXT)
