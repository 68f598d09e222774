"""Fence-language tags for exported files.

Known special file names and extensions map to fixed tags. Other extensions
fall back to the first alias of the Pygments lexer registered for the file
name, and to ``"text"`` when Pygments has none.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import PurePosixPath

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound

DEFAULT_LANGUAGE = "text"

SPECIAL_FILE_LANGUAGES = {
    "Dockerfile": "dockerfile",
    "Makefile": "makefile",
    "LICENSE": "text",
    "README": "markdown",
    "CHANGELOG": "markdown",
    ".gitignore": "gitignore",
    ".gitattributes": "gitattributes",
    ".env": "dotenv",
    ".env.example": "dotenv",
    "docker-compose.yml": "yaml",
    "docker-compose.yaml": "yaml",
}

EXTENSION_LANGUAGES = {
    "ts": "typescript",
    "js": "javascript",
    "tsx": "tsx",
    "jsx": "jsx",
    "json": "json",
    "md": "markdown",
    "yml": "yaml",
    "yaml": "yaml",
    "xml": "xml",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "less": "less",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "hpp": "cpp",
    "c": "c",
    "h": "c",
    "rs": "rust",
    "go": "go",
    "php": "php",
    "rb": "ruby",
    "sh": "bash",
    "bash": "bash",
    "zsh": "bash",
    "sql": "sql",
    "vue": "vue",
    "svelte": "svelte",
    "toml": "toml",
    "ini": "ini",
    "conf": "conf",
    "config": "conf",
    "txt": "text",
}


@lru_cache(maxsize=512)
def _pygments_alias(file_name: str) -> str:
    try:
        lexer = get_lexer_for_filename(file_name)
    except ClassNotFound:
        return DEFAULT_LANGUAGE
    aliases = getattr(lexer, "aliases", None) or []
    return aliases[0] if aliases else DEFAULT_LANGUAGE


def resolve_language(relative_path: str) -> str:
    """Return the code-fence tag for ``relative_path``."""
    name = PurePosixPath(relative_path).name
    special = SPECIAL_FILE_LANGUAGES.get(name)
    if special is not None:
        return special
    suffix = PurePosixPath(name).suffix
    if not suffix:
        return DEFAULT_LANGUAGE
    ext = suffix[1:].lower()
    known = EXTENSION_LANGUAGES.get(ext)
    if known is not None:
        return known
    return _pygments_alias(f"file.{ext}")


__all__ = [
    "DEFAULT_LANGUAGE",
    "EXTENSION_LANGUAGES",
    "SPECIAL_FILE_LANGUAGES",
    "resolve_language",
]
