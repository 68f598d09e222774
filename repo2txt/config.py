"""Export configuration with documented defaults plus persistent JSON storage.

``AppConfig`` carries ignore lists, size/token budgets, and the output
template. All loading is lenient: missing or malformed fields fall back to
defaults, and a missing or unreadable config file loads as ``AppConfig()``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

APP_NAME = "repo2txt"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

THEMES = ("system", "light", "dark")

DEFAULT_TOKEN_LIMIT = 128_000
DEFAULT_MAX_FILE_SIZE = 1024 * 1024
DEFAULT_OUTPUT_TEMPLATE = "## {{path}}\n\n```{{language}}\n{{content}}\n```\n\n---\n\n"
DEFAULT_THEME = "system"
DEFAULT_OUTPUT_FILENAME = "output.md"

DEFAULT_IGNORED_NAMES = frozenset(
    {
        ".DS_Store",
        "Thumbs.db",
        "Gemfile.lock",
        "go.sum",
        "go.work.sum",
        "yarn.lock",
        "pnpm-lock.yaml",
        "composer.lock",
        "package-lock.json",
        "Cargo.lock",
        ".r2x",
        ".r2x_ignore",
    }
)

DEFAULT_IGNORED_FOLDERS = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        ".idea",
        ".vscode",
        ".vs",
        ".history",
        "node_modules",
        "bower_components",
        "jspm_packages",
        "web_modules",
        "dist",
        "build",
        "out",
        "target",
        "bin",
        "obj",
        "release",
        "debug",
        "pkg",
        ".next",
        ".nuxt",
        ".cache",
        ".parcel-cache",
        ".turbo",
        ".vercel",
        ".output",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".tox",
        "venv",
        ".venv",
        "env",
        "bundler",
        "vendor",
        ".bundle",
        "checkouts",
        ".cargo",
        ".rustup",
        ".gradle",
        ".settings",
        ".classpath",
        ".project",
        "Properties",
        "_build",
        "deps",
        "_opam",
        "storage",
        "htmlcov",
        "coverage",
        ".nyc_output",
    }
)

DEFAULT_BINARY_EXTENSIONS = frozenset(
    {
        # images
        "icns", "png", "jpg", "jpeg", "gif", "bmp", "ico", "svg", "webp", "tiff", "tif", "psd", "ai", "eps",
        # audio/video
        "mp4", "avi", "mov", "wmv", "flv", "mkv", "webm", "3gp", "mp3", "wav", "flac", "aac", "ogg", "wma", "m4a",
        # archives and installers
        "zip", "rar", "7z", "tar", "gz", "bz2", "xz", "iso", "dmg", "pkg", "deb", "rpm", "exe", "dll", "so",
        "dylib", "bin", "msi", "msu",
        # fonts
        "ttf", "otf", "woff", "woff2", "eot",
        # documents and databases
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "odt", "ods", "sqlite", "db", "db3", "mdb", "accdb",
        # compiled artifacts
        "pyc", "pyo", "pyd", "class", "jar", "war", "ear",
        "ds_store",
    }
)


@dataclass(frozen=True)
class AppConfig:
    """Caller-supplied scan/export settings; every field has a default."""

    ignored_names: frozenset[str] = DEFAULT_IGNORED_NAMES
    ignored_folders: frozenset[str] = DEFAULT_IGNORED_FOLDERS
    binary_extensions: frozenset[str] = DEFAULT_BINARY_EXTENSIONS
    token_limit: int = DEFAULT_TOKEN_LIMIT
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    output_template: str = DEFAULT_OUTPUT_TEMPLATE
    theme: str = DEFAULT_THEME
    output_filename: str = DEFAULT_OUTPUT_FILENAME
    extra: dict[str, object] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "AppConfig":
        """Build a config from decoded JSON, defaulting anything missing or invalid.

        Unknown keys are preserved in ``extra`` so a round-trip through
        ``to_dict`` does not drop settings owned by other front ends.
        """
        if not isinstance(data, dict):
            return cls()
        known = {
            "ignored_names",
            "ignored_folders",
            "binary_extensions",
            "token_limit",
            "max_file_size",
            "output_template",
            "theme",
            "output_filename",
        }
        binary_extensions = _coerce_name_set(data.get("binary_extensions"), DEFAULT_BINARY_EXTENSIONS)
        return cls(
            ignored_names=_coerce_name_set(data.get("ignored_names"), DEFAULT_IGNORED_NAMES),
            ignored_folders=_coerce_name_set(data.get("ignored_folders"), DEFAULT_IGNORED_FOLDERS),
            binary_extensions=frozenset(ext.lower().lstrip(".") for ext in binary_extensions),
            token_limit=_coerce_positive_int(data.get("token_limit"), DEFAULT_TOKEN_LIMIT),
            max_file_size=_coerce_positive_int(data.get("max_file_size"), DEFAULT_MAX_FILE_SIZE),
            output_template=_coerce_text(data.get("output_template"), DEFAULT_OUTPUT_TEMPLATE),
            theme=_coerce_theme(data.get("theme")),
            output_filename=_coerce_text(data.get("output_filename"), DEFAULT_OUTPUT_FILENAME).strip()
            or DEFAULT_OUTPUT_FILENAME,
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to JSON-safe data with sets emitted as sorted lists."""
        out: dict[str, object] = dict(self.extra)
        out.update(
            {
                "ignored_names": sorted(self.ignored_names),
                "ignored_folders": sorted(self.ignored_folders),
                "binary_extensions": sorted(self.binary_extensions),
                "token_limit": self.token_limit,
                "max_file_size": self.max_file_size,
                "output_template": self.output_template,
                "theme": self.theme,
                "output_filename": self.output_filename,
            }
        )
        return out


def _coerce_name_set(value: object, default: frozenset[str]) -> frozenset[str]:
    """Accept a list of strings; anything else yields ``default``."""
    if not isinstance(value, (list, tuple, set, frozenset)):
        return default
    names = {item.strip() for item in value if isinstance(item, str) and item.strip()}
    return frozenset(names)


def _coerce_positive_int(value: object, default: int) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _coerce_text(value: object, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _coerce_theme(value: object) -> str:
    if isinstance(value, str) and value.strip().lower() in THEMES:
        return value.strip().lower()
    return DEFAULT_THEME


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem/serialization errors are logged and otherwise ignored so a
    read-only config directory never breaks a scan or export.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to save config to %s: %s", CONFIG_PATH, exc)


def load_app_config() -> AppConfig:
    """Load the user's persisted ``AppConfig`` (defaults when absent)."""
    return AppConfig.from_dict(load_config())


def save_app_config(config: AppConfig) -> None:
    """Persist ``config`` as the user's default settings."""
    save_config(config.to_dict())


def config_schema() -> list[dict[str, object]]:
    """Describe editable settings grouped into sections for a settings UI."""
    return [
        {
            "id": "general",
            "label": "General",
            "fields": [
                {
                    "key": "theme",
                    "label": "Interface Theme",
                    "description": "Choose your preferred color scheme.",
                    "component": {"type": "Select", "options": {"options": list(THEMES)}},
                },
                {
                    "key": "token_limit",
                    "label": "Token Limit Warning",
                    "description": "Progress bar turns red when this limit is exceeded.",
                    "component": {"type": "Number", "options": {"min": 1000, "max": None, "suffix": "tokens"}},
                },
            ],
        },
        {
            "id": "generation",
            "label": "Generation",
            "fields": [
                {
                    "key": "output_filename",
                    "label": "Default Output Filename",
                    "description": None,
                    "component": {"type": "Text"},
                },
                {
                    "key": "max_file_size",
                    "label": "Max File Size",
                    "description": "Files larger than this will be skipped.",
                    "component": {"type": "Number", "options": {"min": 1024, "max": None, "suffix": "bytes"}},
                },
                {
                    "key": "output_template",
                    "label": "Output Template",
                    "description": "Variables: {{path}}, {{language}}, {{content}}",
                    "component": {"type": "Textarea", "options": {"rows": 6}},
                },
            ],
        },
        {
            "id": "filters",
            "label": "Filters",
            "fields": [
                {
                    "key": "ignored_names",
                    "label": "Ignored Files & Folders",
                    "description": "Exact match for files and folders to skip.",
                    "component": {"type": "Tags"},
                },
                {
                    "key": "binary_extensions",
                    "label": "Binary Extensions",
                    "description": "Files with these extensions will be skipped.",
                    "component": {"type": "Tags"},
                },
            ],
        },
    ]


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "THEMES",
    "AppConfig",
    "load_config",
    "save_config",
    "load_app_config",
    "save_app_config",
    "config_schema",
]
