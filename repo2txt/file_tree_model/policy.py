"""Ignore/config policy predicates shared by every scan entry point."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig


def is_private(name: str) -> bool:
    """Return whether ``name`` looks like a credential/secret file.

    This floor is not configurable: ``.env``/``.env.*``, ``*.secret``,
    ``*.key``, ``*.pem``, and anything mentioning ``id_rsa`` or ``secrets``.
    """
    lowered = name.lower()
    return (
        lowered == ".env"
        or lowered.startswith(".env.")
        or lowered.endswith(".secret")
        or lowered.endswith(".key")
        or lowered.endswith(".pem")
        or "id_rsa" in lowered
        or "secrets" in lowered
    )


def extension_of(name: str) -> str:
    """Return the lower-cased final extension of ``name`` without the dot.

    Dotfiles such as ``.gitignore`` have no extension.
    """
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return ""
    return ext.lower()


@dataclass(frozen=True)
class IgnorePolicy:
    """Pure predicates derived from an ``AppConfig``."""

    ignored_names: frozenset[str]
    binary_extensions: frozenset[str]

    @classmethod
    def from_config(cls, config: AppConfig) -> "IgnorePolicy":
        return cls(
            ignored_names=frozenset(config.ignored_names | config.ignored_folders),
            binary_extensions=frozenset(ext.lower() for ext in config.binary_extensions),
        )

    def is_ignored_name(self, name: str) -> bool:
        return name in self.ignored_names

    def is_ignored_extension(self, ext: str) -> bool:
        return ext.lower().lstrip(".") in self.binary_extensions

    def is_private(self, name: str) -> bool:
        return is_private(name)

    def skips(self, name: str, is_directory: bool) -> bool:
        """Return whether a scanned entry must be left out of the index.

        Directories are only filtered by name; extension and private-file
        checks apply to files alone.
        """
        if self.is_ignored_name(name):
            return True
        if is_directory:
            return False
        ext = extension_of(name)
        if ext and self.is_ignored_extension(ext):
            return True
        return self.is_private(name)


__all__ = [
    "IgnorePolicy",
    "extension_of",
    "is_private",
]
