"""Package alias tables.

An alias file maps a generic package name to the concrete name used by a
given package source:

    firefox:
      flatpak: org.mozilla.firefox
    vim:
      aur: vim-git

The global file (see ``paths.get_global_aliases_path``) is loaded first and
the ``pkg_aliases.yaml`` next to the entry document is merged on top of it.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError
from .paths import get_global_aliases_path, get_local_aliases_path
from .system.pkg import PackageManager, parse_package_source, repository_for

_logging = logging.getLogger(__name__)


@dataclass
class PackageAliases:
    """Alias table keyed by package, then by source name (``apt``, ``aur``...)."""

    table: dict[str, dict[str, str]] = field(default_factory=dict)

    def merge(self, other: "PackageAliases") -> "PackageAliases":
        """Return a new table where entries of ``other`` win key by key."""
        merged = {package: dict(sources) for package, sources in self.table.items()}
        for package, sources in other.table.items():
            merged.setdefault(package, {}).update(sources)
        return PackageAliases(merged)

    def resolve_name(self, package: str, manager: PackageManager) -> str:
        """Concrete name of ``package`` for ``manager``, or the name unchanged.

        Managers serving a repository (yay, paru) look up the repository key.
        """
        repo = repository_for(manager)
        source = repo.value if repo is not None else manager.value
        return self.table.get(package, {}).get(source, package)

    def resolve_names(self, packages, manager: PackageManager) -> list[str]:
        return [self.resolve_name(package, manager) for package in packages]


def parse_aliases(data, source: str = "<aliases>") -> PackageAliases:
    """Validate a raw alias mapping.

    Raises:
        ConfigError: If the structure is wrong or a source name is unknown
    """
    if data is None:
        return PackageAliases()
    if not isinstance(data, dict):
        raise ConfigError(f"Package aliases in {source} must be a mapping")

    table: dict[str, dict[str, str]] = {}
    for package, sources in data.items():
        entity = f"Package alias '{package}' in {source}"
        if not isinstance(sources, dict):
            raise ConfigError(f"{entity} must map package sources to names")
        table[str(package)] = {}
        for source_name, concrete in sources.items():
            try:
                key = parse_package_source(str(source_name)).value
            except ValueError as e:
                raise ConfigError(f"{entity}: {e}") from e
            if not isinstance(concrete, str) or not concrete.strip():
                raise ConfigError(
                    f"{entity} field '{source_name}' must be a non-empty string"
                )
            table[str(package)][key] = concrete
    return PackageAliases(table)


def load_alias_file(path: Path) -> PackageAliases:
    """Load one alias file.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse package aliases in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    return parse_aliases(data, str(path))


def load_aliases(document_dir: Path) -> PackageAliases:
    """Load the global alias file with the local one merged on top.

    Missing files are treated as empty tables.
    """
    aliases = PackageAliases()

    global_path = get_global_aliases_path()
    if global_path.exists():
        _logging.debug(f"Loading global aliases from {global_path}")
        aliases = load_alias_file(global_path)

    local_path = get_local_aliases_path(document_dir)
    if local_path.exists():
        _logging.debug(f"Loading local aliases from {local_path}")
        aliases = aliases.merge(load_alias_file(local_path))

    return aliases


__all__ = ["PackageAliases", "parse_aliases", "load_alias_file", "load_aliases"]
