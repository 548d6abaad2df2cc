"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from shipline.core.log import logger

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"
PROJECT_FILE = "shipline.yaml"


def cli_includes(argv: list[str]) -> list[str]:
    """Collect the values of every --include option in argv."""
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        i += 1
    return includes


def merge_dicts(base: dict, override: dict) -> dict:
    """Return base with override merged in; override wins."""
    result = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with include: directives.

    Deep merges, lowest priority first:
        package defaults < user config < ./shipline.yaml
        < --include files
    Each file may pull in others with an include: key, resolved
    relative to the including file.
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        """Initialize, folding --include CLI arguments into the file list.

        Args:
            settings_cls: The settings class being initialized
            yaml_file: Optional override for the project config file
        """
        includes = cli_includes(sys.argv)

        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base and includes:
            yaml_file = (
                [base] if isinstance(base, (str, os.PathLike)) else list(base)
            ) + includes
        elif includes:
            yaml_file = includes
        else:
            yaml_file = base

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, deep_merge: bool = False):  # noqa: ARG002
        """Load defaults, user config, then the given files.

        The project file named in model_config only counts when it
        exists; missing files are skipped.
        """
        files_to_load = [
            DEFAULTS_FILE,
            Path(user_config_dir("shipline", appauthor=False))
            / PROJECT_FILE,
        ]

        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        result = {}
        for file_path in files_to_load:
            if file_path.is_file():
                logger.debug(
                    "Loading configuration", file=str(file_path)
                )
                data = self._load_file_recursive(file_path, set())
                result = merge_dicts(result, data)
            else:
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )

        return result

    def _load_file_recursive(
        self, filepath: Path, visited: set[Path]
    ) -> dict:
        """Load a YAML file and merge its include: files beneath it.

        Raises:
            ValueError: If an include cycle is detected
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if "include" in data:
            includes = data.pop("include")
            if isinstance(includes, str):
                includes = [includes]

            for inc in includes:
                inc_path = self._resolve_path(inc, filepath)
                inc_data = self._load_file_recursive(
                    inc_path, visited.copy()
                )
                data = merge_dicts(inc_data, data)

        return data

    @staticmethod
    def _resolve_path(include_path: str, relative_to: Path) -> Path:
        path = Path(include_path).expanduser()
        if path.is_absolute():
            return path
        return (relative_to.parent / path).resolve()
