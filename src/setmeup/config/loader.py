# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/config/loader.py

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from yaml.constructor import ConstructorError

from ..errors import ConfigError
from ..sources.catalog import SourceCatalog

log = logging.getLogger("setmeup")

CONFIG_NAME = "setmeup.yml"


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError:
                continue
            if duplicate:
                raise ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def default_locations() -> List[Path]:
    """
    Candidate configuration files, in priority order:

    1. ``SETMEUP_CONF`` environment variable
    2. ``$XDG_CONFIG_HOME/setmeup/setmeup.yml``
    3. ``$XDG_CONFIG_HOME/setmeup.yml``
    4. ``~/.setmeup.yml``
    5. ``/etc/setmeup/setmeup.yml``
    6. ``/etc/setmeup.yml``
    """
    locations: List[Path] = []

    env = os.environ.get("SETMEUP_CONF")
    if env:
        locations.append(Path(env))

    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    locations.append(Path(xdg) / "setmeup" / CONFIG_NAME)
    locations.append(Path(xdg) / CONFIG_NAME)
    locations.append(Path.home() / f".{CONFIG_NAME}")
    locations.append(Path("/etc/setmeup") / CONFIG_NAME)
    locations.append(Path("/etc") / CONFIG_NAME)
    return locations


def locate_config(explicit: Optional[Path] = None) -> Path:
    if explicit is not None:
        return Path(explicit)
    for candidate in default_locations():
        if candidate.exists():
            log.debug("Using configuration file %s", candidate)
            return candidate
    raise ConfigError("no configuration file found")


def load_catalog(path: str | Path) -> SourceCatalog:
    """Read a single-document YAML configuration and validate its sources."""
    path = Path(path)
    try:
        raw = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to read configuration from {path}") from e

    try:
        documents = list(yaml.load_all(raw, Loader=_UniqueKeyLoader))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid configuration in {path}: {e}") from e

    if len(documents) != 1:
        raise ConfigError("configuration should be a single-document YAML file")

    document = documents[0]
    sources = document.get("sources") if isinstance(document, dict) else None
    return SourceCatalog.parse(sources)


def locate_and_load(explicit: Optional[Path] = None) -> SourceCatalog:
    return load_catalog(locate_config(explicit))
