# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/sources/catalog.py

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ..errors import ConfigError
from .models import DEFAULT_PLAYBOOK_MATCH, EngineContext, Source

log = logging.getLogger("setmeup")

_MISSING = object()

ENGINE_KEYS = ("engine_context", "ansible_playbook")


def _field(entry: Any, key: str) -> Any:
    if not isinstance(entry, Mapping):
        return _MISSING
    return entry.get(key, _MISSING)


def _parse_path(entry: Any) -> Path:
    value = _field(entry, "path")
    if value is _MISSING:
        raise ConfigError("missing path parameter")
    if not isinstance(value, str):
        raise ConfigError("expected string for the path parameter")
    path = Path(value)
    if not (path.is_dir() and os.access(path, os.R_OK)):
        raise ConfigError(f"failed to read at {path}")
    return path


def _parse_recurse(entry: Any) -> bool:
    value = _field(entry, "recurse")
    if value is _MISSING:
        return False
    if not isinstance(value, bool):
        raise ConfigError("expected boolean for the recurse parameter")
    return value


def _parse_playbook_match(entry: Any) -> re.Pattern:
    value = _field(entry, "playbook_match")
    if value is _MISSING:
        return re.compile(DEFAULT_PLAYBOOK_MATCH)
    if not isinstance(value, str):
        raise ConfigError("expected string for the playbook_match parameter")
    try:
        return re.compile(value)
    except re.error as e:
        raise ConfigError(f"invalid playbook_match pattern {value!r}: {e}") from e


def _parse_pre_provision(entry: Any) -> Optional[str]:
    value = _field(entry, "pre_provision")
    if value is _MISSING:
        return None
    if not isinstance(value, str):
        raise ConfigError("expected string for the pre_provision parameter")
    return value


def _parse_env_pair(item: Any) -> tuple[str, str]:
    name = _field(item, "name")
    if name is _MISSING:
        raise ConfigError("missing name property for environment variable")
    if not isinstance(name, str):
        raise ConfigError("non-string name property for environment variable")

    value = _field(item, "value")
    if value is _MISSING:
        raise ConfigError("missing value property for environment variable")
    if not isinstance(value, str):
        raise ConfigError("non-string value property for environment variable")
    return name, value


def parse_engine_context(block: Any) -> EngineContext:
    """Validate the nested ``engine_context`` block of a source entry."""
    if not isinstance(block, Mapping):
        raise ConfigError("expected mapping for the engine_context parameter")

    path: Optional[Path] = None
    raw_path = block.get("path", _MISSING)
    if raw_path is not _MISSING:
        if not isinstance(raw_path, str):
            raise ConfigError("expected string for the ansible-playbook path")
        path = Path(raw_path)
        if not (path.is_file() and os.access(path, os.X_OK)):
            raise ConfigError(f"no executable ansible-playbook at {path}")

    env: Dict[str, str] = {}
    raw_env = block.get("env", _MISSING)
    if raw_env is not _MISSING:
        if not isinstance(raw_env, list):
            raise ConfigError("expected list for the ansible-playbook environment")
        for item in raw_env:
            name, value = _parse_env_pair(item)
            env[name] = value

    return EngineContext(path=path, env=env)


def parse_source(name: str, entry: Any) -> Source:
    """
    Validate one catalog entry. Fields are checked in a fixed order
    (path, recurse, playbook_match, pre_provision, engine_context) so the
    first reported error is stable for a given document.
    """
    try:
        path = _parse_path(entry)
        recurse = _parse_recurse(entry)
        playbook_match = _parse_playbook_match(entry)
        pre_provision = _parse_pre_provision(entry)

        engine = EngineContext()
        for key in ENGINE_KEYS:
            block = _field(entry, key)
            if block is not _MISSING:
                engine = parse_engine_context(block)
                break
    except ConfigError as e:
        raise ConfigError(f"source '{name}': {e}") from e

    return Source(
        name=name,
        path=path,
        recurse=recurse,
        playbook_match=playbook_match,
        pre_provision=pre_provision,
        engine=engine,
    )


class SourceCatalog:
    """Ordered, fully validated set of playbook sources."""

    def __init__(self, sources: List[Source]):
        self.sources = list(sources)

    @classmethod
    def parse(cls, document: Any) -> "SourceCatalog":
        """
        Build a catalog from the ``sources`` mapping of a configuration
        document. Any invalid entry fails the whole catalog.
        """
        if not isinstance(document, Mapping) or not document:
            raise ConfigError("missing or empty sources")

        sources = []
        for name, entry in document.items():
            if not isinstance(name, str):
                raise ConfigError("expected string as source name")
            sources.append(parse_source(name, entry))

        log.debug("Parsed %d source(s): %s", len(sources), ", ".join(s.name for s in sources))
        return cls(sources)

    def names(self) -> List[str]:
        return [s.name for s in self.sources]

    def to_dict(self) -> Dict[str, Any]:
        return {s.name: s.to_dict() for s in self.sources}

    def __iter__(self) -> Iterator[Source]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def __getitem__(self, index: int) -> Source:
        return self.sources[index]
