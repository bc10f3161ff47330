# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/sources/models.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_PLAYBOOK_MATCH = r"\.ya?ml$"
DEFAULT_ENGINE = "ansible-playbook"


@dataclass(frozen=True)
class EngineContext:
    """Which ansible-playbook to call and the extra environment to give it."""

    path: Optional[Path] = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def program(self) -> str:
        return str(self.path) if self.path else DEFAULT_ENGINE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.path is not None:
            data["path"] = str(self.path)
        if self.env:
            data["env"] = [{"name": k, "value": v} for k, v in self.env.items()]
        return data


@dataclass(frozen=True)
class Source:
    """A named, validated directory of playbooks plus its execution policy."""

    name: str
    path: Path
    recurse: bool = False
    playbook_match: re.Pattern = field(default_factory=lambda: re.compile(DEFAULT_PLAYBOOK_MATCH))
    pre_provision: Optional[str] = None
    engine: EngineContext = field(default_factory=EngineContext)

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        """Catalog-document shape of the validated fields."""
        data: Dict[str, Any] = {
            "path": str(self.path),
            "recurse": self.recurse,
            "playbook_match": self.playbook_match.pattern,
        }
        if self.pre_provision is not None:
            data["pre_provision"] = self.pre_provision
        engine = self.engine.to_dict()
        if engine:
            data["engine_context"] = engine
        return data
