# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/provision/orchestrator.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ..ansible.models import TaskResult
from ..ansible.runner import AnsibleRunner
from ..bootstrap.credentials import CredentialBootstrap, RunConfig
from ..errors import SourceError
from ..sources.catalog import SourceCatalog
from ..sources.locator import explore, update
from ..sources.models import EngineContext, Source

log = logging.getLogger("setmeup")


@dataclass
class Selection:
    source: Source
    playbook_path: Path


class ProvisionOrchestrator:
    """
    One provisioning run: pick a source and a playbook, establish trust
    with the target, then hand everything to ansible-playbook.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        ui,
        *,
        bootstrap: Optional[CredentialBootstrap] = None,
        runner_factory: Callable[[EngineContext], AnsibleRunner] = AnsibleRunner,
    ):
        self.catalog = catalog
        self.ui = ui
        self.bootstrap = bootstrap or CredentialBootstrap(ui)
        self.runner_factory = runner_factory

    def select(self) -> Selection:
        index = self.ui.prompt_from_list(
            "Here are the available provisioning sources:",
            self.catalog.names(),
        )
        source = self.catalog[index]
        log.info("Selected source %s", source.name)

        update(source)

        playbooks = explore(source)
        if not playbooks:
            raise SourceError(f"no playbook found in source '{source.name}'")

        index = self.ui.prompt_from_list(
            "Here are the available playbooks:",
            [str(p) for p in playbooks],
        )
        return Selection(source=source, playbook_path=playbooks[index])

    def execute(self, selection: Selection, run_config: RunConfig) -> List[TaskResult]:
        runner = self.runner_factory(selection.source.engine)
        return runner.execute(
            run_config.credentials,
            run_config.reverse_port,
            selection.playbook_path,
            selection.source.path,
        )

    def run(self) -> List[TaskResult]:
        self.ui.intro()
        selection = self.select()

        self.ui.next_step()
        run_config = self.bootstrap.run()

        self.ui.next_step()
        self.ui.running()
        results = self.execute(selection, run_config)
        self.ui.render_report(results)
        return results
