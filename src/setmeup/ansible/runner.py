# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/ansible/runner.py

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from ..bootstrap.credentials import LOCALHOST, Credentials
from ..errors import CredentialError, ProcessError, ProtocolError
from ..sources.models import EngineContext
from ..utils.process import ProcessHarness, RunMode
from .models import PROVISIONEE, PlaybookReport, TaskResult

log = logging.getLogger("setmeup")

JSON_CALLBACK = "ansible.posix.json"


def render_inventory(reverse_port: int, username: str) -> str:
    return (
        f"{PROVISIONEE} ansible_host={LOCALHOST} "
        f"ansible_port={reverse_port} ansible_user={username}"
    )


def decode_report(output: str) -> List[TaskResult]:
    """
    Flatten the engine's JSON report into one TaskResult per task, in
    play order. A report without a ``plays`` list is rejected outright.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"invalid JSON report from ansible-playbook: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("plays"), list):
        raise ProtocolError("missing plays array")

    try:
        report = PlaybookReport.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"malformed ansible-playbook report: {e}") from e
    return report.task_results(PROVISIONEE)


class AnsibleRunner:
    """Runs ansible-playbook against the single provisionee behind the reverse port."""

    def __init__(self, engine: Optional[EngineContext] = None, harness: Optional[ProcessHarness] = None):
        self.engine = engine or EngineContext()
        self.harness = harness or ProcessHarness(label="ansible-playbook")

    def build_env(self, control_dir: Union[str, Path]) -> Dict[str, str]:
        env = dict(self.engine.env)
        env["ANSIBLE_CALLBACKS_ENABLED"] = JSON_CALLBACK
        env["ANSIBLE_STDOUT_CALLBACK"] = JSON_CALLBACK
        env["ANSIBLE_HOST_KEY_CHECKING"] = "False"
        env["ANSIBLE_SSH_CONTROL_PATH_DIR"] = str(control_dir)
        return env

    @staticmethod
    def build_args(key_path: Union[str, Path], inventory_path: Union[str, Path], playbook_path: Union[str, Path]) -> List[str]:
        return [
            "--private-key", str(key_path),
            "-i", str(inventory_path),
            "-l", PROVISIONEE,
            str(playbook_path),
        ]

    def clean_up_control_dir(self, control_dir: Path) -> None:
        """Ask every leftover control master socket to exit. Best effort."""
        sweeper = ProcessHarness(label="ssh")
        for entry in sorted(control_dir.rglob("*")):
            log.debug("Closing leftover control socket %s", entry)
            try:
                sweeper.run("ssh", ["-o", f"ControlPath={entry}", "-O", "exit", "bogus"], cwd=control_dir)
            except ProcessError as e:
                log.debug("Control socket %s: %s", entry, e)

    def execute(
        self,
        credentials: Credentials,
        reverse_port: int,
        playbook_path: Union[str, Path],
        source_dir: Union[str, Path],
    ) -> List[TaskResult]:
        with ExitStack() as stack:
            keyfile = stack.enter_context(
                tempfile.NamedTemporaryFile("w", prefix="setmeup-key-", encoding="utf-8")
            )
            os.chmod(keyfile.name, 0o600)
            try:
                credentials.keypair.write_private_key(keyfile)
            except Exception as e:
                raise CredentialError(f"failed to serialise the private key: {e}") from e
            keyfile.flush()

            inventory = stack.enter_context(
                tempfile.NamedTemporaryFile("w", prefix="setmeup-inventory-", encoding="utf-8")
            )
            inventory.write(render_inventory(reverse_port, credentials.username))
            inventory.flush()

            control_dir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="setmeup-cp-")))
            env = self.build_env(control_dir)
            log.debug("ansible-playbook environment overrides: %s", ", ".join(sorted(env)))

            log.info("Running %s on %s", playbook_path, PROVISIONEE)
            try:
                output = self.harness.run(
                    self.engine.program,
                    self.build_args(keyfile.name, inventory.name, playbook_path),
                    cwd=source_dir,
                    env=env,
                    mode=RunMode.CAPTURED,
                    engine=True,
                )
            finally:
                self.clean_up_control_dir(control_dir)

        results = decode_report(output)
        log.info("ansible-playbook reported %d task(s)", len(results))
        return results
