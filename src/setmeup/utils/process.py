# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/utils/process.py

from __future__ import annotations

import enum
import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from ..errors import ProcessError

log = logging.getLogger("setmeup")

Cmd = Sequence[Union[str, "os.PathLike[str]"]]


class RunMode(enum.Enum):
    # stdout/stderr piped and returned
    CAPTURED = "captured"
    # stdio inherited from the controlling terminal
    INTERACTIVE = "interactive"


def merged_env(extra: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Inherited environment with ``extra`` entries overriding by name."""
    env = os.environ.copy()
    if extra:
        env.update(extra)
    return env


def _or_placeholder(text: str, stream: str) -> str:
    return text if text else f"<nothing on {stream}>"


@dataclass
class ProcessHarness:
    """
    Runs external programs in an explicit working directory with an
    inherited-plus-overrides environment. Captured runs get a null stdin;
    interactive runs share the terminal so password prompts stay usable.

    ``engine=True`` marks the configuration-management engine: a non-zero
    exit whose captured stdout starts with ``{`` is a well-formed report of
    failed tasks, not a crash, and is returned as-is.
    """

    label: Optional[str] = None

    def run(
        self,
        program: str,
        args: Cmd = (),
        *,
        cwd: Union[str, Path],
        env: Optional[Mapping[str, str]] = None,
        mode: RunMode = RunMode.CAPTURED,
        engine: bool = False,
    ) -> str:
        label = self.label or Path(program).name
        argv = [program, *map(str, args)]
        log.debug("[%s] $ %s (cwd=%s)", label, " ".join(argv), cwd)

        start = time.time()
        if mode is RunMode.INTERACTIVE:
            return self._run_interactive(argv, label, cwd, env, start)
        return self._run_captured(argv, label, cwd, env, engine, start)

    def _spawn_error(self, argv: list[str], exc: OSError) -> ProcessError:
        return ProcessError(f"failed to spawn process {argv[0]}: {exc}", program=argv[0])

    def _run_captured(self, argv, label, cwd, env, engine, start) -> str:
        try:
            cp = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                cwd=str(cwd),
                env=merged_env(env),
                check=False,
            )
        except OSError as exc:
            raise self._spawn_error(argv, exc) from exc

        stdout = cp.stdout or ""
        stderr = cp.stderr or ""
        log.debug("[%s][exit %s] (%.2fs)", label, cp.returncode, time.time() - start)

        if cp.returncode == 0:
            return stdout

        if engine and stdout.startswith("{"):
            log.debug("[%s] non-zero exit with a structured report, handing it over", label)
            return stdout

        output = f"{_or_placeholder(stdout, 'stdout')}\n\n{_or_placeholder(stderr, 'stderr')}"
        raise ProcessError(
            f"failed to run {argv[0]} (rc={cp.returncode}):\n\n{output}",
            program=argv[0],
            returncode=cp.returncode,
            output=output,
        )

    def _run_interactive(self, argv, label, cwd, env, start) -> str:
        try:
            cp = subprocess.run(
                argv,
                cwd=str(cwd),
                env=merged_env(env),
                check=False,
            )
        except OSError as exc:
            raise self._spawn_error(argv, exc) from exc

        log.debug("[%s][exit %s] (%.2fs)", label, cp.returncode, time.time() - start)
        if cp.returncode != 0:
            raise ProcessError(
                f"{argv[0]} exited with non-zero status code {cp.returncode}",
                program=argv[0],
                returncode=cp.returncode,
            )
        return ""


def shell(cmdline: str, cwd: Union[str, Path], env: Optional[Mapping[str, str]] = None) -> str:
    """Run ``cmdline`` through the operator's shell, captured."""
    executable = os.environ.get("SHELL") or "/bin/sh"
    return ProcessHarness(label="shell").run(executable, ["-c", cmdline], cwd=cwd, env=env)
