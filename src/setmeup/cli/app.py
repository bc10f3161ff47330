# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from setmeup.config.loader import locate_and_load
from setmeup.errors import SetMeUpError
from setmeup.logging.log import init_logging
from setmeup.provision.orchestrator import ProvisionOrchestrator
from setmeup.ui.interface import select_interface

# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(
    help="Set Me Up! Minimalistic Ansible-based remote provisioning tool",
    add_completion=False,
)


@app.command()
def provision(
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", metavar="FILE", help="Configuration file to use"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Also write a full trace log here"),
):
    """
    Prompt for a source, a playbook and SSH credentials, then provision
    the machine on the other end of the reverse tunnel.
    """
    logger, _, _ = init_logging(base_dir=log_dir, verbose=verbose)
    ui = select_interface()

    try:
        catalog = locate_and_load(config)
    except SetMeUpError as e:
        ui.error(f"Failed to parse configuration: {e}")
        raise typer.Exit(code=1)

    try:
        ProvisionOrchestrator(catalog, ui).run()
    except SetMeUpError as e:
        logger.debug("Run failed", exc_info=True)
        ui.error(f"Provisioning error: {e}")
        raise typer.Exit(code=1)
    except typer.Abort:
        ui.error("Aborted: no more input")
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
