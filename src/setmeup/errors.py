# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/errors.py


class SetMeUpError(RuntimeError):
    """Base class for every failure that ends a provisioning run."""


class ConfigError(SetMeUpError):
    """Catalog or configuration file failed to parse or validate."""


class SourceError(SetMeUpError):
    """A source could not be used for this run (pre-provision hook, no playbooks)."""


class CredentialError(SetMeUpError):
    """Key generation/serialisation failed, or the authentication test did."""


class ProcessError(SetMeUpError):
    """An external program could not be spawned or exited unsuccessfully."""

    def __init__(self, message: str, *, program: str = "", returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.program = program
        self.returncode = returncode
        self.output = output


class ProtocolError(SetMeUpError):
    """The engine's JSON report was malformed or incomplete."""
