# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/bootstrap/credentials.py

from __future__ import annotations

import errno
import logging
import socket
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from ..errors import CredentialError

log = logging.getLogger("setmeup")

LOCALHOST = "127.0.0.1"


def authorized_key_line(keypair: paramiko.PKey) -> str:
    """Public half of ``keypair`` as it appears in authorized_keys."""
    return f"{keypair.get_name()} {keypair.get_base64()}"


@dataclass
class Credentials:
    username: str
    keypair: paramiko.ECDSAKey

    @property
    def public_key(self) -> str:
        return authorized_key_line(self.keypair)


@dataclass
class RunConfig:
    reverse_port: int
    credentials: Credentials


def port_is_bound(port: int, host: str = LOCALHOST) -> bool:
    """
    True when something already listens on ``host:port``.

    The probe binds and releases immediately: only an "address in use"
    failure proves a reverse tunnel holds the port. SO_REUSEADDR keeps
    connections lingering in TIME_WAIT from counting as a listener.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        return e.errno == errno.EADDRINUSE
    finally:
        sock.close()
    return False


def parse_port(text: str) -> int:
    port = int(text.strip())
    if not 0 <= port <= 65535:
        raise ValueError("port must be between 0 and 65535")
    return port


def generate_keypair() -> paramiko.ECDSAKey:
    try:
        return paramiko.ECDSAKey.generate(bits=256)
    except Exception as e:
        raise CredentialError(f"failed to generate keypair: {e}") from e


def verify_credentials(port: int, username: str, keypair: paramiko.PKey) -> None:
    """
    Connect back through the tunnel and authenticate with ``keypair``
    held in memory. Raises CredentialError on any failure.
    """
    try:
        sock = socket.create_connection((LOCALHOST, port))
    except OSError as e:
        raise CredentialError(f"failed to connect via local port {port}: {e}") from e

    transport = paramiko.Transport(sock)
    try:
        try:
            transport.start_client()
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise CredentialError(f"handshake failed: {e}") from e

        try:
            remaining = transport.auth_publickey(username, keypair)
        except (paramiko.SSHException, OSError) as e:
            raise CredentialError(str(e) or e.__class__.__name__) from e

        # partial success: the server wants more than the key
        if not transport.is_authenticated():
            methods = ", ".join(remaining or []) or "unknown"
            raise CredentialError(f"public key accepted but further authentication required ({methods})")
    finally:
        transport.close()


class CredentialBootstrap:
    """
    Operator-driven loop establishing trust with the target:
    port → key pair → username → key installation → authentication test.

    ``max_attempts`` bounds the failed port entries and failed
    authentication tests; ``None`` keeps the loops unbounded.
    """

    def __init__(
        self,
        ui,
        *,
        probe: Callable[[int], bool] = port_is_bound,
        authenticate: Callable[[int, str, paramiko.PKey], None] = verify_credentials,
        keygen: Callable[[], paramiko.PKey] = generate_keypair,
        max_attempts: Optional[int] = None,
    ):
        self.ui = ui
        self.probe = probe
        self.authenticate = authenticate
        self.keygen = keygen
        self.max_attempts = max_attempts

    def _check_attempts(self, attempts: int, what: str) -> None:
        if self.max_attempts is not None and attempts >= self.max_attempts:
            raise CredentialError(f"giving up after {attempts} failed {what} attempt(s)")

    def prompt_port(self) -> int:
        failures = 0
        while True:
            text = self.ui.prompt("Which port did ssh bind to for remote forwarding?")
            try:
                port = parse_port(text)
            except ValueError as e:
                self.ui.error(f'Invalid port specification "{text}" ({e})')
            else:
                if self.probe(port):
                    log.info("Reverse port %d is bound", port)
                    return port
                log.warning("Port %d is not bound locally", port)
                self.ui.error(f"Port is not bound locally: {port}")
            failures += 1
            self._check_attempts(failures, "port")

    def prompt_username(self) -> str:
        username = ""
        while not username:
            username = self.ui.prompt("Which username should SetMeUp use to reach you over SSH?")
            if not username:
                self.ui.error("The username cannot be empty")
        return username

    def key_setup(self, port: int) -> Credentials:
        keypair = self.keygen()
        pubkey = authorized_key_line(keypair)

        failures = 0
        while True:
            username = self.prompt_username()
            self.ui.present_pubkey(username, pubkey)
            self.ui.prompt("Press the Enter key when you are done:")

            try:
                self.authenticate(port, username, keypair)
            except CredentialError as e:
                log.warning("Authentication test failed for %s: %s", username, e)
                self.ui.error(f"Authentication test failed: {e}")
                failures += 1
                self._check_attempts(failures, "authentication")
                continue

            log.info("Authenticated as %s through port %d", username, port)
            return Credentials(username=username, keypair=keypair)

    def run(self) -> RunConfig:
        port = self.prompt_port()
        credentials = self.key_setup(port)
        return RunConfig(reverse_port=port, credentials=credentials)
