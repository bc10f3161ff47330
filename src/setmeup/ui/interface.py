# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/ui/interface.py

from __future__ import annotations

import sys
from typing import List, Protocol, Sequence

import typer

from ..ansible.models import TaskResult


class UserInterface(Protocol):
    def intro(self) -> None: ...
    def error(self, message: str) -> None: ...
    def next_step(self) -> None: ...
    def prompt(self, message: str) -> str: ...
    def present_pubkey(self, username: str, pubkey: str) -> None: ...
    def prompt_from_list(self, message: str, choices: Sequence[str]) -> int: ...
    def running(self) -> None: ...
    def render_report(self, results: List[TaskResult]) -> None: ...


# ------------------------------------------------------------------------------
# Behaviour shared by every variant
# ------------------------------------------------------------------------------

def read_line(message: str) -> str:
    """Prompt once; an empty answer is allowed. Raises typer.Abort on EOF."""
    answer = typer.prompt(message, default="", show_default=False, prompt_suffix=" ")
    return answer.rstrip()


def prompt_index_in_range(ui: UserInterface, length: int) -> int:
    """Ask for a 1-based index until one in ``1..length`` is given; returns it 0-based."""
    while True:
        answer = ui.prompt(f"Select by index (1-{length}) :")
        try:
            index = int(answer)
        except ValueError:
            continue
        if 1 <= index <= length:
            return index - 1


def intro_pubkey(ui: UserInterface, username: str) -> None:
    ui.next_step()
    typer.echo("SetMeUp will be using an ECDSA keypair to authenticate with your machine.")
    typer.echo(
        f"Please make sure user {username} has the following public key "
        "in their ~/.ssh/authorized_keys file:\n"
    )


def running_banner() -> None:
    typer.echo("Running Ansible (this may take a while)... ", nl=False)


# ------------------------------------------------------------------------------
# Variants
# ------------------------------------------------------------------------------

class PlainInterface:
    """No escape sequences: stdin is not a terminal."""

    def intro(self) -> None:
        typer.echo("=== Welcome to SetMeUp! ===")
        typer.echo("Basic UI mode: connect with `ssh -t` for something slightly fancier\n")

    def error(self, message: str) -> None:
        typer.echo(f"/!\\ {message}")

    def next_step(self) -> None:
        typer.echo()

    def prompt(self, message: str) -> str:
        return read_line(message)

    def present_pubkey(self, username: str, pubkey: str) -> None:
        intro_pubkey(self, username)
        typer.echo(f"---\n{pubkey}\n---\n")

    def prompt_from_list(self, message: str, choices: Sequence[str]) -> int:
        typer.echo(f"{message}\n")
        for i, choice in enumerate(choices, 1):
            typer.echo(f"    {i}. {choice}")
        typer.echo()
        return prompt_index_in_range(self, len(choices))

    def running(self) -> None:
        running_banner()

    def render_report(self, results: List[TaskResult]) -> None:
        typer.echo("done!")
        for task in results:
            status = "OK" if task.success else "KO"
            change = " (change)" if task.changed else ""
            typer.echo(f"`- [{status}]{change} {task.name}")
            if not task.success:
                typer.echo(f"        Task error message: {task.message}")


class DecoratedInterface:
    """Colours and screen clearing for interactive terminals."""

    def intro(self) -> None:
        typer.secho("Welcome to SetMeUp!\n", fg=typer.colors.CYAN, bold=True)

    def error(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.RED, bold=True)

    def next_step(self) -> None:
        typer.clear()

    def prompt(self, message: str) -> str:
        return read_line(message)

    def present_pubkey(self, username: str, pubkey: str) -> None:
        intro_pubkey(self, username)
        typer.secho(f"{pubkey}\n", fg=typer.colors.BLUE, bold=True)

    def prompt_from_list(self, message: str, choices: Sequence[str]) -> int:
        typer.echo(f"{message}\n")
        for i, choice in enumerate(choices, 1):
            index = typer.style(f"{i}.", fg=typer.colors.CYAN, bold=True)
            typer.echo(f"    {index} {choice}")
        typer.echo()
        return prompt_index_in_range(self, len(choices))

    def running(self) -> None:
        running_banner()

    def render_report(self, results: List[TaskResult]) -> None:
        typer.secho("done!", fg=typer.colors.CYAN, bold=True)

        ok = typer.style("✓", fg=typer.colors.GREEN, bold=True)
        ko = typer.style("x", fg=typer.colors.RED, bold=True)
        change = " (" + typer.style("change", fg=typer.colors.YELLOW, bold=True) + ")"

        for task in results:
            typer.echo(f"`- [{ok if task.success else ko}]{change if task.changed else ''} {task.name}")
            if not task.success:
                label = typer.style("Task error message:", fg=typer.colors.RED, bold=True)
                typer.echo(f"       {label} {task.message}")


def select_interface(stream=None) -> UserInterface:
    """Decorated interface on a terminal, plain one otherwise."""
    stream = stream if stream is not None else sys.stdin
    try:
        tty = stream.isatty()
    except (AttributeError, ValueError):
        tty = False
    return DecoratedInterface() if tty else PlainInterface()
