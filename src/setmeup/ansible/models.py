# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/ansible/models.py

from typing import Any, Dict, List

from pydantic import BaseModel, Field

PROVISIONEE = "provisionee"


class TaskResult(BaseModel):
    name: str
    success: bool
    changed: bool
    message: str


# Subset of the ansible.posix.json callback report we rely on. Per-host
# values are kept raw: only a literal JSON true sets a flag.

class HostResult(BaseModel):
    failed: Any = None
    unreachable: Any = None
    changed: Any = None
    msg: Any = None


class TaskInfo(BaseModel):
    name: Any = None


class TaskEntry(BaseModel):
    task: TaskInfo = Field(default_factory=TaskInfo)
    hosts: Dict[str, HostResult] = Field(default_factory=dict)

    def to_result(self, host: str = PROVISIONEE) -> TaskResult:
        """
        Unreachable hosts count as successful: the engine reports them as
        non-blocking rather than failed.
        """
        r = self.hosts.get(host) or HostResult()
        return TaskResult(
            name=self.task.name if isinstance(self.task.name, str) else "unnamed task",
            success=r.unreachable is True or r.failed is not True,
            changed=r.changed is True,
            message=r.msg if isinstance(r.msg, str) else "no details",
        )


class Play(BaseModel):
    tasks: List[TaskEntry]


class PlaybookReport(BaseModel):
    plays: List[Play]

    def task_results(self, host: str = PROVISIONEE) -> List[TaskResult]:
        return [t.to_result(host) for play in self.plays for t in play.tasks]
