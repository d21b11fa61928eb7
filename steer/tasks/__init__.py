"""Tasks, keyed by name."""

from steer.registry import Registry
from steer.tasks.base import CommandStep, DownloadStep, Step, Task, UploadStep
from steer.tasks.builtin import GetTask, PatchTask, PutTask, RunTask, UnlockTask


def register_builtin_tasks(tasks: Registry) -> None:
    for task in (RunTask(), PutTask(), GetTask(), PatchTask(), UnlockTask()):
        tasks.register(task.get_name(), task)


__all__ = [
    "CommandStep",
    "DownloadStep",
    "GetTask",
    "PatchTask",
    "PutTask",
    "RunTask",
    "Step",
    "Task",
    "UnlockTask",
    "UploadStep",
    "register_builtin_tasks",
]
