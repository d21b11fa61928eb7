"""Built-in tasks."""

import os
from pathlib import Path

from steer.errors import TaskOptionError
from steer.tasks.base import CommandStep, DownloadStep, Step, Task, UploadStep
from steer.utils.shell import quote_path


class RunTask(Task):
    """Run a shell command on every target."""

    name = "run"
    description = "run --command <shell command>"
    required_options = ("command",)

    def steps(self, server, context) -> list[Step]:
        return [CommandStep(str(context.option("command")))]


class PutTask(Task):
    """Upload a local file to every target."""

    name = "put"
    description = "put --local <file> --remote <path>"
    required_options = ("local", "remote")

    def validate(self, options: dict) -> None:
        super().validate(options)
        if not Path(options["local"]).is_file():
            raise TaskOptionError(f"Local file not found: {options['local']}")

    def steps(self, server, context) -> list[Step]:
        return [UploadStep(str(context.option("local")), str(context.option("remote")))]


class GetTask(Task):
    """Download a file from every target as ``<local>.<server>``."""

    name = "get"
    description = "get --remote <path> --local <path>"
    required_options = ("remote", "local")

    def steps(self, server, context) -> list[Step]:
        local = f"{context.option('local')}.{server.name}"
        return [DownloadStep(str(context.option("remote")), local)]


class PatchTask(Task):
    """Apply a patch file to a path on every target."""

    name = "patch"
    description = "patch --file <patch> --target <path>"
    required_options = ("file", "target")

    def validate(self, options: dict) -> None:
        super().validate(options)
        if not Path(options["file"]).is_file():
            raise TaskOptionError(f"Patch file not found: {options['file']}")

    def steps(self, server, context) -> list[Step]:
        staged = f"/tmp/steer-patch-{os.getpid()}-{Path(str(context.option('file'))).name}"
        target = quote_path(str(context.option("target")))
        staged_q = quote_path(staged)
        apply = (
            f"patch -N {target} < {staged_q}; status=$?; rm -f {staged_q}; exit $status"
        )
        return [UploadStep(str(context.option("file")), staged), CommandStep(apply)]


class UnlockTask(Task):
    """Remove a leftover per-host lock marker from every target."""

    name = "unlock"
    description = "unlock"
    uses_host_lock = False

    def __init__(self, remote_lock_path: str = "/tmp/steer.lock"):
        self.remote_lock_path = remote_lock_path

    def steps(self, server, context) -> list[Step]:
        return [CommandStep(f"rm -f {quote_path(self.remote_lock_path)}")]
