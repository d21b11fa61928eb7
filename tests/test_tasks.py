"""Tests for the built-in tasks."""

import os
from pathlib import Path

import pytest

from steer.errors import TaskOptionError
from steer.models import ExecutionContext, Server
from steer.tasks import GetTask, PatchTask, PutTask, RunTask, UnlockTask
from steer.tasks.base import CommandStep, DownloadStep, UploadStep


def _context(task: str, **options) -> ExecutionContext:
    return ExecutionContext(task=task, targets=(Server("web1"),), options=options)


def test_run_requires_command():
    with pytest.raises(TaskOptionError, match="Task 'run' requires --command <value>"):
        RunTask().validate({})
    with pytest.raises(TaskOptionError):
        RunTask().validate({"command": True})
    RunTask().validate({"command": "uptime"})


def test_run_steps():
    steps = RunTask().steps(Server("web1"), _context("run", command="df -h"))
    assert steps == [CommandStep("df -h")]
    assert steps[0].describe() == "run: df -h"


def test_put_validates_local_file(tmp_path: Path):
    with pytest.raises(TaskOptionError, match="Local file not found"):
        PutTask().validate({"local": str(tmp_path / "nope"), "remote": "/tmp/x"})

    source = tmp_path / "motd"
    source.write_text("hello\n")
    PutTask().validate({"local": str(source), "remote": "/etc/motd"})

    steps = PutTask().steps(Server("web1"), _context("put", local=str(source), remote="/etc/motd"))
    assert steps == [UploadStep(str(source), "/etc/motd")]


def test_get_saves_per_server():
    steps = GetTask().steps(
        Server("db1"), _context("get", remote="/var/log/syslog", local="syslog")
    )
    assert steps == [DownloadStep("/var/log/syslog", "syslog.db1")]
    assert steps[0].describe() == "download: /var/log/syslog -> syslog.db1"


def test_patch_uploads_then_applies(tmp_path: Path):
    patch_file = tmp_path / "fix.diff"
    patch_file.write_text("--- a\n+++ b\n")
    PatchTask().validate({"file": str(patch_file), "target": "/etc/app.conf"})

    upload, apply = PatchTask().steps(
        Server("web1"), _context("patch", file=str(patch_file), target="/etc/app.conf")
    )

    staged = f"/tmp/steer-patch-{os.getpid()}-fix.diff"
    assert upload == UploadStep(str(patch_file), staged)
    assert apply.command.startswith(f"patch -N /etc/app.conf < {staged}")
    assert f"rm -f {staged}" in apply.command


def test_patch_requires_existing_file(tmp_path: Path):
    with pytest.raises(TaskOptionError, match="Patch file not found"):
        PatchTask().validate({"file": str(tmp_path / "missing.diff"), "target": "/etc/x"})


def test_unlock_skips_host_lock():
    task = UnlockTask("/var/lock/steer")
    assert task.uses_host_lock is False
    task.validate({})
    assert task.steps(Server("web1"), _context("unlock")) == [CommandStep("rm -f /var/lock/steer")]
