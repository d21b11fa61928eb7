"""steer - run a task across a fleet of servers.

Usage:
    steer [options] <task> [--<task option> [value] ...]

Targets:
    --servers a,b       Servers by full name or unambiguous prefix (repeatable)
    --roles web,db      Servers carrying any of these roles (repeatable)
    (neither)           Every server in the configuration

Configuration:
    --config URI        Configuration source (file:///etc/steer.conf or a path);
                        defaults to $STEER_CONFIG
    --dump-config       Print every configured server and its roles, then exit

Execution:
    --parallel          Run targets concurrently (default: one after another)
    --max-parallel N    Concurrency bound in parallel mode
    --continue-on-failure
                        Keep going after a target fails (default: stop)
    --sudo              Run commands through sudo -n
    --timeout SECONDS   Fail a step that runs longer than this
    --lock TYPE         none, local, remote or both (default: both)

Output and notification:
    --capture STREAM    Capture stdout and/or stderr (repeatable)
    --notify URI        file://, irc://, mailto: or an extension scheme (repeatable)
    --notify-level LVL  debug, info, warn, error or fatal (default: info)
    --quiet             Do not echo notifications to stderr

Other:
    --load NAME         Activate an installed extension (repeatable)
    --noenv             Ignore ~/.steerrc and ./.steerrc
    --man               Show this text
    -v, --version       Show the version
    -h, --help          Show a short usage summary

Built-in tasks:
    run    --command <shell command>
    put    --local <file> --remote <path>
    get    --remote <path> --local <path>   (saved as <path>.<server>)
    patch  --file <patch> --target <path>
    unlock                                   (remove leftover per-host locks)

Any other --name [value] pair is passed to the task as an option. Option
lines in ~/.steerrc and then ./.steerrc are read before the command line;
later options win.

Exit status is 0 when every target succeeds, 1 when any target fails or is
skipped, and 2 when the run could not start or was aborted by an unexpected
error (the report of targets settled so far is still printed).
"""

import argparse
import asyncio
import logging
import shlex
import sys
from importlib.metadata import entry_points
from pathlib import Path

from steer import __version__
from steer.channels.console import ConsoleChannel
from steer.config.loader import load_configuration, uri_scheme
from steer.config.settings import LOCK_TYPES, Settings
from steer.errors import FatalError, SteerError, UnknownExtensionError
from steer.models import AbortPolicy, ExecutionMode, Level, TargetCriteria
from steer.models.context import OptionValue
from steer.registry import Registries
from steer.services.notify import NotificationDispatcher
from steer.services.orchestrator import Orchestrator, RunRequest
from steer.services.output import Stream
from steer.services.report import format_report
from steer.tasks.builtin import UnlockTask
from steer.utils.console import ColorfulFormatter

logger = logging.getLogger(__name__)

RC_FILES = (Path.home() / ".steerrc", Path(".steerrc"))
EXTENSION_GROUP = "steer.extensions"


class _Parser:
    """argparse parser that remembers which options take a value."""

    def __init__(self) -> None:
        self.parser = argparse.ArgumentParser(
            prog="steer",
            description="Run a task across a fleet of servers.",
            allow_abbrev=False,
        )
        self.takes_value: dict[str, bool] = {"-h": False, "--help": False}

    def add(self, *flags: str, **kwargs) -> None:
        action = self.parser.add_argument(*flags, **kwargs)
        for flag in action.option_strings:
            self.takes_value[flag] = action.nargs != 0


def build_parser() -> _Parser:
    p = _Parser()
    p.parser.add_argument("task", nargs="?", help="Task to run")
    p.add("--servers", action="append", default=[], help="Servers (comma separated)")
    p.add("--roles", action="append", default=[], help="Roles (comma separated)")
    p.add("--config", help="Configuration URI")
    p.add("--notify", action="append", default=[], help="Notification channel URI")
    p.add(
        "--notify-level",
        default="info",
        choices=[level.label for level in Level],
        help="Minimum notification level",
    )
    p.add(
        "--capture",
        action="append",
        default=[],
        choices=[stream.value for stream in Stream],
        help="Capture a remote output stream",
    )
    p.add("--load", action="append", default=[], help="Extension to activate")
    p.add("--parallel", action="store_true", help="Run targets concurrently")
    p.add("--max-parallel", type=int, help="Concurrency bound in parallel mode")
    p.add("--continue-on-failure", action="store_true", help="Do not stop after a failure")
    p.add("--lock", choices=LOCK_TYPES, help="Lock scopes to use")
    p.add("--timeout", type=int, help="Per-step timeout in seconds")
    p.add("--sudo", action="store_true", help="Run commands through sudo")
    p.add("--noenv", action="store_true", help="Ignore .steerrc files")
    p.add("--quiet", action="store_true", help="Do not echo notifications to stderr")
    p.add("--dump-config", action="store_true", help="Print the configuration and exit")
    p.add("--man", action="store_true", help="Show the full manual")
    p.add("-v", "--version", action="store_true", help="Show the version")
    return p


def read_rc_files(paths: tuple[Path, ...] | None = None) -> list[str]:
    """Collect option words from .steerrc files, in order."""
    words: list[str] = []
    if paths is None:
        paths = RC_FILES
    for path in paths:
        try:
            text = Path(path).read_text()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            continue
        words.extend(shlex.split(text, comments=True))
    return words


def split_task_options(
    argv: list[str], takes_value: dict[str, bool]
) -> tuple[list[str], dict[str, OptionValue]]:
    """Separate steer's own arguments from task-specific ``--name [value]`` pairs.

    Args:
        argv: Command line words
        takes_value: Known option strings mapped to whether they take a value

    Returns:
        (words for argparse, task options)
    """
    known: list[str] = []
    options: dict[str, OptionValue] = {}
    i = 0
    while i < len(argv):
        word = argv[i]
        name = word.split("=", 1)[0]
        if name in takes_value:
            known.append(word)
            if takes_value[name] and "=" not in word and i + 1 < len(argv):
                known.append(argv[i + 1])
                i += 1
        elif word.startswith("--") and len(word) > 2:
            key, eq, value = word[2:].partition("=")
            if eq:
                options[key] = value
            elif i + 1 < len(argv) and not argv[i + 1].startswith("-"):
                options[key] = argv[i + 1]
                i += 1
            else:
                options[key] = True
        else:
            known.append(word)
        i += 1
    return known, options


def _split_list(values: list[str]) -> tuple[str, ...]:
    items: list[str] = []
    for value in values:
        items.extend(v.strip() for v in value.split(",") if v.strip())
    return tuple(dict.fromkeys(items))


def configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the steer package."""
    use_colors = settings.log_colors and sys.stderr.isatty()

    steer_logger = logging.getLogger("steer")
    steer_logger.setLevel(getattr(logging, settings.log_level, logging.WARNING))

    if not steer_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        steer_logger.addHandler(handler)
        steer_logger.propagate = False

    logging.getLogger("asyncssh").setLevel(logging.WARNING)


def load_extensions(names: list[str], registries: Registries) -> None:
    """Activate installed extensions published under ``steer.extensions``.

    Raises:
        UnknownExtensionError: If no installed extension has the name
    """
    if not names:
        return
    available = {ep.name: ep for ep in entry_points(group=EXTENSION_GROUP)}
    for name in names:
        ep = available.get(name)
        if ep is None:
            raise UnknownExtensionError("extension", name, sorted(available))
        logger.info("Loading extension %s (%s)", name, ep.value)
        registries.extend(ep.load())


def build_dispatcher(
    args: argparse.Namespace, settings: Settings, registries: Registries
) -> NotificationDispatcher:
    """Create the console channel (unless quiet) and every --notify channel."""
    level = Level.parse(args.notify_level)
    dispatcher = NotificationDispatcher()
    if not args.quiet:
        dispatcher.add_channel(ConsoleChannel("console", level, settings))
    for uri in args.notify:
        factory = registries.channels.lookup(uri_scheme(uri))
        try:
            dispatcher.add_channel(factory(uri, level, settings))
        except ValueError as e:
            raise SteerError(f"Invalid notification URI {uri}: {e}") from e
    return dispatcher


def build_request(
    args: argparse.Namespace, options: dict[str, OptionValue], settings: Settings
) -> RunRequest:
    return RunRequest(
        task=args.task,
        config_uri=args.config or settings.config_uri,
        criteria=TargetCriteria(
            servers=_split_list(args.servers), roles=_split_list(args.roles)
        ),
        mode=ExecutionMode.PARALLEL if args.parallel else ExecutionMode.SERIES,
        abort_policy=AbortPolicy.CONTINUE if args.continue_on_failure else AbortPolicy.STOP,
        sudo=args.sudo,
        options=options,
        capture=frozenset(Stream(value) for value in args.capture),
        max_concurrency=args.max_parallel or settings.max_parallel,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if "--noenv" not in argv:
        argv = read_rc_files() + argv

    cli = build_parser()
    words, options = split_task_options(argv, cli.takes_value)
    args = cli.parser.parse_args(words)

    if args.man:
        print(__doc__)
        return 0
    if args.version:
        print(f"steer {__version__}")
        return 0

    settings = Settings.from_env()
    if args.lock:
        settings.lock_type = args.lock
    if args.timeout is not None:
        settings.step_timeout = args.timeout
    configure_logging(settings)

    registries = Registries.default()
    registries.tasks.register("unlock", UnlockTask(settings.remote_lock_path), replace=True)

    try:
        load_extensions(args.load, registries)

        if args.dump_config:
            uri = args.config or settings.config_uri
            if not uri:
                raise SteerError("--dump-config needs --config or STEER_CONFIG")
            configuration = load_configuration(uri, registries.loaders)
            print(f"# {configuration.source or uri}: {len(configuration)} servers")
            print(configuration.dump())
            return 0

        if not args.task:
            cli.parser.print_usage(sys.stderr)
            raise SteerError("No task given")

        dispatcher = build_dispatcher(args, settings, registries)
        orchestrator = Orchestrator.from_settings(settings, registries, dispatcher)
        result = asyncio.run(orchestrator.steer(build_request(args, options, settings)))
    except FatalError as e:
        if e.result is not None:
            print(format_report(e.result))
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except SteerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(format_report(result))
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
