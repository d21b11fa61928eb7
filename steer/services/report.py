"""Human-readable run report."""

from steer.models import Outcome, RunResult

_MARKS = {
    Outcome.SUCCESS: "ok",
    Outcome.FAILURE: "FAILED",
    Outcome.SKIPPED: "skipped",
}


def format_output(result: RunResult) -> str:
    """Captured output grouped by target, one block per target."""
    lines: list[str] = []
    for r in result.results:
        streams = [("stdout", r.stdout), ("stderr", r.stderr)]
        captured = [(name, text) for name, text in streams if text]
        if not captured:
            continue
        header = f"═══ {r.server.name} "
        lines.append(header + "═" * max(0, 60 - len(header)))
        for name, text in captured:
            if len(captured) > 1 or name == "stderr":
                lines.append(f"--- {name}")
            lines.append(text.rstrip("\n"))
        lines.append("")
    return "\n".join(lines)


def format_report(result: RunResult) -> str:
    """Per-target outcomes, captured output and a counts summary."""
    width = max((r.server.display_length for r in result.results), default=0)
    lines: list[str] = []

    output = format_output(result)
    if output:
        lines.append(output)

    for r in result.results:
        line = f"{r.server.display(width)}  {_MARKS[r.outcome]:<7}"
        if r.outcome is not Outcome.SKIPPED:
            line += f"  {r.duration:6.1f}s"
        if r.error:
            line += f"  {r.error}"
        lines.append(line.rstrip())

    lines.append(f"─── {result.summary()} ───")
    return "\n".join(lines)
