"""Click-based CLI entry point for ksbench."""

from __future__ import annotations

import logging
import re
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .sysutil import DEFAULT_TIMEOUT

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    "pass": "green",
    "fail": "bold red",
    "skip": "yellow",
    "error": "bold magenta",
}


@click.group()
@click.version_option(__version__, prog_name="ksbench")
@click.option("--baseline", type=click.Path(exists=True, dir_okay=False), default=None,
              envvar="KSBENCH_BASELINE",
              help="Path to a custom baseline YAML file.")
@click.option("--proc-root", type=click.Path(file_okay=False), default=None,
              envvar="KSBENCH_PROC_ROOT",
              help="Read processes from this /proc tree (e.g. /host/proc).")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=DEFAULT_TIMEOUT,
              envvar="KSBENCH_TIMEOUT", show_default=True,
              help="Seconds allowed for each process-table scan or stat call.")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Log lookups and per-item outcomes to stderr.")
@click.pass_context
def cli(ctx, baseline, proc_root, timeout, verbose):
    """ksbench: Kubernetes node security benchmark.

    Audits the files used by the running kubelet and kube-proxy, as named
    by their live command-line flags, against CIS benchmark items.
    """
    ctx.ensure_object(dict)
    ctx.obj["baseline"] = baseline
    ctx.obj["proc_root"] = proc_root
    ctx.obj["timeout"] = timeout

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


@cli.group()
@click.option("--focus", default=None,
              help="Only run items whose '[id] title' matches this regex, e.g. '\\[2\\.2\\.1\\]'.")
@click.option("--skip", "skip_pattern", default=None,
              help="Do not run items whose '[id] title' matches this regex.")
@click.option("--missing-process", type=click.Choice(["fail", "skip"], case_sensitive=False),
              default="skip", show_default=True,
              help="Outcome of items whose target process is not running.")
@click.option("--junit-report", type=click.Path(dir_okay=False), default=None,
              help="Also write results as JUnit XML to this path.")
@click.pass_context
def cis(ctx, focus, skip_pattern, missing_process, junit_report):
    """Run CIS Kubernetes Benchmark items."""
    ctx.obj["focus"] = focus
    ctx.obj["skip"] = skip_pattern
    ctx.obj["missing_process"] = missing_process.lower()
    ctx.obj["junit_report"] = junit_report


@cis.group(invoke_without_command=True)
@click.pass_context
def node(ctx):
    """Run the worker node benchmarks."""
    if ctx.invoked_subcommand is None:
        _run_family(ctx, "node")


@node.command()
@click.pass_context
def kubelet(ctx):
    """Run the kubelet specific benchmarks."""
    _run_family(ctx, "node", process="kubelet")


@node.command("kube-proxy")
@click.pass_context
def kube_proxy(ctx):
    """Run the kube-proxy specific benchmarks."""
    _run_family(ctx, "node", process="kube-proxy")


@cli.command("list-checks")
@click.pass_context
def list_checks(ctx):
    """List all checks defined in the baseline."""
    from .framework.baseline import get_checks, get_families, get_family_title, load_baseline
    from .framework.engine import describe_target

    try:
        baseline = load_baseline(ctx.obj.get("baseline"))
    except (FileNotFoundError, ValueError) as exc:
        err_console.print(f"[bold red]Error loading baseline:[/] {exc}")
        sys.exit(2)
    checks = get_checks(baseline)

    table = Table(title="ksbench Baseline Checks", show_lines=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Family", no_wrap=True)
    table.add_column("Target")
    table.add_column("Check")

    for check in checks:
        table.add_row(
            str(check.get("id", "")),
            Text(check.get("title", "") + ("" if check.get("scored", True) else " [Not Scored]")),
            check.get("family", ""),
            describe_target(check.get("target", {})),
            check.get("check_function", ""),
        )

    console.print(table)
    families = ", ".join(f"{get_family_title(baseline, f)} ({f})" for f in get_families(baseline))
    console.print(f"\nTotal: {len(checks)} checks in {families}")


# ---------------------------------------------------------------------------
# Run helpers
# ---------------------------------------------------------------------------

def _run_family(ctx, family: str, process: str | None = None):
    """Run one benchmark family and exit non-zero on FAIL or ERROR."""
    from .framework.engine import run_audit
    from .models import MissingProcessPolicy
    from .process import default_locator

    obj = ctx.obj
    locator = default_locator(obj.get("proc_root"), timeout=obj["timeout"])

    scope = f"{family}/{process}" if process else family
    console.print(f"[bold blue]Running {scope} benchmarks...[/]")
    try:
        result = run_audit(
            baseline_path=obj.get("baseline"),
            locator=locator,
            missing_process=MissingProcessPolicy(obj["missing_process"]),
            family=family,
            process=process,
            focus=obj.get("focus"),
            skip=obj.get("skip"),
            timeout=obj["timeout"],
        )
    except re.error as exc:
        err_console.print(f"[bold red]Invalid focus/skip expression:[/] {exc}")
        sys.exit(2)
    except (FileNotFoundError, ValueError) as exc:
        err_console.print(f"[bold red]Error loading baseline:[/] {exc}")
        sys.exit(2)

    _display_results(result)

    junit_path = obj.get("junit_report")
    if junit_path:
        from .report import generate_junit_report
        try:
            generate_junit_report(result, junit_path, suite_name=scope)
        except OSError as exc:
            err_console.print(f"[bold red]Report generation error:[/] {exc}")
            sys.exit(2)
        console.print(f"[bold green]JUnit report saved to {junit_path}[/]")

    sys.exit(0 if result.succeeded else 1)


def _display_results(result):
    """Display per-item outcomes in baseline order, then the summary."""
    if not result.findings:
        console.print("[yellow]No checks matched the selection.[/]")
        return

    table = Table(show_lines=False, padding=(0, 1))
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Title")
    table.add_column("Detail")

    for f in result.findings:
        detail = Text(f.message)
        if f.evidence and f.evidence not in f.message:
            detail.append("\n" + f.evidence, style="dim")
        table.add_row(
            f.check_id,
            Text(f.status.value, style=STATUS_STYLES.get(f.status.value, "")),
            Text(f.title),
            detail,
        )

    console.print(table)
    _display_summary(result)


def _display_summary(result):
    """Display the pass/fail/skip/error totals."""
    color = "green" if result.succeeded else "bold red"
    panel = Panel(
        f"Checks: {len(result.findings)} total | {result.pass_count} passed | "
        f"{result.fail_count} failed | {result.skip_count} skipped | "
        f"{result.error_count} errors",
        title=f"[bold]{result.benchmark or 'ksbench'} {result.benchmark_version}[/]",
        border_style=color,
        width=80,
    )
    console.print(panel)
