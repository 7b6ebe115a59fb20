"""Main entry point for the RindBrowser automation system."""

import asyncio
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core import AutomationOrchestrator, RequiredStepFailed, WorkflowResult, describe_error
from core.qa import QASuiteResult
from core.research import CompetitorRecord
from utils import log, config, console, create_progress, load_yaml_file
from rich.table import Table
import uvicorn


def parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into a parameter mapping."""
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Parameter must look like key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        params[key] = value
    return params


def load_steps(path: Path) -> List[Dict[str, Any]]:
    """Load a step list from a YAML/JSON file (a bare list or ``{steps: [...]}``)."""
    data = load_yaml_file(path)
    if isinstance(data, dict):
        data = data.get("steps")
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of steps")
    return data


async def run_workflow(
    orchestrator: AutomationOrchestrator,
    workflow: Any,
    params: Dict[str, Any]
) -> Optional[WorkflowResult]:
    """
    Run a workflow and print its trace.

    Args:
        orchestrator: Started orchestrator
        workflow: Registered workflow name or inline steps
        params: Overrides for parameters the steps omit
    """
    try:
        result = await orchestrator.execute_workflow(workflow, params)
    except RequiredStepFailed as e:
        console.print(f"[red]❌ {e.reason}[/red]")
        show_workflow(e.result)
        return e.result

    show_workflow(result)
    return result


async def run_research(orchestrator: AutomationOrchestrator, path: Path) -> List[CompetitorRecord]:
    data = load_yaml_file(path)
    competitors = data.get("competitors", []) if isinstance(data, dict) else data

    with create_progress() as progress:
        progress.add_task(f"Researching {len(competitors)} competitors...", total=None)
        records = await orchestrator.competitor_research(competitors)

    show_research(records)
    return records


async def run_qa_suite(orchestrator: AutomationOrchestrator, path: Path) -> QASuiteResult:
    data = load_yaml_file(path)
    suite = data.get("testSuite", data) if isinstance(data, dict) else data

    result = await orchestrator.qa_test(suite)
    show_qa(result)
    return result


async def run_monitor(orchestrator: AutomationOrchestrator, url: str, interval: float, checks: int):
    """Monitor a URL until ``checks`` events have been observed."""
    handle = await orchestrator.start_monitor("cli", url, interval)
    try:
        console.print(f"[bold]📡 Monitoring[/bold] {url} every {interval}s")
        # The initial check is already queued
        for _ in range(checks):
            event = await handle.next_event()
            style = "green" if event.status == "up" else "red"
            detail = event.error or (event.data or {}).get("title", "")
            console.print(f"  [{style}]{event.timestamp}  {event.status.upper()}[/{style}]  {detail}")
    finally:
        await orchestrator.stop_monitor("cli")


def show_workflow(result: WorkflowResult):
    """Show the per-step trace of a workflow."""
    table = Table(title=f"Workflow: {result.workflow or 'inline'}", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Detail", style="green")

    for outcome in result.outcomes:
        if outcome.success:
            detail = outcome.result if isinstance(outcome.result, (str, int, float, bool)) else type(outcome.result).__name__
            detail = str(detail)[:60]
        else:
            detail = outcome.error or ""
        table.add_row(str(outcome.index + 1), outcome.step, "✅" if outcome.success else "❌", detail)

    console.print(table)


def show_research(records: List[CompetitorRecord]):
    table = Table(title="Competitor Research", show_header=True)
    table.add_column("Competitor", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Links", justify="right")
    table.add_column("Load (ms)", justify="right")
    table.add_column("Status", justify="center")

    for record in records:
        if record.success:
            table.add_row(
                record.competitor,
                str((record.page_data or {}).get("title", ""))[:40],
                str(len(record.links or [])),
                str((record.performance or {}).get("loadTime", "")),
                "✅"
            )
        else:
            table.add_row(record.competitor, record.error or "", "", "", "❌")

    console.print(table)


def show_qa(result: QASuiteResult):
    table = Table(title=f"QA Suite: {result.name}", show_header=True)
    table.add_column("Test", style="cyan")
    table.add_column("URL", style="magenta")
    table.add_column("Checks", justify="right")
    table.add_column("Status", justify="center")

    for test in result.tests:
        table.add_row(
            test.name,
            test.url,
            str(len(test.checks)) if test.error is None else test.error,
            "✅" if test.passed else "❌"
        )

    console.print(table)
    console.print("[bold green]Suite passed[/bold green]" if result.passed else "[bold red]Suite failed[/bold red]")


def list_workflows():
    """List all workflows declared in config/workflows.yaml."""
    table = Table(title="Declared Workflows", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Steps", style="green")

    for name, steps in config.workflows.items():
        actions = [str(step.get("action")) if isinstance(step, dict) else "?" for step in steps]
        table.add_row(name, " → ".join(actions))

    console.print(table)


async def run_command(args) -> bool:
    """Run the selected command against a fresh browser session; returns overall success."""
    overrides: Dict[str, Any] = {}
    if args.browser:
        overrides["browser_type"] = args.browser
    if args.headed:
        overrides["headless"] = False

    async with AutomationOrchestrator(config.browser_options(overrides)) as orchestrator:
        if args.workflow:
            result = await run_workflow(orchestrator, args.workflow, parse_params(args.param))
            return bool(result and result.success)

        if args.steps_file:
            result = await run_workflow(orchestrator, load_steps(args.steps_file), parse_params(args.param))
            return bool(result and result.success)

        if args.research:
            records = await run_research(orchestrator, args.research)
            return all(record.success for record in records)

        if args.qa_suite:
            return (await run_qa_suite(orchestrator, args.qa_suite)).passed

        if args.monitor:
            await run_monitor(orchestrator, args.monitor, args.interval, args.checks)
            return True

    return False


def serve(host: str, port: int):
    console.print(f"[bold]🌐 RindBrowser API[/bold] listening on http://{host}:{port}")
    uvicorn.run("server.app:app", host=host, port=port, log_level=config.log_level.lower())


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="RindBrowser - Browser automation for AI agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the HTTP API
  python src/main.py --serve --port 3001

  # Run a workflow declared in config/workflows.yaml
  python src/main.py --workflow page_snapshot --param url=https://example.com

  # Run steps from a file
  python src/main.py --steps-file steps.yaml

  # Run a QA suite or competitor research
  python src/main.py --qa-suite suite.yaml
  python src/main.py --research competitors.yaml

  # Check a site three times, ten seconds apart
  python src/main.py --monitor https://example.com --interval 10 --checks 3
        """
    )

    # Commands
    parser.add_argument("--serve", action="store_true", help="Start the HTTP API")
    parser.add_argument("--workflow", type=str, help="Declared workflow to run")
    parser.add_argument("--steps-file", type=Path, help="YAML/JSON file with inline steps")
    parser.add_argument("--research", type=Path, help="YAML/JSON file listing competitors")
    parser.add_argument("--qa-suite", type=Path, help="YAML/JSON file with a QA test suite")
    parser.add_argument("--monitor", type=str, metavar="URL", help="URL to monitor")

    # Optional parameters
    parser.add_argument("--param", action="append", metavar="KEY=VALUE", help="Workflow parameter override")
    parser.add_argument("--interval", type=float, default=config.monitor_interval, help="Monitor interval in seconds")
    parser.add_argument("--checks", type=int, default=3, help="Monitor events to observe before stopping")
    parser.add_argument("--host", type=str, default=config.host, help="API host")
    parser.add_argument("--port", type=int, default=config.port, help="API port")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--browser", type=str, choices=["chromium", "firefox", "webkit"], help="Browser engine")
    parser.add_argument("--json", action="store_true", help="Print declared workflows as JSON")

    # Info commands
    parser.add_argument("--list-workflows", action="store_true", help="List declared workflows")

    args = parser.parse_args()

    if args.list_workflows:
        if args.json:
            console.print_json(json.dumps(config.workflows))
        else:
            list_workflows()
        return

    if args.serve:
        serve(args.host, args.port)
        return

    if not any([args.workflow, args.steps_file, args.research, args.qa_suite, args.monitor]):
        parser.print_help()
        return

    config.ensure_directories()

    try:
        ok = asyncio.run(run_command(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]❌ Error: {describe_error(e)}[/red]")
        log.exception("Fatal error")
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
