"""Click CLI — loads config, builds the pipeline, streams progress, collects feedback."""

import asyncio
import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from src.builder import build_orchestrator, build_panel
from src.consensus import MajorityVote, WeightedSummarize
from src.events import ErrorEvent, ProgressEvent, ResultEvent, StageEvent
from src.feedback import FeedbackStore
from src.healthcheck import check_panel
from src.models import FeedbackRequest
from src.output import describe_stage, print_panel, print_terminal, stage_labels
from src.pipeline import PipelineOrchestrator
from src.protocol import encode_ndjson
from src.providers.base import ProviderError
from src.similarity import ScorerError

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

STRATEGY_NAMES = [WeightedSummarize.name, MajorityVote.name]

_RATINGS = {"+": 1, "-": -1}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=Console(stderr=True))],
    )


def _load_config_or_exit() -> AppConfig:
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


def _check_and_filter_panel(config: AppConfig, panel_names: list[str]) -> list[str]:
    """Ping every panel model and ask the user what to do on failures.

    Returns the panel names that passed, in panel order. Exits if the user
    declines to continue or nothing passes.
    """
    console.print("\n[bold]Checking panel models...[/bold]")
    results = asyncio.run(check_panel(build_panel(config, panel_names)))

    for result in results:
        if result.ok:
            console.print(
                f"  [green]OK  [/green] {result.spec.stage} {result.spec.id} "
                f"[dim]({result.latency_sec:.1f}s)[/dim]"
            )
        else:
            short_err = result.error.splitlines()[0][:120] if result.error else "unknown error"
            console.print(f"  [red]FAIL[/red] {result.spec.stage} {result.spec.id}: {escape(short_err)}")

    working = [r.name for r in results if r.ok]
    failed = [r.spec.id for r in results if not r.ok]
    if not failed:
        console.print()
        return working

    if not working:
        console.print("\n[bold red]Error:[/bold red] No panel model passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed)} model(s) failed:[/yellow] {escape(', '.join(failed))}")
    if not click.confirm("Continue with the working models only?", default=True):
        sys.exit(0)

    console.print()
    return working


def _prepare(
    strategy: str | None,
    skip_health_check: bool,
    feedback: FeedbackStore | None = None,
) -> PipelineOrchestrator:
    """Load config, health-check the panel and build the orchestrator, exiting on failure."""
    config = _load_config_or_exit()
    panel_names = [n for n in config.defaults.panel if n in config.available_providers]
    if not panel_names:
        console.print("[bold red]Error:[/bold red] No panel models available. Check API keys in .env.")
        sys.exit(1)

    try:
        if not skip_health_check:
            panel_names = _check_and_filter_panel(config, panel_names)
        return build_orchestrator(
            config,
            feedback=feedback,
            strategy_name=strategy,
            panel=build_panel(config, panel_names),
        )
    except (ProviderError, ScorerError, ValueError) as exc:
        console.print(f"[bold red]Setup error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


async def _run_prompt(orchestrator: PipelineOrchestrator, prompt: str, ndjson: bool) -> ProgressEvent | None:
    """Stream one run to the console. Returns the terminal event."""
    terminal: ProgressEvent | None = None

    if ndjson:
        async for event in orchestrator.stream(prompt):
            click.echo(encode_ndjson(event), nl=False)
            terminal = event
        return terminal

    labels = stage_labels(orchestrator.providers)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=None)
        async for event in orchestrator.stream(prompt):
            if isinstance(event, StageEvent):
                progress.update(task, description=describe_stage(event, labels))
                progress.print(f"[green]>[/green] {event.stage}")
            else:
                terminal = event

    if terminal is not None:
        print_terminal(terminal)
    return terminal


async def _collect_ratings(orchestrator: PipelineOrchestrator, result: ResultEvent) -> None:
    """Ask for a +/- rating of each contributing model; blank skips."""
    for model_id in result.contributing_model_ids:
        answer = await asyncio.to_thread(
            click.prompt,
            f"Rate {model_id} [+/-, enter to skip]",
            default="",
            show_default=False,
        )
        answer = answer.strip()
        if answer not in _RATINGS:
            continue
        ack = orchestrator.record_feedback(FeedbackRequest(model_id=model_id, rating=_RATINGS[answer]))
        console.print(f"[dim]{escape(getattr(ack, 'message', ''))}[/dim]")


async def _chat_session(orchestrator: PipelineOrchestrator) -> None:
    """Prompt loop on one event loop, so SDK clients keep their pooled connections."""
    while True:
        try:
            prompt = await asyncio.to_thread(click.prompt, "You", default="", show_default=False)
        except click.Abort:
            break
        prompt = prompt.strip()
        if not prompt:
            break
        terminal = await _run_prompt(orchestrator, prompt, ndjson=False)
        if isinstance(terminal, ResultEvent) and terminal.report_models:
            await _collect_ratings(orchestrator, terminal)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(verbose: bool) -> None:
    """Model Chorus -- ask several models, reconcile their answers into one.

    \b
    Examples:
      python -m src.cli ask "What is the capital of France?"
      python -m src.cli ask "Explain TCP slow start" --strategy majority_vote
      python -m src.cli ask "Why is the sky blue?" --ndjson
      python -m src.cli chat
      python -m src.cli serve --port 8000
    """
    load_dotenv()
    _setup_logging(verbose)


@main.command()
@click.argument("prompt")
@click.option("--strategy", type=click.Choice(STRATEGY_NAMES), default=None,
              help="Consensus strategy (default: from config)")
@click.option("--ndjson", is_flag=True, help="Print raw NDJSON events instead of a spinner")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def ask(prompt: str, strategy: str | None, ndjson: bool, skip_health_check: bool) -> None:
    """Answer PROMPT once and exit."""
    if not prompt.strip():
        console.print("[bold red]Error:[/bold red] PROMPT must not be empty.")
        sys.exit(1)

    orchestrator = _prepare(strategy, skip_health_check)
    if not ndjson:
        print_panel(orchestrator.providers, orchestrator.strategy.name)

    terminal = asyncio.run(_run_prompt(orchestrator, prompt, ndjson))
    if isinstance(terminal, ErrorEvent):
        sys.exit(1)


@main.command()
@click.option("--strategy", type=click.Choice(STRATEGY_NAMES), default=None,
              help="Consensus strategy (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def chat(strategy: str | None, skip_health_check: bool) -> None:
    """Interactive session; feedback ratings carry over between prompts."""
    orchestrator = _prepare(strategy, skip_health_check)
    print_panel(orchestrator.providers, orchestrator.strategy.name)
    console.print("[dim]Empty prompt or Ctrl-D to quit.[/dim]")

    asyncio.run(_chat_session(orchestrator))

    logger.debug("Final feedback weights: %s", orchestrator.feedback.snapshot())


@main.command()
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.option("--strategy", type=click.Choice(STRATEGY_NAMES), default=None,
              help="Consensus strategy (default: from config)")
def serve(host: str | None, port: int | None, strategy: str | None) -> None:
    """Serve POST /api/chat, streaming NDJSON progress events."""
    import uvicorn

    from src.server import create_app

    config = _load_config_or_exit()
    orchestrator = _prepare(strategy, skip_health_check=True)
    uvicorn.run(
        create_app(orchestrator),
        host=host or config.defaults.host,
        port=port or config.defaults.port,
    )


if __name__ == "__main__":
    main()
