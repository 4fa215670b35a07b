"""Rich console rendering of progress stages and final answers."""

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from src.events import ErrorEvent, ProgressEvent, ResultEvent, Stage, StageEvent
from src.providers.base import AIProvider

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_FIXED_STAGE_LABELS = {
    Stage.THINKING.value: "Thinking...",
    Stage.FILTERING.value: "Filtering responses for relevance...",
    Stage.ENSEMBLING.value: "Ensembling answers...",
}


def stage_labels(providers: list[AIProvider]) -> dict[str, str]:
    """Map every stage tag a run can emit to a spinner description."""
    labels = dict(_FIXED_STAGE_LABELS)
    for provider in providers:
        spec = provider.spec()
        labels[spec.stage] = f"Asking {spec.label} ({spec.id})..."
    return labels


def describe_stage(event: StageEvent, labels: dict[str, str]) -> str:
    return labels.get(event.stage, event.stage)


def print_panel(providers: list[AIProvider], strategy_name: str) -> None:
    """Print the run header: which models answer and how they are reconciled."""
    console.print(f"\n[bold cyan]Model Chorus[/bold cyan] — {len(providers)} models, strategy: {strategy_name}")
    for provider in providers:
        spec = provider.spec()
        console.print(
            f"  [dim]{spec.stage}[/dim] {spec.label}: {spec.id} "
            f"(max_tokens={spec.params.max_tokens}, temperature={spec.params.temperature})"
        )
    console.print()


def print_terminal(event: ProgressEvent) -> None:
    """Render the terminal event of a run."""
    if isinstance(event, ErrorEvent):
        console.print(f"[bold red]Error:[/bold red] {escape(event.message)}")
        return
    if isinstance(event, ResultEvent):
        console.print(Rule("[bold green]Answer[/bold green]"))
        console.print(Markdown(event.answer))
        if event.contributing_model_ids:
            console.print(
                Text(f"Contributing models: {', '.join(event.contributing_model_ids)}", style="dim")
            )
        return
    console.print(Panel(escape(getattr(event, "message", str(event))), border_style="dim"))
