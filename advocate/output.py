"""Rich console rendering of debate session events."""

import logging

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from advocate.models import Message, Phase, Role, Score, SessionEvent

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PHASE_LABELS: dict[Phase, str] = {
    Phase.IDLE: "Your turn.",
    Phase.LISTENING: "Listener Agent: Analyzing your argument...",
    Phase.RESEARCHING: "Researcher Agent: Scouring the web for counter-evidence...",
    Phase.DEBATING: "Debater Agent: Constructing logical rebuttal...",
    Phase.JUDGING: "Judge Agent: Evaluating your performance...",
}


def average_score(scores: tuple[Score, ...] | list[Score]) -> tuple[float, float, float] | None:
    """Mean (logic, evidence, emotional_control) over the history, or None if empty."""
    if not scores:
        return None
    n = len(scores)
    return (
        sum(s.logic for s in scores) / n,
        sum(s.evidence for s in scores) / n,
        sum(s.emotional_control for s in scores) / n,
    )


def format_sources(message: Message) -> str:
    """Numbered markdown list of a message's sources, or '' when none."""
    if not message.sources:
        return ""
    lines = [f"{i}. [{s.title}]({s.uri})" for i, s in enumerate(message.sources, start=1)]
    return "\n".join(lines)


def print_message(message: Message) -> None:
    """Print one chat message as a panel with markdown body and sources."""
    if message.role is Role.USER:
        title, style = "[bold]You[/bold]", "cyan"
    else:
        title, style = "[bold]The Devil's Advocate[/bold]", "yellow"

    body: list = [Markdown(message.text)]
    sources = format_sources(message)
    if sources:
        body += [Rule("Sources", style="dim"), Markdown(sources)]

    console.print(
        Panel(
            Group(*body),
            title=title,
            subtitle=message.timestamp.strftime("%H:%M:%S"),
            border_style=style,
        )
    )


def print_score(score: Score, history: tuple[Score, ...] | list[Score] = ()) -> None:
    """Print the judge's latest evaluation with running averages over history."""
    table = Table(title="Judge's Evaluation", show_header=True, header_style="bold")
    table.add_column("Criterion")
    table.add_column("Latest", justify="right")
    table.add_column("Average", justify="right")

    averages = average_score(history) or (score.logic, score.evidence, score.emotional_control)
    for label, latest, avg in zip(
        ("Logic", "Evidence", "Emotional control"),
        (score.logic, score.evidence, score.emotional_control),
        averages,
    ):
        table.add_row(label, f"{latest:.0f}", f"{avg:.0f}")

    console.print(table)
    console.print(Text(score.feedback, style="italic dim"))


def print_score_history(scores: tuple[Score, ...] | list[Score]) -> None:
    if not scores:
        console.print("[dim]No scores yet.[/dim]")
        return
    table = Table(title="Score History", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Logic", justify="right")
    table.add_column("Evidence", justify="right")
    table.add_column("Emotion", justify="right")
    table.add_column("Feedback")
    for i, s in enumerate(scores, start=1):
        table.add_row(
            str(i), f"{s.logic:.0f}", f"{s.evidence:.0f}", f"{s.emotional_control:.0f}", s.feedback
        )
    console.print(table)


def print_presets(topics: list[str]) -> None:
    console.print(Rule("[bold red]The Devil's Advocate[/bold red]"))
    console.print(
        "State a strong opinion, and I will research, analyze, and challenge it.\n"
    )
    for i, topic in enumerate(topics, start=1):
        console.print(f"  [bold]{i}.[/bold] {topic}")
    console.print()


class SessionRenderer:
    """Session listener that prints each change as it happens."""

    def __call__(self, event: SessionEvent) -> None:
        snapshot = event.snapshot
        if event.kind == "session_created":
            console.print(Rule(f"[bold red]{snapshot.topic}[/bold red]"))
            print_message(snapshot.messages[-1])
        elif event.kind == "message":
            # The user's own rebuttal was just typed; echoing it adds nothing.
            if snapshot.messages[-1].role is Role.AGENT:
                print_message(snapshot.messages[-1])
        elif event.kind == "score":
            print_score(snapshot.scores[-1], snapshot.scores)
        elif event.kind == "phase":
            style = "dim" if snapshot.phase is Phase.IDLE else "magenta"
            console.print(f"[{style}]{PHASE_LABELS[snapshot.phase]}[/{style}]")
        else:
            logger.debug("Unhandled session event: %s", event.kind)
