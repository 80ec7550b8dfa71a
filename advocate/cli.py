"""Click CLI: loads config, picks a gateway, and runs the interactive debate."""

import asyncio
import logging
import sys
import threading

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from advocate.orchestrator import TurnOrchestrator
from advocate.output import SessionRenderer, console, print_presets, print_score_history
from advocate.providers.anthropic import AnthropicGateway
from advocate.providers.base import DebateGateway
from advocate.providers.gemini import GeminiGateway
from advocate.providers.openai_provider import OpenAIGateway
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

GATEWAY_CLASSES: dict[str, type[DebateGateway]] = {
    "gemini": GeminiGateway,
    "claude": AnthropicGateway,
    "openai": OpenAIGateway,
    "grok": OpenAIGateway,
}

_PROMPT = "[bold cyan]Your rebuttal>[/bold cyan] "


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _pick_gateway_name(config: AppConfig, requested: str | None) -> str | None:
    """Requested gateway if it has a key, else the configured default, else any available."""
    preferred = requested or config.defaults.gateway
    if preferred in config.available_gateways:
        return preferred
    if requested:
        return None
    known = sorted(n for n in config.available_gateways if n in GATEWAY_CLASSES)
    if known:
        logger.warning("Gateway '%s' unavailable, falling back to '%s'", preferred, known[0])
        return known[0]
    return None


def _build_gateway(config: AppConfig, name: str) -> DebateGateway:
    if name not in GATEWAY_CLASSES:
        raise click.BadParameter(f"Unknown gateway '{name}'", param_hint="--gateway")
    return GATEWAY_CLASSES[name](
        config.models[name],
        config.prompts,
        empty_reply=config.fallbacks.empty_reply,
    )


def _resolve_topic(topic: str | None, preset: int | None, presets: list[str]) -> str | None:
    """Explicit topic wins; otherwise a 1-based preset index. None when neither is usable."""
    if topic and topic.strip():
        return topic
    if preset is not None and 1 <= preset <= len(presets):
        return presets[preset - 1]
    return None


def _read_line(prompt: str) -> asyncio.Future:
    """Read one line of stdin on a daemon thread.

    The thread is never joined, so cancelling the returned future (Ctrl-C
    under asyncio.run) lets the process exit while input() is still blocked.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _deliver(line: str | None, error: BaseException | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(line)

    def _worker() -> None:
        try:
            outcome = (console.input(prompt), None)
        except Exception as exc:
            outcome = (None, exc)
        try:
            loop.call_soon_threadsafe(_deliver, *outcome)
        except RuntimeError:
            logger.debug("Event loop closed before input arrived")

    threading.Thread(target=_worker, name="rebuttal-input", daemon=True).start()
    return future


async def _run_session(orchestrator: TurnOrchestrator, topic: str) -> None:
    """Open the debate, then read rebuttals until /quit, EOF or cancellation."""
    try:
        await _session_loop(orchestrator, topic)
    except asyncio.CancelledError:
        console.print()
        logger.debug("Session cancelled")


async def _session_loop(orchestrator: TurnOrchestrator, topic: str) -> None:
    if not await orchestrator.submit_topic(topic):
        console.print("[bold red]Error:[/bold red] Could not start the debate.")
        return

    while True:
        try:
            line = await _read_line(_PROMPT)
        except EOFError:
            console.print()
            break

        line = line.strip()
        if not line:
            continue
        if line in ("/quit", "/exit"):
            break
        if line == "/scores":
            snapshot = orchestrator.store.snapshot()
            print_score_history(snapshot.scores if snapshot else ())
            continue
        if line.startswith("/new"):
            new_topic = line[len("/new"):].strip()
            if not new_topic:
                console.print("[yellow]Usage:[/yellow] /new <topic>")
                continue
            if not await orchestrator.submit_topic(new_topic):
                console.print("[bold red]Error:[/bold red] Could not start the debate.")
            continue

        await orchestrator.submit_user_turn(line)


@click.command()
@click.argument("topic", required=False)
@click.option("--preset", type=int, default=None, help="Start with preset topic N (1-based)")
@click.option("--gateway", default=None, help="Which model gateway to use (default: from config)")
@click.option("--no-opening", is_flag=True, default=False,
              help="Do not rebut the topic itself; wait for the first rebuttal")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    topic: str | None,
    preset: int | None,
    gateway: str | None,
    no_opening: bool,
    verbose: bool,
) -> None:
    """The Devil's Advocate -- debate a grounded AI that argues the other side.

    \b
    Examples:
      advocate "Remote work destroys company culture."
      advocate --preset 2
      advocate "AI art is not real art." --gateway claude --no-opening
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    gateway_name = _pick_gateway_name(config, gateway)
    if gateway_name is None:
        console.print("[bold red]Error:[/bold red] No gateway available. Check API keys in .env.")
        sys.exit(1)
    debate_gateway = _build_gateway(config, gateway_name)

    debate_topic = _resolve_topic(topic, preset, config.preset_topics)
    if debate_topic is None:
        print_presets(config.preset_topics)
        answer = click.prompt("State a controversial opinion (or pick a number)").strip()
        if answer.isdigit():
            debate_topic = _resolve_topic(None, int(answer), config.preset_topics)
        else:
            debate_topic = _resolve_topic(answer, None, config.preset_topics)
    if debate_topic is None:
        console.print("[bold red]Error:[/bold red] Provide a TOPIC argument or a valid --preset.")
        sys.exit(1)

    orchestrator = TurnOrchestrator.from_config(
        debate_gateway, config, respond_to_topic=False if no_opening else None
    )
    orchestrator.subscribe(SessionRenderer())

    console.print(
        f"\n[bold red]The Devil's Advocate[/bold red]: {debate_gateway.name()} "
        f"({debate_gateway.model_string()})"
    )
    console.print("[dim]Commands: /new <topic>, /scores, /quit[/dim]\n")

    asyncio.run(_run_session(orchestrator, debate_topic))


if __name__ == "__main__":
    main()
