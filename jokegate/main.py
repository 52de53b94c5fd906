"""Main entry point for the jokegate application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
and defines the CLI commands.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Coroutine, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from jokegate.core.joke_service import JokeService
from jokegate.domain.models.joke import JokeCategory

# --- Infrastructure Layer ---
from jokegate.infrastructure.adapters.resilient_joke_client import ResilientJokeClient
from jokegate.infrastructure.cli.display import ConsoleDisplay
from jokegate.infrastructure.config.settings import (
    get_api_base_url, get_api_timeout, get_policy_group, load_configuration
)
from jokegate.infrastructure.http.chuck_norris_api import ChuckNorrisApi
from jokegate.infrastructure.monitoring.logger_setup import setup_logging
from jokegate.infrastructure.resilience.registry import PolicyRegistry

logger = logging.getLogger(__name__)


@dataclass
class Dependencies:
    ui: ConsoleDisplay
    joke_service: JokeService


def create_dependencies(config_file: Optional[Path] = None, verbose: bool = False) -> Dependencies:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    # 1. Load Configuration First
    load_configuration(config_file=config_file, reload=True)
    setup_logging(verbose=verbose)
    logger.info("Configuration and logging initialized.")

    # 2. Instantiate Infrastructure Adapters
    api = ChuckNorrisApi(base_url=get_api_base_url(), timeout_s=get_api_timeout())
    joke_client = ResilientJokeClient(
        api=api,
        registry=PolicyRegistry(),
        policy_name=get_policy_group(),
    )

    # 3. Core services
    return Dependencies(ui=ConsoleDisplay(), joke_service=JokeService(joke_api=joke_client))


app = typer.Typer(
    name="jokegate",
    help="Fetch Chuck Norris jokes through a circuit breaker, rate limiter, bulkhead and retry.",
    add_completion=False,
)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    return asyncio.run(coro)


def _deps(ctx: typer.Context) -> Dependencies:
    return ctx.obj


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", dir_okay=False, help="YAML configuration file.")
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr.")
    ] = False,
):
    """Wires dependencies before any command runs."""
    if ctx.obj is None:
        ctx.obj = create_dependencies(config_file=config, verbose=verbose)


@app.command()
def category(ctx: typer.Context):
    """Print one random joke category."""
    deps = _deps(ctx)
    deps.ui.display_category(run_async(deps.joke_service.get_random_category()))


@app.command()
def joke(
    ctx: typer.Context,
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-k", help="Joke category; a random one if omitted.")
    ] = None,
):
    """Print a joke from a category."""
    deps = _deps(ctx)
    requested = JokeCategory(category) if category is not None else None
    deps.ui.display_joke(run_async(deps.joke_service.get_joke(requested)))


@app.command(name="random")
def random_command(ctx: typer.Context):
    """Pick a random category, then print a joke from it."""
    deps = _deps(ctx)

    async def pick_and_fetch():
        chosen = await deps.joke_service.get_random_category()
        return chosen, await deps.joke_service.get_joke(chosen)

    chosen, fetched = run_async(pick_and_fetch())
    deps.ui.display_info(f"Random category: {chosen}")
    deps.ui.display_joke(fetched)


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
