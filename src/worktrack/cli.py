"""Command line interface for worktrack.

Commands read their configuration from the environment (see
``TrackerConfig.from_env`` and ``LLMConfig.from_env``). Each error kind exits
with its own status code, listed in ``EXIT_CODES``.
"""

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional, Type

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .api_clients import (
    APIClientError,
    ApiError,
    AuthenticationError,
    CompletionOptions,
    ConfigurationError,
    DecodeError,
    ExpandField,
    Issue,
    LLMClient,
    LLMRequestError,
    OperationCancelledError,
    RateLimitError,
    SearchRequest,
    TrackerAPIClient,
    TransientNetworkError,
)
from .api_clients.network_error_handler import UserGuidanceProvider
from .config import LLMConfig, TrackerConfig
from .utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)

console = Console()

# Most specific kinds first; the first isinstance match wins.
EXIT_CODES: Dict[Type[Exception], int] = {
    LLMRequestError: 9,
    OperationCancelledError: 8,
    TransientNetworkError: 7,
    DecodeError: 6,
    ApiError: 5,
    RateLimitError: 4,
    AuthenticationError: 3,
    ConfigurationError: 2,
}
EXIT_SUCCESS = 0
EXIT_UNEXPECTED = 1


def exit_code_for(error: BaseException) -> int:
    for error_type, code in EXIT_CODES.items():
        if isinstance(error, error_type):
            return code
    return EXIT_UNEXPECTED


def _run(coro: Any) -> Any:
    """Run a command coroutine and turn client errors into exit codes."""
    try:
        return asyncio.run(coro)
    except APIClientError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        guidance = UserGuidanceProvider().get_guidance(e)
        if guidance is not None:
            console.print(Panel(guidance.format_for_console(), title="How to fix"))
        sys.exit(exit_code_for(e))
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(EXIT_UNEXPECTED)


def _load_tracker_config(ctx: click.Context) -> TrackerConfig:
    try:
        config = TrackerConfig.from_env(ctx.obj.get("environ"))
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(exit_code_for(e))
    ctx.obj["log_filter"].register_secret(config.credentials.token.get_secret_value())
    return config


def _load_llm_config(ctx: click.Context, model: Optional[str]) -> LLMConfig:
    try:
        config = LLMConfig.from_env(model=model, environ=ctx.obj.get("environ"))
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(exit_code_for(e))
    ctx.obj["log_filter"].register_secret(config.credentials.token.get_secret_value())
    return config


def _issue_table(issues: List[Issue], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Summary")
    table.add_column("Status", style="green")
    table.add_column("Assignee")
    for issue in issues:
        table.add_row(
            issue.key,
            issue.summary,
            issue.status.display if issue.status and issue.status.display else "-",
            issue.assignee.display if issue.assignee and issue.assignee.display else "-",
        )
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="worktrack")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Worktrack - issue tracker and LLM completion clients.

    \b
    Environment:
      TRACKER_OAUTH_TOKEN, TRACKER_ORG_ID, TRACKER_BASE_URL, TRACKER_LANGUAGE
      OPEN_ROUTER_TOKEN, LLM_MODEL, LLM_BASE_URL
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["log_filter"] = setup_logging(verbose=verbose)


@cli.group()
def tracker() -> None:
    """Issue tracker commands."""


@tracker.command("issue")
@click.argument("issue_key")
@click.option(
    "--expand",
    "-e",
    multiple=True,
    type=click.Choice([f.value for f in ExpandField]),
    help="Extra sections to include",
)
@click.pass_context
def tracker_issue(ctx: click.Context, issue_key: str, expand: List[str]) -> None:
    """Show one issue."""
    config = _load_tracker_config(ctx)

    async def fetch() -> Issue:
        async with TrackerAPIClient(
            config, transport=ctx.obj.get("transport")
        ) as client:
            return await client.get_issue(
                issue_key, expand=[ExpandField(e) for e in expand]
            )

    issue = _run(fetch())
    console.print(f"[bold cyan]{issue.key}[/bold cyan] {issue.summary}")
    if issue.status and issue.status.display:
        console.print(f"Status: {issue.status.display}")
    if issue.assignee and issue.assignee.display:
        console.print(f"Assignee: {issue.assignee.display}")
    if issue.followers:
        console.print(
            "Followers: "
            + ", ".join(f.display or str(f.id or "?") for f in issue.followers)
        )
    if issue.tags:
        console.print("Tags: " + ", ".join(issue.tags))
    if issue.description:
        console.print(Panel(issue.description, title="Description"))


@tracker.command("search")
@click.option("--query", "-q", help="Query language filter")
@click.option("--queue", help="Queue key")
@click.option("--order", help='Sort order, e.g. "+status"')
@click.option("--per-page", default=50, show_default=True, type=click.IntRange(1, 1000))
@click.option("--max-pages", type=click.IntRange(1), help="Stop after this many pages")
@click.pass_context
def tracker_search(
    ctx: click.Context,
    query: Optional[str],
    queue: Optional[str],
    order: Optional[str],
    per_page: int,
    max_pages: Optional[int],
) -> None:
    """Search issues and print every page of results."""
    if not query and not queue:
        raise click.UsageError("Pass --query or --queue")
    config = _load_tracker_config(ctx)
    request = SearchRequest(query=query, queue=queue, order=order)

    async def search() -> List[Issue]:
        async with TrackerAPIClient(
            config, transport=ctx.obj.get("transport")
        ) as client:
            walker = client.iter_search_issues(
                request, per_page=per_page, max_pages=max_pages
            )
            return await walker.collect()

    issues = _run(search())
    console.print(_issue_table(issues, f"{len(issues)} issues"))


@cli.group()
def llm() -> None:
    """LLM completion commands."""


@llm.command("ask")
@click.argument("prompt")
@click.option("--system", "system_prompt", help="System prompt")
@click.option("--model", help="Model identifier (defaults to LLM_MODEL)")
@click.option("--temperature", type=float, help="Sampling temperature 0.0-2.0")
@click.option("--max-tokens", type=int, help="Maximum completion tokens")
@click.pass_context
def llm_ask(
    ctx: click.Context,
    prompt: str,
    system_prompt: Optional[str],
    model: Optional[str],
    temperature: Optional[float],
    max_tokens: Optional[int],
) -> None:
    """Send a prompt and print the reply."""
    config = _load_llm_config(ctx, model)

    async def ask() -> str:
        options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)
        async with LLMClient(config, transport=ctx.obj.get("transport")) as client:
            if system_prompt:
                return await client.complete_with_system(
                    system_prompt, prompt, options=options
                )
            return await client.complete(prompt, options=options)

    reply = _run(ask())
    console.print(reply)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
