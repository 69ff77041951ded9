"""Command-line interface for the Anki language card generator."""

import asyncio
import functools
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click
import structlog

from .anki_client import AnkiConnectClient
from .config import MAX_PARALLEL_REQUESTS, ConfigOverrides, load_settings
from .openai_client import LLMClient
from .pipeline import FLOWS, RunContext, run_interactive_session
from .utils import load_words_from_file

log = structlog.get_logger()


def configure_logging(verbose: bool):
    """JSON logs by default, human-readable console logs with --verbose."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    renderer = structlog.dev.ConsoleRenderer() if verbose else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _split_tags(ctx, param, value: Tuple[str, ...]) -> Optional[List[str]]:
    tags = [tag.strip() for item in value for tag in item.split(",") if tag.strip()]
    return tags or None


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to a YAML configuration file overriding defaults"
)
@click.option("--model", help="Override the OpenAI model used for generation")
@click.option("--anki-url", help="Override the AnkiConnect base URL")
@click.option("--hindi-deck", help="Override the Hindi deck name for this run")
@click.option("--english-deck", help="Override the English deck name for this run")
@click.option(
    "--temperature",
    type=float,
    help="Temperature override for the language model (0.0-2.0)"
)
@click.option(
    "--tags",
    multiple=True,
    callback=_split_tags,
    help="Additional comma-separated tags to attach to generated notes"
)
@click.option(
    "--max-parallel",
    type=int,
    default=MAX_PARALLEL_REQUESTS,
    help="Maximum parallel generation requests"
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Preview the generated notes without sending them to Anki"
)
@click.option(
    "--yes", "-y", "auto_approve",
    is_flag=True,
    help="Send notes without asking for confirmation"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.pass_context
def main(ctx, config_path: Optional[Path], model: Optional[str], anki_url: Optional[str],
         hindi_deck: Optional[str], english_deck: Optional[str], temperature: Optional[float],
         tags: Optional[List[str]], max_parallel: int, dry_run: bool, auto_approve: bool,
         verbose: bool):
    """Generate language flashcards in Anki via AnkiConnect."""
    configure_logging(verbose)

    overrides = ConfigOverrides(
        model=model,
        anki_url=anki_url,
        hindi_deck=hindi_deck,
        english_deck=english_deck,
        temperature=temperature,
        extra_tags=tags,
    )

    # Called by each subcommand once its own options have been parsed.
    ctx.obj = functools.partial(
        build_run_context, config_path, overrides,
        dry_run=dry_run, auto_approve=auto_approve, max_parallel=max_parallel,
    )


def build_run_context(config_path: Optional[Path], overrides: ConfigOverrides,
                      dry_run: bool, auto_approve: bool, max_parallel: int) -> RunContext:
    """Load settings and create the clients for one run."""
    try:
        settings = load_settings(config_path, overrides)
        llm = LLMClient(settings.openai_api_key, settings.openai_model, settings.openai_base_url)
    except ValueError as e:
        raise click.ClickException(str(e))

    log.info("Starting Anki language card generator",
             model=settings.openai_model,
             anki_url=settings.anki_connect_url,
             dry_run=dry_run)

    return RunContext(
        anki=AnkiConnectClient(settings.anki_connect_url),
        llm=llm,
        settings=settings,
        dry_run=dry_run,
        auto_approve=auto_approve,
        max_parallel=max_parallel,
    )


def _collect_words(words: Tuple[str, ...], input_path: Optional[Path]) -> List[str]:
    collected = list(words)
    if input_path is not None:
        collected.extend(load_words_from_file(input_path))
    if not collected:
        raise click.UsageError("no words provided; specify words as arguments or via --input")
    return collected


def _run(flow, words: List[str], deck: Optional[str], run_ctx: RunContext):
    try:
        results = asyncio.run(flow(words, deck, run_ctx))
    except Exception as e:
        log.error("Processing failed", error=str(e))
        raise click.ClickException(str(e))

    failed = [r.word for r in results if r.error]
    log.info("Processing completed",
             total_words=len(results),
             failed=len(failed),
             skipped=sum(1 for r in results if r.skipped))
    if failed:
        click.echo(f"Failed words: {', '.join(failed)}", err=True)


def language_command(language: str, help_text: str):
    @click.command(name=language, help=help_text)
    @click.option(
        "-i", "--input", "input_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="File containing words (one per line, or separated by , or ;)"
    )
    @click.option("--deck", help="Override the deck name")
    @click.argument("words", nargs=-1)
    @click.pass_obj
    def command(make_run_ctx, input_path: Optional[Path], deck: Optional[str],
                words: Tuple[str, ...]):
        words = _collect_words(words, input_path)
        _run(FLOWS[language], words, deck, make_run_ctx())

    return command


main.add_command(language_command(
    "hindi",
    "Generate Hindi sentence cards from words given as arguments or in a file."
))
main.add_command(language_command(
    "english",
    "Generate English cloze cards from words given as arguments or in a file."
))


@main.command()
@click.option(
    "--language",
    type=click.Choice(["hindi", "english"]),
    help="Language to preselect for the first round"
)
@click.pass_obj
def interactive(make_run_ctx, language: Optional[str]):
    """Run an interactive session for adding cards."""
    run_ctx = make_run_ctx()
    try:
        asyncio.run(run_interactive_session(language, run_ctx))
    except click.Abort:
        raise
    except Exception as e:
        log.error("Interactive session failed", error=str(e))
        raise click.ClickException(str(e))


if __name__ == "__main__":
    main()
