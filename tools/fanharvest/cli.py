"""CLI entry-point for fanharvest."""

from __future__ import annotations

import json
import logging
import sys
from http.cookiejar import LoadError, MozillaCookieJar
from typing import IO

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .config import DownloadOptions, HarvesterConfig, Platform, RequestConfig, site_config
from .errors import DevError, InputError
from .harvester import Harvester
from .identifiers import resolve_creator, resolve_post
from .models import Identifier, PageRange, RunResult
from .pages import parse_page_range
from .progress import ProgressReporter, RichProgressReporter

# stdout carries the JSON result
console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _print_stats(stats: dict, result: RunResult) -> None:
    table = Table(title="Harvest Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.capitalize(), str(val))
    for provider, targets in sorted(result.external_by_provider().items()):
        table.add_row(f"  {provider}", str(len(targets)))
    table.add_row("Password hints", str(len(result.password_protected)))
    console.print(table)


def _print_errors(result: RunResult) -> None:
    if not result.errors:
        return
    table = Table(title="Failed Items", show_header=True, header_style="bold red")
    table.add_column("Stage")
    table.add_column("Item")
    table.add_column("Page", justify="right")
    table.add_column("Error", max_width=80)
    for err in result.errors:
        table.add_row(err.stage.value, str(err.identifier), str(err.page or ""), str(err.cause))
    console.print(table)


def _session_cookies(platform: Platform, session: str | None, cookie_file: str | None) -> dict[str, str]:
    site = site_config(platform)
    if session and cookie_file:
        raise click.UsageError("use either --session or --cookie-file, not both")
    if session:
        return {site.cookie_name: session}
    if not cookie_file:
        return {}

    jar = MozillaCookieJar(cookie_file)
    try:
        jar.load(ignore_discard=True, ignore_expires=True)
    except (OSError, LoadError) as exc:
        raise click.BadParameter(f"cannot read cookie file: {exc}", param_hint="--cookie-file") from exc
    for cookie in jar:
        if cookie.name == site.cookie_name and cookie.value:
            return {site.cookie_name: cookie.value}
    raise click.BadParameter(
        f"no {site.cookie_name} cookie for {site.title} in {cookie_file}", param_hint="--cookie-file"
    )


def _resolve_inputs(
    platform: Platform, creators: tuple[str, ...], pages: tuple[str, ...], posts: tuple[str, ...]
) -> tuple[list[Identifier], list[PageRange], list[Identifier]]:
    if pages and len(pages) != len(creators):
        raise click.UsageError(
            f"{len(creators)} creator(s) given but {len(pages)} --page value(s); "
            "give one --page per --creator or none at all"
        )
    try:
        creator_ids = [resolve_creator(platform, raw) for raw in creators]
        ranges = [parse_page_range(spec) for spec in pages] or [PageRange() for _ in creators]
        post_ids = [resolve_post(platform, raw) for raw in posts]
    except InputError as exc:
        raise click.UsageError(str(exc)) from exc
    if not creator_ids and not post_ids:
        raise click.UsageError("nothing to harvest: pass at least one --creator or --post")
    return creator_ids, ranges, post_ids


def _harvest(
    ctx: click.Context,
    platform: Platform,
    *,
    creators: tuple[str, ...],
    pages: tuple[str, ...],
    posts: tuple[str, ...],
    cookies: dict[str, str],
    options: DownloadOptions,
    output: IO[str],
) -> None:
    creator_ids, ranges, post_ids = _resolve_inputs(platform, creators, pages, posts)
    cfg = HarvesterConfig(request=ctx.obj["request_cfg"], download=options)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:

        def reporter(description: str) -> ProgressReporter:
            return RichProgressReporter(progress, description)

        try:
            with Harvester(platform, cfg, cookies, progress_factory=reporter) as h:
                result = h.run(creator_ids, ranges, post_ids)
                stats = dict(h.stats)
        except DevError as exc:
            console.print(f"[red]✗ internal error:[/red] {exc}")
            sys.exit(1)

    _print_stats(stats, result)
    _print_errors(result)
    json.dump(result.to_dict(), output, ensure_ascii=False, indent=2)
    output.write("\n")


# ─── CLI ─────────────────────────────────────────────────────────


@click.group()
@click.option("--user-agent", envvar="FANHARVEST_USER_AGENT", default=RequestConfig.user_agent, help="User-Agent header")
@click.option("--timeout", envvar="FANHARVEST_TIMEOUT", default=30.0, type=float, help="Per-request timeout (seconds)")
@click.option("--request-delay", envvar="FANHARVEST_REQUEST_DELAY", default=0.0, type=float,
              help="Minimum delay between request starts (seconds)")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, user_agent: str, timeout: float, request_delay: float, verbose: bool) -> None:
    """fanharvest – collect download URLs from Pixiv Fanbox and Kemono.

    Lists creators' posts, fetches each post's metadata and writes the
    discovered attachment, image and file-host URLs as JSON.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["request_cfg"] = RequestConfig(user_agent=user_agent, timeout=timeout, request_delay=request_delay)


@cli.command()
@click.option("--creator", "creators", multiple=True, help="Creator ID or URL (repeatable)")
@click.option("--page", "pages", multiple=True, help='Page range per creator, e.g. "1-10" (repeatable)')
@click.option("--post", "posts", multiple=True, help="Post ID or URL (repeatable)")
@click.option("--session", envvar="FANBOX_SESSION", help="FANBOXSESSID cookie value")
@click.option("--cookie-file", type=click.Path(dir_okay=False), help="Netscape cookies.txt file")
@click.option("--no-images", is_flag=True, help="Skip post images")
@click.option("--no-attachments", is_flag=True, help="Skip file attachments")
@click.option("--no-thumbnails", is_flag=True, help="Skip cover images")
@click.option("--no-gdrive", is_flag=True, help="Ignore Google Drive links")
@click.option("-o", "--output", type=click.File("w", encoding="utf-8"), default="-", help="Where to write the JSON result")
@click.pass_context
def fanbox(
    ctx: click.Context,
    creators: tuple[str, ...],
    pages: tuple[str, ...],
    posts: tuple[str, ...],
    session: str | None,
    cookie_file: str | None,
    no_images: bool,
    no_attachments: bool,
    no_thumbnails: bool,
    no_gdrive: bool,
    output: IO[str],
) -> None:
    """Harvest Pixiv Fanbox creators and posts.

    Example: fanharvest fanbox --creator somecreator --page 1-3 --post 1234567
    """
    _harvest(
        ctx,
        Platform.PIXIV_FANBOX,
        creators=creators,
        pages=pages,
        posts=posts,
        cookies=_session_cookies(Platform.PIXIV_FANBOX, session, cookie_file),
        options=DownloadOptions(
            images=not no_images,
            attachments=not no_attachments,
            thumbnails=not no_thumbnails,
            gdrive=not no_gdrive,
        ),
        output=output,
    )


@cli.command()
@click.option("--creator", "creators", multiple=True, help="Kemono creator URL (repeatable)")
@click.option("--page", "pages", multiple=True, help='Page range per creator, e.g. "1-10" (repeatable)')
@click.option("--post", "posts", multiple=True, help="Kemono post URL (repeatable)")
@click.option("--session", envvar="KEMONO_SESSION", help="Kemono session cookie value")
@click.option("--cookie-file", type=click.Path(dir_okay=False), help="Netscape cookies.txt file")
@click.option("--no-images", is_flag=True, help="Skip images embedded in post content")
@click.option("--no-attachments", is_flag=True, help="Skip post files and attachments")
@click.option("--no-gdrive", is_flag=True, help="Ignore Google Drive links")
@click.option("-o", "--output", type=click.File("w", encoding="utf-8"), default="-", help="Where to write the JSON result")
@click.pass_context
def kemono(
    ctx: click.Context,
    creators: tuple[str, ...],
    pages: tuple[str, ...],
    posts: tuple[str, ...],
    session: str | None,
    cookie_file: str | None,
    no_images: bool,
    no_attachments: bool,
    no_gdrive: bool,
    output: IO[str],
) -> None:
    """Harvest Kemono creators and posts.

    Example: fanharvest kemono --creator https://kemono.cr/patreon/user/123 --page 1-2
    """
    cookies = _session_cookies(Platform.KEMONO, session, cookie_file)
    if not cookies:
        raise click.UsageError("Kemono needs a session cookie: pass --session or --cookie-file")
    _harvest(
        ctx,
        Platform.KEMONO,
        creators=creators,
        pages=pages,
        posts=posts,
        cookies=cookies,
        options=DownloadOptions(images=not no_images, attachments=not no_attachments, gdrive=not no_gdrive),
        output=output,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
