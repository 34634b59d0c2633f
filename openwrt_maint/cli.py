"""Thin CLI wrapper for openwrt_maint.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape

from openwrt_maint import __version__
from openwrt_maint.config import Settings, get_settings, print_settings_json

if TYPE_CHECKING:
    import httpx

    from openwrt_maint.git.abc import Git
    from openwrt_maint.github.client import GitHubClient

app = typer.Typer(
    name="owrt-maint",
    help="OpenWrt maintainer tools - merge PRs, tag releases, update packages",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"openwrt-maint version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Logging level (overrides settings)"),
    ] = None,
) -> None:
    """OpenWrt maintainer tools - merge PRs, tag releases, update packages."""
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _error(message: str) -> None:
    err_console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    timeout_display = (
        f"{settings.http_timeout}" if settings.http_timeout else "(none)"
    )
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]GitHub:[/bold]")
    console.print(f"  Repository:          {settings.github_repo}")
    console.print(f"  API URL:             {settings.github_api_url}")
    console.print(f"  Web URL:             {settings.github_web_url}")
    console.print(
        f"  Token:               {'(set)' if settings.github_token else '(not set)'}"
    )
    console.print()
    console.print("[bold]Git:[/bold]")
    console.print(f"  Upstream remote:     {settings.upstream_remote}")
    console.print(f"  Default branch:      {settings.default_branch}")
    console.print()
    console.print("[bold]Releases:[/bold]")
    console.print(f"  Download base URL:   {settings.download_base_url}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  HTTP timeout (s):    {timeout_display}")
    console.print(f"  Log level:           {settings.log_level}")


# Factories are module-level so tests can substitute fakes.


def _create_git(repo_dir: Path, dry_run: bool) -> Git:
    from openwrt_maint.git.dry_run import DryRunGit
    from openwrt_maint.git.real import RealGit

    git: Git = RealGit(repo_dir)
    if dry_run:
        git = DryRunGit(
            git,
            emit=lambda line: console.print(line, markup=False, highlight=False),
        )
    return git


def _create_github(
    settings: Settings, repo: str, http: httpx.Client
) -> GitHubClient:
    from openwrt_maint.github.client import HttpGitHubClient

    token = settings.github_token.get_secret_value() if settings.github_token else None
    return HttpGitHubClient(
        http,
        repo=repo,
        token=token,
        api_url=settings.github_api_url,
        timeout=settings.http_timeout,
    )


@app.command("merge-pr")
def merge_pr(
    pr_id: Annotated[
        str | None,
        typer.Argument(help="Pull request number", show_default=False),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Argument(help="Branch to rebase onto and merge into [default: master]"),
    ] = None,
    dry_run_arg: Annotated[
        str | None,
        typer.Argument(
            metavar="[DRY_RUN]",
            help="Any non-empty value enables dry-run, like --dry-run",
            show_default=False,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run", "-n", help="Echo mutating git commands instead of running them"
        ),
    ] = False,
    repo: Annotated[
        str | None,
        typer.Option("--repo", "-r", help="GitHub repository slug (owner/name)"),
    ] = None,
    remote: Annotated[
        str | None,
        typer.Option("--remote", help="Remote holding the canonical branch"),
    ] = None,
    repo_dir: Annotated[
        Path,
        typer.Option("--repo-dir", "-C", help="Path of the local git repository"),
    ] = Path("."),
) -> None:
    """Rebase a GitHub pull request onto a branch and fast-forward merge it.

    Exit codes: 1 usage, 2 missing branch, 3 PR fetch failed, 4 maintainer
    edits disabled, 5 not mergeable, 6 GitHub notification failed, 7-12 a git
    step failed.
    """
    import httpx

    from openwrt_maint.merge import MergeError, MergeRequest, merge_pull_request
    from openwrt_maint.merge.validation import parse_pr_id
    from openwrt_maint.prompt import TerminalInteraction

    try:
        number = parse_pr_id(pr_id)
    except MergeError as e:
        _error(e.message)
        err_console.print(
            "Usage: owrt-maint merge-pr <PR-ID> [rebase-branch] [dry-run-flag]",
            markup=False,
        )
        raise typer.Exit(code=int(e.exit_code)) from None

    dry_run = dry_run or bool(dry_run_arg)
    settings = get_settings()
    request = MergeRequest(
        pr_id=number,
        branch=branch or settings.default_branch,
        dry_run=dry_run,
        remote=remote or settings.upstream_remote,
        repo=repo or settings.github_repo,
        web_url=settings.github_web_url,
        notify=settings.github_token is not None,
    )

    git = _create_git(repo_dir, dry_run)
    with httpx.Client() as http:
        github = _create_github(settings, request.repo, http)
        try:
            merge_pull_request(request, git, github, TerminalInteraction(console))
        except MergeError as e:
            _error(e.message)
            raise typer.Exit(code=int(e.exit_code)) from None


@app.command()
def tag(
    version: Annotated[
        str,
        typer.Option("--version", "-v", help="Release version, e.g. 23.05.3"),
    ],
    ignore_existing: Annotated[
        bool,
        typer.Option("--ignore-existing", "-i", help="Exit successfully if tag exists"),
    ] = False,
    author: Annotated[
        str | None,
        typer.Option("--author", "-a", help="Git author for automated commits"),
    ] = None,
    email: Annotated[
        str | None,
        typer.Option("--email", "-e", help="Git email for automated commits"),
    ] = None,
    gpg_key_id: Annotated[
        str | None,
        typer.Option("--gpg-key", "-k", help="Sign the tag with this GPG key id"),
    ] = None,
    gpg_passphrase_file: Annotated[
        Path | None,
        typer.Option("--gpg-passphrase-file", "-p", help="GPG passphrase file"),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", "-u", help="Download base URL"),
    ] = None,
    topdir: Annotated[
        Path,
        typer.Option("--topdir", "-C", help="Buildroot top directory"),
    ] = Path("."),
) -> None:
    """Tag a release in an OpenWrt buildroot checkout.

    Pins feeds, adjusts version defaults, commits, tags and reverts to the
    branch defaults. Nothing is pushed.
    """
    from openwrt_maint.tag import TagError, TagOptions, make_tag

    settings = get_settings()
    try:
        options = TagOptions(
            version=version,
            author=author,
            email=email,
            gpg_key_id=gpg_key_id,
            gpg_passphrase_file=gpg_passphrase_file,
            base_url=base_url or settings.download_base_url,
            ignore_existing=ignore_existing,
        )
        result = make_tag(topdir, options)
    except TagError as e:
        _error(str(e))
        raise typer.Exit(code=1) from None

    if result.already_existed:
        console.print(f"[yellow]Tag {result.tag} already exists[/yellow]")
        return

    console.print(result.show_output, markup=False, highlight=False)
    console.print("# Push the branch and tag with:", markup=False)
    for command in result.push_commands:
        console.print(command, markup=False, highlight=False)


@app.command("update-package")
def update_package_cmd(
    makefile: Annotated[
        str | None,
        typer.Argument(help="Package name or path to the package Makefile"),
    ] = None,
    revision: Annotated[
        str,
        typer.Argument(help="Upstream revision to update to"),
    ] = "HEAD",
    topdir: Annotated[
        Path | None,
        typer.Argument(help="Buildroot top directory (inferred if omitted)"),
    ] = None,
) -> None:
    """Update a PKG_SOURCE_PROTO:=git package Makefile to an upstream revision.

    The Makefile is rewritten, the source tarball re-hashed and the change
    committed in the buildroot with a standard commit message.
    """
    from openwrt_maint.source_update import SourceUpdateError, update_package

    if not makefile:
        err_console.print(
            "Usage: owrt-maint update-package <package name or makefile path> "
            "[revision] [topdir]",
            markup=False,
        )
        raise typer.Exit(code=1)

    try:
        result = update_package(makefile, revision=revision, topdir=topdir)
    except SourceUpdateError as e:
        if e.code == "check_failed":
            err_console.print(f"[yellow]WARNING: {escape(str(e))}[/yellow]")
        else:
            _error(str(e))
        raise typer.Exit(code=1) from None

    console.print(f"[green]✓ {escape(result.subject)}[/green]")
    console.print(f"  Version: {result.old_version} -> {result.new_version}")
    console.print(f"  Mirror hash: {result.mirror_hash}")
    for line in result.fixes:
        console.print(f"  {line}", markup=False)
