"""CLI entry point for lsp-release."""

from __future__ import annotations

import subprocess
from collections.abc import Callable

import click

from .config import ReleaseConfig, load_config
from .errors import ReleaseError
from .models import RunResult
from .outputs import write_outputs
from .promote import run_promote
from .rebase import run_rebase
from .shell import fatal, step
from .update import run_build, run_check, run_update

github_output_option = click.option(
    "--github-output",
    envvar="GITHUB_OUTPUT",
    type=click.Path(dir_okay=False),
    default=None,
    help="Step output file (defaults to $GITHUB_OUTPUT).",
)


def _execute(path: Callable[[ReleaseConfig], RunResult], github_output: str | None) -> None:
    """Run one lifecycle path and report its outcome.

    Any failure is written to the outputs as ``error`` before exiting 1,
    so the workflow can still read why the run stopped.
    """
    try:
        result = path(load_config())
    except (ReleaseError, subprocess.CalledProcessError, OSError) as exc:
        message = str(exc)
        if isinstance(exc, subprocess.CalledProcessError) and exc.stderr:
            message = f"{message}\n{exc.stderr.strip()}"
        write_outputs(RunResult(error=message), github_output)
        fatal(message)
        return

    step("Results")
    write_outputs(result, github_output)


@click.group()
@click.version_option(package_name="lsp-release")
def cli() -> None:
    """Release automation for an extension bundling the stylelint language server."""


@cli.command()
@click.option("--version", "manual_version", default=None, help="Update to this LSP version.")
@github_output_option
def update(manual_version: str | None, github_output: str | None) -> None:
    """Check upstream and open a PR with a prerelease if there is an update."""
    _execute(lambda config: run_update(config, manual_version), github_output)


@cli.command()
@click.option("--version", "manual_version", default=None, help="Check this LSP version.")
@github_output_option
def check(manual_version: str | None, github_output: str | None) -> None:
    """Report whether an update is needed without changing anything."""
    _execute(lambda config: run_check(config, manual_version), github_output)


@cli.command()
@github_output_option
def rebase(github_output: str | None) -> None:
    """Rebase the open LSP update PR onto the trunk if it has moved."""
    _execute(run_rebase, github_output)


@cli.command()
@click.option("--ref", default=None, help="Commit to verify (default: $GITHUB_SHA or HEAD).")
@click.option("--event", default=None, help="Triggering event (default: $GITHUB_EVENT_NAME).")
@github_output_option
def promote(ref: str | None, event: str | None, github_output: str | None) -> None:
    """Promote the prerelease for the merged version to a full release."""
    _execute(lambda config: run_promote(config, ref, event), github_output)


@cli.command()
@click.option("--version", "version", required=True, help="LSP version to build.")
@click.option("--git-user-name", default=None, help="Commit author name.")
@click.option("--git-user-email", default=None, help="Commit author email.")
@github_output_option
def build(
    version: str,
    git_user_name: str | None,
    git_user_email: str | None,
    github_output: str | None,
) -> None:
    """Build the language server and commit the artifact directory."""
    _execute(
        lambda config: run_build(version, config, git_user_name, git_user_email),
        github_output,
    )


if __name__ == "__main__":
    cli()
