"""GitHub Actions step outputs."""

from __future__ import annotations

import os

from .models import RunResult


def _write_output(output_path: str, name: str, value: str) -> None:
    with open(output_path, "a") as fh:
        if "\n" in value:
            # Multiline values need the heredoc form
            fh.write(f"{name}<<__LSP_RELEASE_EOF__\n{value}\n__LSP_RELEASE_EOF__\n")
        else:
            fh.write(f"{name}={value}\n")


def write_outputs(result: RunResult, output_path: str | None = None) -> None:
    """Append every set field of ``result`` to the step output file.

    Falls back to ``$GITHUB_OUTPUT``; outside Actions there is nowhere to
    write and the outputs are only printed.
    """
    outputs = result.to_outputs()
    for name, value in outputs.items():
        print(f"  {name}: {value}")

    output_path = output_path or os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    for name, value in outputs.items():
        _write_output(output_path, name, value)
