"""Render a configuration file as an SVG graph using Graphviz ``dot``."""

from __future__ import annotations

import argparse
import io
import os
import subprocess
import sys
import tempfile
from typing import Optional, Sequence

from copperrt.config import CuConfig, CuError, read_configuration

OUTPUT_FILE = "output.svg"


def render_dot(config: CuConfig) -> str:
    """Return the configuration graph in the dot format."""
    buffer = io.StringIO()
    config.render(buffer)
    return buffer.getvalue()


def render_svg(config: CuConfig) -> bytes:
    """Run ``dot -Tsvg`` on the rendered graph and return the SVG bytes."""
    try:
        result = subprocess.run(
            ["dot", "-Tsvg"],
            input=render_dot(config).encode("utf-8"),
            stdout=subprocess.PIPE,
            check=False,
        )
    except OSError as exc:
        raise CuError("Failed to start dot process").add_cause(str(exc)) from exc
    if result.returncode != 0:
        raise CuError(f"dot exited with status {result.returncode}")
    return result.stdout


def _open_in_viewer(svg: bytes) -> None:
    handle = tempfile.NamedTemporaryFile(suffix=".svg", delete=False)
    try:
        with handle:
            handle.write(svg)
        try:
            subprocess.run(["inkscape", handle.name], check=False)
        except OSError as exc:
            raise CuError("failed to open SVG file").add_cause(str(exc)) from exc
    finally:
        os.unlink(handle.name)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Render the configuration to output.svg, or open it with --open."""
    parser = argparse.ArgumentParser(
        prog="rendercfg",
        description="Render a task graph configuration to SVG.",
    )
    parser.add_argument("config", help="Config file name")
    parser.add_argument(
        "--open", action="store_true", help="Open the SVG in the default system viewer"
    )
    args = parser.parse_args(argv)

    try:
        config = read_configuration(args.config)
        svg = render_svg(config)
        if args.open:
            _open_in_viewer(svg)
        else:
            with open(OUTPUT_FILE, "wb") as out:
                out.write(svg)
    except CuError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())