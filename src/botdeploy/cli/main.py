"""Entry point for the ``botdeploy`` command line interface."""

from __future__ import annotations

import click

from botdeploy import __version__
from botdeploy.cli.commands.deploy import deploy
from botdeploy.cli.commands.serve import serve


@click.group()
@click.version_option(version=__version__, prog_name="botdeploy")
def main() -> None:
    """Deploy bot repositories as resource-limited Docker containers."""


main.add_command(serve)
main.add_command(deploy)


if __name__ == "__main__":  # pragma: no cover
    main()
