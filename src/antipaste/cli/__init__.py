"""
antipaste CLI -- encrypted pastes from the command line.

Each command group lives in its own module and is registered on the
main Click group here.

Entry point: antipaste.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="antipaste")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log protocol detail.")
def main(verbose):
    """antipaste: share secrets through public paste sites.

    Pastes are encrypted to the recipients' OpenPGP keys before upload.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


from .paste import register_paste_commands
from .keys import register_key_commands

register_paste_commands(main)
register_key_commands(main)
