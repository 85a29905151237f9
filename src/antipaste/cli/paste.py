"""Paste commands: get, put."""

from __future__ import annotations

import click

from ._common import ANTIPASTE_HOME, err_console, fail_on_error, open_app


def register_paste_commands(main: click.Group) -> None:
    """Register the get and put commands."""

    @main.command("get")
    @click.argument("locator")
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    @click.option("--output", "-o", type=click.File("wb"), default="-", help="Write plaintext here (default stdout).")
    def get_cmd(locator, home, output):
        """Download and decrypt the paste at LOCATOR.

        LOCATOR is <prefix>:<id> (gist:abc123), an http(s) URL, or a local file.
        """
        app = open_app(home)
        with fail_on_error():
            app.get(locator, output)
        output.flush()

    @main.command("put")
    @click.argument("prefix")
    @click.argument("source", type=click.File("rb"))
    @click.argument("recipients", nargs=-1, required=True)
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    def put_cmd(prefix, source, recipients, home):
        """Encrypt SOURCE for RECIPIENTS and paste it to PREFIX.

        SOURCE is a file or - for stdin. RECIPIENTS are fingerprint
        suffixes of keys in the public ring. Prints the new locator.
        """
        app = open_app(home)
        if prefix not in app.registry:
            known = ", ".join(app.registry.prefixes())
            err_console.print(f"[bold red]Unknown paste site:[/] {prefix} (known: {known})")
            raise SystemExit(1)
        with fail_on_error():
            locator = app.put(prefix, source, recipients)
        click.echo(locator)
