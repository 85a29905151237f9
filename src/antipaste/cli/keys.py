"""Key commands: new, list, find, import."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from ._common import ANTIPASTE_HOME, console, fail_on_error, format_timestamp, open_app


def register_key_commands(main: click.Group) -> None:
    """Register the key command group."""

    @main.group()
    def key():
        """Manage OpenPGP keys: generate, list, search, import."""

    @key.command("new")
    @click.argument("name")
    @click.argument("email")
    @click.argument("comment", default="")
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    def key_new(name, email, comment, home):
        """Generate a new key pair and save it to the rings."""
        app = open_app(home)
        console.print("\n  Generating key...", end=" ")
        with fail_on_error():
            entity = app.new_key(name, email, comment)
        console.print("[green]done[/]")
        console.print(f"  Fingerprint: [bold cyan]{entity.fingerprint}[/]")
        console.print(f"  Identity:    {escape(str(entity.identities[0]))}\n")

    @key.command("list")
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    def key_list(home):
        """List the keys in the public ring."""
        app = open_app(home)
        ring = app.store.public_ring
        if not ring:
            console.print("\n  [dim]No keys. Run antipaste key new or key import.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Fingerprint", style="cyan", no_wrap=True)
        table.add_column("Identity")
        table.add_column("Private", justify="center")
        for entity in ring:
            private = "[green]yes[/]" if app.store.has_private(entity.fingerprint) else "[dim]no[/]"
            identities = "\n".join(escape(str(i)) for i in entity.identities) or "[dim](none)[/]"
            table.add_row(entity.fingerprint, identities, private)
        console.print()
        console.print(table)
        console.print()

    @key.command("find")
    @click.argument("term")
    @click.option("--hkp", "keyserver", default=None, help="Keyserver host[:port].")
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    def key_find(term, keyserver, home):
        """Search a keyserver for TERM."""
        app = open_app(home)
        with fail_on_error():
            results = app.find_key(term, keyserver)
        if not results:
            console.print(f"\n  [dim]No keys found for {escape(term)}.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Key ID", style="cyan", no_wrap=True)
        table.add_column("Bits", justify="right")
        table.add_column("Created")
        table.add_column("Expires")
        table.add_column("User IDs")
        for result in results:
            uids = "\n".join(escape(u.uid) for u in result.uids)
            key_id = result.key_id + (f" [red]{result.flags}[/]" if result.flags else "")
            table.add_row(
                key_id,
                str(result.key_len or "-"),
                format_timestamp(result.creation),
                format_timestamp(result.expiration),
                uids,
            )
        console.print()
        console.print(table)
        console.print()

    @key.command("import")
    @click.argument("key_id")
    @click.option("--hkp", "keyserver", default=None, help="Keyserver host[:port].")
    @click.option("--home", default=ANTIPASTE_HOME, type=click.Path(), help="antipaste home directory.")
    def key_import(key_id, keyserver, home):
        """Fetch KEY_ID from a keyserver into the public ring."""
        app = open_app(home)
        with fail_on_error():
            entity = app.import_key(key_id, keyserver)
        console.print(f"\n  Imported [bold cyan]{entity.fingerprint}[/]")
        for identity in entity.identities:
            console.print(f"    {escape(str(identity))}")
        console.print()
