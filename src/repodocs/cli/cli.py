"""CLI entrypoint: Typer app definition and command registration"""

import typer

from repodocs.cli.commands import (
    discover_cmd,
    main_callback,
    process_cmd,
    process_org_cmd,
    quota_cmd,
    repos_cmd,
    scan_cmd,
)


app = typer.Typer(name="repodocs", no_args_is_help=True, help="Remote repository documentation pipeline")

app.callback()(main_callback)
app.command(name="discover")(discover_cmd)
app.command(name="process")(process_cmd)
app.command(name="quota")(quota_cmd)
app.command(name="repos")(repos_cmd)
app.command(name="scan")(scan_cmd)
app.command(name="process-org")(process_org_cmd)
