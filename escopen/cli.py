"""
This file is the entry point for the 'escopen' command-line tool.
Run 'escopen env open <org>/<env>' in your shell to open an environment.
"""
import logging
from typing import Optional

import httpx
import typer

from common.app_setup import print_error, setup_logging
from common.errors import EscError
from environments.lifetime import parse_lifetime
from environments.opener import open_environment
from environments.paths import parse_property_path
from environments.render import render_value, validate_format
from escopen.context import ExecutionContext, build_context
from escopen.diagnostics import write_diagnostics
from escopen.env_ref import parse_env_ref

app = typer.Typer(add_completion=False, help="Open environments and render their values.")
env_app = typer.Typer(help="Work with environments.")
app.add_typer(env_app, name="env")

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME = "2h"


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="Settings file (default ~/.escopen/config.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
):
    """Open environments and render their values."""
    if isinstance(ctx.obj, ExecutionContext):
        return
    try:
        ctx.obj = build_context(config)
    except EscError as e:
        print_error(e.message)
        raise typer.Exit(1)
    setup_logging(
        app_name="escopen",
        loglevel=logging.DEBUG if verbose else logging.INFO,
        logfile=ctx.obj.settings.log_file,
    )


@env_app.command("open")
def open_cmd(
    ctx: typer.Context,
    env_ref: str = typer.Argument(..., metavar="[<org-name>/]<environment-name>", help="Environment to open"),
    property_path: Optional[str] = typer.Argument(None, help="Only render this property (e.g. a.b[0].c)"),
    lifetime: str = typer.Option(
        DEFAULT_LIFETIME, "--lifetime", "-l",
        help="the lifetime of the opened environment in the form HhMm (e.g. 2h, 1h30m, 15m)"),
    output_format: str = typer.Option(
        "json", "--format", "-f",
        help="the output format to use. May be 'dotenv', 'json', 'detailed', 'shell' or 'string'"),
):
    """Open the environment with the given name and return the result.

    The result is written to stdout as JSON. If a property path is
    specified, only retrieves that property.
    """
    exec_ctx: ExecutionContext = ctx.obj
    logger.debug("env open %s path=%r format=%s lifetime=%s", env_ref, property_path, output_format, lifetime)
    try:
        ref = parse_env_ref(env_ref, exec_ctx.settings.get("default_org"))
        path = parse_property_path(property_path) if property_path else ()
        validate_format(output_format, path)
        duration = parse_lifetime(lifetime)
    except EscError as e:
        print_error(e.message, file=exec_ctx.err)
        raise typer.Exit(1)

    try:
        client = exec_ctx.client()
    except EscError as e:
        print_error(e.message, file=exec_ctx.err)
        raise typer.Exit(1)

    try:
        with exec_ctx.cancel_on_interrupt() as cancel:
            result = open_environment(client, ref.org, ref.name, duration, cancel=cancel)
        if not result.ok:
            write_diagnostics(exec_ctx.err, result.diagnostics)
            raise typer.Exit(1)
        render_value(exec_ctx.out, result.environment, path, output_format)
    except (EscError, httpx.HTTPError) as e:
        print_error(str(e), file=exec_ctx.err)
        raise typer.Exit(1)
    except ValueError as e:
        # malformed service payload (pydantic.ValidationError is a ValueError)
        logger.debug("Malformed response for %s", ref, exc_info=True)
        print_error(f"invalid response from the environments service: {e}", file=exec_ctx.err)
        raise typer.Exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    app()
