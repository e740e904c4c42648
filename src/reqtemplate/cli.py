"""Command-line interface for reqtemplate."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import httpx
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from reqtemplate.config import load_config, stringify_values
from reqtemplate.driver import run_iterations
from reqtemplate.errors import TemplatingError
from reqtemplate.models import Context, PluginParameters, Request
from reqtemplate.plugin import RequestTemplatingPlugin

console = Console()


def _setup_logging(level: str, output: str = "stderr") -> None:
    """Configure logging with the specified level and destination.

    Args:
        level: Logging level string (debug, info, warning, error).
        output: "stderr", "stdout", or a path to append log lines to.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    destination: dict[str, Any]
    if output == "stdout":
        destination = {"stream": sys.stdout}
    elif output == "stderr":
        destination = {"stream": sys.stderr}
    else:
        destination = {"filename": output}
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        **destination,
    )


def _read_yaml(path: str | Path) -> Any:
    with open(path) as f:
        return yaml.safe_load(f)


def _load_request(ctx: click.Context, path: str) -> Request:
    raw = _read_yaml(path) or {}
    if isinstance(raw, dict):
        for section in ("headers", "query_params"):
            if isinstance(raw.get(section), dict):
                raw[section] = stringify_values(raw[section])
    try:
        return Request.model_validate(raw)
    except ValidationError as exc:
        console.print(f"[red]Invalid request file {path}:[/red]\n{escape(str(exc))}")
        ctx.exit(1)


def _load_context(path: str | None) -> Context:
    if path is None:
        return {}
    raw = _read_yaml(path) or {}
    if not isinstance(raw, dict):
        raise click.BadParameter("context file must contain a mapping", param_hint="--context")
    return stringify_values(raw)


def _plugin_params(
    base: PluginParameters,
    sign: bool | None,
    variable_body: str | None,
    content_type: str | None,
) -> PluginParameters:
    overrides: dict[str, Any] = {}
    if sign is not None:
        overrides["sign_request"] = sign
    if variable_body is not None:
        overrides["variable_request_body"] = variable_body
    if content_type is not None:
        overrides["content_type"] = content_type
    return base.model_copy(update=overrides)


_request_options = [
    click.argument("request_file", type=click.Path(exists=True, dir_okay=False)),
    click.option("--context", "context_file", default=None, help="YAML file with context values"),
    click.option("--sign/--no-sign", default=None, help="Build the JSON body and sign"),
    click.option("--variable-body", default=None, help="Partial JSON body template"),
    click.option("--content-type", default=None, help="Content-Type for the generated body"),
]


def request_options(func: Any) -> Any:
    for option in reversed(_request_options):
        func = option(func)
    return func


@click.group()
@click.option("--config", "-c", default=None, help="Path to reqtemplate.yaml config file")
@click.pass_context
def main(ctx: click.Context, config: str | None) -> None:
    """reqtemplate: fill request placeholders from a test context."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    cfg = load_config(config)
    ctx.obj["config"] = cfg
    _setup_logging(cfg.logging.level, cfg.logging.output)


@main.command()
@request_options
@click.pass_context
def render(
    ctx: click.Context,
    request_file: str,
    context_file: str | None,
    sign: bool | None,
    variable_body: str | None,
    content_type: str | None,
) -> None:
    """Prepare a request and print it as JSON."""
    cfg = ctx.obj["config"]
    params = _plugin_params(cfg.plugin, sign, variable_body, content_type)
    plugin = RequestTemplatingPlugin(params, settings_path=ctx.obj["config_path"])
    context = _load_context(context_file)
    request = _load_request(ctx, request_file)

    try:
        prepared = plugin.pre_request(context, request)
    except TemplatingError as exc:
        console.print(f"[red]Request preparation failed: {escape(str(exc))}[/red]")
        ctx.exit(1)

    click.echo(
        json.dumps({"request": prepared.model_dump(mode="json"), "context": context}, indent=2)
    )


@main.command()
@request_options
@click.option("--iterations", "-n", default=1, type=click.IntRange(min=1), help="Iterations to run")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def send(
    ctx: click.Context,
    request_file: str,
    context_file: str | None,
    sign: bool | None,
    variable_body: str | None,
    content_type: str | None,
    iterations: int,
    json_output: bool,
) -> None:
    """Prepare and send a request once per iteration."""
    cfg = ctx.obj["config"]
    params = _plugin_params(cfg.plugin, sign, variable_body, content_type)
    plugin = RequestTemplatingPlugin(params, settings_path=ctx.obj["config_path"])
    base_context = _load_context(context_file)
    request = _load_request(ctx, request_file)

    with httpx.Client(timeout=cfg.http.timeout, verify=cfg.http.verify) as client:
        results = run_iterations(plugin, base_context, request, iterations, client)

    if json_output:
        click.echo(
            json.dumps(
                [
                    {
                        "index": r.index,
                        "url": r.url,
                        "status_code": r.status_code,
                        "elapsed_ms": round(r.elapsed_ms, 2),
                        "error": r.error,
                    }
                    for r in results
                ],
                indent=2,
            )
        )
    else:
        table = Table(title=f"{request.method} {request.url}")
        table.add_column("#", justify="right", style="dim")
        table.add_column("URL", style="cyan")
        table.add_column("Status", justify="right")
        table.add_column("ms", justify="right")
        table.add_column("Error", style="red")
        for r in results:
            table.add_row(
                str(r.index),
                r.url,
                str(r.status_code or "-"),
                f"{r.elapsed_ms:.1f}",
                r.error or "",
            )
        console.print(table)

    if any(not r.ok for r in results):
        ctx.exit(1)


if __name__ == "__main__":
    main()
