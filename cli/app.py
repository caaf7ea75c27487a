from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from app.main import create_app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_haiku, render_haikus
from logging_config import configure_logging
from services.pipeline import build_default_pipeline
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for running and querying the garden haiku service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Haiku API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    try:
        config = load_config(base_url=base_url, timeout=timeout)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--base-url") from exc
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
    test: bool = typer.Option(
        False,
        "--test",
        help="Use simulated sensor data instead of the hardware readers.",
    ),
) -> None:
    """Run the web app together with the hourly haiku scheduler."""
    uvicorn.run(create_app(sensor_mode="simulated" if test else None), host=host, port=port)


@app.command("generate")
def generate_command(
    test: bool = typer.Option(
        False,
        "--test",
        help="Use simulated sensor data instead of the hardware readers.",
    ),
) -> None:
    """Run a single sensor-to-haiku cycle and print the stored record."""
    configure_logging()
    if not get_settings().llm_configured:
        typer.secho(
            "LLM_API_URL, LLM_MODEL and LLM_API_KEY must be set to generate haikus.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    pipeline = build_default_pipeline("simulated" if test else None)
    try:
        record = pipeline.run_cycle()
    finally:
        pipeline.close()
        build_default_pipeline.cache_clear()

    if record is None:
        typer.secho("Haiku cycle failed; see the log for details.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    render_haiku(record.model_dump(mode="json"))


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """Show every stored haiku, newest first."""
    state = _get_state(ctx)
    render_haikus(state.client.list_haikus())


@app.command("add")
def add_command(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Haiku text; use \\n for line breaks."),
    moisture: int = typer.Option(..., "--moisture", min=0, max=1023),
    illumination: int = typer.Option(..., "--illumination", min=0, max=1023),
    temperature: int = typer.Option(..., "--temperature", min=0, max=40),
    ph: int = typer.Option(..., "--ph", min=0, max=14),
) -> None:
    """Submit a haiku together with the readings it reflects."""
    state = _get_state(ctx)
    payload = state.client.create_haiku(
        {
            "text": text.replace("\\n", "\n"),
            "moisture": moisture,
            "illumination": illumination,
            "temperature": temperature,
            "ph": ph,
        }
    )
    typer.secho("Haiku stored.", fg=typer.colors.GREEN)
    render_haiku(payload)
