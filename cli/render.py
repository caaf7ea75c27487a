from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_haiku(payload: Dict[str, Any]) -> None:
    echo_heading(f"Haiku {payload.get('id')}")
    for line in str(payload.get("text") or "").splitlines():
        typer.echo(f"  {line}")
    echo_key_values(
        [
            ("date", payload.get("date")),
            ("moisture", payload.get("moisture")),
            ("illumination", payload.get("illumination")),
            ("temperature", payload.get("temperature")),
            ("ph", payload.get("ph")),
        ]
    )


def render_haikus(payloads: Sequence[Dict[str, Any]]) -> None:
    if not payloads:
        typer.echo("No haikus generated yet.")
        return
    for index, payload in enumerate(payloads):
        if index:
            typer.echo()
        render_haiku(payload)
