"""Command line entry point for the privacy gateway."""

from __future__ import annotations

import json
import os
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console

from privacy_gateway import __version__
from privacy_gateway.core.config import Settings, get_settings
from privacy_gateway.ohttp import OHTTPGateway, marshal_key_configs

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="privacy-gateway",
    help="Oblivious HTTP gateway.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"privacy-gateway version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    _version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Oblivious HTTP gateway."""


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        err_console.print(f"[bold red]Error:[/bold red] invalid configuration: {e}")
        raise typer.Exit(1) from e


@app.command()
def serve(
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port.")] = None,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
) -> None:
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = _load_settings()
    uvicorn.run(
        "privacy_gateway.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command("generate-seed")
def generate_seed(
    length: Annotated[int, typer.Option(min=32, help="Seed length in bytes.")] = 32,
) -> None:
    """Print a random hex seed for GATEWAY_SEED_SECRET_KEY."""
    typer.echo(os.urandom(length).hex())


@app.command("key-config")
def key_config(
    seed: Annotated[
        str | None,
        typer.Option(help="Hex seed; defaults to GATEWAY_SEED_SECRET_KEY."),
    ] = None,
    key_id: Annotated[
        int | None,
        typer.Option(min=0, max=255, help="Key identifier; defaults to GATEWAY_KEY_ID."),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
) -> None:
    """Print the key configuration a gateway with this seed publishes."""
    if seed is None or key_id is None:
        settings = _load_settings()
        seed = seed or settings.seed_secret_key
        key_id = settings.key_id if key_id is None else key_id
    if not seed:
        err_console.print("[bold red]Error:[/bold red] no seed given and none configured")
        raise typer.Exit(1)

    try:
        gateway = OHTTPGateway.from_seed(key_id, bytes.fromhex(seed))
    except ValueError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    config = gateway.config(key_id)
    if json_output:
        data = {
            "key_id": config.key_id,
            "kem_id": int(config.kem_id),
            "public_key": config.public_key.hex(),
            "symmetric_algorithms": [
                {"kdf_id": int(alg.kdf_id), "aead_id": int(alg.aead_id)}
                for alg in config.symmetric_algorithms
            ],
            "ohttp_keys": marshal_key_configs([config]).hex(),
        }
        print(json.dumps(data, indent=2))
        return

    console.print(f"[bold]key id:[/bold] {config.key_id}")
    console.print(f"[bold]public key:[/bold] {config.public_key.hex()}")
    typer.echo(marshal_key_configs([config]).hex())


if __name__ == "__main__":
    app()
