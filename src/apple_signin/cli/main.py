"""CLI entry point."""

import asyncio
import json

import jwt as pyjwt
import typer
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel

from apple_signin.auth.client_secret import ClientSecretGenerator
from apple_signin.auth.errors import AppleAuthError
from apple_signin.auth.identity_token import IdentityTokenValidator
from apple_signin.auth.key_store import JWKSKeyStore
from apple_signin.settings import settings

app = typer.Typer(name="apple-signin", help="Sign in with Apple tooling")
console = Console()


@app.command("client-secret")
def client_secret(
    client_id: str = typer.Option(None, help="Services ID (defaults to APPLE__CLIENT_ID)"),
    team_id: str = typer.Option(None, help="Team ID (defaults to APPLE__TEAM_ID)"),
    key_id: str = typer.Option(None, help="Key ID (defaults to APPLE__KEY_ID)"),
    private_key_path: str = typer.Option(
        None, help="Path to the .p8 key (defaults to APPLE__PRIVATE_KEY[_PATH])"
    ),
) -> None:
    """Print a freshly signed client secret.

    Useful for calling Apple's token or revoke endpoints by hand.

    Examples:
        apple-signin client-secret
        apple-signin client-secret --key-id ABC123 --private-key-path AuthKey_ABC123.p8
    """
    overrides = {
        "client_id": client_id,
        "team_id": team_id,
        "key_id": key_id,
        "private_key_path": private_key_path,
    }
    apple = settings.apple.model_copy(
        update={name: value for name, value in overrides.items() if value is not None}
    )
    if private_key_path:
        apple = apple.model_copy(update={"private_key": ""})

    try:
        config = apple.to_config()
        secret = asyncio.run(ClientSecretGenerator(config).generate())
    except AppleAuthError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (ValueError, pyjwt.PyJWTError) as e:
        console.print(f"Cannot sign client secret with this private key: {e}", style="red", markup=False)
        raise typer.Exit(1)

    typer.echo(secret)


@app.command("verify-token")
def verify_token(
    token: str = typer.Argument(..., help="Identity token (id_token) to validate"),
    client_id: str = typer.Option(None, help="Expected audience (defaults to APPLE__CLIENT_ID)"),
) -> None:
    """Validate an identity token against Apple's public keys and print its claims."""
    audience = client_id or settings.apple.client_id
    if not audience:
        console.print("[red]Client ID required (--client-id or APPLE__CLIENT_ID)[/red]")
        raise typer.Exit(1)

    key_store = JWKSKeyStore(
        settings.apple.keys_url,
        cache_ttl=settings.apple.jwks_cache_ttl,
        timeout=settings.apple.http_timeout,
    )
    validator = IdentityTokenValidator(audience, key_store)

    try:
        claims = asyncio.run(validator.validate(token))
    except AppleAuthError as e:
        console.print(Panel(str(e), title="Invalid identity token", border_style="red"))
        raise typer.Exit(1)

    console.print(Panel(JSON(json.dumps(claims)), title="Identity token claims", border_style="green"))


@app.command()
def serve(
    host: str = typer.Option(None, help="API server host (defaults to APPLE_SIGNIN_API_HOST)"),
    port: int = typer.Option(None, help="API server port (defaults to APPLE_SIGNIN_API_PORT)"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
) -> None:
    """Start the API server.

    Examples:
        apple-signin serve
        apple-signin serve --host 127.0.0.1 --port 8080 --reload
    """
    import uvicorn

    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"[green]Starting Sign in with Apple API on {host}:{port}[/green]")
    console.print(f"[dim]Login:[/dim] http://{host}:{port}/auth/apple/login")
    console.print(f"[dim]Docs:[/dim] http://{host}:{port}/docs")

    uvicorn.run(
        "apple_signin.api.main:app",
        host=host,
        port=port,
        reload=reload or settings.api_reload,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from apple_signin import __version__

    typer.echo(f"apple-signin v{__version__}")


if __name__ == "__main__":
    app()
