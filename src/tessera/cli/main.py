"""Tessera CLI — run the server, mint identifiers, issue and inspect tokens.

Usage:
    tessera serve                                   # Run the API with uvicorn
    tessera new-id -n 3                             # Print fresh identifiers
    tessera check-id 0190f1b2-...                   # Validate an identifier
    tessera issue-token --kind admin <subject>      # Sign a token locally
    tessera verify-token --kind user <token>        # Decode and check a token
    tessera admin-login alice                       # Log in against a running server
    tessera create-org "Acme" --token <admin jwt>   # Provision via the API
"""

from __future__ import annotations

import json
import os
import sys

import click
import httpx

from tessera import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("TESSERA_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: str | None = None) -> httpx.Client:
    """Build an HTTP client pointed at the Tessera API."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.Client(base_url=_api_url(), timeout=30.0, headers=headers)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _token_service():
    # Imported lazily: loading settings requires the token env vars.
    from tessera.auth.tokens import TokenService
    from tessera.config import settings

    return TokenService.from_settings(settings)


KIND_CHOICE = click.Choice(["admin", "user"])


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
def main():
    """Tessera — multi-tenant identity and credential backend."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: TESSERA_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TESSERA_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from tessera.config import settings

    uvicorn.run(
        "tessera.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


@main.command("new-id")
@click.option("--count", "-n", default=1, show_default=True, help="How many to print")
def new_id_cmd(count: int):
    """Print fresh time-ordered identifiers."""
    from tessera.ids import new_id

    for _ in range(count):
        click.echo(str(new_id()))


@main.command("check-id")
@click.argument("value")
def check_id(value: str):
    """Validate an identifier; exit 1 if it would be rejected."""
    from tessera.errors import InvalidIdFormat, InvalidIdVersion
    from tessera.ids import id_timestamp_ms, parse_id

    try:
        parsed = parse_id(value)
    except InvalidIdFormat:
        _fail("malformed identifier")
    except InvalidIdVersion as e:
        _fail(e.fields[e.field][0])
    else:
        click.echo(f"ok  {parsed}  created_ms={id_timestamp_ms(parsed)}")


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@main.command("issue-token")
@click.argument("subject")
@click.option("--kind", "-k", type=KIND_CHOICE, required=True)
def issue_token(subject: str, kind: str):
    """Sign a token for SUBJECT with the configured secret for KIND."""
    from tessera.auth.claims import PrincipalKind
    from tessera.errors import AppError
    from tessera.ids import parse_id

    try:
        parse_id(subject, "subject")
        token = _token_service().issue(subject, PrincipalKind(kind))
    except AppError as e:
        _fail(e.message)
    else:
        click.echo(token)


@main.command("verify-token")
@click.argument("token")
@click.option("--kind", "-k", type=KIND_CHOICE, required=True)
def verify_token(token: str, kind: str):
    """Verify TOKEN as KIND and print its claims."""
    from tessera.auth.claims import PrincipalKind
    from tessera.errors import InvalidToken

    try:
        claims = _token_service().verify(token, PrincipalKind(kind))
    except InvalidToken as e:
        _fail(e.message)
    else:
        click.echo(_pretty_json(claims.to_payload()))


# ---------------------------------------------------------------------------
# Remote (against a running server)
# ---------------------------------------------------------------------------


@main.command("admin-login")
@click.argument("username")
@click.password_option(confirmation_prompt=False)
def admin_login(username: str, password: str):
    """Log in as an admin and print the access token."""
    with _client() as client:
        r = client.post(
            "/api/v1/admin/login", json={"username": username, "password": password}
        )
    if r.status_code != 200:
        _fail(f"{r.status_code} {r.text}")
    click.echo(r.json()["access_token"])


@main.command("create-org")
@click.argument("name")
@click.option("--token", envvar="TESSERA_ADMIN_TOKEN", required=True, help="Admin JWT")
def create_org(name: str, token: str):
    """Create an organization via the admin API."""
    with _client(token) as client:
        r = client.post("/api/v1/admin/organizations", json={"name": name})
    if r.status_code != 201:
        _fail(f"{r.status_code} {r.text}")
    click.echo(_pretty_json(r.json()))


if __name__ == "__main__":
    main()
