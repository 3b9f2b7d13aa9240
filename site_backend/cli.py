import typer

from site_backend.app.core.config import get_tiktok_settings
from site_backend.app.core.oauth_state import issue_state
from site_backend.app.services import tiktok

app = typer.Typer(help="Run and inspect the TikTok sign-in site backend.")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", min=1, max=65535, help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development only)."),
) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("site_backend.main:app", host=host, port=port, reload=reload, proxy_headers=True)


@app.command("check-config")
def check_config() -> None:
    """Report which required settings are missing. Never prints secret values."""
    cfg = get_tiktok_settings()
    missing = cfg.missing_required()
    if missing:
        for name in missing:
            typer.echo(f"missing: {name}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"TikTok sign-in configured (redirect URI: {cfg.redirect_uri}, scopes: {cfg.scopes})")


@app.command("login-url")
def login_url(
    state: str = typer.Option(None, "--state", help="State value to embed (random when omitted)."),
) -> None:
    """Print an authorization URL, for checking the TikTok app registration by hand."""
    cfg = get_tiktok_settings()
    try:
        url = tiktok.build_auth_url(cfg, state=state or issue_state())
    except tiktok.TikTokConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    typer.echo(url)


if __name__ == "__main__":
    app()
