# Simple CLI for Broker Radar
import click

from core.config.settings import Settings


@click.group()
def cli():
    """Broker Radar CLI"""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API__HOST)")
@click.option("--port", default=None, type=int, help="Listen port (defaults to PORT / API__PORT)")
@click.option("--mock/--no-mock", default=None, help="Serve bundled mock payloads instead of calling Stockbit")
def serve(host, port, mock):
    """Run the API server"""
    settings = Settings()
    if host is not None:
        settings.api.host = host
    if port is not None:
        settings.api.port = port
        settings.legacy_port = None
    if mock is not None:
        settings.stockbit.use_mock = mock
        settings.legacy_use_mock = None

    click.echo(f"🚀 Starting Broker Radar API on {settings.api.host}:{settings.resolve_port()}...")
    from api.main import run as run_api
    run_api(settings)


@cli.command()
def stores():
    """Show the configured in-memory store options"""
    settings = Settings()
    rows = [
        ("nonce", settings.nonce.max_size, settings.nonce.ttl_ms, settings.nonce.cleanup_interval_ms,
         settings.nonce.enabled),
        ("cache", settings.cache.max_size, settings.cache.default_ttl_ms, settings.cache.cleanup_interval_ms,
         settings.cache.enabled),
        ("rate_limit", 0, settings.rate_limit.window_ms, settings.rate_limit.cleanup_interval_ms,
         settings.rate_limit.enabled),
    ]
    click.echo(f"{'store':<12}{'max_size':>10}{'ttl_ms':>12}{'cleanup_ms':>12}  enabled")
    for name, max_size, ttl_ms, cleanup_ms, enabled in rows:
        size = "unbounded" if max_size == 0 else str(max_size)
        click.echo(f"{name:<12}{size:>10}{ttl_ms:>12}{cleanup_ms:>12}  {enabled}")


if __name__ == "__main__":
    cli()
