from typing import Optional

import typer

from .app import RuntaraTui
from .config import DEFAULT_REFRESH_SECONDS, DEFAULT_SERVER, SessionConfig
from .logs import setup_logger

app = typer.Typer(add_completion=False)

@app.command(help="Terminal UI for monitoring Runtara instances and images.")
def monitor(
    server: str = typer.Option(DEFAULT_SERVER, "--server", "-s", envvar="RUNTARA_ENV_ADDR",
                               help="Runtara environment server address (host:port)."),
    skip_cert_verification: bool = typer.Option(True, "--skip-cert-verification/--verify-cert",
                                                envvar="RUNTARA_SKIP_CERT_VERIFICATION",
                                                help="Skip TLS certificate verification (local dev default)."),
    refresh: int = typer.Option(DEFAULT_REFRESH_SECONDS, "--refresh", "-r", min=1, help="Refresh interval in seconds."),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help="Tenant ID filter; also enables metrics."),
    log_file: str = typer.Option("", "--log", help="Path to log file (optional)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail."),
):
    log = setup_logger(log_file, verbose)
    config = SessionConfig.from_options(
        server,
        skip_cert_verification=skip_cert_verification,
        tenant_id=tenant,
        refresh_seconds=refresh,
    )
    log.info(f"Starting monitor for {config.base_url} tenant={config.tenant_id or 'all'} refresh={config.refresh_interval:g}s")
    RuntaraTui(config).run()
    log.info("Monitor stopped")

def main():
    app()

if __name__ == "__main__":
    main()
