"""
Print intake daemon — hot-folder printing over IPP.
CLI entry point.
"""

import logging
import signal
import sys
import threading

import click
from rich.console import Console
from rich.logging import RichHandler

console = Console()


def setup_logging(level: str = "INFO"):
    """Configure logging with Rich handler for console output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _watch_root():
    from config.settings import FILE_ROOT_PATH
    from modules.intake.layout import WatchRoot

    root = WatchRoot(FILE_ROOT_PATH)
    try:
        return root.ensure()
    except OSError as e:
        console.print(f"[bold red]Cannot create folders under {root.root}: {e}[/bold red]")
        sys.exit(1)


def _print_client():
    from config.settings import PRINTER_HOST, PRINTER_PORT, PRINTER_USER, PRINTER_PASS, PRINTER_TLS
    from modules.printing.client import CupsPrintClient

    return CupsPrintClient(
        host=PRINTER_HOST,
        port=PRINTER_PORT,
        user=PRINTER_USER,
        password=PRINTER_PASS,
        tls=PRINTER_TLS,
    )


def _build_manager(watch_root):
    from config.settings import PRINTER_NAME, PRINTER_JOB_ATTRS, PRINT_BANNER_PAGES, PRINTABLE_EXTENSIONS
    from modules.intake.filters import ExtensionFilter
    from modules.intake.manager import IntakeManager
    from modules.intake.mover import FileStateMover
    from modules.printing.submitter import PrintSubmitter

    submitter = PrintSubmitter(
        client=_print_client(),
        printer=PRINTER_NAME,
        default_attributes=PRINTER_JOB_ATTRS,
        banner_pages=PRINT_BANNER_PAGES,
    )
    return IntakeManager(
        submitter=submitter,
        mover=FileStateMover(watch_root),
        file_filter=ExtensionFilter(PRINTABLE_EXTENSIONS),
    )


@click.group()
@click.option("--log-level", default=None, help="Override log level (DEBUG, INFO, WARNING, ERROR)")
def cli(log_level):
    """Print intake daemon"""
    from config.settings import LOG_LEVEL
    setup_logging(log_level or LOG_LEVEL)


@cli.command()
def init():
    """Create the upload/, printed/ and failed/ folders."""
    watch_root = _watch_root()
    console.print(f"[green]Folders ready under[/green] {watch_root.root}")


@cli.command()
@click.option("--strategy", type=click.Choice(["poll", "events"]), default=None,
              help="Notification strategy (defaults to WATCH_STRATEGY)")
def run(strategy):
    """Start the daemon and print everything dropped into upload/."""
    from config.settings import WATCH_STRATEGY, POLL_INTERVAL, SETTLE_DELAY, MAX_ATTEMPTS
    from core.agent import PrintAgent
    from core.audit import AuditTrail
    from core.errors import WatchError
    from modules.intake.retry import RetryPolicy
    from modules.watch.poller import UploadPoller
    from modules.watch.watcher import UploadWatcher

    strategy = strategy or WATCH_STRATEGY
    watch_root = _watch_root()
    manager = _build_manager(watch_root)

    agent = PrintAgent()
    agent.register_module("audit", AuditTrail())
    agent.register_module("intake", manager)
    if strategy == "events":
        agent.register_module("watcher", UploadWatcher(manager, watch_root, settle_delay=SETTLE_DELAY))
    else:
        agent.register_module("poller", UploadPoller(
            manager, watch_root,
            interval=POLL_INTERVAL,
            settle_delay=SETTLE_DELAY,
            retry_policy=RetryPolicy(MAX_ATTEMPTS),
        ))

    stop_requested = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop_requested.set())

    console.print(f"[bold blue]Starting print intake ({strategy})...[/bold blue]")
    try:
        agent.start()
    except WatchError as e:
        console.print(f"[bold red]{e}[/bold red]")
        sys.exit(1)

    console.print(f"[green]Watching:[/green] {watch_root.upload}")
    console.print("[bold green]Running. Press Ctrl+C to stop.[/bold green]")

    exit_code = 0
    try:
        while not stop_requested.wait(1):
            agent.check_health()
    except KeyboardInterrupt:
        pass
    except WatchError as e:
        logging.getLogger(__name__).error(str(e))
        exit_code = 1

    console.print("\n[yellow]Shutting down...[/yellow]")
    agent.stop()
    console.print("[bold green]Print intake stopped.[/bold green]")
    sys.exit(exit_code)


@cli.command()
@click.option("--no-wait", is_flag=True, help="Skip the settle delay before each file")
def sweep(no_wait):
    """Run a single pass over upload/ and exit."""
    from config.settings import SETTLE_DELAY
    from core.agent import PrintAgent
    from core.audit import AuditTrail
    from modules.watch.poller import UploadPoller

    watch_root = _watch_root()
    manager = _build_manager(watch_root)

    agent = PrintAgent()
    agent.register_module("audit", AuditTrail())
    agent.register_module("intake", manager)

    poller = UploadPoller(manager, watch_root, settle_delay=SETTLE_DELAY)
    handled = poller.run_once(settle_delay=0 if no_wait else None)
    console.print(f"[green]{handled} file(s) handled[/green]")


@cli.command()
def status():
    """Show how many files sit in each folder."""
    from config.settings import PRINTER_NAME, PRINTER_HOST, PRINTER_PORT, WATCH_STRATEGY

    watch_root = _watch_root()
    counts = watch_root.counts()

    console.print("\n[bold]Print Intake Status[/bold]")
    console.print(f"  Root:      {watch_root.root}")
    console.print(f"  Printer:   {PRINTER_NAME} @ {PRINTER_HOST}:{PRINTER_PORT}")
    console.print(f"  Strategy:  {WATCH_STRATEGY}")
    console.print(f"  Waiting:   [yellow]{counts['upload']}[/yellow]")
    console.print(f"  Printed:   [green]{counts['printed']}[/green]")
    console.print(f"  Failed:    [red]{counts['failed']}[/red]")
    console.print()


@cli.command()
def printer():
    """Query the configured printer's attributes."""
    from config.settings import PRINTER_NAME

    try:
        attrs = _print_client().get_printer_attributes(PRINTER_NAME)
    except Exception as e:
        console.print(f"[bold red]Cannot reach printer {PRINTER_NAME}: {e}[/bold red]")
        sys.exit(1)

    console.print(f"\n[bold]{PRINTER_NAME}[/bold]")
    for key in sorted(attrs):
        console.print(f"  {key}: {attrs[key]}")
    console.print()


if __name__ == "__main__":
    cli()
