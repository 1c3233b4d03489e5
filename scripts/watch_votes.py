#!/usr/bin/env python3
"""
NanoNode - Watch Votes Script
===============================
Listens for votes of one representative while keeping the peer set alive.

Usage:
    python scripts/watch_votes.py xrb_3arg3asgtigae3xckabaaewkx3bzsh7nwz7jkmjos79ihyaxwphhm6qgjps4 --port 12000
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
from nano_node.config import get_settings
from nano_node.network.events import ErrorEvent
from nano_node.network.node import NanoNode
from nano_node.network.votes import VoteObserver
from nano_node.logging_setup import setup_logging, get_logger
import typer
from rich.console import Console

app = typer.Typer()
console = Console()
logger = get_logger("watch_votes")


@app.command()
def main(
    account: str = typer.Argument(..., help="Representative address or key"),
    port: int = typer.Option(12000, help="UDP port"),
    interval: int = typer.Option(30, help="Keepalive interval (seconds)")
):
    """Print votes of a representative as they arrive"""

    config = get_settings().model_copy(update={"udp_port": port})

    setup_logging(
        log_level=config.log_level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir
    )

    node = NanoNode(config)

    observer = VoteObserver(
        watch=[account],
        on_vote=lambda vote, remote: console.print(
            f"[green]Vote from {account} via {remote[0]}:{remote[1]}[/green]"
        )
    )
    observer.attach(node)

    def on_error(event):
        if isinstance(event, ErrorEvent):
            logger.debug(str(event.error))

    node.subscribe(on_error)

    async def run_node():
        await node.start()
        console.print(f"[cyan]Listening on {config.bind_host}:{node.port}[/cyan]")

        try:
            while True:
                console.print(f"[dim]Sending keepalive to {len(node.peers)} peers...[/dim]")
                node.broadcast_keepalive()
                await asyncio.sleep(interval)
        finally:
            await node.stop()

    try:
        asyncio.run(run_node())
    except KeyboardInterrupt:
        console.print(f"\n[yellow]Stopped. Votes matched: {sum(observer.counts.values())}[/yellow]")


if __name__ == "__main__":
    app()
