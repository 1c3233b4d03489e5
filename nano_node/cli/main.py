"""
NanoNode - Command Line Interface
===================================
CLI for running a peer node and inspecting the network.

Security Level: MEDIUM
Last Updated: 2026-10-18
Version: 1.0.0

Commands:
- listen: Run a node and print blocks and votes
- fetch: Pull an account chain from peers
- votes: Watch votes of given accounts
- decode: Decode a raw message
- address / key: Account address conversions
"""

import typer
from typing import List, Optional
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
import asyncio

# Internal imports
from nano_node.config import NodeSettings, get_settings, override_settings
from nano_node.constants import MessageType
from nano_node.domain.accounts import (
    address_from_public_key,
    public_key_from_address,
    is_address,
)
from nano_node.network.events import BlockEvent, VoteEvent, ErrorEvent
from nano_node.network.message import parse_message
from nano_node.network.node import NanoNode
from nano_node.network.sync import ChainPuller
from nano_node.network.votes import VoteObserver
from nano_node.errors import NanoNodeException, ConfigError
from nano_node.logging_setup import setup_logging


# ============================================================================
# CLI APP
# ============================================================================

app = typer.Typer(
    name="nano-node",
    help="NanoNode - minimal block-lattice peer",
    add_completion=False
)

console = Console()


# ============================================================================
# GLOBAL STATE
# ============================================================================

class CLIState:
    """Global CLI state"""
    config: Optional[NodeSettings] = None


state = CLIState()


def _config() -> NodeSettings:
    if state.config is None:
        state.config = get_settings()
    return state.config


def _account_key(account: str) -> str:
    if is_address(account):
        return public_key_from_address(account)
    return account.lower()


def _short(value: Optional[str], size: int = 16) -> str:
    return f"{value[:size]}..." if value else "-"


# ============================================================================
# NODE COMMANDS
# ============================================================================

@app.command("listen")
def listen(
    port: int = typer.Option(0, "--port", "-p", help="UDP port (0 = random)"),
    full_votes: bool = typer.Option(
        False,
        "--full-votes",
        help="Verify confirm_ack signatures and decode voted blocks"
    )
):
    """Run a node, printing published blocks and votes"""
    config = _config().model_copy(update={
        "udp_port": port,
        "minimal_confirm_ack": not full_votes,
    })
    node = NanoNode(config)

    def on_event(event):
        if isinstance(event, BlockEvent):
            console.print(
                f"[green]block[/green] {event.block.type_name:<8} "
                f"{event.block.hash} [dim]from {event.remote[0]}:{event.remote[1]}[/dim]"
            )
        elif isinstance(event, VoteEvent):
            vote = event.vote
            block_hash = vote.block.hash if vote.block else "-"
            console.print(
                f"[cyan]vote[/cyan]  {address_from_public_key(vote.account)} {block_hash}"
            )
        elif isinstance(event, ErrorEvent):
            console.print(f"[dim red]{event.error}[/dim red]")

    node.subscribe(on_event)

    async def run():
        await node.start()

        console.print(Panel.fit(
            f"[green]Node listening[/green]\n\n"
            f"Network: [cyan]{config.network}[/cyan]\n"
            f"UDP Port: [cyan]{node.port}[/cyan]\n"
            f"Bootstrap peers: [cyan]{len(node.peers)}[/cyan]",
            title="NanoNode",
            border_style="green"
        ))

        try:
            await node.keepalive_loop()
        finally:
            await node.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping node...[/yellow]")
    except OSError as e:
        console.print(f"[red]Error starting node: {e}[/red]")
        raise typer.Exit(1)


@app.command("fetch")
def fetch(
    account: str = typer.Argument(..., help="Account key (hex) or address"),
    peer: Optional[List[str]] = typer.Option(
        None,
        "--peer",
        help="Peer host:port to pull from (repeatable, default bootstrap peers)"
    ),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", help="Per-peer timeout (ms)")
):
    """Pull an account chain and show peer agreement"""
    config = _config()

    try:
        public_key = _account_key(account)
        puller = ChainPuller(peer or config.bootstrap_peers, timeout_ms, config)
        result = asyncio.run(puller.fetch_account(public_key))
    except NanoNodeException as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not result.blocks:
        console.print("[yellow]No peer returned blocks[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Chain of {_short(public_key)}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Type", style="cyan")
    table.add_column("Hash", style="green")
    table.add_column("Previous", style="dim")

    for index, block in enumerate(result.blocks):
        table.add_row(
            str(index),
            block.type_name,
            block.hash,
            _short(getattr(block, "previous", None))
        )

    console.print(table)
    console.print(
        f"Responses: [cyan]{result.return_count}[/cyan]  "
        f"Agreement: [cyan]{result.match_proportion:.0%}[/cyan]"
    )


@app.command("votes")
def votes(
    watch: Optional[List[str]] = typer.Option(
        None,
        "--watch",
        "-w",
        help="Account key or address to watch (repeatable, default all)"
    ),
    port: int = typer.Option(0, "--port", "-p", help="UDP port (0 = random)")
):
    """Print votes of the watched accounts as they arrive"""
    config = _config().model_copy(update={"udp_port": port})

    def on_vote(vote, remote):
        console.print(
            f"[cyan]{address_from_public_key(vote.account)}[/cyan] "
            f"[dim]from {remote[0]}:{remote[1]}[/dim]"
        )

    try:
        observer = VoteObserver(watch or (), on_vote=on_vote)
    except NanoNodeException as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    node = NanoNode(config)
    observer.attach(node)

    async def run():
        await node.start()
        console.print(f"[green]Watching votes on UDP port {node.port}[/green]")
        try:
            await node.keepalive_loop()
        finally:
            await node.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        stats = observer.get_statistics()
        console.print(
            f"\n[yellow]Stopped.[/yellow] Votes seen: {stats['seen_total']}, "
            f"matched: {stats['matched']}"
        )


# ============================================================================
# UTILITY COMMANDS
# ============================================================================

@app.command("decode")
def decode(
    data: str = typer.Argument(..., help="Message bytes as hex"),
    full_votes: bool = typer.Option(False, "--full-votes", help="Verify confirm_ack")
):
    """Decode a raw protocol message"""
    try:
        message = parse_message(bytes.fromhex(data), minimal_confirm_ack=not full_votes)
    except ValueError:
        console.print("[red]Input is not valid hex[/red]")
        raise typer.Exit(1)
    except NanoNodeException as e:
        console.print(f"[red]Invalid message: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Message", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Type", message.message_type.label)
    table.add_row("Network", "mainnet" if message.mainnet else "testnet")
    table.add_row(
        "Versions",
        f"{message.version_max}/{message.version_using}/{message.version_min}"
    )
    table.add_row("Extensions", str(message.extensions))

    body = message.body
    if message.message_type == MessageType.KEEPALIVE:
        table.add_row("Peers", "\n".join(body) or "-")
    elif message.block is not None:
        for name, value in message.block.to_dict().items():
            table.add_row(name, str(value))
    elif message.message_type == MessageType.CONFIRM_ACK:
        table.add_row("Account", address_from_public_key(body.account))
        if body.block is not None:
            table.add_row("Sequence", body.sequence)
            table.add_row("Block", body.block.hash)
    elif body:
        table.add_row("Body", body.hex())

    console.print(table)


@app.command("address")
def address(key: str = typer.Argument(..., help="Account key (hex)")):
    """Address of an account key"""
    try:
        console.print(address_from_public_key(key))
    except NanoNodeException as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command("key")
def key(account: str = typer.Argument(..., help="Account address")):
    """Account key of an address"""
    try:
        console.print(public_key_from_address(account))
    except NanoNodeException as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

@app.callback()
def main(
    network: Optional[str] = typer.Option(
        None,
        "--network",
        "-n",
        help="Network (mainnet/testnet)"
    ),
    bootstrap: Optional[List[str]] = typer.Option(
        None,
        "--bootstrap",
        "-b",
        help="Bootstrap peer host:port (repeatable)"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON settings file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Verbose output"
    )
):
    """
    NanoNode - minimal block-lattice peer

    Listens for gossip, pulls account chains and observes votes.
    """
    overrides = {}
    if network:
        overrides["network"] = network
    if bootstrap:
        overrides["bootstrap_peers"] = bootstrap
    if verbose:
        overrides["log_level"] = "DEBUG"

    try:
        if config_file:
            loaded = NodeSettings.from_file(config_file)
            config = override_settings(**{**loaded.model_dump(), **overrides})
        else:
            config = override_settings(**overrides) if overrides else get_settings()
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid option: {e}[/red]")
        raise typer.Exit(1)

    state.config = config

    setup_logging(
        log_level=config.log_level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        log_format=config.log_format,
        enable_console=verbose
    )


if __name__ == "__main__":
    app()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "app",
]
