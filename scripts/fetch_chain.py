#!/usr/bin/env python3
"""
NanoNode - Fetch Chain Script
===============================
Pulls an account chain and dumps it as JSON.

Usage:
    python scripts/fetch_chain.py xrb_3t6k35gi95xu6tergt6p69ck76ogmitsa8mnijtpxm9fkcm736xtoncuohr3 --output chain.json
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
import json
from typing import List, Optional
from nano_node.config import get_settings
from nano_node.domain.accounts import is_address, public_key_from_address
from nano_node.network.sync import ChainPuller
from nano_node.logging_setup import setup_logging
import typer
from rich.console import Console

app = typer.Typer()
console = Console()


@app.command()
def main(
    account: str = typer.Argument(..., help="Account address or key"),
    peer: Optional[List[str]] = typer.Option(None, help="Peer host:port (repeatable)"),
    output: Optional[Path] = typer.Option(None, help="Output JSON file")
):
    """Fetch an account chain from peers"""

    config = get_settings()
    setup_logging(log_level=config.log_level, log_to_file=config.log_to_file, log_dir=config.log_dir)

    public_key = public_key_from_address(account) if is_address(account) else account

    puller = ChainPuller(peer or config.bootstrap_peers, config=config)
    result = asyncio.run(puller.fetch_account(public_key))

    data = json.dumps(result.to_dict(), indent=2)

    if output:
        output.write_text(data)
        console.print(f"[green]Wrote {result.return_count} responses to {output}[/green]")
    else:
        console.print(data)


if __name__ == "__main__":
    app()
