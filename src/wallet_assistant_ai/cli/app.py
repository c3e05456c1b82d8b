"""CLI for Wallet Assistant AI - talk to your custodial wallet from the terminal."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="wallet-assistant-ai",
    help="A chat wallet assistant that holds keys for its users and sends transfers on request.",
    no_args_is_help=True,
)
console = Console()


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"wallet-assistant-ai {version('wallet-assistant-ai')}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """A chat wallet assistant that holds keys for its users and sends transfers on request."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run(coro):
    """Run an async function synchronously."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            import concurrent.futures
            with concurrent.futures.ThreadPoolExecutor() as pool:
                return pool.submit(asyncio.run, coro).result()
        return loop.run_until_complete(coro)
    except RuntimeError:
        return asyncio.run(coro)


# Provider presets: maps user-facing name to (config provider, default_model, env_var)
PROVIDER_PRESETS = {
    "openai":    ("openai",    "gpt-4o-mini",               "OPENAI_API_KEY"),
    "anthropic": ("anthropic", "claude-3-5-haiku-latest",   "ANTHROPIC_API_KEY"),
}


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@app.command()
def init(
    name: str = typer.Option("Wallet Assistant", "--name", "-n", help="Assistant name"),
    chain: str = typer.Option("mantle-sepolia", "--chain", "-c", help="Chain preset (mantle, mantle-sepolia)"),
    token_address: str = typer.Option(
        None,
        "--token-address",
        "-t",
        envvar="USDT_ADDRESS",
        help="USDT contract address (required on chains without a preset token)",
    ),
    provider: str = typer.Option(None, "--provider", "-p", help="LLM provider for intent parsing (openai, anthropic)"),
    model: str = typer.Option(None, "--model", "-m", help="Model name (defaults per provider)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write a starter config to .wallet-assistant-ai/config.yaml."""
    from wallet_assistant_ai.config import (
        AssistantConfig,
        ChainConfig,
        LLMProviderConfig,
        get_config_path,
        save_config,
    )
    from wallet_assistant_ai.errors import InvalidAddressError
    from wallet_assistant_ai.wallet.chains import get_chain, list_chain_names
    from wallet_assistant_ai.wallet.provider import checksum

    if chain not in list_chain_names():
        console.print(
            f"[red]Unknown chain '{chain}'.[/red] Choose one of: {', '.join(list_chain_names())}"
        )
        raise typer.Exit(1)

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)

    if token_address:
        try:
            token_address = checksum(token_address)
        except InvalidAddressError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    config = AssistantConfig(
        name=name,
        chain=ChainConfig(name=chain, token_address=token_address or None),
    )

    if provider:
        if provider not in PROVIDER_PRESETS:
            console.print(
                f"[red]Unknown provider '{provider}'.[/red] Choose one of: {', '.join(PROVIDER_PRESETS)}"
            )
            raise typer.Exit(1)
        config_provider, preset_model, env_var = PROVIDER_PRESETS[provider]
        provider_config = LLMProviderConfig(
            api_key=f"${{{env_var}}}",
            model=model or preset_model,
        )
        config.llm.enabled = True
        config.llm.default_provider = config_provider
        setattr(config.llm, config_provider, provider_config)

    save_config(config, config_path)

    if provider:
        provider_line = f"Intent parsing: [cyan]{provider}[/cyan] (model: {model or PROVIDER_PRESETS[provider][1]})\n"
    else:
        provider_line = "Intent parsing: [yellow]keyword matching[/yellow] (pass --provider to use an LLM)\n"

    if token_address or get_chain(chain).token_address:
        token_line = ""
    else:
        token_line = "[yellow]No USDT contract for this chain.[/yellow] Pass --token-address to enable token transfers.\n"

    console.print(Panel(
        f"[bold green]Assistant '{name}' initialized![/bold green]\n\n"
        f"Config: {config_path}\n"
        f"Chain: [cyan]{chain}[/cyan]\n"
        f"{provider_line}"
        f"{token_line}\n"
        f"Next steps:\n"
        f"  export ENCRYPTION_KEY=$(wallet-assistant-ai keygen --quiet)\n"
        f"  wallet-assistant-ai chat",
        title="Wallet Assistant AI",
    ))


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@app.command()
def keygen(
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print only the key"),
):
    """Generate a random 256-bit encryption key for the vault."""
    from wallet_assistant_ai.wallet.vault import generate_secret

    secret = generate_secret()
    if quiet:
        typer.echo(secret)
        return
    console.print(Panel(
        f"[cyan]{secret}[/cyan]\n\n"
        f"[dim]Set it as ENCRYPTION_KEY before starting the assistant.\n"
        f"Changing it later makes every stored wallet unreadable.[/dim]",
        title="Encryption Key",
    ))


# ------------------------------------------------------------------
# chat
# ------------------------------------------------------------------


@app.command()
def chat(
    user_id: int = typer.Option(1, "--user", "-u", help="Chat user id to act as"),
):
    """Start an interactive chat with the wallet assistant."""
    from wallet_assistant_ai.core.assistant import WalletAssistant
    from wallet_assistant_ai.errors import WalletError

    async def _chat():
        try:
            assistant = await WalletAssistant.load()
        except FileNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            return False
        except (WalletError, ValueError) as e:
            console.print(f"[red]Could not start the assistant:[/red] {e}")
            return False

        console.print(f"[bold]Chatting as user {user_id}[/bold]")
        console.print("[dim]Type /help for commands, 'exit' to end the conversation.[/dim]\n")

        try:
            while True:
                prompt = "[bold blue]You>[/bold blue] "
                try:
                    # The connect flow expects a private key next, so hide it.
                    user_input = console.input(
                        prompt, password=assistant.is_awaiting_key(user_id)
                    )
                except (EOFError, KeyboardInterrupt):
                    break

                if user_input.strip().lower() in ("exit", "quit", "bye"):
                    break
                if not user_input.strip():
                    continue

                with console.status("Thinking..."):
                    reply = await assistant.handle_message(user_id, user_input)

                console.print(f"[bold green]Wallet>[/bold green] {escape(reply)}\n")
        finally:
            await assistant.shutdown()
        console.print("[dim]Chat ended.[/dim]")
        return True

    if not _run(_chat()):
        raise typer.Exit(1)


# ------------------------------------------------------------------
# info
# ------------------------------------------------------------------


@app.command()
def info():
    """Show the configured chain and intent parser."""
    from wallet_assistant_ai.config import get_config_path, has_unexpanded_placeholder, load_config

    config_path = get_config_path()
    if not config_path.exists():
        console.print("[yellow]No config found.[/yellow] Run 'wallet-assistant-ai init' first.")
        raise typer.Exit(1)

    config = load_config(config_path)
    try:
        chain = config.chain.resolve()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=config.name)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Chain", f"{chain.name} (id {chain.chain_id})")
    table.add_row("RPC", chain.rpc_url)
    table.add_row("Native symbol", chain.native_symbol)
    table.add_row(
        "Token",
        f"{chain.token_symbol} {chain.token_address}" if chain.token_address else "[dim]none[/dim]",
    )
    table.add_row("Explorer", chain.explorer_url)
    table.add_row("Confirm window", f"{config.pending.ttl_seconds}s")
    table.add_row(
        "Encryption key",
        "[red]not set[/red]" if has_unexpanded_placeholder(config.vault.encryption_key) else "[green]set[/green]",
    )
    if config.llm.enabled:
        table.add_row("Intent parsing", f"LLM ({config.llm.default_provider})")
    else:
        table.add_row("Intent parsing", "keyword matching")
    console.print(table)
