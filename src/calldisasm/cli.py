import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.tree import Tree

from calldisasm.addresses import AddressRegistry
from calldisasm.chains import get_chain_name, get_explorer_url
from calldisasm.clients.contract_info import ContractInfoService
from calldisasm.clients.signatures import SignatureLookupClient
from calldisasm.constants import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES, SAFE_OPERATIONS
from calldisasm.core.config import ContractInfoConfig, DisassemblerConfig, SignatureLookupConfig
from calldisasm.core.errors import TypeGrammarError
from calldisasm.core.models import ContractInfo, DecodedCall, DecodedParam
from calldisasm.decoding.abi import function_selector
from calldisasm.decoding.disassembler import Disassembler
from calldisasm.decoding.grammar import parse_signature
from calldisasm.decoding.signatures import DEFAULT_DATABASE, SignatureDatabase
from calldisasm.logging_config import setup_logging
from calldisasm.verify import VerificationResult, check_local_selectors, summarize, verify_database

console = Console()

# rounds of registry augmentation for selectors revealed by earlier rounds
LOOKUP_ROUNDS = 3


@click.group()
@click.option("--debug", is_flag=True, help="Verbose decoder logging")
def cli(debug: bool) -> None:
    """calldisasm: Ethereum call-data disassembler."""
    setup_logging(logging.DEBUG if debug else None)


# ---------- rendering ----------


def _address_label(address: str, infos: dict[str, ContractInfo]) -> str:
    info = infos.get(address)
    if info and info.symbol:
        return f"{address} ({escape(info.symbol)})"
    return address


def _param_label(p: DecodedParam, infos: dict[str, ContractInfo]) -> str:
    head = f"[cyan]{escape(p.name)}[/] [dim]{escape(p.abi_type)}[/]"
    if p.children is not None:
        return head
    if p.abi_type == "address":
        return f"{head} = {_address_label(p.value, infos)}"
    return f"{head} = {escape(str(p.value))}"


def _call_label(call: DecodedCall, infos: dict[str, ContractInfo]) -> str:
    if call.is_unknown:
        label = f"[yellow]{call.function_name}[/] {call.selector or '(empty)'}"
    else:
        label = f"[bold green]{escape(call.function_name)}[/] [dim]{call.selector}[/]"
    if call.address:
        label += f" → {_address_label(call.address, infos)}"
    if call.value != "0":
        label += f" value={call.value}"
    if call.operation is not None:
        label += f" [magenta]{SAFE_OPERATIONS.get(call.operation, call.operation)}[/]"
    if call.error:
        label += f" [red]{escape(call.error)}[/]"
    if call.truncated:
        label += " [red]not decoded: node limit reached[/]"
    return label


def _add_param(node: Tree, p: DecodedParam, infos: dict[str, ContractInfo]) -> None:
    branch = node.add(_param_label(p, infos))
    for child in p.children or ():
        _add_param(branch, child, infos)
    for call in p.calls or ():
        _add_call(branch, call, infos)


def _add_call(node: Tree, call: DecodedCall, infos: dict[str, ContractInfo]) -> Tree:
    branch = node.add(_call_label(call, infos))
    for p in call.params:
        _add_param(branch, p, infos)
    for child in call.children:
        _add_call(branch, child, infos)
    if call.is_unknown and call.payload and call.payload not in ("0x", ""):
        branch.add(f"[dim]data {escape(call.payload)}[/]")
    return branch


def render_tree(calls: list[DecodedCall], infos: dict[str, ContractInfo], title: str) -> Tree:
    tree = Tree(f"[bold]{escape(title)}[/]")
    for call in calls:
        _add_call(tree, call, infos)
    return tree


def _unknown_selectors(calls: list[DecodedCall]) -> list[str]:
    return list(
        dict.fromkeys(
            c.selector
            for root in calls
            for c in root.iter_calls()
            if c.is_unknown and c.selector and not c.attempts and not c.truncated
        )
    )


# ---------- commands ----------


@cli.command("decode")
@click.argument("payload")
@click.option("--chain-id", type=int, default=1, show_default=True, help="Chain used for symbol lookups")
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_DEPTH,
    show_default=True,
    help="Nested call-data recursion bound",
)
@click.option(
    "--max-nodes",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_NODES,
    show_default=True,
    help="Calls decoded per payload before sub-calls are left undecoded",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a tree")
@click.option(
    "--signatures",
    "signature_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file {selector: [signature, ...]}; repeatable",
)
@click.option(
    "--abi",
    "abi_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Contract ABI JSON file; repeatable",
)
@click.option(
    "--lookup/--no-lookup",
    default=False,
    show_default=True,
    help="Query the 4byte registry for unknown selectors",
)
@click.option(
    "--symbols/--no-symbols",
    default=False,
    show_default=True,
    help="Resolve token symbols of referenced addresses via Multicall3",
)
@click.option("--rpc", default="", help="RPC endpoint (defaults to the chain's public RPC)")
def decode_cmd(
    payload: str,
    chain_id: int,
    max_depth: int,
    max_nodes: int,
    as_json: bool,
    signature_files: tuple[Path, ...],
    abi_files: tuple[Path, ...],
    lookup: bool,
    symbols: bool,
    rpc: str,
) -> None:
    """Disassemble PAYLOAD (hex call data, or '-' to read stdin) into a call tree."""
    text = click.get_text_stream("stdin").read().strip() if payload == "-" else payload.strip()

    database = DEFAULT_DATABASE
    try:
        for f in signature_files:
            database = database.merged(SignatureDatabase.from_json(f))
        for f in abi_files:
            database = database.merged(SignatureDatabase.from_abi(f))
    except (ValueError, TypeGrammarError) as e:
        raise click.ClickException(f"Cannot load signatures: {e}") from e

    config = DisassemblerConfig(max_depth=max_depth, max_nodes=max_nodes)

    async def run() -> tuple[list[DecodedCall], dict[str, ContractInfo]]:
        db = database
        calls = Disassembler(db, config).decode_payload(text)
        if lookup:
            async with SignatureLookupClient(SignatureLookupConfig()) as client:
                for _ in range(LOOKUP_ROUNDS):
                    unknown = _unknown_selectors(calls)
                    if not unknown:
                        break
                    augmented = await client.augment(db, unknown)
                    if augmented is db:
                        break
                    db = augmented
                    calls = Disassembler(db, config).decode_payload(text)

        infos: dict[str, ContractInfo] = {}
        if symbols:
            registry = AddressRegistry()
            registry.register_calls(calls)
            service = ContractInfoService(ContractInfoConfig(rpc_url=rpc))
            infos = await service.fetch_contract_info(registry.addresses(), chain_id)
        return calls, infos

    try:
        calls, infos = asyncio.run(run())
    except RuntimeError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        registry = AddressRegistry()
        registry.register_calls(calls)
        addresses: list[dict[str, Any]] = []
        for addr in registry.addresses():
            entry: dict[str, Any] = {"address": addr, "sources": registry.sources_for(addr)}
            if addr in infos:
                entry["symbol"] = infos[addr].symbol
                entry["decimals"] = infos[addr].decimals
            addresses.append(entry)
        doc = {"chain_id": chain_id, "calls": [c.to_dict() for c in calls], "addresses": addresses}
        click.echo(json.dumps(doc, indent=2))
        return

    title = f"{get_chain_name(chain_id)} call data"
    console.print(render_tree(calls, infos, title))
    explorer = get_explorer_url(chain_id)
    if explorer and infos:
        console.print(f"[dim]explorer: {explorer}[/]")


@cli.command("selector")
@click.argument("signature")
def selector_cmd(signature: str) -> None:
    """Print the 4-byte selector of SIGNATURE, e.g. 'transfer(address,uint256)'."""
    try:
        parsed = parse_signature(signature)
    except TypeGrammarError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{function_selector(parsed)}  {parsed.display}")


@cli.command("verify-signatures")
@click.option("--concurrency", type=click.IntRange(min=1), default=4, show_default=True, help="Max parallel requests")
@click.option("--verbose", is_flag=True, help="Show correct entries too")
@click.option("--offline", is_flag=True, help="Only check that signatures hash to their selectors")
@click.pass_context
def verify_signatures_cmd(ctx: click.Context, concurrency: int, verbose: bool, offline: bool) -> None:
    """Check the built-in signature database locally and against the 4byte registry."""
    invalid = check_local_selectors(DEFAULT_DATABASE)
    for r in invalid:
        console.print(f"[red]INVALID[/] {r.selector}: {escape(r.local)} ({r.detail})")

    results: list[VerificationResult] = []
    if not offline:
        total = sum(1 for _ in DEFAULT_DATABASE)
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]verifying signatures[/]"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            transient=False,
            expand=True,
            console=console,
        )

        async def run() -> list[VerificationResult]:
            async with SignatureLookupClient(SignatureLookupConfig(concurrency=concurrency)) as client:
                with progress:
                    task = progress.add_task("verify", total=total)

                    def on_result(r: VerificationResult) -> None:
                        progress.advance(task, 1)

                    return await verify_database(DEFAULT_DATABASE, client, concurrency=concurrency, on_result=on_result)

        try:
            results = asyncio.run(run())
        except RuntimeError as e:
            raise click.ClickException(str(e)) from e

    for r in results:
        if r.status == "ok" and not verbose:
            continue
        style = {"ok": "green", "mismatch": "red", "missing": "yellow", "error": "red"}.get(r.status, "white")
        line = f"[{style}]{r.status.upper()}[/] {r.selector}: {escape(r.local)}"
        if r.status == "mismatch":
            line += f"\n       registry: {escape(', '.join(r.remote[:3]))}{'...' if len(r.remote) > 3 else ''}"
        elif r.detail:
            line += f" ({escape(r.detail)})"
        console.print(line)

    counts = summarize(invalid + results)
    console.print(
        f"[bold]summary[/]: "
        f"[green]ok[/]={counts['ok']}  "
        f"[red]mismatch[/]={counts['mismatch']}  "
        f"[yellow]missing[/]={counts['missing']}  "
        f"[red]error[/]={counts['error']}  "
        f"[red]invalid[/]={counts['invalid']}"
    )
    if counts["mismatch"] or counts["invalid"]:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
