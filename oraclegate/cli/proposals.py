#!/usr/bin/env python3
"""
OracleGate Proposal CLI

Command-line tooling for preparing module proposals offline.

Usage:
    oraclegate show-proposal <proposal_file> --module ADDR [--chain-id N]
    oraclegate question <proposal_file> --module ADDR [--chain-id N] [--nonce N] [--config FILE]
    oraclegate predict-address --factory ADDR --mastercopy ADDR --initializer HEX --salt-nonce N

Proposal files are JSON:
    {"id": "proposal-1", "txs": [{"to": "0x...", "value": "0", "data": "0x", "operation": 0}]}
"""

import json
from typing import List, Optional

import click
from eth_utils import decode_hex, encode_hex, is_address, to_checksum_address

from ..config import load_config
from ..constants import MODULE_DEFAULT_CHAIN_ID
from ..crypto.contract import predict_module_address
from ..crypto.typed_data import hash_transaction
from ..exceptions import OracleGateException
from ..logger import LogManager
from ..module.questions import (
    build_question,
    compute_question_id,
    compute_question_id_with_min_bond,
    question_hash,
    transactions_digest,
)
from ..module.types import Proposal, QuestionIdScheme


def load_proposal(proposal_file: str) -> Proposal:
    """Read and parse a proposal file."""
    try:
        with open(proposal_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Proposal.from_dict(data)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {proposal_file}: {e}")
    except KeyError as e:
        raise click.ClickException(f"Proposal file is missing field {e}")
    except OracleGateException as e:
        raise click.ClickException(f"Invalid proposal: {e}")


def proposal_tx_hashes(proposal: Proposal, module: str, chain_id: int) -> List[bytes]:
    return [
        hash_transaction(chain_id, module, tx.to, tx.value, tx.data, int(tx.operation), tx.nonce)
        for tx in proposal.transactions
    ]


def validate_address(ctx, param, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_address(value):
        raise click.BadParameter(f"'{value}' is not a valid address")
    return to_checksum_address(value)


def banner(title: str):
    click.echo()
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(click.style(f"  {title}", fg="cyan", bold=True))
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo()


@click.group()
@click.version_option(version="0.3.0", prog_name="oraclegate")
@click.option("--log-level", default=None, help="Override the log level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx, log_level: Optional[str]):
    """OracleGate Command Line Interface

    Prepare and inspect proposals for oracle-gated execution modules.
    """
    ctx.obj = {"log_level": log_level}
    if log_level:
        LogManager().set_level(log_level)


@cli.command("show-proposal")
@click.argument("proposal_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--module", "-m", required=True, callback=validate_address,
              help="Module address the transaction hashes are bound to")
@click.option("--chain-id", default=MODULE_DEFAULT_CHAIN_ID, show_default=True, type=int,
              help="Chain id of the module")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON")
def show_proposal_cmd(proposal_file: str, module: str, chain_id: int, as_json: bool):
    """Show a proposal's transactions and their hashes.

    Examples:

        oraclegate show-proposal proposal.json --module 0xAbC...
    """
    proposal = load_proposal(proposal_file)
    tx_hashes = proposal_tx_hashes(proposal, module, chain_id)
    digest = transactions_digest(tx_hashes)

    if as_json:
        click.echo(json.dumps({
            "id": proposal.id,
            "txsHash": encode_hex(digest),
            "txHashes": [encode_hex(h) for h in tx_hashes],
            "txs": [tx.to_dict() for tx in proposal.transactions],
        }, indent=2))
        return

    banner("Proposal")
    click.echo(f"Id:        {proposal.id}")
    click.echo(f"Txs hash:  {encode_hex(digest)}")
    click.echo(f"Module:    {module} (chain {chain_id})")
    click.echo()
    for index, (tx, tx_hash) in enumerate(zip(proposal.transactions, tx_hashes)):
        click.echo(click.style(f"Transaction #{index}", fg="green"))
        click.echo(f"  Hash:      {encode_hex(tx_hash)}")
        click.echo(f"  To:        {tx.to}")
        click.echo(f"  Value:     {tx.value}")
        click.echo(f"  Data:      {encode_hex(tx.data)}")
        click.echo(f"  Operation: {tx.operation.name}")
        click.echo(f"  Nonce:     {tx.nonce}")


@cli.command("question")
@click.argument("proposal_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--module", "-m", required=True, callback=validate_address,
              help="Module address asking the question")
@click.option("--chain-id", default=None, type=int,
              help="Chain id of the module (default: from config)")
@click.option("--nonce", default=0, show_default=True, type=int, help="Question nonce")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Module configuration file (oraclegate.toml)")
@click.pass_context
def question_cmd(
    ctx,
    proposal_file: str,
    module: str,
    chain_id: Optional[int],
    nonce: int,
    config_path: Optional[str],
):
    """Show the oracle question, its hash and expected question id.

    The question id depends on the module configuration (oracle, arbitrator,
    timeout, template, minimum bond), read from --config or the environment.
    """
    config = load_config(config_path)
    config.logging.apply()
    if ctx.obj and ctx.obj.get("log_level"):
        LogManager().set_level(ctx.obj["log_level"])
    cfg = config.module
    if chain_id is None:
        chain_id = cfg.chain_id

    try:
        profile = cfg.resolve_profile()
    except OracleGateException as e:
        raise click.ClickException(str(e))

    proposal = load_proposal(proposal_file)
    tx_hashes = proposal_tx_hashes(proposal, module, chain_id)
    question = build_question(proposal.id, tx_hashes)

    if not is_address(cfg.arbitrator):
        raise click.ClickException(f"Invalid arbitrator address in config: {cfg.arbitrator!r}")
    if profile.question_id == QuestionIdScheme.REALITIO_V3:
        if not cfg.oracle or not is_address(cfg.oracle):
            raise click.ClickException("An oracle address is required (config [module] oracle)")
        question_id = compute_question_id_with_min_bond(
            cfg.template, question, cfg.arbitrator, cfg.timeout, 0, nonce,
            cfg.minimum_bond, cfg.oracle, module,
        )
    else:
        question_id = compute_question_id(
            cfg.template, question, cfg.arbitrator, cfg.timeout, 0, nonce, module,
        )

    banner("Oracle Question")
    click.echo(f"Question:      {question}")
    click.echo(f"Question hash: {encode_hex(question_hash(question))}")
    click.echo(f"Question id:   {encode_hex(question_id)}")
    click.echo(f"Profile:       {profile.name} (nonce {nonce})")


@cli.command("predict-address")
@click.option("--factory", required=True, callback=validate_address, help="Proxy factory address")
@click.option("--mastercopy", required=True, callback=validate_address, help="Module mastercopy address")
@click.option("--initializer", required=True, help="Hex-encoded setUp calldata")
@click.option("--salt-nonce", required=True, type=int, help="Salt nonce for the deployment")
def predict_address_cmd(factory: str, mastercopy: str, initializer: str, salt_nonce: int):
    """Predict the address of a module proxy deployment."""
    try:
        initializer_bytes = decode_hex(initializer)
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid initializer hex: {e}")
    click.echo(predict_module_address(factory, mastercopy, initializer_bytes, salt_nonce))


def main():
    cli()


if __name__ == "__main__":
    main()
