"""generateSignatures entrypoint.

Signs, seals and publishes allow-list credentials for every address in a
comma-separated file, writing signatures/signatures-<chunk>.json as each
chunk completes. Exits non-zero on the first unrecovered error.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any

import bittensor as bt
from dotenv import load_dotenv

from auctionlist.chain.client import JSONRPCChainClient, JSONRPCTransport
from auctionlist.chain.deployments import load_deployment_address
from auctionlist.chain.signers import LocalAccountSigner, RPCSigner
from auctionlist.config import GenerateConfig, load_config
from auctionlist.credentials.errors import CredentialError
from auctionlist.credentials.identity import (
    AuthContextFactory,
    ChainClient,
    resolve_network,
)
from auctionlist.credentials.models import AuctionRef
from auctionlist.credentials.publisher import BatchPublisher, RunReport
from auctionlist.credentials.sealer import CredentialSealer, EncryptionNetwork
from auctionlist.credentials.signer import AuthoritySigner, MessageSigner
from auctionlist.credentials.store.api import SignatureApiClient
from auctionlist.credentials.store.filesystem import AuditFileStore, PublicationJournal
from auctionlist.credentials.store.interface import PinningService, SignatureApi
from auctionlist.credentials.store.pinata import PinataClient
from auctionlist.lit.client import LitGatewayClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generates the signatures for the allowListManager",
    )
    parser.add_argument("--auction-id", type=int, required=True, help="Id of the auction")
    parser.add_argument(
        "--file-with-address", type=str, required=True,
        help="File with comma separated addresses that should be allow-listed",
    )
    parser.add_argument(
        "--post-to-api", action="store_true", default=False,
        help="Send the signatures directly to the api",
    )
    parser.add_argument(
        "--post-to-dev-api", action="store_true", default=False,
        help="Send the signatures directly to the api in development environment",
    )

    parser.add_argument("--output-dir", type=str, default=None)
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--signature-layout", choices=["packed", "abi"], default=None)
    parser.add_argument("--failure-policy", choices=["abort", "skip"], default=None)
    parser.add_argument("--max-attempts", type=int, default=None, help="Attempts per retryable stage")
    parser.add_argument("--resume", action="store_true", default=None,
                        help="Skip sealing/upload for addresses already published")

    parser.add_argument("--rpc-url", type=str, default=None)
    parser.add_argument("--network-label", type=str, default=None)
    parser.add_argument("--signer", choices=["local", "rpc"], default=None)
    parser.add_argument("--authority-address", type=str, default=None)
    parser.add_argument("--allow-list-contract", type=str, default=None)
    parser.add_argument("--deployments-dir", type=str, default=None)
    parser.add_argument("--lit-gateway-url", type=str, default=None)
    return parser


def cli_values(args: argparse.Namespace) -> dict[str, Any]:
    """Shape parsed flags like GenerateConfig."""
    return {
        "args": {
            "auction_id": args.auction_id,
            "file_with_address": args.file_with_address,
            "post_to_api": args.post_to_api,
            "post_to_dev_api": args.post_to_dev_api,
        },
        "run": {
            "output_dir": args.output_dir,
            "chunk_size": args.chunk_size,
            "signature_layout": args.signature_layout,
            "failure_policy": args.failure_policy,
            "resume": args.resume,
            "retry": {"max_attempts": args.max_attempts},
        },
        "chain": {
            "rpc_url": args.rpc_url,
            "network_label": args.network_label,
            "signer": args.signer,
            "authority_address": args.authority_address,
            "allow_list_contract": args.allow_list_contract,
            "deployments_dir": args.deployments_dir,
        },
        "lit": {"gateway_url": args.lit_gateway_url},
    }


def build_signer(config: GenerateConfig, transport: JSONRPCTransport) -> MessageSigner:
    if config.chain.signer == "rpc":
        return RPCSigner(transport, config.chain.authority_address)
    return LocalAccountSigner(config.chain.private_key.get_secret_value())


async def generate(
    config: GenerateConfig,
    *,
    chain_client: ChainClient | None = None,
    signer: MessageSigner | None = None,
    network: EncryptionNetwork | None = None,
    pinning: PinningService | None = None,
    api: SignatureApi | None = None,
) -> RunReport:
    """Run the whole batch. Collaborators not passed in are built from config."""
    owned: list[Any] = []

    transport = None
    if chain_client is None or signer is None:
        transport = JSONRPCTransport(config.chain.rpc_url, timeout=config.chain.timeout)
        owned.append(transport)
    if chain_client is None:
        chain_client = JSONRPCChainClient(transport, network_label=config.chain.network_label)
    if signer is None:
        signer = build_signer(config, transport)
    if network is None:
        network = LitGatewayClient(config.lit.gateway_url, timeout=config.lit.timeout)
        owned.append(network)
    if pinning is None:
        pinning = PinataClient(
            config.pinata.jwt.get_secret_value(), url=config.pinata.url, timeout=config.pinata.timeout,
        )
        owned.append(pinning)
    if api is None and config.api_url:
        token = config.api.token.get_secret_value() if config.api.token else None
        api = SignatureApiClient(config.api_url, token=token, timeout=config.api.timeout)
        owned.append(api)

    try:
        authority = AuthoritySigner(signer)
        bt.logging.info({"generate": {"event": "authority", "address": authority.address}})

        info = await resolve_network(chain_client, config.run.networks)
        contract = config.chain.allow_list_contract or load_deployment_address(
            config.chain.deployments_dir, info.name,
        )
        auction = AuctionRef(
            auction_id=config.args.auction_id,
            chain_id=info.chain_id,
            allow_list_contract=contract,
        )

        await network.connect()
        auth_sig = await AuthContextFactory(authority, config.run.auth).create(
            auction.auction_id, auction.chain_id,
        )

        store = AuditFileStore(config.run.output_dir)
        publisher = BatchPublisher(
            auction=auction,
            network_name=info.name,
            authority=authority,
            sealer=CredentialSealer(network),
            pinning=pinning,
            audit_store=store,
            auth_sig=auth_sig,
            chunk_size=config.run.chunk_size,
            layout=config.run.signature_layout,
            retry=config.run.retry,
            failure_policy=config.run.failure_policy,
            journal=PublicationJournal(config.run.output_dir, auction),
            resume=config.run.resume,
            api=api,
        )
        return await publisher.run_file(config.args.file_with_address)
    finally:
        for resource in owned:
            await resource.close()


def main(argv: list[str] | None = None) -> int:
    if os.environ.get("AUCTIONLIST_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args(argv)

    try:
        config = load_config(cli_values(args))
    except CredentialError as e:
        bt.logging.error({"generate": {"event": "config_error", "error": str(e)}})
        return 2

    bt.logging.info({
        "generate_config": {
            "auction_id": config.args.auction_id,
            "file_with_address": str(config.args.file_with_address),
            "output_dir": config.run.output_dir,
            "chunk_size": config.run.chunk_size,
            "signer": config.chain.signer,
            "failure_policy": config.run.failure_policy.value,
            "resume": config.run.resume,
        }
    })

    try:
        report = asyncio.run(generate(config))
    except CredentialError as e:
        bt.logging.error({
            "generate": {
                "event": "failed",
                "error_type": type(e).__name__,
                "address": e.address,
                "error": str(e),
            }
        })
        return 1

    if report.failed:
        bt.logging.warning({"generate": {"event": "completed_with_skips", "failed": report.failed}})
    bt.logging.info({"generate": {"event": "completed", "chunks": report.chunks_written}})
    return 0


if __name__ == "__main__":
    sys.exit(main())
