#!/usr/bin/env python3
"""
Example of bootstrapping and funding a wallet.
"""
import argparse
import asyncio
import logging

from confkyc_sdk import WalletClient, NetworkConfig, LocalSigner, GENESIS_SEED, derive_keys
from confkyc_sdk.transport import StubTransport


async def run(seed, network):
    """
    Demonstrate the wallet lifecycle.

    This example shows how to:
    1. Load a network configuration from the environment
    2. Build a wallet and wait until it holds tokens and resource
    3. Print the balances of its three pools
    """
    config = NetworkConfig.from_env() if network is None else NetworkConfig.get_network(network)
    transport = None
    if config.is_local and not config.bridge_url:
        # The in-memory ledger starts empty: give the genesis wallet its tokens
        transport = StubTransport(network_id=config.network_id)
        genesis = LocalSigner(derive_keys(GENESIS_SEED).public_pool)
        transport.mint(genesis.address, 10 ** 15)

    async with WalletClient(config, transport=transport) as client:
        if seed:
            session = await client.build_wallet_and_wait_for_funds(seed)
        else:
            session, mnemonic = await client.build_fresh_wallet()
            print(f"Mnemonic (keep it secret): {mnemonic}")

        try:
            print(f"Wallet address: {session.address}")
            for pool, value in session.state().summary().items():
                print(f"  {pool:>12}: {value}")
        finally:
            await session.stop()


def main():
    parser = argparse.ArgumentParser(description="Bootstrap a funded confkyc wallet")
    parser.add_argument("--seed", help="Hex seed or mnemonic (default: a fresh 12-word mnemonic)")
    parser.add_argument("--network", help="Network preset (default: CONFKYC_NETWORK or undeployed)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    asyncio.run(run(args.seed, args.network))


if __name__ == "__main__":
    main()
