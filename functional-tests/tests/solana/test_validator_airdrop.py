"""
Airdrop lamports from the validator faucet to a fresh address.
"""

import logging

import flexitest

from chaincontainers import random_pubkey
from chaincontainers.config import ServiceType
from chaincontainers.config.constants import LAMPORTS_PER_SOL
from common.base_test import BaseTest

logger = logging.getLogger(__name__)


@flexitest.register
class TestValidatorAirdrop(BaseTest):
    def __init__(self, ctx: flexitest.InitContext):
        ctx.set_env("solana")

    def main(self, ctx):
        validator = self.get_service(ServiceType.SolanaValidator)
        assert validator.get_health() == "ok"
        logger.info(f"Validator version: {validator.get_version()}")

        pubkey = random_pubkey()
        assert validator.get_balance(pubkey) == 0

        signature = validator.airdrop(pubkey, 2 * LAMPORTS_PER_SOL)
        logger.info(f"Airdrop confirmed: {signature}")
        assert validator.get_balance(pubkey) == 2 * LAMPORTS_PER_SOL
        return True
