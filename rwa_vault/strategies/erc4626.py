#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""ERC-4626 strategy endpoint implementing deploy/withdraw over web3."""

from __future__ import annotations

from typing import Dict

from web3 import Web3

from ..errors import StrategyMismatch, ZeroAmount
from ..logging_config import get_logger
from ..onchain import ERC4626_ABI, ERC20StableAsset, send_contract_tx
from .base import Strategy

logger = get_logger(__name__)


class ERC4626Strategy(Strategy):
    """Strategy backed by an ERC-4626 vault.

    ``address`` is the custody account that receives deployed funds and owns
    the vault shares; ``receiver`` is the vault engine's stable-asset account
    that withdrawals pay back into.

    Config keys: ``vault``, ``asset``, ``receiver``.
    """

    def __init__(self, w3: Web3, config: Dict[str, object], signer, timeout: int = 180):
        self.w3 = w3
        self.signer = signer
        self.timeout = timeout
        self.address = Web3.to_checksum_address(signer.address)
        self.receiver = Web3.to_checksum_address(str(config["receiver"]))
        self.vault = w3.eth.contract(
            address=Web3.to_checksum_address(str(config["vault"])), abi=ERC4626_ABI
        )
        self.asset = ERC20StableAsset(w3, str(config["asset"]), signer, timeout=timeout)

    def _shares(self) -> int:
        return int(self.vault.functions.balanceOf(self.address).call())

    def deploy(self, amount: int) -> int:
        if amount <= 0:
            raise ZeroAmount("deploy amount must be > 0")
        available = self.asset.balance(self.address)
        if available < amount:
            raise StrategyMismatch(f"custody holds {available}, deploy requested {amount}")

        approve_hash = self.asset.approve_if_needed(self.vault.address, amount)
        if approve_hash:
            logger.debug("allowance raised", extra={"tx": approve_hash})

        send_contract_tx(
            self.w3,
            self.signer,
            self.vault.functions.deposit(int(amount), self.address),
            "erc4626_deposit",
            timeout=self.timeout,
        )
        # ERC-4626 deposit pulls exactly `assets` or reverts
        return int(amount)

    def withdraw(self, amount: int) -> int:
        max_withdraw = int(self.vault.functions.maxWithdraw(self.address).call())
        assets = min(int(amount), max_withdraw)
        if assets <= 0:
            return 0
        before = self.asset.balance(self.receiver)
        send_contract_tx(
            self.w3,
            self.signer,
            self.vault.functions.withdraw(assets, self.receiver, self.address),
            "erc4626_withdraw",
            timeout=self.timeout,
        )
        return max(0, self.asset.balance(self.receiver) - before)

    def get_deployed_value(self) -> int:
        shares = self._shares()
        if shares <= 0:
            return 0
        return int(self.vault.functions.convertToAssets(shares).call())
