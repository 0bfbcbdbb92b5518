#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""On-chain helpers: minimal ABIs, transaction sending and an ERC-20 stable asset."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from web3 import Web3

from .errors import InsufficientBalance, NotAuthorized, TransactionReverted
from .ledgers import StableAssetLedger
from .logging_config import get_logger

logger = get_logger(__name__)

ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "transferFrom",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

ERC4626_ABI = [
    {
        "name": "deposit",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"},
        ],
        "outputs": [{"name": "shares", "type": "uint256"}],
    },
    {
        "name": "withdraw",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"},
            {"name": "owner", "type": "address"},
        ],
        "outputs": [{"name": "shares", "type": "uint256"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "convertToAssets",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "shares", "type": "uint256"}],
        "outputs": [{"name": "assets", "type": "uint256"}],
    },
    {
        "name": "maxWithdraw",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

GAS_MULTIPLIER = Decimal("1.2")


def _raw_bytes(signed: Any) -> bytes:
    raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
    if raw_tx is None:
        raise AttributeError("SignedTransaction missing raw bytes")
    return raw_tx


def send_contract_tx(w3: Web3, account, tx_fn, label: str, timeout: int = 180) -> str:
    """
    Build, sign, send and confirm a contract transaction.

    Args:
        w3: Connected Web3 instance
        account: eth_account LocalAccount used to sign
        tx_fn: Bound contract function (``contract.functions.x(...)``)
        label: Short name used in logs and errors
        timeout: Receipt wait timeout in seconds

    Returns:
        Transaction hash (hex)

    Raises:
        TransactionReverted: If sending fails or the receipt status is not 1
    """
    try:
        gas_estimate = tx_fn.estimate_gas({"from": account.address})
        tx: Dict[str, Any] = tx_fn.build_transaction(
            {
                "chainId": w3.eth.chain_id,
                "from": account.address,
                "nonce": w3.eth.get_transaction_count(account.address, "pending"),
                "gas": int(Decimal(gas_estimate) * GAS_MULTIPLIER),
                "gasPrice": w3.eth.gas_price,
                "value": 0,
            }
        )
        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(_raw_bytes(signed))
    except Exception as exc:
        raise TransactionReverted(f"{label} send failed: {exc}") from exc

    tx_hex = tx_hash.hex()
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    if receipt["status"] != 1:
        raise TransactionReverted(f"{label} reverted", tx_hash=tx_hex)
    logger.info("transaction confirmed", extra={"label": label, "tx": tx_hex})
    return tx_hex


class ERC20StableAsset(StableAssetLedger):
    """Stable asset living in an ERC-20 contract; transactions are signed by ``account``.

    Transfers out of ``account`` use ``transfer``. Transfers from any other
    holder (a depositor paying the vault) pull funds with ``transferFrom``
    against the allowance that holder granted ``account``.

    On-chain transfers are final once mined: this ledger is not journaled,
    so a vault operation that fails after a transfer cannot undo it.
    """

    def __init__(self, w3: Web3, token_address: str, account, timeout: int = 180):
        self.w3 = w3
        self.account = account
        self.timeout = timeout
        self.token = w3.eth.contract(
            address=Web3.to_checksum_address(token_address), abi=ERC20_ABI
        )

    def balance(self, address: str) -> int:
        return int(self.token.functions.balanceOf(Web3.to_checksum_address(address)).call())

    def allowance(self, owner: str, spender: str) -> int:
        return int(
            self.token.functions.allowance(
                Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
            ).call()
        )

    def transfer(self, from_: str, to: str, amount: int) -> None:
        sender = Web3.to_checksum_address(from_)
        recipient = Web3.to_checksum_address(to)
        own_funds = sender == self.account.address
        if not own_funds:
            allowed = self.allowance(sender, self.account.address)
            if allowed < amount:
                raise NotAuthorized(f"{sender} approved {allowed}, transfer needs {amount}")
        held = self.balance(sender)
        if held < amount:
            raise InsufficientBalance(f"ERC-20 balance {held} < transfer {amount}")
        if amount == 0:
            return
        if own_funds:
            tx_fn = self.token.functions.transfer(recipient, int(amount))
            label = "transfer"
        else:
            tx_fn = self.token.functions.transferFrom(sender, recipient, int(amount))
            label = "transfer_from"
        send_contract_tx(self.w3, self.account, tx_fn, label, timeout=self.timeout)

    def approve_if_needed(self, spender: str, amount: int) -> Optional[str]:
        if self.allowance(self.account.address, spender) >= amount:
            return None
        return send_contract_tx(
            self.w3,
            self.account,
            self.token.functions.approve(spender, int(amount)),
            "approve",
            timeout=self.timeout,
        )
