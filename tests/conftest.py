"""Shared fixtures: manual ledger clock, in-memory ledgers, signer accounts and an initialized vault."""

from types import SimpleNamespace

import pytest
from eth_account import Account

from rwa_vault.auth import sign_operation
from rwa_vault.clock import ManualClock
from rwa_vault.config import VaultSettings
from rwa_vault.ledgers import InMemoryTokenLedger
from rwa_vault.storage import StateStore
from rwa_vault.strategies import SimulatedStrategy, StrategyRegistry
from rwa_vault.vault import Vault

VAULT_ID = "test-vault"
MATURITY_DELAY = 10 * 86400
BUYBACK_PRICE = 1_050_000
CLAIM_TOKEN_REF = "0x" + "c1" * 20
STABLE_ASSET_REF = "0x" + "5a" * 20
FUNDING = 10**24


def _account(n: int):
    return Account.from_key("0x" + f"{n:064x}")


@pytest.fixture
def accounts():
    return SimpleNamespace(
        admin=_account(1),
        oracle=_account(2),
        alice=_account(3),
        bob=_account(4),
        carol=_account(5),
        vault=_account(6),
        strategy=_account(7),
        strategy_b=_account(8),
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store(clock):
    return StateStore(clock)


@pytest.fixture
def claim_token():
    return InMemoryTokenLedger("CLAIM")


@pytest.fixture
def stable(accounts):
    ledger = InMemoryTokenLedger("USDC")
    for user in (accounts.alice, accounts.bob, accounts.carol):
        ledger.mint(user.address, FUNDING)
    return ledger


@pytest.fixture
def settings(tmp_path):
    return VaultSettings(
        state_path=tmp_path / "vault_state.json",
        maintenance_lock=tmp_path / ".maintenance_lock",
        retry_initial_delay=0.0,
    )


@pytest.fixture
def registry():
    return StrategyRegistry()


@pytest.fixture
def strategy(registry, stable, accounts):
    return registry.register(
        SimulatedStrategy(accounts.strategy.address, stable, accounts.vault.address)
    )


@pytest.fixture
def vault(store, claim_token, stable, accounts, registry, settings):
    return Vault(
        VAULT_ID,
        store,
        claim_token,
        stable,
        accounts.vault.address,
        strategies=registry,
        settings=settings,
    )


@pytest.fixture
def act(vault):
    """Sign ``operation`` for ``account`` at its current nonce and invoke it."""

    def _act(account, operation, *args):
        proof = sign_operation(account, vault.vault_id, operation, args, vault.get_nonce(account.address))
        return getattr(vault, operation)(account.address, *args, proof=proof)

    return _act


@pytest.fixture
def maturity(clock):
    return clock.timestamp() + MATURITY_DELAY


@pytest.fixture
def live_vault(vault, act, accounts, maturity):
    act(
        accounts.admin,
        "initialize",
        CLAIM_TOKEN_REF,
        STABLE_ASSET_REF,
        accounts.oracle.address,
        5000,
        5000,
        maturity,
        BUYBACK_PRICE,
    )
    return vault


@pytest.fixture
def funded_vault(live_vault, act, accounts, strategy):
    """Reference setup: 1e9 deposited, half deployed, RWA valued at the other half."""
    act(accounts.alice, "deposit", 1_000_000_000)
    act(accounts.admin, "add_strategy", strategy.address)
    act(accounts.admin, "deploy_to_strategy", strategy.address, 500_000_000)
    act(accounts.oracle, "report_rwa_value", 500_000_000)
    return live_vault
