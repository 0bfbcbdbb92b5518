"""Strategy whitelisting, deploy/withdraw accounting and NAV sources."""

import pytest

from rwa_vault.constants import TOPIC_DEPLOY, TOPIC_STRATEGY, TOPIC_WITHDRAW
from rwa_vault.errors import (
    InsufficientBalance,
    InsufficientDeployed,
    StrategyMismatch,
    StrategyNotWhitelisted,
    UnknownStrategy,
    ZeroAmount,
)
from rwa_vault.nav import NavCalculator
from rwa_vault.strategies import SimulatedStrategy, build_strategy


class HalfAcceptingStrategy(SimulatedStrategy):
    def deploy(self, amount):
        super().deploy(amount // 2)
        return amount // 2


class ShortChangingStrategy(SimulatedStrategy):
    """Reports the full amount back but never sends it."""

    def withdraw(self, amount):
        return amount


class RefusingStrategy(SimulatedStrategy):
    def deploy(self, amount):
        return 0


@pytest.fixture
def deposited(live_vault, act, accounts):
    act(accounts.alice, "deposit", 1_000_000_000)
    return live_vault


def test_add_strategy_is_idempotent(live_vault, act, accounts, strategy):
    assert act(accounts.admin, "add_strategy", strategy.address) is True
    assert act(accounts.admin, "add_strategy", strategy.address.lower()) is False
    assert live_vault.get_strategies() == (strategy.address,)
    assert len(live_vault.events.by_topic(TOPIC_STRATEGY)) == 1
    assert live_vault.is_whitelisted(strategy.address.lower())


def test_deploy_to_unlisted_strategy_rejected(deposited, act, accounts, strategy, stable):
    with pytest.raises(StrategyNotWhitelisted):
        act(accounts.admin, "deploy_to_strategy", strategy.address, 100)
    with pytest.raises(StrategyNotWhitelisted):
        act(accounts.admin, "deploy_to_strategy", strategy.address, 0)
    assert stable.balance(strategy.address) == 0


def test_deploy_moves_funds_and_records_position(deposited, act, accounts, strategy, stable):
    act(accounts.admin, "add_strategy", strategy.address)
    accepted = act(accounts.admin, "deploy_to_strategy", strategy.address, 300_000_000)

    assert accepted == 300_000_000
    assert stable.balance(strategy.address) == 300_000_000
    assert stable.balance(accounts.vault.address) == 700_000_000
    position = deposited.get_position(strategy.address)
    assert (position.deployed, position.total_transferred, position.total_returned) == (
        300_000_000,
        300_000_000,
        0,
    )
    assert deposited.events.by_topic(TOPIC_DEPLOY)[-1].data["amount"] == 300_000_000


def test_deploy_zero_rejected(deposited, act, accounts, strategy):
    act(accounts.admin, "add_strategy", strategy.address)
    with pytest.raises(ZeroAmount):
        act(accounts.admin, "deploy_to_strategy", strategy.address, 0)


def test_deploy_beyond_vault_balance_rejected(deposited, act, accounts, strategy):
    act(accounts.admin, "add_strategy", strategy.address)
    with pytest.raises(InsufficientBalance):
        act(accounts.admin, "deploy_to_strategy", strategy.address, 1_000_000_001)
    assert deposited.get_deployed(strategy.address) == 0


def test_partial_acceptance_rejected_and_funds_stay_in_vault(
    deposited, act, accounts, registry, stable
):
    partial = registry.register(
        HalfAcceptingStrategy(accounts.strategy_b.address, stable, accounts.vault.address)
    )
    act(accounts.admin, "add_strategy", partial.address)
    with pytest.raises(StrategyMismatch):
        act(accounts.admin, "deploy_to_strategy", partial.address, 1_000)

    assert stable.balance(accounts.vault.address) == 1_000_000_000
    assert stable.balance(partial.address) == 0
    assert deposited.get_position(partial.address).total_transferred == 0
    assert deposited.get_vault_value() == 0
    assert deposited.audit() == []


def test_refused_deploy_rolls_back(deposited, act, accounts, registry, stable):
    refusing = registry.register(
        RefusingStrategy(accounts.strategy_b.address, stable, accounts.vault.address)
    )
    act(accounts.admin, "add_strategy", refusing.address)
    with pytest.raises(StrategyMismatch):
        act(accounts.admin, "deploy_to_strategy", refusing.address, 100)
    assert stable.balance(refusing.address) == 0
    assert stable.balance(accounts.vault.address) == 1_000_000_000


def test_whitelisted_without_endpoint(deposited, act, accounts):
    act(accounts.admin, "add_strategy", accounts.strategy_b.address)
    with pytest.raises(UnknownStrategy):
        act(accounts.admin, "deploy_to_strategy", accounts.strategy_b.address, 100)


def test_withdraw_more_than_deployed_rejected(funded_vault, act, accounts, strategy):
    with pytest.raises(InsufficientDeployed):
        act(accounts.admin, "withdraw_from_strategy", strategy.address, 500_000_001)
    # InsufficientDeployed is a balance error too
    with pytest.raises(InsufficientBalance):
        act(accounts.admin, "withdraw_from_strategy", strategy.address, 500_000_001)


def test_partial_withdraw(funded_vault, act, accounts, strategy, stable):
    returned = act(accounts.admin, "withdraw_from_strategy", strategy.address, 200_000_000)

    assert returned == 200_000_000
    assert funded_vault.get_deployed(strategy.address) == 300_000_000
    assert stable.balance(accounts.vault.address) == 700_000_000
    assert funded_vault.get_vault_value() == 800_000_000
    event = funded_vault.events.by_topic(TOPIC_WITHDRAW)[-1]
    assert event.data["amount"] == 200_000_000
    assert event.data["realized_yield"] == 0


def test_full_withdraw_realizes_yield(funded_vault, act, accounts, strategy, stable):
    strategy.accrue(25_000_000)

    returned = act(accounts.admin, "withdraw_from_strategy", strategy.address, 500_000_000)

    assert returned == 525_000_000
    position = funded_vault.get_position(strategy.address)
    assert position.deployed == 0
    assert position.total_returned == 525_000_000
    assert stable.balance(accounts.vault.address) == 1_025_000_000
    assert funded_vault.events.by_topic(TOPIC_WITHDRAW)[-1].data["realized_yield"] == 25_000_000


def test_unbacked_withdraw_report_rejected(deposited, act, accounts, registry, stable):
    liar = registry.register(
        ShortChangingStrategy(accounts.strategy_b.address, stable, accounts.vault.address)
    )
    act(accounts.admin, "add_strategy", liar.address)
    act(accounts.admin, "deploy_to_strategy", liar.address, 100)

    with pytest.raises(StrategyMismatch):
        act(accounts.admin, "withdraw_from_strategy", liar.address, 100)
    assert deposited.get_deployed(liar.address) == 100


def test_live_nav_tracks_strategy_value(funded_vault, strategy, store, registry):
    strategy.accrue(40_000_000)
    live = NavCalculator(store, registry, "live")

    assert funded_vault.get_vault_value() == 1_000_000_000
    assert live.vault_value() == 1_040_000_000

    strategy.slash(140_000_000)
    assert live.vault_value() == 900_000_000


def test_set_allocation_does_not_move_capital(funded_vault, act, accounts, strategy, stable):
    act(accounts.admin, "set_allocation_ratio", 2000, 8000)
    assert funded_vault.get_allocation_ratio() == (2000, 8000)
    assert funded_vault.get_deployed(strategy.address) == 500_000_000
    assert stable.balance(strategy.address) == 500_000_000


def test_build_strategy_from_config(stable, accounts):
    built, reason = build_strategy(
        {"type": "simulated", "address": accounts.strategy.address},
        stable=stable,
        vault_address=accounts.vault.address,
    )
    assert reason is None
    assert built.address == accounts.strategy.address

    missing, reason = build_strategy({"type": "curve"})
    assert missing is None
    assert reason == "unknown_type:curve"
