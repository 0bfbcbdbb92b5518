#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""RWA vault engine.

Every public mutation runs the same pipeline inside one atomic unit:

    authorization guard -> lifecycle gate -> validation -> external calls
    -> local writes -> TTL extension -> buffered events

The atomic unit snapshots the state store, every journaled collaborator
(in-memory ledgers, simulated strategies) and the event buffer. Any exception
restores all of them and propagates unchanged; only a committed operation
consumes the caller's nonce and publishes its events.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .auth import AuthorizationGuard, AuthProof
from .claims import ClaimLedger
from .config import VaultSettings
from .constants import (
    BASIS_POINTS_PER_UNIT,
    TOPIC_ALLOCATION,
    TOPIC_CLAIM,
    TOPIC_DEPLOY,
    TOPIC_DEPOSIT,
    TOPIC_FULFILL,
    TOPIC_INIT,
    TOPIC_ORACLE,
    TOPIC_REDEEM,
    TOPIC_SET_ORACLE,
    TOPIC_STRATEGY,
    TOPIC_WITHDRAW,
)
from .errors import (
    AlreadyInitialized,
    InsufficientBalance,
    InsufficientDeployed,
    InsufficientLiquidity,
    NotAuthorized,
    OracleNotAuthorized,
    ReentrantCall,
    StrategyMismatch,
    StrategyNotWhitelisted,
    VaultError,
    VaultNotMature,
    VaultLocked,
    ZeroAmount,
)
from .events import EventLog, WebhookSink
from .input_validation import (
    normalize_address,
    parse_delivery_hash,
    require_positive_amount,
    validate_allocation,
)
from .ledgers import ClaimTokenLedger, Journaled, StableAssetLedger
from .lifecycle import LifecycleGate
from .logging_config import get_logger
from .models import ClaimRecord, Phase, StrategyPosition, VaultConfig
from .nav import AllocationController, NavCalculator
from .safe_math import (
    check_i128,
    checked_add,
    checked_sub,
    payout_for_redeem,
    shares_for_deposit,
)
from .storage import DataKey, Retention, StateStore
from .strategies import StrategyRegistry

logger = get_logger(__name__)


@dataclass
class OperationContext:
    """Per-operation view: configuration is loaded once and written back on commit."""

    name: str
    ledger: int
    timestamp: int
    config: Optional[VaultConfig] = None
    config_dirty: bool = False

    def update_config(self, config: VaultConfig) -> None:
        self.config = config
        self.config_dirty = True


class Vault:
    """Accounting core for a tokenized real-world-asset vault."""

    def __init__(
        self,
        vault_id: str,
        store: StateStore,
        claim_token: ClaimTokenLedger,
        stable_asset: StableAssetLedger,
        vault_address: str,
        strategies: Optional[StrategyRegistry] = None,
        events: Optional[EventLog] = None,
        settings: Optional[VaultSettings] = None,
    ):
        self.vault_id = vault_id
        self.store = store
        self.clock = store.clock
        self.claim_token = claim_token
        self.stable_asset = stable_asset
        self.address = normalize_address(vault_address)
        self.strategies = strategies or StrategyRegistry()
        self.events = events or EventLog()
        self.settings = settings or VaultSettings()

        self.guard = AuthorizationGuard(vault_id, store)
        self.gate = LifecycleGate(self.clock)
        self.nav = NavCalculator(store, self.strategies, self.settings.nav_source)
        self.allocation = AllocationController()
        self.claims = ClaimLedger(store)
        self._running: Optional[str] = None

        if self.settings.event_webhook:
            self.events.add_sink(
                WebhookSink(self.settings.event_webhook, timeout=self.settings.webhook_timeout)
            )

    # ------------------------------------------------------------------
    # Atomic unit
    # ------------------------------------------------------------------
    def _journaled(self) -> List[Journaled]:
        participants: List[Journaled] = []
        seen = set()
        for candidate in [self.claim_token, self.stable_asset, *self.strategies.journaled()]:
            if isinstance(candidate, Journaled) and id(candidate) not in seen:
                seen.add(id(candidate))
                participants.append(candidate)
        return participants

    @contextmanager
    def _operation(self, name: str) -> Iterator[OperationContext]:
        if self._running is not None:
            raise ReentrantCall(f"{name} entered while {self._running} is running")
        store_snapshot = self.store.snapshot()
        journal = [(p, p.snapshot()) for p in self._journaled()]
        self._running = name
        try:
            ctx = OperationContext(
                name=name,
                ledger=self.clock.sequence(),
                timestamp=self.clock.timestamp(),
                config=self.store.get(DataKey.CONFIG),
            )
            yield ctx
            if ctx.config_dirty:
                self.store.set(DataKey.CONFIG, ctx.config)
            if ctx.config is not None:
                self.store.extend_instance()
        except Exception as exc:
            self.store.restore_snapshot(store_snapshot)
            for participant, snapshot in reversed(journal):
                participant.restore(snapshot)
            self.events.discard_pending()
            extra: Dict[str, Any] = {"operation": name, "error": type(exc).__name__}
            if isinstance(exc, VaultError):
                extra["code"] = exc.code
            logger.warning("operation rejected: %s", exc, extra=extra)
            raise
        else:
            committed = self.events.commit_pending()
            logger.info("operation committed", extra={"operation": name, "events": len(committed)})
        finally:
            self._running = None

    def _emit(self, ctx: OperationContext, topic: str, principal: str, **data: Any) -> None:
        self.events.emit(topic, principal, ctx.ledger, ctx.timestamp, **data)

    def _require_admin(self, ctx: OperationContext, admin: str, proof: AuthProof, args: Sequence[Any]) -> str:
        admin = self.guard.require(admin, proof, ctx.name, args)
        config = self.gate.require_initialized(ctx.config)
        if admin != config.admin:
            raise NotAuthorized(f"{ctx.name}: {admin} is not the vault admin")
        return admin

    def _touch(self, key: Tuple[str, ...]) -> None:
        self.store.extend_ttl(key)

    def _user_balance(self, user: str) -> int:
        return int(self.store.get(DataKey.user_balance(user), 0))

    def _debit_user(self, user: str, amount: int) -> None:
        held = self._user_balance(user)
        if held < amount:
            raise InsufficientBalance(f"balance {held} < {amount}")
        key = DataKey.user_balance(user)
        self.store.set(key, checked_sub(held, amount))
        self._touch(key)

    def _whitelisted(self, strategy: str) -> str:
        strategy = normalize_address(strategy)
        if strategy not in self.nav.whitelist():
            raise StrategyNotWhitelisted(f"{strategy} is not whitelisted")
        return strategy

    def _position(self, strategy: str) -> StrategyPosition:
        return self.store.get(DataKey.strategy_position(strategy), StrategyPosition())

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def initialize(
        self,
        admin: str,
        claim_token_ref: str,
        stable_asset_ref: str,
        oracle: str,
        alloc_rwa_bps: int,
        alloc_onchain_bps: int,
        maturity_timestamp: int,
        buyback_price: int,
        proof: Optional[AuthProof] = None,
    ) -> None:
        """
        Write the vault configuration exactly once.

        Raises:
            AlreadyInitialized: Configuration already present
            InvalidAllocation: Split does not sum to 10000 bps
        """
        with self._operation("initialize") as ctx:
            admin = self.guard.require(
                admin,
                proof,
                ctx.name,
                [claim_token_ref, stable_asset_ref, oracle, alloc_rwa_bps,
                 alloc_onchain_bps, maturity_timestamp, buyback_price],
            )
            if ctx.config is not None:
                raise AlreadyInitialized("vault is already initialized")
            validate_allocation(alloc_rwa_bps, alloc_onchain_bps)
            check_i128(maturity_timestamp, "maturity_timestamp")
            check_i128(buyback_price, "buyback_price")
            if maturity_timestamp <= 0:
                raise ZeroAmount("maturity_timestamp must be > 0")
            if buyback_price < 0:
                raise ZeroAmount("buyback_price must be >= 0")

            ctx.update_config(
                VaultConfig(
                    admin=admin,
                    claim_token=normalize_address(claim_token_ref),
                    stable_asset=normalize_address(stable_asset_ref),
                    oracle=normalize_address(oracle),
                    alloc_rwa_bps=alloc_rwa_bps,
                    alloc_onchain_bps=alloc_onchain_bps,
                    maturity_timestamp=maturity_timestamp,
                    buyback_price=buyback_price,
                )
            )
            self.store.set(DataKey.RWA_VALUE, 0)
            self.store.set(DataKey.TOTAL_DEPOSITS, 0)
            self.store.set(DataKey.STRATEGIES, ())
            self._emit(
                ctx,
                TOPIC_INIT,
                admin,
                oracle=ctx.config.oracle,
                alloc_rwa_bps=alloc_rwa_bps,
                alloc_onchain_bps=alloc_onchain_bps,
                maturity=maturity_timestamp,
                buyback_price=buyback_price,
            )

    def set_allocation_ratio(
        self, admin: str, rwa_bps: int, onchain_bps: int, proof: Optional[AuthProof] = None
    ) -> None:
        """Change the target split. Already deployed capital is left where it is."""
        with self._operation("set_allocation_ratio") as ctx:
            admin = self._require_admin(ctx, admin, proof, [rwa_bps, onchain_bps])
            ctx.update_config(self.allocation.apply(ctx.config, rwa_bps, onchain_bps))
            self._emit(ctx, TOPIC_ALLOCATION, admin, rwa_bps=rwa_bps, onchain_bps=onchain_bps)

    def set_oracle(self, admin: str, oracle: str, proof: Optional[AuthProof] = None) -> None:
        with self._operation("set_oracle") as ctx:
            admin = self._require_admin(ctx, admin, proof, [oracle])
            oracle = normalize_address(oracle)
            previous = ctx.config.oracle
            ctx.update_config(replace(ctx.config, oracle=oracle))
            self._emit(ctx, TOPIC_SET_ORACLE, admin, previous=previous, oracle=oracle)

    # ------------------------------------------------------------------
    # Deposits and redemptions
    # ------------------------------------------------------------------
    def deposit(self, user: str, amount: int, proof: Optional[AuthProof] = None) -> int:
        """
        Exchange stable asset for newly minted claim tokens at the current NAV.

        The first deposit into an empty vault mints 1:1; later deposits mint
        ``floor(amount * supply / nav)`` with NAV measured before the deposit.

        Returns:
            Number of claim tokens minted
        """
        with self._operation("deposit") as ctx:
            user = self.guard.require(user, proof, ctx.name, [amount])
            self.gate.require_active(ctx.config)
            require_positive_amount(amount, "deposit amount")

            supply = self.claim_token.total_supply()
            nav = self.nav.vault_value()
            minted = shares_for_deposit(amount, supply, nav)
            if minted <= 0:
                raise ZeroAmount(f"deposit of {amount} mints no tokens at nav {nav}")

            self.stable_asset.transfer(user, self.address, amount)
            self.claim_token.mint(user, minted)

            balance_key = DataKey.user_balance(user)
            self.store.set(balance_key, checked_add(self._user_balance(user), minted))
            self._touch(balance_key)
            total = int(self.store.get(DataKey.TOTAL_DEPOSITS, 0))
            self.store.set(DataKey.TOTAL_DEPOSITS, checked_add(total, amount))

            self._emit(ctx, TOPIC_DEPOSIT, user, amount=amount, tokens_minted=minted)
            return minted

    def redeem(self, user: str, token_amount: int, proof: Optional[AuthProof] = None) -> int:
        """
        Burn claim tokens for a pro-rata share of NAV, paid in stable asset.

        Returns:
            Stable-asset payout
        """
        with self._operation("redeem") as ctx:
            user = self.guard.require(user, proof, ctx.name, [token_amount])
            self.gate.require_matured(ctx.config, VaultLocked)
            require_positive_amount(token_amount, "redeem amount")

            held = self.claim_token.balance(user)
            if held < token_amount:
                raise InsufficientBalance(f"claim-token balance {held} < {token_amount}")
            supply = self.claim_token.total_supply()
            nav = self.nav.vault_value()
            payout = payout_for_redeem(token_amount, supply, nav)
            if payout <= 0:
                raise ZeroAmount(f"redeeming {token_amount} pays nothing at nav {nav}")

            if self.settings.enforce_redeem_liquidity:
                liquid = self.stable_asset.balance(self.address)
                if liquid < payout:
                    raise InsufficientLiquidity(f"vault holds {liquid}, payout requires {payout}")

            self.claim_token.burn(user, token_amount)
            self._debit_user(user, token_amount)
            self.stable_asset.transfer(self.address, user, payout)

            self._emit(ctx, TOPIC_REDEEM, user, tokens_burned=token_amount, payout=payout)
            return payout

    def claim_physical(
        self,
        user: str,
        token_amount: int,
        delivery_hash: Union[bytes, str],
        proof: Optional[AuthProof] = None,
    ) -> None:
        """Burn claim tokens in exchange for a physical-delivery obligation."""
        with self._operation("claim_physical") as ctx:
            user = self.guard.require(user, proof, ctx.name, [token_amount, delivery_hash])
            self.gate.require_matured(ctx.config, VaultNotMature)
            require_positive_amount(token_amount, "claim amount")
            digest = parse_delivery_hash(delivery_hash)
            self.claims.ensure_none_pending(user)

            self.claim_token.burn(user, token_amount)
            self._debit_user(user, token_amount)
            self.claims.open(user, token_amount, digest, ctx.timestamp)

            self._emit(ctx, TOPIC_CLAIM, user, amount=token_amount, delivery_hash=digest)

    def mark_claim_fulfilled(self, admin: str, user: str, proof: Optional[AuthProof] = None) -> ClaimRecord:
        with self._operation("mark_claim_fulfilled") as ctx:
            admin = self._require_admin(ctx, admin, proof, [user])
            user = normalize_address(user)
            record = self.claims.fulfill(user)
            self._emit(ctx, TOPIC_FULFILL, admin, user=user, amount=record.amount)
            return record

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------
    def report_rwa_value(self, oracle: str, value: int, proof: Optional[AuthProof] = None) -> None:
        """Overwrite the off-chain asset valuation. Only the configured oracle may report."""
        with self._operation("report_rwa_value") as ctx:
            oracle = self.guard.require(oracle, proof, ctx.name, [value], error=OracleNotAuthorized)
            config = self.gate.require_initialized(ctx.config)
            if oracle != config.oracle:
                raise OracleNotAuthorized(f"{oracle} is not the configured oracle")
            check_i128(value, "rwa value")
            self.store.set(DataKey.RWA_VALUE, value)
            if value < 0:
                logger.warning("negative RWA valuation reported", extra={"value": value})
            self._emit(ctx, TOPIC_ORACLE, oracle, value=value, negative=value < 0)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def add_strategy(self, admin: str, strategy: str, proof: Optional[AuthProof] = None) -> bool:
        """
        Whitelist a strategy address.

        Returns:
            True on first insertion, False if it was already whitelisted
        """
        with self._operation("add_strategy") as ctx:
            admin = self._require_admin(ctx, admin, proof, [strategy])
            strategy = normalize_address(strategy)
            whitelist = self.nav.whitelist()
            if strategy in whitelist:
                return False
            self.store.set(DataKey.STRATEGIES, whitelist + (strategy,))
            position_key = DataKey.strategy_position(strategy)
            if not self.store.has(position_key):
                self.store.set(position_key, StrategyPosition())
            self._emit(ctx, TOPIC_STRATEGY, admin, strategy=strategy)
            return True

    def deploy_to_strategy(
        self, admin: str, strategy: str, amount: int, proof: Optional[AuthProof] = None
    ) -> int:
        """
        Move idle stable asset into a whitelisted strategy.

        Returns:
            Amount the strategy accepted
        """
        with self._operation("deploy_to_strategy") as ctx:
            admin = self._require_admin(ctx, admin, proof, [strategy, amount])
            strategy = self._whitelisted(strategy)
            require_positive_amount(amount, "deploy amount")
            endpoint = self.strategies.resolve(strategy)
            position = self._position(strategy)

            self.stable_asset.transfer(self.address, strategy, amount)
            accepted = endpoint.deploy(amount)
            if not isinstance(accepted, int) or accepted != amount:
                raise StrategyMismatch(f"strategy accepted {accepted!r} of {amount} transferred")

            key = DataKey.strategy_position(strategy)
            self.store.set(
                key,
                replace(
                    position,
                    deployed=checked_add(position.deployed, accepted),
                    total_transferred=checked_add(position.total_transferred, amount),
                ),
            )
            self._touch(key)
            self._emit(ctx, TOPIC_DEPLOY, admin, amount=accepted, strategy=strategy)
            return accepted

    def withdraw_from_strategy(
        self, admin: str, strategy: str, amount: int, proof: Optional[AuthProof] = None
    ) -> int:
        """
        Pull capital back from a strategy into the vault's stable balance.

        ``deployed`` shrinks by what actually came back (capped at the
        recorded amount); anything above principal is realized yield.

        Returns:
            Amount returned by the strategy
        """
        with self._operation("withdraw_from_strategy") as ctx:
            admin = self._require_admin(ctx, admin, proof, [strategy, amount])
            strategy = self._whitelisted(strategy)
            require_positive_amount(amount, "withdraw amount")
            position = self._position(strategy)
            if amount > position.deployed:
                raise InsufficientDeployed(f"deployed {position.deployed} < withdraw {amount}")
            endpoint = self.strategies.resolve(strategy)

            before = self.stable_asset.balance(self.address)
            returned = endpoint.withdraw(amount)
            if not isinstance(returned, int) or returned < 0:
                raise StrategyMismatch(f"strategy returned {returned!r}")
            received = self.stable_asset.balance(self.address) - before
            if received < returned:
                raise StrategyMismatch(f"strategy reported {returned}, vault received {received}")

            decrement = min(returned, position.deployed)
            realized_yield = returned - decrement
            key = DataKey.strategy_position(strategy)
            self.store.set(
                key,
                replace(
                    position,
                    deployed=checked_sub(position.deployed, decrement),
                    total_returned=checked_add(position.total_returned, returned),
                ),
            )
            self._touch(key)
            if realized_yield:
                logger.info(
                    "strategy yield realized",
                    extra={"strategy": strategy, "yield": realized_yield},
                )
            self._emit(
                ctx, TOPIC_WITHDRAW, admin, amount=returned, strategy=strategy, realized_yield=realized_yield
            )
            return returned

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_vault_value(self) -> int:
        """Current NAV: deployed strategy value plus the last RWA valuation."""
        return self.nav.vault_value()

    def get_allocation_ratio(self) -> Tuple[int, int]:
        return self.allocation.ratio(self.gate.require_initialized(self.get_config()))

    def get_config(self) -> Optional[VaultConfig]:
        return self.store.get(DataKey.CONFIG)

    def get_phase(self) -> Phase:
        return self.gate.phase(self.get_config())

    def get_rwa_value(self) -> int:
        return self.nav.rwa_value()

    def get_total_deposits(self) -> int:
        return int(self.store.get(DataKey.TOTAL_DEPOSITS, 0))

    def get_user_balance(self, user: str) -> int:
        return self._user_balance(normalize_address(user))

    def get_claim(self, user: str) -> Optional[ClaimRecord]:
        return self.claims.get(normalize_address(user))

    def get_claim_history(self, user: str) -> Tuple[ClaimRecord, ...]:
        return self.claims.history(normalize_address(user))

    def get_strategies(self) -> Tuple[str, ...]:
        return self.nav.whitelist()

    def get_position(self, strategy: str) -> StrategyPosition:
        return self._position(normalize_address(strategy))

    def get_deployed(self, strategy: str) -> int:
        return self.get_position(strategy).deployed

    def is_whitelisted(self, strategy: str) -> bool:
        return normalize_address(strategy) in self.nav.whitelist()

    def get_nonce(self, principal: str) -> int:
        key = DataKey.nonce(normalize_address(principal))
        # Archived nonces are restored by the guard on use, so report the kept value
        return int(self.store.peek(key, 0))

    def get_buyback_price(self) -> int:
        return self.gate.require_initialized(self.get_config()).buyback_price

    def get_maturity(self) -> int:
        return self.gate.require_initialized(self.get_config()).maturity_timestamp

    def audit(self) -> List[str]:
        """
        Check the accounting invariants against current state.

        Returns:
            Human-readable violations (empty when consistent)
        """
        problems: List[str] = []
        config = self.get_config()
        if config is None:
            return problems
        if config.alloc_rwa_bps + config.alloc_onchain_bps != BASIS_POINTS_PER_UNIT:
            problems.append("allocation does not sum to 10000 bps")

        booked = 0
        for key in self.store.keys(Retention.PERSISTENT):
            if key[0] == "UserBalance" and not self.store.is_archived(key):
                booked += int(self.store.get(key, 0))
        supply = self.claim_token.total_supply()
        if booked != supply:
            problems.append(f"user balances {booked} != claim-token supply {supply}")

        for strategy in self.nav.whitelist():
            key = DataKey.strategy_position(strategy)
            if self.store.is_archived(key):
                continue
            position = self._position(strategy)
            if position.deployed > position.total_transferred:
                problems.append(
                    f"{strategy}: deployed {position.deployed} > transferred {position.total_transferred}"
                )
        return problems
