"""Strategy endpoint registry: resolves whitelisted addresses to endpoints."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

from ..errors import UnknownStrategy
from ..input_validation import normalize_address
from ..ledgers import Journaled
from .base import Strategy
from .erc4626 import ERC4626Strategy
from .simulated import SimulatedStrategy

STRATEGY_TYPES: Dict[str, Type[Strategy]] = {
    "simulated": SimulatedStrategy,
    "erc4626": ERC4626Strategy,
}


class StrategyRegistry:
    """Address -> endpoint lookup.

    Binding an endpoint here does not whitelist it; only the admin
    ``add_strategy`` operation does.
    """

    def __init__(self) -> None:
        self._endpoints: Dict[str, Strategy] = {}

    def __contains__(self, address: str) -> bool:
        return normalize_address(address) in self._endpoints

    def __iter__(self) -> Iterator[Strategy]:
        return iter(list(self._endpoints.values()))

    def register(self, strategy: Strategy) -> Strategy:
        self._endpoints[normalize_address(strategy.address)] = strategy
        return strategy

    def resolve(self, address: str) -> Strategy:
        endpoint = self._endpoints.get(normalize_address(address))
        if endpoint is None:
            raise UnknownStrategy(f"no endpoint bound for {address}")
        return endpoint

    def journaled(self) -> List[Journaled]:
        return [s for s in self._endpoints.values() if isinstance(s, Journaled)]


def _resolve_env(value: Any) -> Any:
    if isinstance(value, str):
        resolved = os.path.expandvars(value)
        if resolved.startswith("$"):
            return ""
        return resolved
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


def build_strategy(entry: Dict[str, object], **context: Any) -> Tuple[Optional[Strategy], Optional[str]]:
    """
    Build a strategy endpoint from a config entry.

    ``simulated`` entries need ``address`` plus ``stable`` and ``vault_address``
    in the context; ``erc4626`` entries need ``vault``, ``asset``, ``receiver``
    plus ``w3`` and ``signer`` in the context.

    Returns:
        (strategy, None) on success, (None, reason) otherwise
    """
    resolved = _resolve_env(entry)
    strategy_type = str(resolved.get("type", "")).lower()
    cls = STRATEGY_TYPES.get(strategy_type)
    if cls is None:
        return None, f"unknown_type:{strategy_type or 'unset'}"

    try:
        if cls is SimulatedStrategy:
            strategy = SimulatedStrategy(
                str(resolved["address"]), context["stable"], context["vault_address"]
            )
        else:
            strategy = ERC4626Strategy(context["w3"], resolved, context["signer"])
    except Exception as exc:
        return None, f"strategy_init_error:{type(exc).__name__}"
    return strategy, None


__all__ = [
    "ERC4626Strategy",
    "STRATEGY_TYPES",
    "SimulatedStrategy",
    "Strategy",
    "StrategyRegistry",
    "build_strategy",
]
