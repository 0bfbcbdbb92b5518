#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Abstract strategy endpoint interface for deployed vault capital."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Strategy(ABC):
    address: str

    @abstractmethod
    def deploy(self, amount: int) -> int:
        """Put ``amount`` (already transferred to ``address``) to work; return the amount accepted."""

    @abstractmethod
    def withdraw(self, amount: int) -> int:
        """Return up to ``amount`` to the vault's stable balance; return the amount sent back."""

    @abstractmethod
    def get_deployed_value(self) -> int:
        """Current value held by the strategy, yield included."""
