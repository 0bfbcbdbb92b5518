#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Event-log analytics for operators."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .constants import (
    TOPIC_CLAIM,
    TOPIC_DEPLOY,
    TOPIC_DEPOSIT,
    TOPIC_ORACLE,
    TOPIC_REDEEM,
    TOPIC_WITHDRAW,
)
from .events import VaultEvent

# Payload field carrying the headline amount of each topic
FLOW_FIELD = {
    TOPIC_DEPOSIT: "amount",
    TOPIC_REDEEM: "payout",
    TOPIC_CLAIM: "amount",
    TOPIC_ORACLE: "value",
    TOPIC_DEPLOY: "amount",
    TOPIC_WITHDRAW: "amount",
}

COLUMNS = ["index", "topic", "principal", "ledger", "timestamp", "value"]


def events_frame(events: Iterable[VaultEvent]) -> pd.DataFrame:
    """One row per event; ``value`` stays a Python int column (amounts exceed int64)."""
    rows = []
    values = []
    for event in events:
        field = FLOW_FIELD.get(event.topic)
        value = event.data.get(field) if field else None
        rows.append(
            {
                "index": event.index,
                "topic": event.topic,
                "principal": event.principal,
                "ledger": event.ledger,
                "timestamp": event.timestamp,
            }
        )
        values.append(int(value) if value is not None else None)
    df = pd.DataFrame(rows, columns=COLUMNS[:-1])
    # Built separately so large ints never pass through float64
    df["value"] = pd.Series(values, index=df.index, dtype=object)
    df["date"] = pd.to_datetime(df["timestamp"], unit="s", utc=True, errors="coerce")
    return df.sort_values("index").reset_index(drop=True)


def _exact_sum(values: pd.Series) -> int:
    return sum(int(v) for v in values if v is not None and not pd.isna(v))


def flow_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Per-topic event count, summed headline amount and last activity."""
    if df.empty:
        return pd.DataFrame(columns=["topic", "events", "total", "last_seen"])
    summary = (
        df.groupby("topic", sort=True)
        .agg(
            events=("index", "count"),
            total=("value", _exact_sum),
            last_seen=("date", "max"),
        )
        .reset_index()
    )
    # Oracle reports overwrite each other; a sum is meaningless there
    latest_oracle = df[df["topic"] == TOPIC_ORACLE]
    if not latest_oracle.empty:
        summary.loc[summary["topic"] == TOPIC_ORACLE, "total"] = latest_oracle.iloc[-1]["value"]
    return summary


def net_stable_flow(df: pd.DataFrame) -> int:
    """Stable asset deposited minus stable asset paid out on redemption."""
    deposits = _exact_sum(df.loc[df["topic"] == TOPIC_DEPOSIT, "value"])
    payouts = _exact_sum(df.loc[df["topic"] == TOPIC_REDEEM, "value"])
    return deposits - payouts


def export_summary(df: pd.DataFrame, path: Optional[Path]) -> pd.DataFrame:
    summary = flow_summary(df)
    if path is not None:
        summary.to_csv(path, index=False)
    return summary
