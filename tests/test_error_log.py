from __future__ import annotations

import itertools
import threading
from datetime import datetime, timedelta

import pytest

from datastore.error_log import ErrorLog


def test_entries_are_timestamped_in_order() -> None:
    log = ErrorLog(clock=lambda: datetime(2024, 1, 1, 9, 30))

    log.append("first")
    log.append("second")

    assert log.entries() == [
        "2024-01-01T09:30:00: first",
        "2024-01-01T09:30:00: second",
    ]


def test_history_is_capped_at_one_hundred_entries() -> None:
    log = ErrorLog()

    for index in range(101):
        log.append(f"error {index}")

    entries = log.entries()
    assert len(entries) == 100
    assert not any(entry.endswith(": error 0") for entry in entries)
    assert entries[0].endswith(": error 1")
    assert entries[-1].endswith(": error 100")


def test_entries_returns_a_copy() -> None:
    log = ErrorLog(capacity=2)
    log.append("kept")

    snapshot = log.entries()
    snapshot.append("not stored")

    assert len(log) == 1


def test_clear_empties_history() -> None:
    log = ErrorLog()
    log.append("boom")

    log.clear()

    assert log.entries() == []


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ErrorLog(capacity=0)


def test_concurrent_appends_never_exceed_capacity() -> None:
    log = ErrorLog(capacity=100)

    def writer(prefix: str) -> None:
        for index in range(250):
            log.append(f"{prefix}-{index}")

    threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(log) == 100


def test_concurrent_entries_are_stored_in_timestamp_order() -> None:
    ticks = itertools.count()
    log = ErrorLog(
        capacity=1000,
        clock=lambda: datetime(2024, 1, 1) + timedelta(microseconds=next(ticks)),
    )

    def writer() -> None:
        for index in range(200):
            log.append(f"error {index}")

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stamps = [entry.rsplit(": error", 1)[0] for entry in log.entries()]
    assert len(stamps) == 800
    assert stamps == sorted(stamps)
