"""Batch send-and-track workflow behind the ``bench`` command."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .account import Account
from .context import Runtime
from .crypto import FixedBytes
from .errors import BenchTimeoutError
from .rpc_client import ControllerBehaviour
from .sender import DEFAULT_QUOTA, send_tx

logger = logging.getLogger(__name__)

DEFAULT_VALID_UNTIL_OFFSET = 95

Payload = Tuple[bytes, bytes, bytes]


def random_payload() -> Payload:
    """Random ``(to, data, value)`` so every benchmark transaction is unique."""

    return os.urandom(20), os.urandom(32), os.urandom(32)


@dataclass
class BlockProgress:
    height: int
    tx_count: int
    finalized: int
    elapsed_seconds: int


@dataclass
class BenchReport:
    requested: int
    tx_hashes: List[FixedBytes] = field(default_factory=list)
    blocks: List[BlockProgress] = field(default_factory=list)
    finalized: int = 0
    polls: int = 0


class BlockTracker:
    """Polls the controller and counts transactions in newly produced blocks.

    ``next_height`` only moves past heights that have been fetched; while the
    node has not produced it yet the tracker waits.
    """

    def __init__(
        self,
        controller: ControllerBehaviour,
        runtime: Runtime,
        next_height: int,
        *,
        on_block: Optional[Callable[[BlockProgress], None]] = None,
    ) -> None:
        self.controller = controller
        self.runtime = runtime
        self.next_height = next_height
        self.finalized = 0
        self.on_block = on_block
        self._begin_ms: int | None = None

    def poll_once(self) -> List[BlockProgress]:
        current = self.controller.get_block_number(False)
        if current < self.next_height:
            return []

        heights = range(self.next_height, current + 1)
        futures = [
            self.runtime.spawn(self.controller.clone().get_block_by_number, height) for height in heights
        ]
        blocks = self.runtime.join(futures)

        progress: List[BlockProgress] = []
        for height, block in zip(heights, blocks):
            timestamp = block.header.timestamp
            if self._begin_ms is None:
                self._begin_ms = timestamp
            tx_count = len(block.tx_hashes)
            self.finalized += tx_count
            entry = BlockProgress(
                height=block.header.height or height,
                tx_count=tx_count,
                finalized=self.finalized,
                elapsed_seconds=max(0, (timestamp - self._begin_ms) // 1000),
            )
            progress.append(entry)
            if self.on_block is not None:
                self.on_block(entry)
        self.next_height = current + 1
        return progress


def run_bench(
    controller: ControllerBehaviour,
    signer: Account,
    runtime: Runtime,
    count: int,
    *,
    quota: int = DEFAULT_QUOTA,
    valid_until_block: int | None = None,
    interval: float = 1.0,
    timeout: float | None = None,
    on_block: Optional[Callable[[BlockProgress], None]] = None,
    make_payload: Callable[[], Payload] = random_payload,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> BenchReport:
    """Submit ``count`` random transactions concurrently and wait until they land.

    Submission failures are raised once every submission task has finished;
    transactions already accepted stay submitted. ``timeout`` bounds the
    tracking phase; ``None`` waits indefinitely.
    """

    report = BenchReport(requested=count)
    if count <= 0:
        return report

    start_at = controller.get_block_number(False)
    if valid_until_block is None:
        valid_until_block = start_at + DEFAULT_VALID_UNTIL_OFFSET
    system_config = controller.get_system_config()

    futures = []
    for _ in range(count):
        to, data, value = make_payload()
        futures.append(
            runtime.spawn(
                send_tx,
                controller.clone(),
                signer,
                to,
                data,
                value,
                quota=quota,
                valid_until_block=valid_until_block,
                system_config=system_config,
            )
        )
    report.tx_hashes = runtime.join(futures)
    logger.info("Sending %d txs done", count)

    tracker = BlockTracker(controller, runtime, start_at + 1, on_block=on_block)
    deadline = clock() + timeout if timeout is not None else None
    while tracker.finalized < count:
        if deadline is not None and clock() >= deadline:
            raise BenchTimeoutError(
                f"only {tracker.finalized} of {count} transactions were observed within {timeout}s"
            )
        sleep(interval)
        report.polls += 1
        report.blocks.extend(tracker.poll_once())
    report.finalized = tracker.finalized
    return report
