import threading

import pytest

from cldi.account import Account
from cldi.bench import BlockTracker, run_bench
from cldi.context import Runtime
from cldi.crypto import get_crypto
from cldi.errors import BenchTimeoutError, RPCError
from cldi.model import BlockHeader, CompactBlock, SystemConfig


class StubController:
    """Chain stub that produces a new block per height poll once transactions arrive."""

    def __init__(self, start_height: int = 10, block_sizes=(), fail_sends: int = 0) -> None:
        self.crypto = get_crypto("eth")
        self.height = start_height
        self.block_sizes = list(block_sizes)
        self.fail_sends = fail_sends
        self.sent = []
        self.blocks = {}
        self.system_config_calls = 0
        self._lock = threading.Lock()

    def clone(self):
        return self

    def get_system_config(self):
        self.system_config_calls += 1
        return SystemConfig(version=0, chain_id=b"\x01" * 32)

    def send_raw(self, raw):
        with self._lock:
            if self.fail_sends:
                self.fail_sends -= 1
                raise RPCError(-1, "dup transaction")
            self.sent.append(raw)
            return raw.transaction_hash

    def get_block_number(self, for_pending=False):
        with self._lock:
            if self.block_sizes and self.sent:
                self.height += 1
                size = self.block_sizes.pop(0)
                self.blocks[self.height] = CompactBlock(
                    header=BlockHeader(height=self.height, timestamp=self.height * 3000),
                    tx_hashes=[bytes([i]) * 32 for i in range(size)],
                )
            return self.height

    def get_block_by_number(self, block_number):
        return self.blocks.get(block_number, CompactBlock(header=BlockHeader(height=block_number)))


@pytest.fixture
def runtime():
    rt = Runtime(max_workers=4)
    yield rt
    rt.shutdown()


@pytest.fixture
def signer():
    return Account.generate(get_crypto("eth"))


def test_zero_count_returns_without_polling(runtime, signer) -> None:
    controller = StubController()
    sleeps = []

    report = run_bench(controller, signer, runtime, 0, sleep=sleeps.append)

    assert report.requested == 0
    assert report.tx_hashes == []
    assert report.polls == 0
    assert sleeps == []
    assert controller.sent == []


def test_bench_tracks_blocks_until_all_finalized(runtime, signer) -> None:
    controller = StubController(start_height=10, block_sizes=[3, 2])
    progress = []

    report = run_bench(controller, signer, runtime, 5, on_block=progress.append, sleep=lambda _s: None)

    assert len(controller.sent) == 5
    assert len(report.tx_hashes) == 5
    assert controller.system_config_calls == 1
    assert report.finalized == 5
    assert [entry.height for entry in progress] == [11, 12]
    assert [entry.finalized for entry in progress] == [3, 5]
    heights = [entry.height for entry in progress]
    # the height read before submission is never counted
    assert 10 not in heights


def test_bench_sets_valid_until_block_relative_to_start(runtime, signer) -> None:
    controller = StubController(start_height=20, block_sizes=[2])

    run_bench(controller, signer, runtime, 2, sleep=lambda _s: None)

    assert {raw.transaction.valid_until_block for raw in controller.sent} == {20 + 95}
    assert len({raw.transaction.nonce for raw in controller.sent}) == 2


def test_bench_raises_submission_failure_after_join(runtime, signer) -> None:
    controller = StubController(fail_sends=1)

    with pytest.raises(RPCError):
        run_bench(controller, signer, runtime, 3, sleep=lambda _s: None)

    assert len(controller.sent) == 2


def test_bench_timeout(runtime, signer) -> None:
    controller = StubController(start_height=5, block_sizes=[1])
    now = [0.0]

    def sleep(seconds: float) -> None:
        now[0] += seconds

    with pytest.raises(BenchTimeoutError):
        run_bench(
            controller,
            signer,
            runtime,
            3,
            interval=1.0,
            timeout=3.0,
            sleep=sleep,
            clock=lambda: now[0],
        )


def test_tracker_waits_for_next_height(runtime) -> None:
    controller = StubController(start_height=7)
    tracker = BlockTracker(controller, runtime, 8)

    assert tracker.poll_once() == []
    assert tracker.next_height == 8
