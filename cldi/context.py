"""Per-invocation state handed to every command handler."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from .account import Account
from .crypto import CryptoProvider
from .errors import SigningError
from .rpc_client import ControllerBehaviour, EvmBehaviour, ExecutorBehaviour

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_WORKERS = 32


class Runtime:
    """Thread-pool executor that lets synchronous handlers drive RPC tasks."""

    def __init__(self, max_workers: int = DEFAULT_WORKERS) -> None:
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="cldi-rt"
            )
        return self._executor

    def spawn(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        return self._pool().submit(fn, *args, **kwargs)

    def block_on(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` on the pool and wait for its result (re-raising failures)."""

        return self.spawn(fn, *args, **kwargs).result()

    def join(self, futures: Iterable["Future[T]"]) -> List[T]:
        """Wait for every future, then return results in submission order.

        All tasks are allowed to finish before the first failure is raised.
        """

        pending = list(futures)
        wait(pending)
        return [future.result() for future in pending]

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.shutdown()


@dataclass
class Context:
    """Mutable state for one CLI invocation.

    Handlers receive the context one at a time from the dispatcher; tasks
    spawned on :attr:`runtime` get cloned clients, never the context itself.
    """

    crypto: CryptoProvider
    controller: ControllerBehaviour
    executor: ExecutorBehaviour
    evm: EvmBehaviour
    runtime: Runtime = field(default_factory=Runtime)
    account: Optional[Account] = None
    user: Optional[str] = None
    wallet: Any = None
    settings: Any = None

    def current_account(self) -> Account:
        """Return the signing account or fail before any network call."""

        if self.account is None:
            who = f" for user `{self.user}`" if self.user else ""
            raise SigningError(
                f"no account is loaded{who}; create one with `account create <user>` "
                "or select one with `-u <user>` / `account login <user>`"
            )
        return self.account

    def set_account(self, user: str | None, account: Account | None) -> None:
        if account is not None and account.crypto.name != self.crypto.name:
            raise SigningError(
                f"account `{user}` uses `{account.crypto.name}` keys but `{self.crypto.name}` is active"
            )
        self.user = user
        self.account = account
