import pytest

from cldi.account import Account
from cldi.context import Context, Runtime
from cldi.crypto import get_crypto
from cldi.errors import SigningError


def _context(**kwargs) -> Context:
    return Context(crypto=get_crypto("sm"), controller=None, executor=None, evm=None, **kwargs)


def test_current_account_fails_before_any_network_call() -> None:
    context = _context(user="alice")

    with pytest.raises(SigningError, match="alice"):
        context.current_account()


def test_set_account_rejects_other_algorithm() -> None:
    context = _context()

    with pytest.raises(SigningError):
        context.set_account("bob", Account.generate(get_crypto("eth")))

    account = Account.generate(get_crypto("sm"))
    context.set_account("bob", account)
    assert context.current_account() is account
    assert context.user == "bob"


def test_runtime_block_on_returns_result_and_propagates_errors() -> None:
    with Runtime(max_workers=2) as runtime:
        assert runtime.block_on(lambda a, b: a + b, 2, 3) == 5
        with pytest.raises(ZeroDivisionError):
            runtime.block_on(lambda: 1 / 0)


def test_runtime_join_waits_for_all_then_raises_first_failure() -> None:
    finished = []

    def task(index: int) -> int:
        if index == 1:
            raise ValueError("task 1 failed")
        finished.append(index)
        return index

    with Runtime(max_workers=4) as runtime:
        futures = [runtime.spawn(task, index) for index in range(4)]
        with pytest.raises(ValueError, match="task 1"):
            runtime.join(futures)

    assert sorted(finished) == [0, 2, 3]


def test_runtime_join_preserves_order() -> None:
    with Runtime(max_workers=4) as runtime:
        futures = [runtime.spawn(lambda value=value: value * 2) for value in range(5)]
        assert runtime.join(futures) == [0, 2, 4, 6, 8]
