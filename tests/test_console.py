from cldi import cli
from cldi.console import run_console
from cldi.context import Context, Runtime
from cldi.crypto import get_crypto


class StubController:
    def __init__(self) -> None:
        self.calls = 0

    def get_block_number(self, for_pending=False):
        self.calls += 1
        return 99


def _context() -> Context:
    return Context(
        crypto=get_crypto("sm"),
        controller=StubController(),
        executor=None,
        evm=None,
        runtime=Runtime(max_workers=1),
    )


def _feed(lines):
    pending = list(lines)

    def read_line(_prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read_line


def test_console_dispatches_lines_through_the_tree(capsys) -> None:
    context = _context()

    run_console(cli.build_root(), context, read_line=_feed(["block-number", "", "block-number"]))

    assert context.controller.calls == 2
    assert capsys.readouterr().out.count("99") == 2


def test_console_survives_errors_and_exits_on_request(capsys) -> None:
    context = _context()

    run_console(
        cli.build_root(),
        context,
        read_line=_feed(["get-balance 0x12", "send 0x" + "01" * 20, 'call "unterminated', "exit", "block-number"]),
    )

    captured = capsys.readouterr()
    assert "no account is loaded" in captured.err
    assert context.controller.calls == 0


def test_console_reports_bad_global_flags_and_keeps_running(tmp_path, capsys) -> None:
    broken = tmp_path / "broken"
    broken.mkdir()
    (broken / "config.yaml").write_text("cli: [unclosed\n", encoding="utf-8")
    context = _context()
    context.settings = cli.load_settings(overrides={"data_dir": str(tmp_path)}, env={})

    run_console(
        cli.build_root(),
        context,
        read_line=_feed([f"-u ../evil --data-dir {tmp_path}", f"--data-dir {broken}", "block-number"]),
    )

    captured = capsys.readouterr()
    assert "invalid user name" in captured.err
    assert "Invalid YAML" in captured.err
    assert context.controller.calls == 1
