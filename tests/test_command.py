from types import SimpleNamespace

import pytest

from cldi.command import CommandNode, DelegateHandler, build, subcommand_dest
from cldi.errors import CommandConfigError, CommandError, DispatchError, format_error_chain


def _recording_tree(calls):
    def record(label):
        def handler(args, ctx):
            calls.append((label, getattr(args, "height", None), ctx))

        return handler

    return (
        CommandNode("cli")
        .arg("-u", "--user")
        .handler(DelegateHandler(prepare=record("cli")))
        .subcommands(
            [
                CommandNode("block-number").handler(record("block-number")),
                CommandNode("block")
                .subcommands([CommandNode("at").arg("height", type=int).handler(record("block at"))]),
            ]
        )
    )


def test_dispatch_runs_every_handler_on_the_path_and_stops_at_the_leaf() -> None:
    calls = []
    tree = _recording_tree(calls)
    ctx = SimpleNamespace()

    tree.exec(ctx, ["-u", "alice", "block", "at", "12"])

    assert calls == [("cli", 12, ctx), ("block at", 12, ctx)]


def test_delegate_without_subcommand_runs_fallback_only() -> None:
    calls = []
    root = CommandNode("cli").handler(
        DelegateHandler(fallback=lambda args, ctx: calls.append("fallback"))
    ).subcommand(CommandNode("peer-count").handler(lambda args, ctx: calls.append("peer-count")))

    root.exec(None, [])

    assert calls == ["fallback"]


def test_terminal_handler_does_not_visit_children() -> None:
    calls = []
    root = (
        CommandNode("cli")
        .handler(lambda args, ctx: calls.append("root"))
        .subcommand(CommandNode("child").handler(lambda args, ctx: calls.append("child")))
    )

    root.exec(None, ["child"])

    assert calls == ["root"]


def test_unknown_child_name_is_a_dispatch_error() -> None:
    root = CommandNode("cli").subcommand(CommandNode("known").handler(lambda args, ctx: None))
    args = root.build_parser().parse_args(["known"])
    setattr(args, subcommand_dest(0), "missing")

    with pytest.raises(DispatchError, match="missing"):
        root.exec_with(args, None)


def test_duplicate_child_names_are_rejected() -> None:
    root = CommandNode("cli").subcommand(build("send"))

    with pytest.raises(CommandConfigError):
        root.subcommand(build("send"))


def test_rename_subcommand_updates_grammar_and_dispatch() -> None:
    calls = []
    root = (
        CommandNode("cli")
        .subcommands(
            [
                CommandNode("first").handler(lambda args, ctx: calls.append("first")),
                CommandNode("old").handler(lambda args, ctx: calls.append("renamed")),
                CommandNode("last").handler(lambda args, ctx: calls.append("last")),
            ]
        )
        .rename_subcommand("old", "new")
    )

    root.exec(None, ["new"])

    assert calls == ["renamed"]
    assert list(root.children) == ["first", "new", "last"]
    assert root.get_subcommand("new").name == "new"
    assert root.get_subcommand("old") is None


def test_rename_missing_subcommand_leaves_tree_unchanged() -> None:
    root = CommandNode("cli").subcommands([build("a"), build("b")])

    with pytest.raises(CommandConfigError, match="not found"):
        root.rename_subcommand("zzz", "c")
    with pytest.raises(CommandConfigError):
        root.rename_subcommand("a", "b")

    assert list(root.children) == ["a", "b"]


def test_handler_failure_is_wrapped_with_command_name() -> None:
    def boom(args, ctx):
        raise ValueError("bad input")

    root = CommandNode("cli").subcommand(CommandNode("send").handler(boom))

    with pytest.raises(CommandError) as excinfo:
        root.exec(None, ["send"])

    assert excinfo.value.command == "cli"
    assert str(excinfo.value) == "failed to exec subcommand `send`"
    inner = excinfo.value.__cause__
    assert isinstance(inner, CommandError) and inner.command == "send"
    assert isinstance(inner.__cause__, ValueError)


def test_every_level_adds_its_name_to_the_failure() -> None:
    def boom(args, ctx):
        raise ValueError("bad input")

    root = CommandNode("cli").subcommand(
        CommandNode("admin").subcommand(CommandNode("set-admin").handler(boom))
    )

    with pytest.raises(CommandError) as excinfo:
        root.exec(None, ["admin", "set-admin"])

    assert format_error_chain(excinfo.value) == (
        "failed to exec subcommand `admin`: failed to exec subcommand `set-admin`: "
        "failed to exec command `set-admin`: bad input"
    )


def test_children_mapping_is_read_only() -> None:
    root = CommandNode("cli").subcommand(build("a"))

    with pytest.raises(TypeError):
        root.children["b"] = build("b")  # type: ignore[index]


def test_walk_yields_paths_depth_first() -> None:
    tree = _recording_tree([])

    paths = [path for path, _node in tree.walk()]

    assert paths == [("cli",), ("cli", "block-number"), ("cli", "block"), ("cli", "block", "at")]


def test_invalid_command_names_are_rejected() -> None:
    with pytest.raises(CommandConfigError):
        CommandNode("--flag")
