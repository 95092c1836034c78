"""Shell completion scripts generated from the finished command tree."""

from __future__ import annotations

import argparse
from typing import Dict, List

from ..command import CommandNode

SHELLS = ("bash", "zsh", "fish")


def _completion_table(root: CommandNode) -> Dict[str, List[str]]:
    """Map each command path (without the program name) to its candidate words."""

    table: Dict[str, List[str]] = {}
    for path, node in root.walk():
        key = " ".join(path[1:])
        table[key] = [*node.children, *node.option_strings(), "-h", "--help"]
    return table


def bash_script(root: CommandNode) -> str:
    prog = root.name
    func = "_" + prog.replace("-", "_")
    cases = []
    for key, words in _completion_table(root).items():
        cases.append(f'        "{key}") opts="{" ".join(words)}" ;;')
    case_block = "\n".join(cases)
    return f"""{func}() {{
    local cur path word opts
    cur="${{COMP_WORDS[COMP_CWORD]}}"
    path=""
    for word in "${{COMP_WORDS[@]:1:COMP_CWORD-1}}"; do
        case "$word" in
            -*) ;;
            *) path="${{path:+$path }}$word" ;;
        esac
    done
    case "$path" in
{case_block}
        *) opts="" ;;
    esac
    COMPREPLY=( $(compgen -W "$opts" -- "$cur") )
}}
complete -o default -F {func} {prog}
"""


def zsh_script(root: CommandNode) -> str:
    # zsh loads bash completion functions through bashcompinit
    return "autoload -U +X bashcompinit && bashcompinit\n" + bash_script(root)


def fish_script(root: CommandNode) -> str:
    prog = root.name
    func = "__" + prog.replace("-", "_")
    lines = [
        f"function {func}_path",
        "    set -l words (commandline -opc)",
        "    set -e words[1]",
        "    set -l path",
        "    for word in $words",
        "        string match -q -- '-*' $word; or set path $path $word",
        "    end",
        "    string join ' ' -- $path",
        "end",
        "",
        f"function {func}_at",
        f"    set -l path ({func}_path)",
        "    test \"$path\" = \"$argv[1]\"",
        "end",
        "",
        f"complete -c {prog} -f",
    ]
    for key, words in _completion_table(root).items():
        lines.append(f"complete -c {prog} -n '{func}_at \"{key}\"' -a '{' '.join(words)}'")
    return "\n".join(lines) + "\n"


def render(root: CommandNode, shell: str) -> str:
    if shell == "bash":
        return bash_script(root)
    if shell == "zsh":
        return zsh_script(root)
    if shell == "fish":
        return fish_script(root)
    raise ValueError(f"unsupported shell: {shell}")


def completions_cmd(root: CommandNode) -> CommandNode:
    """Build the ``completions`` command for ``root``; attach it after every other child."""

    def cmd_completions(args: argparse.Namespace, _ctx: object) -> None:
        print(render(root, args.shell), end="")

    return (
        CommandNode("completions")
        .about("Generate completions for current shell")
        .arg("shell", choices=SHELLS)
        .handler(cmd_completions)
    )
