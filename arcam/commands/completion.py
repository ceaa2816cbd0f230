"""Shell completion scripts and the helper they call for dynamic values."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass

from arcam.cli import CompletionArgs, ShellCompletionType, build_parser
from arcam.constants import APP_NAME
from arcam.context import Context
from arcam.process import run_output

_CONTAINER_COMMANDS = frozenset({"shell", "exec", "exists", "logs", "kill"})
_CONFIG_COMMANDS = frozenset({"start", "config"})
_SHELL_SUFFIXES = (("/fish", "fish"), ("/bash", "bash"), ("/zsh", "zsh"))


@dataclass(frozen=True)
class _Option:
    flags: tuple[str, ...]
    help: str
    takes_value: bool


@dataclass(frozen=True)
class _Command:
    name: str
    aliases: tuple[str, ...]
    help: str
    options: tuple[_Option, ...]

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    @property
    def completes(self) -> ShellCompletionType | None:
        if self.name in _CONTAINER_COMMANDS:
            return ShellCompletionType.CONTAINER
        if self.name in _CONFIG_COMMANDS:
            return ShellCompletionType.CONFIG
        return None


def _options(parser: argparse.ArgumentParser) -> tuple[_Option, ...]:
    return tuple(
        _Option(tuple(action.option_strings), action.help or "", action.nargs != 0)
        for action in parser._actions
        if action.option_strings and action.help != argparse.SUPPRESS
    )


def _commands(parser: argparse.ArgumentParser) -> list[_Command]:
    sub = next(a for a in parser._actions if isinstance(a, argparse._SubParsersAction))
    commands = []
    # commands registered without help (such as init) stay hidden
    for choice in sub._choices_actions:
        name = choice.dest
        subparser = sub.choices[name]
        aliases = tuple(
            alias for alias, other in sub.choices.items() if other is subparser and alias != name
        )
        commands.append(_Command(name, aliases, choice.help or "", _options(subparser)))
    return commands


def _flags(options: Iterable[_Option]) -> list[str]:
    return [flag for option in options for flag in option.flags]


def _dynamic_call(kind: ShellCompletionType) -> str:
    return f"{APP_NAME} completion {kind.value}"


def _bash(globals_: tuple[_Option, ...], commands: list[_Command]) -> str:
    func = f"_{APP_NAME}"
    all_names = [name for command in commands for name in command.names]
    top_words = " ".join([*_flags(globals_), *all_names])

    lines = [
        func + "() {",
        '    local cur="${COMP_WORDS[COMP_CWORD]}"',
        '    local cmd="" i',
        "    for ((i = 1; i < COMP_CWORD; i++)); do",
        '        case "${COMP_WORDS[i]}" in',
        "            " + "|".join(all_names) + ') cmd="${COMP_WORDS[i]}"; break ;;',
        "        esac",
        "    done",
        "    local words",
        '    case "$cmd" in',
        '        "") words="' + top_words + '" ;;',
    ]
    for command in commands:
        words = " ".join(_flags(command.options))
        if command.completes is not None:
            words += " $(" + _dynamic_call(command.completes) + " 2>/dev/null)"
        lines.append("        " + "|".join(command.names) + ') words="' + words + '" ;;')
    lines += [
        "    esac",
        '    COMPREPLY=($(compgen -W "$words" -- "$cur"))',
        "}",
        f"complete -F {func} {APP_NAME}",
    ]
    return "\n".join(lines) + "\n"


def _zsh(globals_: tuple[_Option, ...], commands: list[_Command]) -> str:
    header = f"#compdef {APP_NAME}\nautoload -U +X bashcompinit && bashcompinit\n"
    return header + _bash(globals_, commands)


def _fish_quote(text: str) -> str:
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _fish_option(prefix: str, option: _Option) -> str:
    parts = [prefix]
    for flag in option.flags:
        if flag.startswith("--"):
            parts.append(f"-l {flag[2:]}")
        else:
            parts.append(f"-s {flag[1:]}")
    if option.takes_value:
        parts.append("-r")
    if option.help:
        parts.append(f"-d {_fish_quote(option.help)}")
    return " ".join(parts)


def _fish(globals_: tuple[_Option, ...], commands: list[_Command]) -> str:
    base = f"complete -c {APP_NAME}"
    top = f"{base} -n __fish_use_subcommand"
    lines = [f"{base} -f"]
    lines += [_fish_option(top, option) for option in globals_]

    for command in commands:
        for name in command.names:
            lines.append(f"{top} -a {name} -d {_fish_quote(command.help)}")

    for command in commands:
        cond = f"{base} -n {_fish_quote('__fish_seen_subcommand_from ' + ' '.join(command.names))}"
        lines += [_fish_option(cond, option) for option in command.options]
        if command.completes is not None:
            lines.append(f"{cond} -a {_fish_quote('(' + _dynamic_call(command.completes) + ')')}")
    return "\n".join(lines) + "\n"


def _static_words(
    globals_: tuple[_Option, ...], commands: list[_Command]
) -> dict[str, list[str]]:
    words = {"": [*_flags(globals_), *(n for c in commands for n in c.names)]}
    for command in commands:
        for name in command.names:
            words[name] = _flags(command.options)
    return words


def _single_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _elvish(globals_: tuple[_Option, ...], commands: list[_Command]) -> str:
    lines = [f"set edit:completion:arg-completer[{APP_NAME}] = {{|@words|", "    var opts = ["]
    for key, words in _static_words(globals_, commands).items():
        items = " ".join(_single_quote(word) for word in words)
        lines.append(f"        &{_single_quote(key)}=[{items}]")
    lines += [
        "    ]",
        "    var cmd = ''",
        "    for w $words[1..] {",
        "        if (has-key $opts $w) {",
        "            set cmd = $w",
        "            break",
        "        }",
        "    }",
        "    all $opts[$cmd]",
        "}",
    ]
    return "\n".join(lines) + "\n"


def _powershell(globals_: tuple[_Option, ...], commands: list[_Command]) -> str:
    lines = [
        f"Register-ArgumentCompleter -Native -CommandName {_single_quote(APP_NAME)} -ScriptBlock {{",
        "    param($wordToComplete, $commandAst, $cursorPosition)",
        "    $opts = @{",
    ]
    for key, words in _static_words(globals_, commands).items():
        items = ", ".join(_single_quote(word) for word in words)
        lines.append(f"        {_single_quote(key)} = @({items})")
    lines += [
        "    }",
        "    $cmd = ''",
        "    foreach ($element in ($commandAst.CommandElements | Select-Object -Skip 1)) {",
        "        $text = $element.ToString()",
        "        if ($text -ne '' -and $opts.ContainsKey($text)) { $cmd = $text; break }",
        "    }",
        '    $opts[$cmd] | Where-Object { $_ -like "$wordToComplete*" } | ForEach-Object {',
        "        [System.Management.Automation.CompletionResult]::new("
        "$_, $_, 'ParameterValue', $_)",
        "    }",
        "}",
    ]
    return "\n".join(lines) + "\n"


_GENERATORS = {
    "bash": _bash,
    "zsh": _zsh,
    "fish": _fish,
    "elvish": _elvish,
    "powershell": _powershell,
}


def detect_shell() -> str:
    """Return the user's shell from SHELL if completions can be generated for it."""
    shell = os.environ.get("SHELL")
    if shell is not None:
        for suffix, name in _SHELL_SUFFIXES:
            if shell.endswith(suffix):
                return name
    raise RuntimeError(
        "This shell is unsupported, if this is a mistake set the shell explicitly "
        "using the argument"
    )


def generate_completion(shell: str) -> str:
    """Return the completion script for ``shell``."""
    generator = _GENERATORS.get(shell)
    if generator is None:
        raise ValueError(f"Unsupported shell {shell!r}")
    parser = build_parser()
    return generator(_options(parser), _commands(parser))


def shell_completion_generation(args: CompletionArgs) -> str:
    """Write the completion script to stdout, refusing to write it to a terminal."""
    if sys.stdout.isatty():
        print("This command writes a lot of text, please pipe it into a file")
        raise SystemExit(1)

    shell = args.shell if args.shell is not None else detect_shell()
    script = generate_completion(shell)
    print(script, end="")
    return script


def shell_completion_helper(ctx: Context, args: CompletionArgs) -> list[str]:
    """Print the configs or running containers used by completion scripts."""
    match args.complete:
        case ShellCompletionType.CONFIG:
            entries = [
                "@" + entry.name.removesuffix(".toml")
                for entry in sorted(ctx.config_dir().iterdir())
                if entry.name.endswith(".toml")
            ]
            for entry in entries:
                print(entry)
            return entries
        case ShellCompletionType.CONTAINER:
            argv = ctx.engine.command(
                "container", "ls", "--filter", f"label={APP_NAME}", "--format", "{{.Names}}"
            )
            result = run_output(argv, logging.DEBUG)
            if result.returncode != 0:
                return []
            stdout = result.stdout.decode("utf-8", errors="replace")
            print(stdout, end="")
            return stdout.splitlines()
    raise ValueError("No completion type given")