#!/usr/bin/env python3
"""
please.py - Turn what you just did at the shell into a reusable script

Workflow
--------
    please build deploy-site          # start recording
    git pull && npm run build         # ...do the thing
    please ask "Which environment?"   # prompt for a value, recorded as a variable
    please build                      # compile history since `please build deploy-site`

    please deploy-site                # run it later (same as `please run deploy-site`)

Everything typed between the two `please build` calls is read back out of the
shell history file and written to `<state_dir>/scripts/<name>.sh`.
`please ask` lines become `read -p` prompts. The bookkeeping invocations
(`please list`, `please current`, ...) are left out.

State lives under $PLEASE_STATE_DIR, $XDG_STATE_HOME/please or
~/.local/state/please, in that order of preference.
"""

from __future__ import annotations

import argparse
import os
import re
import shlex
import subprocess
import sys

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.rule import Rule
from rich.table import Table
from rich.text import Text as RichText
from rich.theme import Theme

from please_config import Config
from please_errors import PleaseError, ScriptIOError, ScriptRunError
from script_editor import ScriptEditorApp
from scriptbuild import Script, ScriptBuilder, get_scripts
from sh_lexer import highlight_script

__version__ = "0.1.0"

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "script": "bold #C678DD",
    "context": "#5C6370",
    "rule": "#4B5263",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)
# Script previews go to stdout so they can be piped
out_console = Console(theme=CUSTOM_THEME)

COMMANDS = ("run", "build", "list", "current", "edit", "reset", "ask", "delete")

VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        kwargs.setdefault("file", sys.stderr)
        kwargs_clean = {k: v for k, v in kwargs.items() if k not in ["sep", "end", "flush"]}
        print(string, *args, **kwargs_clean)


# ============================================================================
# COMMANDS
# ============================================================================


def cmd_run(config: Config, script: str) -> None:
    parsed = Script.parse(script, config)
    _console_print(f"Okey, running [script]{parsed.name}[/script] for you!")
    parsed.run()


def cmd_build(config: Config, script: str | None) -> None:
    if script:
        builder = ScriptBuilder.build_new(script, config)
        builder.start_build()
        _console_print(f"Started building script [script]{builder.script_name}[/script] ^^")
        _console_print(
            "[context]Run your commands, use `please ask` for prompts, "
            "then `please build` to finish.[/context]"
        )
        return

    builder = ScriptBuilder.load_current(config)
    built = builder.build()
    _console_print(f"[success]Script [script]{built.name}[/script] saved to {built.path}[/success]")
    _console_print(f"[context]Run it with `please {built.name}`[/context]")


def cmd_list(config: Config) -> None:
    scripts = get_scripts(config)
    if not scripts:
        _console_print("Looks like you don't have any scripts yet!")
        _console_print("You can start creating one with `please build <script name>` ^^")
        return

    table = Table.grid(padding=(0, 2))
    table.add_column(style="script")
    table.add_column(style="context")
    for script in scripts:
        table.add_row(script.name, str(script.path))

    _console_print("Here are your scripts: ^^")
    out_console.print(table)


def cmd_current(config: Config) -> None:
    builder = ScriptBuilder.load_current(config)
    num_prompts = len(builder.variables)
    _console_print(
        Rule(
            f"[title]{builder.script_name}[/title] "
            f"[context]({num_prompts} prompt{'s' if num_prompts != 1 else ''})[/context]",
            style="rule",
        )
    )
    _console_print("This is what your current script looks like: ^^\n")
    out_console.print(highlight_script(builder.render_script()))


def cmd_edit(config: Config, script: str) -> None:
    parsed = Script.parse(script, config)
    content = parsed.read()

    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if editor:
        try:
            result = subprocess.run([*shlex.split(editor), str(parsed.path)])
        except OSError as e:
            raise ScriptIOError(f"Could not start editor `{editor}`: {e}") from e
        if result.returncode != 0:
            raise ScriptRunError(f"Editor `{editor}` exited with status {result.returncode}")
        _console_print(f"[success]Saved [script]{parsed.name}[/script][/success]")
        return

    changed = ScriptEditorApp(parsed.name, content).run()
    if changed is None:
        _console_print("[warning]No changes made.[/warning]")
        return
    parsed.write(changed)
    _console_print(f"[success]Saved [script]{parsed.name}[/script][/success]")


def cmd_reset(config: Config) -> None:
    builder = ScriptBuilder.load_current(config)
    builder.delete_build()
    _console_print(f"Build of [script]{builder.script_name}[/script] deleted ^^")


def _prompt_var_name() -> str:
    """→ Asks until the answer is a usable shell variable name"""
    while True:
        var_name = Prompt.ask("Please enter variable name", console=console).strip()
        if VAR_NAME_RE.match(var_name):
            return var_name
        _console_print(
            f"[warning]`{escape(var_name)}` is not a valid shell variable name "
            "(letters, digits and `_`, not starting with a digit)[/warning]"
        )


def cmd_ask(config: Config, words: list[str]) -> None:
    """
    Records a prompt for the current build.

    The `please ask ...` line itself lands in shell history; this only has to
    remember which variable it fills and what to run with it.
    """
    builder = ScriptBuilder.load_current(config)
    if words:
        _console_print(f"[context]Prompt: {' '.join(words)}[/context]")

    try:
        var_name = _prompt_var_name()
        var_expr = Prompt.ask(
            f"Please enter the expression for the variable [info]{var_name}[/info]", console=console
        ).strip()
        var_value = Prompt.ask(
            f"Please enter the value for the variable [info]{var_name}[/info]", console=console
        ).strip()
    except (KeyboardInterrupt, EOFError):
        _console_print(
            "[warning]No variable recorded. This `please ask` is already in history, "
            "so finishing the build will fail; `please reset` to start over[/warning]"
        )
        raise

    builder.add_var(var_name, var_expr)
    # Persist before running so history and build file stay in step either way
    builder.save_replace()

    if not var_expr:
        return
    try:
        result = subprocess.run(["sh", "-c", var_expr], env={**os.environ, var_name: var_value})
    except OSError as e:
        raise ScriptIOError(f"Could not run `{var_expr}`: {e}") from e
    if result.returncode != 0:
        _console_print(f"[warning]`{var_expr}` exited with status {result.returncode}[/warning]")


def cmd_delete(config: Config, script: str, yes: bool = False) -> None:
    parsed = Script.parse(script, config)
    parsed.ensure_exists()
    if not yes and not Confirm.ask(
        f"Delete script [script]{parsed.name}[/script]?", console=console, default=False
    ):
        _console_print("[warning]Nothing deleted.[/warning]")
        return
    parsed.delete()
    _console_print(f"Script [script]{parsed.name}[/script] deleted ^^")


# ============================================================================
# ARGUMENT PARSING & MAIN
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="please",
        description="Build reusable shell scripts from your shell history",
        epilog="`please <script>` is short for `please run <script>`.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    p = sub.add_parser("run", help="Run a script")
    p.add_argument("script", help="Name of the script you want to run")

    p = sub.add_parser("build", help="Start building a script, or finish the current build")
    p.add_argument("script", nargs="?", default=None, help="Name of the script you want to create")

    sub.add_parser("list", help="List created scripts")
    sub.add_parser("current", help="Show what the current script looks like")

    p = sub.add_parser("edit", help="Open a created script in an editor")
    p.add_argument("script", help="Name of the script")

    sub.add_parser("reset", help="Reset script build")

    p = sub.add_parser("ask", help="Add a prompt to your script")
    p.add_argument("words", nargs="*", help="The question to ask when the script runs")

    p = sub.add_parser("delete", help="Delete a script")
    p.add_argument("script", help="Name of the script")
    p.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")

    return parser


def dispatch(config: Config, args: argparse.Namespace) -> None:
    if args.command == "run":
        cmd_run(config, args.script)
    elif args.command == "build":
        cmd_build(config, args.script)
    elif args.command == "list":
        cmd_list(config)
    elif args.command == "current":
        cmd_current(config)
    elif args.command == "edit":
        cmd_edit(config, args.script)
    elif args.command == "reset":
        cmd_reset(config)
    elif args.command == "ask":
        cmd_ask(config, args.words)
    elif args.command == "delete":
        cmd_delete(config, args.script, args.yes)


def main(argv: list[str] | None = None) -> int:
    """→ Main: parses arguments, builds the config and runs one command"""
    argv = sys.argv[1:] if argv is None else list(argv)
    if argv and argv[0] not in COMMANDS and not argv[0].startswith("-"):
        argv = ["run", *argv]

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return 2

    try:
        config = Config.from_env()
        dispatch(config, args)
    except PleaseError as e:
        _console_print(RichText(f"Error: {e}", style="error"))
        return 1
    except (KeyboardInterrupt, EOFError):
        _console_print(RichText("Aborted", style="error"))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
