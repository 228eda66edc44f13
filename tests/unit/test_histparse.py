"""
Unit tests for histparse.py

Coverage plan
─────────────
is_start_of_build → build boundary detection, help variants, dev launcher
is_ignored        → every administrative phrase, whitespace, non-matches
is_ask / prompt   → ask detection, help variants, prompt extraction
parse_history     → ordering, ask expansion, variable pairing, trailers,
                    boundary, errors, dialects
resolve_histfile  → HISTFILE / SHELL resolution
"""

from pathlib import Path

import pytest

from histparse import (
    SET_E,
    SHEBANG,
    Shell,
    extract_prompt,
    is_ask,
    is_ignored,
    is_start_of_build,
    parse_history,
    resolve_histfile,
)
from please_errors import MissingResourceError, ParseInconsistencyError
from scriptbuild import Variable


def _zsh(*commands: str) -> str:
    """Build zsh EXTENDED_HISTORY text, oldest command first."""
    return "\n".join(f": {1700000000 + i}:0;{cmd}" for i, cmd in enumerate(commands))


# ─────────────────────────────────────────────────────────────────────────────
# 1. Predicates
# ─────────────────────────────────────────────────────────────────────────────

class TestIsStartOfBuild:

    @pytest.mark.parametrize("line", [
        "please build",
        "please build --help",
        "please build -h",
        "please build   ",
        "python -m please build",
    ])
    def test_finalize_and_help_are_not_the_start(self, line):
        assert not is_start_of_build(line)

    @pytest.mark.parametrize("line", [
        'please build "script-name"',
        "please build ts-jest",
        "please build  deploy",
        "python -m please build deploy",
    ])
    def test_build_with_a_name_is_the_start(self, line):
        assert is_start_of_build(line)

    @pytest.mark.parametrize("line", [
        "please buildx foo",
        "echo please build foo",
        "please list",
        "",
    ])
    def test_other_commands_are_not_the_start(self, line):
        assert not is_start_of_build(line)

    @pytest.mark.parametrize("line", [
        "please build -h foo",
        "please build foo --help",
        "python -m please build --help deploy",
    ])
    def test_help_flag_anywhere_is_not_the_start(self, line):
        assert not is_start_of_build(line)


class TestIsIgnored:

    @pytest.mark.parametrize("line", [
        "please build",
        "please build --help",
        "please build -h",
        "please ask --help",
        "please ask -h",
        "please list",
        "please current",
        "please --help",
        "python -m please list",
        "python -m please current",
        "python -m please build",
        "python -m please ask -h",
    ])
    def test_administrative_commands_are_ignored(self, line):
        assert is_ignored(line)

    def test_extra_whitespace_is_collapsed(self):
        assert is_ignored("please   list")

    @pytest.mark.parametrize("line", [
        "please run deploy",
        "please ask What now?",
        "please build deploy",
        "ls -la",
        "echo please list",
    ])
    def test_regular_commands_are_kept(self, line):
        assert not is_ignored(line)

    @pytest.mark.parametrize("line", [
        "please build -h foo",
        "please build foo --help",
        "please ask -h What now?",
        "please run deploy --help",
        "python -m please ask What --help",
    ])
    def test_help_invocations_with_extra_args_are_ignored(self, line):
        assert is_ignored(line)

    def test_help_flag_outside_please_is_kept(self):
        assert not is_ignored("grep -h foo bar.txt")


class TestIsAsk:

    @pytest.mark.parametrize("line", [
        "please ask How are you doing?",
        'please ask "What is your name?"',
        "please ask",
        "python -m please ask Which env?",
    ])
    def test_ask_invocations(self, line):
        assert is_ask(line)

    @pytest.mark.parametrize("line", [
        "please ask --help",
        "please ask -h",
        "task list",
        "echo ask me anything",
        "please list",
    ])
    def test_non_ask_lines(self, line):
        assert not is_ask(line)

    @pytest.mark.parametrize("line", [
        "please ask -h foo",
        "please ask What now? --help",
    ])
    def test_help_flag_among_prompt_words_is_not_an_ask(self, line):
        assert not is_ask(line)


class TestExtractPrompt:

    def test_strips_outer_double_quotes(self):
        assert extract_prompt('please ask "What is your name?"') == "What is your name?"

    def test_strips_outer_single_quotes(self):
        assert extract_prompt("please ask 'Which env?'") == "Which env?"

    def test_unquoted_words_are_joined_with_single_spaces(self):
        assert extract_prompt("please ask How   are you?") == "How are you?"

    def test_no_words_gives_empty_prompt(self):
        assert extract_prompt("please ask") == ""


# ─────────────────────────────────────────────────────────────────────────────
# 2. parse_history
# ─────────────────────────────────────────────────────────────────────────────

class TestParseHistory:

    def test_single_ask_expands_to_read_and_expression(self):
        history = ': t:0;please ask "What is your name?"'
        lines = parse_history(history, [Variable(value="VAR1", expr="echo $VAR1")])

        assert len(lines) == 4
        assert lines[0] == SHEBANG
        assert lines[1] == SET_E
        assert 'read -p "What is your name? " VAR1' in lines[2]
        assert lines[3] == "echo $VAR1"

    def test_commands_come_out_in_chronological_order(self):
        history = _zsh("please build demo", "cd /tmp", "mkdir out", "ls out", "please build")
        assert parse_history(history, []) == [SHEBANG, SET_E, "cd /tmp", "mkdir out", "ls out"]

    def test_scan_stops_at_the_build_start(self):
        history = _zsh("rm -rf /", "please build demo", "echo hi", "please build")
        lines = parse_history(history, [])
        assert "rm -rf /" not in lines
        assert "please build demo" not in lines
        assert lines == [SHEBANG, SET_E, "echo hi"]

    def test_help_with_extra_args_neither_stops_nor_consumes(self):
        history = _zsh(
            "please build demo",
            "please build -h demo",
            "please ask -h Who?",
            "please ask Who?",
            "please build",
        )
        lines = parse_history(history, [Variable(value="WHO", expr="echo $WHO")])
        assert lines == [SHEBANG, SET_E, 'read -p "Who? " WHO', "echo $WHO"]

    def test_without_build_start_scans_whole_log(self):
        history = _zsh("echo one", "echo two")
        assert parse_history(history, []) == [SHEBANG, SET_E, "echo one", "echo two"]

    def test_variables_pair_with_asks_in_recording_order(self):
        history = _zsh(
            "please build profile",
            "please ask your name?",
            "please ask your age?",
            "please build",
        )
        name_var = Variable(value="NAME", expr='echo "hi $NAME"')
        age_var = Variable(value="AGE", expr='echo "$AGE years"')

        lines = parse_history(history, [name_var, age_var])

        assert lines == [
            SHEBANG,
            SET_E,
            'read -p "your name? " NAME',
            'echo "hi $NAME"',
            'read -p "your age? " AGE',
            'echo "$AGE years"',
        ]

    def test_only_administrative_commands_gives_just_the_header(self):
        history = _zsh(
            "please build demo",
            "please list",
            "please current",
            "please build --help",
            "please build -h",
            "please ask --help",
            "please ask -h",
            "please build",
        )
        lines = parse_history(history, [])

        assert lines == [SHEBANG, SET_E]
        assert "\n".join(lines).splitlines() == ["#!/bin/sh", "", "set -e"]

    @pytest.mark.parametrize("phrase", [
        "please build --help",
        "please build -h",
        "please ask --help",
        "please ask -h",
        "please list",
        "please current",
    ])
    def test_administrative_commands_never_reach_output(self, phrase):
        history = _zsh("please build demo", "echo a", phrase, "echo b", "please build")
        script = "\n".join(parse_history(history, []))
        assert phrase not in script
        assert "echo a" in script and "echo b" in script

    def test_more_asks_than_variables_raises(self):
        history = _zsh("please build demo", "please ask one?", "please ask two?", "please build")
        with pytest.raises(ParseInconsistencyError):
            parse_history(history, [Variable(value="ONE", expr="true")])

    def test_ask_with_no_variables_raises(self):
        with pytest.raises(ParseInconsistencyError):
            parse_history(_zsh("please ask anyone?"), [])

    def test_semicolons_in_commands_are_preserved(self):
        history = _zsh("please build demo", "echo a; echo b", "please build")
        assert parse_history(history, [])[-1] == "echo a; echo b"

    def test_line_without_metadata_yields_empty_command(self):
        history = "\n".join([": 1:0;please build demo", "", ": 2:0;echo hi", ": 3:0;please build"])
        assert parse_history(history, []) == [SHEBANG, SET_E, "", "echo hi"]

    def test_output_is_deterministic(self):
        history = _zsh("please build demo", "please ask where?", "cd $DIR", "please build")
        variables = [Variable(value="DIR", expr="ls $DIR")]
        assert parse_history(history, variables) == parse_history(history, variables)

    def test_bash_dialect_skips_timestamps(self):
        history = "\n".join([
            "#1700000000",
            "please build demo",
            "#1700000001",
            "echo a; echo b",
            "please list",
            "please build",
        ])
        lines = parse_history(history, [], Shell.BASH)
        assert lines == [SHEBANG, SET_E, "echo a; echo b"]


# ─────────────────────────────────────────────────────────────────────────────
# 3. Shell & history file resolution
# ─────────────────────────────────────────────────────────────────────────────

class TestResolveHistfile:

    def test_histfile_env_wins(self, tmp_path):
        env = {"HISTFILE": str(tmp_path / "hist"), "SHELL": "/bin/bash"}
        assert resolve_histfile(env, tmp_path) == tmp_path / "hist"

    @pytest.mark.parametrize("shell, name", [
        ("/bin/zsh", ".zsh_history"),
        ("/usr/local/bin/zsh", ".zsh_history"),
        ("/bin/bash", ".bash_history"),
    ])
    def test_inferred_from_shell(self, tmp_path, shell, name):
        assert resolve_histfile({"SHELL": shell}, tmp_path) == tmp_path / name

    def test_missing_shell_raises(self, tmp_path):
        with pytest.raises(MissingResourceError):
            resolve_histfile({}, tmp_path)

    def test_unsupported_shell_raises(self, tmp_path):
        with pytest.raises(MissingResourceError):
            resolve_histfile({"SHELL": "/usr/bin/fish"}, tmp_path)

    def test_shell_from_path(self):
        assert Shell.from_path("/bin/zsh") is Shell.ZSH
        assert Shell.from_path("/bin/bash") is Shell.BASH

    def test_default_histfile(self):
        assert Shell.BASH.default_histfile(Path("/home/u")) == Path("/home/u/.bash_history")
