from __future__ import annotations

import asyncio
import json
import os
import stat

import pytest

from pyhyprconfig.errors import (
    BackendNotRunningError,
    CommandNotFoundError,
    CommandTimeoutError,
    ExecutionFailedError,
    InvalidOptionError,
    ParseError,
)
from pyhyprconfig.hyprctl import (
    HyprCtl,
    HyprlandKeybind,
    decode_modmask,
    parse_binds,
    parse_layer_rules,
    parse_option_value,
    parse_window_rules,
    parse_workspace_rules,
)

BINDS_OUTPUT = """\
bind
\tmodmask: 64
\tsubmap:
\tkey: q
\tkeycode: 0
\tcatchall: false
\tdispatcher: exec
\targ: kitty

binde
\tmodmask: 65
\tkey: Right
\tdispatcher: resizeactive
\targ: 10 0

bind
\tmodmask: 64
\tkey:
\tdispatcher: exec
\targ: nothing

bindm
\tmodmask: nonsense
\tkey: mouse:272
\tdispatcher: movewindow
\targ:
"""


def _script(tmp_path, body: str) -> str:
    path = tmp_path / "fake-hyprctl"
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


def test_decode_modmask():
    assert decode_modmask(64) == ["SUPER"]
    assert decode_modmask(65) == ["SUPER", "SHIFT"]
    assert decode_modmask(77) == ["SUPER", "ALT", "CTRL", "SHIFT"]
    assert decode_modmask(0) == []
    assert decode_modmask(2) == []


def test_keybind_renderings():
    bind = HyprlandKeybind(["SUPER", "SHIFT"], "q", "exec", "kitty")
    assert bind.to_config_line() == "bind = SUPER + SHIFT, q, exec, kitty"
    assert bind.to_keyword_value() == "SUPER SHIFT,q,exec,kitty"
    assert bind.display_string() == "SUPER + SHIFT + q → exec [kitty]"
    bare = HyprlandKeybind([], "F1", "killactive")
    assert bare.to_config_line() == "bind = , F1, killactive"
    assert bare.display_string() == "F1 → killactive"


def test_parse_option_value_prefixes():
    cmd = "hyprctl getoption general:gaps_in"
    assert parse_option_value("int: 5\nset: true\n", cmd) == "5"
    assert parse_option_value("set: true\n  float: 0.5\n", cmd) == "0.5"
    assert parse_option_value("str: \nset: false\n", cmd) == ""
    assert parse_option_value("custom type: 5 5 5 5\n", cmd) == "5 5 5 5"
    assert parse_option_value("set: true\nweird value\n", cmd) == "weird value"


def test_parse_option_value_errors():
    with pytest.raises(InvalidOptionError) as info:
        parse_option_value("no such option\n", "hyprctl getoption foo:bar")
    assert info.value.option == "foo:bar"
    with pytest.raises(ParseError):
        parse_option_value("set: true\n\n", "hyprctl getoption foo")


def test_parse_binds():
    binds = parse_binds(BINDS_OUTPUT)
    assert binds == [
        HyprlandKeybind(["SUPER"], "q", "exec", "kitty", "bind"),
        HyprlandKeybind(["SUPER", "SHIFT"], "Right", "resizeactive", "10 0", "binde"),
        HyprlandKeybind([], "mouse:272", "movewindow", None, "bindm"),
    ]
    assert parse_binds("") == []


def test_parse_window_rules():
    clients = [
        {"class": "kitty", "title": "zsh"},
        {"class": "firefox", "title": "Mozilla Firefox"},
        {"class": "kitty", "title": "long title"},
        "junk",
    ]
    assert parse_window_rules(json.dumps(clients)) == [
        "class:^(firefox)$",
        "class:^(kitty)$",
        "title:^(Mozilla Firefox)$",
        "title:^(long title)$",
    ]
    assert parse_window_rules("") == []
    with pytest.raises(ParseError):
        parse_window_rules("{not json")
    with pytest.raises(ParseError):
        parse_window_rules('{"class": "kitty"}')


def test_parse_layer_and_workspace_rules():
    layers = (
        "Monitor DP-1:\n"
        "\tLayer level 2 (top):\n"
        "\t\tLayer 55d0: xywh: 0 0 1920 30, namespace: waybar, pid: 10\n"
        "\t\tLayer 55d1: xywh: 0 0 300 300, namespace: rofi, pid: 11\n"
        "\t\tLayer 55d2: xywh: 0 0 1920 30, namespace: waybar, pid: 12\n"
    )
    assert parse_layer_rules(layers) == [
        "layerrule = blur, rofi",
        "layerrule = blur, waybar",
    ]
    assert parse_workspace_rules("  1, monitor:DP-1 \n\n2, default:true\n") == [
        "1, monitor:DP-1",
        "2, default:true",
    ]


@pytest.mark.asyncio
async def test_run_returns_stdout(tmp_path):
    ctl = HyprCtl(_script(tmp_path, 'echo "int: 7"; echo "set: true"'))
    assert await ctl.get_option("general:gaps_in") == "7"


@pytest.mark.asyncio
async def test_timeout_kills_child(tmp_path):
    ctl = HyprCtl(_script(tmp_path, "exec sleep 5"), timeout_ms=1)
    with pytest.raises(CommandTimeoutError) as info:
        await ctl.get_option("general:gaps_in")
    assert info.value.timeout_ms == 1
    assert info.value.command == ctl.command_line("getoption", "general:gaps_in")
    assert info.value.is_retryable


@pytest.mark.asyncio
async def test_missing_binary(tmp_path):
    ctl = HyprCtl(str(tmp_path / "does-not-exist"))
    with pytest.raises(CommandNotFoundError):
        await ctl.get_version()
    assert await ctl.is_running() is False


@pytest.mark.asyncio
async def test_nonzero_exit_and_backend_down(tmp_path):
    failing = HyprCtl(_script(tmp_path, 'echo "bad things" >&2; exit 3'))
    with pytest.raises(ExecutionFailedError) as info:
        await failing.get_version()
    assert info.value.stderr.strip() == "bad things"

    down = HyprCtl(
        _script(tmp_path, 'echo "HYPRLAND_INSTANCE_SIGNATURE not set" >&2; exit 1')
    )
    with pytest.raises(BackendNotRunningError):
        await down.get_version()


@pytest.mark.asyncio
async def test_keyword_reply_must_be_ok(tmp_path):
    ok = HyprCtl(_script(tmp_path, 'echo ok'))
    await ok.set_option("general:gaps_in", "5")

    bad_path = tmp_path / "bad"
    bad_path.mkdir()
    rejected = HyprCtl(_script(bad_path, 'echo "invalid value"'))
    with pytest.raises(ExecutionFailedError):
        await rejected.set_option("general:gaps_in", "x")


@pytest.mark.asyncio
async def test_mutations_send_expected_arguments(tmp_path):
    log = tmp_path / "args.log"
    ctl = HyprCtl(_script(tmp_path, f"echo \"$@\" >> '{log}'; echo ok"))
    await ctl.add_keybind(HyprlandKeybind(["SUPER"], "q", "exec", "kitty"))
    await ctl.remove_keybind(["SUPER", "SHIFT"], "q")
    await ctl.add_window_rule("float, class:^(pavucontrol)$")
    await ctl.dispatch("workspace", "2")
    assert log.read_text().splitlines() == [
        "keyword bind SUPER,q,exec,kitty",
        "keyword unbind SUPER SHIFT,q",
        "keyword windowrule float, class:^(pavucontrol)$",
        "dispatch workspace 2",
    ]


def test_command_line_quotes_arguments():
    ctl = HyprCtl("hyprctl")
    assert ctl.command_line("keyword", "unbind", "SUPER SHIFT,q") == (
        "hyprctl keyword unbind 'SUPER SHIFT,q'"
    )


@pytest.mark.asyncio
async def test_get_all_options_omits_failures(tmp_path):
    body = (
        'case "$2" in\n'
        '  general:gaps_in) echo "int: 3";;\n'
        '  *) echo "no such option";;\n'
        "esac"
    )
    ctl = HyprCtl(_script(tmp_path, body))
    assert await ctl.get_all_options() == {"general:gaps_in": "3"}


@pytest.mark.asyncio
async def test_get_all_options_raises_when_nothing_answers(tmp_path):
    ctl = HyprCtl(str(tmp_path / "does-not-exist"))
    with pytest.raises(CommandNotFoundError):
        await ctl.get_all_options()


@pytest.mark.asyncio
async def test_cancelled_run_kills_child(tmp_path):
    pidfile = tmp_path / "child.pid"
    ctl = HyprCtl(_script(tmp_path, f"echo $$ > '{pidfile}'; exec sleep 5"))
    task = asyncio.create_task(ctl.run("version"))
    for _ in range(500):
        if pidfile.exists() and pidfile.read_text().strip():
            break
        await asyncio.sleep(0.01)
    pid = int(pidfile.read_text())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
