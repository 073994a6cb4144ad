from __future__ import annotations

import json
import logging
import stat

import pytest

from pyhyprconfig import cli

BINDS_OUTPUT = "bind\n\tmodmask: 64\n\tkey: q\n\tdispatcher: exec\n\targ: kitty\n"


def _settings(tmp_path, binary: str) -> str:
    path = tmp_path / "settings.toml"
    path.write_text(
        f'hyprctl_binary = "{binary}"\n'
        f'hyprland_config_path = "{tmp_path / "hyprland.conf"}"\n'
        "command_timeout_ms = 2000\n"
    )
    return str(path)


def _script(tmp_path, body: str) -> str:
    path = tmp_path / "fake-hyprctl"
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


def test_get_option(tmp_path, capsys):
    cfg = _settings(tmp_path, _script(tmp_path, 'echo "int: 7"'))
    assert cli.main(["--config", cfg, "get", "general:gaps_in"]) == 0
    assert capsys.readouterr().out.strip() == "7"


def test_get_falls_back_to_default_without_hyprctl(tmp_path, capsys):
    cfg = _settings(tmp_path, str(tmp_path / "missing"))
    assert cli.main(["--config", cfg, "get", "general:gaps_in"]) == 0
    assert capsys.readouterr().out.strip() == "5"


def test_backend_down_exit_code(tmp_path, capsys):
    cfg = _settings(tmp_path, str(tmp_path / "missing"))
    assert cli.main(["--config", cfg, "version"]) == 2
    assert "Hyprctl command not found" in capsys.readouterr().err


def test_validation_error_exit_code(tmp_path, capsys):
    cfg = _settings(tmp_path, _script(tmp_path, "echo ok"))
    assert cli.main(["--config", cfg, "set", "general:gaps_in", "-1"]) == 1
    assert "Invalid value for 'general:gaps_in'" in capsys.readouterr().err


def test_set_with_save(tmp_path):
    cfg = _settings(tmp_path, _script(tmp_path, "echo ok"))
    assert cli.main(["--config", cfg, "set", "general:gaps_in", "9", "--save"]) == 0
    assert "gaps_in = 9" in (tmp_path / "hyprland.conf").read_text()


def test_binds_json(tmp_path, capsys):
    script = _script(tmp_path, f"printf '{BINDS_OUTPUT}'")
    cfg = _settings(tmp_path, script)
    assert cli.main(["--config", cfg, "binds", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data == [
        {
            "modifiers": ["SUPER"],
            "key": "q",
            "dispatcher": "exec",
            "args": "kitty",
            "bind_type": "bind",
        }
    ]
    assert cli.main(["--config", cfg, "binds"]) == 0
    assert capsys.readouterr().out.strip() == "bind = SUPER, q, exec, kitty"


def test_rules(tmp_path, capsys):
    cfg = _settings(tmp_path, _script(tmp_path, "echo '1, monitor:DP-1'"))
    assert cli.main(["--config", cfg, "rules", "workspace"]) == 0
    assert capsys.readouterr().out.strip() == "1, monitor:DP-1"


def test_paths_json(tmp_path, capsys):
    cfg = _settings(tmp_path, "hyprctl")
    assert cli.main(["--config", cfg, "paths", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["settings_file"] == cfg
    assert data["hyprland_config"] == str(tmp_path / "hyprland.conf")
    assert isinstance(data["candidates"], list)


def test_write_and_backup(tmp_path, capsys):
    cfg = _settings(tmp_path, "hyprctl")
    source = tmp_path / "source.conf"
    source.write_text("general {\n}\n")
    target = tmp_path / "out" / "hyprland.conf"
    assert cli.main(["--config", cfg, "write", str(target), "--from", str(source)]) == 0
    assert target.read_text() == "general {\n}\n"

    capsys.readouterr()
    assert cli.main(["--config", cfg, "backup", str(target)]) == 0
    backup = capsys.readouterr().out.strip()
    assert backup.startswith(str(target) + ".backup.")


def test_write_from_missing_source_fails(tmp_path, capsys):
    cfg = _settings(tmp_path, "hyprctl")
    args = ["--config", cfg, "write", str(tmp_path / "t.conf"), "--from", str(tmp_path / "nope")]
    assert cli.main(args) == 1
    assert "was not found" in capsys.readouterr().err


def test_config_init_and_show(tmp_path, capsys):
    path = tmp_path / "fresh" / "settings.toml"
    assert cli.main(["--config", str(path), "config", "init"]) == 0
    assert capsys.readouterr().out.strip() == str(path)
    assert path.exists()
    assert cli.main(["--config", str(path), "config", "show"]) == 0
    assert 'hyprctl_binary = "hyprctl"' in capsys.readouterr().out


def test_requires_command():
    with pytest.raises(SystemExit):
        cli.main([])


def test_configure_logging(monkeypatch):
    root = logging.getLogger("pyhyprconfig")
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", logging.NOTSET)
    cli.configure_logging(False)
    assert root.handlers == []
    monkeypatch.setenv("HYPRCONFIG_DEBUG", "1")
    cli.configure_logging(False)
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
