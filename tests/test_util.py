from __future__ import annotations

import pytest

from nclxc.util import CmdError, CmdResult, shell_join
from nclxc.util import run_cmd as _run_cmd


def test_shell_join_quotes() -> None:
    cmd = ["echo", "a b", "c'd"]
    s = shell_join(cmd)
    assert "'a b'" in s
    assert s.startswith("echo ")


def test_run_cmd_success_and_failure() -> None:
    ok = _run_cmd(["bash", "-c", "printf ok"], check=True, capture=True)
    assert ok.code == 0
    assert ok.stdout == "ok"
    bad = _run_cmd(["bash", "-c", "exit 7"], check=False, capture=True)
    assert bad.code == 7
    with pytest.raises(CmdError) as exc_info:
        _run_cmd(["bash", "-c", "exit 9"], check=True, capture=True)
    assert exc_info.value.exit_code == 9


def test_run_cmd_passes_input_text() -> None:
    res = _run_cmd(["cat"], input_text="hello", check=True, capture=True)
    assert res.stdout == "hello"


def test_run_cmd_sudo_prefix_when_non_root(monkeypatch) -> None:
    calls = []

    class P:
        returncode = 0
        stdout = ""
        stderr = ""

    monkeypatch.setattr("nclxc.util.os.geteuid", lambda: 1000)
    monkeypatch.setattr(
        "nclxc.util.subprocess.run",
        lambda cmd, **kwargs: (calls.append(cmd) or P()),
    )
    _run_cmd(["pct", "list"], sudo=True, check=True, capture=True)
    assert calls[0][:3] == ["sudo", "-n", "pct"]


def test_cmd_error_exit_code_for_signalled_child() -> None:
    err = CmdError(["pct", "start", "100"], CmdResult(-9, "", "killed"))
    assert err.exit_code == 1
