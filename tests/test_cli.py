"""Tests for the auxiliary CLI commands."""

from __future__ import annotations

from pathlib import Path

import pytest

from nclxc.cli import NCLXCModalCLI
from nclxc.cli._common import _confirm_host_block
from nclxc.cli.config import ConfigShowCLI, InitCLI
from nclxc.cli.host import DoctorCLI
from nclxc.cli.install import CheckCLI, DestroyCLI
from nclxc.cli.main import _count_verbose
from nclxc.config import InstallerConfig, load, save
from nclxc.errors import UserAbort


def _write_cfg(tmp_path: Path, interfaces_file: Path) -> Path:
    cfg = InstallerConfig()
    cfg.network.interfaces_path = str(interfaces_file)
    path = tmp_path / 'nclxc.toml'
    save(path, cfg)
    return path


def test_config_init_and_show(tmp_path: Path, capsys) -> None:
    path = tmp_path / 'cfg' / 'nclxc.toml'
    assert InitCLI.main(argv=False, config=str(path)) == 0
    assert load(path).container.hostname == 'nextcloud'
    assert InitCLI.main(argv=False, config=str(path)) == 2
    capsys.readouterr()
    assert ConfigShowCLI.main(argv=False, config=str(path)) == 0
    out = capsys.readouterr().out
    assert '[container]' in out
    assert 'hostname = "nextcloud"' in out


def test_check_reports_each_result(fake_pve, tmp_path, interfaces_file, capsys) -> None:
    cfg_path = _write_cfg(tmp_path, interfaces_file)
    rc = CheckCLI.main(argv=False, config=str(cfg_path), storage='local-lvm')
    out = capsys.readouterr().out
    assert rc == 0
    assert '✅ bridge' in out
    assert '✅ storage' in out
    assert '✅ template' in out
    assert 'template storage - local' in out
    assert fake_pve.cmds('pct') == []


def test_check_fails_on_small_pool(fake_pve, tmp_path, interfaces_file, capsys) -> None:
    fake_pve.storages['local']['avail_gib'] = 15
    cfg_path = _write_cfg(tmp_path, interfaces_file)
    rc = CheckCLI.main(argv=False, config=str(cfg_path), storage='local')
    assert rc == 1
    assert '❌ storage' in capsys.readouterr().out


def test_destroy_existing_and_missing(fake_pve, capsys) -> None:
    fake_pve.containers = {120}
    assert DestroyCLI.main(argv=False, ctid=120, yes=True) == 0
    assert 'destroyed' in capsys.readouterr().out
    assert fake_pve.containers == set()
    assert DestroyCLI.main(argv=False, ctid=120, yes=True) == 0
    assert 'not present' in capsys.readouterr().out


def test_destroy_accepts_positional_ctid(fake_pve) -> None:
    fake_pve.containers = {130}
    rc = NCLXCModalCLI.main(argv=['destroy', '130', '--yes'], _noexit=True)
    rc = 0 if rc is None else int(rc)
    assert rc == 0
    assert fake_pve.cmds('pct', 'destroy') == [['pct', 'destroy', '130', '--force']]


def test_destroy_requires_ctid(fake_pve) -> None:
    assert DestroyCLI.main(argv=False, yes=True) == 2
    assert fake_pve.calls == []


def test_doctor(monkeypatch, capsys) -> None:
    monkeypatch.setattr('nclxc.host.which', lambda cmd: None)
    monkeypatch.setattr('nclxc.cli.host.host_is_proxmox', lambda: False)
    assert DoctorCLI.main(argv=False) == 2
    assert 'pct' in capsys.readouterr().out
    monkeypatch.setattr('nclxc.host.which', lambda cmd: f'/usr/sbin/{cmd}')
    monkeypatch.setattr('nclxc.cli.host.host_is_proxmox', lambda: True)
    monkeypatch.setattr('nclxc.cli.host.pve_version', lambda: 'pve-manager/8.2.4')
    assert DoctorCLI.main(argv=False) == 0
    assert 'pve-manager/8.2.4' in capsys.readouterr().out


def test_confirm_host_block_requires_yes_noninteractive(monkeypatch) -> None:
    monkeypatch.setattr('sys.stdin.isatty', lambda: False)
    with pytest.raises(RuntimeError, match='Re-run with --yes'):
        _confirm_host_block(yes=False, purpose='Create container')


def test_confirm_host_block_abort(monkeypatch) -> None:
    monkeypatch.setattr('sys.stdin.isatty', lambda: True)
    monkeypatch.setattr('builtins.input', lambda prompt='': 'no')
    with pytest.raises(UserAbort):
        _confirm_host_block(yes=False, purpose='Create container')


def test_count_verbose() -> None:
    assert _count_verbose(['install', '-vv']) == 2
    assert _count_verbose(['install', '--verbose', '-v']) == 2
    assert _count_verbose(['install', '--yes']) == 0


def test_destroy_dry_run_reports_without_destroying(fake_pve, capsys) -> None:
    fake_pve.containers = {140}
    assert DestroyCLI.main(argv=False, ctid=140, yes=True, dry_run=True) == 0
    out = capsys.readouterr().out
    assert 'DRYRUN' in out
    assert 'not present' not in out
    assert fake_pve.containers == {140}
    assert fake_pve.calls == []
