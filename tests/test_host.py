"""Tests for host tool checks and architecture mapping."""

from __future__ import annotations

from nclxc.host import check_commands, host_is_proxmox, pve_version
from nclxc.runtime import host_arch, pct_exec_cmd
from nclxc.util import CmdResult


def test_check_commands(monkeypatch) -> None:
    present = {'pct', 'pvesm'}
    monkeypatch.setattr(
        'nclxc.host.which',
        lambda cmd: f'/usr/sbin/{cmd}' if cmd in present else None,
    )
    missing, missing_opt = check_commands()
    assert missing == ['pveam', 'pvesh']
    assert missing_opt == ['pveversion']


def test_host_is_proxmox(monkeypatch) -> None:
    monkeypatch.setattr('nclxc.host.Path.is_dir', lambda self: True)
    assert host_is_proxmox() is True
    monkeypatch.setattr('nclxc.host.Path.is_dir', lambda self: False)
    assert host_is_proxmox() is False


def test_pve_version(monkeypatch) -> None:
    monkeypatch.setattr('nclxc.host.which', lambda cmd: '/usr/bin/pveversion')
    monkeypatch.setattr(
        'nclxc.host.run_cmd',
        lambda cmd, **kwargs: CmdResult(0, 'pve-manager/8.2.4 (running kernel: 6.8)\n', ''),
    )
    assert pve_version().startswith('pve-manager/8.2.4')
    monkeypatch.setattr('nclxc.host.which', lambda cmd: None)
    assert pve_version() == ''


def test_host_arch() -> None:
    assert host_arch('x86_64') == 'amd64'
    assert host_arch('aarch64') == 'arm64'
    assert host_arch('riscv64') == 'riscv64'


def test_pct_exec_cmd() -> None:
    assert pct_exec_cmd(105, 'ip', '-4') == ['pct', 'exec', '105', '--', 'ip', '-4']
