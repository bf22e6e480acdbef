"""Fake Proxmox VE host used to exercise nclxc without a hypervisor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

GIB_KIB = 1024 * 1024

INTERFACES = """\
auto lo
iface lo inet loopback

auto vmbr0
iface vmbr0 inet static
        address 10.0.0.2/24
        gateway 10.0.0.1
        bridge-ports eno1
"""


class FakeProc:
    def __init__(self, returncode: int = 0, stdout: str = '', stderr: str = ''):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def _contains(cmd: list[str], seq: tuple[str, ...]) -> bool:
    n = len(seq)
    return any(tuple(cmd[i : i + n]) == seq for i in range(len(cmd) - n + 1))


@dataclass
class FakePVE:
    storages: dict[str, dict] = field(
        default_factory=lambda: {
            'local': {'type': 'dir', 'status': 'active', 'avail_gib': 40, 'vztmpl': True},
            'local-lvm': {'type': 'lvmthin', 'status': 'active', 'avail_gib': 200, 'vztmpl': False},
            'nfs-old': {'type': 'nfs', 'status': 'inactive', 'avail_gib': 0, 'vztmpl': True},
        }
    )
    templates: list[str] = field(
        default_factory=lambda: [
            'debian-11-standard_11.7-1_amd64.tar.zst',
            'debian-12-standard_12.2-1_amd64.tar.zst',
            'debian-12-standard_12.12-1_amd64.tar.zst',
            'debian-12-standard_12.7-1_amd64.tar.zst',
            'debian-12-turnkey-nextcloud_18.0-1_amd64.tar.gz',
            'ubuntu-24.04-standard_24.04-2_amd64.tar.zst',
        ]
    )
    cached: set[tuple[str, str]] = field(default_factory=set)
    next_id: int = 105
    containers: set[int] = field(default_factory=set)
    ip: str = '10.0.0.77'
    ip_after: int = 0
    failures: list[tuple[tuple[str, ...], int]] = field(default_factory=list)
    calls: list[list[str]] = field(default_factory=list)
    inputs: list[tuple[list[str], str | None]] = field(default_factory=list)
    ip_queries: int = 0

    def fail_on(self, *seq: str, code: int = 1) -> None:
        self.failures.append((tuple(seq), code))

    def cmds(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def execs(self, ctid: int) -> list[list[str]]:
        return [
            c[4:]
            for c in self.calls
            if c[:2] == ['pct', 'exec'] and c[2] == str(ctid) and c[3] == '--'
        ]

    def _pvesm_status(self, cmd: list[str]) -> FakeProc:
        lines = [
            'Name             Type     Status           Total            Used       Available        %'
        ]
        only_vztmpl = _contains(cmd, ('-content', 'vztmpl'))
        for name, info in self.storages.items():
            if only_vztmpl and not info['vztmpl']:
                continue
            avail = info['avail_gib'] * GIB_KIB
            total = avail + 10 * GIB_KIB
            lines.append(
                f'{name:<16} {info["type"]:<8} {info["status"]:<8} {total:>16} {total - avail:>16} {avail:>16}   12.50%'
            )
        return FakeProc(0, '\n'.join(lines) + '\n')

    def __call__(self, cmd, **kwargs) -> FakeProc:
        cmd = list(cmd)
        if cmd[:2] == ['sudo', '-n']:
            cmd = cmd[2:]
        self.calls.append(cmd)
        self.inputs.append((cmd, kwargs.get('input')))
        for seq, code in self.failures:
            if _contains(cmd, seq):
                return FakeProc(code, '', f'simulated failure: {" ".join(seq)}')
        head = cmd[:2]
        if head == ['pvesm', 'status']:
            return self._pvesm_status(cmd)
        if head == ['pveam', 'available']:
            section = {'turnkey': 'turnkeylinux'}
            out = [
                f'{section.get("turnkey") if "turnkey" in t else "system":<15} {t}'
                for t in self.templates
            ]
            return FakeProc(0, '\n'.join(out) + '\n')
        if head == ['pveam', 'list']:
            storage = cmd[2]
            out = ['NAME' + ' ' * 50 + 'SIZE']
            out += [f'{s}:vztmpl/{t}   120.29MB' for s, t in sorted(self.cached) if s == storage]
            return FakeProc(0, '\n'.join(out) + '\n')
        if head == ['pveam', 'download']:
            self.cached.add((cmd[2], cmd[3]))
            return FakeProc(0, 'downloading...\n')
        if cmd[:3] == ['pvesh', 'get', '/cluster/nextid']:
            return FakeProc(0, f'{self.next_id}\n')
        if head == ['pct', 'create']:
            self.containers.add(int(cmd[2]))
            self.next_id += 1
            return FakeProc(0, '')
        if head == ['pct', 'status']:
            if int(cmd[2]) in self.containers:
                return FakeProc(0, 'status: running\n')
            return FakeProc(2, '', f"Configuration file 'nodes/pve/lxc/{cmd[2]}.conf' does not exist\n")
        if head == ['pct', 'start']:
            return FakeProc(0, '')
        if head == ['pct', 'destroy']:
            self.containers.discard(int(cmd[2]))
            return FakeProc(0, '')
        if head == ['pct', 'exec']:
            inner = cmd[4:]
            if inner[:2] == ['ip', '-4']:
                self.ip_queries += 1
                if self.ip and self.ip_queries > self.ip_after:
                    return FakeProc(
                        0,
                        f'2: eth0    inet {self.ip}/24 brd 10.0.0.255 scope global dynamic eth0\\       valid_lft 7186sec preferred_lft 7186sec\n',
                    )
                return FakeProc(0, '')
            return FakeProc(0, '')
        return FakeProc(0, '')


@pytest.fixture
def fake_pve(monkeypatch) -> FakePVE:
    fake = FakePVE()
    monkeypatch.setattr('nclxc.util.os.geteuid', lambda: 0)
    monkeypatch.setattr('nclxc.util.subprocess.run', fake)
    return fake


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr('nclxc.readiness.time.sleep', recorded.append)
    return recorded


@pytest.fixture
def interfaces_file(tmp_path: Path) -> Path:
    path = tmp_path / 'interfaces'
    path.write_text(INTERFACES, encoding='utf-8')
    return path
