"""Runtime helpers for constructing Proxmox CLI command arguments."""

from __future__ import annotations

import platform

PCT = 'pct'
PVESM = 'pvesm'
PVEAM = 'pveam'
PVESH = 'pvesh'

_ARCH_ALIASES = {
    'x86_64': 'amd64',
    'amd64': 'amd64',
    'aarch64': 'arm64',
    'arm64': 'arm64',
    'i686': 'i386',
    'i386': 'i386',
}


def pct_cmd(*args: str | int) -> list[str]:
    return [PCT, *(str(a) for a in args)]


def pct_exec_cmd(ctid: int, *argv: str) -> list[str]:
    return [PCT, 'exec', str(ctid), '--', *argv]


def pvesm_cmd(*args: str) -> list[str]:
    return [PVESM, *args]


def pveam_cmd(*args: str) -> list[str]:
    return [PVEAM, *args]


def pvesh_cmd(*args: str) -> list[str]:
    return [PVESH, *args]


def host_arch(machine: str | None = None) -> str:
    """Map the host machine name onto the LXC architecture naming."""
    raw = (machine if machine is not None else platform.machine()).strip()
    return _ARCH_ALIASES.get(raw.lower(), raw)
