"""Host dependency checks for the Proxmox VE management tools."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from .util import run_cmd, which

log = logger

REQUIRED_CMDS = [
    'pct',
    'pvesm',
    'pveam',
    'pvesh',
]
OPTIONAL_CMDS = ['pveversion']


def check_commands() -> tuple[list[str], list[str]]:
    missing = [c for c in REQUIRED_CMDS if which(c) is None]
    missing_opt = [c for c in OPTIONAL_CMDS if which(c) is None]
    return missing, missing_opt


def host_is_proxmox() -> bool:
    return Path('/etc/pve').is_dir()


def pve_version() -> str:
    if which('pveversion') is None:
        return ''
    res = run_cmd(['pveversion'], check=False, capture=True)
    if res.code != 0:
        log.warning('pveversion failed: {}', res.stderr.strip())
        return ''
    return res.stdout.strip()
