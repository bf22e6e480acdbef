from __future__ import annotations

import os
import sys
from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import InstallerConfig, default_config_path, load_or_default
from ..errors import UserAbort

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None,
        help='Path to config TOML (default: ./nclxc.toml, else the user config dir).',
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )
    yes = scfg.Value(
        False,
        isflag=True,
        help='Skip confirmation prompts; required for non-interactive runs.',
    )


def _cfg_path(p: str | None) -> Path:
    return Path(p).expanduser().resolve() if p else default_config_path()


def _load_cfg_with_path(config_path: str | None) -> tuple[InstallerConfig, Path]:
    path = _cfg_path(config_path)
    if config_path and not path.exists():
        raise FileNotFoundError(
            f'Config not found: {path}. Run: nclxc config init --config {path}'
        )
    cfg = load_or_default(path)
    log.debug('Loaded config from {} (exists={})', path, path.exists())
    return cfg, path


def _confirm_host_block(*, yes: bool, purpose: str) -> None:
    """Ask before mutating the hypervisor; declining raises ``UserAbort``."""
    if yes:
        return
    if not sys.stdin.isatty():
        raise RuntimeError(
            'Host changes require confirmation, but stdin is not interactive. '
            'Re-run with --yes.'
        )
    if os.geteuid() != 0:
        print('Note: Proxmox tools will be run through sudo.')
    print(purpose)
    ans = input('Proceed? [y/N]: ').strip().lower()
    if ans not in {'y', 'yes'}:
        raise UserAbort('Aborted by user.')


__all__ = [name for name in globals() if not name.startswith('__')]
