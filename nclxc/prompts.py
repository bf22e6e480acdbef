"""Interactive prompts that populate the installer configuration."""

from __future__ import annotations

import sys
from typing import Sequence

from .config import NETWORK_MODES, InstallerConfig
from .errors import ValidationError
from .validate import StorageRow


def require_tty(reason: str) -> None:
    if not sys.stdin.isatty():
        raise ValidationError(
            f'{reason} requires an interactive terminal. '
            'Re-run with --yes and pass the value explicitly.'
        )


def confirm(question: str, *, default: bool = False) -> bool:
    hint = '[Y/n]' if default else '[y/N]'
    ans = input(f'{question} {hint}: ').strip().lower()
    if not ans:
        return default
    return ans in {'y', 'yes'}


def prompt_text(prompt: str, default: str = '') -> str:
    suffix = f' [{default}]' if default else ''
    raw = input(f'{prompt}{suffix}: ').strip()
    return raw if raw else default


def choose(
    prompt: str, options: Sequence[tuple[str, str]], *, default: str = ''
) -> str:
    """Numbered menu; returns the key of the selected option."""
    if not options:
        raise ValidationError(f'No options available for: {prompt}')
    keys = [key for key, _ in options]
    print(prompt)
    for idx, (key, label) in enumerate(options, start=1):
        marker = ' (default)' if key == default else ''
        print(f'  {idx}. {key} - {label}{marker}')
    while True:
        raw = input('Select number: ').strip()
        if not raw and default in keys:
            return default
        if raw in keys:
            return raw
        if not raw.isdigit():
            print('Please enter a number.')
            continue
        choice = int(raw)
        if 1 <= choice <= len(options):
            return keys[choice - 1]
        print(f'Please enter a number between 1 and {len(options)}.')


def choose_storage(storages: Sequence[StorageRow], default: str = '') -> str:
    options = [
        (row.name, f'{row.name} storage ({row.type}, {row.available_gib}G free)')
        for row in storages
    ]
    return choose('Select storage pool:', options, default=default)


def choose_network_mode(default: str = 'dhcp') -> str:
    labels = {'dhcp': 'Automatic (DHCP)', 'static': 'Static IP'}
    return choose(
        'Select network type:',
        [(mode, labels[mode]) for mode in NETWORK_MODES],
        default=default,
    )


def collect_network(cfg: InstallerConfig, *, ask_mode: bool = True) -> None:
    if ask_mode:
        cfg.network.mode = choose_network_mode(cfg.network.mode or 'dhcp')
    if cfg.network.mode != 'static':
        return
    if not cfg.network.ip_cidr:
        cfg.network.ip_cidr = prompt_text(
            'Enter static IP address with CIDR (e.g., 10.0.0.50/24)'
        )
        if not cfg.network.ip_cidr:
            raise ValidationError('IP address cannot be empty')
    if not cfg.network.gateway:
        cfg.network.gateway = prompt_text('Enter gateway address')
        if not cfg.network.gateway:
            raise ValidationError('Gateway cannot be empty')
