"""Read-only host prerequisite checks: bridge, storage pool, and OS template."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .errors import ValidationError
from .runtime import pveam_cmd, pvesm_cmd
from .util import CmdError, read_text_or_empty, run_cmd

log = logger

KIB_PER_GIB = 1024 * 1024


@dataclass(frozen=True)
class ValidationResult:
    name: str
    ok: bool
    reason: str = ''


@dataclass(frozen=True)
class StorageRow:
    name: str
    type: str
    status: str
    total_kib: int
    used_kib: int
    available_kib: int

    @property
    def available_gib(self) -> int:
        return self.available_kib // KIB_PER_GIB


def check_bridge(
    bridge: str, interfaces_path: Path | str = '/etc/network/interfaces'
) -> ValidationResult:
    text = read_text_or_empty(Path(interfaces_path))
    name = re.escape(bridge)
    pattern = re.compile(
        rf'^(iface\s+{name}\s+inet\b|auto\s+{name}\b)', re.MULTILINE
    )
    if bridge and pattern.search(text):
        return ValidationResult('bridge', True, f'{bridge} declared')
    return ValidationResult(
        'bridge', False, f'Network bridge {bridge} not found in {interfaces_path}'
    )


def _to_int(token: str) -> int:
    digits = re.sub(r'[^0-9]', '', token)
    return int(digits) if digits else 0


def parse_pvesm_status(text: str) -> list[StorageRow]:
    """Parse the tabular output of ``pvesm status``.

    Columns are located via the header row so extra columns in newer
    releases do not shift the numbers. Sizes are reported in KiB.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []
    header = [h.lower() for h in lines[0].split()]
    idx = {h: i for i, h in enumerate(header)}
    rows: list[StorageRow] = []
    for line in lines[1:]:
        parts = line.split()
        if len(parts) < len(header) - 1:
            continue

        def col(key: str, default: str = '') -> str:
            i = idx.get(key)
            if i is None or i >= len(parts):
                return default
            return parts[i]

        rows.append(
            StorageRow(
                name=col('name'),
                type=col('type'),
                status=col('status'),
                total_kib=_to_int(col('total', '0')),
                used_kib=_to_int(col('used', '0')),
                available_kib=_to_int(col('available', '0')),
            )
        )
    return rows


def list_storages(*, content: str = '') -> list[StorageRow]:
    args = ['status']
    if content:
        args += ['-content', content]
    res = run_cmd(pvesm_cmd(*args), sudo=True, check=True, capture=True)
    return parse_pvesm_status(res.stdout)


def active_storages() -> list[StorageRow]:
    return [row for row in list_storages() if row.status == 'active']


def check_storage(pool: str, disk_gb: int) -> ValidationResult:
    rows = {row.name: row for row in list_storages()}
    row = rows.get(pool)
    if row is None:
        return ValidationResult('storage', False, f'Storage pool {pool} not found')
    if row.available_gib < int(disk_gb):
        return ValidationResult(
            'storage',
            False,
            f'Insufficient space in storage pool {pool} '
            f'(needs {disk_gb}G, has {row.available_gib}G)',
        )
    return ValidationResult(
        'storage', True, f'{pool} has {row.available_gib}G free'
    )


def template_storage_for(pool: str, fallback: str = 'local') -> str:
    """Pick where templates are downloaded; pools without vztmpl use the fallback."""
    names = {row.name for row in list_storages(content='vztmpl')}
    if pool in names:
        return pool
    log.info('Switching template download to {} storage', fallback)
    return fallback


def _natural_key(name: str) -> list[object]:
    return [int(tok) if tok.isdigit() else tok for tok in re.split(r'(\d+)', name)]


def available_templates(
    os_prefix: str = 'debian-12', exclude: str = 'turnkey'
) -> list[str]:
    res = run_cmd(pveam_cmd('available'), sudo=True, check=True, capture=True)
    found: list[str] = []
    for line in res.stdout.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name = parts[1]
        if not name.startswith(os_prefix):
            continue
        if exclude and exclude in name:
            continue
        found.append(name)
    return sorted(found, key=_natural_key)


def select_template(os_prefix: str = 'debian-12', exclude: str = 'turnkey') -> str:
    found = available_templates(os_prefix, exclude)
    if not found:
        raise ValidationError(
            f'No {os_prefix} template available in repository (excluding {exclude})'
        )
    return found[-1]


def check_template(
    template: str, os_prefix: str = 'debian-12', exclude: str = 'turnkey'
) -> ValidationResult:
    if template and template in available_templates(os_prefix, exclude):
        return ValidationResult('template', True, f'{template} available')
    return ValidationResult(
        'template', False, f'Template {template} not available in repository'
    )


def template_cached(storage: str, template: str) -> bool:
    res = run_cmd(
        pveam_cmd('list', storage), sudo=True, check=False, capture=True
    )
    if res.code != 0:
        return False
    return any(
        line.split()[0].endswith(f'vztmpl/{template}')
        for line in res.stdout.splitlines()
        if line.strip()
    )


def download_template(storage: str, template: str, *, dry_run: bool = False) -> None:
    if template_cached(storage, template):
        log.info('Template cached: {}:vztmpl/{}', storage, template)
        return
    if dry_run:
        log.info('DRYRUN: pveam download {} {}', storage, template)
        return
    log.info('Downloading template {}', template)
    try:
        run_cmd(
            pveam_cmd('download', storage, template),
            sudo=True,
            check=True,
            capture=True,
        )
    except CmdError as ex:
        raise ValidationError(f'Template download failed: {template}') from ex
    log.info('Template {} downloaded to {}', template, storage)


def validate_prerequisites(
    *,
    bridge: str,
    interfaces_path: Path | str,
    pool: str,
    disk_gb: int,
    template: str,
    os_prefix: str = 'debian-12',
    exclude: str = 'turnkey',
) -> list[ValidationResult]:
    """Run every check in order; abort on the first failure."""
    checks = [
        lambda: check_bridge(bridge, interfaces_path),
        lambda: check_storage(pool, disk_gb),
        lambda: check_template(template, os_prefix, exclude),
    ]
    results: list[ValidationResult] = []
    for check in checks:
        result = check()
        results.append(result)
        if not result.ok:
            log.error(result.reason)
            raise ValidationError(result.reason)
        log.debug('Check {} passed: {}', result.name, result.reason)
    return results
