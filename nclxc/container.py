"""Container lifecycle: id allocation, creation, start, existence, destroy."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from .config import ProvisioningRequest
from .runtime import pct_cmd, pvesh_cmd
from .util import run_cmd, shell_join

log = logger


@dataclass(frozen=True)
class ContainerHandle:
    ctid: int


def next_ctid() -> int:
    # No locking: two concurrent runs may be handed the same id.
    res = run_cmd(
        pvesh_cmd('get', '/cluster/nextid'), sudo=True, check=True, capture=True
    )
    raw = res.stdout.strip().strip('"')
    try:
        return int(raw)
    except ValueError as ex:
        raise RuntimeError(f'Unexpected next id from pvesh: {raw!r}') from ex


def net0_descriptor(request: ProvisioningRequest) -> str:
    base = f'name=eth0,bridge={request.bridge}'
    if request.is_static:
        return f'{base},ip={request.ip_cidr},gw={request.gateway}'
    return f'{base},ip=dhcp'


def build_create_args(request: ProvisioningRequest, ctid: int) -> list[str]:
    return pct_cmd(
        'create',
        ctid,
        request.template_volid,
        '-arch',
        request.arch,
        '-cores',
        request.cores,
        '-hostname',
        request.hostname,
        '-memory',
        request.memory_mb,
        '-ostype',
        request.ostype,
        '-rootfs',
        f'{request.storage}:{request.disk_gb}',
        '-features',
        f'nesting={int(request.nesting)}',
        '-unprivileged',
        int(request.unprivileged),
        '-net0',
        net0_descriptor(request),
    )


def create_container(
    request: ProvisioningRequest, ctid: int, *, dry_run: bool = False
) -> ContainerHandle:
    cmd = build_create_args(request, ctid)
    log.info('Creating LXC container (ID: {})', ctid)
    if dry_run:
        log.info('DRYRUN: {}', shell_join(cmd))
        return ContainerHandle(ctid)
    run_cmd(cmd, sudo=True, check=True, capture=True)
    log.info('Container {} created', ctid)
    return ContainerHandle(ctid)


def start_container(handle: ContainerHandle, *, dry_run: bool = False) -> None:
    log.info('Starting LXC container {}', handle.ctid)
    if dry_run:
        log.info('DRYRUN: pct start {}', handle.ctid)
        return
    run_cmd(pct_cmd('start', handle.ctid), sudo=True, check=True, capture=True)


def container_exists(ctid: int) -> bool:
    return (
        run_cmd(
            pct_cmd('status', ctid), sudo=True, check=False, capture=True
        ).code
        == 0
    )


def container_status(ctid: int) -> str:
    res = run_cmd(pct_cmd('status', ctid), sudo=True, check=False, capture=True)
    if res.code != 0:
        return 'missing'
    # e.g. "status: running"
    return res.stdout.strip().split(':', 1)[-1].strip() or 'unknown'


def destroy_container(ctid: int, *, dry_run: bool = False) -> None:
    if dry_run:
        log.info('DRYRUN: pct destroy {} --force', ctid)
        return
    run_cmd(
        pct_cmd('destroy', ctid, '--force'), sudo=True, check=True, capture=True
    )
    log.info('Container removed: {}', ctid)
