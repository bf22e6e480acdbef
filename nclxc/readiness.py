"""Bounded polling for the container's IPv4 address after start."""

from __future__ import annotations

import time
from dataclasses import dataclass

from loguru import logger

from .config import ProvisioningRequest
from .container import ContainerHandle
from .errors import ReadinessError
from .runtime import pct_exec_cmd
from .util import run_cmd

log = logger


@dataclass
class ReadinessState:
    max_attempts: int
    attempts: int = 0
    address: str = ''

    @property
    def ready(self) -> bool:
        return bool(self.address)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


def parse_ipv4(text: str) -> str:
    """Return the first address from ``ip -4 -o addr show`` output, sans prefix."""
    for line in text.splitlines():
        parts = line.split()
        if 'inet' not in parts:
            continue
        i = parts.index('inet')
        if i + 1 < len(parts):
            return parts[i + 1].split('/', 1)[0]
    return ''


def query_ipv4(handle: ContainerHandle, iface: str = 'eth0') -> str:
    res = run_cmd(
        pct_exec_cmd(handle.ctid, 'ip', '-4', '-o', 'addr', 'show', 'dev', iface),
        sudo=True,
        check=False,
        capture=True,
    )
    if res.code != 0:
        return ''
    return parse_ipv4(res.stdout)


def wait_for_ip(
    handle: ContainerHandle,
    request: ProvisioningRequest,
    *,
    dry_run: bool = False,
) -> tuple[str, ReadinessState]:
    state = ReadinessState(max_attempts=request.max_attempts)
    if dry_run:
        log.info('DRYRUN: wait for IP of container {}', handle.ctid)
        state.address = request.static_address or '0.0.0.0'
        return state.address, state
    time.sleep(request.settle_s)
    log.info('Waiting for IP address assignment...')
    while not state.exhausted:
        state.attempts += 1
        if request.is_static:
            state.address = request.static_address
        else:
            state.address = query_ipv4(handle)
        if state.ready:
            break
        log.debug(
            'No address yet for container {} (attempt {}/{})',
            handle.ctid,
            state.attempts,
            state.max_attempts,
        )
        time.sleep(request.interval_s)
    if not state.ready:
        raise ReadinessError(
            f'Container {handle.ctid} did not acquire an IP address '
            f'after {state.attempts} attempts'
        )
    log.info('Container IP: {}', state.address)
    return state.address, state
