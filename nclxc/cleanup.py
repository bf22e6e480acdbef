"""Scoped ownership of a provisioned container with teardown on failure."""

from __future__ import annotations

from loguru import logger

from .container import ContainerHandle, container_exists, destroy_container
from .util import CmdError, shell_join

log = logger


def cleanup_container(ctid: int, *, dry_run: bool = False) -> bool:
    """Force-destroy ``ctid`` if it is registered; a missing container is a no-op."""
    if dry_run:
        log.info('DRYRUN: cleanup container {}', ctid)
        return False
    if not container_exists(ctid):
        log.debug('Container {} not registered; nothing to clean up', ctid)
        return False
    log.info('Cleaning up container {} due to error', ctid)
    destroy_container(ctid)
    return True


class ContainerGuard:
    """Owns the container handle for one run.

    The guard starts disarmed. Once an id has been allocated the caller arms
    it; any exception leaving the ``with`` block while armed destroys the
    container before the exception propagates. ``disarm`` marks the run as
    complete so the container is left running.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self.handle: ContainerHandle | None = None
        self.stage = 'init'
        self.cleaned_up = False

    @property
    def armed(self) -> bool:
        return self.handle is not None

    def arm(self, handle: ContainerHandle) -> None:
        self.handle = handle

    def disarm(self) -> None:
        self.handle = None

    def enter_stage(self, stage: str) -> None:
        self.stage = stage
        log.debug('Entering stage {}', stage)

    def __enter__(self) -> 'ContainerGuard':
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            return False
        if isinstance(exc, CmdError):
            cmd = exc.cmd if isinstance(exc.cmd, str) else shell_join(exc.cmd)
            log.error(
                'Stage {!r} failed with status {}: {}',
                self.stage,
                exc.exit_code,
                cmd,
            )
        else:
            log.error('Stage {!r} failed: {}: {}', self.stage, exc_type.__name__, exc)
        if self.handle is not None:
            ctid = self.handle.ctid
            try:
                self.cleaned_up = cleanup_container(ctid, dry_run=self.dry_run)
            except Exception as cleanup_ex:
                log.error('Cleanup of container {} failed: {}', ctid, cleanup_ex)
            self.disarm()
        return False
