"""Top-level modal CLI wiring, exit status mapping, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger

from ..errors import NCLXCError, UserAbort
from ..util import CmdError, shell_join
from ._common import _load_cfg_with_path, log
from .config import ConfigModalCLI
from .host import DoctorCLI
from .install import CheckCLI, DestroyCLI, InstallCLI


class NCLXCModalCLI(scfg.ModalCLI):
    """Provision a Nextcloud LXC container on a Proxmox VE host."""

    install = InstallCLI
    check = CheckCLI
    destroy = DestroyCLI
    doctor = DoctorCLI
    config = ConfigModalCLI


def main(argv: list[str] | None = None) -> None:
    verbosity = 1
    config_value = None
    if argv is None:
        argv = sys.argv[1:]
    if '--config' in argv:
        try:
            config_value = argv[argv.index('--config') + 1]
        except IndexError:
            pass
    try:
        cfg, _ = _load_cfg_with_path(config_value)
        verbosity = cfg.verbosity
    except Exception:
        verbosity = 1

    explicit_verbose = _count_verbose(argv)
    _setup_logging(explicit_verbose, verbosity)

    try:
        rc = NCLXCModalCLI.main(argv=argv, _noexit=True)
    except UserAbort as ex:
        log.info('{}', ex)
        sys.exit(ex.exit_code)
    except CmdError as ex:
        cmd = ex.cmd if isinstance(ex.cmd, str) else shell_join(ex.cmd)
        print(
            f"ERROR: Command '{cmd}' exited with status {ex.exit_code}.",
            file=sys.stderr,
        )
        sys.exit(ex.exit_code)
    except NCLXCError as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        sys.exit(ex.exit_code)
    except Exception as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        log.error('Unhandled nclxc error: {}', ex)
        sys.exit(2)

    if any(flag in argv for flag in ('-h', '--help')):
        sys.exit(0)
    if isinstance(rc, int):
        sys.exit(rc)
    sys.exit(0)


def _setup_logging(args_verbose: int, cfg_verbosity: int) -> None:
    logger.remove()
    effective_verbosity = args_verbose if args_verbose > 0 else cfg_verbosity
    level = 'WARNING'
    if effective_verbosity == 1:
        level = 'INFO'
    elif effective_verbosity >= 2:
        level = 'DEBUG'
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    logger.add(
        sys.stderr,
        level=level,
        colorize=colorize,
        format='<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>',
    )
    log.debug(
        'Logging configured at {} (effective_verbosity={}, colorize={})',
        level,
        effective_verbosity,
        colorize,
    )


def _count_verbose(argv: list[str]) -> int:
    count = 0
    for item in argv:
        if item == '--verbose':
            count += 1
        elif item.startswith('-') and not item.startswith('--'):
            short = item[1:]
            if short and set(short) <= {'v'}:
                count += len(short)
    return count
