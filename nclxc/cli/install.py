"""CLI commands for the install run, prerequisite checks, and container teardown."""

from __future__ import annotations

import sys

import scriptconfig as scfg

from ..cleanup import cleanup_container
from ..config import NETWORK_MODES, InstallerConfig
from ..errors import ValidationError
from ..install import prepare_request, render_summary, run_install
from ..prompts import choose_storage, collect_network, require_tty
from ..validate import (
    active_storages,
    check_bridge,
    check_storage,
    check_template,
    select_template,
    template_storage_for,
)
from ._common import (
    _BaseCommand,
    _confirm_host_block,
    _load_cfg_with_path,
    log,
)


class _RunOptions(_BaseCommand):
    storage = scfg.Value('', help='Storage pool for the container root filesystem.')
    network = scfg.Value('', help='Network mode: dhcp or static.')
    ip = scfg.Value('', help='Static IP address with CIDR, e.g. 10.0.0.50/24.')
    gateway = scfg.Value('', help='Gateway address for static networking.')
    hostname = scfg.Value('', help='Container hostname override.')


def _apply_overrides(cfg: InstallerConfig, args) -> InstallerConfig:
    if args.storage:
        cfg.storage.pool = str(args.storage).strip()
    if args.network:
        mode = str(args.network).strip().lower()
        if mode not in NETWORK_MODES:
            raise ValidationError(
                f'--network must be one of: {", ".join(NETWORK_MODES)}'
            )
        cfg.network.mode = mode
    if args.ip:
        cfg.network.ip_cidr = str(args.ip).strip()
    if args.gateway:
        cfg.network.gateway = str(args.gateway).strip()
    if args.hostname:
        cfg.container.hostname = str(args.hostname).strip()
    return cfg


def _collect_interactive(cfg: InstallerConfig, args) -> InstallerConfig:
    """Fill in anything the config and flags left open by asking the user."""
    if not cfg.storage.pool:
        if args.yes:
            raise ValidationError('Storage pool cannot be empty; pass --storage.')
        require_tty('Storage selection')
        cfg.storage.pool = choose_storage(active_storages())
    ask_mode = not args.network and not args.yes
    if ask_mode or (cfg.network.mode == 'static' and not args.yes):
        require_tty('Network configuration')
        collect_network(cfg, ask_mode=ask_mode)
    return cfg


class InstallCLI(_RunOptions):
    """Create the container and install the application stack inside it."""

    dry_run = scfg.Value(
        False, isflag=True, help='Print actions without running.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, _ = _load_cfg_with_path(args.config)
        _confirm_host_block(
            yes=bool(args.yes),
            purpose=f'This will create a new LXC for {cfg.app.name}.',
        )
        cfg = _apply_overrides(cfg, args)
        cfg = _collect_interactive(cfg, args)
        request, _ = prepare_request(cfg)
        log.debug(
            'Resolved request storage={} template={} network={}',
            request.storage,
            request.template,
            request.network_mode,
        )
        result = run_install(request, dry_run=bool(args.dry_run))
        print()
        print(render_summary(result))
        return 0


class CheckCLI(_RunOptions):
    """Run the host prerequisite checks without changing anything."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, _ = _load_cfg_with_path(args.config)
        cfg = _apply_overrides(cfg, args)
        results = [check_bridge(cfg.network.bridge, cfg.network.interfaces_path)]
        if cfg.storage.pool:
            results.append(check_storage(cfg.storage.pool, cfg.container.disk_gb))
        else:
            print('➖ storage - no pool configured; pass --storage')
        try:
            template = select_template(cfg.template.os_prefix, cfg.template.exclude)
        except ValidationError as ex:
            results.append(check_template('', cfg.template.os_prefix, cfg.template.exclude))
            log.debug('Template selection failed: {}', ex)
        else:
            results.append(
                check_template(template, cfg.template.os_prefix, cfg.template.exclude)
            )
        for result in results:
            icon = '✅' if result.ok else '❌'
            print(f'{icon} {result.name} - {result.reason}')
        if cfg.storage.pool:
            tstore = template_storage_for(
                cfg.storage.pool, cfg.storage.template_fallback
            )
            print(f'➖ template storage - {tstore}')
        return 0 if all(r.ok for r in results) else 1


class DestroyCLI(_BaseCommand):
    """Force-destroy a container by id; a missing container is a no-op."""

    ctid = scfg.Value(0, type=int, position=1, help='Container id to destroy.')
    dry_run = scfg.Value(
        False, isflag=True, help='Print actions without running.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        ctid = int(args.ctid or 0)
        if ctid <= 0:
            print('A positive container id is required.', file=sys.stderr)
            return 2
        _confirm_host_block(
            yes=bool(args.yes),
            purpose=f'This will force-destroy container {ctid}.',
        )
        if args.dry_run:
            cleanup_container(ctid, dry_run=True)
            print(f'DRYRUN: container {ctid} would be destroyed if present.')
            return 0
        removed = cleanup_container(ctid)
        print(f'Container {ctid} {"destroyed" if removed else "not present"}.')
        return 0
