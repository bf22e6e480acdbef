"""End-to-end provisioning sequence: validate, create, wait, configure."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass

from loguru import logger

from .cleanup import ContainerGuard
from .config import InstallerConfig, ProvisioningRequest, build_request
from .container import (
    ContainerHandle,
    create_container,
    next_ctid,
    start_container,
)
from .errors import ValidationError
from .readiness import wait_for_ip
from .remote import configure_container, plan_steps
from .runtime import host_arch
from .validate import (
    ValidationResult,
    download_template,
    select_template,
    template_storage_for,
    validate_prerequisites,
)

log = logger


@dataclass(frozen=True)
class InstallResult:
    ctid: int
    ip: str
    app_name: str
    db_name: str
    db_user: str
    db_password: str

    @property
    def url(self) -> str:
        return f'http://{self.ip}/'


def prepare_request(
    cfg: InstallerConfig,
    *,
    arch: str | None = None,
    password: str | None = None,
) -> tuple[ProvisioningRequest, list[ValidationResult]]:
    """Run the read-only checks and resolve ``cfg`` into a request."""
    if not (cfg.storage.pool or '').strip():
        raise ValidationError('Storage pool cannot be empty')
    arch = arch or host_arch()
    log.info('Detected system architecture: {}', arch)
    template = select_template(cfg.template.os_prefix, cfg.template.exclude)
    results = validate_prerequisites(
        bridge=cfg.network.bridge,
        interfaces_path=cfg.network.interfaces_path,
        pool=cfg.storage.pool,
        disk_gb=cfg.container.disk_gb,
        template=template,
        os_prefix=cfg.template.os_prefix,
        exclude=cfg.template.exclude,
    )
    template_storage = template_storage_for(
        cfg.storage.pool, cfg.storage.template_fallback
    )
    request = build_request(
        cfg,
        arch=arch,
        template=template,
        template_storage=template_storage,
        password=password,
    )
    plan_steps(request)
    return request, results


def run_install(
    request: ProvisioningRequest, *, dry_run: bool = False
) -> InstallResult:
    # Builder inputs must be validated before an id is allocated.
    steps = plan_steps(request)
    with ContainerGuard(dry_run=dry_run) as guard:
        guard.enter_stage('template download')
        download_template(
            request.template_storage, request.template, dry_run=dry_run
        )

        guard.enter_stage('allocate id')
        handle = ContainerHandle(next_ctid())
        guard.arm(handle)

        guard.enter_stage('create')
        create_container(request, handle.ctid, dry_run=dry_run)

        guard.enter_stage('start')
        start_container(handle, dry_run=dry_run)

        guard.enter_stage('readiness')
        ip, _ = wait_for_ip(handle, request, dry_run=dry_run)

        configure_container(
            handle,
            request,
            dry_run=dry_run,
            on_step=lambda name: guard.enter_stage(f'configure: {name}'),
            steps=steps,
        )
        guard.disarm()
    log.info('Provisioning of container {} complete', handle.ctid)
    return InstallResult(
        ctid=handle.ctid,
        ip=ip,
        app_name=request.app_name,
        db_name=request.db_name,
        db_user=request.db_user,
        db_password=request.db_password,
    )


def render_summary(result: InstallResult) -> str:
    return textwrap.dedent(f"""
        ✅ {result.app_name.upper()} INSTALLATION COMPLETE! (container {result.ctid})
        Access your instance at: {result.url}

        IMPORTANT CREDENTIALS:
        Database Name: {result.db_name}
        Database User: {result.db_user}
        Database Password: {result.db_password} (change this immediately!)

        RECOMMENDED NEXT STEPS:
        1. Complete the {result.app_name} web setup wizard
        2. Set up SSL/TLS encryption (HTTPS)
        3. Change database credentials
        4. Configure regular backups
        5. Set up proper file permissions
        6. Configure memory caching (APCu/Redis)
        """).strip()
