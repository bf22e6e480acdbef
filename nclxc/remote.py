"""Typed builders for the commands run inside the container, and their executor."""

from __future__ import annotations

import re
import shlex
import textwrap
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from loguru import logger

from .config import ProvisioningRequest
from .container import ContainerHandle
from .errors import ValidationError
from .runtime import pct_exec_cmd
from .util import CmdResult, run_cmd, shell_join

log = logger

_SQL_IDENT = re.compile(r'^[A-Za-z0-9_]+$')
_PHP_SIZE = re.compile(r'^[0-9]+[KMG]?$')
_NAME = re.compile(r'^[A-Za-z0-9._-]+$')

APT_ENV = ['env', 'DEBIAN_FRONTEND=noninteractive']


@dataclass(frozen=True)
class RemoteCommand:
    argv: tuple[str, ...]
    description: str = ''
    input_text: Optional[str] = None
    stream: bool = False

    def display(self) -> str:
        return shell_join(self.argv)


@dataclass(frozen=True)
class RemoteStep:
    name: str
    commands: tuple[RemoteCommand, ...] = field(default_factory=tuple)


def _cmd(*argv: str, description: str = '', **kwargs) -> RemoteCommand:
    return RemoteCommand(tuple(argv), description=description, **kwargs)


def _require_match(pattern: re.Pattern, value: str, label: str) -> str:
    if not pattern.match(value or ''):
        raise ValidationError(f'Invalid {label}: {value!r}')
    return value


def sql_quote(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace("'", "\\'")
    return f"'{escaped}'"


@dataclass(frozen=True)
class SystemUpgrade:
    def commands(self) -> list[RemoteCommand]:
        return [
            _cmd(*APT_ENV, 'apt-get', 'update', description='refresh package index', stream=True),
            _cmd(*APT_ENV, 'apt-get', 'upgrade', '-y', description='upgrade system', stream=True),
        ]


@dataclass(frozen=True)
class PackageSet:
    packages: Sequence[str]

    def commands(self) -> list[RemoteCommand]:
        pkgs = [_require_match(_NAME, p, 'package name') for p in self.packages]
        if not pkgs:
            return []
        return [
            _cmd(
                *APT_ENV,
                'apt-get',
                'install',
                '-y',
                *pkgs,
                description='install packages',
                stream=True,
            )
        ]


@dataclass(frozen=True)
class DatabaseBootstrap:
    name: str
    user: str
    password: str
    charset: str = 'utf8mb4'
    collation: str = 'utf8mb4_general_ci'
    host: str = 'localhost'

    def sql(self) -> str:
        name = _require_match(_SQL_IDENT, self.name, 'database name')
        user = _require_match(_SQL_IDENT, self.user, 'database user')
        charset = _require_match(_SQL_IDENT, self.charset, 'charset')
        collation = _require_match(_SQL_IDENT, self.collation, 'collation')
        account = f'{sql_quote(user)}@{sql_quote(self.host)}'
        return textwrap.dedent(f"""
            CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET {charset} COLLATE {collation};
            CREATE USER IF NOT EXISTS {account} IDENTIFIED BY {sql_quote(self.password)};
            GRANT ALL PRIVILEGES ON `{name}`.* TO {account};
            FLUSH PRIVILEGES;
            """).lstrip()

    def commands(self) -> list[RemoteCommand]:
        return [_cmd('mysql', description='bootstrap database', input_text=self.sql())]


@dataclass(frozen=True)
class AppRelease:
    url: str
    web_root: str = '/var/www'
    app_dir: str = 'nextcloud'
    owner: str = 'www-data'

    @property
    def archive(self) -> str:
        return f'/tmp/{self.app_dir}.zip'

    @property
    def document_root(self) -> str:
        return f'{self.web_root.rstrip("/")}/{self.app_dir}'

    def commands(self) -> list[RemoteCommand]:
        _require_match(_NAME, self.app_dir, 'application directory')
        owner = _require_match(_NAME, self.owner, 'service account')
        return [
            _cmd('curl', '-fsSL', self.url, '-o', self.archive, description='download release'),
            _cmd('unzip', '-q', '-o', self.archive, '-d', self.web_root, description='unpack release'),
            _cmd('rm', '-f', self.archive, description='remove archive'),
            _cmd('chown', '-R', f'{owner}:{owner}', self.document_root, description='set ownership'),
        ]


VHOST_TEMPLATE = """\
<VirtualHost *:80>
  ServerName {hostname}
  DocumentRoot {document_root}
  <Directory {document_root}/>
    Require all granted
    AllowOverride All
    Options FollowSymLinks MultiViews
    <IfModule mod_dav.c>
      Dav off
    </IfModule>
  </Directory>
</VirtualHost>
"""


@dataclass(frozen=True)
class VirtualHost:
    hostname: str
    document_root: str
    site_name: str = 'nextcloud'
    modules: Sequence[str] = ('rewrite', 'headers', 'env', 'dir', 'mime', 'setenvif', 'ssl')
    default_site: str = '000-default'

    @property
    def path(self) -> str:
        return f'/etc/apache2/sites-available/{self.site_name}.conf'

    def render(self) -> str:
        _require_match(_NAME, self.hostname, 'hostname')
        return VHOST_TEMPLATE.format(
            hostname=self.hostname, document_root=self.document_root
        )

    def commands(self) -> list[RemoteCommand]:
        site = _require_match(_NAME, self.site_name, 'site name')
        mods = [_require_match(_NAME, m, 'apache module') for m in self.modules]
        cmds = [
            _cmd('tee', self.path, description='write virtual host', input_text=self.render()),
            _cmd('a2dissite', self.default_site, description='disable default site'),
            _cmd('a2ensite', site, description='enable site'),
        ]
        if mods:
            cmds.append(_cmd('a2enmod', *mods, description='enable modules'))
        cmds.append(restart_apache())
        return cmds


@dataclass(frozen=True)
class PhpLimits:
    ini_glob: str = '/etc/php/*/apache2/php.ini'
    memory_limit: str = '512M'
    upload_max_filesize: str = '512M'
    post_max_size: str = '512M'
    max_execution_time: int = 300
    max_input_time: int = 300

    @classmethod
    def from_request(cls, request: ProvisioningRequest) -> 'PhpLimits':
        return cls(
            ini_glob=request.php_ini_glob,
            memory_limit=request.php_memory_limit,
            upload_max_filesize=request.php_upload_max_filesize,
            post_max_size=request.php_post_max_size,
            max_execution_time=request.php_max_execution_time,
            max_input_time=request.php_max_input_time,
        )

    def directives(self) -> dict[str, str]:
        return {
            'memory_limit': _require_match(_PHP_SIZE, self.memory_limit, 'memory_limit'),
            'upload_max_filesize': _require_match(
                _PHP_SIZE, self.upload_max_filesize, 'upload_max_filesize'
            ),
            'post_max_size': _require_match(_PHP_SIZE, self.post_max_size, 'post_max_size'),
            'max_execution_time': str(int(self.max_execution_time)),
            'max_input_time': str(int(self.max_input_time)),
        }

    def script(self) -> str:
        seds = [
            f'sed -i {shlex.quote(f"s/^{key} = .*/{key} = {value}/")} "$config"'
            for key, value in self.directives().items()
        ]
        body = '; '.join(seds)
        # The glob is expanded by the shell inside the container.
        return f'for config in {self.ini_glob}; do [ -f "$config" ] || continue; {body}; done'

    def commands(self) -> list[RemoteCommand]:
        return [
            _cmd('bash', '-c', self.script(), description='tune php limits'),
            restart_apache(),
        ]


def restart_apache() -> RemoteCommand:
    return _cmd('systemctl', 'restart', 'apache2', description='restart apache')


def plan_steps(request: ProvisioningRequest) -> list[RemoteStep]:
    """Return the fixed, ordered configuration steps for ``request``."""
    release = AppRelease(
        url=request.release_url,
        web_root=request.web_root,
        app_dir=request.app_dir,
        owner=request.service_user,
    )
    builders = [
        ('system upgrade', SystemUpgrade()),
        ('install packages', PackageSet(request.packages)),
        (
            'database bootstrap',
            DatabaseBootstrap(
                name=request.db_name,
                user=request.db_user,
                password=request.db_password,
                charset=request.db_charset,
                collation=request.db_collation,
            ),
        ),
        ('application install', release),
        (
            'web server',
            VirtualHost(
                hostname=request.hostname,
                document_root=release.document_root,
                site_name=request.site_name,
                modules=request.apache_modules,
            ),
        ),
        ('php limits', PhpLimits.from_request(request)),
    ]
    return [RemoteStep(name, tuple(b.commands())) for name, b in builders]


def exec_in_container(
    handle: ContainerHandle, command: RemoteCommand, *, dry_run: bool = False
) -> CmdResult:
    argv = pct_exec_cmd(handle.ctid, *command.argv)
    if dry_run:
        log.info('DRYRUN: {}', shell_join(argv))
        return CmdResult(0, '', '')
    return run_cmd(
        argv,
        sudo=True,
        check=True,
        capture=not command.stream,
        input_text=command.input_text,
    )


def configure_container(
    handle: ContainerHandle,
    request: ProvisioningRequest,
    *,
    dry_run: bool = False,
    on_step: Optional[Callable[[str], None]] = None,
    steps: Optional[Sequence[RemoteStep]] = None,
) -> list[RemoteStep]:
    """Run each step's commands in order; ``steps`` defaults to ``plan_steps(request)``."""
    steps = list(plan_steps(request) if steps is None else steps)
    for step in steps:
        if on_step is not None:
            on_step(step.name)
        log.info('Configuring container {}: {}', handle.ctid, step.name)
        for command in step.commands:
            log.debug('{}: {}', command.description, command.display())
            exec_in_container(handle, command, dry_run=dry_run)
    return steps
