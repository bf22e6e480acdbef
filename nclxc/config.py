"""Installer configuration sections, TOML persistence, and request resolution."""

from __future__ import annotations

import ipaddress
import secrets
import string
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

import ubelt as ub

from .errors import ValidationError
from .util import expand

NETWORK_MODES = ('dhcp', 'static')

DEFAULT_RELEASE_URL = (
    'https://download.nextcloud.com/server/releases/latest.zip'
)

DEFAULT_PACKAGES = [
    'apache2',
    'mariadb-server',
    'libapache2-mod-php',
    'php',
    'php-mysql',
    'php-zip',
    'php-dom',
    'php-curl',
    'php-gd',
    'php-xml',
    'php-mbstring',
    'php-bcmath',
    'php-gmp',
    'php-intl',
    'php-imagick',
    'unzip',
    'curl',
]

DEFAULT_APACHE_MODULES = ['rewrite', 'headers', 'env', 'dir', 'mime', 'setenvif', 'ssl']

CONFIG_SECTIONS = (
    'container',
    'network',
    'storage',
    'template',
    'database',
    'app',
    'php',
    'readiness',
)


@dataclass
class ContainerConfig:
    hostname: str = 'nextcloud'
    cores: int = 2
    memory_mb: int = 2048
    disk_gb: int = 16
    ostype: str = 'debian'
    unprivileged: bool = True
    nesting: bool = True


@dataclass
class NetworkConfig:
    bridge: str = 'vmbr0'
    mode: str = 'dhcp'
    ip_cidr: str = ''
    gateway: str = ''
    interfaces_path: str = '/etc/network/interfaces'


@dataclass
class StorageConfig:
    pool: str = ''
    template_fallback: str = 'local'


@dataclass
class TemplateConfig:
    os_prefix: str = 'debian-12'
    exclude: str = 'turnkey'


@dataclass
class DatabaseConfig:
    name: str = 'nextcloud'
    user: str = 'ncuser'
    charset: str = 'utf8mb4'
    collation: str = 'utf8mb4_general_ci'
    password_length: int = 16


@dataclass
class AppConfig:
    name: str = 'Nextcloud'
    release_url: str = DEFAULT_RELEASE_URL
    web_root: str = '/var/www'
    app_dir: str = 'nextcloud'
    site_name: str = 'nextcloud'
    service_user: str = 'www-data'
    packages: list[str] = field(default_factory=lambda: list(DEFAULT_PACKAGES))
    apache_modules: list[str] = field(
        default_factory=lambda: list(DEFAULT_APACHE_MODULES)
    )


@dataclass
class PhpConfig:
    ini_glob: str = '/etc/php/*/apache2/php.ini'
    memory_limit: str = '512M'
    upload_max_filesize: str = '512M'
    post_max_size: str = '512M'
    max_execution_time: int = 300
    max_input_time: int = 300


@dataclass
class ReadinessConfig:
    settle_s: float = 5.0
    max_attempts: int = 10
    interval_s: float = 2.0


@dataclass
class InstallerConfig:
    container: ContainerConfig = field(default_factory=ContainerConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    template: TemplateConfig = field(default_factory=TemplateConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    app: AppConfig = field(default_factory=AppConfig)
    php: PhpConfig = field(default_factory=PhpConfig)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    verbosity: int = 1

    def expanded_paths(self) -> 'InstallerConfig':
        self.network.interfaces_path = expand(self.network.interfaces_path)
        return self


@dataclass(frozen=True)
class ProvisioningRequest:
    """Fully resolved, immutable input for one provisioning run."""

    arch: str
    storage: str
    template_storage: str
    template: str
    bridge: str
    network_mode: str
    ip_cidr: str
    gateway: str
    hostname: str
    cores: int
    memory_mb: int
    disk_gb: int
    ostype: str
    unprivileged: bool
    nesting: bool
    db_name: str
    db_user: str
    db_password: str
    db_charset: str
    db_collation: str
    app_name: str
    release_url: str
    web_root: str
    app_dir: str
    site_name: str
    service_user: str
    packages: tuple[str, ...]
    apache_modules: tuple[str, ...]
    php_ini_glob: str
    php_memory_limit: str
    php_upload_max_filesize: str
    php_post_max_size: str
    php_max_execution_time: int
    php_max_input_time: int
    settle_s: float
    max_attempts: int
    interval_s: float

    @property
    def is_static(self) -> bool:
        return self.network_mode == 'static'

    @property
    def static_address(self) -> str:
        return self.ip_cidr.split('/', 1)[0] if self.ip_cidr else ''

    @property
    def document_root(self) -> str:
        return f'{self.web_root.rstrip("/")}/{self.app_dir}'

    @property
    def template_volid(self) -> str:
        return f'{self.template_storage}:vztmpl/{self.template}'


def generate_password(length: int = 16) -> str:
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _require_text(value: str, label: str) -> str:
    text = (value or '').strip()
    if not text:
        raise ValidationError(f'{label} cannot be empty')
    return text


def _require_positive(value: int, label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as ex:
        raise ValidationError(f'{label} must be an integer (got {value!r})') from ex
    if number <= 0:
        raise ValidationError(f'{label} must be positive (got {value})')
    return number


def build_request(
    cfg: InstallerConfig,
    *,
    arch: str,
    template: str,
    template_storage: str,
    password: str | None = None,
) -> ProvisioningRequest:
    """Validate user-facing inputs and freeze them into a request."""
    mode = (cfg.network.mode or '').strip().lower()
    if mode not in NETWORK_MODES:
        raise ValidationError(
            f'Network mode must be one of {", ".join(NETWORK_MODES)} (got {mode!r})'
        )
    ip_cidr = ''
    gateway = ''
    if mode == 'static':
        ip_cidr = _require_text(cfg.network.ip_cidr, 'IP address')
        gateway = _require_text(cfg.network.gateway, 'Gateway')
        try:
            ipaddress.ip_interface(ip_cidr)
            ipaddress.ip_address(gateway)
        except ValueError as ex:
            raise ValidationError(f'Invalid static network settings: {ex}') from ex
        if '/' not in ip_cidr:
            raise ValidationError(
                f'Static IP must include a prefix length, e.g. 10.0.0.50/24 (got {ip_cidr})'
            )
    readiness = cfg.readiness
    return ProvisioningRequest(
        arch=_require_text(arch, 'Architecture'),
        storage=_require_text(cfg.storage.pool, 'Storage pool'),
        template_storage=_require_text(template_storage, 'Template storage'),
        template=_require_text(template, 'Template'),
        bridge=_require_text(cfg.network.bridge, 'Network bridge'),
        network_mode=mode,
        ip_cidr=ip_cidr,
        gateway=gateway,
        hostname=_require_text(cfg.container.hostname, 'Hostname'),
        cores=_require_positive(cfg.container.cores, 'CPU cores'),
        memory_mb=_require_positive(cfg.container.memory_mb, 'Memory'),
        disk_gb=_require_positive(cfg.container.disk_gb, 'Disk size'),
        ostype=cfg.container.ostype,
        unprivileged=bool(cfg.container.unprivileged),
        nesting=bool(cfg.container.nesting),
        db_name=_require_text(cfg.database.name, 'Database name'),
        db_user=_require_text(cfg.database.user, 'Database user'),
        db_password=password or generate_password(cfg.database.password_length),
        db_charset=cfg.database.charset,
        db_collation=cfg.database.collation,
        app_name=cfg.app.name,
        release_url=_require_text(cfg.app.release_url, 'Release URL'),
        web_root=cfg.app.web_root,
        app_dir=cfg.app.app_dir,
        site_name=cfg.app.site_name,
        service_user=cfg.app.service_user,
        packages=tuple(cfg.app.packages),
        apache_modules=tuple(cfg.app.apache_modules),
        php_ini_glob=_require_text(cfg.php.ini_glob, 'PHP ini glob'),
        php_memory_limit=str(cfg.php.memory_limit),
        php_upload_max_filesize=str(cfg.php.upload_max_filesize),
        php_post_max_size=str(cfg.php.post_max_size),
        php_max_execution_time=_require_positive(
            cfg.php.max_execution_time, 'PHP max_execution_time'
        ),
        php_max_input_time=_require_positive(
            cfg.php.max_input_time, 'PHP max_input_time'
        ),
        settle_s=float(readiness.settle_s),
        max_attempts=_require_positive(readiness.max_attempts, 'Max attempts'),
        interval_s=float(readiness.interval_s),
    )


def default_config_path() -> Path:
    local = Path('nclxc.toml')
    if local.exists():
        return local.resolve()
    return Path(ub.Path.appdir('nclxc', type='config')) / 'config.toml'


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def dump_toml(cfg: InstallerConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    for section, body in d.items():
        if isinstance(body, dict):
            lines.append(f'[{section}]')
            for k, v in body.items():
                if isinstance(v, bool):
                    lines.append(f'{k} = {"true" if v else "false"}')
                elif isinstance(v, (int, float)):
                    lines.append(f'{k} = {v}')
                elif isinstance(v, list):
                    parts = [f'"{_toml_escape(str(item))}"' for item in v]
                    lines.append(f'{k} = [{", ".join(parts)}]')
                else:
                    lines.append(f'{k} = "{_toml_escape(str(v))}"')
            lines.append('')
        elif section == 'verbosity' and body != 1:
            lines.append(f'{section} = {body}')
            lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def load(path: Path) -> InstallerConfig:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    cfg = InstallerConfig()
    for section in CONFIG_SECTIONS:
        if section in raw and isinstance(raw[section], dict):
            sec = raw[section]
            obj = getattr(cfg, section)
            for k, v in sec.items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    if 'verbosity' in raw:
        cfg.verbosity = int(raw['verbosity'])
    return cfg


def load_or_default(path: Path) -> InstallerConfig:
    if path.exists():
        return load(path).expanded_paths()
    return InstallerConfig().expanded_paths()


def save(path: Path, cfg: InstallerConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_toml(cfg), encoding='utf-8')
