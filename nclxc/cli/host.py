from __future__ import annotations

from ._common import *  # noqa: F401,F403
from ..host import check_commands, host_is_proxmox, pve_version


class DoctorCLI(_BaseCommand):
    """Check host prerequisites and list missing Proxmox tools."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        cls.cli(argv=argv, data=kwargs)
        missing, missing_opt = check_commands()
        if not host_is_proxmox():
            print('➖ /etc/pve not found; this does not look like a Proxmox VE node.')
        if missing:
            print('❌ Missing required commands:', ', '.join(missing))
            print('💡 Run nclxc on a Proxmox VE host (pve-manager provides these tools).')
            return 2
        if missing_opt:
            print('➖ Missing optional commands:', ', '.join(missing_opt))
        version = pve_version()
        if version:
            print(f'✅ {version}')
        print('✅ Required host commands are present.')
        return 0
