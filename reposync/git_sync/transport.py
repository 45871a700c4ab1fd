"""SSH transport override that pins git to a single deploy key."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from ..platform import normalize_path


@dataclass(frozen=True)
class TransportOverride:
    """
    Child-process environment that makes ``credential_path`` the only identity.

    ``IdentitiesOnly=yes`` stops ssh from offering agent keys or the keys
    named in the user's ssh config, so authentication depends on the key
    file alone, whatever account runs the sync.
    """
    credential_path: Path
    ssh_executable: str = "ssh"

    @classmethod
    def for_key(cls, credential_path: Path) -> "TransportOverride":
        return cls(credential_path=normalize_path(credential_path))

    @property
    def ssh_command(self) -> str:
        # git runs GIT_SSH_COMMAND through a shell; forward slashes and double
        # quotes survive both sh and the Git for Windows shell
        key = self.credential_path.as_posix()
        return f'{self.ssh_executable} -i "{key}" -o IdentitiesOnly=yes'

    def environment(self) -> Dict[str, str]:
        """Variables merged into the environment of each git invocation."""
        return {"GIT_SSH_COMMAND": self.ssh_command}
