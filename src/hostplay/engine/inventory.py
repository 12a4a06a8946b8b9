"""
Hostplay Inventory

Host specs, global connection defaults, and credential resolution.
The host config document is YAML::

    global_config:
      user: deploy
      key: ~/.ssh/id_ed25519
    hosts:
      - address: 10.0.0.5
      - address: 10.0.0.6
        user: admin
"""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from hostplay.engine.errors import InventoryError, ResolutionError


CONNECTION_TYPES = ('ssh', 'local')
DEFAULT_CONNECT_TIMEOUT = 30.0


@dataclass(frozen=True)
class HostSpec:
    """A target host as declared in the host config."""

    address: str
    user: Optional[str] = None
    key_path: Optional[str] = None
    port: int = 22
    connection: str = 'ssh'

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class GlobalConfig:
    """
    Connection defaults shared by all hosts, plus engine knobs.

    Unset fields are None so a playbook's local config only overrides
    what it names.
    """

    user: Optional[str] = None
    key: Optional[str] = None
    connect_timeout: Optional[float] = None
    command_timeout: Optional[float] = None
    host_key_checking: Optional[bool] = None


@dataclass(frozen=True)
class ResolvedHost:
    """A host with its effective credentials, computed once before the run."""

    address: str
    user: str
    key_path: Optional[str] = None
    port: int = 22
    connection: str = 'ssh'
    connect_timeout: float = 30
    host_key_checking: bool = True

    @property
    def name(self) -> str:
        return self.address

    def __str__(self) -> str:
        return self.address


@dataclass
class Inventory:
    """Ordered host specs plus the global defaults they fall back to."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    hosts: List[HostSpec] = field(default_factory=list)

    def get(self, address: str) -> Optional[HostSpec]:
        for host in self.hosts:
            if host.address == address:
                return host
        return None

    def __contains__(self, address: str) -> bool:
        return self.get(address) is not None

    def resolve(
        self,
        address: str,
        local_config: Optional[GlobalConfig] = None,
    ) -> ResolvedHost:
        """
        Resolve an address to a host with effective credentials.

        Precedence is host override, then the playbook's local config,
        then the global config.

        Raises:
            ResolutionError: If the address is unknown or has no user
        """
        spec = self.get(address)
        if spec is None:
            raise ResolutionError(address)

        layers = [c for c in (local_config, self.global_config) if c is not None]

        user = spec.user or _first(c.user for c in layers)
        if not user and spec.connection == 'local':
            user = os.getenv('USER', 'root')
        if not user:
            raise ResolutionError(address, "no user configured for host or globally")

        key_path = spec.key_path or _first(c.key for c in layers)
        if key_path:
            key_path = os.path.expanduser(key_path)

        return ResolvedHost(
            address=spec.address,
            user=user,
            key_path=key_path,
            port=spec.port,
            connection=spec.connection,
            connect_timeout=_first_set((c.connect_timeout for c in layers), DEFAULT_CONNECT_TIMEOUT),
            host_key_checking=_first_set((c.host_key_checking for c in layers), True),
        )


def _first(values: Any) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


def _first_set(values: Any, default: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def parse_global_config(data: Any, source: Optional[str] = None) -> GlobalConfig:
    """Build a GlobalConfig from its parsed mapping."""
    if data is None:
        return GlobalConfig()
    if not isinstance(data, dict):
        raise InventoryError("global_config must be a mapping", file_path=source)

    unknown = set(data) - {'user', 'key', 'connect_timeout', 'command_timeout', 'host_key_checking'}
    if unknown:
        raise InventoryError(
            f"unknown global_config keys: {', '.join(sorted(unknown))}",
            file_path=source,
        )

    try:
        return GlobalConfig(
            user=_optional_str(data.get('user')),
            key=_optional_str(data.get('key')),
            connect_timeout=_optional_float(data.get('connect_timeout')),
            command_timeout=_optional_float(data.get('command_timeout')),
            host_key_checking=_optional_bool(data.get('host_key_checking')),
        )
    except (TypeError, ValueError) as e:
        raise InventoryError(f"invalid global_config value: {e}", file_path=source)


def parse_host_config(data: Any, source: Optional[str] = None) -> Inventory:
    """
    Build an Inventory from a parsed host config document.

    Raises:
        InventoryError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise InventoryError("host config must be a mapping", file_path=source)

    global_config = parse_global_config(data.get('global_config'), source)

    raw_hosts = data.get('hosts') or []
    if not isinstance(raw_hosts, list):
        raise InventoryError("'hosts' must be a list", file_path=source)

    hosts: List[HostSpec] = []
    seen = set()
    for idx, entry in enumerate(raw_hosts):
        if isinstance(entry, str):
            entry = {'address': entry}
        if not isinstance(entry, dict) or not entry.get('address'):
            raise InventoryError(f"host #{idx + 1} has no address", file_path=source)

        address = str(entry['address'])
        if address in seen:
            raise InventoryError(f"duplicate host address: {address}", file_path=source)
        seen.add(address)

        connection = entry.get('connection', 'ssh')
        if connection not in CONNECTION_TYPES:
            raise InventoryError(
                f"host {address}: unknown connection type {connection!r}",
                file_path=source,
            )

        try:
            port = int(entry.get('port', 22))
        except (TypeError, ValueError):
            raise InventoryError(f"host {address}: invalid port", file_path=source)

        hosts.append(HostSpec(
            address=address,
            user=_optional_str(entry.get('user')),
            # "key" is the document spelling, matching global_config
            key_path=_optional_str(entry.get('key', entry.get('key_path'))),
            port=port,
            connection=connection,
        ))

    return Inventory(global_config=global_config, hosts=hosts)


def load_host_config(path: Union[str, Path]) -> Inventory:
    """Load the host config document from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise InventoryError(f"Host config not found: {path}", file_path=str(path))

    try:
        data = yaml.safe_load(path.read_text(encoding='utf-8'))
    except yaml.YAMLError as e:
        raise InventoryError(f"YAML syntax error: {e}", file_path=str(path))

    return parse_host_config(data, source=str(path))


def load_host_config_from_script(path: Union[str, Path], timeout: float = 60) -> Inventory:
    """
    Run an executable host script and parse its stdout as the host config.

    Raises:
        InventoryError: If the script fails or prints an invalid document
    """
    script = str(path)
    try:
        proc = subprocess.run(
            [script],
            capture_output=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise InventoryError(f"Failed to execute host script: {e}", file_path=script)

    if proc.returncode != 0:
        stderr = proc.stderr.decode('utf-8', errors='replace').strip()
        raise InventoryError(
            f"Host script exited with {proc.returncode}: {stderr}",
            file_path=script,
        )

    try:
        data = yaml.safe_load(proc.stdout.decode('utf-8'))
    except UnicodeDecodeError:
        raise InventoryError("Host script output is not valid UTF-8", file_path=script)
    except yaml.YAMLError as e:
        raise InventoryError(f"YAML syntax error: {e}", file_path=script)

    return parse_host_config(data, source=script)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return str(value)


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _optional_bool(value: Any) -> Optional[bool]:
    return to_bool(value) if value is not None else None


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', 'yes', '1', 'on')
