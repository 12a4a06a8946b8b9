"""
Tests for host config loading and credential resolution.
"""

import os
import stat
import textwrap

import pytest

from hostplay.engine.errors import InventoryError, ResolutionError
from hostplay.engine.inventory import (
    GlobalConfig,
    HostSpec,
    Inventory,
    load_host_config,
    load_host_config_from_script,
    parse_host_config,
)


HOST_CONFIG = textwrap.dedent("""\
    global_config:
      user: deploy
      key: /keys/global
      command_timeout: 45
    hosts:
      - address: 10.0.0.5
      - address: 10.0.0.6
        user: admin
        key: /keys/admin
        port: 2222
      - 10.0.0.7
      - address: localhost
        connection: local
""")


class TestParseHostConfig:
    """Test host config documents."""

    def test_load_file(self, tmp_path):
        path = tmp_path / "hosts.yml"
        path.write_text(HOST_CONFIG)

        inventory = load_host_config(path)

        assert inventory.global_config == GlobalConfig(
            user="deploy", key="/keys/global", command_timeout=45.0,
        )
        assert [h.address for h in inventory.hosts] == [
            "10.0.0.5", "10.0.0.6", "10.0.0.7", "localhost",
        ]
        assert inventory.get("10.0.0.6") == HostSpec(
            address="10.0.0.6", user="admin", key_path="/keys/admin", port=2222,
        )
        assert inventory.get("localhost").connection == "local"
        assert "10.0.0.7" in inventory
        assert "10.0.0.8" not in inventory

    def test_missing_file(self, tmp_path):
        with pytest.raises(InventoryError):
            load_host_config(tmp_path / "nope.yml")

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / "hosts.yml"
        path.write_text("hosts: [unclosed\n")
        with pytest.raises(InventoryError):
            load_host_config(path)

    @pytest.mark.parametrize("data", [
        [],
        {"hosts": "10.0.0.5"},
        {"hosts": [{"user": "x"}]},
        {"hosts": ["a", "a"]},
        {"hosts": [{"address": "a", "connection": "telnet"}]},
        {"hosts": [{"address": "a", "port": "ssh"}]},
        {"global_config": {"user": "x", "password": "y"}, "hosts": []},
        {"global_config": "deploy", "hosts": []},
    ])
    def test_malformed(self, data):
        with pytest.raises(InventoryError):
            parse_host_config(data)

    def test_host_key_checking_flag(self):
        inventory = parse_host_config({
            "global_config": {"user": "u", "host_key_checking": "no"},
            "hosts": ["a"],
        })
        assert inventory.global_config.host_key_checking is False

    @pytest.mark.skipif(os.name != "posix", reason="needs an executable shell script")
    def test_load_from_script(self, tmp_path):
        script = tmp_path / "hosts.sh"
        script.write_text("#!/bin/sh\ncat <<'EOF'\n" + HOST_CONFIG + "EOF\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR)

        inventory = load_host_config_from_script(script)

        assert len(inventory.hosts) == 4
        assert inventory.global_config.user == "deploy"

    @pytest.mark.skipif(os.name != "posix", reason="needs an executable shell script")
    def test_failing_script(self, tmp_path):
        script = tmp_path / "hosts.sh"
        script.write_text("#!/bin/sh\necho boom >&2\nexit 4\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR)

        with pytest.raises(InventoryError) as exc_info:
            load_host_config_from_script(script)
        assert "boom" in str(exc_info.value)


class TestResolve:
    """Test credential precedence."""

    def _inventory(self) -> Inventory:
        return Inventory(
            global_config=GlobalConfig(user="deploy", key="/keys/global", connect_timeout=5),
            hosts=[
                HostSpec("plain"),
                HostSpec("override", user="admin", key_path="/keys/admin", port=2200),
                HostSpec("local", connection="local"),
            ],
        )

    def test_global_fallback(self):
        host = self._inventory().resolve("plain")
        assert host.user == "deploy"
        assert host.key_path == "/keys/global"
        assert host.port == 22
        assert host.connect_timeout == 5
        assert host.name == "plain"

    def test_host_override(self):
        host = self._inventory().resolve("override")
        assert (host.user, host.key_path, host.port) == ("admin", "/keys/admin", 2200)

    def test_local_config_between_host_and_global(self):
        local = GlobalConfig(user="pbuser", key="/keys/playbook")
        inventory = self._inventory()

        assert inventory.resolve("plain", local).user == "pbuser"
        assert inventory.resolve("plain", local).key_path == "/keys/playbook"
        assert inventory.resolve("override", local).user == "admin"

    def test_local_config_connection_settings(self):
        local = GlobalConfig(user="pbuser", host_key_checking=False, connect_timeout=3)
        host = self._inventory().resolve("plain", local)

        assert host.connect_timeout == 3
        assert host.host_key_checking is False

    def test_connection_setting_defaults(self):
        host = Inventory(GlobalConfig(user="u"), [HostSpec("a")]).resolve("a", GlobalConfig())
        assert host.connect_timeout == 30
        assert host.host_key_checking is True

    def test_global_setting_survives_partial_local_config(self):
        inventory = Inventory(
            GlobalConfig(user="u", connect_timeout=7, host_key_checking=False),
            [HostSpec("a")],
        )
        host = inventory.resolve("a", GlobalConfig(user="pbuser"))
        assert host.connect_timeout == 7
        assert host.host_key_checking is False

    def test_key_path_expands_home(self):
        inventory = Inventory(GlobalConfig(user="u", key="~/.ssh/id_rsa"), [HostSpec("a")])
        assert inventory.resolve("a").key_path == os.path.expanduser("~/.ssh/id_rsa")

    def test_unknown_address(self):
        with pytest.raises(ResolutionError) as exc_info:
            self._inventory().resolve("10.9.9.9")
        assert exc_info.value.address == "10.9.9.9"

    def test_no_user(self):
        inventory = Inventory(GlobalConfig(), [HostSpec("a")])
        with pytest.raises(ResolutionError):
            inventory.resolve("a")

    def test_local_connection_needs_no_user(self, monkeypatch):
        monkeypatch.setenv("USER", "me")
        inventory = Inventory(GlobalConfig(), [HostSpec("localhost", connection="local")])
        assert inventory.resolve("localhost").user == "me"
