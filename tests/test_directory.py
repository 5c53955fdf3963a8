"""Tests for the host directory and config resolution."""

import pytest

from fleetwatch.config import HostDescriptor
from fleetwatch.directory import ConfigResolver, EffectiveConfig, HostDirectory, HostRecord


class TestHostRecord:
    """Tests for HostRecord."""

    def test_from_dict_defaults(self):
        record = HostRecord.from_dict({})
        assert record == HostRecord(hostname="", port=0, user="", identity_file="")

    def test_from_dict_string_port(self):
        record = HostRecord.from_dict({"port": "2222", "user": "ops"})
        assert record.port == 2222
        assert record.user == "ops"

    def test_merged_prefers_own_values(self):
        own = HostRecord(hostname="10.0.0.1", port=0, user="deploy", identity_file="")
        default = HostRecord(hostname="fallback", port=22, user="ops", identity_file="~/.ssh/id")
        merged = own.merged(default)
        assert merged == HostRecord(hostname="10.0.0.1", port=22, user="deploy", identity_file="~/.ssh/id")

    def test_to_dict_omits_inherited_fields(self):
        assert HostRecord(user="ops").to_dict() == {"user": "ops"}


class TestHostDirectory:
    """Tests for HostDirectory."""

    def test_default_entry(self):
        directory = HostDirectory({"*": HostRecord(user="ops")})
        assert directory.default == HostRecord(user="ops")

    def test_no_default_entry(self):
        assert HostDirectory().default is None

    def test_patterns_keep_insertion_order_and_skip_default(self):
        directory = HostDirectory()
        directory.add("web-*", HostRecord(user="a"))
        directory.add("*", HostRecord(user="b"))
        directory.add("db-?", HostRecord(user="c"))
        assert [key for key, _ in directory.patterns()] == ["web-*", "db-?"]

    def test_duplicate_key_last_write_wins_in_first_position(self):
        directory = HostDirectory()
        directory.add("web-*", HostRecord(user="first"))
        directory.add("db-*", HostRecord(user="db"))
        directory.add("web-*", HostRecord(user="second"))
        assert directory.get("web-*").user == "second"
        assert directory.keys() == ["web-*", "db-*"]

    def test_from_dict(self):
        directory = HostDirectory.from_dict({
            "*": {"user": "ops", "port": 22},
            "web-*": {"user": "deploy"},
        })
        assert len(directory) == 2
        assert "web-*" in directory
        assert directory.get("web-*").user == "deploy"

    def test_update_appends_and_replaces(self):
        base = HostDirectory({"a": HostRecord(user="1"), "b": HostRecord(user="2")})
        base.update(HostDirectory({"b": HostRecord(user="3"), "c": HostRecord(user="4")}))
        assert base.keys() == ["a", "b", "c"]
        assert base.get("b").user == "3"

    def test_from_ssh_config(self, tmp_path):
        path = tmp_path / "ssh_config"
        path.write_text(
            "Host web-* web?\n"
            "    User deploy\n"
            "    IdentityFile ~/.ssh/web_key\n"
            "\n"
            "Host db-1\n"
            "    HostName 10.0.0.20\n"
            "    Port 2222\n"
            "\n"
            "Host *\n"
            "    User ops\n"
        )
        directory = HostDirectory.from_ssh_config(path)

        assert directory.keys() == ["web-*", "web?", "db-1", "*"]
        assert directory.get("web-*").user == "deploy"
        assert directory.get("web-*").identity_file == "~/.ssh/web_key"
        assert directory.get("db-1") == HostRecord(hostname="10.0.0.20", port=2222)
        assert directory.default.user == "ops"


class TestConfigResolver:
    """Tests for ConfigResolver.resolve."""

    @pytest.fixture
    def directory(self):
        return HostDirectory.from_dict({
            "*": {"user": "ops", "port": 22},
            "web-*": {"user": "deploy"},
            "db-*": {"user": "dba", "port": 5022},
            "web-1": {"hostname": "10.0.0.1", "identity_file": "~/.ssh/web1"},
        })

    def test_pattern_merged_with_default(self, directory):
        resolver = ConfigResolver(directory)
        assert resolver.resolve("web-3") == EffectiveConfig(
            host="web-3", port=22, user="deploy", identity_file=""
        )

    def test_exact_match_beats_pattern(self, directory):
        effective = ConfigResolver(directory).resolve("web-1")
        # Exact entry has no user, so it inherits from "*" rather than "web-*"
        assert effective == EffectiveConfig(
            host="10.0.0.1", port=22, user="ops", identity_file="~/.ssh/web1"
        )

    def test_glob_does_not_match_other_prefix(self, directory):
        effective = ConfigResolver(directory).resolve("web-9")
        assert effective.user == "deploy"
        assert effective.port == 22

    def test_specific_port_overrides_default(self, directory):
        effective = ConfigResolver(directory).resolve("db-7")
        assert effective.user == "dba"
        assert effective.port == 5022

    def test_no_match_uses_default(self, directory):
        effective = ConfigResolver(directory).resolve("cache-1")
        assert effective == EffectiveConfig(host="cache-1", port=22, user="ops", identity_file="")

    def test_first_matching_pattern_in_order_wins(self):
        directory = HostDirectory.from_dict({
            "web-?": {"user": "first"},
            "web-*": {"user": "second"},
        })
        resolver = ConfigResolver(directory)
        assert resolver.resolve("web-1").user == "first"
        assert resolver.resolve("web-10").user == "second"

    def test_bracket_class(self):
        directory = HostDirectory.from_dict({"node[12]": {"user": "n"}})
        resolver = ConfigResolver(directory)
        assert resolver.resolve("node1").user == "n"
        assert resolver.resolve("node3").user == ""

    def test_matching_is_case_sensitive(self):
        directory = HostDirectory.from_dict({"web-*": {"user": "deploy"}})
        assert ConfigResolver(directory).resolve("WEB-1").user == ""

    def test_empty_directory(self):
        effective = ConfigResolver().resolve("anything")
        assert effective == EffectiveConfig(host="anything", port=0, user="", identity_file="")

    def test_default_hostname_used_when_set(self):
        directory = HostDirectory.from_dict({"*": {"hostname": "bastion"}})
        assert ConfigResolver(directory).resolve("x").host == "bastion"

    def test_per_field_merge(self):
        directory = HostDirectory.from_dict({
            "*": {"user": "ops", "port": 22, "identity_file": "~/.ssh/default"},
            "app": {"user": "app", "identity_file": "~/.ssh/app"},
        })
        effective = ConfigResolver(directory).resolve("app")
        assert effective.port == 22
        assert effective.user == "app"
        assert effective.identity_file == "~/.ssh/app"

    def test_hostname_token_expands_to_lookup_name(self):
        directory = HostDirectory.from_dict({
            "web-*": {"hostname": "%h.internal.example.com"},
            "odd": {"hostname": "odd%%host"},
        })
        resolver = ConfigResolver(directory)
        assert resolver.resolve("web-3").host == "web-3.internal.example.com"
        assert resolver.resolve("odd").host == "odd%host"

    def test_hostname_token_from_ssh_config(self, tmp_path):
        path = tmp_path / "ssh_config"
        path.write_text("Host app-*\n    HostName %h.prod.example.com\n")
        resolver = ConfigResolver(HostDirectory.from_ssh_config(path))
        assert resolver.resolve("app-7").host == "app-7.prod.example.com"


class TestResolveDescriptor:
    """Tests for combining descriptors with directory entries."""

    def _descriptor(self, **overrides):
        data = {"name": "web", "remote": "web-1", "username": "root", "password": "pw"}
        data.update(overrides)
        return HostDescriptor.from_dict(data)

    def test_descriptor_without_directory(self):
        effective = ConfigResolver().resolve_descriptor(self._descriptor())
        assert effective == EffectiveConfig(host="web-1", port=22, user="root", identity_file="")

    def test_directory_expands_alias_and_identity(self):
        directory = HostDirectory.from_dict({
            "web-*": {"hostname": "10.0.0.5", "port": 2200, "user": "deploy", "identity_file": "~/.ssh/k"},
        })
        effective = ConfigResolver(directory).resolve_descriptor(self._descriptor())
        assert effective.host == "10.0.0.5"
        assert effective.port == 2200
        assert effective.user == "root"
        assert effective.identity_file == "~/.ssh/k"

    def test_descriptor_port_wins(self):
        directory = HostDirectory.from_dict({"web-*": {"port": 2200}})
        effective = ConfigResolver(directory).resolve_descriptor(self._descriptor(port="2222"))
        assert effective.port == 2222
