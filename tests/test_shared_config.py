"""Shared config: init, load, key paths and the controlled update."""

import json
import multiprocessing
import os
import stat

import pytest

from core import create_hardlink
from permissions_helper import get_mode, set_mode
from shared_config import (
    ConfigError,
    KeyPathError,
    UpdateError,
    get_value,
    init_config,
    load_config,
    parse_value,
    safe_update,
    split_key_path,
    update_value,
)

requires_non_root = pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses permission checks")


class TestInitAndLoad:
    def test_init_writes_default_record_read_only(self, config_file):
        data = load_config(config_file)
        assert data["database"]["host"] == "default_host"
        assert set(data["database"]) == {"host", "user", "password"}
        assert get_mode(config_file) == 0o444

    def test_init_refuses_existing_file(self, config_file):
        with pytest.raises(ConfigError):
            init_config(config_file)

    def test_init_overwrite_keeps_inode(self, config_file, tmp_path):
        inode = os.stat(config_file).st_ino
        init_config(config_file, data={"database": {"host": "other"}}, overwrite=True)
        assert os.stat(config_file).st_ino == inode
        assert get_value(config_file, "database.host") == "other"
        assert get_mode(config_file) == 0o444

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.json")

    def test_load_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_load_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(path)


class TestKeyPaths:
    def test_split(self):
        assert split_key_path("database.host") == ["database", "host"]

    @pytest.mark.parametrize("bad", ["", ".", "database.", ".host", "a..b"])
    def test_split_rejects_empty_segments(self, bad):
        with pytest.raises(KeyPathError):
            split_key_path(bad)

    def test_get_value(self, config_file):
        assert get_value(config_file, "database.user") == "admin"
        assert get_value(config_file, "database") == {
            "host": "default_host",
            "user": "admin",
            "password": "password123",
        }

    def test_get_missing_key(self, config_file):
        with pytest.raises(KeyPathError):
            get_value(config_file, "database.port")
        with pytest.raises(KeyPathError):
            get_value(config_file, "cache.host")

    def test_parse_value(self):
        assert parse_value("5432") == 5432
        assert parse_value("true") is True
        assert parse_value('{"a": 1}') == {"a": 1}
        assert parse_value("new_secure_host") == "new_secure_host"


class TestControlledUpdate:
    def test_update_restores_read_only_mode(self, config_file):
        assert safe_update(config_file, "database.host", "new_secure_host") is True
        assert get_value(config_file, "database.host") == "new_secure_host"
        assert get_mode(config_file) == 0o444

    def test_update_keeps_inode_and_valid_json(self, config_file):
        inode = os.stat(config_file).st_ino
        safe_update(config_file, "database.password", "s3cret")
        assert os.stat(config_file).st_ino == inode
        json.loads(config_file.read_text())

    def test_update_visible_through_every_link(self, config_file, tmp_path):
        for project in ("project1", "project2"):
            (tmp_path / project).mkdir()
            assert create_hardlink(config_file, tmp_path / project, "config.json")
        assert safe_update(tmp_path / "project1" / "config.json", "database.host", "via_link")
        for path in (config_file, tmp_path / "project1" / "config.json", tmp_path / "project2" / "config.json"):
            assert get_value(path, "database.host") == "via_link"

    def test_new_leaf_key_is_added(self, config_file):
        assert safe_update(config_file, "database.port", 5432)
        assert get_value(config_file, "database.port") == 5432

    def test_missing_intermediate_node_fails_without_changes(self, config_file):
        before = config_file.read_text()
        assert safe_update(config_file, "cache.host", "x") is False
        assert config_file.read_text() == before
        assert get_mode(config_file) == 0o444

    def test_create_missing_builds_intermediate_nodes(self, config_file):
        assert safe_update(config_file, "cache.redis.host", "localhost", create_missing=True)
        assert get_value(config_file, "cache.redis.host") == "localhost"

    def test_descending_through_scalar_fails(self, config_file):
        assert safe_update(config_file, "database.host.name", "x") is False
        assert get_value(config_file, "database.host") == "default_host"

    def test_malformed_content_restores_mode(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{broken")
        set_mode(path, 0o444)
        assert safe_update(path, "database.host", "x") is False
        assert get_mode(path) == 0o444
        assert path.read_text() == "{broken"

    def test_unserializable_value_leaves_content_intact(self, config_file):
        before = config_file.read_text()
        assert safe_update(config_file, "database.host", object()) is False
        assert config_file.read_text() == before
        assert get_mode(config_file) == 0o444

    def test_original_mode_is_restored(self, config_file):
        set_mode(config_file, 0o440)
        assert safe_update(config_file, "database.host", "h")
        assert get_mode(config_file) == 0o440

    def test_explicit_restore_mode(self, config_file):
        set_mode(config_file, 0o644)
        assert safe_update(config_file, "database.host", "h", restore_mode=0o444)
        assert get_mode(config_file) == 0o444

    def test_missing_file(self, tmp_path):
        assert safe_update(tmp_path / "absent.json", "database.host", "x") is False
        with pytest.raises(UpdateError) as excinfo:
            update_value(tmp_path / "absent.json", "database.host", "x")
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_update_value_chains_key_error(self, config_file):
        with pytest.raises(UpdateError) as excinfo:
            update_value(config_file, "nope.host", "x")
        assert isinstance(excinfo.value.__cause__, KeyPathError)

    @requires_non_root
    def test_read_only_file_rejects_direct_write(self, config_file):
        with pytest.raises(PermissionError):
            with open(config_file, "w") as f:
                f.write("{}")
        assert stat.S_IMODE(os.stat(config_file).st_mode) == 0o444


def _update_key(args):
    path, index = args
    return safe_update(path, f"database.key{index}", index)


class TestUpdateSafety:
    def test_nan_is_rejected_and_file_stays_strict_json(self, config_file):
        before = config_file.read_text()
        assert safe_update(config_file, "database.port", parse_value("NaN")) is False
        assert safe_update(config_file, "database.port", float("inf")) is False
        assert config_file.read_text() == before

        def strict(name):
            raise ValueError(name)

        json.loads(config_file.read_text(), parse_constant=strict)
        assert get_mode(config_file) == 0o444

    @requires_non_root
    @pytest.mark.parametrize("mode", [0o200, 0o000])
    def test_owner_without_read_bit_can_update(self, config_file, mode):
        set_mode(config_file, mode)
        assert safe_update(config_file, "database.host", "h") is True
        assert get_mode(config_file) == mode
        set_mode(config_file, 0o444)
        assert get_value(config_file, "database.host") == "h"

    def test_concurrent_updates_through_linked_names_all_survive(self, config_file, tmp_path):
        names = []
        for project in ("project1", "project2"):
            (tmp_path / project).mkdir()
            create_hardlink(config_file, tmp_path / project, "config.json")
            names.append(tmp_path / project / "config.json")
        jobs = [(names[i % 2], i) for i in range(40)]
        with multiprocessing.get_context("fork").Pool(4) as pool:
            results = pool.map(_update_key, jobs)
        assert all(results)
        data = load_config(config_file)
        for i in range(40):
            assert data["database"][f"key{i}"] == i
        assert get_mode(config_file) == 0o444

    def test_reinit_takes_the_lock(self, config_file, monkeypatch):
        import shared_config

        calls = []
        real_locked = shared_config.locked

        def recording_locked(path):
            calls.append(path)
            return real_locked(path)

        monkeypatch.setattr(shared_config, "locked", recording_locked)
        init_config(config_file, overwrite=True)
        assert calls == [config_file]
