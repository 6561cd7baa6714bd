"""Command line interface."""

import pytest

from cli import main
from permissions_helper import get_mode
from shared_config import get_value


def test_init_get_update(tmp_path, capsys):
    path = tmp_path / "shared.json"
    assert main(["init", str(path)]) == 0
    assert get_mode(path) == 0o444

    assert main(["get", str(path), "database.host"]) == 0
    assert capsys.readouterr().out.strip().endswith("default_host")

    assert main(["update", str(path), "database.host", "new_secure_host"]) == 0
    assert "updated successfully" in capsys.readouterr().out
    assert get_value(path, "database.host") == "new_secure_host"
    assert get_mode(path) == 0o444


def test_update_parses_json_values(tmp_path):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    assert main(["update", str(path), "database.port", "5432"]) == 0
    assert get_value(path, "database.port") == 5432


def test_get_prints_objects_as_json(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    capsys.readouterr()
    assert main(["get", str(path), "database"]) == 0
    assert '"host": "default_host"' in capsys.readouterr().out


def test_update_failure_is_generic(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    assert main(["update", str(path), "missing.host", "x"]) == 1
    assert "update failed" in capsys.readouterr().err
    assert get_mode(path) == 0o444


def test_init_existing_file_errors(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    assert main(["init", str(path)]) == 1
    assert "already exists" in capsys.readouterr().err
    assert main(["init", str(path), "--force", "--mode", "640"]) == 0
    assert get_mode(path) == 0o640


def test_get_missing_key_errors(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    assert main(["get", str(path), "database.port"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_link_and_aliases(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    (tmp_path / "p1").mkdir()
    assert main(["link", str(path), str(tmp_path / "p1"), "--name", "config.json"]) == 0
    assert main(["link", str(path), str(tmp_path / "p1"), "--name", "config.json"]) == 1
    capsys.readouterr()
    assert main(["aliases", str(path), str(tmp_path)]) == 0
    out = capsys.readouterr().out.split()
    assert sorted(out) == sorted([str(path), str(tmp_path / "p1" / "config.json")])


def test_symlink_and_dangling_scan(tmp_path, capsys):
    target = tmp_path / "target.txt"
    target.write_text("x")
    assert main(["symlink", str(target), str(tmp_path), "--name", "alias.txt", "--relative"]) == 0
    target.unlink()
    capsys.readouterr()
    assert main(["scan", str(tmp_path), "--dangling"]) == 0
    out = capsys.readouterr().out
    assert "alias.txt -> target.txt" in out
    assert "Broken symlink" in out


def test_scenario_command(tmp_path, capsys):
    assert main(["scenario", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert out.count("database.host = new_secure_host") == 3
    assert "mode 444" in out


def test_demo_command(tmp_path, capsys):
    assert main(["demo", str(tmp_path)]) == 0
    assert "dangling" in capsys.readouterr().out


def test_invalid_mode_is_rejected(tmp_path):
    with pytest.raises(SystemExit):
        main(["init", str(tmp_path / "x.json"), "--mode", "rw"])


def test_verbose_mirrors_log_to_stderr(tmp_path, capsys):
    import logger_utils

    try:
        assert main(["-v", "init", str(tmp_path / "shared.json")]) == 0
        assert "[INFO] linkconf.config: Created config" in capsys.readouterr().err
    finally:
        for logger in logger_utils._loggers.values():
            for handler in [h for h in logger.handlers if getattr(h, "_linkconf_console", False)]:
                logger.removeHandler(handler)


def test_scan_missing_directory_errors(tmp_path, capsys):
    assert main(["scan", str(tmp_path / "nope")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_update_rejects_nan(tmp_path, capsys):
    path = tmp_path / "shared.json"
    main(["init", str(path)])
    assert main(["update", str(path), "database.port", "NaN"]) == 1
    assert "update failed" in capsys.readouterr().err
    assert "NaN" not in path.read_text()
