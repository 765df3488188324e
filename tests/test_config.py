import os

import pytest

from cacheflush.config import Settings, load_settings
from cacheflush.errors import ConfigInvalid
from cacheflush.flush.context import RunContext
from cacheflush.flush.planner import DriveFlusher
from cacheflush.flush.policy import FlushPolicy
from cacheflush.flush.units import GB


@pytest.fixture
def layout(tmp_path):
    pool = tmp_path / "pool"
    cache = tmp_path / "cache"
    pool.mkdir()
    cache.mkdir()
    return tmp_path, pool, cache


def _write_config(path, body: str):
    path.write_text(body)
    return str(path)


def _valid_body(tmp_path, pool, cache, extra: str = "") -> str:
    return f"""
LogFile: {tmp_path / 'cacheflush.log'}
BackingPool: {pool}
CacheDrives:
  - {cache}
OverrideDirectories:
  - /keep
ForceFreeSpace: 2GB
MinimumAge: 7d
CurrentAccessThreshold: 1d
FlushPolicy: largest-first
{extra}"""


def test_load_full_config(layout):
    tmp_path, pool, cache = layout
    path = _write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache, "OwnerUID: 99\nOwnerGID: 100"))

    settings = load_settings(path)

    assert settings.backing_pool == str(pool)
    assert settings.cache_drives == [str(cache)]
    assert settings.flush_policy is FlushPolicy.LARGEST_FIRST
    assert (settings.owner_uid, settings.owner_gid) == (99, 100)
    assert settings.skip_move is False


def test_run_context_from_settings(layout):
    tmp_path, pool, cache = layout
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache)))

    ctx = RunContext.from_settings(settings)

    assert ctx.required_free == 2 * GB
    assert ctx.thresholds.minimum_age == 7 * 86400
    assert ctx.thresholds.current_access == 86400
    assert ctx.overrides == ("/keep",)
    assert ctx.force is False


def test_thresholds_optional(layout):
    tmp_path, pool, cache = layout
    body = f"LogFile: /tmp/x.log\nBackingPool: {pool}\nCacheDrives: [{cache}]\nFlushPolicy: oldest-first\n"
    ctx = RunContext.from_settings(Settings.from_yaml(_write_config(tmp_path / "c.yaml", body)))
    assert ctx.thresholds.minimum_age == 0
    assert ctx.required_free == 0


@pytest.mark.parametrize("missing", ["LogFile", "BackingPool", "CacheDrives", "FlushPolicy"])
def test_required_fields(layout, missing):
    tmp_path, pool, cache = layout
    body = "\n".join(
        line for line in _valid_body(tmp_path, pool, cache).splitlines()
        if not line.startswith(missing) and not (missing == "CacheDrives" and line.startswith("  - /"))
    )
    with pytest.raises(ConfigInvalid) as exc_info:
        Settings.from_yaml(_write_config(tmp_path / "c.yaml", body))
    assert missing in str(exc_info.value)


def test_invalid_policy(layout):
    tmp_path, pool, cache = layout
    body = _valid_body(tmp_path, pool, cache).replace("largest-first", "random")
    with pytest.raises(ConfigInvalid, match="FlushPolicy"):
        Settings.from_yaml(_write_config(tmp_path / "c.yaml", body))


def test_missing_backing_pool(layout):
    tmp_path, pool, cache = layout
    pool.rmdir()
    path = _write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache))
    with pytest.raises(ConfigInvalid, match="Backing pool"):
        load_settings(path)


def test_missing_cache_drive(layout):
    tmp_path, pool, cache = layout
    cache.rmdir()
    path = _write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache))
    with pytest.raises(ConfigInvalid, match="Cache drive"):
        load_settings(path)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigInvalid):
        load_settings(str(tmp_path / "nope.yaml"))


def test_falls_back_to_working_directory(layout, monkeypatch):
    tmp_path, pool, cache = layout
    _write_config(tmp_path / "cacheflush.yaml", _valid_body(tmp_path, pool, cache))
    monkeypatch.chdir(tmp_path)
    assert load_settings().cache_drives == [str(cache)]


def test_no_default_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigInvalid, match="cacheflush.yaml"):
        load_settings()


def test_malformed_yaml(tmp_path):
    with pytest.raises(ConfigInvalid):
        Settings.from_yaml(_write_config(tmp_path / "c.yaml", "LogFile: [unterminated"))


def test_env_var_substitution(layout, monkeypatch):
    tmp_path, pool, cache = layout
    monkeypatch.setenv("PO_APP", "app-token")
    monkeypatch.setenv("PO_USER", "user-token")
    extra = "PushoverEnabled: true\nPushoverAppKey: ${PO_APP}\nPushoverUserKey: ${PO_USER}"
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache, extra)))
    assert settings.pushover_enabled
    assert settings.pushover_app_key == "app-token"
    assert settings.pushover_user_key == "user-token"


def test_pushover_disabled_without_keys(layout):
    tmp_path, pool, cache = layout
    extra = "PushoverEnabled: true\nPushoverAppKey: abc"
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache, extra)))
    assert settings.pushover_enabled is False


def test_unknown_keys_ignored(layout, caplog):
    tmp_path, pool, cache = layout
    caplog.set_level("WARNING", logger="cacheflush.config")
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", _valid_body(tmp_path, pool, cache, "MaximumAge: 30d")))
    assert settings.flush_policy is FlushPolicy.LARGEST_FIRST
    assert "MaximumAge" in caplog.text


def test_trailing_slash_paths_are_normalized(layout):
    tmp_path, pool, cache = layout
    body = (f"LogFile: /tmp/x.log\nBackingPool: {pool}//\n"
            f"CacheDrives:\n  - {cache}/\nFlushPolicy: oldest-first\n")
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", body))

    assert settings.cache_drives == [str(cache)]
    assert settings.backing_pool == str(pool)


def test_trailing_slash_drive_mirrors_into_pool(layout):
    tmp_path, pool, cache = layout
    (cache / "sub").mkdir()
    (cache / "sub" / "f").write_bytes(b"x")
    body = (f"LogFile: /tmp/x.log\nBackingPool: {pool}\n"
            f"CacheDrives:\n  - {cache}/\nFlushPolicy: oldest-first\n"
            f"OwnerUID: {os.getuid()}\nOwnerGID: {os.getgid()}\n")
    settings = Settings.from_yaml(_write_config(tmp_path / "c.yaml", body))

    ctx = RunContext.from_settings(settings)
    summary = DriveFlusher(ctx, settings.cache_drives[0], probe=lambda p: GB).run()

    assert summary.moved == 1
    assert (pool / "sub" / "f").read_bytes() == b"x"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["c.yaml", "cache", "pool"]
