from pathlib import Path

import pytest

from memocache.cache import DurableStore, VolatileStore
from memocache.config import MemoConfig, load_config, make_store


def test_load_config_defaults(tmp_path):
    path = tmp_path / "memocache.yml"
    path.write_text("backend: memory", encoding="utf-8")

    cfg = load_config(path)

    assert isinstance(cfg, MemoConfig)
    assert cfg.backend == "memory"
    assert cfg.cache_dir is None
    assert cfg.log_level == "INFO"


def test_no_file_uses_defaults(monkeypatch):
    for name in ("MEMOCACHE_BACKEND", "MEMOCACHE_CACHE_DIR", "MEMOCACHE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    assert load_config() == MemoConfig()


def test_env_overrides(monkeypatch, tmp_path):
    source = tmp_path / "memocache.yml"
    source.write_text("backend: memory\nlog_level: INFO", encoding="utf-8")

    monkeypatch.setenv("MEMOCACHE_BACKEND", "disk")
    monkeypatch.setenv("MEMOCACHE_CACHE_DIR", str(tmp_path / "results"))
    monkeypatch.setenv("MEMOCACHE_LOG_LEVEL", "debug")

    cfg = load_config(source)

    assert cfg.backend == "disk"
    assert cfg.cache_dir == tmp_path / "results"
    assert cfg.log_level == "DEBUG"


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/memocache.yml"))


def test_invalid_backend(tmp_path):
    path = tmp_path / "memocache.yml"
    path.write_text("backend: redis", encoding="utf-8")

    with pytest.raises(ValueError, match="validation failed"):
        load_config(path)


def test_unknown_key(tmp_path):
    path = tmp_path / "memocache.yml"
    path.write_text("ttl: 60", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


def test_make_store(tmp_path):
    assert isinstance(make_store(MemoConfig(backend="memory")), VolatileStore)

    store = make_store(MemoConfig(backend="disk", cache_dir=tmp_path / "c"))
    assert isinstance(store, DurableStore)
    assert store.root == tmp_path / "c"
    assert store.root.is_dir()
