from __future__ import annotations

from pathlib import Path

import pytest

from feedsync.config import ConfigLocator, ConfigRepository, GlobalConfig, feedsync_home


def test_home_defaults_to_user_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FEEDSYNC_HOME", raising=False)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    assert feedsync_home() == tmp_path / ".feedsync"
    locator = ConfigLocator()
    assert locator.root == (tmp_path / ".feedsync").resolve()
    assert locator.feeds_dir.is_dir()


def test_locator_uses_env_and_creates_directories(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path))
    locator = ConfigLocator()
    assert locator.root == tmp_path.resolve()
    for path in (locator.feeds_dir, locator.store_dir, locator.logs_dir):
        assert path.is_dir()
    assert locator.global_config_path == tmp_path.resolve() / "config.yaml"


def test_global_config_defaults_without_writing(temp_config_repository: ConfigRepository) -> None:
    assert temp_config_repository.load_global_config() == GlobalConfig()
    assert not temp_config_repository.locator.global_config_path.exists()


def test_global_config_read_from_yaml(temp_config_repository: ConfigRepository) -> None:
    temp_config_repository.locator.global_config_path.write_text(
        "user_agent: soc-sync/1.0\nextra_headers:\n  X-Team: soc\n", encoding="utf-8"
    )
    loaded = ConfigRepository(temp_config_repository.locator).load_global_config()
    assert loaded.request_headers() == {"User-Agent": "soc-sync/1.0", "X-Team": "soc"}


def test_feed_cycle(temp_config_repository: ConfigRepository, sample_feed_config) -> None:
    feed = sample_feed_config(feed_name="Alien Vault", retry_delay=60)
    path = temp_config_repository.save_feed(feed)
    assert path.name == "alien-vault.yaml"
    assert temp_config_repository.has_feed("Alien Vault")
    assert temp_config_repository.load_feed("Alien Vault") == feed
    assert [cfg.feed_name for cfg in temp_config_repository.list_feeds()] == ["Alien Vault"]
    assert temp_config_repository.delete_feed("Alien Vault")
    assert not path.exists()
    assert not temp_config_repository.delete_feed("Alien Vault")


def test_saved_feed_leaves_no_temp_files(temp_config_repository: ConfigRepository, sample_feed_config) -> None:
    temp_config_repository.save_feed(sample_feed_config())
    temp_config_repository.save_feed(sample_feed_config(retry_delay=120))
    names = [p.name for p in temp_config_repository.locator.feeds_dir.iterdir()]
    assert names == ["alienvault.yaml"]
    assert temp_config_repository.load_feed("alienvault").retry_delay == 120


def test_missing_feed(temp_config_repository: ConfigRepository) -> None:
    assert not temp_config_repository.has_feed("missing")
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_feed("missing")


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "feed_name: x\nretry_delay: -5\n"],
)
def test_rejects_bad_feed_file(temp_config_repository: ConfigRepository, content: str) -> None:
    temp_config_repository.feed_path("broken").write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        temp_config_repository.load_feed("broken")


def test_feed_store_dir_resolution(temp_config_repository: ConfigRepository, sample_feed_config) -> None:
    store_dir = temp_config_repository.locator.store_dir
    assert temp_config_repository.feed_store_dir(sample_feed_config()) == store_dir
    custom = sample_feed_config(storage_dir="av")
    assert temp_config_repository.feed_store_dir(custom) == (store_dir / "av").resolve()
