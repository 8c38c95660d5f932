"""Tests for dependency injection container."""

from pathlib import Path

import pytest

from remotetest_mcp.config import Config, Settings
from remotetest_mcp.dependencies import Dependencies
from remotetest_mcp.services.pool import ConnectionPool
from remotetest_mcp.services.uploader import Uploader


class TestDependencies:
    """Test Dependencies container."""

    def test_create_reads_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "RemoteTest-config.json"
        config_file.write_text(
            '{"projects": [{"name": "app", "localPath": "/w/app",'
            ' "server": {"host": "box", "username": "dev", "password": "pw"}}]}'
        )
        monkeypatch.setenv("REMOTETEST_CONFIG", str(config_file))
        monkeypatch.setenv("REMOTETEST_KNOWN_HOSTS", "none")
        monkeypatch.setenv("REMOTETEST_MAX_POOL_SIZE", "7")

        deps = Dependencies.create()

        assert isinstance(deps.config, Config)
        assert isinstance(deps.pool, ConnectionPool)
        assert [p.name for p in deps.config.projects] == ["app"]
        assert deps.pool.max_size == 7

    def test_from_config_wires_uploader_to_pool(self) -> None:
        config = Config.from_projects([], settings=Settings(idle_timeout=5, max_pool_size=3))

        deps = Dependencies.from_config(config)

        assert deps.config is config
        assert deps.pool.idle_timeout == 5
        assert deps.pool.max_size == 3
        assert isinstance(deps.uploader, Uploader)
        assert deps.uploader.pool is deps.pool
        assert deps.uploader.config is config

    @pytest.mark.asyncio
    async def test_cleanup_closes_pool(self) -> None:
        deps = Dependencies.from_config(Config.from_projects([]))
        await deps.cleanup()
        assert deps.pool.pool_size == 0
