"""Dependency injection container for RemoteTest MCP."""

from dataclasses import dataclass, field

from remotetest_mcp.config import Config
from remotetest_mcp.services.pool import ConnectionPool
from remotetest_mcp.services.uploader import Uploader


@dataclass
class Dependencies:
    """Configuration and connection pool shared by the MCP tools.

    Example:
        deps = Dependencies.create()
        results = await deps.uploader.run_test_case(path, sink)
    """

    config: Config
    pool: ConnectionPool
    uploader: Uploader = field(init=False)

    def __post_init__(self) -> None:
        self.uploader = Uploader(self.config, self.pool)

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from the environment and project file."""
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with a pool sized and secured from config."""
        pool = ConnectionPool(
            idle_timeout=config.idle_timeout,
            max_size=config.max_pool_size,
            known_hosts=config.known_hosts_path,
            strict_host_key_checking=config.strict_host_key_checking,
            connect_timeout=config.connect_timeout,
        )
        return cls(config=config, pool=pool)

    async def cleanup(self) -> None:
        """Close all pooled connections."""
        await self.pool.close_all()
