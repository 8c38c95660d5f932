"""Configuration module for RemoteTest MCP.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
- load_project_file: JSON project file loader
"""

from remotetest_mcp.config.host_keys import HostKeyVerifier
from remotetest_mcp.config.loader import ProjectFile, load_project_file, parse_project_file
from remotetest_mcp.config.main import Config
from remotetest_mcp.config.settings import Settings

__all__ = [
    "Config",
    "HostKeyVerifier",
    "ProjectFile",
    "Settings",
    "load_project_file",
    "parse_project_file",
]
