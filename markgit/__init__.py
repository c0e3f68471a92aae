"""
markgit - Local version-control integration for a markdown editor.

Discovers the repository of a file, classifies per-file status into a single
badge, commits and reverts single files, reports ahead/behind against the
remote-tracking branch and runs pull-then-push sync. The operations are
available in-process through GitIntegrationManager and out of process as MCP
tools (``markgit-server``).
"""

__version__ = "1.0.0"
__description__ = "Local version-control integration engine for a markdown editor"

__all__ = ["__version__"]
