"""MCP server exposing the version-control operations to the editor shell."""

import logging
import sys

from mcp.server.fastmcp import FastMCP

from .config import Config, load_configuration, validate_configuration
from .vcs.manager import GitIntegrationManager, get_git_integration_manager


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured operation tags."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logger = logging.getLogger('markgit')
    logger.setLevel(getattr(logging, config.log_level))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False


def register_tools(server: FastMCP, manager: GitIntegrationManager) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    def git_locate_repository(path: str) -> dict:
        """
        Find the git working tree that contains a file or directory.

        Args:
            path: Absolute path of a file or directory

        Returns:
            Dictionary with working_tree_root, or error_code NOT_A_REPOSITORY / BARE_REPOSITORY
        """
        return manager.locate_repository(path).to_dict()

    @server.tool()
    def git_tree_status(path: str) -> dict:
        """
        Status badge of every changed or untracked file in the repository containing path.

        Labels: conflicted, staged_modified, staged, modified, untracked, deleted, renamed.
        Unmodified and ignored files are left out.

        Args:
            path: Any path inside the repository (usually the open folder)
        """
        return manager.get_tree_status(path).to_dict()

    @server.tool()
    def git_file_status(path: str) -> dict:
        """
        Status badge of one file; data.status is null when the file is unmodified
        or not under version control.

        Args:
            path: Absolute path of the file
        """
        return manager.get_file_status(path).to_dict()

    @server.tool()
    def git_commit_file(path: str, message: str) -> dict:
        """
        Stage one file and commit it, together with anything already staged.

        Args:
            path: Absolute path of the file to commit
            message: Commit message
        """
        return manager.commit_file(path, message).to_dict()

    @server.tool()
    def git_revert_file(path: str) -> dict:
        """
        Discard all staged and unstaged changes of one file, restoring the last committed version.
        Untracked files cannot be reverted (error_code CANNOT_REVERT_UNTRACKED).

        Args:
            path: Absolute path of the file to revert
        """
        return manager.revert_file(path).to_dict()

    @server.tool()
    def git_ahead_behind(path: str) -> dict:
        """
        Commits the current branch is ahead of and behind its remote-tracking branch.

        data is null when HEAD is unborn or detached or the path is not in a repository;
        data.upstream is null when no remote-tracking branch exists (counts are then 0).

        Args:
            path: Any path inside the repository
        """
        return manager.get_ahead_behind(path).to_dict()

    @server.tool()
    def git_sync(path: str) -> dict:
        """
        Pull (fast-forward only) and then push the repository containing path.
        A failed pull stops before pushing (SYNC_PULL_FAILED); a failed push
        keeps the pulled commits (SYNC_PUSH_FAILED).

        Args:
            path: Any path inside the repository
        """
        return manager.sync(path).to_dict()

    logging.getLogger('markgit.init').info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize the MCP server with stdio transport."""
    server_config = load_configuration()
    validation_issues = validate_configuration(server_config)

    setup_logging(server_config)
    init_logger = logging.getLogger('markgit.init')

    for issue in validation_issues:
        if issue.startswith("ERROR:"):
            init_logger.error(issue[7:])
        elif issue.startswith("WARNING:"):
            init_logger.warning(issue[9:])

    error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
    if error_count > 0:
        init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
        sys.exit(1)

    init_logger.info("Configuration loaded successfully")

    server = FastMCP("markgit")
    register_tools(server, get_git_integration_manager(server_config))
    return server


def main():
    """Main entry point for the markgit MCP server with stdio transport."""
    startup_logger = logging.getLogger('markgit.startup')

    try:
        server = initialize_server()
        startup_logger.info("Ready to accept MCP connections via stdio transport")
        server.run(transport="stdio")
    except KeyboardInterrupt:
        startup_logger.info("Server stopped by user (Ctrl+C)")
    except ValueError as e:
        # Configuration errors from load_configuration
        print(f"CRITICAL: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
