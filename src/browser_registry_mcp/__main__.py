"""Entry point for running the browser registry MCP server."""

import logging
import sys

logger = logging.getLogger("browser_registry_mcp")


def main() -> int:
    """Run the server until interrupted; return a process exit code."""
    from .server import run_server

    try:
        run_server()
    except KeyboardInterrupt:
        logger.info("Browser registry server interrupted, shutting down")
    except Exception as e:
        logger.error(f"Browser registry server failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
