# Main Entry Point
#
# Runs the local vault API that the UI talks to.
# Defaults come from the environment (see core/config.py).

import sys
import argparse

from . import __version__
from .core import (
    EventSeverity,
    EventType,
    get_audit_logger,
    load_config,
)


def main():
    """Main entry point for Offline Vault."""
    config = load_config()

    parser = argparse.ArgumentParser(
        description="Offline Vault - local encrypted credential vault",
    )

    parser.add_argument(
        "--host",
        default=config.host,
        help=f"Backend host (default: {config.host})"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=config.port,
        help=f"Backend port (default: {config.port})"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Offline Vault v{__version__}"
    )

    args = parser.parse_args()

    # The API startup hook opens the audit log in config.log_dir

    print(f"  Starting Offline Vault API on {args.host}:{args.port}...")
    print("  Press Ctrl+C to stop")

    from .api.main import start_api_server

    try:
        start_api_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\n\nShutting down backend...")
    except Exception as e:
        print(f"\n\nError: {str(e)}")
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"Offline Vault backend crashed: {str(e)}"
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
