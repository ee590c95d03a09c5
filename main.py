#!/usr/bin/env python3
"""
ADR bot entry point for container/PaaS deployment.

Starts the Flask web server that handles the /adr Slack command.
"""

import os
import sys


def main():
    """Start the ADR bot web server."""
    # Get port from environment, handling literal variable expansion
    port_env = os.environ.get('PORT', '8000')

    # Some platforms pass '$PORT' as a literal string, handle this case
    if port_env == '$PORT':
        print("Warning: Got literal '$PORT', using default port 8000")
        port = 8000
    else:
        try:
            port = int(port_env)
        except (ValueError, TypeError):
            print(f"Warning: Invalid PORT value '{port_env}', using default port 8000")
            port = 8000

    print(f"Starting ADR bot web server on port {port}")

    from adrbot.run import main as run_main

    # Override sys.argv to pass server mode and port
    sys.argv = ['main.py', '--mode', 'server', '--port', str(port)]

    run_main()


if __name__ == '__main__':
    main()
