#!/usr/bin/env python3
"""
Remote worker for the obtuse-triangle cluster.
Run this on any device on the LAN to contribute compute power; the
coordinator finds it by scanning its subnet.
"""

import asyncio
import sys

from shared.config import Settings
from shared.logging_config import setup_logging
from worker.node import WorkerNode


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    settings = Settings.from_env()

    port = settings.worker_port
    if argv:
        try:
            port = int(argv[0])
        except ValueError:
            print("Usage: python remote_worker.py [udp_port]")
            print("Example: python remote_worker.py 41234")
            sys.exit(1)

    setup_logging(settings.log_level)
    print(f"Starting worker on {settings.worker_host}:{port}")
    node = WorkerNode(settings.worker_host, port)

    try:
        asyncio.run(node.serve_forever())
    except KeyboardInterrupt:
        print("Worker shutting down...")


if __name__ == "__main__":
    main()
