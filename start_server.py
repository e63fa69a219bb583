#!/usr/bin/env python3
"""Start script that launches the simulator API with uvicorn, honouring the PORT environment variable."""

import os
import sys

import uvicorn

port = os.environ.get("PORT", "8000")
try:
    port_int = int(port)
except ValueError:
    print(f"Warning: Invalid PORT value '{port}', using default 8000", file=sys.stderr)
    port_int = 8000

# Single worker: the fleet scheduler lives in-process
uvicorn.run(
    "fleet_simulator.main:app",
    host="0.0.0.0",
    port=port_int,
    proxy_headers=True,
    forwarded_allow_ips="*",
)
