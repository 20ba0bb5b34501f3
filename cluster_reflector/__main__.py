"""Entry point for `python -m cluster_reflector`.

Usage:
    python -m cluster_reflector
    uv run python -m cluster_reflector
"""

from __future__ import annotations

import asyncio

from cluster_reflector.app import main

asyncio.run(main())
