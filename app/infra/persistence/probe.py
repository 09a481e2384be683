# =============================================================================
# File: app/infra/persistence/probe.py
# Description: Latency-timed liveness probe shared by the store clients
# =============================================================================

import time
from typing import Any, Awaitable, Callable, Dict


async def timed_probe(check: Callable[[], Awaitable[Any]]) -> Dict[str, Any]:
    """Run one round trip; report it as the /health endpoint expects"""
    started = time.monotonic()
    try:
        await check()
    except Exception as e:
        return {"healthy": False, "error": f"{type(e).__name__}: {e}"}
    return {"healthy": True, "latency_ms": round((time.monotonic() - started) * 1000, 1)}
