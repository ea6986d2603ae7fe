from __future__ import annotations

import asyncio
import time
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from .models import TestResult

_DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "postgres": 5432,
    "postgresql": 5432,
    "mysql": 3306,
    "smtp": 25,
    "smtps": 465,
    "redis": 6379,
}


def resolve_endpoint(config: Mapping[str, Any]) -> Optional[str]:
    """Pick the endpoint a provider config points at, if it declares one."""
    for key in ("connection_string", "url", "supabase_url"):
        value = config.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    host = config.get("host")
    if isinstance(host, str) and host.strip():
        port = config.get("port")
        return f"{host.strip()}:{port}" if port else host.strip()
    return None


def split_endpoint(endpoint: str) -> Tuple[str, int]:
    if "://" in endpoint:
        parts = urlsplit(endpoint)
        host = parts.hostname or ""
        port = parts.port or _DEFAULT_PORTS.get(parts.scheme.lower(), 80)
        return host, port
    host, sep, port = endpoint.rpartition(":")
    if sep and port.isdigit():
        return host, int(port)
    return endpoint, 80


class TcpConnectivityProbe:
    """Opens and immediately closes a TCP connection to the endpoint."""

    async def probe(self, endpoint: str, *, timeout: float) -> TestResult:
        host, port = split_endpoint(endpoint)
        if not host:
            return TestResult(success=False, message=f"cannot parse endpoint: {endpoint}")
        started = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except asyncio.TimeoutError:
            return TestResult(
                success=False,
                message=f"timed out connecting to {host}:{port} after {timeout}s",
            )
        except OSError as exc:
            return TestResult(
                success=False, message=f"cannot reach {host}:{port}: {exc}"
            )
        latency = round((time.perf_counter() - started) * 1000, 2)
        writer.close()
        await writer.wait_closed()
        return TestResult(
            success=True,
            message=f"connected to {host}:{port}",
            details={"host": host, "port": port},
            latency=latency,
        )


class StaticConnectivityProbe:
    """Probe with canned answers; unreachable endpoints can be listed up front."""

    def __init__(self, latency: float = 45.0, unreachable: tuple[str, ...] = ()) -> None:
        self.latency = latency
        self.unreachable = set(unreachable)
        self.probed: list[str] = []

    async def probe(self, endpoint: str, *, timeout: float) -> TestResult:
        self.probed.append(endpoint)
        if endpoint in self.unreachable:
            return TestResult(success=False, message=f"cannot reach {endpoint}")
        return TestResult(
            success=True, message=f"reached {endpoint}", latency=self.latency
        )
