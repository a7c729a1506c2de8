"""Receiver discovery for BluOS devices.

This module sweeps the local IPv4 subnet and asks every candidate host for its
/Status on the control port. The caller supplies its own address and netmask
(acquiring those is a platform concern).
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from .api.constants import API_ENDPOINT_STATUS, FALLBACK_PREFIX_LENGTH
from .api.parser import parse_identity
from .api.transport import fetch_text
from .config import setting
from .exceptions import BluOSError
from .models import Receiver

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "DiscoveredHost",
    "compute_host_range",
    "probe_host",
    "scan_for_receivers",
]


@dataclass
class DiscoveredHost:
    """A host that answered the BluOS identity query."""

    host: str
    port: int
    name: str
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "name": self.name,
            "model": self.model,
        }

    def to_receiver(self, label: str | None = None, network_id: str | None = None) -> Receiver:
        """Turn this candidate into a Receiver value (label defaults to the advertised name)."""
        return Receiver(host=self.host, port=self.port, label=label or self.name, network_id=network_id)

    def __str__(self) -> str:
        """String representation."""
        model = f" ({self.model})" if self.model else ""
        return f"{self.name}{model} @ {self.host}:{self.port}"


def _prefix_length(local_address: ipaddress.IPv4Address, netmask: str | int | None) -> int:
    """Work out the prefix length, assuming /24 when the mask is absent or unusable."""
    if netmask is None or netmask in (0, "", "0", "0.0.0.0"):
        _LOGGER.debug("No netmask for %s, assuming /%d", local_address, FALLBACK_PREFIX_LENGTH)
        return FALLBACK_PREFIX_LENGTH

    mask = str(netmask).strip().lstrip("/")
    try:
        return ipaddress.IPv4Network(f"{local_address}/{mask}", strict=False).prefixlen
    except ValueError:
        _LOGGER.warning("Invalid netmask %r, assuming /%d (best effort)", netmask, FALLBACK_PREFIX_LENGTH)
        return FALLBACK_PREFIX_LENGTH


def compute_host_range(
    local_address: str,
    netmask: str | int | None = None,
    max_hosts: int | None = None,
) -> list[str]:
    """List the candidate host addresses of the local subnet.

    The network base is ``local_address AND netmask``. The network and broadcast
    addresses are excluded, and at most ``max_hosts`` addresses are returned,
    counting up from the base.

    Args:
        local_address: This device's IPv4 address.
        netmask: Dotted mask ("255.255.255.0"), prefix length (24 or "/24"), or
            None/0 to assume /24.
        max_hosts: Cap on the number of candidates (default from config, 254).

    Returns:
        Host addresses in ascending order.

    Raises:
        ValueError: If local_address is not an IPv4 address.
    """
    address = ipaddress.IPv4Address(local_address.strip())
    limit = int(setting("max_hosts", max_hosts))
    prefix = _prefix_length(address, netmask)

    network = ipaddress.IPv4Network(f"{address}/{prefix}", strict=False)
    host_count = max(network.num_addresses - 2, 0)
    base = int(network.network_address)
    return [str(ipaddress.IPv4Address(base + offset)) for offset in range(1, min(host_count, limit) + 1)]


async def _is_reachable(host: str, port: int, timeout: float) -> bool:
    """Best-effort TCP reachability check of the control port."""
    try:
        async with asyncio.timeout(timeout):
            _, writer = await asyncio.open_connection(host, port)
    except (TimeoutError, OSError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


async def probe_host(
    host: str,
    port: int | None = None,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> DiscoveredHost | None:
    """Check whether host is a BluOS receiver.

    Args:
        host: Address to probe.
        port: Control port (default from config, 11000).
        timeout: Seconds after which the whole probe is abandoned.
        session: Optional aiohttp session.

    Returns:
        DiscoveredHost if the identity response names a device, None otherwise.
    """
    port = int(setting("port", port))
    timeout = float(setting("probe_timeout", timeout))

    try:
        async with asyncio.timeout(timeout):
            if not await _is_reachable(host, port, timeout):
                return None
            body = await fetch_text(
                f"http://{host}:{port}{API_ENDPOINT_STATUS}",
                timeout,
                timeout,
                session=session,
            )
    except (TimeoutError, BluOSError) as err:
        _LOGGER.debug("Probe of %s:%d failed: %s", host, port, err)
        return None
    except Exception as err:  # noqa: BLE001
        _LOGGER.debug("Unexpected error probing %s:%d: %s", host, port, err)
        return None

    identity = parse_identity(body)
    if identity is None:
        _LOGGER.debug("Host %s:%d answered without a device name", host, port)
        return None

    name, model = identity
    return DiscoveredHost(host=host, port=port, name=name, model=model)


async def scan_for_receivers(
    local_address: str,
    netmask: str | int | None = None,
    *,
    port: int | None = None,
    probe_timeout: float | None = None,
    max_concurrency: int | None = None,
    scan_timeout: float | None = None,
    max_hosts: int | None = None,
    session: aiohttp.ClientSession | None = None,
) -> list[DiscoveredHost]:
    """Discover BluOS receivers on the local subnet.

    Every candidate is probed concurrently, with at most ``max_concurrency``
    probes in flight. Probes still running when ``scan_timeout`` elapses are
    cancelled and count as not found.

    Args:
        local_address: This device's IPv4 address.
        netmask: Subnet mask or prefix length (None assumes /24).
        port: Control port to probe.
        probe_timeout: Per-host timeout in seconds.
        max_concurrency: Maximum number of probes in flight.
        scan_timeout: Wall-clock ceiling for the whole scan in seconds.
        max_hosts: Cap on the number of candidates.
        session: Optional shared aiohttp session.

    Returns:
        Receivers found, in no particular order. Never raises for network
        problems; an invalid local_address yields an empty list.
    """
    port = int(setting("port", port))
    probe_timeout = float(setting("probe_timeout", probe_timeout))
    max_concurrency = max(1, int(setting("scan_concurrency", max_concurrency)))
    scan_timeout = float(setting("scan_timeout", scan_timeout))

    try:
        hosts = compute_host_range(local_address, netmask, max_hosts)
    except ValueError as err:
        _LOGGER.warning("Cannot scan from address %r: %s", local_address, err)
        return []

    if not hosts:
        return []

    _LOGGER.info(
        "Scanning %d host(s) from %s on port %d (concurrency=%d, timeout=%.0fs)...",
        len(hosts),
        hosts[0],
        port,
        max_concurrency,
        scan_timeout,
    )

    found: list[DiscoveredHost] = []
    semaphore = asyncio.Semaphore(max_concurrency)

    local_session = False
    if session is None:
        session = aiohttp.ClientSession()
        local_session = True

    async def bounded_probe(host: str) -> None:
        async with semaphore:
            device = await probe_host(host, port, probe_timeout, session)
        if device is not None:
            _LOGGER.debug("Found receiver: %s", device)
            found.append(device)

    tasks = [asyncio.create_task(bounded_probe(host)) for host in hosts]
    try:
        _, pending = await asyncio.wait(tasks, timeout=scan_timeout)
        if pending:
            _LOGGER.info("Scan time budget reached, abandoning %d probe(s)", len(pending))
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if local_session:
            await session.close()

    _LOGGER.info("Discovery complete: found %d receiver(s)", len(found))
    return found
