"""Primary outbound IPv4 detection."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from collections.abc import Callable

from qz_installer.commands import run_command
from qz_installer.host import Platform

logger = logging.getLogger(__name__)

_ROUTE_TARGET = "8.8.8.8"
_SRC_PATTERN = re.compile(r"\bsrc\s+(\d+\.\d+\.\d+\.\d+)")
_INTERFACE_PATTERN = re.compile(r"interface:\s*(\S+)")


def valid_ipv4(value: str | None) -> str | None:
    """Return *value* stripped if it is a usable unicast IPv4 address."""
    if not value:
        return None
    text = value.strip()
    try:
        address = ipaddress.IPv4Address(text)
    except ValueError:
        return None
    if address.is_unspecified or address.is_loopback:
        return None
    return text


def socket_probe(host: str = "google.com", port: int = 443) -> str | None:
    """Return the local address the OS would use to reach *host*.

    A UDP ``connect`` sends no packets; it only selects a route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(2)
            sock.connect((host, port))
            return sock.getsockname()[0]
    except OSError as exc:
        logger.debug("Socket probe to %s:%s failed: %s", host, port, exc)
        return None


def macos_default_route() -> str | None:
    """Address of the interface carrying the default route on macOS."""
    result = run_command(["route", "-n", "get", "default"])
    if result is None or result.returncode != 0:
        return None
    match = _INTERFACE_PATTERN.search(result.stdout)
    if not match:
        return None
    result = run_command(["ipconfig", "getifaddr", match.group(1)])
    if result is None or result.returncode != 0:
        return None
    return result.stdout.strip()


def linux_ip_route() -> str | None:
    """Source address ``ip route`` picks for a public destination."""
    result = run_command(["ip", "route", "get", _ROUTE_TARGET])
    if result is None or result.returncode != 0:
        return None
    match = _SRC_PATTERN.search(result.stdout)
    return match.group(1) if match else None


def linux_hostname_addresses() -> str | None:
    """First address reported by ``hostname -I``."""
    result = run_command(["hostname", "-I"])
    if result is None or result.returncode != 0:
        return None
    fields = result.stdout.split()
    return fields[0] if fields else None


def detect_primary_ipv4(
    platform: Platform, probe_host: str = "google.com", probe_port: int = 443
) -> str | None:
    """Detect the machine's primary outbound IPv4 address.

    Returns:
        The dotted-quad address, or None if every method failed.
    """
    probe: Callable[[], str | None] = lambda: socket_probe(probe_host, probe_port)  # noqa: E731
    if platform is Platform.MACOS:
        methods = [macos_default_route, probe]
    elif platform is Platform.LINUX:
        methods = [linux_ip_route, probe, linux_hostname_addresses]
    else:
        methods = [probe]

    for method in methods:
        address = valid_ipv4(method())
        if address:
            logger.info("Primary IPv4 detected: %s", address)
            return address

    logger.warning("Unable to detect primary IPv4")
    return None
