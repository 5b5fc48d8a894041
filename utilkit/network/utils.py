"""
Network diagnostics for utilkit.

Raw HTTP probes use ``requests`` with separate connect/read timeouts
from ``Config.network``; interface details come from psutil; ping and
traceroute run the operating system's commands.
"""

import logging
import socket
import subprocess
import sys
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode, urlparse

import psutil
import requests

from ..core.config import get_config
from ..errors import NetworkError, ValidationError
from .patterns import IPV4_PATTERN, IPV6_PATTERN

logger = logging.getLogger(__name__)

Timeout = Union[int, float, timedelta]

# Ports tried by is_host_reachable: echo, http, https.
PROBE_PORTS = (7, 80, 443)


def _seconds(timeout: Optional[Timeout], default: timedelta) -> float:
    if timeout is None:
        return default.total_seconds()
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


def _timeouts(connect_timeout: Optional[Timeout] = None,
              read_timeout: Optional[Timeout] = None) -> Tuple[float, float]:
    config = get_config().network
    return (_seconds(connect_timeout, config.connect_timeout),
            _seconds(read_timeout, config.read_timeout))


def _require_url(url: str) -> None:
    if not url or not isinstance(url, str):
        raise ValidationError("URL cannot be None or empty", field="url")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url}", field="url")


def _require_host(host: str) -> None:
    if not host or not isinstance(host, str) or not host.strip():
        raise ValidationError("Host cannot be None or empty", field="host")
    if host.startswith("-"):
        raise ValidationError(f"Invalid host: {host}", field="host")


def _send(method: str, url: str, **kwargs) -> requests.Response:
    _require_url(url)
    try:
        return requests.request(method, url, **kwargs)
    except requests.RequestException as e:
        logger.error(f"{method} {url} failed: {e}")
        raise NetworkError(f"{method} {url} failed: {e}", url=url, cause=e)


# HTTP probes

def send_get_request(url: str, headers: Optional[Dict[str, str]] = None,
                     connect_timeout: Optional[Timeout] = None,
                     read_timeout: Optional[Timeout] = None) -> str:
    """Response body of a GET, whatever the status code."""
    response = _send("GET", url, headers=headers,
                     timeout=_timeouts(connect_timeout, read_timeout))
    return response.text


def send_post_request(url: str, body: str, content_type: str,
                      headers: Optional[Dict[str, str]] = None,
                      connect_timeout: Optional[Timeout] = None,
                      read_timeout: Optional[Timeout] = None) -> str:
    """POST a raw body and return the response body, whatever the status code."""
    all_headers = {"Content-Type": content_type}
    all_headers.update(headers or {})
    data = body.encode("utf-8") if isinstance(body, str) else body
    response = _send("POST", url, data=data, headers=all_headers,
                     timeout=_timeouts(connect_timeout, read_timeout))
    return response.text


def build_url_with_query_params(base_url: str, params: Optional[Dict[str, Any]]) -> str:
    """Append form-encoded parameters, extending an existing query string."""
    if not params:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return base_url + separator + urlencode(params)


def download_bytes(url: str) -> bytes:
    response = _send("GET", url, timeout=_timeouts())
    return response.content


def get_mime_type(url: str) -> Optional[str]:
    """Content-Type announced for ``url`` by a HEAD request."""
    return _send("HEAD", url, timeout=_timeouts()).headers.get("Content-Type")


def url_exists(url: str) -> bool:
    """True when a HEAD request answers 200."""
    try:
        return _send("HEAD", url, timeout=_timeouts()).status_code == 200
    except (NetworkError, ValidationError) as e:
        logger.debug(f"URL check failed for {url}: {e}")
        return False


def get_http_response_code(url: str) -> int:
    return _send("HEAD", url, timeout=_timeouts()).status_code


def get_http_headers(url: str) -> Dict[str, List[str]]:
    response = _send("HEAD", url, timeout=_timeouts())
    return {name: [value] for name, value in response.headers.items()}


def get_public_ip_address() -> str:
    """Public address as reported by the configured echo service."""
    url = get_config().network.public_ip_url
    return _send("GET", url, timeout=_timeouts()).text.strip()


# Sockets and DNS

def is_port_open(host: str, port: int, timeout: Optional[Timeout] = None) -> bool:
    """True when a TCP connection to ``host:port`` succeeds within ``timeout`` seconds."""
    try:
        with socket.create_connection((host, port),
                                      timeout=_seconds(timeout, get_config().network.connect_timeout)):
            return True
    except (OSError, ValueError) as e:
        logger.debug(f"Port {host}:{port} is not open: {e}")
        return False


def is_host_reachable(host: str, timeout: Optional[Timeout] = None) -> bool:
    """
    True when ``host`` resolves and answers on a probe port.
    A refused connection counts as an answer.
    """
    seconds = _seconds(timeout, get_config().network.connect_timeout)
    try:
        _require_host(host)
        socket.getaddrinfo(host, None)
    except (OSError, ValidationError) as e:
        logger.debug(f"Host {host} is not reachable: {e}")
        return False

    for port in PROBE_PORTS:
        try:
            with socket.create_connection((host, port), timeout=seconds):
                return True
        except ConnectionRefusedError:
            return True
        except OSError:
            continue
    return False


def has_internet_connectivity() -> bool:
    config = get_config().network
    return any(is_host_reachable(host, config.connectivity_timeout)
               for host in config.connectivity_hosts)


def dns_lookup(hostname: str) -> List[str]:
    """All addresses ``hostname`` resolves to, in resolver order, without duplicates."""
    _require_host(hostname)
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise NetworkError(f"Cannot resolve {hostname}: {e}", url=hostname, cause=e)
    addresses: List[str] = []
    for info in infos:
        address = info[4][0]
        if address not in addresses:
            addresses.append(address)
    return addresses


def reverse_dns_lookup(ip_address: str) -> str:
    """Host name for ``ip_address``; the address itself when it has no PTR record."""
    if not is_valid_ip_address(ip_address):
        raise ValidationError(f"Invalid IP address: {ip_address}", field="ip_address")
    try:
        return socket.gethostbyaddr(ip_address)[0]
    except (socket.herror, socket.gaierror) as e:
        logger.debug(f"No reverse DNS entry for {ip_address}: {e}")
        return ip_address


def is_valid_ipv4_address(ip: Optional[str]) -> bool:
    return ip is not None and IPV4_PATTERN.fullmatch(ip) is not None


def is_valid_ipv6_address(ip: Optional[str]) -> bool:
    return ip is not None and IPV6_PATTERN.fullmatch(ip) is not None


def is_valid_ip_address(ip: Optional[str]) -> bool:
    return is_valid_ipv4_address(ip) or is_valid_ipv6_address(ip)


# Interfaces

def _format_mac(address: str) -> Optional[str]:
    octets = address.replace("-", ":").upper().split(":")
    if all(octet.strip("0") == "" for octet in octets):
        return None
    return ":".join(octet.zfill(2) for octet in octets)


def get_network_interface_info() -> List[Dict[str, Any]]:
    """
    One dict per interface with the keys ``name``, ``displayName``,
    ``isUp``, ``isLoopback``, ``isPointToPoint``, ``isVirtual``,
    ``supportsMulticast``, ``hardwareAddress``, ``MTU`` and ``addresses``.
    """
    try:
        all_addresses = psutil.net_if_addrs()
        all_stats = psutil.net_if_stats()
    except OSError as e:
        raise NetworkError(f"Cannot list network interfaces: {e}", cause=e)

    interfaces = []
    for name, addresses in all_addresses.items():
        stats = all_stats.get(name)
        flags = set(filter(None, (getattr(stats, "flags", "") or "").split(",")))
        ip_addresses = [a.address for a in addresses
                        if a.family in (socket.AF_INET, socket.AF_INET6)]
        mac = next((a.address for a in addresses if a.family == psutil.AF_LINK), None)

        interfaces.append({
            "name": name,
            "displayName": name,
            "isUp": bool(stats and stats.isup),
            "isLoopback": "loopback" in flags or any(
                a.startswith("127.") or a == "::1" for a in ip_addresses),
            "isPointToPoint": "pointopoint" in flags or any(
                getattr(a, "ptp", None) for a in addresses),
            "isVirtual": ":" in name,
            "supportsMulticast": "multicast" in flags,
            "hardwareAddress": _format_mac(mac) if mac else None,
            "MTU": stats.mtu if stats else -1,
            "addresses": ip_addresses,
        })
    return interfaces


def get_local_ip_addresses(include_loopback: bool = False) -> List[str]:
    """Addresses of interfaces that are up."""
    addresses = []
    for interface in get_network_interface_info():
        if not interface["isUp"]:
            continue
        if not include_loopback and interface["isLoopback"]:
            continue
        addresses.extend(interface["addresses"])
    return addresses


# External commands

def _run(command: List[str], timeout: Optional[float]) -> str:
    logger.debug(f"Running {' '.join(command)}")
    try:
        result = subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                text=True, encoding="utf-8", errors="replace", timeout=timeout)
    except FileNotFoundError as e:
        raise NetworkError(f"Command not available: {command[0]}", cause=e)
    except subprocess.TimeoutExpired as e:
        raise NetworkError(f"Command timed out after {timeout}s: {' '.join(command)}", cause=e)
    output = result.stdout or ""
    if output and not output.endswith("\n"):
        output += "\n"
    return f"{output}Exit Code: {result.returncode}"


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def ping(host: str, count: int = 4, timeout: Optional[float] = None) -> str:
    """Output of the system ping command followed by ``Exit Code: n``."""
    _require_host(host)
    if count <= 0:
        raise ValidationError("Count must be greater than 0", field="count")
    if _is_windows():
        command = ["cmd.exe", "/c", "ping", "-n", str(count), host]
    else:
        command = ["ping", "-c", str(count), host]
    return _run(command, timeout)


def traceroute(host: str, timeout: Optional[float] = None) -> str:
    """Output of traceroute (tracert on Windows) followed by ``Exit Code: n``."""
    _require_host(host)
    if _is_windows():
        command = ["cmd.exe", "/c", "tracert", host]
    else:
        command = ["traceroute", host]
    return _run(command, timeout)


# URLs

def parse_url(url: str) -> Dict[str, Optional[str]]:
    """
    Split a URL into ``scheme``, ``host``, ``port`` ('' when absent),
    ``path``, ``query`` and ``fragment`` (None when absent).
    """
    if not url:
        raise ValidationError("URL cannot be None or empty", field="url")
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError as e:
        raise ValidationError(f"Invalid URL: {url}", field="url", cause=e)
    return {
        "scheme": parsed.scheme or None,
        "host": parsed.hostname,
        "port": "" if port is None else str(port),
        "path": parsed.path,
        "query": parsed.query or None,
        "fragment": parsed.fragment or None,
    }
