"""
Network diagnostics for utilkit.
"""

from .patterns import IPV4_PATTERN, IPV6_PATTERN
from .utils import (
    send_get_request, send_post_request, build_url_with_query_params,
    is_host_reachable, is_port_open, get_local_ip_addresses,
    get_public_ip_address, dns_lookup, reverse_dns_lookup,
    is_valid_ipv4_address, is_valid_ipv6_address, is_valid_ip_address,
    ping, traceroute, parse_url, download_bytes, get_mime_type, url_exists,
    get_network_interface_info, has_internet_connectivity,
    get_http_response_code, get_http_headers,
)

__all__ = [
    'IPV4_PATTERN', 'IPV6_PATTERN',
    'send_get_request', 'send_post_request', 'build_url_with_query_params',
    'is_host_reachable', 'is_port_open', 'get_local_ip_addresses',
    'get_public_ip_address', 'dns_lookup', 'reverse_dns_lookup',
    'is_valid_ipv4_address', 'is_valid_ipv6_address', 'is_valid_ip_address',
    'ping', 'traceroute', 'parse_url', 'download_bytes', 'get_mime_type', 'url_exists',
    'get_network_interface_info', 'has_internet_connectivity',
    'get_http_response_code', 'get_http_headers',
]
