"""
Tests for network diagnostics.

Remote calls are mocked; nothing here touches the real network.
"""

import socket
import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest
import requests

from utilkit.core.config import Config, set_config
from utilkit.errors import NetworkError, ValidationError
from utilkit.network import utils as network


@pytest.fixture(autouse=True)
def default_config():
    set_config(Config())
    yield
    set_config(None)


def make_response(status=200, text="", content=b"", headers=None):
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.content = content
    response.headers = headers or {}
    return response


class TestHttpProbes:
    """Test raw HTTP helpers"""

    def test_get_uses_config_timeouts(self):
        with patch("utilkit.network.utils.requests.request",
                   return_value=make_response(text="body")) as request:
            assert network.send_get_request("http://example.com") == "body"
        assert request.call_args.kwargs["timeout"] == (5.0, 10.0)

    def test_get_returns_body_for_error_status(self):
        with patch("utilkit.network.utils.requests.request",
                   return_value=make_response(status=500, text="oops")):
            assert network.send_get_request("http://example.com", connect_timeout=1,
                                            read_timeout=2) == "oops"

    def test_post_sets_content_type(self):
        with patch("utilkit.network.utils.requests.request",
                   return_value=make_response(text="ok")) as request:
            network.send_post_request("http://example.com", "a=1",
                                      "application/x-www-form-urlencoded", {"X-Id": "7"})
        kwargs = request.call_args.kwargs
        assert kwargs["data"] == b"a=1"
        assert kwargs["headers"] == {"Content-Type": "application/x-www-form-urlencoded",
                                     "X-Id": "7"}

    def test_transport_failure(self):
        with patch("utilkit.network.utils.requests.request",
                   side_effect=requests.Timeout("slow")):
            with pytest.raises(NetworkError):
                network.send_get_request("http://example.com")

    def test_invalid_url(self):
        with pytest.raises(ValidationError):
            network.send_get_request("example.com")

    def test_head_helpers(self):
        response = make_response(headers={"Content-Type": "image/png", "Server": "x"})
        with patch("utilkit.network.utils.requests.request", return_value=response):
            assert network.get_mime_type("http://example.com/a.png") == "image/png"
            assert network.get_http_response_code("http://example.com") == 200
            assert network.get_http_headers("http://example.com") == {
                "Content-Type": ["image/png"], "Server": ["x"]}
            assert network.url_exists("http://example.com")

    def test_url_exists_false(self):
        with patch("utilkit.network.utils.requests.request",
                   return_value=make_response(status=404)):
            assert not network.url_exists("http://example.com/missing")
        with patch("utilkit.network.utils.requests.request",
                   side_effect=requests.ConnectionError()):
            assert not network.url_exists("http://example.com")
        assert not network.url_exists("")

    def test_download_bytes_and_public_ip(self):
        response = make_response(text=" 203.0.113.9\n", content=b"\x01\x02")
        with patch("utilkit.network.utils.requests.request", return_value=response) as request:
            assert network.download_bytes("http://example.com/f") == b"\x01\x02"
            assert network.get_public_ip_address() == "203.0.113.9"
        assert request.call_args.args == ("GET", "https://api.ipify.org")


class TestUrls:
    """Test URL building and parsing"""

    def test_build_url(self):
        assert network.build_url_with_query_params("http://x.com/a", {"q": "a b", "n": 1}) == \
            "http://x.com/a?q=a+b&n=1"
        assert network.build_url_with_query_params("http://x.com/a?x=1", {"y": 2}) == \
            "http://x.com/a?x=1&y=2"
        assert network.build_url_with_query_params("http://x.com/a", {}) == "http://x.com/a"

    def test_parse_url(self):
        parts = network.parse_url("https://example.com:8443/path/to?q=1#top")
        assert parts == {
            "scheme": "https", "host": "example.com", "port": "8443",
            "path": "/path/to", "query": "q=1", "fragment": "top",
        }

    def test_parse_url_without_optional_parts(self):
        parts = network.parse_url("http://example.com/")
        assert parts["port"] == ""
        assert parts["query"] is None
        assert parts["fragment"] is None

    def test_parse_url_invalid_port(self):
        with pytest.raises(ValidationError):
            network.parse_url("http://example.com:99999/")


class TestAddresses:
    """Test IP address validation"""

    @pytest.mark.parametrize("ip", ["192.168.0.1", "0.0.0.0", "255.255.255.255", "8.8.8.8"])
    def test_valid_ipv4(self, ip):
        assert network.is_valid_ipv4_address(ip)
        assert network.is_valid_ip_address(ip)

    @pytest.mark.parametrize("ip", ["256.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "", None])
    def test_invalid_ipv4(self, ip):
        assert not network.is_valid_ipv4_address(ip)

    @pytest.mark.parametrize("ip", [
        "2001:0db8:85a3:0000:0000:8a2e:0370:7334",
        "2001:db8::8a2e:370:7334",
        "::1",
        "::",
        "fe80::1%eth0",
        "::ffff:192.0.2.1",
    ])
    def test_valid_ipv6(self, ip):
        assert network.is_valid_ipv6_address(ip)
        assert network.is_valid_ip_address(ip)

    @pytest.mark.parametrize("ip", ["2001:db8::g1", "1:2:3:4:5:6:7:8:9", "12345::", "192.168.0.1"])
    def test_invalid_ipv6(self, ip):
        assert not network.is_valid_ipv6_address(ip)


class TestSockets:
    """Test socket level probes"""

    def test_port_open(self):
        with patch("utilkit.network.utils.socket.create_connection") as connect:
            assert network.is_port_open("localhost", 80, 1)
        connect.assert_called_once_with(("localhost", 80), timeout=1.0)

    def test_port_closed(self):
        with patch("utilkit.network.utils.socket.create_connection",
                   side_effect=ConnectionRefusedError()):
            assert not network.is_port_open("localhost", 1)

    def test_reachable_when_refused(self):
        with patch("utilkit.network.utils.socket.getaddrinfo"), \
                patch("utilkit.network.utils.socket.create_connection",
                      side_effect=ConnectionRefusedError()):
            assert network.is_host_reachable("example.com", 1)

    def test_reachable_on_later_port(self):
        with patch("utilkit.network.utils.socket.getaddrinfo"), \
                patch("utilkit.network.utils.socket.create_connection",
                      side_effect=[socket.timeout(), MagicMock()]) as connect:
            assert network.is_host_reachable("example.com")
        assert [c.args[0][1] for c in connect.call_args_list] == [7, 80]

    def test_unreachable(self):
        with patch("utilkit.network.utils.socket.getaddrinfo"), \
                patch("utilkit.network.utils.socket.create_connection",
                      side_effect=socket.timeout()):
            assert not network.is_host_reachable("example.com")
        with patch("utilkit.network.utils.socket.getaddrinfo",
                   side_effect=socket.gaierror("unknown")):
            assert not network.is_host_reachable("no-such-host.invalid")
        assert not network.is_host_reachable("")

    def test_internet_connectivity(self):
        with patch("utilkit.network.utils.is_host_reachable",
                   side_effect=[False, True]) as reachable:
            assert network.has_internet_connectivity()
        assert [c.args[0] for c in reachable.call_args_list] == ["google.com", "cloudflare.com"]

    def test_dns_lookup(self):
        infos = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0)),
            (socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("93.184.216.34", 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2606:2800::1", 0, 0, 0)),
        ]
        with patch("utilkit.network.utils.socket.getaddrinfo", return_value=infos):
            assert network.dns_lookup("example.com") == ["93.184.216.34", "2606:2800::1"]

    def test_dns_lookup_failure(self):
        with patch("utilkit.network.utils.socket.getaddrinfo",
                   side_effect=socket.gaierror("unknown")):
            with pytest.raises(NetworkError):
                network.dns_lookup("no-such-host.invalid")
        with pytest.raises(ValidationError):
            network.dns_lookup("")

    def test_reverse_dns(self):
        with patch("utilkit.network.utils.socket.gethostbyaddr",
                   return_value=("dns.google", [], ["8.8.8.8"])):
            assert network.reverse_dns_lookup("8.8.8.8") == "dns.google"
        with patch("utilkit.network.utils.socket.gethostbyaddr",
                   side_effect=socket.herror("no PTR")):
            assert network.reverse_dns_lookup("192.0.2.1") == "192.0.2.1"
        with pytest.raises(ValidationError):
            network.reverse_dns_lookup("not-an-ip")


def _addr(family, address):
    return SimpleNamespace(family=family, address=address, netmask=None,
                           broadcast=None, ptp=None)


class TestInterfaces:
    """Test interface enumeration via psutil"""

    @pytest.fixture
    def interfaces(self):
        addrs = {
            "lo": [_addr(socket.AF_INET, "127.0.0.1"), _addr(socket.AF_INET6, "::1"),
                   _addr(psutil.AF_LINK, "00:00:00:00:00:00")],
            "eth0": [_addr(socket.AF_INET, "10.0.0.5"),
                     _addr(psutil.AF_LINK, "aa:bb:cc:dd:ee:ff")],
            "eth0:1": [_addr(socket.AF_INET, "10.0.0.6")],
            "wlan0": [_addr(socket.AF_INET, "192.168.1.20")],
        }
        stats = {
            "lo": SimpleNamespace(isup=True, mtu=65536, flags="up,loopback,running"),
            "eth0": SimpleNamespace(isup=True, mtu=1500, flags="up,broadcast,multicast"),
            "eth0:1": SimpleNamespace(isup=True, mtu=1500, flags="up"),
            "wlan0": SimpleNamespace(isup=False, mtu=1500, flags=""),
        }
        with patch("psutil.net_if_addrs", return_value=addrs), \
                patch("psutil.net_if_stats", return_value=stats):
            yield

    def test_interface_info(self, interfaces):
        info = {i["name"]: i for i in network.get_network_interface_info()}
        assert info["lo"]["isLoopback"]
        assert info["lo"]["hardwareAddress"] is None
        assert info["eth0"]["hardwareAddress"] == "AA:BB:CC:DD:EE:FF"
        assert info["eth0"]["supportsMulticast"]
        assert info["eth0"]["MTU"] == 1500
        assert not info["eth0"]["isVirtual"]
        assert info["eth0:1"]["isVirtual"]
        assert not info["wlan0"]["isUp"]

    def test_local_addresses(self, interfaces):
        assert network.get_local_ip_addresses() == ["10.0.0.5", "10.0.0.6"]
        assert network.get_local_ip_addresses(include_loopback=True) == [
            "127.0.0.1", "::1", "10.0.0.5", "10.0.0.6"]


class TestCommands:
    """Test ping and traceroute"""

    def test_ping_appends_exit_code(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="64 bytes from x")
        with patch("utilkit.network.utils._is_windows", return_value=False), \
                patch("utilkit.network.utils.subprocess.run", return_value=completed) as run:
            output = network.ping("example.com", 2)
        assert output == "64 bytes from x\nExit Code: 0"
        assert run.call_args.args[0] == ["ping", "-c", "2", "example.com"]

    def test_ping_windows_command(self):
        completed = subprocess.CompletedProcess(args=[], returncode=1, stdout="")
        with patch("utilkit.network.utils._is_windows", return_value=True), \
                patch("utilkit.network.utils.subprocess.run", return_value=completed) as run:
            assert network.ping("example.com") == "Exit Code: 1"
        assert run.call_args.args[0] == ["cmd.exe", "/c", "ping", "-n", "4", "example.com"]

    @pytest.mark.parametrize("host,count", [("", 4), ("-f", 4), ("example.com", 0)])
    def test_ping_rejects_bad_arguments(self, host, count):
        with pytest.raises(ValidationError):
            network.ping(host, count)

    def test_traceroute(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="1 hop\n")
        with patch("utilkit.network.utils._is_windows", return_value=False), \
                patch("utilkit.network.utils.subprocess.run", return_value=completed) as run:
            assert network.traceroute("example.com") == "1 hop\nExit Code: 0"
        assert run.call_args.args[0] == ["traceroute", "example.com"]

    def test_missing_command(self):
        with patch("utilkit.network.utils.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(NetworkError):
                network.traceroute("example.com")

    def test_command_timeout(self):
        with patch("utilkit.network.utils.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="ping", timeout=1)):
            with pytest.raises(NetworkError):
                network.ping("example.com", timeout=1)
