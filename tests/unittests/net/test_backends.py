# This file is part of netrender. See LICENSE file for license information.

from unittest import mock

import pytest

from netrender.exceptions import BackendNotFoundError
from netrender.net import backends
from netrender.net.backends import Backend, detect_backend

M_PATH = "netrender.net.backends."


@pytest.fixture
def availability():
    """Patch the per-backend checks, returning a dict to toggle them."""
    found = {"netplan": False, "dhcpcd": False, "ifupdown": False}

    def check(name):
        return mock.Mock(side_effect=lambda target=None: found[name])

    with mock.patch.object(
        backends,
        "DEFAULT_PRIORITY",
        [
            (Backend.NETPLAN, check("netplan")),
            (Backend.DHCPCD, check("dhcpcd")),
            (Backend.IFUPDOWN, check("ifupdown")),
        ],
    ):
        yield found


class TestBackendFromName:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("netplan", Backend.NETPLAN),
            ("IFUPDOWN", Backend.IFUPDOWN),
            (Backend.DHCPCD, Backend.DHCPCD),
        ],
    )
    def test_from_name(self, name, expected):
        assert expected is Backend.from_name(name)

    def test_unknown_name(self):
        with pytest.raises(BackendNotFoundError, match="wicked"):
            Backend.from_name("wicked")


class TestDetectBackend:
    def test_nothing_found(self, availability):
        assert Backend.UNKNOWN is detect_backend()

    @pytest.mark.parametrize(
        "present,expected",
        [
            (["ifupdown"], Backend.IFUPDOWN),
            (["dhcpcd", "ifupdown"], Backend.DHCPCD),
            (["netplan", "dhcpcd", "ifupdown"], Backend.NETPLAN),
            (["netplan", "ifupdown"], Backend.NETPLAN),
        ],
    )
    def test_priority(self, availability, present, expected):
        for name in present:
            availability[name] = True
        assert expected is detect_backend()

    def test_result_is_cached(self, availability):
        availability["dhcpcd"] = True
        assert Backend.DHCPCD is detect_backend("/")
        availability["netplan"] = True
        assert Backend.DHCPCD is detect_backend("/")
        detect_backend.cache_clear()
        assert Backend.NETPLAN is detect_backend("/")

    def test_real_availability_checks(self, tmp_path):
        (tmp_path / "etc/network").mkdir(parents=True)
        (tmp_path / "etc/network/interfaces").write_text("auto lo\n")
        (tmp_path / "etc/dhcpcd.conf").write_text("hostname\n")

        def which(program, search=None, target=None):
            if program in ("ifquery", "ifup", "ifdown"):
                return "/sbin/" + program
            return None

        with mock.patch("netrender.subp.which", side_effect=which):
            assert Backend.IFUPDOWN is detect_backend(str(tmp_path))
