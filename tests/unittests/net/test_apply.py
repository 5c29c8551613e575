# This file is part of netrender. See LICENSE file for license information.

import copy
import fcntl
import os
import stat
from unittest import mock

import pytest

from netrender import settings, subp
from netrender.exceptions import (
    AggregateError,
    ArtifactWriteError,
    BackendNotFoundError,
    ServiceRestartError,
    ServiceRestartTimeoutError,
    TopologyError,
    UnsupportedConfigError,
)
from netrender.net import apply
from netrender.net.apply import (
    ApplyResult,
    configure,
    network_lock,
    restart_service,
    write_artifact,
)
from netrender.net.backends import Backend
from netrender.net.renderer import Artifact

DHCP_ETH0 = {"interface": "eth0", "dhcp": True}


@pytest.fixture
def cfg():
    return copy.deepcopy(settings.CFG_BUILTIN)


@pytest.fixture
def restarter():
    return mock.Mock(return_value=subp.SubpResult("", ""))


@pytest.fixture
def detector():
    return mock.Mock(return_value=Backend.IFUPDOWN)


def read(path):
    with open(path) as fp:
        return fp.read()


class TestConfigureIfupdown:
    def test_writes_stanza_and_restarts_once(
        self, tmp_path, cfg, restarter, detector
    ):
        result = configure(
            [DHCP_ETH0],
            target=str(tmp_path),
            cfg=cfg,
            detector=detector,
            restarter=restarter,
        )
        stanza = read(tmp_path / "etc/network/interfaces.d/eth0")
        assert "iface eth0 inet dhcp\n" in stanza
        assert 1 == stanza.count("iface ")
        assert [
            mock.call(Backend.IFUPDOWN, timeout=90)
        ] == restarter.call_args_list
        assert ApplyResult(
            Backend.IFUPDOWN, ["eth0"], ["etc/network/interfaces.d/eth0"]
        ) == result
        detector.assert_called_once_with(str(tmp_path))

    def test_restart_failure_keeps_stanza(self, tmp_path, cfg, restarter):
        restarter.side_effect = subp.ProcessExecutionError(
            stdout="",
            stderr="Job for networking.service failed",
            exit_code=1,
            cmd=["systemctl", "restart", "networking"],
        )
        with pytest.raises(ServiceRestartError) as exc_info:
            configure(
                [DHCP_ETH0],
                backend="ifupdown",
                target=str(tmp_path),
                cfg=cfg,
                restarter=restarter,
            )
        error = exc_info.value
        assert not isinstance(error, ServiceRestartTimeoutError)
        assert 1 == error.exit_code
        assert "ifupdown" == error.backend
        assert "networking.service failed" in error.stderr
        assert "iface eth0 inet dhcp" in read(
            tmp_path / "etc/network/interfaces.d/eth0"
        )
        assert 1 == restarter.call_count

    def test_default_restarter_runs_systemctl(self, tmp_path, cfg, mocker):
        m_subp = mocker.patch(
            "netrender.subp.subp", return_value=subp.SubpResult("", "")
        )
        configure(
            [DHCP_ETH0], backend="ifupdown", target=str(tmp_path), cfg=cfg
        )
        assert [
            mock.call(["systemctl", "restart", "networking"], timeout=90)
        ] == m_subp.call_args_list


class TestConfigure:
    def test_restart_timeout(self, tmp_path, cfg, restarter):
        restarter.side_effect = subp.ProcessTimeoutError(
            cmd=["netplan", "apply"], timeout=5
        )
        with pytest.raises(ServiceRestartTimeoutError) as exc_info:
            configure(
                [DHCP_ETH0],
                backend=Backend.NETPLAN,
                target=str(tmp_path),
                cfg=cfg,
                timeout=5,
                restarter=restarter,
            )
        assert 5 == exc_info.value.timeout
        restarter.assert_called_once_with(Backend.NETPLAN, timeout=5)
        assert os.path.exists(tmp_path / "etc/netplan/90-netrender.yaml")

    def test_command_not_found(self, tmp_path, cfg, restarter):
        restarter.side_effect = subp.ProcessExecutionError(
            cmd=["netplan", "apply"], reason="No such file", errno=2
        )
        with pytest.raises(ServiceRestartError) as exc_info:
            configure(
                [DHCP_ETH0],
                backend="netplan",
                target=str(tmp_path),
                cfg=cfg,
                restarter=restarter,
            )
        assert exc_info.value.exit_code is None
        assert "No such file" == exc_info.value.reason

    def test_validation_error_has_no_side_effects(
        self, tmp_path, cfg, restarter, detector
    ):
        writer = mock.Mock()
        with pytest.raises(AggregateError) as exc_info:
            configure(
                [{"interface": "eth0", "dhcp": True, "manual": True}],
                target=str(tmp_path),
                cfg=cfg,
                detector=detector,
                writer=writer,
                restarter=restarter,
            )
        assert ["dhcp", "manual"] == exc_info.value.fields_for("eth0")
        assert 0 == writer.call_count
        assert 0 == restarter.call_count
        assert [] == os.listdir(tmp_path)

    def test_interface_name_can_not_leave_backend_dir(
        self, tmp_path, cfg, restarter
    ):
        name = "../../cron.d/evil"
        with pytest.raises(AggregateError) as exc_info:
            configure(
                [{"interface": name, "dhcp": True}],
                backend="ifupdown",
                target=str(tmp_path),
                cfg=cfg,
                restarter=restarter,
            )
        assert ["interface"] == exc_info.value.fields_for(name)
        assert 0 == restarter.call_count
        assert [] == os.listdir(tmp_path)

    def test_topology_error_has_no_side_effects(self, tmp_path, cfg):
        writer = mock.Mock()
        with pytest.raises(TopologyError):
            configure(
                [
                    {"interface": "br0", "bridge_ports": ["br1"]},
                    {"interface": "br1", "bridge_ports": ["br0"]},
                ],
                backend="ifupdown",
                target=str(tmp_path),
                cfg=cfg,
                writer=writer,
            )
        assert 0 == writer.call_count

    def test_unsupported_has_no_side_effects(self, tmp_path, cfg, restarter):
        writer = mock.Mock()
        with pytest.raises(UnsupportedConfigError):
            configure(
                [{"interface": "br0", "bridge_ports": ["eth0"]}],
                backend="dhcpcd",
                external=["eth0"],
                target=str(tmp_path),
                cfg=cfg,
                writer=writer,
                restarter=restarter,
            )
        assert 0 == writer.call_count
        assert 0 == restarter.call_count

    def test_external_from_config(self, tmp_path, cfg, restarter):
        cfg["external_interfaces"] = ["eth0"]
        result = configure(
            [{"interface": "br0", "bridge_ports": ["eth0"]}],
            backend="ifupdown",
            target=str(tmp_path),
            cfg=cfg,
            restarter=restarter,
        )
        assert ["br0"] == result.interfaces

    def test_write_failure_stops_batch(self, tmp_path, cfg, restarter):
        writer = mock.Mock(side_effect=[None, PermissionError(13, "denied")])
        with pytest.raises(ArtifactWriteError) as exc_info:
            configure(
                [
                    DHCP_ETH0,
                    {"interface": "eth1"},
                    {"interface": "eth2"},
                ],
                backend="ifupdown",
                target=str(tmp_path),
                cfg=cfg,
                writer=writer,
                restarter=restarter,
            )
        error = exc_info.value
        assert ["etc/network/interfaces.d/eth0"] == error.written
        assert "etc/network/interfaces.d/eth1" == error.failed
        assert ["etc/network/interfaces.d/eth2"] == error.pending
        assert isinstance(error.cause, PermissionError)
        assert isinstance(error, OSError)
        assert 2 == writer.call_count
        assert 0 == restarter.call_count

    @pytest.mark.parametrize(
        "arg,configured,expected",
        [
            ("netplan", "dhcpcd", Backend.NETPLAN),
            (None, "dhcpcd", Backend.DHCPCD),
            (None, None, Backend.IFUPDOWN),
        ],
    )
    def test_backend_selection(
        self, arg, configured, expected, tmp_path, cfg, restarter, detector
    ):
        cfg["backend"] = configured
        result = configure(
            [DHCP_ETH0],
            backend=arg,
            target=str(tmp_path),
            cfg=cfg,
            detector=detector,
            restarter=restarter,
        )
        assert expected is result.backend
        assert (expected is Backend.IFUPDOWN) == detector.called

    def test_unknown_backend(self, tmp_path, cfg, restarter, detector):
        detector.return_value = Backend.UNKNOWN
        with pytest.raises(BackendNotFoundError):
            configure(
                [DHCP_ETH0],
                target=str(tmp_path),
                cfg=cfg,
                detector=detector,
                restarter=restarter,
            )
        assert 0 == restarter.call_count
        assert not os.path.exists(tmp_path / "etc")

    def test_ppp_writes_peer_file(self, tmp_path, cfg, restarter):
        result = configure(
            [
                {"interface": "eth1"},
                {
                    "interface": "ppp0",
                    "ppp": True,
                    "provider": "isp",
                    "physical_interface": "eth1",
                },
            ],
            backend="netplan",
            target=str(tmp_path),
            cfg=cfg,
            restarter=restarter,
        )
        assert [
            "etc/netplan/90-netrender.yaml",
            "etc/ppp/peers/isp",
        ] == result.artifacts
        peer = tmp_path / "etc/ppp/peers/isp"
        assert "plugin rp-pppoe.so eth1" in read(peer)
        assert 0o640 == stat.S_IMODE(os.stat(peer).st_mode)
        netplan_file = tmp_path / "etc/netplan/90-netrender.yaml"
        assert 0o600 == stat.S_IMODE(os.stat(netplan_file).st_mode)

    def test_dhcpcd_merges_block(self, tmp_path, cfg, restarter):
        conf = tmp_path / "etc/dhcpcd.conf"
        conf.parent.mkdir()
        conf.write_text("hostname\noption rapid_commit\n")
        os.chmod(conf, 0o600)
        for _ in range(2):
            configure(
                [DHCP_ETH0, {"interface": "eth1"}],
                backend="dhcpcd",
                target=str(tmp_path),
                cfg=cfg,
                restarter=restarter,
            )
        content = read(conf)
        assert content.startswith("hostname\noption rapid_commit\n")
        assert 1 == content.count("# BEGIN netrender")
        assert "denyinterfaces eth1\n" in content
        assert "interface eth0\n" in content
        assert 0o600 == stat.S_IMODE(os.stat(conf).st_mode)


class TestRestartService:
    def test_restart(self, tmp_path, cfg, restarter, detector):
        restart_service(
            cfg=cfg,
            detector=detector,
            restarter=restarter,
            target=str(tmp_path),
        )
        restart_service(
            cfg=cfg,
            detector=detector,
            restarter=restarter,
            target=str(tmp_path),
        )
        assert [
            mock.call(Backend.IFUPDOWN, timeout=90),
            mock.call(Backend.IFUPDOWN, timeout=90),
        ] == restarter.call_args_list

    def test_failure(self, tmp_path, cfg, restarter):
        restarter.side_effect = subp.ProcessExecutionError(
            stdout="out", stderr="err", exit_code=3, cmd=["netplan", "apply"]
        )
        with pytest.raises(ServiceRestartError) as exc_info:
            restart_service(
                backend="netplan",
                cfg=cfg,
                restarter=restarter,
                target=str(tmp_path),
            )
        assert 3 == exc_info.value.exit_code
        assert "out" == exc_info.value.stdout
        assert "err" == exc_info.value.stderr

    def test_unknown_backend(self, tmp_path, cfg, restarter, detector):
        detector.return_value = Backend.UNKNOWN
        with pytest.raises(BackendNotFoundError):
            restart_service(
                cfg=cfg,
                detector=detector,
                restarter=restarter,
                target=str(tmp_path),
            )
        assert 0 == restarter.call_count


class TestNetworkLock:
    def test_lock_released_on_error(self, tmp_path):
        lock_file = str(tmp_path / "run/netrender.lock")
        with mock.patch.object(apply.fcntl, "flock") as m_flock:
            with pytest.raises(RuntimeError):
                with network_lock(lock_file):
                    raise RuntimeError("boom")
        assert [fcntl.LOCK_EX, fcntl.LOCK_UN] == [
            c[0][1] for c in m_flock.call_args_list
        ]
        assert os.path.exists(lock_file)

    def test_lock_taken_around_write_and_restart(
        self, tmp_path, cfg, restarter
    ):
        events = []
        writer = mock.Mock(side_effect=lambda *a, **k: events.append("write"))
        restarter.side_effect = lambda *a, **k: events.append("restart")

        def flock(fh, op):
            events.append("lock" if op == fcntl.LOCK_EX else "unlock")

        with mock.patch.object(apply.fcntl, "flock", side_effect=flock):
            configure(
                [DHCP_ETH0],
                backend="ifupdown",
                target=str(tmp_path),
                cfg=cfg,
                writer=writer,
                restarter=restarter,
            )
        assert ["lock", "write", "restart", "unlock"] == events


class TestWriteArtifact:
    def test_write(self, tmp_path):
        path = write_artifact(
            Artifact("etc/netplan/x.yaml", "network: {}\n", 0o600),
            target=str(tmp_path),
        )
        assert str(tmp_path / "etc/netplan/x.yaml") == path
        assert "network: {}\n" == read(path)
        assert 0o600 == stat.S_IMODE(os.stat(path).st_mode)

    def test_merge_into_missing_file(self, tmp_path):
        block = "# BEGIN netrender\n# END netrender\n"
        path = write_artifact(
            Artifact("etc/dhcpcd.conf", block, merge=True),
            target=str(tmp_path),
        )
        assert block == read(path)
