"""Fixtures shared by every test under ``tests/unittests/``.

Top-level imports here must be listed in ``test-requirements.txt``.
"""
# early_patches must run before any lru_cache decorated function is
# imported.
# isort: off
from tests.unittests.early_patches import get_cached_functions  # noqa: E402

# isort: on
from unittest import mock

import pytest

from netrender import subp


class UnexpectedSubpError(BaseException):
    """subp.subp ran a command the test did not allow.

    A BaseException so error handling in the code under test can not
    swallow it.
    """


class _FixtureUtils:
    """Helpers exposed to fixtures through the fixture_utils fixture."""

    @staticmethod
    def closest_marker_args_or(request, marker_name: str, default):
        """Return the args of the closest marker_name marker, or default."""
        marker = request.node.get_closest_marker(marker_name)
        return default if marker is None else marker.args


@pytest.fixture(scope="session")
def fixture_utils():
    return _FixtureUtils


@pytest.fixture(autouse=True)
def cleanup_lru_cache():
    yield
    for func in get_cached_functions():
        func.cache_clear()


@pytest.fixture(autouse=True)
def disable_subp_usage(request, fixture_utils):
    """Fail any test that runs a real command through subp.subp.

    Tests that restart networking mock subp.subp themselves, which takes
    precedence over this patch. Tests that need a harmless real command
    name it with a marker::

        @pytest.mark.allow_subp_for("sh")
        def test_sh(self):
            subp.subp(["sh", "-c", "true"])
    """
    allowed = fixture_utils.closest_marker_args_or(
        request, "allow_subp_for", ()
    )
    real_subp = subp.subp

    def side_effect(args, *other_args, **kwargs):
        if args[0] not in allowed:
            raise UnexpectedSubpError(
                "Unexpectedly used subp.subp to call %s (allowed: %s)"
                % (args[0], ", ".join(map(str, allowed)) or "nothing")
            )
        return real_subp(args, *other_args, **kwargs)

    with mock.patch("netrender.subp.subp", autospec=True) as m_subp:
        m_subp.side_effect = side_effect
        yield


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "allow_subp_for(*cmds): allow running these commands"
    )
