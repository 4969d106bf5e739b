"""
Tests for CI registry image checks.
"""

import subprocess
from unittest.mock import patch

import pytest

from ocp_provision import images
from ocp_provision.exceptions import InvalidParameterError, ToolError


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class FakeTools:
    """Stands in for oc and podman; records every command."""

    def __init__(self, token="sha256~token", user="jdoe", missing=()):
        self.token = token
        self.user = user
        self.missing = set(missing)
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append((cmd, kwargs))
        if cmd[:3] == ["oc", "whoami", "-t"]:
            return completed(stdout=f"{self.token}\n")
        if cmd[:2] == ["oc", "whoami"]:
            return completed(stdout=f"{self.user}\n")
        if cmd[1] == "login":
            return completed()
        if cmd[1] == "pull":
            image = cmd[-1].rsplit(":", 1)[1]
            return completed(1, stderr="manifest unknown") if image in self.missing else completed()
        return completed()


@pytest.fixture
def tools():
    fake = FakeTools(missing=["etcd", "node-exporter"])
    with (
        patch("ocp_provision.images.run", side_effect=fake),
        patch("ocp_provision.images.require_tool"),
    ):
        yield fake


class TestCheckImages:
    """Tests for check_images."""

    def test_image_ref(self):
        assert images.image_ref("registry.ci.openshift.org", "4.19.2", "cli") == (
            "registry.ci.openshift.org/ocp/4.19.2:cli"
        )

    def test_groups(self, tools):
        """Test core and additional group results."""
        core, additional = images.check_images()

        assert core.name == "Core"
        assert core.total == len(images.CORE_IMAGES)
        assert core.missing == ["etcd"]
        assert not core.complete
        assert additional.missing == ["node-exporter"]

    def test_login_uses_token_on_stdin(self, tools):
        """Test that the registry token goes on stdin."""
        images.check_images(version="4.18.3", tool="docker")

        login = next((cmd, kw) for cmd, kw in tools.commands if cmd[1] == "login")
        cmd, kwargs = login
        assert cmd == [
            "docker",
            "login",
            "--username",
            "jdoe",
            "--password-stdin",
            "registry.ci.openshift.org",
        ]
        assert kwargs["input_text"] == "sha256~token"
        assert "sha256~token" not in cmd

    def test_explicit_username(self, tools):
        """Test explicit registry username."""
        images.check_images(username="ci-bot")

        assert not any(cmd == ["oc", "whoami"] for cmd, _ in tools.commands)
        login = next(cmd for cmd, _ in tools.commands if cmd[1] == "login")
        assert login[3] == "ci-bot"

    def test_pulled_images_removed(self, tools):
        """Test that pulled images are removed."""
        images.check_images()

        removed = [cmd[-1] for cmd, _ in tools.commands if cmd[1] == "rmi"]
        assert "registry.ci.openshift.org/ocp/4.19.2:cli" in removed
        assert "registry.ci.openshift.org/ocp/4.19.2:etcd" not in removed

    def test_on_result_callback(self, tools):
        """Test per-image callback."""
        seen = []
        images.check_images(on_result=lambda image, ok: seen.append((image, ok)))

        assert len(seen) == len(images.CORE_IMAGES) + len(images.ADDITIONAL_IMAGES)
        assert ("etcd", False) in seen
        assert ("cli", True) in seen

    def test_invalid_tool(self):
        """Test with invalid container tool."""
        with pytest.raises(InvalidParameterError, match="--tool"):
            images.check_images(tool="crictl")

    def test_not_logged_in(self):
        """Test without an oc login."""
        fake = FakeTools(token="")
        with (
            patch("ocp_provision.images.run", side_effect=fake),
            patch("ocp_provision.images.require_tool"),
        ):
            with pytest.raises(ToolError, match="Not logged into"):
                images.check_images()

    def test_login_failure(self):
        """Test failed registry login."""
        with (
            patch("ocp_provision.images.run", return_value=completed(1, stderr="unauthorized")),
            patch("ocp_provision.images.require_tool"),
        ):
            with pytest.raises(ToolError):
                images.registry_login("podman", "registry.example", "u", "t")


class TestImagestreamTags:
    def test_tags(self):
        """Test imagestream tag listing."""
        with patch(
            "ocp_provision.images.run", return_value=completed(stdout="installer cli etcd")
        ) as run:
            assert images.imagestream_tags("4.19.2") == ["cli", "etcd", "installer"]

        cmd = run.call_args.args[0]
        assert cmd[:4] == ["oc", "get", "imagestream", "4.19.2"]
        assert "-n" in cmd and "ocp" in cmd

    def test_failure(self):
        """Test failed imagestream query."""
        with patch(
            "ocp_provision.images.run", return_value=completed(1, stderr="forbidden")
        ):
            with pytest.raises(ToolError, match="forbidden"):
                images.imagestream_tags("4.19.2")
