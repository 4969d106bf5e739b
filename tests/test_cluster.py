"""
Tests for the installer binary, cluster metadata and deploy/destroy workflows.
"""

import io
import json
import tarfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from ocp_provision.cluster import installer
from ocp_provision.cluster.deploy import deploy_cluster, destroy_cluster
from ocp_provision.cluster.info import access_guide, dns_guide, read_metadata
from ocp_provision.cluster.install_config import ClusterOptions
from ocp_provision.exceptions import (
    DownloadError,
    InstallDirError,
    InstallerError,
    ToolError,
)

METADATA = {
    "clusterName": "demo",
    "clusterID": "0b0c",
    "infraID": "demo-x7k2p",
    "aws": {"region": "us-east-2", "clusterDomain": "demo.example.net"},
}


def make_tarball(path, members):
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def install_dir(tmp_path):
    d = tmp_path / "install"
    d.mkdir()
    (d / "metadata.json").write_text(json.dumps(METADATA))
    return d


@pytest.fixture
def options(tmp_path, vpc_output_dir, pull_secret):
    return ClusterOptions(
        cluster_name="demo",
        base_domain="example.net",
        vpc_output_dir=vpc_output_dir,
        install_dir=tmp_path / "install",
        pull_secret=pull_secret,
        ssh_key="ssh-ed25519 AAAA user@host",
    )


class TestInstaller:
    """Tests for locating and running openshift-install."""

    def test_release_url(self):
        """Test mirror URL construction."""
        assert installer.release_url("4.18.15", "openshift-install-linux.tar.gz") == (
            "https://mirror.openshift.com/pub/openshift-v4/clients/ocp/"
            "4.18.15/openshift-install-linux.tar.gz"
        )

    def test_find_installer_on_path(self, tmp_path):
        """Test installer found on PATH."""
        with patch(
            "ocp_provision.cluster.installer.shutil.which",
            return_value="/usr/bin/openshift-install",
        ):
            assert str(installer.find_installer(tmp_path)) == "/usr/bin/openshift-install"

    def test_find_installer_in_install_dir(self, tmp_path):
        """Test installer found in the install dir."""
        binary = tmp_path / "openshift-install"
        binary.write_text("#!/bin/sh\n")
        binary.chmod(0o755)
        with patch("ocp_provision.cluster.installer.shutil.which", return_value=None):
            assert installer.find_installer(tmp_path) == binary

    def test_find_installer_ignores_non_executable(self, tmp_path):
        """Test that non-executable files are ignored."""
        (tmp_path / "openshift-install").write_text("not executable")
        with patch("ocp_provision.cluster.installer.shutil.which", return_value=None):
            assert installer.find_installer(tmp_path) is None

    def test_extract_binaries(self, tmp_path):
        """Test extracting binaries from a tarball."""
        archive = make_tarball(
            tmp_path / "client.tar.gz",
            {"oc": b"oc-binary", "kubectl": b"kubectl-binary", "README.md": b"docs"},
        )
        target = tmp_path / "bin"
        target.mkdir()

        extracted = installer.extract_binaries(archive, ("oc", "kubectl"), target)

        assert sorted(p.name for p in extracted) == ["kubectl", "oc"]
        assert (target / "oc").read_bytes() == b"oc-binary"
        assert (target / "oc").stat().st_mode & 0o111
        assert not (target / "README.md").exists()

    def test_extract_skips_nested_paths(self, tmp_path):
        """Test that nested archive members are ignored."""
        archive = make_tarball(tmp_path / "evil.tar.gz", {"../oc": b"x", "sub/oc": b"y"})
        assert installer.extract_binaries(archive, ("oc",), tmp_path) == []

    def test_download_archive(self, tmp_path):
        """Test streaming download."""
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.return_value = [b"abc", b"def"]

        with patch("ocp_provision.cluster.installer.requests.get", return_value=response):
            installer.download_archive("https://example/a.tar.gz", tmp_path / "a.tar.gz")

        assert (tmp_path / "a.tar.gz").read_bytes() == b"abcdef"

    def test_download_failure(self, tmp_path):
        """Test failed download."""
        with patch(
            "ocp_provision.cluster.installer.requests.get",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            with pytest.raises(DownloadError, match="unreachable"):
                installer.download_archive("https://example/a.tar.gz", tmp_path / "a.tar.gz")

    def test_download_release(self, tmp_path):
        """Test installer and client download."""
        def fake_download(url, destination):
            if "openshift-install" in url:
                return make_tarball(destination, {"openshift-install": b"installer"})
            return make_tarball(destination, {"oc": b"oc", "kubectl": b"kubectl"})

        with patch("ocp_provision.cluster.installer.download_archive", side_effect=fake_download):
            binary = installer.download_release("4.18.15", tmp_path / "install")

        assert binary == tmp_path / "install" / "openshift-install"
        assert binary.read_bytes() == b"installer"
        assert (tmp_path / "install" / "kubectl").exists()
        assert sorted(p.name for p in (tmp_path / "install").iterdir()) == [
            "kubectl",
            "oc",
            "openshift-install",
        ]

    def test_download_release_missing_binary(self, tmp_path):
        """Test archive without the installer binary."""
        with patch(
            "ocp_provision.cluster.installer.download_archive",
            side_effect=lambda url, dest: make_tarball(dest, {"other": b"x"}),
        ):
            with pytest.raises(DownloadError, match="did not contain"):
                installer.download_release("4.18.15", tmp_path)

    def test_create_cluster_failure(self, tmp_path):
        """Test failed openshift-install create cluster."""
        with patch("ocp_provision.cluster.installer.run") as run:
            run.return_value.returncode = 3
            with pytest.raises(InstallerError):
                installer.create_cluster(tmp_path / "openshift-install", tmp_path)

        command = run.call_args.args[0]
        assert command[1:5] == ["create", "cluster", "--dir", str(tmp_path)]

    def test_check_destroyable(self, tmp_path, install_dir):
        """Test destroy precondition with metadata.json."""
        assert installer.check_destroyable(install_dir) == install_dir

        with pytest.raises(InstallDirError, match="not found"):
            installer.check_destroyable(tmp_path / "missing")

        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(InstallDirError, match="metadata.json"):
            installer.check_destroyable(empty)

    def test_check_destroyable_install_config_only(self, tmp_path):
        """Test destroy precondition with install-config.yaml only."""
        (tmp_path / "install-config.yaml").write_text("apiVersion: v1\n")
        assert installer.check_destroyable(tmp_path) == tmp_path

    def test_endpoints_and_password(self, install_dir):
        """Test console endpoints and kubeadmin password."""
        endpoints = installer.cluster_endpoints("demo", "example.net")
        assert endpoints["API"] == "https://api.demo.example.net:6443"
        assert endpoints["Console"].endswith("apps.demo.example.net")

        assert installer.kubeadmin_password(install_dir) is None
        (install_dir / "auth").mkdir()
        (install_dir / "auth" / "kubeadmin-password").write_text("s3cret\n")
        assert installer.kubeadmin_password(install_dir) == "s3cret"


class TestClusterInfo:
    """Tests for metadata parsing and access guides."""

    def test_read_metadata(self, install_dir):
        """Test reading cluster metadata."""
        meta = read_metadata(install_dir)

        assert meta.cluster_name == "demo"
        assert meta.infra_id == "demo-x7k2p"
        assert meta.region == "us-east-2"
        assert meta.cluster_domain == "demo.example.net"
        assert meta.publish is None
        assert not meta.is_private

    def test_publish_from_backup(self, install_dir):
        """Test publish strategy from the install-config backup."""
        (install_dir / "install-config.yaml.backup.20250101-000000").write_text(
            "publish: Internal\n"
        )
        assert read_metadata(install_dir).is_private

    def test_missing_metadata(self, tmp_path):
        """Test missing metadata.json."""
        with pytest.raises(InstallDirError, match="metadata.json"):
            read_metadata(tmp_path)

    def test_invalid_metadata(self, tmp_path):
        """Test malformed metadata.json."""
        (tmp_path / "metadata.json").write_text("{broken")
        with pytest.raises(InstallDirError, match="not valid JSON"):
            read_metadata(tmp_path)

    def test_guides(self, install_dir):
        """Test access and DNS guides."""
        meta = read_metadata(install_dir)

        access = access_guide(meta, install_dir)
        assert "ocp-provision bastion create --cluster-name demo" in access
        assert "kubernetes.io/cluster/demo-x7k2p" in access

        dns = dns_guide(meta)
        assert "dig api.demo.example.net" in dns
        assert "--names demo-x7k2p-int" in dns


class TestDeploy:
    """Tests for the deploy workflow."""

    def test_dry_run(self, mock_ctx, options):
        """Test dry-run deploy writes install-config only."""
        with patch("ocp_provision.cluster.deploy.installer") as inst:
            assert deploy_cluster(mock_ctx, options, dry_run=True) is False

        assert (options.install_dir / "install-config.yaml").exists()
        inst.ensure_installer.assert_not_called()
        inst.create_cluster.assert_not_called()

    def test_declined(self, mock_ctx, options):
        """Test declined installation."""
        confirm = MagicMock(return_value=False)
        with patch("ocp_provision.cluster.deploy.installer") as inst:
            assert deploy_cluster(mock_ctx, options, confirm=confirm) is False

        confirm.assert_called_once()
        inst.create_cluster.assert_not_called()

    def test_installs(self, mock_ctx, aws_clients, options):
        """Test successful installation."""
        with (
            patch(
                "ocp_provision.cluster.installer.find_installer",
                return_value=options.install_dir / "openshift-install",
            ),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            run.return_value.returncode = 0
            assert deploy_cluster(mock_ctx, options, confirm=lambda message: True) is True

        aws_clients["sts"].get_caller_identity.assert_called_once()
        command = run.call_args.args[0]
        assert command[:3] == [str(options.install_dir / "openshift-install"), "create", "cluster"]

    def test_installer_failure(self, mock_ctx, options):
        """Test failed installation."""
        with (
            patch(
                "ocp_provision.cluster.installer.find_installer",
                return_value="openshift-install",
            ),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            run.return_value.returncode = 1
            with pytest.raises(InstallerError):
                deploy_cluster(mock_ctx, options, confirm=lambda message: True)


class TestDestroy:
    """Tests for the destroy workflow."""

    def test_dry_run(self, install_dir):
        """Test dry-run destroy."""
        with patch("ocp_provision.cluster.installer.run") as run:
            assert destroy_cluster(install_dir, dry_run=True) is False
        run.assert_not_called()

    def test_declined(self, install_dir):
        """Test declined destroy."""
        with patch("ocp_provision.cluster.installer.run") as run:
            assert destroy_cluster(install_dir, confirm=lambda message: False) is False
        run.assert_not_called()

    def test_force_skips_prompt(self, install_dir):
        """Test forced destroy."""
        confirm = MagicMock()
        with (
            patch(
                "ocp_provision.cluster.installer.shutil.which",
                return_value="/usr/bin/openshift-install",
            ),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            run.return_value.returncode = 0
            assert destroy_cluster(install_dir, force=True, confirm=confirm) is True

        confirm.assert_not_called()
        assert run.call_args.args[0][:3] == ["/usr/bin/openshift-install", "destroy", "cluster"]

    def test_missing_binary(self, install_dir):
        """Test destroy without openshift-install."""
        with patch("ocp_provision.cluster.installer.shutil.which", return_value=None):
            with pytest.raises(ToolError, match="openshift-install"):
                destroy_cluster(install_dir, force=True)

    def test_missing_install_dir(self, tmp_path):
        """Test destroy with a missing install dir."""
        with pytest.raises(InstallDirError):
            destroy_cluster(tmp_path / "gone", force=True)
