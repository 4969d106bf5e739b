"""
Tests for output directory backups.
"""

import zipfile
from datetime import datetime

import pytest

from ocp_provision.backup import (
    MANIFEST_NAME,
    BackupOptions,
    collect,
    create_backup,
    human_size,
)
from ocp_provision.exceptions import BackupError
from ocp_provision.util.files import sha256_file

NOW = datetime(2025, 6, 1, 9, 15, 0)


@pytest.fixture
def options(tmp_path, vpc_output_dir, bastion_output_dir):
    install_dir = tmp_path / "openshift-install"
    (install_dir / "auth").mkdir(parents=True)
    (install_dir / "metadata.json").write_text("{}")
    (install_dir / "auth" / "kubeconfig").write_text("apiVersion: v1\n")
    (install_dir / "openshift-install").write_bytes(b"\x7fELF")
    (install_dir / "oc").write_bytes(b"\x7fELF")
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir()
    (logs_dir / "cleanup.log").write_text("log\n")
    return BackupOptions(
        cluster_name="demo",
        vpc_output=vpc_output_dir,
        bastion_output=bastion_output_dir,
        install_dir=install_dir,
        logs_dir=logs_dir,
        backups_dir=tmp_path / "backups",
        source_root=tmp_path,
    )


class TestCollect:
    """Tests for choosing archive contents."""

    def test_default_contents(self, options):
        """Test default archive contents."""
        items, files = collect(options)
        names = [name for _, name in files]

        assert items == ["vpc-output", "bastion-output", "openshift-install", "logs"]
        assert "vpc-output/vpc-id" in names
        assert "openshift-install/auth/kubeconfig" in names
        assert "logs/cleanup.log" in names

    def test_skips_keys_and_binaries(self, options):
        """Test that keys and binaries are left out by default."""
        _, files = collect(options)
        names = [name for _, name in files]

        assert "bastion-output/demo-bastion-key.pem" not in names
        assert "openshift-install/openshift-install" not in names
        assert "openshift-install/oc" not in names

    def test_include_ssh_keys(self, options, tmp_path):
        """Test adding private keys."""
        (tmp_path / "demo-key.pem").write_text("key")
        options.include_ssh_keys = True

        items, files = collect(options)
        names = [name for _, name in files]

        assert "bastion-output/demo-bastion-key.pem" in names
        assert "demo-key.pem" in names
        assert "demo-key.pem" in items

    def test_include_configs(self, options, tmp_path):
        """Test adding install-config files from the source root."""
        (tmp_path / "install-config.yaml").write_text("apiVersion: v1\n")
        (tmp_path / "install-config.yaml.backup.20250101-000000").write_text("apiVersion: v1\n")
        options.include_configs = True

        items, _ = collect(options)

        assert items[-2:] == ["install-config.yaml", "install-config.yaml.backup.20250101-000000"]

    def test_configs_ignored_by_default(self, options, tmp_path):
        (tmp_path / "install-config.yaml").write_text("apiVersion: v1\n")
        items, _ = collect(options)
        assert "install-config.yaml" not in items

    def test_exclude_logs(self, options):
        """Test leaving out the logs directory."""
        options.exclude_logs = True
        items, files = collect(options)
        assert "logs" not in items
        assert not any(name.startswith("logs/") for _, name in files)

    def test_missing_directories_skipped(self, options, tmp_path):
        """Test that absent directories are skipped."""
        options.install_dir = tmp_path / "nope"
        items, _ = collect(options)
        assert "nope" not in items


class TestCreateBackup:
    """Tests for writing the archive."""

    def test_archive(self, options, tmp_path):
        """Test archive, manifest and checksum."""
        result = create_backup(options, now=NOW)

        assert result.archive == tmp_path / "backups" / "demo-backup-20250601-091500.zip"
        assert result.archive.is_file()
        assert result.size == result.archive.stat().st_size
        assert result.sha256 == sha256_file(result.archive)
        assert not result.dry_run

        with zipfile.ZipFile(result.archive) as zf:
            names = zf.namelist()
            manifest = zf.read(MANIFEST_NAME).decode()

        assert sorted(names) == sorted(result.files)
        assert "vpc-output/vpc-id" in names
        assert "Cluster Name: demo" in manifest
        assert "Created: 20250601-091500" in manifest
        assert "- bastion-output" in manifest
        assert "Include SSH Keys: no" in manifest

    def test_dry_run_writes_nothing(self, options, tmp_path):
        """Test dry run lists files without writing."""
        result = create_backup(options, dry_run=True, now=NOW)

        assert result.dry_run
        assert "vpc-output/vpc-id" in result.files
        assert MANIFEST_NAME not in result.files
        assert not (tmp_path / "backups").exists()

    def test_nothing_to_back_up(self, tmp_path):
        """Test error when no source directory exists."""
        options = BackupOptions(
            vpc_output=tmp_path / "a",
            bastion_output=tmp_path / "b",
            install_dir=tmp_path / "c",
            logs_dir=tmp_path / "d",
            backups_dir=tmp_path / "backups",
            source_root=tmp_path,
        )
        with pytest.raises(BackupError, match="Nothing to back up"):
            create_backup(options)


@pytest.mark.parametrize(
    "size,expected",
    [(0, "0 B"), (512, "512 B"), (2048, "2.0 KB"), (5 * 1024 * 1024, "5.0 MB")],
)
def test_human_size(size, expected):
    assert human_size(size) == expected
