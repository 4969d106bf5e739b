"""
Zip backups of the output directories.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ocp_provision.cluster.installer import CLIENT_BINARIES, INSTALLER_BINARY
from ocp_provision.exceptions import BackupError
from ocp_provision.util.files import ensure_dir, sha256_file
from ocp_provision.util.templates import TemplateLoader

logger = logging.getLogger(__name__)

MANIFEST_NAME = "backup-manifest.txt"

# downloaded release binaries are large and can be fetched again
SKIPPED_FILES = {INSTALLER_BINARY, *CLIENT_BINARIES}


@dataclass
class BackupOptions:
    cluster_name: str = "my-cluster"
    vpc_output: Path = Path("vpc-output")
    bastion_output: Path = Path("bastion-output")
    install_dir: Path = Path("openshift-install")
    logs_dir: Path = Path("logs")
    backups_dir: Path = Path("backups")
    include_configs: bool = False
    include_ssh_keys: bool = False
    exclude_logs: bool = False
    source_root: Path = Path(".")


@dataclass
class BackupResult:
    archive: Path
    items: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    size: int = 0
    sha256: str = ""
    dry_run: bool = False


def _directory_files(directory: Path, include_keys: bool) -> list[tuple[Path, str]]:
    entries = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file():
            continue
        if path.suffix == ".pem" and not include_keys:
            continue
        if path.parent == directory and path.name in SKIPPED_FILES:
            continue
        entries.append((path, f"{directory.name}/{path.relative_to(directory).as_posix()}"))
    return entries


def collect(options: BackupOptions) -> tuple[list[str], list[tuple[Path, str]]]:
    """
    Work out what goes into the archive.

    Returns:
        (top-level item names, [(source path, archive name)])
    """
    items: list[str] = []
    files: list[tuple[Path, str]] = []

    directories = [options.vpc_output, options.bastion_output, options.install_dir]
    if not options.exclude_logs:
        directories.append(options.logs_dir)

    for directory in directories:
        directory = Path(directory)
        if directory.is_dir():
            items.append(directory.name)
            files.extend(_directory_files(directory, options.include_ssh_keys))

    root = Path(options.source_root)
    extra: list[Path] = []
    if options.include_configs:
        extra += sorted(root.glob("install-config.yaml")) + sorted(
            root.glob("install-config.yaml.backup.*")
        )
    if options.include_ssh_keys:
        extra += sorted(root.glob("*.pem"))
    for path in extra:
        if path.is_file():
            items.append(path.name)
            files.append((path, path.name))

    return items, files


def create_backup(
    options: BackupOptions, dry_run: bool = False, now: datetime | None = None
) -> BackupResult:
    """
    Write <backups>/<cluster>-backup-<timestamp>.zip with a manifest.

    Raises:
        BackupError: Nothing to back up
    """
    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    archive = Path(options.backups_dir) / f"{options.cluster_name}-backup-{timestamp}.zip"

    items, files = collect(options)
    if not items:
        raise BackupError(
            "Nothing to back up: none of the output directories exist",
            "Run from the directory that holds vpc-output/, bastion-output/ "
            "and openshift-install/.",
        )

    result = BackupResult(archive=archive, items=items, files=[name for _, name in files])
    if dry_run:
        result.dry_run = True
        return result

    manifest = TemplateLoader().render(
        "backup-manifest.txt.j2",
        {
            "cluster_name": options.cluster_name,
            "archive_name": archive.name,
            "items": items,
            "include_configs": options.include_configs,
            "include_ssh_keys": options.include_ssh_keys,
            "exclude_logs": options.exclude_logs,
            "timestamp": timestamp,
        },
    )

    ensure_dir(archive.parent)
    try:
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for source, name in files:
                zf.write(source, name)
            zf.writestr(MANIFEST_NAME, manifest)
    except OSError as e:
        archive.unlink(missing_ok=True)
        raise BackupError(
            f"Failed to write {archive}: {e}",
            f"Check write permissions for {archive.parent}",
        ) from e

    result.files.append(MANIFEST_NAME)
    result.size = archive.stat().st_size
    result.sha256 = sha256_file(archive)
    logger.info("Backup %s written (%d files, %d bytes)", archive, len(result.files), result.size)
    return result


def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} GB"
