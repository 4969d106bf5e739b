"""
Locating, downloading and running the openshift-install binary.
"""

import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path

import requests

from ocp_provision.exceptions import DownloadError, InstallDirError, InstallerError
from ocp_provision.util.files import ensure_dir, read_value
from ocp_provision.util.process import run
from ocp_provision.util.progress import operation_status, print_info

logger = logging.getLogger(__name__)

MIRROR_URL = "https://mirror.openshift.com/pub/openshift-v4/clients/ocp"
INSTALLER_ARCHIVE = "openshift-install-linux.tar.gz"
CLIENT_ARCHIVE = "openshift-client-linux.tar.gz"
INSTALLER_BINARY = "openshift-install"
CLIENT_BINARIES = ("oc", "kubectl")

METADATA_FILE = "metadata.json"
CHUNK_SIZE = 1024 * 1024


def release_url(version: str, archive: str) -> str:
    return f"{MIRROR_URL}/{version}/{archive}"


def find_installer(install_dir: str | Path) -> Path | None:
    """openshift-install from PATH, else from install_dir, else None."""
    on_path = shutil.which(INSTALLER_BINARY)
    if on_path:
        return Path(on_path)
    local = Path(install_dir) / INSTALLER_BINARY
    if local.is_file() and os.access(local, os.X_OK):
        return local
    return None


def download_archive(url: str, destination: Path) -> Path:
    """Stream url to destination."""
    logger.info("Downloading %s", url)
    try:
        with requests.get(url, stream=True, timeout=(30, 300)) as response:
            response.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
    except requests.RequestException as e:
        raise DownloadError(url, str(e)) from e
    return destination


def extract_binaries(archive: Path, names: tuple[str, ...], target_dir: Path) -> list[Path]:
    """
    Copy the named top-level files out of a tar.gz and mark them executable.

    Only exact member names are extracted, so archive paths cannot escape
    target_dir.
    """
    extracted = []
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            if not member.isfile() or member.name not in names:
                continue
            source = tar.extractfile(member)
            if source is None:
                continue
            dest = target_dir / member.name
            with source, open(dest, "wb") as out:
                shutil.copyfileobj(source, out)
            os.chmod(dest, 0o755)
            extracted.append(dest)
    return extracted


def download_release(version: str, install_dir: str | Path) -> Path:
    """
    Download openshift-install, oc and kubectl for version into install_dir.

    Returns:
        Path to the installer binary
    """
    target = ensure_dir(install_dir)
    with tempfile.TemporaryDirectory(dir=target) as tmp:
        for archive, names in (
            (INSTALLER_ARCHIVE, (INSTALLER_BINARY,)),
            (CLIENT_ARCHIVE, CLIENT_BINARIES),
        ):
            url = release_url(version, archive)
            with operation_status(f"Downloading {archive} ({version})"):
                local = download_archive(url, Path(tmp) / archive)
                try:
                    extracted = extract_binaries(local, names, target)
                except tarfile.TarError as e:
                    raise DownloadError(url, f"not a valid archive: {e}") from e
            if not extracted:
                raise DownloadError(url, f"archive did not contain {', '.join(names)}")

    return target / INSTALLER_BINARY


def ensure_installer(version: str, install_dir: str | Path) -> Path:
    installer = find_installer(install_dir)
    if installer is not None:
        print_info(f"Using OpenShift installer at {installer}")
        return installer
    return download_release(version, install_dir)


def create_cluster(installer: Path, install_dir: str | Path) -> None:
    """Run 'openshift-install create cluster'; raises InstallerError on failure."""
    result = run(
        [str(installer), "create", "cluster", "--dir", str(install_dir), "--log-level=info"]
    )
    if result.returncode != 0:
        raise InstallerError("create cluster", result.returncode, str(install_dir))


def destroy_command(installer: Path | str, install_dir: str | Path) -> list[str]:
    return [str(installer), "destroy", "cluster", "--dir", str(install_dir), "--log-level=info"]


def check_destroyable(install_dir: str | Path) -> Path:
    """
    Make sure install_dir holds cluster state.

    metadata.json is what destroy needs; install-config.yaml alone means the
    install never started, which destroy also accepts.
    """
    d = Path(install_dir)
    if not d.is_dir():
        raise InstallDirError(str(d), "directory not found")
    if not (d / METADATA_FILE).is_file() and not (d / "install-config.yaml").is_file():
        raise InstallDirError(str(d), "no metadata.json or install-config.yaml found")
    return d


def destroy_cluster(installer: Path, install_dir: str | Path) -> None:
    result = run(destroy_command(installer, install_dir))
    if result.returncode != 0:
        raise InstallerError("destroy cluster", result.returncode, str(install_dir))


def cluster_endpoints(cluster_name: str, base_domain: str) -> dict[str, str]:
    return {
        "Console": f"https://console-openshift-console.apps.{cluster_name}.{base_domain}",
        "API": f"https://api.{cluster_name}.{base_domain}:6443",
    }


def kubeadmin_password(install_dir: str | Path) -> str | None:
    return read_value(Path(install_dir) / "auth" / "kubeadmin-password")
