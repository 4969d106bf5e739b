"""
AMI selection for the bastion host.
"""

import logging

import requests

from ocp_provision.aws.session import AwsContext, aws_retry
from ocp_provision.exceptions import AwsError, RetryableError
from ocp_provision.util.progress import print_warning
from ocp_provision.util.retry import retry_with_backoff

logger = logging.getLogger(__name__)

RHCOS_STREAM_URL = (
    "https://raw.githubusercontent.com/openshift/installer/"
    "release-{major_minor}/data/data/coreos/rhcos.json"
)
AL2023_NAME_PATTERN = "al2023-ami-2023.*-x86_64"

AMAZON_LINUX_USER = "ec2-user"
RHCOS_USER = "core"


def major_minor(version: str) -> str:
    """'4.18.15' -> '4.18'"""
    parts = version.split(".")
    if len(parts) < 2 or not all(p.isdigit() for p in parts[:2]):
        raise ValueError(f"not a release version: {version}")
    return ".".join(parts[:2])


@retry_with_backoff(
    max_attempts=3,
    initial_delay=2.0,
    retryable_exceptions=(requests.ConnectionError, requests.Timeout),
)
def _fetch_stream(url: str) -> dict:
    response = requests.get(url, timeout=(30, 60))
    response.raise_for_status()
    return response.json()


def rhcos_ami(region: str, openshift_version: str) -> str:
    """
    Look up the RHCOS AMI for region from the installer's stream metadata.

    Raises:
        LookupError: The metadata could not be fetched or has no image for region
    """
    try:
        url = RHCOS_STREAM_URL.format(major_minor=major_minor(openshift_version))
    except ValueError as e:
        raise LookupError(str(e)) from e

    logger.info("Fetching RHCOS stream metadata from %s", url)
    try:
        data = _fetch_stream(url)
    except (requests.RequestException, RetryableError, ValueError) as e:
        raise LookupError(f"failed to download {url}: {e}") from e

    try:
        return data["architectures"]["x86_64"]["images"]["aws"]["regions"][region]["image"]
    except (KeyError, TypeError) as e:
        raise LookupError(f"no RHCOS image for region {region}") from e


@aws_retry
def amazon_linux_ami(ctx: AwsContext) -> str:
    """Newest Amazon-owned Amazon Linux 2023 x86_64 AMI in the region."""
    response = ctx.client("ec2").describe_images(
        Owners=["amazon"],
        Filters=[
            {"Name": "name", "Values": [AL2023_NAME_PATTERN]},
            {"Name": "architecture", "Values": ["x86_64"]},
            {"Name": "state", "Values": ["available"]},
        ],
    )
    images = sorted(response.get("Images", []), key=lambda i: i["CreationDate"], reverse=True)
    if not images:
        raise AwsError(
            f"No Amazon Linux 2023 AMI found in region {ctx.region}",
            "Check that the region is enabled for your account.",
        )
    return images[0]["ImageId"]


def select_ami(ctx: AwsContext, use_rhcos: bool, openshift_version: str) -> tuple[str, str, bool]:
    """
    Pick the bastion image.

    Returns:
        (ami_id, ssh_user, is_rhcos). RHCOS lookups that fail fall back to
        Amazon Linux with a warning.
    """
    if use_rhcos:
        try:
            ami_id = rhcos_ami(ctx.region, openshift_version)
            logger.info("Using RHCOS AMI %s", ami_id)
            return ami_id, RHCOS_USER, True
        except LookupError as e:
            print_warning(f"RHCOS AMI lookup failed ({e}); falling back to Amazon Linux 2023")

    ami_id = amazon_linux_ami(ctx)
    logger.info("Using Amazon Linux 2023 AMI %s", ami_id)
    return ami_id, AMAZON_LINUX_USER, False
