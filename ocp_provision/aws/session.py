"""
AWS session context shared by all commands.
"""

import logging
import shlex
from functools import wraps

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ocp_provision.exceptions import AwsCredentialsError
from ocp_provision.util.retry import RetryStrategy, is_throttling_error, retry_with_backoff

logger = logging.getLogger(__name__)

GOV_REGIONS = ("us-gov-east-1", "us-gov-west-1")


class AwsContext:
    """
    Region, profile and cached boto3 clients for one command run.

    Args:
        region: AWS region every client is bound to
        profile: Named profile, or None for the default credential chain
        session: Pre-built boto3 session (tests pass a mock here)
        retry_strategy: RetryStrategy preset used for throttled calls
    """

    def __init__(
        self,
        region: str,
        profile: str | None = None,
        session=None,
        retry_strategy: str = "AWS_API",
    ):
        self.region = region
        self.profile = profile
        self.retry_strategy = retry_strategy
        self._session = session
        self._clients: dict[str, object] = {}
        self._identity: dict | None = None

    @property
    def session(self):
        if self._session is None:
            try:
                self._session = boto3.Session(profile_name=self.profile, region_name=self.region)
            except BotoCoreError as e:
                raise AwsCredentialsError(str(e), self.profile) from e
        return self._session

    def client(self, service: str):
        """Return a cached client for service in this context's region."""
        if service not in self._clients:
            self._clients[service] = self.session.client(service, region_name=self.region)
        return self._clients[service]

    def validate_credentials(self) -> dict:
        """
        Check that the credential chain resolves to a caller identity.

        Returns:
            The GetCallerIdentity response (Account, Arn, UserId)

        Raises:
            AwsCredentialsError: No credentials or STS rejected them
        """
        if self._identity is not None:
            return self._identity
        try:
            identity = self.client("sts").get_caller_identity()
        except NoCredentialsError as e:
            raise AwsCredentialsError(str(e), self.profile) from e
        except ClientError as e:
            message = e.response["Error"].get("Message", str(e))
            raise AwsCredentialsError(message, self.profile) from e

        logger.info(
            "AWS identity: account=%s arn=%s region=%s",
            identity.get("Account"),
            identity.get("Arn"),
            self.region,
        )
        self._identity = identity
        return identity

    @property
    def account_id(self) -> str:
        return self.validate_credentials()["Account"]

    @property
    def is_gov_region(self) -> bool:
        return self.region in GOV_REGIONS

    def cli_hint(self, *args: str) -> str:
        """Render the equivalent aws CLI command for printing."""
        parts = ["aws"]
        if self.profile:
            parts += ["--profile", self.profile]
        parts += list(args)
        parts += ["--region", self.region]
        return shlex.join(parts)


def _log_retry(error: Exception, attempt: int, max_attempts: int) -> None:
    logger.warning("AWS throttled request (attempt %d/%d): %s", attempt, max_attempts, error)


def aws_retry(func):
    """
    Retry a ctx-first AWS helper on throttling errors.

    The backoff preset comes from ctx.retry_strategy; other ClientErrors
    propagate immediately.
    """

    @wraps(func)
    def wrapper(ctx: AwsContext, *args, **kwargs):
        params = RetryStrategy.apply(ctx.retry_strategy)
        retrying = retry_with_backoff(
            **params,
            retryable_exceptions=(ClientError,),
            should_retry=is_throttling_error,
            on_retry=_log_retry,
        )(func)
        return retrying(ctx, *args, **kwargs)

    return wrapper


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", str(error))
