"""
Custom exceptions for ocp-provision with helpful error messages.
"""


class OcpProvisionError(Exception):
    """Base exception for ocp-provision errors."""

    def __init__(self, message: str, suggestion: str = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self):
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(OcpProvisionError):
    """Configuration file errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Configuration file is invalid."""

    def __init__(self, error_details: str):
        message = f"Invalid configuration file: {error_details}"

        suggestion = (
            "Fix the ocp-provision.yaml file.\n"
            "You can regenerate the default configuration:\n"
            "  mv ocp-provision.yaml ocp-provision.yaml.backup\n"
            "  ocp-provision init .\n\n"
            "Then merge your settings back from the backup."
        )
        super().__init__(message, suggestion)


class InvalidParameterError(OcpProvisionError):
    """A command-line parameter is out of range or malformed."""

    def __init__(self, name: str, value, expected: str):
        message = f"Invalid value for {name}: {value!r}"
        suggestion = f"Expected {expected}."
        super().__init__(message, suggestion)


class OutputFilesMissingError(OcpProvisionError):
    """Status files written by an earlier command are missing."""

    def __init__(self, directory: str, missing: list[str], producer: str):
        file_list = "\n  - ".join(missing)
        message = f"Required files missing from {directory}:\n  - {file_list}"
        suggestion = f"Run the command that produces them first:\n  {producer}"
        super().__init__(message, suggestion)


class AwsError(OcpProvisionError):
    """Errors returned by AWS or raised while talking to it."""

    pass


class AwsCredentialsError(AwsError):
    """No usable AWS credentials."""

    def __init__(self, error_details: str, profile: str = None):
        message = f"AWS credentials are not configured or invalid: {error_details}"
        if profile:
            suggestion = (
                f"Check the '{profile}' profile:\n"
                f"  aws configure --profile {profile}\n"
                f"  aws sts get-caller-identity --profile {profile}"
            )
        else:
            suggestion = (
                "Configure credentials with one of:\n"
                "  aws configure\n"
                "  export AWS_PROFILE=<profile>\n"
                "  ocp-provision <command> --profile <profile>"
            )
        super().__init__(message, suggestion)


class StackNotFoundError(AwsError):
    """No CloudFormation stack matched the request."""

    def __init__(self, description: str, available: list[str] = None):
        message = f"No CloudFormation stack found for {description}"

        if available:
            stack_list = "\n  - ".join(available)
            suggestion = (
                f"Available stacks:\n  - {stack_list}\n\n"
                "Pass one explicitly:\n"
                f"  ocp-provision vpc delete --stack-name {available[0]}"
            )
        else:
            suggestion = "List stacks with:\n  aws cloudformation list-stacks"
        super().__init__(message, suggestion)


class AmbiguousStackError(AwsError):
    """More than one stack matched a search."""

    def __init__(self, description: str, matches: list[str]):
        stack_list = "\n  - ".join(matches)
        message = f"Multiple stacks match {description}:\n  - {stack_list}"
        suggestion = "Choose one with:\n  ocp-provision vpc delete --stack-name <name>"
        super().__init__(message, suggestion)


class StackOperationError(AwsError):
    """A stack create or delete did not reach its target state."""

    def __init__(self, stack_name: str, operation: str, status: str = None, reason: str = None):
        self.stack_name = stack_name
        self.status = status
        message = f"Stack {operation} failed for {stack_name}"
        if status:
            message += f" (status: {status})"
        if reason:
            message += f": {reason}"

        suggestion = (
            "Inspect the stack events:\n"
            f"  aws cloudformation describe-stack-events --stack-name {stack_name}"
        )
        super().__init__(message, suggestion)


class VpcNotFoundError(AwsError):
    """No VPC or stack with the given name."""

    def __init__(self, vpc_name: str, available: list[str] = None):
        message = f"No VPC or CloudFormation stack found with name: {vpc_name}"
        if available:
            vpc_list = "\n  - ".join(available)
            suggestion = f"VPCs in this region:\n  - {vpc_list}"
        else:
            suggestion = (
                "List VPCs with:\n"
                "  aws ec2 describe-vpcs --query 'Vpcs[].[VpcId,Tags[?Key==`Name`].Value|[0]]'"
            )
        super().__init__(message, suggestion)


class VpcDeletionError(AwsError):
    """Direct VPC deletion failed."""

    def __init__(self, vpc_id: str, error_details: str):
        message = f"Failed to delete VPC {vpc_id}: {error_details}"
        suggestion = (
            "The VPC still has dependent resources. Delete its CloudFormation stack,\n"
            "or remove the dependencies first and retry."
        )
        super().__init__(message, suggestion)


class KeyPairExistsError(AwsError):
    """The bastion key pair name is already taken."""

    def __init__(self, key_name: str, region: str):
        message = f"SSH key pair '{key_name}' already exists in {region}"
        suggestion = (
            "Delete the existing key pair:\n"
            f"  aws ec2 delete-key-pair --key-name {key_name} --region {region}\n\n"
            "Or choose another name:\n"
            "  ocp-provision bastion create --ssh-key-name <name>"
        )
        super().__init__(message, suggestion)


class ClusterError(OcpProvisionError):
    """Errors related to OpenShift cluster install and destroy."""

    pass


class InstallDirError(ClusterError):
    """Install directory is missing or holds no cluster."""

    def __init__(self, install_dir: str, details: str):
        message = f"Installation directory {install_dir}: {details}"
        suggestion = (
            "Point to the directory used for the install:\n"
            "  ocp-provision cluster destroy --install-dir <dir>"
        )
        super().__init__(message, suggestion)


class MissingCredentialError(ClusterError):
    """Pull secret or SSH key not supplied."""

    def __init__(self, what: str, flag: str):
        message = f"{what} is required"
        suggestion = f"Provide it with {flag} or {flag}-file."
        super().__init__(message, suggestion)


class InstallerError(ClusterError):
    """openshift-install exited with an error."""

    def __init__(self, action: str, returncode: int, install_dir: str):
        message = f"openshift-install {action} failed with exit code {returncode}"
        suggestion = f"Check the installer log:\n  less {install_dir}/.openshift_install.log"
        super().__init__(message, suggestion)


class DownloadError(ClusterError):
    """Failed to download a release artifact."""

    def __init__(self, url: str, error_details: str):
        message = f"Failed to download {url}: {error_details}"
        suggestion = "Check the OpenShift version and your network connection."
        super().__init__(message, suggestion)


class ToolError(OcpProvisionError):
    """An external command (ssh, oc, podman) failed or is missing."""

    pass


class BackupError(OcpProvisionError):
    """Backup could not be created."""

    pass


class RetryableError(OcpProvisionError):
    """Error that should be retried."""

    def __init__(self, original_error: Exception, attempt: int, max_attempts: int):
        self.original_error = original_error
        self.attempt = attempt
        self.max_attempts = max_attempts

        message = f"Operation failed (attempt {attempt}/{max_attempts}): {original_error}"
        super().__init__(message)


def format_error_for_cli(error: Exception) -> str:
    """
    Format an exception for CLI display with helpful information.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, OcpProvisionError):
        output = f"[red]Error:[/red] {error.message}"
        if error.suggestion:
            output += f"\n\n[yellow]{error.suggestion}[/yellow]"
        return output
    return f"[red]Error:[/red] {error}"
