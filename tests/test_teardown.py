"""
Tests for the full environment cleanup.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from ocp_provision import teardown
from ocp_provision.exceptions import InstallerError
from ocp_provision.teardown import CleanupOptions, run_cleanup


@pytest.fixture
def environment(tmp_path, vpc_output_dir, bastion_output_dir):
    install_dir = tmp_path / "install"
    install_dir.mkdir()
    (install_dir / "metadata.json").write_text(json.dumps({"clusterName": "demo"}))
    return CleanupOptions(
        cluster_name="demo",
        vpc_output=vpc_output_dir,
        bastion_output=bastion_output_dir,
        install_dir=install_dir,
    )


@pytest.fixture
def aws(aws_clients, client_error):
    """Key pairs exist and the VPC stack is live."""
    aws_clients["ec2"].describe_key_pairs.return_value = {"KeyPairs": [{}]}
    cf = aws_clients["cloudformation"]
    cf.describe_stacks.return_value = {
        "Stacks": [{"StackName": "demo-vpc-1700000000", "StackStatus": "CREATE_COMPLETE"}]
    }
    cf.get_paginator.return_value.paginate.return_value = [
        {
            "StackResourceSummaries": [
                {"ResourceType": "AWS::EC2::VPC", "ResourceStatus": "CREATE_COMPLETE"},
                {"ResourceType": "AWS::EC2::Subnet", "ResourceStatus": "CREATE_COMPLETE"},
            ]
        }
    ]
    return aws_clients


def statuses(report):
    return {step.name: step.status for step in report.steps}


class TestReport:
    def test_ok(self):
        report = teardown.CleanupReport(
            [teardown.StepResult("a", teardown.DONE), teardown.StepResult("b", teardown.NOT_FOUND)]
        )
        assert report.ok
        assert report.rows() == [["a", "done", ""], ["b", "not-found", ""]]

    def test_failed(self):
        report = teardown.CleanupReport([teardown.StepResult("a", teardown.FAILED, "boom")])
        assert not report.ok


class TestRunCleanup:
    """Tests for run_cleanup."""

    def test_declined_upfront(self, mock_ctx, aws, environment):
        """Test declining the upfront confirmation."""
        confirm = MagicMock(return_value=False)

        report = run_cleanup(mock_ctx, environment, confirm=confirm)

        assert report.cancelled
        assert report.steps == []
        confirm.assert_called_once_with("Proceed with the full cleanup?")
        aws["ec2"].terminate_instances.assert_not_called()
        assert environment.vpc_output.exists()

    def test_dry_run_mutates_nothing(self, mock_ctx, aws, environment):
        """Test dry run makes no mutating call."""
        confirm = MagicMock()

        with patch("ocp_provision.cluster.installer.run") as run:
            report = run_cleanup(mock_ctx, environment, dry_run=True, confirm=confirm)

        assert set(statuses(report).values()) == {teardown.DRY_RUN}
        assert report.ok
        confirm.assert_not_called()
        run.assert_not_called()
        aws["ec2"].terminate_instances.assert_not_called()
        aws["ec2"].delete_key_pair.assert_not_called()
        aws["cloudformation"].delete_stack.assert_not_called()
        assert environment.vpc_output.exists()
        assert "(2 resources)" in report.steps[3].detail

    def test_force_tears_everything_down(self, mock_ctx, aws, environment):
        """Test forced cleanup of every step."""
        (environment.bastion_output / "bastion-iam-role-name").write_text("demo-bastion-role\n")
        confirm = MagicMock()

        with (
            patch(
                "ocp_provision.cluster.installer.shutil.which",
                return_value="/usr/bin/openshift-install",
            ),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            run.return_value.returncode = 0
            report = run_cleanup(mock_ctx, environment, force=True, confirm=confirm)

        assert report.ok
        assert set(statuses(report).values()) == {teardown.DONE}
        confirm.assert_not_called()

        assert run.call_args.args[0][1:3] == ["destroy", "cluster"]

        ec2 = aws["ec2"]
        ec2.terminate_instances.assert_called_once_with(InstanceIds=["i-0123"])
        ec2.get_waiter.assert_any_call("instance_terminated")
        ec2.delete_security_group.assert_called_once_with(GroupId="sg-0bastion")
        deleted_keys = [c.kwargs["KeyName"] for c in ec2.delete_key_pair.call_args_list]
        assert deleted_keys == ["demo-key", "demo-bastion-key"]

        iam = aws["iam"]
        iam.delete_instance_profile.assert_called_once_with(InstanceProfileName="demo-bastion-role")
        iam.delete_role.assert_called_once_with(RoleName="demo-bastion-role")

        cf = aws["cloudformation"]
        cf.delete_stack.assert_called_once_with(StackName="demo-vpc-1700000000")
        cf.get_waiter.assert_called_with("stack_delete_complete")

        assert not environment.vpc_output.exists()
        assert not environment.bastion_output.exists()
        assert not environment.install_dir.exists()

    def test_nothing_left(self, mock_ctx, aws_clients, client_error, tmp_path):
        """Test cleanup with nothing left."""
        aws_clients["ec2"].describe_key_pairs.side_effect = client_error(
            "InvalidKeyPair.NotFound"
        )
        options = CleanupOptions(
            cluster_name="demo",
            vpc_output=tmp_path / "vpc-output",
            bastion_output=tmp_path / "bastion-output",
            install_dir=tmp_path / "install",
        )

        report = run_cleanup(mock_ctx, options, force=True)

        assert set(statuses(report).values()) == {teardown.NOT_FOUND}
        assert report.ok

    def test_install_config_alone_is_not_a_cluster(self, mock_ctx, aws, environment):
        """Test that a dry-run deploy's install dir does not block the rest of cleanup."""
        (environment.install_dir / "metadata.json").unlink()
        (environment.install_dir / "install-config.yaml").write_text("apiVersion: v1\n")

        with (
            patch("ocp_provision.cluster.installer.shutil.which", return_value=None),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            report = run_cleanup(mock_ctx, environment, force=True)

        assert report.ok
        assert statuses(report)["OpenShift cluster"] == teardown.NOT_FOUND
        assert statuses(report)["Bastion host"] == teardown.DONE
        assert statuses(report)["VPC stack"] == teardown.DONE
        run.assert_not_called()
        aws["ec2"].terminate_instances.assert_called_once_with(InstanceIds=["i-0123"])

    def test_recorded_bastion_key_name_deleted(self, mock_ctx, aws, environment):
        """Test that a key pair named with --ssh-key-name is cleaned up too."""
        environment.skip_openshift = True
        (environment.bastion_output / "bastion-ssh-key-name").write_text("custom-key\n")

        report = run_cleanup(mock_ctx, environment, force=True)

        assert statuses(report)["SSH key pairs"] == teardown.DONE
        deleted = [c.kwargs["KeyName"] for c in aws["ec2"].delete_key_pair.call_args_list]
        assert deleted == ["demo-key", "demo-bastion-key", "custom-key"]

    def test_skip_flags(self, mock_ctx, aws, environment):
        """Test skip flags."""
        environment.skip_openshift = True
        environment.skip_bastion = True

        report = run_cleanup(mock_ctx, environment, dry_run=True)

        result = statuses(report)
        assert result["OpenShift cluster"] == teardown.SKIPPED
        assert result["Bastion host"] == teardown.SKIPPED
        assert result["VPC stack"] == teardown.DRY_RUN

    def test_per_step_prompts(self, mock_ctx, aws, environment):
        """Test per-step confirmations."""
        answers = iter([True, False, True, False, False, False])

        with patch("ocp_provision.cluster.installer.run") as run:
            report = run_cleanup(
                mock_ctx, environment, confirm=lambda message: next(answers)
            )

        assert statuses(report) == {
            "OpenShift cluster": teardown.SKIPPED,
            "Bastion host": teardown.DONE,
            "SSH key pairs": teardown.SKIPPED,
            "VPC stack": teardown.SKIPPED,
            "Output directories": teardown.SKIPPED,
        }
        run.assert_not_called()
        aws["cloudformation"].delete_stack.assert_not_called()

    def test_bastion_already_terminated(self, mock_ctx, aws, environment, client_error):
        """Test bastion already terminated."""
        environment.skip_openshift = True
        aws["ec2"].terminate_instances.side_effect = client_error("InvalidInstanceID.NotFound")

        report = run_cleanup(mock_ctx, environment, force=True)

        assert statuses(report)["Bastion host"] == teardown.NOT_FOUND
        assert report.ok
        aws["ec2"].delete_security_group.assert_not_called()

    def test_missing_iam_entities_ignored(self, mock_ctx, aws, environment, client_error):
        """Test that missing IAM entities are ignored."""
        environment.skip_openshift = True
        (environment.bastion_output / "bastion-iam-role-name").write_text("demo-bastion-role\n")
        aws["iam"].remove_role_from_instance_profile.side_effect = client_error("NoSuchEntity")
        aws["ec2"].delete_security_group.side_effect = client_error("InvalidGroup.NotFound")

        report = run_cleanup(mock_ctx, environment, force=True)

        assert statuses(report)["Bastion host"] == teardown.DONE
        assert "sg-0bastion" not in report.steps[1].detail
        aws["iam"].delete_role.assert_called_once()

    def test_failure_skips_remaining_steps(self, mock_ctx, aws, environment):
        """Test that a failed step skips the rest."""
        with (
            patch(
                "ocp_provision.cluster.installer.shutil.which",
                return_value="/usr/bin/openshift-install",
            ),
            patch("ocp_provision.cluster.installer.run") as run,
        ):
            run.return_value.returncode = 1
            report = run_cleanup(mock_ctx, environment, force=True)

        assert not report.ok
        assert report.steps[0].status == teardown.FAILED
        assert report.steps[0].detail.startswith("openshift-install destroy cluster failed")
        assert [s.status for s in report.steps[1:]] == [teardown.SKIPPED] * 4
        assert all(s.detail == "previous step failed" for s in report.steps[1:])
        aws["ec2"].terminate_instances.assert_not_called()
        assert environment.vpc_output.exists()

    def test_aws_error_reported_as_failure(self, mock_ctx, aws, environment, client_error):
        """Test AWS error reported as a failed step."""
        environment.skip_openshift = True
        environment.skip_bastion = True
        aws["cloudformation"].delete_stack.side_effect = client_error("AccessDenied")

        report = run_cleanup(mock_ctx, environment, force=True)

        assert statuses(report)["VPC stack"] == teardown.FAILED
        assert statuses(report)["Output directories"] == teardown.SKIPPED

    def test_installer_error_type(self, mock_ctx, aws, environment):
        """Test installer error reported as a failed step."""
        with patch.object(
            teardown.deploy, "destroy_cluster", side_effect=InstallerError("destroy", 2, "x")
        ):
            report = run_cleanup(mock_ctx, environment, force=True)
        assert report.steps[0].status == teardown.FAILED
