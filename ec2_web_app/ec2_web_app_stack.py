"""
EC2 Web App Stack

One instance running the sample Python web app:
- Existing VPC lookup
- SSH key pair (private key kept in Secrets Manager)
- Security group for HTTP and SSH
- Instance role with SSM managed policies
- Amazon Linux 2 instance bootstrapped from two S3 assets
- Outputs for connecting to the instance
"""

import logging

import aws_cdk as cdk
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_iam as iam
from aws_cdk import aws_s3_assets as s3_assets
from cdk_ec2_key_pair import KeyPair
from constructs import Construct

from . import bootstrap
from .config import ConfigurationError, DeploymentConfig
from .security_groups import build_security_group
from .validate import ConfigValidator

logger = logging.getLogger("deployment")

ASSET_EXCLUDES = ["__pycache__", "*.pyc", ".venv", ".pytest_cache"]
CPU_TYPES = {
    "x86_64": ec2.AmazonLinuxCpuType.X86_64,
    "arm64": ec2.AmazonLinuxCpuType.ARM_64,
}
SUBNET_TYPES = {
    "public": ec2.SubnetType.PUBLIC,
}


class Ec2WebAppStack(cdk.Stack):
    def __init__(self, scope: Construct, construct_id: str, config: DeploymentConfig = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.config = config or DeploymentConfig()

        report = ConfigValidator().validate_all(self.config)
        if not report.passed:
            messages = "\n".join(f"  - {r.name}: {r.message}" for r in report.failures())
            raise ConfigurationError(f"Deployment config failed validation:\n{messages}")

        # Look up the network
        if self.config.vpc_id:
            logger.info(f"Looking up VPC {self.config.vpc_id}")
            self.vpc = ec2.Vpc.from_lookup(self, "VPC", vpc_id=self.config.vpc_id)
        else:
            logger.info("Looking up the default VPC")
            self.vpc = ec2.Vpc.from_lookup(self, "VPC", is_default=True)

        # SSH key pair
        self.key_pair = KeyPair(
            self,
            "KeyPair",
            key_pair_name=self.config.key_pair.name,
            description=self.config.key_pair.description,
            store_public_key=self.config.key_pair.store_public_key,
        )

        self.security_group = build_security_group(self, "ec2-web-app", self.vpc, self.config.security_group)

        self.role = iam.Role(
            self,
            "ec2-web-app-role",
            assumed_by=iam.ServicePrincipal(self.config.role.service_principal),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(name)
                for name in self.config.role.managed_policies
            ],
        )
        if self.config.key_pair.store_public_key:
            self.key_pair.grant_read_on_public_key(self.role)

        # Amazon Linux 2 AMI for the configured CPU type
        machine_image = ec2.MachineImage.latest_amazon_linux2(
            cpu_type=CPU_TYPES[self.config.instance.cpu_type],
        )

        self.instance = ec2.Instance(
            self,
            "Instance",
            vpc=self.vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=SUBNET_TYPES[self.config.instance.subnet_type]),
            instance_type=ec2.InstanceType(self.config.instance.instance_type),
            machine_image=machine_image,
            security_group=self.security_group,
            key_pair=ec2.KeyPair.from_key_pair_name(self, "InstanceKeyPair", self.key_pair.key_pair_name),
            role=self.role,
        )
        # The key pair is created by a custom resource
        self.instance.node.add_dependency(self.key_pair)

        # Payloads
        self.app_asset = s3_assets.Asset(
            self,
            "SampleAppAsset",
            path=str(self.config.payload.app_path()),
            exclude=ASSET_EXCLUDES,
        )
        self.app_asset.grant_read(self.role)

        self.config_script_asset = s3_assets.Asset(
            self,
            "ConfigScript",
            path=str(self.config.payload.script_path()),
        )
        self.config_script_asset.grant_read(self.role)

        self.bootstrap_paths = bootstrap.add_bootstrap(
            self.instance.user_data, self.app_asset, self.config_script_asset
        )

        self._add_outputs()

    def _add_outputs(self):
        key_path = self.config.key_pair.local_path

        cdk.CfnOutput(
            self,
            "IPAddress",
            value=self.instance.instance_public_ip,
            description="Public IP address of the web app instance",
        )
        cdk.CfnOutput(
            self,
            "DownloadKeyCommand",
            value=bootstrap.render_download_key_command(
                secret_id=self.key_pair.private_key_arn,
                key_path=key_path,
                region=self.region,
            ),
            description="Command to download the SSH private key",
        )
        cdk.CfnOutput(
            self,
            "SshCommand",
            value=bootstrap.render_ssh_command(
                key_path=key_path,
                user=self.config.instance.ssh_user,
                host=self.instance.instance_public_ip,
            ),
            description="Command to access the instance using SSH",
        )
