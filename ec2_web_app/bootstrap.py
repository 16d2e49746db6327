#!/usr/bin/env python3
"""
Bootstrap Generator

Template-based generation of the first-boot script for the web app instance
and of the commands an operator needs to reach it:
- S3 payload downloads
- Public address lookup through the instance metadata service (IMDSv2)
- Execution of the configuration script with exactly two arguments
- Key retrieval and SSH commands for stack outputs
"""

from dataclasses import dataclass
from typing import List, Optional

from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_s3_assets as s3_assets
from jinja2 import Template

IMDS_ENDPOINT = "http://169.254.169.254"
PUBLIC_ADDRESS_VAR = "PUBLIC_ADDRESS"

# The instance cannot reference its own PublicIp attribute in its user data,
# so the address is read from instance metadata at boot.
PUBLIC_ADDRESS_TEMPLATE = """
IMDS_TOKEN=$(curl -sf --retry 5 --retry-delay 2 -X PUT {{ endpoint }}/latest/api/token -H 'X-aws-ec2-metadata-token-ttl-seconds: {{ ttl }}')
{{ variable }}=$(curl -sf --retry 5 --retry-delay 2 -H "X-aws-ec2-metadata-token: ${IMDS_TOKEN}" {{ endpoint }}/latest/meta-data/public-ipv4)
[ -n "${{ variable }}" ] || { echo "No public address in instance metadata" >&2; exit 1; }
"""

EXECUTE_ARGUMENTS_TEMPLATE = '{{ app_path }} "${{ variable }}"'

DOWNLOAD_KEY_TEMPLATE = (
    "mkdir -p {{ key_dir }}"
    " && aws secretsmanager get-secret-value"
    " --secret-id {{ secret_id }}"
    "{% if region %} --region {{ region }}{% endif %}"
    " --query SecretString"
    " --output text > {{ key_path }}"
    " && chmod 600 {{ key_path }}"
)

SSH_TEMPLATE = "ssh -i {{ key_path }} -o IdentitiesOnly=yes {{ user }}@{{ host }}"


@dataclass
class BootstrapPaths:
    """Local paths of the downloaded payloads on the instance."""

    app_path: str
    script_path: str


def render_public_address_lookup(variable: str = PUBLIC_ADDRESS_VAR, ttl: int = 300) -> List[str]:
    text = Template(PUBLIC_ADDRESS_TEMPLATE).render(endpoint=IMDS_ENDPOINT, variable=variable, ttl=ttl)
    return [line for line in text.splitlines() if line.strip()]


def render_execute_arguments(app_path: str, variable: str = PUBLIC_ADDRESS_VAR) -> str:
    """The two positional arguments: archive path and quoted public address."""
    return Template(EXECUTE_ARGUMENTS_TEMPLATE).render(app_path=app_path, variable=variable)


def render_download_key_command(secret_id: str, key_path: str, region: Optional[str] = None) -> str:
    key_dir = key_path.rsplit("/", 1)[0] if "/" in key_path else "."
    return Template(DOWNLOAD_KEY_TEMPLATE).render(
        key_dir=key_dir, secret_id=secret_id, key_path=key_path, region=region
    )


def render_ssh_command(key_path: str, user: str, host: str) -> str:
    return Template(SSH_TEMPLATE).render(key_path=key_path, user=user, host=host)


def add_bootstrap(
    user_data: ec2.UserData, app_asset: s3_assets.Asset, script_asset: s3_assets.Asset
) -> BootstrapPaths:
    """
    Append the fetch-and-run sequence to the instance user data.

    Order matters: both downloads, then the address lookup, then the
    configuration script is executed with the archive path and the address.
    """
    app_path = user_data.add_s3_download_command(
        bucket=app_asset.bucket,
        bucket_key=app_asset.s3_object_key,
    )
    script_path = user_data.add_s3_download_command(
        bucket=script_asset.bucket,
        bucket_key=script_asset.s3_object_key,
    )

    user_data.add_commands(*render_public_address_lookup())
    user_data.add_execute_file_command(
        file_path=script_path,
        arguments=render_execute_arguments(app_path),
    )

    return BootstrapPaths(app_path=app_path, script_path=script_path)
