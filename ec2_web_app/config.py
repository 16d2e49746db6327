#!/usr/bin/env python3
"""
Deployment Configuration

Loads the deployment description for the EC2 web app stack from YAML and
validates it with pydantic. Every field has a default, so a missing default
config file still produces a deployable description:
- VPC lookup (by id, or the account's default VPC)
- SSH key pair
- Security group ingress rules
- Instance role and managed policies
- Instance type / image CPU type / subnet placement
- Payload locations
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import aws_cdk as cdk
import yaml
from pydantic import BaseModel, Field, ValidationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "deployment.yaml"
CONFIG_ENV_VAR = "EC2_WEB_APP_CONFIG"


class ConfigurationError(Exception):
    """Raised when the deployment configuration cannot be loaded or is invalid."""


class KeyPairConfig(BaseModel):
    name: str = "ec2-web-app-key"
    description: str = "Key pair for the EC2 web app instance"
    store_public_key: bool = True
    local_path: str = "~/.ssh/ec2-cdk-key.pem"


class IngressRule(BaseModel):
    port: Optional[int] = None
    protocol: str = "tcp"
    cidr: str = "0.0.0.0/0"
    description: str = ""


def _default_ingress() -> List[IngressRule]:
    return [
        IngressRule(port=80, description="Allow HTTP access from the Internet"),
        IngressRule(port=22, description="Allow SSH access from the Internet"),
    ]


class SecurityGroupConfig(BaseModel):
    description: str = "Allow HTTP (80) and SSH (22) access to ec2 instances"
    allow_all_outbound: bool = True
    ingress: List[IngressRule] = Field(default_factory=_default_ingress)


class RoleConfig(BaseModel):
    service_principal: str = "ec2.amazonaws.com"
    managed_policies: List[str] = Field(
        default_factory=lambda: ["AmazonSSMManagedInstanceCore", "AmazonEC2RoleforSSM"]
    )


class InstanceConfig(BaseModel):
    instance_type: str = "t2.micro"
    cpu_type: str = "x86_64"
    subnet_type: str = "public"
    ssh_user: str = "ec2-user"


class PayloadConfig(BaseModel):
    app_dir: str = "sample-python-web-app"
    config_script: str = "sample-python-web-app/configure_amz_linux_sample_app.sh"

    def app_path(self) -> Path:
        return _resolve(self.app_dir)

    def script_path(self) -> Path:
        return _resolve(self.config_script)


class DeploymentConfig(BaseModel):
    stack_name: str = "Ec2WebAppStack"
    account: Optional[str] = None
    region: Optional[str] = None
    vpc_id: Optional[str] = None  # None -> default VPC
    tags: Dict[str, str] = Field(default_factory=lambda: {"Project": "ec2-web-app"})
    key_pair: KeyPairConfig = Field(default_factory=KeyPairConfig)
    security_group: SecurityGroupConfig = Field(default_factory=SecurityGroupConfig)
    role: RoleConfig = Field(default_factory=RoleConfig)
    instance: InstanceConfig = Field(default_factory=InstanceConfig)
    payload: PayloadConfig = Field(default_factory=PayloadConfig)

    def environment(self) -> cdk.Environment:
        """CDK environment; VPC lookups need a concrete account and region."""
        return cdk.Environment(
            account=self.account or os.getenv("CDK_DEFAULT_ACCOUNT"),
            region=self.region or os.getenv("CDK_DEFAULT_REGION"),
        )


def _resolve(path: str) -> Path:
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(
    path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None
) -> DeploymentConfig:
    """
    Load the deployment configuration.

    The file is taken from `path`, then the EC2_WEB_APP_CONFIG environment
    variable, then config/deployment.yaml. Only the default location may be
    absent. Overrides with a value of None are ignored, so unset CDK context
    keys can be passed straight through.
    """
    explicit = path or os.getenv(CONFIG_ENV_VAR)
    config_path = _resolve(explicit) if explicit else DEFAULT_CONFIG_PATH

    if config_path.exists():
        data = _read_yaml(config_path)
    elif explicit:
        raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        data = {}

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return DeploymentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid deployment config {config_path}:\n{e}") from e
