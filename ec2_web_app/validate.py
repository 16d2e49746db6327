#!/usr/bin/env python3
"""
Deployment Validation

Pre-synthesis validation for the EC2 web app deployment.
Catches configuration mistakes before CloudFormation does:
- Key pair / policy name safety
- Ingress rule syntax (ports, CIDRs, protocols, duplicates)
- SSH exposure to the whole internet
- Instance type format
- Payload presence on disk
"""

import ipaddress
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import ConfigurationError, DeploymentConfig, load_config

# Alphanumeric, dash and underscore only; these names end up in shell commands
SAFE_NAME_REGEX = re.compile(r"^[a-zA-Z0-9_-]+$")
INSTANCE_TYPE_REGEX = re.compile(r"^[a-z][a-z0-9-]*\.[a-z0-9]+$")
VPC_ID_REGEX = re.compile(r"^vpc-[0-9a-f]{8}([0-9a-f]{9})?$")
PROTOCOLS = ("tcp", "udp", "icmp")
SUBNET_TYPES = ("public",)
OPEN_CIDRS = ("0.0.0.0/0", "::/0")


def is_safe_name(name: str) -> bool:
    """Check if a name is safe for use in resource names and shell commands."""
    return SAFE_NAME_REGEX.match(name or "") is not None


def validate_port(port: Any) -> bool:
    """Validate that a port is an integer between 1 and 65535."""
    return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= 65535


def validate_cidr(cidr: str) -> bool:
    """Validate an IPv4 or IPv6 network in CIDR notation."""
    try:
        ipaddress.ip_network(cidr, strict=True)
    except ValueError:
        return False
    return "/" in cidr


class ValidationSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationResult:
    """Result of a single validation check."""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None


@dataclass
class ValidationReport:
    """Full validation report."""
    passed: bool
    errors: int
    warnings: int
    results: List[ValidationResult]

    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.passed and r.severity == ValidationSeverity.ERROR]


def _result(name: str, issues: List[str], ok: str, severity: ValidationSeverity = ValidationSeverity.ERROR,
            details: Optional[Dict[str, Any]] = None) -> ValidationResult:
    return ValidationResult(
        name=name,
        passed=len(issues) == 0,
        severity=severity if issues else ValidationSeverity.INFO,
        message=ok if not issues else f"Issues: {issues}",
        details=details,
    )


class ConfigValidator:
    """
    Validates a DeploymentConfig before the stack is synthesized.

    Warnings never fail the report; only ERROR results do.
    """

    def __init__(self):
        self.validators = [
            self._validate_key_pair,
            self._validate_ingress_rules,
            self._validate_ssh_exposure,
            self._validate_managed_policies,
            self._validate_instance,
            self._validate_payload,
            self._validate_vpc,
        ]

    def validate_all(self, config: DeploymentConfig) -> ValidationReport:
        """Run all validators on the configuration."""
        results = []

        for validator in self.validators:
            try:
                results.append(validator(config))
            except Exception as e:
                results.append(ValidationResult(
                    name=validator.__name__,
                    passed=False,
                    severity=ValidationSeverity.ERROR,
                    message=f"Validator exception: {e}"
                ))

        errors = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warnings = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        return ValidationReport(
            passed=errors == 0,
            errors=errors,
            warnings=warnings,
            results=results
        )

    def _validate_key_pair(self, config: DeploymentConfig) -> ValidationResult:
        """Key pair names are used in Secrets Manager ids and shell commands."""
        issues = []
        if not is_safe_name(config.key_pair.name):
            issues.append(f"Invalid key pair name: {config.key_pair.name!r}")
        if not config.key_pair.local_path.strip():
            issues.append("Local key path must not be empty")
        return _result("key_pair_name", issues, "Key pair name is valid")

    def _validate_ingress_rules(self, config: DeploymentConfig) -> ValidationResult:
        """Validate protocol, port and CIDR of every ingress rule."""
        issues = []
        seen = set()

        for rule in config.security_group.ingress:
            if rule.protocol not in PROTOCOLS:
                issues.append(f"Unknown protocol {rule.protocol!r}")
                continue
            if rule.protocol != "icmp" and not validate_port(rule.port):
                issues.append(f"Invalid {rule.protocol} port: {rule.port}")
            if not validate_cidr(rule.cidr):
                issues.append(f"Invalid CIDR: {rule.cidr}")

            key = (rule.protocol, rule.port, rule.cidr)
            if key in seen:
                issues.append(f"Duplicate rule: {rule.protocol}/{rule.port} from {rule.cidr}")
            seen.add(key)

        return _result("ingress_rules", issues, "Ingress rules validated",
                       details={"rule_count": len(config.security_group.ingress)})

    def _validate_ssh_exposure(self, config: DeploymentConfig) -> ValidationResult:
        """SSH open to the internet is allowed but reported."""
        exposed = [
            rule.cidr for rule in config.security_group.ingress
            if rule.protocol == "tcp" and rule.port == 22 and rule.cidr in OPEN_CIDRS
        ]
        issues = [f"SSH (22) is open to {cidr}" for cidr in exposed]
        return _result("ssh_exposure", issues, "SSH is not exposed to the internet",
                       severity=ValidationSeverity.WARNING)

    def _validate_managed_policies(self, config: DeploymentConfig) -> ValidationResult:
        issues = []
        policies = config.role.managed_policies
        if not policies:
            issues.append("Instance role needs at least one managed policy")
        for name in policies:
            if not is_safe_name(name):
                issues.append(f"Invalid managed policy name: {name!r}")
        if not config.role.service_principal.endswith(".amazonaws.com"):
            issues.append(f"Unexpected service principal: {config.role.service_principal}")
        return _result("managed_policies", issues, "Instance role validated",
                       details={"policy_count": len(policies)})

    def _validate_instance(self, config: DeploymentConfig) -> ValidationResult:
        instance = config.instance
        issues = []
        if not INSTANCE_TYPE_REGEX.match(instance.instance_type):
            issues.append(f"Malformed instance type: {instance.instance_type!r}")
        if instance.cpu_type not in ("x86_64", "arm64"):
            issues.append(f"Unknown CPU type: {instance.cpu_type!r}")
        if instance.subnet_type == "private":
            issues.append("Private subnets are unsupported: the IPAddress and SshCommand outputs need a public IP")
        elif instance.subnet_type not in SUBNET_TYPES:
            issues.append(f"Unknown subnet type: {instance.subnet_type!r}")
        if not is_safe_name(instance.ssh_user):
            issues.append(f"Invalid SSH user: {instance.ssh_user!r}")
        return _result("instance", issues, f"Instance {instance.instance_type} validated")

    def _validate_payload(self, config: DeploymentConfig) -> ValidationResult:
        """Both payloads are uploaded as assets and must exist locally."""
        issues = []
        app_path = config.payload.app_path()
        script_path = config.payload.script_path()
        if not app_path.is_dir():
            issues.append(f"Application directory not found: {app_path}")
        if not script_path.is_file():
            issues.append(f"Configuration script not found: {script_path}")
        return _result("payload", issues, "Payload files present",
                       details={"app_dir": str(app_path), "config_script": str(script_path)})

    def _validate_vpc(self, config: DeploymentConfig) -> ValidationResult:
        issues = []
        if config.vpc_id is not None and not VPC_ID_REGEX.match(config.vpc_id):
            issues.append(f"Malformed VPC id: {config.vpc_id!r}")
        message = f"Using VPC {config.vpc_id}" if config.vpc_id else "Using the default VPC"
        return _result("vpc", issues, message)


def validate_config_file(config_path: Optional[str] = None) -> ValidationReport:
    """Load and validate a configuration file."""
    config = load_config(config_path)
    return ConfigValidator().validate_all(config)


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        report = validate_config_file(argv[0] if argv else None)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    print(f"\n{'='*60}")
    print("Validation Report")
    print(f"{'='*60}")
    print(f"Status: {'PASSED' if report.passed else 'FAILED'}")
    print(f"Errors: {report.errors}")
    print(f"Warnings: {report.warnings}")
    print("\nDetails:")

    for result in report.results:
        status = "✓" if result.passed else "✗"
        print(f"  {status} {result.name}: {result.message}")

    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
