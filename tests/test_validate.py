"""Tests for pre-synthesis validation"""

from unittest.mock import patch

import pytest

from ec2_web_app.config import DeploymentConfig, IngressRule
from ec2_web_app.validate import (
    ConfigValidator,
    ValidationSeverity,
    is_safe_name,
    main,
    validate_cidr,
    validate_port,
)


def _result(report, name):
    return next(r for r in report.results if r.name == name)


@pytest.fixture
def validator():
    return ConfigValidator()


class TestHelpers:
    @pytest.mark.parametrize("name,expected", [
        ("ec2-web-app-key", True),
        ("AmazonEC2RoleforSSM", True),
        ("bad name", False),
        ("key;rm -rf /", False),
        ("", False),
    ])
    def test_is_safe_name(self, name, expected):
        assert is_safe_name(name) is expected

    @pytest.mark.parametrize("port,expected", [
        (22, True), (65535, True), (0, False), (65536, False), ("80", False), (True, False), (None, False),
    ])
    def test_validate_port(self, port, expected):
        assert validate_port(port) is expected

    @pytest.mark.parametrize("cidr,expected", [
        ("0.0.0.0/0", True), ("10.0.0.0/8", True), ("::/0", True),
        ("10.0.0.1/24", False), ("10.0.0.0", False), ("not-a-cidr", False),
    ])
    def test_validate_cidr(self, cidr, expected):
        assert validate_cidr(cidr) is expected


class TestConfigValidator:
    """ConfigValidator against the stock and broken configs"""

    def test_default_config_passes_with_ssh_warning(self, validator, config):
        report = validator.validate_all(config)
        assert report.passed
        assert report.errors == 0
        assert report.warnings == 1
        ssh = _result(report, "ssh_exposure")
        assert not ssh.passed
        assert ssh.severity == ValidationSeverity.WARNING

    def test_restricted_ssh_has_no_warning(self, validator):
        config = DeploymentConfig()
        config.security_group.ingress[1].cidr = "203.0.113.0/24"
        report = validator.validate_all(config)
        assert report.warnings == 0

    def test_bad_rules(self, validator):
        config = DeploymentConfig()
        config.security_group.ingress.extend([
            IngressRule(port=70000),
            IngressRule(port=8080, cidr="10.0.0.1/8"),
            IngressRule(protocol="gre"),
            IngressRule(port=80, description="duplicate of the HTTP rule"),
        ])
        report = validator.validate_all(config)
        result = _result(report, "ingress_rules")
        assert not report.passed
        assert "70000" in result.message
        assert "10.0.0.1/8" in result.message
        assert "gre" in result.message
        assert "Duplicate" in result.message

    def test_icmp_needs_no_port(self, validator):
        config = DeploymentConfig()
        config.security_group.ingress.append(IngressRule(protocol="icmp", cidr="10.0.0.0/8"))
        assert _result(validator.validate_all(config), "ingress_rules").passed

    def test_bad_key_pair_name(self, validator):
        config = DeploymentConfig.model_validate({"key_pair": {"name": "my key"}})
        report = validator.validate_all(config)
        assert not _result(report, "key_pair_name").passed
        assert report.errors == 1

    def test_no_managed_policies(self, validator):
        config = DeploymentConfig.model_validate({"role": {"managed_policies": []}})
        assert not _result(validator.validate_all(config), "managed_policies").passed

    def test_bad_instance(self, validator):
        config = DeploymentConfig.model_validate({
            "instance": {"instance_type": "huge", "cpu_type": "sparc", "subnet_type": "isolated"},
        })
        message = _result(validator.validate_all(config), "instance").message
        assert "huge" in message
        assert "sparc" in message
        assert "isolated" in message

    def test_private_subnet_rejected(self, validator):
        config = DeploymentConfig.model_validate({"instance": {"subnet_type": "private"}})
        report = validator.validate_all(config)
        result = _result(report, "instance")
        assert not report.passed
        assert not result.passed
        assert "Private subnets are unsupported" in result.message

    def test_missing_payload(self, validator, tmp_path):
        config = DeploymentConfig.model_validate({
            "payload": {"app_dir": str(tmp_path), "config_script": str(tmp_path / "configure.sh")},
        })
        result = _result(validator.validate_all(config), "payload")
        assert not result.passed
        assert "configure.sh" in result.message

    def test_vpc_id_format(self, validator):
        assert _result(validator.validate_all(DeploymentConfig(vpc_id="vpc-0b5a033a73eb89ff1")), "vpc").passed
        assert not _result(validator.validate_all(DeploymentConfig(vpc_id="default")), "vpc").passed

    def test_validator_exception_becomes_error(self, validator, config):
        with patch.object(validator, "validators", [lambda c: 1 / 0]):
            report = validator.validate_all(config)
        assert not report.passed
        assert "Validator exception" in report.results[0].message

    def test_failures_lists_errors_only(self, validator):
        config = DeploymentConfig.model_validate({"role": {"managed_policies": []}})
        failures = validator.validate_all(config).failures()
        assert [f.name for f in failures] == ["managed_policies"]


class TestCli:
    def test_default_config(self, capsys):
        assert main([]) == 0
        assert "PASSED" in capsys.readouterr().out

    def test_failing_config(self, tmp_path, capsys):
        path = tmp_path / "deploy.yaml"
        path.write_text("instance:\n  instance_type: huge\n")
        assert main([str(path)]) == 1
        assert "FAILED" in capsys.readouterr().out

    def test_unreadable_config(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.yaml")]) == 1
        assert "Configuration error" in capsys.readouterr().out
