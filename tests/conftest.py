import os
import sys

import pytest

# Project root for the ec2_web_app package and app.py, plus the payload
# directory so the sample app modules import the way uvicorn loads them
base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(base_dir)
sys.path.append(os.path.join(base_dir, "sample-python-web-app"))

import aws_cdk as cdk
from aws_cdk.assertions import Template

from ec2_web_app.config import CONFIG_ENV_VAR, DeploymentConfig
from ec2_web_app.ec2_web_app_stack import Ec2WebAppStack

TEST_ENV = cdk.Environment(account="123456789012", region="us-east-1")


def synth_template(config=None) -> Template:
    app = cdk.App()
    stack = Ec2WebAppStack(app, "TestEc2WebAppStack", config=config or DeploymentConfig(), env=TEST_ENV)
    return Template.from_stack(stack)


def flatten(value) -> str:
    """Collapse an Fn::Join / Fn::Base64 value into text, refs become <ref>."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if "Fn::Join" in value:
            separator, parts = value["Fn::Join"]
            return separator.join(flatten(p) for p in parts)
        if "Fn::Base64" in value:
            return flatten(value["Fn::Base64"])
        return "<ref>"
    return str(value)


@pytest.fixture(autouse=True)
def no_config_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def config():
    return DeploymentConfig()


@pytest.fixture(scope="session")
def template():
    return synth_template()


@pytest.fixture
def synth():
    return synth_template


@pytest.fixture
def text_of():
    return flatten
