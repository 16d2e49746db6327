"""Tests for the CDK entry point"""

from unittest.mock import patch

import app as cdk_app


class TestMain:
    def test_synthesizes_stack(self, monkeypatch):
        monkeypatch.setenv("CDK_DEFAULT_ACCOUNT", "123456789012")
        monkeypatch.setenv("CDK_DEFAULT_REGION", "us-east-1")

        with patch.object(cdk_app, "Ec2WebAppStack", wraps=cdk_app.Ec2WebAppStack) as stack_cls:
            cdk_app.main()

        stack_cls.assert_called_once()
        args, kwargs = stack_cls.call_args
        assert args[1] == "Ec2WebAppStack"
        assert kwargs["tags"] == {"Project": "ec2-web-app"}
        assert kwargs["env"].region == "us-east-1"
