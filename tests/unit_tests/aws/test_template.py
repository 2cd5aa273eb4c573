from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from ws_infra.aws.template import MAX_TEMPLATE_BODY_BYTES, load_template, validate_template
from ws_infra.errors import TemplateError
from tests.consts import TEST_TEMPLATE_BODY


def test_load_template(template_file):
    assert load_template(template_file) == TEST_TEMPLATE_BODY


def test_load_template_missing_file(tmp_path):
    with pytest.raises(TemplateError, match="Template file not found"):
        load_template(tmp_path / "missing.yaml")


def test_load_template_rejects_directory(tmp_path):
    with pytest.raises(TemplateError, match="Template file not found"):
        load_template(tmp_path)


def test_load_template_rejects_oversized_body(tmp_path):
    path = tmp_path / "big.yaml"
    path.write_text("#" * (MAX_TEMPLATE_BODY_BYTES + 1))

    with pytest.raises(TemplateError, match="must be uploaded to S3"):
        load_template(path)


def test_shipped_template_fits_inline_limit():
    shipped = Path(__file__).resolve().parents[3] / "cloudformation" / "infrastructure.yaml"
    body = load_template(shipped)

    for resource in ("AWS::EC2::VPC", "AWS::EC2::Subnet", "AWS::EC2::InternetGateway",
                     "AWS::EC2::RouteTable", "AWS::EC2::SecurityGroup", "AWS::EC2::Instance",
                     "AWS::IAM::Role", "AWS::IAM::InstanceProfile"):
        assert resource in body


def test_validate_template_summarises_response():
    client = MagicMock()
    client.validate_template.return_value = {
        "Parameters": [
            {"ParameterKey": "KeyPairName", "NoEcho": False},
            {"ParameterKey": "InstanceType", "DefaultValue": "t3.small", "NoEcho": False},
        ],
        "Capabilities": ["CAPABILITY_IAM"],
        "Description": "Chat API host",
    }

    result = validate_template(client, TEST_TEMPLATE_BODY)

    client.validate_template.assert_called_once_with(TemplateBody=TEST_TEMPLATE_BODY)
    assert result == {
        "parameters": ["KeyPairName", "InstanceType"],
        "capabilities": ["CAPABILITY_IAM"],
        "description": "Chat API host",
    }


def test_validate_template_wraps_client_error():
    client = MagicMock()
    client.validate_template.side_effect = ClientError(
        {"Error": {"Code": "ValidationError", "Message": "Template format error: bad"}},
        "ValidateTemplate",
    )

    with pytest.raises(TemplateError, match="Template validation failed: Template format error"):
        validate_template(client, "{}")
