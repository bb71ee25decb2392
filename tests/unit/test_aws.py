"""Tests for cfn_forecast.aws."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cfn_forecast.aws import AWSConfig, BotoAccountClient, get_aws_config, get_boto3_session
from cfn_forecast.errors import CheckExecutionError, IdentityResolutionError
from cfn_forecast.models import Action

# ---------------------------------------------------------------------------
# Env-var names used by the module under test
# ---------------------------------------------------------------------------
_ALL_ENV_VARS = (
    "CFN_FORECAST_AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_REGION",
    "AWS_PROFILE",
    "CFN_FORECAST_AWS_ENDPOINT_URL",
    "AWS_ENDPOINT_URL",
)


@pytest.fixture(autouse=True)
def _clear_env_and_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all AWS env vars and clear the cache before each test."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    get_aws_config.cache_clear()


def _client_error(code: str, message: str = "boom", operation: str = "Op") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def clients() -> dict[str, MagicMock]:
    return {}


@pytest.fixture
def client(clients: dict[str, MagicMock]) -> BotoAccountClient:
    """BotoAccountClient whose service clients are MagicMocks."""

    def _make_client(service: str, **kwargs) -> MagicMock:
        return clients.setdefault(service, MagicMock(name=service))

    session = MagicMock()
    session.region_name = "eu-west-1"
    session.client.side_effect = _make_client
    return BotoAccountClient(session=session, config=AWSConfig(region="us-east-1"))


def _service(client: BotoAccountClient, clients: dict[str, MagicMock], name: str) -> MagicMock:
    client._client(name)
    return clients[name]


# ===================================================================
# get_aws_config()
# ===================================================================


class TestGetAwsConfig:
    """Region precedence: CFN_FORECAST_AWS_REGION > AWS_DEFAULT_REGION > AWS_REGION."""

    def test_defaults(self) -> None:
        cfg = get_aws_config()
        assert cfg == AWSConfig(region="us-east-1")

    def test_aws_region_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        assert get_aws_config().region == "eu-west-1"

    def test_default_region_over_region(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-southeast-2")
        assert get_aws_config().region == "ap-southeast-2"

    def test_own_region_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-southeast-2")
        monkeypatch.setenv("CFN_FORECAST_AWS_REGION", "ca-central-1")
        assert get_aws_config().region == "ca-central-1"

    def test_profile_and_endpoint(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_PROFILE", "deploy")
        monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")
        cfg = get_aws_config()
        assert cfg.profile == "deploy"
        assert cfg.endpoint_url == "http://localhost:4566"

    def test_result_is_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_aws_config()
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        assert get_aws_config() is first


class TestGetBoto3Session:
    """Tests for session creation."""

    def test_region_only(self) -> None:
        with patch("cfn_forecast.aws.boto3.Session") as session_cls:
            get_boto3_session(AWSConfig(region="eu-west-1"))
        session_cls.assert_called_once_with(region_name="eu-west-1")

    def test_with_profile(self) -> None:
        with patch("cfn_forecast.aws.boto3.Session") as session_cls:
            get_boto3_session(AWSConfig(region="eu-west-1", profile="deploy"))
        session_cls.assert_called_once_with(region_name="eu-west-1", profile_name="deploy")


# ===================================================================
# BotoAccountClient
# ===================================================================


class TestClientSetup:
    """Tests for client construction."""

    def test_region_from_session(self, client: BotoAccountClient) -> None:
        assert client.region == "eu-west-1"

    def test_clients_are_cached(self, client: BotoAccountClient) -> None:
        assert client._client("sts") is client._client("sts")
        assert client.session.client.call_count == 1

    def test_endpoint_url_passed(self) -> None:
        session = MagicMock()
        config = AWSConfig(region="us-east-1", endpoint_url="http://localhost:4566")

        BotoAccountClient(session=session, config=config)._client("s3")

        session.client.assert_called_once_with("s3", endpoint_url="http://localhost:4566")


class TestIdentity:
    """Tests for caller identity and policy simulation."""

    def test_caller_arn(self, client, clients) -> None:
        sts = _service(client, clients, "sts")
        sts.get_caller_identity.return_value = {"Arn": "arn:aws:iam::123456789012:user/a"}

        assert client.get_caller_arn() == "arn:aws:iam::123456789012:user/a"

    def test_caller_arn_failure(self, client, clients) -> None:
        sts = _service(client, clients, "sts")
        sts.get_caller_identity.side_effect = _client_error("ExpiredToken")

        with pytest.raises(IdentityResolutionError, match="Unable to get caller arn"):
            client.get_caller_arn()

    @pytest.mark.parametrize(
        ("decisions", "expected"),
        [
            (["allowed"], True),
            (["allowed", "implicitDeny"], False),
            (["explicitDeny"], False),
            ([], False),
        ],
    )
    def test_evaluate_authorization(self, client, clients, decisions, expected) -> None:
        iam = _service(client, clients, "iam")
        iam.simulate_principal_policy.return_value = {
            "EvaluationResults": [{"EvalDecision": d} for d in decisions]
        }

        assert client.evaluate_authorization("role", "s3:CreateBucket", "*") is expected
        iam.simulate_principal_policy.assert_called_once_with(
            PolicySourceArn="role", ActionNames=["s3:CreateBucket"], ResourceArns=["*"]
        )

    def test_evaluate_authorization_failure(self, client, clients) -> None:
        iam = _service(client, clients, "iam")
        iam.simulate_principal_policy.side_effect = _client_error("AccessDenied")

        with pytest.raises(CheckExecutionError, match="Simulating s3:CreateBucket"):
            client.evaluate_authorization("role", "s3:CreateBucket", "*")


class TestCloudFormation:
    """Tests for stack and registry lookups."""

    def test_get_stack(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_stacks.return_value = {"Stacks": [{"StackName": "web"}]}

        assert client.get_stack("web") == {"StackName": "web"}

    def test_missing_stack(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_stacks.side_effect = _client_error(
            "ValidationError", "Stack with id web does not exist"
        )

        assert client.get_stack("web") is None

    def test_stack_lookup_failure(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_stacks.side_effect = _client_error("Throttling")

        with pytest.raises(CheckExecutionError):
            client.get_stack("web")

    def test_type_permissions(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        schema = {
            "handlers": {
                "create": {"permissions": ["s3:CreateBucket", "s3:PutBucketTagging"]},
                "update": {"permissions": ["s3:PutBucketTagging"]},
            }
        }
        cfn.describe_type.return_value = {"Schema": json.dumps(schema)}

        assert client.get_type_permissions("AWS::S3::Bucket", Action.CREATE) == [
            "s3:CreateBucket",
            "s3:PutBucketTagging",
        ]
        assert client.get_type_permissions("AWS::S3::Bucket", Action.CREATE) == [
            "s3:CreateBucket",
            "s3:PutBucketTagging",
        ]
        assert cfn.describe_type.call_count == 1

    def test_type_permissions_without_handler(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_type.return_value = {"Schema": "{}"}

        assert client.get_type_permissions("Custom::Thing", Action.UPDATE) == []

    def test_type_permissions_failure(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_type.side_effect = _client_error("Throttling")

        with pytest.raises(CheckExecutionError, match="Describing type"):
            client.get_type_permissions("AWS::SQS::Queue", Action.CREATE)

    def test_type_without_schema_needs_no_permissions(self, client, clients) -> None:
        cfn = _service(client, clients, "cloudformation")
        cfn.describe_type.side_effect = _client_error("TypeNotFoundException")

        assert client.get_type_permissions("Custom::Thing", Action.CREATE) == []
        assert client.get_type_permissions("Custom::Thing", Action.CREATE) == []
        assert cfn.describe_type.call_count == 1


class TestResourceLookups:
    """Tests for existence probes and EC2/RDS lookups."""

    @pytest.mark.parametrize(
        ("code", "expected"),
        [("404", False), ("NoSuchBucket", False), ("403", True), ("AccessDenied", True)],
    )
    def test_bucket_exists(self, client, clients, code, expected) -> None:
        s3 = _service(client, clients, "s3")
        s3.head_bucket.side_effect = _client_error(code)

        assert client.resource_exists("AWS::S3::Bucket", "my-bucket") is expected

    def test_bucket_found(self, client, clients) -> None:
        s3 = _service(client, clients, "s3")
        s3.head_bucket.return_value = {}

        assert client.resource_exists("AWS::S3::Bucket", "my-bucket") is True

    def test_cloudcontrol_lookup(self, client, clients) -> None:
        cloudcontrol = _service(client, clients, "cloudcontrol")

        assert client.resource_exists("AWS::DynamoDB::Table", "orders") is True
        cloudcontrol.get_resource.assert_called_once_with(
            TypeName="AWS::DynamoDB::Table", Identifier="orders"
        )

    def test_cloudcontrol_not_found(self, client, clients) -> None:
        cloudcontrol = _service(client, clients, "cloudcontrol")
        cloudcontrol.get_resource.side_effect = _client_error("ResourceNotFoundException")

        assert client.resource_exists("AWS::DynamoDB::Table", "orders") is False

    def test_connection_failure(self, client, clients) -> None:
        cloudcontrol = _service(client, clients, "cloudcontrol")
        cloudcontrol.get_resource.side_effect = EndpointConnectionError(endpoint_url="http://x")

        with pytest.raises(CheckExecutionError, match="Looking up AWS::DynamoDB::Table"):
            client.resource_exists("AWS::DynamoDB::Table", "orders")

    def test_describe_image(self, client, clients) -> None:
        ec2 = _service(client, clients, "ec2")
        ec2.describe_images.return_value = {"Images": [{"Architecture": "arm64"}]}

        assert client.describe_image("ami-1") == {"Architecture": "arm64"}

    def test_missing_image(self, client, clients) -> None:
        ec2 = _service(client, clients, "ec2")
        ec2.describe_images.side_effect = _client_error("InvalidAMIID.NotFound")

        assert client.describe_image("ami-1") is None

    def test_instance_type_architectures(self, client, clients) -> None:
        ec2 = _service(client, clients, "ec2")
        ec2.describe_instance_types.return_value = {
            "InstanceTypes": [{"ProcessorInfo": {"SupportedArchitectures": ["arm64"]}}]
        }

        assert client.get_instance_type_architectures("t4g.micro") == ["arm64"]

    def test_unknown_instance_type(self, client, clients) -> None:
        ec2 = _service(client, clients, "ec2")
        ec2.describe_instance_types.side_effect = _client_error("InvalidInstanceType")

        assert client.get_instance_type_architectures("t9.huge") == []

    def test_engine_versions(self, client, clients) -> None:
        rds = _service(client, clients, "rds")
        rds.get_paginator.return_value.paginate.return_value = [
            {"DBEngineVersions": [{"EngineVersion": "15.4"}]},
            {"DBEngineVersions": [{"EngineVersion": "16.1"}]},
        ]

        assert client.get_engine_versions("aurora-postgresql") == ["15.4", "16.1"]
        rds.get_paginator.assert_called_once_with("describe_db_engine_versions")
