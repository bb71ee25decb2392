"""
boto3-backed account client.

Single source of truth for AWS region, session creation, and the read-only
API calls the forecast makes. Nothing here mutates the account.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import cache
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import CheckExecutionError, IdentityResolutionError
from .models import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AWSConfig:
    """AWS configuration from environment variables.

    Attributes:
        region: AWS region (from CFN_FORECAST_AWS_REGION, AWS_DEFAULT_REGION or AWS_REGION)
        profile: Named profile (from AWS_PROFILE)
        endpoint_url: Custom endpoint for LocalStack/testing
    """

    region: str
    profile: str | None = None
    endpoint_url: str | None = None


@cache
def get_aws_config() -> AWSConfig:
    """Load AWS configuration from environment variables.

    Environment variables (checked in order):
        - CFN_FORECAST_AWS_REGION / AWS_DEFAULT_REGION / AWS_REGION → region
        - AWS_PROFILE → profile
        - CFN_FORECAST_AWS_ENDPOINT_URL / AWS_ENDPOINT_URL → endpoint_url

    Returns:
        AWSConfig with validated settings.
    """
    region = (
        os.environ.get("CFN_FORECAST_AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
        or "us-east-1"
    )

    return AWSConfig(
        region=region,
        profile=os.environ.get("AWS_PROFILE"),
        endpoint_url=os.environ.get("CFN_FORECAST_AWS_ENDPOINT_URL")
        or os.environ.get("AWS_ENDPOINT_URL"),
    )


def get_boto3_session(config: AWSConfig | None = None) -> boto3.Session:
    """Create a boto3 Session from config (uses get_aws_config() if None)."""
    if config is None:
        config = get_aws_config()

    kwargs: dict[str, str] = {"region_name": config.region}
    if config.profile:
        kwargs["profile_name"] = config.profile

    return boto3.Session(**kwargs)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


@contextmanager
def _api_call(description: str) -> Iterator[None]:
    """Wrap botocore failures into CheckExecutionError."""
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        logger.debug("%s failed: %s", description, e)
        raise CheckExecutionError(f"{description} failed: {e}") from e


class BotoAccountClient:
    """AccountClient implementation using boto3."""

    def __init__(self, session: Any | None = None, config: AWSConfig | None = None):
        """
        Initialize the client.

        Args:
            session: boto3 Session (created from config if None)
            config: AWS configuration (uses get_aws_config() if None)
        """
        self.config = config or get_aws_config()
        self.session = session or get_boto3_session(self.config)
        self._clients: dict[str, Any] = {}
        self._permissions: dict[tuple[str, Action], list[str]] = {}

    @property
    def region(self) -> str:
        return self.session.region_name or self.config.region

    def _client(self, service: str) -> Any:
        if service not in self._clients:
            kwargs: dict[str, str] = {}
            if self.config.endpoint_url:
                kwargs["endpoint_url"] = self.config.endpoint_url
            self._clients[service] = self.session.client(service, **kwargs)
        return self._clients[service]

    # -------------------------------------------------------------------------
    # Identity and policy simulation
    # -------------------------------------------------------------------------

    def get_caller_arn(self) -> str:
        try:
            return self._client("sts").get_caller_identity()["Arn"]
        except (ClientError, BotoCoreError) as e:
            raise IdentityResolutionError(f"Unable to get caller arn: {e}") from e

    def evaluate_authorization(self, role_arn: str, action: str, resource_arn: str) -> bool:
        with _api_call(f"Simulating {action} for {role_arn}"):
            response = self._client("iam").simulate_principal_policy(
                PolicySourceArn=role_arn,
                ActionNames=[action],
                ResourceArns=[resource_arn],
            )
        results = response.get("EvaluationResults", [])
        allowed = bool(results) and all(r.get("EvalDecision") == "allowed" for r in results)
        logger.debug("%s on %s: %s", action, resource_arn, "allowed" if allowed else "denied")
        return allowed

    # -------------------------------------------------------------------------
    # CloudFormation
    # -------------------------------------------------------------------------

    def get_stack(self, stack_name: str) -> dict[str, Any] | None:
        try:
            response = self._client("cloudformation").describe_stacks(StackName=stack_name)
        except ClientError as e:
            if _error_code(e) == "ValidationError" and "does not exist" in str(e):
                return None
            raise CheckExecutionError(f"Describing stack {stack_name} failed: {e}") from e
        except BotoCoreError as e:
            raise CheckExecutionError(f"Describing stack {stack_name} failed: {e}") from e

        stacks = response.get("Stacks", [])
        return stacks[0] if stacks else None

    def get_stack_resources(self, stack_name: str) -> list[dict[str, Any]]:
        with _api_call(f"Describing resources of stack {stack_name}"):
            response = self._client("cloudformation").describe_stack_resources(
                StackName=stack_name
            )
        return response.get("StackResources", [])

    def get_type_permissions(self, type_name: str, action: Action) -> list[str]:
        """
        Get the IAM actions a registry type's handler needs.

        Types with no registry schema, such as custom resources, need none.
        """
        key = (type_name, action)
        if key not in self._permissions:
            try:
                response = self._client("cloudformation").describe_type(
                    Type="RESOURCE", TypeName=type_name
                )
            except ClientError as e:
                if _error_code(e) != "TypeNotFoundException":
                    raise CheckExecutionError(f"Describing type {type_name} failed: {e}") from e
                logger.debug("No registry schema for %s", type_name)
                self._permissions[key] = []
                return []
            except BotoCoreError as e:
                raise CheckExecutionError(f"Describing type {type_name} failed: {e}") from e
            try:
                schema = json.loads(response.get("Schema", "{}"))
            except json.JSONDecodeError as e:
                raise CheckExecutionError(f"Invalid schema for {type_name}: {e}") from e
            handler = schema.get("handlers", {}).get(action.value, {})
            self._permissions[key] = list(handler.get("permissions", []))
        return self._permissions[key]

    # -------------------------------------------------------------------------
    # Resource lookups
    # -------------------------------------------------------------------------

    def resource_exists(self, type_name: str, identifier: str) -> bool:
        if type_name == "AWS::S3::Bucket":
            return self._bucket_exists(identifier)

        try:
            self._client("cloudcontrol").get_resource(TypeName=type_name, Identifier=identifier)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                return False
            raise CheckExecutionError(f"Looking up {type_name} {identifier} failed: {e}") from e
        except BotoCoreError as e:
            raise CheckExecutionError(f"Looking up {type_name} {identifier} failed: {e}") from e
        return True

    def _bucket_exists(self, bucket_name: str) -> bool:
        try:
            self._client("s3").head_bucket(Bucket=bucket_name)
        except ClientError as e:
            code = _error_code(e)
            if code in ("404", "NoSuchBucket", "NotFound"):
                return False
            if code in ("403", "AccessDenied"):
                # Owned by someone else
                return True
            raise CheckExecutionError(f"Looking up bucket {bucket_name} failed: {e}") from e
        except BotoCoreError as e:
            raise CheckExecutionError(f"Looking up bucket {bucket_name} failed: {e}") from e
        return True

    def describe_image(self, image_id: str) -> dict[str, Any] | None:
        try:
            response = self._client("ec2").describe_images(ImageIds=[image_id])
        except ClientError as e:
            if _error_code(e).startswith("InvalidAMIID"):
                return None
            raise CheckExecutionError(f"Describing image {image_id} failed: {e}") from e
        except BotoCoreError as e:
            raise CheckExecutionError(f"Describing image {image_id} failed: {e}") from e
        images = response.get("Images", [])
        return images[0] if images else None

    def get_instance_type_architectures(self, instance_type: str) -> list[str]:
        try:
            response = self._client("ec2").describe_instance_types(InstanceTypes=[instance_type])
        except ClientError as e:
            if _error_code(e) == "InvalidInstanceType":
                return []
            raise CheckExecutionError(
                f"Describing instance type {instance_type} failed: {e}"
            ) from e
        except BotoCoreError as e:
            raise CheckExecutionError(
                f"Describing instance type {instance_type} failed: {e}"
            ) from e
        types = response.get("InstanceTypes", [])
        if not types:
            return []
        return list(types[0].get("ProcessorInfo", {}).get("SupportedArchitectures", []))

    def get_engine_versions(self, engine: str) -> list[str]:
        versions: list[str] = []
        with _api_call(f"Describing {engine} engine versions"):
            paginator = self._client("rds").get_paginator("describe_db_engine_versions")
            for page in paginator.paginate(Engine=engine):
                versions.extend(v["EngineVersion"] for v in page.get("DBEngineVersions", []))
        return versions
