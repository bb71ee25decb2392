"""
S3 predictors.

Bucket names and bucket policy principals are validated before deployment,
since CloudFormation only reports them after it has started rolling back.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Any

from ..models import Forecast, ResourceContext
from .base import predictor, property_line, string_property

_BUCKET_NAME = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")
_ACCOUNT_ID = re.compile(r"^\d{12}$")
_IAM_ARN = re.compile(
    r"^arn:aws[a-z-]*:(iam::\d{12}:(root|user/.+|role/.+|group/.+|federated-user/.+)"
    r"|iam::cloudfront:user/CloudFront Origin Access Identity [A-Z0-9]+"
    r"|sts::\d{12}:(assumed-role|federated-user)/.+)$"
)
_SERVICE = re.compile(r"^[a-z0-9][a-z0-9.-]*\.amazonaws\.com(\.cn)?$")
_FEDERATED_ARN = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:(saml-provider|oidc-provider)/.+$")
_FEDERATED_HOSTS = {
    "cognito-identity.amazonaws.com",
    "www.amazon.com",
    "graph.facebook.com",
    "accounts.google.com",
}
_CANONICAL_USER = re.compile(r"^[0-9a-f]{64}$")


def bucket_name_problem(name: str) -> str | None:
    """
    Check a bucket name against the S3 naming rules.

    Returns:
        A description of the first broken rule, or None if the name is valid
    """
    if not 3 <= len(name) <= 63:
        return "must be between 3 and 63 characters long"
    if not _BUCKET_NAME.match(name):
        return (
            "must use lowercase letters, numbers, dots and hyphens, "
            "starting and ending with a letter or number"
        )
    if ".." in name:
        return "must not contain two adjacent periods"
    try:
        ipaddress.IPv4Address(name)
        return "must not be formatted as an IP address"
    except ValueError:
        pass
    if name.startswith(("xn--", "sthree-")):
        return "must not start with a reserved prefix"
    if name.endswith(("-s3alias", "--ol-s3")):
        return "must not end with a reserved suffix"
    return None


@predictor("AWS::S3::Bucket")
def check_s3_bucket(context: ResourceContext) -> Forecast:
    """Check an explicit bucket name is valid."""
    forecast = context.make_forecast()

    name = string_property(context, "BucketName")
    if name is None:
        return forecast

    problem = bucket_name_problem(name)
    if problem:
        line = property_line(context, "BucketName")
        forecast.add(False, f"Invalid bucket name {name}: {problem}", line)
    else:
        forecast.add(True, "Bucket name is valid")
    return forecast


def principal_valid(kind: str, value: str) -> bool:
    """Check a single principal value of the given kind (AWS, Service, ...)."""
    if value == "*":
        return kind == "AWS"
    if kind == "AWS":
        return bool(_ACCOUNT_ID.match(value) or _IAM_ARN.match(value))
    if kind == "Service":
        return bool(_SERVICE.match(value))
    if kind == "Federated":
        return value in _FEDERATED_HOSTS or bool(_FEDERATED_ARN.match(value))
    if kind == "CanonicalUser":
        return bool(_CANONICAL_USER.match(value))
    return False


def _principal_values(principal: Any) -> list[tuple[str, Any]]:
    if isinstance(principal, str):
        return [("AWS", principal)]
    if not isinstance(principal, dict):
        return []
    values = []
    for kind, value in principal.items():
        items = value if isinstance(value, list) else [value]
        values.extend((kind, item) for item in items)
    return values


@predictor("AWS::S3::BucketPolicy")
def check_s3_bucket_policy(context: ResourceContext) -> Forecast:
    """Check every principal in the policy document is well formed."""
    forecast = context.make_forecast()

    document = context.properties.get("PolicyDocument")
    if not isinstance(document, dict):
        return forecast

    statements = document.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list):
        return forecast

    checked = 0
    invalid = False
    for i, statement in enumerate(statements):
        if not isinstance(statement, dict):
            continue
        for key in ("Principal", "NotPrincipal"):
            for kind, value in _principal_values(statement.get(key)):
                if not isinstance(value, str):
                    # Intrinsic that could not be resolved
                    continue
                checked += 1
                if not principal_valid(kind, value):
                    invalid = True
                    line = property_line(context, "PolicyDocument", "Statement", i, key)
                    forecast.add(False, f"Invalid principal: {value}", line)

    if checked and not invalid:
        forecast.add(True, "Bucket policy principals are valid")
    return forecast
