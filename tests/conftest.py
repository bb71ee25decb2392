"""Shared pytest fixtures for cfn-forecast tests."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from typing import Any

import pytest

from cfn_forecast.config import DeployConfig
from cfn_forecast.errors import CheckExecutionError
from cfn_forecast.models import Action, Environment, ResourceContext
from cfn_forecast.resolver import resolve_properties
from cfn_forecast.template import Template, get_map_value, parse_template, to_python

CALLER_ARN = "arn:aws:iam::123456789012:role/Admin"


class FakeAccount:
    """In-memory AccountClient."""

    def __init__(self, caller_arn: str = CALLER_ARN, region: str = "us-east-1"):
        self.caller_arn = caller_arn
        self._region = region
        self.existing: set[tuple[str, str]] = set()
        self.stack: dict[str, Any] | None = None
        self.stack_resources: list[dict[str, Any]] = []
        self.permissions: dict[tuple[str, Action], list[str]] = {}
        self.denied: set[str] = set()
        self.images: dict[str, dict[str, Any]] = {}
        self.instance_types: dict[str, list[str]] = {}
        self.engine_versions: dict[str, list[str]] = {}
        # Method name -> identifiers (or "*") for which the call raises
        self.failures: dict[str, set[str]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @property
    def region(self) -> str:
        return self._region

    def fail(self, method: str, identifier: str = "*") -> None:
        self.failures.setdefault(method, set()).add(identifier)

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        targets = self.failures.get(method, set())
        if "*" in targets or any(str(a) in targets for a in args):
            raise CheckExecutionError(f"{method} is unavailable")

    def get_caller_arn(self) -> str:
        self.calls.append(("get_caller_arn", ()))
        return self.caller_arn

    def resource_exists(self, type_name: str, identifier: str) -> bool:
        self._record("resource_exists", type_name, identifier)
        return (type_name, identifier) in self.existing

    def get_stack(self, stack_name: str) -> dict[str, Any] | None:
        self._record("get_stack", stack_name)
        return self.stack

    def get_stack_resources(self, stack_name: str) -> list[dict[str, Any]]:
        self._record("get_stack_resources", stack_name)
        return self.stack_resources

    def get_type_permissions(self, type_name: str, action: Action) -> list[str]:
        self._record("get_type_permissions", type_name, action)
        return self.permissions.get((type_name, action), [])

    def evaluate_authorization(self, role_arn: str, action: str, resource_arn: str) -> bool:
        self._record("evaluate_authorization", role_arn, action, resource_arn)
        return action not in self.denied

    def describe_image(self, image_id: str) -> dict[str, Any] | None:
        self._record("describe_image", image_id)
        return self.images.get(image_id)

    def get_instance_type_architectures(self, instance_type: str) -> list[str]:
        self._record("get_instance_type_architectures", instance_type)
        return self.instance_types.get(instance_type, [])

    def get_engine_versions(self, engine: str) -> list[str]:
        self._record("get_engine_versions", engine)
        return self.engine_versions.get(engine, [])


@pytest.fixture
def account() -> FakeAccount:
    """Return an empty fake account."""
    return FakeAccount()


@pytest.fixture
def make_template() -> Callable[[str], Template]:
    """Parse dedented template text."""

    def _make(text: str) -> Template:
        return parse_template(textwrap.dedent(text))

    return _make


@pytest.fixture
def make_context(
    account: FakeAccount, make_template: Callable[[str], Template]
) -> Callable[..., ResourceContext]:
    """
    Build a ResourceContext for the first resource of a template.

    Keyword arguments override stack_exists, parameters and role_arn.
    """

    def _make(
        text: str,
        stack_exists: bool = False,
        parameters: dict[str, str] | None = None,
        role_arn: str = CALLER_ARN,
    ) -> ResourceContext:
        template = make_template(text)
        resource = template.resources()[0]
        _, properties = get_map_value(resource.node, "Properties")
        resolved = resolve_properties(properties, parameters or {})
        values = to_python(resolved)
        return ResourceContext(
            logical_id=resource.logical_id,
            type_name=resource.type_name,
            line=resource.line,
            node=resource.node,
            properties_node=resolved,
            properties=values if isinstance(values, dict) else {},
            stack_name="test-stack",
            stack_exists=stack_exists,
            stack=None,
            deploy_config=DeployConfig(parameters=parameters or {}),
            env=Environment(partition="aws", region="us-east-1", account="123456789012"),
            role_arn=role_arn,
            account=account,
        )

    return _make
