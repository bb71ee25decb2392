"""
Forecast runner.

Walks the template's resources in document order and runs, for each one,
parameter resolution, the generic checks and the registered predictor.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from .account import AccountClient, parse_caller_arn, role_arn_for_caller
from .checks import check_exists, check_permissions, default_registry
from .checks.base import CheckerRegistry
from .config import DeployConfig, ForecastSettings
from .errors import CheckExecutionError
from .estimates import estimate, total_estimate
from .models import Action, Environment, Forecast, ResourceContext
from .report import ForecastReport
from .resolver import resolve_properties
from .template import Template, TemplateResource, get_map_value, to_python

logger = logging.getLogger(__name__)


class ForecastRunner:
    """
    Orchestrates the checks for one template against one stack.

    Structural template problems and identity failures raise before any
    resource is checked. Failures of individual API calls are recorded in the
    affected resource's forecast and never stop the run.
    """

    def __init__(
        self,
        template: Template,
        stack_name: str,
        account: AccountClient,
        deploy_config: DeployConfig | None = None,
        stack: dict[str, Any] | None = None,
        stack_exists: bool = False,
        settings: ForecastSettings | None = None,
        registry: CheckerRegistry | None = None,
        on_progress: Callable[[str], None] | None = None,
    ):
        """
        Initialize the runner.

        Args:
            template: Parsed template
            stack_name: Target stack
            account: Read-only account client
            deploy_config: Resolved parameters and tags
            stack: Existing stack descriptor, if any
            stack_exists: Whether the target stack exists
            settings: Run flags
            registry: Predictor registry (defaults to the built-in one)
            on_progress: Receives a status message before each step
        """
        self.template = template
        self.stack_name = stack_name
        self.account = account
        self.deploy_config = deploy_config or DeployConfig()
        self.stack = stack
        self.stack_exists = stack_exists
        self.settings = settings or ForecastSettings()
        self.registry = registry if registry is not None else default_registry
        self.on_progress = on_progress

        self.run_id = f"fc-{uuid.uuid4().hex[:8]}"

    @property
    def action(self) -> Action:
        return Action.for_stack(self.stack_exists)

    def run(self) -> ForecastReport:
        """
        Forecast every resource in the template.

        Returns:
            ForecastReport with the accumulated forecast and time estimate

        Raises:
            StructuralTemplateError: The template has no resources, or a resource has no Type
            IdentityResolutionError: The caller identity cannot be resolved
        """
        logger.debug("About to make API calls for failure prediction...")
        resources = self.template.resources()
        env, role_arn = self._resolve_identity()

        forecast = Forecast()
        for resource in resources:
            self._progress(f"Checking {resource.type_name}: {resource.logical_id}")
            forecast.append(self.forecast_resource(resource, env, role_arn))

        total_seconds = total_estimate(self.template, self.stack_exists)
        logger.debug("Total estimate: %d seconds", total_seconds)

        return ForecastReport(
            run_id=self.run_id,
            timestamp_utc=datetime.now(UTC).isoformat(),
            stack_name=self.stack_name,
            action=self.action,
            region=env.region,
            account_id=env.account,
            forecast=forecast,
            total_seconds=total_seconds,
        )

    def _resolve_identity(self) -> tuple[Environment, str]:
        caller_arn = self.account.get_caller_arn()
        env = parse_caller_arn(caller_arn, self.account.region)
        role_arn = self.settings.role_arn or role_arn_for_caller(caller_arn)
        logger.debug("Caller %s, simulating as %s", caller_arn, role_arn)
        return env, role_arn

    def build_context(
        self, resource: TemplateResource, env: Environment, role_arn: str
    ) -> ResourceContext:
        """Build the per-resource working set, with parameter refs resolved."""
        _, properties = get_map_value(resource.node, "Properties")
        resolved = resolve_properties(properties, self.deploy_config.parameters)
        values = to_python(resolved)

        return ResourceContext(
            logical_id=resource.logical_id,
            type_name=resource.type_name,
            line=resource.line,
            node=resource.node,
            properties_node=resolved,
            properties=values if isinstance(values, dict) else {},
            stack_name=self.stack_name,
            stack_exists=self.stack_exists,
            stack=self.stack,
            deploy_config=self.deploy_config,
            env=env,
            role_arn=role_arn,
            account=self.account,
        )

    def forecast_resource(
        self, resource: TemplateResource, env: Environment, role_arn: str
    ) -> Forecast:
        """Run every applicable check for one resource."""
        type_filter = self.settings.resource_type
        if type_filter and type_filter != resource.type_name:
            logger.debug("Not running forecasters for %s", resource.type_name)
            return Forecast(type_name=resource.type_name, logical_id=resource.logical_id)

        context = self.build_context(resource, env, role_arn)
        forecast = context.make_forecast()

        seconds = estimate(context.type_name, context.action)
        self._progress(f"{context.type_name} {context.logical_id} - estimate: {seconds} seconds")

        self._progress(f"{context.type_name} {context.logical_id} - exists already?")
        forecast.append(check_exists(context))

        if not self.settings.skip_iam:
            self._progress(f"{context.type_name} {context.logical_id} - permissions")
            forecast.append(check_permissions(context))

        predict = self.registry.get(context.type_name)
        if predict is not None:
            logger.debug("Running forecaster for %s", context.type_name)
            try:
                forecast.append(predict(context))
            except CheckExecutionError as e:
                forecast.add_unknown(f"Unable to run {context.type_name} checks: {e.message}")

        return forecast

    def _progress(self, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(message)


def run_forecast(
    template: Template,
    stack_name: str,
    account: AccountClient,
    deploy_config: DeployConfig | None = None,
    stack: dict[str, Any] | None = None,
    stack_exists: bool = False,
    skip_iam: bool = False,
    resource_type: str = "",
    role_arn: str = "",
) -> ForecastReport:
    """
    Convenience function to run a forecast.

    Returns:
        ForecastReport with the accumulated forecast and time estimate
    """
    settings = ForecastSettings(skip_iam=skip_iam, resource_type=resource_type, role_arn=role_arn)

    runner = ForecastRunner(
        template=template,
        stack_name=stack_name,
        account=account,
        deploy_config=deploy_config,
        stack=stack,
        stack_exists=stack_exists,
        settings=settings,
    )

    return runner.run()
