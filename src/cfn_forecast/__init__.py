"""
cfn-forecast - predict CloudFormation deployment failures.

Inspects a template and the target account before a stack is created or
updated, and reports what is likely to fail:
- resources that already exist outside the stack
- IAM actions the deploying role is not allowed to perform
- resource-specific problems (bucket names, AMIs, engine versions, ...)

Usage:
    cfn-forecast template.yaml [stack-name] [--all] [--skip-iam]
"""

from ._version import get_version
from .checks import CheckerRegistry, default_registry, predictor
from .config import DeployConfig, ForecastSettings, load_deploy_config
from .errors import (
    CheckExecutionError,
    ConfigurationError,
    ForecastError,
    IdentityResolutionError,
    StructuralTemplateError,
)
from .estimates import estimate, format_estimate, total_estimate
from .models import Action, Environment, Forecast, ForecastMessage, ResourceContext
from .report import ForecastReport, ReportGenerator, generate_report
from .resolver import resolve_properties
from .runner import ForecastRunner, run_forecast
from .template import Template, load_template, parse_template

__version__ = get_version()

__all__ = [
    "__version__",
    # Models
    "Action",
    "Environment",
    "Forecast",
    "ForecastMessage",
    "ResourceContext",
    # Template
    "Template",
    "load_template",
    "parse_template",
    "resolve_properties",
    # Configuration
    "DeployConfig",
    "ForecastSettings",
    "load_deploy_config",
    # Checks
    "CheckerRegistry",
    "default_registry",
    "predictor",
    # Estimates
    "estimate",
    "total_estimate",
    "format_estimate",
    # Runner
    "ForecastRunner",
    "run_forecast",
    # Report
    "ForecastReport",
    "ReportGenerator",
    "generate_report",
    # Errors
    "ForecastError",
    "StructuralTemplateError",
    "IdentityResolutionError",
    "CheckExecutionError",
    "ConfigurationError",
]
