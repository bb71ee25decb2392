"""
Data models for the forecast engine.

These models define the per-resource working set handed to checks, the
messages checks produce, and the forecasts that accumulate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from yaml.nodes import MappingNode, Node

    from .account import AccountClient
    from .config import DeployConfig


class Action(StrEnum):
    """Stack operation being forecast."""

    CREATE = "create"
    UPDATE = "update"

    @classmethod
    def for_stack(cls, stack_exists: bool) -> Action:
        """Infer the action from whether the target stack exists."""
        return cls.UPDATE if stack_exists else cls.CREATE


@dataclass(frozen=True)
class Environment:
    """Caller environment derived from the caller identity."""

    partition: str
    region: str
    account: str


@dataclass
class ForecastMessage:
    """A single pass or fail entry produced by a check."""

    line: int
    type_name: str
    logical_id: str
    condition: str
    passed: bool
    unknown: bool = False  # The check could not be evaluated

    def __str__(self) -> str:
        return f"{self.line}: {self.type_name} {self.logical_id} - {self.condition}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "line": self.line,
            "type": self.type_name,
            "logical_id": self.logical_id,
            "condition": self.condition,
            "passed": self.passed,
            "unknown": self.unknown,
        }


@dataclass
class Forecast:
    """
    Predictions for a single resource, or for a whole template.

    Messages are kept in the order they were added; appending another
    forecast concatenates its messages after these.
    """

    type_name: str = ""
    logical_id: str = ""
    line: int = 0
    passed: list[ForecastMessage] = field(default_factory=list)
    failed: list[ForecastMessage] = field(default_factory=list)

    @property
    def num_checked(self) -> int:
        return len(self.passed) + len(self.failed)

    @property
    def num_passed(self) -> int:
        return len(self.passed)

    @property
    def num_failed(self) -> int:
        return len(self.failed)

    def add(self, passed: bool, condition: str, line: int | None = None) -> ForecastMessage:
        """
        Add a pass or fail message.

        Args:
            passed: Whether the check passed
            condition: Human-readable condition
            line: Source line to attribute (defaults to the resource's line)
        """
        message = ForecastMessage(
            line=self.line if line is None else line,
            type_name=self.type_name,
            logical_id=self.logical_id,
            condition=condition,
            passed=passed,
        )
        if passed:
            self.passed.append(message)
        else:
            self.failed.append(message)
        return message

    def add_unknown(self, condition: str, line: int | None = None) -> ForecastMessage:
        """Record a check that could not be evaluated. Counted as a failure."""
        message = self.add(False, condition, line)
        message.unknown = True
        return message

    def append(self, other: Forecast) -> None:
        """Append another forecast's messages to this one."""
        self.passed.extend(other.passed)
        self.failed.extend(other.failed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "checked": self.num_checked,
            "passed": [m.to_dict() for m in self.passed],
            "failed": [m.to_dict() for m in self.failed],
        }


@dataclass
class ResourceContext:
    """Everything a check needs to know about one resource in one run."""

    logical_id: str
    type_name: str
    line: int
    node: MappingNode
    properties_node: Node | None
    properties: dict[str, Any]
    stack_name: str
    stack_exists: bool
    stack: dict[str, Any] | None
    deploy_config: DeployConfig
    env: Environment
    role_arn: str
    account: AccountClient

    @property
    def action(self) -> Action:
        return Action.for_stack(self.stack_exists)

    def make_forecast(self) -> Forecast:
        """Create an empty forecast attributed to this resource."""
        return Forecast(type_name=self.type_name, logical_id=self.logical_id, line=self.line)
