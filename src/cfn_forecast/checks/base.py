"""
Predictor registry and helpers shared by checks.

A predictor is a function that takes a fully resolved ResourceContext and
returns an isolated Forecast for that resource. At most one predictor is
registered per resource type; types without one only get the generic checks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from yaml.nodes import MappingNode, Node, SequenceNode

from ..models import Forecast, ResourceContext
from ..template import get_map_value, line_of

logger = logging.getLogger(__name__)

Predictor = Callable[[ResourceContext], Forecast]


class CheckerRegistry:
    """Maps resource type names to predictors."""

    def __init__(self) -> None:
        self._predictors: dict[str, Predictor] = {}

    def register(self, type_name: str, predictor: Predictor) -> None:
        """Register a predictor for a type. A later registration replaces an earlier one."""
        if type_name in self._predictors:
            logger.debug("Replacing predictor for %s", type_name)
        self._predictors[type_name] = predictor

    def get(self, type_name: str) -> Predictor | None:
        """Get the predictor for a type, or None if only generic checks apply."""
        return self._predictors.get(type_name)

    def predictor(self, type_name: str) -> Callable[[Predictor], Predictor]:
        """Decorator form of register()."""

        def decorator(fn: Predictor) -> Predictor:
            self.register(type_name, fn)
            return fn

        return decorator

    def types(self) -> list[str]:
        return sorted(self._predictors)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._predictors

    def __len__(self) -> int:
        return len(self._predictors)


# Built-in predictors register themselves here on import
default_registry = CheckerRegistry()


def predictor(type_name: str) -> Callable[[Predictor], Predictor]:
    """Register a predictor with the default registry."""
    return default_registry.predictor(type_name)


def property_node(context: ResourceContext, *path: str | int) -> Node | None:
    """
    Find a node in the resolved properties by key/index path.

    Returns:
        The node, or None if any step is missing
    """
    node = context.properties_node
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, SequenceNode) or step >= len(node.value):
                return None
            node = node.value[step]
        else:
            if not isinstance(node, MappingNode):
                return None
            _, node = get_map_value(node, step)
        if node is None:
            return None
    return node


def property_line(context: ResourceContext, *path: str | int) -> int:
    """Get the source line of a property, falling back to the resource's line."""
    node = property_node(context, *path)
    return line_of(node) if node is not None else context.line


def string_property(context: ResourceContext, name: str) -> str | None:
    """
    Get a top-level property if it resolved to a literal.

    Unresolved intrinsics (dicts) and missing properties give None.
    """
    value: Any = context.properties.get(name)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return None
