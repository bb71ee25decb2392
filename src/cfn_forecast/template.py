"""
Line-annotated CloudFormation template model.

Templates are composed (not constructed) with PyYAML, so every node keeps its
source mark. Short-form intrinsics such as ``!Ref`` survive as tagged nodes.
JSON templates are read by the same composer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from .errors import StructuralTemplateError, make_structural_error

logger = logging.getLogger(__name__)

# Short-form tags that do not take the "Fn::" prefix
_BARE_INTRINSICS = {"Ref", "Condition"}


def line_of(node: Node) -> int:
    """Return the 1-indexed source line of a node."""
    return node.start_mark.line + 1


def get_map_value(node: Node | None, key: str) -> tuple[ScalarNode | None, Node | None]:
    """
    Look up a key in a mapping node.

    Returns:
        Tuple of (key node, value node), both None if absent or not a mapping
    """
    if not isinstance(node, MappingNode):
        return None, None
    for key_node, value_node in node.value:
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return key_node, value_node
    return None, None


class _IntrinsicConstructor(yaml.constructor.SafeConstructor):
    """Safe constructor that turns short-form intrinsics into long-form dicts."""


def _construct_intrinsic(constructor: _IntrinsicConstructor, tag_suffix: str, node: Node) -> Any:
    name = tag_suffix if tag_suffix in _BARE_INTRINSICS else f"Fn::{tag_suffix}"
    value: Any
    if isinstance(node, ScalarNode):
        value = constructor.construct_scalar(node)
        if tag_suffix == "GetAtt":
            value = value.split(".", 1)
    elif isinstance(node, SequenceNode):
        value = constructor.construct_sequence(node, deep=True)
    else:
        value = constructor.construct_mapping(node, deep=True)
    return {name: value}


_IntrinsicConstructor.add_multi_constructor("!", _construct_intrinsic)


def to_python(node: Node | None) -> Any:
    """Convert a node subtree into plain Python values."""
    if node is None:
        return None
    return _IntrinsicConstructor().construct_document(node)


@dataclass
class TemplateResource:
    """A single entry of the Resources section."""

    logical_id: str
    line: int
    type_name: str
    node: MappingNode


class Template:
    """
    A parsed template.

    The composed node tree is treated as read-only by the engine; per-resource
    views are copied before they are modified.
    """

    def __init__(self, root: MappingNode, path: Path | None = None):
        self.root = root
        self.path = path

    def section(self, name: str) -> Node | None:
        """Get a top-level section node (Resources, Parameters, ...)."""
        _, value = get_map_value(self.root, name)
        return value

    def resources(self) -> list[TemplateResource]:
        """
        Get every resource in document order.

        Raises:
            StructuralTemplateError: Resources is missing or empty, or a
                resource has no Type
        """
        section = self.section("Resources")
        if not isinstance(section, MappingNode) or not section.value:
            raise make_structural_error(
                "Expected to find a Resources section in the template", file=self.path
            )

        resources = []
        for key_node, resource_node in section.value:
            logical_id = key_node.value
            _, type_node = get_map_value(resource_node, "Type")
            if not isinstance(type_node, ScalarNode) or not type_node.value:
                raise make_structural_error(
                    f"Expected {logical_id} to have a Type",
                    line=line_of(key_node),
                    file=self.path,
                    logical_id=logical_id,
                )
            resources.append(
                TemplateResource(
                    logical_id=logical_id,
                    line=line_of(key_node),
                    type_name=type_node.value,
                    node=resource_node,
                )
            )
        return resources

    def iter_parameters(self) -> Iterator[tuple[str, Node]]:
        """Iterate over (name, node) pairs of the Parameters section."""
        section = self.section("Parameters")
        if not isinstance(section, MappingNode):
            return
        for key_node, value_node in section.value:
            yield key_node.value, value_node

    def parameter_defaults(self) -> dict[str, str]:
        """Get the Default value of every declared parameter that has one."""
        defaults: dict[str, str] = {}
        for name, node in self.iter_parameters():
            _, default = get_map_value(node, "Default")
            if default is None:
                continue
            value = to_python(default)
            if isinstance(value, list):
                value = ",".join(str(v) for v in value)
            defaults[name] = str(value)
        return defaults


def parse_template(content: str, path: Path | None = None) -> Template:
    """
    Parse template source text.

    Raises:
        StructuralTemplateError: The text is not a YAML/JSON mapping
    """
    try:
        root = yaml.compose(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError as e:
        raise StructuralTemplateError(f"Unable to parse template: {e}") from e

    if not isinstance(root, MappingNode):
        raise make_structural_error("Template is not a mapping", file=path)

    return Template(root, path)


def load_template(path: Path) -> Template:
    """
    Read and parse a template file.

    Raises:
        StructuralTemplateError: The file cannot be read or parsed
    """
    try:
        content = path.read_text()
    except OSError as e:
        raise StructuralTemplateError(f"Unable to read '{path}': {e}") from e

    logger.debug("Loaded template %s (%d bytes)", path, len(content))
    return parse_template(content, path)
