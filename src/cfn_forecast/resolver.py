"""
Parameter reference resolution.

Builds a resolved copy of a resource's Properties subtree in which every
``Ref`` to a known parameter is replaced by the parameter's value. The
template's own node tree is never modified.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping

from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

STR_TAG = "tag:yaml.org,2002:str"


def parameter_ref(node: Node) -> str | None:
    """
    Return the referenced name if the node is a Ref intrinsic.

    Recognises both ``{"Ref": "Name"}`` and ``!Ref Name``.
    """
    if isinstance(node, ScalarNode) and node.tag == "!Ref":
        return node.value
    if isinstance(node, MappingNode) and len(node.value) == 1:
        key, value = node.value[0]
        if isinstance(key, ScalarNode) and key.value == "Ref" and isinstance(value, ScalarNode):
            return value.value
    return None


def resolve_properties(properties: Node | None, parameters: Mapping[str, str]) -> Node | None:
    """
    Resolve parameter references in a Properties subtree.

    Args:
        properties: The canonical Properties node (left untouched)
        parameters: Resolved parameter values by name

    Returns:
        A resolved copy, or None if there are no properties
    """
    if properties is None:
        return None
    return _resolve(copy.deepcopy(properties), parameters)


def _resolve(node: Node, parameters: Mapping[str, str]) -> Node:
    name = parameter_ref(node)
    if name is not None:
        if name in parameters:
            # Keep the mark of the Ref so messages still point at it
            return ScalarNode(
                tag=STR_TAG,
                value=parameters[name],
                start_mark=node.start_mark,
                end_mark=node.end_mark,
            )
        return node

    if isinstance(node, MappingNode):
        node.value = [(key, _resolve(value, parameters)) for key, value in node.value]
    elif isinstance(node, SequenceNode):
        node.value = [_resolve(item, parameters) for item in node.value]
    return node
