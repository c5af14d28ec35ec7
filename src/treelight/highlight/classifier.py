"""Capture name classification.

A capture name such as ``string.escape`` is split into a base type
(``string``) and modifiers (``escape``). A language's mapping table may
rewrite either the full name or just the base type; the result is then
filtered against the legend so only renderable tokens survive.
"""

import logging
from typing import List, Mapping, Optional, Tuple

import attrs

from treelight.config.types import TokenTypeMappingModel
from treelight.errors import InvalidCaptureError

from .legend import TokenLegend

logger = logging.getLogger(__name__)

TypeMapping = Mapping[str, TokenTypeMappingModel]


@attrs.frozen
class TokenCandidate:
    """Type and modifiers a capture classifies to, before it gets a range."""

    type: str
    modifiers: Tuple[str, ...] = ()


def parse_capture_name(name: str) -> Tuple[str, List[str]]:
    """
    Split a dotted capture name into its base type and modifiers.

    Args:
        name: Capture name without the leading ``@``

    Returns:
        Tuple of base type and modifiers in their original order

    Raises:
        InvalidCaptureError: If the name has no base type
    """
    parts = name.split(".")
    if not parts or not parts[0]:
        raise InvalidCaptureError(name)
    return parts[0], parts[1:]


def apply_type_mapping(
    name: str, mappings: Optional[TypeMapping]
) -> Tuple[str, List[str]]:
    """
    Derive type and modifiers for a capture, honouring the mapping table.

    An entry for the full capture name wins over an entry for the base type.
    A matching entry replaces type and modifiers wholesale.
    """
    token_type, modifiers = parse_capture_name(name)
    if not mappings:
        return token_type, modifiers

    mapping = mappings.get(name)
    if mapping is not None:
        logger.debug(
            f"Applied type mapping for original name: {name} -> {mapping.target_token_type}"
            + _describe_modifiers(mapping)
        )
        return mapping.target_token_type, list(mapping.target_token_modifiers)

    mapping = mappings.get(token_type)
    if mapping is not None:
        logger.debug(
            f"Applied type mapping for base type: {token_type} -> {mapping.target_token_type}"
            + _describe_modifiers(mapping)
        )
        return mapping.target_token_type, list(mapping.target_token_modifiers)

    return token_type, modifiers


def _describe_modifiers(mapping: TokenTypeMappingModel) -> str:
    if not mapping.target_token_modifiers:
        return ""
    return f" with modifiers: {', '.join(mapping.target_token_modifiers)}"


def classify_capture(
    name: str, mappings: Optional[TypeMapping], legend: TokenLegend
) -> Optional[TokenCandidate]:
    """
    Classify a capture name into a token candidate.

    Args:
        name: The capture name
        mappings: Type mapping table of the language the capture came from
        legend: Vocabulary the result must fit into

    Returns:
        The candidate, or None if its type is not part of the legend (such
        captures, e.g. ``injection.content``, are not meant for highlighting)

    Raises:
        InvalidCaptureError: If the capture name is malformed
    """
    token_type, modifiers = apply_type_mapping(name, mappings)
    if not legend.has_type(token_type):
        return None
    return TokenCandidate(
        type=token_type,
        modifiers=tuple(m for m in modifiers if legend.has_modifier(m)),
    )
