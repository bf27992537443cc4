"""``{{VAR}}`` placeholder substitution for parsed descriptor trees."""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([A-Z_][A-Z0-9_]*)\}\}")


def replace_placeholders(text: str, variables: Optional[Mapping[str, str]] = None) -> str:
    """Substitute known placeholders; unknown ones stay verbatim and are logged."""
    source = os.environ if variables is None else variables

    def _lookup(match: re.Match) -> str:
        name = match.group(1)
        value = source.get(name)
        if value is None:
            logger.warning("Environment variable %s is not defined", name)
            return match.group(0)
        return value

    return PLACEHOLDER.sub(_lookup, text)


def render_tree(tree: Any, variables: Optional[Mapping[str, str]] = None) -> Any:
    """Apply placeholder substitution to every string value of a parsed tree.

    Mapping keys are left untouched.
    """
    if isinstance(tree, str):
        return replace_placeholders(tree, variables)
    if isinstance(tree, list):
        return [render_tree(item, variables) for item in tree]
    if isinstance(tree, dict):
        return {key: render_tree(value, variables) for key, value in tree.items()}
    return tree
