# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template resolution for node config.

{{input.name}} reads the run input, {{node_id.path}} reads an upstream output.
A string that is exactly one reference resolves to the referenced value
itself (dicts and numbers keep their type); embedded references are rendered
as text. Unknown references are left untouched.
"""

import json
import re
from typing import Any, Dict

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
_MISSING = object()


def render_template(value: Any, scope: Dict[str, Any]) -> Any:
    """Resolve references in strings, lists and dicts recursively"""
    if isinstance(value, str):
        return _render_string(value, scope)

    if isinstance(value, list):
        return [render_template(item, scope) for item in value]

    if isinstance(value, dict):
        return {key: render_template(item, scope) for key, item in value.items()}

    return value


def _render_string(template: str, scope: Dict[str, Any]) -> Any:
    # Single reference: keep the value's type
    match = TEMPLATE_PATTERN.fullmatch(template.strip())
    if match:
        value = lookup(scope, match.group(1).strip())
        return template if value is _MISSING else value

    if "{{" not in template:
        return template

    def replace_ref(m):
        value = lookup(scope, m.group(1).strip())
        if value is _MISSING:
            return m.group(0)
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return str(value)

    return TEMPLATE_PATTERN.sub(replace_ref, template)


def lookup(scope: Any, path: str, default: Any = _MISSING) -> Any:
    """Get nested value using dot notation; list items by index"""
    current = scope
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return default
    return current


def get_nested_value(obj: Any, path: str) -> Any:
    """lookup() that returns None for missing paths"""
    return lookup(obj, path, default=None)
