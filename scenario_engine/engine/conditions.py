# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Safe Condition Evaluator

AST-based evaluation of boolean conditions used by condition nodes and the
data-transform tool. Prevents arbitrary code execution while allowing
logical expressions.

Expressions may reference the run scope with {{path}} (e.g.
"{{fetch.status}} == 200 and len({{input.items}}) > 0"). The run input is
also available by name as `input`.
"""

import ast
import operator
from typing import Any, Dict

from .templates import TEMPLATE_PATTERN, get_nested_value


# Allowed operators for safe evaluation
SAFE_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.And: operator.and_,
    ast.Or: operator.or_,
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


# Allowed functions for safe evaluation
SAFE_FUNCTIONS = {
    'len': len,
    'str': str,
    'int': int,
    'float': float,
    'bool': bool,
    'abs': abs,
    'min': min,
    'max': max,
}


class SafeEvaluator(ast.NodeVisitor):
    """
    AST-based safe evaluator for boolean expressions.

    Restricts evaluation to:
    - Basic arithmetic and comparison operators
    - Logical operators (and, or, not)
    - Safe built-in functions (len, str, int, etc.)
    - Literal lists/tuples and subscripts (for `in` checks and lookups)
    - Variable references from provided context
    """

    def __init__(self, variables: Dict[str, Any]):
        self.variables = variables

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_Constant(self, node):
        return node.value

    def visit_Name(self, node):
        if node.id in self.variables:
            return self.variables[node.id]
        elif node.id in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[node.id]
        else:
            raise ValueError(f"Undefined variable: {node.id}")

    def visit_List(self, node):
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node):
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Subscript(self, node):
        container = self.visit(node.value)
        key = self.visit(node.slice)
        try:
            return container[key]
        except (KeyError, IndexError, TypeError):
            return None

    def visit_BinOp(self, node):
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](left, right)

    def visit_UnaryOp(self, node):
        operand = self.visit(node.operand)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](operand)

    def visit_Compare(self, node):
        left = self.visit(node.left)

        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            op_type = type(op)

            if op_type not in SAFE_OPERATORS:
                raise ValueError(f"Operator not allowed: {op_type.__name__}")

            if not SAFE_OPERATORS[op_type](left, right):
                return False

            left = right

        return True

    def visit_BoolOp(self, node):
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        # Short-circuit like Python does
        if isinstance(node.op, ast.And):
            for value in node.values:
                if not self.visit(value):
                    return False
            return True
        elif isinstance(node.op, ast.Or):
            for value in node.values:
                if self.visit(value):
                    return True
            return False
        else:
            raise ValueError(f"Boolean operator not allowed: {op_type.__name__}")

    def visit_Call(self, node):
        func = self.visit(node.func)

        if func not in SAFE_FUNCTIONS.values():
            raise ValueError(f"Function not allowed: {getattr(node.func, 'id', 'unknown')}")

        args = [self.visit(arg) for arg in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}

        return func(*args, **kwargs)

    def generic_visit(self, node):
        raise ValueError(f"AST node type not allowed: {type(node).__name__}")


def evaluate_condition(condition: str, variables: Dict[str, Any]) -> bool:
    """
    Safely evaluate a boolean condition string.

    Args:
        condition: Python expression string (e.g., "var_0 > 5 and var_1")
        variables: Variable context mapping names to values

    Returns:
        Boolean result of evaluation

    Raises:
        ValueError: If condition is invalid or uses unsafe operations
        SyntaxError: If condition has syntax errors

    Examples:
        >>> evaluate_condition("var_0 > 5", {"var_0": 10})
        True
        >>> evaluate_condition("var_0 and len(var_1) > 0", {"var_0": True, "var_1": [1,2,3]})
        True
    """
    try:
        tree = ast.parse(condition, mode='eval')
    except SyntaxError as e:
        raise SyntaxError(f"Invalid condition syntax: {e}")

    try:
        return bool(SafeEvaluator(variables).visit(tree))
    except Exception as e:
        raise ValueError(f"Condition evaluation failed: {e}")


def evaluate_expression(expression: str, scope: Dict[str, Any]) -> bool:
    """
    Evaluate an expression that references the run scope.

    Each {{path}} is replaced with a safe variable name bound to the value at
    that path (None when missing), then the result is handed to
    evaluate_condition().
    """
    refs = [m.group(1).strip() for m in TEMPLATE_PATTERN.finditer(expression)]

    safe_expression = expression
    variables: Dict[str, Any] = {"input": scope.get("input", {})}
    for i, ref in enumerate(dict.fromkeys(refs)):
        var_name = f"var_{i}"
        safe_expression = TEMPLATE_PATTERN.sub(
            lambda m, ref=ref, var_name=var_name: var_name if m.group(1).strip() == ref else m.group(0),
            safe_expression,
        )
        variables[var_name] = get_nested_value(scope, ref)

    return evaluate_condition(safe_expression, variables)
