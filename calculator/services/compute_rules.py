"""Compute rule evaluation.

Every job type carries one rule from a closed set (see ``models.schema``).
``evaluate_rule`` dispatches on the rule kind and returns the rounded item
total. Inferred rules never raise: missing or non-numeric values read as 0.
Formula rules raise ``ValueError`` on malformed expressions or division by
zero; callers that must not fail (item totals) catch it.

Formula language:
    <number>      → decimal literal (``12``, ``0.5``, ``.25``)
    <field key>   → the item's value for that key, coerced with ``num``
    Operators: +, -, *, /  and unary minus
    Parentheses: ( ... )
"""

from typing import Any, List, Mapping, Optional

from models.schema import ComputeKind, FormulaRule, NumericSumRule, UnitsCostSumRule
from utils.numeric import num, round2


# =============================================================================
# FORMULA TOKENIZER
# =============================================================================


def tokenize(expression: str) -> List[str]:
    """Split a formula expression into tokens."""
    tokens = []
    i = 0
    s = expression.strip()
    while i < len(s):
        c = s[i]
        if c.isspace():
            i += 1
        elif c.isdigit() or c == '.':
            j = i
            seen_dot = False
            while j < len(s) and (s[j].isdigit() or (s[j] == '.' and not seen_dot)):
                if s[j] == '.':
                    seen_dot = True
                j += 1
            token = s[i:j]
            if token == '.':
                raise ValueError(f"Malformed number in formula: '{expression}'")
            tokens.append(token)
            i = j
        elif c.isalpha() or c == '_':
            j = i
            while j < len(s) and (s[j].isalnum() or s[j] == '_'):
                j += 1
            tokens.append(s[i:j])
            i = j
        elif c in '()+-*/':
            tokens.append(c)
            i += 1
        else:
            raise ValueError(f"Unexpected character in formula: '{c}' in '{expression}'")
    if not tokens:
        raise ValueError("Empty formula.")
    return tokens


def _is_number(token: str) -> bool:
    return token[0].isdigit() or token[0] == '.'


# =============================================================================
# FORMULA EVALUATOR (Recursive Descent Parser)
# =============================================================================


class _FormulaParser:
    """Recursive descent evaluator over field values. No eval()."""

    def __init__(self, tokens: List[str], values: Optional[Mapping[str, Any]]):
        self._tokens = tokens
        self._pos = 0
        # None means "syntax check only": references read as 1
        self._values = values

    def _peek(self) -> Optional[str]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _consume(self) -> str:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def parse(self) -> float:
        try:
            result = self._parse_expr()
        except RecursionError:
            raise ValueError("Formula is nested too deeply.")
        if self._peek() is not None:
            raise ValueError(f"Unexpected token: {self._peek()}")
        return result

    def _parse_expr(self) -> float:
        """Expression: term ((+|-) term)*"""
        left = self._parse_term()
        while self._peek() in ('+', '-'):
            op = self._consume()
            right = self._parse_term()
            left = left + right if op == '+' else left - right
        return left

    def _parse_term(self) -> float:
        """Term: factor ((*|/) factor)*"""
        left = self._parse_factor()
        while self._peek() in ('*', '/'):
            op = self._consume()
            right = self._parse_factor()
            if op == '*':
                left = left * right
            elif self._values is None:
                left = left / right if right else left
            else:
                if right == 0:
                    raise ValueError("Division by zero in formula.")
                left = left / right
        return left

    def _parse_factor(self) -> float:
        """Factor: number | field key | (expr) | -factor"""
        tok = self._peek()
        if tok is None:
            raise ValueError("Unexpected end of formula.")

        if tok == '(':
            self._consume()
            val = self._parse_expr()
            if self._peek() != ')':
                raise ValueError("Expected ')' in formula.")
            self._consume()
            return val

        if tok == '-':
            self._consume()
            return -self._parse_factor()

        if tok in ('+', '*', '/', ')'):
            raise ValueError(f"Unexpected token: {tok}")

        self._consume()
        if _is_number(tok):
            return float(tok)
        if self._values is None:
            return 1.0
        return num(self._values.get(tok), 0)


def evaluate_formula(expression: str, values: Mapping[str, Any]) -> float:
    """Evaluate a formula against an item's values (unrounded)."""
    return _FormulaParser(tokenize(expression), values).parse()


def check_formula(expression: str, field_keys: List[str]) -> List[str]:
    """Validate a formula without evaluating it against real values.

    Args:
        expression: Formula text
        field_keys: Keys of the job type the formula belongs to

    Returns:
        List of problems; empty when the formula is well formed.
    """
    try:
        tokens = tokenize(expression)
        _FormulaParser(tokens, None).parse()
    except ValueError as e:
        return [str(e)]
    known = set(field_keys)
    return [
        f"Unknown field reference: '{tok}'"
        for tok in tokens
        if (tok[0].isalpha() or tok[0] == '_') and tok not in known
    ]


# =============================================================================
# DISPATCH
# =============================================================================


def evaluate_rule(rule, values: Mapping[str, Any]) -> float:
    """Evaluate a compute rule against an item's values.

    Args:
        rule: One of UnitsCostSumRule, NumericSumRule, FormulaRule
        values: The item's raw values keyed by field key

    Returns:
        Item total rounded to 2 decimals.

    Raises:
        ValueError: If a formula rule is malformed or divides by zero,
            or the rule kind is unknown.
    """
    kind = rule.kind
    if kind == ComputeKind.UNITS_COST_SUM:
        units = num(values.get(rule.units_key), 0)
        per_unit = sum(num(values.get(k), 0) for k in rule.cost_keys)
        return round2(units * per_unit)
    if kind == ComputeKind.NUMERIC_SUM:
        return round2(sum(num(values.get(k), 0) for k in rule.numeric_keys))
    if kind == ComputeKind.FORMULA:
        return round2(evaluate_formula(rule.expression, values))
    raise ValueError(f"Unknown compute rule kind: {kind!r}")


def describe_rule(rule) -> str:
    """Short human-readable form of a rule, for schema views."""
    if isinstance(rule, UnitsCostSumRule):
        return f"{rule.units_key} × ({' + '.join(rule.cost_keys)})"
    if isinstance(rule, NumericSumRule):
        return " + ".join(rule.numeric_keys) if rule.numeric_keys else "0"
    if isinstance(rule, FormulaRule):
        return rule.expression
    return str(rule)
