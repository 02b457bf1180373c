"""Decoder for script-call shaped (JSONP) responses.

The remote endpoint answers with a script expression meant for a page-embedded
callback, e.g.::

    window.google.annotations2.component.load({"0": {"results": {...}}});

The payload comes from an untrusted peer, so it is never executed. It is parsed
into a syntax tree and reduced by a tiny evaluator that understands only inert
data forms: object and array literals, strings, numbers, booleans, null, a few
read-only constants and unary operators on them. The only callable known to the
evaluator is the capture hook bound under the expected callback name, and all it
does is hand back its arguments. Every other construct is rejected.
"""

import math
from fnmatch import fnmatchcase
from typing import Any

import esprima
from esprima.error_handler import Error as EsprimaError

from review_monitor.core.errors import DecodeError

DEFAULT_CALLBACK = "google.annotations2.component.load"

_CONSTANTS: dict[str, Any] = {
    "undefined": None,
    "NaN": math.nan,
    "Infinity": math.inf,
}

_GLOBAL_PREFIX = "window."


def _strip_global(name: str) -> str:
    if name.startswith(_GLOBAL_PREFIX):
        return name[len(_GLOBAL_PREFIX):]
    return name


class ScriptResultDecoder:
    """Extract the argument list of a single callback call."""

    def __init__(self, callback: str = DEFAULT_CALLBACK) -> None:
        """Initialize decoder.

        Args:
            callback: Expected callback name. Glob wildcards are allowed and a
                leading ``window.`` is ignored on both sides.
        """
        self.callback = _strip_global(callback)

    def decode(self, text: str) -> list[Any]:
        """Decode payload into inert Python values.

        Raises:
            DecodeError: If the payload is not a single call of the expected
                callback with data-only arguments.
        """
        try:
            program = esprima.parseScript(text)
        except EsprimaError as e:
            raise DecodeError(f"Payload is not a valid script expression: {e}") from e
        except RecursionError as e:
            raise DecodeError("Payload is nested too deeply") from e

        statements = [node for node in program.body if node.type != "EmptyStatement"]
        if len(statements) != 1 or statements[0].type != "ExpressionStatement":
            raise DecodeError("Payload must consist of exactly one callback call")

        call = statements[0].expression
        if call.type != "CallExpression":
            raise DecodeError(f"Expected a callback call, got {call.type}")

        name = self._callee_name(call.callee)
        if not fnmatchcase(_strip_global(name), self.callback):
            raise DecodeError(f"Unexpected callback '{name}', expected '{self.callback}'")

        try:
            return [self._value(argument) for argument in call.arguments]
        except RecursionError as e:
            raise DecodeError("Payload is nested too deeply") from e

    def locate_slot(self, arguments: list[Any], slot_id: str) -> list[dict]:
        """Return annotations stored under a response slot.

        The first callback argument maps slot identifiers to thread results.
        """
        if not arguments:
            raise DecodeError("Callback was invoked without arguments")

        container = arguments[0]
        try:
            if isinstance(container, list):
                slot = container[int(slot_id)]
            elif isinstance(container, dict):
                slot = container[slot_id]
            else:
                raise DecodeError(f"Unexpected response container {type(container).__name__}")
        except (KeyError, IndexError, ValueError) as e:
            raise DecodeError(f"Response has no slot '{slot_id}'") from e

        try:
            annotations = slot["results"]["annotations"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Slot '{slot_id}' has no results.annotations") from e

        if not isinstance(annotations, list):
            raise DecodeError(f"Slot '{slot_id}' annotations is not a list")

        return annotations

    def _callee_name(self, node: Any) -> str:
        parts: list[str] = []
        while node.type == "MemberExpression" and not node.computed:
            parts.append(node.property.name)
            node = node.object
        if node.type != "Identifier":
            raise DecodeError(f"Unsupported callback expression {node.type}")
        parts.append(node.name)
        return ".".join(reversed(parts))

    def _value(self, node: Any) -> Any:
        kind = node.type

        if kind == "Literal":
            if getattr(node, "regex", None):
                raise DecodeError("Regular expressions are not allowed")
            return _number(node.value)

        if kind == "ObjectExpression":
            result: dict[str, Any] = {}
            for prop in node.properties:
                if prop.type != "Property" or prop.kind != "init" or prop.method:
                    raise DecodeError("Only plain object properties are allowed")
                if prop.computed or prop.shorthand:
                    raise DecodeError("Computed or shorthand properties are not allowed")
                result[self._key(prop.key)] = self._value(prop.value)
            return result

        if kind == "ArrayExpression":
            return [None if element is None else self._value(element) for element in node.elements]

        if kind == "Identifier":
            if node.name in _CONSTANTS:
                return _CONSTANTS[node.name]
            raise DecodeError(f"Reference to '{node.name}' is not allowed")

        if kind == "UnaryExpression":
            return self._unary(node.operator, self._value(node.argument))

        raise DecodeError(f"Expression {kind} is not allowed")

    def _key(self, node: Any) -> str:
        if node.type == "Identifier":
            return node.name
        if node.type == "Literal" and not getattr(node, "regex", None):
            return _key_string(_number(node.value))
        raise DecodeError(f"Unsupported property key {node.type}")

    def _unary(self, operator: str, operand: Any) -> Any:
        if operator == "void":
            return None
        if operator == "!":
            if isinstance(operand, (dict, list)):
                return False
            if isinstance(operand, float) and math.isnan(operand):
                return True
            return not operand
        if isinstance(operand, bool) or not isinstance(operand, (int, float)):
            raise DecodeError(f"Operator '{operator}' only applies to numbers")
        if operator == "-":
            return -operand
        if operator == "+":
            return operand
        raise DecodeError(f"Operator '{operator}' is not allowed")


def _number(value: Any) -> Any:
    """Represent integral numbers as int."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _key_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
