"""Tree-walking evaluator with lexical scoping and closures."""

from __future__ import annotations

import operator
import sys
from dataclasses import dataclass
from typing import TextIO

from noteg.ast import (
    Array,
    BinaryExpr,
    Block,
    Call,
    For,
    Function,
    Identifier,
    If,
    Let,
    Literal,
    Node,
    Object,
    Program,
    Return,
    Template,
    UnaryExpr,
    While,
)
from noteg.builtins import BUILTINS
from noteg.errors import EvalError
from noteg.values import (
    Builtin,
    Environment,
    FunctionValue,
    Value,
    is_number,
    is_truthy,
    to_display,
    type_name,
    values_equal,
)


@dataclass(frozen=True, slots=True)
class Completed:
    """Statement finished normally with a value."""

    value: Value


@dataclass(frozen=True, slots=True)
class Returning:
    """A `return` is unwinding towards the nearest call boundary."""

    value: Value


Outcome = Completed | Returning


def _remainder(left: int | float, right: int | float) -> int | float:
    # Result takes the sign of the dividend
    rem = abs(left) % abs(right)
    return rem if left >= 0 else -rem


_ARITHMETIC = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": _remainder,
}

_ORDERING = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


class Interpreter:
    """Evaluate Program nodes against a global scope seeded with builtins."""

    def __init__(
        self,
        output: TextIO | None = None,
        env: dict[str, Value] | None = None,
        max_call_depth: int = 64,
    ) -> None:
        self._output = output
        self.max_call_depth = max_call_depth
        self._call_depth = 0
        self.globals = Environment()
        for name, builtin in BUILTINS.items():
            self.globals.define(name, builtin)
        if env:
            for name, value in env.items():
                self.globals.define(name, value)

    @property
    def output(self) -> TextIO:
        return self._output if self._output is not None else sys.stdout

    def interpret(self, program: Program) -> Value:
        """Run top-level statements in order; return the last one's value."""
        result: Value = None
        for stmt in program.body:
            try:
                outcome = self._execute(stmt, self.globals)
            except RecursionError:
                raise EvalError("Nesting too deep to evaluate", getattr(stmt, "line", 0)) from None
            if isinstance(outcome, Returning):
                # Top-level return ends the program
                return outcome.value
            result = outcome.value
        return result

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _execute(self, node: Node, env: Environment) -> Outcome:
        if isinstance(node, Let):
            value = self._evaluate(node.value, env)
            env.define(node.name, value)
            return Completed(value)

        if isinstance(node, Function):
            fn = FunctionValue(node.name, node.params, node.body, env)
            env.define(node.name, fn)
            return Completed(fn)

        if isinstance(node, If):
            if is_truthy(self._evaluate(node.condition, env)):
                return self._execute(node.then_branch, env)
            if node.else_branch is not None:
                return self._execute(node.else_branch, env)
            return Completed(None)

        if isinstance(node, For):
            return self._execute_for(node, env)

        if isinstance(node, While):
            result: Value = None
            while is_truthy(self._evaluate(node.condition, env)):
                outcome = self._execute(node.body, env)
                if isinstance(outcome, Returning):
                    return outcome
                result = outcome.value
            return Completed(result)

        if isinstance(node, Return):
            value = self._evaluate(node.value, env) if node.value is not None else None
            return Returning(value)

        if isinstance(node, Block):
            return self._execute_block(node, Environment(env))

        return Completed(self._evaluate(node, env))

    def _execute_block(self, block: Block, env: Environment) -> Outcome:
        """Run block statements directly in env (the caller owns the scope)."""
        result: Value = None
        for stmt in block.statements:
            outcome = self._execute(stmt, env)
            if isinstance(outcome, Returning):
                return outcome
            result = outcome.value
        return Completed(result)

    def _execute_for(self, node: For, env: Environment) -> Outcome:
        iterable = self._evaluate(node.iterable, env)
        if not isinstance(iterable, list):
            raise EvalError(
                f"For loop requires an array, got {type_name(iterable)}", node.line
            )

        result: Value = None
        for item in list(iterable):
            loop_env = Environment(env)
            loop_env.define(node.variable, item)
            outcome = self._execute(node.body, loop_env)
            if isinstance(outcome, Returning):
                return outcome
            result = outcome.value
        return Completed(result)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _evaluate(self, node: Node, env: Environment) -> Value:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Identifier):
            return env.lookup(node.name, node.line)
        if isinstance(node, Template):
            return env.lookup(node.variable, node.line)
        if isinstance(node, BinaryExpr):
            return self._binary(node, env)
        if isinstance(node, UnaryExpr):
            return self._unary(node, env)
        if isinstance(node, Call):
            return self._call(node, env)
        if isinstance(node, Array):
            return [self._evaluate(el, env) for el in node.elements]
        if isinstance(node, Object):
            return {key: self._evaluate(value, env) for key, value in node.properties}
        raise EvalError(f"Unexpected {type(node).__name__} in expression position", node.line)

    def _binary(self, node: BinaryExpr, env: Environment) -> Value:
        op = node.operator
        left = self._evaluate(node.left, env)
        right = self._evaluate(node.right, env)

        if op == "and":
            return is_truthy(left) and is_truthy(right)
        if op == "or":
            return is_truthy(left) or is_truthy(right)
        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)

        if op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return to_display(left, node.line) + to_display(right, node.line)

        if op in _ORDERING:
            both_strings = isinstance(left, str) and isinstance(right, str)
            if not both_strings:
                self._require_numbers(op, left, right, node.line)
            return _ORDERING[op](left, right)

        self._require_numbers(op, left, right, node.line)
        if op in ("/", "%") and right == 0:
            raise EvalError("Division by zero", node.line)
        if op not in _ARITHMETIC:
            raise EvalError(f"Unknown operator: {op}", node.line)
        try:
            return _ARITHMETIC[op](left, right)
        except OverflowError:
            raise EvalError(f"Numeric result out of range for {op}", node.line) from None

    @staticmethod
    def _require_numbers(op: str, left: Value, right: Value, line: int) -> None:
        if not (is_number(left) and is_number(right)):
            raise EvalError(
                f"Unsupported operand types for {op}: {type_name(left)} and {type_name(right)}",
                line,
            )

    def _unary(self, node: UnaryExpr, env: Environment) -> Value:
        operand = self._evaluate(node.operand, env)
        if node.operator == "-":
            if not is_number(operand):
                raise EvalError(
                    f"Unsupported operand type for unary -: {type_name(operand)}", node.line
                )
            return -operand
        if node.operator in ("not", "!"):
            return not is_truthy(operand)
        raise EvalError(f"Unknown operator: {node.operator}", node.line)

    def _call(self, node: Call, env: Environment) -> Value:
        # Builtin names are dispatched to the registry whatever they are bound to
        if isinstance(node.callee, Identifier) and node.callee.name in BUILTINS:
            callee: Value = BUILTINS[node.callee.name]
        else:
            callee = self._evaluate(node.callee, env)
            if isinstance(callee, FunctionValue) and callee.name in BUILTINS:
                callee = BUILTINS[callee.name]
        args = [self._evaluate(arg, env) for arg in node.args]

        if isinstance(callee, Builtin):
            return callee.fn(args, self.output, node.line)

        if not isinstance(callee, FunctionValue):
            raise EvalError(f"Can only call functions, got {type_name(callee)}", node.line)

        if self._call_depth >= self.max_call_depth:
            raise EvalError(
                f"Call depth limit ({self.max_call_depth}) exceeded in {callee.name}()",
                node.line,
            )

        fn_env = Environment(callee.closure)
        for i, param in enumerate(callee.params):
            fn_env.define(param, args[i] if i < len(args) else None)

        self._call_depth += 1
        try:
            outcome = self._execute_block(callee.body, fn_env)
        finally:
            self._call_depth -= 1
        return outcome.value


def interpret(program: Program, **kwargs) -> Value:
    """Convenience function: evaluate a Program with a fresh Interpreter."""
    return Interpreter(**kwargs).interpret(program)
