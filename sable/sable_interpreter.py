"""
The core Sable interpreter: the host embedding API, lvalue resolution,
expression evaluation and statement execution.
"""

from typing import List, Optional, Union

from sable.sable_datatypes import (
    Node, NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, MemberAccess, Group, Call, Ternary, Assignment, BinaryChain, Unary,
    ExpressionStatement, Block, FunctionDeclaration, Declaration, ReturnStatement, Script,
    EXPRESSION_TYPES,
)
from sable.sable_errors import SableError, ParseError, SableTypeError, DoubleDefinitionError
from sable.sable_parser import SableParser
from sable.sable_scope import Binding, ScopeMap
from sable.sable_values import Value, Boolean, Object, Subroutine, NULL


class Return:
    """Control-flow signal produced by a `return` statement.

    It travels up through enclosing blocks until a script run or a function
    call unwraps it.
    """
    __slots__ = ("value",)

    def __init__(self, value: Value):
        self.value = value

    def __repr__(self) -> str:
        return f"Return({self.value!r})"


def is_return(x) -> bool:
    return isinstance(x, Return)


def unwrap_return(x):
    return x.value if is_return(x) else x


class ScriptFunction:
    """The callback behind a function declared in Sable source.

    Calling it runs the body in a brand-new interpreter whose only bindings
    are the parameters (as constants). Nothing from the caller's scope is
    visible inside.
    """

    def __init__(self, name: str, params: List[str], body: Block, source: str = ""):
        self.name = name
        self.params = params
        self.body = body
        self.source = source
        self.__name__ = name

    def __call__(self, context: ScopeMap, args: List[Value]) -> Value:
        isolated = Interpreter()
        for param, arg in zip(self.params, args):
            isolated.bindings.set(param, Binding.constant(arg.clone()))
        result = isolated.execute_statements(self.body.statements, isolated.bindings)
        return result.value if is_return(result) else NULL

    def __repr__(self) -> str:
        return f"<ScriptFunction {self.name}({', '.join(self.params)})>"


Outcome = Union[Value, Return]


def _as_subroutine(binding: Binding) -> Subroutine:
    match binding.value:
        case Subroutine() as subroutine:
            return subroutine
        case _:
            raise SableTypeError("Not a function")


class Interpreter:
    """Evaluates Sable code against a layered scope of bindings."""

    def __init__(self, bindings: Optional[ScopeMap] = None, parser: Optional[SableParser] = None):
        self.bindings = bindings if bindings is not None else ScopeMap()
        self.parser = parser or SableParser()
        self.current_node: Optional[Node] = None

    # ===================================================================
    # Host embedding API
    # ===================================================================

    def define_constant(self, ident: str, value: Value):
        self.bindings.define_binding(ident, value, False)

    def define_variable(self, ident: str, value: Value):
        self.bindings.define_binding(ident, value, True)

    def update_variable(self, ident: str, value: Value):
        self.bindings.get(ident).set_value(value)

    def run_expression(self, code: str) -> Value:
        node = self.parser.parse(code, "expression")
        return self.evaluate(node, self.bindings)

    def run_script(self, code: str) -> Value:
        script = self.parser.parse(code, "script")
        return unwrap_return(self.execute(script, self.bindings))

    def call_function(self, ident: str, args: List[Value]) -> Value:
        """Calls the subroutine bound to `ident` with already-built arguments."""
        subroutine = _as_subroutine(self.bindings.get(ident))
        return self._invoke(subroutine, args, self.bindings, None)

    # ===================================================================
    # Lvalues
    # ===================================================================

    def interpret_lvalue(self, node: Node, scope: ScopeMap) -> Binding:
        """Finds the live binding an identifier or member access refers to."""
        match node:
            case Identifier(name):
                return scope.get(name)
            case Group(expr):
                return self.interpret_lvalue(expr, scope)
            case MemberAccess(obj, member):
                holder = self.interpret_lvalue(obj, scope)
                match holder.value:
                    case Object() as record:
                        return self.interpret_lvalue(member, record.scope)
                    case _:
                        raise SableTypeError("Not an object")
            case _:
                text = (node.loc or {}).get('text') or type(node).__name__
                raise ParseError(f"Cannot make out lvalue expression: {text}")

    # ===================================================================
    # Expressions
    # ===================================================================

    def evaluate(self, node: Node, scope: ScopeMap) -> Value:
        self.current_node = node
        try:
            return self._evaluate(node, scope)
        except SableError as e:
            raise e.attach_loc(node.loc)

    def _evaluate(self, node: Node, scope: ScopeMap) -> Value:
        match node:
            case Identifier(name):
                return scope.get(name).value.clone()
            case MemberAccess():
                return self.interpret_lvalue(node, scope).value.clone()
            case Group(expr):
                return self.evaluate(expr, scope)
            case NumberLiteral(text):
                return Value.from_numeric_literal(text)
            case StringLiteral(text):
                return Value.from_string_literal(text)
            case BooleanLiteral(text):
                return Value.from_boolean_literal(text)
            case NullLiteral():
                return NULL
            case Call():
                return self._eval_call(node, scope)
            case Ternary():
                return self._eval_ternary(node, scope)
            case Assignment():
                return self._eval_assignment(node, scope)
            case BinaryChain():
                return self._eval_chain(node, scope)
            case Unary(op, operand):
                value = self.evaluate(operand, scope)
                match op:
                    case "-":
                        return value.negate()
                    case "!":
                        return value.inverse()
                    case _:
                        raise NotImplementedError(f"Unimplemented unary operator: {op}")
            case _:
                raise NotImplementedError(f"Unimplemented expression node: {type(node).__name__}")

    def _eval_call(self, node: Call, scope: ScopeMap) -> Value:
        subroutine = _as_subroutine(self.interpret_lvalue(node.callee, scope))
        args = [self.evaluate(arg, scope) for arg in node.args]
        return self._invoke(subroutine, args, scope, node)

    def _invoke(self, subroutine: Subroutine, args: List[Value], scope: ScopeMap, call_site: Optional[Node]) -> Value:
        try:
            return subroutine.call(scope, args)
        except SableError as e:
            raise e.add_frame(subroutine.name, args, getattr(call_site, 'loc', None))

    def _eval_ternary(self, node: Ternary, scope: ScopeMap) -> Value:
        condition = self.evaluate(node.condition, scope)
        match condition:
            case Boolean(flag):
                branch = node.then_branch if flag else node.else_branch
            case _:
                raise SableTypeError("Ternary condition must be boolean")
        return self.evaluate(branch, scope)

    def _eval_assignment(self, node: Assignment, scope: ScopeMap) -> Value:
        operand = self.evaluate(node.value, scope)
        target = self.interpret_lvalue(node.target, scope)
        match node.operator:
            case "=":
                target.set_value(operand)
            case "+=" | "-=" | "*=" as op:
                target.set_value(self._apply_operator(target.value, op[0], operand))
            case op:
                raise NotImplementedError(f"Unimplemented assignment operator: {op}")
        # Assignments are void so they can't be mistaken for comparisons.
        return NULL

    def _eval_chain(self, node: BinaryChain, scope: ScopeMap) -> Value:
        value = self.evaluate(node.first, scope)
        for op, operand_node in node.rest:
            operand = self.evaluate(operand_node, scope)
            value = self._apply_operator(value, op, operand)
        return value

    def _apply_operator(self, left: Value, op: str, right: Value) -> Value:
        match op:
            case "==":
                return left.compare(right, False)
            case "===":
                return left.compare(right, True)
            case "!=":
                return left.compare(right, False).inverse()
            case "!==":
                return left.compare(right, True).inverse()
            case "<" | ">" | "<=" | ">=":
                return left.compare_inequality(right, op)
            case "+":
                return left.add(right)
            case "-":
                return left.subtract(right)
            case "*":
                return left.multiply(right)
            case _:
                raise NotImplementedError(f"Unimplemented operator: {op}")

    # ===================================================================
    # Statements
    # ===================================================================

    def execute(self, node: Node, scope: ScopeMap) -> Outcome:
        self.current_node = node
        try:
            return self._execute(node, scope)
        except SableError as e:
            raise e.attach_loc(node.loc)

    def execute_statements(self, statements: List[Node], scope: ScopeMap) -> Outcome:
        """Runs statements in order; stops early on the first `return`."""
        result: Outcome = NULL
        for statement in statements:
            result = self.execute(statement, scope)
            if is_return(result):
                return result
        return result

    def _execute(self, node: Node, scope: ScopeMap) -> Outcome:
        match node:
            case Script(statements):
                return self.execute_statements(statements, scope)
            case ExpressionStatement(expr):
                return self.evaluate(expr, scope)
            case Block(statements):
                return self.execute_statements(statements, scope.new_nested_context())
            case FunctionDeclaration():
                self._declare_function(node, scope)
                return NULL
            case Declaration(name, value_node, mutable):
                value = self.evaluate(value_node, scope)
                scope.define_binding(name, value, mutable)
                return NULL
            case ReturnStatement(expr):
                return Return(NULL if expr is None else self.evaluate(expr, scope))
            case _ if isinstance(node, EXPRESSION_TYPES):
                return self.evaluate(node, scope)
            case _:
                raise NotImplementedError(f"Unimplemented statement node: {type(node).__name__}")

    def _declare_function(self, node: FunctionDeclaration, scope: ScopeMap):
        if len(set(node.params)) != len(node.params):
            raise DoubleDefinitionError(f"Function '{node.name}' declares the same parameter twice")
        function = ScriptFunction(node.name, node.params, node.body, node.source)
        scope.define_binding(node.name, Subroutine(function, len(node.params), node.name), False)


def run_expression(code: str, interpreter: Optional[Interpreter] = None) -> Value:
    return (interpreter or Interpreter()).run_expression(code)


def run_script(code: str, interpreter: Optional[Interpreter] = None) -> Value:
    return (interpreter or Interpreter()).run_script(code)
