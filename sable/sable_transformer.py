"""
Transforms the raw lark parse tree into the Sable syntax tree (sable_datatypes).
"""

from lark import Transformer, v_args

from sable.sable_datatypes import (
    NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, MemberAccess, Group, Call, Ternary, Assignment, BinaryChain, Unary,
    ExpressionStatement, Block, FunctionDeclaration, Declaration, ReturnStatement, Script,
)


@v_args(meta=True)
class SableTransformer(Transformer):
    """Builds syntax nodes bottom-up, attaching source locations as it goes.

    `source` is the text being parsed; function declarations keep a slice of
    it so their body can be shown back to the user.
    """

    def __init__(self, source: str = ""):
        super().__init__()
        self.source = source

    def _attach_loc(self, obj, meta, text=None):
        line = getattr(meta, 'line', None)
        col = getattr(meta, 'column', None)
        if line is not None and col is not None:
            if text is None:
                start = getattr(meta, 'start_pos', None)
                end = getattr(meta, 'end_pos', None)
                text = self.source[start:end] if start is not None and end is not None else None
            obj.loc = {'line': line, 'col': col, 'text': text}
        return obj

    # Operators -----------------------------------------------------------

    def _op(self, meta, children):
        return str(children[0])

    assign_op = comp_op = sum_op = product_op = unary_op = _op

    # Literals ------------------------------------------------------------

    def number(self, meta, children):
        return self._attach_loc(NumberLiteral(str(children[0])), meta)

    def string(self, meta, children):
        return self._attach_loc(StringLiteral(str(children[0])), meta)

    def boolean(self, meta, children):
        return self._attach_loc(BooleanLiteral(str(children[0])), meta)

    def null(self, meta, children):
        return self._attach_loc(NullLiteral(), meta)

    # Names and access ----------------------------------------------------

    def identifier(self, meta, children):
        return self._attach_loc(Identifier(str(children[0])), meta)

    def member_access(self, meta, children):
        obj, member = children
        return self._attach_loc(MemberAccess(obj, member), meta)

    def arguments(self, meta, children):
        return list(children)

    def call(self, meta, children):
        callee, args = children
        return self._attach_loc(Call(callee, args), meta)

    def group(self, meta, children):
        return self._attach_loc(Group(children[0]), meta)

    # Operators on expressions ------------------------------------------

    def _chain(self, kind, meta, children):
        first, *rest = children
        pairs = [(rest[i], rest[i + 1]) for i in range(0, len(rest), 2)]
        return self._attach_loc(BinaryChain(kind, first, pairs), meta)

    def comparison(self, meta, children):
        return self._chain('comparison', meta, children)

    def sum(self, meta, children):
        return self._chain('sum', meta, children)

    def product(self, meta, children):
        return self._chain('product', meta, children)

    def unary(self, meta, children):
        op, operand = children
        return self._attach_loc(Unary(op, operand), meta)

    def assignment(self, meta, children):
        target, op, value = children
        return self._attach_loc(Assignment(target, op, value), meta)

    def ternary(self, meta, children):
        condition, then_branch, else_branch = children
        return self._attach_loc(Ternary(condition, then_branch, else_branch), meta)

    # Statements ----------------------------------------------------------

    def expression_statement(self, meta, children):
        return self._attach_loc(ExpressionStatement(children[0]), meta)

    def block(self, meta, children):
        return self._attach_loc(Block(list(children)), meta)

    def parameters(self, meta, children):
        return [str(tok) for tok in children]

    def function_declaration(self, meta, children):
        name, params, body = children
        source = (body.loc or {}).get('text') or ""
        node = FunctionDeclaration(str(name), params, body, source)
        return self._attach_loc(node, meta)

    def let_declaration(self, meta, children):
        name, value = children
        return self._attach_loc(Declaration(str(name), value, True), meta)

    def const_declaration(self, meta, children):
        name, value = children
        return self._attach_loc(Declaration(str(name), value, False), meta)

    def return_statement(self, meta, children):
        expr = children[0] if children else None
        return self._attach_loc(ReturnStatement(expr), meta)

    def script(self, meta, children):
        return self._attach_loc(Script(list(children)), meta)
