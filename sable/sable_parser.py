"""
Loads the Sable grammar and turns source text into a syntax tree.
"""

from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import UnexpectedInput, VisitError

from sable.sable_datatypes import Node
from sable.sable_errors import ParseError, SableError
from sable.sable_transformer import SableTransformer

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "sable.lark"

START_RULES = ("script", "expression")


class SableParser:
    """Parses Sable source for one of the start rules ('script' or 'expression')."""

    # The LALR tables are built once and shared by every parser instance.
    _lark: Optional[Lark] = None

    def __init__(self):
        if SableParser._lark is None:
            SableParser._lark = Lark(
                GRAMMAR_PATH.read_text(encoding="utf-8"),
                start=list(START_RULES),
                parser="lalr",
                propagate_positions=True,
            )
        self.lark = SableParser._lark

    def parse(self, source: str, rule: str = "script") -> Node:
        if rule not in START_RULES:
            raise ValueError(f"Unknown start rule: {rule!r}")
        try:
            tree = self.lark.parse(source, start=rule)
        except UnexpectedInput as e:
            line = getattr(e, 'line', None)
            col = getattr(e, 'column', None)
            loc = {'line': line, 'col': col, 'text': None} if isinstance(line, int) and line > 0 else None
            raise ParseError(_describe(e), loc) from e
        try:
            return SableTransformer(source).transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, SableError):
                raise e.orig_exc from e
            raise


def _describe(e: UnexpectedInput) -> str:
    # First line of lark's message only; the runtime renders its own source context.
    text = str(e).strip().splitlines()
    head = text[0] if text else type(e).__name__
    return head


def parse_script(source: str) -> Node:
    return SableParser().parse(source, "script")


def parse_expression(source: str) -> Node:
    return SableParser().parse(source, "expression")
