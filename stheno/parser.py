"""Template parser for Stheno.

Turns template source into an immutable node tree. The language is small and
logic-light:

- ``{{path | filter:arg1,arg2 | filter2}}``: variable output.
- ``{{#if path}}...{{else}}...{{/if}}`` and the ``unless`` form.
- ``{{#each path}}...{{/each}}``: loop over a list.
- ``{{> name}}``: partial inclusion.
- ``{{#block name}}default{{/block}}``: overridable layout placeholder.
- ``{{#extends "layout"}}{{#block name}}...{{/block}}{{/extends}}``.

Parsing is a recursive descent over a flat token list. Trees are immutable,
so ``parse`` memoises them by source text and the same tree can be walked by
many renders at once.
"""

from __future__ import annotations

import functools
import re
from collections import Counter
from dataclasses import dataclass

from .errors import TemplateError
from .templates import unquote

DEFAULT_MAX_DEPTH = 50

PARSE_CACHE_SIZE = 256
PARSE_CACHE_MAX_SOURCE = 64 * 1024

BLOCK_KEYWORDS = ("if", "unless", "each", "block", "extends")

TAG_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_PATH_RE = re.compile(r"^[^\s|:,'\"{}]+$")


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Attributes:
        kind: One of ``text``, ``variable``, ``partial``, ``open``, ``close``
            or ``else``.
        value: Text, expression, partial name or block keyword.
        argument: Argument of an ``open`` token.
        position: Offset of the token in the source.
    """

    kind: str
    value: str
    argument: str = ""
    position: int = 0


@dataclass(frozen=True)
class FilterCall:
    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class VariableNode:
    path: str
    filters: tuple[FilterCall, ...] = ()


@dataclass(frozen=True)
class ConditionalNode:
    """``if`` block, or ``unless`` when ``negate`` is set."""

    path: str
    body: tuple[Node, ...]
    else_body: tuple[Node, ...] = ()
    negate: bool = False


@dataclass(frozen=True)
class EachNode:
    path: str
    body: tuple[Node, ...]


@dataclass(frozen=True)
class PartialNode:
    name: str


@dataclass(frozen=True)
class BlockNode:
    name: str
    body: tuple[Node, ...]


@dataclass(frozen=True)
class ExtendsNode:
    layout: str
    blocks: tuple[BlockNode, ...]


Node = TextNode | VariableNode | ConditionalNode | EachNode | PartialNode | BlockNode | ExtendsNode


def line_of(source: str, position: int) -> int:
    return source.count("\n", 0, position) + 1


def split_outside_quotes(text: str, separator: str) -> list[str]:
    """Split text on a separator character, ignoring quoted sections.

    Args:
        text: Text to split.
        separator: Single separator character.

    Returns:
        List of raw parts (quotes preserved).
    """
    parts: list[str] = []
    current: list[str] = []
    quote = ""
    for char in text:
        if quote:
            if char == quote:
                quote = ""
        elif char in ("'", '"'):
            quote = char
        elif char == separator:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def parse_expression(expression: str) -> VariableNode:
    """Parse the inside of a variable tag.

    Args:
        expression: Text such as ``title | truncate:10``.

    Returns:
        VariableNode for the expression.

    Raises:
        TemplateError: If the path is empty or malformed.
    """
    stages = split_outside_quotes(expression, "|")
    path = stages[0].strip()
    if not path:
        raise TemplateError("Empty variable tag")
    if not _PATH_RE.match(path):
        raise TemplateError(f"Invalid variable path '{path}'")
    filters: list[FilterCall] = []
    for stage in stages[1:]:
        name, _, arg_text = stage.strip().partition(":")
        name = name.strip()
        if not name:
            raise TemplateError(f"Empty filter name in '{expression.strip()}'")
        args = (
            tuple(unquote(arg.strip()) for arg in split_outside_quotes(arg_text, ","))
            if arg_text.strip()
            else ()
        )
        filters.append(FilterCall(name, args))
    return VariableNode(path, tuple(filters))


def tokenize(source: str) -> list[Token]:
    """Split template source into tokens.

    An opening ``{{`` without a closing ``}}`` is kept as literal text.

    Raises:
        TemplateError: If a tag is empty or names an unknown block.
    """
    tokens: list[Token] = []
    cursor = 0
    for match in TAG_RE.finditer(source):
        start = match.start()
        if start > cursor:
            tokens.append(Token("text", source[cursor:start], position=cursor))
        cursor = match.end()
        content = match.group(1).strip()
        line = line_of(source, start)
        if not content:
            raise TemplateError(f"Empty tag on line {line}")
        if content.startswith("#"):
            keyword, _, argument = content[1:].strip().partition(" ")
            if keyword not in BLOCK_KEYWORDS:
                raise TemplateError(f"Unknown block tag '#{keyword}' on line {line}")
            tokens.append(Token("open", keyword, argument.strip(), start))
        elif content.startswith("/"):
            tokens.append(Token("close", content[1:].strip(), position=start))
        elif content == "else":
            tokens.append(Token("else", content, position=start))
        elif content.startswith(">"):
            name = unquote(content[1:].strip())
            if not name:
                raise TemplateError(f"Partial tag without a name on line {line}")
            tokens.append(Token("partial", name, position=start))
        else:
            tokens.append(Token("variable", content, position=start))
    if cursor < len(source):
        tokens.append(Token("text", source[cursor:], position=cursor))
    return tokens


def check_balance(source: str) -> None:
    """Check that every block keyword is opened as often as it is closed.

    This is a cheap structural count run before parsing, so a template with a
    forgotten ``{{/if}}`` is rejected with a clear message.

    Raises:
        TemplateError: On the first unbalanced keyword.
    """
    opened: Counter[str] = Counter()
    closed: Counter[str] = Counter()
    for match in TAG_RE.finditer(source):
        content = match.group(1).strip()
        if content.startswith("#"):
            opened[content[1:].strip().partition(" ")[0]] += 1
        elif content.startswith("/"):
            closed[content[1:].strip()] += 1
    for keyword in BLOCK_KEYWORDS:
        if opened[keyword] != closed[keyword]:
            raise TemplateError(
                f"Unbalanced {{{{#{keyword}}}}} markers: "
                f"{opened[keyword]} opened, {closed[keyword]} closed"
            )


class _Parser:
    """Recursive descent parser over a token list."""

    def __init__(self, source: str, max_depth: int):
        self.source = source
        self.max_depth = max_depth
        self.tokens = tokenize(source)
        self.pos = 0

    def parse(self) -> tuple[Node, ...]:
        nodes, end = self._parse_body(0)
        if end is not None:
            raise self._error(end, self._describe_unexpected(end))
        return nodes

    def _error(self, token: Token, message: str) -> TemplateError:
        return TemplateError(f"{message} on line {line_of(self.source, token.position)}")

    @staticmethod
    def _describe_unexpected(token: Token) -> str:
        if token.kind == "else":
            return "{{else}} outside of an if/unless block"
        return f"Unexpected {{{{/{token.value}}}}}"

    def _parse_body(self, depth: int) -> tuple[tuple[Node, ...], Token | None]:
        """Parse nodes until a closing or ``else`` token (returned) or the end."""
        nodes: list[Node] = []
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            self.pos += 1
            if token.kind == "text":
                nodes.append(TextNode(token.value))
            elif token.kind == "variable":
                try:
                    nodes.append(parse_expression(token.value))
                except TemplateError as exc:
                    raise self._error(token, exc.reason) from None
            elif token.kind == "partial":
                nodes.append(PartialNode(token.value))
            elif token.kind == "open":
                nodes.append(self._parse_block(token, depth + 1))
            else:
                return tuple(nodes), token
        return tuple(nodes), None

    def _parse_block(self, opener: Token, depth: int) -> Node:
        if depth > self.max_depth:
            raise self._error(opener, f"Maximum nesting depth of {self.max_depth} exceeded")
        keyword = opener.value
        argument = unquote(opener.argument)
        if not argument:
            raise self._error(opener, f"{{{{#{keyword}}}}} requires an argument")

        body, end = self._parse_body(depth)
        else_body: tuple[Node, ...] = ()
        if keyword in ("if", "unless") and end is not None and end.kind == "else":
            else_body, end = self._parse_body(depth)
        self._expect_close(opener, end)

        if keyword in ("if", "unless"):
            return ConditionalNode(argument, body, else_body, negate=keyword == "unless")
        if keyword == "each":
            return EachNode(argument, body)
        if keyword == "block":
            return BlockNode(argument, body)
        blocks = tuple(node for node in body if isinstance(node, BlockNode))
        return ExtendsNode(argument, blocks)

    def _expect_close(self, opener: Token, end: Token | None) -> None:
        keyword = opener.value
        if end is None:
            raise self._error(opener, f"Unclosed {{{{#{keyword}}}}}")
        if end.kind == "else":
            raise self._error(end, f"Unexpected {{{{else}}}} inside {{{{#{keyword}}}}}")
        if end.value != keyword:
            raise self._error(
                end, f"Expected {{{{/{keyword}}}}} but found {{{{/{end.value}}}}}"
            )


def parse(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> tuple[Node, ...]:
    """Parse template source into a node tree.

    Trees for sources up to ``PARSE_CACHE_MAX_SOURCE`` characters are
    memoised; larger sources are parsed on every call so the cache never
    pins more than ``PARSE_CACHE_SIZE * PARSE_CACHE_MAX_SOURCE`` characters.

    Args:
        source: Template source text.
        max_depth: Deepest block nesting accepted.

    Returns:
        Tuple of top-level nodes.

    Raises:
        TemplateError: If the source is unbalanced or malformed.
    """
    if len(source) > PARSE_CACHE_MAX_SOURCE:
        return _parse_source(source, max_depth)
    return _parse_cached(source, max_depth)


@functools.lru_cache(maxsize=PARSE_CACHE_SIZE)
def _parse_cached(source: str, max_depth: int) -> tuple[Node, ...]:
    return _parse_source(source, max_depth)


def _parse_source(source: str, max_depth: int) -> tuple[Node, ...]:
    check_balance(source)
    return _Parser(source, max_depth).parse()
