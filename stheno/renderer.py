"""Template rendering for Stheno.

This module walks the node trees produced by ``stheno.parser`` and turns a
template plus a context into an HTML string.

Key class:
- TemplateRenderer: Context-driven interpreter with filters, partials and
  layout inheritance.

Design principles:
- No per-call state lives on the renderer. Recursion depth, the stack of
  partials and layouts being expanded, and the active block overrides travel
  in an immutable ``_Frame`` passed down every call, so one renderer can be
  shared by threads rendering pages in parallel.
- Partials and layouts are looked up through a TemplateResolver, so the
  renderer works over a plain TemplateStore or over the cache layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .context import (
    ContextValue,
    is_truthy,
    merge_loop_context,
    resolve_path,
    stringify,
    to_context_value,
)
from .errors import TemplateError
from .filters import FilterFunction, FilterRegistry
from .parser import (
    DEFAULT_MAX_DEPTH,
    BlockNode,
    ConditionalNode,
    EachNode,
    ExtendsNode,
    Node,
    PartialNode,
    TextNode,
    VariableNode,
    parse,
)
from .protocols import TemplateResolver
from .templates import DEFAULT_MAX_TEMPLATE_SIZE, Template

__all__ = ["TemplateRenderer"]


@dataclass(frozen=True)
class _Frame:
    """Per-call render state.

    Attributes:
        depth: Current nesting depth from layouts, partials and loops.
        stack: Names of the templates being expanded, outermost first.
        blocks: Block overrides supplied by extending templates.
        template_name: Template whose nodes are being rendered.
    """

    depth: int = 0
    stack: tuple[str, ...] = ()
    blocks: Mapping[str, tuple[Node, ...]] = field(default_factory=dict)
    template_name: str | None = None


class TemplateRenderer:
    """Interpreter for Stheno templates.

    Attributes:
        resolver: Source of partials and layouts.
        filters: Filter registry used by variable tags.
        max_template_size: Largest accepted source length in characters.
        max_depth: Deepest accepted nesting of layouts, partials and loops.
    """

    def __init__(
        self,
        resolver: TemplateResolver | None = None,
        filters: FilterRegistry | None = None,
        max_template_size: int = DEFAULT_MAX_TEMPLATE_SIZE,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize the renderer.

        Args:
            resolver: Optional template resolver for partials and layouts.
            filters: Optional filter registry; a fresh one with the built-in
                filters is created when omitted.
            max_template_size: Size limit applied to every rendered source.
            max_depth: Nesting limit.
        """
        self.resolver = resolver
        self.filters = filters or FilterRegistry()
        self.max_template_size = max_template_size
        self.max_depth = max_depth

    def register_filter(self, name: str, func: FilterFunction) -> None:
        """Register a custom filter callable taking ``(value, args)``."""
        self.filters.register(name, func)

    def render(self, source: str, context: Mapping[str, Any] | None = None) -> str:
        """Render template source against a context.

        Args:
            source: Template source text.
            context: Variables available to the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: If the template is invalid or can not be expanded.
        """
        return self._render_source(source, self._prepare_context(context), _Frame())

    def render_template(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render a template looked up by name.

        Args:
            name: Template name known to the resolver.
            context: Variables available to the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: If the template is missing or invalid.
        """
        template = self._lookup(name, "Template", None)
        frame = _Frame(stack=(name,), template_name=name)
        return self._render_source(template.source, self._prepare_context(context), frame)

    @staticmethod
    def _prepare_context(context: Mapping[str, Any] | None) -> dict[str, ContextValue]:
        prepared = to_context_value(context or {})
        if not isinstance(prepared, dict):
            raise TemplateError("Render context must be a mapping")
        return prepared

    def _lookup(self, name: str, kind: str, frame: _Frame | None) -> Template:
        template = self.resolver.get_template(name) if self.resolver else None
        if template is None:
            raise TemplateError(
                f"{kind} '{name}' not found", frame.template_name if frame else None
            )
        return template

    def _parse(self, source: str, name: str | None) -> tuple[Node, ...]:
        if len(source) > self.max_template_size:
            raise TemplateError(
                f"Template size {len(source)} exceeds limit of {self.max_template_size}",
                name,
            )
        try:
            return parse(source, self.max_depth)
        except TemplateError as exc:
            if name and exc.template_name is None:
                raise TemplateError(exc.reason, name) from None
            raise

    def _render_source(
        self, source: str, context: dict[str, ContextValue], frame: _Frame
    ) -> str:
        nodes = self._parse(source, frame.template_name)
        return self._render_nodes(nodes, context, frame)

    def _descend(self, frame: _Frame, **changes: Any) -> _Frame:
        depth = frame.depth + 1
        if depth > self.max_depth:
            raise TemplateError(
                f"Maximum nesting depth of {self.max_depth} exceeded", frame.template_name
            )
        values = {
            "depth": depth,
            "stack": frame.stack,
            "blocks": frame.blocks,
            "template_name": frame.template_name,
        }
        values.update(changes)
        return _Frame(**values)

    def _render_nodes(
        self, nodes: tuple[Node, ...], context: dict[str, ContextValue], frame: _Frame
    ) -> str:
        return "".join(self._render_node(node, context, frame) for node in nodes)

    def _render_node(self, node: Node, context: dict[str, ContextValue], frame: _Frame) -> str:
        if isinstance(node, TextNode):
            return node.text
        if isinstance(node, VariableNode):
            return self._render_variable(node, context)
        if isinstance(node, ConditionalNode):
            truth = is_truthy(resolve_path(node.path, context))
            if node.negate:
                truth = not truth
            return self._render_nodes(node.body if truth else node.else_body, context, frame)
        if isinstance(node, EachNode):
            return self._render_each(node, context, frame)
        if isinstance(node, PartialNode):
            return self._render_partial(node, context, frame)
        if isinstance(node, BlockNode):
            body = frame.blocks.get(node.name, node.body)
            return self._render_nodes(body, context, frame)
        if isinstance(node, ExtendsNode):
            return self._render_extends(node, context, frame)
        raise TemplateError(f"Unsupported node {type(node).__name__}", frame.template_name)

    def _render_variable(self, node: VariableNode, context: dict[str, ContextValue]) -> str:
        value: Any = resolve_path(node.path, context)
        for call in node.filters:
            value = self.filters.apply(call.name, value, list(call.args))
        return stringify(value)

    def _render_each(
        self, node: EachNode, context: dict[str, ContextValue], frame: _Frame
    ) -> str:
        items = resolve_path(node.path, context)
        if not isinstance(items, list) or not items:
            return ""
        inner = self._descend(frame)
        return "".join(
            self._render_nodes(node.body, merge_loop_context(context, item), inner)
            for item in items
        )

    def _render_partial(
        self, node: PartialNode, context: dict[str, ContextValue], frame: _Frame
    ) -> str:
        if node.name in frame.stack:
            chain = " -> ".join(frame.stack + (node.name,))
            raise TemplateError(f"Partial cycle detected: {chain}", frame.template_name)
        template = self._lookup(node.name, "Partial", frame)
        inner = self._descend(
            frame, stack=frame.stack + (node.name,), blocks={}, template_name=node.name
        )
        return self._render_source(template.source, context, inner)

    def _render_extends(
        self, node: ExtendsNode, context: dict[str, ContextValue], frame: _Frame
    ) -> str:
        if node.layout in frame.stack:
            chain = " -> ".join(frame.stack + (node.layout,))
            raise TemplateError(f"Layout cycle detected: {chain}", frame.template_name)
        layout = self._lookup(node.layout, "Layout", frame)
        # Overrides from templates further down the chain win over ours.
        blocks = {block.name: block.body for block in node.blocks}
        blocks.update(frame.blocks)
        inner = self._descend(
            frame, stack=frame.stack + (node.layout,), blocks=blocks, template_name=node.layout
        )
        return self._render_source(layout.source, context, inner)
