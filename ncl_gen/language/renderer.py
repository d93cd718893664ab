"""
Renderer turning a parsed NCL tree into nginx configuration text.

Rendering runs in two passes over the tree:
1. Collect every template definition into a name -> body table
2. Render nodes to indented text, expanding %inline() references,
   multi-path locations and %import() statements

Imported files are parsed once per render and cached by resolved path.
Their template definitions join the shared table.
"""

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Mapping

from ..const import DEFAULT_INDENT
from ..logging import get_logger
from .nodes import (
    Block,
    ConfigDocument,
    Directive,
    ImportReference,
    Location,
    LocationModifier,
    Node,
    TemplateDefinition,
    TemplateReference,
)
from .parser import parse


logger = get_logger("language.renderer")


# Modifier sigils that may prefix a location path, checked in this order
PATH_SIGILS = (
    ("=", LocationModifier.EXACT),
    ("~*", LocationModifier.REGEX_CASE_INSENSITIVE),
    ("~", LocationModifier.REGEX),
    ("^~", LocationModifier.PRIORITY_PREFIX),
)

# Leading # would start a comment, quotes would start a string
NEEDS_QUOTES = re.compile(r"""[\s{}();,"']|^#""")


class RenderError(Exception):
    """Base exception for rendering errors."""

    pass


class UndefinedTemplateError(RenderError):
    """%inline() names a template that was never defined."""

    def __init__(self, name: str, line: int = 0, column: int = 0):
        self.name = name
        self.line = line
        self.column = column
        message = f"Undefined template: {name}"
        if line:
            message += f" (line {line}, column {column})"
        super().__init__(message)


class RecursiveTemplateError(RenderError):
    """A template expands itself, directly or through other templates."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__(f"Recursive template expansion: {' -> '.join(chain)}")


class ImportNotFoundError(RenderError):
    """%import() points at a file that does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Import file not found: {path}")


class ImportCycleError(RenderError):
    """%import() chain that leads back to a file being rendered."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__(f"Circular import detected: {' -> '.join(chain)}")


@dataclass
class RenderOptions:
    """Output settings."""
    indent: str = DEFAULT_INDENT
    expand_templates: bool = True


def quote_if_needed(value: str) -> str:
    """
    Quote an argument when nginx would otherwise split or misread it.

    Values that are already quoted pass through unchanged.
    """
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value

    if not value or NEEDS_QUOTES.search(value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'

    return value


def split_location_path(path: str, modifier: LocationModifier) -> tuple[LocationModifier, str]:
    """Strip a leading modifier sigil from a path; the sigil wins over modifier."""
    for sigil, candidate in PATH_SIGILS:
        if path.startswith(sigil):
            return candidate, path[len(sigil):].lstrip()
    return modifier, path


class Renderer:
    """
    Renders ConfigDocument trees to nginx configuration text.

    All state (template table, import stack, parse cache) belongs to
    the instance and is reset at the start of every render() call.

    Usage:
        renderer = Renderer(RenderOptions(indent="    "))
        text = renderer.render(document, origin_path="site.ncl")
    """

    def __init__(
        self,
        options: RenderOptions | None = None,
        env: Mapping[str, str] | None = None,
    ):
        """
        Initialize renderer.

        Args:
            options: Output settings (defaults to two-space indent with expansion)
            env: Environment for %env() lookups in imported files
        """
        self.options = options or RenderOptions()
        self.env = env
        self._reset()

    def _reset(self) -> None:
        self.templates: dict[str, Block] = {}
        self.import_stack: list[str] = []
        self.file_cache: dict[str, ConfigDocument] = {}
        self.current_file: str | None = None
        self.base_dir: Path | None = None
        self.depth = 0
        self._expanding: list[str] = []

    def render(
        self,
        document: ConfigDocument,
        origin_path: str | Path | None = None,
        base_path: str | Path | None = None,
    ) -> str:
        """
        Render a document.

        Args:
            document: Parsed document
            origin_path: File the document came from; relative imports
                resolve against its directory
            base_path: Directory for relative imports when there is no
                origin file (defaults to the working directory)

        Returns:
            nginx configuration text without leading or trailing blank lines
        """
        self._reset()
        if base_path is not None:
            self.base_dir = Path(base_path)

        if origin_path:
            origin = str(Path(origin_path).resolve())
            self.current_file = origin
            self.import_stack.append(origin)

        self._collect_templates(document.children)
        logger.debug(f"Collected {len(self.templates)} template(s) from {document.filename}")

        return "\n".join(self._render_nodes(document.children)).strip()

    @property
    def _indent(self) -> str:
        return self.options.indent * self.depth

    def _collect_templates(self, nodes: Iterable[Node]) -> None:
        """Pass 1: record template definitions, later ones overwriting."""
        for node in nodes:
            if isinstance(node, TemplateDefinition):
                self.templates[node.name] = node.body
            elif isinstance(node, (Block, Location)):
                self._collect_templates(node.children)

    def _render_nodes(self, nodes: Iterable[Node]) -> list[str]:
        lines = []
        for node in nodes:
            rendered = self._render_node(node)
            if rendered:
                lines.append(rendered)
        return lines

    def _render_children(self, nodes: Iterable[Node]) -> list[str]:
        self.depth += 1
        try:
            return self._render_nodes(nodes)
        finally:
            self.depth -= 1

    def _render_node(self, node: Node) -> str:
        if isinstance(node, Directive):
            return self._render_directive(node)
        if isinstance(node, Block):
            return self._render_block(node)
        if isinstance(node, Location):
            return self._render_location(node)
        if isinstance(node, TemplateDefinition):
            return ""
        if isinstance(node, TemplateReference):
            return self._render_template_reference(node)
        if isinstance(node, ImportReference):
            return self._render_import(node)
        raise RenderError(f"Unknown node type: {type(node).__name__}")

    @staticmethod
    def _format_args(args: Iterable[str]) -> str:
        text = " ".join(quote_if_needed(arg) for arg in args)
        return f" {text}" if text else ""

    def _render_directive(self, node: Directive) -> str:
        return f"{self._indent}{node.name}{self._format_args(node.args)};"

    def _render_block(self, node: Block) -> str:
        indent = self._indent

        if node.name == "if":
            # Conditions are kept exactly as written
            header = f"{indent}if ({' '.join(node.args)}) {{"
        else:
            header = f"{indent}{node.name}{self._format_args(node.args)} {{"

        return "\n".join([header, *self._render_children(node.children), f"{indent}}}"])

    def _render_location(self, node: Location) -> str:
        if len(node.paths) > 1:
            return "\n".join(
                self._render_single_location(replace(node, paths=(path,)))
                for path in node.paths
            )
        return self._render_single_location(node)

    def _render_single_location(self, node: Location) -> str:
        indent = self._indent
        modifier, path = split_location_path(node.paths[0], node.modifier)

        modifier_text = f"{modifier.value} " if modifier is not LocationModifier.NONE else ""
        header = f"{indent}location {modifier_text}{quote_if_needed(path)} {{"

        return "\n".join([header, *self._render_children(node.children), f"{indent}}}"])

    def _render_template_reference(self, node: TemplateReference) -> str:
        if not self.options.expand_templates:
            return f"{self._indent}%inline({node.name});"

        body = self.templates.get(node.name)
        if body is None:
            raise UndefinedTemplateError(node.name, node.line, node.column)

        if node.name in self._expanding:
            raise RecursiveTemplateError([*self._expanding, node.name])

        # Template children render at the reference's own depth
        self._expanding.append(node.name)
        try:
            return "\n".join(self._render_nodes(body.children))
        finally:
            self._expanding.pop()

    def _resolve_import_path(self, path: str) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            if self.current_file:
                base = Path(self.current_file).parent
            else:
                base = self.base_dir or Path.cwd()
            candidate = base / candidate
        return str(candidate.resolve())

    def _load_import(self, resolved: str) -> ConfigDocument:
        path = Path(resolved)
        if not path.is_file():
            raise ImportNotFoundError(resolved)

        logger.debug(f"Parsing imported file {resolved}")
        return parse(path.read_text(encoding="utf-8"), env=self.env, filename=resolved)

    def _render_import(self, node: ImportReference) -> str:
        resolved = self._resolve_import_path(node.path)

        if resolved in self.import_stack:
            raise ImportCycleError([*self.import_stack, resolved])

        document = self.file_cache.get(resolved)
        if document is None:
            document = self._load_import(resolved)
            self.file_cache[resolved] = document
        else:
            logger.debug(f"Reusing parsed import {resolved}")

        previous_file = self.current_file
        self.import_stack.append(resolved)
        self.current_file = resolved
        try:
            self._collect_templates(document.children)
            return "\n".join(
                self._render_nodes(
                    child for child in document.children
                    if not isinstance(child, TemplateDefinition)
                )
            )
        finally:
            self.current_file = previous_file
            self.import_stack.pop()


def render(
    document: ConfigDocument,
    options: RenderOptions | None = None,
    origin_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    base_path: str | Path | None = None,
) -> str:
    """
    Convenience function to render a document with a fresh Renderer.

    Args:
        document: Parsed document
        options: Output settings
        origin_path: File the document came from, for relative imports
        env: Environment for %env() lookups in imported files
        base_path: Directory for relative imports when origin_path is None

    Returns:
        nginx configuration text
    """
    return Renderer(options, env).render(document, origin_path, base_path)
