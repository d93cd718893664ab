"""
Syntax tree nodes produced by the parser.

Nodes are immutable. Child sequences are tuples, and the renderer copies
nodes with dataclasses.replace() instead of changing them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, Union


class NodeKind(Enum):
    """Discriminant carried by every node class."""
    CONFIG = "config"
    DIRECTIVE = "directive"
    BLOCK = "block"
    LOCATION = "location"
    TEMPLATE_DEFINITION = "template_definition"
    TEMPLATE_REFERENCE = "template_reference"
    IMPORT = "import"


class LocationModifier(Enum):
    """nginx location match modifiers."""
    NONE = ""                        # prefix match
    EXACT = "="
    REGEX = "~"
    REGEX_CASE_INSENSITIVE = "~*"
    PRIORITY_PREFIX = "^~"

    @classmethod
    def from_token(cls, value: str) -> "LocationModifier":
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class Directive:
    """
    A single configuration line.

    Examples:
        worker_processes auto;  -> Directive(name="worker_processes", args=("auto",))
        try_files $uri =404;    -> Directive(name="try_files", args=("$uri", "=404"))
    """
    name: str
    args: tuple[str, ...] = ()
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.DIRECTIVE

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Directive name must not be empty")


@dataclass(frozen=True)
class Block:
    """
    A named scope with nested statements.

    Examples:
        http { ... }              -> Block(name="http", args=())
        upstream backend { ... }  -> Block(name="upstream", args=("backend",))
    """
    name: str
    args: tuple[str, ...] = ()
    children: tuple["Node", ...] = ()
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.BLOCK


@dataclass(frozen=True)
class Location:
    """
    A location block with one or more paths.

    More than one path is shorthand for several sibling locations
    sharing the same children.
    """
    paths: tuple[str, ...]
    modifier: LocationModifier = LocationModifier.NONE
    children: tuple["Node", ...] = ()
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.LOCATION

    def __post_init__(self) -> None:
        if not self.paths:
            raise ValueError("Location needs at least one path")


@dataclass(frozen=True)
class TemplateDefinition:
    """Named block template: %name = { ... };"""
    name: str
    body: Block
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.TEMPLATE_DEFINITION


@dataclass(frozen=True)
class TemplateReference:
    """Template expansion point: %inline(%name);"""
    name: str
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.TEMPLATE_REFERENCE


@dataclass(frozen=True)
class ImportReference:
    """File inclusion: %import("path");"""
    path: str
    line: int = 0
    column: int = 0

    kind: ClassVar[NodeKind] = NodeKind.IMPORT


@dataclass(frozen=True)
class EnvironmentReference:
    """
    %env("NAME") or %env("NAME", "default").

    Only exists while parsing; the parser substitutes the resolved
    value so no finished tree contains one.
    """
    name: str
    default: str | None = None
    line: int = 0
    column: int = 0


Node = Union[Directive, Block, Location, TemplateDefinition, TemplateReference, ImportReference]


@dataclass(frozen=True)
class ConfigDocument:
    """Root document containing all top-level statements."""
    children: tuple[Node, ...] = ()
    filename: str = "<string>"
    line: int = 1
    column: int = 1

    kind: ClassVar[NodeKind] = NodeKind.CONFIG

    def walk(self) -> Iterator[Node]:
        """Yield every node depth-first, including template bodies."""

        def visit(nodes: tuple[Node, ...]) -> Iterator[Node]:
            for node in nodes:
                yield node
                if isinstance(node, (Block, Location)):
                    yield from visit(node.children)
                elif isinstance(node, TemplateDefinition):
                    yield from visit(node.body.children)

        return visit(self.children)

    def template_definitions(self) -> list[TemplateDefinition]:
        """All template definitions, in source order."""
        return [node for node in self.walk() if isinstance(node, TemplateDefinition)]

    def template_references(self) -> list[TemplateReference]:
        """All template references, in source order."""
        return [node for node in self.walk() if isinstance(node, TemplateReference)]

    def imports(self) -> list[ImportReference]:
        """All import statements, in source order."""
        return [node for node in self.walk() if isinstance(node, ImportReference)]
