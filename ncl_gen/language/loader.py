"""
Loader that compiles NCL files and strings to nginx configuration.
"""

from collections import Counter
from pathlib import Path
from typing import Mapping

from ..const import OUTPUT_EXTENSION, SOURCE_EXTENSION
from ..logging import get_logger
from .lexer import LexerError
from .nodes import ConfigDocument
from .parser import ParseError, parse
from .renderer import RenderError, RenderOptions, Renderer


logger = get_logger("language.loader")


class CompileError(Exception):
    """Exception raised when a source cannot be compiled."""

    pass


class NclLoader:
    """
    Compiles NCL sources from files or strings.

    Usage:
        loader = NclLoader()
        text = loader.compile_file("site.ncl")
        # or
        text = loader.compile_string(source, base_path="conf.d")
    """

    def __init__(
        self,
        options: RenderOptions | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.options = options or RenderOptions()
        self.env = env
        self.last_document: ConfigDocument | None = None

    def compile_file(self, path: str | Path) -> str:
        """
        Compile an NCL file.

        Args:
            path: Path to the NCL file

        Returns:
            Rendered nginx configuration

        Raises:
            CompileError: If the file cannot be read, parsed or rendered
        """
        path = Path(path)

        if not path.exists():
            raise CompileError(f"Input file not found: {path}")

        if not path.is_file():
            raise CompileError(f"Not a file: {path}")

        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CompileError(f"Failed to read {path}: {e}") from e

        return self._compile(source, str(path), origin_path=path)

    def load(self, path: str | Path) -> str:
        """
        Alias for compile_file.

        Args:
            path: Path to the NCL file

        Returns:
            Rendered nginx configuration
        """
        return self.compile_file(path)

    def compile_string(
        self,
        source: str,
        filename: str = "<string>",
        base_path: str | Path | None = None,
    ) -> str:
        """
        Compile NCL source text.

        Args:
            source: NCL source text
            filename: Name used in log messages
            base_path: Directory that relative imports resolve against
                (defaults to the working directory)

        Returns:
            Rendered nginx configuration

        Raises:
            CompileError: If the source cannot be parsed or rendered
        """
        return self._compile(source, filename, base_path=base_path)

    def _compile(
        self,
        source: str,
        filename: str,
        origin_path: Path | None = None,
        base_path: str | Path | None = None,
    ) -> str:
        try:
            document = parse(source, env=self.env, filename=filename)
            self.last_document = document
            text = Renderer(self.options, self.env).render(
                document, origin_path=origin_path, base_path=base_path
            )
        except (LexerError, ParseError) as e:
            raise CompileError(f"Failed to parse {filename}: {e}") from e
        except RenderError as e:
            raise CompileError(f"Failed to render {filename}: {e}") from e
        except OSError as e:
            raise CompileError(f"Failed to read import of {filename}: {e}") from e

        logger.debug(f"Compiled {filename}: {len(text.splitlines())} line(s)")
        return text

    def lint(self, document: ConfigDocument | None = None) -> list[str]:
        """
        Return warnings about template usage.

        Args:
            document: Document to check (defaults to the last parsed one)

        Returns:
            List of warning messages (empty if no issues)
        """
        document = document or self.last_document
        if document is None:
            return []

        warnings = []
        definitions = document.template_definitions()
        counts = Counter(definition.name for definition in definitions)

        for name, count in counts.items():
            if count > 1:
                lines = ", ".join(str(d.line) for d in definitions if d.name == name)
                warnings.append(
                    f"Template '{name}' is defined {count} times (lines {lines}); the last one is used"
                )

        # Imported files may use templates from this document
        if not document.imports():
            referenced = {reference.name for reference in document.template_references()}
            for name in counts:
                if name not in referenced:
                    warnings.append(f"Template '{name}' is defined but never used")

        return warnings

    @staticmethod
    def check_extension(path: str | Path) -> str | None:
        """Warn when an input file does not use the NCL extension."""
        path = Path(path)
        if path.suffix != SOURCE_EXTENSION:
            return f"Input file does not have {SOURCE_EXTENSION} extension: {path}"
        return None

    @staticmethod
    def default_output_path(input_path: str | Path) -> Path:
        """site.ncl -> site.conf in the same directory."""
        input_path = Path(input_path)
        if input_path.suffix == SOURCE_EXTENSION:
            return input_path.with_suffix(OUTPUT_EXTENSION)
        return input_path.with_name(input_path.name + OUTPUT_EXTENSION)

    @staticmethod
    def write_output(text: str, path: str | Path) -> Path:
        """Write rendered text with a trailing newline."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
        return path


def compile_file(path: str | Path, options: RenderOptions | None = None) -> str:
    """
    Convenience function to compile an NCL file.

    Args:
        path: Path to the NCL file
        options: Output settings

    Returns:
        Rendered nginx configuration
    """
    loader = NclLoader(options)
    return loader.compile_file(path)
