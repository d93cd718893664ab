"""
Entry point for ncl-gen.

Usage:
    python -m ncl_gen site.ncl
    python -m ncl_gen site.ncl --stdout
    python -m ncl_gen site.ncl -o /etc/nginx/nginx.conf --validate
    python -m ncl_gen --help
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .const import APP_DESCRIPTION, APP_NAME, DEFAULT_DOCKER_IMAGE, DEFAULT_INDENT, DEFAULT_NGINX_COMMAND
from .language.loader import CompileError, NclLoader
from .language.renderer import RenderOptions
from .logging import LogConfig, get_logger, setup_logging
from .validator import NginxValidator, ValidatorOptions


logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=APP_DESCRIPTION,
    )

    parser.add_argument(
        "input",
        help="Input NCL file path",
    )

    parser.add_argument(
        "-o", "--output",
        metavar="PATH",
        help="Output file path (default: <input>.conf)",
    )

    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Write the generated configuration to stdout instead of a file",
    )

    parser.add_argument(
        "--no-inline",
        action="store_true",
        help="Do not expand %%inline() template references",
    )

    parser.add_argument(
        "--indent",
        metavar="STRING",
        default=DEFAULT_INDENT,
        help='Indentation string (default: "  ")',
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the generated configuration with nginx -t after writing it",
    )

    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Validate the generated configuration without writing it",
    )

    parser.add_argument(
        "--no-docker",
        action="store_true",
        help="Validate with a local nginx instead of Docker",
    )

    parser.add_argument(
        "--nginx-command",
        metavar="CMD",
        default=DEFAULT_NGINX_COMMAND,
        help=f"Local nginx binary (default: {DEFAULT_NGINX_COMMAND})",
    )

    parser.add_argument(
        "--docker-image",
        metavar="IMAGE",
        default=DEFAULT_DOCKER_IMAGE,
        help=f"Docker image used for validation (default: {DEFAULT_DOCKER_IMAGE})",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging (INFO level)",
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug logging (DEBUG level)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (only errors)",
    )

    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Write logs to file",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def log_config_from_args(args: argparse.Namespace) -> LogConfig:
    """Map logging flags onto a LogConfig."""
    log_config = LogConfig()

    if args.debug:
        log_config.console_level = "debug"
    elif args.verbose:
        log_config.console_level = "info"
    elif args.quiet:
        log_config.console_level = "error"
    else:
        log_config.console_level = "warning"

    if args.no_color:
        log_config.console_colors = False

    if args.log_file:
        log_config.file_enabled = True
        log_config.file_path = args.log_file

    return log_config


def run_validation(text: str, args: argparse.Namespace) -> int:
    """Validate generated text and print the outcome."""
    validator = NginxValidator(ValidatorOptions(
        use_docker=not args.no_docker,
        nginx_command=args.nginx_command,
        docker_image=args.docker_image,
    ))

    logger.info(f"Validating with {validator.describe_method()}")
    result = validator.validate(text)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.is_valid:
        print("Validation failed:", file=sys.stderr)
        for error in result.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print("Validation passed: nginx configuration is valid")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(log_config_from_args(args))

    input_path = Path(args.input).resolve()
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    extension_warning = NclLoader.check_extension(input_path)
    if extension_warning:
        logger.warning(extension_warning)

    loader = NclLoader(RenderOptions(
        indent=args.indent,
        expand_templates=not args.no_inline,
    ))

    try:
        text = loader.compile_file(input_path)
    except CompileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for warning in loader.lint():
        logger.warning(warning)

    if args.validate_only:
        return run_validation(text, args)

    if args.stdout:
        print(text)
    else:
        output_path = Path(args.output).resolve() if args.output else loader.default_output_path(input_path)
        try:
            loader.write_output(text, output_path)
        except OSError as e:
            print(f"Error: Failed to write {output_path}: {e}", file=sys.stderr)
            return 1
        print(f"Generated: {output_path}")

    if args.validate:
        return run_validation(text, args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
