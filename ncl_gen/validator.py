"""
Validation of generated configuration with `nginx -t`.

Runs nginx either inside a Docker container or from a local
installation and sorts its output into errors and warnings.
"""

import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .const import DEFAULT_DOCKER_IMAGE, DEFAULT_NGINX_COMMAND, DEFAULT_VALIDATION_TIMEOUT
from .logging import get_logger


logger = get_logger("validator")


@dataclass
class ValidatorOptions:
    """How to run nginx."""
    use_docker: bool = True
    nginx_command: str = DEFAULT_NGINX_COMMAND
    docker_image: str = DEFAULT_DOCKER_IMAGE
    timeout: float = DEFAULT_VALIDATION_TIMEOUT


@dataclass
class ValidationResult:
    """Outcome of one nginx -t run."""
    is_valid: bool
    output: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def parse_nginx_output(output: str, succeeded: bool) -> ValidationResult:
    """
    Sort nginx -t output lines into errors and warnings.

    Args:
        output: Combined stdout/stderr of nginx -t
        succeeded: Whether the process exited with status 0

    Returns:
        ValidationResult
    """
    errors = []
    warnings = []

    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if "[emerg]" in line or "[error]" in line:
            errors.append(line)
        elif "[warn]" in line:
            warnings.append(line)

    is_valid = succeeded and not errors
    if not is_valid and not errors:
        errors.append("nginx configuration test failed")

    return ValidationResult(is_valid=is_valid, output=output, errors=errors, warnings=warnings)


class NginxValidator:
    """
    Checks nginx configuration text with `nginx -t`.

    Usage:
        validator = NginxValidator(ValidatorOptions(use_docker=False))
        result = validator.validate(text)
        if not result.is_valid:
            print("\\n".join(result.errors))
    """

    def __init__(self, options: ValidatorOptions | None = None):
        self.options = options or ValidatorOptions()

    def validate(self, content: str) -> ValidationResult:
        """
        Validate configuration text.

        Args:
            content: Complete nginx.conf contents

        Returns:
            ValidationResult
        """
        with tempfile.TemporaryDirectory(prefix="ncl-validation-") as temp_dir:
            conf_path = Path(temp_dir) / "nginx.conf"
            conf_path.write_text(content, encoding="utf-8")

            if self.options.use_docker and self.is_docker_available():
                return self._validate_with_docker(conf_path)

            return self._validate_with_local_nginx(conf_path)

    def is_docker_available(self) -> bool:
        """Check that the docker CLI exists and the daemon answers."""
        if shutil.which("docker") is None:
            return False

        try:
            result = subprocess.run(
                ["docker", "ps"],
                capture_output=True,
                timeout=self.options.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Docker is not usable: {e}")
            return False

        return result.returncode == 0

    def _run(self, command: list[str]) -> ValidationResult:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.options.timeout,
            )
        except subprocess.TimeoutExpired:
            return ValidationResult(
                is_valid=False,
                output="",
                errors=[f"nginx validation timed out after {self.options.timeout}s"],
            )

        output = (result.stdout or "") + (result.stderr or "")
        return parse_nginx_output(output, result.returncode == 0)

    def _validate_with_docker(self, conf_path: Path) -> ValidationResult:
        return self._run([
            "docker", "run", "--rm",
            "-v", f"{conf_path}:/etc/nginx/nginx.conf:ro",
            self.options.docker_image,
            "nginx", "-t",
        ])

    def _validate_with_local_nginx(self, conf_path: Path) -> ValidationResult:
        command = self.options.nginx_command

        if shutil.which(command) is None:
            return ValidationResult(
                is_valid=False,
                output=f"nginx command not found: {command}",
                errors=[f"nginx is not installed or not in PATH: {command}"],
                warnings=["Consider installing nginx or using Docker validation"],
            )

        return self._run([command, "-t", "-c", str(conf_path)])

    def describe_method(self) -> str:
        """Human readable validation method."""
        if self.options.use_docker:
            return f"Docker ({self.options.docker_image})"
        return f"Local nginx ({self.options.nginx_command})"


def validate_nginx_config(content: str, options: ValidatorOptions | None = None) -> ValidationResult:
    """Convenience function to validate nginx configuration text."""
    return NginxValidator(options).validate(content)
