"""
Application constants and metadata.
"""

# Application info
APP_NAME = "ncl-gen"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Convert nginx configuration language (NCL) files to nginx.conf"

# File extensions
SOURCE_EXTENSION = ".ncl"
OUTPUT_EXTENSION = ".conf"

# Rendering
DEFAULT_INDENT = "  "

# Validation
DEFAULT_NGINX_COMMAND = "nginx"
DEFAULT_DOCKER_IMAGE = "nginx:alpine"
DEFAULT_VALIDATION_TIMEOUT = 10.0
