# -*- coding: utf-8 -*-

import os
import re
import logging
import threading
from pathlib import Path

import yaml


#=======================================================================
# Secret Redaction
#=======================================================================

REDACTED = "[REDACTED]"

_secret_patterns = [
    re.compile(r"(?i)bearer\s+[A-Za-z0-9\-_\.=]+"),
    re.compile(r"(?i)sharedkey\s+[^:\s]+:[A-Za-z0-9+/=]+"),
    re.compile(r"(?i)(client_secret|api[_-]?key|account_key|password)=[^&\s]+"),
]
_registered_secrets: set[str] = set()
_secrets_lock = threading.Lock()


def register_secret(*values):
    """
    Register literal secret values so they never reach a log line.

    Args:
        values (str): Secret strings (keys, client secrets, tokens). Empty or
            very short values are ignored.
    """
    with _secrets_lock:
        for value in values:
            if value and len(value.strip()) >= 4:
                _registered_secrets.add(value.strip())


def forget_secret(*values):
    """Drop values that are no longer in use (e.g. a replaced access token)."""
    with _secrets_lock:
        for value in values:
            if value:
                _registered_secrets.discard(value.strip())


def redact(text: str) -> str:
    """Mask registered secrets and well-known credential shapes in a string."""
    if not text:
        return text
    with _secrets_lock:
        secrets = sorted(_registered_secrets, key=len, reverse=True)
    masked = text
    for secret in secrets:
        masked = masked.replace(secret, REDACTED)
    for pattern in _secret_patterns:
        masked = pattern.sub(lambda m: m.group()[:6] + REDACTED, masked)
    return masked


def mask_secret(value: str | None, visible: int = 4) -> str:
    """
    Masks a secret for display, keeping only the last few characters.

    Args:
        value (str): The secret to mask.
        visible (int): Number of trailing characters kept visible.

    Returns:
        str: The masked secret, or "<unset>" when empty.
    """
    if not value:
        return "<unset>"
    if len(value) <= visible * 2:
        return REDACTED
    return f"{REDACTED}{value[-visible:]}"


class SecretRedactingFilter(logging.Filter):
    """Logging filter that rewrites every record message through redact()."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # malformed format args; let logging report it
            return True
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


#=======================================================================
# YAML Utilities
#=======================================================================

def dump_yaml(data) -> str:
    """Render data as block-style YAML for terminal output."""
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


#=======================================================================
# Path Utilities
#=======================================================================

def mask_path(path, base_dir=None):
    """
    Masks or simplifies a path for logging.

    Args:
        path (str): The full path to mask.
        base_dir (str, optional): The base directory to make the path relative to.

    Returns:
        str: The masked or simplified path.
    """
    path = Path(path)

    if base_dir is None:
        base_dir = os.getenv('PROJECT_DIR')

    if base_dir:
        try:
            return str(path.relative_to(Path(base_dir)))
        except ValueError:
            pass

    try:
        return f"~/{path.resolve().relative_to(Path.home())}"
    except ValueError:
        return str(path)


def write_private_file(path, data: bytes):
    """
    Write bytes to a file readable by the owner only (mode 600).

    The file is created with restrictive permissions, so its content is
    never exposed under the default umask. An existing file is truncated
    and its mode reset.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        if hasattr(os, "fchmod"):
            os.fchmod(handle.fileno(), 0o600)
        handle.write(data)


def assert_required_path(path, description="Path"):
    """
    Ensures that a required file or directory exists.

    Args:
        path (str): The path to check.
        description (str): Description of the resource for error messages.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    if not os.path.exists(path):
        logging.error(f"{description} not found at: {mask_path(path)}")
        raise FileNotFoundError(f"{description} not found: {path}")
