# -*- coding: utf-8 -*-

import logging
from contextlib import contextmanager

import click
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from ..core.transport.errors import AzureLabError, HTTPError, OperationFailed
from ..core.utils.misc import SecretRedactingFilter, dump_yaml
from ..core.utils.settings import AzureSettings
from ..core.transport.models import to_wire


def setup_logging(verbose=False, quiet=False):
    """Configure logging for CLI execution."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True  # Override any existing configuration
    )
    install_redaction_filter()

    # Reduce noise from external libraries in non-verbose mode
    if not verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("openai").setLevel(logging.WARNING)
        logging.getLogger("azure").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("kubernetes").setLevel(logging.WARNING)

    if verbose:
        logger = logging.getLogger(__name__)
        logger.debug("CLI logging setup completed")


def install_redaction_filter(logger: logging.Logger | None = None):
    """Attach a SecretRedactingFilter to every handler of the logger (root by default)."""
    logger = logger or logging.getLogger()
    for handler in logger.handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(SecretRedactingFilter())


def _validate_positive_integer_callback(ctx, param, value):
    """Validate that the provided value is a positive integer."""
    if value is not None and value <= 0:
        raise click.BadParameter("Value must be a positive integer.")
    return value


def _validate_positive_number_callback(ctx, param, value):
    if value is not None and value <= 0:
        raise click.BadParameter("Value must be a positive number.")
    return value


#=======================================================================
# Context Utilities
#=======================================================================

def _get_settings(ctx) -> AzureSettings:
    """Settings loaded by the root group (or injected by the caller)."""
    settings = ctx.obj.get('settings')
    if settings is None:
        settings = AzureSettings.from_env()
        ctx.obj['settings'] = settings
    return settings


def _confirm_deletion(what: str, yes: bool):
    """
    Ask the user to type 'confirm' before deleting something.

    Aborts the command unless the exact word is typed or --yes was given.
    """
    if yes:
        return
    logging.warning(f"This will permanently delete {what} and all its data.")
    answer = click.prompt("Type 'confirm' to proceed", default="", show_default=False)
    if answer.strip() != "confirm":
        logging.info("Deletion cancelled.")
        raise SystemExit(0)


#=======================================================================
# Error Reporting
#=======================================================================

@contextmanager
def _reported_errors(action: str):
    """
    Log any service error with its full diagnostic data and exit with status 1.

    HTTP errors (Azure or the Kubernetes API server) are reported with status
    code and raw body, failed operations with the server's failure detail.
    """
    try:
        yield
    except HTTPError as e:
        logging.error(f"{action} failed with HTTP {e.status}: {e.body}")
        raise SystemExit(1)
    except ApiException as e:
        logging.error(f"{action} failed with HTTP {e.status} ({e.reason}): {e.body}")
        raise SystemExit(1)
    except ConfigException as e:
        logging.error(f"{action} failed: invalid kubeconfig: {e}")
        raise SystemExit(1)
    except OperationFailed as e:
        logging.error(f"{action} failed: {e.detail}")
        raise SystemExit(1)
    except AzureLabError as e:
        logging.error(f"{action} failed: {e}")
        raise SystemExit(1)
    except ValueError as e:
        logging.error(f"{action}: {e}")
        raise SystemExit(1)


#=======================================================================
# Output Utilities
#=======================================================================

def _echo_yaml(data):
    """Print models (or plain data) as YAML on stdout."""
    click.echo(dump_yaml(to_wire(data)).rstrip())
