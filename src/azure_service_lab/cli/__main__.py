"""
CLI entry point for Azure Service Lab.

Logging and the redaction filter are installed before anything else so
that .env discovery (and any warning it produces) already goes through
them; then the click application takes over.
"""

import sys
import logging


def __early_flags(argv):
    """
    Peek at the global flags before click parses them.

    Returns:
        tuple: (verbose, quiet, env_file)
    """
    verbose = quiet = False
    env_file = None
    for position, arg in enumerate(argv):
        if arg in ('-v', '--verbose'):
            verbose = True
        elif arg in ('-q', '--quiet'):
            quiet = True
        elif arg.startswith('-') and not arg.startswith('--') and set(arg[1:]) <= {'v', 'q'}:
            verbose = verbose or 'v' in arg
            quiet = quiet or 'q' in arg
        elif arg == '--env-file' and position + 1 < len(argv):
            env_file = argv[position + 1]
        elif arg.startswith('--env-file='):
            env_file = arg.split('=', 1)[1]
    return verbose, quiet, env_file


def __setup_main_logging(verbose=False, quiet=False):
    """Configure root logging (with secret redaction) for the whole process."""
    from .utils import setup_logging
    setup_logging(verbose=verbose, quiet=quiet)


def __setup_cli_environment(verbose=False, env_file=None):
    """
    Discover a .env file unless one was named explicitly.

    An explicit --env-file is loaded by the root command group, which also
    fails the run when the file is missing.
    """
    logger = logging.getLogger(__name__)
    if env_file:
        logger.debug(f"Deferring environment loading to --env-file {env_file}")
        return

    from ..core.utils.environment import setup_environment, validate_required_env_vars
    try:
        setup_environment(verbose=verbose)
    except OSError as e:
        # Variables may still be set system-wide
        logger.warning(f"Environment setup failed: {e}")
        return

    missing = validate_required_env_vars("arm")
    if missing:
        logger.debug(f"Resource Manager variables not set: {', '.join(missing)}")


def main(argv=None):
    """Run the ``azlab`` command line."""
    argv = sys.argv[1:] if argv is None else list(argv)
    verbose, quiet, env_file = __early_flags(argv)

    __setup_main_logging(verbose=verbose, quiet=quiet)
    __setup_cli_environment(verbose=verbose, env_file=env_file)

    logger = logging.getLogger(__name__)
    try:
        from .cli import cli
        cli.main(args=argv, prog_name='azlab')
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
