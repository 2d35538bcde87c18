# -*- coding: utf-8 -*-

"""
Environment configuration management.

Credentials are only ever read from the process environment. A .env file,
when present, is merged into it with python-dotenv; values already set in
the environment win.
"""

import os
import logging
from pathlib import Path
from typing import Optional
import dotenv

# Environment variables each service needs before a client can be built
REQUIRED_ENV_VARS = {
    "arm": ["AZURE_SUBSCRIPTION_ID", "AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"],
    "openai": ["AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT"],
    "translator": ["AZURE_TRANSLATOR_KEY", "AZURE_TRANSLATOR_REGION"],
    "content_safety": ["AZURE_CONTENT_SAFETY_ENDPOINT", "AZURE_CONTENT_SAFETY_KEY"],
    "storage": ["AZURE_STORAGE_ACCOUNT", "AZURE_STORAGE_KEY"],
}


def candidate_env_files(cwd: Optional[Path] = None) -> list[Path]:
    """
    Locations searched for a .env file, in priority order.

    The working directory comes first, then its parent, then the project
    root of a source checkout (the directory holding ``src/``).
    """
    cwd = Path(cwd or Path.cwd())
    project_root = Path(__file__).resolve().parents[4]
    return [
        cwd / '.env.local',
        cwd / '.env',
        cwd.parent / '.env',
        project_root / '.env.local',
        project_root / '.env',
    ]


def load_environment_variables(env_file: Optional[str] = None, verbose: bool = False) -> bool:
    """
    Load variables from one .env file into the process environment.

    Args:
        env_file: Explicit .env file. If None, the first existing file of
            candidate_env_files() is used.
        verbose: Log which file was loaded.

    Returns:
        True if a file was found and loaded, False otherwise.
    """
    if env_file:
        candidates = [Path(env_file)]
    else:
        candidates = candidate_env_files()

    for env_path in candidates:
        if env_path.is_file():
            dotenv.load_dotenv(env_path, override=False)
            if verbose:
                logging.debug(f"Loaded environment from: {env_path}")
            return True

    if env_file:
        logging.warning(f"Specified .env file not found: {env_file}")
    elif verbose:
        logging.debug("No .env file found in search paths")
    return False


def validate_required_env_vars(service: str = "arm") -> list:
    """
    Validate that required environment variables are set.

    Args:
        service: One of the keys of REQUIRED_ENV_VARS.

    Returns:
        List of missing environment variables (empty if all present)

    Raises:
        ValueError: If the service name is unknown.
    """
    if service not in REQUIRED_ENV_VARS:
        raise ValueError(f"Unknown service '{service}'. Expected one of: {', '.join(REQUIRED_ENV_VARS)}")
    return [name for name in REQUIRED_ENV_VARS[service] if not os.getenv(name)]


def setup_environment(verbose: bool = False, env_file: Optional[str] = None) -> bool:
    """
    Set up environment for the package.

    Args:
        verbose: Whether to log environment setup details
        env_file: Optional specific .env file to load

    Returns:
        True if a .env file was loaded
    """
    env_loaded = load_environment_variables(env_file, verbose)

    if verbose and not env_loaded:
        logging.debug("No .env file loaded. Relying on system environment variables.")
        for env_path in candidate_env_files():
            logging.debug(f"  - {env_path}")

    return env_loaded
