"""
Environment variable loading utility.

This module provides functions to load environment variables from files.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _parse_line(line):
    """Split a 'KEY=VALUE' line, or return None for blanks, comments and junk."""
    line = line.strip()
    if not line or line.startswith('#') or '=' not in line:
        return None
    if line.startswith('export '):
        line = line[len('export '):]

    key, value = line.split('=', 1)
    key = key.strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    if not key:
        return None
    return key, value


def load_env_from_file(file_path, override=False):
    """
    Load environment variables from a file.

    Variables already present in the environment win unless ``override`` is set,
    so a deployment can always pin a value from the outside.

    Args:
        file_path: Path to the environment variable file.
        override: Replace variables that are already set.

    Returns:
        True if file was loaded successfully, False otherwise.
    """
    if not os.path.exists(file_path):
        logger.warning(f"Environment file not found: {file_path}")
        return False

    try:
        with open(file_path, 'r') as f:
            loaded = 0
            for line in f:
                parsed = _parse_line(line)
                if parsed is None:
                    continue
                key, value = parsed
                if override or key not in os.environ:
                    os.environ[key] = value
                    loaded += 1
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error loading environment variables from {file_path}: {str(e)}")
        return False

    logger.info(f"Loaded {loaded} environment variables from {file_path}")
    return True
