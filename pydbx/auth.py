"""Access token lookup for CLI commands."""

from typing import Any

from .config import config
from .output import OutputFormatter
from .utils import EXIT_FATAL


def require_token(ctx: Any, out: OutputFormatter) -> str:
    """Return the access token for a command, or exit if none is configured.

    The ``--token`` option wins over the environment and the config file.

    Args:
        ctx: Click context
        out: Output formatter for error messages

    Returns:
        The access token
    """
    token = ctx.obj.get("token") or config.access_token
    if not token:
        out.error("Access token not configured.")
        out.info(
            "Set PYDBX_ACCESS_TOKEN, pass --token, or add 'access_token' to "
            f"{config.get_config_path()}"
        )
        ctx.exit(EXIT_FATAL)
    return token
