import argparse
import os
from functools import lru_cache
from pathlib import Path


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="textwire",
        description=(
            "Start a textwire server.\n\n"
            "textwire accepts concurrent TCP clients exchanging text messages\n"
            "terminated by the <<EOF>> delimiter and answers each message with\n"
            "the current time."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to an optional textwire configuration file (YAML)"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity for the server.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every connection, disconnection and framing event.\n"
            "INFO     → listener lifecycle (default).\n"
            "WARNING  → rejected clients, buffer overflows, failed writes.\n"
            "ERROR    → accept failures and handler errors.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    args, _ = parser.parse_known_args()
    return args


@lru_cache
def get_configfile() -> Path | None:
    """
    Locate the configuration file, if any.

    Priority: CLI > ENV > 'textwire.yaml' in the current working directory.
    The server runs on defaults when no file is found; a file named
    explicitly must exist.
    """
    args = get_cli_args()
    raw = args.config or os.getenv("TEXTWIRE_CONFIG")

    if raw is None:
        file = Path.cwd() / "textwire.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the TEXTWIRE_CONFIG environment variable\n"
            "  - Or place a 'textwire.yaml' file in the current working directory."
        )

    return file
