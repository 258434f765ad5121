"""Terminal output helpers for the CRUD generator CLI and handlers."""

import os


class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'


def _paint(color: str, msg: str) -> str:
    """Wrap msg in color codes unless NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return msg
    return f"{color}{msg}{Colors.ENDC}"


def print_header(msg: str) -> None:
    """Print a header message."""
    print(_paint(Colors.HEADER + Colors.BOLD, msg))


def print_info(msg: str) -> None:
    """Print an info message."""
    print(_paint(Colors.CYAN, msg))


def print_dim(msg: str) -> None:
    """Print a de-emphasized detail line."""
    print(_paint(Colors.DIM, msg))


def print_success(msg: str) -> None:
    """Print a success message."""
    print(_paint(Colors.GREEN, f"✓ {msg}"))


def print_warning(msg: str) -> None:
    """Print a warning message."""
    print(_paint(Colors.YELLOW, f"⚠️  {msg}"))


def print_error(msg: str) -> None:
    """Print an error message."""
    print(_paint(Colors.RED, f"❌ {msg}"))
