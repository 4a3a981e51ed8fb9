# src/tokenomy/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_LOADED = False


def load_dotenv_if_present(dotenv_path: Optional[str] = None) -> bool:
    """
    Load a .env file into the process environment, once per process.

    Path rules:
        1) If dotenv_path arg provided, use it.
        2) Else if TOKENOMY_DOTENV_PATH is set, use that.
        3) Else default to ".env" in current working directory.

    Existing environment variables win over file values.
    Returns True if a dotenv file was found AND loaded, else False.
    """
    global _LOADED
    if _LOADED:
        return False

    path_s = dotenv_path or os.getenv("TOKENOMY_DOTENV_PATH", ".env")
    path = Path(path_s).expanduser()

    if not path.exists() or not path.is_file():
        _LOADED = True
        return False

    load_dotenv(dotenv_path=str(path), override=False)
    _LOADED = True
    return True


def reset_dotenv_loaded_flag() -> None:
    """Test hook: allow load_dotenv_if_present() to run again."""
    global _LOADED
    _LOADED = False
