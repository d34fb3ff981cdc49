"""
Persistent Path Management for the Daily Picks Engine.

Path Layout:
  Windows:  %APPDATA%\\Picks_Engine\\
  macOS:    ~/Library/Application Support/Picks_Engine/
  Linux:    ~/.local/share/Picks_Engine/

Set PICKS_ENGINE_HOME to override the data root entirely.

Subdirectories:
  - exports/    -> card history workbooks
  - logs/       -> run.log
  - picks_engine.db (key-value store)
"""

import os
import sys
import logging
from pathlib import Path
from datetime import datetime


# ==============================================================================
# PERSISTENT DATA ROOT
# ==============================================================================

def get_data_root() -> Path:
    """
    Get the persistent data root directory for the application.

    Returns:
        Path to the app data directory (not created here)
    """
    override = os.getenv('PICKS_ENGINE_HOME')
    if override:
        return Path(override)

    if os.name == 'nt':
        appdata = os.getenv('APPDATA')
        if appdata:
            return Path(appdata) / 'Picks_Engine'
        return Path.home() / 'Documents' / 'Picks_Engine'
    elif sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / 'Picks_Engine'

    # Follow XDG Base Directory Specification
    xdg_data = os.getenv('XDG_DATA_HOME')
    if xdg_data:
        return Path(xdg_data) / 'Picks_Engine'
    return Path.home() / '.local' / 'share' / 'Picks_Engine'


def get_log_dir() -> Path:
    return get_data_root() / 'logs'


def get_export_dir() -> Path:
    return get_data_root() / 'exports'


def get_db_path() -> Path:
    """Default location of the SQLite key-value store."""
    return get_data_root() / 'picks_engine.db'


def ensure_dirs() -> Path:
    """Create the data root and its subdirectories. Returns the data root."""
    root = get_data_root()
    for _dir in [root, get_log_dir(), get_export_dir()]:
        _dir.mkdir(parents=True, exist_ok=True)
    return root


# ==============================================================================
# LOGGING SETUP
# ==============================================================================

def setup_file_logging(level: int = logging.INFO) -> logging.FileHandler:
    """
    Configure logging to write to the persistent run log.

    Attaches a file handler to the root logger so module loggers
    (logging.getLogger(__name__)) end up in run.log.
    """
    ensure_dirs()
    file_handler = logging.FileHandler(get_log_dir() / 'run.log', mode='a', encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)
    if root_logger.level > level or root_logger.level == logging.NOTSET:
        root_logger.setLevel(level)

    return file_handler


def startup_banner() -> str:
    """Diagnostic lines about where data and logs are written."""
    lines = [
        "=" * 60,
        f"Picks Engine Startup - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "=" * 60,
        f"  Data root: {get_data_root()}",
        f"  Database:  {get_db_path()}",
        f"  Log dir:   {get_log_dir()}",
    ]
    return "\n".join(lines)


__all__ = [
    'get_data_root',
    'get_log_dir',
    'get_export_dir',
    'get_db_path',
    'ensure_dirs',
    'setup_file_logging',
    'startup_banner',
]
