from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional


def configure_logging(config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging for the application.

    Establishes an early NOTSET basic config so the server config can be
    read, then reconfigures the root logger to the level named by
    `log_level` in that file (WARNING when absent or unreadable). Returns
    a module logger for the caller.
    """
    # Minimal early config so other imports can emit without error
    logging.basicConfig(level=logging.NOTSET, format='%(asctime)s INFO %(message)s')
    DEFAULT_LOG_LEVEL = logging.WARNING

    cfg_path = config_path or Path('data/config/server_config.yml')
    if cfg_path.exists():
        try:
            with cfg_path.open('r', encoding='utf-8') as _f:
                _cfg = yaml.safe_load(_f) or {}
                _lvl = _cfg.get('log_level')
                if isinstance(_lvl, str):
                    _numeric = getattr(logging, _lvl.upper(), None)
                    if isinstance(_numeric, int):
                        DEFAULT_LOG_LEVEL = _numeric
        except (OSError, yaml.YAMLError, AttributeError):
            # If config parse fails, fall back to default level
            DEFAULT_LOG_LEVEL = logging.WARNING

    logging.log(100, f'[flow]: Log level set to: {logging.getLevelName(DEFAULT_LOG_LEVEL)}')

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=DEFAULT_LOG_LEVEL, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logger = logging.getLogger(__name__)

    # Keep the cloud client's HTTP stack quiet by default
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('hpack').setLevel(logging.WARNING)
    logging.getLogger('postgrest').setLevel(logging.WARNING)
    logging.getLogger('supabase').setLevel(logging.WARNING)
    logger.info("Starting Flow storage server")

    return logger
