import datetime
import logging
from pathlib import Path
from typing import Optional, Union

from crpi.__version__ import __version__
from crpi.config import Config, load_config

CONFIG_FILE_NAME = "crpi"

CONFIG = load_config(CONFIG_FILE_NAME, create_default=False)


def project_root() -> Path:
  """Get the root directory of the project."""
  return Path(__file__).parent.parent


def setup_logger(log_dir: Optional[Union[Path, str]], level: int):
  """
  Set up the logger for crpi. If the log_dir does not exist, it will be created.

  Args:
    log_dir: The directory to store the log files. If None, no log files will be created.
    level: The logging level.
  """
  if log_dir is not None:
    if isinstance(log_dir, str):
      log_dir = Path(log_dir)
    if not log_dir.exists():
      log_dir.mkdir(parents=True)
  logger = logging.getLogger("crpi")
  logger.setLevel(level)

  now = datetime.datetime.now().strftime("%Y%m%d")
  # handlers from a previous call are replaced, not stacked
  if len(logger.handlers) > 0:
    for handler in logger.handlers:
      handler.close()
    logger.handlers.clear()

  if log_dir is not None:
    fh = logging.FileHandler(log_dir / f"crpi-{now}.log")
    fh.setLevel(logging.NOTSET)  # logs everything it receives, but the logger level can filter
    fh.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(fh)


def configure(cfg: Config):
  """Configure crpi."""
  setup_logger(cfg.logging.log_dir, cfg.logging.level)


configure(CONFIG)
