import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

LOG_FROM_STRING = {
  "DEBUG": logging.DEBUG,
  "INFO": logging.INFO,
  "WARNING": logging.WARNING,
  "ERROR": logging.ERROR,
  "CRITICAL": logging.CRITICAL,
}

LOG_TO_STRING = {v: k for k, v in LOG_FROM_STRING.items()}


@dataclass
class Config:
  """The configuration object for crpi."""

  @dataclass
  class Logging:
    """The logging configuration."""

    level: int = logging.INFO
    log_dir: Optional[Path] = None

  @dataclass
  class Gripper:
    """Session defaults for gripper backends.

    Attributes:
      profile: name of the gripper profile applied on activation.
      profile_file: JSON or INI file to look the profile up in. Built-in profiles are used if None.
      keepalive_interval: seconds between two keepalive cycles.
      timeout: seconds to wait for an acknowledgement or a status frame.
    """

    profile: str = "basic"
    profile_file: Optional[Path] = None
    keepalive_interval: float = 0.2
    timeout: float = 1.0

  logging: Logging = field(default_factory=Logging)
  gripper: Gripper = field(default_factory=Gripper)

  @classmethod
  def from_dict(cls, d: dict) -> "Config":
    gripper = d.get("gripper", {})
    return cls(
      logging=cls.Logging(
        level=LOG_FROM_STRING[d["logging"]["level"]],
        log_dir=Path(d["logging"]["log_dir"]) if d["logging"].get("log_dir") else None,
      ),
      gripper=cls.Gripper(
        profile=gripper.get("profile", cls.Gripper.profile),
        profile_file=Path(gripper["profile_file"]) if gripper.get("profile_file") else None,
        keepalive_interval=float(gripper.get("keepalive_interval",
                                             cls.Gripper.keepalive_interval)),
        timeout=float(gripper.get("timeout", cls.Gripper.timeout)),
      ),
    )

  @property
  def as_dict(self) -> dict:
    return {
      "logging": {
        "level": LOG_TO_STRING[self.logging.level],
        "log_dir": str(self.logging.log_dir) if self.logging.log_dir is not None else None,
      },
      "gripper": {
        "profile": self.gripper.profile,
        "profile_file": str(self.gripper.profile_file)
          if self.gripper.profile_file is not None else None,
        "keepalive_interval": self.gripper.keepalive_interval,
        "timeout": self.gripper.timeout,
      },
    }
