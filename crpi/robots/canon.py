"""Value types shared by every robot of the CRPI family.

Grippers only ever read or write `RobotIO`; poses and axes exist so that the arm-only part of the
surface can be expressed, and rejected, with the same signatures.
"""

import enum
from dataclasses import dataclass, field
from typing import List


class CanonReturn(enum.Enum):
  """Outcome of every public robot operation."""

  SUCCESS = "success"  # accepted and executed
  REJECT = "reject"  # not accepted: not applicable, or a precondition is not met
  FAILURE = "failure"  # accepted, but not executed successfully


class CanonRobotAppendage(enum.IntEnum):
  HEAD = 0
  LEFT_ARM = 1
  RIGHT_ARM = 2


@dataclass
class RobotPose:
  x: float = 0.0
  y: float = 0.0
  z: float = 0.0
  xrot: float = 0.0
  yrot: float = 0.0
  zrot: float = 0.0


@dataclass
class RobotAxes:
  axes: List[float] = field(default_factory=list)


@dataclass
class RobotIO:
  """Digital and analog I/O of a robot.

  Attributes:
    dio: digital inputs.
    do: digital outputs.
    ai: analog inputs.
    ao: analog outputs.
  """

  dio: List[bool] = field(default_factory=list)
  do: List[bool] = field(default_factory=list)
  ai: List[float] = field(default_factory=list)
  ao: List[float] = field(default_factory=list)
