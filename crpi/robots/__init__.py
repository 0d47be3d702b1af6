from .backend import RobotBackend
from .canon import CanonReturn, CanonRobotAppendage, RobotAxes, RobotIO, RobotPose
from .chatterbox import RobotChatterboxBackend
from .errors import (
  CanonError,
  CapabilityNotSupportedError,
  CommandFailedError,
  GripperFaultError,
  MalformedFrameError,
  ModbusExceptionError,
  PreconditionError,
  RejectedError,
  TransportError,
  TransportTimeoutError,
  UnknownParameterError,
)
from .robot import Robot
