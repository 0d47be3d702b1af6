from .constants import (
  Axis,
  GripMode,
  HandParameter,
  InitializationStatus,
  MotionStatus,
  ObjectDetection,
)
from .errors import describe_fault
from .link import RobotiqLink
from .profile import BUILTIN_PROFILES, GripperProfile, get_profile, load_profile
from .registers import AxisStatus, AxisTarget, CommandRegister, StatusRegister
from .robotiq_backend import RobotiqBackend
from .session import GripperSession, GripperState
from .simulated_client import SimulatedRobotiqClient
