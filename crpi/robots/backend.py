from abc import ABCMeta
from typing import Any, List, Optional

from crpi.machines.backend import MachineBackend
from crpi.robots.canon import CanonRobotAppendage, RobotAxes, RobotIO, RobotPose
from crpi.robots.errors import CapabilityNotSupportedError


class RobotBackend(MachineBackend, metaclass=ABCMeta):
  """Abstract base class for backends of the CRPI robot family.

  The interface is shared by arms, hands and mobile bases. A backend implements the subset that is
  meaningful for its hardware; every operation it does not override raises
  :class:`~crpi.robots.errors.CapabilityNotSupportedError`, which the frontend reports as a
  rejection.

  Operations that read robot state populate the object that is passed to them.
  """

  def _not_supported(self, operation: str):
    raise CapabilityNotSupportedError(operation=operation, robot=self.__class__.__name__)

  async def apply_cartesian_force_torque(
    self,
    force_torque: RobotPose,
    active_axes: List[bool],
    manipulator: List[bool],
  ):
    """Apply a Cartesian force/torque at the TCP, expressed in the robot base frame."""
    self._not_supported("apply_cartesian_force_torque")

  async def apply_joint_torque(self, joint_torques: RobotAxes):
    """Apply joint torques."""
    self._not_supported("apply_joint_torque")

  async def couple(self, target_id: str):
    """Dock with the object named `target_id`."""
    self._not_supported("couple")

  async def message(self, message: str):
    """Display a message on the operator console."""
    self._not_supported("message")

  async def move_straight_to(self, pose: RobotPose, use_blocking: bool = False):
    """Move in a straight line to `pose` and stop there."""
    self._not_supported("move_straight_to")

  async def move_through_to(
    self,
    poses: List[RobotPose],
    accelerations: Optional[List[RobotPose]] = None,
    speeds: Optional[List[RobotPose]] = None,
    tolerances: Optional[List[RobotPose]] = None,
  ):
    """Move through or near all but the last of `poses`, and stop at the last one."""
    self._not_supported("move_through_to")

  async def move_to(self, pose: RobotPose, use_blocking: bool = False):
    """Move along any convenient trajectory to `pose`."""
    self._not_supported("move_to")

  async def get_robot_axes(self, axes: RobotAxes):
    self._not_supported("get_robot_axes")

  async def get_robot_forces(self, forces: RobotPose):
    self._not_supported("get_robot_forces")

  async def get_robot_io(self, io: RobotIO):
    self._not_supported("get_robot_io")

  async def get_robot_pose(self, pose: RobotPose):
    self._not_supported("get_robot_pose")

  async def get_robot_speed(self, speed: RobotPose):
    self._not_supported("get_robot_speed")

  async def get_robot_joint_speeds(self, speeds: RobotAxes):
    self._not_supported("get_robot_joint_speeds")

  async def get_robot_torques(self, torques: RobotAxes):
    self._not_supported("get_robot_torques")

  async def move_attractor(self, pose: RobotPose):
    """Move the virtual attractor used for force control to `pose`."""
    self._not_supported("move_attractor")

  async def move_to_axis_target(self, axes: RobotAxes, use_blocking: bool = False):
    self._not_supported("move_to_axis_target")

  async def set_absolute_acceleration(self, acceleration: float):
    self._not_supported("set_absolute_acceleration")

  async def set_absolute_speed(self, speed: float):
    self._not_supported("set_absolute_speed")

  async def set_angle_units(self, unit_name: str):
    self._not_supported("set_angle_units")

  async def set_axial_speeds(self, speeds: List[float]):
    self._not_supported("set_axial_speeds")

  async def set_axial_units(self, unit_names: List[str]):
    self._not_supported("set_axial_units")

  async def set_end_pose_tolerance(self, tolerance: RobotPose):
    self._not_supported("set_end_pose_tolerance")

  async def set_intermediate_pose_tolerance(self, tolerances: List[RobotPose]):
    self._not_supported("set_intermediate_pose_tolerance")

  async def set_length_units(self, unit_name: str):
    self._not_supported("set_length_units")

  async def set_parameter(self, name: str, value: Any):
    """Set a robot-specific parameter. The backend interprets `value`."""
    self._not_supported("set_parameter")

  async def set_relative_acceleration(self, percent: float):
    self._not_supported("set_relative_acceleration")

  async def set_relative_speed(self, percent: float):
    self._not_supported("set_relative_speed")

  async def set_robot_io(self, io: RobotIO):
    self._not_supported("set_robot_io")

  async def set_robot_do(self, index: int, value: bool):
    self._not_supported("set_robot_do")

  async def set_tool(self, percent: float):
    """Set the attached tool to `percent` (in [0, 1]) of its maximum output."""
    self._not_supported("set_tool")

  async def stop_motion(self, condition: int = 2):
    """Stop motion according to stop category `condition` (0, 1 or 2)."""
    self._not_supported("stop_motion")

  async def move_base(self, to: RobotPose):
    self._not_supported("move_base")

  async def point_head(self, to: RobotPose):
    self._not_supported("point_head")

  async def point_appendage(self, appendage: CanonRobotAppendage, to: RobotPose):
    self._not_supported("point_appendage")
