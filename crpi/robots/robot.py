import functools
import logging
from typing import Any, Awaitable, Callable, List, Optional

from crpi.machines.machine import Machine
from crpi.robots.backend import RobotBackend
from crpi.robots.canon import CanonReturn, CanonRobotAppendage, RobotAxes, RobotIO, RobotPose
from crpi.robots.errors import CommandFailedError, RejectedError

logger = logging.getLogger(__name__)


def canon_return(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[CanonReturn]]:
  """Decorator that runs a robot operation and reports its outcome as a `CanonReturn`.

  Rejections (including calls before `setup`) become `REJECT`, failed commands become `FAILURE`.
  Any other exception is a programming error and propagates.
  """

  @functools.wraps(func)
  async def wrapper(self: "Robot", *args, **kwargs) -> CanonReturn:
    if not self.setup_finished:
      logger.warning("%s rejected: the setup has not finished", func.__name__)
      return CanonReturn.REJECT
    try:
      await func(self, *args, **kwargs)
    except RejectedError as e:
      logger.warning("%s rejected: %s", func.__name__, e)
      return CanonReturn.REJECT
    except CommandFailedError as e:
      logger.error("%s failed: %s", func.__name__, e)
      return CanonReturn.FAILURE
    return CanonReturn.SUCCESS

  return wrapper


class Robot(Machine):
  """Frontend for a robot of the CRPI family.

  Every operation returns :class:`CanonReturn.SUCCESS` if the command was accepted and executed,
  :class:`CanonReturn.REJECT` if it was not accepted, and :class:`CanonReturn.FAILURE` if it was
  accepted but not executed successfully. Operations that read robot state populate the object that
  is passed to them.

  Example:
    >>> from crpi.robots.robotiq import RobotiqBackend
    >>> async with Robot(backend=RobotiqBackend(host="192.168.1.11")) as hand:
    ...   await hand.set_parameter("ACTIVATE", True)
    ...   await hand.set_tool(1.0)
  """

  def __init__(self, backend: RobotBackend):
    super().__init__(backend=backend)
    self.backend: RobotBackend = backend  # fix type

  @canon_return
  async def apply_cartesian_force_torque(
    self,
    force_torque: RobotPose,
    active_axes: List[bool],
    manipulator: List[bool],
  ):
    await self.backend.apply_cartesian_force_torque(force_torque, active_axes, manipulator)

  @canon_return
  async def apply_joint_torque(self, joint_torques: RobotAxes):
    await self.backend.apply_joint_torque(joint_torques)

  @canon_return
  async def couple(self, target_id: str):
    await self.backend.couple(target_id)

  @canon_return
  async def message(self, message: str):
    await self.backend.message(message)

  @canon_return
  async def move_straight_to(self, pose: RobotPose, use_blocking: bool = False):
    await self.backend.move_straight_to(pose, use_blocking=use_blocking)

  @canon_return
  async def move_through_to(
    self,
    poses: List[RobotPose],
    accelerations: Optional[List[RobotPose]] = None,
    speeds: Optional[List[RobotPose]] = None,
    tolerances: Optional[List[RobotPose]] = None,
  ):
    for name, values in (("accelerations", accelerations), ("speeds", speeds),
                         ("tolerances", tolerances)):
      if values is not None and len(values) != len(poses):
        raise RejectedError(f"len({name}) must be equal to len(poses)")
    await self.backend.move_through_to(poses, accelerations, speeds, tolerances)

  @canon_return
  async def move_to(self, pose: RobotPose, use_blocking: bool = False):
    await self.backend.move_to(pose, use_blocking=use_blocking)

  @canon_return
  async def get_robot_axes(self, axes: RobotAxes):
    await self.backend.get_robot_axes(axes)

  @canon_return
  async def get_robot_forces(self, forces: RobotPose):
    await self.backend.get_robot_forces(forces)

  @canon_return
  async def get_robot_io(self, io: RobotIO):
    await self.backend.get_robot_io(io)

  @canon_return
  async def get_robot_pose(self, pose: RobotPose):
    await self.backend.get_robot_pose(pose)

  @canon_return
  async def get_robot_speed(self, speed: RobotPose):
    await self.backend.get_robot_speed(speed)

  @canon_return
  async def get_robot_joint_speeds(self, speeds: RobotAxes):
    await self.backend.get_robot_joint_speeds(speeds)

  @canon_return
  async def get_robot_torques(self, torques: RobotAxes):
    await self.backend.get_robot_torques(torques)

  @canon_return
  async def move_attractor(self, pose: RobotPose):
    await self.backend.move_attractor(pose)

  @canon_return
  async def move_to_axis_target(self, axes: RobotAxes, use_blocking: bool = False):
    await self.backend.move_to_axis_target(axes, use_blocking=use_blocking)

  @canon_return
  async def set_absolute_acceleration(self, acceleration: float):
    await self.backend.set_absolute_acceleration(acceleration)

  @canon_return
  async def set_absolute_speed(self, speed: float):
    await self.backend.set_absolute_speed(speed)

  @canon_return
  async def set_angle_units(self, unit_name: str):
    await self.backend.set_angle_units(unit_name)

  @canon_return
  async def set_axial_speeds(self, speeds: List[float]):
    await self.backend.set_axial_speeds(speeds)

  @canon_return
  async def set_axial_units(self, unit_names: List[str]):
    await self.backend.set_axial_units(unit_names)

  @canon_return
  async def set_end_pose_tolerance(self, tolerance: RobotPose):
    await self.backend.set_end_pose_tolerance(tolerance)

  @canon_return
  async def set_intermediate_pose_tolerance(self, tolerances: List[RobotPose]):
    await self.backend.set_intermediate_pose_tolerance(tolerances)

  @canon_return
  async def set_length_units(self, unit_name: str):
    await self.backend.set_length_units(unit_name)

  @canon_return
  async def set_parameter(self, name: str, value: Any):
    await self.backend.set_parameter(name, value)

  @canon_return
  async def set_relative_acceleration(self, percent: float):
    await self.backend.set_relative_acceleration(percent)

  @canon_return
  async def set_relative_speed(self, percent: float):
    await self.backend.set_relative_speed(percent)

  @canon_return
  async def set_robot_io(self, io: RobotIO):
    await self.backend.set_robot_io(io)

  @canon_return
  async def set_robot_do(self, index: int, value: bool):
    await self.backend.set_robot_do(index, value)

  @canon_return
  async def set_tool(self, percent: float):
    await self.backend.set_tool(percent)

  @canon_return
  async def stop_motion(self, condition: int = 2):
    await self.backend.stop_motion(condition)

  @canon_return
  async def move_base(self, to: RobotPose):
    await self.backend.move_base(to)

  @canon_return
  async def point_head(self, to: RobotPose):
    await self.backend.point_head(to)

  @canon_return
  async def point_appendage(self, appendage: CanonRobotAppendage, to: RobotPose):
    await self.backend.point_appendage(appendage, to)
