import asyncio
import functools
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

from pymodbus.client import AsyncModbusTcpClient  # type: ignore

import crpi
from crpi.robots.backend import RobotBackend
from crpi.robots.canon import RobotIO
from crpi.robots.errors import (
  PreconditionError,
  RejectedError,
  TransportError,
  UnknownParameterError,
)
from crpi.robots.robotiq.constants import (
  ACT_BIT,
  ACTION_REQUEST_BITS,
  ATR_BIT,
  DEFAULT_PORT,
  DEFAULT_UNIT_ID,
  GTO_BIT,
  MAX_VALUE,
  MODE_SHIFT,
  Axis,
  GripMode,
  HandParameter,
)
from crpi.robots.robotiq.errors import fault_error
from crpi.robots.robotiq.link import RobotiqLink
from crpi.robots.robotiq.profile import GripperProfile, get_profile, parse_bool, parse_mode
from crpi.robots.robotiq.registers import CommandRegister, StatusRegister
from crpi.robots.robotiq.session import GripperSession, GripperState

logger = logging.getLogger(__name__)

_AXIS_SETTINGS = ("position", "speed", "force")


def _bits(byte: int) -> List[bool]:
  return [bool((byte >> i) & 1) for i in range(8)]


def _check_percent(name: str, percent: float):
  if not 0 <= percent <= 1:
    raise RejectedError(f"{name} must be in [0, 1], got {percent}")


class RobotiqBackend(RobotBackend):
  """Backend for the Robotiq three-finger adaptive gripper, controlled over Modbus/TCP.

  The gripper implements the hand subset of the robot interface: the tool, digital I/O, parameters
  and stopping. Every other operation is rejected.

  A keepalive task re-sends the command register and reads the status register every
  `keepalive_interval` seconds, so that the device watchdog is satisfied and the cached status
  stays fresh. Foreground operations run the same cycle once: they stage a change, send it, and
  read the status back. They do not wait for motions to complete; use :meth:`refresh` and
  :attr:`state` for that.

  Parameters understood by :meth:`set_parameter` (case-insensitive, or by number):

  ============================ ===================================================
  ACTIVATE (1)                 activate (true) or deactivate (false) the gripper
  GRIP (2)                     grip mode: "basic", "pinch", "wide" or "scissor"
  MOVE (3)                     move the fingers to a position in [0, 255]
  AUTO_RELEASE (4)             start (true) or end (false) an automatic release
  AUTO_CENTER (5)              automatic centering on or off
  ADVANCED_CONTROL (6)         individual control of fingers A, B and C on or off
  SCISSOR_CONTROL (7)          individual control of the scissor axis on or off
  POSITION_FINGER_A ...        position, speed or force of one axis, e.g. SPEED_SCISSOR
  ============================ ===================================================

  Example:
    >>> from crpi.robots import Robot
    >>> from crpi.robots.robotiq import RobotiqBackend
    >>> hand = Robot(backend=RobotiqBackend(host="192.168.1.11"))
    >>> await hand.setup()
    >>> await hand.set_parameter("ACTIVATE", True)
    >>> await hand.set_tool(1.0)  # close
  """

  def __init__(
    self,
    host: Optional[str] = None,
    port: int = DEFAULT_PORT,
    unit_id: int = DEFAULT_UNIT_ID,
    profile: Optional[Union[str, GripperProfile]] = None,
    profile_file: Optional[Union[str, Path]] = None,
    keepalive_interval: Optional[float] = None,
    timeout: Optional[float] = None,
    client: Optional[AsyncModbusTcpClient] = None,
  ):
    """
    Args:
      host: host name or IP address of the gripper. Not used if `client` is given.
      port: Modbus/TCP port.
      unit_id: Modbus unit id of the gripper.
      profile: a profile, or the name of one. Defaults to `crpi.CONFIG.gripper.profile`.
      profile_file: JSON or INI file to look up a named profile in. Defaults to
        `crpi.CONFIG.gripper.profile_file`; built-in profiles are used if neither is set.
      keepalive_interval: seconds between keepalive cycles.
      timeout: seconds to wait for each response from the gripper.
      client: Modbus client to use instead of connecting to `host`, e.g. a
        :class:`SimulatedRobotiqClient`.
    """

    super().__init__()
    defaults = crpi.CONFIG.gripper

    self.host = host
    self.port = port
    self.unit_id = unit_id
    self.timeout = timeout if timeout is not None else defaults.timeout
    self.keepalive_interval = keepalive_interval if keepalive_interval is not None \
      else defaults.keepalive_interval
    if self.keepalive_interval <= 0:
      raise ValueError("keepalive_interval must be positive")

    if profile is None:
      profile = defaults.profile
      if profile_file is None:
        profile_file = defaults.profile_file
    self.profile_file = Path(profile_file) if profile_file is not None else None
    if isinstance(profile, GripperProfile):
      self.profile = profile
    else:
      self.profile = get_profile(profile, self.profile_file)

    self.link = RobotiqLink(host=host, port=port, unit_id=unit_id, timeout=self.timeout,
                            client=client)
    self.session = GripperSession(self.profile)

    self._keepalive_task: Optional[asyncio.Task] = None
    self._stop_event: Optional[asyncio.Event] = None

  @property
  def state(self) -> GripperState:
    return self.session.state

  def get_status(self) -> Optional[StatusRegister]:
    """The last status register read from the gripper, or None before the first read."""
    return self.session.status

  async def setup(self):
    """Connect, read the status and start the keepalive task. A gripper that is already activated
    is taken over as it is; otherwise it stays deactivated until :meth:`activate`."""

    try:
      await self.link.connect()
      status = await self.link.poll()
    except TransportError:
      self.link.close()
      raise
    if status.activation_complete and not status.faulted:
      self.session.adopt(status)
    else:
      self.session.apply_status(status)

    self._stop_event = asyncio.Event()
    self._keepalive_task = asyncio.create_task(self._keepalive())

  async def stop(self):
    """Stop the keepalive task, wait for it to exit and then close the connection. The connection
    is closed even if the task ended with an error, but not while a foreground operation uses it."""

    if self._keepalive_task is not None:
      assert self._stop_event is not None
      self._stop_event.set()
      try:
        await self._keepalive_task
      except Exception as e:
        logger.error("Keepalive task ended with an error: %r", e)
      self._keepalive_task = None
      self._stop_event = None
    async with self.session.lock:
      self.link.close()

  async def _keepalive(self):
    assert self._stop_event is not None
    while not self._stop_event.is_set():
      try:
        async with self.session.lock:
          await self._cycle(self.session.command, raise_on_fault=False)
      except TransportError as e:
        logger.warning("Keepalive cycle failed: %s", e)
      try:
        await asyncio.wait_for(self._stop_event.wait(), timeout=self.keepalive_interval)
      except asyncio.TimeoutError:
        pass
    logger.debug("Keepalive task stopped")

  async def _cycle(self, command: CommandRegister, raise_on_fault: bool = True) -> StatusRegister:
    """Send `command`, read the status back and update the session. Must be called with the session
    lock held. The session only learns about `command` once the gripper acknowledged it."""

    await self.link.transmit(command)
    self.session.commit(command)
    status = await self.link.poll()
    self.session.apply_status(status)
    if raise_on_fault and status.faulted:
      raise fault_error(status.fault)
    return status

  async def _update(
    self,
    operation: str,
    stage: Callable[[CommandRegister], CommandRegister],
    require_active: bool = True,
    raise_on_fault: bool = True,
  ):
    """Stage a change of the command register and run one cycle with it."""
    async with self.session.lock:
      if require_active:
        self.session.require_active(operation)
      try:
        staged = stage(self.session.command)
      except ValueError as e:
        raise RejectedError(f"{operation} rejected: {e}") from e
      await self._cycle(staged, raise_on_fault=raise_on_fault)

  async def refresh(self) -> StatusRegister:
    """Run one cycle without changing the command register, and return the status read."""
    async with self.session.lock:
      return await self._cycle(self.session.command, raise_on_fault=False)

  # gripper operations

  async def activate(self, on: bool = True):
    """Activate the gripper with the settings of the profile, or deactivate it.

    Deactivating always succeeds, also while the gripper is faulted; deactivating and activating
    again is how a fault is reset. Activation is confirmed by a later status read, until then the
    gripper is :attr:`GripperState.ACTIVATING`.
    """

    if not on:
      await self._update(
        "deactivate",
        lambda command: command.with_flags(activate=False, go_to=False, auto_release=False),
        require_active=False,
        raise_on_fault=False,
      )
      return

    def stage(command: CommandRegister) -> CommandRegister:
      if command.activate:
        if self.session.state == GripperState.FAULTED:
          raise PreconditionError("The gripper is faulted. Deactivate it before activating it.")
        return command
      return self.profile.apply(CommandRegister(activate=True))

    await self._update("activate", stage, require_active=False)

  async def set_grip_mode(self, mode: Union[GripMode, int, str]):
    try:
      grip_mode = parse_mode(mode)
    except ValueError as e:
      raise RejectedError(str(e)) from e
    await self._update("set_grip_mode", lambda command: command.with_flags(mode=grip_mode))

  async def move(self, position: Optional[Union[int, float]] = None):
    """Move the fingers to `position` (0 is open, 255 is closed), or to the staged targets if
    `position` is None. Out of range positions are saturated."""

    def stage(command: CommandRegister) -> CommandRegister:
      if position is not None:
        command = command.with_fingers(position=position)
      return command.with_flags(go_to=True)

    await self._update("move", stage)

  async def set_auto_release(self, on: bool = True):
    """Start (or end) an automatic release: the fingers open slowly, whatever the target. Allowed in
    every state, including faulted."""
    await self._update("set_auto_release",
                       lambda command: command.with_flags(auto_release=on),
                       require_active=False, raise_on_fault=False)

  async def set_auto_center(self, on: bool):
    await self._update("set_auto_center", lambda command: command.with_flags(auto_center=on))

  async def set_advanced_control(self, on: bool):
    """Control fingers A, B and C individually."""
    await self._update("set_advanced_control",
                       lambda command: command.with_flags(individual_finger_control=on))

  async def set_scissor_control(self, on: bool):
    """Control the scissor axis individually."""
    await self._update("set_scissor_control",
                       lambda command: command.with_flags(individual_scissor_control=on))

  async def set_position(self, axis: Axis, position: Union[int, float]):
    await self._update("set_position",
                       lambda command: command.with_target(Axis(axis), position=position))

  async def set_speed(self, axis: Axis, speed: Union[int, float]):
    await self._update("set_speed", lambda command: command.with_target(Axis(axis), speed=speed))

  async def set_force(self, axis: Axis, force: Union[int, float]):
    await self._update("set_force", lambda command: command.with_target(Axis(axis), force=force))

  # robot interface

  async def message(self, message: str):
    logger.info("Message: %s", message)

  async def set_tool(self, percent: float):
    """Close the gripper to `percent` (0 is open, 1 is closed) of the position range of the current
    grip mode."""

    _check_percent("percent", percent)

    def stage(command: CommandRegister) -> CommandRegister:
      position = self.profile.position_for(command.mode, percent)
      return command.with_fingers(position=position).with_flags(go_to=True)

    await self._update("set_tool", stage)

  async def set_relative_speed(self, percent: float):
    """Set the speed of every axis to `percent` of the maximum speed."""

    _check_percent("percent", percent)

    def stage(command: CommandRegister) -> CommandRegister:
      for axis in Axis:
        command = command.with_target(axis, speed=percent * MAX_VALUE)
      return command

    await self._update("set_relative_speed", stage)

  async def stop_motion(self, condition: int = 2):
    """Stop the fingers where they are by clearing the go-to bit. All stop categories are handled
    the same way."""
    if condition not in (0, 1, 2):
      raise RejectedError(f"Stop category must be 0, 1 or 2, got {condition}")
    await self._update("stop_motion", lambda command: command.with_flags(go_to=False),
                       require_active=False, raise_on_fault=False)

  async def get_robot_io(self, io: RobotIO):
    """Read the gripper I/O.

    - `dio`: the 8 bits of the gripper status byte (gACT, gMOD, gGTO, gIMC, gSTA).
    - `do`: the 8 bits of the action request byte (rACT, rMOD, rGTO, rATR).
    - `ai`: positions of finger A, B, C and the scissor axis, scaled to [0, 1].
    """

    status = self.session.status
    if status is None:
      raise PreconditionError("No status has been read from the gripper yet")
    io.dio = _bits(status.gripper_status)
    io.do = _bits(self.session.command.action_request)
    io.ai = [status.axis(axis).position / MAX_VALUE for axis in Axis]

  async def set_robot_do(self, index: int, value: bool):
    """Set one bit of the action request byte: 0 activates, 1 and 2 select the grip mode, 3 starts
    or stops a motion and 4 starts or ends an automatic release. The other bits are reserved."""

    if not 0 <= index < 8:
      raise RejectedError(f"No digital output {index}")
    if index not in ACTION_REQUEST_BITS:
      raise RejectedError(f"Digital output {index} is reserved")

    if index == ACT_BIT:
      await self.activate(value)
    elif index == GTO_BIT:
      if value:
        await self.move()
      else:
        await self.stop_motion()
    elif index == ATR_BIT:
      await self.set_auto_release(value)
    else:
      mask = 1 << (index - MODE_SHIFT)
      mode = int(self.session.command.mode)
      await self.set_grip_mode(GripMode(mode | mask if value else mode & ~mask))

  async def set_robot_io(self, io: RobotIO):
    """Set the action request byte from `io.do`. Outputs that differ from the current ones are
    applied in order: activation, grip mode, go-to and automatic release.

    If the activation bit changes, the grip mode and go-to bits are left to the activation (the
    profile) or deactivation, and only the automatic release bit is applied as well.
    """

    if len(io.do) > 8:
      raise RejectedError(f"The gripper has 8 digital outputs, got {len(io.do)}")
    for index, value in enumerate(io.do):
      if value and index not in ACTION_REQUEST_BITS:
        raise RejectedError(f"Digital output {index} is reserved")

    current = _bits(self.session.command.action_request)
    requested = list(io.do) + current[len(io.do):]

    if requested[ACT_BIT] != current[ACT_BIT]:
      await self.activate(requested[ACT_BIT])
      if requested[ATR_BIT] != self.session.command.auto_release:
        await self.set_auto_release(requested[ATR_BIT])
      return

    mode = GripMode(int(requested[MODE_SHIFT]) | int(requested[MODE_SHIFT + 1]) << 1)
    if mode != self.session.command.mode:
      await self.set_grip_mode(mode)
    if requested[GTO_BIT] != current[GTO_BIT]:
      await self.set_robot_do(GTO_BIT, requested[GTO_BIT])
    if requested[ATR_BIT] != current[ATR_BIT]:
      await self.set_auto_release(requested[ATR_BIT])

  @staticmethod
  def _resolve_parameter(name: Union[str, int]) -> Union[HandParameter, Tuple[str, Axis]]:
    if not isinstance(name, (str, int)):
      raise UnknownParameterError(f"Parameter names must be strings or ids, got {name!r}")
    if isinstance(name, int) or (isinstance(name, str) and name.strip().isdigit()):
      try:
        return HandParameter(int(name))
      except ValueError as e:
        raise UnknownParameterError(f"Unknown parameter id {name}") from e

    key = name.strip().upper()
    if key in HandParameter.__members__:
      return HandParameter[key]
    setting, _, axis_name = key.partition("_")
    if setting.lower() in _AXIS_SETTINGS and axis_name in Axis.__members__:
      return (setting.lower(), Axis[axis_name])
    raise UnknownParameterError(f"Unknown parameter {name!r}")

  def _parameter_action(
    self,
    parameter: Union[HandParameter, Tuple[str, Axis]],
    value: Any,
  ) -> Callable[[], Awaitable[None]]:
    """Convert `value` and bind it to the operation that sets `parameter`. Raises ValueError or
    TypeError for values that cannot be converted."""

    if isinstance(parameter, tuple):
      setting, axis = parameter
      return functools.partial(getattr(self, f"set_{setting}"), axis, float(value))
    if parameter == HandParameter.GRIP:
      return functools.partial(self.set_grip_mode, parse_mode(value))
    if parameter == HandParameter.MOVE:
      return functools.partial(self.move, None if value is None else float(value))
    switches = {
      HandParameter.ACTIVATE: self.activate,
      HandParameter.AUTO_RELEASE: self.set_auto_release,
      HandParameter.AUTO_CENTER: self.set_auto_center,
      HandParameter.ADVANCED_CONTROL: self.set_advanced_control,
      HandParameter.SCISSOR_CONTROL: self.set_scissor_control,
    }
    return functools.partial(switches[parameter], parse_bool(value))

  async def set_parameter(self, name: str, value: Any):
    parameter = self._resolve_parameter(name)
    try:
      action = self._parameter_action(parameter, value)
    except (TypeError, ValueError) as e:
      raise RejectedError(f"Invalid value {value!r} for parameter {name!r}: {e}") from e
    await action()

  def serialize(self) -> dict:
    return {
      **super().serialize(),
      "host": self.host,
      "port": self.port,
      "unit_id": self.unit_id,
      "profile": self.profile.name,
      "profile_file": str(self.profile_file) if self.profile_file is not None else None,
      "keepalive_interval": self.keepalive_interval,
      "timeout": self.timeout,
    }
