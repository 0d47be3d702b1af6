import asyncio
import logging
from typing import List, Optional

from pymodbus.client import AsyncModbusTcpClient  # type: ignore
from pymodbus.exceptions import ConnectionException, ModbusIOException

from crpi.robots.robotiq.constants import (
  DEFAULT_UNIT_ID,
  EXCEPTION_FLAG,
  FINGERS,
  READ_INPUT_REGISTERS,
  REGISTER_BLOCK_SIZE,
  WRITE_MULTIPLE_REGISTERS,
  Axis,
  InitializationStatus,
  MotionStatus,
  ObjectDetection,
)
from crpi.robots.robotiq.registers import (
  AxisStatus,
  CommandRegister,
  StatusRegister,
  from_registers,
  to_registers,
)

logger = logging.getLogger(__name__)

ILLEGAL_DATA_ADDRESS = 0x02


class SimulatedResponse:
  """The parts of a pymodbus response the gripper link looks at."""

  def __init__(self, function_code: int, registers: Optional[List[int]] = None,
               exception_code: int = 0):
    self.function_code = function_code
    self.registers = registers or []
    self.exception_code = exception_code

  def isError(self) -> bool:  # pylint: disable=invalid-name
    return bool(self.function_code & EXCEPTION_FLAG)


class SimulatedRobotiqClient(AsyncModbusTcpClient):
  """An in-memory Robotiq three-finger gripper behind a Modbus client. Use it as the `client` of a
  :class:`~crpi.robots.robotiq.RobotiqBackend` to run without hardware.

  The simulated gripper activates and moves in a fixed number of status reads, stops on an object
  if one is placed between the fingers, and reports an injected fault until it is reset.

  Attributes:
    commands: every command register written, in order.
    fault: the fault code reported in the status register. Cleared when the gripper is activated.
    write_delay: seconds each write takes, to widen the window for concurrent access.
    overlapping_writes: number of writes that started while another one was in progress.
    drop_acks: if True, writes are executed but not acknowledged.
    drop_responses: if True, status requests are not answered.
    exception_code: if not zero, every request is answered with this Modbus exception.
  """

  def __init__(
    self,
    unit_id: int = DEFAULT_UNIT_ID,
    activation_reads: int = 1,
    motion_reads: int = 1,
    object_position: Optional[int] = None,
  ):
    """
    Args:
      unit_id: the unit id the gripper answers to.
      activation_reads: number of status reads that report the activation in progress.
      motion_reads: number of status reads that report the fingers in motion after a move.
      object_position: finger position at which an object stops closing fingers, or None.
    """

    # pylint: disable=super-init-not-called
    self.unit_id = unit_id
    self.activation_reads = activation_reads
    self.motion_reads = motion_reads
    self.object_position = object_position

    self.fault = 0
    self.write_delay = 0.0
    self.drop_acks = False
    self.drop_responses = False
    self.exception_code = 0
    self.commands: List[CommandRegister] = []
    self.overlapping_writes = 0

    self._registers = bytearray(REGISTER_BLOCK_SIZE)
    self._positions = [0] * len(Axis)
    self._detections = [ObjectDetection.IN_MOTION] * len(Axis)
    self._activation_left = 0
    self._motion_left = 0
    self._connected = False
    self._broken = False
    self._writes_in_progress = 0

  @property
  def connected(self) -> bool:
    return self._connected

  @property
  def command(self) -> CommandRegister:
    """The command register as currently held by the gripper."""
    return CommandRegister.decode(bytes(self._registers))

  def break_connection(self):
    """Make every following request fail as if the gripper had dropped the connection."""
    self._broken = True

  async def connect(self) -> bool:  # type: ignore[override]
    self._connected = True
    self._broken = False
    return True

  def close(self, reconnect: bool = False):  # type: ignore[override]
    self._connected = False

  def _check_request(self, slave: int):
    if not self._connected or self._broken:
      raise ConnectionException("Simulated gripper connection is closed")
    if slave != self.unit_id:
      raise ModbusIOException(f"No response from unit {slave}")

  async def write_registers(  # type: ignore[override]
    self,
    address: int,
    values: List[int],
    slave: int = DEFAULT_UNIT_ID,
    **kwargs,
  ) -> SimulatedResponse:
    # pylint: disable=invalid-overridden-method
    self._check_request(slave)
    if self._writes_in_progress > 0:
      self.overlapping_writes += 1
    self._writes_in_progress += 1
    try:
      if self.write_delay > 0:
        await asyncio.sleep(self.write_delay)
    finally:
      self._writes_in_progress -= 1

    if self.exception_code:
      return SimulatedResponse(WRITE_MULTIPLE_REGISTERS | EXCEPTION_FLAG,
                               exception_code=self.exception_code)
    payload = from_registers(values)
    if 2 * address + len(payload) > REGISTER_BLOCK_SIZE:
      return SimulatedResponse(WRITE_MULTIPLE_REGISTERS | EXCEPTION_FLAG,
                               exception_code=ILLEGAL_DATA_ADDRESS)

    logger.debug("[simulated gripper] write %s at %d", payload.hex(), address)
    previous = self.command
    self._registers[2 * address:2 * address + len(payload)] = payload
    self._execute(previous, self.command)
    if self.drop_acks:
      raise ModbusIOException("No response received")
    return SimulatedResponse(WRITE_MULTIPLE_REGISTERS)

  async def read_input_registers(  # type: ignore[override]
    self,
    address: int,
    count: int = 1,
    slave: int = DEFAULT_UNIT_ID,
    **kwargs,
  ) -> SimulatedResponse:
    # pylint: disable=invalid-overridden-method
    self._check_request(slave)
    if self.exception_code:
      return SimulatedResponse(READ_INPUT_REGISTERS | EXCEPTION_FLAG,
                               exception_code=self.exception_code)
    if 2 * (address + count) > REGISTER_BLOCK_SIZE:
      return SimulatedResponse(READ_INPUT_REGISTERS | EXCEPTION_FLAG,
                               exception_code=ILLEGAL_DATA_ADDRESS)
    data = self._read_status().encode()[2 * address:2 * (address + count)]
    if self.drop_responses:
      raise ModbusIOException("No response received")
    return SimulatedResponse(READ_INPUT_REGISTERS, registers=to_registers(data))

  def _requested_position(self, command: CommandRegister, axis: Axis) -> int:
    if axis == Axis.SCISSOR:
      if command.individual_scissor_control:
        return command.target(Axis.SCISSOR).position
      return self._positions[Axis.SCISSOR]
    if command.individual_finger_control:
      return command.target(axis).position
    return command.target(Axis.FINGER_A).position

  def _execute(self, previous: CommandRegister, command: CommandRegister):
    self.commands.append(command)
    if command.activate and not previous.activate:
      self.fault = 0
      self._activation_left = self.activation_reads
    if not command.activate:
      self._activation_left = 0
      self._motion_left = 0
      return
    targets_changed = any(self._requested_position(previous, axis) !=
                          self._requested_position(command, axis) for axis in Axis)
    if command.go_to and (not previous.go_to or targets_changed or command.mode != previous.mode):
      self._motion_left = self.motion_reads
      self._detections = [ObjectDetection.IN_MOTION] * len(Axis)

  def _read_status(self) -> StatusRegister:
    command = self.command

    if not command.activate or self._activation_left > 0:
      activating = command.activate
      if activating:
        self._activation_left -= 1
      return StatusRegister(
        activated=activating,
        initialization=InitializationStatus.ACTIVATING if activating else
        InitializationStatus.RESET,
        fault=self.fault,
        axes=self._axis_status(command),
      )

    if command.go_to:
      if self._motion_left > 0:
        self._motion_left -= 1
      else:
        self._settle(command)

    return StatusRegister(
      activated=True,
      mode=command.mode,
      go_to=command.go_to,
      initialization=InitializationStatus.COMPLETED,
      motion=self._motion_status(command),
      fault=self.fault,
      axes=self._axis_status(command),
    )

  def _settle(self, command: CommandRegister):
    for axis in Axis:
      target = self._requested_position(command, axis)
      if axis in FINGERS and self.object_position is not None and \
          self._positions[axis] <= self.object_position < target:
        self._positions[axis] = self.object_position
        self._detections[axis] = ObjectDetection.CLOSING_CONTACT
      else:
        self._positions[axis] = target
        self._detections[axis] = ObjectDetection.AT_TARGET

  def _motion_status(self, command: CommandRegister) -> MotionStatus:
    if not command.go_to or not all(self._detections[axis].settled for axis in FINGERS):
      return MotionStatus.IN_MOTION
    stopped = [self._detections[axis].contact for axis in FINGERS]
    if all(stopped):
      return MotionStatus.ALL_STOPPED
    if any(stopped):
      return MotionStatus.PARTIALLY_STOPPED
    return MotionStatus.AT_REQUESTED

  def _axis_status(self, command: CommandRegister):
    return tuple(
      AxisStatus(
        detection=self._detections[axis],
        requested_position=self._requested_position(command, axis) if command.activate else 0,
        position=self._positions[axis],
        current=10 if self._detections[axis].contact else 0,
      )
      for axis in Axis
    )
