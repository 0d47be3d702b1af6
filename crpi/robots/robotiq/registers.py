"""Command and status register layouts of the Robotiq three-finger gripper.

Both registers are 16-byte blocks. The command register is written by the controller:

  byte 0      action request: rACT (bit 0), rMOD (bits 1-2), rGTO (bit 3), rATR (bit 4)
  byte 1      gripper options: rAAC (bit 1), rICF (bit 2), rICS (bit 3)
  byte 2      reserved
  bytes 3-14  position, speed and force of finger A, finger B, finger C and the scissor axis
  byte 15     reserved

The status register is read back:

  byte 0      gripper status: gACT (bit 0), gMOD (bits 1-2), gGTO (bit 3), gIMC (bits 4-5),
              gSTA (bits 6-7)
  byte 1      object status: gDTA (bits 0-1), gDTB (bits 2-3), gDTC (bits 4-5), gDTS (bits 6-7)
  byte 2      fault status gFLT
  bytes 3-14  requested position echo, position and current of finger A, B, C and scissor
  byte 15     reserved

Registers are decoded once, here, into frozen dataclasses. Nothing else in the package looks at
register bits.
"""

import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple, Union

from crpi.robots.errors import MalformedFrameError
from crpi.robots.robotiq.constants import (
  AAC_BIT,
  ACT_BIT,
  ATR_BIT,
  FINGERS,
  GACT_BIT,
  GGTO_BIT,
  GIMC_SHIFT,
  GMOD_SHIFT,
  GSTA_SHIFT,
  GTO_BIT,
  ICF_BIT,
  ICS_BIT,
  MAX_VALUE,
  MIN_VALUE,
  MODE_SHIFT,
  REGISTER_BLOCK_SIZE,
  Axis,
  GripMode,
  InitializationStatus,
  MotionStatus,
  ObjectDetection,
)


def saturate(value: Union[int, float]) -> int:
  """Round `value` and clamp it to the 8-bit register range. Out of range values are saturated, not
  wrapped, infinities included.

  Raises:
    ValueError: if `value` is NaN.
  """
  if math.isnan(value):
    raise ValueError("Register values must be numbers, got NaN")
  return int(round(max(MIN_VALUE, min(MAX_VALUE, value))))


def to_registers(data: bytes) -> List[int]:
  """Pack register bytes into big-endian 16-bit words, as written over Modbus."""
  if len(data) % 2 != 0:
    raise ValueError(f"Register data must be a whole number of words, got {len(data)} bytes")
  return [data[i] << 8 | data[i + 1] for i in range(0, len(data), 2)]


def from_registers(registers: Sequence[int]) -> bytes:
  """Unpack 16-bit words, as read over Modbus, into register bytes.

  Raises:
    MalformedFrameError: if a word is out of the 16-bit range.
  """
  data = bytearray()
  for word in registers:
    if not 0 <= word <= 0xFFFF:
      raise MalformedFrameError(f"Register value {word} is not a 16-bit word")
    data += bytes([word >> 8, word & 0xFF])
  return bytes(data)


def _bit(byte: int, bit: int) -> bool:
  return bool((byte >> bit) & 1)


def _field(byte: int, shift: int) -> int:
  return (byte >> shift) & 0b11


@dataclass(frozen=True)
class AxisTarget:
  """Requested position, speed and force of one axis. Values are saturated on construction."""

  position: int = 0
  speed: int = 0
  force: int = 0

  def __post_init__(self):
    object.__setattr__(self, "position", saturate(self.position))
    object.__setattr__(self, "speed", saturate(self.speed))
    object.__setattr__(self, "force", saturate(self.force))


def _default_targets() -> Tuple[AxisTarget, ...]:
  return tuple(AxisTarget() for _ in Axis)


@dataclass(frozen=True)
class CommandRegister:
  """The command register. Instances are immutable; the `with_*` methods return staged copies."""

  activate: bool = False  # rACT
  mode: GripMode = GripMode.BASIC  # rMOD
  go_to: bool = False  # rGTO
  auto_release: bool = False  # rATR
  auto_center: bool = False  # rAAC
  individual_finger_control: bool = False  # rICF
  individual_scissor_control: bool = False  # rICS
  targets: Tuple[AxisTarget, ...] = field(default_factory=_default_targets)

  def __post_init__(self):
    if len(self.targets) != len(Axis):
      raise ValueError(f"Expected {len(Axis)} axis targets, got {len(self.targets)}")
    object.__setattr__(self, "mode", GripMode(self.mode))

  @property
  def uses_scissor(self) -> bool:
    """Whether the scissor triple is part of the register. The device only honors it with
    individual scissor control."""
    return self.individual_scissor_control

  def target(self, axis: Axis) -> AxisTarget:
    return self.targets[axis]

  def with_flags(self, **flags) -> "CommandRegister":
    """Stage new values for the bit fields, e.g. `with_flags(go_to=True)`."""
    return replace(self, **flags)

  def with_target(
    self,
    axis: Axis,
    position: Optional[Union[int, float]] = None,
    speed: Optional[Union[int, float]] = None,
    force: Optional[Union[int, float]] = None,
  ) -> "CommandRegister":
    """Stage new values for one axis. Values that are `None` are kept."""
    current = self.targets[axis]
    new = AxisTarget(
      position=current.position if position is None else position,
      speed=current.speed if speed is None else speed,
      force=current.force if force is None else force,
    )
    targets = list(self.targets)
    targets[axis] = new
    return replace(self, targets=tuple(targets))

  def with_fingers(
    self,
    position: Optional[Union[int, float]] = None,
    speed: Optional[Union[int, float]] = None,
    force: Optional[Union[int, float]] = None,
  ) -> "CommandRegister":
    """Stage the same values for fingers A, B and C."""
    register = self
    for axis in FINGERS:
      register = register.with_target(axis, position=position, speed=speed, force=force)
    return register

  @property
  def action_request(self) -> int:
    """Byte 0 of the register."""
    return (
      int(self.activate) << ACT_BIT
      | (int(self.mode) & 0b11) << MODE_SHIFT
      | int(self.go_to) << GTO_BIT
      | int(self.auto_release) << ATR_BIT
    )

  @property
  def gripper_options(self) -> int:
    """Byte 1 of the register."""
    return (
      int(self.auto_center) << AAC_BIT
      | int(self.individual_finger_control) << ICF_BIT
      | int(self.individual_scissor_control) << ICS_BIT
    )

  def encode(self) -> bytes:
    """Pack the register into bytes. The scissor triple and the trailing reserved byte are omitted
    when the scissor axis is not individually controlled."""
    data = bytearray([self.action_request, self.gripper_options, 0])
    axes = list(FINGERS) + ([Axis.SCISSOR] if self.uses_scissor else [])
    for axis in axes:
      target = self.targets[axis]
      data += bytes([target.position, target.speed, target.force])
    if self.uses_scissor:
      data.append(0)
    return bytes(data)

  @classmethod
  def decode(cls, data: bytes) -> "CommandRegister":
    """Unpack a full command register block, as held by the device. Used to inspect what was
    written; the controller itself never reads the command register back."""

    if len(data) < REGISTER_BLOCK_SIZE:
      raise MalformedFrameError(
        f"Command register is {REGISTER_BLOCK_SIZE} bytes, got {len(data)}: {data.hex()}")

    action_request, options = data[0], data[1]
    targets = tuple(
      AxisTarget(position=data[3 + 3 * axis], speed=data[4 + 3 * axis], force=data[5 + 3 * axis])
      for axis in Axis
    )
    return cls(
      activate=_bit(action_request, ACT_BIT),
      mode=GripMode(_field(action_request, MODE_SHIFT)),
      go_to=_bit(action_request, GTO_BIT),
      auto_release=_bit(action_request, ATR_BIT),
      auto_center=_bit(options, AAC_BIT),
      individual_finger_control=_bit(options, ICF_BIT),
      individual_scissor_control=_bit(options, ICS_BIT),
      targets=targets,
    )


@dataclass(frozen=True)
class AxisStatus:
  detection: ObjectDetection = ObjectDetection.IN_MOTION  # gDTx
  requested_position: int = 0  # gPRx, echo of the requested position
  position: int = 0  # gPOx
  current: int = 0  # gCUx


def _default_axis_status() -> Tuple[AxisStatus, ...]:
  return tuple(AxisStatus() for _ in Axis)


@dataclass(frozen=True)
class StatusRegister:
  """The decoded status register."""

  activated: bool = False  # gACT
  mode: GripMode = GripMode.BASIC  # gMOD
  go_to: bool = False  # gGTO
  initialization: InitializationStatus = InitializationStatus.RESET  # gIMC
  motion: MotionStatus = MotionStatus.IN_MOTION  # gSTA
  fault: int = 0  # gFLT
  axes: Tuple[AxisStatus, ...] = field(default_factory=_default_axis_status)

  @property
  def activation_complete(self) -> bool:
    return self.activated and self.initialization == InitializationStatus.COMPLETED

  @property
  def faulted(self) -> bool:
    return self.fault != 0

  def axis(self, axis: Axis) -> AxisStatus:
    return self.axes[axis]

  @classmethod
  def decode(cls, data: bytes) -> "StatusRegister":
    """Decode a status register block.

    Raises:
      MalformedFrameError: if `data` is shorter than a register block.
    """

    if len(data) < REGISTER_BLOCK_SIZE:
      raise MalformedFrameError(
        f"Status register is {REGISTER_BLOCK_SIZE} bytes, got {len(data)}: {data.hex()}")

    gripper_status, object_status, fault = data[0], data[1], data[2]
    axes = tuple(
      AxisStatus(
        detection=ObjectDetection(_field(object_status, 2 * axis)),
        requested_position=data[3 + 3 * axis],
        position=data[4 + 3 * axis],
        current=data[5 + 3 * axis],
      )
      for axis in Axis
    )
    return cls(
      activated=_bit(gripper_status, GACT_BIT),
      mode=GripMode(_field(gripper_status, GMOD_SHIFT)),
      go_to=_bit(gripper_status, GGTO_BIT),
      initialization=InitializationStatus(_field(gripper_status, GIMC_SHIFT)),
      motion=MotionStatus(_field(gripper_status, GSTA_SHIFT)),
      fault=fault,
      axes=axes,
    )

  @property
  def gripper_status(self) -> int:
    """Byte 0 of the register."""
    return (
      int(self.activated) << GACT_BIT
      | int(self.mode) << GMOD_SHIFT
      | int(self.go_to) << GGTO_BIT
      | int(self.initialization) << GIMC_SHIFT
      | int(self.motion) << GSTA_SHIFT
    )

  def encode(self) -> bytes:
    """Pack the status into a register block, as the device would send it."""
    gripper_status = self.gripper_status
    object_status = 0
    for axis in Axis:
      object_status |= int(self.axes[axis].detection) << (2 * axis)
    data = bytearray([gripper_status, object_status, saturate(self.fault)])
    for axis in Axis:
      status = self.axes[axis]
      data += bytes([saturate(status.requested_position), saturate(status.position),
                     saturate(status.current)])
    data.append(0)
    return bytes(data)
