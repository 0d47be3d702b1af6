import asyncio
import enum
import logging
from typing import Optional, Tuple

from crpi.robots.errors import PreconditionError
from crpi.robots.robotiq.constants import (
  FINGERS,
  Axis,
  GripMode,
  InitializationStatus,
  MotionStatus,
  ObjectDetection,
)
from crpi.robots.robotiq.errors import describe_fault
from crpi.robots.robotiq.profile import GripperProfile
from crpi.robots.robotiq.registers import CommandRegister, StatusRegister

logger = logging.getLogger(__name__)


class GripperState(enum.Enum):
  UNINITIALIZED = "uninitialized"
  ACTIVATING = "activating"
  IDLE = "idle"
  MOVING = "moving"
  AT_TARGET = "at_target"
  GRASPED = "grasped"
  STALLED = "stalled"
  FAULTED = "faulted"

  @property
  def is_active(self) -> bool:
    """Whether the gripper accepts motion commands in this state."""
    return self in _ACTIVE_STATES

  @property
  def motion_completed(self) -> bool:
    return self in (GripperState.AT_TARGET, GripperState.GRASPED, GripperState.STALLED)


_ACTIVE_STATES = (
  GripperState.IDLE,
  GripperState.MOVING,
  GripperState.AT_TARGET,
  GripperState.GRASPED,
  GripperState.STALLED,
)


class GripperSession:
  """In-memory mirror of one gripper: the last acknowledged command register, the last decoded
  status register, the gripper state and the grasp flags derived from them.

  The session does no IO. Whoever drives the link holds `lock` for a full transmit and poll cycle,
  and reports the results with `commit` and `apply_status`.

  State transitions:

  - `commit` of a command with the activation bit set, while uninitialized: ACTIVATING.
  - status with activation completed, while activating: IDLE.
  - `commit` of a command with the go-to bit set and new targets, while active: MOVING.
  - status with every enabled axis settled on the staged targets, while moving: GRASPED if an
    object was detected, STALLED if fingers stopped short without contact, AT_TARGET otherwise.
  - status with a non-zero fault code, in any state: FAULTED. FAULTED is left by a reset: a
    `commit` that clears the activation bit (to UNINITIALIZED), followed by one that sets it again
    (to ACTIVATING).
  """

  def __init__(self, profile: GripperProfile):
    self.profile = profile
    self.lock = asyncio.Lock()
    self._command = CommandRegister()
    self._status: Optional[StatusRegister] = None
    self._state = GripperState.UNINITIALIZED
    self._grasped_on_close = False
    self._grasped_on_open = False
    self._all_fingers_at_position = False

  @property
  def command(self) -> CommandRegister:
    """The last command register acknowledged by the device."""
    return self._command

  @property
  def status(self) -> Optional[StatusRegister]:
    """The last status register read from the device, or None before the first read."""
    return self._status

  @property
  def state(self) -> GripperState:
    return self._state

  @property
  def grasped_on_close(self) -> bool:
    return self._grasped_on_close

  @property
  def grasped_on_open(self) -> bool:
    return self._grasped_on_open

  @property
  def all_fingers_at_position(self) -> bool:
    return self._all_fingers_at_position

  def enabled_axes(self, command: Optional[CommandRegister] = None) -> Tuple[Axis, ...]:
    """Axes that take part in a motion: the three fingers, and the scissor axis when it is
    commanded individually or the scissor mode is selected."""
    command = command or self._command
    if command.individual_scissor_control or command.mode == GripMode.SCISSOR:
      return FINGERS + (Axis.SCISSOR,)
    return FINGERS

  def commanded_axes(self, command: Optional[CommandRegister] = None) -> Tuple[Axis, ...]:
    """Axes whose requested position is set individually. Without individual control, fingers B
    and C follow finger A and the scissor follows the mode."""
    command = command or self._command
    axes: Tuple[Axis, ...] = (Axis.FINGER_A,)
    if command.individual_finger_control:
      axes += (Axis.FINGER_B, Axis.FINGER_C)
    if command.individual_scissor_control:
      axes += (Axis.SCISSOR,)
    return axes

  def require_active(self, operation: str):
    """Raises PreconditionError unless the gripper accepts motion commands."""
    self.require_not_faulted(operation)
    if not self._state.is_active:
      raise PreconditionError(
        f"{operation} requires an activated gripper, the gripper is {self._state.value}")

  def require_not_faulted(self, operation: str):
    if self._state == GripperState.FAULTED:
      raise PreconditionError(
        f"{operation} rejected, the gripper is faulted. Deactivate and activate it to reset.")

  def _set_state(self, state: GripperState):
    if state != self._state:
      logger.info("Gripper state %s -> %s", self._state.value, state.value)
      self._state = state

  def commit(self, command: CommandRegister):
    """Record that the device acknowledged `command`."""

    previous = self._command
    self._command = command

    rising_edge = command.activate and not previous.activate
    falling_edge = previous.activate and not command.activate

    if not command.activate:
      if falling_edge or self._state != GripperState.FAULTED:
        self._set_state(GripperState.UNINITIALIZED)
      return
    if self._state == GripperState.FAULTED and not rising_edge:
      return
    if rising_edge or self._state == GripperState.UNINITIALIZED:
      self._set_state(GripperState.ACTIVATING)
      return
    if not self._state.is_active:
      return

    if command.go_to and (not previous.go_to or command.targets != previous.targets
                          or command.mode != previous.mode):
      self._set_state(GripperState.MOVING)
    elif previous.go_to and not command.go_to:
      self._set_state(GripperState.IDLE)
    elif self._state.motion_completed and command != previous:
      self._set_state(GripperState.IDLE)

  def apply_status(self, status: StatusRegister):
    """Update the cached status, the derived flags and the state from a decoded status register."""

    self._status = status
    self._update_flags(status)

    if status.faulted:
      if self._state != GripperState.FAULTED:
        logger.error("Gripper fault 0x%02x: %s", status.fault, describe_fault(status.fault))
        self._set_state(GripperState.FAULTED)
      return
    if self._state in (GripperState.FAULTED, GripperState.UNINITIALIZED):
      return

    if self._state == GripperState.ACTIVATING:
      if status.activation_complete:
        self._set_state(GripperState.IDLE)
      return

    if not status.activated:
      logger.warning("Gripper reports it is not activated, waiting for activation")
      self._set_state(GripperState.ACTIVATING)
      return

    if self._state == GripperState.MOVING:
      outcome = self._motion_outcome(status)
      if outcome is not None:
        self._set_state(outcome)

  def _update_flags(self, status: StatusRegister):
    detections = [status.axis(axis).detection for axis in self.enabled_axes()]
    at_position = all(detection.settled for detection in detections)
    self._all_fingers_at_position = at_position
    self._grasped_on_close = at_position and ObjectDetection.CLOSING_CONTACT in detections
    self._grasped_on_open = at_position and ObjectDetection.OPENING_CONTACT in detections

  def _motion_outcome(self, status: StatusRegister) -> Optional[GripperState]:
    """The state a motion ended in, or None if it is still going on. Statuses that do not echo the
    staged targets yet predate the motion and are ignored."""

    if status.initialization != InitializationStatus.COMPLETED or not status.go_to:
      return None
    for axis in self.commanded_axes():
      if status.axis(axis).requested_position != self._command.target(axis).position:
        return None
    if not self._all_fingers_at_position:
      return None

    detections = [status.axis(axis).detection for axis in self.enabled_axes()]
    if any(detection.contact for detection in detections):
      return GripperState.GRASPED
    if status.motion in (MotionStatus.PARTIALLY_STOPPED, MotionStatus.ALL_STOPPED):
      return GripperState.STALLED
    return GripperState.AT_TARGET

  def adopt(self, status: StatusRegister):
    """Take over a gripper that was activated before this session started. The command register is
    seeded from the status echo, so that the keepalive does not reset the device."""

    command = self.profile.apply(CommandRegister(activate=True, go_to=status.go_to))
    command = command.with_flags(mode=status.mode)
    for axis in Axis:
      command = command.with_target(axis, position=status.axis(axis).requested_position)
    self._command = command
    self._status = status
    self._update_flags(status)
    logger.info("Adopted an activated gripper in %s mode", status.mode.name.lower())
    self._set_state(GripperState.IDLE)
