import enum

DEFAULT_PORT = 502
DEFAULT_UNIT_ID = 2

# The output (command) and input (status) register blocks both start at address 0 and are
# 8 registers (16 bytes) long. The command block is written with write multiple registers (0x10)
# and the status block is read with read input registers (0x04).
COMMAND_REGISTER_ADDRESS = 0x0000
STATUS_REGISTER_ADDRESS = 0x0000
REGISTER_BLOCK_SIZE = 16
REGISTER_COUNT = REGISTER_BLOCK_SIZE // 2

WRITE_MULTIPLE_REGISTERS = 0x10
READ_INPUT_REGISTERS = 0x04
EXCEPTION_FLAG = 0x80  # set in the function code of an exception response

MIN_VALUE = 0
MAX_VALUE = 255


class Axis(enum.IntEnum):
  """Axes in register order."""

  FINGER_A = 0
  FINGER_B = 1
  FINGER_C = 2
  SCISSOR = 3


FINGERS = (Axis.FINGER_A, Axis.FINGER_B, Axis.FINGER_C)


class GripMode(enum.IntEnum):
  BASIC = 0
  PINCH = 1
  WIDE = 2
  SCISSOR = 3


class ObjectDetection(enum.IntEnum):
  """Per-axis object detection flag (gDTx)."""

  IN_MOTION = 0
  OPENING_CONTACT = 1  # stopped while opening, object detected
  CLOSING_CONTACT = 2  # stopped while closing, object detected
  AT_TARGET = 3  # at requested position, no object detected

  @property
  def settled(self) -> bool:
    return self != ObjectDetection.IN_MOTION

  @property
  def contact(self) -> bool:
    return self in (ObjectDetection.OPENING_CONTACT, ObjectDetection.CLOSING_CONTACT)


class InitializationStatus(enum.IntEnum):
  """gIMC"""

  RESET = 0  # gripper is in reset or automatic release state
  ACTIVATING = 1
  CHANGING_MODE = 2
  COMPLETED = 3


class MotionStatus(enum.IntEnum):
  """gSTA"""

  IN_MOTION = 0
  PARTIALLY_STOPPED = 1  # one or two fingers stopped before the requested position
  ALL_STOPPED = 2  # all fingers stopped before the requested position
  AT_REQUESTED = 3  # all fingers reached the requested position


class HandParameter(enum.IntEnum):
  """Parameters understood by `RobotiqBackend.set_parameter`."""

  ACTIVATE = 1
  GRIP = 2
  MOVE = 3
  AUTO_RELEASE = 4
  AUTO_CENTER = 5
  ADVANCED_CONTROL = 6
  SCISSOR_CONTROL = 7


# Action request byte (byte 0 of the command register).
ACT_BIT = 0
MODE_SHIFT = 1
GTO_BIT = 3
ATR_BIT = 4

# Gripper options byte (byte 1 of the command register).
AAC_BIT = 1
ICF_BIT = 2
ICS_BIT = 3

# Gripper status byte (byte 0 of the status register).
GACT_BIT = 0
GMOD_SHIFT = 1
GGTO_BIT = 3
GIMC_SHIFT = 4
GSTA_SHIFT = 6

# Action request bits that have a meaning; the others are reserved.
ACTION_REQUEST_BITS = (ACT_BIT, MODE_SHIFT, MODE_SHIFT + 1, GTO_BIT, ATR_BIT)
