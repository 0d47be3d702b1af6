import unittest

from crpi.robots.errors import MalformedFrameError
from crpi.robots.robotiq.constants import (
  Axis,
  GripMode,
  InitializationStatus,
  MotionStatus,
  ObjectDetection,
)
from crpi.robots.robotiq.registers import (
  AxisStatus,
  AxisTarget,
  CommandRegister,
  StatusRegister,
  from_registers,
  saturate,
  to_registers,
)


class TestSaturate(unittest.TestCase):
  def test_in_range(self):
    for value in (0, 1, 127, 254, 255):
      self.assertEqual(saturate(value), value)

  def test_out_of_range(self):
    self.assertEqual(saturate(-1), 0)
    self.assertEqual(saturate(-1000), 0)
    self.assertEqual(saturate(256), 255)
    self.assertEqual(saturate(1000), 255)

  def test_rounds(self):
    self.assertEqual(saturate(99.6), 100)
    self.assertEqual(saturate(0.4), 0)

  def test_infinities_saturate(self):
    self.assertEqual(saturate(float("inf")), 255)
    self.assertEqual(saturate(float("-inf")), 0)

  def test_nan(self):
    with self.assertRaises(ValueError):
      saturate(float("nan"))


class TestCommandRegister(unittest.TestCase):
  def test_default_encoding(self):
    self.assertEqual(CommandRegister().encode(), bytes(12))

  def test_action_request(self):
    command = CommandRegister(activate=True, mode=GripMode.SCISSOR, go_to=True, auto_release=True)
    self.assertEqual(command.encode()[0], 0b0001_1111)

    command = CommandRegister(activate=True, mode=GripMode.PINCH)
    self.assertEqual(command.encode()[0], 0b0000_0011)

    command = CommandRegister(mode=GripMode.WIDE, go_to=True)
    self.assertEqual(command.encode()[0], 0b0000_1100)

  def test_gripper_options(self):
    command = CommandRegister(auto_center=True)
    self.assertEqual(command.encode()[1], 0b0000_0010)
    command = CommandRegister(individual_finger_control=True, individual_scissor_control=True)
    self.assertEqual(command.encode()[1], 0b0000_1100)

  def test_finger_triples(self):
    command = CommandRegister(activate=True, go_to=True) \
      .with_target(Axis.FINGER_A, position=1, speed=2, force=3) \
      .with_target(Axis.FINGER_B, position=4, speed=5, force=6) \
      .with_target(Axis.FINGER_C, position=7, speed=8, force=9) \
      .with_target(Axis.SCISSOR, position=10, speed=11, force=12)
    self.assertEqual(
      command.encode(),
      bytes([0x09, 0x00, 0x00, 1, 2, 3, 4, 5, 6, 7, 8, 9]),
    )

  def test_scissor_triple_with_individual_scissor_control(self):
    command = CommandRegister(individual_scissor_control=True) \
      .with_target(Axis.SCISSOR, position=10, speed=11, force=12)
    data = command.encode()
    self.assertEqual(len(data), 16)
    self.assertEqual(data[12:], bytes([10, 11, 12, 0]))

  def test_every_position_is_encoded_as_given(self):
    command = CommandRegister()
    for position in range(256):
      command = command.with_target(Axis.FINGER_B, position=position)
      self.assertEqual(command.encode()[6], position)

  def test_out_of_range_values_saturate(self):
    command = CommandRegister().with_target(Axis.FINGER_A, position=300, speed=-5, force=255.7)
    self.assertEqual(command.target(Axis.FINGER_A), AxisTarget(position=255, speed=0, force=255))
    self.assertEqual(command.encode()[3:6], bytes([255, 0, 255]))

  def test_infinite_targets_saturate(self):
    command = CommandRegister().with_target(Axis.FINGER_B, position=float("inf"),
                                            force=float("-inf"))
    self.assertEqual(command.target(Axis.FINGER_B), AxisTarget(position=255, speed=0, force=0))

  def test_nan_target(self):
    with self.assertRaises(ValueError):
      CommandRegister().with_fingers(position=float("nan"))

  def test_with_target_keeps_unset_values(self):
    command = CommandRegister().with_target(Axis.FINGER_C, position=10, speed=20, force=30)
    command = command.with_target(Axis.FINGER_C, speed=40)
    self.assertEqual(command.target(Axis.FINGER_C), AxisTarget(position=10, speed=40, force=30))

  def test_with_fingers(self):
    command = CommandRegister().with_fingers(position=100, force=50)
    for axis in (Axis.FINGER_A, Axis.FINGER_B, Axis.FINGER_C):
      self.assertEqual(command.target(axis), AxisTarget(position=100, speed=0, force=50))
    self.assertEqual(command.target(Axis.SCISSOR), AxisTarget())

  def test_staging_does_not_mutate(self):
    command = CommandRegister()
    staged = command.with_flags(activate=True).with_target(Axis.FINGER_A, position=5)
    self.assertEqual(command, CommandRegister())
    self.assertNotEqual(staged, command)

  def test_wrong_number_of_targets(self):
    with self.assertRaises(ValueError):
      CommandRegister(targets=(AxisTarget(),))

  def test_decode(self):
    command = CommandRegister(activate=True, mode=GripMode.WIDE, go_to=True, auto_center=True,
                              individual_scissor_control=True) \
      .with_target(Axis.FINGER_A, position=1, speed=2, force=3) \
      .with_target(Axis.SCISSOR, position=4, speed=5, force=6)
    self.assertEqual(CommandRegister.decode(command.encode()), command)

  def test_decode_short(self):
    with self.assertRaises(MalformedFrameError):
      CommandRegister.decode(bytes(12))


class TestRegisterWords(unittest.TestCase):
  def test_to_registers(self):
    self.assertEqual(to_registers(bytes([0x09, 0x01, 0x00, 0xff])), [0x0901, 0x00ff])

  def test_to_registers_odd_length(self):
    with self.assertRaises(ValueError):
      to_registers(bytes(3))

  def test_from_registers(self):
    self.assertEqual(from_registers([0x0901, 0x00ff]), bytes([0x09, 0x01, 0x00, 0xff]))

  def test_from_registers_out_of_range(self):
    with self.assertRaises(MalformedFrameError):
      from_registers([0x10000])


STATUS_FIXTURE = bytes([
  0b1111_1001,  # gACT, basic mode, gGTO, gIMC completed, gSTA at requested position
  0b1110_0111,  # A at target, B stopped opening, C stopped closing, scissor at target
  0x00,  # no fault
  200, 201, 10,
  100, 90, 20,
  150, 140, 30,
  137, 137, 0,
  0x00,
])


class TestStatusRegister(unittest.TestCase):
  def test_decode_fixture(self):
    status = StatusRegister.decode(STATUS_FIXTURE)
    self.assertTrue(status.activated)
    self.assertEqual(status.mode, GripMode.BASIC)
    self.assertTrue(status.go_to)
    self.assertEqual(status.initialization, InitializationStatus.COMPLETED)
    self.assertEqual(status.motion, MotionStatus.AT_REQUESTED)
    self.assertEqual(status.fault, 0)
    self.assertFalse(status.faulted)
    self.assertTrue(status.activation_complete)

    self.assertEqual(status.axis(Axis.FINGER_A),
                     AxisStatus(ObjectDetection.AT_TARGET, 200, 201, 10))
    self.assertEqual(status.axis(Axis.FINGER_B),
                     AxisStatus(ObjectDetection.OPENING_CONTACT, 100, 90, 20))
    self.assertEqual(status.axis(Axis.FINGER_C),
                     AxisStatus(ObjectDetection.CLOSING_CONTACT, 150, 140, 30))
    self.assertEqual(status.axis(Axis.SCISSOR),
                     AxisStatus(ObjectDetection.AT_TARGET, 137, 137, 0))

  def test_decode_mode_and_activation(self):
    data = bytearray(16)
    data[0] = 0b0001_0101  # gACT, wide mode, gIMC activating
    status = StatusRegister.decode(bytes(data))
    self.assertTrue(status.activated)
    self.assertEqual(status.mode, GripMode.WIDE)
    self.assertFalse(status.go_to)
    self.assertEqual(status.initialization, InitializationStatus.ACTIVATING)
    self.assertFalse(status.activation_complete)

  def test_decode_fault(self):
    data = bytearray(16)
    data[2] = 0x0E
    status = StatusRegister.decode(bytes(data))
    self.assertEqual(status.fault, 0x0E)
    self.assertTrue(status.faulted)

  def test_encode_builds_fixture(self):
    status = StatusRegister(
      activated=True,
      mode=GripMode.SCISSOR,
      go_to=True,
      initialization=InitializationStatus.CHANGING_MODE,
      motion=MotionStatus.PARTIALLY_STOPPED,
      fault=0x0B,
    )
    decoded = StatusRegister.decode(status.encode())
    self.assertEqual(
      (decoded.activated, decoded.mode, decoded.go_to, decoded.initialization, decoded.motion,
       decoded.fault),
      (True, GripMode.SCISSOR, True, InitializationStatus.CHANGING_MODE,
       MotionStatus.PARTIALLY_STOPPED, 0x0B),
    )

  def test_decode_short(self):
    for length in (0, 1, 15):
      with self.assertRaises(MalformedFrameError):
        StatusRegister.decode(STATUS_FIXTURE[:length])

  def test_decode_ignores_trailing_bytes(self):
    self.assertEqual(StatusRegister.decode(STATUS_FIXTURE + b"\xff\xff"),
                     StatusRegister.decode(STATUS_FIXTURE))


if __name__ == "__main__":
  unittest.main()
