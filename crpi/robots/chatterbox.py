from typing import Any

from crpi.robots.backend import RobotBackend
from crpi.robots.canon import RobotIO
from crpi.robots.errors import RejectedError


class RobotChatterboxBackend(RobotBackend):
  """ Chatter box backend for device-free testing of a hand. Prints out all operations it accepts;
  arm-only operations are rejected like they would be by a real hand. """

  def __init__(self, num_digital_outputs: int = 8):
    super().__init__()
    self._outputs = [False] * num_digital_outputs
    self._tool = 0.0

  async def setup(self):
    print("Setting up the robot.")

  async def stop(self):
    print("Stopping the robot.")

  async def message(self, message: str):
    print(f"Message: {message}")

  async def get_robot_io(self, io: RobotIO):
    print("Getting robot IO.")
    io.do = list(self._outputs)
    io.ai = [self._tool]

  async def set_robot_io(self, io: RobotIO):
    print(f"Setting digital outputs to {io.do}.")
    for i, value in enumerate(io.do[:len(self._outputs)]):
      self._outputs[i] = value

  async def set_robot_do(self, index: int, value: bool):
    if not 0 <= index < len(self._outputs):
      raise RejectedError(f"No digital output {index}")
    print(f"Setting digital output {index} to {value}.")
    self._outputs[index] = value

  async def set_parameter(self, name: str, value: Any):
    print(f"Setting parameter {name} to {value}.")

  async def set_tool(self, percent: float):
    print(f"Setting tool to {percent * 100:.0f}%.")
    self._tool = percent

  async def stop_motion(self, condition: int = 2):
    print(f"Stopping motion (category {condition}).")
