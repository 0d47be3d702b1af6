import asyncio
import unittest
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

from pymodbus.exceptions import ConnectionException, ModbusIOException  # type: ignore

from crpi.robots.errors import (
  MalformedFrameError,
  ModbusExceptionError,
  TransportError,
  TransportTimeoutError,
)
from crpi.robots.robotiq.constants import Axis, InitializationStatus
from crpi.robots.robotiq.link import RobotiqLink
from crpi.robots.robotiq.registers import CommandRegister, StatusRegister, to_registers
from crpi.robots.robotiq.simulated_client import SimulatedRobotiqClient


def response(registers: Optional[List[int]] = None, exception_code: int = 0) -> MagicMock:
  r = MagicMock()
  r.registers = registers or []
  r.exception_code = exception_code
  r.isError.return_value = exception_code != 0
  return r


class TestRobotiqLinkMocked(unittest.IsolatedAsyncioTestCase):
  async def asyncSetUp(self):
    self.client = MagicMock()
    self.client.connected = True
    self.client.connect = AsyncMock()
    self.client.write_registers = AsyncMock(return_value=response())
    self.client.read_input_registers = AsyncMock()
    self.link = RobotiqLink(client=self.client, unit_id=2, timeout=0.1)
    await self.link.connect()

  async def test_transmit(self):
    command = CommandRegister(activate=True).with_fingers(position=10, speed=20, force=30)
    await self.link.transmit(command)
    self.client.write_registers.assert_awaited_once_with(0, to_registers(command.encode()), slave=2)
    self.assertEqual(len(self.client.write_registers.call_args.args[1]), 6)

  async def test_transmit_scissor_block(self):
    command = CommandRegister(activate=True, individual_scissor_control=True)
    await self.link.transmit(command)
    self.assertEqual(len(self.client.write_registers.call_args.args[1]), 8)

  async def test_poll(self):
    status = StatusRegister(activated=True, initialization=InitializationStatus.COMPLETED)
    self.client.read_input_registers.return_value = response(to_registers(status.encode()))
    self.assertEqual(await self.link.poll(), status)
    self.client.read_input_registers.assert_awaited_once_with(0, count=8, slave=2)

  async def test_truncated_status(self):
    self.client.read_input_registers.return_value = response([0x0100, 0x0000])
    with self.assertRaises(MalformedFrameError):
      await self.link.poll()

  async def test_no_response(self):
    self.client.write_registers.side_effect = ModbusIOException("No response received")
    with self.assertRaises(TransportTimeoutError):
      await self.link.transmit(CommandRegister(activate=True))

  async def test_hanging_request(self):
    async def hang(*args, **kwargs):
      await asyncio.sleep(10)

    self.client.read_input_registers.side_effect = hang
    with self.assertRaises(TransportTimeoutError):
      await self.link.poll()

  async def test_connection_lost(self):
    self.client.write_registers.side_effect = ConnectionException("gone")
    with self.assertRaises(TransportError) as ctx:
      await self.link.transmit(CommandRegister(activate=True))
    self.assertNotIsInstance(ctx.exception, TransportTimeoutError)

  async def test_exception_response(self):
    self.client.write_registers.return_value = response(exception_code=0x02)
    with self.assertRaises(ModbusExceptionError) as ctx:
      await self.link.transmit(CommandRegister(activate=True))
    self.assertEqual(ctx.exception.exception_code, 0x02)

  async def test_connect_failure(self):
    self.client.connected = False
    with self.assertRaises(TransportError):
      await self.link.connect()

  def test_needs_host_or_client(self):
    with self.assertRaises(ValueError):
      RobotiqLink()


class TestRobotiqLinkSimulated(unittest.IsolatedAsyncioTestCase):
  async def asyncSetUp(self):
    self.client = SimulatedRobotiqClient(activation_reads=0)
    self.link = RobotiqLink(client=self.client, timeout=0.1)
    await self.link.connect()

  async def test_round_trip(self):
    command = CommandRegister(activate=True).with_fingers(position=90, speed=255, force=100) \
      .with_flags(go_to=True)
    await self.link.transmit(command)
    self.assertEqual(self.client.commands, [command])

    status = await self.link.poll()
    self.assertTrue(status.activation_complete)
    self.assertEqual(status.axis(Axis.FINGER_A).requested_position, 90)

  async def test_unacknowledged_write(self):
    self.client.drop_acks = True
    with self.assertRaises(TransportTimeoutError):
      await self.link.transmit(CommandRegister(activate=True))

    self.client.drop_acks = False
    await self.link.transmit(CommandRegister(activate=True))  # shouldn't raise

  async def test_wrong_unit(self):
    link = RobotiqLink(client=self.client, unit_id=7, timeout=0.1)
    with self.assertRaises(TransportTimeoutError):
      await link.poll()

  async def test_exception_response(self):
    self.client.exception_code = 0x04
    with self.assertRaises(ModbusExceptionError):
      await self.link.poll()

  async def test_broken_connection(self):
    self.client.break_connection()
    with self.assertRaises(TransportError):
      await self.link.poll()

  async def test_close(self):
    self.link.close()
    self.assertFalse(self.client.connected)


if __name__ == "__main__":
  unittest.main()
