"""Run the client bootstrap against a running broker and print the outcome."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from livecast.client.host_resolution import Participant
from livecast.client.session import ParticipantListener, build_live_session
from livecast.core.config import get_client_settings


class NullMediaSession:
	"""Stands in for the device audio session on a workstation."""

	async def start(self) -> None:
		return None

	async def stop(self) -> None:
		return None


class EchoTransport:
	"""Pretend transport that reports only the local participant."""

	def __init__(self, identity: str) -> None:
		self._identity = identity

	async def connect(self, url: str, token: str, on_participants: ParticipantListener) -> None:
		participants: Sequence[Participant] = [Participant(identity=self._identity, is_local=True, joined_at=0.0)]
		on_participants(participants)

	async def disconnect(self) -> None:
		return None


async def main() -> None:
	logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	settings = get_client_settings()

	async with httpx.AsyncClient() as http_client:
		session = build_live_session(settings, NullMediaSession(), EchoTransport(settings.identity), http_client)
		async with session:
			view = await session.start()
			print(f"state={view.kind} host={session.resolver.host} error={view.message}")


if __name__ == "__main__":
	asyncio.run(main())
