"""Mint a token for local testing without going through the HTTP API."""
from __future__ import annotations

import argparse
from datetime import timedelta

from livecast.core.config import get_settings
from livecast.services.grants import GrantEncoder


def main() -> None:
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--room", default="quickstart-room")
	parser.add_argument("--identity", required=True)
	parser.add_argument("--publisher", action="store_true", help="grant publish permission")
	args = parser.parse_args()

	settings = get_settings()
	encoder = GrantEncoder(
		settings.livekit_api_key,
		settings.livekit_api_secret,
		ttl=timedelta(seconds=settings.token_ttl_seconds),
	)
	print(encoder.encode(args.identity, args.room, args.publisher))


if __name__ == "__main__":
	main()
