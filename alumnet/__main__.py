# (c) Copyright Datacraft, 2026
"""Serve the alumnet API: `python -m alumnet` or the `alumnet` script."""
import uvicorn

from alumnet.core.config import get_settings


def main() -> None:
	settings = get_settings()
	uvicorn.run(
		"alumnet.app:app",
		host=settings.server_host,
		port=settings.server_port,
		workers=settings.server_workers,
		log_config=None,
	)


if __name__ == "__main__":
	main()
