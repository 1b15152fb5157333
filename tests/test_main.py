# (c) Copyright Datacraft, 2026
"""Tests for the server entry point."""
from unittest.mock import patch

from alumnet import __main__ as entrypoint
from alumnet.core.config import Settings


def test_main_serves_the_app():
    settings = Settings(_env_file=None, server_host="0.0.0.0", server_port=9000, server_workers=2)

    with patch.object(entrypoint, "get_settings", return_value=settings), \
            patch.object(entrypoint.uvicorn, "run") as run:
        entrypoint.main()

    run.assert_called_once_with(
        "alumnet.app:app",
        host="0.0.0.0",
        port=9000,
        workers=2,
        log_config=None,
    )
