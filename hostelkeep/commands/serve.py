"""Serve API command."""

from __future__ import annotations

import argparse
import logging
import os

from hostelkeep.commands.common import CommandRuntime, load_config

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)

    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - dependency/runtime
        raise RuntimeError("Missing API dependencies. Install with: pip install 'hostelkeep[api]'") from exc

    logger.info("Starting API on http://%s:%s (storage=%s)", args.host, args.port, config.storage.backend)
    if args.reload:
        os.environ["HOSTELKEEP_PROJECT_PATH"] = str(args.project_path)
        uvicorn.run(
            "hostelkeep.webapp:create_app_from_env",
            host=args.host,
            port=args.port,
            reload=True,
            factory=True,
            log_level=args.log_level.lower(),
        )
    else:
        from hostelkeep.webapp import create_app

        app = create_app(config, store=runtime.store_factory(config), notifier=runtime.notifier_factory())
        uvicorn.run(app, host=args.host, port=args.port, reload=False, log_level=args.log_level.lower())
    return 0
