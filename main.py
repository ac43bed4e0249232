#!/usr/bin/env python3
"""Team Calendar Server startup script."""

import logging

from config import load_config
from presentation import create_app


def main():
    """Load config, build the app and serve until interrupted."""
    config = load_config()
    config.setup_logging()
    logger = logging.getLogger('team_calendar')

    app = create_app(config)
    components = app.extensions['team_calendar']
    logger.info(f"Serving shared calendar {config.calendar.shared_calendar_id} "
                f"on http://{config.server.host}:{config.server.port}")

    try:
        # The reloader would fork a second cache sweeper and event loop
        app.run(
            host=config.server.host,
            port=config.server.port,
            debug=config.server.debug,
            use_reloader=False
        )
    except KeyboardInterrupt:
        logger.info("Shutting down server...")
    finally:
        components.shutdown()


if __name__ == '__main__':
    main()
