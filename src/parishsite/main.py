"""Application entry point for the parish site backend server."""

from parishsite.app import App
from parishsite.config import load_config
from parishsite.errors import ConfigurationError
from parishsite.logging import setup_logging
from parishsite.web.runner import run_server


def main() -> None:
    try:
        config = load_config()
    except ConfigurationError as e:
        # Refuse to start rather than run with insecure defaults
        raise SystemExit(f"Refusing to start: {e}") from e
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
