"""Entry point: python -m fplsquad"""

import argparse

from fplsquad.logging_config import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the squad ledger API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=9875)
    args = parser.parse_args()

    setup_logging()

    from fplsquad.api import create_app

    app = create_app()
    app.run(host=args.host, port=args.port, debug=False)


if __name__ == "__main__":
    main()
