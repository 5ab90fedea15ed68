"""Command-line entry point: ``python -m valtify [--host HOST] [--port PORT]``."""

import argparse

from valtify.main import run_server


def main():
    parser = argparse.ArgumentParser(description="Valtify - personal vault API server")
    parser.add_argument("--host", default=None, help="Host to bind to (default: VALTIFY_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: VALTIFY_PORT or 8048)")
    args = parser.parse_args()

    run_server(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
