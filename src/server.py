"""HTTP server runner for the fulfillment API.

Usage:
    python src/server.py                     # Serve on 0.0.0.0:8000
    python src/server.py --port 9000         # Pick another port
    python src/server.py --reload            # Restart on code changes
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Order fulfillment API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload when source files change")
    args = parser.parse_args()

    # Logging is configured by app.py; uvicorn must not replace it
    uvicorn.run("app:app", host=args.host, port=args.port, reload=args.reload, log_config=None)


if __name__ == "__main__":
    main()
