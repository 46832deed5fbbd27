#!/usr/bin/env python3
"""
kv-oauth demo - OAuth sign-in with server-side sessions.
Runs the demo HTTP server or prints the resolved configuration.
"""

import argparse
import dataclasses
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep kv_oauth imports lazy (inside functions) so `--help` works without the server extras.
#


def show_config(provider: str = "") -> int:
    """Print the resolved settings and check that provider credentials are present."""
    from kv_oauth.config import load_settings
    from kv_oauth.providers import create_oauth_config

    settings = load_settings()
    if provider:
        settings = dataclasses.replace(settings, provider=provider.lower())

    payload = dataclasses.asdict(settings)
    payload["redirect_uri"] = settings.redirect_uri
    try:
        oauth_config = create_oauth_config(settings.provider, redirect_uri=settings.redirect_uri)
    except ValueError as e:
        payload["provider_ok"] = False
        payload["provider_error"] = str(e)
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 1

    payload["provider_ok"] = True
    payload["authorization_endpoint"] = oauth_config.authorization_endpoint
    payload["scopes"] = list(oauth_config.scopes)
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="OAuth sign-in demo with key-value backed sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check provider credentials and settings
  GITHUB_CLIENT_ID=... GITHUB_CLIENT_SECRET=... python main.py --show-config

  # Serve the demo on :8000 with Redis-backed sessions
  KV_OAUTH_REDIS_URL=redis://localhost:6379/0 python main.py --serve
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the demo HTTP server")
    parser.add_argument("--show-config", action="store_true", help="Print resolved settings as JSON and exit")
    parser.add_argument("--provider", default="", help="Override KV_OAUTH_PROVIDER (github, gitlab, google, ...)")
    parser.add_argument("--host", default="0.0.0.0", help="Demo server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Demo server listen port (default: 8000)")

    args = parser.parse_args()

    try:
        if args.show_config:
            sys.exit(show_config(provider=args.provider))

        if args.serve:
            from kv_oauth.api.server import run as run_server
            from kv_oauth.config import load_settings

            settings = load_settings()
            if args.provider:
                settings = dataclasses.replace(settings, provider=args.provider.lower())
            run_server(host=args.host, port=args.port, settings=settings)
            return

        # No arguments provided
        parser.print_help()
        print("\nTip: Use `--show-config` to check provider credentials")

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
