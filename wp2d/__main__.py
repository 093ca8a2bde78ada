"""Entry point: python -m wp2d — check the configured pod connection."""

import sys

from wp2d.config import get_settings
from wp2d.main import bootstrap, connect


def main() -> int:
    settings = get_settings()
    bootstrap(settings)

    with connect(settings) as client:
        if client.has_last_error():
            print(f"Error: {client.last_error_message}", file=sys.stderr)
            return 1
        if not client.is_logged_in():
            print(f"Connected to {client.build_url()} (not logged in)")
            return 0

        aspects = client.get_aspects()
        services = client.get_services()
        if aspects is None or services is None:
            print(f"Error: {client.last_error_message}", file=sys.stderr)
            return 1

        print(f"Logged in to {client.build_url()} as {client.username}")
        print("Aspects: " + ", ".join(f"{name} ({aspect_id})" for aspect_id, name in aspects.items()))
        print("Services: " + (", ".join(services.values()) or "none"))
        return 0


if __name__ == "__main__":
    sys.exit(main())
